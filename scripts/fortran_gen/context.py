"""
Generation context module

All per-run state is carried by one explicit context object that is passed
to every generator: the output sections, the diagnostics, the module symbol
table, the overload groups and the class being wrapped.
"""

from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

from .diagnostics import Diagnostics
from .sections import OutputSections
from .symbols import SymbolTable

if TYPE_CHECKING:
    from .ir import IR, ClassInfo
    from .typemaps import TypemapResolver
    from .classname import ClassNameSubstitution


class OverloadGroups:
    """Public alias -> implementation names, in insertion order"""

    def __init__(self):
        self._groups: dict[str, list[str]] = {}

    def add(self, alias: str, name: str):
        self._groups.setdefault(alias, []).append(name)

    def get(self, alias: str) -> tuple[str, ...]:
        return tuple(self._groups.get(alias, ()))

    def items(self) -> list[tuple[str, tuple[str, ...]]]:
        return [(alias, tuple(names)) for alias, names in self._groups.items()]

    def __contains__(self, alias: str) -> bool:
        return alias in self._groups

    def __len__(self) -> int:
        return len(self._groups)


@dataclass
class RecordState:
    """The class currently being wrapped"""
    info: 'ClassInfo'
    overloads: OverloadGroups = field(default_factory=OverloadGroups)


@dataclass
class GenerationContext:
    """State for one generation run"""
    module: str
    resolver: 'TypemapResolver'
    classnames: 'ClassNameSubstitution'
    ir: Optional['IR'] = None
    use_proxy: bool = True
    use_final: bool = False
    sections: OutputSections = field(default_factory=OutputSections)
    symbols: SymbolTable = field(default_factory=SymbolTable)
    overloads: OverloadGroups = field(default_factory=OverloadGroups)
    record: Optional[RecordState] = None

    @property
    def diagnostics(self) -> Diagnostics:
        return self.resolver.diagnostics

    @property
    def is_wrapping_class(self) -> bool:
        return self.record is not None
