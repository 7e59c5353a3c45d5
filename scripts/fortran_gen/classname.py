"""
Class-name substitution module

Replaces `$fclassname` in templates with the Fortran name a C++ class or
enum was generated as.
"""

from typing import Optional, TYPE_CHECKING

from .codegen import strip_qualifiers, mangle_type
from .diagnostics import Code, SourceLocation
from .template import Template

if TYPE_CHECKING:
    from .ir import IR, ClassInfo, EnumInfo
    from .diagnostics import Diagnostics

PLACEHOLDER = 'fclassname'


def enum_public_name(enum: 'EnumInfo') -> str:
    """Fortran name of an enum: scoped under its class if it has one"""
    return f'{enum.scope}_{enum.name}' if enum.scope else enum.name


class ClassNameSubstitution:
    """Maps C++ types to the wrapped class/enum names"""

    def __init__(self, diagnostics: 'Diagnostics', ir: Optional['IR'] = None):
        self.diagnostics = diagnostics
        self.ir = ir
        self._classes: dict[str, str] = {}
        self._enums: dict[str, str] = {}
        if ir is not None:
            for cls in ir.classes.values():
                self.register_class(cls)
            for enum in ir.enums:
                if enum.name and enum.is_exported:
                    self.register_enum(enum)

    def register_class(self, cls: 'ClassInfo'):
        """Register a class under its own type and its smart pointer type"""
        self._classes[cls.name] = cls.name
        if cls.smartptr:
            self._classes[_unconst(strip_qualifiers(cls.smartptr))] = cls.name

    def register_enum(self, enum: 'EnumInfo'):
        name = enum_public_name(enum)
        self._enums[enum.qualified_name] = name
        self._enums[enum.name] = name

    def register(self, type_str: str, public_name: str):
        """Register a type wrapped elsewhere (e.g. an imported module)"""
        self._classes[_unconst(strip_qualifiers(type_str))] = public_name

    def lookup(self, type_str: str) -> Optional[str]:
        """Wrapped name for a type, or None if it is not wrapped"""
        resolved = self.ir.resolve_type(type_str) if self.ir else type_str
        stripped = strip_qualifiers(resolved)
        if self.ir is not None and self.ir.is_enum_type(stripped):
            enum = self.ir.get_enum(stripped)
            return self._enums.get(enum.qualified_name)
        if stripped.startswith('enum '):
            return self._enums.get(stripped[len('enum '):])
        return self._classes.get(_unconst(stripped))

    def substitute(self, type_str: str, tmpl: Template,
                   location: Optional[SourceLocation] = None) -> tuple[Template, bool]:
        """Substitute `$fclassname`; returns the new template and whether it
        contained the placeholder

        Unwrapped types get a mangled stand-in name and a warning, so the
        placeholder never survives.
        """
        if not tmpl.has(PLACEHOLDER):
            return tmpl, False

        name = self.lookup(type_str)
        if name is None:
            stripped = strip_qualifiers(self.ir.resolve_type(type_str) if self.ir else type_str)
            self.diagnostics.warn(
                Code.CLASSNAME_UNDEF,
                f"No '$fclassname' replacement (wrapped type) found for {stripped}",
                location,
            )
            name = 'SWIGTYPE' + mangle_type(stripped)
        return tmpl.substitute({PLACEHOLDER: name}), True


def _unconst(type_str: str) -> str:
    """Drop const qualifiers inside template arguments"""
    return type_str.replace('< const ', '< ')
