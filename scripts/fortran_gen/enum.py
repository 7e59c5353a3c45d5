"""
Enum binding generation module

Generates `enum, bind(c)` blocks. The enum name itself is declared as an
extra enumerator so that `integer(kind(Name))` can be used as its type.
"""

import re
from typing import Optional, TYPE_CHECKING

from .classname import enum_public_name
from .codegen import CodeGen, wrap_items
from .diagnostics import Code

if TYPE_CHECKING:
    from .context import GenerationContext
    from .ir import EnumInfo

_INT_RE = re.compile(r'^[-+]?\d+$')

PUBLIC_PREFIX = ' public :: '


def enum_values(enum: 'EnumInfo') -> list[tuple[str, Optional[str]]]:
    """Value expression of each item, in declaration order

    Items without a value are one more than the previous item: the first
    item defaults to 0, and a non-literal predecessor is referred to by name.
    Items with an empty value are skipped when counting.

    Examples:
        {A, B = 5, C} -> [('A', '0'), ('B', '5'), ('C', '6')]
        {A = FLAG, B} -> [('A', 'FLAG'), ('B', 'A + 1')]
    """
    result: list[tuple[str, Optional[str]]] = []
    prev_name: Optional[str] = None
    prev_value: Optional[str] = None
    for item in enum.items:
        value = item.value.strip() if item.value is not None else None
        if value is None:
            if prev_name is None:
                value = '0'
            elif prev_value is not None and _INT_RE.match(prev_value):
                value = str(int(prev_value) + 1)
            else:
                value = f'{prev_name} + 1'
        result.append((item.name, value or None))
        if value:
            prev_name, prev_value = item.name, value
    return result


class EnumGenerator:
    """Generates enum bindings"""

    def __init__(self, ctx: 'GenerationContext'):
        self.ctx = ctx

    def generate(self, enum: 'EnumInfo'):
        """Generate the enumerator block and make its names public"""
        diagnostics = self.ctx.diagnostics
        exported = enum.is_exported and not enum.is_anonymous

        if not exported:
            for item in enum.items:
                diagnostics.warn(
                    Code.ANONYMOUS_ENUM,
                    f"Anonymous enums ('{item.name}') are currently unsupported "
                    f"and will not be wrapped",
                    item.location,
                )
            return

        enum_name = enum_public_name(enum)
        names = [enum_name]

        gen = CodeGen(indent_str=' ')
        gen.indent()
        gen.line('enum, bind(c)')
        gen.indent()
        gen.line(f'enumerator :: {enum_name} = -1')
        for name, value in enum_values(enum):
            if value is None:
                diagnostics.warn(Code.ENUM_VALUE, f'Enum is missing a name or value: {name}',
                                 enum.location)
                continue
            gen.line(f'enumerator :: {name} = {value}')
            names.append(name)
        gen.dedent()
        gen.line('end enum')
        self.ctx.sections.append('ftypes', gen.output())

        public = PUBLIC_PREFIX + wrap_items(names, len(PUBLIC_PREFIX)) + '\n'
        self.ctx.sections.append('fpublic', public)
