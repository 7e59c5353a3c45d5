"""
Type-mapping module

A typemap is the template text used for one operation (native type, input
conversion, proxy type, ...) on one C++ type. `TypemapTable` stores them;
`TypemapResolver` looks them up for declarations and parameters, attaching
the result so later reads see the same template.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Optional, Union, Iterator, TYPE_CHECKING

from .codegen import (
    normalize_type, strip_qualifiers, is_func_ptr, mangle_type, resolve_typedefs,
)
from .diagnostics import Code, SourceLocation
from .template import Template

if TYPE_CHECKING:
    from .ir import IR
    from .diagnostics import Diagnostics
    from .classname import ClassNameSubstitution

# (type, parameter name or None)
PatternItem = tuple[str, Optional[str]]
Pattern = Union[str, tuple[str, str], list]

# Identifiers that are never generalized to SWIGTYPE
_BUILTIN_WORDS = {
    'const', 'volatile', 'unsigned', 'signed', 'short', 'long', 'int', 'char',
    'float', 'double', 'bool', 'void', 'enum', 'size_t', 'SWIGTYPE',
    'int8_t', 'uint8_t', 'int16_t', 'uint16_t', 'int32_t', 'uint32_t',
    'int64_t', 'uint64_t', 'ptrdiff_t', 'intptr_t', 'uintptr_t',
}

_IDENT_RE = re.compile(r"(?<![\w:])[A-Za-z_]\w*(?:::[A-Za-z_]\w*)*(?![\w:])(?!\s*<)")


@dataclass
class Typemap:
    """Template for one operation, with optional keyword attributes

    Keyword attributes hold suffix overrides (e.g. `out` for a native type
    used as a return type) and settings such as `numinputs`.
    """
    op: str
    code: Template
    kwargs: dict[str, str] = field(default_factory=dict)
    arity: int = 1
    is_placeholder: bool = False

    def override(self, suffix: str) -> Optional[Template]:
        text = self.kwargs.get(suffix)
        return Template.parse(text) if text is not None else None

    @property
    def numinputs(self) -> int:
        return int(self.kwargs.get('numinputs', 1))


def _as_pattern(pattern: Pattern) -> tuple[PatternItem, ...]:
    """Normalize the accepted pattern spellings"""
    if isinstance(pattern, str):
        return ((normalize_type(pattern), None),)
    if isinstance(pattern, tuple):
        return ((normalize_type(pattern[0]), pattern[1]),)
    items = []
    for item in pattern:
        items.extend(_as_pattern(item))
    return tuple(items)


def type_candidates(type_str: str, typedefs: Optional[dict[str, str]] = None,
                    is_enum: bool = False) -> list[str]:
    """Types to try, most specific first

    Examples:
        "const Foo &" -> ["const Foo &", "const SWIGTYPE &"]
        "const double" -> ["const double", "double", "const SWIGTYPE"]
    """
    exact = normalize_type(type_str)
    bases = [exact]
    if typedefs:
        resolved = resolve_typedefs(exact, typedefs)
        if resolved != exact:
            bases.append(resolved)

    result: list[str] = []

    def add(candidate: str):
        if candidate not in result:
            result.append(candidate)

    for t in bases:
        add(t)
        if not t.endswith(('*', '&')) and t.startswith('const '):
            add(t[len('const '):])
    if is_func_ptr(exact):
        add('SWIGTYPE (*)(ANY)')
        return result
    for t in bases:
        base = strip_qualifiers(t)
        if is_enum:
            add(t.replace(base, 'enum SWIGTYPE', 1))
        general = _IDENT_RE.sub(
            lambda m: m.group(0) if m.group(0) in _BUILTIN_WORDS else 'SWIGTYPE', t)
        add(general)
        add(t.replace(base, 'SWIGTYPE', 1))
    return result


class TypemapTable:
    """Registered typemaps, keyed by operation and pattern"""

    def __init__(self):
        self._maps: dict[str, dict[tuple[PatternItem, ...], Typemap]] = {}

    def register(self, op: str, pattern: Pattern, code: Union[str, Template], **kwargs):
        """Register a typemap (replacing any previous one for the pattern)"""
        items = _as_pattern(pattern)
        tmpl = code if isinstance(code, Template) else Template.parse(code)
        kw = {k: str(v) for k, v in kwargs.items()}
        self._maps.setdefault(op, {})[items] = Typemap(op, tmpl, kw, arity=len(items))

    def apply(self, src: Pattern, dst: Pattern):
        """Copy every typemap defined for `src` onto `dst`"""
        src_items = _as_pattern(src)
        dst_items = _as_pattern(dst)
        for maps in self._maps.values():
            if src_items in maps:
                maps[dst_items] = maps[src_items]

    def clear(self, op: str, pattern: Pattern):
        self._maps.get(op, {}).pop(_as_pattern(pattern), None)

    def get(self, op: str, pattern: Pattern) -> Optional[Typemap]:
        """Exact lookup without generalization"""
        return self._maps.get(op, {}).get(_as_pattern(pattern))

    def lookup(self, op: str, type_str: str, name: Optional[str] = None,
               typedefs: Optional[dict[str, str]] = None,
               is_enum: bool = False) -> Optional[Typemap]:
        """Find the best single-parameter typemap for a type"""
        maps = self._maps.get(op)
        if not maps:
            return None
        for candidate in type_candidates(type_str, typedefs, is_enum):
            if name:
                tm = maps.get(((candidate, name),))
                if tm is not None:
                    return tm
            tm = maps.get(((candidate, None),))
            if tm is not None:
                return tm
        return None

    def lookup_multi(self, op: str, params: list[tuple[str, str]],
                     typedefs: Optional[dict[str, str]] = None,
                     enum_check=None) -> Optional[Typemap]:
        """Find a multi-parameter typemap matching the start of `params`"""
        multi = [(k, v) for k, v in self._maps.get(op, {}).items() if v.arity > 1]
        multi.sort(key=lambda kv: -kv[1].arity)
        for items, tm in multi:
            if len(items) > len(params):
                continue
            if all(self._item_matches(item, params[j], typedefs, enum_check)
                   for j, item in enumerate(items)):
                return tm
        return None

    @staticmethod
    def _item_matches(item: PatternItem, param: tuple[str, str],
                      typedefs, enum_check) -> bool:
        ptype, pname = param
        is_enum = enum_check(ptype) if enum_check else False
        if item[1] is not None and item[1] != pname:
            return False
        return item[0] in type_candidates(ptype, typedefs, is_enum)

    def update(self, entries: list[dict]):
        """Register typemaps from JSON-style entries"""
        for entry in entries:
            entry = dict(entry)
            op = entry.pop('op')
            code = entry.pop('code', '')
            if 'params' in entry:
                pattern: Pattern = [(p['type'], p.get('name')) if p.get('name') else p['type']
                                    for p in entry.pop('params')]
            elif entry.get('name'):
                pattern = (entry.pop('type'), entry.pop('name'))
            else:
                entry.pop('name', None)
                pattern = entry.pop('type')
            self.register(op, pattern, code, **entry)

    def load(self, json_path: str):
        """Register typemaps from a JSON file"""
        with open(json_path, 'r') as f:
            self.update(json.load(f))


class TypemapCache:
    """Typemaps attached to one declaration or parameter

    Reading an operation that was never attached is a programming error.
    """

    def __init__(self):
        self._attached: dict[str, Optional[Typemap]] = {}
        self.next: dict[str, int] = {}

    def attach(self, op: str, typemap: Optional[Typemap]):
        self._attached[op] = typemap

    def is_attached(self, op: str) -> bool:
        return op in self._attached

    def get(self, op: str) -> Optional[Typemap]:
        if op not in self._attached:
            raise LookupError(f"typemap '{op}' was read before being attached")
        return self._attached[op]

    def __iter__(self) -> Iterator[str]:
        return iter(self._attached)


class TypemapNode:
    """Something typemaps are bound to: a declaration or a parameter"""
    type: str
    location: SourceLocation
    tmaps: TypemapCache

    @property
    def match_name(self) -> Optional[str]:
        return None


class TypemapResolver:
    """Looks up typemaps for nodes, with placeholder fallback"""

    def __init__(self, table: TypemapTable, diagnostics: 'Diagnostics',
                 ir: Optional['IR'] = None,
                 classnames: Optional['ClassNameSubstitution'] = None):
        self.table = table
        self.diagnostics = diagnostics
        self.ir = ir
        self.classnames = classnames

    @property
    def typedefs(self) -> dict[str, str]:
        return self.ir.typedefs if self.ir else {}

    def is_enum(self, type_str: str) -> bool:
        return self.ir.is_enum_type(type_str) if self.ir else False

    def find(self, op: str, type_str: str, name: Optional[str] = None) -> Optional[Typemap]:
        """Raw table lookup with this run's typedefs and enums"""
        return self.table.lookup(op, type_str, name, self.typedefs, self.is_enum(type_str))

    def lookup(self, node: TypemapNode, op: str, type_str: Optional[str] = None,
               attributes: Optional[TypemapCache] = None, warn: bool = True,
               suffix: Optional[str] = None) -> Optional[Template]:
        """Get the template for `op`

        With `attributes`, the table is searched for `type_str` (default: the
        node's type) and the result attached to `attributes`. Without, the
        template already attached to the node is used.

        A suffix override (e.g. 'out') replaces the template when the base
        typemap exists and defines it. When nothing is found and `warn` is
        set, a placeholder named after the mangled node type is attached and
        returned; otherwise None.
        """
        type_str = type_str or node.type
        if attributes is not None:
            tm = self.find(op, type_str, node.match_name)
            attributes.attach(op, tm)
        else:
            tm = node.tmaps.get(op)

        if tm is not None:
            code = tm.code
            if suffix and not tm.is_placeholder:
                override = tm.override(suffix)
                if override is not None:
                    code = override
            return self.special_variables(type_str, code)

        if not warn:
            return None

        placeholder = self.placeholder(node.type)
        self.diagnostics.warn(
            Code.TYPEMAP_UNDEF,
            f"No '{op}' typemap defined for {node.type}",
            node.location,
        )
        target = attributes if attributes is not None else node.tmaps
        target.attach(op, Typemap(op, placeholder, is_placeholder=True))
        return placeholder

    def attached(self, node: TypemapNode, op: str, warn: bool = True,
                 suffix: Optional[str] = None) -> Optional[Template]:
        """Read a typemap that an earlier lookup attached to the node"""
        return self.lookup(node, op, warn=warn, suffix=suffix)

    def special_variables(self, type_str: str, code: Template) -> Template:
        """Replace `$fclassname` with the wrapped name of the type"""
        if self.classnames is not None and code.has('fclassname'):
            code, _ = self.classnames.substitute(type_str, code)
        return code

    @staticmethod
    def placeholder(type_str: str) -> Template:
        """Stand-in type name used when no typemap exists"""
        return Template.literal('SWIGTYPE' + mangle_type(type_str))
