"""
IR (Intermediate Representation) module

Reads and represents the declaration tree of a wrapped C++ interface.
Loading also performs symbol resolution: canonical wrapper names are
assigned and overloaded callables are numbered in declaration order.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union
import json

from .codegen import normalize_type, strip_qualifiers, resolve_typedefs
from .diagnostics import SourceLocation

# Sections verbatim code can be inserted into
INSERT_SECTIONS = ('begin', 'runtime', 'header', 'wrapper', 'init', 'fortran', 'fortranspec')


class IRError(ValueError):
    """Malformed declaration tree"""


class Role(Enum):
    """What a wrapped callable is"""
    FUNCTION = 'function'
    CONSTRUCTOR = 'constructor'
    DESTRUCTOR = 'destructor'
    METHOD = 'method'
    STATIC_METHOD = 'static_method'
    GETTER = 'getter'                # instance member variable
    SETTER = 'setter'
    STATIC_GETTER = 'static_getter'  # static member variable
    STATIC_SETTER = 'static_setter'
    VAR_GETTER = 'var_getter'        # global variable
    VAR_SETTER = 'var_setter'

    @property
    def is_static(self) -> bool:
        return self in (Role.STATIC_METHOD, Role.STATIC_GETTER, Role.STATIC_SETTER)

    @property
    def is_setter(self) -> bool:
        return self in (Role.SETTER, Role.STATIC_SETTER, Role.VAR_SETTER)


@dataclass
class ParamInfo:
    """Function parameter information"""
    name: str
    type: str


@dataclass
class FuncInfo:
    """Wrapped callable (one declaration)"""
    name: str                       # canonical symbol name
    type: str                       # return type
    params: list[ParamInfo]
    role: Role = Role.FUNCTION
    source_name: str = ''           # C++ name called by the wrapper
    record: Optional[str] = None    # owning class
    overname: str = ''              # overload suffix ('' if not overloaded)
    field_name: str = ''            # variable name, for accessors
    is_const: bool = False
    new_object: bool = False        # returns a newly owned object
    action: Optional[str] = None    # native call override
    proxy_action: Optional[str] = None  # proxy call override
    alias: Optional[str] = None     # public name override
    location: SourceLocation = field(default_factory=SourceLocation)

    @property
    def is_overloaded(self) -> bool:
        return bool(self.overname)


@dataclass
class EnumItem:
    """Enum item (constant)"""
    name: str
    value: Optional[str] = None
    location: SourceLocation = field(default_factory=SourceLocation)


@dataclass
class EnumInfo:
    """Enum type information"""
    name: str                       # '' for anonymous enums
    items: list[EnumItem]
    scope: Optional[str] = None     # owning class
    is_exported: bool = True
    location: SourceLocation = field(default_factory=SourceLocation)

    @property
    def is_anonymous(self) -> bool:
        return not self.name

    @property
    def qualified_name(self) -> str:
        return f'{self.scope}::{self.name}' if self.scope else self.name


@dataclass
class InsertInfo:
    """Verbatim code for one output section"""
    section: str
    code: str
    location: SourceLocation = field(default_factory=SourceLocation)


@dataclass
class ImportInfo:
    """Another generated module this one depends on"""
    module: str
    classes: list[str] = field(default_factory=list)  # types it wraps
    location: SourceLocation = field(default_factory=SourceLocation)


Member = Union[FuncInfo, EnumInfo, InsertInfo]


@dataclass
class ClassInfo:
    """Class type information"""
    name: str
    members: list[Member]
    bases: list[str] = field(default_factory=list)
    is_abstract: bool = False
    smartptr: Optional[str] = None  # smart pointer type owning instances
    location: SourceLocation = field(default_factory=SourceLocation)

    @property
    def funcs(self) -> list[FuncInfo]:
        return [m for m in self.members if isinstance(m, FuncInfo)]

    @property
    def enums(self) -> list[EnumInfo]:
        return [m for m in self.members if isinstance(m, EnumInfo)]


Decl = Union[FuncInfo, ClassInfo, EnumInfo, InsertInfo, ImportInfo]


@dataclass
class IR:
    """Intermediate representation of a wrapped interface"""
    module: str
    decls: list[Decl]
    typedefs: dict[str, str] = field(default_factory=dict)
    comment: str = ""

    @classmethod
    def load(cls, json_path: str) -> 'IR':
        """Load IR from a JSON file"""
        with open(json_path, 'r') as f:
            data = json.load(f)
        return cls._from_dict(data, json_path)

    @classmethod
    def from_dict(cls, data: dict, filename: str = '') -> 'IR':
        """Create IR from a dictionary"""
        return cls._from_dict(data, filename)

    @classmethod
    def _from_dict(cls, data: dict, filename: str) -> 'IR':
        """Internal: Parse dict into IR"""
        if 'module' not in data:
            raise IRError('declaration tree has no module name')
        parser = _Parser(filename)
        decls: list[Decl] = [
            ImportInfo(module=name, location=SourceLocation(filename, 0))
            for name in data.get('imports', [])
        ]
        for decl in data.get('decls', []):
            decls.extend(parser.parse_decl(decl))
        _number_overloads([d for d in decls if isinstance(d, FuncInfo)])
        return cls(
            module=data['module'],
            decls=decls,
            typedefs={k: normalize_type(v) for k, v in data.get('typedefs', {}).items()},
            comment=data.get('comment', ''),
        )

    @property
    def classes(self) -> dict[str, ClassInfo]:
        return {d.name: d for d in self.decls if isinstance(d, ClassInfo)}

    @property
    def funcs(self) -> list[FuncInfo]:
        return [d for d in self.decls if isinstance(d, FuncInfo)]

    @property
    def enums(self) -> list[EnumInfo]:
        """All enums, including those scoped inside classes"""
        result = []
        for decl in self.decls:
            if isinstance(decl, EnumInfo):
                result.append(decl)
            elif isinstance(decl, ClassInfo):
                result.extend(decl.enums)
        return result

    def get_class(self, name: str) -> Optional[ClassInfo]:
        return self.classes.get(name)

    def resolve_type(self, type_str: str) -> str:
        """Resolve typedefs in a type"""
        return resolve_typedefs(type_str, self.typedefs)

    def get_enum(self, type_str: str) -> Optional[EnumInfo]:
        """Find the enum a type refers to (after stripping qualifiers)"""
        base = strip_qualifiers(self.resolve_type(type_str))
        if base.startswith('enum '):
            base = base[len('enum '):]
        for enum in self.enums:
            if enum.name and base in (enum.qualified_name, enum.name):
                return enum
        return None

    def is_enum_type(self, type_str: str) -> bool:
        return self.get_enum(type_str) is not None


class _Parser:
    """Turns JSON declarations into IR nodes with canonical names"""

    def __init__(self, filename: str):
        self.filename = filename

    def _loc(self, decl: dict) -> SourceLocation:
        return SourceLocation(decl.get('file', self.filename), int(decl.get('line', 0)))

    def _params(self, decl: dict) -> list[ParamInfo]:
        params = []
        for p in decl.get('params', []):
            if 'type' not in p:
                raise IRError(f'parameter of {decl.get("name")!r} has no type')
            params.append(ParamInfo(name=p.get('name', ''), type=normalize_type(p['type'])))
        return params

    def parse_decl(self, decl: dict) -> list[Decl]:
        kind = decl.get('kind')
        if kind in ('function', 'variable', 'class') and not decl.get('name'):
            raise IRError(f'{kind} declaration without a name')
        if kind == 'function':
            return [self._parse_func(decl)]
        elif kind == 'variable':
            return self._parse_variable(decl, None)
        elif kind == 'class':
            return [self._parse_class(decl)]
        elif kind == 'enum':
            return [self._parse_enum(decl, None)]
        elif kind == 'insert':
            return [self._parse_insert(decl)]
        elif kind == 'import':
            return [ImportInfo(
                module=decl['module'],
                classes=list(decl.get('classes', [])),
                location=self._loc(decl),
            )]
        raise IRError(f'unknown declaration kind {kind!r}')

    def _parse_func(self, decl: dict) -> FuncInfo:
        """Parse free function declaration"""
        return FuncInfo(
            name=decl.get('symname', decl['name']),
            type=normalize_type(decl.get('type', 'void')),
            params=self._params(decl),
            source_name=decl['name'],
            new_object=decl.get('new', False),
            action=decl.get('action'),
            proxy_action=decl.get('proxy_action'),
            location=self._loc(decl),
        )

    def _parse_variable(self, decl: dict, cls: Optional[ClassInfo]) -> list[FuncInfo]:
        """Expand a variable into its getter (and setter unless read-only)"""
        name = decl['name']
        vtype = normalize_type(decl['type'])
        loc = self._loc(decl)
        is_static = decl.get('static', False)
        self_params = []
        if cls is None:
            roles = (Role.VAR_GETTER, Role.VAR_SETTER)
            prefix = ''
        elif is_static:
            roles = (Role.STATIC_GETTER, Role.STATIC_SETTER)
            prefix = f'{cls.name}_'
        else:
            roles = (Role.GETTER, Role.SETTER)
            prefix = f'{cls.name}_'
            self_params = [ParamInfo('self', f'{cls.name} *')]
        accessors = [FuncInfo(
            name=f'{prefix}get_{name}',
            type=vtype,
            params=list(self_params),
            role=roles[0],
            source_name=name,
            record=cls.name if cls else None,
            field_name=name,
            location=loc,
        )]
        if not decl.get('readonly', False):
            accessors.append(FuncInfo(
                name=f'{prefix}set_{name}',
                type='void',
                params=self_params + [ParamInfo(name, vtype)],
                role=roles[1],
                source_name=name,
                record=cls.name if cls else None,
                field_name=name,
                location=loc,
            ))
        return accessors

    def _parse_class(self, decl: dict) -> ClassInfo:
        """Parse class declaration and its members"""
        cls = ClassInfo(
            name=decl['name'],
            members=[],
            bases=list(decl.get('bases', [])),
            is_abstract=decl.get('abstract', False),
            smartptr=normalize_type(decl['smartptr']) if decl.get('smartptr') else None,
            location=self._loc(decl),
        )
        for member in decl.get('members', []):
            if member.get('access', 'public') != 'public' and member.get('kind') != 'enum':
                continue
            cls.members.extend(self._parse_member(member, cls))

        kinds = {m.role for m in cls.funcs}
        if Role.CONSTRUCTOR not in kinds and not cls.is_abstract:
            cls.members.insert(0, self._constructor({'name': cls.name}, cls))
        if Role.DESTRUCTOR not in kinds:
            cls.members.append(self._destructor({}, cls))

        _number_overloads(cls.funcs)
        return cls

    def _parse_member(self, decl: dict, cls: ClassInfo) -> list[Member]:
        kind = decl.get('kind')
        if kind == 'constructor':
            return [self._constructor(decl, cls)]
        elif kind == 'destructor':
            return [self._destructor(decl, cls)]
        elif kind == 'method':
            return [self._method(decl, cls)]
        elif kind == 'variable':
            return list(self._parse_variable(decl, cls))
        elif kind == 'enum':
            return [self._parse_enum(decl, cls.name)]
        elif kind == 'insert':
            return [self._parse_insert(decl)]
        raise IRError(f'unknown member kind {kind!r} in class {cls.name!r}')

    def _constructor(self, decl: dict, cls: ClassInfo) -> FuncInfo:
        # The name is the user-visible one; the record emitter derives the
        # canonical wrapper name from it.
        return FuncInfo(
            name=decl.get('name', cls.name),
            type=f'{cls.name} *',
            params=self._params(decl),
            role=Role.CONSTRUCTOR,
            source_name=cls.name,
            record=cls.name,
            new_object=True,
            location=self._loc(decl) if decl else cls.location,
        )

    def _destructor(self, decl: dict, cls: ClassInfo) -> FuncInfo:
        return FuncInfo(
            name=f'delete_{cls.name}',
            type='void',
            params=[ParamInfo('self', f'{cls.name} *')],
            role=Role.DESTRUCTOR,
            source_name=cls.name,
            record=cls.name,
            location=self._loc(decl) if decl else cls.location,
        )

    def _method(self, decl: dict, cls: ClassInfo) -> FuncInfo:
        is_static = decl.get('static', False)
        is_const = decl.get('const', False)
        params = self._params(decl)
        if not is_static:
            self_type = f'const {cls.name} *' if is_const else f'{cls.name} *'
            params.insert(0, ParamInfo('self', self_type))
        name = decl.get('symname', decl['name'])
        return FuncInfo(
            name=f'{cls.name}_{name}',
            type=normalize_type(decl.get('type', 'void')),
            params=params,
            role=Role.STATIC_METHOD if is_static else Role.METHOD,
            source_name=decl['name'],
            record=cls.name,
            is_const=is_const,
            new_object=decl.get('new', False),
            action=decl.get('action'),
            proxy_action=decl.get('proxy_action'),
            location=self._loc(decl),
        )

    def _parse_enum(self, decl: dict, scope: Optional[str]) -> EnumInfo:
        """Parse enum declaration"""
        items = []
        for item in decl.get('items', []):
            value = item.get('value')
            items.append(EnumItem(
                name=item['name'],
                value=str(value) if value is not None else None,
                location=self._loc(item) if 'line' in item else self._loc(decl),
            ))
        return EnumInfo(
            name=decl.get('name', ''),
            items=items,
            scope=scope,
            is_exported=decl.get('access', 'public') == 'public',
            location=self._loc(decl),
        )

    def _parse_insert(self, decl: dict) -> InsertInfo:
        if decl.get('section') not in INSERT_SECTIONS:
            raise IRError(f'unknown insert section {decl.get("section")!r}')
        return InsertInfo(section=decl['section'], code=decl['code'], location=self._loc(decl))


def _number_overloads(funcs: list[FuncInfo]):
    """Give every signature of an overload set a distinct suffix, in source order

    A repeated signature reuses the suffix of its first occurrence, so the
    redefinition collides when its wrapper name is registered.
    """
    groups: dict[str, list[FuncInfo]] = {}
    for func in funcs:
        groups.setdefault(func.name, []).append(func)
    for group in groups.values():
        suffixes: dict[tuple, str] = {}
        for func in group:
            sig = (tuple(p.type for p in func.params), func.is_const)
            suffixes.setdefault(sig, f'__SWIG_{len(suffixes)}')
        if len(suffixes) < 2:
            continue
        for func in group:
            func.overname = suffixes[(tuple(p.type for p in func.params), func.is_const)]
