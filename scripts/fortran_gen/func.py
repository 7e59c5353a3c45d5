"""
Function wrapper generation module

Every wrapped callable becomes three coordinated pieces of code:

    C++ wrapper     SWIGEXPORT double swigc_Foo_get(void *farg1) {...}
    interface       function swigc_Foo_get(farg1) bind(C, ...) ...
    Fortran proxy   function swigf_Foo_get(self) result(swigf_result) ...

The proxy converts Fortran arguments to the interface types, calls the
interface, and converts the result back. Binding (naming and typemap lookup)
is done for the whole declaration before any text is emitted.
"""

import re
from dataclasses import dataclass, field
from typing import Optional, Iterator, TYPE_CHECKING

from .codegen import (
    CodeGen, is_func_ptr, is_reference, local_type, decl_with_name, strip_qualifiers,
)
from .diagnostics import Code
from .ir import Role
from .template import Template
from .typemaps import TypemapCache, TypemapNode

if TYPE_CHECKING:
    from .context import GenerationContext
    from .ir import FuncInfo, ParamInfo

# Local variable names in generated code
C_RESULT = 'fresult'        # value returned by the C++ wrapper
CPP_RESULT = 'result'       # value returned by the wrapped C++ call
F_RESULT = 'swigf_result'   # value returned by the Fortran proxy

# Typemaps attached to every parameter
PARAM_OPS = ('in', 'ctype', 'imtype', 'ftype', 'fin', 'check', 'freearg', 'argout')

_GENERATED_NAME_RE = re.compile(r'^(farg\d+|fresult|swigf_result)$', re.IGNORECASE)
_FORTRAN_NAME_RE = re.compile(r'^[A-Za-z]\w*$')


@dataclass
class Specialization:
    """Per-declaration overrides set by the class generator"""
    symname: Optional[str] = None       # replaces the canonical name
    membername: Optional[str] = None    # public alias
    ftype_out: Optional[Template] = None  # proxy return type
    fout: Optional[Template] = None     # proxy result conversion
    argprepend: list[str] = field(default_factory=list)       # leading proxy args
    argprepend_decls: list[str] = field(default_factory=list)  # and their declarations


class ParamBinding(TypemapNode):
    """A parameter with its generated names and attached typemaps"""

    def __init__(self, param: 'ParamInfo', index: int, decl: 'FuncInfo'):
        self.param = param
        self.index = index
        self.type = param.type
        self.location = decl.location
        self.tmaps = TypemapCache()
        self.lname = f'arg{index + 1}'      # C++ local
        self.imname = f'f{self.lname}'      # C wrapper / interface argument
        self.fname = ''                     # Fortran proxy argument

    @property
    def match_name(self) -> Optional[str]:
        return self.param.name or None

    @property
    def numinputs(self) -> int:
        tm = self.tmaps.get('in')
        return tm.numinputs if tm is not None else 1

    def next(self, op: str) -> int:
        """Index of the parameter after the one(s) covered by `op`"""
        return self.tmaps.next.get(op, self.index + 1)

    def values(self, span: int = 1, **extra: str) -> dict[str, str]:
        """Special variables for this parameter's native typemaps

        A typemap spanning several parameters refers to the following ones
        as $2, $3, ...
        """
        ltype = local_type(self.type)
        values = {str(k + 1): f'arg{self.index + k + 1}' for k in range(span)}
        values.update({
            '1_ltype': ltype,
            '&1_ltype': ltype + ' *' if not ltype.endswith('*') else ltype + '*',
            '1_basetype': strip_qualifiers(self.type),
        })
        values.update(extra)
        return values


class DeclBinding(TypemapNode):
    """A declaration with its tier names and return typemaps"""

    def __init__(self, decl: 'FuncInfo', spec: Specialization, in_class: bool):
        self.decl = decl
        self.spec = spec
        self.type = decl.type
        self.location = decl.location
        self.tmaps = TypemapCache()
        self.symname = spec.symname or decl.name
        # C++ wrapper link name, also the interface name
        self.wname = f'swigc_{self.symname}{decl.overname}'
        # Fortran proxy name
        if in_class:
            self.fname = f'swigf_{self.symname}{decl.overname}'
        else:
            self.fname = f'{self.symname}{decl.overname}'
        self.params: list[ParamBinding] = []
        self.c_return_type = Template()
        self.im_return_type = Template()
        self.f_return_type = Template()
        self.out: Optional[Template] = None
        self.fout: Optional[Template] = None

    @property
    def is_csubroutine(self) -> bool:
        return self.c_return_type.render().strip() == 'void'

    @property
    def is_fsubroutine(self) -> bool:
        return not self.f_return_type.render().strip()

    @property
    def owner(self) -> str:
        return '1' if self.decl.new_object else '0'

    def real_params(self) -> Iterator[ParamBinding]:
        """Parameters that take an input, in order"""
        i = 0
        while i < len(self.params):
            p = self.params[i]
            if p.numinputs == 0:
                i = p.next('in')
                continue
            yield p
            i = p.next('in')


def make_parameter_name(param: 'ParamInfo', index: int, taken: set[str]) -> str:
    """Fortran dummy argument name for a parameter

    Unnamed parameters, names that collide with generated locals and
    case-insensitive duplicates become `argN`, numbered past any name
    already taken.
    """
    name = param.name
    if (not name or not _FORTRAN_NAME_RE.match(name)
            or _GENERATED_NAME_RE.match(name) or name.lower() in taken):
        n = index + 1
        while f'arg{n}' in taken:
            n += 1
        name = f'arg{n}'
    taken.add(name.lower())
    return name


def call_args(decl: 'FuncInfo', params: list[ParamBinding]) -> list[str]:
    """Arguments for the wrapped C++ call (references are held as pointers)"""
    return [f'*{p.lname}' if is_reference(p.type) else p.lname for p in params]


def native_action(decl: 'FuncInfo', params: list[ParamBinding]) -> str:
    """Code calling the wrapped C++ entity and storing `result`"""
    if decl.action:
        return decl.action

    role = decl.role
    args = call_args(decl, params)
    if role in (Role.METHOD, Role.GETTER, Role.SETTER, Role.DESTRUCTOR):
        obj, args = params[0].lname, args[1:]
    else:
        obj = ''

    if role is Role.DESTRUCTOR:
        return f'delete {obj};'
    elif role is Role.SETTER:
        return f'if ({obj}) ({obj})->{decl.field_name} = {args[0]};'
    elif role is Role.STATIC_SETTER:
        return f'{decl.record}::{decl.field_name} = {args[0]};'
    elif role is Role.VAR_SETTER:
        return f'{decl.field_name} = {args[0]};'
    elif role is Role.GETTER:
        call = f'(({obj})->{decl.field_name})'
    elif role is Role.STATIC_GETTER:
        call = f'{decl.record}::{decl.field_name}'
    elif role is Role.VAR_GETTER:
        call = decl.field_name
    elif role is Role.CONSTRUCTOR:
        call = f'new {decl.source_name}({", ".join(args)})'
    elif role is Role.METHOD:
        call = f'({obj})->{decl.source_name}({", ".join(args)})'
    elif role is Role.STATIC_METHOD:
        call = f'{decl.record}::{decl.source_name}({", ".join(args)})'
    else:
        call = f'{decl.source_name}({", ".join(args)})'

    rtype = decl.type
    if rtype == 'void':
        return f'{call};'
    ltype = local_type(rtype)
    if is_reference(rtype):
        return f'{CPP_RESULT} = ({ltype}) &{call};'
    return f'{CPP_RESULT} = ({ltype}){call};'


def c_local(type_str: str, name: str) -> str:
    """Declaration of a C++ local, null-initialized if it is a pointer

    Examples:
        ("Foo *", "arg1") -> "Foo *arg1 = (Foo *) 0 ;"
        ("double", "arg2") -> "double arg2 ;"
    """
    if type_str.endswith('*') or is_func_ptr(type_str):
        return f'{decl_with_name(type_str, name)} = ({type_str}) 0 ;'
    return f'{decl_with_name(type_str, name)} ;'


class FuncGenerator:
    """Generates the wrapper, interface and proxy for one callable"""

    def __init__(self, ctx: 'GenerationContext'):
        self.ctx = ctx
        self.resolver = ctx.resolver

    # >>> BINDING

    def bind(self, decl: 'FuncInfo', spec: Optional[Specialization] = None) -> DeclBinding:
        """Assign names and attach all typemaps for a declaration"""
        spec = spec or Specialization()
        b = DeclBinding(decl, spec, self.ctx.is_wrapping_class)

        # Return types: the 'out' variants override when present
        b.c_return_type = self.resolver.lookup(b, 'ctype', attributes=b.tmaps, suffix='out')
        b.im_return_type = self.resolver.lookup(b, 'imtype', attributes=b.tmaps, suffix='out')
        if spec.ftype_out is not None:
            b.f_return_type = spec.ftype_out
        else:
            b.f_return_type = self.resolver.lookup(b, 'ftype', attributes=b.tmaps, suffix='out')
        b.out = self.resolver.lookup(b, 'out', attributes=b.tmaps, warn=False)
        if spec.fout is not None:
            b.fout = spec.fout
        else:
            b.fout = self.resolver.lookup(b, 'fout', attributes=b.tmaps, warn=False)

        b.params = [ParamBinding(p, i, decl) for i, p in enumerate(decl.params)]
        for op in PARAM_OPS:
            self._attach_parms(op, b.params)

        taken = {name.lower() for name in spec.argprepend}
        for p in b.real_params():
            p.fname = make_parameter_name(p.param, p.index, taken)
        return b

    def _attach_parms(self, op: str, params: list[ParamBinding]):
        """Attach `op` typemaps, letting multi-parameter typemaps span params"""
        table = self.resolver.table
        i = 0
        while i < len(params):
            rest = [(p.type, p.param.name) for p in params[i:]]
            tm = table.lookup_multi(op, rest, self.resolver.typedefs, self.resolver.is_enum)
            if tm is None:
                tm = self.resolver.find(op, params[i].type, params[i].match_name)
            arity = tm.arity if tm is not None else 1
            params[i].tmaps.attach(op, tm)
            params[i].tmaps.next[op] = i + arity
            for j in range(i + 1, i + arity):
                params[j].tmaps.attach(op, None)
            i += arity

    # >>> EMISSION

    def generate(self, decl: 'FuncInfo', spec: Optional[Specialization] = None) -> Optional[DeclBinding]:
        """Wrap one callable; None if its name is already taken"""
        symname = (spec.symname if spec and spec.symname else decl.name) + decl.overname
        if not self.ctx.symbols.add(symname, decl):
            self.ctx.diagnostics.error(
                Code.DUPLICATE_SYMBOL,
                f"'{symname}' is multiply defined in the generated module",
                decl.location,
            )
            return None

        b = self.bind(decl, spec)
        resolver = self.resolver

        # Declaration lists and bodies, built in lock-step per parameter
        cargs: list[str] = []
        cbody: list[Template] = []
        imargs: list[str] = []
        imdecls: list[str] = []
        fargs: list[str] = list(b.spec.argprepend)
        fdecls: list[str] = list(b.spec.argprepend_decls)
        flocals: list[str] = []
        fbody: list[Template] = []

        real = {p.index for p in b.real_params()}
        for p in b.params:
            span = p.next('in') - p.index
            if p.index not in real:
                # Synthesized argument: no input, but its local still needs setup
                if p.tmaps.get('in') is not None:
                    cbody.append(resolver.attached(p, 'in').substitute(p.values(span, input='')))
                continue

            # >>> C ARGUMENTS
            ctype = resolver.attached(p, 'ctype').render(p.values())
            cargs.append(decl_with_name(ctype, p.imname))
            cbody.append(self._code(p, 'in').substitute(p.values(span, input=p.imname)))

            # >>> INTERFACE ARGUMENTS
            imargs.append(p.imname)
            imdecls.append(f'{resolver.attached(p, "imtype", suffix="in")} :: {p.imname}')

            # >>> PROXY ARGUMENTS
            fargs.append(p.fname)
            fdecls.append(f'{resolver.attached(p, "ftype", suffix="in")} :: {p.fname}')
            flocals.append(f'{resolver.attached(p, "imtype")} :: {p.imname}')
            fbody.append(self._code(p, 'fin').substitute({'input': p.fname, '1': p.imname}))

        # Constraint checks, cleanup and output arguments
        checks = self._collect(b, 'check', lambda p, span: p.values(span, input=self._input(p, real)))
        cleanup = self._collect(b, 'freearg', lambda p, span: p.values(span, input=self._input(p, real)))
        outargs = self._collect(b, 'argout', lambda p, span: p.values(
            span, input=self._input(p, real), result=C_RESULT))

        self.ctx.sections.append('wrapper', self._native(b, cargs, cbody, checks, cleanup, outargs))
        self.ctx.sections.append('finterfaces', self._interface(b, imargs, imdecls))
        if self.ctx.use_proxy:
            self.ctx.sections.append('fproxy', self._proxy(b, fargs, fdecls, flocals, fbody, imargs))
        self._write_function_interface(b)
        return b

    def _code(self, p: ParamBinding, op: str) -> Template:
        """Conversion code attached to a parameter; empty (with a warning) if none"""
        tm = self.resolver.attached(p, op, warn=False)
        if tm is None:
            self.ctx.diagnostics.warn(
                Code.TYPEMAP_UNDEF,
                f"No '{op}' typemap defined for {p.type}",
                p.location,
            )
            return Template()
        return tm

    @staticmethod
    def _input(p: ParamBinding, real: set[int]) -> str:
        return p.imname if p.index in real else ''

    def _collect(self, b: DeclBinding, op: str, values) -> list[Template]:
        """Typemap code for `op` from every parameter that has one, in order"""
        code = []
        i = 0
        while i < len(b.params):
            p = b.params[i]
            tm = self.resolver.attached(p, op, warn=False)
            if tm is not None:
                code.append(tm.substitute(values(p, p.next(op) - i)))
                i = p.next(op)
            else:
                i += 1
        return code

    def _native(self, b: DeclBinding, cargs: list[str], cbody: list[Template],
                checks: list[Template], cleanup: list[Template],
                outargs: list[Template]) -> str:
        """C++ wrapper function with C linkage"""
        decl = b.decl
        c_return_type = b.c_return_type.render()
        null = '' if b.is_csubroutine else '0'
        special = {
            'symname': b.symname,
            'null': null,
            'cleanup': '\n'.join(t.render() for t in cleanup),
        }

        gen = CodeGen()
        gen.line(f'SWIGEXPORT {c_return_type} {b.wname}({", ".join(cargs)}) {{')
        gen.indent()
        if not b.is_csubroutine:
            gen.line(f'{decl_with_name(c_return_type, C_RESULT)} = 0 ;')
        for p in b.params:
            gen.line(c_local(local_type(p.type), p.lname))
        if decl.type != 'void':
            gen.line(c_local(local_type(decl.type), CPP_RESULT))
        gen.line()

        body: list[Template] = cbody + checks
        body.append(Template.parse(native_action(decl, b.params)))
        if b.out is not None:
            out_values = {
                '1': CPP_RESULT,
                'result': C_RESULT,
                'owner': b.owner,
                '1_ltype': local_type(decl.type),
                '1_basetype': strip_qualifiers(decl.type),
            }
            body.append(b.out.substitute(out_values))
        else:
            self.ctx.diagnostics.warn(
                Code.OUT_UNDEF,
                f'Unable to use return type {decl.type} in function {decl.name}',
                decl.location,
            )
        body.extend(outargs)
        body.extend(cleanup)

        for tmpl in body:
            text = tmpl.render(special)
            text = text.replace('SWIG_contract_assert(', f'SWIG_contract_assert({null}, ')
            if text.strip():
                gen.code(text)
        if not b.is_csubroutine:
            gen.line(f'return {C_RESULT};')
        gen.dedent()
        gen.line('}')
        gen.line()
        return gen.output()

    def _interface(self, b: DeclBinding, imargs: list[str], imdecls: list[str]) -> str:
        """Fortran interface declaration binding to the C++ wrapper"""
        kind = 'subroutine' if b.is_csubroutine else 'function'
        gen = CodeGen(indent_str=' ')
        gen.indent()
        gen.indent()
        gen.line(f'{kind} {b.wname}({", ".join(imargs)}) &')
        if b.is_csubroutine:
            gen.raw(f'     bind(C, name="{b.wname}")')
        else:
            gen.raw(f'     bind(C, name="{b.wname}") &')
            gen.raw(f'     result({C_RESULT})')
        gen.indent()
        gen.line('use, intrinsic :: ISO_C_BINDING')
        if not b.is_csubroutine:
            gen.line(f'{b.im_return_type} :: {C_RESULT}')
        gen.lines(*imdecls)
        gen.dedent()
        gen.line(f'end {kind}')
        return gen.output()

    def _proxy(self, b: DeclBinding, fargs: list[str], fdecls: list[str],
               flocals: list[str], fbody: list[Template], imargs: list[str]) -> str:
        """Fortran proxy routine converting arguments and result"""
        decl = b.decl
        kind = 'subroutine' if b.is_fsubroutine else 'function'
        special = {'symname': b.symname}

        gen = CodeGen(indent_str=' ')
        gen.indent()
        gen.indent()
        if b.is_fsubroutine:
            gen.line(f'{kind} {b.fname}({", ".join(fargs)})')
        else:
            gen.line(f'{kind} {b.fname}({", ".join(fargs)}) &')
            gen.raw(f'     result({F_RESULT})')
        gen.indent()
        gen.line('use, intrinsic :: ISO_C_BINDING')
        if not b.is_fsubroutine:
            gen.line(f'{b.f_return_type} :: {F_RESULT}')
        gen.lines(*fdecls)
        if not b.is_csubroutine:
            gen.line(f'{b.im_return_type} :: {C_RESULT}')
        gen.lines(*flocals)

        for tmpl in fbody:
            text = tmpl.render(special)
            if text.strip():
                gen.code(text)

        # Call the interface function
        if decl.proxy_action:
            gen.code(Template.parse(decl.proxy_action).render(special))
        elif b.is_csubroutine:
            gen.line(f'call {b.wname}({", ".join(imargs)})')
        else:
            gen.line(f'{C_RESULT} = {b.wname}({", ".join(imargs)})')

        if b.fout is not None:
            fout_values = {
                '1': C_RESULT,
                'result': '' if b.is_fsubroutine else F_RESULT,
                'owner': b.owner,
                'symname': b.symname,
            }
            text = b.fout.render(fout_values)
            if text.strip():
                gen.code(text)
        else:
            self.ctx.diagnostics.warn(
                Code.OUT_UNDEF,
                f'Unable to use return type {decl.type} in function {decl.name}',
                decl.location,
            )

        gen.dedent()
        gen.line(f'end {kind}')
        return gen.output()

    # >>> ALIASES

    def alias(self, b: DeclBinding) -> str:
        """Public name of a callable

        Precedence: configured rename, member name set by the class
        generator, accessor names built from the variable (not the class),
        method name, canonical name.
        """
        decl = b.decl
        if decl.alias:
            return decl.alias
        if b.spec.membername:
            return b.spec.membername
        if decl.role in (Role.STATIC_GETTER, Role.STATIC_SETTER, Role.GETTER, Role.SETTER):
            return ('set_' if decl.role.is_setter else 'get_') + decl.field_name
        if decl.role in (Role.METHOD, Role.STATIC_METHOD):
            return member_name(decl)
        return b.symname

    def _write_function_interface(self, b: DeclBinding):
        """Expose the callable: public name, type-bound procedure or overload"""
        decl = b.decl
        sections = self.ctx.sections

        if not self.ctx.use_proxy:
            # Only the interface functions are exposed
            sections.append('fpublic', f' public :: {b.wname}\n')
            return

        alias = self.alias(b)
        is_static = decl.role.is_static
        record = self.ctx.record
        if record is not None:
            if decl.is_overloaded:
                overalias = alias + decl.overname
                record.overloads.add(alias, overalias)
                alias = overalias
            attr = ', nopass' if is_static else ', private' if decl.is_overloaded else ''
            sections.append('ftypes', f'  procedure{attr} :: {alias} => {b.fname}\n')
        elif decl.is_overloaded:
            # Made public with the generic interface when the module is written
            self.ctx.overloads.add(alias, b.fname)
        else:
            sections.append('fpublic', f' public :: {alias}\n')


def member_name(decl: 'FuncInfo') -> str:
    """Method name without the class prefix of its canonical name"""
    prefix = f'{decl.record}_'
    if decl.record and decl.name.startswith(prefix):
        return decl.name[len(prefix):]
    return decl.name
