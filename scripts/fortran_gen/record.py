"""
Class binding generation module

Generates a Fortran derived type for each wrapped C++ class: the opaque
handle, one type-bound procedure per member, generic bindings for overloads,
and optionally an assignment operator and a finalizer.
"""

from typing import Optional, TYPE_CHECKING

from .codegen import CodeGen, wrap_items
from .context import RecordState
from .diagnostics import Code
from .enum import EnumGenerator
from .func import FuncGenerator, Specialization, DeclBinding, C_RESULT
from .ir import FuncInfo, EnumInfo, InsertInfo, IRError, Role
from .sections import NATIVE_SECTIONS
from .template import Template
from .typemaps import TypemapCache, TypemapNode

if TYPE_CHECKING:
    from .context import GenerationContext
    from .ir import ClassInfo

# Public names of constructors and destructors
CREATE_ALIAS = 'create'
RELEASE_ALIAS = 'release'
ASSIGNMENT_ALIAS = 'assignment(=)'


class ClassNode(TypemapNode):
    """Typemap lookups made for the class itself (handle, create, release)"""

    def __init__(self, cls: 'ClassInfo'):
        self.type = cls.name
        self.location = cls.location
        self.tmaps = TypemapCache()


class RecordGenerator:
    """Generates class bindings"""

    def __init__(self, ctx: 'GenerationContext'):
        self.ctx = ctx
        self.func_gen = FuncGenerator(ctx)
        self.enum_gen = EnumGenerator(ctx)

    def generate(self, cls: 'ClassInfo') -> bool:
        """Generate the derived type and all member wrappers"""
        ctx = self.ctx
        if not ctx.symbols.add(cls.name, cls):
            ctx.diagnostics.error(
                Code.DUPLICATE_SYMBOL,
                f"'{cls.name}' is multiply defined in the generated module",
                cls.location,
            )
            return False

        base = self._base(cls)
        node = ClassNode(cls)
        if ctx.use_proxy:
            self._open_type(cls, base, node)

        # >>> MEMBERS
        ctx.record = RecordState(cls)
        scoped_enums: list[EnumInfo] = []
        try:
            for member in cls.members:
                if isinstance(member, FuncInfo):
                    if not self._generate_member(member, cls, node):
                        return False
                elif isinstance(member, EnumInfo):
                    # Fortran enums cannot live inside a derived type
                    scoped_enums.append(member)
                elif isinstance(member, InsertInfo):
                    emit_insert(ctx, member, cls.name)

            if cls.smartptr:
                self._generate_assignment(cls)
            if ctx.use_proxy:
                self._close_type()
        finally:
            ctx.record = None

        for enum in scoped_enums:
            self.enum_gen.generate(enum)
        return True

    def _open_type(self, cls: 'ClassInfo', base: Optional[str], node: ClassNode):
        gen = CodeGen(indent_str=' ')
        gen.indent()
        header = 'type'
        if base:
            header += f', extends({base})'
        if cls.is_abstract:
            header += ', abstract'
        gen.line(f'{header} :: {cls.name}')
        if not base:
            # Derived types inherit the handle
            gen.indent()
            fdata = self.ctx.resolver.lookup(node, 'fdata', attributes=node.tmaps)
            gen.code(fdata.render())
            gen.dedent()
        gen.line('contains')
        self.ctx.sections.append('fpublic', f' public :: {cls.name}\n')
        self.ctx.sections.append('ftypes', gen.output())

    def _close_type(self):
        """Generic bindings for the overloaded members, then the end of the type"""
        gen = CodeGen(indent_str=' ')
        gen.indent()
        gen.indent()
        for alias, names in self.ctx.record.overloads.items():
            prefix = f'generic :: {alias} => '
            gen.line(prefix + wrap_items(names, len(prefix) + 2))
        gen.dedent()
        gen.line('end type')
        self.ctx.sections.append('ftypes', gen.output())

    def _base(self, cls: 'ClassInfo') -> Optional[str]:
        """The base type to extend; only single inheritance is supported"""
        if not cls.bases:
            return None
        if len(cls.bases) > 1:
            self.ctx.diagnostics.warn(
                Code.MULTIPLE_INHERITANCE,
                f'Multiple inheritance is not supported in Fortran: only {cls.bases[0]} '
                f'will be used as the base of {cls.name}',
                cls.location,
            )
        return cls.bases[0]

    def _generate_member(self, decl: FuncInfo, cls: 'ClassInfo', node: ClassNode) -> bool:
        """Wrap one member function; False on a fatal error"""
        if decl.role is Role.CONSTRUCTOR:
            spec = self._constructor_spec(decl, cls, node)
        elif decl.role is Role.DESTRUCTOR:
            spec = self._destructor_spec(decl, node)
        else:
            spec = None
        binding = self.func_gen.generate(decl, spec)
        if binding is None:
            return False
        if decl.role is Role.DESTRUCTOR and self.ctx.use_final and self.ctx.use_proxy:
            self._generate_finalizer(cls, binding)
        return True

    def _constructor_spec(self, decl: FuncInfo, cls: 'ClassInfo', node: ClassNode) -> Specialization:
        """Constructors are subroutines initializing `self`

        A constructor renamed to something other than the class keeps that
        name as its alias; its wrapper name gets the class as a prefix so it
        cannot collide with a free function of the same name.
        """
        if decl.name == cls.name:
            symname = cls.name
            alias = CREATE_ALIAS
        else:
            symname = f'{cls.name}_{decl.name}'
            alias = decl.name
        return Specialization(
            symname=f'new_{symname}',
            membername=alias,
            ftype_out=Template(),
            fout=self.ctx.resolver.lookup(node, 'fcreate', attributes=node.tmaps),
            argprepend=['self'],
            argprepend_decls=[f'class({cls.name}), intent(inout) :: self'],
        )

    def _destructor_spec(self, decl: FuncInfo, node: ClassNode) -> Specialization:
        return Specialization(
            membername=RELEASE_ALIAS,
            fout=self.ctx.resolver.lookup(node, 'frelease', attributes=node.tmaps),
        )

    def _generate_finalizer(self, cls: 'ClassInfo', dtor: DeclBinding):
        """Finalizer calling the destructor unless the handle was released"""
        fname = f'swigf_final_{cls.name}'
        self.ctx.sections.append('ftypes', f'  final :: {fname}\n')

        gen = CodeGen(indent_str=' ')
        gen.indent()
        gen.indent()
        gen.line(f'subroutine {fname}(self)')
        gen.indent()
        gen.line('use, intrinsic :: ISO_C_BINDING')
        gen.line(f'type({cls.name}) :: self')
        gen.line('if (c_associated(self%swigptr)) then')
        gen.line(f' call {dtor.wname}(self%swigptr)')
        gen.line('end if')
        gen.line('self%swigptr = C_NULL_PTR')
        gen.dedent()
        gen.line('end subroutine')
        self.ctx.sections.append('fproxy', gen.output())

    def _generate_assignment(self, cls: 'ClassInfo'):
        """Assignment operator sharing ownership through the smart pointer

        The right-hand side is copied first, then the current handle is
        released, then the copy is adopted; self-assignment is therefore safe.
        """
        ctx = self.ctx
        name = cls.name
        smartptr = cls.smartptr
        fname = f'swigf_assign_{name}'
        wname = f'swigc_spcopy_{name}'
        if not ctx.symbols.add(f'spcopy_{name}', cls):
            ctx.diagnostics.error(
                Code.DUPLICATE_SYMBOL,
                f"'spcopy_{name}' is multiply defined in the generated module",
                cls.location,
            )
            return

        # >>> NATIVE
        gen = CodeGen()
        with gen.block(f'SWIGEXPORT void * {wname}(void *farg1) {{'):
            gen.line(f'void *{C_RESULT} = 0 ;')
            gen.line(f'{smartptr} *arg1 = ({smartptr} *) 0 ;')
            gen.line()
            gen.line(f'arg1 = ({smartptr} *)farg1;')
            gen.line(f'{C_RESULT} = arg1 ? new {smartptr}(*arg1) : 0;')
            gen.line(f'return {C_RESULT};')
        gen.line()
        ctx.sections.append('wrapper', gen.output())

        # >>> INTERFACE
        gen = CodeGen(indent_str=' ')
        gen.indent()
        gen.indent()
        gen.line(f'function {wname}(farg1) &')
        gen.raw(f'     bind(C, name="{wname}") &')
        gen.raw(f'     result({C_RESULT})')
        gen.indent()
        gen.line('use, intrinsic :: ISO_C_BINDING')
        gen.line(f'type(C_PTR) :: {C_RESULT}')
        gen.line('type(C_PTR), value :: farg1')
        gen.dedent()
        gen.line('end function')
        ctx.sections.append('finterfaces', gen.output())

        if not ctx.use_proxy:
            ctx.sections.append('fpublic', f' public :: {wname}\n')
            return

        # >>> PROXY
        gen = CodeGen(indent_str=' ')
        gen.indent()
        gen.indent()
        gen.line(f'subroutine {fname}(self, other)')
        gen.indent()
        gen.line('use, intrinsic :: ISO_C_BINDING')
        gen.line(f'class({name}), intent(inout) :: self')
        gen.line(f'type({name}), intent(in) :: other')
        gen.line(f'type(C_PTR) :: {C_RESULT}')
        gen.line(f'{C_RESULT} = {wname}(other%swigptr)')
        gen.line(f'call self%{RELEASE_ALIAS}()')
        gen.line(f'self%swigptr = {C_RESULT}')
        gen.dedent()
        gen.line('end subroutine')
        ctx.sections.append('fproxy', gen.output())

        ctx.sections.append('ftypes', f'  procedure, private :: {fname}\n')
        ctx.record.overloads.add(ASSIGNMENT_ALIAS, fname)


def emit_insert(ctx: 'GenerationContext', insert: InsertInfo, scope: Optional[str] = None):
    """Copy verbatim code into its section

    `fortranspec` code goes into the type body inside a class and into the
    public declarations at module scope. Fortran code inside a class has
    `$fclassname` replaced with the class name.
    """
    code = insert.code
    if scope is not None and insert.section in ('fortran', 'fortranspec'):
        tmpl, _ = ctx.classnames.substitute(scope, Template.parse(code), insert.location)
        code = tmpl.render()
    if not code.endswith('\n'):
        code += '\n'

    if insert.section == 'fortranspec':
        if scope is None:
            ctx.sections.append('fpublic', code)
        elif ctx.use_proxy:
            ctx.sections.append('ftypes', code)
    elif insert.section == 'fortran':
        if ctx.use_proxy:
            ctx.sections.append('fproxy', code)
    elif insert.section in NATIVE_SECTIONS:
        ctx.sections.append(insert.section, code)
    else:
        raise IRError(f'unknown insert section {insert.section!r}')
