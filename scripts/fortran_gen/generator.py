"""
Main generator module

Orchestrates all components to generate a C++ wrapper file and a Fortran
module from a declaration tree.
"""

import os
from dataclasses import dataclass
from typing import Optional, Callable

from .ir import IR, FuncInfo, ClassInfo, EnumInfo, InsertInfo, ImportInfo
from .classname import ClassNameSubstitution
from .codegen import normalize_type
from .context import GenerationContext
from .diagnostics import Diagnostics, GenerationError
from .enum import EnumGenerator
from .func import FuncGenerator
from .record import RecordGenerator, emit_insert
from .sections import RUNTIME_CODE
from .typemaps import TypemapTable, TypemapResolver, Pattern


class ModuleConfig:
    """Configuration for a module"""

    def __init__(self, module: str):
        self.module = module
        self.use_proxy = True           # generate the Fortran proxy layer
        self.use_final = False          # generate finalizers for classes
        self.ignores: set[str] = set()
        self.renames: dict[str, str] = {}
        self.new_objects: set[str] = set()
        self.actions: dict[str, str] = {}
        self.proxy_actions: dict[str, str] = {}
        self.smartptrs: dict[str, str] = {}


@dataclass
class GenerationResult:
    """Generated file contents"""
    module: str
    native: str
    fortran: str
    diagnostics: Diagnostics

    @property
    def native_filename(self) -> str:
        return f'{self.module}_wrap.cxx'

    @property
    def fortran_filename(self) -> str:
        return f'{self.module}.f90'


class Generator:
    """Main binding generator"""

    def __init__(self, output_root: str = '.'):
        self.output_root = output_root
        self.typemaps = TypemapTable()
        self._modules: dict[str, ModuleConfig] = {}
        self._global_ignores: set[str] = set()

    def ignore(self, *names: str):
        """Add symbols to ignore globally"""
        self._global_ignores.update(names)

    def module(self, name: str) -> ModuleConfig:
        """Get or create module configuration"""
        if name not in self._modules:
            self._modules[name] = ModuleConfig(name)
        return self._modules[name]

    def typemap(self, op: str, pattern: Pattern, **kwargs):
        """Decorator to register a typemap whose code the function returns"""
        def decorator(func: Callable[[], str]):
            self.typemaps.register(op, pattern, func(), **kwargs)
            return func
        return decorator

    def prepare(self):
        """Prepare output directory"""
        print('=== Generating Fortran bindings:')
        os.makedirs(self.output_root, exist_ok=True)

    def generate_module(self, ir_path: str) -> GenerationResult:
        """Generate and write bindings for one declaration tree"""
        ir = IR.load(ir_path)
        print(f'  {ir_path} => {ir.module}')

        try:
            result = self.generate(ir)
        except GenerationError as e:
            e.diagnostics.print()
            raise
        result.diagnostics.print()

        with open(os.path.join(self.output_root, result.native_filename), 'w', newline='\n') as f:
            f.write(result.native)
        with open(os.path.join(self.output_root, result.fortran_filename), 'w', newline='\n') as f:
            f.write(result.fortran)
        return result

    def generate(self, ir: IR, config: Optional[ModuleConfig] = None) -> GenerationResult:
        """Generate both files in memory

        Raises GenerationError as soon as a fatal diagnostic is recorded.
        """
        config = config or self._modules.get(ir.module, ModuleConfig(ir.module))
        self._apply_config(ir, config)

        diagnostics = Diagnostics()
        classnames = ClassNameSubstitution(diagnostics, ir)
        for decl in ir.decls:
            if isinstance(decl, ImportInfo):
                for cls_name in decl.classes:
                    classnames.register(cls_name, cls_name)
        resolver = TypemapResolver(self.typemaps, diagnostics, ir, classnames)
        ctx = GenerationContext(
            module=ir.module,
            resolver=resolver,
            classnames=classnames,
            ir=ir,
            use_proxy=config.use_proxy,
            use_final=config.use_final,
        )
        ctx.sections.append('runtime', RUNTIME_CODE)

        # Create generators
        func_gen = FuncGenerator(ctx)
        record_gen = RecordGenerator(ctx)
        enum_gen = EnumGenerator(ctx)

        for decl in ir.decls:
            if isinstance(decl, ImportInfo):
                ctx.sections.append('fimports', f' use {decl.module}\n')
            elif isinstance(decl, InsertInfo):
                emit_insert(ctx, decl)
            elif isinstance(decl, ClassInfo):
                record_gen.generate(decl)
            elif isinstance(decl, EnumInfo):
                enum_gen.generate(decl)
            elif isinstance(decl, FuncInfo):
                func_gen.generate(decl)
            if diagnostics.has_fatal:
                raise GenerationError(diagnostics)

        return GenerationResult(
            module=ir.module,
            native=ctx.sections.native_code(),
            fortran=ctx.sections.module_code(ir.module, ctx.overloads),
            diagnostics=diagnostics,
        )

    def _apply_config(self, ir: IR, config: ModuleConfig):
        """Apply ignores, renames and per-declaration overrides to the tree"""
        ignores = self._global_ignores | config.ignores

        def keep(decl) -> bool:
            return not (isinstance(decl, (FuncInfo, ClassInfo, EnumInfo))
                        and decl.name in ignores)

        ir.decls = [d for d in ir.decls if keep(d)]
        for decl in ir.decls:
            if isinstance(decl, ClassInfo):
                decl.members = [m for m in decl.members if keep(m)]
                if decl.name in config.smartptrs:
                    decl.smartptr = normalize_type(config.smartptrs[decl.name])
                for member in decl.funcs:
                    self._configure_func(member, config)
                    if member.name in config.renames:
                        member.alias = config.renames[member.name]
            elif isinstance(decl, FuncInfo):
                self._configure_func(decl, config)
                if decl.name in config.renames:
                    # Module procedures are public under their own name
                    decl.name = config.renames[decl.name]

    @staticmethod
    def _configure_func(decl: FuncInfo, config: ModuleConfig):
        if decl.name in config.new_objects:
            decl.new_object = True
        if decl.name in config.actions:
            decl.action = config.actions[decl.name]
        if decl.name in config.proxy_actions:
            decl.proxy_action = config.proxy_actions[decl.name]
