"""
fortran_gen - Fortran binding generation framework for C++ libraries

This framework generates, for every wrapped C++ declaration, a C++ wrapper
with C linkage, a Fortran interface to it and a Fortran proxy routine. Type
conversions are driven by a table of typemaps that library-specific
configuration scripts extend.
"""

from .ir import IR, IRError, FuncInfo, ParamInfo, ClassInfo, EnumInfo, EnumItem, Role
from .codegen import CodeGen
from .template import Template
from .typemaps import TypemapTable, TypemapResolver
from .classname import ClassNameSubstitution
from .diagnostics import Diagnostics, GenerationError, Code, Severity
from .func import FuncGenerator
from .record import RecordGenerator
from .enum import EnumGenerator
from .generator import Generator, ModuleConfig, GenerationResult

__all__ = [
    'IR', 'IRError', 'FuncInfo', 'ParamInfo', 'ClassInfo', 'EnumInfo', 'EnumItem', 'Role',
    'CodeGen',
    'Template',
    'TypemapTable', 'TypemapResolver',
    'ClassNameSubstitution',
    'Diagnostics', 'GenerationError', 'Code', 'Severity',
    'FuncGenerator',
    'RecordGenerator',
    'EnumGenerator',
    'Generator', 'ModuleConfig', 'GenerationResult',
]
