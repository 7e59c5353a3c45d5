"""
Output section module

Generated text accumulates in a fixed set of named, append-only sections
that are joined in a fixed order into the C++ wrapper file and the Fortran
module file.
"""

from typing import TYPE_CHECKING

from .codegen import CodeGen, wrap_items

if TYPE_CHECKING:
    from .context import OverloadGroups

# C++ wrapper file sections, in output order
NATIVE_SECTIONS = ('begin', 'runtime', 'header', 'wrapper', 'init')

# Fortran module sections
MODULE_SECTIONS = ('fimports', 'fpublic', 'ftypes', 'finterfaces', 'fproxy')

RUNTIME_CODE = '''\
#ifndef SWIGEXPORT
  #if defined(_WIN32) || defined(__CYGWIN__)
    #define SWIGEXPORT __declspec(dllexport)
  #elif defined(__GNUC__) && __GNUC__ >= 4
    #define SWIGEXPORT __attribute__ ((visibility("default")))
  #else
    #define SWIGEXPORT
  #endif
#endif

#include <stdexcept>
#include <stdio.h>
#include <stdlib.h>

#define SWIG_contract_assert(RETURNNULL, EXPR, MSG) \\
  if (!(EXPR)) { fprintf(stderr, "%s\\n", MSG); abort(); }

'''


class OutputSections:
    """Named append-only text accumulators"""

    def __init__(self):
        self._streams: dict[str, list[str]] = {
            name: [] for name in NATIVE_SECTIONS + MODULE_SECTIONS
        }

    def append(self, name: str, text: str):
        """Append text to a section (KeyError for unknown sections)"""
        if not text:
            return
        self._streams[name].append(text)

    def has(self, name: str) -> bool:
        return name in self._streams

    def text(self, name: str) -> str:
        return ''.join(self._streams[name])

    def native_code(self) -> str:
        """Assemble the C++ wrapper file"""
        gen = CodeGen()
        gen.line('/* machine generated, do not edit */')
        gen.line()
        out = gen.output()
        for name in ('begin', 'runtime', 'header'):
            out += self.text(name)
        out += ('#ifdef __cplusplus\n'
                'extern "C" {\n'
                '#endif\n')
        out += self.text('wrapper')
        out += ('#ifdef __cplusplus\n'
                '}\n'
                '#endif\n')
        out += self.text('init')
        return out

    def module_code(self, module: str, overloads: 'OverloadGroups') -> str:
        """Assemble the Fortran module file"""
        gen = CodeGen(indent_str=' ')
        gen.line('! machine generated, do not edit')
        gen.line(f'module {module}')
        gen.indent()
        gen.line('use, intrinsic :: ISO_C_BINDING')
        out = gen.output() + self.text('fimports')

        gen.clear()
        gen.indent()
        gen.line('implicit none')
        gen.line()
        gen.line('! PUBLIC METHODS AND TYPES')
        out += gen.output() + self.text('fpublic')

        gen.clear()
        gen.indent()
        for alias, names in overloads.items():
            gen.line(f'public :: {alias}')
            gen.line(f'interface {alias}')
            prefix = ' module procedure :: '
            gen.line(prefix + wrap_items(names, len(prefix) + 1))
            gen.line('end interface')
        gen.line('! TYPES')
        out += gen.output() + self.text('ftypes')

        gen.clear()
        gen.indent()
        gen.line()
        gen.line('! WRAPPER DECLARATIONS')
        gen.line('private')
        gen.line('interface')
        out += gen.output() + self.text('finterfaces')

        gen.clear()
        gen.line(' end interface')
        gen.line()
        gen.line('contains')
        gen.line('  ! FORTRAN PROXY CODE')
        out += gen.output() + self.text('fproxy')
        out += f'end module {module}\n'
        return out
