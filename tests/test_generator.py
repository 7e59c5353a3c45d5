"""Tests for the generator driver, configuration and command line."""

import json
import os

import pytest

import gen_fortran
from fortran_gen import Generator, GenerationError, IR, IRError, Code
from fortran_gen.ir import InsertInfo
from bindings import fortran


def function(name, type_='void', params=(), **kw):
    return {'kind': 'function', 'name': name, 'type': type_,
            'params': [{'name': n, 'type': t} for n, t in params], **kw}


ADD = function('add', 'double', [('a', 'double'), ('b', 'double')])


def make_generator():
    gen = Generator()
    fortran.configure(gen)
    return gen


def generate(decls, gen=None, module='test', **extra):
    gen = gen or make_generator()
    return gen.generate(IR.from_dict({'module': module, 'decls': decls, **extra}))


def assert_in_order(text: str, *fragments: str):
    positions = []
    for frag in fragments:
        assert frag in text, f"Expected '{frag}' in output:\n{text}"
        positions.append(text.index(frag))
    assert positions == sorted(positions), f'Out of order: {fragments}'


def write_ir(path, decls, module='test'):
    path.write_text(json.dumps({'module': module, 'decls': decls}))
    return str(path)


# --- Output layout ---

class TestLayout:
    def test_module_sections(self):
        result = generate([
            {'kind': 'import', 'module': 'base_mod'},
            {'kind': 'class', 'name': 'Foo', 'members': []},
            ADD,
        ])
        assert_in_order(
            result.fortran,
            '! machine generated, do not edit\n',
            'module test\n',
            ' use, intrinsic :: ISO_C_BINDING\n',
            ' use base_mod\n',
            ' implicit none\n',
            ' ! PUBLIC METHODS AND TYPES\n',
            ' public :: Foo\n',
            ' public :: add\n',
            ' ! TYPES\n',
            ' type :: Foo\n',
            ' ! WRAPPER DECLARATIONS\n private\n interface\n',
            '  function swigc_add(',
            ' end interface\n\ncontains\n  ! FORTRAN PROXY CODE\n',
            '  function add(',
        )
        assert result.fortran.endswith('end module test\n')

    def test_native_sections(self):
        result = generate([
            {'kind': 'insert', 'section': 'init', 'code': '/* init */'},
            {'kind': 'insert', 'section': 'header', 'code': '#include "add.h"'},
            ADD,
            {'kind': 'insert', 'section': 'begin', 'code': '/* begin */'},
            {'kind': 'insert', 'section': 'wrapper', 'code': '/* wrapper */'},
        ])
        assert_in_order(
            result.native,
            '/* machine generated, do not edit */\n',
            '/* begin */\n',
            '#define SWIG_contract_assert(RETURNNULL, EXPR, MSG)',
            '#include "add.h"\n',
            'extern "C" {\n',
            'SWIGEXPORT double swigc_add(',
            '/* wrapper */\n',
            '}\n#endif\n',
            '/* init */\n',
        )

    def test_module_scope_fortran_inserts(self):
        result = generate([
            {'kind': 'insert', 'section': 'fortranspec', 'code': ' integer, parameter :: answer = 42'},
            {'kind': 'insert', 'section': 'fortran', 'code': '  subroutine helper()\n  end subroutine'},
        ])
        assert_in_order(result.fortran, ' ! PUBLIC METHODS AND TYPES\n',
                        ' integer, parameter :: answer = 42\n', ' ! TYPES\n')
        assert_in_order(result.fortran, '  ! FORTRAN PROXY CODE\n',
                        '  subroutine helper()\n  end subroutine\n', 'end module test\n')

    def test_fortran_inserts_need_proxies(self):
        gen = make_generator()
        gen.module('test').use_proxy = False
        result = generate([{'kind': 'insert', 'section': 'fortran', 'code': '  ! proxy only'}], gen)
        assert '! proxy only' not in result.fortran

    def test_imported_classes(self):
        result = generate([
            {'kind': 'import', 'module': 'shapes', 'classes': ['Shape']},
            function('area', 'double', [('s', 'const Shape &')]),
        ])
        assert ' use shapes\n' in result.fortran
        assert '   class(Shape), intent(in) :: s\n' in result.fortran
        assert not result.diagnostics.by_code(Code.CLASSNAME_UNDEF)

    def test_unknown_class_gets_mangled_name(self):
        result = generate([function('area', 'double', [('s', 'const Shape &')])])
        assert '   class(SWIGTYPE_Shape), intent(in) :: s\n' in result.fortran
        assert result.diagnostics.by_code(Code.CLASSNAME_UNDEF)


# --- Configuration ---

class TestConfig:
    def test_ignores(self):
        gen = make_generator()
        gen.ignore('secret')
        gen.module('test').ignores.add('Hidden')
        result = generate([
            ADD,
            function('secret'),
            {'kind': 'class', 'name': 'Hidden', 'members': []},
            {'kind': 'class', 'name': 'Shown', 'members': [
                {'kind': 'method', 'name': 'secret', 'type': 'void'},
            ]},
        ], gen)
        assert ' public :: secret\n' not in result.fortran
        assert 'swigc_secret' not in result.native
        assert 'Hidden' not in result.fortran
        assert '  procedure :: secret => swigf_Shown_secret\n' in result.fortran

    def test_ignored_member_by_canonical_name(self):
        gen = make_generator()
        gen.module('test').ignores.add('Shown_secret')
        result = generate([{'kind': 'class', 'name': 'Shown', 'members': [
            {'kind': 'method', 'name': 'secret', 'type': 'void'},
        ]}], gen)
        assert 'secret' not in result.native

    def test_renames(self):
        gen = make_generator()
        gen.module('test').renames.update({'add': 'plus', 'Foo_get': 'value'})
        result = generate([
            ADD,
            {'kind': 'class', 'name': 'Foo', 'members': [
                {'kind': 'method', 'name': 'get', 'type': 'double', 'const': True},
            ]},
        ], gen)
        assert ' public :: plus\n' in result.fortran
        assert 'function plus(a, b) &' in result.fortran
        assert '  procedure :: value => swigf_Foo_get\n' in result.fortran
        assert 'SWIGEXPORT double swigc_plus(' in result.native
        assert 'result = (double)add(arg1, arg2);' in result.native

    def test_new_objects(self):
        gen = make_generator()
        gen.typemaps.register('out', 'SWIGTYPE *', '$result = wrap($1, $owner);')
        gen.module('test').new_objects.add('make')
        result = generate([
            {'kind': 'class', 'name': 'Foo', 'members': []},
            function('make', 'Foo *'),
            function('peek', 'Foo *'),
        ], gen)
        assert '    fresult = wrap(result, 1);\n' in result.native
        assert '    fresult = wrap(result, 0);\n' in result.native

    def test_actions(self):
        gen = make_generator()
        config = gen.module('test')
        config.actions['add'] = 'result = add_fast(arg1, arg2);'
        config.proxy_actions['add'] = 'fresult = 0'
        result = generate([ADD], gen)
        assert '    result = add_fast(arg1, arg2);\n    fresult = result;\n' in result.native
        assert '   fresult = 0\n   swigf_result = fresult\n' in result.fortran

    def test_config_object(self):
        gen = make_generator()
        config = gen.module('other')
        config.use_proxy = False
        result = gen.generate(IR.from_dict({'module': 'test', 'decls': [ADD]}), config)
        assert ' public :: swigc_add\n' in result.fortran

    def test_typemap_decorator(self):
        gen = make_generator()

        @gen.typemap('ctype', 'Handle', out='void *')
        def handle_ctype():
            return 'void *'

        tm = gen.typemaps.get('ctype', 'Handle')
        assert tm.code.render() == 'void *'
        assert tm.kwargs == {'out': 'void *'}


# --- Failures ---

class TestErrors:
    def test_unknown_insert_section(self):
        with pytest.raises(IRError, match='unknown insert section'):
            generate([{'kind': 'insert', 'section': 'footer', 'code': '/* x */'}])
        # Inserts built without the loader are rejected the same way
        ir = IR(module='test', decls=[InsertInfo(section='footer', code='/* x */')])
        with pytest.raises(IRError, match='unknown insert section'):
            make_generator().generate(ir)

    def test_fatal_diagnostic_stops_generation(self):
        with pytest.raises(GenerationError) as excinfo:
            generate([ADD, function('add', 'double', [('x', 'double'), ('y', 'double')]), function('later')])
        assert 'generation failed' in str(excinfo.value)
        assert excinfo.value.diagnostics.has_fatal

    def test_warnings_do_not_stop_generation(self):
        result = generate([{'kind': 'enum', 'items': [{'name': 'X'}]}, ADD])
        assert result.diagnostics.warnings
        assert 'swigc_add' in result.native


# --- Files and command line ---

class TestFiles:
    def test_generate_module(self, tmp_path, capsys):
        ir_path = write_ir(tmp_path / 'test.json', [ADD])
        gen = make_generator()
        gen.output_root = str(tmp_path / 'out')
        gen.prepare()
        result = gen.generate_module(ir_path)
        assert result.native_filename == 'test_wrap.cxx'
        assert result.fortran_filename == 'test.f90'
        with open(tmp_path / 'out' / 'test_wrap.cxx') as f:
            assert f.read() == result.native
        with open(tmp_path / 'out' / 'test.f90') as f:
            assert f.read() == result.fortran
        out = capsys.readouterr().out
        assert '=== Generating Fortran bindings:' in out
        assert f'  {ir_path} => test' in out

    def test_failed_module_writes_nothing(self, tmp_path, capsys):
        ir_path = write_ir(tmp_path / 'dup.json', [ADD, ADD])
        gen = make_generator()
        gen.output_root = str(tmp_path)
        with pytest.raises(GenerationError):
            gen.generate_module(ir_path)
        assert not os.path.exists(tmp_path / 'test_wrap.cxx')
        assert not os.path.exists(tmp_path / 'test.f90')
        err = capsys.readouterr().err
        assert "  >> error: " in err
        assert 'multiply defined' in err


class TestCommandLine:
    def test_default_bindings(self, tmp_path):
        ir_path = write_ir(tmp_path / 'test.json', [ADD])
        outdir = tmp_path / 'out'
        assert gen_fortran.main([ir_path, '--outdir', str(outdir)]) == 0
        text = (outdir / 'test.f90').read_text()
        assert ' public :: add\n' in text
        assert (outdir / 'test_wrap.cxx').exists()

    def test_noproxy_and_final(self, tmp_path):
        ir_path = write_ir(tmp_path / 'test.json', [{'kind': 'class', 'name': 'Foo', 'members': []}])
        assert gen_fortran.main([ir_path, '--outdir', str(tmp_path), '--final']) == 0
        assert 'final :: swigf_final_Foo' in (tmp_path / 'test.f90').read_text()
        assert gen_fortran.main([ir_path, '--outdir', str(tmp_path), '--noproxy']) == 0
        assert ' type ::' not in (tmp_path / 'test.f90').read_text()

    def test_extra_typemaps(self, tmp_path):
        ir_path = write_ir(tmp_path / 'test.json', [ADD])
        typemaps = tmp_path / 'extra.json'
        typemaps.write_text(json.dumps([
            {'op': 'in', 'type': 'double', 'name': 'a', 'code': '$1 = 2 * $input;'},
        ]))
        assert gen_fortran.main([ir_path, '--outdir', str(tmp_path), '--typemaps', str(typemaps)]) == 0
        native = (tmp_path / 'test_wrap.cxx').read_text()
        assert '    arg1 = 2 * farg1;\n    arg2 = (double)farg2;\n' in native

    def test_bindings_module(self, tmp_path):
        ir_path = os.path.join(os.path.dirname(__file__), '..', 'scripts', 'ir', 'spdemo.json')
        assert gen_fortran.main([ir_path, '--bindings', 'spdemo', '--outdir', str(tmp_path)]) == 0
        assert 'final :: swigf_final_Foo' in (tmp_path / 'spdemo.f90').read_text()
        assert 'swigc_spcopy_Foo' in (tmp_path / 'spdemo_wrap.cxx').read_text()

    def test_missing_ir(self, tmp_path, capsys):
        assert gen_fortran.main([str(tmp_path / 'missing.json')]) == 1
        assert 'missing.json' in capsys.readouterr().err

    def test_generation_error(self, tmp_path):
        ir_path = write_ir(tmp_path / 'dup.json', [ADD, ADD])
        assert gen_fortran.main([ir_path, '--outdir', str(tmp_path)]) == 1
        assert not (tmp_path / 'test.f90').exists()
