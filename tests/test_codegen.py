"""Tests for code generation helpers."""

from fortran_gen.codegen import (
    CodeGen, wrap_items, normalize_type, strip_qualifiers,
    local_type, decl_with_name, mangle_type, resolve_typedefs, is_pointer,
    is_reference, is_func_ptr,
)


class TestCodeGen:
    def test_indentation(self):
        gen = CodeGen()
        gen.line('a {')
        gen.indent()
        gen.line('b;')
        gen.line()
        gen.dedent()
        gen.line('}')
        assert gen.output() == 'a {\n    b;\n\n}\n'

    def test_block(self):
        gen = CodeGen(indent_str=' ')
        with gen.block('x {'):
            gen.line('y')
        assert gen.output() == 'x {\n y\n}\n'

    def test_code_dedents_fragment(self):
        gen = CodeGen()
        gen.indent()
        gen.code('''
            {
              int x;
            }
        ''')
        assert gen.output() == '    {\n      int x;\n    }\n'

    def test_empty_output(self):
        assert CodeGen().output() == ''


class TestWrapItems:
    def test_short_list(self):
        assert wrap_items(['a', 'b', 'c'], 10) == 'a, b, c'

    def test_long_list_breaks_between_items(self):
        names = [f'name_{i:03d}' for i in range(40)]
        text = wrap_items(names, 11)
        lines = text.split('\n')
        assert len(lines) > 1
        first = ' ' * 11 + lines[0]
        assert len(first) <= 132
        for line in lines[:-1]:
            assert line.endswith(', &')
        for line in lines[1:]:
            assert line.startswith('    name_')
            assert len(line) <= 132
        # No identifier is split
        joined = text.replace('&\n    ', '')
        assert joined.split(', ') == names

    def test_single_long_item_is_not_split(self):
        item = 'x' * 200
        assert wrap_items([item], 11) == item


class TestTypes:
    def test_normalize(self):
        assert normalize_type('const  Foo&') == 'const Foo &'
        assert normalize_type('Foo*') == 'Foo *'
        assert normalize_type('char**') == 'char **'
        assert normalize_type('std::shared_ptr<Foo>') == 'std::shared_ptr< Foo >'
        assert normalize_type('std::shared_ptr<const Foo>&') == 'std::shared_ptr< const Foo > &'

    def test_predicates(self):
        assert is_pointer('Foo *')
        assert not is_pointer('Foo &')
        assert is_reference('const Foo &')
        assert is_func_ptr('void (*)(int)')
        assert not is_pointer('void (*)(int)')

    def test_strip_qualifiers(self):
        assert strip_qualifiers('const Foo &') == 'Foo'
        assert strip_qualifiers('Foo **') == 'Foo'
        assert strip_qualifiers('const std::shared_ptr< const Foo > *') == 'std::shared_ptr< const Foo >'

    def test_local_type(self):
        assert local_type('const Foo &') == 'const Foo *'
        assert local_type('double') == 'double'

    def test_decl_with_name(self):
        assert decl_with_name('double', 'x') == 'double x'
        assert decl_with_name('void *', 'farg1') == 'void *farg1'
        assert decl_with_name('int (*)(int)', 'cb') == 'int (*cb)(int)'

    def test_mangle(self):
        assert mangle_type('Foo *') == '_p_Foo'
        assert mangle_type('const Foo &') == '_r_q_const__Foo'
        assert mangle_type('std::shared_ptr< Foo >') == '_std__shared_ptrT_Foo_t'
        assert mangle_type('Foo *') == mangle_type('Foo*')

    def test_resolve_typedefs(self):
        typedefs = {'real_t': 'double', 'vec_t': 'real_t *'}
        assert resolve_typedefs('const vec_t', typedefs) == 'const double *'
        assert resolve_typedefs('real_type', typedefs) == 'real_type'
