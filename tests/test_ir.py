"""Tests for declaration tree loading and canonical naming."""

import json

import pytest

from fortran_gen import IR, IRError, FuncInfo, Role
from fortran_gen.diagnostics import SourceLocation


def load(*decls, **extra):
    return IR.from_dict({'module': 'test', 'decls': list(decls), **extra})


def method(name, type_='void', params=(), **kw):
    return {'kind': 'method', 'name': name, 'type': type_,
            'params': [{'name': n, 'type': t} for n, t in params], **kw}


class TestFunctions:
    def test_free_function(self):
        ir = load({'kind': 'function', 'name': 'add', 'type': 'double',
                   'params': [{'name': 'a', 'type': 'double'}, {'name': 'b', 'type': 'double'}]})
        func = ir.funcs[0]
        assert func.name == 'add'
        assert func.source_name == 'add'
        assert func.role is Role.FUNCTION
        assert func.overname == ''
        assert [p.type for p in func.params] == ['double', 'double']

    def test_types_are_normalized(self):
        ir = load({'kind': 'function', 'name': 'f', 'type': 'Foo*',
                   'params': [{'name': 'x', 'type': 'const  Foo&'}]})
        assert ir.funcs[0].type == 'Foo *'
        assert ir.funcs[0].params[0].type == 'const Foo &'

    def test_overloads_numbered_in_source_order(self):
        ir = load(
            {'kind': 'function', 'name': 'f', 'params': [{'name': 'x', 'type': 'int'}]},
            {'kind': 'function', 'name': 'g'},
            {'kind': 'function', 'name': 'f', 'params': [{'name': 'x', 'type': 'double'}]},
        )
        assert [(f.name, f.overname) for f in ir.funcs] == [
            ('f', '__SWIG_0'), ('g', ''), ('f', '__SWIG_1'),
        ]

    def test_repeated_signature_shares_suffix(self):
        ir = load(
            {'kind': 'function', 'name': 'f', 'params': [{'name': 'x', 'type': 'int'}]},
            {'kind': 'function', 'name': 'f', 'params': [{'name': 'y', 'type': 'double'}]},
            {'kind': 'function', 'name': 'f', 'params': [{'name': 'z', 'type': 'int'}]},
        )
        assert [f.overname for f in ir.funcs] == ['__SWIG_0', '__SWIG_1', '__SWIG_0']

    def test_global_variable(self):
        ir = load({'kind': 'variable', 'name': 'counter', 'type': 'int'})
        getter, setter = ir.funcs
        assert (getter.name, getter.role) == ('get_counter', Role.VAR_GETTER)
        assert (setter.name, setter.role) == ('set_counter', Role.VAR_SETTER)
        assert setter.params[0].type == 'int'
        assert getter.field_name == setter.field_name == 'counter'

    def test_default_location(self):
        func = FuncInfo(name='f', type='void', params=[])
        assert func.field_name == ''
        assert isinstance(func.location, SourceLocation)
        assert func.location is not FuncInfo(name='g', type='void', params=[]).location

    def test_readonly_variable(self):
        ir = load({'kind': 'variable', 'name': 'version', 'type': 'int', 'readonly': True})
        assert [f.name for f in ir.funcs] == ['get_version']


class TestClasses:
    def test_members(self):
        ir = load({'kind': 'class', 'name': 'Foo', 'members': [
            {'kind': 'variable', 'name': 'val', 'type': 'double'},
            method('get', 'double', const=True),
            method('make', 'Foo *', static=True),
        ]})
        cls = ir.get_class('Foo')
        names = [(f.name, f.role) for f in cls.funcs]
        assert names == [
            ('Foo', Role.CONSTRUCTOR),
            ('Foo_get_val', Role.GETTER),
            ('Foo_set_val', Role.SETTER),
            ('Foo_get', Role.METHOD),
            ('Foo_make', Role.STATIC_METHOD),
            ('delete_Foo', Role.DESTRUCTOR),
        ]

    def test_self_parameter(self):
        ir = load({'kind': 'class', 'name': 'Foo', 'members': [
            method('get', 'double', const=True),
            method('set', params=[('v', 'double')]),
            method('make', 'Foo *', static=True),
        ]})
        funcs = {f.name: f for f in ir.get_class('Foo').funcs}
        assert funcs['Foo_get'].params[0].type == 'const Foo *'
        assert funcs['Foo_set'].params[0].type == 'Foo *'
        assert [p.name for p in funcs['Foo_set'].params] == ['self', 'v']
        assert funcs['Foo_make'].params == []
        assert funcs['delete_Foo'].params[0].type == 'Foo *'

    def test_abstract_class_has_no_default_constructor(self):
        ir = load({'kind': 'class', 'name': 'Shape', 'abstract': True, 'members': []})
        assert [f.role for f in ir.get_class('Shape').funcs] == [Role.DESTRUCTOR]

    def test_constructor_overloads(self):
        ir = load({'kind': 'class', 'name': 'Foo', 'members': [
            {'kind': 'constructor'},
            {'kind': 'constructor', 'params': [{'name': 'v', 'type': 'double'}]},
        ]})
        ctors = [f for f in ir.get_class('Foo').funcs if f.role is Role.CONSTRUCTOR]
        assert [(f.name, f.overname, f.type) for f in ctors] == [
            ('Foo', '__SWIG_0', 'Foo *'), ('Foo', '__SWIG_1', 'Foo *'),
        ]
        assert all(f.new_object for f in ctors)

    def test_const_overloads_differ(self):
        ir = load({'kind': 'class', 'name': 'Foo', 'members': [
            method('ref', 'Foo &'),
            method('ref', 'const Foo &', const=True),
        ]})
        refs = [f for f in ir.get_class('Foo').funcs if f.source_name == 'ref']
        assert [f.overname for f in refs] == ['__SWIG_0', '__SWIG_1']

    def test_private_members_skipped(self):
        ir = load({'kind': 'class', 'name': 'Foo', 'members': [
            method('hidden', access='private'),
            {'kind': 'enum', 'name': 'Kind', 'access': 'private', 'items': [{'name': 'A'}]},
        ]})
        cls = ir.get_class('Foo')
        assert not [f for f in cls.funcs if f.source_name == 'hidden']
        assert not cls.enums[0].is_exported

    def test_bases_and_smartptr(self):
        ir = load({'kind': 'class', 'name': 'Foo', 'bases': ['A', 'B'],
                   'smartptr': 'std::shared_ptr<Foo>', 'members': []})
        cls = ir.get_class('Foo')
        assert cls.bases == ['A', 'B']
        assert cls.smartptr == 'std::shared_ptr< Foo >'


class TestEnums:
    def test_scoped_enum(self):
        ir = load({'kind': 'class', 'name': 'Shape', 'members': [
            {'kind': 'enum', 'name': 'Kind', 'items': [{'name': 'CIRCLE'}, {'name': 'SQUARE', 'value': 4}]},
        ]})
        enum = ir.enums[0]
        assert enum.qualified_name == 'Shape::Kind'
        assert [(i.name, i.value) for i in enum.items] == [('CIRCLE', None), ('SQUARE', '4')]
        assert ir.is_enum_type('const Shape::Kind &')
        assert ir.is_enum_type('Kind')

    def test_anonymous(self):
        ir = load({'kind': 'enum', 'items': [{'name': 'X'}]})
        assert ir.enums[0].is_anonymous

    def test_typedef_to_enum(self):
        ir = load({'kind': 'enum', 'name': 'Color', 'items': [{'name': 'RED'}]},
                  typedefs={'color_t': 'Color'})
        assert ir.is_enum_type('color_t')


class TestErrors:
    def test_missing_module(self):
        with pytest.raises(IRError):
            IR.from_dict({'decls': []})

    def test_unknown_kind(self):
        with pytest.raises(IRError):
            load({'kind': 'namespace', 'name': 'ns'})

    def test_nameless_function(self):
        with pytest.raises(IRError):
            load({'kind': 'function', 'type': 'int'})

    def test_parameter_without_type(self):
        with pytest.raises(IRError):
            load({'kind': 'function', 'name': 'f', 'params': [{'name': 'x'}]})

    def test_unknown_insert_section(self):
        with pytest.raises(IRError):
            load({'kind': 'insert', 'section': 'footer', 'code': ''})


class TestLoad:
    def test_locations_and_imports(self, tmp_path):
        path = tmp_path / 'm.json'
        path.write_text(json.dumps({
            'module': 'm',
            'imports': ['base_mod'],
            'decls': [
                {'kind': 'function', 'name': 'f', 'file': 'm.h', 'line': 12},
                {'kind': 'import', 'module': 'other', 'classes': ['Bar']},
            ],
        }))
        ir = IR.load(str(path))
        assert ir.module == 'm'
        assert str(ir.funcs[0].location) == 'm.h:12'
        imports = [d for d in ir.decls if d.__class__.__name__ == 'ImportInfo']
        assert [(i.module, i.classes) for i in imports] == [('base_mod', []), ('other', ['Bar'])]
