"""
Shared pointer demo configuration

Instances of `Foo` are owned through `std::shared_ptr<Foo>`: the Fortran
handle points to a heap-allocated shared pointer, so Fortran assignment
shares ownership and release only drops one reference.
"""

from fortran_gen import Generator
from bindings import fortran

CLASS = 'Foo'
SMARTPTR = f'std::shared_ptr< {CLASS} >'


def add_shared_ptr(gen: Generator, cls: str):
    """Native conversions between the handle and raw/shared pointers"""
    sp = f'std::shared_ptr< {cls} >'
    csp = f'std::shared_ptr< const {cls} >'
    tm = gen.typemaps

    # Raw pointers, references and values borrow from the shared pointer
    borrow = f'''\
{{
  {sp} *smartarg = ({sp} *)$input;
  $1 = smartarg ? ($1_ltype)smartarg->get() : 0;
}}'''
    for pattern in (f'{cls} *', f'const {cls} *'):
        tm.register('in', pattern, borrow)
    for pattern in (f'{cls} &', f'const {cls} &'):
        tm.register('in', pattern,
                    'SWIG_contract_assert($input, "Null reference passed to $symname");\n' + borrow)
    tm.register('in', cls, f'''\
SWIG_contract_assert($input, "Null value passed to $symname");
$1 = *(({sp} *)$input)->get();''')

    # Results are wrapped in a new shared pointer; owned results take ownership
    for pattern in (f'{cls} *', f'const {cls} *'):
        tm.register('out', pattern,
                    f'$result = $1 ? new {sp}(const_cast< {cls} * >($1) SWIG_NO_NULL_DELETER_$owner) : 0;')
    for pattern in (f'{cls} &', f'const {cls} &'):
        tm.register('out', pattern,
                    f'$result = new {sp}(const_cast< {cls} * >($1) SWIG_NO_NULL_DELETER_0);')
    tm.register('out', cls, f'$result = new {sp}(new {cls}($1));')

    # Shared pointers themselves
    tm.register('in', sp, f'if ($input) $1 = *({sp} *)$input;')
    tm.register('out', sp, f'$result = $1 ? new {sp}($1) : 0;')
    tm.register('in', csp, f'if ($input) $1 = *({sp} *)$input;')
    tm.register('in', f'const {sp} *', '$1 = ($1_ltype)$input;')
    tm.register('in', f'const {sp} &', f'''\
static {sp} tempnull;
$1 = $input ? ($1_ltype)$input : &tempnull;''')
    tm.register('in', f'const {csp} &', f'''\
{csp} tmp_$1 = $input ? {csp}(*({sp} *)$input) : {csp}();
$1 = &tmp_$1;''')


def configure(gen: Generator):
    """Configure generator for the shared pointer demo"""
    fortran.configure(gen)
    add_shared_ptr(gen, CLASS)

    spdemo = gen.module('spdemo')
    spdemo.smartptrs[CLASS] = SMARTPTR
    spdemo.use_final = True

    # The handle owns a shared pointer, not the object
    spdemo.actions[f'delete_{CLASS}'] = f'delete ({SMARTPTR} *)farg1;'
