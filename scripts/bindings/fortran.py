"""
Default Fortran typemaps

Configures the binding generator with the typemaps every module needs:
- ISO_C_BINDING scalars, by value, const reference and pointer
- opaque class handles (pointer, reference and value)
- enums as `integer(kind(Enum))`
- C strings and raw pointers as `type(C_PTR)`
"""

from fortran_gen import Generator


# ==============================================================================
# Scalars
# ==============================================================================

# C type -> Fortran type
SCALAR_TYPES = {
    'bool': 'logical(C_BOOL)',
    'char': 'character(C_CHAR)',
    'signed char': 'integer(C_SIGNED_CHAR)',
    'short': 'integer(C_SHORT)',
    'int': 'integer(C_INT)',
    'long': 'integer(C_LONG)',
    'long long': 'integer(C_LONG_LONG)',
    'unsigned char': 'integer(C_SIGNED_CHAR)',
    'unsigned short': 'integer(C_SHORT)',
    'unsigned int': 'integer(C_INT)',
    'unsigned long': 'integer(C_LONG)',
    'unsigned long long': 'integer(C_LONG_LONG)',
    'size_t': 'integer(C_SIZE_T)',
    'int8_t': 'integer(C_INT8_T)',
    'int16_t': 'integer(C_INT16_T)',
    'int32_t': 'integer(C_INT32_T)',
    'int64_t': 'integer(C_INT64_T)',
    'float': 'real(C_FLOAT)',
    'double': 'real(C_DOUBLE)',
}


def add_scalar(gen: Generator, ctype: str, ftype: str):
    """Pass a scalar by value; const references are passed the same way"""
    tm = gen.typemaps
    for pattern in (ctype, f'const {ctype} &'):
        tm.register('ctype', pattern, ctype)
        tm.register('imtype', pattern, ftype, **{'in': f'{ftype}, value'})
        tm.register('ftype', pattern, ftype, **{'in': f'{ftype}, intent(in)'})
        tm.register('fin', pattern, '$1 = $input')
        tm.register('fout', pattern, '$result = $1')

    tm.register('in', ctype, '$1 = ($1_ltype)$input;')
    tm.register('out', ctype, '$result = $1;')
    tm.register('in', f'const {ctype} &', '$1 = ($1_ltype)&$input;')
    tm.register('out', f'const {ctype} &', '$result = *$1;')

    # Pointers to scalars stay raw C pointers
    for pattern in (f'{ctype} *', f'const {ctype} *'):
        add_raw_pointer(gen, pattern)


def add_raw_pointer(gen: Generator, pattern: str):
    """Pass a pointer as `type(C_PTR)` without conversion"""
    tm = gen.typemaps
    tm.register('ctype', pattern, 'void *')
    tm.register('imtype', pattern, 'type(C_PTR)', **{'in': 'type(C_PTR), value'})
    tm.register('ftype', pattern, 'type(C_PTR)', **{'in': 'type(C_PTR), intent(in)'})
    tm.register('in', pattern, '$1 = ($1_ltype)$input;')
    tm.register('out', pattern, '$result = (void *)$1;')
    tm.register('fin', pattern, '$1 = $input')
    tm.register('fout', pattern, '$result = $1')


# ==============================================================================
# Class handles
# ==============================================================================

def add_class_handles(gen: Generator):
    """Wrapped classes are passed as the opaque `swigptr` of their proxy type"""
    tm = gen.typemaps

    for pattern in ('SWIGTYPE', 'SWIGTYPE *', 'SWIGTYPE &', 'const SWIGTYPE *', 'const SWIGTYPE &'):
        intent = 'intent(in)' if pattern.startswith('const ') else 'intent(inout)'
        tm.register('ctype', pattern, 'void *')
        tm.register('imtype', pattern, 'type(C_PTR)', **{'in': 'type(C_PTR), value'})
        tm.register('ftype', pattern, 'type($fclassname)', **{'in': f'class($fclassname), {intent}'})
        tm.register('fin', pattern, '$1 = $input%swigptr')
        tm.register('fout', pattern, '$result%swigptr = $1')

    for pattern in ('SWIGTYPE *', 'const SWIGTYPE *'):
        tm.register('in', pattern, '$1 = ($1_ltype)$input;')
        tm.register('out', pattern, '$result = (void *)$1;')

    # References and values must not be null
    for pattern in ('SWIGTYPE &', 'const SWIGTYPE &'):
        tm.register('in', pattern, '''\
SWIG_contract_assert($input, "Null reference passed to $symname");
$1 = ($1_ltype)$input;''')
        tm.register('out', pattern, '$result = (void *)$1;')

    # Values are copied in and returned as new objects
    tm.register('in', 'SWIGTYPE', '''\
SWIG_contract_assert($input, "Null value passed to $symname");
$1 = *($1_ltype *)$input;''')
    tm.register('out', 'SWIGTYPE', '$result = new $1_ltype($1);')

    # Proxy type members
    tm.register('fdata', 'SWIGTYPE', 'type(C_PTR), public :: swigptr = C_NULL_PTR')
    tm.register('fcreate', 'SWIGTYPE', 'self%swigptr = $1')
    tm.register('frelease', 'SWIGTYPE', 'self%swigptr = C_NULL_PTR')


# ==============================================================================
# Enums, strings and void
# ==============================================================================

def add_enums(gen: Generator):
    """Enums are C ints typed by the kind of their enumerator block"""
    tm = gen.typemaps
    ftype = 'integer(kind($fclassname))'
    for pattern in ('enum SWIGTYPE', 'const enum SWIGTYPE &'):
        tm.register('ctype', pattern, 'int')
        tm.register('imtype', pattern, 'integer(C_INT)', **{'in': 'integer(C_INT), value'})
        tm.register('ftype', pattern, ftype, **{'in': f'{ftype}, intent(in)'})
        tm.register('fin', pattern, '$1 = $input')
        tm.register('fout', pattern, '$result = $1')
    tm.register('in', 'enum SWIGTYPE', '$1 = ($1_ltype)$input;')
    tm.register('out', 'enum SWIGTYPE', '$result = (int)$1;')
    tm.register('in', 'const enum SWIGTYPE &', '$1 = ($1_ltype)&$input;')
    tm.register('out', 'const enum SWIGTYPE &', '$result = (int)*$1;')


def configure(gen: Generator):
    """Register the default typemaps"""

    for ctype, ftype in SCALAR_TYPES.items():
        add_scalar(gen, ctype, ftype)

    add_class_handles(gen)
    add_enums(gen)

    # Strings must be null-terminated by the caller (`s // C_NULL_CHAR`)
    add_raw_pointer(gen, 'const char *')

    @gen.typemap('ftype', 'const char *', **{'in': 'character(kind=C_CHAR, len=*), intent(in), target'})
    def const_char_ftype():
        return 'type(C_PTR)'

    @gen.typemap('fin', 'const char *')
    def const_char_fin():
        return '$1 = c_loc($input)'

    # Untyped pointers and function pointers
    add_raw_pointer(gen, 'void *')
    add_raw_pointer(gen, 'const void *')
    tm = gen.typemaps
    tm.register('ctype', 'SWIGTYPE (*)(ANY)', '$1_ltype')
    tm.register('imtype', 'SWIGTYPE (*)(ANY)', 'type(C_FUNPTR)', **{'in': 'type(C_FUNPTR), value'})
    tm.register('ftype', 'SWIGTYPE (*)(ANY)', 'type(C_FUNPTR)', **{'in': 'type(C_FUNPTR), intent(in)'})
    tm.register('in', 'SWIGTYPE (*)(ANY)', '$1 = $input;')
    tm.register('out', 'SWIGTYPE (*)(ANY)', '$result = $1;')
    tm.register('fin', 'SWIGTYPE (*)(ANY)', '$1 = $input')
    tm.register('fout', 'SWIGTYPE (*)(ANY)', '$result = $1')

    # void: subroutines at every level
    tm.register('ctype', 'void', 'void')
    tm.register('imtype', 'void', '')
    tm.register('ftype', 'void', '')
    tm.register('out', 'void', '')
    tm.register('fout', 'void', '')
