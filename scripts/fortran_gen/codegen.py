"""
Code generation utilities

Provides helpers for generating C++ and Fortran code, and for inspecting
C type strings.
"""

import re
import textwrap
from typing import Iterable

# Fortran lines are limited to 132 columns; keep a margin for '&'
MAX_LINE_LENGTH = 128

# Continuation of a wrapped Fortran list
CONTINUATION = '&\n    '


class CodeGen:
    """Code generation helper with indentation support"""

    def __init__(self, indent_str: str = '    '):
        self._lines: list[str] = []
        self._indent: int = 0
        self._indent_str: str = indent_str

    def line(self, text: str = ''):
        """Add a line with current indentation"""
        if text:
            self._lines.append(self._indent_str * self._indent + text)
        else:
            self._lines.append('')

    def lines(self, *texts: str):
        """Add multiple lines"""
        for text in texts:
            self.line(text)

    def raw(self, text: str):
        """Add raw text without indentation processing"""
        self._lines.append(text)

    def code(self, text: str):
        """Add a multi-line fragment at the current indentation

        Common leading whitespace is removed; relative indentation is kept.
        """
        for text_line in textwrap.dedent(text.rstrip().lstrip('\n')).split('\n'):
            self.line(text_line.rstrip())

    def indent(self):
        """Increase indentation"""
        self._indent += 1

    def dedent(self):
        """Decrease indentation"""
        if self._indent > 0:
            self._indent -= 1

    def block(self, header: str, footer: str = '}'):
        """Context manager for code blocks"""
        return _BlockContext(self, header, footer)

    def output(self) -> str:
        """Get generated code as string (newline terminated)"""
        if not self._lines:
            return ''
        return '\n'.join(self._lines) + '\n'

    def clear(self):
        """Clear all generated code"""
        self._lines.clear()
        self._indent = 0


class _BlockContext:
    """Context manager for indented code blocks"""

    def __init__(self, gen: CodeGen, header: str, footer: str):
        self._gen = gen
        self._header = header
        self._footer = footer

    def __enter__(self):
        self._gen.line(self._header)
        self._gen.indent()
        return self

    def __exit__(self, *args):
        self._gen.dedent()
        self._gen.line(self._footer)


def wrap_items(items: Iterable[str], line_length: int) -> str:
    """Comma-join items, breaking lines before MAX_LINE_LENGTH

    `line_length` is the column at which the first item starts. An item is
    never split; a line break puts '&' after the comma and continues on a
    new line indented by four spaces.

    Examples:
        wrap_items(['a', 'b'], 10) -> 'a, b'
    """
    result = ''
    for i, item in enumerate(items):
        width = len(item) + (2 if i else 0)
        if i and line_length + width >= MAX_LINE_LENGTH:
            result += ', ' + CONTINUATION + item
            line_length = 4 + len(item)
        else:
            result += (', ' if i else '') + item
            line_length += width
    return result


def normalize_type(type_str: str) -> str:
    """Normalize whitespace in a type string

    Examples:
        "const  Foo&" -> "const Foo &"
        "Foo*" -> "Foo *"
        "std::shared_ptr<Foo>" -> "std::shared_ptr< Foo >"
    """
    s = re.sub(r'\s+', ' ', type_str).strip()
    if is_func_ptr(s):
        return s
    s = re.sub(r'\s*([*&])\s*', r' \1 ', s)
    s = re.sub(r'\s*<\s*', '< ', s)
    s = re.sub(r'\s*>', ' >', s)
    s = re.sub(r'\s+', ' ', s).strip()
    # "* *" -> "**", "* &" -> "*&"
    return re.sub(r'([*&]) (?=[*&])', r'\1', s)


def is_func_ptr(type_str: str) -> bool:
    """Check if type is a function pointer"""
    return '(*)' in type_str


def is_pointer(type_str: str) -> bool:
    """Check if type is a (non function) pointer"""
    return not is_func_ptr(type_str) and normalize_type(type_str).endswith('*')


def is_reference(type_str: str) -> bool:
    """Check if type is an lvalue reference"""
    return normalize_type(type_str).endswith('&')


def is_const(type_str: str) -> bool:
    """Check if the outermost pointee/value is const-qualified"""
    return normalize_type(type_str).startswith('const ')


def strip_qualifiers(type_str: str) -> str:
    """Strip pointers, references and cv-qualifiers

    Examples:
        "const Foo &" -> "Foo"
        "const std::shared_ptr< const Foo > *" -> "std::shared_ptr< const Foo >"
    """
    s = normalize_type(type_str)
    if is_func_ptr(s):
        return s
    s = s.rstrip('*& ')
    while s.endswith(' const'):
        s = s[:-len(' const')].rstrip('*& ')
    if s.startswith('const '):
        s = s[len('const '):]
    if s.startswith('volatile '):
        s = s[len('volatile '):]
    return s.strip()


def local_type(type_str: str) -> str:
    """Type of the local variable that holds an argument or result

    References are held as pointers, everything else as declared.
    """
    s = normalize_type(type_str)
    if s.endswith('&'):
        return s[:-1] + '*'
    return s


def decl_with_name(type_str: str, name: str) -> str:
    """Declare `name` with type `type_str` in C syntax

    Examples:
        ("double", "x") -> "double x"
        ("Foo *", "p") -> "Foo *p"
        ("void (*)(int)", "cb") -> "void (*cb)(int)"
    """
    if is_func_ptr(type_str):
        return type_str.replace('(*)', f'(*{name})', 1)
    if type_str.endswith('*'):
        return f'{type_str}{name}'
    return f'{type_str} {name}'


def resolve_typedefs(type_str: str, typedefs: dict[str, str]) -> str:
    """Replace typedef names with their definitions until none are left"""
    s = normalize_type(type_str)
    seen: set[str] = set()
    while True:
        changed = False
        for name, target in typedefs.items():
            if name in seen:
                continue
            pattern = r'(?<![\w:])' + re.escape(name) + r'(?![\w:])'
            if re.search(pattern, s):
                s = re.sub(pattern, normalize_type(target), s)
                seen.add(name)
                changed = True
        if not changed:
            return normalize_type(s)


def mangle_type(type_str: str) -> str:
    """Deterministic identifier for a type (used for placeholder names)

    Examples:
        "Foo *" -> "_p_Foo"
        "const Foo &" -> "_r_q_const__Foo"
        "std::shared_ptr< Foo >" -> "_std__shared_ptrT_Foo_t"
    """
    s = normalize_type(type_str)
    prefix = ''
    while s and s[-1] in '*&':
        prefix += 'p_' if s[-1] == '*' else 'r_'
        s = s[:-1].rstrip()
    if s.endswith(' const'):
        s = 'const ' + s[:-len(' const')]
    if s.startswith('const '):
        prefix += 'q_const__'
        s = s[len('const '):]
    s = s.replace('::', '__').replace('< ', 'T_').replace(' >', '_t')
    s = s.replace('(*)', 'p_f').replace(', ', '_').replace(',', '_')
    s = re.sub(r'[^\w]', '_', s)
    return '_' + prefix + s
