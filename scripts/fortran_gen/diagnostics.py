"""
Diagnostics module

Collects warnings and errors raised while generating bindings. Warnings never
interrupt generation; an error marks the run as failed and the driver stops.
"""

import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, TextIO


class Severity(Enum):
    WARNING = 'warning'
    ERROR = 'error'


class Code(Enum):
    """Diagnostic categories"""
    TYPEMAP_UNDEF = 'typemap-undef'
    CLASSNAME_UNDEF = 'classname-undef'
    OUT_UNDEF = 'out-undef'
    MULTIPLE_INHERITANCE = 'multiple-inheritance'
    ANONYMOUS_ENUM = 'anonymous-enum'
    ENUM_VALUE = 'enum-value'
    DUPLICATE_SYMBOL = 'duplicate-symbol'


@dataclass(frozen=True)
class SourceLocation:
    file: str = ''
    line: int = 0

    def __str__(self) -> str:
        return f'{self.file or "<unknown>"}:{self.line}'


@dataclass(frozen=True)
class Diagnostic:
    severity: Severity
    code: Code
    message: str
    location: SourceLocation = SourceLocation()

    @property
    def is_fatal(self) -> bool:
        return self.severity is Severity.ERROR

    def __str__(self) -> str:
        return f'{self.location}: {self.message}'


@dataclass
class Diagnostics:
    """Ordered accumulator of diagnostics for one generation run"""
    items: list[Diagnostic] = field(default_factory=list)

    def warn(self, code: Code, message: str,
             location: Optional[SourceLocation] = None) -> Diagnostic:
        """Record a non-fatal diagnostic"""
        return self._add(Severity.WARNING, code, message, location)

    def error(self, code: Code, message: str,
              location: Optional[SourceLocation] = None) -> Diagnostic:
        """Record a fatal diagnostic"""
        return self._add(Severity.ERROR, code, message, location)

    def _add(self, severity: Severity, code: Code, message: str,
             location: Optional[SourceLocation]) -> Diagnostic:
        diag = Diagnostic(severity, code, message, location or SourceLocation())
        self.items.append(diag)
        return diag

    @property
    def has_fatal(self) -> bool:
        return any(d.is_fatal for d in self.items)

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.items if not d.is_fatal]

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.items if d.is_fatal]

    def by_code(self, code: Code) -> list[Diagnostic]:
        return [d for d in self.items if d.code is code]

    def print(self, out: Optional[TextIO] = None):
        """Print diagnostics in the generator's progress format"""
        for diag in self.items:
            print(f'  >> {diag.severity.value}: {diag}', file=out or sys.stderr)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)


class GenerationError(Exception):
    """A fatal diagnostic stopped the generation run"""

    def __init__(self, diagnostics: Diagnostics):
        self.diagnostics = diagnostics
        errors = '; '.join(str(d) for d in diagnostics.errors)
        super().__init__(f'generation failed: {errors}')
