"""
Template module

Type-mapping text is parsed once into literal and placeholder segments, so
substitution never rescans the text and placeholder presence is a lookup.
"""

import re
from dataclasses import dataclass
from typing import Optional, Union

# $&1_ltype must be tried before the generic form
_PLACEHOLDER_RE = re.compile(r'\$(&1_ltype|\w+)')


@dataclass(frozen=True)
class Placeholder:
    """A named substitution point (written as `$name` in template text)"""
    name: str

    def __str__(self) -> str:
        return '$' + self.name


Segment = Union[str, Placeholder]


class Template:
    """An immutable sequence of literal text and placeholders"""

    __slots__ = ('_segments',)

    def __init__(self, segments: tuple[Segment, ...] = ()):
        self._segments = _merge(segments)

    @classmethod
    def parse(cls, text: str) -> 'Template':
        """Split template text into segments"""
        segments: list[Segment] = []
        pos = 0
        for m in _PLACEHOLDER_RE.finditer(text):
            if m.start() > pos:
                segments.append(text[pos:m.start()])
            segments.append(Placeholder(m.group(1)))
            pos = m.end()
        if pos < len(text):
            segments.append(text[pos:])
        return cls(tuple(segments))

    @classmethod
    def literal(cls, text: str) -> 'Template':
        """Template without placeholders"""
        return cls((text,)) if text else cls()

    @property
    def segments(self) -> tuple[Segment, ...]:
        return self._segments

    @property
    def placeholders(self) -> set[str]:
        return {s.name for s in self._segments if isinstance(s, Placeholder)}

    def has(self, name: str) -> bool:
        """Check whether `$name` occurs in the template"""
        return any(isinstance(s, Placeholder) and s.name == name
                   for s in self._segments)

    def substitute(self, values: dict[str, str]) -> 'Template':
        """Replace the given placeholders, keeping the others"""
        return Template(tuple(
            values[s.name] if isinstance(s, Placeholder) and s.name in values else s
            for s in self._segments
        ))

    def render(self, values: Optional[dict[str, str]] = None) -> str:
        """Substitute and produce text; unbound placeholders stay as `$name`"""
        tmpl = self.substitute(values) if values else self
        return ''.join(str(s) for s in tmpl._segments)

    def is_empty(self) -> bool:
        return not self._segments

    def __str__(self) -> str:
        return self.render()

    def __repr__(self) -> str:
        return f'Template({self.render()!r})'

    def __eq__(self, other) -> bool:
        if isinstance(other, Template):
            return self._segments == other._segments
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._segments)


def _merge(segments: tuple[Segment, ...]) -> tuple[Segment, ...]:
    """Join adjacent literals and drop empty ones"""
    merged: list[Segment] = []
    for seg in segments:
        if isinstance(seg, str):
            if not seg:
                continue
            if merged and isinstance(merged[-1], str):
                merged[-1] += seg
                continue
        merged.append(seg)
    return tuple(merged)
