"""
Symbol table module

Tracks the names claimed in a scope. Registering an existing name fails.
"""

from typing import Optional


class SymbolTable:
    """Names registered in one scope, in registration order"""

    def __init__(self, scope: str = ''):
        self.scope = scope
        self._symbols: dict[str, object] = {}

    def add(self, name: str, node: object) -> bool:
        """Register a name; False if it is already taken (case-insensitive)"""
        key = name.lower()
        if key in self._symbols:
            return False
        self._symbols[key] = node
        return True

    def get(self, name: str) -> Optional[object]:
        return self._symbols.get(name.lower())

    def __contains__(self, name: str) -> bool:
        return name.lower() in self._symbols

    def __len__(self) -> int:
        return len(self._symbols)
