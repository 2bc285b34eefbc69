"""Symbols, scoped hashmaps of symbols, and symbol tables."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Iterator, Optional

from vslcomp.nodes import CompileError

_HASH_MODULUS = 1 << 64


class DuplicateSymbolError(CompileError):
    """Raised when a name is defined twice in the same scope."""

    def __init__(self, name: str) -> None:
        super().__init__(f"symbol '{name}' already defined")
        self.name = name


class SymbolType(enum.Enum):
    """The kinds of symbol a name can refer to."""

    GLOBAL_VAR = enum.auto()
    GLOBAL_ARRAY = enum.auto()
    FUNCTION = enum.auto()
    PARAMETER = enum.auto()
    LOCAL_VAR = enum.auto()


@dataclass(eq=False)
class Symbol:
    """A named entity, and the syntax tree node that defined it.

    Functions carry their own symbol table; parameters and local
    variables point at the table of the function they belong to.
    """

    name: str
    type: SymbolType
    node: Any = None
    sequence_number: int = 0
    function_symtable: Optional[SymbolTable] = None


def hash_string(string: str) -> int:
    """Return the 64-bit hash used to place names in buckets."""
    value = 31
    for byte in string.encode("utf-8"):
        signed = byte - 256 if byte > 127 else byte
        value = (value * 257 + signed) % _HASH_MODULUS
    return value


class SymbolHashmap:
    """An open-addressing map from names to symbols for one scope.

    Lookups that miss fall through to the backup map, if any.
    """

    def __init__(self, backup: Optional[SymbolHashmap] = None) -> None:
        self._buckets: list[Optional[Symbol]] = []
        self._entries = 0
        self.backup = backup

    def __len__(self) -> int:
        return self._entries

    def _resize(self, capacity: int) -> None:
        old = self._buckets
        self._buckets = [None] * capacity
        self._entries = 0
        for symbol in old:
            if symbol is not None:
                self._place(symbol)

    def _place(self, symbol: Symbol) -> None:
        size = len(self._buckets)
        bucket = hash_string(symbol.name) % size
        while (existing := self._buckets[bucket]) is not None:
            if existing.name == symbol.name:
                raise DuplicateSymbolError(symbol.name)
            bucket = (bucket + 1) % size
        self._buckets[bucket] = symbol
        self._entries += 1

    def insert(self, symbol: Symbol) -> None:
        """Add a symbol to this scope, raising DuplicateSymbolError on a clash."""
        if (self._entries + 1) * 2 > len(self._buckets):
            self._resize(len(self._buckets) * 2 + 8)
        self._place(symbol)

    def _find_here(self, name: str, hashed: int) -> Optional[Symbol]:
        size = len(self._buckets)
        if size == 0:
            return None
        bucket = hashed % size
        while (existing := self._buckets[bucket]) is not None:
            if existing.name == name:
                return existing
            bucket = (bucket + 1) % size
        return None

    def lookup(self, name: str) -> Optional[Symbol]:
        """Find a symbol by name here or along the backup chain; None if absent."""
        hashed = hash_string(name)
        hashmap: Optional[SymbolHashmap] = self
        while hashmap is not None:
            found = hashmap._find_here(name, hashed)
            if found is not None:
                return found
            hashmap = hashmap.backup
        return None


class SymbolTable:
    """An ordered list of symbols with a scoped hashmap for lookups."""

    def __init__(self) -> None:
        self._symbols: list[Symbol] = []
        self.hashmap = SymbolHashmap()

    def insert(self, symbol: Symbol) -> None:
        """Add a symbol to the innermost scope and give it its sequence number."""
        self.hashmap.insert(symbol)
        symbol.sequence_number = len(self._symbols)
        self._symbols.append(symbol)

    def push_scope(self) -> None:
        """Open a new innermost scope backed by the current one."""
        self.hashmap = SymbolHashmap(backup=self.hashmap)

    def pop_scope(self) -> None:
        """Close the innermost scope and return to the enclosing one."""
        if self.hashmap.backup is None:
            raise ValueError("no enclosing scope to return to")
        self.hashmap = self.hashmap.backup

    def __iter__(self) -> Iterator[Symbol]:
        return iter(self._symbols)

    def __len__(self) -> int:
        return len(self._symbols)

    def __getitem__(self, index: int) -> Symbol:
        return self._symbols[index]