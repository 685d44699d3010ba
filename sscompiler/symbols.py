"""Scoped symbol table mapping names to storage and types."""

from __future__ import annotations

from dataclasses import dataclass

from .llvmir import ArrayType, ConstantInt, IntType, IRBuilder, Value


@dataclass
class SymbolEntry:
    value: Value
    type: object
    is_array: bool = False
    start_index: int = -1
    end_index: int = -1


class SymbolTable:
    """A stack of scopes; lookups search from the innermost scope outwards."""

    def __init__(self, builder: IRBuilder) -> None:
        self._builder = builder
        self._scopes: list[dict[str, SymbolEntry]] = []

    def __len__(self) -> int:
        return len(self._scopes)

    def enter_scope(self) -> None:
        self._scopes.append({})

    def exit_scope(self) -> None:
        if self._scopes:
            self._scopes.pop()

    def _find(self, name: str) -> SymbolEntry | None:
        for scope in reversed(self._scopes):
            if name in scope:
                return scope[name]
        return None

    def lookup(self, name: str, index: Value | None = None) -> Value | None:
        """Return the symbol's storage, or a pointer to an element when ``index`` is given.

        Indexing a symbol that is not an array gives None, as does an unknown name.
        """
        entry = self._find(name)
        if entry is None:
            return None
        if index is None:
            return entry.value
        if not entry.is_array:
            return None
        i32 = IntType(32)
        if entry.start_index != 0:
            index = self._builder.sub(index, ConstantInt(i32, entry.start_index), f"{name}_adjusted_index")
        return self._builder.gep(entry.type, entry.value, [ConstantInt(i32, 0), index])

    def symbol_type(self, name: str):
        entry = self._find(name)
        return entry.type if entry is not None else None

    def set_symbol(self, name: str, value: Value, type, is_array: bool = False,
                   start_index: int = -1, end_index: int = -1) -> None:
        """Bind ``name`` in the innermost scope; does nothing when no scope is open."""
        if self._scopes:
            self._scopes[-1][name] = SymbolEntry(value, type, is_array, start_index, end_index)

    def create_symbol(self, name: str, type, is_array: bool = False,
                      start_index: int = -1, end_index: int = -1) -> Value | None:
        """Allocate storage for a new symbol; None if the innermost scope already has it."""
        if not self._scopes:
            raise RuntimeError(f"no scope open to create symbol {name}")
        if name in self._scopes[-1]:
            return None
        alloc_type = ArrayType(type, end_index - start_index + 1) if is_array else type
        storage = self._builder.alloca(alloc_type, name)
        self._scopes[-1][name] = SymbolEntry(storage, alloc_type, is_array, start_index, end_index)
        return storage