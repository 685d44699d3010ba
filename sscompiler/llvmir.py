"""A small in-memory model of LLVM IR with a builder and a textual printer."""

from __future__ import annotations

import re
import struct
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, Sequence

_PLAIN_NAME = re.compile(r"[-a-zA-Z$._][-a-zA-Z$._0-9]*|[0-9]+")

_ICMP_PREDICATES = frozenset({"eq", "ne", "slt", "sgt", "sle", "sge", "ult", "ugt", "ule", "uge"})
_FCMP_PREDICATES = frozenset(
    {
        "false", "oeq", "ogt", "oge", "olt", "ole", "one", "ord",
        "ueq", "ugt", "uge", "ult", "ule", "une", "uno", "true",
    }
)


def _escape_bytes(data: bytes) -> str:
    return "".join(
        chr(b) if 0x20 <= b < 0x7F and b not in (0x22, 0x5C) else f"\\{b:02X}" for b in data
    )


def _ident(sigil: str, name: str) -> str:
    if _PLAIN_NAME.fullmatch(name):
        return sigil + name
    return f'{sigil}"{_escape_bytes(name.encode("utf-8"))}"'


class _Namespace:
    """Hands out unique names, appending a counter on collision."""

    def __init__(self, separator: str = "") -> None:
        self._taken: set[str] = set()
        self._last = 0
        self._separator = separator

    def claim(self, name: str) -> str:
        candidate = name
        while candidate in self._taken:
            self._last += 1
            candidate = f"{name}{self._separator}{self._last}"
        self._taken.add(candidate)
        return candidate

    def release(self, name: str) -> None:
        self._taken.discard(name)


# --- Types ---------------------------------------------------------------


class _Type:
    is_double = False
    is_pointer = False
    is_array = False
    is_void = False
    is_function = False

    def is_integer(self, bits: int | None = None) -> bool:
        return False

    @property
    def is_floating_point(self) -> bool:
        return self.is_double

    @property
    def type_id(self) -> type:
        """The kind of type; integers of every width share one kind."""
        return type(self)


@dataclass(frozen=True)
class IntType(_Type):
    bits: int

    def is_integer(self, bits: int | None = None) -> bool:
        return bits is None or bits == self.bits

    def __str__(self) -> str:
        return f"i{self.bits}"


@dataclass(frozen=True)
class DoubleType(_Type):
    is_double = True

    def __str__(self) -> str:
        return "double"


@dataclass(frozen=True)
class VoidType(_Type):
    is_void = True

    def __str__(self) -> str:
        return "void"


@dataclass(frozen=True)
class PointerType(_Type):
    address_space: int = 0
    is_pointer = True

    def __str__(self) -> str:
        return "ptr" if self.address_space == 0 else f"ptr addrspace({self.address_space})"


@dataclass(frozen=True)
class ArrayType(_Type):
    element: _Type
    count: int
    is_array = True

    def __str__(self) -> str:
        return f"[{self.count} x {self.element}]"


@dataclass(frozen=True)
class FunctionType(_Type):
    return_type: _Type
    params: tuple = ()
    var_arg: bool = False
    is_function = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", tuple(self.params))

    def __str__(self) -> str:
        parts = [str(p) for p in self.params]
        if self.var_arg:
            parts.append("...")
        return f"{self.return_type} ({', '.join(parts)})"


# --- Values --------------------------------------------------------------


class Value(ABC):
    """Anything that can be used as an operand."""

    def __init__(self, type: _Type, name: str = "") -> None:
        self.type = type
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    @abstractmethod
    def ref(self) -> str:
        """The operand text of this value."""

    @property
    def typed_ref(self) -> str:
        return f"{self.type} {self.ref}"

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.typed_ref}>"


class ConstantInt(Value):
    def __init__(self, type: IntType, value: int) -> None:
        super().__init__(type)
        bits = type.bits
        wrapped = int(value) & ((1 << bits) - 1)
        if bits > 1 and wrapped >= 1 << (bits - 1):
            wrapped -= 1 << bits
        self.value = wrapped

    @property
    def ref(self) -> str:
        if self.type.bits == 1:
            return "true" if self.value else "false"
        return str(self.value)


class ConstantFP(Value):
    def __init__(self, type: DoubleType, value: float) -> None:
        super().__init__(type)
        self.value = float(value)

    @property
    def ref(self) -> str:
        return "0x" + struct.pack(">d", self.value).hex().upper()


class GlobalVariable(Value):
    """A module-level variable; as an operand it is a pointer."""

    def __init__(self, module: Module, value_type: _Type, initializer, name: str, constant: bool = True) -> None:
        super().__init__(PointerType(), name)
        self.module = module
        self.value_type = value_type
        self.initializer = initializer
        self.constant = constant
        self.linkage = "private"
        self.unnamed_addr = False

    @property
    def ref(self) -> str:
        return _ident("@", self.name)

    def render(self) -> str:
        if isinstance(self.initializer, (bytes, bytearray)):
            init = f'c"{_escape_bytes(bytes(self.initializer))}"'
        elif self.initializer is None:
            init = "zeroinitializer"
        else:
            init = self.initializer.ref
        words = [f"{self.ref} =", self.linkage]
        if self.unnamed_addr:
            words.append("unnamed_addr")
        words.append("constant" if self.constant else "global")
        words.append(f"{self.value_type} {init}")
        return " ".join(words)


class Argument(Value):
    def __init__(self, function: Function, type: _Type, index: int) -> None:
        super().__init__(type)
        self.function = function
        self.index = index

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, new: str) -> None:
        if self._name:
            self.function._locals.release(self._name)
        self._name = self.function._locals.claim(new) if new else ""

    @property
    def ref(self) -> str:
        if self._name:
            return _ident("%", self._name)
        slot = sum(1 for a in self.function.args[: self.index] if not a.name)
        return f"%{slot}"


class Instruction(Value):
    """One instruction; its text is produced when the module is printed."""

    _TERMINATORS = frozenset({"br", "ret"})

    def __init__(
        self,
        type: _Type,
        opcode: str,
        name: str,
        body: Callable[[], str],
        allocated_type: _Type | None = None,
    ) -> None:
        super().__init__(type, name)
        self.opcode = opcode
        self.allocated_type = allocated_type
        self.block: BasicBlock | None = None
        self._body = body

    @property
    def ref(self) -> str:
        return _ident("%", self.name)

    @property
    def is_terminator(self) -> bool:
        return self.opcode in self._TERMINATORS

    def render(self) -> str:
        if self.name:
            return f"{self.ref} = {self._body()}"
        return self._body()


class BasicBlock:
    def __init__(self, function: Function, name: str) -> None:
        self.function = function
        self.name = function._locals.claim(name or "bb")
        self.instructions: list[Instruction] = []
        function.blocks.append(self)

    @property
    def ref(self) -> str:
        return _ident("%", self.name)

    @property
    def terminator(self) -> Instruction | None:
        if self.instructions and self.instructions[-1].is_terminator:
            return self.instructions[-1]
        return None

    def __len__(self) -> int:
        return len(self.instructions)

    def __iter__(self) -> Iterator[Instruction]:
        return iter(self.instructions)

    def render(self) -> str:
        lines = [f"{_ident('', self.name)}:"]
        lines.extend(f"  {inst.render()}" for inst in self.instructions)
        return "\n".join(lines)


class Function(Value):
    def __init__(self, module: Module, name: str, type: FunctionType) -> None:
        super().__init__(PointerType(), module._claim(name))
        self.module = module
        self.function_type = type
        self._locals = _Namespace()
        self.blocks: list[BasicBlock] = []
        self.args = [Argument(self, t, i) for i, t in enumerate(type.params)]
        module.functions[self.name] = self

    @property
    def ref(self) -> str:
        return _ident("@", self.name)

    @property
    def return_type(self) -> _Type:
        return self.function_type.return_type

    @property
    def is_declaration(self) -> bool:
        return not self.blocks

    def append_block(self, name: str = "") -> BasicBlock:
        return BasicBlock(self, name)

    def entry_block(self) -> BasicBlock:
        if not self.blocks:
            raise ValueError(f"function {self.name} has no body")
        return self.blocks[0]

    def render(self) -> str:
        if self.is_declaration:
            params = [str(t) for t in self.function_type.params]
            if self.function_type.var_arg:
                params.append("...")
            return f"declare {self.return_type} {self.ref}({', '.join(params)})"
        params = [a.typed_ref for a in self.args]
        if self.function_type.var_arg:
            params.append("...")
        body = "\n".join(block.render() for block in self.blocks)
        return f"define {self.return_type} {self.ref}({', '.join(params)}) {{\n{body}\n}}"


class Module:
    def __init__(self, name: str) -> None:
        self.name = name
        self.functions: dict[str, Function] = {}
        self.globals: list[GlobalVariable] = []
        self._names = _Namespace(".")
        self._unnamed = 0

    def _claim(self, name: str) -> str:
        if not name:
            name = str(self._unnamed)
            self._unnamed += 1
        return self._names.claim(name)

    def get_function(self, name: str) -> Function | None:
        return self.functions.get(name)

    def get_or_insert_function(self, name: str, type: FunctionType) -> Function:
        existing = self.get_function(name)
        if existing is not None:
            return existing
        return Function(self, name, type)

    def add_global(self, type: _Type, initializer=None, name: str = "", constant: bool = True) -> GlobalVariable:
        """Add a private global of value type ``type``; bytes initialise a char array."""
        gv = GlobalVariable(self, type, initializer, self._claim(name), constant)
        self.globals.append(gv)
        return gv

    def __str__(self) -> str:
        parts = [f"; ModuleID = '{self.name}'\nsource_filename = \"{self.name}\""]
        if self.globals:
            parts.append("\n".join(gv.render() for gv in self.globals))
        parts.extend(f.render() for f in self.functions.values())
        return "\n\n".join(parts) + "\n"


# --- Builder -------------------------------------------------------------


class IRBuilder:
    """Appends instructions at the end of the current block."""

    def __init__(self) -> None:
        self.block: BasicBlock | None = None

    def position_at_end(self, block: BasicBlock | None) -> None:
        self.block = block

    @property
    def function(self) -> Function | None:
        return self.block.function if self.block else None

    @property
    def module(self) -> Module | None:
        return self.block.function.module if self.block else None

    def _require_block(self) -> BasicBlock:
        if self.block is None:
            raise RuntimeError("no insertion point set")
        return self.block

    def _insert(self, type: _Type, opcode: str, body: Callable[[], str], name: str = "",
                allocated_type: _Type | None = None) -> Instruction:
        block = self._require_block()
        result_name = "" if type.is_void else block.function._locals.claim(name or "tmp")
        inst = Instruction(type, opcode, result_name, body, allocated_type)
        inst.block = block
        block.instructions.append(inst)
        return inst

    def alloca(self, type: _Type, name: str = "") -> Instruction:
        return self._insert(PointerType(), "alloca", lambda: f"alloca {type}", name, allocated_type=type)

    def load(self, type: _Type, ptr: Value, name: str = "") -> Instruction:
        return self._insert(type, "load", lambda: f"load {type}, {ptr.typed_ref}", name)

    def store(self, value: Value, ptr: Value) -> Instruction:
        return self._insert(VoidType(), "store", lambda: f"store {value.typed_ref}, {ptr.typed_ref}")

    def _binary(self, opcode: str, lhs: Value, rhs: Value, name: str) -> Instruction:
        return self._insert(lhs.type, opcode, lambda: f"{opcode} {lhs.typed_ref}, {rhs.ref}", name)

    def add(self, lhs: Value, rhs: Value, name: str = "") -> Instruction:
        return self._binary("add", lhs, rhs, name)

    def sub(self, lhs: Value, rhs: Value, name: str = "") -> Instruction:
        return self._binary("sub", lhs, rhs, name)

    def mul(self, lhs: Value, rhs: Value, name: str = "") -> Instruction:
        return self._binary("mul", lhs, rhs, name)

    def sdiv(self, lhs: Value, rhs: Value, name: str = "") -> Instruction:
        return self._binary("sdiv", lhs, rhs, name)

    def fadd(self, lhs: Value, rhs: Value, name: str = "") -> Instruction:
        return self._binary("fadd", lhs, rhs, name)

    def fsub(self, lhs: Value, rhs: Value, name: str = "") -> Instruction:
        return self._binary("fsub", lhs, rhs, name)

    def fmul(self, lhs: Value, rhs: Value, name: str = "") -> Instruction:
        return self._binary("fmul", lhs, rhs, name)

    def fdiv(self, lhs: Value, rhs: Value, name: str = "") -> Instruction:
        return self._binary("fdiv", lhs, rhs, name)

    def neg(self, value: Value, name: str = "") -> Instruction:
        return self._binary("sub", ConstantInt(value.type, 0), value, name)

    def fneg(self, value: Value, name: str = "") -> Instruction:
        return self._insert(value.type, "fneg", lambda: f"fneg {value.typed_ref}", name)

    def not_(self, value: Value, name: str = "") -> Instruction:
        return self._binary("xor", value, ConstantInt(value.type, -1), name)

    def and_(self, lhs: Value, rhs: Value, name: str = "") -> Instruction:
        return self._binary("and", lhs, rhs, name)

    def or_(self, lhs: Value, rhs: Value, name: str = "") -> Instruction:
        return self._binary("or", lhs, rhs, name)

    def icmp(self, predicate: str, lhs: Value, rhs: Value, name: str = "") -> Instruction:
        if predicate not in _ICMP_PREDICATES:
            raise ValueError(f"unknown integer predicate: {predicate}")
        return self._insert(IntType(1), "icmp",
                            lambda: f"icmp {predicate} {lhs.typed_ref}, {rhs.ref}", name)

    def fcmp(self, predicate: str, lhs: Value, rhs: Value, name: str = "") -> Instruction:
        if predicate not in _FCMP_PREDICATES:
            raise ValueError(f"unknown floating-point predicate: {predicate}")
        return self._insert(IntType(1), "fcmp",
                            lambda: f"fcmp {predicate} {lhs.typed_ref}, {rhs.ref}", name)

    def gep(self, type: _Type, ptr: Value, indices: Iterable[Value], name: str = "") -> Instruction:
        index_list = tuple(indices)
        return self._insert(
            PointerType(), "getelementptr",
            lambda: f"getelementptr {type}, {ptr.typed_ref}, " + ", ".join(i.typed_ref for i in index_list),
            name,
        )

    def br(self, target: BasicBlock) -> Instruction:
        return self._insert(VoidType(), "br", lambda: f"br label {target.ref}")

    def cond_br(self, cond: Value, then_block: BasicBlock, else_block: BasicBlock) -> Instruction:
        return self._insert(
            VoidType(), "br",
            lambda: f"br {cond.typed_ref}, label {then_block.ref}, label {else_block.ref}",
        )

    def ret(self, value: Value) -> Instruction:
        return self._insert(VoidType(), "ret", lambda: f"ret {value.typed_ref}")

    def ret_void(self) -> Instruction:
        return self._insert(VoidType(), "ret", lambda: "ret void")

    def call(self, callee: Function, args: Sequence[Value] = (), name: str = "") -> Instruction:
        arg_list = tuple(args)
        ftype = callee.function_type
        shown = str(ftype) if ftype.var_arg else str(ftype.return_type)
        return self._insert(
            ftype.return_type, "call",
            lambda: f"call {shown} {callee.ref}(" + ", ".join(a.typed_ref for a in arg_list) + ")",
            name,
        )

    def global_string_ptr(self, text: str, name: str = "") -> GlobalVariable:
        """Create a private null-terminated string constant and return it."""
        module = self._require_block().function.module
        data = text.encode("utf-8") + b"\0"
        gv = module.add_global(ArrayType(IntType(8), len(data)), data, name, True)
        gv.unnamed_addr = True
        return gv