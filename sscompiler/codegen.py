"""Code generation context: the module under construction and shared IR helpers."""

from __future__ import annotations

from typing import Callable

from .llvmir import (
    ConstantFP,
    ConstantInt,
    DoubleType,
    Function,
    FunctionType,
    IntType,
    IRBuilder,
    Module,
    PointerType,
    Value,
)
from .symbols import SymbolTable


class CompileError(Exception):
    """Raised when the program being compiled cannot be turned into IR."""


_TYPES: dict[str, Callable[[], object]] = {
    "INTEGER": lambda: IntType(32),
    "REAL": lambda: DoubleType(),
    "STRING": lambda: PointerType(),
    "CHAR": lambda: IntType(8),
    "BOOLEAN": lambda: IntType(1),
    "DATE": lambda: PointerType(),
}


def type_for(name: str):
    """Return the IR type used for a source-language type name."""
    try:
        return _TYPES[name]()
    except KeyError:
        raise CompileError(f"unknown type: {name}") from None


_INT_OPS = {
    "+": ("add", "addtmp"),
    "-": ("sub", "subtmp"),
    "*": ("mul", "multmp"),
    "/": ("sdiv", "divtmp"),
}

_FLOAT_OPS = {
    "+": ("fadd", "faddtmp"),
    "-": ("fsub", "fsubtmp"),
    "*": ("fmul", "fmultmp"),
    "/": ("fdiv", "fdivtmp"),
}

_FLOAT_CMP = {
    "<": ("ult", "fless"),
    ">": ("ugt", "fgreater"),
    "==": ("ueq", "fequal"),
    "<=": ("ule", "flessequal"),
    ">=": ("uge", "fgreaterequal"),
    "!=": ("une", "fnotequal"),
}

_INT_CMP = {
    "<": ("slt", "iless"),
    ">": ("sgt", "igreater"),
    "==": ("eq", "iequal"),
    "<=": ("sle", "ilessequal"),
    ">=": ("sge", "igreaterequal"),
    "!=": ("ne", "inotequal"),
}


class CodegenContext:
    """Holds the module, its ``main`` function, the builder and the symbol table."""

    def __init__(self, module_name: str = "top") -> None:
        self.module = Module(module_name)
        self.builder = IRBuilder()
        self.main_function = Function(self.module, "main", FunctionType(IntType(32), ()))
        self.builder.position_at_end(self.main_function.append_block("entry"))
        self.symbols = SymbolTable(self.builder)

    def add_return(self) -> None:
        """Terminate the current block with ``ret i32 0``."""
        if self.builder.block is None:
            raise CompileError("no insertion point set for return instruction")
        self.builder.ret(ConstantInt(IntType(32), 0))

    def render(self) -> str:
        """Return the textual IR of the whole module."""
        return str(self.module)

    def _printf_function(self) -> Function:
        return self.module.get_or_insert_function(
            "printf", FunctionType(IntType(32), (PointerType(),), True)
        )

    def printf(self, fmt: str, value: Value) -> Value:
        """Emit a call to ``printf`` with one argument."""
        printf_func = self._printf_function()
        format_value = self.builder.global_string_ptr(fmt)
        return self.builder.call(printf_func, [format_value, value], "printfCall")

    def binary_operation(self, lhs: Value, rhs: Value | None, op: str) -> Value:
        """Emit an arithmetic instruction; ``++`` and ``--`` need no right operand."""
        if rhs is None and op not in ("++", "--"):
            raise CompileError(f"Missing right-hand operand for binary operator: {op}")
        kind = lhs.type
        builder = self.builder
        if kind.is_integer():
            one = ConstantInt(kind, 1)
            if op == "++":
                return builder.add(lhs, one, "increment")
            if op == "--":
                return builder.sub(lhs, one, "decrement")
            if op in _INT_OPS:
                method, name = _INT_OPS[op]
                return getattr(builder, method)(lhs, rhs, name)
        elif kind.is_floating_point:
            one = ConstantFP(kind, 1.0)
            if op == "++":
                return builder.fadd(lhs, one, "fincrement")
            if op == "--":
                return builder.fsub(lhs, one, "fdecrement")
            if op in _FLOAT_OPS:
                method, name = _FLOAT_OPS[op]
                return getattr(builder, method)(lhs, rhs, name)
        raise CompileError(f"Unsupported or illegal operator: {op}")

    def comparison(self, lhs: Value, rhs: Value, op: str) -> Value:
        """Emit a comparison producing an ``i1``."""
        if lhs.type.is_floating_point and rhs.type.is_floating_point:
            if op not in _FLOAT_CMP:
                raise CompileError("illegal floating-point comparison operation")
            predicate, name = _FLOAT_CMP[op]
            return self.builder.fcmp(predicate, lhs, rhs, name)
        if lhs.type.is_integer() and rhs.type.is_integer():
            if op not in _INT_CMP:
                raise CompileError("illegal integer comparison operation")
            predicate, name = _INT_CMP[op]
            return self.builder.icmp(predicate, lhs, rhs, name)
        raise CompileError("comparison between incompatible types")