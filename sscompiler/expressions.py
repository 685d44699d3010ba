"""Syntax-tree nodes for types, literals, variables and expressions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from .codegen import CodegenContext, CompileError, type_for
from .llvmir import (
    ArrayType,
    ConstantFP,
    ConstantInt,
    DoubleType,
    FunctionType,
    GlobalVariable,
    Instruction,
    Argument,
    IntType,
    PointerType,
    Value,
)


class Node(ABC):
    """A node of the syntax tree that can emit IR."""

    @abstractmethod
    def codegen(self, ctx: CodegenContext) -> Value | None:
        """Emit IR for this node and return the value it produces, if any."""


def _element_type(array_type):
    return array_type.element if array_type.is_array else array_type


# --- Type ----------------------------------------------------------------


@dataclass(eq=False)
class TypeNode(Node):
    type: str

    def codegen(self, ctx: CodegenContext) -> None:
        return None


# --- Literals ------------------------------------------------------------


@dataclass(eq=False)
class CharLiteral(Node):
    value: str

    def codegen(self, ctx: CodegenContext) -> Value:
        code = self.value if isinstance(self.value, int) else ord(self.value)
        return ConstantInt(IntType(8), code)


def _string_global(ctx: CodegenContext, text: str, name: str) -> GlobalVariable:
    data = text.encode("utf-8") + b"\0"
    return ctx.module.add_global(ArrayType(IntType(8), len(data)), data, name, True)


@dataclass(eq=False)
class StringLiteral(Node):
    value: str

    def codegen(self, ctx: CodegenContext) -> Value:
        return _string_global(ctx, self.value, ".str")


@dataclass(eq=False)
class IntegerLiteral(Node):
    value: int

    def codegen(self, ctx: CodegenContext) -> Value:
        return ConstantInt(IntType(32), self.value)


@dataclass(eq=False)
class RealLiteral(Node):
    value: float

    def codegen(self, ctx: CodegenContext) -> Value:
        return ConstantFP(DoubleType(), self.value)


@dataclass(eq=False)
class DateLiteral(Node):
    value: str

    def codegen(self, ctx: CodegenContext) -> Value:
        return _string_global(ctx, self.value, ".date")


@dataclass(eq=False)
class BooleanLiteral(Node):
    value: bool

    def codegen(self, ctx: CodegenContext) -> Value:
        return ConstantInt(IntType(1), int(bool(self.value)))


# --- Identifiers and assignments ----------------------------------------


@dataclass(eq=False)
class Identifier(Node):
    name: str

    def codegen(self, ctx: CodegenContext) -> Value:
        ptr = ctx.symbols.lookup(self.name)
        if ptr is None:
            raise CompileError(f"Symbol not found for {self.name}")
        if isinstance(ptr, Instruction) and ptr.opcode == "alloca":
            return ctx.builder.load(ptr.allocated_type, ptr, f"loaded_{self.name}")
        if isinstance(ptr, GlobalVariable):
            return ctx.builder.load(ptr.value_type, ptr, f"loaded_{self.name}")
        if isinstance(ptr, Argument):
            return ptr
        raise CompileError(f"Unexpected pointer type for {self.name}")


@dataclass(eq=False)
class Declaration(Node):
    identifier: Identifier
    type: TypeNode

    def codegen(self, ctx: CodegenContext) -> Value:
        var_type = type_for(self.type.type)
        storage = ctx.builder.alloca(var_type, self.identifier.name)
        ctx.symbols.set_symbol(self.identifier.name, storage, var_type)
        return storage


@dataclass(eq=False)
class ArrayDeclaration(Node):
    identifier: Identifier
    type: TypeNode
    first_index: int
    last_index: int

    def codegen(self, ctx: CodegenContext) -> Value:
        array_type = ArrayType(type_for(self.type.type), self.last_index)
        storage = ctx.builder.alloca(array_type, self.identifier.name)
        ctx.symbols.set_symbol(
            self.identifier.name, storage, array_type, True, self.first_index, self.last_index - 1
        )
        return storage


@dataclass(eq=False)
class Assignment(Node):
    identifier: Identifier
    expression: Node
    declared_type: TypeNode | None = None

    def codegen(self, ctx: CodegenContext) -> Value:
        name = self.identifier.name
        ptr = ctx.symbols.lookup(name)
        if ptr is None:
            raise CompileError(f"Unknown variable: {name}")
        var_type = ctx.symbols.symbol_type(name)
        if var_type is None:
            raise CompileError(f"Failed to get type for variable: {name}")
        value = self.expression.codegen(ctx)
        if value is None:
            raise CompileError(f"expression assigned to {name} produced no value")
        if var_type.type_id != value.type.type_id:
            raise CompileError(f"Type mismatch: Cannot assign {value.type} to {var_type}")
        ctx.builder.store(value, ptr)
        return value


@dataclass(eq=False)
class ArrayAssignment(Node):
    identifier: Identifier
    expression: Node
    index: Node

    def codegen(self, ctx: CodegenContext) -> Value:
        name = self.identifier.name
        index_value = self.index.codegen(ctx)
        if index_value is None:
            raise CompileError(f"Failed to generate index for array: {name}")
        element_ptr = ctx.symbols.lookup(name, index_value)
        if element_ptr is None:
            raise CompileError(f"Unknown array or invalid access: {name}")
        value = self.expression.codegen(ctx)
        if value is None:
            raise CompileError(f"expression assigned to {name} produced no value")
        expected = _element_type(ctx.symbols.symbol_type(name))
        if expected.type_id != value.type.type_id:
            raise CompileError(
                f"Type mismatch: Cannot assign {value.type} to element type {expected}"
            )
        ctx.builder.store(value, element_ptr)
        return value


@dataclass(eq=False)
class ArrayAccess(Node):
    identifier: Identifier
    index: Node

    def codegen(self, ctx: CodegenContext) -> Value:
        name = self.identifier.name
        index_value = self.index.codegen(ctx)
        if index_value is None:
            raise CompileError("Invalid index expression")
        element_ptr = ctx.symbols.lookup(name, index_value)
        if element_ptr is None:
            raise CompileError(f"Array access failed: {name}")
        element_type = _element_type(ctx.symbols.symbol_type(name))
        return ctx.builder.load(element_type, element_ptr)


def _ensure_insertion_point(ctx: CodegenContext) -> None:
    if ctx.builder.block is None:
        ctx.builder.position_at_end(ctx.main_function.entry_block())


@dataclass(eq=False)
class Output(Node):
    expressions: list = field(default_factory=list)

    def codegen(self, ctx: CodegenContext) -> Value:
        _ensure_insertion_point(ctx)
        printf_func = ctx.module.get_or_insert_function(
            "printf", FunctionType(IntType(32), (PointerType(),), True)
        )
        fmt = ""
        args: list[Value] = []
        for expression in self.expressions:
            value = expression.codegen(ctx)
            if value is None:
                raise CompileError("output expression produced no value")
            kind = value.type
            if kind.is_integer(32):
                fmt += "%d"
            elif kind.is_double:
                fmt += "%f"
            elif kind.is_integer(8):
                fmt += "%c"
            elif kind.is_pointer:
                fmt += "%s"
            args.append(value)
        with_newline = (fmt + "\n").encode("utf-8") + b"\0"
        ctx.module.add_global(ArrayType(IntType(8), len(with_newline)), with_newline, "", True)
        fmt_ptr = ctx.builder.global_string_ptr(fmt, ".fmt")
        return ctx.builder.call(printf_func, [fmt_ptr, *args])


@dataclass(eq=False)
class Input(Node):
    target: Node

    def codegen(self, ctx: CodegenContext) -> None:
        _ensure_insertion_point(ctx)
        target_ptr = None
        var_type = None
        if isinstance(self.target, Identifier):
            target_ptr = ctx.symbols.lookup(self.target.name)
            var_type = ctx.symbols.symbol_type(self.target.name)
        elif isinstance(self.target, ArrayAccess):
            index_value = self.target.index.codegen(ctx)
            if index_value is None:
                raise CompileError("invalid index expression")
            name = self.target.identifier.name
            target_ptr = ctx.symbols.lookup(name, index_value)
            array_type = ctx.symbols.symbol_type(name)
            var_type = _element_type(array_type) if array_type is not None else None
        if target_ptr is None or var_type is None:
            raise CompileError("invalid target for input")

        if var_type.is_integer(32):
            fmt = "%d"
        elif var_type.is_double:
            fmt = "%lf"
        elif var_type.is_integer(8):
            fmt = " %c"
        elif var_type.is_pointer:
            fmt = "%s"
        else:
            raise CompileError("Unsupported type in input")

        fmt_ptr = ctx.builder.global_string_ptr(fmt, ".fmt")
        scanf_func = ctx.module.get_or_insert_function(
            "scanf", FunctionType(IntType(32), (PointerType(),), True)
        )
        ctx.builder.call(scanf_func, [fmt_ptr, target_ptr])
        return None


# --- Expressions ---------------------------------------------------------


@dataclass(eq=False)
class BinaryOp(Node):
    lhs: Node
    rhs: Node | None
    op: str

    def codegen(self, ctx: CodegenContext) -> Value:
        left = self.lhs.codegen(ctx)
        right = self.rhs.codegen(ctx) if self.rhs is not None else None
        return ctx.binary_operation(left, right, self.op)


@dataclass(eq=False)
class UnaryOp(Node):
    expression: Node
    op: str

    def codegen(self, ctx: CodegenContext) -> Value:
        value = self.expression.codegen(ctx)
        if value is None:
            raise CompileError("unary operand produced no value")
        if self.op == "-":
            if value.type.is_integer():
                return ctx.builder.neg(value, "negtmp")
            if value.type.is_double:
                return ctx.builder.fneg(value, "fnegtmp")
        raise CompileError(f"Unknown unary op: {self.op}")


@dataclass(eq=False)
class Comparison(Node):
    lhs: Node | None
    rhs: Node | None
    op: str

    def codegen(self, ctx: CodegenContext) -> Value:
        left = self.lhs.codegen(ctx)
        right = self.rhs.codegen(ctx)
        return ctx.comparison(left, right, self.op)

    def codegen_single(self, ctx: CodegenContext) -> Value:
        """Compare the left operand against the real constant 0.0."""
        left = self.lhs.codegen(ctx)
        return ctx.comparison(left, ConstantFP(DoubleType(), 0.0), self.op)


def _require_integer(value: Value, op: str) -> None:
    if not value.type.is_integer():
        raise CompileError(f"operand of {op} must be an integer or boolean, not {value.type}")


@dataclass(eq=False)
class LogicalOp(Comparison):
    def codegen(self, ctx: CodegenContext) -> Value:
        builder = ctx.builder
        if self.op == "NOT":
            if self.rhs is None:
                raise CompileError("NOT operation requires a right-hand side operand")
            value = self.rhs.codegen(ctx)
            if value is None:
                raise CompileError("NOT operand produced no value")
            _require_integer(value, self.op)
            if not value.type.is_integer(1):
                value = builder.icmp("eq", value, ConstantInt(value.type, 0), "tobool")
            return builder.not_(value, "nottmp")

        if self.lhs is None or self.rhs is None:
            raise CompileError(f"NULL operand for binary logical operator: {self.op}")
        left = self.lhs.codegen(ctx)
        right = self.rhs.codegen(ctx)
        if left is None or right is None:
            raise CompileError(f"operand of {self.op} produced no value")
        _require_integer(left, self.op)
        _require_integer(right, self.op)
        if not left.type.is_integer(1):
            left = builder.icmp("ne", left, ConstantInt(left.type, 0), "tobool")
        if not right.type.is_integer(1):
            right = builder.icmp("ne", right, ConstantInt(right.type, 0), "tobool")
        if self.op == "AND":
            return builder.and_(left, right, "andtmp")
        if self.op == "OR":
            return builder.or_(left, right, "ortmp")
        raise CompileError(f"Unknown logical operator: {self.op}")