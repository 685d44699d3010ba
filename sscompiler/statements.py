"""Syntax-tree nodes for statement blocks, control flow, routines and calls."""

from __future__ import annotations

from dataclasses import dataclass, field

from .codegen import CodegenContext, CompileError, type_for
from .expressions import Assignment, Comparison, Identifier, Node, TypeNode
from .llvmir import ConstantInt, Function, FunctionType, IntType, Value, VoidType


def _current_function(ctx: CodegenContext) -> Function:
    if ctx.builder.block is None:
        raise CompileError("no insertion point set")
    return ctx.builder.block.function


def _emit_all(ctx: CodegenContext, statements) -> None:
    for statement in statements:
        if statement is not None:
            statement.codegen(ctx)


@dataclass(eq=False)
class StatementBlock(Node):
    statements: list = field(default_factory=list)

    def codegen(self, ctx: CodegenContext) -> Value | None:
        """Emit every statement in order; return the value of the last one."""
        last = None
        for statement in self.statements:
            if statement is not None:
                last = statement.codegen(ctx)
        return last


@dataclass(eq=False)
class If(Node):
    condition: Comparison
    then_block: StatementBlock
    else_block: StatementBlock | None = None

    def codegen(self, ctx: CodegenContext) -> None:
        ctx.symbols.enter_scope()
        cond = self.condition.codegen(ctx)
        function = _current_function(ctx)
        then_bb = function.append_block("if.then")
        else_bb = function.append_block("if.else")
        merge_bb = function.append_block("if.end")
        builder = ctx.builder
        builder.cond_br(cond, then_bb, else_bb)

        builder.position_at_end(then_bb)
        self.then_block.codegen(ctx)
        builder.br(merge_bb)

        builder.position_at_end(else_bb)
        if self.else_block is not None:
            self.else_block.codegen(ctx)
        builder.br(merge_bb)

        builder.position_at_end(merge_bb)
        ctx.symbols.exit_scope()
        return None


@dataclass(eq=False)
class For(Node):
    assignment: Assignment | None
    condition: Comparison
    step: Assignment
    for_block: StatementBlock

    def codegen(self, ctx: CodegenContext) -> None:
        ctx.symbols.enter_scope()
        function = _current_function(ctx)
        cond_bb = function.append_block("for.cond")
        loop_bb = function.append_block("for.body")
        after_bb = function.append_block("for.end")
        builder = ctx.builder

        if self.assignment is not None:
            self.assignment.codegen(ctx)
        builder.br(cond_bb)

        builder.position_at_end(cond_bb)
        cond = self.condition.codegen(ctx)
        builder.cond_br(cond, loop_bb, after_bb)

        builder.position_at_end(loop_bb)
        self.for_block.codegen(ctx)
        self.step.codegen(ctx)
        builder.br(cond_bb)

        builder.position_at_end(after_bb)
        ctx.symbols.exit_scope()
        return None


@dataclass(eq=False)
class While(Node):
    condition: Comparison
    body: list = field(default_factory=list)

    def codegen(self, ctx: CodegenContext) -> None:
        function = _current_function(ctx)
        cond_bb = function.append_block("while.cond")
        body_bb = function.append_block("while.body")
        end_bb = function.append_block("while.end")
        builder = ctx.builder

        builder.br(cond_bb)
        builder.position_at_end(cond_bb)
        cond = self.condition.codegen(ctx)
        builder.cond_br(cond, body_bb, end_bb)

        builder.position_at_end(body_bb)
        _emit_all(ctx, self.body)
        builder.br(cond_bb)

        builder.position_at_end(end_bb)
        return None


@dataclass(eq=False)
class Repeat(Node):
    condition: Comparison
    body: list = field(default_factory=list)

    def codegen(self, ctx: CodegenContext) -> None:
        ctx.symbols.enter_scope()
        function = _current_function(ctx)
        body_bb = function.append_block("repeat.body")
        cond_bb = function.append_block("repeat.cond")
        end_bb = function.append_block("repeat.end")
        builder = ctx.builder

        builder.br(body_bb)
        builder.position_at_end(body_bb)
        _emit_all(ctx, self.body)
        builder.br(cond_bb)

        builder.position_at_end(cond_bb)
        cond = self.condition.codegen(ctx)
        cond = builder.icmp("eq", cond, ConstantInt(IntType(1), 0), "repeat_cond")
        builder.cond_br(cond, end_bb, body_bb)

        builder.position_at_end(end_bb)
        ctx.symbols.exit_scope()
        return None


@dataclass(eq=False)
class Parameter(Node):
    type: TypeNode
    name: str

    def codegen(self, ctx: CodegenContext) -> None:
        return None


def _define_routine(ctx: CodegenContext, name: str, parameters, return_type) -> Function:
    """Create the function, open its entry block and spill parameters to locals."""
    param_types = tuple(type_for(p.type.type) for p in parameters)
    function = Function(ctx.module, name, FunctionType(return_type, param_types))
    entry = function.append_block("entry")
    ctx.builder.position_at_end(entry)
    for param, arg in zip(parameters, function.args):
        arg.name = param.name
        var_type = type_for(param.type.type)
        storage = ctx.builder.alloca(var_type, param.name)
        ctx.builder.store(arg, storage)
        ctx.symbols.set_symbol(param.name, storage, var_type)
    return function


@dataclass(eq=False)
class Procedure(Node):
    identifier: Identifier
    parameters: list = field(default_factory=list)
    statements_block: StatementBlock = field(default_factory=StatementBlock)

    def codegen(self, ctx: CodegenContext) -> Function:
        ctx.symbols.enter_scope()
        previous = ctx.builder.block
        function = _define_routine(ctx, self.identifier.name, self.parameters, VoidType())
        self.statements_block.codegen(ctx)
        ctx.builder.ret_void()
        ctx.symbols.exit_scope()
        ctx.builder.position_at_end(previous)
        return function


@dataclass(eq=False)
class Func(Node):
    identifier: Identifier
    parameters: list
    statements_block: StatementBlock
    return_type: TypeNode

    def codegen(self, ctx: CodegenContext) -> Function:
        ctx.symbols.enter_scope()
        previous = ctx.builder.block
        function = _define_routine(
            ctx, self.identifier.name, self.parameters, type_for(self.return_type.type)
        )
        self.statements_block.codegen(ctx)
        ctx.symbols.exit_scope()
        ctx.builder.position_at_end(previous)
        return function


@dataclass(eq=False)
class Return(Node):
    expression: Node

    def codegen(self, ctx: CodegenContext) -> Value:
        value = self.expression.codegen(ctx)
        if value is None:
            raise CompileError("return expression produced no value")
        ctx.builder.ret(value)
        return value


@dataclass(eq=False)
class FuncCall(Node):
    name: str
    arguments: list = field(default_factory=list)

    def codegen(self, ctx: CodegenContext) -> Value:
        callee = ctx.module.get_function(self.name)
        if callee is None:
            raise CompileError(f"Unknown function: {self.name}")
        if len(callee.args) != len(self.arguments):
            raise CompileError(
                f"Function {self.name} called with incorrect number of arguments"
            )
        values: list[Value] = []
        for position, (argument, param) in enumerate(zip(self.arguments, callee.args)):
            value = argument.codegen(ctx)
            if value is None:
                raise CompileError(f"argument {position} of function {self.name} produced no value")
            if value.type != param.type:
                raise CompileError(
                    f"Type mismatch in argument {position} of function {self.name}"
                )
            values.append(value)
        return ctx.builder.call(callee, values)