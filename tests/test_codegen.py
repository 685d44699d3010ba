import pytest

from sscompiler.codegen import CodegenContext, CompileError, type_for
from sscompiler.llvmir import ConstantFP, ConstantInt, DoubleType, IntType, PointerType


def _i32(v):
    return ConstantInt(IntType(32), v)


def _f64(v):
    return ConstantFP(DoubleType(), v)


@pytest.fixture
def ctx():
    return CodegenContext("top")


@pytest.mark.parametrize(
    "name, expected",
    [
        ("INTEGER", IntType(32)),
        ("REAL", DoubleType()),
        ("STRING", PointerType()),
        ("CHAR", IntType(8)),
        ("BOOLEAN", IntType(1)),
        ("DATE", PointerType()),
    ],
)
def test_type_for_known(name, expected):
    assert type_for(name) == expected


def test_type_for_unknown():
    with pytest.raises(CompileError):
        type_for("COMPLEX")


def test_initial_module_has_main(ctx):
    assert ctx.module.get_function("main") is ctx.main_function
    assert ctx.builder.block is ctx.main_function.entry_block()
    assert ctx.main_function.entry_block().name == "entry"
    assert "define i32 @main()" in ctx.render()


def test_add_return(ctx):
    ctx.add_return()
    assert ctx.main_function.entry_block().terminator is not None
    assert "ret i32 0" in ctx.render()


def test_add_return_without_block(ctx):
    ctx.builder.position_at_end(None)
    with pytest.raises(CompileError):
        ctx.add_return()


def test_printf_declared_once(ctx):
    ctx.printf("%d\n", _i32(5))
    ctx.printf("%d\n", _i32(6))
    printf = ctx.module.get_function("printf")
    assert printf.function_type.var_arg is True
    assert printf.is_declaration
    calls = [i for i in ctx.main_function.entry_block() if i.opcode == "call"]
    assert len(calls) == 2
    assert "@printf" in ctx.render()


@pytest.mark.parametrize(
    "op, opcode, name",
    [("+", "add", "addtmp"), ("-", "sub", "subtmp"), ("*", "mul", "multmp"), ("/", "sdiv", "divtmp")],
)
def test_integer_binary(ctx, op, opcode, name):
    inst = ctx.binary_operation(_i32(7), _i32(2), op)
    assert inst.opcode == opcode
    assert inst.name == name
    assert inst.type == IntType(32)


@pytest.mark.parametrize(
    "op, opcode, name",
    [("+", "fadd", "faddtmp"), ("-", "fsub", "fsubtmp"), ("*", "fmul", "fmultmp"), ("/", "fdiv", "fdivtmp")],
)
def test_float_binary(ctx, op, opcode, name):
    inst = ctx.binary_operation(_f64(1.5), _f64(2.5), op)
    assert inst.opcode == opcode
    assert inst.name == name
    assert inst.type == DoubleType()


def test_increment_and_decrement(ctx):
    inc = ctx.binary_operation(_i32(1), None, "++")
    dec = ctx.binary_operation(_f64(1.0), None, "--")
    assert (inc.opcode, inc.name) == ("add", "increment")
    assert (dec.opcode, dec.name) == ("fsub", "fdecrement")


def test_missing_rhs(ctx):
    with pytest.raises(CompileError, match="Missing right-hand operand"):
        ctx.binary_operation(_i32(1), None, "+")


def test_unsupported_operator(ctx):
    with pytest.raises(CompileError, match="Unsupported or illegal operator"):
        ctx.binary_operation(_i32(1), _i32(2), "%")


@pytest.mark.parametrize(
    "op, predicate, name",
    [("<", "slt", "iless"), (">", "sgt", "igreater"), ("==", "eq", "iequal"),
     ("<=", "sle", "ilessequal"), (">=", "sge", "igreaterequal"), ("!=", "ne", "inotequal")],
)
def test_integer_comparison(ctx, op, predicate, name):
    inst = ctx.comparison(_i32(1), _i32(2), op)
    assert inst.opcode == "icmp"
    assert inst.name == name
    assert inst.type == IntType(1)
    assert f"icmp {predicate} " in inst.render()


@pytest.mark.parametrize(
    "op, predicate, name",
    [("<", "ult", "fless"), (">", "ugt", "fgreater"), ("==", "ueq", "fequal"),
     ("<=", "ule", "flessequal"), (">=", "uge", "fgreaterequal"), ("!=", "une", "fnotequal")],
)
def test_float_comparison(ctx, op, predicate, name):
    inst = ctx.comparison(_f64(1.0), _f64(2.0), op)
    assert inst.opcode == "fcmp"
    assert inst.name == name
    assert f"fcmp {predicate} " in inst.render()


def test_comparison_incompatible(ctx):
    with pytest.raises(CompileError, match="incompatible"):
        ctx.comparison(_i32(1), _f64(1.0), "<")


def test_comparison_illegal_ops(ctx):
    with pytest.raises(CompileError, match="illegal integer"):
        ctx.comparison(_i32(1), _i32(2), "<>")
    with pytest.raises(CompileError, match="illegal floating-point"):
        ctx.comparison(_f64(1.0), _f64(2.0), "<>")


def test_symbols_use_context_builder(ctx):
    ctx.symbols.enter_scope()
    storage = ctx.symbols.create_symbol("x", IntType(32))
    assert ctx.symbols.lookup("x") is storage
    assert storage.block is ctx.main_function.entry_block()