import pytest

from sscompiler.llvmir import (
    ArrayType,
    ConstantInt,
    Function,
    FunctionType,
    IntType,
    IRBuilder,
    Module,
)
from sscompiler.symbols import SymbolEntry, SymbolTable


@pytest.fixture
def env():
    module = Module("top")
    main = Function(module, "main", FunctionType(IntType(32)))
    builder = IRBuilder()
    block = main.append_block("entry")
    builder.position_at_end(block)
    return builder, block, SymbolTable(builder)


def test_set_without_scope_is_ignored(env):
    builder, _, table = env
    slot = builder.alloca(IntType(32), "x")
    table.set_symbol("x", slot, IntType(32))
    assert table.lookup("x") is None
    assert table.symbol_type("x") is None
    assert len(table) == 0


def test_lookup_and_type_in_scope(env):
    builder, _, table = env
    table.enter_scope()
    slot = builder.alloca(IntType(32), "x")
    table.set_symbol("x", slot, IntType(32))
    assert table.lookup("x") is slot
    assert table.symbol_type("x") == IntType(32)
    assert table.lookup("y") is None


def test_inner_scope_shadows_and_exit_restores(env):
    builder, _, table = env
    table.enter_scope()
    outer = builder.alloca(IntType(32), "x")
    table.set_symbol("x", outer, IntType(32))
    table.enter_scope()
    inner = builder.alloca(IntType(8), "x")
    table.set_symbol("x", inner, IntType(8))
    assert table.lookup("x") is inner
    assert table.symbol_type("x") == IntType(8)
    table.exit_scope()
    assert table.lookup("x") is outer
    assert table.symbol_type("x") == IntType(32)


def test_exit_scope_on_empty_table(env):
    _, _, table = env
    table.exit_scope()
    assert len(table) == 0


def test_indexing_non_array_gives_none(env):
    builder, _, table = env
    table.enter_scope()
    slot = builder.alloca(IntType(32), "x")
    table.set_symbol("x", slot, IntType(32))
    assert table.lookup("x", ConstantInt(IntType(32), 0)) is None


def test_array_lookup_from_zero_uses_gep_only(env):
    builder, block, table = env
    table.enter_scope()
    arr_type = ArrayType(IntType(32), 4)
    arr = builder.alloca(arr_type, "arr")
    table.set_symbol("arr", arr, arr_type, True, 0, 3)
    before = len(block)
    ptr = table.lookup("arr", ConstantInt(IntType(32), 2))
    assert ptr.opcode == "getelementptr"
    assert len(block) == before + 1
    assert block.instructions[-1] is ptr


def test_array_lookup_adjusts_start_index(env):
    builder, block, table = env
    table.enter_scope()
    arr_type = ArrayType(IntType(32), 4)
    arr = builder.alloca(arr_type, "arr")
    table.set_symbol("arr", arr, arr_type, True, 1, 3)
    before = len(block)
    ptr = table.lookup("arr", ConstantInt(IntType(32), 2))
    adjust = block.instructions[before]
    assert adjust.opcode == "sub"
    assert adjust.name.startswith("arr_adjusted_index")
    assert block.instructions[-1] is ptr
    assert ptr.opcode == "getelementptr"


def test_create_symbol_and_duplicates(env):
    _, _, table = env
    table.enter_scope()
    slot = table.create_symbol("count", IntType(32))
    assert slot.opcode == "alloca"
    assert slot.allocated_type == IntType(32)
    assert table.lookup("count") is slot
    assert table.create_symbol("count", IntType(32)) is None


def test_create_array_symbol(env):
    _, _, table = env
    table.enter_scope()
    slot = table.create_symbol("data", IntType(32), True, 0, 4)
    assert slot.allocated_type == ArrayType(IntType(32), 5)
    assert table.symbol_type("data") == slot.allocated_type


def test_create_symbol_without_scope_raises(env):
    _, block, table = env
    with pytest.raises(RuntimeError):
        table.create_symbol("x", IntType(32))
    assert len(block) == 0


def test_symbol_entry_defaults():
    entry = SymbolEntry(ConstantInt(IntType(32), 0), IntType(32))
    assert entry.is_array is False
    assert entry.start_index == -1
    assert entry.end_index == -1