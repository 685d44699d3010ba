# sscompiler

`sscompiler` turns syntax trees of SSC into textual LLVM IR. SSC is a small
pseudocode language with typed variables, arrays, `OUTPUT`/`INPUT`, `IF`,
`FOR`, `WHILE`, `REPEAT`, procedures and functions.

The package depends only on the standard library. It builds the IR text
itself, so LLVM does not need to be installed.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Layout

- `sscompiler.llvmir`: a small in-memory IR model that prints as LLVM
  assembly. It has:
  - types: `IntType`, `DoubleType`, `VoidType`, `PointerType`,
    `ArrayType`, `FunctionType`;
  - values: `ConstantInt`, `ConstantFP`, `GlobalVariable`, `Argument`,
    `Instruction`;
  - `BasicBlock`, `Function` and `Module`;
  - an `IRBuilder` that appends instructions at the end of the current block.

  `str(module)` gives the module text.
- `sscompiler.symbols`: `SymbolTable`, a stack of scopes that maps names to
  a `SymbolEntry` (storage, type, array bounds).
  - `lookup(name, index)` with an index adjusts for the array's start index
    and emits a `getelementptr`.
  - `set_symbol` does nothing when no scope is open.
- `sscompiler.codegen`: `CodegenContext` and `CompileError`.
  - `CodegenContext` holds the module, the builder, a `main` function with
    its entry block, and the symbol table.
  - It provides `binary_operation`, `comparison`, `printf`, `add_return`
    (`ret i32 0`) and `render`.
  - `type_for` maps the type names `INTEGER`, `REAL`, `STRING`, `CHAR`,
    `BOOLEAN` and `DATE` to IR types.
- `sscompiler.expressions`: the `Node` base class, `TypeNode`, the literals,
  `Identifier`, `Declaration`, `ArrayDeclaration`, `Assignment`,
  `ArrayAssignment`, `ArrayAccess`, `Output` (via `printf`), `Input` (via
  `scanf`), `BinaryOp`, `UnaryOp`, `Comparison` and `LogicalOp`
  (`AND`, `OR`, `NOT`).
- `sscompiler.statements`: `StatementBlock`, `If`, `For`, `While`,
  `Repeat`, `Parameter`, `Procedure`, `Func`, `Return` and `FuncCall`.

Every node has `codegen(ctx)`, which emits IR into the context and returns
the value it produces, if it produces one.

Programs that cannot be compiled raise `CompileError`. Examples are an
unknown variable or function, a type mismatch in an assignment or call, an
unsupported operator, or an unknown type name.

## Example

```python
from sscompiler.codegen import CodegenContext
from sscompiler.expressions import (
    Assignment, BinaryOp, Declaration, Identifier, IntegerLiteral, Output, TypeNode,
)
from sscompiler.statements import StatementBlock

ctx = CodegenContext("top")
ctx.symbols.enter_scope()
program = StatementBlock([
    Declaration(Identifier("X"), TypeNode("INTEGER")),
    Assignment(Identifier("X"), BinaryOp(IntegerLiteral(2), IntegerLiteral(3), "*")),
    Output([Identifier("X")]),
])
program.codegen(ctx)
ctx.add_return()
print(ctx.render())
```

The example opens a scope first. A new `CodegenContext` has none, and
declarations made outside any scope are not recorded.

The output is a module whose `main` function computes the product, stores it
and passes it to `printf`.

Some nodes do not finish their function on their own:

- `Procedure` ends its body with `ret void`.
- `Func` does not add a return, so its block should contain a `Return`.

## What it does not do

- It has no lexer or parser and no command-line program. Syntax trees are
  built in Python from the node classes.
- It produces IR text only. It does not verify, optimise, assemble or run
  that IR; use the LLVM tools for those steps.