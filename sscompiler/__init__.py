"""Build LLVM IR text from SSC syntax trees: IR model, symbol table, code generation context and tree nodes."""

__version__ = "0.1.0"

__all__ = ["codegen", "expressions", "llvmir", "statements", "symbols"]