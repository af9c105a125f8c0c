"""
Compiler package.

This makes the compiler folder an explicit package so both Python and mypy
resolve modules consistently.
"""

from release_inventory.compiler.compiler import (
    CompileOutcome,
    CompilerConfig,
    InventoryCompiler,
    compile_inventory,
)

__all__ = ["CompileOutcome", "CompilerConfig", "InventoryCompiler", "compile_inventory"]
