"""
Compiler Options
================

Configuration for a translation. Values can come from:
- Default values (defined here)
- Environment variables (CompilerOptions.from_env)
- Command-line flags (bfc)
"""

import os
from dataclasses import dataclass

from bfc80.compiler.emitter import DEFAULT_GROWTH_INCREMENT
from bfc80.compiler.stack import DEFAULT_STACK_DEPTH
from bfc80.cpu.cpm import DEFAULT_MEMORY_SIZE, LOAD_BASE


@dataclass
class CompilerOptions:
    """
    Compiler configuration options.

    Attributes:
        memory_size: Number of cells zeroed by the preamble (1-65535).
                     The cells start right after the generated code.
        stack_depth: Branch-target stack capacity, i.e. the deepest loop
                     nesting that can be compiled.
        growth_increment: Output buffer growth step in bytes.
        allow_unclosed_loops: Accept '[' left open at end of input. The
                     loop's exit jump is left pointing at $0000 (warm
                     boot), which is what older compilers silently did.
        load_base: Address the image is loaded at. CP/M always uses $0100.
    """
    memory_size: int = DEFAULT_MEMORY_SIZE
    stack_depth: int = DEFAULT_STACK_DEPTH
    growth_increment: int = DEFAULT_GROWTH_INCREMENT
    allow_unclosed_loops: bool = False
    load_base: int = LOAD_BASE

    def __post_init__(self):
        if not 1 <= self.memory_size <= 0xFFFF:
            raise ValueError(f"memory size must be 1-65535 cells, got {self.memory_size}")
        if self.stack_depth < 1:
            raise ValueError(f"stack depth must be positive, got {self.stack_depth}")
        if self.growth_increment < 1:
            raise ValueError(
                f"growth increment must be positive, got {self.growth_increment}"
            )
        if not 0 <= self.load_base <= 0xFFFF:
            raise ValueError(f"load base must be a 16-bit address, got {self.load_base}")

    @classmethod
    def from_env(cls) -> "CompilerOptions":
        """
        Create CompilerOptions from environment variables.

        Environment variables (all optional):
            BFC80_MEMORY_SIZE: Cells zeroed by the preamble
            BFC80_STACK_DEPTH: Maximum loop nesting depth
            BFC80_GROWTH_INCREMENT: Output buffer growth step

        Invalid values are ignored and the default is kept.
        """
        options = cls()

        if memory_size := os.environ.get("BFC80_MEMORY_SIZE"):
            try:
                value = int(memory_size, 0)
                if 1 <= value <= 0xFFFF:
                    options.memory_size = value
            except ValueError:
                pass

        if stack_depth := os.environ.get("BFC80_STACK_DEPTH"):
            try:
                value = int(stack_depth, 0)
                if value >= 1:
                    options.stack_depth = value
            except ValueError:
                pass

        if growth := os.environ.get("BFC80_GROWTH_INCREMENT"):
            try:
                value = int(growth, 0)
                if value >= 1:
                    options.growth_increment = value
            except ValueError:
                pass

        return options
