"""
bfc80 - Brainfuck Native Compiler for CP/M
==========================================

This package compiles Brainfuck programs straight to Z80 machine code
packaged as CP/M .COM files. There is no assembler and no linker: every
command maps to a short instruction sequence emitted in source order, and
the output file is the final loadable binary.

Generated programs keep the cell pointer in HL, clear 30000 cells that
start right after the code, and talk to the console through BDOS
functions 1 and 2.

Main Components
---------------
- **compiler**: tokenizer, code templates and image assembler (bfc)
- **emulator**: Z80 subset and CP/M console emulation (bfcrun)
- **disassembler**: listings of generated code
- **cpu**: instruction set and CP/M runtime constants

Quick Start
-----------
Compile a program:
    >>> from bfc80 import BrainfuckCompiler
    >>> compiler = BrainfuckCompiler()
    >>> image = compiler.compile_file("hello.b")
    >>> compiler.write_com(image, "HELLO.COM")

Run it without a CP/M machine:
    >>> from bfc80 import run_image
    >>> print(run_image(image.code).text)

Or use the command-line tools:
    $ bfc hello.b
    $ bfcrun HELLO.COM

Reference Documentation
-----------------------
- CP/M 2.2 Operating System Manual (BDOS calls)
- Zilog Z80 CPU User Manual

Version History
---------------
1.0.0 - Initial release with compiler, listing and CP/M emulator
"""

__version__ = "1.0.0"
__author__ = "Hugo José Pinto & Contributors"

# =============================================================================
# Public API Exports
# =============================================================================

from bfc80.compiler import (
    BrainfuckCompiler,
    CompilerOptions,
    CompiledImage,
    CompileStats,
    compile_bf,
)
from bfc80.errors import (
    Bfc80Error,
    SourceLocation,
    CompilerError,
    LoopNestingError,
    UnmatchedLoopEndError,
    UnclosedLoopError,
    ImageTooLargeError,
    OutputError,
    ImageWriteError,
    ListingWriteError,
    EmulatorError,
    UnsupportedOpcodeError,
    InputExhaustedError,
    ExecutionLimitError,
)
from bfc80.emulator import CPMMachine, RunResult, ExitReason, run_image
from bfc80.disassembler import Z80Disassembler

__all__ = [
    # Version info
    "__version__",
    "__author__",
    # Compiler
    "BrainfuckCompiler",
    "CompilerOptions",
    "CompiledImage",
    "CompileStats",
    "compile_bf",
    # Exception hierarchy
    "Bfc80Error",
    "SourceLocation",
    "CompilerError",
    "LoopNestingError",
    "UnmatchedLoopEndError",
    "UnclosedLoopError",
    "ImageTooLargeError",
    "OutputError",
    "ImageWriteError",
    "ListingWriteError",
    "EmulatorError",
    "UnsupportedOpcodeError",
    "InputExhaustedError",
    "ExecutionLimitError",
    # Emulator
    "CPMMachine",
    "RunResult",
    "ExitReason",
    "run_image",
    # Disassembler
    "Z80Disassembler",
]
