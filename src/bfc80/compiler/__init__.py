"""
bfc80 Compiler Package
======================

Single-pass Brainfuck to Z80/CP/M native code generator.

Components, leaf-first:
    emitter:    ByteEmitter - growable append/patch output buffer
    templates:  InstructionTemplates - code for each Brainfuck construct
    stack:      BranchTargetStack - open-loop offsets for backpatching
    tokenizer:  SourceCursor, Tokenizer - command filtering and run folding
    assembler:  ImageAssembler - preamble, dispatch, postamble, size patch
    compiler:   BrainfuckCompiler - file-level front end

Usage:
    >>> from bfc80.compiler import BrainfuckCompiler
    >>> image = BrainfuckCompiler().compile_source("+++.")
    >>> image.cell_base
    303
"""

from bfc80.compiler.emitter import ByteEmitter, DEFAULT_GROWTH_INCREMENT
from bfc80.compiler.stack import BranchTargetStack, DEFAULT_STACK_DEPTH
from bfc80.compiler.tokenizer import (
    CommandKind,
    RunGroup,
    SourceCursor,
    Tokenizer,
)
from bfc80.compiler.templates import (
    InstructionTemplates,
    LOOP_EXIT_OPERAND,
    SHORT_POINTER_LIMIT,
)
from bfc80.compiler.options import CompilerOptions
from bfc80.compiler.assembler import (
    AssemblerState,
    CompileStats,
    CompiledImage,
    ImageAssembler,
    CELL_POINTER_FIELDS,
    PREAMBLE_SIZE,
    POSTAMBLE_SIZE,
)
from bfc80.compiler.compiler import BrainfuckCompiler, compile_bf

__all__ = [
    "ByteEmitter",
    "DEFAULT_GROWTH_INCREMENT",
    "BranchTargetStack",
    "DEFAULT_STACK_DEPTH",
    "CommandKind",
    "RunGroup",
    "SourceCursor",
    "Tokenizer",
    "InstructionTemplates",
    "LOOP_EXIT_OPERAND",
    "SHORT_POINTER_LIMIT",
    "CompilerOptions",
    "AssemblerState",
    "CompileStats",
    "CompiledImage",
    "ImageAssembler",
    "CELL_POINTER_FIELDS",
    "PREAMBLE_SIZE",
    "POSTAMBLE_SIZE",
    "BrainfuckCompiler",
    "compile_bf",
]
