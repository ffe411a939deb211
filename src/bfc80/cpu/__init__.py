"""
bfc80 CPU Package
=================

Target definitions shared by the compiler, the disassembler and the
emulator.

Modules:
    z80: The emitted Z80 instruction subset (opcodes, sizes, timings).
    cpm: CP/M 2.2 addresses and BDOS function numbers.

Usage:
    from bfc80.cpu import Opcode, OPCODE_TABLE, LOAD_BASE
"""

from bfc80.cpu.z80 import (
    OperandType,
    Opcode,
    InstructionInfo,
    OPCODE_TABLE,
    get_instruction_info,
    instruction_size,
)
from bfc80.cpu.cpm import (
    LOAD_BASE,
    WARM_BOOT,
    BDOS_ENTRY,
    CONSOLE_INPUT,
    CONSOLE_OUTPUT,
    ADDRESS_SPACE,
    CR,
    LF,
    DEFAULT_MEMORY_SIZE,
)

__all__ = [
    "OperandType",
    "Opcode",
    "InstructionInfo",
    "OPCODE_TABLE",
    "get_instruction_info",
    "instruction_size",
    "LOAD_BASE",
    "WARM_BOOT",
    "BDOS_ENTRY",
    "CONSOLE_INPUT",
    "CONSOLE_OUTPUT",
    "ADDRESS_SPACE",
    "CR",
    "LF",
    "DEFAULT_MEMORY_SIZE",
]
