"""
bfc80 Disassembler Module
=========================

Disassembly of generated Z80 code, used for compiler listings.

Usage:
    from bfc80.disassembler import Z80Disassembler

    disasm = Z80Disassembler()
    print(disasm.format(image.code, start_address=0x0100))
"""

from .z80 import Z80Disassembler, DisassembledInstruction

__all__ = [
    "Z80Disassembler",
    "DisassembledInstruction",
]
