"""
Z80 Disassembler
================

Disassembles the instruction subset emitted by the compiler back into
Zilog mnemonics. It is used for compiler listings and in tests to check
generated code by reading it rather than by comparing raw bytes.

Bytes that do not decode to a known instruction are shown as DB.

Usage:
    disasm = Z80Disassembler()
    for instr in disasm.disassemble(image.code, start_address=0x0100):
        print(instr)

Copyright (c) 2025-2026 Hugo José Pinto & Contributors
"""

from dataclasses import dataclass
from typing import Optional

from bfc80.cpu.cpm import BDOS_ENTRY, WARM_BOOT
from bfc80.cpu.z80 import OperandType, get_instruction_info


# Addresses worth naming in listing comments
KNOWN_ADDRESSES: dict[int, str] = {
    WARM_BOOT: "warm boot",
    BDOS_ENTRY: "BDOS",
}


# =============================================================================
# Data Structures
# =============================================================================

@dataclass
class DisassembledInstruction:
    """
    Represents a single disassembled instruction.

    Attributes:
        address: Memory address of the instruction
        opcode: The opcode byte
        mnemonic: Mnemonic without operands (e.g., "JP"), or "DB"
        text: Full instruction text (e.g., "JP NZ,$0106")
        operand: Decoded operand value (absolute target for relative jumps),
                 None for instructions without one
        size: Instruction size in bytes
        raw_bytes: All bytes comprising this instruction
        comment: Optional comment (e.g., for known addresses)
    """
    address: int
    opcode: int
    mnemonic: str
    text: str
    operand: Optional[int]
    size: int
    raw_bytes: bytes
    comment: str = ""

    def __str__(self) -> str:
        """Format as listing line: ADDRESS: BYTES  TEXT ; COMMENT"""
        hex_bytes = " ".join(f"{b:02X}" for b in self.raw_bytes).ljust(8)
        if self.comment:
            return f"${self.address:04X}: {hex_bytes}  {self.text:<16} ; {self.comment}"
        return f"${self.address:04X}: {hex_bytes}  {self.text}"


# =============================================================================
# Z80 Disassembler
# =============================================================================

class Z80Disassembler:
    """Disassembler for the compiler's Z80 instruction subset."""

    def disassemble_one(
        self, data: bytes, offset: int = 0, address: Optional[int] = None
    ) -> DisassembledInstruction:
        """
        Disassemble the instruction starting at data[offset].

        Args:
            data: Code bytes
            offset: Index of the opcode within data
            address: Runtime address of data[offset] (defaults to offset)
        """
        if address is None:
            address = offset
        opcode = data[offset]
        info = get_instruction_info(opcode)

        if info is None or offset + info.size > len(data):
            return DisassembledInstruction(
                address=address,
                opcode=opcode,
                mnemonic="DB",
                text=f"DB ${opcode:02X}",
                operand=None,
                size=1,
                raw_bytes=bytes([opcode]),
            )

        raw = bytes(data[offset:offset + info.size])
        operand: Optional[int] = None
        comment = ""

        match info.operand_type:
            case OperandType.NONE:
                text = info.template
            case OperandType.IMM8:
                operand = raw[1]
                text = info.template.format(n=f"${operand:02X}")
                if 0x20 <= operand < 0x7F and info.mnemonic == "CP":
                    comment = repr(chr(operand))
            case OperandType.IMM16:
                operand = raw[1] | (raw[2] << 8)
                text = info.template.format(nn=f"${operand:04X}")
                if info.mnemonic in ("JP", "CALL") and operand in KNOWN_ADDRESSES:
                    comment = KNOWN_ADDRESSES[operand]
            case OperandType.REL8:
                displacement = raw[1] - 0x100 if raw[1] & 0x80 else raw[1]
                operand = (address + info.size + displacement) & 0xFFFF
                text = info.template.format(e=f"${operand:04X}")

        return DisassembledInstruction(
            address=address,
            opcode=opcode,
            mnemonic=info.mnemonic,
            text=text,
            operand=operand,
            size=info.size,
            raw_bytes=raw,
            comment=comment,
        )

    def disassemble(
        self,
        data: bytes,
        start_address: int = 0,
        count: Optional[int] = None,
    ) -> list[DisassembledInstruction]:
        """
        Disassemble a block of code.

        Args:
            data: Code bytes, data[0] is at start_address
            start_address: Runtime address of data[0]
            count: Maximum number of instructions (None for all)
        """
        result = []
        offset = 0
        while offset < len(data) and (count is None or len(result) < count):
            instr = self.disassemble_one(data, offset, (start_address + offset) & 0xFFFF)
            result.append(instr)
            offset += instr.size
        return result

    def format(self, data: bytes, start_address: int = 0) -> str:
        """Disassemble a block and return one listing line per instruction."""
        return "\n".join(str(instr) for instr in self.disassemble(data, start_address))
