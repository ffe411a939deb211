"""
Z80 Instruction Subset Definition
=================================

This module defines the part of the Z80 instruction set that the compiler
emits, with opcodes, operand encodings, sizes and T-state timings. The same
table drives the code templates (via the Opcode names), the disassembler
and the runtime emulator, so the three can never disagree on an encoding.

Except for the two relative jumps (JR NZ, JR Z) every instruction here is
also a valid 8080 instruction; the mnemonics use Zilog syntax throughout.

Operand Encodings
-----------------
1. **NONE**: opcode only (e.g., INC HL -> $23)
2. **IMM8**: one immediate byte (e.g., CP $0A -> $FE $0A)
3. **IMM16**: 16-bit little-endian word (e.g., JP $0100 -> $C3 $00 $01)
4. **REL8**: signed displacement from the next instruction
   (e.g., JR NZ,+9 -> $20 $09)

Reference
---------
- Zilog Z80 CPU User Manual (UM0080)
- Intel 8080 Assembly Language Programming Manual
"""

from dataclasses import dataclass
from enum import Enum, IntEnum, auto
from typing import Optional


# =============================================================================
# Operand Encoding Enumeration
# =============================================================================

class OperandType(Enum):
    """How the bytes following an opcode are interpreted."""
    NONE = auto()
    IMM8 = auto()
    IMM16 = auto()
    REL8 = auto()

    @property
    def size(self) -> int:
        """Number of operand bytes for this encoding."""
        return {
            OperandType.NONE: 0,
            OperandType.IMM8: 1,
            OperandType.IMM16: 2,
            OperandType.REL8: 1,
        }[self]


# =============================================================================
# Opcodes
# =============================================================================

class Opcode(IntEnum):
    """Opcode bytes, named after the instruction they encode."""
    NOP = 0x00
    LD_BC_NN = 0x01         # LD BC,nn
    ADD_HL_BC = 0x09        # ADD HL,BC
    LD_C_N = 0x0E           # LD C,n
    LD_DE_NN = 0x11         # LD DE,nn
    DEC_DE = 0x1B           # DEC DE
    LD_E_N = 0x1E           # LD E,n
    JR_NZ = 0x20            # JR NZ,e
    LD_HL_NN = 0x21         # LD HL,nn
    INC_HL = 0x23           # INC HL
    JR_Z = 0x28             # JR Z,e
    DEC_HL = 0x2B           # DEC HL
    INC_MEM_HL = 0x34       # INC (HL)
    DEC_MEM_HL = 0x35       # DEC (HL)
    LD_MEM_HL_N = 0x36      # LD (HL),n
    LD_E_MEM_HL = 0x5E      # LD E,(HL)
    HALT = 0x76
    LD_MEM_HL_A = 0x77      # LD (HL),A
    LD_A_D = 0x7A           # LD A,D
    LD_A_MEM_HL = 0x7E      # LD A,(HL)
    OR_E = 0xB3             # OR E
    OR_A = 0xB7             # OR A
    JP_NZ = 0xC2            # JP NZ,nn
    JP = 0xC3               # JP nn
    ADD_A_N = 0xC6          # ADD A,n
    RET = 0xC9
    JP_Z = 0xCA             # JP Z,nn
    CALL = 0xCD             # CALL nn
    POP_HL = 0xE1           # POP HL
    PUSH_HL = 0xE5          # PUSH HL
    CP_N = 0xFE             # CP n


# =============================================================================
# Instruction Information
# =============================================================================

@dataclass(frozen=True)
class InstructionInfo:
    """
    Information about a single opcode.

    Attributes:
        opcode: The opcode byte
        template: Zilog mnemonic with an operand placeholder
                  ("{n}", "{nn}" or "{e}") where the instruction has one
        operand_type: How the operand bytes are encoded
        cycles: T-states (for conditional relative jumps: when taken)
        cycles_not_taken: T-states for a conditional relative jump that
                          falls through, None for everything else
    """
    opcode: int
    template: str
    operand_type: OperandType
    cycles: int
    cycles_not_taken: Optional[int] = None

    @property
    def size(self) -> int:
        """Total instruction size in bytes."""
        return 1 + self.operand_type.size

    @property
    def mnemonic(self) -> str:
        """Mnemonic without operands (e.g., 'JP' for 'JP NZ,{nn}')."""
        return self.template.split(" ", 1)[0]

    def __repr__(self) -> str:
        return f"InstructionInfo(opcode=${self.opcode:02X}, {self.template!r}, cycles={self.cycles})"


def _info(opcode: Opcode, template: str, operand_type: OperandType,
          cycles: int, cycles_not_taken: Optional[int] = None) -> tuple[int, InstructionInfo]:
    return opcode, InstructionInfo(opcode, template, operand_type, cycles, cycles_not_taken)


# =============================================================================
# Opcode Table
# =============================================================================
# Key: opcode byte
# Value: InstructionInfo(opcode, template, operand_type, cycles[, not_taken])
# =============================================================================

OPCODE_TABLE: dict[int, InstructionInfo] = dict([
    # Control
    _info(Opcode.NOP, "NOP", OperandType.NONE, 4),
    _info(Opcode.HALT, "HALT", OperandType.NONE, 4),

    # 16-bit loads and arithmetic
    _info(Opcode.LD_BC_NN, "LD BC,{nn}", OperandType.IMM16, 10),
    _info(Opcode.LD_DE_NN, "LD DE,{nn}", OperandType.IMM16, 10),
    _info(Opcode.LD_HL_NN, "LD HL,{nn}", OperandType.IMM16, 10),
    _info(Opcode.ADD_HL_BC, "ADD HL,BC", OperandType.NONE, 11),
    _info(Opcode.INC_HL, "INC HL", OperandType.NONE, 6),
    _info(Opcode.DEC_HL, "DEC HL", OperandType.NONE, 6),
    _info(Opcode.DEC_DE, "DEC DE", OperandType.NONE, 6),

    # 8-bit loads
    _info(Opcode.LD_C_N, "LD C,{n}", OperandType.IMM8, 7),
    _info(Opcode.LD_E_N, "LD E,{n}", OperandType.IMM8, 7),
    _info(Opcode.LD_MEM_HL_N, "LD (HL),{n}", OperandType.IMM8, 10),
    _info(Opcode.LD_E_MEM_HL, "LD E,(HL)", OperandType.NONE, 7),
    _info(Opcode.LD_MEM_HL_A, "LD (HL),A", OperandType.NONE, 7),
    _info(Opcode.LD_A_D, "LD A,D", OperandType.NONE, 4),
    _info(Opcode.LD_A_MEM_HL, "LD A,(HL)", OperandType.NONE, 7),

    # 8-bit arithmetic and logic
    _info(Opcode.INC_MEM_HL, "INC (HL)", OperandType.NONE, 11),
    _info(Opcode.DEC_MEM_HL, "DEC (HL)", OperandType.NONE, 11),
    _info(Opcode.ADD_A_N, "ADD A,{n}", OperandType.IMM8, 7),
    _info(Opcode.OR_E, "OR E", OperandType.NONE, 4),
    _info(Opcode.OR_A, "OR A", OperandType.NONE, 4),
    _info(Opcode.CP_N, "CP {n}", OperandType.IMM8, 7),

    # Jumps, calls and stack
    _info(Opcode.JR_NZ, "JR NZ,{e}", OperandType.REL8, 12, 7),
    _info(Opcode.JR_Z, "JR Z,{e}", OperandType.REL8, 12, 7),
    _info(Opcode.JP_NZ, "JP NZ,{nn}", OperandType.IMM16, 10),
    _info(Opcode.JP, "JP {nn}", OperandType.IMM16, 10),
    _info(Opcode.JP_Z, "JP Z,{nn}", OperandType.IMM16, 10),
    _info(Opcode.CALL, "CALL {nn}", OperandType.IMM16, 17),
    _info(Opcode.RET, "RET", OperandType.NONE, 10),
    _info(Opcode.POP_HL, "POP HL", OperandType.NONE, 10),
    _info(Opcode.PUSH_HL, "PUSH HL", OperandType.NONE, 11),
])


# =============================================================================
# Lookup Functions
# =============================================================================

def get_instruction_info(opcode: int) -> Optional[InstructionInfo]:
    """Return the table entry for an opcode byte, or None if not in the subset."""
    return OPCODE_TABLE.get(opcode & 0xFF)


def instruction_size(opcode: int) -> int:
    """
    Return the encoded size of an instruction.

    Raises:
        KeyError: If the opcode is not part of the subset
    """
    return OPCODE_TABLE[opcode & 0xFF].size
