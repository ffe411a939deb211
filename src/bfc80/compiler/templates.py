"""
Instruction Templates
=====================

One code-generation routine per Brainfuck construct. Each routine only
appends to (and, for loops, patches) the ByteEmitter.

Register usage in generated code:
    HL  cell pointer, for the whole program
    A   scratch / cell value
    BC  pointer displacement (long form)
    C,E BDOS function number and argument

The BDOS clobbers HL, so every CALL 5 is wrapped in PUSH HL / POP HL.

Generated sequences
-------------------
Cell delta n (mod 256):
    n == 1      INC (HL)                      11 T
    n == 255    DEC (HL)                      11 T
    otherwise   LD A,(HL) / ADD A,n / LD (HL),A  21 T

Pointer delta n:
    |n| <= 3    |n| x INC HL or DEC HL        6 T each
    otherwise   LD BC,n / ADD HL,BC           21 T

Output:
        LD A,(HL)
        CP $0A
        JR NZ,cell
        LD E,$0D          ; '\\n' is written as '\\r\\n'
        <BDOS 2>
    cell:
        LD E,(HL)
        <BDOS 2>

Input:
    again:
        <BDOS 1>
        CP $0D
        JR Z,again        ; '\\r' is never stored
        LD (HL),A

Loop start / end:
    start:
        LD A,(HL)
        OR A
        JP Z,exit         ; patched by the matching ']'
        ...
        JP start
    exit:
"""

import logging
from typing import Optional

from bfc80.compiler.emitter import ByteEmitter
from bfc80.compiler.stack import BranchTargetStack
from bfc80.cpu.cpm import BDOS_ENTRY, CONSOLE_INPUT, CONSOLE_OUTPUT, CR, LF, LOAD_BASE
from bfc80.cpu.z80 import Opcode
from bfc80.errors import SourceLocation

logger = logging.getLogger(__name__)

# Longest pointer run emitted as single INC HL / DEC HL instructions
SHORT_POINTER_LIMIT = 3

# Offset of the JP Z operand within a loop-start sequence
LOOP_EXIT_OPERAND = 3


class InstructionTemplates:
    """
    Code templates bound to one emitter and one branch-target stack.

    Args:
        emitter: Output buffer
        stack: Branch-target stack for loop constructs
        load_base: Absolute address of image offset 0
    """

    def __init__(
        self,
        emitter: ByteEmitter,
        stack: BranchTargetStack,
        load_base: int = LOAD_BASE,
    ):
        self.emitter = emitter
        self.stack = stack
        self.load_base = load_base
        self.loop_count = 0

    def address_of(self, offset: int) -> int:
        """Absolute runtime address of an image offset."""
        return (offset + self.load_base) & 0xFFFF

    # =========================================================================
    # Cell and Pointer Arithmetic
    # =========================================================================

    def cell_delta(self, count: int) -> None:
        """Add count (mod 256) to the current cell."""
        n = count & 0xFF
        if n == 1:
            self._emit(Opcode.INC_MEM_HL)
        elif n == 0xFF:
            self._emit(Opcode.DEC_MEM_HL)
        elif n != 0:
            self._emit(Opcode.LD_A_MEM_HL)
            self._emit(Opcode.ADD_A_N, n)
            self._emit(Opcode.LD_MEM_HL_A)

    def pointer_delta(self, count: int) -> None:
        """Move the cell pointer by count (mod 65536)."""
        # Signed 16-bit: -32768..32767
        n = ((count + 0x8000) & 0xFFFF) - 0x8000
        if 0 < n <= SHORT_POINTER_LIMIT:
            for _ in range(n):
                self._emit(Opcode.INC_HL)
        elif -SHORT_POINTER_LIMIT <= n < 0:
            for _ in range(-n):
                self._emit(Opcode.DEC_HL)
        elif n != 0:
            self._emit_word_op(Opcode.LD_BC_NN, n & 0xFFFF)
            self._emit(Opcode.ADD_HL_BC)

    # =========================================================================
    # Console I/O
    # =========================================================================

    def output(self) -> None:
        """Write the current cell to the console, expanding LF to CR LF."""
        self._emit(Opcode.LD_A_MEM_HL)
        self._emit(Opcode.CP_N, LF)
        skip = self._emit_forward_jr(Opcode.JR_NZ)
        self._emit(Opcode.LD_E_N, CR)
        self._bdos(CONSOLE_OUTPUT)
        self._resolve_forward_jr(skip)
        self._emit(Opcode.LD_E_MEM_HL)
        self._bdos(CONSOLE_OUTPUT)

    def input(self) -> None:
        """Read a console byte into the current cell, dropping CRs."""
        again = self.emitter.current_offset()
        self._bdos(CONSOLE_INPUT)
        self._emit(Opcode.CP_N, CR)
        self._emit(Opcode.JR_Z, self._displacement(again, self.emitter.current_offset() + 2))
        self._emit(Opcode.LD_MEM_HL_A)

    # =========================================================================
    # Loops
    # =========================================================================

    def loop_start(self, location: Optional[SourceLocation] = None) -> None:
        """
        Open a loop. The exit address is left as 0 until loop_end().

        Raises:
            LoopNestingError: If nesting exceeds the stack capacity
        """
        start = self.emitter.current_offset()
        self.stack.push(start, location)
        self._emit(Opcode.LD_A_MEM_HL)
        self._emit(Opcode.OR_A)
        self._emit_word_op(Opcode.JP_Z, 0)
        self.loop_count += 1

    def loop_end(self, location: Optional[SourceLocation] = None) -> None:
        """
        Close the innermost loop and backpatch its exit address.

        Raises:
            UnmatchedLoopEndError: If no loop is open
        """
        start = self.stack.pop(location)
        self._emit_word_op(Opcode.JP, self.address_of(start))
        exit_address = self.address_of(self.emitter.current_offset())
        self.emitter.patch_word(start + LOOP_EXIT_OPERAND, exit_address)
        logger.debug(
            f"Loop ${self.address_of(start):04X} exits to ${exit_address:04X}"
        )

    # =========================================================================
    # Emission Helpers
    # =========================================================================

    def _emit(self, opcode: Opcode, operand: Optional[int] = None) -> None:
        """Emit an opcode with an optional 8-bit operand."""
        self.emitter.append(opcode)
        if operand is not None:
            self.emitter.append(operand & 0xFF)

    def _emit_word_op(self, opcode: Opcode, operand: int) -> None:
        """Emit an opcode with a 16-bit little-endian operand."""
        self.emitter.append(opcode)
        self.emitter.append_word(operand)

    def _bdos(self, function: int) -> None:
        """Call a BDOS function, preserving HL."""
        self._emit(Opcode.LD_C_N, function)
        self._emit(Opcode.PUSH_HL)
        self._emit_word_op(Opcode.CALL, BDOS_ENTRY)
        self._emit(Opcode.POP_HL)

    def _emit_forward_jr(self, opcode: Opcode) -> int:
        """Emit a relative jump with a zero displacement; return its operand offset."""
        self._emit(opcode, 0)
        return self.emitter.current_offset() - 1

    def _resolve_forward_jr(self, operand_offset: int) -> None:
        """Point a forward relative jump at the current offset."""
        target = self.emitter.current_offset()
        self.emitter.patch(operand_offset, self._displacement(target, operand_offset + 1))

    @staticmethod
    def _displacement(target: int, next_instruction: int) -> int:
        displacement = target - next_instruction
        if not -128 <= displacement <= 127:
            raise ValueError(f"relative jump displacement {displacement} out of range")
        return displacement & 0xFF
