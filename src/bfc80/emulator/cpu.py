"""
Z80 CPU Emulator (compiler subset)
==================================

Executes the instruction subset that the compiler emits, which is enough
to run any generated image end to end. Opcodes outside the subset raise
UnsupportedOpcodeError instead of being guessed at.

Registers:
- 8-bit: A, B, C, D, E, H, L (paired as BC, DE, HL)
- 16-bit: SP (stack pointer), PC (program counter)
- Flags: S (sign), Z (zero), C (carry). H, P/V and N are not modelled
  because no generated instruction sequence tests them.

Timing is counted in T-states using the values in bfc80.cpu.z80.

Copyright (c) 2025-2026 Hugo José Pinto & Contributors
"""

from dataclasses import dataclass
from enum import IntFlag
from typing import Callable, Optional, Protocol

from bfc80.cpu.z80 import Opcode, OPCODE_TABLE
from bfc80.errors import UnsupportedOpcodeError


class Flags(IntFlag):
    """
    Modelled bits of the F register.

    Bit layout of F:
        7  6  5  4  3  2  1  0
        S  Z  -  H  -  PV N  C
    """
    C = 0x01  # Carry
    Z = 0x40  # Zero
    S = 0x80  # Sign


class BusProtocol(Protocol):
    """
    Protocol defining the memory bus interface.
    """
    def read(self, address: int) -> int:
        """Read byte from address."""
        ...

    def write(self, address: int, value: int) -> None:
        """Write byte to address."""
        ...


@dataclass
class CPUState:
    """
    Complete CPU state for snapshotting.

    - a..l: 8-bit unsigned (0-255)
    - sp, pc: 16-bit unsigned (0-65535)
    - flags: F register (only S, Z, C are maintained)
    - halted: True after HALT
    """
    a: int = 0
    b: int = 0
    c: int = 0
    d: int = 0
    e: int = 0
    h: int = 0
    l: int = 0
    sp: int = 0
    pc: int = 0
    flags: int = 0
    halted: bool = False


def _register(name: str, doc: str) -> property:
    def getter(self) -> int:
        return getattr(self.state, name)

    def setter(self, value: int) -> None:
        setattr(self.state, name, value & 0xFF)

    return property(getter, setter, doc=doc)


def _pair(high: str, low: str, doc: str) -> property:
    def getter(self) -> int:
        return (getattr(self.state, high) << 8) | getattr(self.state, low)

    def setter(self, value: int) -> None:
        setattr(self.state, high, (value >> 8) & 0xFF)
        setattr(self.state, low, value & 0xFF)

    return property(getter, setter, doc=doc)


class Z80:
    """
    Z80 CPU emulator with an instruction hook.

    The hook on_instruction(pc, opcode) is called before every instruction
    is fetched. It may change CPU state (the CP/M machine uses it to service
    BDOS calls) and returns False to stop execution before the instruction
    runs.

    Example:
        >>> cpu = Z80(bus)
        >>> cpu.pc = 0x0100
        >>> cycles = cpu.execute(1000)
        >>> print(f"A=${cpu.a:02X} HL=${cpu.hl:04X}")
    """

    a = _register("a", "Accumulator.")
    b = _register("b", "Register B.")
    c = _register("c", "Register C (BDOS function number).")
    d = _register("d", "Register D.")
    e = _register("e", "Register E (BDOS argument).")
    h = _register("h", "Register H.")
    l = _register("l", "Register L.")
    bc = _pair("b", "c", "Register pair BC.")
    de = _pair("d", "e", "Register pair DE.")
    hl = _pair("h", "l", "Register pair HL (cell pointer).")

    def __init__(self, bus: BusProtocol):
        """
        Args:
            bus: Memory bus implementing BusProtocol
        """
        self.bus = bus
        self.state = CPUState()
        self.cycles = 0
        self.instructions = 0

        # on_instruction(pc, opcode) -> bool: return False to stop execution
        self.on_instruction: Optional[Callable[[int, int], bool]] = None

    # ========================================
    # 16-bit Registers and Flags
    # ========================================

    @property
    def sp(self) -> int:
        """Stack pointer (16-bit)."""
        return self.state.sp

    @sp.setter
    def sp(self, value: int) -> None:
        self.state.sp = value & 0xFFFF

    @property
    def pc(self) -> int:
        """Program counter (16-bit)."""
        return self.state.pc

    @pc.setter
    def pc(self, value: int) -> None:
        self.state.pc = value & 0xFFFF

    @property
    def halted(self) -> bool:
        return self.state.halted

    def _get_flag(self, flag: Flags) -> bool:
        return bool(self.state.flags & flag)

    def _set_flag(self, flag: Flags, value: bool) -> None:
        if value:
            self.state.flags |= flag
        else:
            self.state.flags &= ~flag & 0xFF

    @property
    def flag_z(self) -> bool:
        """Zero flag."""
        return self._get_flag(Flags.Z)

    @flag_z.setter
    def flag_z(self, value: bool) -> None:
        self._set_flag(Flags.Z, value)

    @property
    def flag_c(self) -> bool:
        """Carry flag."""
        return self._get_flag(Flags.C)

    @flag_c.setter
    def flag_c(self, value: bool) -> None:
        self._set_flag(Flags.C, value)

    @property
    def flag_s(self) -> bool:
        """Sign flag."""
        return self._get_flag(Flags.S)

    @flag_s.setter
    def flag_s(self, value: bool) -> None:
        self._set_flag(Flags.S, value)

    # ========================================
    # Memory Access
    # ========================================

    def read_byte(self, address: int) -> int:
        return self.bus.read(address & 0xFFFF) & 0xFF

    def write_byte(self, address: int, value: int) -> None:
        self.bus.write(address & 0xFFFF, value & 0xFF)

    def read_word(self, address: int) -> int:
        """Read 16-bit word (little-endian)."""
        return self.read_byte(address) | (self.read_byte(address + 1) << 8)

    def push_word(self, value: int) -> None:
        """Push word (high byte at the higher address)."""
        self.sp = self.sp - 1
        self.write_byte(self.sp, value >> 8)
        self.sp = self.sp - 1
        self.write_byte(self.sp, value)

    def pop_word(self) -> int:
        value = self.read_word(self.sp)
        self.sp = self.sp + 2
        return value

    def _fetch_byte(self) -> int:
        value = self.read_byte(self.pc)
        self.pc = self.pc + 1
        return value

    def _fetch_word(self) -> int:
        value = self.read_word(self.pc)
        self.pc = self.pc + 2
        return value

    def _fetch_displacement(self) -> int:
        value = self._fetch_byte()
        return value - 0x100 if value & 0x80 else value

    # ========================================
    # Main Execution Loop
    # ========================================

    def reset(self, pc: int = 0) -> None:
        """Clear registers and flags and start at pc."""
        self.state = CPUState(pc=pc & 0xFFFF)
        self.cycles = 0
        self.instructions = 0

    def execute(self, max_cycles: int) -> int:
        """
        Execute instructions until the budget is used up, the CPU halts,
        or the hook stops execution.

        Returns:
            Number of T-states executed by this call
        """
        start = self.cycles
        while self.cycles - start < max_cycles and not self.state.halted:
            if self.on_instruction:
                if not self.on_instruction(self.pc, self.read_byte(self.pc)):
                    break
            self.step()
        return self.cycles - start

    def step(self) -> int:
        """
        Execute exactly one instruction.

        Returns:
            T-states consumed by the instruction

        Raises:
            UnsupportedOpcodeError: If the opcode is outside the subset
        """
        address = self.pc
        opcode = self._fetch_byte()
        info = OPCODE_TABLE.get(opcode)
        if info is None:
            self.pc = address
            raise UnsupportedOpcodeError(opcode, address)

        taken = self._execute_instruction(opcode)
        cycles = info.cycles if taken or info.cycles_not_taken is None else info.cycles_not_taken
        self.cycles += cycles
        self.instructions += 1
        return cycles

    # ========================================
    # ALU Operations
    # ========================================

    def _set_sz(self, value: int) -> None:
        self.flag_z = value == 0
        self.flag_s = (value & 0x80) != 0

    def _add8(self, a: int, b: int) -> int:
        result = a + b
        self.flag_c = result > 0xFF
        result &= 0xFF
        self._set_sz(result)
        return result

    def _cp8(self, a: int, b: int) -> None:
        self.flag_c = a < b
        self._set_sz((a - b) & 0xFF)

    def _or8(self, a: int, b: int) -> int:
        result = (a | b) & 0xFF
        self._set_sz(result)
        self.flag_c = False
        return result

    def _inc8(self, value: int) -> int:
        result = (value + 1) & 0xFF
        self._set_sz(result)
        return result

    def _dec8(self, value: int) -> int:
        result = (value - 1) & 0xFF
        self._set_sz(result)
        return result

    # ========================================
    # Instruction Decoder
    # ========================================

    def _execute_instruction(self, opcode: int) -> bool:
        """
        Execute one decoded instruction.

        Returns:
            False for a conditional relative jump that was not taken,
            True otherwise
        """
        match opcode:
            case Opcode.NOP:
                pass
            case Opcode.HALT:
                self.pc = self.pc - 1
                self.state.halted = True

            # 16-bit loads and arithmetic
            case Opcode.LD_BC_NN:
                self.bc = self._fetch_word()
            case Opcode.LD_DE_NN:
                self.de = self._fetch_word()
            case Opcode.LD_HL_NN:
                self.hl = self._fetch_word()
            case Opcode.ADD_HL_BC:
                result = self.hl + self.bc
                self.flag_c = result > 0xFFFF
                self.hl = result
            case Opcode.INC_HL:
                self.hl = self.hl + 1
            case Opcode.DEC_HL:
                self.hl = self.hl - 1
            case Opcode.DEC_DE:
                self.de = self.de - 1

            # 8-bit loads
            case Opcode.LD_C_N:
                self.c = self._fetch_byte()
            case Opcode.LD_E_N:
                self.e = self._fetch_byte()
            case Opcode.LD_MEM_HL_N:
                self.write_byte(self.hl, self._fetch_byte())
            case Opcode.LD_E_MEM_HL:
                self.e = self.read_byte(self.hl)
            case Opcode.LD_MEM_HL_A:
                self.write_byte(self.hl, self.a)
            case Opcode.LD_A_D:
                self.a = self.d
            case Opcode.LD_A_MEM_HL:
                self.a = self.read_byte(self.hl)

            # 8-bit arithmetic and logic
            case Opcode.INC_MEM_HL:
                self.write_byte(self.hl, self._inc8(self.read_byte(self.hl)))
            case Opcode.DEC_MEM_HL:
                self.write_byte(self.hl, self._dec8(self.read_byte(self.hl)))
            case Opcode.ADD_A_N:
                self.a = self._add8(self.a, self._fetch_byte())
            case Opcode.OR_E:
                self.a = self._or8(self.a, self.e)
            case Opcode.OR_A:
                self.a = self._or8(self.a, self.a)
            case Opcode.CP_N:
                self._cp8(self.a, self._fetch_byte())

            # Jumps, calls and stack
            case Opcode.JR_NZ:
                displacement = self._fetch_displacement()
                if self.flag_z:
                    return False
                self.pc = self.pc + displacement
            case Opcode.JR_Z:
                displacement = self._fetch_displacement()
                if not self.flag_z:
                    return False
                self.pc = self.pc + displacement
            case Opcode.JP_NZ:
                target = self._fetch_word()
                if not self.flag_z:
                    self.pc = target
            case Opcode.JP:
                self.pc = self._fetch_word()
            case Opcode.JP_Z:
                target = self._fetch_word()
                if self.flag_z:
                    self.pc = target
            case Opcode.CALL:
                target = self._fetch_word()
                self.push_word(self.pc)
                self.pc = target
            case Opcode.RET:
                self.pc = self.pop_word()
            case Opcode.POP_HL:
                self.hl = self.pop_word()
            case Opcode.PUSH_HL:
                self.push_word(self.hl)
        return True
