"""
CP/M Runtime Machine
====================

A minimal CP/M 2.2 environment for running generated .COM images:

- 64 KiB of flat RAM
- the image loaded at $0100, with $0000 pushed as the return address
- BDOS console input (function 1) and output (function 2) at $0005
- warm boot (a jump or return to $0000) ends the run

The BDOS entry point holds a RET instruction. The instruction hook
services the call before that RET executes, like the real BDOS returning
to its caller. As on CP/M 2.2, the result is returned in both A and L and
H is cleared, so programs that do not preserve HL around a call break
here just as they would on hardware.

Usage:
    machine = CPMMachine(input_data=b"x")
    machine.load(image.code)
    result = machine.run()
    print(result.output)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from bfc80.cpu.cpm import BDOS_ENTRY, CONSOLE_INPUT, CONSOLE_OUTPUT, LOAD_BASE, WARM_BOOT
from bfc80.cpu.z80 import Opcode
from bfc80.emulator.cpu import Z80
from bfc80.errors import EmulatorError, ExecutionLimitError, InputExhaustedError

logger = logging.getLogger(__name__)

# Top of the TPA stack handed to the program by the CCP
DEFAULT_STACK_TOP = 0xFE00

DEFAULT_MAX_CYCLES = 50_000_000


class ExitReason(Enum):
    """Why a run ended."""
    WARM_BOOT = "warm boot"
    HALT = "halt"


@dataclass
class RunResult:
    """
    Outcome of running a program.

    Attributes:
        output: Bytes written with BDOS function 2 (plus echoed input)
        cycles: T-states executed
        instructions: Instructions executed
        exit_reason: How the program ended
        input_consumed: Bytes read with BDOS function 1
        bdos_calls: Number of BDOS calls serviced
    """
    output: bytes
    cycles: int
    instructions: int
    exit_reason: ExitReason
    input_consumed: int = 0
    bdos_calls: int = 0

    @property
    def text(self) -> str:
        """Console output decoded as Latin-1."""
        return self.output.decode("latin-1")


class Memory:
    """64 KiB flat RAM implementing the CPU bus protocol."""

    def __init__(self):
        self._data = bytearray(0x10000)

    def read(self, address: int) -> int:
        return self._data[address & 0xFFFF]

    def write(self, address: int, value: int) -> None:
        self._data[address & 0xFFFF] = value & 0xFF

    def load(self, address: int, data: bytes) -> None:
        """Copy data into memory starting at address."""
        end = address + len(data)
        if end > 0x10000:
            raise EmulatorError(
                f"{len(data)} bytes do not fit in memory at ${address:04X}"
            )
        self._data[address:end] = data

    def dump(self, address: int, length: int) -> bytes:
        """Return length bytes starting at address (wrapping at $FFFF)."""
        return bytes(self._data[(address + i) & 0xFFFF] for i in range(length))


class CPMMachine:
    """
    Runs a .COM image against emulated BDOS console calls.

    Args:
        input_data: Bytes returned by successive console input calls
        echo: Echo console input to the output, as the real BDOS does
        stack_top: Initial stack pointer
    """

    def __init__(
        self,
        input_data: bytes = b"",
        echo: bool = False,
        stack_top: int = DEFAULT_STACK_TOP,
    ):
        self.memory = Memory()
        self.cpu = Z80(self.memory)
        self.cpu.on_instruction = self._on_instruction
        self.echo = echo
        self.stack_top = stack_top
        self._input = bytes(input_data)
        self._input_pos = 0
        self._output = bytearray()
        self._bdos_calls = 0
        self._exit_reason: Optional[ExitReason] = None
        self._loaded_size = 0

        # Warm boot vector and BDOS entry
        self.memory.write(WARM_BOOT, Opcode.HALT)
        self.memory.write(BDOS_ENTRY, Opcode.RET)

    # =========================================================================
    # Loading and Running
    # =========================================================================

    def load(self, code: bytes, address: int = LOAD_BASE) -> None:
        """
        Load an image and prepare the CPU to run it, the way the CCP does.
        """
        self.memory.load(address, code)
        self._loaded_size = len(code)
        self.cpu.reset(pc=address)
        self.cpu.sp = self.stack_top
        self.cpu.push_word(WARM_BOOT)
        self._exit_reason = None
        logger.debug(f"Loaded {len(code)} bytes at ${address:04X}")

    def run(self, max_cycles: int = DEFAULT_MAX_CYCLES) -> RunResult:
        """
        Run until the program returns to CP/M.

        Raises:
            ExecutionLimitError: If max_cycles elapse first
            InputExhaustedError: If the program reads past the supplied input
            UnsupportedOpcodeError: If execution reaches an unknown opcode
        """
        self.cpu.execute(max_cycles)

        if self._exit_reason is None:
            if self.cpu.halted:
                self._exit_reason = ExitReason.HALT
            else:
                raise ExecutionLimitError(self.cpu.cycles, self.cpu.pc)

        logger.debug(
            f"Program ended ({self._exit_reason.value}) after "
            f"{self.cpu.cycles} cycles"
        )
        return RunResult(
            output=bytes(self._output),
            cycles=self.cpu.cycles,
            instructions=self.cpu.instructions,
            exit_reason=self._exit_reason,
            input_consumed=self._input_pos,
            bdos_calls=self._bdos_calls,
        )

    @property
    def output(self) -> bytes:
        return bytes(self._output)

    def cells(self, cell_base: int, count: int) -> bytes:
        """Return count cells starting at cell_base."""
        return self.memory.dump(cell_base, count)

    # =========================================================================
    # BDOS
    # =========================================================================

    def _on_instruction(self, pc: int, opcode: int) -> bool:
        if pc == WARM_BOOT:
            self._exit_reason = ExitReason.WARM_BOOT
            return False
        if pc == BDOS_ENTRY:
            self._bdos()
        return True

    def _bdos(self) -> None:
        cpu = self.cpu
        function = cpu.c
        self._bdos_calls += 1

        if function == CONSOLE_INPUT:
            result = self._read_console()
        elif function == CONSOLE_OUTPUT:
            self._output.append(cpu.e)
            result = 0
        else:
            logger.warning(f"Unsupported BDOS function {function} ignored")
            result = 0

        cpu.a = result
        cpu.l = result
        cpu.h = 0
        cpu.b = 0

    def _read_console(self) -> int:
        if self._input_pos >= len(self._input):
            raise InputExhaustedError(self._input_pos)
        value = self._input[self._input_pos]
        self._input_pos += 1
        if self.echo:
            self._output.append(value)
        return value


def run_image(
    code: bytes,
    input_data: bytes = b"",
    max_cycles: int = DEFAULT_MAX_CYCLES,
    echo: bool = False,
) -> RunResult:
    """
    Convenience function: load and run an image in a fresh machine.

    Example:
        >>> run_image(compile_bf("+++.")).output
        b'\\x03'
    """
    machine = CPMMachine(input_data, echo=echo)
    machine.load(code)
    return machine.run(max_cycles)
