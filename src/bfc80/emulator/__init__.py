"""
bfc80 Emulator Package
======================

Runs generated .COM images under an emulated CP/M console.

Components:
    cpu: Z80 - the emitted instruction subset with T-state timing
    cpm: CPMMachine - 64 KiB RAM, BDOS console calls, warm boot

Usage:
    >>> from bfc80.emulator import run_image
    >>> result = run_image(image.code, input_data=b"A")
    >>> result.output
"""

from bfc80.emulator.cpu import Z80, CPUState, Flags, BusProtocol
from bfc80.emulator.cpm import (
    CPMMachine,
    Memory,
    RunResult,
    ExitReason,
    run_image,
    DEFAULT_MAX_CYCLES,
    DEFAULT_STACK_TOP,
)

__all__ = [
    "Z80",
    "CPUState",
    "Flags",
    "BusProtocol",
    "CPMMachine",
    "Memory",
    "RunResult",
    "ExitReason",
    "run_image",
    "DEFAULT_MAX_CYCLES",
    "DEFAULT_STACK_TOP",
]
