"""
bfc80 Error Hierarchy
=====================

This module defines the exception hierarchy for the whole toolchain.
All exceptions inherit from Bfc80Error, allowing callers to catch all
toolchain errors with a single except clause if desired.

Exception Hierarchy
-------------------
Bfc80Error (base)
├── CompilerError (translation-related)
│   ├── LoopNestingError - loops nested deeper than the branch-target stack
│   ├── UnmatchedLoopEndError - ']' with no open loop (stack underflow)
│   ├── UnclosedLoopError - '[' still open at end of input
│   └── ImageTooLargeError - image does not fit the 16-bit address space
├── OutputError (output collaborator)
│   ├── ImageWriteError - destination unwritable or short write
│   └── ListingWriteError - listing file unwritable
└── EmulatorError (CP/M runtime emulator)
    ├── UnsupportedOpcodeError - opcode outside the emulated subset
    ├── InputExhaustedError - console input requested with none left
    └── ExecutionLimitError - cycle budget exhausted before warm boot

Design Philosophy
-----------------
Every compiler error is fatal for the current translation. There is no
error collection and no partial image: the first error aborts the pass.

Error messages follow this format:
    filename:line:column: error: description
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class Bfc80Error(Exception):
    """
    Base exception for all bfc80 errors.

        try:
            compiler.compile_file("hello.bf")
        except Bfc80Error as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in Brainfuck source for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for in-memory source)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"


# =============================================================================
# Compiler Exceptions
# =============================================================================

class CompilerError(Bfc80Error):
    """
    Base exception for all translation errors.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location and hint.

        Example output:
            hello.bf:3:14: error: unmatched ']'
            hint: no loop is open at this point
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


class LoopNestingError(CompilerError):
    """
    Loop nesting exceeds the branch-target stack capacity (stack overflow).

    Each open '[' occupies one stack entry until its matching ']' is
    translated, so the capacity is the maximum nesting depth.
    """

    def __init__(self, capacity: int, location: Optional[SourceLocation] = None):
        self.capacity = capacity
        super().__init__(
            "stack overflow: loops nested too deeply",
            location=location,
            hint=f"maximum nesting depth is {capacity}",
        )


class UnmatchedLoopEndError(CompilerError):
    """
    A ']' was found with no open '[' (stack underflow).
    """

    def __init__(self, location: Optional[SourceLocation] = None):
        super().__init__(
            "stack underflow: unmatched ']'",
            location=location,
            hint="no loop is open at this point",
        )


class UnclosedLoopError(CompilerError):
    """
    End of input reached while one or more '[' are still open.

    The location points at the innermost unclosed '['.
    """

    def __init__(self, open_loops: int, location: Optional[SourceLocation] = None):
        self.open_loops = open_loops
        plural = "loop" if open_loops == 1 else "loops"
        super().__init__(
            f"unmatched '[': {open_loops} {plural} still open at end of input",
            location=location,
            hint="add the missing ']' or compile with --allow-unclosed",
        )


class ImageTooLargeError(CompilerError):
    """
    The generated image does not fit below the top of the address space.
    """

    def __init__(self, size: int, load_base: int):
        self.size = size
        self.load_base = load_base
        super().__init__(
            f"program image of {size} bytes does not fit at ${load_base:04X}",
            hint=f"at most {0x10000 - load_base} bytes can be loaded",
        )


# =============================================================================
# Output Exceptions
# =============================================================================

class OutputError(Bfc80Error):
    """Base exception for output collaborator failures."""
    pass


class ImageWriteError(OutputError):
    """
    The finished image could not be written in full.

    Attributes:
        path: Destination path
        written: Bytes actually written (None if the file could not be opened)
        expected: Bytes that should have been written
    """

    def __init__(self, path: str, expected: int, written: Optional[int] = None,
                 reason: Optional[str] = None):
        self.path = path
        self.expected = expected
        self.written = written
        if written is None:
            message = f"can't write {path}"
            if reason:
                message += f": {reason}"
        else:
            message = (
                f"failed to write full output "
                f"(only wrote {written} of {expected} bytes)"
            )
        super().__init__(message)


class ListingWriteError(OutputError):
    """
    The listing file could not be written.
    """

    def __init__(self, path: str, reason: Optional[str] = None):
        self.path = path
        message = f"can't write listing {path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


# =============================================================================
# Emulator Exceptions
# =============================================================================

class EmulatorError(Bfc80Error):
    """Base exception for CP/M runtime emulator errors."""
    pass


class UnsupportedOpcodeError(EmulatorError):
    """
    The CPU fetched an opcode outside the emulated instruction subset.
    """

    def __init__(self, opcode: int, address: int):
        self.opcode = opcode
        self.address = address
        super().__init__(f"unsupported opcode ${opcode:02X} at ${address:04X}")


class InputExhaustedError(EmulatorError):
    """
    The program asked for console input after all supplied input was read.
    """

    def __init__(self, consumed: int):
        self.consumed = consumed
        super().__init__(f"console input exhausted after {consumed} bytes")


class ExecutionLimitError(EmulatorError):
    """
    The cycle budget ran out before the program returned to CP/M.
    """

    def __init__(self, cycles: int, pc: int):
        self.cycles = cycles
        self.pc = pc
        super().__init__(
            f"program did not terminate within {cycles} cycles (PC=${pc:04X})"
        )
