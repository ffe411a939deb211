"""
Tokenizer and Run-Length Folder
===============================

Reads Brainfuck source one byte at a time and turns it into run-length
groups ready for code generation.

Only the eight command bytes are significant:

    +  -    cell delta      (folded into one signed count)
    >  <    pointer delta   (folded into one signed count)
    .  ,    output / input
    [  ]    loop start / end

Every other byte is a comment and is skipped. A comment byte also ends a
run, so "+ +" produces two cell groups of +1 each; no folding happens
across it.

The cursor keeps exactly one byte of lookahead and tracks line/column
positions for diagnostics.
"""

import io
import logging
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Iterator, Optional, Union

from bfc80.errors import SourceLocation

logger = logging.getLogger(__name__)


# =============================================================================
# Command Kinds
# =============================================================================

class CommandKind(Enum):
    """Kinds of folded commands dispatched to the code templates."""
    CELL = "cell"
    POINTER = "pointer"
    OUTPUT = "output"
    INPUT = "input"
    LOOP_START = "loop_start"
    LOOP_END = "loop_end"


# Per-byte step for the foldable commands
FOLD_STEPS: dict[int, tuple[CommandKind, int]] = {
    ord("+"): (CommandKind.CELL, 1),
    ord("-"): (CommandKind.CELL, -1),
    ord(">"): (CommandKind.POINTER, 1),
    ord("<"): (CommandKind.POINTER, -1),
}

SINGLE_COMMANDS: dict[int, CommandKind] = {
    ord("."): CommandKind.OUTPUT,
    ord(","): CommandKind.INPUT,
    ord("["): CommandKind.LOOP_START,
    ord("]"): CommandKind.LOOP_END,
}

COMMAND_BYTES = frozenset(FOLD_STEPS) | frozenset(SINGLE_COMMANDS)


@dataclass(frozen=True)
class RunGroup:
    """
    One folded command.

    Attributes:
        kind: Which template handles the group
        count: Net signed count for CELL/POINTER groups, 1 otherwise
        location: Position of the first command byte of the group
        length: Number of source command bytes folded into the group
    """
    kind: CommandKind
    count: int
    location: SourceLocation
    length: int = 1


# =============================================================================
# Source Cursor
# =============================================================================

class SourceCursor:
    """
    One-byte lookahead over a binary stream.

    The stream is read lazily: a byte is only fetched when peek() needs it,
    and end of input is latched once the stream is exhausted.
    """

    def __init__(self, stream: BinaryIO, filename: str = "<input>"):
        self._stream = stream
        self.filename = filename
        self._next: Optional[int] = None
        self.eof = False
        # Position of the byte returned by peek()
        self.line = 1
        self.column = 1

    @classmethod
    def from_source(
        cls,
        source: Union[bytes, bytearray, str, BinaryIO],
        filename: str = "<input>",
    ) -> "SourceCursor":
        """Build a cursor from bytes, text or an already-open binary stream."""
        if isinstance(source, str):
            source = source.encode("utf-8")
        if isinstance(source, (bytes, bytearray)):
            return cls(io.BytesIO(bytes(source)), filename)
        return cls(source, filename)

    def peek(self) -> Optional[int]:
        """Return the next byte without consuming it, or None at end of input."""
        if self._next is None and not self.eof:
            data = self._stream.read(1)
            if data:
                self._next = data[0]
            else:
                self.eof = True
        return self._next

    def consume(self) -> Optional[int]:
        """Consume and return the next byte, or None at end of input."""
        value = self.peek()
        if value is not None:
            self._next = None
            if value == 0x0A:
                self.line += 1
                self.column = 1
            else:
                self.column += 1
        return value

    def location(self) -> SourceLocation:
        """Location of the byte that peek() returns."""
        return SourceLocation(self.filename, self.line, self.column)


# =============================================================================
# Tokenizer
# =============================================================================

class Tokenizer:
    """
    Folds the command stream into RunGroups.

    Usage:
        tokenizer = Tokenizer(SourceCursor.from_source("+++[>+<-]"))
        for group in tokenizer:
            print(group.kind, group.count)
    """

    def __init__(self, cursor: SourceCursor):
        self.cursor = cursor
        self.command_count = 0
        self.group_count = 0

    def __iter__(self) -> Iterator[RunGroup]:
        return self.groups()

    def groups(self) -> Iterator[RunGroup]:
        """Yield folded groups in source order until end of input."""
        cursor = self.cursor
        while True:
            self._skip_comments()
            value = cursor.peek()
            if value is None:
                return

            location = cursor.location()
            if value in FOLD_STEPS:
                kind = FOLD_STEPS[value][0]
                count, length = self._fold(kind)
                group = RunGroup(kind, count, location, length)
            else:
                cursor.consume()
                group = RunGroup(SINGLE_COMMANDS[value], 1, location)

            self.command_count += group.length
            self.group_count += 1
            yield group

    def _fold(self, kind: CommandKind) -> tuple[int, int]:
        """Consume a run of commands of one foldable kind."""
        count = 0
        length = 0
        while True:
            value = self.cursor.peek()
            step = FOLD_STEPS.get(value) if value is not None else None
            if step is None or step[0] is not kind:
                return count, length
            self.cursor.consume()
            count += step[1]
            length += 1

    def _skip_comments(self) -> None:
        while True:
            value = self.cursor.peek()
            if value is None or value in COMMAND_BYTES:
                return
            self.cursor.consume()
