"""
Byte Emitter
============

Growable output buffer for generated machine code.

Bytes are only ever appended or patched in place; nothing is removed or
reordered. Backing storage grows in fixed increments, and every growth
event is reported through the optional progress callback. The classic
command-line indicator prints one '+' per event.

Multi-byte values are little-endian, matching the Z80.
"""

import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_GROWTH_INCREMENT = 128


class ByteEmitter:
    """
    Append-and-patch byte buffer.

    Usage:
        emitter = ByteEmitter()
        emitter.append(0xC3)
        target = emitter.current_offset()
        emitter.append_word(0)
        emitter.patch_word(target, 0x0123)
        code = emitter.to_bytes()
    """

    def __init__(
        self,
        growth_increment: int = DEFAULT_GROWTH_INCREMENT,
        on_grow: Optional[Callable[[int], None]] = None,
    ):
        """
        Args:
            growth_increment: Bytes added to the backing store per growth event
            on_grow: Called with the new capacity after each growth event
        """
        if growth_increment < 1:
            raise ValueError(f"growth increment must be positive, got {growth_increment}")
        self._buffer = bytearray()
        self._length = 0
        self._growth_increment = growth_increment
        self._on_grow = on_grow
        self.growth_events = 0

    def __len__(self) -> int:
        return self._length

    @property
    def capacity(self) -> int:
        """Currently allocated size of the backing store."""
        return len(self._buffer)

    def current_offset(self) -> int:
        """Number of bytes emitted so far (the offset of the next byte)."""
        return self._length

    def append(self, value: int) -> None:
        """Append one byte, growing the backing store if it is full."""
        if self._length >= len(self._buffer):
            self._grow()
        self._buffer[self._length] = value & 0xFF
        self._length += 1

    def append_word(self, value: int) -> None:
        """Append a 16-bit word (little-endian)."""
        self.append(value & 0xFF)
        self.append((value >> 8) & 0xFF)

    def extend(self, values) -> None:
        """Append a sequence of bytes."""
        for value in values:
            self.append(value)

    def patch(self, offset: int, value: int) -> None:
        """
        Overwrite an already-emitted byte.

        Raises:
            IndexError: If offset has not been emitted yet
        """
        if not 0 <= offset < self._length:
            raise IndexError(
                f"patch offset {offset} outside emitted range 0..{self._length - 1}"
            )
        self._buffer[offset] = value & 0xFF

    def patch_word(self, offset: int, value: int) -> None:
        """Overwrite an already-emitted 16-bit word (little-endian)."""
        self.patch(offset, value & 0xFF)
        self.patch(offset + 1, (value >> 8) & 0xFF)

    def byte_at(self, offset: int) -> int:
        """Read back an emitted byte."""
        if not 0 <= offset < self._length:
            raise IndexError(f"offset {offset} not emitted")
        return self._buffer[offset]

    def word_at(self, offset: int) -> int:
        """Read back an emitted 16-bit word (little-endian)."""
        return self.byte_at(offset) | (self.byte_at(offset + 1) << 8)

    def to_bytes(self) -> bytes:
        """Return the emitted bytes (without unused capacity)."""
        return bytes(self._buffer[:self._length])

    def _grow(self) -> None:
        self._buffer.extend(bytes(self._growth_increment))
        self.growth_events += 1
        logger.debug(f"Output buffer grown to {len(self._buffer)} bytes")
        if self._on_grow:
            self._on_grow(len(self._buffer))
