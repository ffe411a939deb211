"""
Branch-Target Stack
===================

Bounded stack of output offsets, one entry per open loop.

An entry is the offset of a loop-start sequence. It serves twice: the
matching loop end jumps back to it, and the loop start's JP Z operand
(at a fixed distance from it) is patched with the loop exit address.
Depth always equals the current loop nesting depth.
"""

from typing import Optional

from bfc80.errors import LoopNestingError, SourceLocation, UnmatchedLoopEndError

DEFAULT_STACK_DEPTH = 1024


class BranchTargetStack:
    """
    LIFO stack of loop-start offsets with a fixed capacity.

    The source location of each open '[' is kept alongside its offset
    so unclosed loops can be reported precisely.
    """

    def __init__(self, capacity: int = DEFAULT_STACK_DEPTH):
        if capacity < 1:
            raise ValueError(f"stack capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._offsets: list[int] = []
        self._locations: list[Optional[SourceLocation]] = []
        self.max_depth = 0

    def __len__(self) -> int:
        return len(self._offsets)

    @property
    def depth(self) -> int:
        return len(self._offsets)

    def is_empty(self) -> bool:
        return not self._offsets

    def push(self, offset: int, location: Optional[SourceLocation] = None) -> None:
        """
        Push the offset of a loop start.

        Raises:
            LoopNestingError: If the stack is already at capacity
        """
        if len(self._offsets) >= self.capacity:
            raise LoopNestingError(self.capacity, location)
        self._offsets.append(offset)
        self._locations.append(location)
        self.max_depth = max(self.max_depth, len(self._offsets))

    def pop(self, location: Optional[SourceLocation] = None) -> int:
        """
        Pop the offset of the innermost open loop.

        Args:
            location: Location of the ']' being translated (for diagnostics)

        Raises:
            UnmatchedLoopEndError: If no loop is open
        """
        if not self._offsets:
            raise UnmatchedLoopEndError(location)
        self._locations.pop()
        return self._offsets.pop()

    def innermost_location(self) -> Optional[SourceLocation]:
        """Location of the innermost open '[', or None."""
        return self._locations[-1] if self._locations else None

    def open_offsets(self) -> list[int]:
        """Offsets of all open loops, outermost first."""
        return list(self._offsets)
