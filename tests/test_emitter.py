"""
Byte Emitter and Branch-Target Stack Unit Tests
===============================================

Covers:
- Appending bytes and words (little-endian)
- Growth in fixed increments and the progress callback
- Patching previously emitted bytes
- Stack push/pop order, capacity and underflow
"""

import pytest

from bfc80.compiler import ByteEmitter, BranchTargetStack
from bfc80.errors import LoopNestingError, SourceLocation, UnmatchedLoopEndError


# =============================================================================
# Byte Emitter
# =============================================================================

class TestAppend:
    """Test appending to the output buffer."""

    def test_starts_empty(self):
        emitter = ByteEmitter()
        assert len(emitter) == 0
        assert emitter.current_offset() == 0
        assert emitter.to_bytes() == b""

    def test_append_bytes(self):
        emitter = ByteEmitter()
        emitter.append(0x21)
        emitter.append(0x00)
        assert emitter.to_bytes() == bytes([0x21, 0x00])
        assert emitter.current_offset() == 2

    def test_append_masks_to_8_bits(self):
        emitter = ByteEmitter()
        emitter.append(0x1FF)
        emitter.append(-1)
        assert emitter.to_bytes() == bytes([0xFF, 0xFF])

    def test_append_word_little_endian(self):
        emitter = ByteEmitter()
        emitter.append_word(0x1234)
        assert emitter.to_bytes() == bytes([0x34, 0x12])

    def test_extend(self):
        emitter = ByteEmitter()
        emitter.extend([1, 2, 3])
        assert emitter.to_bytes() == bytes([1, 2, 3])


class TestGrowth:
    """Test fixed-increment growth of the backing store."""

    def test_grows_in_increments(self):
        emitter = ByteEmitter(growth_increment=4)
        for i in range(5):
            emitter.append(i)
        assert emitter.capacity == 8
        assert emitter.growth_events == 2
        assert len(emitter) == 5

    def test_unused_capacity_not_returned(self):
        emitter = ByteEmitter(growth_increment=128)
        emitter.append(0xC3)
        assert emitter.capacity == 128
        assert emitter.to_bytes() == bytes([0xC3])

    def test_progress_callback(self):
        capacities = []
        emitter = ByteEmitter(growth_increment=4, on_grow=capacities.append)
        for _ in range(9):
            emitter.append(0)
        assert capacities == [4, 8, 12]

    def test_invalid_increment(self):
        with pytest.raises(ValueError):
            ByteEmitter(growth_increment=0)


class TestPatch:
    """Test overwriting previously emitted bytes."""

    def test_patch_byte(self):
        emitter = ByteEmitter()
        emitter.extend([0xCA, 0x00, 0x00])
        emitter.patch(1, 0x42)
        assert emitter.to_bytes() == bytes([0xCA, 0x42, 0x00])

    def test_patch_word(self):
        emitter = ByteEmitter()
        emitter.extend([0xCA, 0x00, 0x00])
        emitter.patch_word(1, 0x0123)
        assert emitter.to_bytes() == bytes([0xCA, 0x23, 0x01])
        assert emitter.word_at(1) == 0x0123

    def test_patch_does_not_change_length(self):
        emitter = ByteEmitter()
        emitter.extend([0, 0])
        emitter.patch(0, 9)
        assert len(emitter) == 2

    def test_patch_beyond_end_rejected(self):
        emitter = ByteEmitter(growth_increment=128)
        emitter.append(0)
        # Offset 1 is allocated but not emitted yet
        with pytest.raises(IndexError):
            emitter.patch(1, 0)

    def test_patch_negative_rejected(self):
        emitter = ByteEmitter()
        emitter.append(0)
        with pytest.raises(IndexError):
            emitter.patch(-1, 0)


# =============================================================================
# Branch-Target Stack
# =============================================================================

class TestBranchTargetStack:
    """Test the bounded stack of open-loop offsets."""

    def test_lifo_order(self):
        stack = BranchTargetStack()
        stack.push(18)
        stack.push(23)
        assert stack.depth == 2
        assert stack.pop() == 23
        assert stack.pop() == 18
        assert stack.is_empty()

    def test_max_depth_tracked(self):
        stack = BranchTargetStack()
        stack.push(0)
        stack.push(5)
        stack.pop()
        stack.push(10)
        assert stack.max_depth == 2

    def test_capacity_reached_exactly(self):
        stack = BranchTargetStack(capacity=3)
        for offset in range(3):
            stack.push(offset)
        assert stack.depth == 3

    def test_overflow(self):
        stack = BranchTargetStack(capacity=3)
        for offset in range(3):
            stack.push(offset)
        with pytest.raises(LoopNestingError) as exc_info:
            stack.push(3)
        assert exc_info.value.capacity == 3
        assert "stack overflow" in str(exc_info.value)

    def test_underflow(self):
        stack = BranchTargetStack()
        location = SourceLocation("prog.b", 2, 7)
        with pytest.raises(UnmatchedLoopEndError) as exc_info:
            stack.pop(location)
        assert "prog.b:2:7" in str(exc_info.value)
        assert "stack underflow" in str(exc_info.value)

    def test_innermost_location(self):
        stack = BranchTargetStack()
        assert stack.innermost_location() is None
        outer = SourceLocation("<input>", 1, 1)
        inner = SourceLocation("<input>", 1, 4)
        stack.push(18, outer)
        stack.push(23, inner)
        assert stack.innermost_location() == inner
        stack.pop()
        assert stack.innermost_location() == outer

    def test_open_offsets(self):
        stack = BranchTargetStack()
        stack.push(18)
        stack.push(30)
        assert stack.open_offsets() == [18, 30]

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            BranchTargetStack(capacity=0)
