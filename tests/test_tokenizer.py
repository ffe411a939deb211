"""
Tokenizer Unit Tests
====================

Covers:
- Command filtering (comments skipped)
- Run-length folding of +/- and >/<
- Single commands are never folded
- Source locations for diagnostics
- Reading from streams, bytes and text
"""

import io

import pytest

from bfc80.compiler import CommandKind, SourceCursor, Tokenizer


# =============================================================================
# Helper Functions
# =============================================================================

def groups(source) -> list[tuple[CommandKind, int]]:
    """Tokenize source and return (kind, count) pairs."""
    tokenizer = Tokenizer(SourceCursor.from_source(source))
    return [(g.kind, g.count) for g in tokenizer]


CELL = CommandKind.CELL
POINTER = CommandKind.POINTER


# =============================================================================
# Source Cursor
# =============================================================================

class TestSourceCursor:
    """Test the one-byte lookahead cursor."""

    def test_peek_does_not_consume(self):
        cursor = SourceCursor.from_source(b"+-")
        assert cursor.peek() == ord("+")
        assert cursor.peek() == ord("+")
        assert cursor.consume() == ord("+")
        assert cursor.peek() == ord("-")

    def test_end_of_input(self):
        cursor = SourceCursor.from_source(b"+")
        cursor.consume()
        assert cursor.peek() is None
        assert cursor.eof
        assert cursor.consume() is None

    def test_reads_stream_lazily(self):
        stream = io.BytesIO(b"+++")
        cursor = SourceCursor(stream)
        cursor.peek()
        assert stream.tell() == 1

    def test_tracks_lines_and_columns(self):
        cursor = SourceCursor.from_source(b"ab\ncd", "prog.b")
        for _ in range(4):
            cursor.consume()
        location = cursor.location()
        assert (location.line, location.column) == (2, 2)
        assert str(location) == "prog.b:2:2"


# =============================================================================
# Folding
# =============================================================================

class TestFolding:
    """Test run-length folding of arithmetic and movement commands."""

    def test_plus_run(self):
        assert groups("+++") == [(CELL, 3)]

    def test_minus_run(self):
        assert groups("---") == [(CELL, -3)]

    def test_mixed_cell_run_is_net_count(self):
        assert groups("+++--") == [(CELL, 1)]

    def test_cancelling_run(self):
        assert groups("+-") == [(CELL, 0)]

    def test_pointer_run(self):
        assert groups(">>><") == [(POINTER, 2)]
        assert groups("<<") == [(POINTER, -2)]

    def test_cell_then_pointer(self):
        assert groups("++>>") == [(CELL, 2), (POINTER, 2)]

    def test_alternating_kinds_not_folded(self):
        assert groups("+>+") == [(CELL, 1), (POINTER, 1), (CELL, 1)]

    def test_comment_breaks_run(self):
        assert groups("+ +") == [(CELL, 1), (CELL, 1)]
        assert groups(">>>\n<<") == [(POINTER, 3), (POINTER, -2)]

    def test_long_run_keeps_full_count(self):
        assert groups("+" * 300) == [(CELL, 300)]
        assert groups("<" * 70000) == [(POINTER, -70000)]

    def test_group_length(self):
        tokenizer = Tokenizer(SourceCursor.from_source("++-"))
        (group,) = list(tokenizer)
        assert group.length == 3


# =============================================================================
# Single Commands
# =============================================================================

class TestSingleCommands:
    """Test commands that map to one group each."""

    def test_io_and_loops(self):
        assert groups(".,[]") == [
            (CommandKind.OUTPUT, 1),
            (CommandKind.INPUT, 1),
            (CommandKind.LOOP_START, 1),
            (CommandKind.LOOP_END, 1),
        ]

    def test_repeated_single_commands_not_folded(self):
        assert groups("[[..") == [
            (CommandKind.LOOP_START, 1),
            (CommandKind.LOOP_START, 1),
            (CommandKind.OUTPUT, 1),
            (CommandKind.OUTPUT, 1),
        ]


# =============================================================================
# Comments and Input Forms
# =============================================================================

class TestComments:
    """Test that non-command bytes are ignored."""

    @pytest.mark.parametrize("source", ["", "hello world", "\n\t\r", b"\x00\xff"])
    def test_no_commands(self, source):
        assert groups(source) == []

    def test_comment_text_between_commands(self):
        assert groups("add two: ++ print: .") == [
            (CELL, 2),
            (CommandKind.OUTPUT, 1),
        ]

    def test_non_ascii_text(self):
        assert groups("héllo+") == [(CELL, 1)]

    def test_binary_stream(self):
        assert groups(io.BytesIO(b"x+y")) == [(CELL, 1)]


class TestLocationsAndCounts:
    """Test diagnostics support."""

    def test_group_location_is_first_command(self):
        tokenizer = Tokenizer(SourceCursor.from_source("ab\n +++", "p.b"))
        (group,) = list(tokenizer)
        assert str(group.location) == "p.b:2:2"

    def test_command_and_group_counts(self):
        tokenizer = Tokenizer(SourceCursor.from_source("++ [>+<-] comment"))
        list(tokenizer)
        assert tokenizer.command_count == 8
        assert tokenizer.group_count == 7
