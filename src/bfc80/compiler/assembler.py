"""
Image Assembler
===============

Drives a single translation pass and produces the finished .COM image.

The assembler moves through three states:

    PREAMBLE -> TRANSLATING -> DONE

Image Layout
------------
```
Offset  Size  Contents
------  ----  --------
0       3     LD HL,cells        ; cells = load_base + image size (patched)
3       3     LD DE,memory_size
6       2     clear: LD (HL),0
8       1     INC HL
9       1     DEC DE
10      1     LD A,D
11      1     OR E
12      3     JP NZ,clear
15      3     LD HL,cells        ; patched
18      n     translated program
18+n    3     JP $0000           ; warm boot
```

The cell area starts immediately after the last byte of the image, so its
address is only known once the postamble has been emitted. The two LD HL
operands are patched at that point.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional

from bfc80.compiler.emitter import ByteEmitter
from bfc80.compiler.options import CompilerOptions
from bfc80.compiler.stack import BranchTargetStack
from bfc80.compiler.templates import InstructionTemplates
from bfc80.compiler.tokenizer import CommandKind, RunGroup, SourceCursor, Tokenizer
from bfc80.cpu.cpm import ADDRESS_SPACE, WARM_BOOT
from bfc80.cpu.z80 import Opcode
from bfc80.errors import ImageTooLargeError, UnclosedLoopError

logger = logging.getLogger(__name__)

# Offsets of the two cell-pointer operands in the preamble
CELL_POINTER_FIELDS = (1, 16)
CLEAR_LOOP_OFFSET = 6
PREAMBLE_SIZE = 18
POSTAMBLE_SIZE = 3


class AssemblerState(Enum):
    """Translation phases."""
    PREAMBLE = "preamble"
    TRANSLATING = "translating"
    DONE = "done"


@dataclass
class CompileStats:
    """
    Statistics collected during a translation.

    Attributes:
        commands: Brainfuck command bytes read
        groups: Folded groups dispatched to templates
        loops: Loops translated
        max_depth: Deepest loop nesting seen
        open_loops: Loops still open at end of input (legacy mode only)
        growth_events: Output buffer growth events
    """
    commands: int = 0
    groups: int = 0
    loops: int = 0
    max_depth: int = 0
    open_loops: int = 0
    growth_events: int = 0


@dataclass(frozen=True)
class CompiledImage:
    """
    A finished .COM image.

    Attributes:
        code: Image bytes, loaded at load_base
        load_base: Absolute address of code[0]
        memory_size: Cells zeroed by the preamble
        filename: Source name the image was compiled from
        stats: Translation statistics
    """
    code: bytes
    load_base: int
    memory_size: int
    filename: str = "<input>"
    stats: CompileStats = field(default_factory=CompileStats)

    def __len__(self) -> int:
        return len(self.code)

    @property
    def size(self) -> int:
        return len(self.code)

    @property
    def cell_base(self) -> int:
        """Absolute address of the first cell."""
        return self.load_base + len(self.code)

    @property
    def body(self) -> bytes:
        """Translated program without preamble and postamble."""
        return self.code[PREAMBLE_SIZE:len(self.code) - POSTAMBLE_SIZE]


class ImageAssembler:
    """
    Runs one translation: preamble, body, postamble and size backpatch.

    A new assembler (and therefore a fresh emitter, stack and template set)
    is used for every translation.

    Usage:
        assembler = ImageAssembler(CompilerOptions())
        image = assembler.assemble(SourceCursor.from_source("+++."))
    """

    def __init__(
        self,
        options: Optional[CompilerOptions] = None,
        on_grow: Optional[Callable[[int], None]] = None,
    ):
        self.options = options or CompilerOptions()
        self.emitter = ByteEmitter(self.options.growth_increment, on_grow)
        self.stack = BranchTargetStack(self.options.stack_depth)
        self.templates = InstructionTemplates(
            self.emitter, self.stack, self.options.load_base
        )
        self.state = AssemblerState.PREAMBLE
        self.stats = CompileStats()

    # =========================================================================
    # Driver
    # =========================================================================

    def assemble(self, cursor: SourceCursor) -> CompiledImage:
        """
        Translate a whole source and return the finished image.

        Raises:
            CompilerError: On the first structural or resource error
        """
        tokenizer = Tokenizer(cursor)
        self.emit_preamble()
        self.translate(tokenizer)
        self.stats.commands = tokenizer.command_count
        code = self.finish()
        return CompiledImage(
            code=code,
            load_base=self.options.load_base,
            memory_size=self.options.memory_size,
            filename=cursor.filename,
            stats=self.stats,
        )

    # =========================================================================
    # PREAMBLE
    # =========================================================================

    def emit_preamble(self) -> None:
        """Emit the cell-clearing preamble with placeholder pointers."""
        self._expect(AssemblerState.PREAMBLE)
        emit = self.emitter.append
        emit_word = self.emitter.append_word

        emit(Opcode.LD_HL_NN)           # LD HL,cells
        emit_word(0)
        emit(Opcode.LD_DE_NN)           # LD DE,memory_size
        emit_word(self.options.memory_size)
        emit(Opcode.LD_MEM_HL_N)        # clear: LD (HL),0
        emit(0)
        emit(Opcode.INC_HL)
        emit(Opcode.DEC_DE)
        emit(Opcode.LD_A_D)
        emit(Opcode.OR_E)
        emit(Opcode.JP_NZ)              # JP NZ,clear
        emit_word(self.templates.address_of(CLEAR_LOOP_OFFSET))
        emit(Opcode.LD_HL_NN)           # LD HL,cells
        emit_word(0)

        self.state = AssemblerState.TRANSLATING

    # =========================================================================
    # TRANSLATING
    # =========================================================================

    def translate(self, groups: Iterable[RunGroup]) -> None:
        """Dispatch folded groups to the code templates."""
        self._expect(AssemblerState.TRANSLATING)
        for group in groups:
            self.dispatch(group)

    def dispatch(self, group: RunGroup) -> None:
        """Generate code for one folded group."""
        self._expect(AssemblerState.TRANSLATING)
        logger.debug(
            f"{group.location}: {group.kind.value} {group.count} "
            f"at ${self.templates.address_of(self.emitter.current_offset()):04X}"
        )
        templates = self.templates
        match group.kind:
            case CommandKind.CELL:
                templates.cell_delta(group.count)
            case CommandKind.POINTER:
                templates.pointer_delta(group.count)
            case CommandKind.OUTPUT:
                templates.output()
            case CommandKind.INPUT:
                templates.input()
            case CommandKind.LOOP_START:
                templates.loop_start(group.location)
            case CommandKind.LOOP_END:
                templates.loop_end(group.location)
        self.stats.groups += 1

    # =========================================================================
    # DONE
    # =========================================================================

    def finish(self) -> bytes:
        """
        Emit the postamble, patch the cell pointer and return the image.

        Raises:
            UnclosedLoopError: If loops are still open (unless allowed)
            ImageTooLargeError: If the image runs past $FFFF
        """
        self._expect(AssemblerState.TRANSLATING)

        if not self.stack.is_empty():
            if not self.options.allow_unclosed_loops:
                raise UnclosedLoopError(self.stack.depth, self.stack.innermost_location())
            logger.warning(
                f"{self.stack.depth} loop(s) still open at end of input; "
                f"their exits jump to warm boot"
            )
            self.stats.open_loops = self.stack.depth

        self.emitter.append(Opcode.JP)
        self.emitter.append_word(WARM_BOOT)

        size = self.emitter.current_offset()
        load_base = self.options.load_base
        if load_base + size > ADDRESS_SPACE:
            raise ImageTooLargeError(size, load_base)
        if load_base + size + self.options.memory_size > ADDRESS_SPACE:
            logger.warning(
                f"Cell area ${load_base + size:04X}+{self.options.memory_size} "
                f"runs past the top of memory"
            )

        cell_base = load_base + size
        for offset in CELL_POINTER_FIELDS:
            self.emitter.patch_word(offset, cell_base)

        self.stats.loops = self.templates.loop_count
        self.stats.max_depth = self.stack.max_depth
        self.stats.growth_events = self.emitter.growth_events
        self.state = AssemblerState.DONE

        logger.info(
            f"Generated {size} bytes, {self.stats.loops} loops, "
            f"cells at ${cell_base:04X}"
        )
        return self.emitter.to_bytes()

    def _expect(self, state: AssemblerState) -> None:
        if self.state is not state:
            raise RuntimeError(
                f"assembler is in state {self.state.value}, expected {state.value}"
            )
