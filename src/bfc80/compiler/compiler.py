"""
Brainfuck Compiler Main Module
==============================

This module provides the main compiler interface. It reads a source,
runs one ImageAssembler pass over it and hands the finished image to
the output writer.

    Source -> Tokenize/Fold -> Templates -> Image -> .COM file

Usage
-----
Command line:
    $ bfc hello.b -o HELLO.COM

Programmatic:
    >>> from bfc80 import BrainfuckCompiler
    >>> compiler = BrainfuckCompiler()
    >>> image = compiler.compile_source("+++.")
    >>> compiler.write_com(image, "THREE.COM")

Error Handling
--------------
The first error aborts the translation. No image is returned and nothing
is written, and write_com() never leaves a partially written file behind.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Callable, Optional, Union

from bfc80.compiler.assembler import CompiledImage, ImageAssembler, PREAMBLE_SIZE
from bfc80.compiler.options import CompilerOptions
from bfc80.compiler.tokenizer import SourceCursor
from bfc80.disassembler import Z80Disassembler
from bfc80.errors import ImageWriteError, ListingWriteError

logger = logging.getLogger(__name__)

Source = Union[bytes, bytearray, str, BinaryIO]


def _current_umask() -> int:
    """Return the process umask (it can only be read by setting it)."""
    umask = os.umask(0)
    os.umask(umask)
    return umask


class BrainfuckCompiler:
    """
    Brainfuck to CP/M .COM compiler.

    Example:
        compiler = BrainfuckCompiler(CompilerOptions(memory_size=4096))
        image = compiler.compile_file("hello.b")
        compiler.write_com(image, "HELLO.COM")

    Attributes:
        options: Compiler configuration
        on_grow: Optional progress callback, called with the new buffer
                 capacity whenever the output buffer grows
    """

    def __init__(
        self,
        options: Optional[CompilerOptions] = None,
        on_grow: Optional[Callable[[int], None]] = None,
    ):
        self.options = options or CompilerOptions()
        self.on_grow = on_grow

    def compile_source(self, source: Source, filename: str = "<input>") -> CompiledImage:
        """
        Compile Brainfuck source.

        Args:
            source: Source bytes, text, or a readable binary stream
            filename: Source name for error messages

        Raises:
            CompilerError: If translation fails
        """
        cursor = SourceCursor.from_source(source, filename)
        image = ImageAssembler(self.options, self.on_grow).assemble(cursor)
        logger.debug(
            f"{filename}: {image.stats.commands} commands folded into "
            f"{image.stats.groups} groups"
        )
        return image

    def compile_file(self, path: Union[str, Path]) -> CompiledImage:
        """
        Compile a source file, reading it one byte at a time.

        Raises:
            FileNotFoundError / PermissionError: If the file can't be read
            CompilerError: If translation fails
        """
        path = Path(path)
        with open(path, "rb") as f:
            return self.compile_source(f, str(path))

    # =========================================================================
    # Output
    # =========================================================================

    @staticmethod
    def write_com(image: CompiledImage, path: Union[str, Path]) -> None:
        """
        Write an image to a .COM file.

        The image is written to a temporary file in the destination directory
        and renamed into place, so the destination either holds the complete
        image or is left untouched.

        Raises:
            ImageWriteError: If the file can't be created or written in full
        """
        path = Path(path)
        data = image.code
        try:
            tmp = tempfile.NamedTemporaryFile(
                buffering=0,
                dir=path.parent,
                prefix=f".{path.name}.",
                suffix=".tmp",
                delete=False,
            )
        except OSError as e:
            raise ImageWriteError(str(path), len(data), reason=e.strerror) from e

        try:
            with tmp:
                written = tmp.write(data)
                if written != len(data):
                    raise ImageWriteError(str(path), len(data), written)
            # NamedTemporaryFile creates the file 0600
            os.chmod(tmp.name, 0o666 & ~_current_umask())
            os.replace(tmp.name, path)
        except OSError as e:
            os.unlink(tmp.name)
            raise ImageWriteError(str(path), len(data), reason=e.strerror) from e
        except ImageWriteError:
            os.unlink(tmp.name)
            raise

        logger.info(f"Wrote {len(data)} bytes to {path}")

    # =========================================================================
    # Listing
    # =========================================================================

    @staticmethod
    def get_listing(image: CompiledImage) -> str:
        """
        Get a listing of an image as a string.

        Returns:
            Header, disassembly of every instruction, and a summary
        """
        disasm = Z80Disassembler()
        body_start = image.load_base + PREAMBLE_SIZE
        postamble_start = image.load_base + image.size - 3

        lines = []
        lines.append(f"bfc80 Listing: {image.filename}")
        lines.append("=" * 60)
        lines.append("")
        lines.append("Addr   Code      Instruction")
        lines.append("-" * 60)
        for instr in disasm.disassemble(image.code, image.load_base):
            if instr.address == image.load_base:
                lines.append("; preamble")
            elif instr.address == body_start and body_start < postamble_start:
                lines.append("; program")
            elif instr.address == postamble_start:
                lines.append("; postamble")
            lines.append(str(instr))
        lines.append("")
        lines.append("Summary")
        lines.append("-" * 30)
        stats = image.stats
        lines.append(f"Image size:   {image.size} bytes at ${image.load_base:04X}")
        lines.append(f"Cells:        {image.memory_size} at ${image.cell_base:04X}")
        lines.append(f"Commands:     {stats.commands} ({stats.groups} groups)")
        lines.append(f"Loops:        {stats.loops} (max depth {stats.max_depth})")
        return "\n".join(lines)

    def write_listing(self, image: CompiledImage, path: Union[str, Path]) -> None:
        """
        Write the listing of an image to a text file.

        Raises:
            ListingWriteError: If the file can't be created or written
        """
        try:
            with open(path, "w") as f:
                f.write(self.get_listing(image))
                f.write("\n")
        except OSError as e:
            raise ListingWriteError(str(path), e.strerror) from e


def compile_bf(source: Source, options: Optional[CompilerOptions] = None) -> bytes:
    """
    Convenience function: compile source and return the image bytes.

    Example:
        >>> code = compile_bf("+++.")
        >>> len(code)
        47
    """
    return BrainfuckCompiler(options).compile_source(source).code
