"""
bfc - Brainfuck Compiler Command-Line Interface
===============================================

This module implements the command-line interface for the compiler.

Usage Examples
--------------
Basic compilation:
    $ bfc hello.b                 # writes hello.COM

With output file:
    $ bfc hello.b -o HELLO.COM

With listing:
    $ bfc hello.b -l hello.lst

Smaller cell area and a progress indicator:
    $ bfc -m 4096 --progress hello.b

Verbose mode:
    $ bfc -v hello.b
"""

from pathlib import Path
from typing import Optional

import click

from bfc80 import __version__
from bfc80.cli.errors import handle_cli_exception, setup_logging
from bfc80.compiler import BrainfuckCompiler, CompilerOptions


def default_output_path(input_file: Path) -> Path:
    """
    Derive the .COM name for a source file.

    The final extension is replaced by .COM, or .COM is appended when the
    name has none (hello.b -> hello.COM, hello -> hello.COM).
    """
    return input_file.with_suffix(".COM")


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output .COM file (default: input with .COM extension)",
)
@click.option(
    "-l", "--listing",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write a disassembly listing of the generated code",
)
@click.option(
    "-m", "--memory-size",
    type=click.IntRange(1, 0xFFFF),
    default=None,
    help="Number of cells cleared at startup. Default: 30000 "
         "(or $BFC80_MEMORY_SIZE).",
)
@click.option(
    "--stack-depth",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum loop nesting depth. Default: 1024 (or $BFC80_STACK_DEPTH).",
)
@click.option(
    "--allow-unclosed",
    is_flag=True,
    help="Accept '[' left open at end of input instead of failing. "
         "The open loop's exit jumps to warm boot.",
)
@click.option(
    "--progress",
    is_flag=True,
    help="Print '+' each time the output buffer grows",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="bfc")
def main(
    input_file: Path,
    output: Optional[Path],
    listing: Optional[Path],
    memory_size: Optional[int],
    stack_depth: Optional[int],
    allow_unclosed: bool,
    progress: bool,
    verbose: bool,
) -> None:
    """
    Compile a Brainfuck program to a CP/M .COM file.

    INPUT_FILE is the Brainfuck source. Bytes other than the eight
    commands are ignored.

    \b
    Examples:
        bfc hello.b                  # Outputs hello.COM
        bfc hello.b -o HELLO.COM     # Specify output file
        bfc -l hello.lst hello.b     # Also write a listing
        bfc -m 4096 hello.b          # Clear only 4096 cells

    The generated program needs a Z80 (it uses JR) and 30000 bytes of
    TPA after the code by default.
    """
    setup_logging(verbose)

    if output is None:
        output = default_output_path(input_file)

    options = CompilerOptions.from_env()
    if memory_size is not None:
        options.memory_size = memory_size
    if stack_depth is not None:
        options.stack_depth = stack_depth
    options.allow_unclosed_loops = allow_unclosed

    on_grow = (lambda capacity: click.echo("+", nl=False)) if progress else None
    compiler = BrainfuckCompiler(options, on_grow=on_grow)

    try:
        if verbose:
            click.echo(f"Compiling {input_file}...")
            click.echo(f"Cells: {options.memory_size}, max nesting: {options.stack_depth}")

        image = compiler.compile_file(input_file)
        if progress:
            click.echo()

        # Listing first: a failure must not leave a .COM behind
        if listing:
            compiler.write_listing(image, listing)
            if verbose:
                click.echo(f"Wrote listing to {listing}")

        compiler.write_com(image, output)

        if verbose:
            stats = image.stats
            click.echo(f"Commands: {stats.commands} ({stats.groups} groups)")
            click.echo(f"Loops: {stats.loops} (max depth {stats.max_depth})")
            click.echo(f"Cells at ${image.cell_base:04X}")
            if stats.open_loops:
                click.echo(f"Warning: {stats.open_loops} loop(s) left open")

        click.echo(f"Compiled {input_file} -> {output} ({image.size} bytes)")

    except Exception as e:
        if progress:
            click.echo()
        handle_cli_exception(e, verbose=verbose)


if __name__ == "__main__":
    main()
