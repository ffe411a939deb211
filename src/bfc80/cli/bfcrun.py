"""
bfcrun - CP/M .COM Runner
=========================

Runs a compiled .COM image under the emulated CP/M console. Console
output goes to stdout; console input comes from --input or --input-file.

Usage Examples
--------------
    $ bfcrun HELLO.COM
    $ bfcrun --input "abc" ECHO.COM
    $ bfcrun --input-file data.txt --stats ROT13.COM
"""

from pathlib import Path
from typing import Optional

import click

from bfc80 import __version__
from bfc80.cli.errors import handle_cli_exception, setup_logging
from bfc80.emulator import CPMMachine, DEFAULT_MAX_CYCLES


@click.command()
@click.argument(
    "image_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-i", "--input", "input_text",
    default=None,
    help="Console input text",
)
@click.option(
    "-f", "--input-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Read console input from a file",
)
@click.option(
    "--max-cycles",
    type=click.IntRange(min=1),
    default=DEFAULT_MAX_CYCLES,
    show_default=True,
    help="Stop with an error after this many T-states",
)
@click.option(
    "--echo",
    is_flag=True,
    help="Echo console input like the real BDOS",
)
@click.option(
    "--stats",
    is_flag=True,
    help="Print cycle and instruction counts to stderr",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="bfcrun")
def main(
    image_file: Path,
    input_text: Optional[str],
    input_file: Optional[Path],
    max_cycles: int,
    echo: bool,
    stats: bool,
    verbose: bool,
) -> None:
    """
    Run a CP/M .COM file produced by bfc.

    IMAGE_FILE is loaded at $0100 and run until it jumps to $0000.
    """
    setup_logging(verbose)

    if input_text is not None and input_file is not None:
        click.echo("Error: --input and --input-file are mutually exclusive", err=True)
        raise SystemExit(2)

    try:
        if input_file is not None:
            input_data = input_file.read_bytes()
        elif input_text is not None:
            input_data = input_text.encode("latin-1")
        else:
            input_data = b""

        machine = CPMMachine(input_data, echo=echo)
        machine.load(image_file.read_bytes())
        result = machine.run(max_cycles)

        click.echo(result.output, nl=False)

        if stats:
            click.echo(
                f"{result.cycles} cycles, {result.instructions} instructions, "
                f"{result.bdos_calls} BDOS calls ({result.exit_reason.value})",
                err=True,
            )

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Runtime")


if __name__ == "__main__":
    main()
