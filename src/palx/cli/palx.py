"""
palx - PDP-8 / IM6100 / HD6120 Assembler Command-Line Interface
===============================================================

This module implements the command-line interface for the PALX cross
assembler. Every run writes both a listing and a binary loader tape.

Usage Examples
--------------
Basic assembly (reads monitor.plx, writes monitor.lst and monitor.bin):
    $ palx monitor

Explicit output files:
    $ palx monitor.plx -l listings/monitor.lst -b rom

Wide listing pages, OS/8 six-bit text:
    $ palx -w 132 -p 66 -8 monitor.plx

File Name Defaults
------------------
A source name without an extension gets ".plx". The listing and binary
files default to the source name with ".lst" and ".bin", in the source
directory. A listing or binary name given without a directory or an
extension takes the missing parts from the source file.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

import click

from palx import __version__
from palx.assembler import Assembler, AssemblerOptions
from palx.assembler.context import COLUMNS_PER_PAGE, LINES_PER_PAGE
from palx.cli.errors import ExitCode, handle_cli_exception

logger = logging.getLogger(__name__)


SOURCE_SUFFIX = ".plx"
LISTING_SUFFIX = ".lst"
BINARY_SUFFIX = ".bin"


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if verbose else "%(message)s",
    )


def default_file(name: Optional[str], related: Optional[Path], suffix: str) -> Path:
    """
    Fill in the missing parts of a file name.

    Args:
        name: File name as given, or None
        related: File whose directory and base name are used when the
                 name does not have them
        suffix: Extension used when the name has none

    Returns:
        The completed path
    """
    directory, base = os.path.split(name or "")
    stem, extension = os.path.splitext(base)
    if related is not None:
        related_directory, related_base = os.path.split(str(related))
        related_stem = os.path.splitext(related_base)[0]
    else:
        related_directory = related_stem = ""
    return Path(os.path.join(directory or related_directory,
                             (stem or related_stem) + (extension or suffix)))


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument("source")
@click.option(
    "-l", "--listing",
    help="Listing file (default: source name with .lst)",
)
@click.option(
    "-b", "--binary",
    help="Binary loader file (default: source name with .bin)",
)
@click.option(
    "-w", "--width",
    type=click.IntRange(min=1),
    default=COLUMNS_PER_PAGE,
    show_default=True,
    help="Listing page width in columns",
)
@click.option(
    "-p", "--page-length",
    type=click.IntRange(min=1),
    default=LINES_PER_PAGE,
    show_default=True,
    help="Listing page length in lines",
)
@click.option(
    "-8", "--os8", "os8_sixbit",
    is_flag=True,
    help="Use OS/8 coding for .SIXBIT/.SIXBIZ",
)
@click.option(
    "-a", "--asr", "ascii_mark",
    is_flag=True,
    help='Use ASR-33 "always mark" ASCII',
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="palx")
def main(
    source: str,
    listing: Optional[str],
    binary: Optional[str],
    width: int,
    page_length: int,
    os8_sixbit: bool,
    ascii_mark: bool,
    verbose: bool,
) -> None:
    """
    Assemble PDP-8, IM6100 or HD6120 source code.

    SOURCE is the source file; ".plx" is added if it has no extension.

    Lines with errors are repeated on standard error, and the exit status
    is 1 if any line was flagged.

    \b
    Examples:
        palx monitor                 # monitor.plx -> monitor.lst, monitor.bin
        palx monitor -b rom.bin      # name the binary file
        palx -8 -a monitor           # OS/8 SIXBIT, mark bit on ASCII
    """
    setup_logging(verbose)

    try:
        source_path = default_file(source, None, SOURCE_SUFFIX)
        if not source_path.is_file():
            raise FileNotFoundError(f"unable to read {source_path}")
        source_path = source_path.resolve()
        listing_path = default_file(listing, source_path, LISTING_SUFFIX)
        binary_path = default_file(binary, source_path, BINARY_SUFFIX)

        options = AssemblerOptions(
            lines_per_page=page_length,
            columns_per_page=width,
            os8_sixbit=os8_sixbit,
            ascii_mark=ascii_mark,
        )
        asm = Assembler(options, echo=lambda line: click.echo(line, err=True))
        logger.debug("palx %s: %s -> %s, %s", __version__, source_path, listing_path, binary_path)

        asm.assemble_file(source_path)
        asm.write_listing(listing_path)
        asm.write_binary(binary_path)

    except Exception as e:
        handle_cli_exception(e, verbose, "Assembly")

    if asm.has_errors():
        sys.exit(ExitCode.BUILD_ERROR)


if __name__ == "__main__":
    main()
