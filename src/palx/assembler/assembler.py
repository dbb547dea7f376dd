"""
PALX Assembler - Main Interface
===============================

This module provides the Assembler class, the primary interface for
assembling PDP-8, IM6100 and HD6120 source code. It runs the two-pass
code generator and gives access to the binary tape, the listing, the
symbol table and the diagnostics.

Example Usage
-------------
>>> from palx.assembler import Assembler
>>>
>>> asm = Assembler()
>>> asm.assemble_string('''
...         .ORG    0200
... START:  CLA CLL
...         TAD     [5]
...         JMP     START
... ''')
>>>
>>> oct(asm.get_memory()[0o200])
'0o7300'
>>> asm.write_binary("hello.bin")
>>> asm.write_listing("hello.lst")

Command-Line Usage
------------------
    $ palx hello.plx -l hello.lst -b hello.bin

Options:
    -l, --listing FILE     Listing file (default: source name with .lst)
    -b, --binary FILE      Binary file (default: source name with .bin)
    -w, --width N          Listing page width in columns
    -p, --page-length N    Listing page length in lines
    -8, --os8              OS/8 coding for .SIXBIT/.SIXBIZ
    -a, --asr              ASR-33 "always mark" ASCII
    -v, --verbose          Verbose output
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from palx.assembler.codegen import CodeGenerator, PhaseError
from palx.assembler.context import AssemblerOptions
from palx.assembler.listing import ListingEntry
from palx.assembler.symbols import Symbol, SymbolKind

logger = logging.getLogger(__name__)

# Encoding of source and listing files; every byte maps to one character
SOURCE_ENCODING = "latin-1"


class Assembler:
    """
    Main PALX assembler class.

    Each call to assemble_string() or assemble_file() runs a complete,
    independent assembly; the result methods describe the most recent one.

    Attributes:
        options: Assembly configuration
    """

    def __init__(
        self,
        options: Optional[AssemblerOptions] = None,
        timestamp: Optional[datetime] = None,
        echo: Optional[Callable[[str], None]] = None,
    ):
        """
        Initialize the assembler.

        Args:
            options: Page size and text coding options
            timestamp: Assembly time for listings and the \\d / \\h
                       escapes (default: the time of each assembly)
            echo: Called with every listing line that carries errors
        """
        self.options = options or AssemblerOptions()
        self._timestamp = timestamp
        self._echo = echo
        self._codegen: Optional[CodeGenerator] = None
        self._source_file: Optional[Path] = None

    # =========================================================================
    # Assembly Methods
    # =========================================================================

    def assemble_string(self, source: str, filename: str = "<input>") -> bytes:
        """
        Assemble source code from a string.

        Args:
            source: Assembly source code
            filename: Name shown in the listing header

        Returns:
            The binary loader tape

        Raises:
            FatalAssemblyError: If the assembly had to be stopped
        """
        self._codegen = CodeGenerator(self.options, filename, self._timestamp, self._echo)
        binary = self._codegen.generate(source)
        logger.debug("%s: %d words loaded", filename, len(self._codegen.get_memory()))
        return binary

    def assemble_file(self, filepath: str | Path) -> bytes:
        """
        Assemble a source file.

        Args:
            filepath: Path to the source file

        Returns:
            The binary loader tape

        Raises:
            FatalAssemblyError: If the assembly had to be stopped
            FileNotFoundError: If the source file does not exist
        """
        filepath = Path(filepath).resolve()
        self._source_file = filepath
        source = filepath.read_text(encoding=SOURCE_ENCODING)
        return self.assemble_string(source, str(filepath))

    def _require_result(self) -> CodeGenerator:
        if self._codegen is None:
            raise RuntimeError("nothing has been assembled yet")
        return self._codegen

    # =========================================================================
    # Output Methods
    # =========================================================================

    def get_binary(self) -> bytes:
        """Get the binary loader tape, leader and checksum included."""
        return self._require_result().binary.getvalue()

    def get_memory(self) -> dict[int, int]:
        """
        Get the loaded memory image.

        Returns:
            Dictionary mapping 15-bit addresses (field << 12 | address)
            to 12-bit words
        """
        return self._require_result().get_memory()

    def get_listing(self) -> str:
        """Get the complete listing as a string."""
        return self._require_result().get_listing()

    def get_listing_entries(self) -> list[ListingEntry]:
        """Get the program lines of the listing as structured entries."""
        return list(self._require_result().listing.entries)

    def get_symbols(self) -> dict[str, int]:
        """
        Get the user defined tags and equates.

        Returns:
            Dictionary mapping names to values; tags include their field
        """
        symbols = self._require_result().symbols
        return {
            symbol.name: symbol.value
            for symbol in symbols.sorted_symbols()
            if symbol.kind in (SymbolKind.TAG, SymbolKind.EQUATE)
        }

    def get_symbol(self, name: str) -> Optional[Symbol]:
        """Look up any symbol, built-in or user defined, by name."""
        return self._require_result().symbols.lookup(name.upper())

    def get_program_break(self) -> int:
        """Get the 15-bit location following the last statement."""
        return self._require_result().program_break

    def phase_errors(self) -> list[PhaseError]:
        """Get the lines whose location differed between the two passes."""
        return list(self._require_result().phase_errors)

    def write_listing(self, filepath: str | Path) -> None:
        """
        Write the listing file.

        Args:
            filepath: Output file path
        """
        Path(filepath).write_text(self.get_listing(), encoding=SOURCE_ENCODING)
        logger.debug("wrote listing to %s", filepath)

    def write_binary(self, filepath: str | Path) -> None:
        """
        Write the binary loader tape.

        Args:
            filepath: Output file path
        """
        binary = self.get_binary()
        Path(filepath).write_bytes(binary)
        logger.debug("wrote %d bytes to %s", len(binary), filepath)

    # =========================================================================
    # Error Handling
    # =========================================================================

    def get_diagnostics(self) -> list[str]:
        """Get every listing line that carries error letters."""
        return list(self._require_result().listing.diagnostics)

    def error_count(self) -> int:
        """Get the number of error letters flagged in pass 2."""
        return self._require_result().error_count

    def has_errors(self) -> bool:
        """
        Check if assembly produced errors.

        Returns:
            True if any line was flagged
        """
        return self.error_count() > 0

    def get_error_report(self) -> str:
        """
        Get a formatted error report.

        Returns:
            The flagged listing lines followed by the error count
        """
        lines = self.get_diagnostics()
        count = self.error_count()
        lines.append(f"{count} error(s) detected" if count else "No errors detected")
        return "\n".join(lines)


# =============================================================================
# Convenience Functions
# =============================================================================

def assemble(source: str, filename: str = "<input>",
             options: Optional[AssemblerOptions] = None) -> bytes:
    """
    Convenience function to assemble source code.

    Args:
        source: Assembly source code
        filename: Name shown in the listing
        options: Assembly options

    Returns:
        The binary loader tape
    """
    asm = Assembler(options)
    return asm.assemble_string(source, filename)


def assemble_file(filepath: str | Path,
                  options: Optional[AssemblerOptions] = None) -> bytes:
    """
    Convenience function to assemble a file.

    Args:
        filepath: Path to source file
        options: Assembly options

    Returns:
        The binary loader tape
    """
    asm = Assembler(options)
    return asm.assemble_file(filepath)
