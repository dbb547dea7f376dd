"""
PALX - PDP-8 / IM6100 / HD6120 Cross Assembler
==============================================

PALX assembles PAL style source code for the DEC PDP-8 and for the
Intersil IM6100 and Harris HD6120 microprocessors, which implement the
PDP-8 instruction set. It writes a binary tape for the BIN loader and a
paginated listing with a symbol cross reference.

Quick Start
-----------
Assemble a program:
    >>> from palx import Assembler
    >>> asm = Assembler()
    >>> asm.assemble_file("monitor.plx")
    >>> asm.write_binary("monitor.bin")
    >>> asm.write_listing("monitor.lst")

Or use the command-line tool:
    $ palx monitor.plx

Reference Documentation
-----------------------
- PDP-8 Family Users Handbook (DEC)
- Intersil IM6100 CMOS 12 Bit Microprocessor data sheet
- Harris HD-6120 High Speed CMOS PDP-8 Compatible Microprocessor data sheet

Version History
---------------
1.0.0 - Initial release
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from palx.assembler import Assembler, AssemblerOptions, assemble, assemble_file
from palx.cpu import CPU
from palx.errors import (
    PalxError,
    AssemblerError,
    LineError,
    ScanError,
    ExpressionError,
    FatalAssemblyError,
    SymbolTableFullError,
    MacroOverflowError,
    UnterminatedBlockError,
    ErrorCode,
    SourceLocation,
)

__all__ = [
    "__version__",
    "Assembler",
    "AssemblerOptions",
    "assemble",
    "assemble_file",
    "CPU",
    "PalxError",
    "AssemblerError",
    "LineError",
    "ScanError",
    "ExpressionError",
    "FatalAssemblyError",
    "SymbolTableFullError",
    "MacroOverflowError",
    "UnterminatedBlockError",
    "ErrorCode",
    "SourceLocation",
]
