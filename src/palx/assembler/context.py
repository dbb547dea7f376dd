"""
Assembler Context
=================

All mutable state of an assembly run lives in one AssemblerContext that
is handed to every component, instead of being spread over module-level
globals. The context is reset at the start of each pass, with the
exception of the symbol table, the memory bitmap, the binary tape and
the listing, which span the whole run.

Options
-------
AssemblerOptions holds the command line configuration. ListingOptions
and the .ENABLE/.DISABLE switches are changed by pseudo-ops while the
source is assembled, and start every pass from their defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from palx.cpu.pdp8 import CPU
from palx.errors import ErrorCode, ErrorFlags, SourceLocation
from palx.assembler.symbols import Symbol, SymbolTable

if TYPE_CHECKING:
    from palx.assembler.binary import BinaryTape
    from palx.assembler.bitmap import MemoryBitmap
    from palx.assembler.listing import Listing
    from palx.assembler.literals import LiteralPool
    from palx.assembler.source import MacroExpansion


# =============================================================================
# Constants
# =============================================================================

LINES_PER_PAGE = 60
COLUMNS_PER_PAGE = 120

INITIAL_PC = 0o200


# =============================================================================
# Options
# =============================================================================

@dataclass
class AssemblerOptions:
    """
    Configuration for an assembly run.

    Attributes:
        lines_per_page: Listing page length
        columns_per_page: Listing page width
        os8_sixbit: Use OS/8 six-bit coding (ch & 077) instead of the
                    DECsystem-10 coding (ch - 040)
        ascii_mark: Set the mark (0200) bit of every ASCII character
    """
    lines_per_page: int = LINES_PER_PAGE
    columns_per_page: int = COLUMNS_PER_PAGE
    os8_sixbit: bool = False
    ascii_mark: bool = False


@dataclass
class ListingOptions:
    """
    Switches controlled by .LIST and .NOLIST.

    Attributes:
        macro_text: MET - list macro expansion lines
        text_binary: TXB - list every word generated by text pseudo-ops
        toc: TOC - table of contents
        memory_map: MAP - memory usage bitmap
        symbols: SYM - symbol table and cross reference
        paginate: PAG - page headers and form feeds
    """
    macro_text: bool = True
    text_binary: bool = True
    toc: bool = True
    memory_map: bool = True
    symbols: bool = True
    paginate: bool = True

    def reset(self) -> None:
        self.macro_text = self.text_binary = self.toc = True
        self.memory_map = self.symbols = self.paginate = True


@dataclass
class StackOpcodes:
    """Stack instructions configured by .STACK."""
    push: int = 0
    pop: int = 0
    pushj: int = 0
    popj: int = 0


@dataclass(frozen=True)
class LineMark:
    """Where a source statement started in one pass."""
    line: int
    field: int
    pc: int


# =============================================================================
# Assembler Context
# =============================================================================

class AssemblerContext:
    """
    State shared by every part of the assembler.

    Attributes:
        options: Command line configuration
        filename: Source file name used in locations and the listing
        symbols: The symbol table (kept across passes)
        errors: Error letters of the current line and the error count
        list_options: .LIST / .NOLIST switches
        pass_number: 1 or 2
        field: Current memory field (0-7)
        pc: Location counter within the field
        cpu: Processor selected with .IM6100 / .HD6120
        os8_sixbit: Current .ENABLE OS8 setting
        ascii_mark: Current .ENABLE ASR setting
        generated_label: Counter for $nnnnn macro labels
        stack: Stack opcodes from .STACK
        macro_stack: Active macro expansions, innermost last
        source_line: Number of the last line read from the file
        source_text: Text of the current logical line
        line_marks: Field and PC at the start of each file line
    """

    def __init__(
        self,
        options: AssemblerOptions,
        filename: str,
        symbols: SymbolTable,
        literals: LiteralPool,
        bitmap: MemoryBitmap,
        binary: BinaryTape,
        listing: Listing,
    ):
        self.options = options
        self.filename = filename
        self.symbols = symbols
        self.literals = literals
        self.bitmap = bitmap
        self.binary = binary
        self.listing = listing
        self.errors = ErrorFlags()
        self.list_options = listing.options

        self.pass_number = 1
        self.field = 0
        self.pc = INITIAL_PC
        self.cpu = CPU.NONE
        self.os8_sixbit = options.os8_sixbit
        self.ascii_mark = options.ascii_mark
        self.generated_label = 0
        self.stack = StackOpcodes()
        self.macro_stack: list[MacroExpansion] = []
        self.source_line = 0
        self.source_text = ""
        self.line_marks: list[LineMark] = []

    def reset_for_pass(self, pass_number: int) -> None:
        """Put everything except the symbol table back to its initial state."""
        self.pass_number = pass_number
        self.field = 0
        self.pc = INITIAL_PC
        self.cpu = CPU.NONE
        self.os8_sixbit = self.options.os8_sixbit
        self.ascii_mark = self.options.ascii_mark
        self.generated_label = 0
        self.stack = StackOpcodes()
        self.macro_stack = []
        self.source_line = 0
        self.source_text = ""
        self.line_marks = []
        self.errors.reset()
        self.list_options.reset()
        self.literals.reset(self.pc + 0o200)
        self.binary.reset_for_pass()
        self.listing.new_page = True

    # -------------------------------------------------------------------------
    # Convenience
    # -------------------------------------------------------------------------

    @property
    def pass2(self) -> bool:
        return self.pass_number == 2

    @property
    def in_macro(self) -> bool:
        return bool(self.macro_stack)

    @property
    def location(self) -> SourceLocation:
        return SourceLocation(self.filename, self.source_line)

    def flag(self, code: ErrorCode) -> bool:
        """Flag an error letter on the current line."""
        return self.errors.flag(code)

    def reference(self, symbol: Symbol, is_definition: bool = False) -> None:
        """Add a cross reference for the current line (pass 2 only)."""
        if self.pass2:
            symbol.add_reference(self.source_line, is_definition)

    def mark_line(self) -> None:
        """Remember where the statement just read starts."""
        self.line_marks.append(LineMark(self.source_line, self.field, self.pc))

    def list_line(
        self,
        field: Optional[int] = None,
        address: Optional[int] = None,
        code: Optional[int] = None,
        source: bool = True,
    ) -> None:
        """
        List the current line in pass 2; a no-op in pass 1.

        The location column is printed only when both field and address
        are given. Any error letters collected so far are attached to
        this line and then cleared.
        """
        if not self.pass2:
            return
        self.listing.list_line(
            line=self.source_line,
            flags=self.errors.take(),
            field=field,
            address=address,
            code=code,
            source_text=self.source_text if source else None,
            in_macro=self.in_macro,
        )

    def list_location(self) -> None:
        """List the current line with the current field and PC."""
        self.list_line(self.field, self.pc)
