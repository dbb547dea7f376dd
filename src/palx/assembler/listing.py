"""
Listing Generator
=================

This module writes the PALX assembly listing: the paginated program
listing produced during pass 2, followed by the summary, the memory map,
the symbol table with its cross reference and the table of contents.

Listing Line Layout
-------------------
::

    LLLLEEEE FAAAA    CCCC   source text
    |   |    |        |      |
    |   |    |        |      +- source (omitted for extra code lines)
    |   |    |        +-------- generated word, octal
    |   |    +----------------- field and address, octal
    |   +---------------------- error letters ('+' marks macro lines)
    +-------------------------- line number (blank inside macros)

Page Header
-----------
Each page starts with the assembler banner, the date, time and page
number, then the current title (from .TITLE) and the source file name.
Pages are separated by form feeds. Pagination can be turned off with
.NOLIST PAG, in which case no headers are written at all.

Reference
---------
- DEC PAL8 listing format, as reproduced by PALX V4.23
"""

from dataclasses import dataclass
from datetime import datetime
from io import StringIO
from typing import Callable, Iterable, Optional

from palx.assembler.bitmap import FIELDS, MemoryBitmap
from palx.assembler.context import AssemblerOptions, ListingOptions
from palx.assembler.lexer import format_date, format_time
from palx.assembler.symbols import Symbol, SymbolKind


BANNER = "PALX - IM6100/HD6120 Cross Assembler V4.23 RLA "

TOC_WIDTH = 64
CREF_INDENT = 20
CREF_WIDTH = 7


def pad(text: str, width: int) -> str:
    """
    Fit a string into a fixed width column.

    A positive width left-justifies and truncates on the right, a
    negative width right-justifies and truncates on the left (so the
    tail of a long file name stays visible).
    """
    if width > 0:
        return text[:width].ljust(width)
    width = -width
    if width == 0:
        return ""
    return text[-width:].rjust(width)


@dataclass(frozen=True)
class TocEntry:
    """A table of contents line."""
    title: str
    page: int


@dataclass(frozen=True)
class ListingEntry:
    """
    One line of the program listing, as structured data.

    Attributes:
        line: Source line number
        flags: Error letters
        field: Memory field, when a location is shown
        address: Location, when shown
        code: Generated word, when shown
        source: Source text, when shown
        in_macro: True for macro expansion lines
    """
    line: int
    flags: str
    field: Optional[int]
    address: Optional[int]
    code: Optional[int]
    source: Optional[str]
    in_macro: bool


class Listing:
    """
    Paginated listing writer.

    Attributes:
        options: .LIST / .NOLIST switches (shared with the context)
        title: Current page title
        pages: Pages started so far
        lines_this_page: Lines written on the current page
        new_page: Start a new page before the next line
        toc: Table of contents entries
        entries: Every program line listed, in order
        diagnostics: Listing lines that carry error letters
    """

    def __init__(
        self,
        options: AssemblerOptions,
        source_name: str,
        timestamp: datetime,
        echo: Optional[Callable[[str], None]] = None,
    ):
        self.lines_per_page = options.lines_per_page
        self.columns = options.columns_per_page
        self.source_name = source_name
        self.timestamp = timestamp
        self.options = ListingOptions()
        self.title = ""
        self.pages = 0
        self.lines_this_page = 0
        self.new_page = True
        self.toc: list[TocEntry] = []
        self.entries: list[ListingEntry] = []
        self.diagnostics: list[str] = []
        self._echo = echo
        self._out = StringIO()

    def getvalue(self) -> str:
        return self._out.getvalue()

    def write(self, text: str) -> None:
        self._out.write(text)

    # =========================================================================
    # Pagination
    # =========================================================================

    def start_page(self) -> None:
        """Start a new page and print its header (only while paginating)."""
        if not self.options.paginate:
            return
        if self.pages > 0:
            self.write("\f")
        self.pages += 1
        date = pad(format_date(self.timestamp), -(self.columns - 68))
        self.write(f"{BANNER}{date} {format_time(self.timestamp):>8}    Page {self.pages:3d}\n")
        width = self.columns // 2
        self.write(pad(self.title, width) + pad(self.source_name, -width) + "\n")
        self.write("\n")
        self.lines_this_page = 3
        self.new_page = False

    def _count_line(self) -> None:
        self.lines_this_page += 1
        if self.lines_this_page > self.lines_per_page:
            self.start_page()

    def add_toc(self, title: str) -> None:
        """Add a table of contents entry for the page being started."""
        page = self.pages + 1 if self.new_page else self.pages
        self.toc.append(TocEntry(title, page))

    # =========================================================================
    # Program Lines
    # =========================================================================

    def format_line(
        self,
        line: int,
        flags: str,
        field: Optional[int],
        address: Optional[int],
        code: Optional[int],
        source_text: Optional[str],
        in_macro: bool,
    ) -> Optional[str]:
        """
        Format one program line.

        Returns:
            The text including its newline, or None if the line is
            suppressed (macro text while MET is disabled)
        """
        show_source = source_text is not None
        if in_macro:
            flags += "+"
            if not self.options.macro_text:
                if address is None and code is None:
                    return None
                show_source = False

        if show_source and not in_macro:
            text = f"{line:4d}{flags:<4s}"
        else:
            text = f"    {flags:<4s}"

        if field is not None and address is not None:
            text += f"{field:01o}{address:04o}"
        else:
            text += "     "
        text += "    "
        text += f"{code:04o}" if code is not None else "    "

        if show_source:
            return text + "   " + source_text
        return text + "\n"

    def list_line(
        self,
        line: int,
        flags: str,
        field: Optional[int] = None,
        address: Optional[int] = None,
        code: Optional[int] = None,
        source_text: Optional[str] = None,
        in_macro: bool = False,
    ) -> None:
        """List a program line, echoing it as a diagnostic if it has errors."""
        self.lines_this_page += 1
        if self.lines_this_page > self.lines_per_page or self.new_page:
            self.start_page()

        text = self.format_line(line, flags, field, address, code, source_text, in_macro)
        if text is None:
            return
        self.write(text)
        if in_macro and not self.options.macro_text:
            source_text = None
        self.entries.append(ListingEntry(
            line, flags, field, address, code, source_text, in_macro,
        ))
        if flags:
            diagnostic = text.rstrip("\n")
            self.diagnostics.append(diagnostic)
            if self._echo is not None:
                self._echo(diagnostic)

    # =========================================================================
    # End of Assembly Sections
    # =========================================================================

    def list_summary(self, program_break: int, error_count: int) -> None:
        self.lines_this_page += 5
        if self.lines_this_page > self.lines_per_page:
            self.start_page()
        self.write("\n\n\n")
        self.write(f"Program break is {program_break:05o}\n")
        if error_count > 0:
            self.write(f"{error_count} error(s) detected\n")
        else:
            self.write("No errors detected\n")

    def _bitmap_line(self, bitmap: MemoryBitmap, start: int) -> None:
        groups = (bitmap.bits(start + word, 8) for word in range(0, 64, 8))
        self.write(f"{start:05o}/" + "".join(" " + group for group in groups) + "\n")

    def list_bitmap(self, bitmap: MemoryBitmap) -> None:
        """List the memory map of every field that has anything loaded."""
        self.title = "Memory Map"
        self.new_page = True
        self.add_toc(self.title)
        for field in range(FIELDS):
            if bitmap.field_empty(field):
                continue
            for page in range(32):
                if page in (0, 16):
                    self.start_page()
                start = (field << 12) | (page << 7)
                self._bitmap_line(bitmap, start)
                self._bitmap_line(bitmap, start | 64)
                self.write("\n")

    def _symbol_column(self, symbol: Symbol) -> Optional[str]:
        kind = symbol.kind
        name = f"{symbol.name:<10s}"
        if kind == SymbolKind.UNDEFINED:
            return f"{name} -UDF-    "
        if kind == SymbolKind.MULTIPLY_DEFINED:
            return f"{name} -MDF-    "
        if kind == SymbolKind.TAG:
            return f"{name} {symbol.value:05o}    "
        if not symbol.is_referenced:
            return None
        if kind == SymbolKind.MACRO:
            return f"{name} -MAC-    "
        if kind == SymbolKind.PSEUDO_OP:
            return f"{name} -POP-    "
        return f"{name}  {symbol.value:04o}    "

    def list_symbols(self, symbols: Iterable[Symbol]) -> None:
        """List the symbol table with the cross reference of each symbol."""
        self.title = "Symbol Table"
        self.start_page()
        self.add_toc(self.title)
        per_line = int((self.columns - CREF_INDENT) / CREF_WIDTH)

        for symbol in symbols:
            column = self._symbol_column(symbol)
            if column is None:
                continue
            self.write(column)
            count = 0
            for ref in symbol.references:
                count += 1
                if count > per_line:
                    self.write("\n")
                    count = 1
                    self._count_line()
                    self.write(" " * CREF_INDENT)
                self.write(f"{ref.line:6d}{'*' if ref.is_definition else ' '}")
            self.write("\n")
            self._count_line()

    def list_toc(self) -> None:
        """List the table of contents, starting on an odd page."""
        if self.pages & 1:
            self.title = ""
            self.start_page()
        self.title = "Table of Contents"
        self.start_page()
        for entry in self.toc:
            text = entry.title
            if len(text) & 1:
                text += " "
            while len(text) < TOC_WIDTH:
                text += " ."
            self._count_line()
            self.write(f"\t{text}{entry.page:4d}\n")
