# =============================================================================
# test_listing.py - Listing Writer Tests
# =============================================================================
# Tests for the paginated listing: program lines, page headers, the
# summary and the trailing sections written after pass 2.
# =============================================================================

import pytest

from palx.assembler.bitmap import MemoryBitmap
from palx.assembler.context import AssemblerOptions
from palx.assembler.listing import BANNER, Listing, pad
from palx.assembler.symbols import Symbol, SymbolKind


@pytest.fixture
def listing(timestamp) -> Listing:
    return Listing(AssemblerOptions(), "test.plx", timestamp)


class TestPad:
    """Test fixed width columns."""

    def test_left_justified(self):
        assert pad("AB", 4) == "AB  "
        assert pad("ABCDEF", 4) == "ABCD"

    def test_right_justified_keeps_tail(self):
        assert pad("AB", -4) == "  AB"
        assert pad("/long/path/x.plx", -5) == "x.plx"


# =============================================================================
# Program Lines
# =============================================================================

class TestProgramLines:
    """Test the layout of listed source lines."""

    def test_code_line(self, listing):
        text = listing.format_line(12, "", 0, 0o200, 0o7300, "START:  CLA CLL\n", False)
        assert text == "  12    00200    7300   START:  CLA CLL\n"

    def test_flags_after_line_number(self, listing):
        text = listing.format_line(3, "WX", 0, 0o201, 0o5000, "  JMP 1000\n", False)
        assert text.startswith("   3WX  00201    5000")

    def test_word_without_source(self, listing):
        text = listing.format_line(3, "", 1, 0o377, 5, None, False)
        assert text == "        10377    0005\n"

    def test_source_only(self, listing):
        assert listing.format_line(7, "", None, None, None, "; comment\n", False) == (
            "   7" + " " * 20 + "; comment\n"
        )

    def test_macro_lines_marked(self, listing):
        """Macro expansion lines get a + and no line number."""
        text = listing.format_line(9, "", 0, 0o200, 0o7000, "  NOP\n", True)
        assert text.startswith("    +   00200    7000")

    def test_macro_text_suppressed(self, listing):
        listing.options.macro_text = False
        assert listing.format_line(9, "", None, None, None, "  X=1\n", True) is None
        assert listing.format_line(9, "", 0, 0o200, 0o7000, "  NOP\n", True) == (
            "    +   00200    7000\n"
        )

    def test_entries_and_diagnostics(self, timestamp):
        echoed = []
        listing = Listing(AssemblerOptions(), "test.plx", timestamp, echo=echoed.append)
        listing.list_line(1, "", 0, 0o200, 0o7000, "  NOP\n")
        listing.list_line(2, "U", 0, 0o201, 0o1000, "  TAD FOO\n")
        assert len(listing.entries) == 2
        assert listing.entries[1].flags == "U"
        assert listing.diagnostics == ["   2U   00201    1000     TAD FOO"]
        assert echoed == listing.diagnostics


# =============================================================================
# Pages
# =============================================================================

class TestPagination:
    """Test page headers."""

    def test_first_line_starts_page(self, listing):
        listing.title = "Monitor"
        listing.list_line(1, "", None, None, None, "\n")
        lines = listing.getvalue().split("\n")
        assert lines[0].startswith(BANNER)
        assert "03-JUL-25" in lines[0]
        assert lines[0].endswith("Page   1")
        assert lines[1].startswith("Monitor")
        assert lines[1].endswith("test.plx")

    def test_page_length(self, timestamp):
        listing = Listing(AssemblerOptions(lines_per_page=10), "t.plx", timestamp)
        for line in range(1, 20):
            listing.list_line(line, "", None, None, None, "\n")
        assert listing.pages == 3
        assert listing.getvalue().count("\f") == 2

    def test_no_pagination(self, listing):
        listing.options.paginate = False
        listing.list_line(1, "", None, None, None, "X\n")
        assert BANNER not in listing.getvalue()


# =============================================================================
# End of Assembly Sections
# =============================================================================

class TestSections:
    """Test the summary, memory map, symbol table and contents."""

    def test_summary(self, listing):
        listing.list_summary(0o203, 0)
        text = listing.getvalue()
        assert "Program break is 00203" in text
        assert "No errors detected" in text

    def test_summary_with_errors(self, listing):
        listing.list_summary(0o10200, 2)
        assert "2 error(s) detected" in listing.getvalue()

    def test_memory_map(self, listing):
        bitmap = MemoryBitmap()
        bitmap.mark(0o200)
        listing.list_bitmap(bitmap)
        text = listing.getvalue()
        assert "00200/ 10000000 00000000" in text
        assert "10000/" not in text

    def test_symbol_table(self, listing):
        start = Symbol("START", SymbolKind.TAG, 0o200)
        start.add_reference(2, True)
        start.add_reference(4, False)
        size = Symbol("SIZE", SymbolKind.EQUATE, 0o40)
        unused = Symbol("TAD", SymbolKind.MRI, 0o1000)
        listing.list_symbols([size, start, unused])
        text = listing.getvalue()
        assert "START      00200    " + "     2*     4 " in text
        assert "SIZE" not in text
        assert "TAD" not in text

    def test_table_of_contents(self, listing):
        listing.title = "Main"
        listing.add_toc("Main")
        listing.list_line(1, "", None, None, None, "\n")
        listing.list_toc()
        text = listing.getvalue()
        assert "Table of Contents" in text
        assert "\tMain . . ." in text
