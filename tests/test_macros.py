# =============================================================================
# test_macros.py - Macro Tests
# =============================================================================
# Tests for .DEFINE and macro expansion.
#
# Test coverage includes:
#   - Formal argument lists with and without parentheses
#   - Argument substitution, $$ escapes and unknown names
#   - Generated local labels ($nnnnn)
#   - Actual arguments containing commas in parentheses, quotes or <...>
#   - Nested calls and listing of expansion lines
# =============================================================================

from palx.assembler.symbols import SymbolKind


# =============================================================================
# Definition
# =============================================================================

class TestDefine:
    """Test macro definitions."""

    def test_defines_macro_symbol(self, assemble):
        asm = assemble(
            "        .DEFINE CLEAR <\n"
            "        CLA CLL\n"
            ">\n"
        )
        symbol = asm.get_symbol("CLEAR")
        assert symbol.kind == SymbolKind.MACRO
        assert symbol.macro.body == "        CLA CLL\n"
        assert not asm.has_errors()

    def test_formals(self, assemble):
        asm = assemble("        .DEFINE MOVE (FROM, TO) <TAD $FROM\n DCA $TO>\n")
        assert asm.get_symbol("MOVE").macro.formals == ["FROM", "TO"]

    def test_formals_without_parentheses(self, assemble):
        asm = assemble("        .DEFINE MOVE FROM, TO <TAD $FROM>\n")
        assert asm.get_symbol("MOVE").macro.formals == ["FROM", "TO"]

    def test_body_gets_newline(self, assemble):
        asm = assemble("        .DEFINE ONE <NOP>\n")
        assert asm.get_symbol("ONE").macro.body == "NOP\n"

    def test_redefining_a_tag(self, assemble):
        """Only undefined symbols or macros can become macros."""
        asm = assemble(
            "HERE:   NOP\n"
            "        .DEFINE HERE <NOP>\n"
        )
        assert asm.get_listing_entries()[1].flags == "M"


# =============================================================================
# Expansion
# =============================================================================

class TestExpansion:
    """Test macro calls."""

    def test_arguments_substituted(self, assemble):
        asm = assemble(
            "        .DEFINE LOAD (X) <\n"
            "        CLA\n"
            "        TAD     $X\n"
            ">\n"
            "        LOAD    VALUE\n"
            "VALUE:  17\n"
        )
        assert asm.get_memory() == {0o200: 0o7200, 0o201: 0o1202, 0o202: 0o17}
        assert not asm.has_errors()

    def test_missing_arguments_are_empty(self, assemble):
        asm = assemble(
            "        .DEFINE WORD (A, B) <$A $B 1\n>\n"
            "        WORD\n"
        )
        assert asm.get_memory() == {0o200: 1}

    def test_dollar_escape(self, assemble):
        asm = assemble(
            "        .DEFINE TAG (N) <$$$N: 5\n>\n"
            "        TAG     X\n"
        )
        assert asm.get_symbols() == {"$X": 0o200}

    def test_parenthesized_arguments(self, assemble):
        """Commas inside parentheses do not separate arguments."""
        asm = assemble(
            "        .DEFINE PAIR (A, B) <$A\n $B\n>\n"
            "        PAIR    (1, 2)\n"
            "        PAIR    1+(2*3), 4\n"
        )
        assert asm.get_memory() == {0o200: 1, 0o201: 2, 0o202: 7, 0o203: 4}
        assert not asm.has_errors()

    def test_quoted_comma(self, assemble):
        asm = assemble(
            "        .DEFINE PAIR (A, B) <$A\n $B\n>\n"
            '        PAIR    ",", 7\n'
        )
        assert asm.get_memory() == {0o200: 0o54, 0o201: 7}

    def test_block_argument(self, assemble):
        """A <...> argument is taken verbatim."""
        asm = assemble(
            "        .DEFINE DO (WHAT) <$WHAT\n>\n"
            "        DO      <CLA CLL>\n"
        )
        assert asm.get_memory() == {0o200: 0o7300}

    def test_nested_calls(self, assemble):
        asm = assemble(
            "        .DEFINE INNER <IAC\n>\n"
            "        .DEFINE OUTER <CLA\n INNER\n HLT\n>\n"
            "        OUTER\n"
            "        NOP\n"
        )
        assert asm.get_memory() == {
            0o200: 0o7200, 0o201: 0o7001, 0o202: 0o7402, 0o203: 0o7000,
        }


# =============================================================================
# Generated Labels
# =============================================================================

class TestGeneratedLabels:
    """Test $ formals that receive generated labels."""

    SOURCE = (
        "        .DEFINE SKIPZ ($L) <\n"
        "        SZA\n"
        "        JMP     $L\n"
        "        NOP\n"
        "$L:\n"
        ">\n"
        "        SKIPZ\n"
        "        SKIPZ\n"
    )

    def test_distinct_labels(self, assemble):
        """Two calls define $00001 and $00002, neither multiply defined."""
        asm = assemble(self.SOURCE)
        assert asm.get_symbols() == {"$00001": 0o203, "$00002": 0o206}
        assert not asm.has_errors()
        assert asm.phase_errors() == []

    def test_code(self, assemble):
        asm = assemble(self.SOURCE)
        assert asm.get_memory() == {
            0o200: 0o7440, 0o201: 0o5203, 0o202: 0o7000,
            0o203: 0o7440, 0o204: 0o5206, 0o205: 0o7000,
        }

    def test_explicit_label_wins(self, assemble):
        asm = assemble(self.SOURCE.replace("        SKIPZ\n        SKIPZ\n", "        SKIPZ DONE\n"))
        assert asm.get_symbols() == {"DONE": 0o203}

    def test_single_line_body(self, assemble):
        asm = assemble(
            "        .DEFINE FOO ($L) < $L: NOP >\n"
            "        FOO\n"
            "        FOO\n"
        )
        assert asm.get_symbols() == {"$00001": 0o200, "$00002": 0o201}
        assert not asm.has_errors()


# =============================================================================
# Listing
# =============================================================================

class TestMacroListing:
    """Test how expansions are listed."""

    SOURCE = (
        "        .DEFINE TWO <CLA\n IAC\n>\n"
        "        TWO\n"
    )

    def test_expansion_lines_marked(self, assemble):
        asm = assemble(self.SOURCE)
        entries = [e for e in asm.get_listing_entries() if e.in_macro]
        assert [e.code for e in entries] == [0o7200, 0o7001]
        assert "    +   00200    7200   CLA\n" in asm.get_listing()

    def test_nolist_met(self, assemble):
        """With MET off only the generated words are listed."""
        asm = assemble("        .NOLIST MET\n" + self.SOURCE)
        entries = [e for e in asm.get_listing_entries() if e.in_macro]
        assert [e.source for e in entries] == [None, None]
        assert [e.code for e in entries] == [0o7200, 0o7001]
