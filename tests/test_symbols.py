# =============================================================================
# test_symbols.py - Symbol Table Unit Tests
# =============================================================================
# Tests for the open-addressed symbol table and the built-in symbols.
#
# Test coverage includes:
#   - Seeding with PDP-8 instructions and pseudo-ops
#   - Lookup with and without creation
#   - Table overflow
#   - Cross references
#   - CPU specific instruction sets
# =============================================================================

import pytest

from palx.assembler.symbols import (
    PseudoOp,
    Symbol,
    SymbolKind,
    SymbolTable,
)
from palx.cpu import CPU_INSTRUCTIONS, CPU
from palx.errors import SymbolTableFullError


@pytest.fixture
def table() -> SymbolTable:
    symbols = SymbolTable()
    symbols.seed_builtins()
    return symbols


# =============================================================================
# Built-in Symbols
# =============================================================================

class TestBuiltins:
    """Test the symbols present before any source is read."""

    def test_memory_reference_instruction(self, table):
        tad = table.lookup("TAD")
        assert tad.kind == SymbolKind.MRI
        assert tad.value == 0o1000

    def test_operate_instruction(self, table):
        assert table.lookup("CLA").kind == SymbolKind.OPR
        assert table.lookup("HLT").value == 0o7402

    def test_field_instruction(self, table):
        assert table.lookup("CDF").kind == SymbolKind.CXF

    def test_pseudo_op(self, table):
        org = table.lookup(".ORG")
        assert org.kind == SymbolKind.PSEUDO_OP
        assert org.pseudo_op == PseudoOp.ORG

    def test_hm6120_alias(self, table):
        """.HM6120 is another spelling of .HD6120."""
        assert table.lookup(".HM6120").pseudo_op == PseudoOp.HD6120

    def test_cpu_mnemonics_not_predefined(self, table):
        assert table.lookup("R3L") is None
        assert table.lookup("WPA") is None

    def test_builtin_kinds(self):
        assert SymbolKind.MRI.is_builtin
        assert SymbolKind.PSEUDO_OP.is_builtin
        assert not SymbolKind.TAG.is_builtin
        assert SymbolKind.USER_OPCODE.is_opcode
        assert not SymbolKind.PSEUDO_OP.is_opcode


# =============================================================================
# Lookup
# =============================================================================

class TestLookup:
    """Test finding and creating symbols."""

    def test_missing_symbol(self, table):
        assert table.lookup("FOO") is None
        assert "FOO" not in table

    def test_create(self, table):
        """Created symbols start out undefined."""
        count = len(table)
        symbol = table.lookup("FOO", create=True)
        assert symbol.kind == SymbolKind.UNDEFINED
        assert len(table) == count + 1
        assert table.lookup("FOO") is symbol

    def test_collisions_probe_linearly(self):
        """Names sharing a home slot are all found."""
        table = SymbolTable(size=7)
        names = ["A", "H", "O"]
        homes = {table.hash_code(name) for name in names}
        for name in names:
            table.lookup(name, create=True)
        assert len(homes) == 1
        assert [table.lookup(name).name for name in names] == names

    def test_table_full(self):
        table = SymbolTable(size=3)
        for name in ("A", "B", "C"):
            table.lookup(name, create=True)
        assert table.lookup("D") is None
        with pytest.raises(SymbolTableFullError):
            table.lookup("D", create=True)

    def test_sorted_symbols(self):
        table = SymbolTable()
        for name in ("ZED", "ALPHA", "MID"):
            table.lookup(name, create=True)
        assert [s.name for s in table.sorted_symbols()] == ["ALPHA", "MID", "ZED"]


# =============================================================================
# Symbols
# =============================================================================

class TestSymbol:
    """Test symbol definition and cross references."""

    def test_define(self):
        symbol = Symbol("X")
        symbol.define(SymbolKind.EQUATE, 0o17)
        assert symbol.kind == SymbolKind.EQUATE
        assert symbol.value == 0o17

    def test_one_reference_per_line(self):
        symbol = Symbol("X")
        symbol.add_reference(3, True)
        symbol.add_reference(3, False)
        symbol.add_reference(5, False)
        assert [(r.line, r.is_definition) for r in symbol.references] == [
            (3, True), (5, False),
        ]
        assert symbol.is_referenced

    def test_cpu_instructions_replace_symbols(self, table):
        """Selecting a CPU overwrites whatever the names meant before."""
        table.lookup("WSR", create=True).define(SymbolKind.TAG, 0o200)
        table.define_instructions(CPU_INSTRUCTIONS[CPU.HD6120])
        assert table.lookup("WSR").kind == SymbolKind.IOT
        assert table.lookup("WSR").value == 0o6246
        assert table.lookup("R3L").kind == SymbolKind.OPR
