# =============================================================================
# test_pseudo_ops.py - Pseudo-Operation Tests
# =============================================================================
# Tests for the pseudo-ops, assembled through the public Assembler.
#
# Test coverage includes:
#   - Data and text generation (.DATA, .ASCIZ, .TEXT, .SIXBIT, .SIXBIZ)
#   - Location control (.ORG, .PAGE, .FIELD, .BLOCK, .END)
#   - Listing and assembly options (.TITLE, .LIST, .NOLIST, .ENABLE, ...)
#   - Error control (.NOWARN, .ERROR)
#   - User opcodes (.MRI) and constant loads (.NLOAD)
#   - IM6100/HD6120 support (.VECTOR, .STACK, .PUSH, .PUSHJ, ...)
# =============================================================================

import pytest

from palx.assembler import AssemblerOptions, Assembler
from palx.assembler.pseudo_ops import count_data_words, sixbit_code
from palx.assembler.symbols import SymbolKind


# =============================================================================
# Helper Functions
# =============================================================================

def flags_of(asm, line: int) -> str:
    """Error letters listed for a source line."""
    return "".join(e.flags for e in asm.get_listing_entries() if e.line == line)


class TestHelpers:
    """Test the standalone helpers."""

    def test_count_data_words(self):
        assert count_data_words(" 1, 2, 3\n") == 3
        assert count_data_words(' ",", 2 ; a, b\n') == 2

    def test_sixbit_dec_coding(self):
        assert sixbit_code("A", False) == (0o41, True)
        assert sixbit_code("a", False) == (0o41, True)
        assert sixbit_code(" ", False) == (0, True)

    def test_sixbit_os8_coding(self):
        assert sixbit_code("A", True) == (0o01, True)

    def test_sixbit_invalid(self):
        assert sixbit_code("\t", False)[1] is False


# =============================================================================
# Data and Text
# =============================================================================

class TestData:
    """Test .DATA."""

    def test_words(self, assemble):
        asm = assemble('        .DATA   1, 2, "A"\n')
        assert asm.get_memory() == {0o200: 1, 0o201: 2, 0o202: 0o101}

    def test_quoted_comma(self, assemble):
        asm = assemble('        .DATA   1, ",", 3\n')
        assert asm.get_memory() == {0o200: 1, 0o201: 0o54, 0o202: 3}
        assert not asm.has_errors()

    def test_forward_reference(self, assemble):
        """Forward references work because pass 1 only counts the words."""
        asm = assemble(
            "        .DATA   LATER, LATER+1\n"
            "LATER:  0\n"
        )
        assert asm.get_memory() == {0o200: 0o202, 0o201: 0o203, 0o202: 0}
        assert asm.phase_errors() == []

    def test_bad_value_keeps_size(self, assemble):
        asm = assemble(
            "        .DATA   1, NOWHERE\n"
            "NEXT:   0\n"
        )
        assert asm.get_memory()[0o201] == 0
        assert asm.get_symbols()["NEXT"] == 0o202
        assert "U" in flags_of(asm, 1)


class TestText:
    """Test the text pseudo-ops."""

    def test_asciz(self, assemble):
        asm = assemble("        .ASCIZ  /AB/\n")
        assert asm.get_memory() == {0o200: 0o101, 0o201: 0o102, 0o202: 0}

    def test_asciz_escapes(self, assemble):
        asm = assemble("        .ASCIZ  /\\r\\n/\n")
        assert asm.get_memory() == {0o200: 0o15, 0o201: 0o12, 0o202: 0}

    def test_asciz_mark_bit(self, assemble):
        asm = assemble("        .ENABLE ASR\n        .ASCIZ  /A/\n")
        assert asm.get_memory() == {0o200: 0o301, 0o201: 0}

    def test_text_packing(self, assemble):
        """Three characters in two words, then a zero word."""
        asm = assemble("        .TEXT   /ABC/\n")
        assert asm.get_memory() == {0o200: 0o2101, 0o201: 0o1502, 0o202: 0}

    def test_text_partial_group(self, assemble):
        asm = assemble("        .TEXT   /ABCDE/\n")
        assert asm.get_memory() == {
            0o200: 0o2101, 0o201: 0o1502, 0o202: 0o104, 0o203: 0o105, 0o204: 0,
        }

    def test_sixbit(self, assemble):
        asm = assemble("        .SIXBIT /ABC/\n")
        assert asm.get_memory() == {0o200: 0o4142, 0o201: 0o4300}

    def test_sixbiz_odd_length(self, assemble):
        asm = assemble("        .SIXBIZ /ABC/\n")
        assert asm.get_memory() == {0o200: 0o4142, 0o201: 0o4377}

    def test_sixbiz_even_length(self, assemble):
        asm = assemble("        .SIXBIZ /AB/\n")
        assert asm.get_memory() == {0o200: 0o4142, 0o201: 0o7777}

    def test_sixbit_os8(self, timestamp):
        asm = Assembler(AssemblerOptions(os8_sixbit=True), timestamp=timestamp)
        asm.assemble_string("        .SIXBIZ /AB/\n")
        assert asm.get_memory() == {0o200: 0o0102, 0o201: 0}

    def test_sixbit_enable(self, assemble):
        asm = assemble("        .ENABLE OS8\n        .SIXBIT /AB/\n")
        assert asm.get_memory() == {0o200: 0o0102}

    def test_sixbit_invalid_character(self, assemble):
        asm = assemble("        .SIXBIT /A\\tB/\n")
        assert "T" in flags_of(asm, 1)

    def test_missing_delimiter(self, assemble):
        asm = assemble("        .ASCIZ  /AB\n")
        assert asm.get_memory() == {0o200: 0}
        assert "X" in flags_of(asm, 1)

    def test_nolist_txb(self, assemble):
        """With TXB off only the first line of the text is listed."""
        asm = assemble("        .NOLIST TXB\n        .ASCIZ  /ABC/\n")
        assert [e.code for e in asm.get_listing_entries() if e.line == 2] == [None]


# =============================================================================
# Location Control
# =============================================================================

class TestLocation:
    """Test location counter control."""

    def test_org(self, assemble):
        asm = assemble("        .ORG    1000\n        NOP\n")
        assert asm.get_memory() == {0o1000: 0o7000}

    def test_org_out_of_range(self, assemble):
        asm = assemble("        .ORG    10000\n")
        assert "A" in flags_of(asm, 1)

    def test_page_advances(self, assemble):
        asm = assemble("        NOP\n        .PAGE\n        IAC\n")
        assert asm.get_memory() == {0o200: 0o7000, 0o400: 0o7001}

    def test_page_number(self, assemble):
        asm = assemble("        .PAGE   3\n        IAC\n")
        assert asm.get_memory() == {0o600: 0o7001}

    def test_page_on_boundary_stays(self, assemble):
        asm = assemble("        .PAGE\n        IAC\n")
        assert asm.get_memory() == {0o200: 0o7001}

    def test_literals_dumped_on_page_change(self, assemble):
        asm = assemble(
            "        TAD     [7]\n"
            "        .PAGE\n"
            "        TAD     [7]\n"
        )
        assert asm.get_memory() == {
            0o200: 0o1377, 0o377: 7, 0o400: 0o1377, 0o577: 7,
        }

    def test_field(self, assemble):
        asm = assemble(
            "        CLA\n"
            "        .FIELD  1\n"
            "FAR:    TAD     [7]\n"
        )
        assert asm.get_memory() == {0o200: 0o7200, 0o10200: 0o1377, 0o10377: 7}
        assert asm.get_symbols()["FAR"] == 0o10200
        assert asm.get_program_break() == 0o10201
        assert bytes((0o310,)) in asm.get_binary()

    def test_field_out_of_range(self, assemble):
        asm = assemble("        .FIELD  10\n")
        assert "A" in flags_of(asm, 1)

    def test_off_field_reference(self, assemble):
        asm = assemble(
            "HERE:   NOP\n"
            "        .FIELD  1\n"
            "        HERE\n"
        )
        assert flags_of(asm, 3) == "F"

    def test_block(self, assemble):
        asm = assemble(
            "BUF:    .BLOCK  10\n"
            "AFTER:  0\n"
        )
        assert asm.get_symbols() == {"BUF": 0o200, "AFTER": 0o210}
        assert asm.get_memory() == {0o210: 0}

    def test_end_dumps_literals(self, assemble):
        asm = assemble(
            "        TAD     [5]\n"
            "        .END\n"
        )
        assert asm.get_memory() == {0o200: 0o1377, 0o377: 5}
        assert asm.get_program_break() == 0o400


# =============================================================================
# Listing and Error Control
# =============================================================================

class TestListingControl:
    """Test .TITLE, .LIST, .NOLIST, .EJECT, .NOWARN and .ERROR."""

    def test_title(self, assemble):
        asm = assemble("        .TITLE  Monitor Kernel\n        NOP\n")
        listing = asm.get_listing()
        assert "Monitor Kernel" in listing
        assert "Table of Contents" in listing

    def test_title_missing(self, assemble):
        asm = assemble("        .TITLE\n")
        assert flags_of(asm, 1) == "X"

    def test_unknown_list_option(self, assemble):
        asm = assemble("        .NOLIST MAP, FOO\n")
        assert flags_of(asm, 1) == "L"

    def test_nolist_sections(self, assemble):
        asm = assemble("        .NOLIST MAP, SYM, TOC\nX:      NOP\n")
        listing = asm.get_listing()
        assert "Memory Map" not in listing
        assert "Symbol Table" not in listing
        assert "Table of Contents" not in listing

    def test_list_all(self, assemble):
        asm = assemble("        .NOLIST MAP\n        .LIST   ALL\n        NOP\n")
        assert "Memory Map" in asm.get_listing()

    def test_unknown_assembly_option(self, assemble):
        asm = assemble("        .ENABLE FOO\n")
        assert flags_of(asm, 1) == "L"

    def test_eject(self, assemble):
        asm = assemble("        NOP\n        .EJECT\n        NOP\n")
        assert asm.get_listing().count("\f") >= 2

    def test_nowarn(self, assemble):
        asm = assemble("        .NOWARN U\n        TAD     NOWHERE\n")
        assert flags_of(asm, 2) == "X"
        assert asm.get_memory() == {0o200: 0o1000}

    def test_nowarn_reset(self, assemble):
        asm = assemble(
            "        .NOWARN UX\n"
            "        .NOWARN\n"
            "        TAD     NOWHERE\n"
        )
        assert flags_of(asm, 3) == "UX"

    def test_error(self, assemble):
        asm = assemble("        .ERROR\n")
        assert flags_of(asm, 1) == "E"
        assert asm.error_count() == 1

    def test_unknown_pseudo_op(self, assemble):
        asm = assemble("        .FOO\n")
        assert flags_of(asm, 1) == "Z"


# =============================================================================
# User Opcodes and Constants
# =============================================================================

class TestOpcodes:
    """Test .MRI and .NLOAD."""

    def test_mri(self, assemble):
        asm = assemble(
            "        .MRI    CALL=4000\n"
            "        CALL    20\n"
            "        CALL    @21\n"
        )
        assert asm.get_symbol("CALL").kind == SymbolKind.USER_OPCODE
        assert asm.get_memory() == {0o200: 0o4020, 0o201: 0o4421}

    def test_mri_syntax(self, assemble):
        asm = assemble("        .MRI    CALL\n")
        assert flags_of(asm, 1) == "X"

    def test_mri_builtin(self, assemble):
        """Built-in instructions cannot be redefined."""
        asm = assemble("        .MRI    TAD=4000\n        TAD 20\n")
        assert flags_of(asm, 1) == "S"
        assert asm.get_memory() == {0o200: 0o1020}

    @pytest.mark.parametrize("value,opcode", [
        ("0", 0o7200),
        ("1", 0o7201),
        ("7777", 0o7240),
        ("4000", 0o7330),
        ("100", 0o7203),
    ])
    def test_nload(self, assemble, value, opcode):
        asm = assemble(f"        .NLOAD  {value}\n")
        assert asm.get_memory() == {0o200: opcode}

    def test_nload_impossible(self, assemble):
        asm = assemble("        .NLOAD  5\n")
        assert asm.get_memory() == {0o200: 0o7000}
        assert flags_of(asm, 1) == "A"

    def test_nload_hd6120(self, assemble):
        asm = assemble("        .HD6120\n        .NLOAD  10\n")
        assert asm.get_memory() == {0o200: 0o7315}


# =============================================================================
# IM6100 / HD6120
# =============================================================================

class TestProcessorSupport:
    """Test the processor specific pseudo-ops."""

    def test_cpu_adds_mnemonics(self, assemble):
        asm = assemble("        .IM6100\n        WPA 1\n")
        assert asm.get_memory() == {0o200: 0o6322}

    def test_hm6120_alias(self, assemble):
        asm = assemble("        .HM6120\n        R3L\n")
        assert asm.get_memory() == {0o200: 0o7014}

    def test_vector_on_page(self, assemble):
        asm = assemble(
            "        .IM6100\n"
            "        .ORG    7600\n"
            "START:  CLA\n"
            "        .VECTOR START\n"
        )
        assert asm.get_memory() == {0o7600: 0o7200, 0o7777: 0o5200}
        assert not asm.has_errors()

    def test_vector_off_page(self, assemble):
        asm = assemble(
            "        .IM6100\n"
            "        .ORG    7600\n"
            "        .VECTOR 200\n"
        )
        assert asm.get_memory() == {0o7776: 0o200, 0o7777: 0o5776}

    def test_vector_needs_cpu(self, assemble):
        asm = assemble("        .VECTOR 200\n")
        assert "Z" in flags_of(asm, 1)

    def test_stack(self, assemble):
        asm = assemble(
            "        .HD6120\n"
            "        .STACK  PAC1, POP1, PPC1, RTN1\n"
            "        .PUSHJ  SUB\n"
            "        .POPJ\n"
            "SUB:    .PUSH\n"
            "        .POP\n"
        )
        assert asm.get_memory() == {
            0o200: 0o6205, 0o201: 0o5203, 0o202: 0o6225,
            0o203: 0o6215, 0o204: 0o6235,
        }
        assert not asm.has_errors()

    def test_pushj_software_stack(self, assemble):
        """On the IM6100 .PUSHJ is followed by the full address."""
        asm = assemble(
            "        .IM6100\n"
            "        .STACK  4100, 4101, 4102, 4103\n"
            "        .PUSHJ  SUB\n"
            "        .ORG    1000\n"
            "SUB:    .POPJ\n"
        )
        assert asm.get_memory() == {0o200: 0o4102, 0o201: 0o1000, 0o1000: 0o4103}

    def test_stack_op_without_stack(self, assemble):
        asm = assemble("        .IM6100\n        .PUSH\n")
        assert flags_of(asm, 2) == "Z"
        assert asm.get_memory() == {0o200: 0}
