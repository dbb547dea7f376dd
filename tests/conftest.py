# =============================================================================
# conftest.py - Shared Test Fixtures
# =============================================================================
# Fixtures used across the PALX test modules. Every assembly in the tests
# uses a fixed timestamp so listings and \d / \h escapes are reproducible.
# =============================================================================

from datetime import datetime

import pytest

from palx.assembler import Assembler, AssemblerOptions


FIXED_TIME = datetime(2025, 7, 3, 14, 5, 9)


@pytest.fixture
def timestamp() -> datetime:
    """Assembly time used for listing headers and date/time escapes."""
    return FIXED_TIME


@pytest.fixture
def assembler(timestamp) -> Assembler:
    """An assembler with default options and a fixed timestamp."""
    return Assembler(AssemblerOptions(), timestamp=timestamp)


@pytest.fixture
def assemble(assembler):
    """
    Assemble a source string and return the assembler.

    Usage:
        asm = assemble(".ORG 0200\\n CLA\\n")
        asm.get_memory()
    """
    def _assemble(source: str) -> Assembler:
        assembler.assemble_string(source, "test.plx")
        return assembler
    return _assemble
