"""
PALX Cross Assembler for the PDP-8, IM6100 and HD6120
=====================================================

This package implements PALX, a two-pass cross assembler for the
PDP-8 family instruction set, including the extensions of the Intersil
IM6100 and Harris HD6120 microprocessors. It produces a binary tape in
the format read by the PDP-8 BIN loader and a paginated listing.

Main Components
---------------
- **Assembler**: Main assembler class and the entry point for callers
- **CodeGenerator**: Two-pass driver
- **StatementAssembler**: Definitions, labels, pseudo-ops and code lines
- **ExpressionEvaluator**: Expressions, literals and instruction operands
- **MacroEngine** / **ConditionalEngine**: .DEFINE and the .IFxxx family
- **SymbolTable**: Hashed symbol table with cross reference
- **Listing** / **BinaryTape**: Output writers

Example Usage
-------------
>>> from palx.assembler import Assembler
>>> asm = Assembler()
>>> tape = asm.assemble_string('''
...         .ORG    0200
... LOOP:   ISZ     COUNT
...         JMP     LOOP
...         HLT
... COUNT:  0
... ''')
>>> asm.has_errors()
False

Supported Features
------------------
- PDP-8 memory reference, operate and IOT instructions; IM6100 and
  HD6120 mnemonics on request (.IM6100, .HD6120)
- Tags, equates and user defined memory reference opcodes (.MRI)
- Left to right expressions with current page literals ([expr])
- Macros with generated labels, conditional assembly
- ASCII, packed ASCII and six-bit text (.ASCIZ, .TEXT, .SIXBIT)
- Listing with memory map, symbol cross reference and table of contents
"""

from palx.assembler.assembler import Assembler, assemble, assemble_file
from palx.assembler.codegen import CodeGenerator, PhaseError
from palx.assembler.context import AssemblerContext, AssemblerOptions, ListingOptions
from palx.assembler.expressions import ExpressionEvaluator
from palx.assembler.lexer import Cursor
from palx.assembler.listing import Listing, ListingEntry
from palx.assembler.statements import StatementAssembler
from palx.assembler.symbols import PseudoOp, Symbol, SymbolKind, SymbolTable

__all__ = [
    # Main class and functions
    "Assembler",
    "assemble",
    "assemble_file",
    # Driver
    "CodeGenerator",
    "PhaseError",
    "StatementAssembler",
    # Configuration and state
    "AssemblerContext",
    "AssemblerOptions",
    "ListingOptions",
    # Expressions
    "Cursor",
    "ExpressionEvaluator",
    # Listing
    "Listing",
    "ListingEntry",
    # Symbols
    "PseudoOp",
    "Symbol",
    "SymbolKind",
    "SymbolTable",
]
