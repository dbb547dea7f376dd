"""
Conditional Assembly
====================

    .IFDEF  PANEL  <  JMS  PANEL  >
    .IFEQ   SIZE-10 <
            ...
    >

A conditional tests a symbol (.IFDEF, .IFNDEF) or the sign of a 12-bit
value (.IFEQ, .IFNE, .IFGT, .IFGE, .IFLT, .IFLE; bit 04000 is the sign)
and is followed by a <...> block. When the test succeeds the text after
the '<' is simply assembled as usual; the matching '>' ends a statement
like a comment does, so it needs no special treatment. When the test
fails the block is skipped, honoring nested brackets, and whatever
follows the '>' on the same line is assembled.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from palx.assembler.lexer import Cursor, scan_name
from palx.assembler.source import BLOCK_WHITESPACE, SourceStream
from palx.assembler.symbols import PseudoOp, SymbolKind
from palx.errors import ErrorCode, ExpressionError

if TYPE_CHECKING:
    from palx.assembler.context import AssemblerContext
    from palx.assembler.expressions import ExpressionEvaluator


SIGN_BIT = 0o4000

# Tests on a 12-bit two's complement value
VALUE_TESTS: dict[PseudoOp, Callable[[int], bool]] = {
    PseudoOp.IFEQ: lambda v: v == 0,
    PseudoOp.IFNE: lambda v: v != 0,
    PseudoOp.IFGT: lambda v: v != 0 and (v & SIGN_BIT) == 0,
    PseudoOp.IFGE: lambda v: (v & SIGN_BIT) == 0,
    PseudoOp.IFLE: lambda v: v == 0 or (v & SIGN_BIT) != 0,
    PseudoOp.IFLT: lambda v: v != 0 and (v & SIGN_BIT) != 0,
}


class ConditionalEngine:
    """
    Evaluates conditional pseudo-ops.

    Args:
        ctx: Assembler context
        stream: Source stream used to read the block
        evaluator: Expression evaluator for the value tests
        assemble: Statement assembler entry point, called on the text
                  that follows the '<' (or the '>' when skipping)
    """

    def __init__(
        self,
        ctx: AssemblerContext,
        stream: SourceStream,
        evaluator: ExpressionEvaluator,
        assemble: Callable[[Cursor], None],
    ):
        self._ctx = ctx
        self._stream = stream
        self._evaluator = evaluator
        self._assemble = assemble

    def symbol_test(self, op: PseudoOp, cursor: Cursor) -> None:
        """
        Process .IFDEF / .IFNDEF.

        Any symbol counts as defined, opcodes and pseudo-ops included,
        except one that has only been referenced so far.
        """
        name = scan_name(cursor)
        if name is None:
            self._ctx.flag(ErrorCode.SYNTAX)
            return
        symbol = self._ctx.symbols.lookup(name)
        defined = symbol is not None and symbol.kind != SymbolKind.UNDEFINED
        self.run(cursor, defined if op == PseudoOp.IFDEF else not defined)

    def value_test(self, op: PseudoOp, cursor: Cursor) -> None:
        """
        Process .IFEQ and the other value tests.

        An expression that cannot be evaluated counts as a failed test,
        so the block is skipped in both passes.
        """
        try:
            value = self._evaluator.evaluate(cursor)
        except ExpressionError:
            self.run(cursor, False)
            return
        self.run(cursor, VALUE_TESTS[op](value))

    def run(self, cursor: Cursor, success: bool) -> None:
        """Assemble or skip the block following the test."""
        if success:
            ch = self._stream.next_char(cursor)
            while ch != "<":
                if ch not in BLOCK_WHITESPACE:
                    self._ctx.flag(ErrorCode.SYNTAX)
                ch = self._stream.next_char(cursor)
        else:
            self._stream.read_block(cursor, keep=False)
        self._assemble(Cursor(cursor.text, cursor.pos))
