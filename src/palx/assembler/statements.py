"""
Statement Assembler
===================

Assembles one logical source line. A statement is tried, in order, as:

1. A symbol definition, NAME = expression (a label is not allowed
   in front of it)
2. Any number of labels, NAME:
3. Nothing else (blank line or comment), listed with the address if
   the line had a label
4. A pseudo-op (.NAME) or a macro call
5. An expression, which generates one word. Instructions are just
   expressions whose first operand is an opcode.

Symbols are defined in pass 1. In pass 2 the same statements are checked
again so that the listing shows an S error on every line that defines a
symbol which ended up with a different kind (most often because it was
defined twice).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from palx.assembler.lexer import IDLEN, Cursor, is_id1, scan_name
from palx.assembler.symbols import Symbol, SymbolKind
from palx.errors import ErrorCode, ExpressionError

if TYPE_CHECKING:
    from palx.assembler.context import AssemblerContext
    from palx.assembler.expressions import ExpressionEvaluator
    from palx.assembler.literals import PageAllocator
    from palx.assembler.macros import MacroEngine
    from palx.assembler.pseudo_ops import PseudoOpProcessor


class StatementAssembler:
    """Assembles statements one line at a time."""

    def __init__(
        self,
        ctx: AssemblerContext,
        evaluator: ExpressionEvaluator,
        pages: PageAllocator,
        pseudo_ops: PseudoOpProcessor,
        macros: MacroEngine,
    ):
        self._ctx = ctx
        self._evaluator = evaluator
        self._pages = pages
        self._pseudo_ops = pseudo_ops
        self._macros = macros

    def assemble(self, cursor: Cursor) -> None:
        """Assemble the statement starting at cursor."""
        ctx = self._ctx
        if self._check_definition(cursor):
            return

        labelled = self._check_labels(cursor)
        if cursor.at_eol():
            ctx.list_line(ctx.field, ctx.pc if labelled else None)
            return

        if self._check_macro_pseudo(cursor):
            return

        if not ctx.pass2:
            self._pages.output_code(0)
            return
        try:
            code = self._evaluator.evaluate(cursor)
        except ExpressionError as e:
            ctx.flag(ErrorCode.SYNTAX)
            code = e.value
        if cursor.span_white() == ">":
            cursor.advance()
        if not cursor.at_eol():
            ctx.flag(ErrorCode.SYNTAX)
        self._pages.output_code(code, True, True)

    # =========================================================================
    # Definitions
    # =========================================================================

    def _define(self, symbol: Symbol, kind: SymbolKind, value: int) -> None:
        """
        Define a tag or equate in pass 1, or check it in pass 2.

        A second definition makes the symbol MULTIPLY_DEFINED; trying to
        redefine an instruction or pseudo-op leaves it alone.
        """
        ctx = self._ctx
        ctx.reference(symbol, is_definition=True)
        if not ctx.pass2:
            if symbol.kind == SymbolKind.UNDEFINED:
                symbol.define(kind, value)
            elif symbol.kind.is_builtin:
                ctx.flag(ErrorCode.MULTIPLY_DEFINED)
            else:
                symbol.kind = SymbolKind.MULTIPLY_DEFINED
        elif symbol.kind != kind:
            ctx.flag(ErrorCode.SYMBOL)

    def _check_definition(self, cursor: Cursor) -> bool:
        """Handle NAME = expression; the cursor is untouched otherwise."""
        ctx = self._ctx
        start = cursor.pos
        name = scan_name(cursor)
        if name is None or cursor.span_white() != "=":
            cursor.pos = start
            return False
        cursor.advance()

        try:
            value = self._evaluator.evaluate(cursor)
            if not cursor.at_eol():
                ctx.flag(ErrorCode.SYNTAX)
        except ExpressionError as e:
            value = e.value

        self._define(ctx.symbols.lookup(name, create=True), SymbolKind.EQUATE, value)
        ctx.list_line(code=value)
        return True

    def _check_labels(self, cursor: Cursor) -> bool:
        """Define every NAME: at the start of the line."""
        ctx = self._ctx
        found = False
        while True:
            probe = Cursor(cursor.text, cursor.pos)
            name = scan_name(probe)
            if name is None or probe.span_white() != ":":
                return found
            probe.advance()
            cursor.pos = probe.pos
            self._define(ctx.symbols.lookup(name, create=True),
                         SymbolKind.TAG, (ctx.field << 12) | ctx.pc)
            found = True

    # =========================================================================
    # Pseudo-ops and Macros
    # =========================================================================

    def _check_macro_pseudo(self, cursor: Cursor) -> bool:
        """
        Dispatch a pseudo-op or a macro call.

        Anything starting with '.' is taken as a pseudo-op; an unknown
        one is a Z error. A leading name that is not a macro leaves the
        cursor where it was, to be assembled as an expression.
        """
        ctx = self._ctx
        ch = cursor.span_white()
        if ch == ".":
            cursor.advance()
            name = scan_name(cursor, IDLEN - 1)
            if name is not None:
                symbol = ctx.symbols.lookup("." + name, create=True)
                ctx.reference(symbol)
                if symbol.kind == SymbolKind.PSEUDO_OP:
                    self._pseudo_ops.dispatch(symbol.pseudo_op, cursor)
                    return True
            ctx.flag(ErrorCode.PSEUDO_OP)
            ctx.list_line()
            return True

        if is_id1(ch):
            start = cursor.pos
            name = scan_name(cursor)
            symbol = ctx.symbols.lookup(name, create=True)
            ctx.reference(symbol)
            if symbol.kind == SymbolKind.MACRO:
                self._macros.invoke(symbol, cursor)
                return True
            cursor.pos = start
        return False
