"""
Macro Definition and Expansion
==============================

PALX macros are simple text substitution:

    .DEFINE  MOVE (FROM, TO, $L)
    <
    $L:     TAD     $FROM
            DCA     $TO
    >

            MOVE    A, B            ; expands with $L = $00001
            MOVE    (C), <D, E>     ; actuals "(C)" and "D, E"

Actual Arguments
----------------
Actuals are separated by commas, optionally in parentheses. A comma
inside double quotes or parentheses does not end an actual, and an
actual written as <...> may contain anything at all (even several
lines). At most 10 arguments are allowed, each up to 255 characters.

Generated Labels
----------------
A formal whose name starts with '$' and that gets no actual is given a
unique label $nnnnn from a counter that restarts with every pass, so
both passes generate the same names.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from palx.assembler.lexer import MAXSTRING, Cursor, is_eol, scan_name
from palx.assembler.source import MacroExpansion, SourceStream
from palx.assembler.symbols import MacroDefinition, Symbol, SymbolKind
from palx.errors import ErrorCode

if TYPE_CHECKING:
    from palx.assembler.context import AssemblerContext

logger = logging.getLogger(__name__)


MAXARG = 10


class MacroEngine:
    """Handles .DEFINE and macro calls."""

    def __init__(self, ctx: AssemblerContext, stream: SourceStream):
        self._ctx = ctx
        self._stream = stream

    # =========================================================================
    # Definition
    # =========================================================================

    def _new_macro(self, symbol: Symbol) -> Optional[MacroDefinition]:
        """Turn a symbol into a macro, or reset an existing macro."""
        if symbol.kind == SymbolKind.UNDEFINED:
            symbol.kind = SymbolKind.MACRO
            symbol.macro = MacroDefinition(symbol.name)
            return symbol.macro
        if symbol.kind == SymbolKind.MACRO and symbol.macro is not None:
            symbol.macro.formals = []
            symbol.macro.body = ""
            return symbol.macro
        self._ctx.flag(ErrorCode.MULTIPLY_DEFINED)
        return None

    def parse_formals(self, cursor: Cursor) -> list[str]:
        """
        Parse a formal argument list: "A, B", "(A, B)", "()" or nothing.

        A missing closing parenthesis is an X error.
        """
        formals: list[str] = []
        if cursor.at_eol():
            return formals
        paren = cursor.peek() == "("
        if paren:
            cursor.advance()

        while len(formals) < MAXARG:
            formals.append(scan_name(cursor) or "")
            if cursor.span_white() != ",":
                break
            cursor.advance()

        if paren:
            if cursor.peek() != ")":
                self._ctx.flag(ErrorCode.SYNTAX)
                return formals
            cursor.advance()
        return formals

    def define(self, cursor: Cursor) -> None:
        """Process .DEFINE name (formals) <body>."""
        ctx = self._ctx
        name = scan_name(cursor)
        if name is None:
            ctx.flag(ErrorCode.SYNTAX)
            return

        symbol = ctx.symbols.lookup(name, create=True)
        definition = self._new_macro(symbol)
        ctx.reference(symbol, is_definition=True)

        formals = self.parse_formals(cursor)
        body = self._stream.read_block(cursor, keep=True, add_newline=True)
        if not cursor.at_eol():
            ctx.flag(ErrorCode.SYNTAX)
        if definition is not None:
            definition.formals = formals
            definition.body = body
            logger.debug("macro %s defined with %d formal(s)", name, len(formals))
        ctx.list_line()

    # =========================================================================
    # Invocation
    # =========================================================================

    def parse_actual(self, cursor: Cursor) -> Optional[str]:
        """
        Parse one actual argument.

        Returns:
            The argument text (trailing blanks removed), or None after
            flagging C if it is too long
        """
        ch = cursor.span_white()
        if ch == "<":
            block = self._stream.read_block(cursor, keep=True, add_newline=False) or ""
            if len(block) > MAXSTRING - 1:
                self._ctx.flag(ErrorCode.MACRO)
                return None
            return block

        chars: list[str] = []
        in_quotes = False
        depth = 0
        while (ch != "," or in_quotes or depth > 0) and not is_eol(ch):
            if ch == '"':
                in_quotes = not in_quotes
            if ch == "(":
                depth += 1
            if ch == ")" and depth == 0:
                break
            if len(chars) == MAXSTRING:
                self._ctx.flag(ErrorCode.MACRO)
                return None
            if ch == ")":
                depth -= 1
            chars.append(ch)
            cursor.advance()
            ch = cursor.peek()
        return "".join(chars).rstrip(" \t\n\v\f\r")

    def _generated_actuals(self, definition: MacroDefinition, actuals: list[str]) -> None:
        for index, formal in enumerate(definition.formals):
            if formal.startswith("$") and not actuals[index]:
                self._ctx.generated_label += 1
                actuals[index] = f"${self._ctx.generated_label:05d}"

    def invoke(self, symbol: Symbol, cursor: Cursor) -> None:
        """
        Expand a macro call.

        The call line is listed before the expansion starts, so it keeps
        its line number and does not look like part of the expansion.
        """
        ctx = self._ctx
        definition = symbol.macro
        actuals = [""] * MAXARG

        if not self._empty_argument_list(cursor):
            paren = cursor.peek() == "("
            if paren:
                cursor.advance()
            for index in range(MAXARG):
                actual = self.parse_actual(cursor)
                if actual is None:
                    break
                actuals[index] = actual
                if cursor.peek() != ",":
                    break
                cursor.advance()
            if paren:
                if cursor.peek() != ")":
                    ctx.flag(ErrorCode.SYNTAX)
                cursor.advance()
            if not cursor.at_eol():
                ctx.flag(ErrorCode.SYNTAX)

        self._generated_actuals(definition, actuals)
        ctx.list_line()
        self._stream.push(MacroExpansion(definition, actuals))

    @staticmethod
    def _empty_argument_list(cursor: Cursor) -> bool:
        if cursor.at_eol():
            return True
        if cursor.peek() == "(":
            probe = Cursor(cursor.text, cursor.pos + 1)
            return probe.span_white() == ")"
        return False
