"""
Expression Evaluator
====================

This module evaluates PAL expressions and machine instructions. In PAL
an instruction is just another kind of operand: "TAD X" evaluates to the
complete instruction word, so the same evaluator handles data words,
pseudo-op arguments and code.

Operands
--------
| Syntax     | Meaning                                     |
|------------|---------------------------------------------|
| 123, 99.   | number (see the lexer for radix rules)      |
| NAME       | tag, equate or instruction                  |
| * or .     | current location                            |
| (expr)     | nested expression                           |
| [expr]     | address of a literal on the current page    |
| "c"        | ASCII code of one character                 |

Each operand may have one leading +, - (two's complement) or ~ (ones'
complement).

Operators
---------
The binary operators + - & | * / % are applied strictly from left to
right with no precedence: 2+3*4 is (2+3)*4 = 024. All arithmetic is
modulo 4096. Evaluation stops, without consuming it, at the first
character that is not an operator.

Errors
------
Every failure flags its error letter on the current line and raises
ExpressionError. The exception carries the part of the value that was
computed before the failure, because that is the word PALX emits for a
bad statement (an off-page "JMP 1000" still assembles as 5000).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from palx.assembler.lexer import Cursor, is_digit, is_id1, scan_name, scan_number
from palx.assembler.symbols import Symbol, SymbolKind
from palx.cpu.pdp8 import DEVICE_ADDRESS_LIMITS, InstructionClass, oprs_compatible
from palx.errors import ErrorCode, ExpressionError, ScanError

if TYPE_CHECKING:
    from palx.assembler.context import AssemblerContext
    from palx.assembler.literals import PageAllocator


OPERATORS = "+-&|*/%"

INDIRECT = 0o400
CURRENT_PAGE = 0o200


def _apply(op: str, left: int, right: int) -> tuple[int, bool]:
    """Apply a binary operator; the flag is False for a division by zero."""
    if op == "+":
        return (left + right) & 0o7777, True
    if op == "-":
        return (left + (4096 - right)) & 0o7777, True
    if op == "&":
        return (left & right) & 0o7777, True
    if op == "|":
        return (left | right) & 0o7777, True
    if op == "*":
        return (left * right) & 0o7777, True
    if right == 0:
        return 0, False
    if op == "/":
        return (left // right) & 0o7777, True
    return (left % right) & 0o7777, True


class ExpressionEvaluator:
    """
    Evaluates expressions, literals and instruction operands.

    Attributes:
        ctx: Assembler context (location counter, field, error flags)
        pages: Allocator used for [literal] operands
    """

    def __init__(self, ctx: AssemblerContext, pages: PageAllocator):
        self.ctx = ctx
        self.pages = pages

    def _fail(self, code: ErrorCode, message: str, value: int = 0) -> ExpressionError:
        self.ctx.flag(code)
        return ExpressionError(code, message, value=value, location=self.ctx.location)

    # =========================================================================
    # Expressions
    # =========================================================================

    def evaluate(self, cursor: Cursor) -> int:
        """
        Evaluate an expression.

        Args:
            cursor: Scan position, left on the first unused character

        Returns:
            The value

        Raises:
            ExpressionError: With the value accumulated so far
        """
        value = self.operand(cursor)
        while True:
            op = cursor.span_white()
            if op == "" or op not in OPERATORS:
                return value
            cursor.advance()
            try:
                right = self.operand(cursor)
            except ExpressionError as e:
                e.value = value
                raise
            value, ok = _apply(op, value, right)
            if not ok:
                self.ctx.flag(ErrorCode.RANGE)

    def operand(self, cursor: Cursor) -> int:
        """Evaluate a single operand with its optional unary operator."""
        negate = complement = False
        sign = cursor.span_white()
        if sign in ("+", "-", "~"):
            negate = sign == "-"
            complement = sign == "~"
            cursor.advance()
            cursor.span_white()

        ch = cursor.peek()
        if ch == "(":
            cursor.advance()
            try:
                value = self.evaluate(cursor)
            except ExpressionError as e:
                raise self._fail(ErrorCode.SYNTAX, "bad nested expression", e.value)
            if cursor.peek() != ")":
                raise self._fail(ErrorCode.SYNTAX, "missing )", value)
            cursor.advance()
        elif ch in ("*", "."):
            value = self.ctx.pc
            cursor.advance()
        elif ch == "[":
            value = self.literal(cursor)
        elif ch == '"':
            value = self.character(cursor)
        elif is_digit(ch):
            try:
                value = scan_number(cursor)
            except ScanError as e:
                raise self._fail(e.code, e.message)
        elif is_id1(ch):
            value = self.symbol(cursor, scan_name(cursor))
        else:
            raise self._fail(ErrorCode.SYNTAX, "operand expected")

        if negate:
            value = (4096 - value) & 0o7777
        if complement:
            value = ~value & 0o7777
        return value

    def literal(self, cursor: Cursor) -> int:
        """Evaluate [expr] and return the address of the literal."""
        cursor.advance()
        try:
            value = self.evaluate(cursor)
        except ExpressionError:
            raise self._fail(ErrorCode.SYNTAX, "bad literal")
        if cursor.peek() != "]":
            raise self._fail(ErrorCode.SYNTAX, "missing ]")
        cursor.advance()
        return self.pages.literal(value)

    def character(self, cursor: Cursor) -> int:
        """Evaluate "c", the ASCII code of one character."""
        cursor.advance()
        ch = cursor.peek()
        value = ord(ch) if ch else 0
        cursor.advance()
        if self.ctx.ascii_mark:
            value |= 0o200
        if cursor.peek() != '"':
            raise self._fail(ErrorCode.SYNTAX, 'missing closing "', value)
        cursor.advance()
        return value

    def symbol(self, cursor: Cursor, name: str) -> int:
        """Evaluate a name: a tag, an equate or a whole instruction."""
        ctx = self.ctx
        symbol = ctx.symbols.lookup(name, create=True)
        ctx.reference(symbol)

        kind = symbol.kind
        if kind == SymbolKind.TAG:
            if ((symbol.value >> 12) & 7) != ctx.field:
                ctx.flag(ErrorCode.OFF_FIELD)
            return symbol.value & 0o7777
        if kind == SymbolKind.EQUATE:
            return symbol.value
        if kind.is_opcode:
            return self.opcode(cursor, symbol)
        if kind == SymbolKind.UNDEFINED:
            raise self._fail(ErrorCode.UNDEFINED, f"undefined symbol {name}")
        if kind == SymbolKind.MULTIPLY_DEFINED:
            raise self._fail(ErrorCode.MULTIPLY_DEFINED, f"multiply defined symbol {name}")
        raise self._fail(ErrorCode.SYMBOL, f"{name} cannot be used in an expression")

    # =========================================================================
    # Instructions
    # =========================================================================

    def opcode(self, cursor: Cursor, symbol: Symbol) -> int:
        """Evaluate the operand of an instruction and return the word."""
        kind = symbol.kind
        if kind in (SymbolKind.MRI, SymbolKind.USER_OPCODE):
            return self.mri(cursor, symbol)
        if kind == SymbolKind.OPR:
            return self.opr(cursor, symbol)
        if kind == SymbolKind.CXF:
            return self.cxf(cursor, symbol)
        if kind in (SymbolKind.PIE, SymbolKind.PIO):
            return self.device(cursor, symbol)
        return symbol.value

    def mri(self, cursor: Cursor, symbol: Symbol) -> int:
        """
        Evaluate a memory reference instruction.

        The address must be on page zero or on the current page; the
        instruction word is built from the opcode, the indirect bit
        (@), the current page bit and the 7-bit page offset.

        Raises:
            ExpressionError: W for an off-page address, or whatever the
                address expression raised; the value is the opcode with
                the indirect bit
        """
        value = symbol.value
        if cursor.span_white() == "@":
            value |= INDIRECT
            cursor.advance()
        try:
            address = self.evaluate(cursor)
        except ExpressionError as e:
            e.value = value
            raise
        if (address & 0o7600) == 0:
            return value | (address & 0o177)
        if (address & 0o7600) == (self.ctx.pc & 0o7600):
            return value | CURRENT_PAGE | (address & 0o177)
        raise self._fail(ErrorCode.OFF_PAGE, f"{address:04o} is not on this page", value)

    def opr(self, cursor: Cursor, symbol: Symbol) -> int:
        """Combine a sequence of operate micro-instructions into one word."""
        ctx = self.ctx
        value = symbol.value
        while True:
            name = scan_name(cursor)
            if name is None:
                return value
            micro = ctx.symbols.lookup(name, create=True)
            ctx.reference(micro)
            if micro.kind != SymbolKind.OPR:
                raise self._fail(ErrorCode.MICRO_OP, f"{name} is not an operate instruction", value)
            if not oprs_compatible(value, micro.value):
                ctx.flag(ErrorCode.MICRO_OP)
            value |= micro.value

    def cxf(self, cursor: Cursor, symbol: Symbol) -> int:
        """Evaluate CDF/CIF/CXF with a field number 0-7."""
        try:
            field = self.evaluate(cursor)
        except ExpressionError as e:
            e.value = 0
            raise
        if field > 7:
            raise self._fail(ErrorCode.RANGE, f"field {field:o} out of range")
        return symbol.value | (field << 3)

    def device(self, cursor: Cursor, symbol: Symbol) -> int:
        """Evaluate an IM6101/IM6103 instruction with its select address."""
        try:
            address = self.evaluate(cursor)
        except ExpressionError as e:
            e.value = 0
            raise
        limit = DEVICE_ADDRESS_LIMITS[InstructionClass[symbol.kind.name]]
        if address == 0 or address > limit:
            raise self._fail(ErrorCode.RANGE, f"select address {address} out of range")
        return symbol.value | (address << 4)
