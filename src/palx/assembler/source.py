"""
Source Line and Character Stream
================================

The statement assembler works on one logical line at a time, but those
lines come from two places: the source file and the bodies of macros
being expanded. SourceStream hides the difference. Active macro
expansions form a stack (innermost last); each new line is taken from
the innermost expansion, and an exhausted expansion is popped so the
enclosing one (or finally the file) continues.

Macro bodies and conditional blocks are written between angle brackets
and may span several lines, so on top of the line reader there is a
character reader (next_char) that moves on to the next line by itself,
listing the finished line on the way. Block capture (read_block) is
built on it and never needs to know whether it is crossing the end of
a macro expansion.

Argument Substitution
---------------------
While a line is taken from a macro body, "$name" is replaced by the
actual argument of the formal "name" (a formal written as "$name"
matches too), "$$" becomes a single "$", and a "$name" that is not a
formal disappears.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from palx.assembler.lexer import MAXSTRING, Cursor, scan_name
from palx.assembler.symbols import MacroDefinition
from palx.errors import ErrorCode, MacroOverflowError, UnterminatedBlockError

if TYPE_CHECKING:
    from palx.assembler.context import AssemblerContext


MAXBODY = 4096

BLOCK_WHITESPACE = " \t\n\v\f\r"


def split_lines(text: str) -> list[str]:
    """Split source text into lines, each ending with a newline."""
    lines = [line + "\n" for line in text.split("\n")]
    if lines[-1] == "\n":
        lines.pop()
    return lines


class MacroExpansion:
    """
    One active macro expansion.

    Attributes:
        definition: The macro being expanded
        actuals: Actual argument text, index-aligned with the formals
        pos: Offset of the next unread character of the body
    """

    def __init__(self, definition: MacroDefinition, actuals: list[str]):
        self.definition = definition
        self.actuals = actuals
        self.pos = 0

    def __repr__(self) -> str:
        return f"MacroExpansion({self.definition.name}, {self.actuals!r}, {self.pos})"

    @property
    def exhausted(self) -> bool:
        return self.pos >= len(self.definition.body)

    def actual_for(self, name: str) -> Optional[str]:
        """Return the actual for a formal name, or None if it is not one."""
        for index, formal in enumerate(self.definition.formals):
            if formal.startswith("$"):
                formal = formal[1:]
            if formal == name:
                return self.actuals[index] if index < len(self.actuals) else ""
        return None

    def next_line(self, ctx: AssemblerContext) -> Optional[str]:
        """
        Return the next body line with arguments substituted.

        Returns:
            The line including its newline, or None when the body is used up

        Raises:
            MacroOverflowError: If the expanded line is too long
        """
        body = self.definition.body
        if self.exhausted:
            return None

        out: list[str] = []
        length = 0
        while self.pos < len(body):
            ch = body[self.pos]
            self.pos += 1
            if ch == "$":
                if self.pos < len(body) and body[self.pos] == "$":
                    piece = "$"
                    self.pos += 1
                else:
                    cursor = Cursor(body, self.pos)
                    name = scan_name(cursor)
                    self.pos = cursor.pos
                    if name is None:
                        ctx.flag(ErrorCode.SYNTAX)
                        continue
                    piece = self.actual_for(name) or ""
            else:
                piece = ch
            length += len(piece)
            if length > MAXSTRING - 1:
                raise MacroOverflowError(
                    f"macro expansion too long from line {ctx.source_line}",
                    location=ctx.location,
                )
            out.append(piece)
            if ch == "\n":
                break
        return "".join(out)


class SourceStream:
    """
    Pull-based reader merging file lines and macro expansion lines.

    Every line read becomes ctx.source_text; file lines also advance
    ctx.source_line.
    """

    def __init__(self, ctx: AssemblerContext, text: str):
        self._ctx = ctx
        self._lines = split_lines(text)
        self._index = 0

    def rewind(self) -> None:
        self._index = 0

    def push(self, expansion: MacroExpansion) -> None:
        self._ctx.macro_stack.append(expansion)

    def next_line(self) -> bool:
        """
        Make the next logical line current.

        Returns:
            False at the end of the source file
        """
        ctx = self._ctx
        while ctx.macro_stack:
            line = ctx.macro_stack[-1].next_line(ctx)
            if line is not None:
                ctx.source_text = line
                return True
            ctx.macro_stack.pop()

        if self._index >= len(self._lines):
            return False
        line = self._lines[self._index]
        self._index += 1
        if line.endswith("\r\n"):
            line = line[:-2] + "\n"
        ctx.source_line += 1
        if "\f" in line:
            line = line.replace("\f", "")
            ctx.listing.new_page = True
        ctx.source_text = line
        ctx.mark_line()
        return True

    def next_char(self, cursor: Cursor) -> str:
        """
        Return the next character, continuing on the next line if needed.

        The finished line is listed (source only) before moving on.

        Raises:
            UnterminatedBlockError: At the end of the source file
        """
        ctx = self._ctx
        while True:
            ch = cursor.peek()
            if ch != "":
                cursor.advance()
                return ch
            ctx.list_line()
            if not self.next_line():
                raise UnterminatedBlockError(ctx.location)
            cursor.reset(ctx.source_text)

    def read_block(self, cursor: Cursor, keep: bool = True,
                   add_newline: bool = False) -> Optional[str]:
        """
        Read a <...> block, which may span several lines.

        Anything before the opening '<' other than blanks is an X error.
        A newline right after the '<' is skipped. Nested angle brackets
        are kept in the text.

        Args:
            cursor: Scan position; left just past the closing '>'
            keep: Collect the text (otherwise it is discarded)
            add_newline: Make sure the collected text ends with a newline

        Returns:
            The block text, or None when not kept

        Raises:
            MacroOverflowError: If the block is too long to keep
            UnterminatedBlockError: If the file ends inside the block
        """
        ctx = self._ctx
        while True:
            ch = self.next_char(cursor)
            while ch in BLOCK_WHITESPACE:
                ch = self.next_char(cursor)
            if ch == "<":
                break
            ctx.flag(ErrorCode.SYNTAX)

        ch = self.next_char(cursor)
        if ch == "\n":
            ch = self.next_char(cursor)

        body: list[str] = []
        level = 0
        while ch != ">" or level != 0:
            if keep:
                if len(body) >= MAXBODY - 2:
                    raise MacroOverflowError("macro body too long", location=ctx.location)
                body.append(ch)
            if ch == "<":
                level += 1
            elif ch == ">" and level > 0:
                level -= 1
            ch = self.next_char(cursor)

        if not keep:
            return None
        if add_newline and (not body or body[-1] != "\n"):
            body.append("\n")
        return "".join(body)
