"""
PALX Source Scanner
===================

This module implements the character-level scanning primitives used by
the PALX statement assembler. PAL source is not tokenized up front:
every statement handler walks a Cursor over the current logical line and
pulls names, numbers and strings from it as the syntax demands, exactly
like the classic DEC assemblers did.

Lexical Rules
-------------
- Names start with a letter, '%', '$' or '_' and continue with letters,
  digits, '.', '%', '$' and '_'. They are folded to upper case and only
  the first 11 characters are significant (the rest is consumed).
- A statement ends at ';' (comment), '>' (end of a conditional block),
  a newline or the end of the text.
- Strings are delimited by their first non-blank character, which is
  used as both the opening and closing quote: /abc/, "abc", 'abc'.

Number Formats
--------------
Digits are accumulated as both octal and decimal at the same time; the
suffix (or the digits themselves) decide which interpretation wins:

| Example | Suffix | Interpretation                         | Value |
|---------|--------|----------------------------------------|-------|
| 177     | none   | octal (no 8 or 9 present)              | 127   |
| 189     | none   | decimal (an 8 or 9 is present)         | 189   |
| 177B    | B      | octal, 8 and 9 are an N error          | 127   |
| 100D    | D      | decimal                                | 100   |
| 100.    | .      | decimal                                | 100   |

Escapes
-------
.ASCIZ and .TEXT strings may contain the escapes \\r, \\n, \\t, \\d (date),
\\h (time) and \\\\ (backslash).

Example
-------
>>> from palx.assembler.lexer import Cursor, scan_name, scan_number
>>> cursor = Cursor("tad  177 ; comment")
>>> scan_name(cursor)
'TAD'
>>> scan_number(cursor)
127
>>> cursor.at_eol()
True
"""

from datetime import datetime
from typing import Optional

from palx.errors import ErrorCode, ScanError


# =============================================================================
# Constants
# =============================================================================

IDLEN = 12          # name buffer size; 11 significant characters
MAXSTRING = 256     # line, string and actual argument buffer size

# isspace() minus the newline, which terminates a statement
WHITESPACE = " \t\v\f\r"

MONTHS = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN",
          "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")

_ESCAPES = {"r": "\r", "n": "\n", "t": "\t", "\\": "\\"}


# =============================================================================
# Character Classes
# =============================================================================

def is_eol(ch: str) -> bool:
    """Return True if ch terminates a statement."""
    return ch == "" or ch in ";>\n"


def is_id1(ch: str) -> bool:
    """Return True if ch may start a name."""
    return ch != "" and (("A" <= ch <= "Z") or ("a" <= ch <= "z") or ch in "%$_")


def is_id2(ch: str) -> bool:
    """Return True if ch may continue a name."""
    return is_id1(ch) or ("0" <= ch <= "9") or ch == "."


def is_digit(ch: str) -> bool:
    return ch != "" and "0" <= ch <= "9"


# =============================================================================
# Cursor
# =============================================================================

class Cursor:
    """
    A read position within one logical source line.

    The cursor never raises on reads past the end: peek() returns an
    empty string there, which every character class treats as an end of
    statement.

    Attributes:
        text: The line being scanned (usually ending with a newline)
        pos: Index of the next unread character
    """

    def __init__(self, text: str, pos: int = 0):
        self.text = text
        self.pos = pos

    def __repr__(self) -> str:
        return f"Cursor({self.text!r}, {self.pos})"

    def peek(self, offset: int = 0) -> str:
        """Return the character offset positions ahead, or '' at the end."""
        index = self.pos + offset
        if index < len(self.text):
            return self.text[index]
        return ""

    def advance(self, count: int = 1) -> None:
        """Move forward, stopping at the end of the text."""
        self.pos = min(self.pos + count, len(self.text))

    def span_white(self) -> str:
        """Skip blanks (but not newlines) and return the next character."""
        while self.peek() != "" and self.peek() in WHITESPACE:
            self.pos += 1
        return self.peek()

    def at_eol(self) -> bool:
        """Skip blanks and report whether the statement has ended."""
        return is_eol(self.span_white())

    def rest(self) -> str:
        """Return the unread part of the line."""
        return self.text[self.pos:]

    def reset(self, text: str) -> None:
        """Continue scanning at the start of a new line."""
        self.text = text
        self.pos = 0


# =============================================================================
# Names and Numbers
# =============================================================================

def scan_name(cursor: Cursor, size: int = IDLEN) -> Optional[str]:
    """
    Scan a symbol name.

    Leading blanks are skipped. The name is folded to upper case and
    truncated to size-1 characters, but all of it is consumed.

    Args:
        cursor: Scan position, advanced past the name on success
        size: Name buffer size including the terminator

    Returns:
        The name, or None if the next character cannot start a name
        (the cursor is then left on that character)
    """
    if not is_id1(cursor.span_white()):
        return None
    chars = []
    while is_id2(cursor.peek()):
        ch = cursor.peek()
        if len(chars) < size - 1:
            chars.append(ch.upper() if "a" <= ch <= "z" else ch)
        cursor.advance()
    return "".join(chars)


def scan_number(cursor: Cursor) -> int:
    """
    Scan an octal or decimal number.

    Both interpretations are accumulated as 16-bit quantities while the
    digits are read; see the module documentation for how the radix is
    chosen.

    Raises:
        ScanError: N if there are no digits, or a B suffixed number
            contains an 8 or 9
    """
    octal = decimal = 0
    has_digits = False
    not_octal = False
    cursor.span_white()
    while is_digit(cursor.peek()):
        digit = ord(cursor.peek()) - ord("0")
        octal = (octal * 8 + digit) & 0xFFFF
        decimal = (decimal * 10 + digit) & 0xFFFF
        if digit > 7:
            not_octal = True
        has_digits = True
        cursor.advance()

    if not has_digits:
        raise ScanError(ErrorCode.NUMBER, "number expected")

    suffix = cursor.peek()
    if suffix in ("B", "b"):
        cursor.advance()
        if not_octal:
            raise ScanError(ErrorCode.NUMBER, "8 or 9 in an octal number")
        return octal
    if suffix in ("D", "d", "."):
        cursor.advance()
        return decimal
    return decimal if not_octal else octal


# =============================================================================
# Strings
# =============================================================================

def get_argument_string(cursor: Cursor) -> str:
    """
    Read a quoted string argument.

    The first non-blank character is the delimiter; the string runs to
    the next occurrence of it and the statement must end right after.

    Raises:
        ScanError: X if the delimiter is missing, the closing delimiter
            is not found on the line, the string is too long, or anything
            but a comment follows it
    """
    quote = cursor.span_white()
    if is_eol(quote):
        raise ScanError(ErrorCode.SYNTAX, "string expected")
    cursor.advance()

    chars = []
    while cursor.peek() != quote:
        ch = cursor.peek()
        if ch == "" or ch == "\n":
            raise ScanError(ErrorCode.SYNTAX, f"missing closing {quote}")
        if len(chars) >= MAXSTRING - 1:
            raise ScanError(ErrorCode.SYNTAX, "string too long")
        chars.append(ch)
        cursor.advance()
    cursor.advance()

    if not cursor.at_eol():
        raise ScanError(ErrorCode.SYNTAX, "junk after string")
    return "".join(chars)


def format_date(timestamp: datetime) -> str:
    """Format a date as DD-MMM-YY, e.g. 03-JUL-25."""
    return f"{timestamp.day:02d}-{MONTHS[timestamp.month - 1]}-{timestamp.year % 100:02d}"


def format_time(timestamp: datetime) -> str:
    """Format a time as HH:MM:SS."""
    return f"{timestamp.hour:02d}:{timestamp.minute:02d}:{timestamp.second:02d}"


def expand_escapes(text: str, timestamp: datetime) -> str:
    """
    Expand backslash escapes in a text string.

    Args:
        text: String as written in the source
        timestamp: Assembly time used by \\d and \\h

    Returns:
        The expanded string

    Raises:
        ScanError: X for an unknown escape or if the result would exceed
            the string buffer
    """
    out = []
    length = 0
    i = 0
    while i < len(text):
        ch = text[i]
        i += 1
        if ch == "\\":
            code = text[i] if i < len(text) else ""
            i += 1
            if code == "d":
                piece = format_date(timestamp)
            elif code == "h":
                piece = format_time(timestamp)
            elif code in _ESCAPES:
                piece = _ESCAPES[code]
            else:
                raise ScanError(ErrorCode.SYNTAX, f"unknown escape \\{code}")
        else:
            piece = ch
        length += len(piece)
        if length > MAXSTRING - 1:
            raise ScanError(ErrorCode.SYNTAX, "expanded string too long")
        out.append(piece)
    return "".join(out)
