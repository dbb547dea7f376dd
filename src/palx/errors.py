"""
PALX Error Hierarchy
====================

This module defines the exception hierarchy and the per-line error flag
machinery for the PALX cross assembler.

Exception Hierarchy
-------------------
PalxError (base)
└── AssemblerError (assembler-related)
    ├── LineError - recoverable, reported as a listing error letter
    │   ├── ScanError - malformed number, string or escape
    │   └── ExpressionError - operand or expression could not be evaluated
    └── FatalAssemblyError - aborts the assembly immediately
        ├── SymbolTableFullError - no free slot left in the symbol table
        ├── MacroOverflowError - macro body or expansion line too long
        └── UnterminatedBlockError - end of file inside a <...> block

Error Letters
-------------
PDP-8 assemblers traditionally report problems as single letters printed
next to the line number in the listing. A line may carry several letters
but each letter appears only once per line:

| Letter | Meaning                                  |
|--------|------------------------------------------|
| A      | value out of range                       |
| C      | macro argument or body too long          |
| D      | location loaded twice                    |
| E      | explicit .ERROR                          |
| F      | off-field reference                      |
| L      | unknown listing or assembly option       |
| M      | multiply defined symbol                  |
| N      | malformed number                         |
| O      | illegal micro-op combination             |
| P      | page full                                |
| S      | symbol misuse                            |
| T      | illegal character in packed text         |
| U      | undefined symbol                         |
| W      | illegal off-page reference               |
| X      | syntax error                             |
| Z      | unknown or misplaced pseudo-op           |

Recoverable problems never abort the run; they are collected by
ErrorFlags and shown in the listing. Only FatalAssemblyError (and
file-system errors) stop the assembler.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class PalxError(Exception):
    """
    Base exception for all PALX errors.

    Callers can catch every assembler failure with a single clause:

        try:
            assembler.assemble_file("monitor.plx")
        except PalxError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source code for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed, 0 when unknown)
    """
    filename: str
    line: int
    column: int = 0

    def __str__(self) -> str:
        """Format as 'filename:line:column' (or 'filename:line')."""
        if self.column > 0:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.filename}:{self.line}"


# =============================================================================
# Error Letters
# =============================================================================

class ErrorCode(Enum):
    """Single-letter listing error codes."""

    RANGE = "A"
    MACRO = "C"
    DUPLICATE_LOAD = "D"
    USER_ERROR = "E"
    OFF_FIELD = "F"
    LIST_OPTION = "L"
    MULTIPLY_DEFINED = "M"
    NUMBER = "N"
    MICRO_OP = "O"
    PAGE_FULL = "P"
    SYMBOL = "S"
    TEXT = "T"
    UNDEFINED = "U"
    OFF_PAGE = "W"
    SYNTAX = "X"
    PSEUDO_OP = "Z"

    def __str__(self) -> str:
        return self.value


# =============================================================================
# Assembler Exceptions
# =============================================================================

class AssemblerError(PalxError):
    """
    Base exception for all assembler-related errors.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The actual source text at the error location (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

        Example output:
            monitor.plx:212: error: end of file while reading text block
                .IFDEF  PANEL  <
            hint: every '<' needs a matching '>'
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line.rstrip()}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


class LineError(AssemblerError):
    """
    A recoverable error confined to the current source line.

    The code that detects the problem flags the error letter before
    raising, so handlers only need to decide how to continue. The
    partially computed value travels with the exception because the
    word emitted for a bad statement is whatever had been assembled
    when evaluation stopped (e.g. "JMP 1000" off-page still emits 5000).

    Attributes:
        code: The listing error letter
        value: Partial 12-bit value computed before the failure
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        value: int = 0,
        location: Optional[SourceLocation] = None,
    ):
        self.code = code
        self.value = value
        super().__init__(message, location)


class ScanError(LineError):
    """
    Lexical error: malformed number, unterminated string, bad escape.

    Raised by the scanning primitives, which have no access to the
    assembler context; the caller flags the letter.
    """
    pass


class ExpressionError(LineError):
    """
    An operand or expression could not be evaluated.

    Examples:
        - Undefined or multiply defined symbol (U, M)
        - Off-page memory reference (W)
        - Literal pool exhausted (P)
        - Missing closing parenthesis or bracket (X)
    """
    pass


class FatalAssemblyError(AssemblerError):
    """
    Unrecoverable condition; assembly stops immediately.

    No listing or binary is produced for a run that ends this way.
    """
    pass


class SymbolTableFullError(FatalAssemblyError):
    """Raised when linear probing wraps without finding a free slot."""

    def __init__(self, name: str, size: int):
        self.name = name
        self.size = size
        super().__init__(
            f"symbol table full ({size} entries) adding '{name}'",
            hint="reduce the number of distinct symbols",
        )


class MacroOverflowError(FatalAssemblyError):
    """Raised when a macro body or an expanded macro line is too long."""
    pass


class UnterminatedBlockError(FatalAssemblyError):
    """Raised when the source ends inside a <...> text block."""

    def __init__(self, location: Optional[SourceLocation] = None):
        super().__init__(
            "end of file while reading text block",
            location=location,
            hint="every '<' needs a matching '>'",
        )


# =============================================================================
# Per-Line Error Flags
# =============================================================================

class ErrorFlags:
    """
    Collects the error letters for the current listing line.

    A letter is recorded at most once per line, and letters listed by
    .NOWARN are dropped silently. Every accepted letter counts towards
    the total shown in the assembly summary.

    Example:
        flags = ErrorFlags()
        flags.flag(ErrorCode.UNDEFINED)
        flags.flag(ErrorCode.UNDEFINED)   # ignored, already present
        flags.letters                     # "U"
        flags.take()                      # "U", and the line is cleared
    """

    def __init__(self) -> None:
        self.letters = ""
        self.ignored = ""
        self.count = 0

    def flag(self, code: ErrorCode) -> bool:
        """
        Record an error letter for the current line.

        Args:
            code: The error to record

        Returns:
            True if the letter was recorded, False if it was ignored
            or already present on this line
        """
        letter = code.value
        if letter in self.ignored or letter in self.letters:
            return False
        self.letters += letter
        self.count += 1
        return True

    def set_ignored(self, letters: str) -> None:
        """Replace the set of error letters suppressed by .NOWARN."""
        self.ignored = letters.upper()

    def has_errors(self) -> bool:
        """Return True if the current line has any error letters."""
        return bool(self.letters)

    def take(self) -> str:
        """Return the current letters and clear them for the next line."""
        letters = self.letters
        self.letters = ""
        return letters

    def reset(self) -> None:
        """Clear everything at the start of a pass."""
        self.letters = ""
        self.ignored = ""
        self.count = 0
