"""
Symbol Table Management
=======================

This module implements the PALX symbol table: an open-addressed hash
table that holds user symbols (tags, equates, user opcodes, macros)
side by side with the built-in machine instructions and pseudo-ops.

Symbol Kinds
------------
| Kind             | Meaning                                 | Value          |
|------------------|-----------------------------------------|----------------|
| UNDEFINED        | seen but never defined                  | -              |
| TAG              | label (NAME:)                           | field<<12 \\| pc |
| EQUATE           | NAME=expression                         | 12-bit value   |
| USER_OPCODE      | .MRI NAME=value                         | base opcode    |
| MACRO            | .DEFINE NAME                            | MacroDefinition|
| MULTIPLY_DEFINED | conflicting definitions (sticky)        | -              |
| MRI ... CXF      | built-in machine instruction            | base opcode    |
| PSEUDO_OP        | built-in pseudo-op                      | PseudoOp       |

A symbol that leaves UNDEFINED and is then defined differently becomes
MULTIPLY_DEFINED for the rest of the assembly. The table itself is NOT
reset between passes; pass 2 sees every symbol defined in pass 1.

Hashing
-------
Names are hashed base-95 over their printable characters and placed
with linear probing. The table has a fixed number of slots (a prime);
when probing wraps around without finding the name or a free slot the
assembly stops with SymbolTableFullError.

Cross Reference
---------------
Every symbol keeps an append-only list of the source lines that use or
define it, in the order they were seen during pass 2. A line is
recorded once even when it mentions the symbol several times.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterable, Iterator, Optional

from palx.cpu.pdp8 import Instruction, PDP8_INSTRUCTIONS
from palx.errors import SymbolTableFullError


# =============================================================================
# Constants
# =============================================================================

HASHSIZE = 3079


# =============================================================================
# Symbol Kinds and Pseudo-Ops
# =============================================================================

class SymbolKind(Enum):
    """What a symbol currently stands for."""
    UNDEFINED = auto()
    TAG = auto()
    EQUATE = auto()
    USER_OPCODE = auto()
    MACRO = auto()
    MULTIPLY_DEFINED = auto()
    # Built-in machine instructions (names match InstructionClass)
    MRI = auto()
    OPR = auto()
    IOT = auto()
    PIE = auto()
    PIO = auto()
    CXF = auto()
    PSEUDO_OP = auto()

    @property
    def is_builtin(self) -> bool:
        return self in _BUILTIN_KINDS

    @property
    def is_opcode(self) -> bool:
        return self in _OPCODE_KINDS


_OPCODE_KINDS = frozenset({
    SymbolKind.MRI, SymbolKind.OPR, SymbolKind.IOT,
    SymbolKind.PIE, SymbolKind.PIO, SymbolKind.CXF,
    SymbolKind.USER_OPCODE,
})

_BUILTIN_KINDS = frozenset({
    SymbolKind.MRI, SymbolKind.OPR, SymbolKind.IOT,
    SymbolKind.PIE, SymbolKind.PIO, SymbolKind.CXF,
    SymbolKind.PSEUDO_OP,
})


class PseudoOp(Enum):
    """Pseudo-operations recognized by the statement assembler."""
    END = auto()
    ORG = auto()
    DATA = auto()
    TITLE = auto()
    ASCIZ = auto()
    BLOCK = auto()
    SIXBIT = auto()
    SIXBIZ = auto()
    MRI = auto()
    NLOAD = auto()
    PAGE = auto()
    FIELD = auto()
    HD6120 = auto()
    IM6100 = auto()
    VECTOR = auto()
    STACK = auto()
    PUSH = auto()
    POP = auto()
    PUSHJ = auto()
    POPJ = auto()
    TEXT = auto()
    DEFINE = auto()
    IFDEF = auto()
    IFNDEF = auto()
    IFEQ = auto()
    IFNE = auto()
    IFLT = auto()
    IFLE = auto()
    IFGT = auto()
    IFGE = auto()
    NOWARN = auto()
    ERROR = auto()
    LIST = auto()
    NOLIST = auto()
    ENABLE = auto()
    DISABLE = auto()
    EJECT = auto()


# Source spelling of every pseudo-op; .HM6120 is an alias for .HD6120
PSEUDO_OP_NAMES: dict[str, PseudoOp] = {
    "." + op.name: op for op in PseudoOp
}
PSEUDO_OP_NAMES[".HM6120"] = PseudoOp.HD6120


# =============================================================================
# Symbol Data Classes
# =============================================================================

@dataclass(frozen=True)
class CrossReference:
    """One line that uses (or defines, when is_definition) a symbol."""
    line: int
    is_definition: bool


@dataclass
class MacroDefinition:
    """
    A macro created with .DEFINE.

    Attributes:
        name: Macro name
        formals: Formal argument names (a leading '$' marks an argument
                 that gets a generated label when the actual is empty)
        body: Body text, always ending with a newline once defined
    """
    name: str
    formals: list[str] = field(default_factory=list)
    body: str = ""


@dataclass
class Symbol:
    """
    A symbol table entry.

    Attributes:
        name: Upper case name (at most 11 significant characters)
        kind: Current kind
        value: Tag, equate or opcode value
        macro: Definition for MACRO symbols
        pseudo_op: Handler id for PSEUDO_OP symbols
        references: Cross reference, in order of appearance
    """
    name: str
    kind: SymbolKind = SymbolKind.UNDEFINED
    value: int = 0
    macro: Optional[MacroDefinition] = None
    pseudo_op: Optional[PseudoOp] = None
    references: list[CrossReference] = field(default_factory=list)

    @property
    def is_referenced(self) -> bool:
        return bool(self.references)

    def add_reference(self, line: int, is_definition: bool) -> None:
        """Record a use or definition, at most once per source line."""
        if self.references and self.references[-1].line == line:
            return
        self.references.append(CrossReference(line, is_definition))

    def define(self, kind: SymbolKind, value: int = 0) -> None:
        self.kind = kind
        self.value = value


# =============================================================================
# Symbol Table
# =============================================================================

class SymbolTable:
    """
    Open-addressed hash table of symbols.

    Attributes:
        size: Number of slots
    """

    def __init__(self, size: int = HASHSIZE):
        self.size = size
        self._slots: list[Optional[Symbol]] = [None] * size
        self._count = 0

    def __len__(self) -> int:
        return self._count

    def __contains__(self, name: str) -> bool:
        return self.lookup(name) is not None

    def __iter__(self) -> Iterator[Symbol]:
        return (symbol for symbol in self._slots if symbol is not None)

    def hash_code(self, name: str) -> int:
        """Return the home slot for a name."""
        value = 0
        for ch in name:
            value = (value * 95 + (ord(ch) - 32)) & 0xFFFFFFFF
        return value % self.size

    def lookup(self, name: str, create: bool = False) -> Optional[Symbol]:
        """
        Find a symbol, optionally creating it as UNDEFINED.

        Args:
            name: Upper case symbol name
            create: Allocate a new entry when the name is not present

        Returns:
            The symbol, or None if absent and create is False

        Raises:
            SymbolTableFullError: If probing wraps without finding a
                free slot or the name
        """
        home = index = self.hash_code(name)
        while True:
            symbol = self._slots[index]
            if symbol is None:
                if not create:
                    return None
                symbol = Symbol(name)
                self._slots[index] = symbol
                self._count += 1
                return symbol
            if symbol.name == name:
                return symbol
            index = (index + 1) % self.size
            if index == home:
                if not create:
                    return None
                raise SymbolTableFullError(name, self.size)

    def define_builtin(self, name: str, kind: SymbolKind, value: int = 0,
                       pseudo_op: Optional[PseudoOp] = None) -> Symbol:
        """Create or overwrite a built-in symbol."""
        symbol = self.lookup(name, create=True)
        symbol.kind = kind
        symbol.value = value
        symbol.pseudo_op = pseudo_op
        symbol.macro = None
        return symbol

    def define_instructions(self, instructions: Iterable[Instruction]) -> None:
        """Add machine instructions, replacing any symbol of the same name."""
        for instruction in instructions:
            self.define_builtin(instruction.mnemonic,
                                SymbolKind[instruction.kind.name],
                                instruction.opcode)

    def seed_builtins(self) -> None:
        """Add the PDP-8 instructions and every pseudo-op."""
        self.define_instructions(PDP8_INSTRUCTIONS)
        for name, op in PSEUDO_OP_NAMES.items():
            self.define_builtin(name, SymbolKind.PSEUDO_OP, pseudo_op=op)

    def sorted_symbols(self) -> list[Symbol]:
        """Return every symbol in ascending name order."""
        return sorted(self, key=lambda symbol: symbol.name)
