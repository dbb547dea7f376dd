"""
Pseudo-Operations
=================

Every statement starting with '.' is a pseudo-op. Each one is handled
by its own method and is responsible for everything that happens on
its line, listing included, because several of them generate more than
one word (or one listing line).

Listing and Option Control
--------------------------
| Pseudo-op        | Effect                                          |
|------------------|-------------------------------------------------|
| .TITLE text      | page title and table of contents entry          |
| .EJECT           | start a new listing page after this line        |
| .LIST / .NOLIST  | MET, TXB, TOC, MAP, SYM, PAG (and ALL)          |
| .ENABLE/.DISABLE | OS8 (six-bit coding), ASR (mark bit on ASCII)   |
| .NOWARN letters  | error letters to suppress                       |
| .ERROR           | always flags an E error                         |

Code and Data
-------------
| Pseudo-op           | Words generated                               |
|---------------------|-----------------------------------------------|
| .DATA a, b, ...     | one word per expression                       |
| .ASCIZ /text/       | one character per word, then 0                |
| .TEXT /text/        | three characters in two words (OS/8 packing)  |
| .SIXBIT / .SIXBIZ   | two six-bit characters per word               |
| .NLOAD n            | one OPR instruction that loads n into the AC  |
| .BLOCK n            | reserves n words without generating any       |

Location Control
----------------
.ORG, .PAGE and .FIELD move the location counter, writing out the
literal pool when the page changes. .END writes out any pending pool.

IM6100/HD6120 Support
---------------------
.IM6100 and .HD6120 (alias .HM6120) select the processor and add its
mnemonics. .VECTOR places the reset vector at the top of the page
through the literal pool, and .STACK configures the opcodes that .PUSH,
.POP, .PUSHJ and .POPJ generate.

Pass Invariance
---------------
A pseudo-op must take exactly the same number of words in both passes,
or every later address would move. Handlers that skip evaluation in
pass 1 (.DATA, .NLOAD, .PUSHJ) still emit placeholder words there.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from palx.assembler.lexer import (
    Cursor,
    expand_escapes,
    get_argument_string,
    is_eol,
    scan_name,
)
from palx.assembler.literals import PAGE_MASK, PAGE_SIZE
from palx.assembler.symbols import PseudoOp, SymbolKind
from palx.cpu.pdp8 import CPU, CPU_INSTRUCTIONS, NOP, nload_opcode
from palx.errors import ErrorCode, ExpressionError, ScanError

if TYPE_CHECKING:
    from palx.assembler.conditionals import ConditionalEngine
    from palx.assembler.context import AssemblerContext
    from palx.assembler.expressions import ExpressionEvaluator
    from palx.assembler.literals import PageAllocator
    from palx.assembler.macros import MacroEngine

logger = logging.getLogger(__name__)


# .LIST / .NOLIST mnemonics and the ListingOptions attribute they control
LIST_OPTIONS = {
    "MET": "macro_text",
    "TXB": "text_binary",
    "TOC": "toc",
    "MAP": "memory_map",
    "SYM": "symbols",
    "PAG": "paginate",
}

# .LIST ALL turns on everything except pagination
LIST_ALL = ("macro_text", "text_binary", "toc", "memory_map", "symbols")

# .ENABLE / .DISABLE mnemonics and the context attribute they control
ASSEMBLY_OPTIONS = {
    "OS8": "os8_sixbit",
    "ASR": "ascii_mark",
}

CPU_PSEUDO_OPS = {
    PseudoOp.IM6100: CPU.IM6100,
    PseudoOp.HD6120: CPU.HD6120,
}

ASCII_MARK = 0o200

JMP_INDIRECT_VECTOR = 0o5776
JMP_CURRENT_PAGE = 0o5200

SIXBIT_TERMINATOR = 0o77


def count_data_words(text: str) -> int:
    """
    Count the expressions of a .DATA statement.

    Commas inside double quotes do not separate expressions.
    """
    words = 1
    i = 0
    while i < len(text) and not is_eol(text[i]):
        ch = text[i]
        i += 1
        if ch == ",":
            words += 1
        elif ch == '"':
            while i < len(text) and text[i] not in ('"', "\n"):
                i += 1
            if i < len(text) and text[i] == '"':
                i += 1
    return words


def sixbit_code(ch: str, os8: bool) -> tuple[int, bool]:
    """
    Convert one character to six-bit code.

    Args:
        ch: The character; a-z are folded to upper case
        os8: Use OS/8 coding (ASCII & 077) instead of ASCII - 040

    Returns:
        The six-bit value and whether the character is representable
    """
    if "a" <= ch <= "z":
        ch = ch.upper()
    value = ord(ch) & 0o377
    valid = 0o40 <= value <= 0o137
    if os8:
        return value & 0o77, valid
    return (value - 0o40) & 0o77, valid


class PseudoOpProcessor:
    """
    Executes pseudo-ops for the statement assembler.

    Args:
        ctx: Assembler context
        evaluator: Expression evaluator
        pages: Word and literal emitter
        macros: Handles .DEFINE
        conditionals: Handles the .IFxxx family
    """

    def __init__(
        self,
        ctx: AssemblerContext,
        evaluator: ExpressionEvaluator,
        pages: PageAllocator,
        macros: MacroEngine,
        conditionals: ConditionalEngine,
    ):
        self._ctx = ctx
        self._evaluator = evaluator
        self._pages = pages
        self._macros = macros
        self._conditionals = conditionals

        self._handlers: dict[PseudoOp, Callable[[Cursor], None]] = {
            PseudoOp.END: self.do_end,
            PseudoOp.ORG: self.do_org,
            PseudoOp.DATA: self.do_data,
            PseudoOp.TITLE: self.do_title,
            PseudoOp.ASCIZ: self.do_asciz,
            PseudoOp.TEXT: self.do_text,
            PseudoOp.BLOCK: self.do_block,
            PseudoOp.SIXBIT: lambda cursor: self.do_sixbit(cursor, terminate=False),
            PseudoOp.SIXBIZ: lambda cursor: self.do_sixbit(cursor, terminate=True),
            PseudoOp.MRI: self.do_mri,
            PseudoOp.NLOAD: self.do_nload,
            PseudoOp.PAGE: self.do_page,
            PseudoOp.FIELD: self.do_field,
            PseudoOp.IM6100: lambda cursor: self.do_cpu(cursor, CPU.IM6100),
            PseudoOp.HD6120: lambda cursor: self.do_cpu(cursor, CPU.HD6120),
            PseudoOp.VECTOR: self.do_vector,
            PseudoOp.STACK: self.do_stack,
            PseudoOp.PUSH: lambda cursor: self.do_stack_op(cursor, self._ctx.stack.push),
            PseudoOp.POP: lambda cursor: self.do_stack_op(cursor, self._ctx.stack.pop),
            PseudoOp.POPJ: lambda cursor: self.do_stack_op(cursor, self._ctx.stack.popj),
            PseudoOp.PUSHJ: self.do_pushj,
            PseudoOp.DEFINE: self._macros.define,
            PseudoOp.IFDEF: lambda cursor: self._conditionals.symbol_test(PseudoOp.IFDEF, cursor),
            PseudoOp.IFNDEF: lambda cursor: self._conditionals.symbol_test(PseudoOp.IFNDEF, cursor),
            PseudoOp.NOWARN: self.do_nowarn,
            PseudoOp.ERROR: self.do_error,
            PseudoOp.LIST: lambda cursor: self.do_list_options(cursor, True),
            PseudoOp.NOLIST: lambda cursor: self.do_list_options(cursor, False),
            PseudoOp.ENABLE: lambda cursor: self.do_assembly_options(cursor, True),
            PseudoOp.DISABLE: lambda cursor: self.do_assembly_options(cursor, False),
            PseudoOp.EJECT: self.do_eject,
        }
        for op in (PseudoOp.IFEQ, PseudoOp.IFNE, PseudoOp.IFLT,
                   PseudoOp.IFLE, PseudoOp.IFGT, PseudoOp.IFGE):
            self._handlers[op] = self._value_test(op)

    def _value_test(self, op: PseudoOp) -> Callable[[Cursor], None]:
        return lambda cursor: self._conditionals.value_test(op, cursor)

    def dispatch(self, op: PseudoOp, cursor: Cursor) -> None:
        """
        Execute a pseudo-op.

        Args:
            op: The pseudo-op
            cursor: Positioned just after its name
        """
        self._handlers[op](cursor)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _evaluate(self, cursor: Cursor) -> tuple[int, bool]:
        """Evaluate an expression; returns the (partial) value and success."""
        try:
            return self._evaluator.evaluate(cursor), True
        except ExpressionError as e:
            return e.value, False

    def _text_argument(self, cursor: Cursor) -> str:
        """Read and expand a delimited string; an empty string on errors."""
        try:
            text = get_argument_string(cursor)
            return expand_escapes(text, self._ctx.listing.timestamp)
        except ScanError as e:
            self._ctx.flag(e.code)
            return ""

    def _syntax_unless_eol(self, cursor: Cursor) -> None:
        if not cursor.at_eol():
            self._ctx.flag(ErrorCode.SYNTAX)

    # =========================================================================
    # Listing and Option Control
    # =========================================================================

    def do_title(self, cursor: Cursor) -> None:
        ctx = self._ctx
        if not ctx.pass2:
            return
        if cursor.at_eol():
            ctx.flag(ErrorCode.SYNTAX)
        else:
            title = cursor.rest()
            if title.endswith("\n"):
                title = title[:-1]
            ctx.listing.title = title
            ctx.listing.add_toc(title)
        ctx.list_line()

    def do_error(self, cursor: Cursor) -> None:
        if self._ctx.pass2:
            self._ctx.flag(ErrorCode.USER_ERROR)
            self._ctx.list_line()

    def do_nowarn(self, cursor: Cursor) -> None:
        """
        Process .NOWARN: the rest of the line lists error letters to ignore.

        An empty list re-enables every error.
        """
        ctx = self._ctx
        letters = ""
        ch = cursor.span_white()
        while not is_eol(ch):
            if not ch.isalpha():
                ctx.flag(ErrorCode.SYNTAX)
            letters += ch.upper()
            cursor.advance()
            ch = cursor.span_white()
        ctx.errors.set_ignored(letters)
        ctx.list_line()

    def _option_names(self, cursor: Cursor, apply: Callable[[str], bool]) -> None:
        """Parse "NAME, NAME, ..." calling apply for each; L for unknown ones."""
        ctx = self._ctx
        while True:
            name = scan_name(cursor)
            if name is None:
                ctx.flag(ErrorCode.SYNTAX)
                break
            if not apply(name):
                ctx.flag(ErrorCode.LIST_OPTION)
            if cursor.span_white() != ",":
                break
            cursor.advance()
        self._syntax_unless_eol(cursor)
        ctx.list_line()

    def do_list_options(self, cursor: Cursor, enable: bool) -> None:
        """Process .LIST / .NOLIST."""
        options = self._ctx.list_options

        def apply(name: str) -> bool:
            if name in LIST_OPTIONS:
                setattr(options, LIST_OPTIONS[name], enable)
                return True
            if name == "ALL" and enable:
                for attribute in LIST_ALL:
                    setattr(options, attribute, True)
                return True
            return False

        self._option_names(cursor, apply)

    def do_assembly_options(self, cursor: Cursor, enable: bool) -> None:
        """Process .ENABLE / .DISABLE."""
        ctx = self._ctx

        def apply(name: str) -> bool:
            if name in ASSEMBLY_OPTIONS:
                setattr(ctx, ASSEMBLY_OPTIONS[name], enable)
                return True
            return False

        self._option_names(cursor, apply)

    def do_eject(self, cursor: Cursor) -> None:
        # The new page starts after the .EJECT line, not with it
        self._syntax_unless_eol(cursor)
        self._ctx.list_line()
        self._ctx.listing.new_page = True

    # =========================================================================
    # Text
    # =========================================================================

    def do_asciz(self, cursor: Cursor) -> None:
        ctx = self._ctx
        text = self._text_argument(cursor)
        ctx.list_location()
        mark = ASCII_MARK if ctx.ascii_mark else 0
        for ch in text:
            self._pages.output_code((ord(ch) & 0o377) | mark, ctx.list_options.text_binary)
        self._pages.output_code(0, ctx.list_options.text_binary)

    def do_text(self, cursor: Cursor) -> None:
        """
        Process .TEXT: OS/8 packed ASCII.

        Three characters c1 c2 c3 take two words; the high and low
        halves of c3 go in the top four bits of the first and second
        word. A word of zero always follows.
        """
        ctx = self._ctx
        text = self._text_argument(cursor)
        ctx.list_location()
        mark = ASCII_MARK if ctx.ascii_mark else 0
        chars = [(ord(ch) & 0o377) | mark for ch in text]
        list_it = ctx.list_options.text_binary

        for i in range(0, len(chars), 3):
            group = chars[i:i + 3]
            if len(group) == 3:
                c1, c2, c3 = group
                self._pages.output_code((((c3 >> 4) & 0xF) << 8) | c1, list_it)
                self._pages.output_code(((c3 & 0xF) << 8) | c2, list_it)
            else:
                for c in group:
                    self._pages.output_code(c, list_it)
        self._pages.output_code(0, list_it)

    def do_sixbit(self, cursor: Cursor, terminate: bool) -> None:
        """
        Process .SIXBIT and .SIXBIZ.

        .SIXBIZ adds a terminator: a zero byte in OS/8 coding, 077 in
        DECsystem-10 coding, taking a whole word for an even length.
        The source text is shown with the first word.
        """
        ctx = self._ctx
        os8 = ctx.os8_sixbit
        text = self._text_argument(cursor)
        first = True

        def emit(code: int) -> None:
            nonlocal first
            self._pages.output_code(code, ctx.list_options.text_binary or first, first)
            first = False

        word = 0
        for index, ch in enumerate(text):
            byte, valid = sixbit_code(ch, os8)
            if not valid:
                ctx.flag(ErrorCode.TEXT)
            if index & 1:
                emit(word | byte)
            else:
                word = byte << 6

        if len(text) & 1:
            if terminate and not os8:
                word |= SIXBIT_TERMINATOR
            emit(word)
        elif terminate:
            emit(0 if os8 else 0o7777)

        if first:
            ctx.list_location()

    # =========================================================================
    # Code and Data
    # =========================================================================

    def do_block(self, cursor: Cursor) -> None:
        ctx = self._ctx
        count, ok = self._evaluate(cursor)
        if not ok or not cursor.at_eol():
            count = 0
        count = self._pages.reserve(count)
        ctx.list_location()
        ctx.pc += count

    def do_data(self, cursor: Cursor) -> None:
        """
        Process .DATA: one word per comma separated expression.

        The number of words is decided by counting commas, without
        evaluating anything, so pass 1 can advance the location counter
        before the symbols are known. Pass 2 always emits exactly that
        many words.
        """
        ctx = self._ctx
        words = count_data_words(cursor.rest())
        if not ctx.pass2:
            for _ in range(words):
                self._pages.output_code(0, False)
            return

        values: list[int] = []
        while True:
            value, ok = self._evaluate(cursor)
            values.append(value if ok else 0)
            if cursor.at_eol():
                break
            if cursor.peek() != ",":
                ctx.flag(ErrorCode.SYNTAX)
            cursor.advance()
        if len(values) != words:
            ctx.flag(ErrorCode.SYNTAX)
        ctx.list_location()

        values = (values + [0] * words)[:words]
        for value in values:
            self._pages.output_code(value, ctx.list_options.text_binary)

    def do_nload(self, cursor: Cursor) -> None:
        ctx = self._ctx
        if not ctx.pass2:
            self._pages.output_code(0)
            return
        value, _ = self._evaluate(cursor)
        self._syntax_unless_eol(cursor)
        code = nload_opcode(value, ctx.cpu)
        if code is None:
            ctx.flag(ErrorCode.RANGE)
            code = NOP
        self._pages.output_code(code, True, True)

    # =========================================================================
    # Location Control
    # =========================================================================

    def do_org(self, cursor: Cursor) -> None:
        value, ok = self._evaluate(cursor)
        if ok and cursor.at_eol():
            self._pages.set_pc(value)
        else:
            self._ctx.flag(ErrorCode.SYNTAX)
        self._ctx.list_location()

    def do_page(self, cursor: Cursor) -> None:
        """Process .PAGE (next page) and .PAGE n (start of page n)."""
        ctx = self._ctx
        if cursor.at_eol():
            self._pages.set_pc((ctx.pc + 0o177) & PAGE_MASK)
        else:
            page, ok = self._evaluate(cursor)
            if ok and cursor.at_eol():
                self._pages.set_pc(page << 7)
            else:
                ctx.flag(ErrorCode.SYNTAX)
        ctx.list_location()

    def do_field(self, cursor: Cursor) -> None:
        """
        Process .FIELD n.

        The literal pool is written out in the old field before the
        field change frame, and the new field starts at 0200.
        """
        ctx = self._ctx
        field, ok = self._evaluate(cursor)
        if ok and cursor.at_eol():
            if field < 8:
                self._pages.set_pc(0)
                ctx.field = field
                if ctx.pass2:
                    ctx.binary.punch_field(field)
                self._pages.set_pc(0o200)
                logger.debug("field %o selected at line %d", field, ctx.source_line)
            else:
                ctx.flag(ErrorCode.RANGE)
        else:
            ctx.flag(ErrorCode.SYNTAX)
        ctx.list_location()

    def do_end(self, cursor: Cursor) -> None:
        ctx = self._ctx
        self._syntax_unless_eol(cursor)
        if not self._pages.pool.empty:
            self._pages.set_pc((ctx.pc + 0o177) & PAGE_MASK)
        ctx.list_line()

    def do_mri(self, cursor: Cursor) -> None:
        """Process .MRI name=value, defining a user memory reference opcode."""
        ctx = self._ctx
        value = 0
        name = scan_name(cursor)
        valid = name is not None and cursor.span_white() == "="
        if valid:
            cursor.advance()
            valid = not cursor.at_eol()
        if valid:
            value, valid = self._evaluate(cursor)
            valid = valid and cursor.at_eol()

        if valid:
            symbol = ctx.symbols.lookup(name, create=True)
            ctx.reference(symbol, is_definition=True)
            if not ctx.pass2:
                if symbol.kind == SymbolKind.UNDEFINED:
                    symbol.define(SymbolKind.USER_OPCODE, value)
                elif symbol.kind.is_builtin:
                    ctx.flag(ErrorCode.MULTIPLY_DEFINED)
                else:
                    symbol.kind = SymbolKind.MULTIPLY_DEFINED
            elif symbol.kind != SymbolKind.USER_OPCODE:
                ctx.flag(ErrorCode.SYMBOL)
        else:
            ctx.flag(ErrorCode.SYNTAX)
        ctx.list_line(code=value)

    # =========================================================================
    # IM6100 / HD6120
    # =========================================================================

    def do_cpu(self, cursor: Cursor, cpu: CPU) -> None:
        """Select the processor and add its mnemonics to the symbol table."""
        ctx = self._ctx
        if cursor.at_eol():
            ctx.symbols.define_instructions(CPU_INSTRUCTIONS[cpu])
            ctx.cpu = cpu
            logger.debug("%s instructions enabled", cpu.name)
        else:
            ctx.flag(ErrorCode.SYNTAX)
        ctx.list_line()

    def do_vector(self, cursor: Cursor) -> None:
        """
        Process .VECTOR address: the reset vector at the top of the page.

        An address on the current page needs one JMP in the last word;
        anything else gets "JMP @.-1" there with the address below it.
        Both go through the literal pool, so the rest of the page can
        still use literals.
        """
        ctx = self._ctx
        pages = self._pages
        if ctx.cpu == CPU.NONE:
            ctx.flag(ErrorCode.PSEUDO_OP)

        pages.follow_pc()
        page = ctx.pc & PAGE_MASK
        pool = pages.pool
        if pool.base != page + PAGE_SIZE:
            ctx.flag(ErrorCode.PAGE_FULL)

        vector = 0
        if ctx.pass2:
            vector, ok = self._evaluate(cursor)
            if not ok or not cursor.at_eol():
                ctx.flag(ErrorCode.SYNTAX)

        if (vector & PAGE_MASK) != page:
            pool.data[0o177] = JMP_INDIRECT_VECTOR
            pool.data[0o176] = vector
            pool.base = page + 0o176
        else:
            pool.data[0o177] = JMP_CURRENT_PAGE | (vector & 0o177)
            pool.base = page + 0o177
        ctx.list_line(code=vector)

    def do_stack(self, cursor: Cursor) -> None:
        """Process .STACK push, pop, pushj, popj."""
        ctx = self._ctx
        if not ctx.pass2:
            return
        if ctx.cpu == CPU.NONE:
            ctx.flag(ErrorCode.PSEUDO_OP)

        opcodes = []
        for index in range(4):
            value, ok = self._evaluate(cursor)
            opcodes.append(value)
            if index < 3:
                if ok and cursor.peek() == ",":
                    cursor.advance()
                else:
                    ctx.flag(ErrorCode.SYNTAX)
            elif not ok or not cursor.at_eol():
                ctx.flag(ErrorCode.SYNTAX)

        stack = ctx.stack
        stack.push, stack.pop, stack.pushj, stack.popj = opcodes
        ctx.list_line()
        for opcode in opcodes:
            ctx.list_line(code=opcode, source=False)

    def do_stack_op(self, cursor: Cursor, opcode: int) -> None:
        """Process .PUSH, .POP and .POPJ."""
        ctx = self._ctx
        if ctx.cpu == CPU.NONE:
            ctx.flag(ErrorCode.PSEUDO_OP)
        self._syntax_unless_eol(cursor)
        if opcode == 0:
            ctx.flag(ErrorCode.PSEUDO_OP)
        self._pages.output_code(opcode, True, True)

    def do_pushj(self, cursor: Cursor) -> None:
        """
        Process .PUSHJ address, always two words.

        On the HD6120 the second word is a JMP to the address (the PPC
        instruction only pushes the return address); otherwise it is
        the full 12-bit address for a software stack routine.
        """
        ctx = self._ctx
        pages = self._pages
        if not ctx.pass2:
            pages.output_code(0)
            pages.output_code(0)
            return

        if ctx.cpu == CPU.NONE or ctx.stack.pushj == 0:
            ctx.flag(ErrorCode.PSEUDO_OP)
        pages.output_code(ctx.stack.pushj, True, True)

        if ctx.cpu == CPU.HD6120:
            jmp = ctx.symbols.lookup("JMP")
            try:
                word = self._evaluator.mri(cursor, jmp)
            except ExpressionError as e:
                word = e.value
            self._syntax_unless_eol(cursor)
        else:
            word, ok = self._evaluate(cursor)
            if not ok or not cursor.at_eol():
                ctx.flag(ErrorCode.SYNTAX)
        pages.output_code(word, True, False)
