"""
Two-Pass Assembly Driver
========================

This module runs the two assembler passes over a source file and
produces the binary tape and the listing.

Pass 1 (Symbol Collection)
--------------------------
- Read every statement, including macro expansions and conditionals
- Define tags, equates, user opcodes and macros
- Advance the location counter by the number of words each statement
  takes, without evaluating most expressions (forward references are
  not known yet, so errors found here are thrown away)

Pass 2 (Code Generation)
------------------------
- Read the same statements again, now evaluating everything
- Punch the words to the binary tape and mark them in the memory map
- List every line, flagging errors and symbol definitions that changed
- Write out the last literal pool

After pass 2 the checksum and trailer are punched and the listing gets
its summary, memory map, symbol table and table of contents.

Phase Errors
------------
If a statement starts at a different location in pass 2 than it did in
pass 1, every tag defined after it has the wrong value. The driver
remembers where each file line started in both passes and reports the
lines that moved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from palx.assembler.binary import BinaryTape
from palx.assembler.bitmap import MemoryBitmap
from palx.assembler.conditionals import ConditionalEngine
from palx.assembler.context import AssemblerContext, AssemblerOptions, LineMark
from palx.assembler.expressions import ExpressionEvaluator
from palx.assembler.lexer import Cursor
from palx.assembler.listing import Listing
from palx.assembler.literals import LiteralPool, PageAllocator
from palx.assembler.macros import MacroEngine
from palx.assembler.pseudo_ops import PseudoOpProcessor
from palx.assembler.source import SourceStream
from palx.assembler.statements import StatementAssembler
from palx.assembler.symbols import SymbolTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PhaseError:
    """A source line that started at different locations in the two passes."""
    line: int
    first: LineMark
    second: LineMark

    def __str__(self) -> str:
        return (
            f"line {self.line}: pass 1 at {self.first.field:o}{self.first.pc:04o}, "
            f"pass 2 at {self.second.field:o}{self.second.pc:04o}"
        )


class CodeGenerator:
    """
    Assembles one source text.

    A CodeGenerator is used for a single assembly; create a new one for
    every source.

    Attributes:
        options: Assembly configuration
        filename: Source name shown in the listing and in locations
        timestamp: Assembly time for the listing and \\d / \\h escapes
        symbols: Symbol table
        bitmap: Memory usage map
        binary: Binary loader tape
        listing: Listing writer
        ctx: Shared assembler state
        phase_errors: Lines that moved between the passes
    """

    def __init__(
        self,
        options: Optional[AssemblerOptions] = None,
        filename: str = "<input>",
        timestamp: Optional[datetime] = None,
        echo: Optional[Callable[[str], None]] = None,
    ):
        self.options = options or AssemblerOptions()
        self.filename = filename
        self.timestamp = timestamp or datetime.now()

        self.symbols = SymbolTable()
        self.symbols.seed_builtins()
        self.bitmap = MemoryBitmap()
        self.binary = BinaryTape()
        self.listing = Listing(self.options, filename, self.timestamp, echo)
        self.ctx = AssemblerContext(
            self.options, filename, self.symbols, LiteralPool(),
            self.bitmap, self.binary, self.listing,
        )
        self.phase_errors: list[PhaseError] = []

        self._stream: Optional[SourceStream] = None
        self._pages = PageAllocator(self.ctx)
        self._statements: Optional[StatementAssembler] = None

    def _build(self, source: str) -> None:
        """Wire the components together for this source."""
        ctx = self.ctx
        self._stream = SourceStream(ctx, source)
        evaluator = ExpressionEvaluator(ctx, self._pages)
        macros = MacroEngine(ctx, self._stream)
        conditionals = ConditionalEngine(ctx, self._stream, evaluator, self._assemble_statement)
        pseudo_ops = PseudoOpProcessor(ctx, evaluator, self._pages, macros, conditionals)
        self._statements = StatementAssembler(ctx, evaluator, self._pages, pseudo_ops, macros)

    def _assemble_statement(self, cursor: Cursor) -> None:
        self._statements.assemble(cursor)

    # =========================================================================
    # Assembly
    # =========================================================================

    def generate(self, source: str) -> bytes:
        """
        Assemble a source text.

        Args:
            source: The complete source file

        Returns:
            The binary loader tape

        Raises:
            FatalAssemblyError: For conditions that stop the assembly
        """
        self._build(source)

        self._pass(1)
        first = self.ctx.line_marks
        self._pass(2)
        self._check_phase(first, self.ctx.line_marks)

        self._finish()
        return self.binary.getvalue()

    def _pass(self, number: int) -> None:
        ctx = self.ctx
        ctx.reset_for_pass(number)
        logger.info("%s, pass %d", self.filename, number)

        self._stream.rewind()
        while self._stream.next_line():
            self._statements.assemble(Cursor(ctx.source_text))

        # Literals left on the last page
        if ctx.pass2:
            self._pages.dump_literals()

    def _check_phase(self, first: list[LineMark], second: list[LineMark]) -> None:
        for mark1, mark2 in zip(first, second):
            if (mark1.field, mark1.pc) != (mark2.field, mark2.pc):
                self.phase_errors.append(PhaseError(mark1.line, mark1, mark2))
        if self.phase_errors:
            logger.warning("phase error at %s (%d line(s) affected)",
                           self.phase_errors[0], len(self.phase_errors))

    def _finish(self) -> None:
        """Punch the checksum and write the end of the listing."""
        ctx = self.ctx
        listing = self.listing
        self.binary.finish()

        listing.list_summary(self.program_break, self.error_count)
        logger.info("Program break is %05o", self.program_break)
        if self.error_count > 0:
            logger.info("%d error(s) detected", self.error_count)
        else:
            logger.info("No errors detected")

        if ctx.list_options.memory_map:
            listing.list_bitmap(self.bitmap)
        if ctx.list_options.symbols:
            listing.list_symbols(self.symbols.sorted_symbols())
        if ctx.list_options.toc:
            listing.list_toc()

    # =========================================================================
    # Results
    # =========================================================================

    @property
    def program_break(self) -> int:
        """The 15-bit location following the last statement."""
        return (self.ctx.field << 12) + self.ctx.pc

    @property
    def error_count(self) -> int:
        return self.ctx.errors.count

    def get_listing(self) -> str:
        return self.listing.getvalue()

    def get_memory(self) -> dict[int, int]:
        """Return every loaded word keyed by its 15-bit address."""
        return dict(self.binary.image)
