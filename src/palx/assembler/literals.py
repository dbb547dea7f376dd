"""
Literal Pool and Page Allocation
================================

PDP-8 memory reference instructions can only address page zero and the
current page, so constants referenced with the literal syntax [expr]
are stored at the top of the page that uses them:

    0200  1377   TAD [5]        ; literal allocated at 0377
    0201  1376   TAD [6]        ; next literal at 0376
    0202  1377   TAD [5]        ; same value, same literal
    ...
    0376  0006
    0377  0005

The literal base starts at the end of the page and moves down as
literals are added; code moves up from the start of the page. When the
two meet the page is full (P error). Literals are written out when the
program moves to another page (.ORG, .PAGE, .FIELD) and at the end of
the assembly.

A page without literals does not stop the code: the location counter is
allowed to run into the next page, and the literal base moves with it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from palx.errors import ErrorCode, ExpressionError

if TYPE_CHECKING:
    from palx.assembler.context import AssemblerContext


PAGE_SIZE = 0o200
PAGE_MASK = 0o7600
OFFSET_MASK = 0o177


def page_of(address: int) -> int:
    return address & PAGE_MASK


def page_end(address: int) -> int:
    """Return the first address after the page holding address."""
    return (address & PAGE_MASK) + PAGE_SIZE


@dataclass
class LiteralPool:
    """
    Literals of the current page.

    Attributes:
        base: Lowest literal address; the end of the page when empty
        data: Values indexed by the low 7 bits of their address
    """
    base: int = 0o400
    data: list[int] = field(default_factory=lambda: [0] * PAGE_SIZE)

    def reset(self, base: int) -> None:
        self.base = base

    @property
    def empty(self) -> bool:
        return (self.base & OFFSET_MASK) == 0

    def addresses(self) -> range:
        """Addresses of the literals currently in the pool."""
        if self.empty:
            return range(0)
        return range(self.base, page_end(self.base))


class PageAllocator:
    """
    Emits words and literals while keeping the literal pool and the
    location counter of the context in step.
    """

    def __init__(self, ctx: AssemblerContext):
        self._ctx = ctx

    @property
    def pool(self) -> LiteralPool:
        return self._ctx.literals

    def follow_pc(self) -> None:
        """Move an empty pool to the page the location counter ran into."""
        ctx = self._ctx
        if self.pool.empty and ctx.pc >= self.pool.base:
            self.pool.base = page_end(ctx.pc)

    def literal(self, value: int) -> int:
        """
        Find or allocate a literal on the current page.

        Args:
            value: 12-bit literal value

        Returns:
            The literal's address

        Raises:
            ExpressionError: P if the page has no room left
        """
        self.follow_pc()
        pool = self.pool
        for address in pool.addresses():
            if pool.data[address & OFFSET_MASK] == value:
                return address

        if pool.base <= self._ctx.pc + 1:
            self._ctx.flag(ErrorCode.PAGE_FULL)
            raise ExpressionError(ErrorCode.PAGE_FULL, "no room for literal on this page")
        pool.base -= 1
        pool.data[pool.base & OFFSET_MASK] = value
        return pool.base

    def _load(self, address: int, code: int) -> None:
        ctx = self._ctx
        if ctx.bitmap.mark((ctx.field << 12) | address):
            ctx.flag(ErrorCode.DUPLICATE_LOAD)

    def output_code(self, code: int, list_it: bool = True, show_source: bool = False) -> None:
        """
        Emit one word at the location counter and advance it.

        In pass 1 only the location counter moves. In pass 2 the word is
        marked in the memory bitmap, listed (if list_it) and punched.

        Args:
            code: 12-bit word
            list_it: List the word
            show_source: Show the source text on the listing line
        """
        ctx = self._ctx
        code &= 0o7777
        if ctx.pc >= self.pool.base:
            if self.pool.empty:
                self.pool.base = page_end(ctx.pc)
            else:
                ctx.flag(ErrorCode.PAGE_FULL)
        if ctx.pass2:
            self._load(ctx.pc, code)
            if list_it:
                ctx.list_line(ctx.field, ctx.pc, code, source=show_source)
            ctx.binary.punch(ctx.field, ctx.pc, code)
        ctx.pc += 1

    def reserve(self, count: int) -> int:
        """
        Reserve count words at the location counter (.BLOCK).

        The block is clipped at the end of the current page so that both
        passes agree on its size whatever the literal pool holds.

        Returns:
            The number of words actually reserved
        """
        ctx = self._ctx
        self.follow_pc()
        if ctx.pc + count > self.pool.base:
            ctx.flag(ErrorCode.PAGE_FULL)
        count = max(0, min(count, page_end(ctx.pc) - ctx.pc))
        if ctx.pass2:
            for address in range(ctx.pc, ctx.pc + count):
                self._load(address, 0)
        return count

    def dump_literals(self) -> None:
        """Write out the literal pool of the current page (pass 2)."""
        ctx = self._ctx
        if not ctx.pass2:
            return
        for address in self.pool.addresses():
            code = self.pool.data[address & OFFSET_MASK]
            self._load(address, code)
            ctx.list_line(ctx.field, address, code, source=False)
            ctx.binary.punch(ctx.field, address, code)

    def set_pc(self, new_pc: int) -> bool:
        """
        Move the location counter, dumping literals when changing pages.

        Returns:
            False (after flagging A) if the address is beyond 07777
        """
        ctx = self._ctx
        if new_pc > 0o7777:
            ctx.flag(ErrorCode.RANGE)
            return False
        if page_of(new_pc) != page_of(ctx.pc) or ctx.pc == self.pool.base:
            self.dump_literals()
            self.pool.base = page_end(new_pc)
        ctx.pc = new_pc
        return True
