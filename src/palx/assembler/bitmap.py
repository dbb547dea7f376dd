"""
Memory Usage Bitmap
===================

One bit per word of the 32K PDP-8 address space (8 fields of 4096
words). A bit is set when a word is loaded in pass 2; setting it a
second time means the program loads the same location twice, which the
assembler reports as a D error. The bitmap is also printed at the end
of the listing as a memory map.
"""

FIELDS = 8
FIELD_SIZE = 4096
WORDS = FIELDS * FIELD_SIZE


class MemoryBitmap:
    """
    Usage bits for every word, indexed by (field << 12) | address.

    Example:
        bitmap = MemoryBitmap()
        bitmap.mark(0o10200)   # False, first load
        bitmap.mark(0o10200)   # True, loaded twice
    """

    def __init__(self) -> None:
        self._bits = bytearray(WORDS // 8)

    def clear(self) -> None:
        self._bits = bytearray(WORDS // 8)

    def is_set(self, address: int) -> bool:
        return bool(self._bits[address >> 3] & (1 << (address & 7)))

    def mark(self, address: int) -> bool:
        """
        Mark a word as loaded.

        Args:
            address: 15-bit address, field in bits 12-14

        Returns:
            True if the word had already been marked
        """
        index = (address & (WORDS - 1)) >> 3
        mask = 1 << (address & 7)
        already = bool(self._bits[index] & mask)
        self._bits[index] |= mask
        return already

    def field_empty(self, field: int) -> bool:
        """Return True if nothing was loaded into a field."""
        start = (field * FIELD_SIZE) >> 3
        return not any(self._bits[start:start + FIELD_SIZE // 8])

    def bits(self, address: int, count: int) -> str:
        """Return '0'/'1' usage flags for count words starting at address."""
        return "".join("1" if self.is_set(address + i) else "0" for i in range(count))
