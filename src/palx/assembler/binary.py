"""
BIN Loader Tape Format
======================

This module produces the paper tape image read by the DEC BIN loader.
Every frame is one byte; a 12-bit word is punched as two frames of six
bits each, high half first.

Frame Types
-----------
| Frame              | Bits        | Meaning                              |
|--------------------|-------------|--------------------------------------|
| 0200               | 10 000 000  | leader / trailer                     |
| 0300 \\| field<<3   | 11 fff 000  | load the following words in field    |
| 0100 \\| addr>>6    | 01 aaa aaa  | origin, high half (low half follows) |
| addr & 077         | 00 aaa aaa  | origin low half                      |
| word>>6, word&077  | 00 ddd ddd  | data word                            |

An origin is only punched when a word does not follow the previous one.
The tape ends with a checksum word and a trailer. The checksum word is
the two's complement of the 12-bit sum of every frame that does not
have the 0200 bit set (origin and data frames), so adding it to that
sum gives zero.

Reference
---------
- DEC PDP-8 Handbook, "BIN Loader" chapter
"""

from io import BytesIO


LEADER = 0o200
LEADER_LENGTH = 32
FIELD_FRAME = 0o300
ORIGIN_FRAME = 0o100
NO_ADDRESS = 0o10000


class BinaryTape:
    """
    BIN format encoder.

    The tape also records the loaded words so callers can inspect the
    memory image without decoding the frames.

    Attributes:
        image: Loaded words keyed by (field << 12) | address
    """

    def __init__(self) -> None:
        self._buffer = BytesIO()
        self.image: dict[int, int] = {}
        self._last_address = NO_ADDRESS
        self._checksum = 0
        self.leader()

    def reset_for_pass(self) -> None:
        self._last_address = NO_ADDRESS
        self._checksum = 0

    @property
    def checksum(self) -> int:
        return self._checksum & 0o7777

    def put(self, frame: int) -> None:
        """Punch one frame, adding it to the checksum unless it is framing."""
        frame &= 0o377
        self._buffer.write(bytes((frame,)))
        if (frame & 0o200) == 0:
            self._checksum += frame

    def leader(self) -> None:
        """Punch a stretch of leader/trailer code."""
        for _ in range(LEADER_LENGTH):
            self.put(LEADER)

    def punch_field(self, field: int) -> None:
        self.put(FIELD_FRAME | ((field & 7) << 3))

    def punch(self, field: int, address: int, code: int) -> None:
        """
        Punch one word, preceded by an origin when not contiguous.

        Args:
            field: Memory field the word is loaded into
            address: 12-bit address
            code: 12-bit word
        """
        if address != self._last_address + 1:
            self.put(ORIGIN_FRAME | ((address >> 6) & 0o77))
            self.put(address & 0o77)
        self._last_address = address
        self.put((code >> 6) & 0o77)
        self.put(code & 0o77)
        self.image[((field & 7) << 12) | (address & 0o7777)] = code & 0o7777

    def finish(self) -> None:
        """Punch the checksum word and the trailer."""
        checksum = -self.checksum & 0o7777
        self._buffer.write(bytes(((checksum >> 6) & 0o77, checksum & 0o77)))
        self.leader()

    def getvalue(self) -> bytes:
        return self._buffer.getvalue()
