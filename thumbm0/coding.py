"""Little-endian halfword and word access over byte buffers."""

import struct
from typing import Union

from .constants import HALFWORD_MASK

Buffer = Union[bytes, bytearray, memoryview]


class BufferTooShort(Exception):
    """Raised when attempting to read past the end of the buffer."""


class Decoder:
    def __init__(self, buf: Buffer, pos: int = 0) -> None:
        self.buf, self.pos = buf, pos

    def get_pos(self) -> int:
        return self.pos

    def remaining(self) -> int:
        return max(len(self.buf) - self.pos, 0)

    def _unpack(self, fmt: str) -> int:
        size = struct.calcsize(fmt)
        if self.pos < 0 or len(self.buf) - self.pos < size:
            raise BufferTooShort
        items = struct.unpack_from("<" + fmt, self.buf, self.pos)
        self.pos += size
        return items[0]  # type: ignore

    def unsigned_word_le(self) -> int:
        return self._unpack("H")

    def unsigned_dword_le(self) -> int:
        return self._unpack("I")


class Encoder:
    def __init__(self) -> None:
        self.buf = bytearray()

    def _pack(self, fmt: str, item: int) -> None:
        offset = len(self.buf)
        self.buf += b"\x00" * struct.calcsize(fmt)
        struct.pack_into("<" + fmt, self.buf, offset, item)

    def unsigned_word_le(self, value: int) -> None:
        self._pack("H", value)

    def instruction(self, raw: int) -> None:
        """Emit one encoded instruction; wide forms go out high halfword first."""
        if is_wide(raw):
            self.unsigned_word_le(raw >> 16)
        self.unsigned_word_le(raw & HALFWORD_MASK)


def is_wide(raw: int) -> bool:
    return raw > HALFWORD_MASK and (raw & 0xF800) == 0xF800
