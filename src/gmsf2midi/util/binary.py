from __future__ import annotations
import struct

from ..errors import MalformedInput


class ByteReader:
    """Sequential little-endian reader over an in-memory buffer.

    Every read is bounds checked; running off the end raises MalformedInput
    instead of returning short data.
    """

    def __init__(self, data: bytes):
        self.data = bytes(data)
        self.pos = 0

    def remaining(self) -> int:
        return len(self.data) - self.pos

    def _take(self, n: int, what: str) -> bytes:
        if self.remaining() < n:
            raise MalformedInput(
                f"truncated {what} at offset 0x{self.pos:X} "
                f"(need {n} bytes, {self.remaining()} left)"
            )
        chunk = self.data[self.pos:self.pos + n]
        self.pos += n
        return chunk

    def read_bytes(self, n: int, what: str = "data") -> bytes:
        return self._take(n, what)

    def read_u8(self, what: str = "byte") -> int:
        return self._take(1, what)[0]

    def read_i16(self, what: str = "word") -> int:
        return struct.unpack("<h", self._take(2, what))[0]
