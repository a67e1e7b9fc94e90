"""Byte cursor shared by every preset decoder.

Wraps an immutable buffer with a read position. All fixed-width reads are
bounds-checked: reading past the end yields 0 (or an empty string) and
leaves the offset where it was, so heuristics can probe freely.
"""

from __future__ import annotations

import struct

from toneparse.core.constants import PRINTABLE_MAX, PRINTABLE_MIN


def is_printable(byte: int) -> bool:
    return PRINTABLE_MIN <= byte <= PRINTABLE_MAX


class ByteCursor:
    """Read position over an in-memory byte buffer."""

    def __init__(self, data: bytes, offset: int = 0):
        self.data = bytes(data)
        self.offset = offset
        # Start of the string currently being read (see read_terminated_string)
        self.str_start = offset
        self.skipped = 0

    @property
    def exhausted(self) -> bool:
        return self.offset >= len(self.data)

    # ── Scanning ─────────────────────────────────────────────────────────

    def advance_to(self, byte: int) -> None:
        """Move to the next occurrence of ``byte``, or to the end of the buffer."""
        if self.offset >= len(self.data):
            return
        pos = self.data.find(bytes((byte,)), self.offset)
        self.offset = len(self.data) if pos == -1 else pos

    def advance_to_printable(self) -> None:
        """Skip non-printable bytes and mark the string start."""
        start = self.offset
        size = len(self.data)
        while self.offset < size and not is_printable(self.data[self.offset]):
            self.offset += 1
        self.skipped += self.offset - start
        self.str_start = self.offset

    def read_terminated_string(self) -> str:
        """Return text from the string start up to the next NUL.

        The offset is left on the terminator, not past it.
        """
        self.advance_to(0)
        raw = self.data[self.str_start : self.offset]
        return raw.decode("utf-8", errors="replace")

    def skip(self, n: int, known: bool = False) -> None:
        self.offset += n
        if not known:
            self.skipped += n

    def rewind(self, n: int) -> None:
        """Step back ``n`` bytes; the only sanctioned backwards move."""
        self.offset = max(0, self.offset - n)

    def coverage(self) -> float:
        """Percentage of the buffer consumed by known-length reads."""
        total = len(self.data)
        if total == 0:
            return 100.0
        return max(0.0, (1 - self.skipped / total) * 100)

    # ── Probing ──────────────────────────────────────────────────────────

    def peek_marker(self) -> int | None:
        """Big-endian value of the 3 bytes following the current byte.

        Token-stream markers sit right after a string's NUL terminator, which
        is where the offset rests after ``read_terminated_string``.
        """
        if self.offset >= len(self.data) - 3:
            return None
        return int.from_bytes(self.data[self.offset + 1 : self.offset + 4], "big")

    def startswith(self, prefix: bytes, limit: int | None = None) -> bool:
        end = self.offset + len(prefix)
        if end > (len(self.data) if limit is None else min(limit, len(self.data))):
            return False
        return self.data[self.offset : end] == prefix

    # ── Fixed-width reads ────────────────────────────────────────────────

    def _read(self, fmt: str):
        size = struct.calcsize(fmt)
        if self.offset + size > len(self.data):
            return 0
        value = struct.unpack_from(fmt, self.data, self.offset)[0]
        self.skip(size, known=True)
        return value

    def read_u8(self) -> int:
        return self._read("<B")

    def read_u16_le(self) -> int:
        return self._read("<H")

    def read_u32_le(self) -> int:
        return self._read("<I")

    def read_f32_le(self) -> float:
        return self._read("<f")

    def read_f64_le(self) -> float:
        return self._read("<d")

    def read_uleb128(self) -> int:
        """Decode an unsigned LEB128 integer; 0 when already at the end."""
        result = 0
        shift = 0
        size = len(self.data)
        while self.offset < size:
            byte = self.data[self.offset]
            self.offset += 1
            result |= (byte & 0x7F) << shift
            shift += 7
            if not byte & 0x80:
                break
        return result
