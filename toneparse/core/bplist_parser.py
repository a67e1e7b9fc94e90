"""Decoder for Apple binary property lists ("bplist00").

Logic Pro embeds these inside channel strip chunks and also ships them as
standalone ``.plist`` files. Layout::

    "bplist" + 2 version bytes
    object section (1-byte type tag per object, high nibble = type,
                    low nibble = inline size or 0xF for "size follows")
    offset table (one big-endian uint per object)
    32-byte trailer: 6 unused, offset width, ref width,
                     object count, top object, offset table offset

Only the low 32 bits of the three 8-byte trailer fields are honoured.
See Apple's CFBinaryPList.c for the reference implementation.
"""

from __future__ import annotations

import logging
import struct
from datetime import datetime, timezone

from toneparse.core.constants import (
    APPLE_EPOCH_OFFSET,
    BPLIST_MAGIC,
    BPLIST_TRAILER_SIZE,
)
from toneparse.core.errors import PlistParseError
from toneparse.core.models import PlistUID
from toneparse.utils.config import DEFAULT_MAX_OBJECT_COUNT, DEFAULT_MAX_OBJECT_SIZE

logger = logging.getLogger(__name__)


class BinaryPlistParser:
    """Parser for a single binary property list held in memory."""

    def __init__(
        self,
        data: bytes,
        max_object_size: int = DEFAULT_MAX_OBJECT_SIZE,
        max_object_count: int = DEFAULT_MAX_OBJECT_COUNT,
    ):
        self.data = bytes(data)
        self.max_object_size = max_object_size
        self.max_object_count = max_object_count
        self.offset_size = 0
        self.ref_size = 0
        self.offset_table: list[int] = []
        # Object indices currently being decoded, to reject reference cycles
        self._active: set[int] = set()
        # Decoded objects by index; shared references decode once
        self._objects: dict[int, object] = {}

    def parse(self):
        """Decode the buffer and return its root object."""
        if self.data[: len(BPLIST_MAGIC)] != BPLIST_MAGIC:
            raise PlistParseError("Invalid binary plist. Expected 'bplist' at offset 0.")
        if len(self.data) < len(BPLIST_MAGIC) + BPLIST_TRAILER_SIZE:
            raise PlistParseError("Binary plist too short to hold a trailer")

        top_object = self._read_trailer()
        return self._parse_object(top_object)

    # ── Trailer & offset table ───────────────────────────────────────────

    def _read_trailer(self) -> int:
        trailer = self.data[-BPLIST_TRAILER_SIZE:]
        self.offset_size = trailer[6]
        self.ref_size = trailer[7]
        # High 32 bits of each 8-byte field are ignored
        num_objects = struct.unpack_from(">I", trailer, 12)[0]
        top_object = struct.unpack_from(">I", trailer, 20)[0]
        table_offset = struct.unpack_from(">I", trailer, 28)[0]

        if num_objects > self.max_object_count:
            raise PlistParseError("maxObjectCount exceeded")
        if self.offset_size == 0 or self.ref_size == 0:
            raise PlistParseError("Binary plist trailer declares zero-width integers")

        table_end = table_offset + num_objects * self.offset_size
        if table_end > len(self.data):
            raise PlistParseError(
                f"Offset table ({num_objects} x {self.offset_size} bytes at "
                f"{table_offset}) runs past end of buffer"
            )

        self.offset_table = [
            _read_uint(self.data, table_offset + i * self.offset_size, self.offset_size)
            for i in range(num_objects)
        ]
        return top_object

    # ── Objects ──────────────────────────────────────────────────────────

    def _parse_object(self, index: int):
        if index >= len(self.offset_table):
            raise PlistParseError(f"Object reference {index} out of range")
        if index in self._objects:
            return self._objects[index]
        if index in self._active:
            raise PlistParseError(f"Object reference cycle at {index}")

        offset = self.offset_table[index]
        if offset >= len(self.data):
            raise PlistParseError(f"Object {index} offset {offset} past end of buffer")

        marker = self.data[offset]
        obj_type = (marker & 0xF0) >> 4
        obj_info = marker & 0x0F

        self._active.add(index)
        try:
            result = self._decode(offset, obj_type, obj_info)
        finally:
            self._active.discard(index)
        self._objects[index] = result
        return result

    def _decode(self, offset: int, obj_type: int, obj_info: int):
        if obj_type == 0x0:
            return _parse_simple(obj_info)
        if obj_type == 0x1:
            return self._parse_integer(offset, obj_info)
        if obj_type == 0x2:
            return self._parse_real(offset, obj_info)
        if obj_type == 0x3:
            return self._parse_date(offset, obj_info)
        if obj_type == 0x4:
            return self._parse_data(offset, obj_info)
        if obj_type == 0x5:
            return self._parse_string(offset, obj_info, utf16=False)
        if obj_type == 0x6:
            return self._parse_string(offset, obj_info, utf16=True)
        if obj_type == 0x8:
            return self._parse_uid(offset, obj_info)
        if obj_type in (0xA, 0xC):
            return self._parse_array(offset, obj_info)
        if obj_type == 0xD:
            return self._parse_dict(offset, obj_info)
        raise PlistParseError(f"Unhandled type 0x{obj_type:x}")

    def _check_size(self, length: int) -> None:
        if length >= self.max_object_size:
            raise PlistParseError(
                f"Too little heap space available! Wanted to read {length} bytes, "
                f"but only {self.max_object_size} are available."
            )

    def _slice(self, start: int, length: int) -> bytes:
        self._check_size(length)
        if start + length > len(self.data):
            raise PlistParseError(
                f"Object at {start} needs {length} bytes, buffer has {len(self.data) - start}"
            )
        return self.data[start : start + length]

    def _parse_integer(self, offset: int, obj_info: int) -> int:
        length = 1 << obj_info
        raw = self._slice(offset + 1, length)
        # 1, 2 and 4 byte integers are unsigned, 8 and 16 byte ones signed
        return int.from_bytes(raw, "big", signed=length >= 8)

    def _parse_real(self, offset: int, obj_info: int) -> float:
        length = 1 << obj_info
        raw = self._slice(offset + 1, length)
        if length == 4:
            return struct.unpack(">f", raw)[0]
        if length == 8:
            return struct.unpack(">d", raw)[0]
        raise PlistParseError(f"Unhandled real length {length}")

    def _parse_date(self, offset: int, obj_info: int) -> datetime:
        if obj_info != 0x3:
            logger.warning("Unknown date type %d, parsing anyway", obj_info)
        seconds = struct.unpack(">d", self._slice(offset + 1, 8))[0]
        try:
            return datetime.fromtimestamp(APPLE_EPOCH_OFFSET + seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise PlistParseError(f"Date out of range: {seconds}") from e

    def _parse_uid(self, offset: int, obj_info: int) -> PlistUID:
        raw = self._slice(offset + 1, obj_info + 1)
        return PlistUID(int.from_bytes(raw, "big"))

    def _read_length(self, offset: int, obj_info: int) -> tuple[int, int]:
        """Return (count, header size) for a variable-length object."""
        if obj_info != 0xF:
            return obj_info, 1
        if offset + 1 >= len(self.data):
            raise PlistParseError(f"Missing length integer for object at {offset}")
        int_marker = self.data[offset + 1]
        if (int_marker & 0xF0) >> 4 != 0x1:
            logger.warning(
                "Unexpected length-int type 0x%x at offset %d", int_marker >> 4, offset
            )
        int_length = 1 << (int_marker & 0x0F)
        raw = self._slice(offset + 2, int_length)
        return int.from_bytes(raw, "big"), 2 + int_length

    def _parse_data(self, offset: int, obj_info: int) -> bytes:
        length, header = self._read_length(offset, obj_info)
        return self._slice(offset + header, length)

    def _parse_string(self, offset: int, obj_info: int, utf16: bool) -> str:
        length, header = self._read_length(offset, obj_info)
        if utf16:
            # Length counts UTF-16 code units, stored big-endian
            raw = self._slice(offset + header, length * 2)
            return raw.decode("utf-16-be", errors="replace")
        raw = self._slice(offset + header, length)
        return raw.decode("utf-8", errors="replace")

    def _read_refs(self, start: int, count: int) -> list[int]:
        raw = self._slice(start, count * self.ref_size)
        size = self.ref_size
        return [_read_uint(raw, i * size, size) for i in range(count)]

    def _parse_array(self, offset: int, obj_info: int) -> list:
        length, header = self._read_length(offset, obj_info)
        refs = self._read_refs(offset + header, length)
        return [self._parse_object(ref) for ref in refs]

    def _parse_dict(self, offset: int, obj_info: int) -> dict:
        length, header = self._read_length(offset, obj_info)
        self._check_size(length * 2 * self.ref_size)
        key_refs = self._read_refs(offset + header, length)
        value_refs = self._read_refs(offset + header + length * self.ref_size, length)

        result = {}
        for key_ref, value_ref in zip(key_refs, value_refs):
            key = self._parse_object(key_ref)
            if not isinstance(key, str):
                key = str(key)
            result[key] = self._parse_object(value_ref)
        return result


# ── Helpers ──────────────────────────────────────────────────────────────

def _parse_simple(obj_info: int):
    if obj_info == 0x0:
        return None
    if obj_info == 0x8:
        return False
    if obj_info == 0x9:
        return True
    if obj_info == 0xF:  # fill byte
        return None
    raise PlistParseError(f"Unhandled simple type 0x{obj_info:x}")


def _read_uint(data: bytes, start: int, width: int) -> int:
    return int.from_bytes(data[start : start + width], "big")


def parse_bplist(
    data: bytes,
    max_object_size: int = DEFAULT_MAX_OBJECT_SIZE,
    max_object_count: int = DEFAULT_MAX_OBJECT_COUNT,
):
    """Convenience function to decode a binary plist buffer."""
    return BinaryPlistParser(data, max_object_size, max_object_count).parse()


def is_bplist(data: bytes) -> bool:
    return data[: len(BPLIST_MAGIC)] == BPLIST_MAGIC
