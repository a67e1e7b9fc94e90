"""Tests for the binary plist decoder."""

import plistlib
import struct
from datetime import datetime, timezone

import pytest

from toneparse.core.bplist_parser import BinaryPlistParser, is_bplist, parse_bplist
from toneparse.core.errors import PlistParseError
from toneparse.core.models import PlistUID


def _build_bplist(objects, top=0, offset_size=1, ref_size=1, count=None, count_high=0):
    """Assemble a bplist00 buffer from pre-encoded objects."""
    body = bytearray(b"bplist00")
    offsets = []
    for obj in objects:
        offsets.append(len(body))
        body += obj
    table_offset = len(body)
    for off in offsets:
        body += off.to_bytes(offset_size, "big")
    num_objects = len(objects) if count is None else count
    trailer = (
        b"\x00" * 6
        + bytes([offset_size, ref_size])
        + struct.pack(">II", count_high, num_objects)
        + top.to_bytes(8, "big")
        + table_offset.to_bytes(8, "big")
    )
    return bytes(body) + trailer


def test_decode_plistlib_output():
    """A dict written by plistlib should decode to the same values."""
    value = {
        "name": "Noise Gate",
        "enabled": True,
        "bypass": False,
        "count": 42,
        "ratio": 2.5,
        "blob": b"\x00\x01\xff",
        "nested": {"list": [1, "two", 3.0]},
    }
    assert parse_bplist(plistlib.dumps(value, fmt=plistlib.FMT_BINARY)) == value


def test_decode_unicode_string():
    """Non-ASCII strings are stored as UTF-16 big-endian."""
    data = plistlib.dumps({"title": "Crème brûlée ♫"}, fmt=plistlib.FMT_BINARY)
    assert parse_bplist(data) == {"title": "Crème brûlée ♫"}


def test_decode_negative_and_large_integers():
    """8-byte integers are signed; unsigned 64-bit values use 16 bytes."""
    value = [-5, -(2**40), 2**63 - 1, 2**64 - 1]
    assert parse_bplist(plistlib.dumps(value, fmt=plistlib.FMT_BINARY)) == value


def test_integer_widths():
    """1, 2 and 4 byte integers are unsigned; all widths decode the same value."""
    for marker, width in ((0x10, 1), (0x11, 2), (0x12, 4), (0x13, 8), (0x14, 16)):
        data = _build_bplist([bytes([marker]) + (7).to_bytes(width, "big")])
        assert parse_bplist(data) == 7

    assert parse_bplist(_build_bplist([b"\x10\xff"])) == 255
    assert parse_bplist(_build_bplist([b"\x11\xff\xff"])) == 0xFFFF
    assert parse_bplist(_build_bplist([b"\x12\xff\xff\xff\xff"])) == 0xFFFFFFFF


def test_decode_date():
    """Dates are seconds since 2001-01-01 UTC."""
    when = datetime(2020, 1, 2, 3, 4, 5)
    decoded = parse_bplist(plistlib.dumps({"when": when}, fmt=plistlib.FMT_BINARY))
    assert decoded["when"] == when.replace(tzinfo=timezone.utc)

    epoch = parse_bplist(_build_bplist([b"\x33" + struct.pack(">d", 0.0)]))
    assert epoch == datetime(2001, 1, 1, tzinfo=timezone.utc)


def test_decode_uid():
    """Keyed-archiver UIDs decode to PlistUID."""
    data = plistlib.dumps({"ref": plistlib.UID(5)}, fmt=plistlib.FMT_BINARY)
    assert parse_bplist(data) == {"ref": PlistUID(5)}


def test_long_array_uses_length_integer():
    """Containers with 15 or more entries carry a separate length integer."""
    value = list(range(40))
    assert parse_bplist(plistlib.dumps(value, fmt=plistlib.FMT_BINARY)) == value


def test_float32_real():
    """4-byte reals decode as float32."""
    assert parse_bplist(_build_bplist([b"\x22" + struct.pack(">f", 0.5)])) == 0.5


def test_simple_values():
    """Null, false, true and fill bytes."""
    data = _build_bplist([b"\xa3\x01\x02\x03", b"\x00", b"\x08", b"\x09"])
    assert parse_bplist(data) == [None, False, True]


def test_set_decodes_as_list():
    """Sets have no JSON form and decode like arrays."""
    data = _build_bplist([b"\xc2\x01\x02", b"\x10\x01", b"\x10\x02"])
    assert parse_bplist(data) == [1, 2]


def test_trailer_high_bits_ignored():
    """Only the low 32 bits of the trailer counts are used."""
    data = _build_bplist([b"\x10\x07"], count_high=1)
    assert parse_bplist(data) == 7


def test_wide_offsets_and_refs():
    """Offset and reference widths come from the trailer."""
    data = _build_bplist(
        [b"\xa2\x00\x01\x00\x02", b"\x51a", b"\x51b"], offset_size=2, ref_size=2
    )
    assert parse_bplist(data) == ["a", "b"]


def test_bad_magic():
    """Buffers without the magic are rejected."""
    assert not is_bplist(b"<?xml version")
    with pytest.raises(PlistParseError):
        parse_bplist(b"<?xml version='1.0'?>" + b"\x00" * 40)


def test_short_buffer():
    """A buffer too short for a trailer is rejected."""
    with pytest.raises(PlistParseError):
        parse_bplist(b"bplist00\x00\x00")


def test_truncated_object():
    """An object running past the buffer end is rejected."""
    data = bytearray(plistlib.dumps("a fairly long string value", fmt=plistlib.FMT_BINARY))
    # Widen the length integer so the string claims far more bytes than exist
    data[8] = 0x5F
    data[9] = 0x12
    with pytest.raises(PlistParseError):
        parse_bplist(bytes(data))


def test_object_count_limit():
    """Declared object counts above the limit are rejected."""
    data = plistlib.dumps(list(range(20)), fmt=plistlib.FMT_BINARY)
    with pytest.raises(PlistParseError, match="maxObjectCount"):
        BinaryPlistParser(data, max_object_count=5).parse()


def test_object_size_limit():
    """Objects at or above the size limit are rejected."""
    data = plistlib.dumps("x" * 64, fmt=plistlib.FMT_BINARY)
    with pytest.raises(PlistParseError):
        BinaryPlistParser(data, max_object_size=64).parse()
    assert BinaryPlistParser(data, max_object_size=65).parse() == "x" * 64


def test_reference_cycle():
    """An array containing itself is rejected instead of recursing."""
    with pytest.raises(PlistParseError, match="cycle"):
        parse_bplist(_build_bplist([b"\xa1\x00"]))


def test_shared_references_decode_once(monkeypatch):
    """Objects referenced from several places are decoded a single time."""
    depth = 40
    # Object i is [ref i+1, ref i+1]; the last object is the integer 7
    objects = [bytes([0xA2, i + 1, i + 1]) for i in range(depth)] + [b"\x10\x07"]

    decoded = []
    original = BinaryPlistParser._decode

    def counting_decode(self, offset, obj_type, obj_info):
        decoded.append(offset)
        return original(self, offset, obj_type, obj_info)

    monkeypatch.setattr(BinaryPlistParser, "_decode", counting_decode)
    root = parse_bplist(_build_bplist(objects))

    assert len(decoded) == depth + 1
    node = root
    for _ in range(depth):
        assert node[0] is node[1]
        node = node[0]
    assert node == 7


def test_reference_out_of_range():
    """References past the object table are rejected."""
    with pytest.raises(PlistParseError):
        parse_bplist(_build_bplist([b"\xa1\x05"]))


def test_unknown_type():
    """Unhandled object types raise."""
    with pytest.raises(PlistParseError, match="Unhandled"):
        parse_bplist(_build_bplist([b"\x70"]))


def test_errors_are_value_errors():
    """Callers catching ValueError still see decode failures."""
    with pytest.raises(ValueError):
        parse_bplist(b"nope")
