"""Parser for Logic Pro channel strip (.cst) and patch (.patch) files.

A channel strip is a run of chunks, each starting with an "OCuA" or "UCuA"
magic and holding one audio unit. Per chunk:

    0x00  magic + fixed header (uninterpreted)
    0x24  ULEB128 data offset, u16 grid x, u16 grid y, u32 pattern id
    ...   reserved float32 values, then NUL-terminated labels
    data  payload: strings, optional embedded bplist, packed parameters

Nothing in the payload is labelled. The plugin is identified from strings
matching the parameter catalog, and the parameter block is located by
scoring every alignment after a "GAME"/"GAMETSPP" marker.
"""

from __future__ import annotations

import logging
import math
import re
import struct

from toneparse.core.bplist_parser import parse_bplist
from toneparse.core.byte_cursor import ByteCursor, is_printable
from toneparse.core.constants import (
    ALIGNMENT_WINDOW,
    BPLIST_MAGIC,
    CHUNK_MAGICS,
    EXTENDED_HEADER_OFFSET,
    MAX_BLOCK_WORDS,
    MAX_PLAUSIBLE_MAGNITUDE,
    MIN_BLOCK_SCORE,
    PARAM_BLOCK_MARKERS,
    PLIST_NAME_KEYS,
    PLUGIN_ALIASES,
)
from toneparse.core.errors import PlistParseError
from toneparse.core.models import (
    AudioUnit,
    BlockMatch,
    Chunk,
    ChunkMetadata,
    LogicProPreset,
)
from toneparse.core.plugin_catalog import PluginCatalog, get_default_catalog
from toneparse.core.plugin_registry import (
    classify_unit_type,
    map_parameters,
    resolve_param_key,
)

logger = logging.getLogger(__name__)

# Header fields after the ULEB128: grid x, grid y, pattern id
_HEADER_TAIL_SIZE = 2 + 2 + 4
# Reverse matches (text inside a plugin name) need this many characters.
# Shorter fragments such as ")" or "e" occur in almost every name.
_MIN_PARTIAL_NAME = 4
# Largest slice re-read when recovering primary bytes
_MAX_PRIMARY_SLICE = 512


class LogicProParser:
    """Parser for Logic Pro channel strip buffers."""

    def __init__(self, data: bytes, catalog: PluginCatalog | None = None):
        self.cursor = ByteCursor(data)
        self.data = self.cursor.data
        self._catalog = catalog

    @property
    def catalog(self) -> PluginCatalog:
        if self._catalog is None:
            self._catalog = get_default_catalog()
        return self._catalog

    def parse(self) -> LogicProPreset:
        """Parse every chunk and return a LogicProPreset."""
        preset = LogicProPreset()
        preset.chunks = find_chunks(self.data)

        for chunk in preset.chunks:
            unit = self._parse_chunk(chunk)
            if unit is None:
                continue
            if not preset.channel_name:
                preset.channel_name = _channel_name(unit.plist)
            preset.audio_units.append(unit)

        preset.name = preset.channel_name
        logger.debug(
            "Parsed %d chunks into %d audio units, %d parameters (coverage %.1f%%)",
            len(preset.chunks), len(preset.audio_units), preset.parameter_count, self.coverage(),
        )
        return preset

    def coverage(self) -> float:
        return self.cursor.coverage()

    # ── Chunk parsing ────────────────────────────────────────────────────

    def _parse_chunk(self, chunk: Chunk) -> AudioUnit | None:
        meta = self._parse_header(chunk)
        if meta is None:
            return None

        unit = AudioUnit(chunk=chunk, metadata=meta)
        inferred_name, candidates = self._scan_payload(chunk, meta, unit)

        unit.name = self._resolve_plugin_name(inferred_name, meta.labels)
        unit.type = classify_unit_type(unit.name)

        values: list[float] = []
        key = resolve_param_key(self.catalog, unit.name) if unit.name else None
        defs = self.catalog.params_for(key) if key else []
        if defs and candidates:
            expected = min(MAX_BLOCK_WORDS, len(defs))
            unit.block = self._find_parameter_block(candidates, chunk.end, expected)
            if unit.block is not None:
                values = list(unit.block.primary_bytes)
            else:
                logger.debug("No plausible parameter block for %s in chunk at 0x%x", key, chunk.start)

        unit.parameters = map_parameters(self.catalog, unit.name, values)
        return None if unit.is_empty else unit

    def _parse_header(self, chunk: Chunk) -> ChunkMetadata | None:
        """Read the extended header plus reserved values and labels."""
        cursor = self.cursor
        header_start = chunk.start + EXTENDED_HEADER_OFFSET
        if header_start + 1 + _HEADER_TAIL_SIZE > chunk.end:
            logger.debug("Chunk at 0x%x too short for a header (%d bytes)", chunk.start, chunk.size)
            return None

        cursor.offset = chunk.start
        cursor.skip(4, known=True)  # magic
        cursor.skip(EXTENDED_HEADER_OFFSET - 4)

        meta = ChunkMetadata()
        meta.data_offset = cursor.read_uleb128()
        meta.grid_x = cursor.read_u16_le()
        meta.grid_y = cursor.read_u16_le()
        meta.pattern_id = cursor.read_u32_le()

        block_end = chunk.start + meta.data_offset
        if block_end > chunk.end:
            logger.debug(
                "Chunk at 0x%x declares data offset %d beyond its %d bytes, skipping",
                chunk.start, meta.data_offset, chunk.size,
            )
            return None

        # Reserved float32 values run until the first printable byte
        while cursor.offset < block_end:
            if is_printable(self.data[cursor.offset]):
                break
            if cursor.offset + 4 > block_end:
                cursor.offset = block_end
                break
            meta.reserved_params.append(cursor.read_f32_le())

        # Then NUL-terminated labels
        while cursor.offset < block_end:
            if self.data[cursor.offset] == 0:
                cursor.skip(1, known=True)
                continue
            cursor.str_start = cursor.offset
            label = cursor.read_terminated_string()
            if label:
                meta.labels.append(label)
            cursor.skip(1, known=True)

        return meta

    def _scan_payload(
        self, chunk: Chunk, meta: ChunkMetadata, unit: AudioUnit
    ) -> tuple[str | None, list[int]]:
        """Walk the payload for a plugin name and parameter block markers."""
        cursor = self.cursor
        cursor.offset = chunk.start + meta.data_offset
        cursor.str_start = cursor.offset

        inferred_name: str | None = None
        candidates: list[int] = []

        while cursor.offset < chunk.end:
            if cursor.startswith(BPLIST_MAGIC, limit=chunk.end):
                decoded, root = self._try_embedded_plist(cursor.offset, chunk.end)
                if decoded:
                    unit.plist = root
                    plist_name = _plist_name(root)
                    if plist_name:
                        inferred_name = plist_name
                    cursor.skip(chunk.end - cursor.offset, known=True)
                    break

            if not is_printable(self.data[cursor.offset]):
                cursor.skip(1)
                continue

            cursor.str_start = cursor.offset
            text = cursor.read_terminated_string()

            if inferred_name is None and text:
                inferred_name = self._match_known_plugin(text)

            if text in PARAM_BLOCK_MARKERS:
                probable_start = cursor.offset + 1
                if probable_start < chunk.end:
                    candidates.append(probable_start)

            cursor.skip(1, known=True)  # NUL terminator

        return inferred_name, candidates

    def _try_embedded_plist(self, start: int, end: int) -> tuple[bool, object]:
        try:
            return True, parse_bplist(self.data[start:end])
        except (PlistParseError, struct.error, IndexError, RecursionError, UnicodeDecodeError) as e:
            logger.debug("Embedded bplist at 0x%x not decodable: %s", start, e)
            return False, None

    # ── Plugin identity ──────────────────────────────────────────────────

    def _match_known_plugin(self, text: str) -> str | None:
        match = self.catalog.find_plugin(text)
        if match is not None or len(text) < _MIN_PARTIAL_NAME:
            return match
        # Text inside a plugin name must start at a word boundary
        pattern = re.compile(r"\b" + re.escape(text.lower()))
        for name in self.catalog.known_plugin_names():
            if pattern.search(name.lower()):
                return name
        return None

    def _resolve_plugin_name(self, inferred: str | None, labels: list[str]) -> str:
        """Only names present in the catalog are accepted; otherwise empty."""
        if inferred:
            match = self._match_known_plugin(inferred)
            if match:
                return match

        for label in labels:
            match = self.catalog.find_plugin(label)
            if match:
                return match

        if inferred and inferred in PLUGIN_ALIASES:
            return PLUGIN_ALIASES[inferred]
        return ""

    # ── Parameter block search ───────────────────────────────────────────

    def _find_parameter_block(
        self, candidates: list[int], end: int, expected_count: int
    ) -> BlockMatch | None:
        """Score every (start, alignment, endianness) and keep the best block."""
        best_score = -1.0
        best: tuple[int, int, str, int] | None = None

        for start in candidates:
            for align in range(ALIGNMENT_WINDOW):
                abs_start = start + align
                if abs_start >= end:
                    break
                count = self._block_word_count(abs_start, end, expected_count)
                for endian in ("le", "be"):
                    score = score_float_block(self._read_floats(abs_start, count, endian))
                    if score > best_score:
                        best_score = score
                        best = (abs_start, align, endian, count)

        if best is None or best_score < MIN_BLOCK_SCORE:
            return None

        block_start, align, endian, count = best
        raw = self.data[block_start : min(block_start + min(count * 4, _MAX_PRIMARY_SLICE), end)]
        primary = [primary_byte(raw[o : o + 4]) for o in range(0, len(raw) - 3, 4)]

        logger.debug(
            "Parameter block at 0x%x align=%d endian=%s score=%.2f words=%s",
            block_start, align, endian, best_score, raw[:64].hex(" ", 4),
        )
        return BlockMatch(
            start=block_start,
            alignment=align,
            endian=endian,
            score=best_score,
            raw_words=raw,
            primary_bytes=primary,
        )

    def _block_word_count(self, start: int, end: int, expected_count: int) -> int:
        """Words available before the end or an ASCII-looking run."""
        count = 0
        off = start
        data = self.data
        while count < expected_count and off + 4 <= end:
            if is_printable(data[off]) and is_printable(data[off + 1]) and is_printable(data[off + 2]):
                break
            count += 1
            off += 4
        return count

    def _read_floats(self, start: int, count: int, endian: str) -> tuple[float, ...]:
        fmt = ("<" if endian == "le" else ">") + f"{count}f"
        return struct.unpack_from(fmt, self.data, start)


# ── Helpers ──────────────────────────────────────────────────────────────

def find_chunks(data: bytes) -> list[Chunk]:
    """Split ``data`` at every chunk magic occurrence."""
    starts: set[int] = set()
    for magic in CHUNK_MAGICS:
        idx = data.find(magic)
        while idx != -1:
            starts.add(idx)
            idx = data.find(magic, idx + 1)

    offsets = sorted(starts)
    return [
        Chunk(start=s, end=offsets[i + 1] if i + 1 < len(offsets) else len(data))
        for i, s in enumerate(offsets)
    ]


def score_float_block(values) -> float:
    """Fraction of finite values with magnitude <= 1000."""
    if not values:
        return 0.0
    ok = sum(1 for v in values if math.isfinite(v) and abs(v) <= MAX_PLAUSIBLE_MAGNITUDE)
    return ok / len(values)


def primary_byte(word: bytes) -> int:
    """Recover the per-parameter byte from a packed 4-byte word.

    0 nonzero bytes -> 0; 1 nonzero -> that byte; nonzero only at both
    outer positions -> low byte (high byte is a flag); otherwise the last
    nonzero byte.
    """
    b0, b1, b2, b3 = word
    nonzero = [b for b in word if b]
    if not nonzero:
        return 0
    if len(nonzero) == 1:
        return nonzero[0]
    if len(nonzero) == 2 and b0 and b3 and not b1 and not b2:
        return b3
    return nonzero[-1]


def _plist_name(root) -> str | None:
    if not isinstance(root, dict):
        return None
    for key in PLIST_NAME_KEYS:
        if root.get(key):
            return str(root[key])
    return None


def _channel_name(root) -> str:
    if not isinstance(root, dict):
        return ""
    if isinstance(root.get("Channel_name"), str):
        return root["Channel_name"]
    channels = root.get("channels")
    if isinstance(channels, list) and channels and isinstance(channels[0], dict):
        name = channels[0].get("Channel_name")
        if isinstance(name, str):
            return name
    return ""


def parse_logic_pro(data: bytes, catalog: PluginCatalog | None = None) -> LogicProPreset:
    """Convenience function to parse a Logic Pro channel strip buffer."""
    return LogicProParser(data, catalog).parse()
