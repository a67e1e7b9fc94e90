"""Token-stream parser for Neural DSP preset files.

Despite the .xml extension these files are not markup: they hold
NUL-terminated ASCII tokens separated by short binary runs. The 3 bytes
after a token's terminator tell whether the key has a value at all.
Older presets use a flat ``id <key> value <value> PARAM`` layout instead
of ``subModels`` sections; that layout is handled by a separate loop.
"""

from __future__ import annotations

import logging

from toneparse.core.byte_cursor import ByteCursor
from toneparse.core.constants import (
    EDITOR_VALUE_MARKER,
    LEGACY_MODULE_NAME,
    LEGACY_PARAM_TOKEN,
    LEGACY_STRING_VALUE_MARKER,
    LIST_ELEMENTS_TOKEN,
    LIST_END_MARKER,
    NULL_VALUE_MARKERS,
    SUBMODELS_KEY,
)
from toneparse.core.models import EDITOR_VALUE, Module, NeuralDSPPreset, SettingValue
from toneparse.utils.formatting import format_number

logger = logging.getLogger(__name__)


class NeuralDSPParser:
    """Parser for Neural DSP (.xml) token-stream presets."""

    def __init__(self, data: bytes):
        self.cursor = ByteCursor(data)

    def parse(self) -> NeuralDSPPreset:
        cursor = self.cursor
        preset = NeuralDSPPreset(name=cursor.read_terminated_string())
        module = Module()

        while not cursor.exhausted:
            key = self._next_token()
            if key is None:
                break

            # Legacy presets keep every setting in one flat section
            if LEGACY_PARAM_TOKEN in key and not preset.modules and not module.name:
                logger.debug("Legacy token layout detected at offset %d", cursor.offset)
                module.name = LEGACY_MODULE_NAME
                module.settings.update(self._parse_legacy())
                break

            if self._has_null_value():
                module.settings[key] = None
                continue
            if cursor.peek_marker() == EDITOR_VALUE_MARKER:
                module.settings[key] = EDITOR_VALUE
                continue

            # A key cut off by the end of the buffer keeps an empty value
            value = self._next_token()
            if value is None:
                value = ""
            elif value == LIST_ELEMENTS_TOKEN:
                value = self._read_list_elements()

            if key == SUBMODELS_KEY:
                if module.name:
                    preset.modules.append(module)
                module = Module(name=_stringify(value))
                continue

            module.settings[key] = _stringify(value)

        if module.name:
            preset.modules.append(module)
        return preset

    def coverage(self) -> float:
        return self.cursor.coverage()

    # ── Tokens ───────────────────────────────────────────────────────────

    def _next_token(self) -> str | None:
        """Read the next printable token, or None once the buffer is spent."""
        self.cursor.advance_to_printable()
        if self.cursor.exhausted:
            return None
        return self.cursor.read_terminated_string()

    def _has_null_value(self) -> bool:
        return self.cursor.peek_marker() in NULL_VALUE_MARKERS

    def _read_list_elements(self) -> list[str]:
        cursor = self.cursor
        elements: list[str] = []
        while True:
            marker = cursor.peek_marker()
            if marker is None or marker == LIST_END_MARKER:
                break
            element = self._next_token()
            if element is None:
                break
            elements.append(element)
        cursor.skip(4, known=True)
        return elements

    # ── Legacy layout ────────────────────────────────────────────────────

    def _parse_legacy(self) -> dict[str, SettingValue]:
        cursor = self.cursor
        settings: dict[str, SettingValue] = {}
        pending_key = ""
        value = ""

        while not cursor.exhausted:
            key = self._next_token()
            if key is None:
                break

            if key == "id":
                pending_key = self._next_token() or ""
                continue

            if key == "value":
                value = self._read_legacy_value()
                continue

            if key == LEGACY_PARAM_TOKEN:
                settings[pending_key] = value
                pending_key = ""
                continue

            if pending_key:
                # A bare key right after a value: commit, then re-read this token
                settings[pending_key] = value
                cursor.rewind(cursor.offset - cursor.str_start + 1)
                pending_key = ""
                continue

            if self._has_null_value():
                settings[key] = None
                continue

            value = self._next_token()
            if value is None:
                break
            settings[key] = value

        if pending_key:
            settings[pending_key] = value
        return settings

    def _read_legacy_value(self) -> str:
        cursor = self.cursor
        if cursor.peek_marker() == LEGACY_STRING_VALUE_MARKER:
            return self._next_token() or ""

        cursor.skip(4, known=True)  # terminator + type marker
        number = cursor.read_f64_le()
        return format_number(number)


def _stringify(value: str | list[str]) -> str:
    if isinstance(value, list):
        return ",".join(value)
    return value


def parse_neural_dsp(data: bytes) -> NeuralDSPPreset:
    """Convenience function to parse a Neural DSP preset buffer."""
    return NeuralDSPParser(data).parse()
