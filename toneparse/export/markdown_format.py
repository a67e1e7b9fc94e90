"""Markdown table rendering of decoded presets.

One centred header with the preset name, then a bordered two-column
table per module (Neural DSP) or audio unit (Logic Pro).
"""

from __future__ import annotations

from toneparse.core.models import Preset, PresetKind
from toneparse.utils.formatting import format_number

TABLE_WIDTH = 30


def _centered_cell(text: str, width: int = TABLE_WIDTH) -> str:
    padding = max(width - len(text), 0)
    left = padding // 2
    return f"| {' ' * left}{text}{' ' * (padding - left)} |"


def _format_value(value) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return format_number(value)
    return str(value)


def _sections(preset: Preset) -> list[tuple[str, dict]]:
    if preset.kind is PresetKind.NEURAL_DSP:
        return [(m.name, m.settings) for m in preset.modules]
    sections = []
    for unit in preset.audio_units:
        title = f"{unit.name or '(unresolved)'} [{unit.type}]"
        sections.append((title, unit.parameters))
    return sections


def preset_to_markdown(preset: Preset) -> str:
    """Render a preset as the bordered text tables shown by the CLI."""
    lines = [_centered_cell(f"Preset Name: {preset.name}")]
    divider = "-" * (TABLE_WIDTH + 4)

    for title, settings in _sections(preset):
        lines.append(divider)
        lines.append(_centered_cell(title))
        lines.append(divider)

        rows = [(k, _format_value(v)) for k, v in settings.items()]
        key_width = max((len(k) for k, _ in rows), default=0)
        value_width = max((len(v) for _, v in rows), default=0)
        for key, value in rows:
            lines.append(f"| {key.ljust(key_width)} | {value.ljust(value_width)} |")
        lines.append(divider)

    return "\n".join(lines)
