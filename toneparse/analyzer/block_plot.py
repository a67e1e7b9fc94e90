"""Diagnostic plots of recovered Logic Pro parameter blocks."""

from __future__ import annotations

from pathlib import Path

import matplotlib

matplotlib.use("Agg")
from matplotlib.figure import Figure

from toneparse.core.models import AudioUnit, LogicProPreset

BAR_COLOR = "#4a9eff"
FLAG_COLOR = "#ff9f43"


def units_with_blocks(preset: LogicProPreset) -> list[AudioUnit]:
    return [u for u in preset.audio_units if u.block and u.block.primary_bytes]


def plot_parameter_blocks(preset: LogicProPreset, output_path: Path) -> int:
    """Write one bar chart per audio unit of its raw primary bytes.

    Bars whose word carried a high flag byte are highlighted. Returns the
    number of units plotted; nothing is written when there are none.
    """
    units = units_with_blocks(preset)
    if not units:
        return 0

    fig = Figure(figsize=(10, 2.6 * len(units)), dpi=100)
    for i, unit in enumerate(units, start=1):
        ax = fig.add_subplot(len(units), 1, i)
        block = unit.block
        names = list(unit.parameters)[: len(block.primary_bytes)]
        colors = [
            FLAG_COLOR if word[0] and word[3] and not word[1] and not word[2] else BAR_COLOR
            for word in (block.raw_words[o : o + 4] for o in range(0, len(block.primary_bytes) * 4, 4))
        ]

        ax.bar(range(len(block.primary_bytes)), block.primary_bytes, color=colors)
        ax.set_ylim(0, 255)
        ax.set_ylabel("raw byte", fontsize=8)
        ax.set_title(
            f"{unit.name or '(unresolved)'}  start=0x{block.start:x} "
            f"align={block.alignment} {block.endian} score={block.score:.2f}",
            fontsize=9,
        )
        ax.set_xticks(range(len(names)))
        ax.set_xticklabels(names, rotation=60, ha="right", fontsize=6)
        ax.grid(True, axis="y", alpha=0.2)

    fig.tight_layout(pad=1.0)
    fig.savefig(output_path)
    return len(units)
