"""Export decoded presets to JSON."""

from __future__ import annotations

import json
import math
from datetime import datetime
from pathlib import Path

from toneparse.core.models import (
    AudioUnit,
    LogicProPreset,
    NeuralDSPPreset,
    PlistUID,
    Preset,
    PresetKind,
)


def preset_to_dict(preset: Preset, include_metadata: bool = False) -> dict:
    """Convert a decoded preset to a serializable dict."""
    if preset.kind is PresetKind.NEURAL_DSP:
        return _neural_dsp_to_dict(preset)
    return _logic_pro_to_dict(preset, include_metadata)


def _neural_dsp_to_dict(preset: NeuralDSPPreset) -> dict:
    return {
        "name": preset.name,
        "modules": [
            {
                "name": m.name,
                "settings": {k: to_jsonable(v) for k, v in m.settings.items()},
            }
            for m in preset.modules
        ],
    }


def _logic_pro_to_dict(preset: LogicProPreset, include_metadata: bool) -> dict:
    return {
        "name": preset.name,
        "channel_name": preset.channel_name,
        "audio_units": [_unit_to_dict(u, include_metadata) for u in preset.audio_units],
    }


def _unit_to_dict(unit: AudioUnit, include_metadata: bool) -> dict:
    result = {
        "name": unit.name,
        "type": unit.type,
        "parameters": {k: to_jsonable(v) for k, v in unit.parameters.items()},
    }
    if not include_metadata:
        return result

    if unit.chunk:
        result["chunk"] = {"start": unit.chunk.start, "end": unit.chunk.end}
    if unit.metadata:
        m = unit.metadata
        result["metadata"] = {
            "data_offset": m.data_offset,
            "grid_x": m.grid_x,
            "grid_y": m.grid_y,
            "pattern_id": m.pattern_id,
            "reserved_params": [to_jsonable(v) for v in m.reserved_params],
            "labels": m.labels,
        }
    if unit.block:
        b = unit.block
        result["block"] = {
            "start": b.start,
            "alignment": b.alignment,
            "endian": b.endian,
            "score": round(b.score, 4),
            "primary_bytes": b.primary_bytes,
        }
    return result


def to_jsonable(value):
    """Map decoder values (plist trees included) onto JSON types."""
    if value is None or isinstance(value, (bool, str, int)):
        return value
    if isinstance(value, float):
        # JSON has no NaN/Infinity
        return value if math.isfinite(value) else None
    if isinstance(value, bytes):
        return value.hex()
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, PlistUID):
        return {"UID": value.value}
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return str(value)


def dumps_preset(preset: Preset, include_metadata: bool = False) -> str:
    return json.dumps(preset_to_dict(preset, include_metadata), indent=2, ensure_ascii=False)


def export_preset_json(preset: Preset, output_path: Path, include_metadata: bool = False):
    """Export a preset to a JSON file."""
    data = preset_to_dict(preset, include_metadata)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
