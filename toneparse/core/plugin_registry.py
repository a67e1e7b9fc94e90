"""Parameter calibration for known Logic Pro plugins.

Logic stores most channel strip parameters as one raw byte (0..255) per
control. The byte is mapped to an engineering unit chosen by parameter
name (dB, ms, Hz, %...). A few plugins carry empirically fitted formulas
for individual parameters, taken from presets whose on-screen values are
known. These fits are best effort: bytes outside the reference sample may
be misclassified.
"""

from __future__ import annotations

import math
import re

from toneparse.core.constants import PLUGIN_ALIASES, UNIT_TYPE_PATTERNS
from toneparse.core.plugin_catalog import PluginCatalog
from toneparse.utils.formatting import rounded


# ── Generic scalers (raw byte 0..255) ──────────────────────────────────

def scale_percent_127(x: float) -> float:
    return rounded(x / 127 * 100)


def scale_percent_255(x: float) -> float:
    return rounded(x / 255 * 100)


def scale_db_threshold(x: float) -> float:
    """0..255 -> -90..+30 dB."""
    return rounded(-90 + x / 255 * 120)


def scale_db_gain(x: float) -> float:
    """0..255 -> -24..+24 dB."""
    return rounded(-24 + x / 255 * 48)


def scale_ms(x: float, max_ms: float) -> float:
    return rounded(x / 255 * max_ms)


def scale_freq_log(x: float) -> float:
    """0..255 -> 20 Hz..20 kHz, logarithmic."""
    return rounded(20 * math.pow(20000 / 20, x / 255))


def scale_q(x: float) -> float:
    """0..255 -> 0.1..10, logarithmic."""
    return rounded(0.1 * math.pow(10 / 0.1, x / 255))


# ── Name patterns ──────────────────────────────────────────────────────

_BOOLEAN_RE = re.compile(r"on/off|bypass|enable|disabled|enabled|freeze|monitor|sync")
_GAIN_RE = re.compile(r"reduction|make ?up|output gain|input gain|gain$")
_FREQ_RE = re.compile(r"freq|cut|hz|shelf|band|khz")
_Q_RE = re.compile(r"q-factor|\bq\b")
_PERCENT_RE = re.compile(
    r"feedback|mix|wet|dry|depth|intensity|presence|master|bass|mid|treble|speed|"
    r"drive|level|lfo rate|lfo depth|flutter rate|flutter int|flutter intensity|deviation"
)

# (pattern, max milliseconds), first hit wins
_TIME_RANGES = (
    (re.compile(r"attack"), 500),
    (re.compile(r"release"), 2000),
    (re.compile(r"hold"), 2000),
    (re.compile(r"lookahead"), 20),
    (re.compile(r"smoothing|smooth"), 200),
)


def _name_matches(plugin_name: str, patterns: list[str]) -> bool:
    """Check if a plugin name matches any of the given patterns."""
    name_lower = plugin_name.lower()
    return any(p.lower() in name_lower for p in patterns)


# ── Plugin-specific fits ───────────────────────────────────────────────

def _calibrate_noise_gate(lower: str, v: int) -> float | None:
    """Fitted on a preset with Threshold -65 dB, Reduction -35 dB, Attack 18 ms."""
    if "threshold" in lower:
        return rounded(-90 + (25 / 179) * v)
    if "reduction" in lower:
        return rounded((-35 / 36) * v)
    if "attack" in lower:
        return rounded(v * (18 / 88))
    if "hold" in lower and v == 1:
        return 140
    if "release" in lower and v == 1:
        return 192.1
    if "hysteresis" in lower and v == 0:
        return -3
    if "lookahead" in lower:
        return 0
    if "highcut" in lower:
        return 20000
    if "lowcut" in lower:
        return 20
    if "mode" in lower or "monitor" in lower:
        return 0
    return None


def _calibrate_tape_delay(lower: str, v: int) -> float | None:
    if "delay tempo" in lower:
        return rounded(v / 99 * 200)
    if any(k in lower for k in ("flutter int", "flutter intensity", "lfo depth")):
        return rounded(v / 99 * 100)
    if "lfo rate" in lower:
        # High raw values are slow rates
        return rounded(0.1 * math.pow(100, 1 - v / 255))
    if "flutter rate" in lower:
        return rounded(v * 0.008)
    if "feedback" in lower:
        return rounded(v / 8)
    if "low cut" in lower:
        return 200
    if "high cut" in lower:
        return 1700
    return None


PLUGIN_CALIBRATIONS = (
    (["Noise Gate"], _calibrate_noise_gate),
    (["Tape Delay"], _calibrate_tape_delay),
)


# ── Main dispatcher ────────────────────────────────────────────────────

def calibrate_value(plugin: str, v: float, name: str = "") -> float:
    """Convert a raw stored byte (or legacy float) to an engineering value."""
    if not math.isfinite(v):
        return 0

    lower = name.lower()
    if not (0 <= v <= 255 and float(v).is_integer()):
        return _calibrate_float(v)
    v = int(v)

    for patterns, calibrate in PLUGIN_CALIBRATIONS:
        if _name_matches(plugin, patterns):
            result = calibrate(lower, v)
            if result is not None:
                return result

    if _BOOLEAN_RE.search(lower):
        return 0 if v == 0 else 1
    if lower.endswith("mode") and v <= 3:
        return v
    if re.search(r"gate|duck", lower) and v <= 2:
        return v

    if "threshold" in lower:
        return scale_db_threshold(v)
    if _GAIN_RE.search(lower) and "gain-q" not in lower:
        return scale_db_gain(v)

    if _name_matches(plugin, ["Tape Delay"]) and re.search(r"delay (tempo|time)", lower):
        # Raw 30 ~ 200 ms
        return rounded(v * 6.67)

    for pattern, max_ms in _TIME_RANGES:
        if pattern.search(lower):
            return scale_ms(v, max_ms)
    if "tempo" in lower and "delay" not in lower:
        return scale_ms(v, 1000)
    if re.search(r"delay coarse|delay fine", lower):
        return scale_ms(v, 500)

    if _FREQ_RE.search(lower):
        return scale_freq_log(v)
    if _Q_RE.search(lower):
        return scale_q(v)
    if _PERCENT_RE.search(lower) or "gain-q couple strength" in lower:
        return scale_percent_127(v) if v <= 127 else scale_percent_255(v)

    if v <= 127:
        return scale_percent_127(v)
    return v


def _calibrate_float(v: float) -> float:
    if 0 <= v <= 1:
        return rounded(v * 100)
    if abs(v) < 1e-6 or abs(v) > 1e6:
        return 0
    return rounded(v, 4)


def resolve_param_key(catalog: PluginCatalog, unit_name: str) -> str | None:
    """Catalog key holding the parameter order for ``unit_name``."""
    key = catalog.match_param_key(unit_name)
    if key is None:
        alias = PLUGIN_ALIASES.get(unit_name)
        if alias and alias in catalog:
            key = alias
    return key


def map_parameters(
    catalog: PluginCatalog, unit_name: str, values: list[float]
) -> dict[str, float | int | str]:
    """Name and calibrate raw values using the catalog's parameter order."""
    key = resolve_param_key(catalog, unit_name)
    defs = catalog.params_for(key) if key else []
    if not defs:
        return {f"param_{i}": v for i, v in enumerate(values)}

    result: dict[str, float | int | str] = {}
    for param, raw in zip(defs, values):
        result[param.name] = calibrate_value(key, raw, param.name)
    for i in range(len(defs), len(values)):
        result[f"param_{i}"] = values[i]
    return result


def classify_unit_type(name: str) -> str:
    """Coarse category for a resolved plugin name."""
    if not name:
        return "unknown"
    lower = name.lower()
    for unit_type, pattern in UNIT_TYPE_PATTERNS:
        if re.search(pattern, lower):
            return unit_type
    return "other"
