"""Dataclasses for all toneparse data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class PresetKind(Enum):
    NEURAL_DSP = "neural_dsp"
    LOGIC_PRO = "logic_pro"


class _EditorValue:
    """Sentinel for settings whose value is owned by the plugin editor."""

    _instance: _EditorValue | None = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "EDITOR_VALUE"

    def __str__(self) -> str:
        return "EDITOR_VALUE"


EDITOR_VALUE = _EditorValue()

SettingValue = Union[str, list, None, _EditorValue]


@dataclass(frozen=True)
class ParamDef:
    index: int
    name: str


@dataclass(frozen=True)
class Chunk:
    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start


@dataclass
class ChunkMetadata:
    data_offset: int = 0
    grid_x: int = 0
    grid_y: int = 0
    pattern_id: int = 0
    reserved_params: list[float] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)


@dataclass
class BlockMatch:
    """Parameter block chosen by the alignment/endianness search."""

    start: int
    alignment: int
    endian: str
    score: float
    raw_words: bytes = field(default=b"", repr=False)
    primary_bytes: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class PlistUID:
    value: int


@dataclass
class Module:
    name: str = ""
    settings: dict[str, SettingValue] = field(default_factory=dict)


@dataclass
class AudioUnit:
    name: str = ""
    type: str = "unknown"
    parameters: dict[str, float | int | str] = field(default_factory=dict)
    chunk: Chunk | None = None
    metadata: ChunkMetadata | None = None
    block: BlockMatch | None = None
    plist: Any = field(default=None, repr=False)

    @property
    def is_empty(self) -> bool:
        return not self.name and not self.parameters


@dataclass
class NeuralDSPPreset:
    name: str = ""
    modules: list[Module] = field(default_factory=list)
    kind: PresetKind = field(default=PresetKind.NEURAL_DSP, init=False)

    def module(self, name: str) -> Module | None:
        for module in self.modules:
            if module.name == name:
                return module
        return None


@dataclass
class LogicProPreset:
    name: str = ""
    channel_name: str = ""
    audio_units: list[AudioUnit] = field(default_factory=list)
    chunks: list[Chunk] = field(default_factory=list, repr=False)
    kind: PresetKind = field(default=PresetKind.LOGIC_PRO, init=False)

    @property
    def parameter_count(self) -> int:
        return sum(len(u.parameters) for u in self.audio_units)


Preset = Union[NeuralDSPPreset, LogicProPreset]
