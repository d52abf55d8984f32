# src/gmsf2midi/mapping.py
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Union

DRUM_CHANNEL = 9

class Accidental(Enum):
    NATURAL = "Natural"
    SHARP = "Sharp"
    FLAT = "Flat"

    @property
    def offset(self) -> int:
        return {"Natural": 0, "Sharp": 1, "Flat": -1}[self.value]

class Register(Enum):
    NORMAL = "Note"
    LOW = "LowNote"
    HIGH = "HighNote"

    @property
    def offset(self) -> int:
        return {"Note": 0, "LowNote": -12, "HighNote": 12}[self.value]

class Marker(Enum):
    DRUMS = "Drums"
    REPEAT_BEGIN = "RepeatBegin"
    REPEAT_END = "RepeatEnd"
    OTHER = "Other"

@dataclass(frozen=True)
class PitchSpec:
    channel: int
    accidental: Accidental = Accidental.NATURAL
    register: Register = Register.NORMAL

    def pitch_for(self, base_key: int) -> int:
        """Base key plus accidental and octave shift, clamped to 0..127."""
        key = base_key + self.accidental.offset + self.register.offset
        return max(0, min(127, key))

# Closed sum: anything else reaching the engine is a bug.
NoteMapping = Union[PitchSpec, Marker]

@dataclass(frozen=True)
class ChannelSpec:
    patch: int = 0
    name: str = ""

@dataclass(frozen=True)
class ConversionConfig:
    """Immutable mapping tables plus engine settings.

    Built once (usually by config.load_config) and shared read-only by every
    conversion. config_from_dict wraps both maps in read-only proxies.
    """
    note_map: Mapping[int, NoteMapping] = field(default_factory=dict)
    channel_map: Mapping[int, ChannelSpec] = field(default_factory=dict)
    ticks_per_beat: int = 96
    ticks_per_unit: int = 24
    velocity: int = 64
    note_length: str = "gap"          # "gap" | "step"
    final_note_units: int = 1

    def resolve(self, note_id: int) -> NoteMapping:
        return self.note_map.get(note_id, Marker.OTHER)

    def channel_spec(self, channel: int) -> ChannelSpec:
        spec = self.channel_map.get(channel)
        if spec is None:
            return ChannelSpec(patch=0, name=f"Channel {channel}")
        return spec

    def patch_for(self, channel: int) -> int:
        # percussion uses the GM drum map, the patch number means nothing there
        if channel == DRUM_CHANNEL:
            return 0
        return self.channel_spec(channel).patch
