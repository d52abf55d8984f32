from __future__ import annotations
from dataclasses import dataclass
from .analyze import analyze_gmsf
from .mapping import ConversionConfig
from .process import build_timelines
from .timeline import GmsfSong, TimelineBundle
from .write import encode_midi

@dataclass
class ConversionResult:
    song: GmsfSong
    bundle: TimelineBundle
    midi: bytes

def convert_gmsf_detailed(data: bytes, cfg: ConversionConfig) -> ConversionResult:
    """Decode, translate and encode one GMSF file.

    Raises MalformedInput, ConfigurationConflict or EncodingOverflow. Each call
    builds its own state, only `cfg` is shared.
    """
    song = analyze_gmsf(data)
    bundle = build_timelines(song, cfg)
    return ConversionResult(song=song, bundle=bundle, midi=encode_midi(bundle))

def convert_gmsf(data: bytes, cfg: ConversionConfig) -> bytes:
    return convert_gmsf_detailed(data, cfg).midi
