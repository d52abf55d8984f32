from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, List

DEFAULT_TPB = 96
DEFAULT_TICKS_PER_UNIT = DEFAULT_TPB // 4
DEFAULT_BPM = 120

# Grid rows of the simulator, top to bottom: B4 .. C3 on the white keys.
KEY_ROWS = [71, 69, 67, 65, 64, 62, 60, 59, 57, 55, 53, 52, 50, 48]

# Percussion kit per row (GM drum keys), repeated for the lower half.
DRUM_ROWS = [
    36,  # Bass Drum 1
    39,  # Hand Clap
    59,  # Ride Cymbal 2
    38,  # Acoustic Snare
    43,  # High Floor Tom
    45,  # Low Tom
    49,  # Crash Cymbal 1
    36, 39, 59, 38, 43, 45, 49,
]

MAX_ROWS = len(KEY_ROWS)

# --- Pass 1: decoded GMSF grid ---

@dataclass
class RawEvent:
    position: int            # grid column
    note_id: int
    row: int                 # 0..13, selects base pitch / drum key
    volume: Optional[int] = None  # only set for audio-gear cells

@dataclass
class GmsfSong:
    version: int
    gear_id: int
    bpm: int
    width: int
    height: int
    events: List[RawEvent] = field(default_factory=list)

# --- Pass 2: resolved timeline ---

@dataclass
class NoteEvent:
    start_tick: int
    end_tick: int
    midi: int
    velocity: int
    channel: int

    @property
    def duration_ticks(self) -> int:
        return self.end_tick - self.start_tick

@dataclass
class TrackTimeline:
    channel: int
    patch: int
    name: str
    notes: List[NoteEvent] = field(default_factory=list)

@dataclass
class TimelineBundle:
    tracks: List[TrackTimeline]
    ticks_per_beat: int = DEFAULT_TPB
    bpm: int = DEFAULT_BPM

    @property
    def note_count(self) -> int:
        return sum(len(tr.notes) for tr in self.tracks)
