from __future__ import annotations
import io
import struct
import mido
from typing import Iterable, List, Tuple
from .errors import EncodingOverflow
from .timeline import TimelineBundle, TrackTimeline, NoteEvent

MAX_DELTA = 0x0FFFFFFF     # largest 4-byte variable-length quantity
MAX_TEMPO = 0xFFFFFF       # set_tempo payload is 24 bits

# ---------- helpers ----------

def _bpm_to_micro(bpm: float) -> int:
    tempo = int(round(60_000_000 / max(1e-6, float(bpm))))
    if tempo > MAX_TEMPO:
        raise EncodingOverflow(f"tempo {bpm} bpm needs {tempo} us/beat, more than 24 bits")
    return tempo

def _delta(tick: int, last: int) -> int:
    delta = tick - last
    if delta > MAX_DELTA:
        raise EncodingOverflow(f"delta time {delta} exceeds 0x{MAX_DELTA:X}")
    return delta

def _emit_conductor(track: mido.MidiTrack, bpm: float):
    track.append(mido.MetaMessage("set_tempo", tempo=_bpm_to_micro(bpm), time=0))

def _emit_track_events(mt: mido.MidiTrack, notes: Iterable[NoteEvent]):
    """Note-on/off pairs as delta times; offs first at equal ticks."""
    evs: List[Tuple[int, int, str, NoteEvent]] = []
    for n in notes:
        evs.append((n.start_tick, 1, "on", n))
        evs.append((n.end_tick,   0, "off", n))
    evs.sort(key=lambda x: (x[0], x[1], x[3].midi))

    last = 0
    for tick, _, kind, n in evs:
        delta = _delta(tick, last)
        last = tick
        if kind == "on":
            mt.append(mido.Message("note_on", note=n.midi, velocity=n.velocity, channel=n.channel, time=delta))
        else:
            mt.append(mido.Message("note_off", note=n.midi, velocity=0, channel=n.channel, time=delta))

def _channel_track(tr: TrackTimeline) -> mido.MidiTrack:
    mt = mido.MidiTrack()
    mt.append(mido.Message("program_change", program=tr.patch, channel=tr.channel, time=0))
    _emit_track_events(mt, tr.notes)
    return mt

# ---------- public writer API ----------

def build_midi_file(bundle: TimelineBundle) -> mido.MidiFile:
    """Format 1: conductor track (tempo) + one track per channel."""
    mid = mido.MidiFile(type=1, ticks_per_beat=bundle.ticks_per_beat)

    t_con = mido.MidiTrack()
    _emit_conductor(t_con, bundle.bpm)
    mid.tracks.append(t_con)

    for tr in bundle.tracks:
        mid.tracks.append(_channel_track(tr))
    return mid

def encode_midi(bundle: TimelineBundle) -> bytes:
    mid = build_midi_file(bundle)
    buf = io.BytesIO()
    try:
        mid.save(file=buf)
    except struct.error as exc:
        # chunk length did not fit the 32-bit size field
        raise EncodingOverflow(f"MIDI chunk too large: {exc}") from exc
    return buf.getvalue()
def write_midi(bundle: TimelineBundle, out_path: str):
    data = encode_midi(bundle)
    with open(out_path, "wb") as fh:
        fh.write(data)
