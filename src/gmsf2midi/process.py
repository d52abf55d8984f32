from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
from .errors import ConfigurationConflict
from .mapping import ConversionConfig, Marker, NoteMapping, PitchSpec, DRUM_CHANNEL
from .timeline import (
    GmsfSong, RawEvent, TimelineBundle, TrackTimeline, NoteEvent,
    KEY_ROWS, DRUM_ROWS,
)
from .util.time import units_to_ticks

@dataclass
class RepeatRegion:
    begin: int          # first column of the region
    end: int            # last column, inclusive
    passes_left: int = 1

def _ordered(events: List[RawEvent]) -> List[RawEvent]:
    # sorted() is stable: file order breaks ties inside a column
    return sorted(events, key=lambda ev: ev.position)

def _repeat_regions(events: List[RawEvent], cfg: ConversionConfig) -> Dict[int, List[RepeatRegion]]:
    """
    Pair RepeatBegin/RepeatEnd markers in timeline order.
    A new begin replaces an outstanding one (innermost wins), an end without
    an outstanding begin is ignored.
    Returns: end column -> regions closing there, innermost first.
    """
    ending: Dict[int, List[RepeatRegion]] = {}
    open_begin: Optional[int] = None
    for ev in events:
        m = cfg.resolve(ev.note_id)
        if m is Marker.REPEAT_BEGIN:
            open_begin = ev.position
        elif m is Marker.REPEAT_END and open_begin is not None:
            ending.setdefault(ev.position, []).append(RepeatRegion(begin=open_begin, end=ev.position))
            open_begin = None
    for regions in ending.values():
        regions.sort(key=lambda r: -r.begin)
    return ending

def _sound_for(mapping: NoteMapping, ev: RawEvent) -> Optional[Tuple[int, int]]:
    """(channel, midi) for a sounding mapping, None for silent markers."""
    if isinstance(mapping, PitchSpec):
        if mapping.channel == DRUM_CHANNEL:
            raise ConfigurationConflict(
                f"note id {ev.note_id} maps a pitched note to channel {DRUM_CHANNEL}, "
                f"which is reserved for Drums"
            )
        if not (0 <= mapping.channel <= 15):
            raise ConfigurationConflict(f"note id {ev.note_id} maps to channel {mapping.channel}, expected 0-15")
        return mapping.channel, mapping.pitch_for(KEY_ROWS[ev.row])
    if mapping is Marker.DRUMS:
        return DRUM_CHANNEL, DRUM_ROWS[ev.row]
    if mapping in (Marker.REPEAT_BEGIN, Marker.REPEAT_END, Marker.OTHER):
        return None
    raise TypeError(f"unsupported note mapping {mapping!r}")

def _walk(song: GmsfSong, cfg: ConversionConfig) -> Dict[int, List[Tuple[int, int]]]:
    """
    Play the grid column by column with repeats expanded.
    Returns: channel -> [(start_tick, midi)] in playback order.
    """
    events = _ordered(song.events)
    regions = _repeat_regions(events, cfg)

    columns: Dict[int, List[RawEvent]] = {}
    for ev in events:
        columns.setdefault(ev.position, []).append(ev)
    length = max([song.width] + [ev.position + 1 for ev in events])

    onsets: Dict[int, List[Tuple[int, int]]] = {}
    step = units_to_ticks(1, cfg.ticks_per_unit)
    tick = 0
    x = 0
    while x < length:
        seen = set()
        for ev in columns.get(x, ()):
            hit = _sound_for(cfg.resolve(ev.note_id), ev)
            if hit is None or hit in seen:
                continue
            seen.add(hit)
            channel, midi = hit
            onsets.setdefault(channel, []).append((tick, midi))
        tick += step

        jump = None
        for region in regions.get(x, ()):
            if region.passes_left > 0:
                region.passes_left -= 1
                jump = region.begin
                break
        x = jump if jump is not None else x + 1
    return onsets

def _note_events(onsets: List[Tuple[int, int]], channel: int, cfg: ConversionConfig) -> List[NoteEvent]:
    step = units_to_ticks(1, cfg.ticks_per_unit)
    fallback = units_to_ticks(max(1, cfg.final_note_units), cfg.ticks_per_unit)
    starts = sorted({t for t, _ in onsets})
    next_start = {a: b for a, b in zip(starts, starts[1:])}

    out = []
    for start, midi in onsets:
        if cfg.note_length == "step":
            end = start + step
        else:
            end = next_start.get(start, start + fallback)
        out.append(NoteEvent(start_tick=start, end_tick=end, midi=midi,
                             velocity=cfg.velocity, channel=channel))
    out.sort(key=lambda n: (n.start_tick, n.midi))
    return out

def build_timelines(song: GmsfSong, cfg: ConversionConfig) -> TimelineBundle:
    onsets = _walk(song, cfg)
    tracks = []
    for channel in sorted(onsets):
        tracks.append(TrackTimeline(
            channel=channel,
            patch=cfg.patch_for(channel),
            name=cfg.channel_spec(channel).name,
            notes=_note_events(onsets[channel], channel, cfg),
        ))
    return TimelineBundle(tracks=tracks, ticks_per_beat=cfg.ticks_per_beat, bpm=song.bpm)
