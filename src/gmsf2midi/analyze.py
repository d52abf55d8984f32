# src/gmsf2midi/analyze.py
from __future__ import annotations
from typing import List
from .errors import MalformedInput
from .timeline import GmsfSong, RawEvent, MAX_ROWS
from .util.binary import ByteReader

MAGIC = b"GMSF"
GEAR_SLOTS = 5

def _read_gear_cell(rd: ByteReader, x: int, y: int) -> List[RawEvent]:
    """Audio-gear cell: five (note id, row) slots followed by a volume byte."""
    slots = []
    for _ in range(GEAR_SLOTS):
        inner_id = rd.read_u8(f"gear slot at column {x}, row {y}")
        inner_row = rd.read_u8(f"gear slot at column {x}, row {y}")
        slots.append((inner_id, inner_row))
    volume = rd.read_u8(f"gear volume at column {x}, row {y}")

    out = []
    for inner_id, inner_row in slots:
        if inner_id == 0:
            continue  # empty slot, row byte is meaningless
        if inner_row >= MAX_ROWS:
            raise MalformedInput(
                f"gear slot at column {x}, row {y} points to row {inner_row} (max {MAX_ROWS - 1})"
            )
        out.append(RawEvent(position=x, note_id=inner_id, row=inner_row, volume=volume))
    return out

def analyze_gmsf(data: bytes) -> GmsfSong:
    rd = ByteReader(data)

    magic = rd.read_bytes(4, "header")
    if magic != MAGIC:
        raise MalformedInput(f"bad magic {magic!r}, expected {MAGIC!r}")

    version = rd.read_u8("header")
    gear_id = rd.read_u8("header")
    bpm = rd.read_i16("header")
    width = rd.read_i16("header")
    height = rd.read_i16("header")

    if bpm <= 0:
        raise MalformedInput(f"tempo must be positive, got {bpm}")
    if width < 0:
        raise MalformedInput(f"negative grid width {width}")
    if not (0 <= height <= MAX_ROWS):
        raise MalformedInput(f"grid height {height} outside 0..{MAX_ROWS}")

    song = GmsfSong(version=version, gear_id=gear_id, bpm=bpm, width=width, height=height)

    # Grid is stored row-major; events keep that order.
    for y in range(height):
        for x in range(width):
            note_id = rd.read_u8(f"cell at column {x}, row {y}")
            if note_id == 0:
                continue
            if gear_id != 0 and note_id == gear_id:
                song.events.extend(_read_gear_cell(rd, x, y))
            else:
                song.events.append(RawEvent(position=x, note_id=note_id, row=y))

    if rd.remaining():
        raise MalformedInput(f"{rd.remaining()} trailing bytes after grid at offset 0x{rd.pos:X}")

    return song
