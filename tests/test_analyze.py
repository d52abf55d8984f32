import struct

import pytest

import gmsf2midi.analyze
from gmsf2midi.errors import MalformedInput
from gmsf2midi.timeline import RawEvent


# ---------------------------------------------------------------------------
# Header and plain cells
# ---------------------------------------------------------------------------

def test_header_fields_are_decoded (gmsf_bytes) -> None:

	"""Version, gear id, tempo and grid size come straight from the header."""

	data = gmsf_bytes(3, 2, {}, bpm=140, gear_id=9, version=2)
	song = gmsf2midi.analyze.analyze_gmsf(data)

	assert song.version == 2
	assert song.gear_id == 9
	assert song.bpm == 140
	assert (song.width, song.height) == (3, 2)
	assert song.events == []


def test_cells_are_returned_in_file_order (gmsf_bytes) -> None:

	"""The grid is row-major; events keep that order and skip empty cells."""

	data = gmsf_bytes(3, 2, {(2, 0): 1, (0, 1): 4, (1, 1): 7})
	song = gmsf2midi.analyze.analyze_gmsf(data)

	assert song.events == [
		RawEvent(position=2, note_id=1, row=0),
		RawEvent(position=0, note_id=4, row=1),
		RawEvent(position=1, note_id=7, row=1),
	]


def test_empty_grid_is_valid (gmsf_bytes) -> None:

	"""A zero-sized grid decodes to a song without events."""

	song = gmsf2midi.analyze.analyze_gmsf(gmsf_bytes(0, 0, {}))

	assert song.events == []


# ---------------------------------------------------------------------------
# Audio-gear cells
# ---------------------------------------------------------------------------

def test_gear_cell_expands_to_inner_events (gmsf_bytes) -> None:

	"""A gear cell yields one event per used slot, at the cell's column."""

	cells = {(1, 0): ([(1, 3), (0, 0), (4, 13)], 80), (2, 0): 2}
	data = gmsf_bytes(3, 1, cells, gear_id=20)
	song = gmsf2midi.analyze.analyze_gmsf(data)

	assert song.events == [
		RawEvent(position=1, note_id=1, row=3, volume=80),
		RawEvent(position=1, note_id=4, row=13, volume=80),
		RawEvent(position=2, note_id=2, row=0),
	]


def test_gear_id_zero_disables_gear_cells (gmsf_bytes) -> None:

	"""With gear id 0 every non-empty cell is a plain note."""

	song = gmsf2midi.analyze.analyze_gmsf(gmsf_bytes(2, 1, {(0, 0): 20, (1, 0): 21}))

	assert [ev.note_id for ev in song.events] == [20, 21]
	assert all(ev.volume is None for ev in song.events)


def test_gear_slot_row_out_of_range_is_rejected (gmsf_bytes) -> None:

	"""Inner rows index the 14-row pitch table."""

	data = gmsf_bytes(1, 1, {(0, 0): ([(1, 14)], 64)}, gear_id=20)

	with pytest.raises(MalformedInput, match="row 14"):
		gmsf2midi.analyze.analyze_gmsf(data)


# ---------------------------------------------------------------------------
# Structural errors
# ---------------------------------------------------------------------------

def test_bad_magic_is_rejected (gmsf_bytes) -> None:

	"""Anything not starting with GMSF is refused."""

	data = b"MThd" + gmsf_bytes(1, 1, {})[4:]

	with pytest.raises(MalformedInput, match="magic"):
		gmsf2midi.analyze.analyze_gmsf(data)


def test_truncated_header_is_rejected () -> None:

	"""A header cut short fails instead of reading garbage."""

	with pytest.raises(MalformedInput, match="truncated header"):
		gmsf2midi.analyze.analyze_gmsf(b"GMSF\x01\x00\x78")


def test_truncated_grid_is_rejected (gmsf_bytes) -> None:

	"""Missing cells are reported with their grid coordinates."""

	data = gmsf_bytes(4, 2, {(3, 1): 1})[:-1]

	with pytest.raises(MalformedInput, match="column 3, row 1"):
		gmsf2midi.analyze.analyze_gmsf(data)


def test_truncated_gear_cell_is_rejected (gmsf_bytes) -> None:

	"""A gear cell needs all eleven bytes."""

	data = gmsf_bytes(1, 1, {(0, 0): ([(1, 0)], 64)}, gear_id=20)[:-2]

	with pytest.raises(MalformedInput, match="truncated gear"):
		gmsf2midi.analyze.analyze_gmsf(data)


def test_trailing_bytes_are_rejected (gmsf_bytes) -> None:

	"""Data after the grid points at a corrupt file, not a short song."""

	data = gmsf_bytes(2, 1, {(0, 0): 1}) + b"\x00\x00"

	with pytest.raises(MalformedInput, match="2 trailing bytes"):
		gmsf2midi.analyze.analyze_gmsf(data)


@pytest.mark.parametrize("bpm, width, height, message", [
	(0, 1, 1, "tempo"),
	(-5, 1, 1, "tempo"),
	(120, -1, 1, "width"),
	(120, 1, 15, "height"),
	(120, 1, -1, "height"),
])
def test_out_of_range_header_fields_are_rejected (bpm: int, width: int, height: int, message: str) -> None:

	"""Header values the grid cannot represent fail early."""

	data = b"GMSF" + struct.pack("<BBhhh", 1, 0, bpm, width, height)

	with pytest.raises(MalformedInput, match=message):
		gmsf2midi.analyze.analyze_gmsf(data)
