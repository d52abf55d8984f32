import struct
import typing

import pytest

from gmsf2midi.mapping import ConversionConfig, ChannelSpec, Marker, PitchSpec, Accidental, Register


def build_gmsf (
	width: int,
	height: int,
	cells: typing.Dict[typing.Tuple[int, int], typing.Any],
	bpm: int = 120,
	gear_id: int = 0,
	version: int = 1,
) -> bytes:

	"""Assemble GMSF bytes. cells maps (column, row) to a note id, or to
	(slots, volume) for an audio-gear cell where slots is a list of
	(note id, row) pairs padded to five."""

	out = bytearray(b"GMSF")
	out += struct.pack("<BBhhh", version, gear_id, bpm, width, height)

	for y in range(height):
		for x in range(width):
			cell = cells.get((x, y), 0)
			if isinstance(cell, tuple):
				slots, volume = cell
				slots = list(slots) + [(0, 0)] * (5 - len(slots))
				out.append(gear_id)
				for inner_id, inner_row in slots:
					out += bytes([inner_id, inner_row])
				out.append(volume)
			else:
				out.append(cell)

	return bytes(out)


@pytest.fixture
def gmsf_bytes () -> typing.Callable[..., bytes]:

	"""Expose the GMSF builder to tests."""

	return build_gmsf


@pytest.fixture
def basic_config () -> ConversionConfig:

	"""A small mapping covering every kind of note mapping."""

	return ConversionConfig(
		note_map = {
			1: PitchSpec(channel=0),
			2: PitchSpec(channel=0, accidental=Accidental.SHARP),
			3: PitchSpec(channel=1, register=Register.LOW),
			4: Marker.DRUMS,
			5: Marker.REPEAT_BEGIN,
			6: Marker.REPEAT_END,
			7: Marker.OTHER,
			8: PitchSpec(channel=2, register=Register.HIGH, accidental=Accidental.FLAT),
		},
		channel_map = {
			0: ChannelSpec(patch=0, name="Piano"),
			1: ChannelSpec(patch=33, name="Bass"),
			9: ChannelSpec(patch=50, name="Drums"),
		},
	)
