# src/gmsf2midi/errors.py
from __future__ import annotations


class GmsfError(Exception):
    """Base class for everything the converter raises on purpose."""


class MalformedInput(GmsfError):
    """The GMSF byte stream does not match the expected layout."""


class ConfigurationConflict(GmsfError):
    """A mapping breaks a channel rule (e.g. pitched notes on channel 9)."""


class EncodingOverflow(GmsfError):
    """A value does not fit the Standard MIDI File encoding."""


class ConfigError(GmsfError):
    """The mapping document could not be turned into a ConversionConfig."""
