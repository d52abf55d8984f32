# src/gmsf2midi/config.py
from __future__ import annotations
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Optional
import copy
import json
import yaml

from .errors import ConfigError
from .mapping import (
    Accidental, ChannelSpec, ConversionConfig, Marker, NoteMapping, PitchSpec, Register,
)

# Package root: .../src/gmsf2midi
PKG_ROOT = Path(__file__).resolve().parent
DEFAULT_CFG_PATH = PKG_ROOT / "config.default.yaml"
USER_CFG_PATH = Path("config.json")

# Spellings seen in mapping documents -> canonical key
_KEY_ALIASES = {
    "midi_track_map": "midi_track_map",
    "midi_channel_map": "midi_track_map",
    "gmsf_note_map": "gmsf_note_map",
    "gmsf_sheet_map": "gmsf_note_map",
}
_SETTINGS = ("ticks_per_beat", "ticks_per_unit", "velocity", "note_length", "final_note_units")

def _load_document(path: Path) -> Dict[str, Any]:
    # PyYAML rejects some valid JSON (tab indentation), so .json goes through json
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read {path}: {exc}") from exc
    try:
        if path.suffix.lower() == ".json":
            doc = json.loads(text)
        else:
            doc = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"cannot parse {path}: {exc}") from exc
    if doc is None:
        return {}
    if not isinstance(doc, dict):
        raise ConfigError(f"{path}: top level must be a mapping, got {type(doc).__name__}")
    return doc

def _deep_merge(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(a)
    for k, v in (b or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = copy.deepcopy(v)
    return out

def _normalize_keys(doc: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for k, v in doc.items():
        key = str(k).replace("-", "_")
        key = _KEY_ALIASES.get(key, key)
        if key in out and isinstance(out[key], dict) and isinstance(v, dict):
            out[key] = _deep_merge(out[key], v)
        else:
            out[key] = v
    return out

def _parse_int_key(key, what: str) -> int:
    """'0x1A', '26' and 26 all mean 26."""
    try:
        return int(key, 0) if isinstance(key, str) else int(key)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{what} key {key!r} is not an integer") from exc

def _int_in_range(value, lo: int, hi: int, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not (lo <= value <= hi):
        raise ConfigError(f"{what} must be an integer {lo}-{hi}, got {value!r}")
    return value

def _parse_accidental(value, what: str) -> Accidental:
    if value is None:
        return Accidental.NATURAL
    for acc in Accidental:
        if str(value).lower() == acc.value.lower():
            return acc
    raise ConfigError(f"{what}: unknown accidental {value!r}")

def _parse_register(tag: str) -> Optional[Register]:
    for reg in Register:
        if tag == reg.value:
            return reg
    return None

def _parse_marker(tag: str) -> Optional[Marker]:
    for m in Marker:
        if tag == m.value:
            return m
    return None

def _pitch_spec(register: Register, args, what: str) -> PitchSpec:
    if isinstance(args, dict):
        channel, accidental = args.get("channel"), args.get("accidental")
    elif isinstance(args, (list, tuple)) and len(args) in (1, 2):
        channel = args[0]
        accidental = args[1] if len(args) == 2 else None
    else:
        raise ConfigError(f"{what}: {register.value} expects [channel, accidental], got {args!r}")
    return PitchSpec(
        channel=_int_in_range(channel, 0, 15, f"{what} channel"),
        accidental=_parse_accidental(accidental, what),
        register=register,
    )

def parse_note_mapping(raw, what: str = "note mapping") -> NoteMapping:
    """
    Accepted shapes:
      "Drums" | "RepeatBegin" | "RepeatEnd" | "Other"
      {"Note": [0, "Natural"]}  (also LowNote / HighNote)
      {"type": "LowNote", "channel": 1, "accidental": "Sharp"}
    """
    if isinstance(raw, str):
        marker = _parse_marker(raw)
        if marker is not None:
            return marker
        raise ConfigError(f"{what}: unknown mapping {raw!r}")

    if isinstance(raw, dict) and "type" in raw:
        tag = str(raw["type"])
        register = _parse_register(tag)
        if register is not None:
            return _pitch_spec(register, raw, what)
        marker = _parse_marker(tag)
        if marker is not None:
            return marker
        raise ConfigError(f"{what}: unknown type {tag!r}")

    if isinstance(raw, dict) and len(raw) == 1:
        (tag, args), = raw.items()
        register = _parse_register(str(tag))
        if register is not None:
            return _pitch_spec(register, args, what)
        marker = _parse_marker(str(tag))
        if marker is not None and not args:
            return marker

    raise ConfigError(f"{what}: cannot interpret {raw!r}")

def parse_channel_spec(raw, what: str = "channel") -> ChannelSpec:
    if isinstance(raw, int) and not isinstance(raw, bool):
        return ChannelSpec(patch=_int_in_range(raw, 0, 127, f"{what} patch"))
    if not isinstance(raw, dict):
        raise ConfigError(f"{what}: expected {{patch, name}}, got {raw!r}")
    return ChannelSpec(
        patch=_int_in_range(raw.get("patch", 0), 0, 127, f"{what} patch"),
        name=str(raw.get("name") or ""),
    )

def config_from_dict(doc: Dict[str, Any]) -> ConversionConfig:
    """Validate a deserialized mapping document into an immutable config."""
    doc = _normalize_keys(doc or {})

    note_map: Dict[int, NoteMapping] = {}
    for key, raw in (doc.get("gmsf_note_map") or {}).items():
        note_id = _int_in_range(_parse_int_key(key, "gmsf-note-map"), 1, 255, "note id")
        note_map[note_id] = parse_note_mapping(raw, f"note id {note_id}")

    channel_map: Dict[int, ChannelSpec] = {}
    for key, raw in (doc.get("midi_track_map") or {}).items():
        channel = _int_in_range(_parse_int_key(key, "midi-track-map"), 0, 15, "MIDI channel")
        channel_map[channel] = parse_channel_spec(raw, f"channel {channel}")

    settings = {k: doc[k] for k in _SETTINGS if k in doc}
    if "ticks_per_beat" in settings:
        _int_in_range(settings["ticks_per_beat"], 1, 0x7FFF, "ticks_per_beat")
    if "ticks_per_unit" in settings:
        _int_in_range(settings["ticks_per_unit"], 1, 0x7FFF, "ticks_per_unit")
    if "velocity" in settings:
        _int_in_range(settings["velocity"], 1, 127, "velocity")
    if "final_note_units" in settings:
        _int_in_range(settings["final_note_units"], 1, 0x7FFF, "final_note_units")
    if "note_length" in settings and settings["note_length"] not in ("gap", "step"):
        raise ConfigError(f"note_length must be 'gap' or 'step', got {settings['note_length']!r}")

    return ConversionConfig(
        note_map=MappingProxyType(note_map),
        channel_map=MappingProxyType(channel_map),
        **settings,
    )

def load_config(
    user_path: Optional[Path] = None,
    default_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> ConversionConfig:
    """
    Load the packaged defaults, merge the user mapping document (JSON or YAML)
    and optional overrides on top, and validate the result.
    The user document must exist: without it nothing would map.
    """
    dpath = Path(default_path) if default_path else DEFAULT_CFG_PATH
    upath = Path(user_path) if user_path else USER_CFG_PATH

    if not upath.exists():
        raise ConfigError(f"config not found: {upath}")

    defaults = _normalize_keys(_load_document(dpath)) if dpath.exists() else {}
    user = _normalize_keys(_load_document(upath))
    cfg = _deep_merge(defaults, user)
    cfg = _deep_merge(cfg, {k: v for k, v in (overrides or {}).items() if v is not None})
    return config_from_dict(cfg)
