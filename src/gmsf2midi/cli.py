from __future__ import annotations
import argparse, pathlib, sys
from .config import load_config
from .convert import convert_gmsf_detailed
from .errors import GmsfError, ConfigError
from .write import write_midi

def _out_path(in_path: pathlib.Path, out_dir: pathlib.Path | None) -> pathlib.Path:
    # song.gmsf -> song.gmsf.mid, so a stray song.mid is never overwritten
    target_dir = out_dir if out_dir is not None else in_path.parent
    return target_dir / (in_path.name + ".mid")

def convert_file(in_path: pathlib.Path, out_dir, cfg) -> bool:
    try:
        result = convert_gmsf_detailed(in_path.read_bytes(), cfg)
        out_path = _out_path(in_path, out_dir)
        write_midi(result.bundle, str(out_path))
    except (GmsfError, OSError) as exc:
        print(f"[cli] ERROR: {in_path}: {type(exc).__name__}: {exc} (skipping)", file=sys.stderr)
        return False

    names = ", ".join(f"{tr.channel}:{tr.name}" for tr in result.bundle.tracks)
    print(f"[cli] {in_path.name} -> {out_path}")
    print(f"[cli]   bpm={result.song.bpm} grid={result.song.width}x{result.song.height} "
          f"channels=[{names}] notes={result.bundle.note_count}")
    return True

def main(argv=None):
    p = argparse.ArgumentParser(description="GMSF -> MIDI converter")
    p.add_argument("inputs", nargs="+", help="GMSF files to convert")
    p.add_argument("--config", dest="config", default=None,
                   help="Mapping document, JSON or YAML (default: ./config.json)")
    p.add_argument("--out-dir", dest="out_dir", default=None,
                   help="Write .mid files here instead of next to each input")
    p.add_argument("--note-length", dest="note_length", choices=("gap", "step"), default=None,
                   help="gap: hold notes until the next one on the channel; step: one column each")
    p.add_argument("--ticks-per-unit", dest="ticks_per_unit", type=int, default=None,
                   help="MIDI ticks per GMSF grid column")

    args = p.parse_args(argv)

    try:
        cfg = load_config(
            pathlib.Path(args.config).expanduser() if args.config else None,
            overrides={"note_length": args.note_length, "ticks_per_unit": args.ticks_per_unit},
        )
    except ConfigError as exc:
        print(f"[cli] ERROR: {exc}", file=sys.stderr)
        return 1
    print(f"[cli] config: {len(cfg.note_map)} note ids, {len(cfg.channel_map)} channels")

    out_dir = None
    if args.out_dir:
        out_dir = pathlib.Path(args.out_dir).expanduser().resolve()
        out_dir.mkdir(parents=True, exist_ok=True)

    failed = 0
    for name in args.inputs:
        in_path = pathlib.Path(name).expanduser().resolve()
        if not convert_file(in_path, out_dir, cfg):
            failed += 1

    print(f"[cli] Done. converted={len(args.inputs) - failed} failed={failed}")
    return 2 if failed else 0

if __name__ == "__main__":
    sys.exit(main())
