"""
Command-line front end for the progression generator.

Subcommands:
    generate — print a progression (chord names and MIDI notes)
    export   — write a progression to a .mid file
    play     — preview a progression through the audio output

Usage:
    python -m scripts.progression_cli generate --key "A" --scale minor --template "vi-IV-I-V"
    python -m scripts.progression_cli export --key Eb --scale dorian --melody --out ./midi/
    python -m scripts.progression_cli play --key C --template "I-V-vi-IV" --loop --tempo 90

The same seed always reproduces the same progression, so ``generate`` can be
used to audition seeds before exporting one.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from core.config import DEFAULT_PLAYBACK_CONFIG
from core.midi import midi_to_note_name
from core.music_theory.harmony import RANDOM_TEMPLATE, generate_progression_from_template
from core.music_theory.rhythm import RHYTHM_PATTERNS
from core.music_theory.scales import SCALES, UnknownScaleError
from core.music_theory.types import ChordProgression
from core.playback.scheduler import IDLE_INDEX, PlaybackScheduler
from core.playback.session import PlaybackError, get_audio_session, reset_audio_session
from core.playback.synthesis import INSTRUMENTS, ToneSynth
from ingestion.midi_export import export_filename, progression_to_midi

logger = logging.getLogger(__name__)

# Release tail allowed to ring out after the last chord
_TAIL_S = 0.5


def _progression_from_args(args: argparse.Namespace) -> ChordProgression:
    return generate_progression_from_template(
        args.key,
        args.scale,
        args.template,
        length=args.length,
        add_extensions=args.extensions,
        generate_melody_line=args.melody,
        seed=args.seed,
    )


def _print_progression(progression: ChordProgression) -> None:
    print(f"{progression.key} {SCALES[progression.scale].name} @ {progression.tempo:.0f} BPM")
    for i, chord in enumerate(progression.chords, start=1):
        notes = " ".join(midi_to_note_name(n) for n in chord.midi_notes)
        print(f"  {i:>2}. {chord.name:<12} [{notes}]")
    if progression.melody is not None:
        print(f"  melody: {len(progression.melody.notes)} notes over {progression.melody.length:g} beats")


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def _cmd_generate(args: argparse.Namespace) -> int:
    _print_progression(_progression_from_args(args))
    return 0


def _cmd_export(args: argparse.Namespace) -> int:
    progression = _progression_from_args(args)
    out = Path(args.out)
    if out.is_dir() or args.out.endswith("/"):
        out.mkdir(parents=True, exist_ok=True)
        out = out / export_filename(progression)
    progression_to_midi(progression, output_path=out)
    _print_progression(progression)
    print(f"Wrote {out}")
    return 0


async def _play(progression: ChordProgression, args: argparse.Namespace) -> None:
    scheduler = PlaybackScheduler(ToneSynth(get_audio_session()))
    scheduler.set_tempo(args.tempo)
    scheduler.set_master_volume(args.volume)
    if args.loop:
        scheduler.toggle_loop()

    finished = asyncio.Event()
    scheduler.add_listener(lambda index: finished.set() if index == IDLE_INDEX else None)

    if not scheduler.play_progression(progression.chords, args.rhythm, args.instrument):
        return
    try:
        await finished.wait()
        await asyncio.sleep(_TAIL_S)
    finally:
        scheduler.stop_playback()


def _cmd_play(args: argparse.Namespace) -> int:
    progression = _progression_from_args(args)
    _print_progression(progression)
    try:
        get_audio_session().ensure_started()
    except PlaybackError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    try:
        asyncio.run(_play(progression, args))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        reset_audio_session()
    return 0


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _add_generation_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--key", default="C", help='Key name, e.g. "C", "F#/Gb", "Eb" (default: C).')
    parser.add_argument(
        "--scale",
        default="major",
        choices=sorted(SCALES),
        help="Scale (default: major).",
    )
    parser.add_argument(
        "--template",
        default=RANDOM_TEMPLATE,
        help='Progression template, e.g. "ii-V-I" (default: Random).',
    )
    parser.add_argument(
        "--length",
        type=int,
        default=4,
        metavar="N",
        help="Chord count for random progressions (default: 4).",
    )
    parser.add_argument(
        "--extensions",
        action="store_true",
        default=False,
        help="Colour chords with sevenths, ninths and extension tags.",
    )
    parser.add_argument(
        "--melody",
        action="store_true",
        default=False,
        help="Generate a melody over the chords.",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for reproducible output.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate, preview and export chord progressions.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    p_generate = sub.add_parser("generate", help="Print a progression.")
    _add_generation_args(p_generate)
    p_generate.set_defaults(func=_cmd_generate)

    p_export = sub.add_parser("export", help="Write a progression to a MIDI file.")
    _add_generation_args(p_export)
    p_export.add_argument(
        "--out",
        default=".",
        help="Output file, or a directory for progression_{key}_{scale}.mid (default: .).",
    )
    p_export.set_defaults(func=_cmd_export)

    p_play = sub.add_parser("play", help="Play a progression through the audio output.")
    _add_generation_args(p_play)
    p_play.add_argument(
        "--tempo",
        type=float,
        default=DEFAULT_PLAYBACK_CONFIG.default_tempo,
        help="Playback tempo in BPM (default: 120).",
    )
    p_play.add_argument(
        "--volume",
        type=float,
        default=DEFAULT_PLAYBACK_CONFIG.default_master_volume,
        help="Master volume 0–1 (default: 0.7).",
    )
    p_play.add_argument(
        "--rhythm",
        default=RHYTHM_PATTERNS[0].name,
        choices=[p.name for p in RHYTHM_PATTERNS],
        help="Rhythm pattern (default: Block Chord).",
    )
    p_play.add_argument(
        "--instrument",
        default=INSTRUMENTS[0].type,
        choices=[i.type for i in INSTRUMENTS],
        help="Instrument (default: sine).",
    )
    p_play.add_argument("--loop", action="store_true", help="Loop until interrupted.")
    p_play.set_defaults(func=_cmd_play)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s — %(message)s",
    )
    try:
        return args.func(args)
    except UnknownScaleError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
