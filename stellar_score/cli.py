"""Command line interface for Stellar Score.

Modification summary
--------------------
* A star can be supplied either as a JSON file (``--star-json``) holding one
  catalogue record, or field by field with ``--id/--ra/--dec/--mag``.
* ``--settings-file`` loads composition settings; ``--no-evolve`` and
  ``--strategy`` override individual values for a single run.
* Output directories are created automatically; ``OSError`` while writing is
  logged and reported with a non-zero exit code.

Example
-------
Running ``python -m stellar_score --id sirius --ra 101.29 --dec -16.72 \
    --mag -1.46 --dist 2.64 --spec A1V --temp 9940 --seed 42 --midi sirius.mid``
writes a MIDI rendering of Sirius for seed ``42`` and prints nothing else.
Without ``--json`` or ``--midi`` a one-line summary of the score is printed.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from .midi_io import create_midi_file, write_score_json
from .note_utils import midi_to_note
from .score import generate_score
from .settings import MELODY_STRATEGIES, load_settings

__all__ = ["build_parser", "run_cli", "main"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stellar-score",
        description="Generate a deterministic ambient score from a star's parameters.",
    )
    parser.add_argument("--star-json", type=str, help="JSON file containing one star record.")
    parser.add_argument("--id", type=str, help="Star identifier.")
    parser.add_argument("--ra", type=float, help="Right ascension in degrees.")
    parser.add_argument("--dec", type=float, help="Declination in degrees.")
    parser.add_argument("--mag", type=float, help="Apparent magnitude.")
    parser.add_argument("--dist", type=float, help="Distance in parsecs.")
    parser.add_argument("--spec", type=str, help="Spectral class (e.g. A1V).")
    parser.add_argument("--temp", type=float, help="Effective temperature in kelvin.")
    parser.add_argument("--seed", type=int, help="Generation seed; derived from the star when omitted.")
    parser.add_argument("--settings-file", type=str, help="Path to a JSON settings file.")
    parser.add_argument("--no-evolve", dest="evolve", action="store_false", default=None, help="Skip genetic refinement of the melody.")
    parser.add_argument("--strategy", choices=MELODY_STRATEGIES, help="Melody generator to use.")
    parser.add_argument("--json", dest="json_path", type=str, help="Write the score as JSON to this path.")
    parser.add_argument("--midi", dest="midi_path", type=str, help="Write the score as a MIDI file to this path.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def _star_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    """Return the star mapping described by ``args``.

    Raises ``ValueError`` when neither a JSON file nor the four required
    fields are provided.
    """

    if args.star_json:
        with open(args.star_json, "r", encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError("star JSON must contain a single object")
        return data

    missing = [name for name in ("id", "ra", "dec", "mag") if getattr(args, name) is None]
    if missing:
        raise ValueError(
            "Provide --star-json or all of --id, --ra, --dec and --mag "
            f"(missing: {', '.join('--' + m for m in missing)})"
        )
    star = {"id": args.id, "ra": args.ra, "dec": args.dec, "mag": args.mag}
    for name in ("dist", "spec", "temp"):
        value = getattr(args, name)
        if value is not None:
            star[name] = value
    return star


def _summary(score) -> str:
    config = score.config
    return (
        f"{midi_to_note(config.base_note)} {config.scale.name}, {config.tempo:.1f} BPM, "
        f"{config.emotion}, {len(score.chord_progression)} chords, "
        f"{len(score.voices)} voices, {len(score.events)} events (seed {score.seed})"
    )


def run_cli(argv: Optional[List[str]] = None) -> None:
    """Parse ``argv`` and generate a score.

    Invalid input is logged and terminates the process with exit status 1.
    """

    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        star = _star_from_args(args)
    except (OSError, json.JSONDecodeError) as exc:
        logging.error("Could not read star record: %s", exc)
        sys.exit(1)
    except ValueError as exc:
        logging.error(str(exc))
        sys.exit(1)

    settings_path = Path(args.settings_file).expanduser() if args.settings_file else None
    try:
        settings = load_settings(settings_path)
        if args.evolve is not None:
            settings = replace(settings, evolve=args.evolve)
        if args.strategy:
            settings = replace(settings, melody_strategy=args.strategy)
        score = generate_score(star, seed=args.seed, settings=settings)
    except ValueError as exc:
        logging.error(str(exc))
        sys.exit(1)

    try:
        if args.json_path:
            write_score_json(score, args.json_path)
            logging.info("Score written to %s", args.json_path)
        if args.midi_path:
            create_midi_file(score, args.midi_path)
    except OSError as exc:
        logging.error("Could not write output: %s", exc)
        sys.exit(1)

    if not args.json_path and not args.midi_path:
        print(_summary(score))


def main() -> None:
    """Console entry point."""

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    run_cli()
