"""``storyteller choices`` — generate or validate story choices from the command line."""
from __future__ import annotations

import json
import random
import sys
from pathlib import Path


def register(subparsers) -> None:
    p = subparsers.add_parser("choices", help="Generate three choices for a story passage")
    p.add_argument("text", nargs="?", help="Story text (use --file or '-' for stdin)")
    p.add_argument("--file", type=str, help="Read story text from a file")
    p.add_argument("--genre", type=str, help="Genre label (e.g. fantasy, fairy-tale, animals)")
    p.add_argument("--tone", type=str, help="Tone label (e.g. dark, whimsical, mysterious)")
    p.add_argument("--seed", type=int, help="Random seed for reproducible output")
    p.add_argument("--debug", action="store_true", help="Include scoring diagnostics in the output")
    p.add_argument(
        "--validate",
        nargs=3,
        metavar="CHOICE",
        help="Validate these three choices against the passage instead of generating",
    )
    p.set_defaults(func=run)


def _read_text(args) -> str | None:
    if args.file:
        path = Path(args.file)
        if not path.exists():
            print(f"  ERROR: File not found: {path}", file=sys.stderr)
            return None
        return path.read_text(encoding="utf-8")
    if args.text == "-":
        return sys.stdin.read()
    return args.text or ""


def run(args) -> int:
    text = _read_text(args)
    if text is None:
        return 1

    from backend.app.core.choices.pipeline import generate_choices
    from backend.app.core.choices.validator import validate_choice_set
    from backend.app.core.error_handling import VocabularyError

    try:
        if args.validate:
            report = validate_choice_set(text, list(args.validate))
            print(json.dumps(report.model_dump(), indent=2))
            return 0 if report.valid else 2

        rng = random.Random(args.seed) if args.seed is not None else None
        result = generate_choices(text, args.genre, args.tone, rng=rng, debug=args.debug)
    except VocabularyError as e:
        print(f"  ERROR: {e}", file=sys.stderr)
        print("         Run: storyteller doctor", file=sys.stderr)
        return 1

    out: dict = {"choices": result.choices}
    if result.diagnostics is not None:
        out["diagnostics"] = result.diagnostics.model_dump()
    print(json.dumps(out, indent=2))
    return 0
