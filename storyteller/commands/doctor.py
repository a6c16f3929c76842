"""``storyteller doctor`` — environment health check.

Checks: Python version, venv active, deps installed, vocabulary file loads and
every guaranteed fallback passes the validity predicate, segment store writable.
"""
from __future__ import annotations

import importlib.util
import sys

# ANSI helpers (no-op on dumb terminals)
_COLOR = hasattr(sys.stdout, "isatty") and sys.stdout.isatty()

REQUIRED_MODULES = ["fastapi", "uvicorn", "pydantic", "yaml", "httpx"]


def _ok(msg: str) -> str:
    return f"  [OK]   {msg}" if not _COLOR else f"  \033[32m[OK]\033[0m   {msg}"


def _warn(msg: str) -> str:
    return f"  [WARN] {msg}" if not _COLOR else f"  \033[33m[WARN]\033[0m {msg}"


def _fail(msg: str) -> str:
    return f"  [FAIL] {msg}" if not _COLOR else f"  \033[31m[FAIL]\033[0m {msg}"


def _section(title: str) -> str:
    return f"\n{'=' * 60}\n  {title}\n{'=' * 60}"


def register(subparsers) -> None:
    p = subparsers.add_parser("doctor", help="Check environment health")
    p.set_defaults(func=run)


def _check_python() -> bool:
    v = sys.version_info
    ok = v >= (3, 10)
    line = f"Python {v.major}.{v.minor}.{v.micro}"
    print(_ok(line) if ok else _fail(f"{line} — need 3.10+"))
    return ok


def _check_venv() -> bool:
    in_venv = sys.prefix != sys.base_prefix
    print(_ok("Virtual environment active") if in_venv else _warn("No virtual environment detected"))
    return True  # warn only


def _check_deps() -> list[str]:
    missing = []
    for mod in REQUIRED_MODULES:
        try:
            if importlib.util.find_spec(mod) is None:
                missing.append(mod)
        except (ImportError, ValueError):
            missing.append(mod)
    if missing:
        print(_fail(f"Missing packages: {', '.join(missing)}"))
        print("         Run: pip install -e .")
    else:
        print(_ok(f"All {len(REQUIRED_MODULES)} required packages installed"))
    return missing


def _check_vocabulary() -> bool:
    from backend.app.core.choices.validator import check_choice
    from backend.app.core.choices.vocabulary import load_vocabulary
    from backend.app.core.error_handling import VocabularyError

    try:
        vocab = load_vocabulary()
    except VocabularyError as e:
        print(_fail(str(e)))
        return False
    print(_ok(f"Vocabulary v{vocab.version} loaded ({len(vocab.templates)} template genres)"))

    all_ok = True
    for text in vocab.guaranteed_fallbacks:
        reasons = check_choice(text, vocab=vocab)
        if reasons:
            print(_fail(f"Guaranteed fallback {text!r} fails validation: {', '.join(reasons)}"))
            all_ok = False
    if all_ok:
        print(_ok(f"All {len(vocab.guaranteed_fallbacks)} guaranteed fallbacks pass validation"))
    return all_ok


def _check_segment_store() -> bool:
    from backend.app.config import DEFAULT_DB_PATH
    from backend.app.db.segment_store import SegmentChoiceStore

    try:
        SegmentChoiceStore(DEFAULT_DB_PATH).check()
    except Exception as e:
        print(_fail(f"Segment store not usable at {DEFAULT_DB_PATH}: {e}"))
        return False
    print(_ok(f"Segment store: {DEFAULT_DB_PATH}"))
    return True


def run(args) -> int:
    print(_section("Storyteller Doctor"))
    errors = 0

    if not _check_python():
        errors += 1
    _check_venv()
    if _check_deps():
        errors += 1
        # Vocabulary/store checks import the backend, which needs the deps.
        print()
        print(_fail(f"{errors} issue(s) found — see above for fixes"))
        return 1
    if not _check_vocabulary():
        errors += 1
    if not _check_segment_store():
        errors += 1

    print()
    if errors == 0:
        print(_ok("All checks passed — ready to run!"))
        return 0
    print(_fail(f"{errors} issue(s) found — see above for fixes"))
    return 1
