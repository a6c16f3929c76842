"""``storyteller dev`` — start the FastAPI backend for development.

Launches uvicorn with auto-reload as a subprocess. Ctrl-C shuts it down cleanly.

If a virtual environment (venv/ or .venv/) exists, it will be used automatically.
"""
from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path


def register(subparsers) -> None:
    p = subparsers.add_parser("dev", help="Start the FastAPI backend with auto-reload")
    p.add_argument("--port", type=int, default=8000, help="Backend port (default: 8000)")
    p.add_argument("--host", type=str, default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    p.add_argument("--no-reload", action="store_true", help="Disable uvicorn auto-reload")
    p.add_argument("--no-venv", action="store_true", help="Skip venv detection, use current Python")
    p.set_defaults(func=run)


def _find_venv_python() -> Path | None:
    """Find venv Python executable (venv/ or .venv/)."""
    root = Path.cwd()
    candidates = [
        root / "venv" / "Scripts" / "python.exe",  # Windows venv
        root / ".venv" / "Scripts" / "python.exe",  # Windows .venv
        root / "venv" / "bin" / "python",  # Unix venv
        root / ".venv" / "bin" / "python",  # Unix .venv
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def _is_in_venv() -> bool:
    """Check if current Python is running in a virtual environment."""
    return hasattr(sys, "real_prefix") or (
        hasattr(sys, "base_prefix") and sys.base_prefix != sys.prefix
    )


def _load_dotenv() -> None:
    """Load .env file into os.environ (simple key=value parser)."""
    env_file = Path.cwd() / ".env"
    if not env_file.exists():
        return
    for line in env_file.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        if not key:
            continue
        os.environ.setdefault(key, value.strip())


def build_backend_command(python_exe: str, host: str, port: int, reload: bool = True) -> list[str]:
    cmd = [python_exe, "-m", "uvicorn", "backend.main:app", "--host", host, "--port", str(port)]
    if reload:
        cmd.append("--reload")
    return cmd


def run(args) -> int:
    root = Path.cwd()
    _load_dotenv()

    python_exe = sys.executable
    if not args.no_venv:
        venv_python = _find_venv_python()
        if venv_python and not _is_in_venv():
            print(f"\n  Found virtual environment: {venv_python.parent.parent.name}/")
            python_exe = str(venv_python)
        elif not venv_python:
            print("  WARNING: No virtual environment found (checked venv/ and .venv/)")

    cmd = build_backend_command(python_exe, args.host, args.port, reload=not args.no_reload)
    print(f"\n  Starting backend on http://{args.host}:{args.port} ...")
    print(f"    API docs: http://{args.host}:{args.port}/docs")
    print("\n  Press Ctrl+C to stop.\n")

    proc = subprocess.Popen(cmd, cwd=str(root))
    try:
        return proc.wait()
    except KeyboardInterrupt:
        print("\n  Shutting down ...")
        if proc.poll() is None:
            proc.terminate()
        try:
            proc.wait(timeout=5)
        except subprocess.TimeoutExpired:
            proc.kill()
        print("  Stopped.")
        return 0
