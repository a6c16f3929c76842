"""Entry point for ``python -m storyteller <command>``.

Commands:
    choices  – generate (or validate) three choices for a story passage
    dev      – start the FastAPI backend with auto-reload
    doctor   – check Python, deps, vocabulary file, segment store
"""
from storyteller.cli import main

if __name__ == "__main__":
    main()
