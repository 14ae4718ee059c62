"""Module execution entrypoint for `python -m janggibot`."""

from __future__ import annotations

import sys

from janggibot.cli import main

if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
