"""Module entrypoint for running Scriptvoice as ``python -m scriptvoice``."""

from __future__ import annotations

from scriptvoice.cli import main


if __name__ == "__main__":
    main()
