#!/usr/bin/env python3
"""Entry point for the ps4dbg command line client."""

from python.ps4dbg_cli import main


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
