"""
ps4dbg CLI package.

Interactive and single-shot command line front-end for the debug agent
client in :mod:`python.ps4dbg`.  Use ``python -m python.ps4dbg_cli`` or
``python/ps4dbg-cli.py`` to launch it.
"""

from __future__ import annotations

from .cli import main

__all__ = ["main"]
__version__ = "0.1.0"
