"""Command line entry point (``rowsync`` / ``python -m rowsync.cli``)."""

from .__main__ import main

__all__ = ["main"]
