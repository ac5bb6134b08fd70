"""Synchronise deployed issues into the release tracking spreadsheet."""

from tracker.version import __version__

__all__ = ["__version__"]
