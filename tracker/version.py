"""Version information for the issue tracker sync."""

__version__ = "1.2.0"
