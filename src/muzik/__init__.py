"""muzik - personal music collection manager."""

__version__ = "0.3.0"
