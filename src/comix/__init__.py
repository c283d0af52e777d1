"""Local index and transcript search for xkcd comics."""

__version__ = "0.1.0"
