"""flagwar: simultaneous-move capture-the-flag engine and move search."""

__version__ = "0.1.0"
