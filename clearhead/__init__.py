"""ClearHead - local-first voice journaling with an AI coach."""

__version__ = "1.0.0"
