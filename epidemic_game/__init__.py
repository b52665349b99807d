"""Turn-based epidemic decision game engine."""

__version__ = "0.1.0"
