"""Dividend manager for checkpointed security tokens."""

__version__ = "0.1.0"

__all__ = ["__version__"]
