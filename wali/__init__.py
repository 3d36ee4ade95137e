"""Wali delivery order engine."""

__version__ = "0.1.0"
