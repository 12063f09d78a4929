"""Walnut health journal backend."""

__version__ = "0.1.0"
