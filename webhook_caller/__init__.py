"""Guarded outbound webhook caller."""

__version__ = "0.1.0"
