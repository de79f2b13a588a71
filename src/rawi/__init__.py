"""Rawi: narrated, illustrated story generation pipeline."""

__version__ = "0.1.0"
