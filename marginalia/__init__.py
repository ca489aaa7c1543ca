"""Marginalia - threaded page annotations with live updates."""

__version__ = "0.1.0"
