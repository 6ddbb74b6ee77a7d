"""Resolve YouTube videos to direct audio stream URLs."""

__version__ = "1.0.0"
