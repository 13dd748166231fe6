"""Interval frame sampling, scene analysis sessions, and scene exports."""

__version__ = "0.1.0"
