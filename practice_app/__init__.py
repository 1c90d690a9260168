"""Timed practice sessions with local and AI-assisted grading."""

__version__ = "1.0.0"
