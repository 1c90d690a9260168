"""
Core module for configuration, the practice session and its utilities.

Note: session and registry modules are not imported at package level to avoid
circular imports with practice_app.grading (which uses core.error_classifier).
Import them directly: from practice_app.core.session import PracticeSession
"""
from .config import settings

__all__ = ["settings"]
