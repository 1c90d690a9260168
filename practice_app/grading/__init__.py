"""AI grading service and prompts."""

from .service import (
    AIGradingService,
    GradingRequest,
    GradingService,
    GradingServiceError,
)

__all__ = [
    "AIGradingService",
    "GradingRequest",
    "GradingService",
    "GradingServiceError",
]
