"""
Standardized error response messages and builders.

User-facing messages for the practice API live here so endpoints stay
consistent and never leak implementation details.

Error Message Format Guidelines:
- Use sentence case (capitalize first letter only)
- End with a period for complete sentences
- Include relevant IDs in parentheses when helpful: "(ID: abc123)"
- Use "Please try again." for errors the student can retry

Usage:
    from practice_app.core.error_responses import ErrorMessages, raise_not_found

    if session is None:
        raise_not_found(ErrorMessages.session_not_found(session_id))
"""

from typing import NoReturn, Optional

from fastapi import HTTPException, status


class ErrorMessages:
    """Centralized error message constants and templates.

    Naming Convention:
    - Constants: SCREAMING_SNAKE_CASE for static messages
    - Methods: snake_case for templates that accept parameters
    """

    # ==========================================================================
    # Not Found Errors (404)
    # ==========================================================================
    RESULT_NOT_READY = "This session has not finished yet, so it has no result."

    # ==========================================================================
    # Conflict Errors (409)
    # ==========================================================================
    GRADING_IN_PROGRESS = (
        "AI grading is already running for this session. "
        "Please wait for it to finish."
    )
    SESSION_NOT_FINISHED = "Only finished sessions can be graded."
    TOO_MANY_SESSIONS = (
        "Too many practice sessions are open. "
        "Please close a finished session before starting a new one."
    )

    # ==========================================================================
    # Bad Request Errors (400)
    # ==========================================================================
    NO_QUESTIONS = "A practice session needs at least one question."
    TOPIC_REQUIRED = "Please enter a topic to generate questions."

    # ==========================================================================
    # Service Errors (502/503)
    # ==========================================================================
    AI_NOT_CONFIGURED = "AI grading is not configured on this server."
    AI_GRADING_FAILED = "AI grading failed. Your local result is safe. Please try again."
    AI_ANALYSIS_FAILED = "Mistake analysis failed. Please try again."
    AI_GENERATION_FAILED = "Practice test generation failed. Please try again."

    # ==========================================================================
    # Template Methods for Dynamic Messages
    # ==========================================================================
    @staticmethod
    def session_not_found(session_id: str) -> str:
        """Message when a session id is unknown or was closed."""
        return f"Practice session not found (ID: {session_id})."

    @staticmethod
    def invalid_answer_key(reason: str) -> str:
        """Message for an answer key that could not be parsed."""
        return f"Invalid answer key: {reason}"

    @staticmethod
    def invalid_session_config(reason: str) -> str:
        """Message for a session that cannot be created as requested."""
        return f"Invalid practice session: {reason}"


# ==============================================================================
# HTTPException Builder Functions
# ==============================================================================


def raise_bad_request(detail: str) -> NoReturn:
    """Raise a 400 Bad Request exception.

    Args:
        detail: User-facing error message

    Raises:
        HTTPException: 400 Bad Request
    """
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=detail,
    )


def raise_not_found(detail: str) -> NoReturn:
    """Raise a 404 Not Found exception.

    Args:
        detail: User-facing error message

    Raises:
        HTTPException: 404 Not Found
    """
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=detail,
    )


def raise_conflict(detail: str) -> NoReturn:
    """Raise a 409 Conflict exception.

    Use when the request conflicts with the session's current state.

    Args:
        detail: User-facing error message

    Raises:
        HTTPException: 409 Conflict
    """
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=detail,
    )


def raise_bad_gateway(detail: str, retryable: bool, category: Optional[str] = None) -> NoReturn:
    """Raise a 502 for a failed AI service call.

    The body tells the client whether a retry affordance should be shown.

    Args:
        detail: User-facing error message
        retryable: Whether the same request may succeed if repeated
        category: Optional error category for client-side handling

    Raises:
        HTTPException: 502 Bad Gateway
    """
    raise HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"message": detail, "retryable": retryable, "category": category},
    )


def raise_service_unavailable(detail: str) -> NoReturn:
    """Raise a 503 when a required collaborator is not configured.

    Args:
        detail: User-facing error message

    Raises:
        HTTPException: 503 Service Unavailable
    """
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=detail,
    )
