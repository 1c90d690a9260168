"""
Graceful failure utilities.

Context manager for side effects that must not break the main flow. The
practice session uses it around every caller-supplied sink: a result logger
that raises must not leave a session stuck between Active and Finished.

Usage:
    from practice_app.core.graceful_failure import graceful_failure

    with graceful_failure("log result", logger, context={"session_id": sid}):
        sinks.log_result(result)

    with graceful_failure("save reattempt task", logger, log_level=logging.ERROR):
        sinks.save_task(task)
"""

import logging
from contextlib import contextmanager
from typing import Any, Generator, Optional


@contextmanager
def graceful_failure(
    operation_name: str,
    logger: logging.Logger,
    *,
    log_level: int = logging.WARNING,
    exc_info: bool = False,
    context: Optional[dict[str, Any]] = None,
) -> Generator[None, None, None]:
    """Run the wrapped block; on exception log it and continue.

    Args:
        operation_name: Human-readable name of the operation for logging
            (e.g., "log result", "notify session complete").
        logger: The logger instance to use for logging errors.
        log_level: Logging level for error messages. Defaults to WARNING.
        exc_info: Whether to include exception traceback in log.
        context: Optional fields added to the message and passed as ``extra``
            (e.g., {"session_id": "abc", "question_number": 3}).

    Example:
        >>> with graceful_failure("update weaknesses", logger):
        ...     sinks.update_weaknesses(["Kinematics"])
    """
    try:
        yield
    except Exception as e:
        if context:
            context_str = ", ".join(f"{k}={v}" for k, v in context.items())
            message = f"Failed to {operation_name} ({context_str}): {e}"
        else:
            message = f"Failed to {operation_name}: {e}"

        logger.log(log_level, message, exc_info=exc_info, extra=context)
