"""
Request/response logging middleware.
"""
import logging
import re
import time
import uuid
from typing import Any, Callable, Dict

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from practice_app.core.logging_config import request_id_context

logger = logging.getLogger(__name__)

_SESSION_PATH = re.compile(r"/sessions/([^/]+)")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log each request and its response with a correlation id.

    The id is taken from the ``X-Request-ID`` header when the client sends
    one, stored in ``request_id_context`` for every log line emitted while the
    request runs, and echoed back on the response. Requests addressed to a
    practice session carry its id as ``session_id``. Bodies are never logged
    because grading requests carry answer-key images.
    """

    # Polled by load balancers; logged at DEBUG only
    QUIET_PATH_SUFFIXES = ("/health", "/ping")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request_id_context.set(request_id)

        started = time.perf_counter()
        path = request.url.path
        fields: Dict[str, Any] = {
            "method": request.method,
            "path": path,
            "client_host": request.client.host if request.client else "unknown",
        }
        match = _SESSION_PATH.search(path)
        if match:
            fields["session_id"] = match.group(1)

        quiet = path.endswith(self.QUIET_PATH_SUFFIXES)
        logger.log(logging.DEBUG if quiet else logging.INFO, "Incoming request", extra=fields)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        fields["status_code"] = response.status_code
        fields["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
        if response.status_code >= 500:
            logger.error("Server error response", extra=fields)
        elif response.status_code >= 400:
            logger.warning("Client error response", extra=fields)
        else:
            logger.log(logging.DEBUG if quiet else logging.INFO, "Request completed", extra=fields)

        return response
