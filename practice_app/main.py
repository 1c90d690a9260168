"""
Main FastAPI application.
"""
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import sentry_sdk
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from starlette.exceptions import HTTPException as StarletteHTTPException

from practice_app.api.v1.api import api_router
from practice_app.core.config import settings
from practice_app.core.logging_config import setup_logging
from practice_app.core.registry import SessionRegistry
from practice_app.middleware import RequestLoggingMiddleware

setup_logging()

logger = logging.getLogger(__name__)


def init_sentry(
    dsn: Optional[str],
    traces_sample_rate: float,
    environment: str,
    release: str,
) -> bool:
    """
    Initialize Sentry error tracking.

    Returns:
        True if Sentry was initialized, False when no DSN is configured
    """
    if not dsn:
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        traces_sample_rate=traces_sample_rate,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ],
        send_default_pii=False,
    )
    logger.info(
        f"Sentry initialized for environment '{environment}' "
        f"with {traces_sample_rate * 100:.0f}% trace sampling"
    )
    return True


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Set up error tracking and the session registry; stop live session timers on exit."""
    init_sentry(
        dsn=settings.SENTRY_DSN,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        environment=settings.ENV,
        release=settings.APP_VERSION,
    )
    if getattr(app.state, "registry", None) is None:
        app.state.registry = SessionRegistry.from_settings(settings)
    logger.info("Practice session registry initialized")

    yield

    closed = app.state.registry.close_all()
    logger.info(f"Shutting down; discarded {closed} live practice sessions")


tags_metadata = [
    {
        "name": "health",
        "description": "Liveness and readiness probes",
    },
    {
        "name": "practice",
        "description": "Timed practice sessions, local grading and AI-assisted grading",
    },
]


def create_application() -> FastAPI:
    """Build the app. Tests call this to get an instance with a fresh lifespan."""
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        lifespan=lifespan,
        description=(
            "**Practice Session API** - timed question-answering sessions.\n\n"
            "This API provides:\n"
            "* Countdown-timed sessions with per-question timing\n"
            "* Immediate feedback against an answer key\n"
            "* Local grading (+4/-1/0, composite-exam marking)\n"
            "* AI-assisted grading, mistake analysis and practice-test generation\n"
        ),
        docs_url=f"{settings.API_V1_PREFIX}/docs",
        redoc_url=f"{settings.API_V1_PREFIX}/redoc",
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
        openapi_tags=tags_metadata,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )

    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code >= 500:
            sentry_sdk.capture_exception(exc)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        # Flatten pydantic error objects, whose ctx may hold exceptions that are not JSON-safe
        errors = [
            {
                "loc": list(error.get("loc", [])),
                "msg": str(error.get("msg", "")),
                "type": str(error.get("type", "")),
            }
            for error in exc.errors()
        ]
        logger.info(
            f"Request validation failed: {len(errors)} errors",
            extra={"path": str(request.url.path), "method": request.method},
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": errors},
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        # The error_id ties the client-visible reply to the log line and Sentry event
        error_id = str(uuid.uuid4())
        logger.exception(
            f"Unhandled exception [error_id={error_id}]: {exc}",
            extra={"error_id": error_id},
        )
        sentry_sdk.capture_exception(exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error",
                "error_id": error_id,
            },
        )

    @app.get("/")
    async def root():
        return {
            "message": f"{settings.APP_NAME} is running",
            "version": settings.APP_VERSION,
            "docs": f"{settings.API_V1_PREFIX}/docs",
        }

    return app


app = create_application()
