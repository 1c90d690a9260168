"""
Application configuration settings.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Literal, Optional, Self


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Practice Session API"
    APP_VERSION: str = "0.1.0"
    ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # API
    API_V1_PREFIX: str = "/v1"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Practice sessions
    DEFAULT_PER_QUESTION_SECONDS: int = Field(
        default=120,
        gt=0,
        description="Time allotted per question when the caller does not set a budget",
    )
    # Immediate feedback stays on screen this long before auto-advancing
    FEEDBACK_DELAY_WITH_KEY_SECONDS: float = 1.5
    FEEDBACK_DELAY_SECONDS: float = 1.0
    # Question-to-question transition; navigation requests are ignored meanwhile
    NAVIGATION_TRANSITION_SECONDS: float = 0.3
    COUNTDOWN_TICK_SECONDS: float = 1.0
    # Upper bound on live sessions kept in memory (oldest finished ones evicted first)
    MAX_LIVE_SESSIONS: int = Field(default=1000, gt=0)

    # AI grading
    AI_PROVIDER: Literal["google", "openai", "anthropic"] = "google"
    AI_MODEL: Optional[str] = Field(
        default=None,
        description="Model override for the selected provider (provider default if unset)",
    )
    GOOGLE_API_KEY: str = Field(default="", repr=False)
    OPENAI_API_KEY: str = Field(default="", repr=False)
    ANTHROPIC_API_KEY: str = Field(default="", repr=False)
    AI_MAX_OUTPUT_TOKENS: int = 4096

    # Sentry Error Tracking
    SENTRY_DSN: str = Field(
        default="",
        description="Sentry DSN for error tracking (leave empty to disable)",
    )
    SENTRY_TRACES_SAMPLE_RATE: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Sentry traces sample rate (0.0-1.0, 0.1 = 10% of transactions)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields from .env not defined in Settings
    )

    @model_validator(mode="after")
    def validate_session_delays(self) -> Self:
        """Delays may be zero (synchronous follow-up) but never negative."""
        delays = {
            "FEEDBACK_DELAY_WITH_KEY_SECONDS": self.FEEDBACK_DELAY_WITH_KEY_SECONDS,
            "FEEDBACK_DELAY_SECONDS": self.FEEDBACK_DELAY_SECONDS,
            "NAVIGATION_TRANSITION_SECONDS": self.NAVIGATION_TRANSITION_SECONDS,
        }
        negative = [name for name, value in delays.items() if value < 0]
        if negative:
            raise ValueError(f"Session delays cannot be negative: {negative}")
        if self.COUNTDOWN_TICK_SECONDS <= 0:
            raise ValueError("COUNTDOWN_TICK_SECONDS must be positive")
        return self

    @property
    def ai_api_key(self) -> str:
        """API key for the configured AI provider."""
        return {
            "google": self.GOOGLE_API_KEY,
            "openai": self.OPENAI_API_KEY,
            "anthropic": self.ANTHROPIC_API_KEY,
        }[self.AI_PROVIDER]


settings = Settings()
