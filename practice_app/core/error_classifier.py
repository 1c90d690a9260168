"""Classification of AI provider failures.

Grading, mistake analysis and question generation all call an LLM provider.
When a call fails, the session needs to know one thing: can the student try
again? The classifier maps provider exceptions to a category, a severity and
that retryable flag, which the grading service passes on to the session and
the HTTP layer.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple


class ErrorCategory(Enum):
    """Categories of provider errors."""

    BILLING_QUOTA = "billing_quota"
    RATE_LIMIT = "rate_limit"
    AUTHENTICATION = "authentication"
    INVALID_REQUEST = "invalid_request"
    INVALID_RESPONSE = "invalid_response"  # provider answered, payload unusable
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"
    MODEL_ERROR = "model_error"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    CRITICAL = "critical"  # misconfiguration, grading is down for everyone
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class ClassifiedError:
    """A provider error with category, severity and retry guidance."""

    category: ErrorCategory
    severity: ErrorSeverity
    provider: str
    original_error: str
    message: str
    is_retryable: bool = False

    def __str__(self) -> str:
        return (
            f"[{self.severity.value.upper()}] {self.provider}: "
            f"{self.category.value} - {self.message}"
        )


# (category, severity, retryable, patterns, message template), checked in order
_RULES: List[Tuple[ErrorCategory, ErrorSeverity, bool, List[str], str]] = [
    (
        ErrorCategory.BILLING_QUOTA,
        ErrorSeverity.CRITICAL,
        False,
        [
            r"insufficient.*funds",
            r"quota.*exceeded",
            r"insufficient.*quota",
            r"credit.*balance",
            r"payment.*required",
            r"billing",
            r"402",
        ],
        "Billing or quota issue with {provider}. Check the account balance and limits.",
    ),
    (
        ErrorCategory.AUTHENTICATION,
        ErrorSeverity.CRITICAL,
        False,
        [
            r"invalid.*api.*key",
            r"api.*key.*not.*valid",
            r"api.*key.*expired",
            r"authentication.*failed",
            r"unauthorized",
            r"permission.*denied",
            r"401",
            r"403",
        ],
        "Authentication with {provider} failed. Verify the configured API key.",
    ),
    (
        ErrorCategory.RATE_LIMIT,
        ErrorSeverity.HIGH,
        True,
        [
            r"rate.*limit",
            r"too.*many.*requests",
            r"resource.*exhausted",
            r"throttl",
            r"429",
        ],
        "Rate limit reached for {provider}. Try again in a moment.",
    ),
    (
        ErrorCategory.MODEL_ERROR,
        ErrorSeverity.MEDIUM,
        False,
        [
            r"model.*not.*found",
            r"invalid.*model",
            r"model.*unavailable",
            r"model.*deprecated",
        ],
        "Model configuration issue with {provider}. Verify the model name.",
    ),
    (
        ErrorCategory.SERVER_ERROR,
        ErrorSeverity.MEDIUM,
        True,
        [
            r"internal.*server.*error",
            r"service.*unavailable",
            r"overloaded",
            r"50[0-9]",
            r"server.*error",
        ],
        "{provider} server error. This may be temporary.",
    ),
    (
        ErrorCategory.NETWORK_ERROR,
        ErrorSeverity.LOW,
        True,
        [
            r"connection.*error",
            r"connection.*refused",
            r"connection.*reset",
            r"timed?.?out",
            r"network.*error",
            r"dns",
        ],
        "Network issue while contacting {provider}. This may be temporary.",
    ),
    (
        ErrorCategory.INVALID_REQUEST,
        ErrorSeverity.MEDIUM,
        False,
        [r"invalid", r"bad.*request", r"400"],
        "Invalid request to {provider}. Check request parameters.",
    ),
]


class ErrorClassifier:
    """Classifies exceptions raised by LLM provider SDKs."""

    @staticmethod
    def classify_error(error: Exception, provider: str) -> ClassifiedError:
        """Classify a provider error.

        Args:
            error: The exception that was raised
            provider: Provider name (google, openai, anthropic)

        Returns:
            ClassifiedError; unmatched errors are UNKNOWN and not retryable
        """
        text = f"{type(error).__name__} {error}".lower()
        error_type = type(error).__name__

        for category, severity, retryable, patterns, template in _RULES:
            if ErrorClassifier._match_patterns(text, patterns):
                return ClassifiedError(
                    category=category,
                    severity=severity,
                    provider=provider,
                    original_error=error_type,
                    message=template.format(provider=provider),
                    is_retryable=retryable,
                )

        return ClassifiedError(
            category=ErrorCategory.UNKNOWN,
            severity=ErrorSeverity.MEDIUM,
            provider=provider,
            original_error=error_type,
            message=f"Unclassified error from {provider}: {str(error)[:100]}",
            is_retryable=False,
        )

    @staticmethod
    def invalid_response(provider: str, detail: str) -> ClassifiedError:
        """Classification for a reply that could not be parsed or validated."""
        return ClassifiedError(
            category=ErrorCategory.INVALID_RESPONSE,
            severity=ErrorSeverity.LOW,
            provider=provider,
            original_error="InvalidResponse",
            message=f"{provider} returned an unusable response: {detail[:200]}",
            is_retryable=True,
        )

    @staticmethod
    def _match_patterns(text: str, patterns: List[str]) -> bool:
        return any(re.search(pattern, text, re.IGNORECASE) for pattern in patterns)

    @staticmethod
    def should_alert(classified_error: ClassifiedError) -> bool:
        """Whether the error points at a configuration problem worth reporting."""
        if classified_error.severity == ErrorSeverity.CRITICAL:
            return True
        return (
            classified_error.severity == ErrorSeverity.HIGH
            and not classified_error.is_retryable
        )
