"""Deterministic classification of generation failures for reporting."""

from __future__ import annotations

from dataclasses import dataclass

from enkai.orchestrator.models import FailureClass

_BILLING_OR_QUOTA_PATTERNS: tuple[str, ...] = (
    "quota",
    "resource_exhausted",
    "billing",
    "payment",
    "credits",
    "exceeded",
)
_ACCESS_OR_AUTH_PATTERNS: tuple[str, ...] = (
    "api key not valid",
    "invalid api key",
    "unauthorized",
    "forbidden",
    "permission denied",
    "permission_denied",
    "unauthenticated",
)
_MODEL_NOT_AVAILABLE_PATTERNS: tuple[str, ...] = (
    "model not found",
    "is not found for api version",
    "unknown model",
    "unsupported model",
    "not available in your region",
)
_RATE_LIMIT_TRANSIENT_PATTERNS: tuple[str, ...] = (
    "too many requests",
    "rate limit",
    "try again later",
    "please retry",
)
_GENERIC_TRANSIENT_PATTERNS: tuple[str, ...] = (
    "temporarily unavailable",
    "overloaded",
    "connection reset",
    "connection refused",
    "network error",
    "name resolution",
)
_TRANSIENT_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


@dataclass(slots=True)
class GenerationFailureClassification:
    """Normalized failure classification result."""

    failure_class: FailureClass
    reason_code: str


def classify_generation_failure(
    *,
    message: str,
    status_code: int | None = None,
    timed_out: bool = False,
) -> GenerationFailureClassification:
    """Classify one failed generation call into a stable failure class.

    A timeout wins over everything; message patterns win over generic
    status codes, except that 401 and 403 are always access failures.
    """

    if timed_out:
        return _classified(FailureClass.TIMEOUT, "generation_timeout")
    if status_code in {401, 403}:
        return _classified(FailureClass.ACCESS_OR_AUTH, "generation_access_or_auth")

    haystack = message.lower()
    for failure_class, reason_code, patterns in (
        (FailureClass.BILLING_OR_QUOTA, "generation_billing_or_quota", _BILLING_OR_QUOTA_PATTERNS),
        (FailureClass.ACCESS_OR_AUTH, "generation_access_or_auth", _ACCESS_OR_AUTH_PATTERNS),
        (
            FailureClass.MODEL_NOT_AVAILABLE,
            "generation_model_not_available",
            _MODEL_NOT_AVAILABLE_PATTERNS,
        ),
        (
            FailureClass.BACKEND_TRANSIENT,
            "generation_rate_limit_transient",
            _RATE_LIMIT_TRANSIENT_PATTERNS,
        ),
    ):
        if _matches(haystack, patterns):
            return _classified(failure_class, reason_code)

    if status_code == 404:
        return _classified(FailureClass.MODEL_NOT_AVAILABLE, "generation_model_not_available")
    if _matches(haystack, _GENERIC_TRANSIENT_PATTERNS) or status_code in _TRANSIENT_STATUS_CODES:
        return _classified(FailureClass.BACKEND_TRANSIENT, "generation_backend_transient")
    if "empty generation result" in haystack:
        return _classified(FailureClass.EMPTY_OUTPUT, "generation_empty_output")
    return _classified(FailureClass.BACKEND_NON_RETRYABLE, "generation_backend_non_retryable")


def _classified(failure_class: FailureClass, reason_code: str) -> GenerationFailureClassification:
    return GenerationFailureClassification(failure_class=failure_class, reason_code=reason_code)


def _matches(haystack: str, patterns: tuple[str, ...]) -> bool:
    return any(pattern in haystack for pattern in patterns)
