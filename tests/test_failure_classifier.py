from __future__ import annotations

import allure

from enkai.orchestrator.failure_classifier import classify_generation_failure
from enkai.orchestrator.models import FailureClass

pytestmark = [
    allure.epic("Generation"),
    allure.feature("Failure Classification"),
]


def test_timeout_wins_over_everything() -> None:
    classified = classify_generation_failure(
        message="quota exceeded",
        status_code=429,
        timed_out=True,
    )
    assert classified.failure_class == FailureClass.TIMEOUT
    assert classified.reason_code == "generation_timeout"


def test_auth_status_codes_map_to_access_or_auth() -> None:
    classified = classify_generation_failure(message="API error: status code 403", status_code=403)
    assert classified.failure_class == FailureClass.ACCESS_OR_AUTH
    assert classified.reason_code == "generation_access_or_auth"


def test_quota_message_prefers_billing_over_transient_status() -> None:
    classified = classify_generation_failure(
        message="API error: Resource has been exhausted (e.g. check quota). (code: 429)",
        status_code=429,
    )
    assert classified.failure_class == FailureClass.BILLING_OR_QUOTA
    assert classified.reason_code == "generation_billing_or_quota"


def test_invalid_key_message_maps_to_access_or_auth() -> None:
    classified = classify_generation_failure(
        message="API error: API key not valid. Please pass a valid API key. (code: 400)",
        status_code=400,
    )
    assert classified.failure_class == FailureClass.ACCESS_OR_AUTH


def test_unknown_model_maps_to_model_not_available() -> None:
    by_message = classify_generation_failure(
        message="models/gemini-9 is not found for API version v1beta",
        status_code=400,
    )
    by_status = classify_generation_failure(message="API error: status code 404", status_code=404)

    assert by_message.failure_class == FailureClass.MODEL_NOT_AVAILABLE
    assert by_status.failure_class == FailureClass.MODEL_NOT_AVAILABLE
    assert by_status.reason_code == "generation_model_not_available"


def test_rate_limit_and_server_errors_are_transient() -> None:
    rate_limited = classify_generation_failure(message="Too many requests", status_code=None)
    server_error = classify_generation_failure(
        message="API error: status code 503",
        status_code=503,
    )

    assert rate_limited.failure_class == FailureClass.BACKEND_TRANSIENT
    assert rate_limited.reason_code == "generation_rate_limit_transient"
    assert server_error.failure_class == FailureClass.BACKEND_TRANSIENT
    assert server_error.reason_code == "generation_backend_transient"


def test_empty_generation_result_is_empty_output() -> None:
    classified = classify_generation_failure(message="empty generation result", status_code=200)
    assert classified.failure_class == FailureClass.EMPTY_OUTPUT


def test_classifier_falls_back_to_non_retryable() -> None:
    classified = classify_generation_failure(message="API error: bad request", status_code=400)
    assert classified.failure_class == FailureClass.BACKEND_NON_RETRYABLE
    assert classified.reason_code == "generation_backend_non_retryable"
