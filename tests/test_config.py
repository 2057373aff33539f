from __future__ import annotations

import allure
import pytest

from enkai.config import (
    DEFAULT_BASE_URL,
    DEFAULT_CONCURRENCY,
    DEFAULT_MODEL,
    DEFAULT_PRO_MODEL,
    Settings,
    resolve_concurrency,
    split_csv,
)

pytestmark = [
    allure.epic("Configuration"),
    allure.feature("Settings"),
]


def test_from_env_defaults() -> None:
    settings = Settings.from_env()

    assert settings.generation.base_url == DEFAULT_BASE_URL
    assert settings.generation.default_model == DEFAULT_MODEL
    assert settings.generation.pro_model == DEFAULT_PRO_MODEL
    assert settings.generation.request_timeout_seconds == 120.0
    assert settings.generation.max_output_tokens is None
    assert settings.dispatch.concurrency == DEFAULT_CONCURRENCY
    assert settings.dispatch.compete is True
    assert settings.dispatch.models == ()
    assert settings.dispatch.extract_code is False
    assert settings.analysis.max_files_in_prompt == 10
    assert settings.log_level == "WARNING"
    settings.validate()


def test_from_env_reads_overrides(monkeypatch) -> None:
    monkeypatch.setenv("ENKAI_GEMINI_BASE_URL", "http://localhost:8080/v1/")
    monkeypatch.setenv("ENKAI_CONCURRENCY", "2")
    monkeypatch.setenv("ENKAI_NO_COMPETE", "yes")
    monkeypatch.setenv("ENKAI_MODELS", "model-a, model-b,model-a")
    monkeypatch.setenv("ENKAI_MAX_OUTPUT_TOKENS", "2048")
    monkeypatch.setenv("ENKAI_LOG_LEVEL", "debug")

    settings = Settings.from_env()

    assert settings.generation.base_url == "http://localhost:8080/v1"
    assert settings.generation.max_output_tokens == 2048
    assert settings.dispatch.concurrency == 2
    assert settings.dispatch.compete is False
    assert settings.dispatch.models == ("model-a", "model-b")
    assert settings.log_level == "DEBUG"
    settings.validate()


def test_invalid_boolean_env_is_rejected(monkeypatch) -> None:
    monkeypatch.setenv("ENKAI_PRO", "maybe")

    with pytest.raises(ValueError, match="ENKAI_PRO"):
        Settings.from_env()


@pytest.mark.parametrize(
    ("name", "value", "message"),
    [
        ("ENKAI_GEMINI_BASE_URL", "not-a-url", "Invalid ENKAI_GEMINI_BASE_URL"),
        ("ENKAI_REQUEST_TIMEOUT_SECONDS", "0", "ENKAI_REQUEST_TIMEOUT_SECONDS must be > 0"),
        ("ENKAI_MAX_OUTPUT_TOKENS", "-5", "ENKAI_MAX_OUTPUT_TOKENS"),
        ("ENKAI_LOG_LEVEL", "chatty", "Invalid ENKAI_LOG_LEVEL"),
    ],
)
def test_validate_rejects_bad_values(monkeypatch, name: str, value: str, message: str) -> None:
    monkeypatch.setenv(name, value)

    settings = Settings.from_env()

    with pytest.raises(ValueError, match=message):
        settings.validate()


@pytest.mark.parametrize(("value", "expected"), [(None, 5), (0, 5), (-3, 5), (1, 1), (12, 12)])
def test_resolve_concurrency_falls_back_to_default(value: int | None, expected: int) -> None:
    assert resolve_concurrency(value) == expected


def test_split_csv_trims_and_dedupes() -> None:
    assert split_csv(" a,,b , a ,c") == ("a", "b", "c")
    assert split_csv("") == ()
