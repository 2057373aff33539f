"""httpx-based client for the Gemini ``generateContent`` REST endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from enkai.config import DEFAULT_BASE_URL, GenerationSettings
from enkai.orchestrator.backend.base import GenerationError, GenerationResponse
from enkai.orchestrator.models import SamplingConfig, TokenUsage

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 120.0
DEFAULT_CONNECT_TIMEOUT_SECONDS = 10.0


class GeminiClient:
    """Synchronous Gemini API client; one HTTP request per ``generate`` call.

    The underlying ``httpx.Client`` is shared across worker threads, so one
    instance serves a whole batch.
    """

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        connect_timeout_seconds: float = DEFAULT_CONNECT_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not api_key.strip():
            raise ValueError("Gemini API key must not be empty.")
        self._base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout_seconds, connect=connect_timeout_seconds),
            headers={
                "Content-Type": "application/json",
                "x-goog-api-key": api_key.strip(),
            },
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: GenerationSettings,
        *,
        api_key: str,
        transport: httpx.BaseTransport | None = None,
    ) -> GeminiClient:
        return cls(
            api_key=api_key,
            base_url=settings.base_url,
            timeout_seconds=settings.request_timeout_seconds,
            connect_timeout_seconds=settings.connect_timeout_seconds,
            transport=transport,
        )

    def generate(
        self,
        prompt: str,
        sampling: SamplingConfig,
        *,
        model: str,
    ) -> GenerationResponse:
        """Send one prompt with the given sampling config and return the first candidate."""

        url = f"{self._base_url}/models/{model}:generateContent"
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": sampling.to_payload(),
        }
        try:
            response = self._client.post(url, json=body)
        except httpx.TimeoutException as error:
            logger.warning("Timeout calling %s", model)
            raise GenerationError(f"request timed out: {error}", timed_out=True) from error
        except httpx.HTTPError as error:
            logger.warning("HTTP error calling %s: %s", model, error)
            raise GenerationError(f"request failed: {error}") from error

        if not response.is_success:
            raise GenerationError(
                _error_message(response),
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as error:
            raise GenerationError(
                f"failed to parse response: {error}",
                status_code=response.status_code,
            ) from error

        text = _first_candidate_text(payload)
        if text is None:
            raise GenerationError("empty generation result", status_code=response.status_code)
        return GenerationResponse(text=text, usage=_parse_usage(payload))

    @property
    def closed(self) -> bool:
        return self._client.is_closed

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> GeminiClient:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            code = error.get("code", response.status_code)
            return f"API error: {error['message']} (code: {code})"
    return f"API error: status code {response.status_code}"


def _first_candidate_text(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return None
    content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list) or not parts:
        return None
    text = parts[0].get("text") if isinstance(parts[0], dict) else None
    return text if isinstance(text, str) else None


def _parse_usage(payload: dict[str, Any]) -> TokenUsage | None:
    raw = payload.get("usageMetadata")
    if not isinstance(raw, dict):
        return None
    return TokenUsage(
        prompt_tokens=_as_int(raw.get("promptTokenCount")),
        completion_tokens=_as_int(raw.get("candidatesTokenCount")),
        total_tokens=_as_int(raw.get("totalTokenCount")),
    )


def _as_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    return None
