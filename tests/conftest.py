"""Shared test fixtures."""

from __future__ import annotations

import os
import threading
import time
from collections.abc import Callable
from pathlib import Path

import pytest

from enkai.orchestrator.backend import GenerationResponse
from enkai.orchestrator.models import SamplingConfig, TokenUsage

Handler = Callable[[str, SamplingConfig, str], "str | GenerationResponse | BaseException"]


class ScriptedBackend:
    """In-process generation backend driven by a handler function.

    Records every call and the peak number of calls in flight.
    """

    def __init__(self, handler: Handler, *, delay_seconds: float = 0.0) -> None:
        self._handler = handler
        self._delay_seconds = delay_seconds
        self._lock = threading.Lock()
        self.calls: list[tuple[str, SamplingConfig, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def generate(self, prompt: str, sampling: SamplingConfig, *, model: str) -> GenerationResponse:
        with self._lock:
            self.calls.append((model, sampling, prompt))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self._delay_seconds:
                time.sleep(self._delay_seconds)
            outcome = self._handler(prompt, sampling, model)
        finally:
            with self._lock:
                self.in_flight -= 1
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, GenerationResponse):
            return outcome
        return GenerationResponse(
            text=outcome,
            usage=TokenUsage(prompt_tokens=10, completion_tokens=20, total_tokens=30),
        )


@pytest.fixture()
def scripted_backend() -> Callable[..., ScriptedBackend]:
    """Factory for ``ScriptedBackend`` instances."""

    return ScriptedBackend


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path: Path) -> None:
    """Keep tests away from real credentials and user-level config."""

    for name in list(os.environ):
        if name.startswith("ENKAI_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("ENKAI_CONFIG_DIR", str(tmp_path / "enkai-config"))
