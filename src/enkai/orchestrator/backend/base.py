"""Backend interface for remote text generation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from enkai.orchestrator.models import SamplingConfig, TokenUsage


class GenerationError(RuntimeError):
    """Generation call failure with diagnostics for classification."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        timed_out: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.timed_out = timed_out


@dataclass(slots=True)
class GenerationResponse:
    """Generated text plus optional usage telemetry."""

    text: str
    usage: TokenUsage | None = None


class GenerationBackend(Protocol):
    """Protocol implemented by generation service clients."""

    def generate(
        self,
        prompt: str,
        sampling: SamplingConfig,
        *,
        model: str,
    ) -> GenerationResponse:
        """Run one request/response generation call or raise ``GenerationError``."""
