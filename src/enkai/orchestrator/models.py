"""Domain models for task dispatch and variant competition."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

ALL_VARIANTS_FAILED = "all variants failed"


class DispatchMode(str, Enum):
    """How each task of a batch is executed."""

    SINGLE = "single"
    COMPETITION = "competition"


class VariantLabel(str, Enum):
    """Declared character of a variant, used for winner justification."""

    BALANCED = "balanced"
    STRICT = "strict"
    CREATIVE = "creative"


class FailureClass(str, Enum):
    """Normalized failure classes for generation errors."""

    TIMEOUT = "timeout"
    BACKEND_TRANSIENT = "backend_transient"
    BACKEND_NON_RETRYABLE = "backend_non_retryable"
    BILLING_OR_QUOTA = "billing_or_quota"
    ACCESS_OR_AUTH = "access_or_auth"
    MODEL_NOT_AVAILABLE = "model_not_available"
    EMPTY_OUTPUT = "empty_output"


@dataclass(frozen=True, slots=True)
class Task:
    """One generation request paired with its output destination."""

    file_name: str
    output_path: Path
    prompt: str

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Task:
        """Build a task from its JSON wire form (``fileName``/``outputPath``/``prompt``)."""

        values: dict[str, str] = {}
        for key in ("fileName", "outputPath", "prompt"):
            value = payload.get(key)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"Task field {key!r} must be a non-empty string.")
            values[key] = value
        return cls(
            file_name=values["fileName"].strip(),
            output_path=Path(values["outputPath"].strip()),
            prompt=values["prompt"],
        )

    def to_payload(self) -> dict[str, str]:
        return {
            "fileName": self.file_name,
            "outputPath": str(self.output_path),
            "prompt": self.prompt,
        }


@dataclass(frozen=True, slots=True)
class SamplingConfig:
    """Sampling parameters sent with one generation request."""

    temperature: float
    top_p: float
    top_k: int
    max_output_tokens: int | None = None

    def to_payload(self) -> dict[str, float | int]:
        payload: dict[str, float | int] = {
            "temperature": self.temperature,
            "topP": self.top_p,
            "topK": self.top_k,
        }
        if self.max_output_tokens is not None:
            payload["maxOutputTokens"] = self.max_output_tokens
        return payload


@dataclass(frozen=True, slots=True)
class Variant:
    """One generation strategy competing for a task."""

    name: str
    model: str
    sampling: SamplingConfig
    label: VariantLabel = VariantLabel.BALANCED


@dataclass(frozen=True, slots=True)
class TokenUsage:
    """Token counts reported by the generation service."""

    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None


@dataclass(frozen=True, slots=True)
class VariantOutcome:
    """Result of running one variant against one task."""

    variant: Variant
    content: str = ""
    error: str | None = None
    failure_class: FailureClass | None = None
    duration_seconds: float = 0.0
    score: float | None = None
    usage: TokenUsage | None = None

    @property
    def eligible(self) -> bool:
        """Whether the outcome can compete: no error and non-empty content."""

        return self.error is None and self.content != ""


@dataclass(slots=True)
class CompetitionResult:
    """All variant outcomes for one task plus the selected winner."""

    task: Task
    outcomes: list[VariantOutcome]
    best: VariantOutcome | None
    reason: str
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.best is not None and self.error is None

    @property
    def content(self) -> str:
        return self.best.content if self.best is not None else ""


@dataclass(slots=True)
class ExecutionResult:
    """Single-variant execution result for one task."""

    task: Task
    content: str = ""
    error: str | None = None
    failure_class: FailureClass | None = None
    model: str | None = None
    duration_seconds: float = 0.0
    usage: TokenUsage | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class BatchReport:
    """Ordered batch results with aggregate counters for CLI reporting."""

    mode: DispatchMode
    results: list[ExecutionResult] | list[CompetitionResult] = field(default_factory=list)
    concurrency: int = 0
    elapsed_seconds: float = 0.0

    @property
    def succeeded(self) -> int:
        return sum(1 for result in self.results if result.succeeded)

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded
