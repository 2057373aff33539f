"""Runtime configuration for generation, dispatch, and analysis."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

DEFAULT_CONCURRENCY = 5
DEFAULT_MODEL = "gemini-2.0-flash"
DEFAULT_PRO_MODEL = "gemini-2.0-pro"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(slots=True)
class GenerationSettings:
    """Remote generation service settings."""

    base_url: str = DEFAULT_BASE_URL
    default_model: str = DEFAULT_MODEL
    pro_model: str = DEFAULT_PRO_MODEL
    request_timeout_seconds: float = 120.0
    connect_timeout_seconds: float = 10.0
    max_output_tokens: int | None = None


@dataclass(slots=True)
class DispatchSettings:
    """Task batch dispatch settings."""

    concurrency: int = DEFAULT_CONCURRENCY
    compete: bool = True
    pro: bool = False
    models: tuple[str, ...] = ()
    extract_code: bool = False


@dataclass(slots=True)
class AnalysisSettings:
    """Codebase analysis settings."""

    max_file_bytes: int = 10 * 1024 * 1024
    max_files_in_prompt: int = 10
    exclude_dirs: tuple[str, ...] = (
        "node_modules",
        ".git",
        "build",
        "dist",
        "vendor",
        ".next",
        "coverage",
    )
    exclude_globs: tuple[str, ...] = ("*.log", "*.lock")


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    generation: GenerationSettings = field(default_factory=GenerationSettings)
    dispatch: DispatchSettings = field(default_factory=DispatchSettings)
    analysis: AnalysisSettings = field(default_factory=AnalysisSettings)
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment with defaults suited for interactive use."""

        max_output_raw = os.getenv("ENKAI_MAX_OUTPUT_TOKENS", "").strip()
        return cls(
            generation=GenerationSettings(
                base_url=os.getenv("ENKAI_GEMINI_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
                default_model=os.getenv("ENKAI_DEFAULT_MODEL", DEFAULT_MODEL).strip(),
                pro_model=os.getenv("ENKAI_PRO_MODEL", DEFAULT_PRO_MODEL).strip(),
                request_timeout_seconds=float(
                    os.getenv("ENKAI_REQUEST_TIMEOUT_SECONDS", "120"),
                ),
                connect_timeout_seconds=float(
                    os.getenv("ENKAI_CONNECT_TIMEOUT_SECONDS", "10"),
                ),
                max_output_tokens=int(max_output_raw) if max_output_raw else None,
            ),
            dispatch=DispatchSettings(
                concurrency=int(os.getenv("ENKAI_CONCURRENCY", str(DEFAULT_CONCURRENCY))),
                compete=not _env_bool("ENKAI_NO_COMPETE", default=False),
                pro=_env_bool("ENKAI_PRO", default=False),
                models=split_csv(os.getenv("ENKAI_MODELS", "")),
                extract_code=_env_bool("ENKAI_EXTRACT_CODE", default=False),
            ),
            analysis=AnalysisSettings(
                max_file_bytes=int(
                    os.getenv("ENKAI_ANALYSIS_MAX_FILE_BYTES", str(10 * 1024 * 1024)),
                ),
                max_files_in_prompt=int(os.getenv("ENKAI_ANALYSIS_MAX_FILES_IN_PROMPT", "10")),
            ),
            log_level=os.getenv("ENKAI_LOG_LEVEL", "WARNING").strip().upper(),
        )

    def validate(self) -> None:
        """Raise configuration error for values the engine cannot work with."""

        parsed = urlparse(self.generation.base_url)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(
                "Invalid ENKAI_GEMINI_BASE_URL: "
                f"{self.generation.base_url!r}. Expected an absolute http(s) URL.",
            )
        if not self.generation.default_model:
            raise ValueError("ENKAI_DEFAULT_MODEL must not be empty.")
        if not self.generation.pro_model:
            raise ValueError("ENKAI_PRO_MODEL must not be empty.")
        if self.generation.request_timeout_seconds <= 0:
            raise ValueError("ENKAI_REQUEST_TIMEOUT_SECONDS must be > 0.")
        if self.generation.connect_timeout_seconds <= 0:
            raise ValueError("ENKAI_CONNECT_TIMEOUT_SECONDS must be > 0.")
        if self.generation.max_output_tokens is not None and self.generation.max_output_tokens <= 0:
            raise ValueError("ENKAI_MAX_OUTPUT_TOKENS must be a positive integer.")
        if self.analysis.max_file_bytes <= 0:
            raise ValueError("ENKAI_ANALYSIS_MAX_FILE_BYTES must be > 0.")
        if self.analysis.max_files_in_prompt <= 0:
            raise ValueError("ENKAI_ANALYSIS_MAX_FILES_IN_PROMPT must be > 0.")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"Invalid ENKAI_LOG_LEVEL: {self.log_level!r}. Use one of {LOG_LEVELS}.",
            )


def resolve_concurrency(value: int | None) -> int:
    """Clamp a requested concurrency to a usable positive pool size."""

    if value is None or value <= 0:
        return DEFAULT_CONCURRENCY
    return value


def split_csv(raw: str) -> tuple[str, ...]:
    values: list[str] = []
    seen: set[str] = set()
    for part in raw.split(","):
        normalized = part.strip()
        if not normalized or normalized in seen:
            continue
        seen.add(normalized)
        values.append(normalized)
    return tuple(values)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
