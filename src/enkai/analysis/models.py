"""Domain models for codebase analysis."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class AnalyzeMode(str, Enum):
    """Kind of analysis requested from the model."""

    SUMMARY = "summary"
    ARCHITECT = "architect"
    REFACTOR = "refactor"
    SECURITY = "security"
    PERFORMANCE = "performance"
    REVIEW = "review"


@dataclass(slots=True)
class AnalysisConfig:
    """Inputs of one analysis run."""

    paths: tuple[Path, ...] = (Path("."),)
    mode: AnalyzeMode = AnalyzeMode.SUMMARY
    query: str = ""
    verbosity: int = 0
    include_pattern: str = ""
    exclude_pattern: str = ""
    use_pro: bool = False
    output_file: Path | None = None
    concurrency: int = 5


@dataclass(frozen=True, slots=True)
class FileInfo:
    """One scanned source file."""

    path: str
    content: str
    language: str
    size: int


@dataclass(slots=True)
class Issue:
    description: str
    severity: str = "medium"
    type: str = "issue"
    file: str = ""
    line: int | None = None


@dataclass(slots=True)
class Suggestion:
    description: str
    type: str = "suggestion"
    file: str = ""


@dataclass(slots=True)
class Review:
    """Review finding merged from chunked analysis."""

    content: str
    severity: str = "medium"
    category: str = ""
    file: str = ""


@dataclass(slots=True)
class AnalysisResult:
    """Parsed analysis output, either from one call or merged from chunks."""

    summary: str = ""
    issues: list[Issue] = field(default_factory=list)
    suggestions: list[Suggestion] = field(default_factory=list)
    reviews: list[Review] = field(default_factory=list)
