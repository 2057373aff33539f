"""Controller for the ``analyze`` CLI command."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path

import httpx

from enkai.analysis.analyzer import Analyzer
from enkai.analysis.models import AnalysisConfig, AnalyzeMode
from enkai.config import Settings, resolve_concurrency
from enkai.credentials import require_api_key
from enkai.orchestrator.backend import GeminiClient


@dataclass(slots=True)
class AnalyzeCommand:
    """CLI input for codebase analysis."""

    query: str
    paths: tuple[Path, ...]
    mode: str | None
    verbosity: int
    include_pattern: str
    exclude_pattern: str
    output_file: Path | None
    concurrency: int | None
    pro: bool
    api_key: str | None


def resolve_mode(mode: str | None, query: str) -> AnalyzeMode:
    """Explicit mode wins; a bare query means a free-form review."""

    if mode:
        return AnalyzeMode(mode)
    if query.strip():
        return AnalyzeMode.REVIEW
    return AnalyzeMode.SUMMARY


def split_query_and_paths(
    query: str,
    paths: tuple[Path, ...],
) -> tuple[str, tuple[Path, ...]]:
    """A leading argument naming an existing path is a path, not a query."""

    query = query.strip()
    if query and Path(query).exists():
        return "", (Path(query), *paths)
    return query, paths


class AnalysisCliController:
    """Runs one analysis and returns the report lines."""

    def __init__(
        self,
        *,
        on_progress: Callable[[str], None] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._on_progress = on_progress
        self._transport = transport

    def analyze(self, command: AnalyzeCommand) -> list[str]:
        settings = Settings.from_env()
        if command.concurrency is not None:
            settings = replace(
                settings,
                dispatch=replace(settings.dispatch, concurrency=command.concurrency),
            )
        settings.validate()
        query, paths = split_query_and_paths(command.query, command.paths)
        config = AnalysisConfig(
            paths=paths or (Path("."),),
            mode=resolve_mode(command.mode, query),
            query=query,
            verbosity=command.verbosity,
            include_pattern=command.include_pattern,
            exclude_pattern=command.exclude_pattern,
            use_pro=command.pro or settings.dispatch.pro,
            output_file=command.output_file,
            concurrency=resolve_concurrency(settings.dispatch.concurrency),
        )
        with GeminiClient.from_settings(
            settings.generation,
            api_key=require_api_key(command.api_key),
            transport=self._transport,
        ) as client:
            report = Analyzer(
                config,
                backend=client,
                settings=settings,
                on_progress=self._on_progress,
            ).run()

        lines = [
            f"Analyzed {report.file_count} files with {report.model} "
            f"(mode={config.mode.value}, chunked={'yes' if report.chunked else 'no'})",
            "",
            *report.lines,
        ]
        if report.saved_to is not None:
            lines.extend(["", f"Report saved: {report.saved_to}"])
        return lines
