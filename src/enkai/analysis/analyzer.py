"""Codebase analysis: scan, prompt, call the model, render a report."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from pathlib import Path

from enkai.analysis.chunked import ChunkedAnalysisRunner
from enkai.analysis.models import AnalysisConfig, AnalysisResult, AnalyzeMode, FileInfo
from enkai.analysis.parser import parse_response
from enkai.analysis.prompts import build_analysis_prompt
from enkai.analysis.report import render_report
from enkai.analysis.scanner import Scanner
from enkai.config import Settings
from enkai.orchestrator.backend import GenerationBackend, GenerationError
from enkai.orchestrator.models import SamplingConfig
from enkai.orchestrator.storage import OutputWriteError, write_output
from enkai.orchestrator.variants import NORMAL_MODE

logger = logging.getLogger(__name__)


class AnalysisError(RuntimeError):
    """Analysis could not produce a result."""


@dataclass(slots=True)
class AnalysisReport:
    """Rendered analysis plus the data it was built from."""

    lines: list[str]
    result: AnalysisResult
    file_count: int
    model: str
    chunked: bool
    saved_to: Path | None = None


class Analyzer:
    """Runs one analysis described by ``AnalysisConfig``."""

    def __init__(
        self,
        config: AnalysisConfig,
        *,
        backend: GenerationBackend,
        settings: Settings,
        scanner: Scanner | None = None,
        on_progress: Callable[[str], None] | None = None,
    ) -> None:
        self._config = config
        self._backend = backend
        self._settings = settings
        self._scanner = scanner or Scanner(
            settings=settings.analysis,
            include_pattern=config.include_pattern,
            exclude_pattern=config.exclude_pattern,
        )
        self._on_progress = on_progress or (lambda _msg: None)
        generation = settings.generation
        self._model = generation.pro_model if config.use_pro else generation.default_model

    def run(self) -> AnalysisReport:
        files = self._scanner.scan(list(self._config.paths))
        if not files:
            raise AnalysisError("No files to analyze were found.")
        self._on_progress(f"Found {len(files)} files")

        chunked = self._config.mode is AnalyzeMode.REVIEW and self._config.concurrency > 1
        result = self._analyze_chunked(files) if chunked else self._analyze_once(files)
        report = AnalysisReport(
            lines=render_report(result, mode=self._config.mode),
            result=result,
            file_count=len(files),
            model=self._model,
            chunked=chunked,
        )
        logger.info("Analyzed %d files with %s (chunked=%s)", len(files), self._model, chunked)
        if self._config.output_file is not None:
            try:
                write_output(self._config.output_file, "\n".join(report.lines) + "\n")
            except OutputWriteError as error:
                raise AnalysisError(str(error)) from error
            report.saved_to = self._config.output_file
        return report

    def _analyze_once(self, files: Sequence[FileInfo]) -> AnalysisResult:
        self._on_progress(f"Analyzing with {self._model}")
        try:
            response = self._backend.generate(
                self._build_prompt(files),
                self._sampling(),
                model=self._model,
            )
        except GenerationError as error:
            raise AnalysisError(f"Analysis request failed: {error}") from error
        return parse_response(response.text)

    def _analyze_chunked(self, files: Sequence[FileInfo]) -> AnalysisResult:
        runner = ChunkedAnalysisRunner(
            backend=self._backend,
            model=self._model,
            sampling=self._sampling(),
            prompt_builder=self._build_prompt,
            on_progress=self._on_progress,
        )
        return runner.analyze_parallel(files, self._config.concurrency)

    def _build_prompt(self, files: Sequence[FileInfo]) -> str:
        return build_analysis_prompt(
            files,
            mode=self._config.mode,
            query=self._config.query,
            verbosity=self._config.verbosity,
            max_files=self._settings.analysis.max_files_in_prompt,
        )

    def _sampling(self) -> SamplingConfig:
        max_tokens = self._settings.generation.max_output_tokens
        if max_tokens is None:
            return NORMAL_MODE.sampling
        return replace(NORMAL_MODE.sampling, max_output_tokens=max_tokens)
