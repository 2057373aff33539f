"""Bounded worker pool dispatching task batches."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from pathlib import Path

import httpx

from enkai.config import Settings, resolve_concurrency
from enkai.credentials import MissingCredentialError
from enkai.orchestrator.backend import GeminiClient, GenerationBackend
from enkai.orchestrator.competition import CompetitionEngine, VariantRunner
from enkai.orchestrator.models import (
    BatchReport,
    CompetitionResult,
    DispatchMode,
    ExecutionResult,
    Task,
    Variant,
)
from enkai.orchestrator.pool import run_bounded
from enkai.orchestrator.scoring import DEFAULT_POLICY, Scorer
from enkai.orchestrator.storage import OutputWriteError, extract_code_block, write_output
from enkai.orchestrator.variants import build_variants, single_variant

logger = logging.getLogger(__name__)


class TaskScheduler:
    """Runs a batch of tasks with at most ``max_concurrent`` in flight.

    In competition mode each task runs every variant and keeps the winner; in
    single mode each task makes one call with the first variant. Results are
    returned in submission order and per-task failures stay inside their
    result slot.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        backend: GenerationBackend,
        variants: Sequence[Variant],
        mode: DispatchMode = DispatchMode.COMPETITION,
        max_concurrent: int | None = None,
        scorer: Scorer = DEFAULT_POLICY.score,
        extract_code: bool = False,
        writer: Callable[[Path, str], None] = write_output,
        clock: Callable[[], float] = time.monotonic,
        on_progress: Callable[[str], None] | None = None,
    ) -> None:
        if not variants:
            raise ValueError("At least one variant is required.")
        self.mode = mode
        self.max_concurrent = resolve_concurrency(max_concurrent)
        self.variants = tuple(variants)
        self._extract_code = extract_code
        self._writer = writer
        self._clock = clock
        self._on_progress = on_progress or (lambda _msg: None)
        self._client: GeminiClient | None = None
        self._runner = VariantRunner(
            backend=backend,
            clock=clock,
            on_progress=self._on_progress,
        )
        self._engine = CompetitionEngine(runner=self._runner, scorer=scorer)

    @classmethod
    def from_settings(
        cls,
        *,
        settings: Settings,
        api_key: str | None,
        transport: httpx.BaseTransport | None = None,
        on_progress: Callable[[str], None] | None = None,
    ) -> TaskScheduler:
        """Build a scheduler backed by the Gemini client; fails before any work starts.

        The scheduler owns the client; close it with ``close()`` or a ``with`` block.
        """

        if not api_key or not api_key.strip():
            raise MissingCredentialError()
        dispatch = settings.dispatch
        generation = settings.generation
        client = GeminiClient.from_settings(generation, api_key=api_key, transport=transport)
        if dispatch.compete:
            variants = build_variants(
                models=dispatch.models,
                pro=dispatch.pro,
                default_model=generation.default_model,
                pro_model=generation.pro_model,
                max_output_tokens=generation.max_output_tokens,
            )
        else:
            single_model = dispatch.models[0] if dispatch.models else generation.default_model
            variants = [
                single_variant(
                    pro=dispatch.pro,
                    default_model=single_model,
                    pro_model=generation.pro_model,
                    max_output_tokens=generation.max_output_tokens,
                ),
            ]
        scheduler = cls(
            backend=client,
            variants=variants,
            mode=DispatchMode.COMPETITION if dispatch.compete else DispatchMode.SINGLE,
            max_concurrent=dispatch.concurrency,
            extract_code=dispatch.extract_code,
            on_progress=on_progress,
        )
        scheduler._client = client
        return scheduler

    def close(self) -> None:
        """Close the HTTP client created by ``from_settings``."""

        if self._client is not None:
            self._client.close()

    def __enter__(self) -> TaskScheduler:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def run(self, tasks: Sequence[Task]) -> BatchReport:
        """Execute every task and return results in the order given."""

        started = self._clock()
        logger.info(
            "Dispatching %d tasks (mode=%s, concurrency=%d, variants=%d)",
            len(tasks),
            self.mode.value,
            self.max_concurrent,
            len(self.variants),
        )
        unit = self._run_competition if self.mode is DispatchMode.COMPETITION else self._run_single
        results = run_bounded(
            tasks,
            unit,
            max_concurrent=self.max_concurrent,
            thread_name_prefix="enkai-task",
        )
        report = BatchReport(
            mode=self.mode,
            results=results,
            concurrency=self.max_concurrent,
            elapsed_seconds=self._clock() - started,
        )
        logger.info(
            "Batch finished: %d succeeded, %d failed", report.succeeded, report.failed
        )
        return report

    def _run_single(self, index: int, task: Task) -> ExecutionResult:
        self._on_progress(f"[{index + 1}] {task.file_name} started")
        prompt = self._runner.build_prompt(task)
        outcome = self._runner.run_variant(task, self.variants[0], prompt=prompt)
        if outcome.error is not None:
            self._on_progress(f"[{index + 1}] {task.file_name} failed: {outcome.error}")
            return ExecutionResult(
                task=task,
                error=f"generation failed: {outcome.error}",
                failure_class=outcome.failure_class,
                duration_seconds=outcome.duration_seconds,
                model=outcome.variant.model,
            )

        write_error = self._persist(task, outcome.content)
        if write_error is not None:
            self._on_progress(f"[{index + 1}] {task.file_name} failed: {write_error}")
            return ExecutionResult(
                task=task,
                content=outcome.content,
                error=write_error,
                duration_seconds=outcome.duration_seconds,
                usage=outcome.usage,
                model=outcome.variant.model,
            )

        self._on_progress(f"[{index + 1}] {task.file_name} done -> {task.output_path}")
        return ExecutionResult(
            task=task,
            content=outcome.content,
            duration_seconds=outcome.duration_seconds,
            usage=outcome.usage,
            model=outcome.variant.model,
        )

    def _run_competition(self, index: int, task: Task) -> CompetitionResult:
        self._on_progress(f"[{index + 1}] {task.file_name} competition started")
        result = self._engine.compete(task, self.variants)
        if result.best is None:
            self._on_progress(f"[{index + 1}] {task.file_name} failed: {result.reason}")
            return result

        result.error = self._persist(task, result.best.content)
        if result.error is not None:
            self._on_progress(f"[{index + 1}] {task.file_name} failed: {result.error}")
        else:
            self._on_progress(
                f"[{index + 1}] {task.file_name} winner {result.best.variant.name} "
                f"-> {task.output_path}",
            )
        return result

    def _persist(self, task: Task, content: str) -> str | None:
        body = extract_code_block(content) if self._extract_code else content
        try:
            self._writer(task.output_path, body)
        except OutputWriteError as error:
            logger.warning("%s", error)
            return str(error)
        except OSError as error:
            logger.warning("Failed to write %s: %s", task.output_path, error)
            return f"Failed to write {task.output_path}: {error}"
        return None
