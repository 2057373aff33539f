"""Concurrent variant execution and per-task winner selection."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from enkai.orchestrator.backend import GenerationBackend, GenerationError
from enkai.orchestrator.failure_classifier import classify_generation_failure
from enkai.orchestrator.models import (
    CompetitionResult,
    FailureClass,
    Task,
    Variant,
    VariantOutcome,
)
from enkai.orchestrator.pool import run_all
from enkai.orchestrator.prompts import compose_generation_prompt
from enkai.orchestrator.scoring import DEFAULT_POLICY, Scorer, select_best

logger = logging.getLogger(__name__)


class VariantRunner:
    """Runs every variant of one task concurrently and collects all outcomes."""

    def __init__(
        self,
        *,
        backend: GenerationBackend,
        prompt_builder: Callable[[str], str] = compose_generation_prompt,
        clock: Callable[[], float] = time.monotonic,
        on_progress: Callable[[str], None] | None = None,
    ) -> None:
        self._backend = backend
        self._prompt_builder = prompt_builder
        self._clock = clock
        self._on_progress = on_progress or (lambda _msg: None)

    def run(self, task: Task, variants: Sequence[Variant]) -> list[VariantOutcome]:
        """Return one outcome per variant, in declaration order."""

        prompt = self.build_prompt(task)
        return run_all(
            variants,
            lambda _index, variant: self.run_variant(task, variant, prompt=prompt),
        )

    def build_prompt(self, task: Task) -> str:
        return self._prompt_builder(task.prompt)

    def run_variant(self, task: Task, variant: Variant, *, prompt: str) -> VariantOutcome:
        """Perform exactly one generation call; failures become outcome values."""

        self._on_progress(f"[{task.file_name}] {variant.name} running")
        started = self._clock()
        try:
            response = self._backend.generate(prompt, variant.sampling, model=variant.model)
        except GenerationError as error:
            duration = self._clock() - started
            classification = classify_generation_failure(
                message=str(error),
                status_code=error.status_code,
                timed_out=error.timed_out,
            )
            logger.warning(
                "Variant %s failed for %s: %s (%s)",
                variant.name,
                task.file_name,
                error,
                classification.reason_code,
            )
            self._on_progress(f"[{task.file_name}] {variant.name} failed: {error}")
            return VariantOutcome(
                variant=variant,
                error=str(error),
                failure_class=classification.failure_class,
                duration_seconds=duration,
            )
        except Exception as error:  # noqa: BLE001
            duration = self._clock() - started
            logger.exception("Variant %s crashed for %s", variant.name, task.file_name)
            self._on_progress(f"[{task.file_name}] {variant.name} failed: {error}")
            return VariantOutcome(
                variant=variant,
                error=f"unexpected backend error: {error}",
                failure_class=FailureClass.BACKEND_NON_RETRYABLE,
                duration_seconds=duration,
            )

        duration = self._clock() - started
        self._on_progress(f"[{task.file_name}] {variant.name} done ({duration:.2f}s)")
        return VariantOutcome(
            variant=variant,
            content=response.text,
            duration_seconds=duration,
            usage=response.usage,
        )


class CompetitionEngine:
    """Combines the variant runner with winner selection."""

    def __init__(
        self,
        *,
        runner: VariantRunner,
        scorer: Scorer = DEFAULT_POLICY.score,
    ) -> None:
        self._runner = runner
        self._scorer = scorer

    def compete(self, task: Task, variants: Sequence[Variant]) -> CompetitionResult:
        """Run all variants for ``task`` and keep the best-scoring outcome."""

        if not variants:
            raise ValueError("At least one variant is required for a competition.")

        outcomes = self._runner.run(task, variants)
        selection = select_best(outcomes, self._scorer)
        if selection.best is None:
            logger.warning("All %d variants failed for %s", len(variants), task.file_name)
        else:
            logger.info("Winner for %s: %s", task.file_name, selection.reason)
        return CompetitionResult(
            task=task,
            outcomes=selection.outcomes,
            best=selection.best,
            reason=selection.reason,
        )
