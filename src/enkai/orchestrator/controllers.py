"""Controllers for generation and credential CLI commands."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace

import httpx

from enkai.config import Settings
from enkai.credentials import (
    config_path,
    delete_stored_key,
    mask_key,
    require_api_key,
    resolve_api_key,
    store_key,
)
from enkai.orchestrator.models import (
    BatchReport,
    CompetitionResult,
    ExecutionResult,
    FailureClass,
    Task,
    TokenUsage,
    VariantOutcome,
)
from enkai.orchestrator.pricing import estimate_cost_usd
from enkai.orchestrator.scheduler import TaskScheduler
from enkai.orchestrator.tasks import list_presets, load_tasks_from_json, resolve_task_source


@dataclass(slots=True)
class DispatchOptions:
    """Root CLI options shared by generation commands."""

    concurrency: int | None = None
    no_compete: bool = False
    models: tuple[str, ...] = ()
    pro: bool = False
    api_key: str | None = None


@dataclass(slots=True)
class FromJsonCommand:
    """CLI input for a batch given as a JSON string."""

    options: DispatchOptions
    json_text: str


@dataclass(slots=True)
class FromTemplateCommand:
    """CLI input for a preset or JSON-file batch."""

    options: DispatchOptions
    source: str
    extract_code: bool = False


@dataclass(slots=True)
class ApiSetCommand:
    api_key: str


class GenerationCliController:
    """Loads tasks, runs the scheduler, and renders batch summaries."""

    def __init__(
        self,
        *,
        on_progress: Callable[[str], None] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._on_progress = on_progress
        self._transport = transport

    def from_json(self, command: FromJsonCommand) -> list[str]:
        tasks = load_tasks_from_json(command.json_text)
        return self._run(tasks, command.options, extract_code=None)

    def from_template(self, command: FromTemplateCommand) -> list[str]:
        tasks = resolve_task_source(command.source)
        return self._run(
            tasks,
            command.options,
            extract_code=True if command.extract_code else None,
        )

    def list_presets(self) -> list[str]:
        lines = ["Available presets:"]
        for name in list_presets():
            tasks = resolve_task_source(name)
            lines.append(f"  {name} ({len(tasks)} tasks)")
            lines.extend(f"    - {task.file_name} -> {task.output_path}" for task in tasks)
        return lines

    def _run(
        self,
        tasks: list[Task],
        options: DispatchOptions,
        *,
        extract_code: bool | None,
    ) -> list[str]:
        if not tasks:
            return ["No tasks to run."]
        settings = build_settings(options, extract_code=extract_code)
        with TaskScheduler.from_settings(
            settings=settings,
            api_key=require_api_key(options.api_key),
            transport=self._transport,
            on_progress=self._on_progress,
        ) as scheduler:
            report = scheduler.run(tasks)
        return render_batch_report(report)


class CredentialCliController:
    """Manages the stored Gemini API key."""

    def set_key(self, command: ApiSetCommand) -> list[str]:
        path = store_key(command.api_key)
        return [f"API key saved to {path}: {mask_key(command.api_key.strip())}"]

    def delete_key(self) -> list[str]:
        if delete_stored_key():
            return [f"Stored API key removed from {config_path()}."]
        return ["No stored API key found."]

    def status(self, explicit: str | None = None) -> list[str]:
        resolved = resolve_api_key(explicit)
        if resolved is None:
            return ["API key: not configured", f"Config file: {config_path()}"]
        return [
            f"API key: {mask_key(resolved.api_key)} (source: {resolved.source})",
            f"Config file: {config_path()}",
        ]


def build_settings(options: DispatchOptions, *, extract_code: bool | None = None) -> Settings:
    """Environment settings with CLI overrides applied, validated."""

    settings = Settings.from_env()
    dispatch = settings.dispatch
    overrides: dict[str, object] = {}
    if options.concurrency is not None:
        overrides["concurrency"] = options.concurrency
    if options.no_compete:
        overrides["compete"] = False
    if options.models:
        overrides["models"] = options.models
    if options.pro:
        overrides["pro"] = True
    if extract_code is not None:
        overrides["extract_code"] = extract_code
    settings = replace(settings, dispatch=replace(dispatch, **overrides))
    settings.validate()
    return settings


def render_batch_report(report: BatchReport) -> list[str]:
    lines = [
        "Batch summary: "
        f"tasks={len(report.results)} succeeded={report.succeeded} failed={report.failed} "
        f"mode={report.mode.value} concurrency={report.concurrency} "
        f"elapsed={report.elapsed_seconds:.2f}s",
    ]
    total_cost = 0.0
    priced = False
    for result in report.results:
        lines.append(_result_line(result))
        for model, usage in _usages(result):
            cost = estimate_cost_usd(model=model, usage=usage)
            if cost is not None:
                total_cost += cost
                priced = True
    if priced:
        lines.append(f"Estimated cost: ${total_cost:.6f}")
    return lines


def _result_line(result: ExecutionResult | CompetitionResult) -> str:
    task = result.task
    if isinstance(result, CompetitionResult):
        if result.best is None:
            breakdown = ", ".join(
                f"{outcome.variant.name}: {_failure_label(outcome)}"
                for outcome in result.outcomes
                if not outcome.eligible
            )
            return f"  [failed] {task.file_name}: {result.reason} ({breakdown})"
        if result.error is not None:
            return f"  [failed] {task.file_name}: {result.error}"
        return f"  [ok] {task.file_name} -> {task.output_path} | {result.reason}"
    if result.error is not None:
        suffix = f" [{result.failure_class.value}]" if result.failure_class is not None else ""
        return f"  [failed] {task.file_name}: {result.error}{suffix}"
    return f"  [ok] {task.file_name} -> {task.output_path} ({result.duration_seconds:.2f}s)"


def _failure_label(outcome: VariantOutcome) -> str:
    if outcome.failure_class is not None:
        return outcome.failure_class.value
    if outcome.error is None:
        return FailureClass.EMPTY_OUTPUT.value
    return "unclassified"


def _usages(result: ExecutionResult | CompetitionResult) -> list[tuple[str, TokenUsage]]:
    """Every billed call of a result, losing variants included."""

    if isinstance(result, CompetitionResult):
        return [
            (outcome.variant.model, outcome.usage)
            for outcome in result.outcomes
            if outcome.usage is not None
        ]
    if result.usage is None or result.model is None:
        return []
    return [(result.model, result.usage)]
