from __future__ import annotations

import random
import time
from pathlib import Path

import allure
import httpx
import pytest

from enkai.config import Settings
from enkai.credentials import MissingCredentialError
from enkai.orchestrator.backend import GeminiClient, GenerationError
from enkai.orchestrator.controllers import (
    DispatchOptions,
    FromJsonCommand,
    GenerationCliController,
)
from enkai.orchestrator.models import (
    CompetitionResult,
    DispatchMode,
    ExecutionResult,
    FailureClass,
    SamplingConfig,
    Task,
    Variant,
)
from enkai.orchestrator.scheduler import TaskScheduler
from enkai.orchestrator.storage import OutputWriteError
from enkai.orchestrator.variants import build_variants

pytestmark = [
    allure.epic("Dispatch"),
    allure.feature("Task Scheduler"),
]

COMPONENT = "export function Card() {\n  const title = 'card';\n  return title;\n}\n" * 4
SINGLE_VARIANT = [
    Variant(
        name="gemini-2.0-flash (normal)",
        model="gemini-2.0-flash",
        sampling=SamplingConfig(temperature=0.5, top_p=0.9, top_k=60),
    ),
]


def _tasks(tmp_path: Path, count: int) -> list[Task]:
    return [
        Task(
            file_name=f"Card{index}.tsx",
            output_path=tmp_path / "out" / f"Card{index}.tsx",
            prompt=f"Build card number {index}",
        )
        for index in range(count)
    ]


def test_sequential_when_concurrency_is_one(tmp_path: Path, scripted_backend) -> None:
    backend = scripted_backend(lambda *_: COMPONENT, delay_seconds=0.02)
    scheduler = TaskScheduler(
        backend=backend,
        variants=SINGLE_VARIANT,
        mode=DispatchMode.SINGLE,
        max_concurrent=1,
    )

    report = scheduler.run(_tasks(tmp_path, 3))

    assert backend.max_in_flight == 1
    assert report.succeeded == 3
    assert report.failed == 0
    assert report.concurrency == 1


def test_competition_tasks_respect_concurrency_limit(tmp_path: Path, scripted_backend) -> None:
    backend = scripted_backend(lambda *_: COMPONENT, delay_seconds=0.02)
    scheduler = TaskScheduler(backend=backend, variants=SINGLE_VARIANT, max_concurrent=1)

    report = scheduler.run(_tasks(tmp_path, 3))

    assert backend.max_in_flight == 1
    assert all(isinstance(result, CompetitionResult) for result in report.results)
    assert report.succeeded == 3


def test_results_keep_submission_order(tmp_path: Path, scripted_backend) -> None:
    rng = random.Random(11)
    delays = {
        (str(index), variant.model, variant.sampling.temperature): rng.uniform(0.0, 0.03)
        for index in range(8)
        for variant in build_variants()
    }

    def handler(prompt: str, sampling: SamplingConfig, model: str) -> str:
        number = prompt.rsplit(" ", 1)[-1]
        time.sleep(delays[(number, model, sampling.temperature)])
        return f"{COMPONENT}// {number}\n"

    scheduler = TaskScheduler(
        backend=scripted_backend(handler),
        variants=build_variants(),
        max_concurrent=4,
    )
    tasks = _tasks(tmp_path, 8)

    report = scheduler.run(tasks)

    assert [result.task for result in report.results] == tasks
    for index, result in enumerate(report.results):
        assert result.content.endswith(f"// {index}\n")
        assert len(result.outcomes) == 3


def test_winner_is_written_to_new_directory(tmp_path: Path, monkeypatch, scripted_backend) -> None:
    monkeypatch.chdir(tmp_path)
    task = Task(file_name="a.tsx", output_path=Path("./out/a.tsx"), prompt="Build a")
    scheduler = TaskScheduler(
        backend=scripted_backend(lambda *_: COMPONENT),
        variants=build_variants(),
    )

    report = scheduler.run([task])

    result = report.results[0]
    assert result.succeeded
    assert (tmp_path / "out").is_dir()
    assert (tmp_path / "out" / "a.tsx").read_text("utf-8") == result.best.content
    assert result.best.content == COMPONENT


def test_write_failure_is_isolated_to_its_task(tmp_path: Path, scripted_backend) -> None:
    written: dict[Path, str] = {}
    tasks = _tasks(tmp_path, 3)

    def writer(path: Path, content: str) -> None:
        if path == tasks[1].output_path:
            raise OutputWriteError(path, "disk full")
        written[path] = content

    scheduler = TaskScheduler(
        backend=scripted_backend(lambda *_: COMPONENT),
        variants=SINGLE_VARIANT,
        mode=DispatchMode.SINGLE,
        writer=writer,
    )

    report = scheduler.run(tasks)

    assert [result.succeeded for result in report.results] == [True, False, True]
    failed = report.results[1]
    assert isinstance(failed, ExecutionResult)
    assert failed.error == f"Failed to write {tasks[1].output_path}: disk full"
    assert set(written) == {tasks[0].output_path, tasks[2].output_path}
    assert report.failed == 1


def test_generation_failure_is_isolated_in_single_mode(tmp_path: Path, scripted_backend) -> None:
    def handler(prompt: str, _sampling: SamplingConfig, _model: str):
        if prompt.endswith("number 0"):
            return GenerationError("API error: status code 500", status_code=500)
        return COMPONENT

    scheduler = TaskScheduler(
        backend=scripted_backend(handler),
        variants=SINGLE_VARIANT,
        mode=DispatchMode.SINGLE,
    )

    report = scheduler.run(_tasks(tmp_path, 2))

    assert report.results[0].error == "generation failed: API error: status code 500"
    assert report.results[0].failure_class == FailureClass.BACKEND_TRANSIENT
    assert report.results[1].succeeded
    assert (tmp_path / "out" / "Card1.tsx").exists()
    assert not (tmp_path / "out" / "Card0.tsx").exists()


def test_all_variants_failing_writes_nothing(tmp_path: Path, scripted_backend) -> None:
    scheduler = TaskScheduler(
        backend=scripted_backend(lambda *_: GenerationError("API error: bad request")),
        variants=build_variants(),
    )

    report = scheduler.run(_tasks(tmp_path, 1))

    assert report.results[0].reason == "all variants failed"
    assert report.failed == 1
    assert not (tmp_path / "out").exists()


def test_extract_code_writes_fenced_block(tmp_path: Path, scripted_backend) -> None:
    fenced = f"Here you go:\n```tsx\n{COMPONENT}```\nEnjoy."
    scheduler = TaskScheduler(
        backend=scripted_backend(lambda *_: fenced),
        variants=SINGLE_VARIANT,
        extract_code=True,
    )

    scheduler.run(_tasks(tmp_path, 1))

    assert (tmp_path / "out" / "Card0.tsx").read_text("utf-8") == COMPONENT


def test_progress_reports_start_and_finish(tmp_path: Path, scripted_backend) -> None:
    messages: list[str] = []
    scheduler = TaskScheduler(
        backend=scripted_backend(lambda *_: COMPONENT),
        variants=SINGLE_VARIANT,
        mode=DispatchMode.SINGLE,
        on_progress=messages.append,
    )

    scheduler.run(_tasks(tmp_path, 1))

    assert "[1] Card0.tsx started" in messages
    assert any(message.startswith("[1] Card0.tsx done") for message in messages)


def test_scheduler_requires_variants(scripted_backend) -> None:
    with pytest.raises(ValueError, match="At least one variant"):
        TaskScheduler(backend=scripted_backend(lambda *_: "x"), variants=[])


def test_from_settings_fails_without_credential() -> None:
    with pytest.raises(MissingCredentialError, match="enkai api set"):
        TaskScheduler.from_settings(settings=Settings(), api_key="")


def test_from_settings_builds_variant_set(monkeypatch) -> None:
    monkeypatch.setenv("ENKAI_MODELS", "model-a,model-b")
    monkeypatch.setenv("ENKAI_CONCURRENCY", "0")
    transport = httpx.MockTransport(lambda _request: httpx.Response(500))

    scheduler = TaskScheduler.from_settings(
        settings=Settings.from_env(),
        api_key="key",
        transport=transport,
    )

    assert scheduler.mode is DispatchMode.COMPETITION
    assert [variant.name for variant in scheduler.variants] == ["model-a", "model-b"]
    assert scheduler.max_concurrent == 5


def test_from_settings_single_mode_uses_first_model(monkeypatch) -> None:
    monkeypatch.setenv("ENKAI_MODELS", "model-a,model-b")
    monkeypatch.setenv("ENKAI_NO_COMPETE", "1")

    scheduler = TaskScheduler.from_settings(settings=Settings.from_env(), api_key="key")

    assert scheduler.mode is DispatchMode.SINGLE
    assert [variant.model for variant in scheduler.variants] == ["model-a"]


@pytest.fixture()
def created_clients(monkeypatch) -> list[GeminiClient]:
    created: list[GeminiClient] = []
    build = GeminiClient.from_settings.__func__

    def capture(cls, *args, **kwargs) -> GeminiClient:
        client = build(cls, *args, **kwargs)
        created.append(client)
        return client

    monkeypatch.setattr(GeminiClient, "from_settings", classmethod(capture))
    return created


def test_scheduler_closes_its_client(created_clients) -> None:
    with TaskScheduler.from_settings(settings=Settings(), api_key="key") as scheduler:
        scheduler.run([])

    assert len(created_clients) == 1
    assert created_clients[0].closed


def test_close_leaves_injected_backend_alone(scripted_backend) -> None:
    scheduler = TaskScheduler(backend=scripted_backend(lambda *_: "x"), variants=SINGLE_VARIANT)

    scheduler.close()


def test_generation_controller_closes_client_after_batch(tmp_path: Path, created_clients) -> None:
    controller = GenerationCliController(
        transport=httpx.MockTransport(lambda _request: httpx.Response(500)),
    )
    payload = (
        '[{"fileName": "a.tsx", "outputPath": "%s", "prompt": "Build a"}]'
        % (tmp_path / "a.tsx").as_posix()
    )

    lines = controller.from_json(
        FromJsonCommand(options=DispatchOptions(api_key="key"), json_text=payload),
    )

    assert "failed=1" in lines[0]
    assert len(created_clients) == 1
    assert created_clients[0].closed
