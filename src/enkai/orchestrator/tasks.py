"""Task sources: JSON strings, JSON files, and bundled presets."""

from __future__ import annotations

import json
from importlib import resources
from pathlib import Path

from enkai.orchestrator.models import Task

PRESETS_PACKAGE = "enkai.presets"


class TaskSourceError(ValueError):
    """Task source is missing or malformed."""


def load_tasks_from_json(text: str) -> list[Task]:
    """Parse a JSON array of ``{fileName, outputPath, prompt}`` objects."""

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as error:
        raise TaskSourceError(f"Failed to parse task JSON: {error}") from error
    if not isinstance(payload, list):
        raise TaskSourceError("Task JSON must be an array of task objects.")

    tasks: list[Task] = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            raise TaskSourceError(f"Task #{index} must be an object.")
        try:
            tasks.append(Task.from_payload(item))
        except ValueError as error:
            raise TaskSourceError(f"Task #{index}: {error}") from error
    return tasks


def load_tasks_from_file(path: Path) -> list[Task]:
    try:
        text = path.read_text("utf-8")
    except OSError as error:
        raise TaskSourceError(f"Failed to read task file {path}: {error}") from error
    return load_tasks_from_json(text)


def list_presets() -> list[str]:
    """Names of bundled presets, sorted."""

    root = resources.files(PRESETS_PACKAGE)
    return sorted(
        entry.name.removesuffix(".json")
        for entry in root.iterdir()
        if entry.name.endswith(".json")
    )


def get_preset(name: str) -> list[Task]:
    resource = resources.files(PRESETS_PACKAGE).joinpath(f"{name}.json")
    if not resource.is_file():
        raise TaskSourceError(
            f"Preset {name!r} not found. Available: {', '.join(list_presets())}",
        )
    return load_tasks_from_json(resource.read_text("utf-8"))


def resolve_task_source(source: str) -> list[Task]:
    """A ``*.json`` path is read from disk; anything else is a preset name."""

    if source.lower().endswith(".json"):
        return load_tasks_from_file(Path(source))
    return get_preset(source)
