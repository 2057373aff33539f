"""Persistence of generated content to task output paths."""

from __future__ import annotations

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```[\w.+-]*[ \t]*\r?\n(.*?)```", re.DOTALL)


class OutputWriteError(RuntimeError):
    """Writing generated content to disk failed."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(f"Failed to write {path}: {message}")
        self.path = path


def write_output(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` as a whole file, creating parent directories."""

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as error:
        raise OutputWriteError(path, f"cannot create directory: {error}") from error
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as error:
        raise OutputWriteError(path, str(error)) from error
    logger.debug("Wrote %d chars to %s", len(content), path)


def extract_code_block(content: str) -> str:
    """Return the body of the first fenced code block, or the content unchanged."""

    match = _CODE_FENCE.search(content)
    if match is None:
        return content
    return match.group(1).strip() + "\n"
