"""File-system scanning for analysis input."""

from __future__ import annotations

import fnmatch
import logging
import os
from collections.abc import Iterable, Sequence
from pathlib import Path

from enkai.analysis.models import FileInfo
from enkai.config import AnalysisSettings

logger = logging.getLogger(__name__)

_BINARY_SNIFF_BYTES = 512

_LANGUAGE_BY_EXTENSION = {
    ".go": "go",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".py": "python",
    ".java": "java",
    ".c": "c",
    ".cpp": "cpp",
    ".rs": "rust",
    ".rb": "ruby",
    ".php": "php",
    ".cs": "csharp",
    ".swift": "swift",
    ".kt": "kotlin",
    ".scala": "scala",
    ".r": "r",
    ".sql": "sql",
    ".sh": "shell",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".json": "json",
    ".xml": "xml",
    ".html": "html",
    ".css": "css",
    ".scss": "scss",
    ".md": "markdown",
}
_LANGUAGE_BY_NAME = {
    "Dockerfile": "dockerfile",
    "Makefile": "makefile",
}


class Scanner:
    """Walks input paths and returns readable text files in a stable order."""

    def __init__(
        self,
        *,
        settings: AnalysisSettings,
        include_pattern: str = "",
        exclude_pattern: str = "",
        gitignore_root: Path | None = None,
    ) -> None:
        self._settings = settings
        self._include = include_pattern.strip()
        patterns = list(settings.exclude_globs)
        patterns.extend(load_gitignore(gitignore_root or Path.cwd()))
        if exclude_pattern.strip():
            patterns.append(exclude_pattern.strip())
        self._exclude_dirs = set(settings.exclude_dirs)
        self._exclude_patterns = tuple(patterns)

    def scan(self, paths: Sequence[Path]) -> list[FileInfo]:
        files: list[FileInfo] = []
        for root in paths:
            if root.is_file():
                info = self._load(root)
                if info is not None:
                    files.append(info)
                continue
            for file_path in self._walk(root):
                relative = file_path.relative_to(root).as_posix()
                if not self._should_include(file_path.name, relative):
                    continue
                info = self._load(file_path)
                if info is not None:
                    files.append(info)
        logger.info("Scanned %d files from %d paths", len(files), len(paths))
        return files

    def _walk(self, root: Path) -> Iterable[Path]:
        for current, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(name for name in dirnames if not self._is_excluded_dir(name))
            for filename in sorted(filenames):
                yield Path(current) / filename

    def _is_excluded_dir(self, name: str) -> bool:
        if name in self._exclude_dirs:
            return True
        return any(fnmatch.fnmatch(name, pattern) for pattern in self._exclude_patterns)

    def _should_include(self, name: str, relative: str) -> bool:
        if any(fnmatch.fnmatch(name, pattern) for pattern in self._exclude_patterns):
            return False
        if not self._include:
            return True
        bare = self._include.removeprefix("**/")
        return (
            fnmatch.fnmatch(relative, self._include)
            or fnmatch.fnmatch(relative, bare)
            or fnmatch.fnmatch(name, bare)
        )

    def _load(self, path: Path) -> FileInfo | None:
        try:
            size = path.stat().st_size
            if size > self._settings.max_file_bytes:
                logger.debug("Skipping large file %s (%d bytes)", path, size)
                return None
            raw = path.read_bytes()
        except OSError as error:
            logger.debug("Skipping unreadable file %s: %s", path, error)
            return None
        if not is_text(raw[:_BINARY_SNIFF_BYTES]):
            return None
        return FileInfo(
            path=path.as_posix(),
            content=raw.decode("utf-8", errors="replace"),
            language=detect_language(path),
            size=size,
        )


def load_gitignore(root: Path) -> list[str]:
    """Non-comment patterns from ``root/.gitignore`` with slashes trimmed."""

    try:
        lines = (root / ".gitignore").read_text("utf-8").splitlines()
    except OSError:
        return []
    patterns: list[str] = []
    for line in lines:
        stripped = line.strip()
        if not stripped or stripped.startswith(("#", "!")):
            continue
        patterns.append(stripped.strip("/"))
    return [pattern for pattern in patterns if pattern]


def is_text(sample: bytes) -> bool:
    return b"\x00" not in sample


def detect_language(path: Path) -> str:
    language = _LANGUAGE_BY_EXTENSION.get(path.suffix.lower())
    if language is not None:
        return language
    by_name = _LANGUAGE_BY_NAME.get(path.name)
    if by_name is not None:
        return by_name
    if path.name.startswith("."):
        return "config"
    return "text"
