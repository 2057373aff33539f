"""Parallel analysis of file chunks with all-or-nothing merging."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from enkai.analysis.models import AnalysisResult, FileInfo, Review
from enkai.analysis.parser import parse_response
from enkai.config import resolve_concurrency
from enkai.orchestrator.backend import GenerationBackend
from enkai.orchestrator.models import SamplingConfig
from enkai.orchestrator.pool import run_bounded

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ChunkAnalysisError(RuntimeError):
    """A chunk failed; the whole chunked analysis is abandoned."""

    def __init__(self, chunk_index: int, cause: BaseException) -> None:
        super().__init__(f"Chunk {chunk_index} analysis failed: {cause}")
        self.chunk_index = chunk_index
        self.cause = cause


@dataclass(slots=True)
class _ChunkOutcome:
    result: AnalysisResult | None = None
    error: BaseException | None = None


def split_into_chunks(items: Sequence[T], k: int) -> list[list[T]]:
    """Split ``items`` into ``min(k, len(items))`` contiguous non-empty chunks.

    Chunk sizes differ by at most one and earlier chunks take the extra items.
    """

    if not items:
        return []
    count = min(max(k, 1), len(items))
    base, extra = divmod(len(items), count)
    chunks: list[list[T]] = []
    start = 0
    for index in range(count):
        size = base + (1 if index < extra else 0)
        chunks.append(list(items[start : start + size]))
        start += size
    return chunks


def merge_chunk_results(results: Sequence[AnalysisResult]) -> AnalysisResult:
    merged = AnalysisResult()
    summaries: list[str] = []
    for result in results:
        merged.reviews.extend(
            Review(
                content=issue.description,
                severity=issue.severity,
                category=issue.type,
                file=issue.file,
            )
            for issue in result.issues
        )
        if result.summary:
            summaries.append(result.summary)
    merged.summary = "\n\n".join(summaries)
    return merged


class ChunkedAnalysisRunner:
    """Analyzes chunks of files concurrently and merges their findings."""

    def __init__(
        self,
        *,
        backend: GenerationBackend,
        model: str,
        sampling: SamplingConfig,
        prompt_builder: Callable[[Sequence[FileInfo]], str],
        on_progress: Callable[[str], None] | None = None,
    ) -> None:
        self._backend = backend
        self._model = model
        self._sampling = sampling
        self._prompt_builder = prompt_builder
        self._on_progress = on_progress or (lambda _msg: None)

    def analyze_parallel(
        self,
        items: Sequence[FileInfo],
        concurrency: int | None,
    ) -> AnalysisResult:
        """Analyze ``items`` split into ``concurrency`` chunks.

        Values <= 0 use the default concurrency. Raises ``ChunkAnalysisError``
        for the first failed chunk in chunk order; no partial result is returned.
        """

        limit = resolve_concurrency(concurrency)
        chunks = split_into_chunks(items, limit)
        self._on_progress(
            f"Analyzing {len(items)} files in {len(chunks)} chunks (concurrency: {limit})",
        )
        outcomes = run_bounded(
            chunks,
            self._analyze_chunk,
            max_concurrent=limit,
            thread_name_prefix="enkai-chunk",
        )
        for index, outcome in enumerate(outcomes):
            if outcome.error is not None:
                logger.warning("Chunk %d failed: %s", index, outcome.error)
                raise ChunkAnalysisError(index, outcome.error) from outcome.error
        return merge_chunk_results(
            [outcome.result for outcome in outcomes if outcome.result is not None],
        )

    def _analyze_chunk(self, index: int, chunk: Sequence[FileInfo]) -> _ChunkOutcome:
        prompt = self._prompt_builder(chunk)
        try:
            response = self._backend.generate(prompt, self._sampling, model=self._model)
        except Exception as error:  # noqa: BLE001
            return _ChunkOutcome(error=error)
        logger.debug("Chunk %d analyzed (%d files)", index, len(chunk))
        return _ChunkOutcome(result=parse_response(response.text))
