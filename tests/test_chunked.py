from __future__ import annotations

import allure
import pytest

from enkai.analysis.chunked import (
    ChunkAnalysisError,
    ChunkedAnalysisRunner,
    merge_chunk_results,
    split_into_chunks,
)
from enkai.analysis.models import AnalysisResult, FileInfo, Issue
from enkai.orchestrator.backend import GenerationError
from enkai.orchestrator.models import SamplingConfig

pytestmark = [
    allure.epic("Analysis"),
    allure.feature("Chunked Runner"),
]

SAMPLING = SamplingConfig(temperature=0.5, top_p=0.9, top_k=60)


def _files(count: int) -> list[FileInfo]:
    return [
        FileInfo(path=f"src/f{index}.py", content=f"x = {index}\n", language="python", size=6)
        for index in range(count)
    ]


def _prompt(files) -> str:
    return "|".join(item.path for item in files)


class TestSplitIntoChunks:
    @pytest.mark.parametrize(
        ("n", "k"),
        [(10, 3), (3, 10), (7, 7), (1, 5), (100, 6), (5, 1), (9, 4)],
    )
    def test_chunking_law(self, n: int, k: int):
        items = list(range(n))

        chunks = split_into_chunks(items, k)

        assert len(chunks) == min(k, n)
        assert all(chunks)
        assert [item for chunk in chunks for item in chunk] == items
        sizes = [len(chunk) for chunk in chunks]
        assert max(sizes) - min(sizes) <= 1
        assert sizes == sorted(sizes, reverse=True)

    def test_ten_items_in_three_chunks(self):
        assert split_into_chunks(list(range(10)), 3) == [[0, 1, 2, 3], [4, 5, 6], [7, 8, 9]]

    def test_empty_input(self):
        assert split_into_chunks([], 4) == []

    @pytest.mark.parametrize("k", [0, -2])
    def test_non_positive_k_means_one_chunk(self, k: int):
        assert split_into_chunks([1, 2, 3], k) == [[1, 2, 3]]


def test_merge_turns_issues_into_reviews_in_chunk_order() -> None:
    merged = merge_chunk_results(
        [
            AnalysisResult(
                summary="first",
                issues=[Issue(description="a", severity="high", type="bug", file="x.py")],
            ),
            AnalysisResult(summary=""),
            AnalysisResult(summary="third", issues=[Issue(description="b")]),
        ],
    )

    assert merged.summary == "first\n\nthird"
    assert [review.content for review in merged.reviews] == ["a", "b"]
    assert merged.reviews[0].severity == "high"
    assert merged.reviews[0].category == "bug"
    assert merged.reviews[0].file == "x.py"
    assert merged.reviews[1].category == "issue"


def test_analyze_parallel_merges_every_chunk(scripted_backend) -> None:
    def handler(prompt: str, _sampling, _model):
        first = prompt.split("|")[0]
        return f"## Summary\nchunk {first}\n\n## Issues\n- [high] {first}:1 - problem in {first}\n"

    backend = scripted_backend(handler, delay_seconds=0.01)
    runner = ChunkedAnalysisRunner(
        backend=backend,
        model="gemini-2.0-flash",
        sampling=SAMPLING,
        prompt_builder=_prompt,
    )

    result = runner.analyze_parallel(_files(5), 2)

    assert len(backend.calls) == 2
    assert backend.max_in_flight <= 2
    assert result.summary == "chunk src/f0.py\n\nchunk src/f3.py"
    assert [review.file for review in result.reviews] == ["src/f0.py", "src/f3.py"]
    assert result.reviews[0].severity == "high"


def test_first_failing_chunk_in_order_is_raised(scripted_backend) -> None:
    def handler(prompt: str, _sampling, _model):
        if prompt.startswith(("src/f1.py", "src/f3.py")):
            return GenerationError(f"failed on {prompt.split('|')[0]}")
        return "## Summary\nok\n"

    runner = ChunkedAnalysisRunner(
        backend=scripted_backend(handler),
        model="m",
        sampling=SAMPLING,
        prompt_builder=_prompt,
    )

    with pytest.raises(ChunkAnalysisError) as excinfo:
        runner.analyze_parallel(_files(4), 4)

    assert excinfo.value.chunk_index == 1
    assert "failed on src/f1.py" in str(excinfo.value)
    assert isinstance(excinfo.value.cause, GenerationError)


@pytest.mark.parametrize("concurrency", [0, -3, None])
def test_non_positive_concurrency_uses_default_chunk_count(scripted_backend, concurrency) -> None:
    backend = scripted_backend(lambda *_: "## Summary\nok\n")
    runner = ChunkedAnalysisRunner(
        backend=backend,
        model="m",
        sampling=SAMPLING,
        prompt_builder=_prompt,
    )

    runner.analyze_parallel(_files(10), concurrency)

    assert len(backend.calls) == 5
    assert sorted(prompt for _model, _sampling, prompt in backend.calls) == [
        "src/f0.py|src/f1.py",
        "src/f2.py|src/f3.py",
        "src/f4.py|src/f5.py",
        "src/f6.py|src/f7.py",
        "src/f8.py|src/f9.py",
    ]
