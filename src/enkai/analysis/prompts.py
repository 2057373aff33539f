"""Prompt construction for codebase analysis."""

from __future__ import annotations

from collections.abc import Sequence

from enkai.analysis.models import AnalyzeMode, FileInfo

MAX_FILES_IN_PROMPT = 10
TRUNCATION_MARKER = "... (truncated)"

_MODE_INSTRUCTIONS: dict[AnalyzeMode, str] = {
    AnalyzeMode.SUMMARY: (
        "Give an overview of the project:\n"
        "- purpose and main features\n"
        "- technologies and frameworks in use\n"
        "- overall code quality\n"
        "- the most important improvements\n"
    ),
    AnalyzeMode.ARCHITECT: (
        "Analyze the architecture:\n"
        "- overall project structure\n"
        "- main components and how they relate\n"
        "- patterns and practices in use\n"
        "- dependency analysis\n"
        "- possible improvements\n"
    ),
    AnalyzeMode.REFACTOR: (
        "Propose refactoring candidates:\n"
        "- duplicated code\n"
        "- overly complex functions or classes\n"
        "- naming improvements\n"
        "- dead code\n"
        "- performance opportunities\n"
    ),
    AnalyzeMode.SECURITY: (
        "Perform a security analysis:\n"
        "- security holes\n"
        "- vulnerable dependencies\n"
        "- hard-coded secrets\n"
        "- missing input validation\n"
        "- authentication and authorization problems\n"
    ),
    AnalyzeMode.PERFORMANCE: (
        "Perform a performance analysis:\n"
        "- likely bottlenecks\n"
        "- inefficient algorithms\n"
        "- memory leaks\n"
        "- unnecessary re-renders\n"
        "- optimization opportunities\n"
    ),
    AnalyzeMode.REVIEW: (
        "Perform a detailed code review:\n"
        "- code quality\n"
        "- readability and maintainability\n"
        "- adherence to good practices\n"
        "- potential bugs\n"
        "- possible improvements\n"
    ),
}

OUTPUT_FORMAT = """\
Write the analysis in exactly this format:

## Summary
(a short overview of the project)

## Issues
- [severity] file:line - description of the problem

## Suggestions
- [type] file - proposed change

## Details
(detailed analysis for the requested mode)
"""


def max_lines_for_verbosity(verbosity: int) -> int:
    if verbosity >= 2:
        return 1000
    if verbosity == 1:
        return 200
    return 50


def build_analysis_prompt(
    files: Sequence[FileInfo],
    *,
    mode: AnalyzeMode,
    query: str = "",
    verbosity: int = 0,
    max_files: int = MAX_FILES_IN_PROMPT,
) -> str:
    """Render the analysis prompt for ``files``.

    Every file is listed, but only the first ``max_files`` have their content
    included, each truncated to a verbosity-dependent number of numbered lines.
    """

    parts = ["Analyze the following codebase.\n"]
    if mode is AnalyzeMode.REVIEW and query:
        parts.append(f"Review the code with this focus:\n{query}\n")
    else:
        parts.append(_MODE_INSTRUCTIONS[mode])
        if query:
            parts.append(f"Pay particular attention to: {query}\n")

    parts.append("Files:")
    parts.extend(f"- {item.path} ({item.language}, {item.size} bytes)" for item in files)

    parts.append("\n=== Code ===")
    max_lines = max_lines_for_verbosity(verbosity)
    for item in files[:max_files]:
        parts.append(f"\n--- {item.path} ---")
        parts.append(_numbered(item.content, max_lines))

    parts.append("\n" + OUTPUT_FORMAT)
    return "\n".join(parts)


def _numbered(content: str, max_lines: int) -> str:
    lines = content.split("\n")
    rendered = [f"{number}: {line}" for number, line in enumerate(lines[:max_lines], start=1)]
    if len(lines) > max_lines:
        rendered.append(TRUNCATION_MARKER)
    return "\n".join(rendered)
