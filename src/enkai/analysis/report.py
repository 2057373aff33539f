"""Plain-text rendering of analysis results."""

from __future__ import annotations

from enkai.analysis.models import AnalysisResult, AnalyzeMode, Review

RULE_WIDTH = 80
GENERAL_CATEGORY = "general"

_SEVERITY_MARKERS = {
    "critical": "[!!!]",
    "high": "[!!]",
    "medium": "[!]",
    "low": "[.]",
}


def severity_marker(severity: str) -> str:
    return _SEVERITY_MARKERS.get(severity.lower(), "[?]")


def render_report(result: AnalysisResult, *, mode: AnalyzeMode) -> list[str]:
    """Render ``result`` as report lines.

    Review runs with merged reviews are grouped by category in first-seen
    order; every other run shows summary, issues, and suggestions.
    """

    lines = ["Analysis result", "=" * RULE_WIDTH]
    if mode is AnalyzeMode.REVIEW and result.reviews:
        lines.extend(_render_reviews(result.reviews))
        if result.summary:
            lines.extend(["", "Overall:", result.summary])
        return lines

    if result.summary:
        lines.extend(["", "Summary:", result.summary])
    if result.issues:
        lines.extend(["", f"Issues ({len(result.issues)}):"])
        for issue in result.issues:
            location = issue.file
            if issue.file and issue.line is not None:
                location = f"{issue.file}:{issue.line}"
            marker = severity_marker(issue.severity)
            lines.append(f"{marker} [{issue.type}] {location} - {issue.description}")
    if result.suggestions:
        lines.extend(["", f"Suggestions ({len(result.suggestions)}):"])
        lines.extend(
            f"* [{suggestion.type}] {suggestion.file} - {suggestion.description}"
            for suggestion in result.suggestions
        )
    return lines


def _render_reviews(reviews: list[Review]) -> list[str]:
    lines = ["", f"Code review findings ({len(reviews)}):", "-" * RULE_WIDTH]
    grouped: dict[str, list[Review]] = {}
    for review in reviews:
        grouped.setdefault(review.category or GENERAL_CATEGORY, []).append(review)
    for category, items in grouped.items():
        lines.extend(["", f"{category}:"])
        for review in items:
            header = f"{severity_marker(review.severity)} [{review.severity}]"
            if review.file:
                header = f"{header} {review.file}"
            lines.append(f"{header}:")
            lines.append(f"   {review.content}")
    return lines
