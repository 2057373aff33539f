"""Parse Markdown analysis responses into structured results."""

from __future__ import annotations

import re

from enkai.analysis.models import AnalysisResult, Issue, Suggestion

_SEVERITIES = {"critical", "high", "medium", "low"}
_TAG_RE = re.compile(r"^\[(?P<tag>[^\]]+)\]\s*(?P<rest>.*)$")
_LOCATION_RE = re.compile(r"^(?P<file>[^\s:]+)(?::(?P<line>\d+))?\s+-\s+(?P<text>.+)$")

_SUMMARY = "summary"
_ISSUES = "issues"
_SUGGESTIONS = "suggestions"


def parse_response(response: str) -> AnalysisResult:
    """Split a response into summary, issues, and suggestions.

    ``## `` headings switch sections. When nothing is recognized, the whole
    response becomes the summary.
    """

    result = AnalysisResult()
    summary_lines: list[str] = []
    section = ""
    for raw_line in response.splitlines():
        line = raw_line.strip()
        if line.startswith("## "):
            section = _section_key(line[3:])
            continue
        if section == _SUMMARY:
            if line or summary_lines:
                summary_lines.append(line)
        elif section == _ISSUES and line.startswith("- "):
            result.issues.append(_parse_issue(line[2:]))
        elif section == _SUGGESTIONS and line.startswith("- "):
            result.suggestions.append(_parse_suggestion(line[2:]))

    result.summary = "\n".join(summary_lines).strip()
    if not result.summary and not result.issues and not result.suggestions:
        result.summary = response
    return result


def _section_key(heading: str) -> str:
    normalized = heading.strip().lower()
    if normalized.startswith("summary"):
        return _SUMMARY
    if normalized.startswith("issues"):
        return _ISSUES
    if normalized.startswith("suggestions"):
        return _SUGGESTIONS
    return normalized


def _parse_issue(text: str) -> Issue:
    issue = Issue(description=text)
    tagged = _TAG_RE.match(text)
    if tagged is None:
        return issue
    tag = tagged.group("tag").strip().lower()
    rest = tagged.group("rest").strip()
    if tag in _SEVERITIES:
        issue.severity = tag
    else:
        issue.type = tag
    located = _LOCATION_RE.match(rest)
    if located is None:
        issue.description = rest or text
        return issue
    issue.file = located.group("file")
    if located.group("line"):
        issue.line = int(located.group("line"))
    issue.description = located.group("text").strip()
    return issue


def _parse_suggestion(text: str) -> Suggestion:
    suggestion = Suggestion(description=text)
    tagged = _TAG_RE.match(text)
    if tagged is None:
        return suggestion
    suggestion.type = tagged.group("tag").strip().lower()
    rest = tagged.group("rest").strip()
    located = _LOCATION_RE.match(rest)
    if located is None:
        suggestion.description = rest or text
        return suggestion
    suggestion.file = located.group("file")
    suggestion.description = located.group("text").strip()
    return suggestion
