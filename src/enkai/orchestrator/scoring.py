"""Heuristic scoring and winner selection over variant outcomes."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace

from enkai.orchestrator.models import ALL_VARIANTS_FAILED, VariantLabel, VariantOutcome

DEFAULT_PATTERN_KEYWORDS: tuple[str, ...] = (
    "export",
    "function",
    "const",
    "return",
    "useState",
    "import",
)

_LABEL_REASONS = {
    VariantLabel.STRICT: "strict, consistent code generation",
    VariantLabel.CREATIVE: "innovative approach and code structure",
    VariantLabel.BALANCED: "balanced implementation",
}


@dataclass(frozen=True, slots=True)
class ScoringPolicy:
    """Tunable constants of the default scoring heuristic."""

    base_score: float = 100.0
    short_content_chars: int = 100
    short_content_penalty: float = 20.0
    long_content_chars: int = 10_000
    long_content_penalty: float = 10.0
    fast_seconds: float = 2.0
    fast_bonus: float = 10.0
    slow_seconds: float = 10.0
    slow_penalty: float = 20.0
    pattern_keywords: tuple[str, ...] = DEFAULT_PATTERN_KEYWORDS
    pattern_bonus: float = 5.0
    destructured_import_marker: str = "import {"
    approved_import_marker: str = "from 'react'"
    external_import_penalty: float = 15.0

    def score(self, outcome: VariantOutcome) -> float:
        """Score one eligible outcome."""

        content = outcome.content
        score = self.base_score

        if len(content) < self.short_content_chars:
            score -= self.short_content_penalty
        elif len(content) > self.long_content_chars:
            score -= self.long_content_penalty

        if outcome.duration_seconds < self.fast_seconds:
            score += self.fast_bonus
        elif outcome.duration_seconds > self.slow_seconds:
            score -= self.slow_penalty

        for keyword in self.pattern_keywords:
            if keyword in content:
                score += self.pattern_bonus

        if (
            self.destructured_import_marker in content
            and self.approved_import_marker not in content
        ):
            score -= self.external_import_penalty

        return score


Scorer = Callable[[VariantOutcome], float]

DEFAULT_POLICY = ScoringPolicy()


@dataclass(slots=True)
class Selection:
    """Scored outcomes (declaration order) with the chosen winner."""

    outcomes: list[VariantOutcome]
    best: VariantOutcome | None
    reason: str


def select_best(
    outcomes: Sequence[VariantOutcome],
    scorer: Scorer = DEFAULT_POLICY.score,
) -> Selection:
    """Score eligible outcomes and pick the strictly highest; ties keep the earliest."""

    scored: list[VariantOutcome] = []
    best: VariantOutcome | None = None
    for outcome in outcomes:
        if not outcome.eligible:
            scored.append(outcome)
            continue
        candidate = replace(outcome, score=scorer(outcome))
        scored.append(candidate)
        if best is None or candidate.score > best.score:  # type: ignore[operator]
            best = candidate

    if best is None:
        return Selection(outcomes=scored, best=None, reason=ALL_VARIANTS_FAILED)
    return Selection(outcomes=scored, best=best, reason=describe_selection(best))


def describe_selection(best: VariantOutcome) -> str:
    """Human-readable justification for a winning outcome."""

    return (
        f"variant: {best.variant.name} | score: {best.score:.2f} | "
        f"duration: {best.duration_seconds:.2f}s | "
        f"reason: {_LABEL_REASONS.get(best.variant.label, _LABEL_REASONS[VariantLabel.BALANCED])}"
    )
