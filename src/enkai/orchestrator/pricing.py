"""Token cost estimation for generation calls."""

from __future__ import annotations

import os
from dataclasses import dataclass

from enkai.orchestrator.models import TokenUsage


@dataclass(slots=True)
class ModelPricing:
    """Per-model input/output pricing in USD per 1M tokens."""

    input_per_1m: float
    output_per_1m: float


BUILTIN_PRICING: dict[str, ModelPricing] = {
    "gemini-2.0-flash": ModelPricing(input_per_1m=0.075, output_per_1m=0.30),
    "gemini-2.0-pro": ModelPricing(input_per_1m=1.25, output_per_1m=5.00),
}


def estimate_cost_usd(*, model: str, usage: TokenUsage | None) -> float | None:
    """Estimate call cost in USD from token usage and configured pricing."""

    if usage is None:
        return None
    pricing = lookup_pricing(model)
    if pricing is None:
        return None

    if usage.prompt_tokens is not None and usage.completion_tokens is not None:
        return (usage.prompt_tokens / 1_000_000) * pricing.input_per_1m + (
            usage.completion_tokens / 1_000_000
        ) * pricing.output_per_1m

    if usage.total_tokens is not None:
        return (usage.total_tokens / 1_000_000) * pricing.input_per_1m
    return None


def lookup_pricing(model: str) -> ModelPricing | None:
    """Resolve pricing: env override, then built-in table, then env wildcard."""

    mapping = parse_pricing_mapping(os.getenv("ENKAI_PRICING", ""))
    normalized = model.strip()
    direct = mapping.get(normalized)
    if direct is not None:
        return direct
    builtin = BUILTIN_PRICING.get(normalized)
    if builtin is not None:
        return builtin
    return mapping.get("*")


def parse_pricing_mapping(raw: str) -> dict[str, ModelPricing]:
    """Parse ``ENKAI_PRICING``.

    Format: ``model=input:output`` entries separated by commas, prices in USD
    per 1M tokens. ``*`` as model name sets a fallback.
    """

    mapping: dict[str, ModelPricing] = {}
    for part in raw.split(","):
        token = part.strip()
        if not token:
            continue
        if "=" not in token or ":" not in token:
            raise ValueError(
                f"Invalid ENKAI_PRICING entry: {token!r}. Expected format 'model=input:output'.",
            )
        model, prices = token.split("=", 1)
        input_raw, output_raw = prices.split(":", 1)
        try:
            pricing = ModelPricing(
                input_per_1m=float(input_raw.strip()),
                output_per_1m=float(output_raw.strip()),
            )
        except ValueError as error:
            raise ValueError(f"Invalid ENKAI_PRICING prices in {token!r}") from error
        if pricing.input_per_1m < 0 or pricing.output_per_1m < 0:
            raise ValueError(f"ENKAI_PRICING prices must be >= 0: {token!r}")
        mapping[model.strip()] = pricing
    return mapping
