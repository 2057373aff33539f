"""Declarative variant sets competed against each task."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from enkai.config import DEFAULT_MODEL, DEFAULT_PRO_MODEL
from enkai.orchestrator.models import SamplingConfig, Variant, VariantLabel


@dataclass(frozen=True, slots=True)
class GenerationMode:
    """Named sampling configuration with its declared character."""

    name: str
    sampling: SamplingConfig
    label: VariantLabel


NORMAL_MODE = GenerationMode(
    name="normal",
    sampling=SamplingConfig(temperature=0.5, top_p=0.9, top_k=60),
    label=VariantLabel.BALANCED,
)
STRICT_MODE = GenerationMode(
    name="strict",
    sampling=SamplingConfig(temperature=0.2, top_p=0.8, top_k=40),
    label=VariantLabel.STRICT,
)
CREATIVE_MODE = GenerationMode(
    name="creative",
    sampling=SamplingConfig(temperature=0.9, top_p=0.95, top_k=100),
    label=VariantLabel.CREATIVE,
)

STANDARD_MODES: tuple[GenerationMode, ...] = (NORMAL_MODE, STRICT_MODE, CREATIVE_MODE)


def mode_variants(
    model: str,
    modes: Sequence[GenerationMode] = STANDARD_MODES,
    *,
    max_output_tokens: int | None = None,
) -> list[Variant]:
    """Same model under several sampling modes, in mode order."""

    return [
        Variant(
            name=f"{model} ({mode.name})",
            model=model,
            sampling=_with_max_tokens(mode.sampling, max_output_tokens),
            label=mode.label,
        )
        for mode in modes
    ]


def model_variants(
    models: Sequence[str],
    *,
    max_output_tokens: int | None = None,
) -> list[Variant]:
    """One normal-mode variant per model, in the order given."""

    variants: list[Variant] = []
    for model in models:
        normalized = model.strip()
        if not normalized:
            raise ValueError("Model names must not be empty.")
        variants.append(
            Variant(
                name=normalized,
                model=normalized,
                sampling=_with_max_tokens(NORMAL_MODE.sampling, max_output_tokens),
                label=NORMAL_MODE.label,
            ),
        )
    return variants


def build_variants(
    *,
    models: Sequence[str] = (),
    pro: bool = False,
    default_model: str = DEFAULT_MODEL,
    pro_model: str = DEFAULT_PRO_MODEL,
    max_output_tokens: int | None = None,
) -> list[Variant]:
    """Resolve the variant set for a run.

    Pro mode competes the standard modes on the pro model; an explicit model
    list competes those models; otherwise the standard modes run on the
    default model.
    """

    if pro:
        return mode_variants(pro_model, max_output_tokens=max_output_tokens)
    if models:
        return model_variants(models, max_output_tokens=max_output_tokens)
    return mode_variants(default_model, max_output_tokens=max_output_tokens)


def single_variant(
    *,
    pro: bool = False,
    default_model: str = DEFAULT_MODEL,
    pro_model: str = DEFAULT_PRO_MODEL,
    max_output_tokens: int | None = None,
) -> Variant:
    """Variant used when competition is disabled."""

    model = pro_model if pro else default_model
    return mode_variants(model, (NORMAL_MODE,), max_output_tokens=max_output_tokens)[0]


def _with_max_tokens(sampling: SamplingConfig, max_output_tokens: int | None) -> SamplingConfig:
    if max_output_tokens is None:
        return sampling
    return SamplingConfig(
        temperature=sampling.temperature,
        top_p=sampling.top_p,
        top_k=sampling.top_k,
        max_output_tokens=max_output_tokens,
    )
