"""Prompt composition for code generation tasks."""

from __future__ import annotations

GENERATION_PREAMBLE = """\
You are an expert programmer producing self-contained source files.
Follow these rules for every file you generate:

1. Self-contained: one file implements one complete feature.
2. Minimal dependencies: use only React / Next.js standard APIs.
3. Duplication is acceptable: each file must be understandable on its own.
4. Keep state inside the file with useState/useReducer; no custom hooks.
5. Use TypeScript.

Output only the code, without explanations."""


def compose_generation_prompt(prompt: str, *, preamble: str = GENERATION_PREAMBLE) -> str:
    """Prefix a task prompt with the generation rules."""

    if not preamble:
        return prompt
    return f"{preamble}\n\n{prompt}"
