"""Parallel Gemini code generation with variant competition."""

__version__ = "1.0.0"
