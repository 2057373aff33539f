"""Generation backend implementations."""

from enkai.orchestrator.backend.base import (
    GenerationBackend,
    GenerationError,
    GenerationResponse,
)
from enkai.orchestrator.backend.gemini_client import GeminiClient

__all__ = [
    "GeminiClient",
    "GenerationBackend",
    "GenerationError",
    "GenerationResponse",
]
