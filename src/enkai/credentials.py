"""Gemini API key resolution and local config-file storage."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

API_KEY_ENV = "GEMINI_API_KEY"
CONFIG_DIR_ENV = "ENKAI_CONFIG_DIR"
_CONFIG_KEY = "gemini_api_key"


class MissingCredentialError(RuntimeError):
    """No API key could be resolved from flag, config file, or environment."""

    def __init__(self) -> None:
        super().__init__(
            "Gemini API key is not configured. "
            f"Run 'enkai api set <API_KEY>' or set {API_KEY_ENV}.",
        )


@dataclass(slots=True)
class ResolvedCredential:
    """API key plus where it was found."""

    api_key: str
    source: str


def config_path() -> Path:
    """Location of the JSON config file holding the stored key."""

    override = os.getenv(CONFIG_DIR_ENV, "").strip()
    base = Path(override) if override else Path.home() / ".enkai"
    return base / "config.json"


def resolve_api_key(explicit: str | None = None) -> ResolvedCredential | None:
    """Resolve the key: explicit flag, then config file, then environment."""

    if explicit is not None and explicit.strip():
        return ResolvedCredential(api_key=explicit.strip(), source="flag")
    stored = load_stored_key()
    if stored:
        return ResolvedCredential(api_key=stored, source="config file")
    from_env = os.getenv(API_KEY_ENV, "").strip()
    if from_env:
        return ResolvedCredential(api_key=from_env, source="environment")
    return None


def require_api_key(explicit: str | None = None) -> str:
    resolved = resolve_api_key(explicit)
    if resolved is None:
        raise MissingCredentialError()
    return resolved.api_key


def load_stored_key() -> str | None:
    path = config_path()
    try:
        payload = json.loads(path.read_text("utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as error:
        logger.warning("Ignoring unreadable config file %s: %s", path, error)
        return None
    if not isinstance(payload, dict):
        return None
    value = payload.get(_CONFIG_KEY)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def store_key(api_key: str) -> Path:
    """Persist ``api_key`` to the config file with owner-only permissions."""

    if not api_key.strip():
        raise ValueError("API key must not be empty.")
    path = config_path()
    path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
    path.write_text(json.dumps({_CONFIG_KEY: api_key.strip()}, indent=2), "utf-8")
    path.chmod(0o600)
    return path


def delete_stored_key() -> bool:
    """Remove the config file; returns False when nothing was stored."""

    path = config_path()
    if not path.exists():
        return False
    path.unlink()
    return True


def mask_key(api_key: str) -> str:
    if len(api_key) <= 14:
        return "*" * len(api_key)
    return f"{api_key[:10]}...{api_key[-4:]}"
