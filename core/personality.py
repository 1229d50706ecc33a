"""Runtime path resolution and persona (system prompt) loading."""

from __future__ import annotations

import os
from pathlib import Path

from config import Config

from .constants import FALLBACK_PERSONA, PROJECT_ROOT
from .logging_setup import log


def resolve_runtime_path(path_value: str) -> Path:
    """Resolve configured paths relative to RELAYBOT_HOME or project root."""
    runtime_home = os.getenv("RELAYBOT_HOME", "").strip()
    base_dir = Path(runtime_home).expanduser().resolve() if runtime_home else PROJECT_ROOT
    path = Path(path_value).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path.resolve()


def load_persona(config: Config) -> str:
    """Return the fixed system instruction prepended to every context.

    SYSTEM_PROMPT wins over PERSONA_PATH; the built-in persona is the fallback.
    """
    if config.system_prompt:
        return config.system_prompt

    if config.persona_path:
        path = resolve_runtime_path(config.persona_path)
        try:
            content = path.read_text(encoding="utf-8").strip()
        except OSError as e:
            log.warning(f"Could not read persona file {path}: {e}")
        else:
            if content:
                return content
            log.warning(f"Persona file {path} is empty; using built-in persona")

    return FALLBACK_PERSONA
