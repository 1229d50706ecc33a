"""
relaybot — Configuration
Flat .env-based configuration system.
"""

import os
import re
from dataclasses import dataclass, field
from dotenv import load_dotenv

load_dotenv()


BACKEND_MODEL_DEFAULTS = {
    "ollama": "llama3.2:3b",
    "openai": "gpt-4o-mini",
}

_MODEL_DEFAULT_SENTINELS = {"", "latest", "auto", "default"}
_TRUE_VALUES = {"1", "true", "yes", "on"}

# Telegram's own ceiling on message text length.
_TELEGRAM_TEXT_LIMIT = 4096


class ConfigError(Exception):
    """Fatal startup configuration problem."""

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        super().__init__("; ".join(self.problems))


def _strip_inline_comment(value: str) -> str:
    """Strip shell-style inline comments for unquoted env values."""
    if not value:
        return ""
    cleaned = value.strip()
    if not cleaned:
        return ""
    if cleaned.startswith("#"):
        return ""
    return re.sub(r"\s+#.*$", "", cleaned).strip()


def _parse_allowed_users(raw: str) -> list[str]:
    """Parse TELEGRAM_ALLOWED_USERS as comma-separated numeric user IDs."""
    cleaned = _strip_inline_comment(raw)
    if not cleaned:
        return []

    users: list[str] = []
    for chunk in cleaned.split(","):
        token = chunk.strip()
        if not token:
            continue
        if token.startswith("#"):
            break
        token = token.split("#", 1)[0].strip()
        if not token:
            continue
        # Telegram user IDs are numeric; ignore placeholder/comment text safely.
        if token.lstrip("-").isdigit():
            users.append(token)
    return users


def _env(name: str, default: str = "") -> str:
    return _strip_inline_comment(os.getenv(name, default)) or default


def _env_int(name: str, default: int) -> int:
    raw = _env(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError([f"{name} must be an integer, got {raw!r}"])


def _env_flag(name: str, default: bool) -> bool:
    raw = _env(name, "")
    if not raw:
        return default
    return raw.lower() in _TRUE_VALUES


@dataclass
class Config:
    # LLM backend
    llm_backend: str = ""
    llm_api_url: str = ""
    llm_model: str = ""
    llm_api_key: str = ""
    stream_timeout_sec: int = 120

    # Telegram
    telegram_bot_token: str = ""
    telegram_allowed_users: list[str] = field(default_factory=list)

    # Rendering
    max_message_length: int = 2000
    flush_threshold: int = 100
    empty_reply_text: str = ""
    notify_errors: bool = True

    # Context
    max_reply_depth: int = 50
    system_prompt: str = ""
    persona_path: str = ""

    # Storage
    message_log_path: str = ".relaybot/messages.db"
    message_log_retention_days: int = 30


def _resolve_model(backend: str, model: str) -> str:
    """Resolve empty/default model values to backend-specific defaults."""
    backend_name = (backend or "").lower()
    requested = _strip_inline_comment(model or "")
    if requested.lower() in _MODEL_DEFAULT_SENTINELS:
        return BACKEND_MODEL_DEFAULTS.get(backend_name, BACKEND_MODEL_DEFAULTS["ollama"])
    return requested


def load_config() -> Config:
    """Load config from environment variables with auto-detection."""
    cfg = Config(
        llm_backend=_env("LLM_BACKEND"),
        llm_api_url=_env("LLM_API_URL").rstrip("/"),
        llm_model=_env("LLM_MODEL"),
        llm_api_key=_env("LLM_API_KEY"),
        stream_timeout_sec=_env_int("STREAM_TIMEOUT_SEC", 120),
        telegram_bot_token=_env("TELEGRAM_BOT_TOKEN"),
        telegram_allowed_users=_parse_allowed_users(os.getenv("TELEGRAM_ALLOWED_USERS", "")),
        max_message_length=_env_int("MAX_MESSAGE_LENGTH", 2000),
        flush_threshold=_env_int("FLUSH_THRESHOLD", 100),
        empty_reply_text=os.getenv("EMPTY_REPLY_TEXT", ""),
        notify_errors=_env_flag("NOTIFY_ERRORS", True),
        max_reply_depth=_env_int("MAX_REPLY_DEPTH", 50),
        system_prompt=os.getenv("SYSTEM_PROMPT", "").strip(),
        persona_path=_env("PERSONA_PATH"),
        message_log_path=_env("MESSAGE_LOG_PATH", ".relaybot/messages.db"),
        message_log_retention_days=_env_int("MESSAGE_LOG_RETENTION_DAYS", 30),
    )

    # Auto-detect backend: a bearer token implies an OpenAI-compatible endpoint.
    if not cfg.llm_backend:
        cfg.llm_backend = "openai" if cfg.llm_api_key else "ollama"

    cfg.llm_backend = cfg.llm_backend.strip().lower()
    cfg.llm_model = _resolve_model(cfg.llm_backend, cfg.llm_model)
    cfg.stream_timeout_sec = max(0, int(cfg.stream_timeout_sec))

    return cfg


def require_config(cfg: Config) -> Config:
    """Validate values that must be present before the bot can start."""
    problems: list[str] = []

    if not cfg.telegram_bot_token:
        problems.append("TELEGRAM_BOT_TOKEN is required")
    if cfg.llm_backend not in BACKEND_MODEL_DEFAULTS:
        problems.append(
            f"Unknown LLM_BACKEND: {cfg.llm_backend!r}. "
            f"Supported: {', '.join(sorted(BACKEND_MODEL_DEFAULTS))}"
        )
    if not cfg.llm_api_url:
        problems.append("LLM_API_URL is required")
    if cfg.llm_backend == "openai" and not cfg.llm_api_key:
        problems.append("LLM_API_KEY is required when LLM_BACKEND=openai")
    if not 1 <= cfg.max_message_length <= _TELEGRAM_TEXT_LIMIT:
        problems.append(f"MAX_MESSAGE_LENGTH must be between 1 and {_TELEGRAM_TEXT_LIMIT}")
    if cfg.flush_threshold < 1:
        problems.append("FLUSH_THRESHOLD must be at least 1")
    if cfg.max_reply_depth < 0:
        problems.append("MAX_REPLY_DEPTH must not be negative")
    if len(cfg.empty_reply_text) > cfg.max_message_length:
        problems.append("EMPTY_REPLY_TEXT is longer than MAX_MESSAGE_LENGTH")

    if problems:
        raise ConfigError(problems)
    return cfg
