"""Shared constants used by the relaybot pipeline."""

from __future__ import annotations

from pathlib import Path

# Project root for resolving runtime-relative paths reliably.
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Outbound message size limit and flush policy.
MAX_MESSAGE_LENGTH = 2000
FLUSH_THRESHOLD = 100

# Telegram rejects text longer than this regardless of configuration.
TELEGRAM_HARD_LIMIT = 4096

# Maximum number of ancestors followed when walking a reply chain.
MAX_REPLY_DEPTH = 50

# Seconds to wait for the next chunk of a streaming response.
STREAM_TIMEOUT_SEC = 120
CONNECT_TIMEOUT_SEC = 10.0

# A token only matches when no further username character follows it.
MENTION_USERNAME_BOUNDARY = r"(?![A-Za-z0-9_])"
# Whitespace swallowed after a mention token (includes the ideographic space).
MENTION_TRAILING_WHITESPACE = r"[\s　]*"

# Wire paths per backend, appended to LLM_API_URL.
BACKEND_CHAT_PATHS = {
    "ollama": "/api/chat",
    "openai": "/chat/completions",
}

EVENT_STREAM_PREFIX = "data:"
EVENT_STREAM_DONE = "[DONE]"

FALLBACK_PERSONA = (
    "あなたはTelegramで使用されているアシスタントbotです。"
    "質問に対しては簡潔な回答を心掛けてください。"
)

ERROR_NOTICE = "⚠️ Couldn't produce a reply ({code})."
