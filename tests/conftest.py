from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import Config
from core.errors import SurfaceError
from core.mention import MentionFilter
from core.types import BotIdentity, ChatMessage, MessageRef

BOT_ID = "999"
CHANNEL = "-100123"


class FakeSurface:
    """In-memory chat surface recording every outbound call."""

    def __init__(self, messages: Optional[list[ChatMessage]] = None):
        self.store = {(m.ref.channel, m.ref.message_id): m for m in messages or []}
        self.calls: list[tuple] = []
        self.texts: dict[MessageRef, str] = {}
        self.fail_on_call: Optional[int] = None
        self.fetches = 0
        self._next_id = 5000

    def _maybe_fail(self):
        if self.fail_on_call is not None and len(self.calls) >= self.fail_on_call:
            raise SurfaceError(code="SEND_FAILED", message="chat surface unavailable")

    async def send_message(self, channel, text, reply_to=None):
        self._maybe_fail()
        self._next_id += 1
        ref = MessageRef(channel, str(self._next_id))
        self.calls.append(("send", ref, text, reply_to))
        self.texts[ref] = text
        return ref

    async def edit_message(self, ref, text):
        self._maybe_fail()
        self.calls.append(("edit", ref, text))
        self.texts[ref] = text

    async def fetch_message(self, channel, message_id):
        self.fetches += 1
        try:
            return self.store[(channel, message_id)]
        except KeyError:
            raise SurfaceError(code="MESSAGE_NOT_FOUND", message=f"no message {message_id}") from None

    @property
    def sends(self):
        return [c for c in self.calls if c[0] == "send"]

    @property
    def edits(self):
        return [c for c in self.calls if c[0] == "edit"]


def make_message(
    message_id: str,
    text: str,
    author_id: str = "42",
    reply_to: Optional[str] = None,
    mentions: frozenset = frozenset(),
    channel: str = CHANNEL,
) -> ChatMessage:
    return ChatMessage(
        ref=MessageRef(channel, message_id),
        author_id=author_id,
        text=text,
        reply_to=MessageRef(channel, reply_to) if reply_to else None,
        mentions=mentions,
    )


@pytest.fixture
def identity() -> BotIdentity:
    return BotIdentity(user_id=BOT_ID, mention_token="@relay_bot")


@pytest.fixture
def mention_filter(identity: BotIdentity) -> MentionFilter:
    return MentionFilter(identity.mention_token, ignore_case=True)


@pytest.fixture
def ollama_config() -> Config:
    return Config(
        llm_backend="ollama",
        llm_api_url="http://llm.test",
        llm_model="llama3.2:3b",
        telegram_bot_token="test-token",
    )


@pytest.fixture
def openai_config() -> Config:
    return Config(
        llm_backend="openai",
        llm_api_url="https://api.example.test/v1",
        llm_model="gpt-4o-mini",
        llm_api_key="sk-test",
        telegram_bot_token="test-token",
    )
