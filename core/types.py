"""Shared datatypes for relaybot."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional, Union

Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class MessageRef:
    """Chat-surface address of one message."""

    channel: str
    message_id: str


@dataclass(frozen=True)
class ChatMessage:
    """A resolved chat message as seen by the pipeline.

    `mentions` holds the ids of users the message is addressed to; the
    chat-surface adapter decides what counts as addressing someone.
    """

    ref: MessageRef
    author_id: str
    text: str
    reply_to: Optional[MessageRef] = None
    mentions: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class BotIdentity:
    user_id: str
    mention_token: str


@dataclass(frozen=True)
class ConversationTurn:
    role: Role
    text: str

    def to_payload(self) -> dict:
        return {"role": self.role, "content": self.text}


@dataclass(frozen=True)
class DeltaEvent:
    text: str
    terminal: bool = False


# ── Render state machine ─────────────────────────────────────


@dataclass(frozen=True)
class Idle:
    """No outbound message is live yet (or the last one was abandoned)."""


@dataclass(frozen=True)
class Active:
    ref: MessageRef
    text: str

    @property
    def sent_length(self) -> int:
        return len(self.text)


RenderState = Union[Idle, Active]


@dataclass(frozen=True)
class SendOp:
    text: str


@dataclass(frozen=True)
class EditOp:
    ref: MessageRef
    text: str


FlushOp = Union[SendOp, EditOp]


@dataclass
class RenderResult:
    messages: list[MessageRef] = field(default_factory=list)
    sends: int = 0
    edits: int = 0
    chars: int = 0
