"""Chat-surface interface consumed by the pipeline."""

from __future__ import annotations

from typing import Optional, Protocol

from .types import ChatMessage, MessageRef


class ChatSurface(Protocol):
    """Outbound operations on the chat platform.

    Implementations raise SurfaceError on network or permission failure.
    """

    async def send_message(
        self, channel: str, text: str, reply_to: Optional[MessageRef] = None
    ) -> MessageRef:
        ...

    async def edit_message(self, ref: MessageRef, text: str) -> None:
        ...

    async def fetch_message(self, channel: str, message_id: str) -> ChatMessage:
        ...
