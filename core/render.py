"""Incremental rendering of streamed text into size-limited chat messages."""

from __future__ import annotations

from typing import AsyncIterable, Optional

from .constants import FLUSH_THRESHOLD, MAX_MESSAGE_LENGTH
from .errors import RenderError, SurfaceError
from .logging_setup import log
from .surface import ChatSurface
from .types import (
    Active,
    DeltaEvent,
    EditOp,
    FlushOp,
    Idle,
    MessageRef,
    RenderResult,
    RenderState,
    SendOp,
)


def split_pending(pending: str, max_length: int) -> list[str]:
    """Cut a buffer into pieces no longer than one message."""
    if len(pending) <= max_length:
        return [pending]
    return [pending[i : i + max_length] for i in range(0, len(pending), max_length)]


def plan_flush(
    state: RenderState,
    pending: str,
    max_length: int,
    empty_reply: str = "",
) -> Optional[FlushOp]:
    """Decide what one flush of `pending` does to the chat surface.

    Returns None when the flush needs no outbound call. `pending` must
    already be no longer than `max_length`.
    """
    if isinstance(state, Active):
        if state.sent_length + len(pending) <= max_length:
            if not pending:
                return None
            return EditOp(ref=state.ref, text=state.text + pending)
        return SendOp(text=pending)

    if not pending:
        return SendOp(text=empty_reply) if empty_reply else None
    return SendOp(text=pending)


def apply_flush(state: RenderState, op: FlushOp, sent_ref: Optional[MessageRef] = None) -> RenderState:
    """State after `op` has been carried out on the chat surface."""
    if isinstance(op, SendOp):
        if sent_ref is None:
            raise ValueError("a send needs the reference of the new message")
        return Active(ref=sent_ref, text=op.text)
    return Active(ref=op.ref, text=op.text)


class ResponseRenderer:
    """Drives send/edit calls for one streamed reply.

    Delta text is buffered and flushed when the buffer reaches the flush
    threshold or the stream reaches its terminal event. A flush edits the
    live message in place while the result still fits in one message;
    otherwise it starts a new message holding only the overflowing text.
    A surface failure aborts rendering; messages already sent stay as-is.
    """

    def __init__(
        self,
        surface: ChatSurface,
        channel: str,
        reply_to: Optional[MessageRef] = None,
        max_length: int = MAX_MESSAGE_LENGTH,
        flush_threshold: int = FLUSH_THRESHOLD,
        empty_reply: str = "",
        session_id: str = "-",
    ):
        self.surface = surface
        self.channel = channel
        self.reply_to = reply_to
        self.max_length = max_length
        self.flush_threshold = flush_threshold
        self.empty_reply = empty_reply
        self.session_id = session_id

        self.state: RenderState = Idle()
        self.pending = ""
        self.result = RenderResult()

    async def render(self, events: AsyncIterable[DeltaEvent]) -> RenderResult:
        async for event in events:
            self.pending += event.text
            if event.terminal or len(self.pending) >= self.flush_threshold:
                await self.flush()
            if event.terminal:
                break
        return self.result

    async def flush(self) -> None:
        pending, self.pending = self.pending, ""
        for piece in split_pending(pending, self.max_length):
            op = plan_flush(self.state, piece, self.max_length, self.empty_reply)
            if op is None:
                continue
            await self._perform(op)

    async def _perform(self, op: FlushOp) -> None:
        before = self.state.sent_length if isinstance(op, EditOp) and isinstance(self.state, Active) else 0
        sent_ref = None
        try:
            if isinstance(op, SendOp):
                sent_ref = await self.surface.send_message(self.channel, op.text, reply_to=self.reply_to)
            else:
                await self.surface.edit_message(op.ref, op.text)
        except SurfaceError as e:
            raise RenderError(
                code="RENDER_FAILED",
                message=f"{'send' if isinstance(op, SendOp) else 'edit'} failed: {e.message}",
                messages_sent=len(self.result.messages),
            ) from e

        self.state = apply_flush(self.state, op, sent_ref)
        self.result.chars += self.state.sent_length - before
        if isinstance(op, EditOp):
            self.result.edits += 1
            return

        self.result.sends += 1
        self.result.messages.append(sent_ref)
        if len(self.result.messages) > 1:
            log.info(f"[{self.session_id}] Reply overflowed into message #{len(self.result.messages)}")
