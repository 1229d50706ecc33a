"""Per-message orchestration: trigger check → context → backend → render."""

from __future__ import annotations

import time
from typing import Optional

from providers import ChatBackend

from .constants import ERROR_NOTICE, FLUSH_THRESHOLD, MAX_MESSAGE_LENGTH, MAX_REPLY_DEPTH
from .context import ContextAssembler
from .errors import PipelineError, RenderError
from .logging_setup import log
from .mention import MentionFilter
from .render import ResponseRenderer
from .stream import StreamDecoder
from .surface import ChatSurface
from .types import BotIdentity, ChatMessage, RenderResult


class ChatPipeline:
    """Handles one inbound message end to end.

    Each call to `handle` owns its own assembler output, decoder buffer and
    render state, so independent messages can be handled concurrently.
    Failures are logged and end the invocation; nothing is retried.
    """

    def __init__(
        self,
        backend: ChatBackend,
        surface: ChatSurface,
        identity: BotIdentity,
        mention_filter: MentionFilter,
        system_prompt: str,
        max_reply_depth: int = MAX_REPLY_DEPTH,
        max_message_length: int = MAX_MESSAGE_LENGTH,
        flush_threshold: int = FLUSH_THRESHOLD,
        empty_reply: str = "",
        notify_errors: bool = True,
    ):
        self.backend = backend
        self.surface = surface
        self.identity = identity
        self.assembler = ContextAssembler(
            surface,
            identity,
            mention_filter,
            system_prompt,
            max_depth=max_reply_depth,
        )
        self.max_message_length = max_message_length
        self.flush_threshold = flush_threshold
        self.empty_reply = empty_reply
        self.notify_errors = notify_errors

    def is_triggered(self, message: ChatMessage) -> bool:
        if message.author_id == self.identity.user_id:
            return False
        return self.identity.user_id in message.mentions

    async def handle(self, message: ChatMessage) -> Optional[RenderResult]:
        """Reply to `message` if it addresses the bot. Returns None when skipped or failed."""
        if not self.is_triggered(message):
            return None

        session_id = message.ref.channel
        started = time.monotonic()
        try:
            result = await self._run(message, session_id)
        except PipelineError as e:
            log.error(f"[{session_id}] Pipeline failed [{e.code}]: {e.message}")
            if self.notify_errors and not isinstance(e, RenderError):
                await self._notify(message, e)
            return None

        elapsed = time.monotonic() - started
        log.info(
            f"[{session_id}] Backend response rendered ({elapsed:.1f}s, "
            f"{result.chars} chars, {result.sends} message(s), {result.edits} edit(s))"
        )
        return result

    async def _run(self, message: ChatMessage, session_id: str) -> RenderResult:
        turns = await self.assembler.assemble(message)
        log.info(f"[{session_id}] Context assembled: {len(turns)} turns")

        decoder = StreamDecoder(self.backend.framing(), session_id=session_id)
        renderer = ResponseRenderer(
            self.surface,
            channel=message.ref.channel,
            reply_to=message.ref,
            max_length=self.max_message_length,
            flush_threshold=self.flush_threshold,
            empty_reply=self.empty_reply,
            session_id=session_id,
        )
        log.info(f"[{session_id}] Backend request started ({self.backend.backend_name}/{self.backend.model})")
        async with self.backend.stream(turns) as chunks:
            return await renderer.render(decoder.events(chunks))

    async def _notify(self, message: ChatMessage, error: PipelineError) -> None:
        try:
            await self.surface.send_message(
                message.ref.channel,
                ERROR_NOTICE.format(code=error.code),
                reply_to=message.ref,
            )
        except PipelineError as e:
            log.warning(f"[{message.ref.channel}] Could not deliver error notice: {e.message}")
