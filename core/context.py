"""Reply-chain walking and conversation context assembly."""

from __future__ import annotations

from .constants import MAX_REPLY_DEPTH
from .errors import ContextResolutionError, ReplyChainTooLongError, ReplyCycleError, SurfaceError
from .mention import MentionFilter
from .surface import ChatSurface
from .types import BotIdentity, ChatMessage, ConversationTurn


class ContextAssembler:
    """Builds the ordered turn list sent to the backend for one message.

    The reply chain is walked iteratively from the triggering message back
    to its root, then reversed so the result reads oldest first. A single
    system turn is prepended. Any unresolvable link aborts the whole
    assembly; no partial context is returned.
    """

    def __init__(
        self,
        surface: ChatSurface,
        identity: BotIdentity,
        mention_filter: MentionFilter,
        system_prompt: str,
        max_depth: int = MAX_REPLY_DEPTH,
    ):
        self.surface = surface
        self.identity = identity
        self.mention_filter = mention_filter
        self.system_prompt = system_prompt
        self.max_depth = max_depth

    async def reply_chain(self, message: ChatMessage) -> list[ChatMessage]:
        """Return the chain root-first, ending with `message`."""
        chain = [message]
        seen = {message.ref}
        current = message

        while current.reply_to is not None:
            ref = current.reply_to
            if ref in seen:
                raise ReplyCycleError(
                    code="REPLY_CYCLE",
                    message=f"reply chain loops back to message {ref.message_id}",
                    channel=ref.channel,
                )
            if len(chain) > self.max_depth:
                raise ReplyChainTooLongError(
                    code="REPLY_CHAIN_TOO_LONG",
                    message=f"reply chain exceeds {self.max_depth} ancestors",
                    depth=len(chain) - 1,
                )
            try:
                current = await self.surface.fetch_message(ref.channel, ref.message_id)
            except SurfaceError as e:
                raise ContextResolutionError(
                    code="MESSAGE_NOT_FOUND",
                    message=f"could not fetch message {ref.message_id}: {e.message}",
                    channel=ref.channel,
                ) from e
            seen.add(current.ref)
            chain.append(current)

        chain.reverse()
        return chain

    def to_turn(self, message: ChatMessage) -> ConversationTurn:
        if message.author_id == self.identity.user_id:
            return ConversationTurn(role="assistant", text=message.text)
        return ConversationTurn(role="user", text=self.mention_filter.strip(message.text))

    async def assemble(self, message: ChatMessage) -> list[ConversationTurn]:
        chain = await self.reply_chain(message)
        turns = [ConversationTurn(role="system", text=self.system_prompt)]
        turns.extend(self.to_turn(m) for m in chain)
        return turns
