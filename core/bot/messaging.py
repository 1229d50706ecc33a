"""Telegram chat surface, message conversion, and framework error handling."""

from __future__ import annotations

import time
from typing import Optional

from telegram import Message, MessageEntity, ReplyParameters, Update
from telegram.constants import ChatType
from telegram.error import BadRequest, Conflict, NetworkError, RetryAfter, TelegramError, TimedOut
from telegram.ext import ContextTypes

from message_log import MessageLog

from ..errors import SurfaceError
from ..logging_setup import log
from ..types import BotIdentity, ChatMessage, MessageRef

_MENTION_TYPES = [MessageEntity.MENTION, MessageEntity.TEXT_MENTION]


def message_ref(message: Message) -> MessageRef:
    return MessageRef(channel=str(message.chat.id), message_id=str(message.message_id))


def to_chat_message(message: Message, identity: BotIdentity) -> ChatMessage:
    """Convert a Telegram message into the pipeline's view of it."""
    if message.from_user:
        author_id = str(message.from_user.id)
    elif message.sender_chat:
        author_id = str(message.sender_chat.id)
    else:
        author_id = ""

    if message.text:
        text = message.text
        entities = message.parse_entities(_MENTION_TYPES)
    else:
        text = message.caption or ""
        entities = message.parse_caption_entities(_MENTION_TYPES)

    mentions: set[str] = set()
    for entity, value in entities.items():
        if entity.type == MessageEntity.MENTION and value.lower() == identity.mention_token.lower():
            mentions.add(identity.user_id)
        elif entity.type == MessageEntity.TEXT_MENTION and entity.user:
            mentions.add(str(entity.user.id))

    reply = message.reply_to_message
    if reply and reply.from_user and str(reply.from_user.id) == identity.user_id:
        mentions.add(identity.user_id)
    # Private chats have no mentions; everything there is addressed to the bot.
    if message.chat.type == ChatType.PRIVATE:
        mentions.add(identity.user_id)

    return ChatMessage(
        ref=message_ref(message),
        author_id=author_id,
        text=text,
        reply_to=message_ref(reply) if reply else None,
        mentions=frozenset(mentions),
    )


class TelegramSurface:
    """ChatSurface backed by the Telegram Bot API and the local message log."""

    def __init__(self, bot, message_log: MessageLog, identity: BotIdentity):
        self.bot = bot
        self.message_log = message_log
        self.identity = identity

    async def send_message(
        self, channel: str, text: str, reply_to: Optional[MessageRef] = None
    ) -> MessageRef:
        kwargs = {}
        if reply_to is not None:
            kwargs["reply_parameters"] = ReplyParameters(
                message_id=int(reply_to.message_id),
                allow_sending_without_reply=True,
            )
        try:
            sent = await self.bot.send_message(chat_id=int(channel), text=text, **kwargs)
        except TelegramError as e:
            raise SurfaceError(code="SEND_FAILED", message=str(e)) from e

        ref = MessageRef(channel=channel, message_id=str(sent.message_id))
        self.message_log.record(
            ChatMessage(ref=ref, author_id=self.identity.user_id, text=text, reply_to=reply_to)
        )
        return ref

    async def edit_message(self, ref: MessageRef, text: str) -> None:
        try:
            await self.bot.edit_message_text(
                text=text,
                chat_id=int(ref.channel),
                message_id=int(ref.message_id),
            )
        except BadRequest as e:
            if "not modified" not in str(e).lower():
                raise SurfaceError(code="EDIT_FAILED", message=str(e)) from e
        except TelegramError as e:
            raise SurfaceError(code="EDIT_FAILED", message=str(e)) from e
        self.message_log.update_text(ref, text)

    async def fetch_message(self, channel: str, message_id: str) -> ChatMessage:
        message = self.message_log.get(MessageRef(channel=channel, message_id=message_id))
        if message is None:
            raise SurfaceError(
                code="MESSAGE_NOT_FOUND",
                message=f"message {message_id} in chat {channel} was never seen by the bot",
            )
        return message


class BotMessagingMixin:
    # ── Global Telegram Error Handler ────────────────────────

    async def on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        """Handle Telegram framework errors without noisy unstructured tracebacks."""
        err = context.error
        session_id = "unknown"
        if isinstance(update, Update):
            session_id = self._session_id_from_update(update)

        if isinstance(err, Conflict):
            now = time.time()
            # Polling conflicts repeat every few seconds; avoid log spam.
            if now - self._last_telegram_conflict_log_at >= 30:
                self._last_telegram_conflict_log_at = now
                log.warning(
                    f"[{session_id}] Telegram polling conflict: another bot instance is using getUpdates. "
                    "Keep only one relaybot process active for this bot token."
                )
            return
        if isinstance(err, RetryAfter):
            log.warning(f"[{session_id}] Telegram rate limit: retry after {err.retry_after}s")
            return
        if isinstance(err, (TimedOut, NetworkError)):
            log.warning(f"[{session_id}] Telegram network issue: {err}")
            return

        log.exception(f"[{session_id}] Unhandled Telegram error", exc_info=err)
