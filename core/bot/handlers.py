"""Telegram text handler feeding inbound messages into the chat pipeline."""

from __future__ import annotations

from telegram import Message, Update
from telegram.constants import ChatAction
from telegram.error import TelegramError
from telegram.ext import ContextTypes

from ..logging_setup import log
from .messaging import to_chat_message


class BotHandlersMixin:
    # ── Message Handler (the core loop) ───────────────────────

    async def handle_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Record every text message; reply to the ones addressed to the bot."""
        message = update.effective_message
        if not message or not (message.text or message.caption):
            return
        if self.pipeline is None or self.identity is None:
            log.warning("Message received before the bot identity was resolved; ignoring")
            return

        self._record_reply_target(message)

        chat_message = to_chat_message(message, self.identity)
        self.message_log.record(chat_message)

        if not self.pipeline.is_triggered(chat_message):
            return
        if not self.is_allowed(update.effective_user.id if update.effective_user else 0):
            return

        session_id = chat_message.ref.channel
        self._log_user_message(session_id, chat_message.text)
        try:
            await context.bot.send_chat_action(chat_id=int(session_id), action=ChatAction.TYPING)
        except TelegramError as e:
            log.debug(f"[{session_id}] Typing indicator failed: {e}")

        await self.pipeline.handle(chat_message)

    def _record_reply_target(self, message: Message) -> bool:
        """Store the replied-to message Telegram embeds. Returns True if it was new to the log.

        The embedded copy carries no reply link of its own, so a target the
        bot never saw becomes the root of its chain: context for threads
        that began before the message log existed starts at that message.
        """
        reply = message.reply_to_message
        if not reply or not (reply.text or reply.caption):
            return False
        target = to_chat_message(reply, self.identity)
        if self.message_log.get(target.ref) is not None:
            return False
        self.message_log.record(target, replace=False)
        log.info(
            f"[{target.ref.channel}] Reply target {target.ref.message_id} was not in the message log; "
            "reply-chain context starts there"
        )
        return True

    async def handle_edited_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Keep the message log in sync with edits; edits never trigger a reply."""
        message = update.effective_message
        if not message or not (message.text or message.caption) or self.identity is None:
            return
        self.message_log.record(to_chat_message(message, self.identity))
