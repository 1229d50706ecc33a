"""Core bot base state and shared utility methods."""

from __future__ import annotations

import time

from telegram import Update
from telegram.ext import Application

from config import Config
from message_log import MessageLog
from providers import ChatBackend

from ..logging_setup import log
from ..mention import MentionFilter
from ..personality import load_persona
from ..pipeline import ChatPipeline
from ..types import BotIdentity
from .messaging import TelegramSurface


class BotBaseMixin:
    def __init__(
        self,
        config: Config,
        backend: ChatBackend | None = None,
        message_log: MessageLog | None = None,
    ):
        self.config = config
        self.message_log = message_log or MessageLog(config.message_log_path)
        self.backend = backend or ChatBackend(config)
        self.persona = load_persona(config)
        self.start_time = time.time()

        # Filled in once the bot's own account is known (post_init).
        self.identity: BotIdentity | None = None
        self.surface: TelegramSurface | None = None
        self.pipeline: ChatPipeline | None = None
        # Throttle repeated Telegram polling conflict warnings.
        self._last_telegram_conflict_log_at: float = 0.0

    async def post_init(self, application: Application):
        """Resolve the bot's identity and build the pipeline before polling starts."""
        me = await application.bot.get_me()
        identity = BotIdentity(user_id=str(me.id), mention_token=f"@{me.username}")
        self.setup_pipeline(application.bot, identity)
        log.info(f"   Identity: {identity.mention_token} ({identity.user_id})")

    def setup_pipeline(self, bot, identity: BotIdentity) -> ChatPipeline:
        # Telegram usernames are case-insensitive.
        mention_filter = MentionFilter(identity.mention_token, ignore_case=True)
        self.identity = identity
        self.surface = TelegramSurface(bot, self.message_log, identity)
        self.pipeline = ChatPipeline(
            backend=self.backend,
            surface=self.surface,
            identity=identity,
            mention_filter=mention_filter,
            system_prompt=self.persona,
            max_reply_depth=self.config.max_reply_depth,
            max_message_length=self.config.max_message_length,
            flush_threshold=self.config.flush_threshold,
            empty_reply=self.config.empty_reply_text,
            notify_errors=self.config.notify_errors,
        )
        return self.pipeline

    def is_allowed(self, user_id: int) -> bool:
        """Check if this user is in the allowlist (empty = allow all)."""
        if not self.config.telegram_allowed_users:
            return True
        return str(user_id) in self.config.telegram_allowed_users

    @staticmethod
    def _session_id_from_update(update: Update | None) -> str:
        if update and update.effective_chat:
            return str(update.effective_chat.id)
        return "unknown"

    @staticmethod
    def _trim_for_log(text: str, max_chars: int = 8000) -> str:
        if len(text) <= max_chars:
            return text
        return text[:max_chars] + "\n...[truncated]"

    def _log_user_message(self, session_id: str, text: str):
        log.info(f"[{session_id}] User: {self._trim_for_log(text)}")
