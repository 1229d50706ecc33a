"""Composed relaybot Telegram bot class built from focused mixins."""

from __future__ import annotations

from .base import BotBaseMixin
from .handlers import BotHandlersMixin
from .messaging import BotMessagingMixin, TelegramSurface, to_chat_message


class RelayBot(
    BotMessagingMixin,
    BotHandlersMixin,
    BotBaseMixin,
):
    """The main bot class wiring Telegram, the message log, and the chat pipeline together."""

    pass


__all__ = ["RelayBot", "TelegramSurface", "to_chat_message"]
