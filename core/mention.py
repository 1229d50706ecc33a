"""Removal of mention tokens addressed to the bot."""

from __future__ import annotations

import re

from config import ConfigError

from .constants import MENTION_TRAILING_WHITESPACE, MENTION_USERNAME_BOUNDARY


class MentionFilter:
    """Strips every occurrence of the bot's mention token from message text.

    The match is global rather than anchored, since quoted or forwarded
    text may repeat the mention. Whitespace directly after a token is
    removed with it.
    """

    def __init__(self, mention_token: str, ignore_case: bool = False):
        token = (mention_token or "").strip()
        if not token:
            raise ConfigError(["bot mention token is empty; cannot build mention pattern"])
        flags = re.IGNORECASE if ignore_case else 0
        self.token = token
        self.pattern = re.compile(
            re.escape(token) + MENTION_USERNAME_BOUNDARY + MENTION_TRAILING_WHITESPACE, flags
        )

    def mentions(self, text: str) -> bool:
        return bool(text) and self.pattern.search(text) is not None

    def strip(self, text: str) -> str:
        if not text:
            return ""
        # Removing one token can splice a new one together ("@b@botot"), so
        # repeat until nothing matches.
        while True:
            cleaned = self.pattern.sub("", text)
            if cleaned == text:
                return cleaned
            text = cleaned
