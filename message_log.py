"""
relaybot — Message log
SQLite record of chat messages the bot has seen or sent.

The Telegram Bot API has no "get message by id" call, so reply chains are
resolved from this log instead.
"""

import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Optional

from core.types import ChatMessage, MessageRef

log = logging.getLogger("relaybot.message_log")


class MessageLog:
    """Persistent (chat_id, message_id) → message store."""

    def __init__(self, db_path: str = "relaybot.db"):
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.db = sqlite3.connect(db_path, check_same_thread=False)
        self._init_db()

    def _init_db(self):
        """Create tables if they don't exist."""
        self.db.executescript("""
            CREATE TABLE IF NOT EXISTS messages (
                chat_id TEXT NOT NULL,
                message_id TEXT NOT NULL,
                author_id TEXT NOT NULL,
                text TEXT NOT NULL,
                reply_to_chat_id TEXT,
                reply_to_message_id TEXT,
                mentions TEXT NOT NULL DEFAULT '[]',
                updated REAL NOT NULL,
                PRIMARY KEY (chat_id, message_id)
            );
            CREATE INDEX IF NOT EXISTS idx_messages_updated
                ON messages(updated);
        """)
        self.db.commit()

    # ── Write ────────────────────────────────────────────────

    def record(self, message: ChatMessage, replace: bool = True):
        """Insert a message; an existing row is kept unless `replace` is set."""
        reply = message.reply_to
        verb = "INSERT OR REPLACE" if replace else "INSERT OR IGNORE"
        self.db.execute(
            f"{verb} INTO messages "
            "(chat_id, message_id, author_id, text, reply_to_chat_id, reply_to_message_id, mentions, updated) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                message.ref.channel,
                message.ref.message_id,
                message.author_id,
                message.text,
                reply.channel if reply else None,
                reply.message_id if reply else None,
                json.dumps(sorted(message.mentions)),
                time.time(),
            ),
        )
        self.db.commit()

    def update_text(self, ref: MessageRef, text: str) -> bool:
        """Update the stored text of an edited message. Returns False if unknown."""
        cursor = self.db.execute(
            "UPDATE messages SET text = ?, updated = ? WHERE chat_id = ? AND message_id = ?",
            (text, time.time(), ref.channel, ref.message_id),
        )
        self.db.commit()
        return cursor.rowcount > 0

    # ── Read ─────────────────────────────────────────────────

    def get(self, ref: MessageRef) -> Optional[ChatMessage]:
        row = self.db.execute(
            "SELECT author_id, text, reply_to_chat_id, reply_to_message_id, mentions "
            "FROM messages WHERE chat_id = ? AND message_id = ?",
            (ref.channel, ref.message_id),
        ).fetchone()
        if row is None:
            return None

        author_id, text, reply_chat, reply_message, mentions_raw = row
        reply_to = MessageRef(reply_chat, reply_message) if reply_message else None
        return ChatMessage(
            ref=ref,
            author_id=author_id,
            text=text,
            reply_to=reply_to,
            mentions=frozenset(json.loads(mentions_raw or "[]")),
        )

    # ── Maintenance ──────────────────────────────────────────

    def prune(self, max_age_sec: float) -> int:
        """Delete messages not touched within `max_age_sec`. Returns the count removed."""
        cutoff = time.time() - max_age_sec
        cursor = self.db.execute("DELETE FROM messages WHERE updated < ?", (cutoff,))
        self.db.commit()
        if cursor.rowcount:
            log.info(f"Pruned {cursor.rowcount} messages older than {max_age_sec:.0f}s")
        return cursor.rowcount

    def stats(self) -> dict:
        """Return message log statistics."""
        total = self.db.execute("SELECT COUNT(*) FROM messages").fetchone()[0]
        chats = self.db.execute("SELECT COUNT(DISTINCT chat_id) FROM messages").fetchone()[0]
        return {"total_messages": total, "unique_chats": chats}
