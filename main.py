#!/usr/bin/env python3
"""
relaybot — streaming LLM assistant for Telegram
================================================
Mention the bot (or reply to it) and it answers by streaming a chat
completion from an Ollama-style or OpenAI-compatible backend, editing its
reply in place as text arrives.

Architecture: Telegram Polling → handle_message → reply-chain context →
streaming backend → incremental send/edit
"""

from core.app import main

if __name__ == "__main__":
    main()
