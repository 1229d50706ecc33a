"""Application entrypoint and Telegram handler registration."""

from __future__ import annotations

from telegram.ext import Application, MessageHandler, filters

from config import ConfigError, load_config, require_config

from .bot import RelayBot
from .logging_setup import configure_optional_json_logging, log
from .personality import resolve_runtime_path


def main():
    """Start the relaybot Telegram bot."""
    try:
        config = require_config(load_config())
    except ConfigError as e:
        for problem in e.problems:
            log.error(f"Config: {problem}. Set it in .env")
        return

    # Resolve runtime paths relative to RELAYBOT_HOME (if set) or project root.
    config.message_log_path = str(resolve_runtime_path(config.message_log_path))
    configure_optional_json_logging(resolve_runtime_path(".relaybot"))

    log.info("relaybot starting...")
    log.info(f"   Backend: {config.llm_backend} ({config.llm_model})")
    log.info(f"   Endpoint: {config.llm_api_url}")
    log.info(f"   Message log: {config.message_log_path}")
    log.info(
        f"   Limits: {config.max_message_length} chars/message, "
        f"flush every {config.flush_threshold} chars, "
        f"{config.max_reply_depth} reply-chain ancestors"
    )
    if config.stream_timeout_sec:
        log.info(f"   Stream read timeout: {config.stream_timeout_sec}s")
    else:
        log.info("   Stream read timeout: disabled")
    if config.telegram_allowed_users:
        log.info(f"   Allowed users: {', '.join(config.telegram_allowed_users)}")
    else:
        log.info("   Allowed users: everyone")

    try:
        bot = RelayBot(config)
    except ValueError as e:
        log.error(f"Failed to initialize backend: {e}")
        return

    if config.message_log_retention_days > 0:
        bot.message_log.prune(config.message_log_retention_days * 86400)
    stats = bot.message_log.stats()
    log.info(f"   Known messages: {stats['total_messages']} in {stats['unique_chats']} chats")
    if config.system_prompt:
        log.info("   Persona: SYSTEM_PROMPT")
    elif config.persona_path:
        log.info(f"   Persona: {config.persona_path}")
    else:
        log.info("   Persona: built-in default")

    # Build Telegram application; updates are handled concurrently, one task per message.
    app = (
        Application.builder()
        .token(config.telegram_bot_token)
        .concurrent_updates(True)
        .post_init(bot.post_init)
        .build()
    )

    text_or_caption = (filters.TEXT | filters.CAPTION) & ~filters.COMMAND
    app.add_handler(
        MessageHandler(filters.UpdateType.MESSAGE & text_or_caption, bot.handle_message)
    )
    app.add_handler(
        MessageHandler(filters.UpdateType.EDITED_MESSAGE & text_or_caption, bot.handle_edited_message)
    )
    app.add_error_handler(bot.on_error)

    log.info("relaybot is running! Press Ctrl+C to stop.")

    # Longer Telegram long-poll timeout reduces idle request churn.
    app.run_polling(drop_pending_updates=True, timeout=30)


if __name__ == "__main__":
    main()
