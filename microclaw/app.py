"""Application entrypoint and Telegram handler registration."""

from __future__ import annotations

from telegram.ext import Application, CommandHandler, MessageHandler, filters

from config import Config, load_config

from .bot import MicroClawBot
from .context import resolve_runtime_path
from .logging_setup import configure_optional_json_logging, log

COMMANDS = ("start", "help", "clear", "memory", "remember", "note", "show")


def _resolve_paths(config: Config):
    """Make memory and bootstrap paths absolute (MICROCLAW_HOME or project root)."""
    for name in ("memory_dir", "soul_file", "user_file"):
        setattr(config, name, str(resolve_runtime_path(getattr(config, name))))


def build_application(config: Config, bot: MicroClawBot) -> Application:
    app = Application.builder().token(config.telegram_bot_token).build()
    for command in COMMANDS:
        app.add_handler(CommandHandler(command, getattr(bot, f"cmd_{command}")))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, bot.handle_message))
    app.add_error_handler(bot.on_error)
    return app


def main():
    """Start the MicroClaw Telegram bot."""
    config = load_config()
    _resolve_paths(config)
    configure_optional_json_logging(resolve_runtime_path(".microclaw"))

    if not config.telegram_bot_token:
        log.error("TELEGRAM_BOT_TOKEN is required. Set it in .env")
        return
    if not config.llm_provider:
        log.error("No LLM provider configured. Set LLM_PROVIDER and its API key in .env")
        return

    try:
        bot = MicroClawBot(config)
    except ValueError as e:
        log.error(f"Provider setup failed: {e}")
        return

    stats = bot.memory.stats()
    allowed = ", ".join(config.telegram_allowed_users) or "everyone"
    log.info(
        f"🦐 MicroClaw starting: {config.llm_provider} ({config.llm_model}), "
        f"memory {config.memory_dir} [{stats['sessions']} sessions, {stats['daily_notes']} daily notes, "
        f"{stats['long_term_chars']} long-term chars], "
        f"prompt buffer {config.system_prompt_capacity} B, history buffer {config.history_capacity} B, "
        f"allowed users: {allowed}"
    )

    # Long poll timeout keeps idle request churn low.
    build_application(config, bot).run_polling(drop_pending_updates=True, timeout=30)


if __name__ == "__main__":
    main()
