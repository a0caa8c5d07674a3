"""Slash commands. Replies are markdown, rendered like any LLM reply."""

from __future__ import annotations

import asyncio
import functools
import time

from telegram import Update
from telegram.ext import ContextTypes

COMMANDS_HELP = (
    "/start - Welcome message\n"
    "/help - This help message\n"
    "/clear - Forget this chat's conversation history\n"
    "/memory - Memory statistics\n"
    "/remember <text> - Add a line to long-term memory\n"
    "/note <text> - Add a line to today's notes\n"
    "/show - Provider, model, buffers and uptime"
)


def bot_command(name: str):
    """Apply the allowlist, log the invocation, and pass ``(session_id, argument_text)``."""

    def decorate(handler):
        @functools.wraps(handler)
        async def wrapper(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
            if not update.effective_user or not update.message:
                return
            if not self.is_allowed(update.effective_user.id):
                return
            session_id = self._session_id_from_update(update)
            argument = " ".join(context.args or []).strip()
            self._log_user_message(session_id, f"/{name} {argument}".rstrip())
            reply = await handler(self, session_id, argument)
            await self._reply_markdown(update, reply)

        return wrapper

    return decorate


class BotCommandsMixin:
    @bot_command("start")
    async def cmd_start(self, session_id: str, argument: str) -> str:
        return (
            "🦐 **MicroClaw** is ready!\n\n"
            "Before every reply I read my long-term memory file and the last "
            f"{self.config.recent_notes_days} days of notes.\n\n"
            f"**Commands:**\n{COMMANDS_HELP}"
        )

    @bot_command("help")
    async def cmd_help(self, session_id: str, argument: str) -> str:
        return f"🦐 **MicroClaw Commands**\n\n{COMMANDS_HELP}"

    @bot_command("clear")
    async def cmd_clear(self, session_id: str, argument: str) -> str:
        await asyncio.to_thread(self.memory.clear_session, session_id)
        return "🗑️ Conversation cleared. Long-term memory and daily notes are kept."

    @bot_command("memory")
    async def cmd_memory(self, session_id: str, argument: str) -> str:
        stats = await asyncio.to_thread(self.memory.stats)
        return (
            "🧠 **Memory**\n\n"
            f"Sessions: {stats['sessions']}\n"
            f"Daily notes: {stats['daily_notes']}\n"
            f"Long-term memory: {stats['long_term_chars']:,} chars"
        )

    @bot_command("remember")
    async def cmd_remember(self, session_id: str, argument: str) -> str:
        if not argument:
            return "Usage: /remember <text>"
        existing = await asyncio.to_thread(self.memory.read_long_term)
        updated = f"{existing}\n- {argument}\n" if existing else f"# Long-term Memory\n\n- {argument}\n"
        await asyncio.to_thread(self.memory.write_long_term, updated)
        return "📌 Saved to long-term memory."

    @bot_command("note")
    async def cmd_note(self, session_id: str, argument: str) -> str:
        if not argument:
            return "Usage: /note <text>"
        await asyncio.to_thread(self.memory.append_today, f"- [{time.strftime('%H:%M')}] {argument}")
        return "📝 Added to today's notes."

    @bot_command("show")
    async def cmd_show(self, session_id: str, argument: str) -> str:
        minutes, seconds = divmod(int(time.time() - self.start_time), 60)
        hours, minutes = divmod(minutes, 60)
        cfg = self.config
        return (
            "🦐 **MicroClaw Status**\n\n"
            f"Provider: `{cfg.llm_provider}`\n"
            f"Model: `{cfg.llm_model}`\n"
            f"Max output: {cfg.max_output_tokens:,} tokens\n"
            f"History: last {cfg.history_max_messages} messages, {cfg.history_capacity:,} byte buffer\n"
            f"System prompt buffer: {cfg.system_prompt_capacity:,} bytes\n"
            f"Uptime: {hours}h {minutes}m {seconds}s"
        )
