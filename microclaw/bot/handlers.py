"""Text message handler: one user turn through assembly, the LLM, and delivery."""

from __future__ import annotations

import asyncio
import time

from telegram import Update
from telegram.constants import ChatAction
from telegram.error import TelegramError
from telegram.ext import ContextTypes

from ..logging_setup import log

PLACEHOLDER_TEXT = "Thinking... 💭"
EMPTY_REPLY_TEXT = "Done."


class BotHandlersMixin:
    async def handle_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        if not update.effective_user or not update.message or not update.message.text:
            return
        if not self.is_allowed(update.effective_user.id):
            return
        await self._process_user_message(update, context, update.message.text)

    async def _show_placeholder(self, update: Update, context: ContextTypes.DEFAULT_TYPE, session_id: str):
        """Typing indicator plus a placeholder message the reply will replace."""
        try:
            await context.bot.send_chat_action(chat_id=update.effective_chat.id, action=ChatAction.TYPING)
            return await update.message.reply_text(PLACEHOLDER_TEXT)
        except TelegramError as e:
            log.debug(f"[{session_id}] Could not send placeholder: {e}")
            return None

    def _assemble_request(self, session_id: str, user_text: str) -> tuple[str, list[dict]]:
        return self._build_system_prompt(session_id), self._build_messages(session_id, user_text)

    def _record_turn(self, session_id: str, user_text: str, reply: str):
        """Store the user turn, and the reply unless it is a provider failure."""
        self.memory.append_message(session_id, "user", user_text)
        if not self._is_provider_error_text(reply):
            self.memory.append_message(session_id, "assistant", reply)

    async def _process_user_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE, user_text: str):
        session_id = self._session_id_from_update(update)
        self._log_user_message(session_id, user_text)

        placeholder = await self._show_placeholder(update, context, session_id) if update.effective_chat else None
        system_prompt, messages = await asyncio.to_thread(self._assemble_request, session_id, user_text)

        started = time.monotonic()
        reply = await self.llm.chat(messages, system_prompt)
        log.info(f"[{session_id}] LLM response in {time.monotonic() - started:.1f}s ({len(messages)} messages sent)")
        if not reply or not reply.strip():
            reply = EMPTY_REPLY_TEXT

        await asyncio.to_thread(self._record_turn, session_id, user_text, reply)
        await self._send_response(placeholder, update, reply)
