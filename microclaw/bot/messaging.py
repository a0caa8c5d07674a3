"""Delivering markdown replies as Telegram HTML within the message limit.

A reply is cut into markdown chunks at line (or word) boundaries, and each
chunk goes through the bounded converter. When a chunk's HTML would not fit
in one Telegram message, the chunk is halved and each half rendered again, so
every message sent is a complete, tag-balanced conversion and no text is lost.
"""

from __future__ import annotations

import time

from telegram import Update
from telegram.constants import ParseMode
from telegram.error import BadRequest, Conflict, NetworkError, RetryAfter, TelegramError, TimedOut
from telegram.ext import ContextTypes

from ..constants import MARKDOWN_CHUNK_LEN, TELEGRAM_MAX_MESSAGE_LEN
from ..logging_setup import log
from ..markdown import markdown_to_telegram_html_bounded

# Seconds between repeated polling-conflict warnings.
CONFLICT_LOG_INTERVAL = 30.0


def _split_once(text: str, limit: int) -> tuple[str, str]:
    """Cut ``text`` before ``limit``: at the last newline, else the last space, else hard."""
    at = text.rfind("\n", 0, limit)
    if at > 0:
        return text[:at], text[at:].lstrip("\n")
    at = text.rfind(" ", 0, limit)
    if at > 0:
        return text[:at], text[at + 1:]
    return text[:limit], text[limit:]


class BotMessagingMixin:
    @staticmethod
    def _chunk_message(text: str, max_len: int = MARKDOWN_CHUNK_LEN) -> list[str]:
        """Split markdown into chunks of at most ``max_len`` characters."""
        chunks = []
        while len(text) > max_len:
            head, text = _split_once(text, max_len)
            chunks.append(head)
        chunks.append(text)
        return chunks

    @classmethod
    def _render_chunks(cls, session_id: str, markdown_chunk: str) -> list[tuple[str, str]]:
        """Convert one chunk to ``(html, markdown)`` parts that each fit a message."""
        html, logical = markdown_to_telegram_html_bounded(markdown_chunk, TELEGRAM_MAX_MESSAGE_LEN)
        if logical <= TELEGRAM_MAX_MESSAGE_LEN:
            return [(html, markdown_chunk)]

        if len(markdown_chunk) < 2:
            log.warning(
                f"[{session_id}] HTML output truncated: {logical} bytes needed, limit {TELEGRAM_MAX_MESSAGE_LEN}",
                extra={"event": "html_truncated", "session": session_id, "bytes": logical},
            )
            return [(html, markdown_chunk)]

        log.debug(f"[{session_id}] Chunk renders to {logical} bytes, splitting")
        head, tail = _split_once(markdown_chunk, len(markdown_chunk) // 2)
        parts = cls._render_chunks(session_id, head) + cls._render_chunks(session_id, tail)
        return [part for part in parts if part[0].strip()]

    def _render_reply(self, session_id: str, markdown: str) -> list[tuple[str, str]]:
        parts = []
        for markdown_chunk in self._chunk_message(markdown):
            parts.extend(self._render_chunks(session_id, markdown_chunk))
        return parts

    async def _send_response(self, placeholder, update: Update, markdown_response: str):
        """Send the LLM reply, editing the placeholder with the first part."""
        session_id = self._session_id_from_update(update)
        self._log_bot_message(session_id, markdown_response)
        parts = self._render_reply(session_id, markdown_response)

        for i, (html, source) in enumerate(parts):
            if i == 0 and placeholder and await self._try_send(placeholder.edit_text, html, source):
                continue
            if update.message:
                await self._try_send(update.message.reply_text, html, source)

        if len(parts) > 1:
            log.info(
                f"[{session_id}] Reply sent as {len(parts)} messages ({len(markdown_response)} chars)",
                extra={"event": "reply_split", "session": session_id, "parts": len(parts)},
            )

    async def _reply_markdown(self, update: Update, markdown: str):
        """Reply to a command with markdown rendered the same way as LLM replies."""
        session_id = self._session_id_from_update(update)
        self._log_bot_message(session_id, markdown)
        for html, source in self._render_reply(session_id, markdown):
            await self._try_send(update.message.reply_text, html, source)

    @staticmethod
    async def _try_send(send_fn, html: str, markdown: str) -> bool:
        """Send as HTML; if Telegram rejects the markup, send the markdown source as-is."""
        try:
            await send_fn(html, parse_mode=ParseMode.HTML)
            return True
        except BadRequest as e:
            log.debug(f"HTML rejected ({e}), sending markdown source as plain text")

        try:
            await send_fn(markdown)
            return True
        except TelegramError as e:
            log.error(f"Failed to send message part: {e}")
            return False

    # ── Telegram framework errors ─────────────────────────────

    async def on_error(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        err = context.error
        session_id = self._session_id_from_update(update) if isinstance(update, Update) else "unknown"

        if isinstance(err, Conflict):
            now = time.monotonic()
            last = self._last_conflict_log_at
            if last is None or now - last >= CONFLICT_LOG_INTERVAL:
                self._last_conflict_log_at = now
                log.warning(
                    f"[{session_id}] Telegram polling conflict: another process is polling "
                    "with this bot token. Run a single MicroClaw instance."
                )
        elif isinstance(err, RetryAfter):
            log.warning(f"[{session_id}] Telegram rate limit, retry after {err.retry_after}s")
        elif isinstance(err, (TimedOut, NetworkError)):
            log.warning(f"[{session_id}] Telegram network error: {err}")
        else:
            log.error(f"[{session_id}] Unhandled Telegram error: {err}", exc_info=err)
