"""Shared bot state: config, memory, LLM client, access checks, turn logging."""

from __future__ import annotations

import time

from telegram import Update

from config import Config
from memory import MemoryStore
from providers import PROVIDER_ERROR_PREFIX, LLMClient

from ..logging_setup import log

# Longest message text mirrored to the log per turn.
LOG_TEXT_LIMIT = 8000


def _clip(text: str) -> str:
    if len(text) <= LOG_TEXT_LIMIT:
        return text
    return text[:LOG_TEXT_LIMIT] + "\n...[clipped]"


class BotBaseMixin:
    def __init__(self, config: Config, llm: LLMClient | None = None, memory: MemoryStore | None = None):
        self.config = config
        self.memory = memory or MemoryStore(config.memory_dir)
        self.llm = llm or LLMClient(config)
        self.start_time = time.time()
        self._last_conflict_log_at: float | None = None

    def is_allowed(self, user_id: int) -> bool:
        """An empty allowlist admits everyone."""
        allowed = self.config.telegram_allowed_users
        return not allowed or str(user_id) in allowed

    @staticmethod
    def _session_id_from_update(update: Update | None) -> str:
        if update and update.effective_chat:
            return str(update.effective_chat.id)
        return "unknown"

    @staticmethod
    def _log_user_message(session_id: str, text: str):
        log.info(
            f"[{session_id}] User: {_clip(text)}",
            extra={"event": "user_message", "session": session_id},
        )

    @staticmethod
    def _log_bot_message(session_id: str, text: str):
        log.info(
            f"[{session_id}] Bot: {_clip(text)}",
            extra={"event": "assistant_message", "session": session_id},
        )

    @staticmethod
    def _is_provider_error_text(text: str) -> bool:
        """Provider failures come back as reply text; they are never stored."""
        return (text or "").lstrip().startswith(PROVIDER_ERROR_PREFIX)
