"""Per-session prompt and history assembly for LLM calls."""

from __future__ import annotations

import json

from ..context import buffer_text, build_message_history, build_system_prompt
from ..logging_setup import log
from ..types import AssemblyStatus


class BotContextMixin:
    def _build_system_prompt(self, session_id: str) -> str:
        """Assemble the system prompt into a bounded buffer."""
        capacity = self.config.system_prompt_capacity
        buffer = bytearray(capacity)
        status = build_system_prompt(
            buffer,
            capacity,
            memory=self.memory,
            soul_path=self.config.soul_file,
            user_path=self.config.user_file,
            recent_days=self.config.recent_notes_days,
        )
        if status is AssemblyStatus.TRUNCATED:
            log.warning(
                f"[{session_id}] System prompt truncated to {capacity} bytes",
                extra={"event": "system_prompt", "session": session_id, "capacity": capacity, "status": status.value},
            )
        return buffer_text(buffer)

    def _build_messages(self, session_id: str, user_text: str) -> list[dict]:
        """Return stored history plus the new user turn.

        When the serialized history does not fit the history buffer, older
        messages are dropped (halving the window) until it does.
        """
        capacity = self.config.history_capacity
        buffer = bytearray(capacity)
        limit = self.config.history_max_messages

        while True:
            history_json = self.memory.get_history_json(session_id, limit) if limit else "[]"
            status = build_message_history(history_json, user_text, buffer, capacity)
            if status is AssemblyStatus.OK or limit == 0:
                break
            limit //= 2
            log.warning(
                f"[{session_id}] History exceeds {capacity} bytes, keeping last {limit} messages",
                extra={"event": "history_window", "session": session_id, "capacity": capacity},
            )

        if status is AssemblyStatus.TRUNCATED:
            return [{"role": "user", "content": user_text}]

        try:
            messages = json.loads(buffer_text(buffer))
        except ValueError:
            log.warning(f"[{session_id}] Assembled history is not valid JSON, sending the new message alone")
            return [{"role": "user", "content": user_text}]
        return [m for m in messages if isinstance(m, dict)]
