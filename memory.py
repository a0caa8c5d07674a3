"""
MicroClaw — File Memory
Markdown long-term memory, dated daily notes, and per-chat JSONL history.
"""

import json
import logging
import threading
import time
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from pathlib import Path

log = logging.getLogger("microclaw.memory")

LONG_TERM_FILE = "MEMORY.md"
DAILY_DIR = "daily"
SESSIONS_DIR = "sessions"


@dataclass
class ChatMessage:
    role: str
    content: str
    timestamp: float = 0.0


def _read_text(path: Path) -> str:
    """Read a UTF-8 file, returning "" when it is missing or unreadable."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return ""
    except (OSError, UnicodeDecodeError) as e:
        log.warning(f"Could not read {path}: {e}")
        return ""


class MemoryStore:
    """
    Plain-file memory the assistant itself can read and edit.

    Layout under ``root``:
      MEMORY.md               long-term memory
      daily/YYYY-MM-DD.md     daily notes
      sessions/<chat>.jsonl   conversation history, one message per line
    """

    def __init__(self, root: str = ".microclaw/memory"):
        self.root = Path(root)
        self.daily_dir = self.root / DAILY_DIR
        self.sessions_dir = self.root / SESSIONS_DIR
        self._lock = threading.Lock()
        for directory in (self.root, self.daily_dir, self.sessions_dir):
            directory.mkdir(parents=True, exist_ok=True)

    # ── Long-term Memory ─────────────────────────────────────

    @property
    def long_term_path(self) -> Path:
        return self.root / LONG_TERM_FILE

    def read_long_term(self) -> str:
        """Return MEMORY.md contents (stripped), or "" if there is none."""
        return _read_text(self.long_term_path).strip()

    def write_long_term(self, text: str):
        """Overwrite MEMORY.md."""
        with self._lock:
            self.long_term_path.write_text(text, encoding="utf-8")

    # ── Daily Notes ──────────────────────────────────────────

    def daily_path(self, day: date) -> Path:
        return self.daily_dir / f"{day.isoformat()}.md"

    def append_today(self, text: str, today: date | None = None):
        """Append a line to today's note, creating the file if needed."""
        if not text.strip():
            return
        day = today or date.today()
        path = self.daily_path(day)
        with self._lock:
            is_new = not path.exists()
            with path.open("a", encoding="utf-8") as f:
                if is_new:
                    f.write(f"# {day.isoformat()}\n\n")
                f.write(text.rstrip("\n") + "\n")

    def read_recent(self, days: int = 3, today: date | None = None) -> str:
        """Join the last ``days`` daily notes, newest first.

        Each note is preceded by a ``### YYYY-MM-DD`` heading. Days without a
        note are skipped.
        """
        day = today or date.today()
        parts: list[str] = []
        for offset in range(max(0, days)):
            current = day - timedelta(days=offset)
            content = _read_text(self.daily_path(current)).strip()
            if content:
                parts.append(f"### {current.isoformat()}\n\n{content}")
        return "\n\n".join(parts)

    # ── Session History ──────────────────────────────────────

    def _session_path(self, session_id: str) -> Path:
        safe = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in session_id) or "default"
        return self.sessions_dir / f"{safe}.jsonl"

    def append_message(self, session_id: str, role: str, content: str):
        """Save one message to the session log."""
        if not content.strip():
            return
        record = ChatMessage(role=role, content=content, timestamp=time.time())
        line = json.dumps(asdict(record), ensure_ascii=False)
        with self._lock:
            with self._session_path(session_id).open("a", encoding="utf-8") as f:
                f.write(line + "\n")

    def get_recent(self, session_id: str, limit: int = 20) -> list[dict]:
        """Get the last ``limit`` messages for a session, oldest first.

        Corrupt lines are skipped rather than failing the whole history.
        """
        raw = _read_text(self._session_path(session_id))
        messages: list[dict] = []
        for line in raw.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except ValueError:
                log.debug(f"[{session_id}] Skipping corrupt history line")
                continue
            if not isinstance(entry, dict):
                continue
            role = entry.get("role")
            content = entry.get("content")
            if isinstance(role, str) and isinstance(content, str):
                messages.append({"role": role, "content": content})
        if limit > 0:
            messages = messages[-limit:]
        return messages

    def get_history_json(self, session_id: str, limit: int = 20) -> str:
        """Serialized history in the shape the prompt assembler expects."""
        return json.dumps(self.get_recent(session_id, limit), ensure_ascii=False, separators=(",", ":"))

    def clear_session(self, session_id: str):
        """Delete the history for a session."""
        with self._lock:
            self._session_path(session_id).unlink(missing_ok=True)

    # ── Stats ─────────────────────────────────────────────────

    def stats(self) -> dict:
        """Return memory statistics."""
        sessions = list(self.sessions_dir.glob("*.jsonl"))
        daily_notes = list(self.daily_dir.glob("*.md"))
        long_term = self.read_long_term()
        return {
            "sessions": len(sessions),
            "daily_notes": len(daily_notes),
            "long_term_chars": len(long_term),
        }
