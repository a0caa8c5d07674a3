"""Runtime path resolution, system prompt construction, and history assembly.

Assembly is best-effort: missing bootstrap files, empty memory, and
unparsable history all degrade to defaults so the assistant keeps working
with partial context.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

from memory import MemoryStore

from .constants import PROJECT_ROOT, SYSTEM_PROMPT_TEMPLATE
from .logging_setup import log
from .sink import BoundedWriter
from .types import AssemblyStatus


def resolve_runtime_path(path_value: str) -> Path:
    """Resolve configured paths relative to MICROCLAW_HOME or project root."""
    runtime_home = os.getenv("MICROCLAW_HOME", "").strip()
    base_dir = Path(runtime_home).expanduser().resolve() if runtime_home else PROJECT_ROOT
    path = Path(path_value).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path.resolve()


def _read_bootstrap(path: str | Path | None) -> str:
    """Read an optional bootstrap file; absent or unreadable files yield ""."""
    if not path:
        return ""
    filepath = Path(path)
    if not filepath.is_file():
        return ""
    try:
        return filepath.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        log.warning(f"Skipping unreadable bootstrap file {filepath}: {e}")
        return ""


def buffer_text(buffer: bytearray | memoryview) -> str:
    """Decode a NUL-terminated UTF-8 buffer, dropping a cut trailing character."""
    raw = bytes(buffer)
    end = raw.find(b"\0")
    if end != -1:
        raw = raw[:end]
    return raw.decode("utf-8", errors="ignore")


def _copy_out(data: bytes, buffer: bytearray | memoryview | None, capacity: int) -> AssemblyStatus:
    if buffer is None:
        return AssemblyStatus.TRUNCATED if data else AssemblyStatus.OK
    writer = BoundedWriter(buffer, capacity)
    writer.fill(data)
    writer.finish()
    return AssemblyStatus.TRUNCATED if writer.truncated else AssemblyStatus.OK


# ── System Prompt ─────────────────────────────────────────────


def render_system_prompt(
    memory: MemoryStore | None = None,
    soul_path: str | Path | None = None,
    user_path: str | Path | None = None,
    recent_days: int = 3,
) -> str:
    """Build the full system prompt: template, bootstrap files, memory, notes."""
    parts = [SYSTEM_PROMPT_TEMPLATE]

    for header, path in (("Personality", soul_path), ("User Info", user_path)):
        content = _read_bootstrap(path)
        if content:
            parts.append(f"## {header}\n\n{content}")

    if memory is not None:
        long_term = memory.read_long_term()
        if long_term:
            parts.append(f"## Long-term Memory\n\n{long_term}")

        recent = memory.read_recent(recent_days)
        if recent:
            parts.append(f"## Recent Notes\n\n{recent}")

    return "\n\n".join(parts) + "\n"


def build_system_prompt(
    buffer: bytearray | memoryview,
    capacity: int,
    *,
    memory: MemoryStore | None = None,
    soul_path: str | Path | None = None,
    user_path: str | Path | None = None,
    recent_days: int = 3,
) -> AssemblyStatus:
    """Write the system prompt into ``buffer`` (UTF-8, NUL-terminated).

    Text beyond ``capacity - 1`` bytes is cut off and reported as
    ``AssemblyStatus.TRUNCATED``.
    """
    prompt = render_system_prompt(memory, soul_path, user_path, recent_days)
    data = prompt.encode("utf-8", errors="replace")
    status = _copy_out(data, buffer, capacity)
    log.info(
        f"System prompt built: {len(data)} bytes ({status.value})",
        extra={"event": "system_prompt", "bytes": len(data), "capacity": capacity, "status": status.value},
    )
    return status


# ── Message History ───────────────────────────────────────────


def _parse_history(history_json: str | bytes | None) -> list:
    if not history_json:
        return []
    try:
        parsed = json.loads(history_json)
    except (ValueError, RecursionError) as e:
        log.warning(f"Unparsable message history, starting fresh: {e}")
        return []
    if not isinstance(parsed, list):
        log.warning("Message history is not a JSON list, starting fresh")
        return []
    return parsed


def _history_bytes(history_json: str | bytes | None, user_text: str) -> bytes:
    history = _parse_history(history_json)
    history.append({"role": "user", "content": user_text})
    try:
        return json.dumps(history, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError) as e:
        log.warning(f"History serialization failed, sending the new message alone: {e}")
        fallback = f'[{{"role":"user","content":"{user_text}"}}]'
        return fallback.encode("utf-8", errors="replace")


def render_message_history(history_json: str | bytes | None, user_text: str) -> str:
    """Append the new user turn to a serialized history and re-serialize it."""
    return _history_bytes(history_json, user_text).decode("utf-8", errors="replace")


def build_message_history(
    history_json: str | bytes | None,
    user_text: str,
    buffer: bytearray | memoryview,
    capacity: int,
) -> AssemblyStatus:
    """Write the history plus the new user turn into ``buffer`` as compact JSON."""
    return _copy_out(_history_bytes(history_json, user_text), buffer, capacity)
