import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

from memory import MemoryStore  # noqa: E402

CONFIG_ENV_VARS = (
    "LLM_PROVIDER",
    "LLM_MODEL",
    "MAX_OUTPUT_TOKENS",
    "ANTHROPIC_API_KEY",
    "OPENAI_API_KEY",
    "XAI_API_KEY",
    "DEEPSEEK_API_KEY",
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_ALLOWED_USERS",
    "MEMORY_DIR",
    "SOUL_FILE",
    "USER_FILE",
    "RECENT_NOTES_DAYS",
    "HISTORY_MAX_MESSAGES",
    "SYSTEM_PROMPT_CAPACITY",
    "HISTORY_CAPACITY",
    "MICROCLAW_HOME",
)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every config variable so tests start from defaults."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def memory_store(tmp_path):
    return MemoryStore(str(tmp_path / "memory"))
