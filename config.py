"""
MicroClaw — Configuration
Flat .env-based configuration: environment variables into a Config dataclass.
"""

import os
import re
from dataclasses import dataclass, field
from dotenv import load_dotenv

load_dotenv()


LATEST_MODEL_DEFAULTS = {
    "claude": "claude-opus-4-5",
    "openai": "gpt-5.2",
    "xai": "grok-4-latest",
    "deepseek": "deepseek-chat",
}

# Provider -> Config field holding its API key. Order is auto-detection priority.
PROVIDER_KEY_FIELDS = {
    "claude": "anthropic_api_key",
    "openai": "openai_api_key",
    "xai": "xai_api_key",
    "deepseek": "deepseek_api_key",
}

_MODEL_DEFAULT_SENTINELS = {"", "latest", "auto", "default"}

_INLINE_COMMENT_RE = re.compile(r"\s+#.*$")


@dataclass
class Config:
    # LLM Provider
    llm_provider: str = ""
    llm_model: str = ""
    max_output_tokens: int = 4096

    # API Keys
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    xai_api_key: str = ""
    deepseek_api_key: str = ""

    # Telegram
    telegram_bot_token: str = ""
    telegram_allowed_users: list[str] = field(default_factory=list)

    # Memory & bootstrap files
    memory_dir: str = ".microclaw/memory"
    soul_file: str = ".microclaw/SOUL.md"
    user_file: str = ".microclaw/USER.md"
    recent_notes_days: int = 3
    history_max_messages: int = 20

    # Prompt buffers (bytes)
    system_prompt_capacity: int = 16384
    history_capacity: int = 65536


# Config field -> environment variable, for plain string settings.
_STRING_SETTINGS = {
    "llm_provider": "LLM_PROVIDER",
    "llm_model": "LLM_MODEL",
    "anthropic_api_key": "ANTHROPIC_API_KEY",
    "openai_api_key": "OPENAI_API_KEY",
    "xai_api_key": "XAI_API_KEY",
    "deepseek_api_key": "DEEPSEEK_API_KEY",
    "telegram_bot_token": "TELEGRAM_BOT_TOKEN",
    "memory_dir": "MEMORY_DIR",
    "soul_file": "SOUL_FILE",
    "user_file": "USER_FILE",
}

# Config field -> (environment variable, minimum accepted value).
_INT_SETTINGS = {
    "max_output_tokens": ("MAX_OUTPUT_TOKENS", 512),
    "recent_notes_days": ("RECENT_NOTES_DAYS", 0),
    "history_max_messages": ("HISTORY_MAX_MESSAGES", 1),
    "system_prompt_capacity": ("SYSTEM_PROMPT_CAPACITY", 1024),
    "history_capacity": ("HISTORY_CAPACITY", 1024),
}


def _strip_inline_comment(value: str) -> str:
    """Drop a shell-style ``# comment`` from an unquoted env value."""
    cleaned = (value or "").strip()
    if cleaned.startswith("#"):
        return ""
    return _INLINE_COMMENT_RE.sub("", cleaned).strip()


def _parse_allowed_users(raw: str) -> list[str]:
    """TELEGRAM_ALLOWED_USERS: comma-separated numeric IDs; anything else is ignored."""
    users = []
    for token in _strip_inline_comment(raw).split(","):
        token = token.split("#", 1)[0].strip()
        if token.lstrip("-").isdigit():
            users.append(token)
    return users


def _env_int(name: str, default: int) -> int:
    raw = _strip_inline_comment(os.getenv(name, ""))
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _resolve_model(provider: str, model: str) -> str:
    """Map blank/"latest"/"auto"/"default" to the provider's default model."""
    if model.lower() in _MODEL_DEFAULT_SENTINELS:
        return LATEST_MODEL_DEFAULTS.get(provider, LATEST_MODEL_DEFAULTS["claude"])
    return model


def load_config() -> Config:
    """Build a Config from the environment (after .env has been loaded)."""
    cfg = Config()

    for name, env_var in _STRING_SETTINGS.items():
        value = _strip_inline_comment(os.getenv(env_var, ""))
        if value:
            setattr(cfg, name, value)

    for name, (env_var, floor) in _INT_SETTINGS.items():
        setattr(cfg, name, max(floor, _env_int(env_var, getattr(cfg, name))))

    cfg.telegram_allowed_users = _parse_allowed_users(os.getenv("TELEGRAM_ALLOWED_USERS", ""))

    cfg.llm_provider = cfg.llm_provider.lower()
    if not cfg.llm_provider:
        cfg.llm_provider = next(
            (provider for provider, key_field in PROVIDER_KEY_FIELDS.items() if getattr(cfg, key_field)),
            "",
        )
    cfg.llm_model = _resolve_model(cfg.llm_provider, cfg.llm_model)
    return cfg
