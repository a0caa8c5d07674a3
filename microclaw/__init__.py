"""MicroClaw core package."""

from .app import main
from .bot import MicroClawBot
from .constants import PROJECT_ROOT, SYSTEM_PROMPT_TEMPLATE, TELEGRAM_MAX_MESSAGE_LEN
from .context import (
    build_message_history,
    build_system_prompt,
    render_message_history,
    render_system_prompt,
    resolve_runtime_path,
)
from .logging_setup import log
from .markdown import convert, escape_html, markdown_to_telegram_html, markdown_to_telegram_html_bounded
from .sink import BoundedWriter
from .types import AssemblyStatus

__all__ = [
    "AssemblyStatus",
    "BoundedWriter",
    "build_message_history",
    "build_system_prompt",
    "convert",
    "escape_html",
    "log",
    "main",
    "markdown_to_telegram_html",
    "markdown_to_telegram_html_bounded",
    "MicroClawBot",
    "PROJECT_ROOT",
    "render_message_history",
    "render_system_prompt",
    "resolve_runtime_path",
    "SYSTEM_PROMPT_TEMPLATE",
    "TELEGRAM_MAX_MESSAGE_LEN",
]
