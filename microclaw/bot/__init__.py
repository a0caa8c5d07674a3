"""Composed MicroClaw bot class built from focused mixins."""

from __future__ import annotations

from .base import BotBaseMixin
from .commands import BotCommandsMixin
from .context import BotContextMixin
from .handlers import BotHandlersMixin
from .messaging import BotMessagingMixin


class MicroClawBot(
    BotMessagingMixin,
    BotHandlersMixin,
    BotCommandsMixin,
    BotContextMixin,
    BotBaseMixin,
):
    """The main bot class wiring Telegram, Memory, and LLM together."""

    pass


__all__ = ["MicroClawBot"]
