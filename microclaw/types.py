"""Shared datatypes for MicroClaw."""

from __future__ import annotations

from enum import Enum


class AssemblyStatus(str, Enum):
    """Outcome of writing assembled prompt text into a fixed-size buffer."""

    OK = "ok"
    TRUNCATED = "truncated"
