#!/usr/bin/env python3
"""
MicroClaw — Pocket AI Assistant for Telegram
=============================================
Telegram Polling → handle_message → Prompt Assembly → LLM → Markdown→HTML → Reply

  - System prompt from a fixed template, SOUL.md / USER.md, MEMORY.md and recent daily notes
  - Per-chat JSONL history, serialized into the LLM message list
  - Bounded markdown → Telegram HTML conversion (never exceeds the 4096 limit)
"""

from microclaw import main

if __name__ == "__main__":
    main()
