#!/usr/bin/env python3
"""
Run one message through MicroClaw's full reply path without Telegram.

Assembles the bounded system prompt and message history for a session,
sends them to the configured provider, then renders the reply the way the
bot would, reporting how many Telegram messages it becomes.

Usage:
  python scripts/roundtrip_check.py
  python scripts/roundtrip_check.py --session 42 --message "What do you remember about me?"
  python scripts/roundtrip_check.py --provider deepseek --show-html
"""

import argparse
import asyncio
import dataclasses
import json
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from config import LATEST_MODEL_DEFAULTS, load_config
from memory import MemoryStore
from microclaw.constants import TELEGRAM_MAX_MESSAGE_LEN
from microclaw.context import buffer_text, build_system_prompt, render_message_history, resolve_runtime_path
from microclaw.markdown import markdown_to_telegram_html_bounded
from providers import PROVIDER_ERROR_PREFIX, LLMClient


async def _roundtrip(args: argparse.Namespace) -> int:
    config = load_config()
    if args.provider:
        model = args.model or LATEST_MODEL_DEFAULTS.get(args.provider, config.llm_model)
        config = dataclasses.replace(config, llm_provider=args.provider, llm_model=model)
    elif args.model:
        config = dataclasses.replace(config, llm_model=args.model)
    if not config.llm_provider:
        print("No provider configured; set LLM_PROVIDER or pass --provider.")
        return 2

    memory = MemoryStore(str(resolve_runtime_path(config.memory_dir)))

    prompt_buffer = bytearray(config.system_prompt_capacity)
    status = build_system_prompt(
        prompt_buffer,
        config.system_prompt_capacity,
        memory=memory,
        soul_path=resolve_runtime_path(config.soul_file),
        user_path=resolve_runtime_path(config.user_file),
        recent_days=config.recent_notes_days,
    )
    system_prompt = buffer_text(prompt_buffer)
    print(f"system prompt: {len(system_prompt.encode('utf-8'))} bytes ({status.value})")

    history = memory.get_history_json(args.session, config.history_max_messages)
    messages = json.loads(render_message_history(history, args.message))
    print(f"history: {len(messages)} messages for session {args.session}")

    client = LLMClient(config)
    try:
        reply = await asyncio.wait_for(client.chat(messages, system_prompt), timeout=args.timeout)
    except asyncio.TimeoutError:
        print(f"[FAIL] {config.llm_provider} ({config.llm_model}) timed out after {args.timeout}s")
        return 1
    if reply.startswith(PROVIDER_ERROR_PREFIX):
        print(f"[FAIL] {reply}")
        return 1

    html, logical = markdown_to_telegram_html_bounded(reply, TELEGRAM_MAX_MESSAGE_LEN)
    fits = "fits one message" if logical <= TELEGRAM_MAX_MESSAGE_LEN else "needs splitting"
    print(f"reply: {len(reply)} chars -> {logical} bytes of HTML ({fits})")
    print()
    print(html if args.show_html else reply)
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Send one message through the MicroClaw reply path.")
    parser.add_argument("--message", default="Reply with exactly: **OK**", help="User message to send.")
    parser.add_argument("--session", default="roundtrip", help="Session whose stored history is used.")
    parser.add_argument("--provider", default="", help="Override LLM_PROVIDER.")
    parser.add_argument("--model", default="", help="Override LLM_MODEL.")
    parser.add_argument("--timeout", type=int, default=45, help="Seconds to wait for the provider.")
    parser.add_argument("--show-html", action="store_true", help="Print the rendered HTML instead of markdown.")
    args = parser.parse_args()
    try:
        return asyncio.run(_roundtrip(args))
    except ValueError as e:
        print(f"Provider setup failed: {e}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
