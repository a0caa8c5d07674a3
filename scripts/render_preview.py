#!/usr/bin/env python3
"""
Preview the Telegram HTML for a markdown file, or the assembled system prompt.

Usage:
  python scripts/render_preview.py reply.md
  python scripts/render_preview.py reply.md --capacity 256
  echo '**hi**' | python scripts/render_preview.py -
  python scripts/render_preview.py --system-prompt
"""

import argparse
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from config import load_config
from memory import MemoryStore
from microclaw.context import render_system_prompt, resolve_runtime_path
from microclaw.markdown import convert


def _preview_markdown(source: str, capacity: int) -> int:
    text = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
    if capacity <= 0:
        capacity = len(text.encode("utf-8")) * 2 + 64

    buffer = bytearray(capacity)
    logical = convert(text, buffer, capacity)
    end = buffer.find(b"\0")
    sys.stdout.write(bytes(buffer[:end]).decode("utf-8", errors="replace"))
    sys.stdout.write("\n")

    if logical >= capacity:
        print(f"\n[truncated] {logical} bytes needed, capacity {capacity}", file=sys.stderr)
        return 1
    return 0


def _preview_system_prompt() -> int:
    config = load_config()
    memory = MemoryStore(str(resolve_runtime_path(config.memory_dir)))
    print(
        render_system_prompt(
            memory,
            soul_path=resolve_runtime_path(config.soul_file),
            user_path=resolve_runtime_path(config.user_file),
            recent_days=config.recent_notes_days,
        )
    )
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Preview MicroClaw prompt and HTML output.")
    parser.add_argument("source", nargs="?", default="", help="Markdown file, or - for stdin.")
    parser.add_argument(
        "--capacity",
        type=int,
        default=0,
        help="Output buffer size in bytes (default: large enough for the input).",
    )
    parser.add_argument(
        "--system-prompt",
        action="store_true",
        help="Print the assembled system prompt instead.",
    )
    args = parser.parse_args()

    if args.system_prompt:
        return _preview_system_prompt()
    if not args.source:
        parser.error("source is required unless --system-prompt is given")
    return _preview_markdown(args.source, args.capacity)


if __name__ == "__main__":
    raise SystemExit(main())
