"""Markdown to Telegram-safe HTML conversion utilities.

Telegram's HTML mode supports: <b>, <i>, <s>, <code>, <pre>, <a href="...">.
The converter is a single left-to-right scan that writes into a fixed-size
buffer and reports the full logical length, like snprintf.
"""

from __future__ import annotations

from .sink import BoundedWriter

FENCE = b"```"
BACKTICK = 0x60
LBRACKET = 0x5B
ASTERISK = 0x2A
NEWLINE = 0x0A

# One pre-built emission per byte value; only < > & are rewritten.
_BYTE_OUT = [bytes((i,)) for i in range(256)]
_BYTE_OUT[ord("<")] = b"&lt;"
_BYTE_OUT[ord(">")] = b"&gt;"
_BYTE_OUT[ord("&")] = b"&amp;"


def escape_html(text: str) -> str:
    """Escape HTML special characters."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _emit_escaped(out: BoundedWriter, data: bytes):
    for byte in data:
        out.emit(_BYTE_OUT[byte])


def _match_link(src: bytes, start: int) -> tuple[int, int] | None:
    """Locate ``[text](url)`` at ``start``.

    Returns (close_bracket, close_paren) offsets, or None. The closing
    bracket must sit on the same line; the closing paren may not.
    """
    close_bracket = src.find(b"]", start + 1)
    if close_bracket == -1:
        return None
    newline = src.find(b"\n", start + 1, close_bracket)
    if newline != -1:
        return None
    if not src.startswith(b"(", close_bracket + 1):
        return None
    close_paren = src.find(b")", close_bracket + 2)
    if close_paren == -1:
        return None
    return close_bracket, close_paren


def convert(text: bytes | str | None, output: bytearray | memoryview | None, capacity: int) -> int:
    """Convert markdown ``text`` into Telegram HTML inside ``output``.

    At most ``capacity - 1`` bytes are copied, followed by a NUL byte. The
    return value is the logical length of the full conversion, so a result
    ``>= capacity`` means the buffer holds a truncated prefix; call again
    with ``capacity = result + 1`` for the whole text. Each tag or escaped
    character is copied whole or dropped, never split.

    Spans are tracked with one toggle flag per kind, not a stack: every
    marker flips its flag, and flags still set at the end are closed in the
    order pre, s, b, i.
    """
    if text is None or output is None or capacity <= 0:
        return 0
    if isinstance(text, str):
        text = text.encode("utf-8")

    out = BoundedWriter(output, capacity)
    if out.capacity == 0:
        return 0
    _transduce(bytes(text), out)
    return out.finish()


def _transduce(src: bytes, out: BoundedWriter):
    end = len(src)
    pos = 0
    bold = False
    italic = False
    strike = False
    in_code_block = False

    while pos < end:
        # ── Fenced code block ──
        if src.startswith(FENCE, pos):
            if not in_code_block:
                # Language tag and the rest of the fence line are dropped.
                newline = src.find(b"\n", pos + 3)
                pos = end if newline == -1 else newline + 1
                out.emit(b"<pre>")
                in_code_block = True
            else:
                pos += 3
                if pos < end and src[pos] == NEWLINE:
                    pos += 1
                out.emit(b"</pre>")
                in_code_block = False
            continue

        byte = src[pos]

        if in_code_block:
            out.emit(_BYTE_OUT[byte])
            pos += 1
            continue

        # ── Inline code ──
        if byte == BACKTICK:
            close = src.find(b"`", pos + 1)
            if close != -1:
                out.emit(b"<code>")
                _emit_escaped(out, src[pos + 1:close])
                out.emit(b"</code>")
                pos = close + 1
                continue

        # ── Link ──
        if byte == LBRACKET:
            link = _match_link(src, pos)
            if link:
                close_bracket, close_paren = link
                out.emit(b'<a href="')
                out.emit(src[close_bracket + 2:close_paren])
                out.emit(b'">')
                _emit_escaped(out, src[pos + 1:close_bracket])
                out.emit(b"</a>")
                pos = close_paren + 1
                continue

        # ── Strikethrough ──
        if src.startswith(b"~~", pos):
            out.emit(b"</s>" if strike else b"<s>")
            strike = not strike
            pos += 2
            continue

        # ── Bold ──
        if src.startswith(b"**", pos):
            out.emit(b"</b>" if bold else b"<b>")
            bold = not bold
            pos += 2
            continue

        # ── Italic (single *) ──
        if byte == ASTERISK and not src.startswith(b"*", pos + 1):
            out.emit(b"</i>" if italic else b"<i>")
            italic = not italic
            pos += 1
            continue

        # ── Bold (__) ──
        if src.startswith(b"__", pos):
            out.emit(b"</b>" if bold else b"<b>")
            bold = not bold
            pos += 2
            continue

        out.emit(_BYTE_OUT[byte])
        pos += 1

    if in_code_block:
        out.emit(b"</pre>")
    if strike:
        out.emit(b"</s>")
    if bold:
        out.emit(b"</b>")
    if italic:
        out.emit(b"</i>")


def markdown_to_telegram_html_bounded(text: str, max_bytes: int) -> tuple[str, int]:
    """Convert with a hard output bound.

    Returns the (possibly truncated) HTML and the logical length in bytes.
    A logical length above ``max_bytes`` means the HTML was cut.
    """
    if not text:
        return "", 0
    capacity = max(1, int(max_bytes)) + 1
    out = BoundedWriter(bytearray(capacity), capacity)
    _transduce(text.encode("utf-8"), out)
    logical = out.finish()
    # A cut may land inside a multi-byte character; drop the partial tail.
    return out.getvalue().decode("utf-8", errors="ignore"), logical


def markdown_to_telegram_html(text: str) -> str:
    """Convert LLM markdown to Telegram-safe HTML with no size limit."""
    if not text:
        return ""
    data = text.encode("utf-8")
    capacity = len(data) * 2 + 64
    buffer = bytearray(capacity)
    logical = convert(data, buffer, capacity)
    if logical >= capacity:
        capacity = logical + 1
        buffer = bytearray(capacity)
        logical = convert(data, buffer, capacity)
    return bytes(buffer[:logical]).decode("utf-8", errors="replace")
