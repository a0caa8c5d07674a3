import asyncio
import logging
from datetime import date
from types import SimpleNamespace

from telegram.constants import ParseMode
from telegram.error import BadRequest, Conflict

from config import Config
from microclaw.bot import MicroClawBot
from microclaw.constants import SYSTEM_PROMPT_TEMPLATE, TELEGRAM_MAX_MESSAGE_LEN


class FakeLLM:
    def __init__(self, reply="**hi** there"):
        self.reply = reply
        self.calls = []

    async def chat(self, messages, system_prompt=""):
        self.calls.append((messages, system_prompt))
        return self.reply


class FakeMessage:
    def __init__(self, text="", reject_html=False):
        self.text = text
        self.reject_html = reject_html
        self.replies = []
        self.edits = []
        self.placeholder = None

    async def reply_text(self, text, parse_mode=None):
        if parse_mode and self.reject_html:
            raise BadRequest("can't parse entities")
        self.replies.append((text, parse_mode))
        if self.placeholder is None:
            self.placeholder = FakeMessage(reject_html=self.reject_html)
            return self.placeholder
        return FakeMessage()

    async def edit_text(self, text, parse_mode=None):
        if parse_mode and self.reject_html:
            raise BadRequest("can't parse entities")
        self.edits.append((text, parse_mode))


def _update(text="hello", user_id=1, chat_id=42, reject_html=False):
    return SimpleNamespace(
        effective_user=SimpleNamespace(id=user_id),
        effective_chat=SimpleNamespace(id=chat_id),
        message=FakeMessage(text, reject_html=reject_html),
    )


def _context(args=None):
    async def send_chat_action(**kwargs):
        return True

    return SimpleNamespace(bot=SimpleNamespace(send_chat_action=send_chat_action), args=args or [], error=None)


def _bot(memory_store, tmp_path, llm=None, **overrides):
    config = Config(
        llm_provider="claude",
        llm_model="test-model",
        soul_file=str(tmp_path / "SOUL.md"),
        user_file=str(tmp_path / "USER.md"),
        **overrides,
    )
    return MicroClawBot(config, llm=llm or FakeLLM(), memory=memory_store)


# ── Message pipeline ─────────────────────────────────────────


def test_reply_is_converted_and_both_turns_are_stored(memory_store, tmp_path):
    (tmp_path / "SOUL.md").write_text("Be cheerful.", encoding="utf-8")
    memory_store.write_long_term("User likes tea.")
    llm = FakeLLM()
    bot = _bot(memory_store, tmp_path, llm=llm)
    update = _update("hello")

    asyncio.run(bot.handle_message(update, _context()))

    messages, system_prompt = llm.calls[0]
    assert system_prompt.startswith(SYSTEM_PROMPT_TEMPLATE)
    assert "## Personality\n\nBe cheerful." in system_prompt
    assert "## Long-term Memory\n\nUser likes tea." in system_prompt
    assert messages == [{"role": "user", "content": "hello"}]

    assert update.message.placeholder.edits == [("<b>hi</b> there", ParseMode.HTML)]
    assert memory_store.get_recent("42") == [
        {"role": "user", "content": "hello"},
        {"role": "assistant", "content": "**hi** there"},
    ]


def test_previous_turns_are_sent_as_history(memory_store, tmp_path):
    memory_store.append_message("42", "user", "first")
    memory_store.append_message("42", "assistant", "answer")
    llm = FakeLLM()
    bot = _bot(memory_store, tmp_path, llm=llm)

    asyncio.run(bot.handle_message(_update("second"), _context()))

    messages, _ = llm.calls[0]
    assert [m["content"] for m in messages] == ["first", "answer", "second"]


def test_provider_errors_are_not_stored_as_assistant_turns(memory_store, tmp_path):
    bot = _bot(memory_store, tmp_path, llm=FakeLLM("⚠️ Error communicating with claude: boom"))
    asyncio.run(bot.handle_message(_update("hello"), _context()))
    assert memory_store.get_recent("42") == [{"role": "user", "content": "hello"}]


def test_users_outside_allowlist_are_ignored(memory_store, tmp_path):
    llm = FakeLLM()
    bot = _bot(memory_store, tmp_path, llm=llm, telegram_allowed_users=["1"])
    update = _update("hello", user_id=2)
    asyncio.run(bot.handle_message(update, _context()))
    assert llm.calls == []
    assert update.message.replies == []


# ── History window ───────────────────────────────────────────


def test_history_window_shrinks_to_fit_buffer(memory_store, tmp_path):
    for i in range(10):
        memory_store.append_message("42", "user" if i % 2 == 0 else "assistant", "x" * 50)
    bot = _bot(memory_store, tmp_path, history_capacity=300)

    messages = bot._build_messages("42", "hello")

    assert len(messages) == 3
    assert messages[-1] == {"role": "user", "content": "hello"}


def test_oversized_user_text_is_sent_alone(memory_store, tmp_path):
    memory_store.append_message("42", "user", "earlier")
    bot = _bot(memory_store, tmp_path, history_capacity=300)
    text = "y" * 400
    assert bot._build_messages("42", text) == [{"role": "user", "content": text}]


def test_system_prompt_is_bounded(memory_store, tmp_path, caplog):
    memory_store.append_today("- " + "note " * 500, today=date.today())
    bot = _bot(memory_store, tmp_path, system_prompt_capacity=1024)
    with caplog.at_level(logging.WARNING, logger="microclaw"):
        prompt = bot._build_system_prompt("42")
    assert len(prompt.encode("utf-8")) <= 1023
    assert "System prompt truncated" in caplog.text


# ── Sending ──────────────────────────────────────────────────


def test_chunking_prefers_newlines():
    text = "a" * 10 + "\n" + "b" * 10
    assert MicroClawBot._chunk_message(text, max_len=15) == ["a" * 10, "b" * 10]
    assert MicroClawBot._chunk_message("c" * 20, max_len=8) == ["c" * 8, "c" * 8, "c" * 4]
    assert MicroClawBot._chunk_message("short") == ["short"]


def test_oversized_render_is_split_not_truncated(caplog):
    with caplog.at_level(logging.WARNING, logger="microclaw"):
        parts = MicroClawBot._render_chunks("42", "<" * 3000)

    assert [source for _, source in parts] == ["<" * 750] * 4
    assert all(len(html.encode("utf-8")) <= TELEGRAM_MAX_MESSAGE_LEN for html, _ in parts)
    assert "".join(html for html, _ in parts) == "&lt;" * 3000
    assert "truncated" not in caplog.text


def test_cyrillic_reply_keeps_every_word():
    text = "привет мир " * 250
    assert MicroClawBot._chunk_message(text) == [text]

    parts = MicroClawBot._render_chunks("42", text)

    assert len(parts) == 2
    assert all(len(html.encode("utf-8")) <= TELEGRAM_MAX_MESSAGE_LEN for html, _ in parts)
    joined = " ".join(html for html, _ in parts)
    assert joined.count("привет") == 250
    assert joined.count("мир") == 250


def test_split_parts_are_tag_balanced():
    parts = MicroClawBot._render_chunks("42", "**" + "ж" * 2500 + "**")

    assert len(parts) == 2
    for html, _ in parts:
        assert len(html.encode("utf-8")) <= TELEGRAM_MAX_MESSAGE_LEN
        assert html.count("<b>") == html.count("</b>") == 1
    assert "".join(html for html, _ in parts).count("ж") == 2500


def test_markdown_source_is_sent_when_html_is_rejected(memory_store, tmp_path):
    bot = _bot(memory_store, tmp_path, llm=FakeLLM("**a < b**"))
    update = _update("compare", reject_html=True)

    asyncio.run(bot.handle_message(update, _context()))

    assert update.message.placeholder.edits == [("**a < b**", None)]


def test_long_reply_is_split_across_messages(memory_store, tmp_path):
    reply = ("line\n" * 700).strip()
    bot = _bot(memory_store, tmp_path, llm=FakeLLM(reply))
    update = _update("long please")

    asyncio.run(bot.handle_message(update, _context()))

    assert len(update.message.placeholder.edits) == 1
    # Placeholder plus one follow-up chunk.
    assert len(update.message.replies) == 2
    assert update.message.replies[1][1] == ParseMode.HTML


# ── Commands ─────────────────────────────────────────────────


def test_remember_and_note_commands(memory_store, tmp_path):
    bot = _bot(memory_store, tmp_path)

    asyncio.run(bot.cmd_remember(_update("/remember"), _context(["likes", "tea"])))
    asyncio.run(bot.cmd_remember(_update("/remember"), _context(["hates", "mondays"])))
    asyncio.run(bot.cmd_note(_update("/note"), _context(["called", "mom"])))

    assert memory_store.read_long_term() == "# Long-term Memory\n\n- likes tea\n- hates mondays"
    assert "called mom" in memory_store.read_recent(1)


def test_command_usage_without_arguments(memory_store, tmp_path):
    bot = _bot(memory_store, tmp_path)
    update = _update("/note")
    asyncio.run(bot.cmd_note(update, _context()))
    assert update.message.replies == [("Usage: /note &lt;text&gt;", ParseMode.HTML)]


def test_commands_respect_allowlist(memory_store, tmp_path):
    bot = _bot(memory_store, tmp_path, telegram_allowed_users=["1"])
    update = _update("/remember", user_id=2)
    asyncio.run(bot.cmd_remember(update, _context(["secret"])))
    assert update.message.replies == []
    assert memory_store.read_long_term() == ""


def test_clear_command_drops_session(memory_store, tmp_path):
    memory_store.append_message("42", "user", "old")
    bot = _bot(memory_store, tmp_path)
    asyncio.run(bot.cmd_clear(_update("/clear"), _context()))
    assert memory_store.get_recent("42") == []


def test_show_escapes_config_values(memory_store, tmp_path):
    bot = _bot(memory_store, tmp_path)
    bot.config.llm_model = "<odd>"
    update = _update("/show")
    asyncio.run(bot.cmd_show(update, _context()))
    text, mode = update.message.replies[0]
    assert mode == ParseMode.HTML
    assert "&lt;odd&gt;" in text


# ── Framework errors ─────────────────────────────────────────


def test_polling_conflicts_are_logged_once(memory_store, tmp_path, caplog):
    bot = _bot(memory_store, tmp_path)
    context = _context()
    context.error = Conflict("terminated by other getUpdates request")

    with caplog.at_level(logging.WARNING, logger="microclaw"):
        asyncio.run(bot.on_error(None, context))
        asyncio.run(bot.on_error(None, context))

    assert caplog.text.count("polling conflict") == 1
