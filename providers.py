"""
MicroClaw — LLM Provider
Single class routing to Claude or an OpenAI-compatible API.
"""

import asyncio
import logging
from config import PROVIDER_KEY_FIELDS, Config

log = logging.getLogger("microclaw.providers")

# Prefix of the reply text returned when a provider call fails.
PROVIDER_ERROR_PREFIX = "⚠️ Error communicating with"

OPENAI_COMPATIBLE_BASE_URLS = {
    "openai": None,
    "xai": "https://api.x.ai/v1",
    "deepseek": "https://api.deepseek.com",
}


class LLMClient:
    """
    Unified LLM interface. Routes to the correct SDK based on provider name.

    Supported providers:
      - claude    → Anthropic Claude (via anthropic SDK)
      - openai    → OpenAI ChatGPT (via openai SDK)
      - xai       → xAI Grok (via openai SDK with custom base_url)
      - deepseek  → DeepSeek (via openai SDK with custom base_url)
    """

    def __init__(self, config: Config):
        self.config = config
        self.provider_name = config.llm_provider
        self.model = config.llm_model
        self.max_output_tokens = max(512, int(getattr(config, "max_output_tokens", 4096) or 4096))
        self._client = None

        self._init_client()

    def _init_client(self):
        """Initialize the appropriate SDK client."""
        key_attr = PROVIDER_KEY_FIELDS.get(self.provider_name)
        if key_attr is None:
            raise ValueError(
                f"Unknown provider: {self.provider_name!r}. "
                f"Supported: {', '.join(PROVIDER_KEY_FIELDS)}"
            )
        api_key = getattr(self.config, key_attr)
        if not api_key:
            raise ValueError(f"{key_attr.upper()} is required when LLM_PROVIDER={self.provider_name}")

        if self.provider_name == "claude":
            import anthropic

            self._client = anthropic.Anthropic(api_key=api_key)
        else:
            import openai

            # base_url=None keeps the SDK default endpoint.
            self._client = openai.OpenAI(api_key=api_key, base_url=OPENAI_COMPATIBLE_BASE_URLS[self.provider_name])
        log.info(f"Initialized {self.provider_name} provider (model: {self.model})")

    async def chat(self, messages: list[dict], system_prompt: str = "") -> str:
        """
        Send messages to the LLM and return the response as a plain string.

        Args:
            messages: List of {"role": "user"|"assistant", "content": "..."} dicts.
            system_prompt: System prompt injected at the beginning.

        Returns:
            The assistant's response text, or a "⚠️ Error communicating with ..."
            line when the provider call fails.
        """
        try:
            if self.provider_name == "claude":
                return await self._chat_claude(messages, system_prompt)
            return await self._chat_openai(messages, system_prompt)
        except Exception as e:
            log.error(f"LLM call failed ({self.provider_name}): {e}")
            return f"{PROVIDER_ERROR_PREFIX} {self.provider_name}: {e}"

    # ── OpenAI-compatible ─────────────────────────────────────

    async def _chat_openai(self, messages: list[dict], system_prompt: str) -> str:
        """Chat via OpenAI-compatible API (covers ChatGPT, xAI Grok, and DeepSeek)."""
        api_messages = []
        if system_prompt:
            api_messages.append({"role": "system", "content": system_prompt})
        api_messages.extend(messages)

        response = await asyncio.to_thread(
            self._client.chat.completions.create,
            model=self.model,
            messages=api_messages,
            max_tokens=self.max_output_tokens,
            temperature=0.7,
        )
        return response.choices[0].message.content or ""

    # ── Claude ────────────────────────────────────────────────

    async def _chat_claude(self, messages: list[dict], system_prompt: str) -> str:
        """Chat via Anthropic's Messages API (system prompt is a separate param)."""
        api_messages = [m for m in messages if m.get("role") in ("user", "assistant")]

        # Claude requires the first turn to be a user message
        if not api_messages or api_messages[0]["role"] != "user":
            api_messages.insert(0, {"role": "user", "content": "Hello!"})

        kwargs = {
            "model": self.model,
            "messages": api_messages,
            "max_tokens": self.max_output_tokens,
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        response = await asyncio.to_thread(self._client.messages.create, **kwargs)

        text_parts = []
        for block in response.content:
            if hasattr(block, "text"):
                text_parts.append(block.text)
        return "\n".join(text_parts)
