# src/llm/adapters/openai_adapter.py
"""Chat-completions transport for OpenAI and OpenAI-compatible vendors.

Groq, OpenRouter and Z.ai speak the same protocol and differ only in base
URL, multimodal support and a few extra body fields, so they are presets
of one adapter rather than separate classes. Z.ai in particular serves
from /api/paas/v4 instead of /v1.
"""

from __future__ import annotations

import logging
from typing import Any

from llmconductor.llm.base_client import BaseTransport
from llmconductor.llm.content import flatten_text
from llmconductor.llm.models import ImagePart, NormalizedContent, TextPart

logger = logging.getLogger(__name__)

# vendor -> preset. base_url None means the SDK default (api.openai.com/v1).
OPENAI_COMPATIBLE_PRESETS: dict[str, dict[str, Any]] = {
    "openai": {"base_url": None, "accepts_multimodal": True},
    "openrouter": {
        "base_url": "https://openrouter.ai/api/v1",
        "accepts_multimodal": True,
        "extra_body": {"provider": {"sort": "throughput"}},
    },
    "zai": {"base_url": "https://api.z.ai/api/paas/v4", "accepts_multimodal": True},
    "groq": {"base_url": "https://api.groq.com/openai/v1", "accepts_multimodal": False},
}


def to_openai_content(parts: NormalizedContent) -> str | list[dict[str, Any]]:
    """Map parts onto the chat-completions ``content`` field."""
    if len(parts) == 1 and isinstance(parts[0], TextPart):
        return parts[0].value

    content: list[dict[str, Any]] = []
    for part in parts:
        if isinstance(part, ImagePart):
            image_url: dict[str, Any] = {"url": part.url}
            if part.detail is not None:
                image_url["detail"] = part.detail
            content.append({"type": "image_url", "image_url": image_url})
        else:
            content.append({"type": "text", "text": part.value})
    return content


class OpenAIAdapter(BaseTransport):
    """Transport over ``openai.AsyncOpenAI`` chat completions."""

    def __init__(
        self,
        vendor: str = "openai",
        api_key: str | None = None,
        base_url: str | None = None,
        organization: str | None = None,
        timeout_s: float = 30.0,
        max_tokens: int | None = None,
        temperature: float | None = None,
        extra_body: dict[str, Any] | None = None,
        accepts_multimodal: bool | None = None,
        **kwargs: Any,
    ) -> None:
        if vendor not in OPENAI_COMPATIBLE_PRESETS:
            raise ValueError(f"Unknown OpenAI-compatible vendor: {vendor!r}")
        preset = OPENAI_COMPATIBLE_PRESETS[vendor]
        self._vendor = vendor
        self._api_key = api_key
        self._base_url = base_url or preset["base_url"]
        self._organization = organization or None
        self._timeout_s = timeout_s
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._extra_body = extra_body if extra_body is not None else preset.get("extra_body")
        self.accepts_multimodal = (
            preset["accepts_multimodal"] if accepts_multimodal is None else accepts_multimodal
        )
        self.__client = None

    @property
    def _client(self):
        """Lazy-init SDK client (only on first API call)."""
        if self.__client is None:
            import openai

            self.__client = openai.AsyncOpenAI(
                api_key=self._api_key or "",
                base_url=self._base_url,
                organization=self._organization,
                timeout=self._timeout_s,
                max_retries=0,
            )
        return self.__client

    @property
    def vendor(self) -> str:
        return self._vendor

    @property
    def base_url(self) -> str | None:
        return self._base_url

    async def send(self, parts: NormalizedContent, model: str) -> Any:
        content: str | list[dict[str, Any]]
        if self.accepts_multimodal:
            content = to_openai_content(parts)
        else:
            content = flatten_text(parts)

        kwargs: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": content}],
        }
        if self._max_tokens:
            kwargs["max_tokens"] = self._max_tokens
        if self._temperature is not None:
            kwargs["temperature"] = self._temperature
        if self._extra_body:
            kwargs["extra_body"] = self._extra_body

        logger.debug("POST %s chat.completions model=%s", self._base_url or "openai", model)
        return await self._client.chat.completions.create(**kwargs)

    def extract_text(self, reply: Any) -> str | None:
        try:
            if isinstance(reply, dict):
                text = reply["choices"][0]["message"]["content"]
            else:
                text = reply.choices[0].message.content
        except (AttributeError, IndexError, KeyError, TypeError):
            return None
        return text if isinstance(text, str) else None
