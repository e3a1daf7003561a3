# src/llm/adapters/anthropic_adapter.py
"""Anthropic Messages API transport.

Claude wants image blocks ahead of the text block, which is declared via
``ordering`` and applied by the shared normalizer. Claude has no per-image
detail hint, so any detail on a part is dropped here.
"""

from __future__ import annotations

import logging
from typing import Any

from llmconductor.llm.base_client import BaseTransport
from llmconductor.llm.models import IMAGE_FIRST, ImagePart, NormalizedContent, TextPart

logger = logging.getLogger(__name__)


def to_anthropic_content(parts: NormalizedContent) -> str | list[dict[str, Any]]:
    """Map parts onto Messages API content blocks."""
    if len(parts) == 1 and isinstance(parts[0], TextPart):
        return parts[0].value

    blocks: list[dict[str, Any]] = []
    for part in parts:
        if isinstance(part, ImagePart):
            if part.is_data_uri:
                media_type, data = part.split_data_uri()
                source = {"type": "base64", "media_type": media_type, "data": data}
            else:
                source = {"type": "url", "url": part.url}
            blocks.append({"type": "image", "source": source})
        else:
            blocks.append({"type": "text", "text": part.value})
    return blocks


class AnthropicAdapter(BaseTransport):
    """Adapter for Anthropic Claude models."""

    ordering = IMAGE_FIRST

    def __init__(
        self,
        api_key: str | None = None,
        timeout_s: float = 30.0,
        max_tokens: int = 4096,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> None:
        self._api_key = api_key
        self._timeout_s = timeout_s
        self._max_tokens = max_tokens or 4096
        self._temperature = temperature
        self.__client = None

    @property
    def _client(self):
        """Lazy-init Anthropic client (only on first API call)."""
        if self.__client is None:
            import anthropic

            self.__client = anthropic.AsyncAnthropic(
                api_key=self._api_key or "",
                timeout=self._timeout_s,
                max_retries=0,
            )
        return self.__client

    @property
    def vendor(self) -> str:
        return "anthropic"

    async def send(self, parts: NormalizedContent, model: str) -> Any:
        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": self._max_tokens,
            "messages": [{"role": "user", "content": to_anthropic_content(parts)}],
        }
        if self._temperature is not None:
            kwargs["temperature"] = self._temperature
        return await self._client.messages.create(**kwargs)

    def extract_text(self, reply: Any) -> str | None:
        blocks = reply.get("content") if isinstance(reply, dict) else getattr(reply, "content", None)
        if not isinstance(blocks, list):
            return None
        for block in blocks:
            if isinstance(block, dict):
                if block.get("type") == "text" and isinstance(block.get("text"), str):
                    return block["text"]
            elif getattr(block, "type", None) == "text":
                text = getattr(block, "text", None)
                return text if isinstance(text, str) else None
        return None
