# src/llm/adapters/ollama_adapter.py
"""Ollama local inference transport (text only, /api/generate)."""

from __future__ import annotations

import logging
from typing import Any

from llmconductor.llm.base_client import BaseTransport
from llmconductor.llm.content import flatten_text
from llmconductor.llm.models import NormalizedContent

logger = logging.getLogger(__name__)


class OllamaAdapter(BaseTransport):
    """Ollama adapter. Takes a flat prompt string."""

    accepts_multimodal = False

    def __init__(
        self,
        host: str = "http://localhost:11434",
        timeout_s: float = 30.0,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> None:
        self._host = host
        self._timeout_s = timeout_s
        self._max_tokens = max_tokens
        self._temperature = temperature
        self.__client = None

    @property
    def _client(self):
        if self.__client is None:
            import ollama

            self.__client = ollama.AsyncClient(host=self._host, timeout=self._timeout_s)
        return self.__client

    @property
    def vendor(self) -> str:
        return "ollama"

    @property
    def host(self) -> str:
        return self._host

    async def send(self, parts: NormalizedContent, model: str) -> Any:
        options: dict[str, Any] = {}
        if self._max_tokens:
            options["num_predict"] = self._max_tokens
        if self._temperature is not None:
            options["temperature"] = self._temperature
        return await self._client.generate(
            model=model,
            prompt=flatten_text(parts),
            stream=False,
            options=options or None,
        )

    def extract_text(self, reply: Any) -> str | None:
        try:
            text = reply["response"]
        except (KeyError, TypeError):
            text = getattr(reply, "response", None)
        return text if isinstance(text, str) else None
