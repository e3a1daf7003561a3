# src/llm/base_client.py
"""Abstract backend transport interface.

A transport sends already-normalized parts to one vendor and hands back
the raw reply. SDK exceptions propagate untouched so llm/retry.py can
classify them; TransportError is for failures detected by the adapter
itself.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from llmconductor.llm.models import TEXT_FIRST, NormalizedContent, OrderingPreference


class TransportError(Exception):
    """Backend call failed; ``status_code`` is set when an HTTP status is known."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.cause = cause


class BaseTransport(ABC):
    """Unified interface for all vendor backends."""

    ordering: OrderingPreference = TEXT_FIRST
    accepts_multimodal: bool = True

    @abstractmethod
    async def send(self, parts: NormalizedContent, model: str) -> Any:
        """Send one request and return the raw vendor reply."""

    @abstractmethod
    def extract_text(self, reply: Any) -> str | None:
        """Pull the generated text out of a raw reply; None if absent or malformed."""

    @property
    @abstractmethod
    def vendor(self) -> str:
        """Vendor identifier (openai, anthropic, gemini, ...)."""
