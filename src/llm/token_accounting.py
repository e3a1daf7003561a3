# src/llm/token_accounting.py
"""Token counting and cost estimation.

Counts use tiktoken when an encoding can be loaded. Otherwise they fall
back to ceil(chars / 4). That fallback is an approximation for budgeting
and logging only; it must not be billed against.
"""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "cl100k_base"
CHARS_PER_TOKEN = 4


@dataclass(frozen=True)
class ModelPricing:
    """USD per token."""

    input_rate: float
    output_rate: float


def _per_million(input_usd: float, output_usd: float) -> ModelPricing:
    return ModelPricing(input_rate=input_usd / 1_000_000, output_rate=output_usd / 1_000_000)


# Public list prices, USD per 1M tokens. Lookup is exact name first, then
# longest matching prefix, so dated snapshots inherit their family's price.
PRICING: dict[str, ModelPricing] = {
    "gpt-3.5-turbo": _per_million(0.50, 1.50),
    "gpt-4": _per_million(30.0, 60.0),
    "gpt-4-turbo": _per_million(10.0, 30.0),
    "gpt-4o": _per_million(2.50, 10.0),
    "gpt-4o-mini": _per_million(0.15, 0.60),
    "gpt-4.1": _per_million(2.00, 8.00),
    "gpt-4.1-mini": _per_million(0.40, 1.60),
    "claude-3-haiku": _per_million(0.25, 1.25),
    "claude-3-sonnet": _per_million(3.0, 15.0),
    "claude-3-opus": _per_million(15.0, 75.0),
    "claude-3-5-haiku": _per_million(0.80, 4.0),
    "claude-3-5-sonnet": _per_million(3.0, 15.0),
    "claude-sonnet-4": _per_million(3.0, 15.0),
    "claude-opus-4": _per_million(15.0, 75.0),
    "gemini-1.5-flash": _per_million(0.075, 0.30),
    "gemini-1.5-pro": _per_million(1.25, 5.0),
    "gemini-2.0-flash": _per_million(0.10, 0.40),
}


class CostEstimate(BaseModel):
    """Estimated spend for one generation."""

    input_cost: float
    output_cost: float
    total_cost: float
    currency: str = "USD"


def heuristic_token_count(text: str) -> int:
    """Approximate token count: one token per four characters, rounded up."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


class TokenAccountant:
    """Estimates token counts and prices them against a static table."""

    def __init__(
        self,
        encoding: str | None = DEFAULT_ENCODING,
        pricing: Mapping[str, ModelPricing] | None = None,
    ) -> None:
        self._encoding_name = encoding
        self._pricing = dict(PRICING if pricing is None else pricing)
        self._encoder: Any = None
        self._encoder_unavailable = encoding is None
        self._load_lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        """Whether the tokenizer has been resolved (loaded or given up on)."""
        return self._encoder is not None or self._encoder_unavailable

    def load(self) -> bool:
        """Resolve the tokenizer now; returns True when counts will be exact.

        The first load may fetch BPE files over the network, so async
        callers should run it off the event loop.
        """
        return self._get_encoder() is not None

    @property
    def exact(self) -> bool:
        """Whether counts come from a real tokenizer rather than the heuristic."""
        return self._get_encoder() is not None

    def estimate(self, text: str | None) -> int:
        """Count tokens in ``text`` (0 for None or empty)."""
        if not text:
            return 0
        encoder = self._get_encoder()
        if encoder is None:
            return heuristic_token_count(text)
        return len(encoder.encode(text, disallowed_special=()))

    def pricing_for(self, model: str) -> ModelPricing | None:
        """Exact match first, then the longest pricing key ``model`` starts with."""
        if model in self._pricing:
            return self._pricing[model]
        candidates = [name for name in self._pricing if model.startswith(name)]
        if not candidates:
            return None
        return self._pricing[max(candidates, key=len)]

    def estimate_cost(
        self, model: str, input_tokens: int, output_tokens: int
    ) -> CostEstimate | None:
        """Price a call. None means the model's price is unknown, not free."""
        pricing = self.pricing_for(model)
        if pricing is None:
            return None
        input_cost = input_tokens * pricing.input_rate
        output_cost = output_tokens * pricing.output_rate
        return CostEstimate(
            input_cost=input_cost,
            output_cost=output_cost,
            total_cost=input_cost + output_cost,
        )

    def _get_encoder(self) -> Any:
        if self.loaded:
            return self._encoder
        with self._load_lock:
            if self.loaded:
                return self._encoder
            try:
                import tiktoken

                self._encoder = tiktoken.get_encoding(self._encoding_name)
            except Exception as exc:  # noqa: BLE001 - broken install or BPE files unreachable offline
                logger.warning(
                    "tiktoken encoding %r unavailable (%s); using chars/4 approximation",
                    self._encoding_name, exc,
                )
                self._encoder_unavailable = True
        return self._encoder


_default_accountant: TokenAccountant | None = None


def get_default_accountant() -> TokenAccountant:
    """Process-wide accountant, created on first use."""
    global _default_accountant
    if _default_accountant is None:
        _default_accountant = TokenAccountant()
    return _default_accountant
