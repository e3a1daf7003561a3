# src/llm/retry.py
"""Retry policy with exponential backoff and jitter.

Classification is centralised here and duck-typed over status attributes
and exception names, so no vendor SDK is imported by this module.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
import re
import socket
import ssl
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from llmconductor.config.settings import ConfigurationError, Settings
from llmconductor.llm.content import ContentError
from llmconductor.logging.context import get_context, set_attempt_context

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
FATAL_STATUS_CODES = frozenset({400, 401, 403, 404, 422})

_RETRYABLE_MESSAGE_PATTERNS = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"timeout",
        r"timed out",
        r"connection.*reset",
        r"connection.*refused",
        r"service.*unavailable",
        r"rate.*limit",
        r"too.*many.*requests",
    )
)

# Exception class names (lowercased) that signal a transport hiccup,
# e.g. httpx.ConnectTimeout, openai.APIConnectionError.
_RETRYABLE_NAME_FRAGMENTS = ("timeout", "connecterror", "connectionerror", "sslerror")

_FATAL_TYPES: tuple[type[BaseException], ...] = (
    ConfigurationError,
    ContentError,
    json.JSONDecodeError,
    ValueError,
    TypeError,
    NotImplementedError,
)

_TRANSIENT_TYPES: tuple[type[BaseException], ...] = (
    TimeoutError,
    asyncio.TimeoutError,
    ConnectionError,
    ssl.SSLError,
    socket.gaierror,
)


class LLMRetryExhausted(Exception):
    """All attempts failed with retryable errors."""

    def __init__(self, attempts: int, last_error: BaseException, label: str = "request"):
        self.attempts = attempts
        self.last_error = last_error
        self.label = label
        super().__init__(
            f"{label} failed after {attempts} attempt(s): "
            f"{type(last_error).__name__}: {last_error}"
        )


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt ceiling and backoff curve."""

    max_attempts: int = 3
    base_delay_s: float = 1.0
    max_delay_s: float = 30.0
    backoff_factor: float = 2.0
    jitter_ratio: float = 0.25

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay_s=settings.retry_base_delay_s,
            max_delay_s=settings.retry_max_delay_s,
            backoff_factor=settings.retry_backoff_factor,
            jitter_ratio=settings.retry_jitter_ratio,
        )


@dataclass
class RetryState:
    """Per-call bookkeeping; never shared between calls."""

    attempt: int = 1
    last_error: BaseException | None = None


def status_code_of(error: BaseException) -> int | None:
    """Best-effort HTTP status extraction across SDK error shapes."""
    for attr in ("status_code", "status", "code", "http_status"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool) and 100 <= value < 600:
            return value
    response = getattr(error, "response", None)
    if response is not None:
        for attr in ("status_code", "status", "code"):
            value = getattr(response, attr, None)
            if isinstance(value, int) and not isinstance(value, bool) and 100 <= value < 600:
                return value
    return None


def is_retryable(error: BaseException) -> bool:
    """Classify ``error`` as transient (retry) or fatal (give up now).

    Unrecognised errors are fatal so real bugs are not masked as flakiness.
    """
    status = status_code_of(error)
    if status is not None:
        return status in RETRYABLE_STATUS_CODES

    if isinstance(error, _FATAL_TYPES):
        return False
    if isinstance(error, _TRANSIENT_TYPES):
        return True

    name = type(error).__name__.lower()
    if any(fragment in name for fragment in _RETRYABLE_NAME_FRAGMENTS):
        return True

    cause = getattr(error, "cause", None) or error.__cause__
    if isinstance(cause, BaseException) and cause is not error:
        return is_retryable(cause)

    message = str(error)
    return bool(message) and any(p.search(message) for p in _RETRYABLE_MESSAGE_PATTERNS)


def base_delay(policy: RetryPolicy, attempt: int) -> float:
    """Pre-jitter delay after failed ``attempt`` (1-based), capped at max_delay_s."""
    return min(policy.max_delay_s, policy.base_delay_s * policy.backoff_factor ** (attempt - 1))


def compute_delay(
    policy: RetryPolicy,
    attempt: int,
    rng: Callable[[], float] = random.random,
) -> float:
    """Backoff delay with +/- jitter_ratio perturbation, floored at zero."""
    delay = base_delay(policy, attempt)
    if policy.jitter_ratio:
        delay += delay * policy.jitter_ratio * (2.0 * rng() - 1.0)
    return max(delay, 0.0)


RetryHook = Callable[[int, BaseException, float], Any]


class ResilienceManager:
    """Runs an async operation under a RetryPolicy."""

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        classifier: Callable[[BaseException], bool] = is_retryable,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self._classifier = classifier
        self._sleep = sleep
        self._rng = rng

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        label: str = "request",
        on_retry: RetryHook | None = None,
    ) -> T:
        """Await ``operation()`` until it succeeds or the policy gives up.

        Raises:
            The original error when it is classified fatal.
            LLMRetryExhausted: When max_attempts retryable failures occurred.
        """
        state = RetryState()
        outer_attempt = get_context().attempt
        try:
            while True:
                set_attempt_context(state.attempt)
                try:
                    return await operation()
                except Exception as exc:
                    state.last_error = exc
                    if not self._classifier(exc):
                        logger.debug(
                            "%s: non-retryable %s on attempt %d",
                            label, type(exc).__name__, state.attempt,
                        )
                        raise
                    if state.attempt >= self.policy.max_attempts:
                        raise LLMRetryExhausted(state.attempt, exc, label) from exc

                    delay = compute_delay(self.policy, state.attempt, self._rng)
                    logger.warning(
                        "%s: %s (attempt %d/%d), retrying in %.2fs",
                        label, type(exc).__name__, state.attempt,
                        self.policy.max_attempts, delay,
                    )
                    if on_retry is not None:
                        on_retry(state.attempt, exc, delay)
                    await self._sleep(delay)
                    state.attempt += 1
        finally:
            set_attempt_context(outer_attempt)
