# src/logging/context.py
"""Contextual logging support: attach request_id, vendor, model, attempt to log records.

Context lives in contextvars so concurrent generation tasks never see
each other's values.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_vendor: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "vendor", default=None
)
_model: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "model", default=None
)
_attempt: contextvars.ContextVar[int | None] = contextvars.ContextVar(
    "attempt", default=None
)


@dataclass(frozen=True)
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    vendor: str | None = None
    model: str | None = None
    attempt: int | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        vendor=_vendor.get(),
        model=_model.get(),
        attempt=_attempt.get(),
    )


@dataclass(frozen=True)
class ContextTokens:
    """Restores the context that was active before set_request_context."""

    request_id: contextvars.Token[str | None]
    model: contextvars.Token[str | None]
    vendor: contextvars.Token[str | None]
    attempt: contextvars.Token[int | None]


def set_request_context(request_id: str, model: str) -> ContextTokens:
    """Open a request scope (called once per coordinator run).

    Vendor and attempt start empty. Pass the returned tokens to
    reset_request_context to restore the enclosing scope.
    """
    return ContextTokens(
        request_id=_request_id.set(request_id),
        model=_model.set(model),
        vendor=_vendor.set(None),
        attempt=_attempt.set(None),
    )


def reset_request_context(tokens: ContextTokens) -> None:
    """Restore the values that were set before ``tokens`` were taken."""
    _attempt.reset(tokens.attempt)
    _vendor.reset(tokens.vendor)
    _model.reset(tokens.model)
    _request_id.reset(tokens.request_id)


def set_vendor_context(vendor: str) -> None:
    """Set the resolved vendor for the current request."""
    _vendor.set(vendor)


def set_attempt_context(attempt: int | None) -> None:
    """Set the current transport attempt number."""
    _attempt.set(attempt)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _vendor.set(None)
    _model.set(None)
    _attempt.set(None)
