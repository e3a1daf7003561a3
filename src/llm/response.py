# src/llm/response.py
"""Uniform generation result plus post-hoc extraction helpers.

Every coordinator run ends in a GenerationResult, whichever backend
answered and however it failed. ``text`` is None exactly when
``error_cause`` is set; blank text counts as a failure.
"""

from __future__ import annotations

import itertools
import json
import re
from collections.abc import Iterator
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from llmconductor.config.settings import ConfigurationError
from llmconductor.llm.content import ContentError
from llmconductor.llm.token_accounting import (
    CostEstimate,
    TokenAccountant,
    get_default_accountant,
)

ErrorType = Literal["configuration", "content", "transport", "empty_response", "internal"]

EMPTY_RESPONSE_CAUSE = "Backend returned an empty response"

_FENCE_ANY = re.compile(r"```[ \t]*([A-Za-z0-9_+#.-]*)[ \t]*\n?(.*?)```", re.DOTALL)


class ParseError(ValueError):
    """Structured data could not be extracted from generated text."""


class GenerationResult(BaseModel):
    """Outcome of one generation request."""

    model_config = ConfigDict(frozen=True)

    text: str | None = None
    model: str
    vendor: str | None = None
    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)
    error_cause: str | None = None
    error_type: ErrorType | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def enforce_failure_invariant(cls, data: Any) -> Any:
        """Blank text becomes a failure; a recorded error drops the text."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        text = data.get("text")
        if data.get("error_cause"):
            data["text"] = None
            data["error_type"] = data.get("error_type") or "internal"
        elif text is None or not str(text).strip():
            data["text"] = None
            data["error_cause"] = EMPTY_RESPONSE_CAUSE
            data["error_type"] = "empty_response"
        else:
            data["error_type"] = None
        return data

    # --- Queries ---

    def is_success(self) -> bool:
        return self.text is not None and bool(self.text.strip()) and self.error_cause is None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def estimated_cost(self, accountant: TokenAccountant | None = None) -> CostEstimate | None:
        """Price this result; None when the model has no known price."""
        accountant = accountant or get_default_accountant()
        return accountant.estimate_cost(self.model, self.input_tokens, self.output_tokens)

    def metadata_with_cost(self, accountant: TokenAccountant | None = None) -> dict[str, Any]:
        cost = self.estimated_cost(accountant)
        if cost is None:
            return dict(self.metadata)
        return {**self.metadata, "cost": cost.model_dump()}

    # --- Extraction ---

    def extract_code_block(self, language: str | None = None) -> str | None:
        """Inner text of the first fenced block (optionally of ``language``).

        Returns None when there is no text, no match, or the block is
        never closed.
        """
        if self.text is None:
            return None
        if language is None:
            match = _FENCE_ANY.search(self.text)
            return match.group(2).strip() if match else None
        pattern = re.compile(
            r"```[ \t]*" + re.escape(language) + r"(?![A-Za-z0-9_+#.-])[ \t]*\n?(.*?)```",
            re.DOTALL | re.IGNORECASE,
        )
        match = pattern.search(self.text)
        return match.group(1).strip() if match else None

    def parse_structured_data(self) -> dict[str, Any]:
        """Parse the JSON object in the generated text.

        Tries a ```json block, then any fenced block, then each balanced
        top-level ``{...}`` span in order; the first candidate that parses
        to an object wins.

        Raises:
            ParseError: No text, no JSON object, or malformed JSON.
        """
        if not self.is_success() or self.text is None:
            raise ParseError(f"No generated text to parse ({self.error_cause})")

        candidates = itertools.chain(
            (self.extract_code_block("json"), self.extract_code_block()),
            _object_spans(self.text),
        )
        error: ParseError | None = None
        tried: set[str] = set()
        for candidate in candidates:
            if candidate is None or candidate in tried:
                continue
            tried.add(candidate)
            try:
                parsed = json.loads(candidate)
            except json.JSONDecodeError as exc:
                error = ParseError(f"Failed to parse JSON response: {exc}")
                error.__cause__ = exc
                continue
            if isinstance(parsed, dict):
                return parsed
            error = ParseError(f"Expected a JSON object, got {type(parsed).__name__}")

        raise error or ParseError("No JSON object found in generated text")


def _object_spans(text: str) -> Iterator[str]:
    """Yield brace-balanced top-level ``{...}`` substrings, ignoring braces in strings."""
    start = text.find("{")
    while start != -1:
        end = _balanced_end(text, start)
        if end is None:
            start = text.find("{", start + 1)
        else:
            yield text[start : end + 1]
            start = text.find("{", end + 1)


def _balanced_end(text: str, start: int) -> int | None:
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


def error_type_of(error: BaseException) -> ErrorType:
    """Coarse error-class tag for a failed result."""
    if isinstance(error, ConfigurationError):
        return "configuration"
    if isinstance(error, ContentError):
        return "content"
    return "transport"


def describe_error(error: BaseException) -> str:
    message = str(error).strip()
    return f"{type(error).__name__}: {message}" if message else type(error).__name__


def success(
    text: str | None,
    model: str,
    vendor: str | None,
    input_tokens: int = 0,
    output_tokens: int = 0,
    metadata: dict[str, Any] | None = None,
) -> GenerationResult:
    """Build a result from generated text; blank text yields a failed result."""
    return GenerationResult(
        text=text,
        model=model,
        vendor=vendor,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        metadata=metadata or {},
    )


def failure(
    error: BaseException,
    model: str,
    vendor: str | None = None,
    input_tokens: int = 0,
    error_type: ErrorType | None = None,
    metadata: dict[str, Any] | None = None,
) -> GenerationResult:
    """Fold an exception into a failed result."""
    return GenerationResult(
        text=None,
        model=model,
        vendor=vendor,
        input_tokens=input_tokens,
        error_cause=describe_error(error),
        error_type=error_type or error_type_of(error),
        metadata=metadata or {},
    )
