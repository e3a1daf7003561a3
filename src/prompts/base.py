# src/prompts/base.py
"""Interface of the prompt-template collaborator.

Templates are rendered by the caller before a request is built; the
generation pipeline never calls a renderer itself. Any object with a
matching ``render`` method satisfies the protocol.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from llmconductor.llm.models import PromptContent


@runtime_checkable
class PromptRenderer(Protocol):
    """Turns a template id plus data into prompt content."""

    def render(self, type_id: str, data: Mapping[str, Any]) -> PromptContent:
        """Return a prompt string or structured {text, images} content."""
        ...
