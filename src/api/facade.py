# src/api/facade.py
"""Public API facade: the outermost wiring layer.

Usage:
    from llmconductor.api.facade import generate
    result = await generate("Summarise this.", model="gpt-4o-mini")
    if result.is_success():
        print(result.text)

The process-wide default coordinator is created lazily from Settings.
Everything below this module takes its configuration explicitly.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from llmconductor.config.settings import Settings
from llmconductor.llm.coordinator import GenerationCoordinator
from llmconductor.llm.models import GenerationRequest, PromptContent
from llmconductor.llm.response import GenerationResult, failure
from llmconductor.prompts.base import PromptRenderer

logger = logging.getLogger(__name__)

_default_coordinator: GenerationCoordinator | None = None
_default_settings: Settings | None = None


def get_default_coordinator(settings: Settings | None = None) -> GenerationCoordinator:
    """Return the process-wide coordinator, building it on first use."""
    global _default_coordinator, _default_settings
    if _default_coordinator is None:
        _default_settings = settings or Settings()
        _default_coordinator = GenerationCoordinator.from_settings(_default_settings)
    return _default_coordinator


def set_default_coordinator(
    coordinator: GenerationCoordinator | None,
    settings: Settings | None = None,
) -> None:
    """Replace (or with None, reset) the process-wide coordinator."""
    global _default_coordinator, _default_settings
    _default_coordinator = coordinator
    _default_settings = settings


def _default_model() -> str:
    settings = _default_settings or Settings()
    return settings.default_model


async def generate(
    prompt: PromptContent,
    model: str | None = None,
    vendor: str | None = None,
    coordinator: GenerationCoordinator | None = None,
) -> GenerationResult:
    """Generate from a raw prompt string or structured multimodal content.

    Args:
        prompt: String, ``{"text": ..., "images": ...}`` mapping, or part list.
        model: Model identifier; defaults to Settings.default_model.
        vendor: Explicit vendor; derived from the model name when omitted.
        coordinator: Coordinator to use; defaults to the process-wide one.
    """
    coordinator = coordinator or get_default_coordinator()
    request = GenerationRequest(model=model or _default_model(), content=prompt, vendor=vendor)
    return await coordinator.run(request)


async def generate_from_template(
    renderer: PromptRenderer,
    type_id: str,
    data: Mapping[str, Any],
    model: str | None = None,
    vendor: str | None = None,
    coordinator: GenerationCoordinator | None = None,
) -> GenerationResult:
    """Render a template with ``renderer``, then generate from the result.

    Rendering failures come back as a failed result tagged "content".
    """
    model = model or _default_model()
    try:
        prompt = renderer.render(type_id, data)
    except Exception as exc:  # noqa: BLE001 - folded into the result
        logger.warning("Rendering template %r failed: %s", type_id, exc)
        return failure(exc, model, vendor=vendor, error_type="content")
    return await generate(prompt, model=model, vendor=vendor, coordinator=coordinator)


def generate_sync(
    prompt: PromptContent,
    model: str | None = None,
    vendor: str | None = None,
    coordinator: GenerationCoordinator | None = None,
) -> GenerationResult:
    """Blocking variant of generate() for code without an event loop."""
    return asyncio.run(generate(prompt, model=model, vendor=vendor, coordinator=coordinator))
