# src/llm/client_factory.py
"""Factory: vendor name -> transport, and the immutable backend registry.

The registry is built once from Settings at startup and is read-only
afterwards, so concurrent coordinator runs need no locking.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any

from llmconductor.config.settings import ConfigurationError, Settings
from llmconductor.llm.base_client import BaseTransport
from llmconductor.llm.models import BackendDescriptor

logger = logging.getLogger(__name__)

_OPENAI_ADAPTER = "llmconductor.llm.adapters.openai_adapter.OpenAIAdapter"

# Registry of vendor name -> adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "openai": _OPENAI_ADAPTER,
    "openrouter": _OPENAI_ADAPTER,
    "zai": _OPENAI_ADAPTER,
    "groq": _OPENAI_ADAPTER,
    "anthropic": "llmconductor.llm.adapters.anthropic_adapter.AnthropicAdapter",
    "gemini": "llmconductor.llm.adapters.google_adapter.GoogleAdapter",
    "ollama": "llmconductor.llm.adapters.ollama_adapter.OllamaAdapter",
}
_BUILTIN_REGISTRY: dict[str, str] = dict(_PROVIDER_REGISTRY)

BackendRegistry = Mapping[str, BackendDescriptor]


class UnsupportedProviderError(ConfigurationError):
    """Raised when a vendor has no registered transport."""


def registered_vendors() -> list[str]:
    return sorted(_PROVIDER_REGISTRY)


def create_transport(
    vendor: str,
    settings: Settings | None = None,
    **kwargs: Any,
) -> BaseTransport:
    """Instantiate the transport for ``vendor``.

    Args:
        vendor: Vendor identifier (openai, anthropic, gemini, ...).
        settings: Source of credentials, base URLs and request defaults.
        **kwargs: Adapter arguments; these win over settings.

    Raises:
        UnsupportedProviderError: If vendor is not registered.
    """
    if vendor not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported vendor: {vendor!r}. "
            f"Available: {', '.join(registered_vendors())}"
        )

    adapter_cls = _import_class(_PROVIDER_REGISTRY[vendor])
    init_kwargs = dict(kwargs)
    if _PROVIDER_REGISTRY[vendor] == _BUILTIN_REGISTRY.get(vendor):
        for key, value in _settings_kwargs(vendor, settings).items():
            init_kwargs.setdefault(key, value)

    logger.debug("Creating transport: vendor=%s, adapter=%s", vendor, adapter_cls.__name__)
    return adapter_cls(**init_kwargs)


def describe(transport: BaseTransport, vendor: str | None = None) -> BackendDescriptor:
    """Freeze a transport's capabilities into a BackendDescriptor."""
    return BackendDescriptor(
        vendor=vendor or transport.vendor,
        transport=transport,
        ordering=transport.ordering,
        accepts_multimodal=transport.accepts_multimodal,
    )


def build_registry(
    settings: Settings | None = None,
    vendors: Iterable[str] | None = None,
    transports: Mapping[str, BaseTransport] | None = None,
) -> BackendRegistry:
    """Build the read-only vendor -> BackendDescriptor mapping.

    Args:
        settings: Application settings (credentials, base URLs).
        vendors: Vendors to include; defaults to every registered vendor.
        transports: Pre-built transports that replace factory-made ones.
    """
    settings = settings or Settings()
    prebuilt = dict(transports or {})
    names = list(vendors) if vendors is not None else registered_vendors()

    registry: dict[str, BackendDescriptor] = {}
    for name in names:
        transport = prebuilt.pop(name, None) or create_transport(name, settings)
        registry[name] = describe(transport, vendor=name)
    for name, transport in prebuilt.items():
        registry[name] = describe(transport, vendor=name)

    logger.info("Backend registry ready: %s", ", ".join(sorted(registry)))
    return MappingProxyType(registry)


def register_provider(name: str, class_path: str) -> None:
    """Register a custom transport class for vendor ``name``.

    Call during startup, before build_registry().
    """
    _PROVIDER_REGISTRY[name] = class_path
    logger.info("Registered vendor transport: %s -> %s", name, class_path)


def _settings_kwargs(vendor: str, settings: Settings | None) -> dict[str, Any]:
    if settings is None:
        return {"vendor": vendor} if _PROVIDER_REGISTRY[vendor] == _OPENAI_ADAPTER else {}

    common: dict[str, Any] = {
        "timeout_s": settings.timeout_s,
        "max_tokens": settings.max_tokens,
        "temperature": settings.temperature,
    }
    if vendor == "ollama":
        return {**common, "host": settings.ollama_base_url}
    if vendor in ("anthropic", "gemini"):
        return {**common, "api_key": settings.api_key_for(vendor)}

    extra: dict[str, Any] = {
        "vendor": vendor,
        "api_key": settings.api_key_for(vendor),
        "base_url": getattr(settings, f"{vendor}_base_url", "") or None,
    }
    if vendor == "openai" and settings.openai_organization:
        extra["organization"] = settings.openai_organization
    return {**common, **extra}


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
