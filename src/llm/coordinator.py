# src/llm/coordinator.py
"""End-to-end orchestration of one generation request.

    resolve vendor -> normalize content -> count input tokens
    -> send under retry policy -> extract text -> count output tokens
    -> GenerationResult

``run`` does not raise for configuration, content or backend failures.
Those come back as a failed GenerationResult. Task cancellation is not
caught and propagates to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from llmconductor.config.settings import ConfigurationError, Settings
from llmconductor.llm.client_factory import UnsupportedProviderError, build_registry
from llmconductor.llm.content import ContentError, extract_text, normalize
from llmconductor.llm.models import BackendDescriptor, GenerationRequest, PromptContent
from llmconductor.llm.response import ErrorType, GenerationResult, failure, success
from llmconductor.llm.retry import ResilienceManager, RetryPolicy
from llmconductor.llm.token_accounting import TokenAccountant, get_default_accountant
from llmconductor.llm.vendor_resolver import resolve_vendor
from llmconductor.logging.context import (
    reset_request_context,
    set_request_context,
    set_vendor_context,
)

logger = logging.getLogger(__name__)


class GenerationCoordinator:
    """Runs generation requests against an immutable backend registry.

    Holds no per-request state, so one instance can serve concurrent tasks.
    """

    def __init__(
        self,
        registry: Mapping[str, BackendDescriptor],
        *,
        default_vendor: str | None = None,
        resilience: ResilienceManager | None = None,
        accountant: TokenAccountant | None = None,
    ) -> None:
        self._registry = registry
        self._default_vendor = default_vendor
        self._resilience = resilience or ResilienceManager()
        self._accountant = accountant or get_default_accountant()

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        **kwargs: Any,
    ) -> GenerationCoordinator:
        """Build registry and retry policy from settings."""
        settings = settings or Settings()
        kwargs.setdefault("default_vendor", settings.default_vendor or None)
        kwargs.setdefault("resilience", ResilienceManager(RetryPolicy.from_settings(settings)))
        return cls(build_registry(settings), **kwargs)

    @property
    def vendors(self) -> list[str]:
        return sorted(self._registry)

    @property
    def accountant(self) -> TokenAccountant:
        return self._accountant

    def backend_for(self, model: str, vendor: str | None = None) -> BackendDescriptor:
        """Resolve and look up the backend that would serve ``model``.

        Raises:
            ConfigurationError: Unknown vendor or nothing configured.
        """
        resolved = resolve_vendor(
            model,
            vendor,
            default_vendor=self._default_vendor,
            known_vendors=self._registry.keys(),
        )
        backend = self._registry.get(resolved)
        if backend is None:
            raise UnsupportedProviderError(
                f"Vendor {resolved!r} resolved for model {model!r} has no configured backend"
            )
        return backend

    async def generate(
        self,
        model: str,
        content: PromptContent,
        vendor: str | None = None,
    ) -> GenerationResult:
        """Shorthand for ``run(GenerationRequest(...))``."""
        return await self.run(GenerationRequest(model=model, content=content, vendor=vendor))

    def run_sync(self, request: GenerationRequest) -> GenerationResult:
        """Blocking wrapper for callers without an event loop."""
        return asyncio.run(self.run(request))

    async def run(self, request: GenerationRequest) -> GenerationResult:
        """Execute one request; failures are returned, not raised."""
        tokens = set_request_context(request.request_id, request.model)
        try:
            return await self._run(request)
        finally:
            reset_request_context(tokens)

    async def _run(self, request: GenerationRequest) -> GenerationResult:
        vendor: str | None = None
        input_tokens = 0
        retries = 0
        stage = "resolve"

        def _count_retry(attempt: int, error: BaseException, delay: float) -> None:
            nonlocal retries
            retries += 1

        try:
            backend = self.backend_for(request.model, request.vendor)
            vendor = backend.vendor
            set_vendor_context(vendor)
            logger.debug("Resolved model %s -> vendor %s", request.model, vendor)

            stage = "normalize"
            parts = normalize(request.content, backend)
            if not self._accountant.loaded:
                # First tokenizer load can hit the network.
                await asyncio.to_thread(self._accountant.load)
            input_tokens = self._accountant.estimate(extract_text(request.content))

            stage = "transport"
            logger.info(
                "Generation start: %d part(s), ~%d input tokens", len(parts), input_tokens
            )
            transport = backend.transport
            reply = await self._resilience.run(
                lambda: transport.send(parts, request.model),
                label=f"{vendor}:{request.model}",
                on_retry=_count_retry,
            )
            output_text = transport.extract_text(reply)

            stage = "account"
            output_tokens = self._accountant.estimate(output_text or "")
        except Exception as exc:  # noqa: BLE001 - folded into the result
            error_type = _error_type_for(exc, stage)
            logger.warning(
                "Generation failed at %s stage (%s): %s",
                stage, error_type, exc,
                extra={"data": {"vendor": vendor, "model": request.model, "retries": retries}},
            )
            return failure(
                exc,
                request.model,
                vendor=vendor,
                input_tokens=input_tokens,
                error_type=error_type,
                metadata=self._metadata(request, vendor, retries, stage),
            )

        result = success(
            output_text,
            request.model,
            vendor,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            metadata=self._metadata(request, vendor, retries, stage),
        )
        if result.is_success():
            logger.info(
                "Generation complete: %d input / %d output tokens",
                input_tokens, output_tokens,
                extra={"data": {"vendor": vendor, "model": request.model, "retries": retries}},
            )
        else:
            logger.warning("Backend %s returned no usable text for %s", vendor, request.model)
        return result

    @staticmethod
    def _metadata(
        request: GenerationRequest, vendor: str | None, retries: int, stage: str
    ) -> dict[str, Any]:
        sent = stage in ("transport", "account")
        return {
            "vendor": vendor,
            "request_id": request.request_id,
            "attempts": retries + 1 if sent else 0,
        }


def _error_type_for(error: BaseException, stage: str) -> ErrorType:
    if isinstance(error, ConfigurationError):
        return "configuration"
    if isinstance(error, ContentError):
        return "content"
    if stage == "transport":
        return "transport"
    return "internal"
