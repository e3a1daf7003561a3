# tests/conftest.py
"""Shared test fixtures for unit and integration tests.

Provides a scriptable fake transport, registries built from it and a
resilience manager that records sleeps instead of sleeping.
No network access: every backend is faked.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import pytest

from llmconductor.config.settings import Settings
from llmconductor.llm.base_client import BaseTransport, TransportError
from llmconductor.llm.client_factory import describe
from llmconductor.llm.coordinator import GenerationCoordinator
from llmconductor.llm.models import IMAGE_FIRST, TEXT_FIRST, BackendDescriptor, OrderingPreference
from llmconductor.llm.retry import ResilienceManager, RetryPolicy
from llmconductor.llm.token_accounting import TokenAccountant


class FakeTransport(BaseTransport):
    """Transport whose replies are scripted per call.

    Each scripted item is either a reply text (returned as ``{"text": ...}``)
    or an exception instance (raised).
    """

    def __init__(
        self,
        vendor: str = "fake",
        ordering: OrderingPreference = TEXT_FIRST,
        accepts_multimodal: bool = True,
        script: Iterable[Any] = (),
        default: Any = "ok",
    ) -> None:
        self._vendor = vendor
        self.ordering = ordering
        self.accepts_multimodal = accepts_multimodal
        self._script = list(script)
        self._default = default
        self.calls: list[tuple[list[Any], str]] = []

    @property
    def vendor(self) -> str:
        return self._vendor

    def set_script(self, *items: Any) -> None:
        self._script = list(items)

    async def send(self, parts, model):
        self.calls.append((list(parts), model))
        item = self._script.pop(0) if self._script else self._default
        if isinstance(item, BaseException):
            raise item
        return {"text": item}

    def extract_text(self, reply: Any) -> str | None:
        if not isinstance(reply, dict):
            return None
        text = reply.get("text")
        return text if isinstance(text, str) else None


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def http_error(status: int, message: str = "") -> TransportError:
    return TransportError(message or f"HTTP {status}", status_code=status)


# === FIXTURES: Configuration ===


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from .env and process environment."""
    return Settings.model_construct()


@pytest.fixture
def accountant() -> TokenAccountant:
    """Heuristic-only accountant (deterministic, no tokenizer download)."""
    return TokenAccountant(encoding=None)


# === FIXTURES: Backends ===


@pytest.fixture
def text_first_backend() -> BackendDescriptor:
    return describe(FakeTransport(vendor="openai"))


@pytest.fixture
def image_first_backend() -> BackendDescriptor:
    return describe(FakeTransport(vendor="anthropic", ordering=IMAGE_FIRST))


@pytest.fixture
def text_only_backend() -> BackendDescriptor:
    return describe(FakeTransport(vendor="ollama", accepts_multimodal=False))


@pytest.fixture
def fake_transports() -> dict[str, FakeTransport]:
    return {
        "openai": FakeTransport(vendor="openai"),
        "anthropic": FakeTransport(vendor="anthropic", ordering=IMAGE_FIRST),
        "gemini": FakeTransport(vendor="gemini"),
        "zai": FakeTransport(vendor="zai"),
        "groq": FakeTransport(vendor="groq", accepts_multimodal=False),
        "ollama": FakeTransport(vendor="ollama", accepts_multimodal=False),
    }


@pytest.fixture
def fake_registry(fake_transports: dict[str, FakeTransport]) -> dict[str, BackendDescriptor]:
    return {name: describe(t, vendor=name) for name, t in fake_transports.items()}


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def fast_resilience(recording_sleep: RecordingSleep) -> ResilienceManager:
    """3 attempts, no jitter, sleeps recorded instead of awaited."""
    policy = RetryPolicy(max_attempts=3, base_delay_s=1.0, max_delay_s=30.0, jitter_ratio=0.0)
    return ResilienceManager(policy, sleep=recording_sleep)


@pytest.fixture
def coordinator(
    fake_registry: dict[str, BackendDescriptor],
    fast_resilience: ResilienceManager,
    accountant: TokenAccountant,
) -> GenerationCoordinator:
    return GenerationCoordinator(
        fake_registry,
        default_vendor="openai",
        resilience=fast_resilience,
        accountant=accountant,
    )


@pytest.fixture
def make_transport() -> type[FakeTransport]:
    """The FakeTransport class, for tests that script their own backends."""
    return FakeTransport


@pytest.fixture
def make_http_error():
    return http_error
