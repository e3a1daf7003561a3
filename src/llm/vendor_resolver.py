# src/llm/vendor_resolver.py
"""Model name -> vendor resolution.

Resolution order:
  1. Explicit vendor (lowercased, aliases applied, must be known)
  2. First matching entry in VENDOR_PATTERNS (fixed priority order)
  3. Configured default vendor

Pure function of its arguments; no I/O.
"""

from __future__ import annotations

from collections.abc import Collection, Sequence
from dataclasses import dataclass

from llmconductor.config.settings import SUPPORTED_VENDORS, ConfigurationError

KNOWN_VENDORS: frozenset[str] = frozenset(SUPPORTED_VENDORS)


@dataclass(frozen=True)
class VendorPattern:
    """Model-name pattern mapped to a vendor."""

    vendor: str
    prefixes: tuple[str, ...] = ()
    contains: tuple[str, ...] = ()

    def matches(self, model: str) -> bool:
        name = model.lower()
        return name.startswith(self.prefixes) or any(s in name for s in self.contains)


# Order matters: routed names ("meta-llama/llama-3.1-8b") must hit openrouter
# before the bare "llama" prefix sends them to groq.
VENDOR_PATTERNS: tuple[VendorPattern, ...] = (
    VendorPattern("openrouter", contains=("/",)),
    VendorPattern("anthropic", prefixes=("claude",)),
    VendorPattern("openai", prefixes=("gpt", "chatgpt-", "o1", "o3", "o4-")),
    VendorPattern("gemini", prefixes=("gemini",)),
    VendorPattern("zai", prefixes=("glm-",)),
    VendorPattern("groq", prefixes=("llama", "mixtral", "gemma", "qwen")),
)

VENDOR_ALIASES: dict[str, str] = {
    "claude": "anthropic",
    "gpt": "openai",
    "google": "gemini",
    "z.ai": "zai",
}


def normalize_vendor(vendor: str) -> str:
    """Lowercase, strip and de-alias a vendor identifier."""
    key = vendor.strip().lower()
    return VENDOR_ALIASES.get(key, key)


def match_vendor(model: str, patterns: Sequence[VendorPattern] = VENDOR_PATTERNS) -> str | None:
    """Return the vendor of the first pattern matching ``model``, if any."""
    for pattern in patterns:
        if pattern.matches(model):
            return pattern.vendor
    return None


def resolve_vendor(
    model: str,
    explicit_vendor: str | None = None,
    *,
    default_vendor: str | None = None,
    known_vendors: Collection[str] = KNOWN_VENDORS,
    patterns: Sequence[VendorPattern] = VENDOR_PATTERNS,
) -> str:
    """Resolve the vendor that should serve ``model``.

    Args:
        model: Model identifier (e.g. "gpt-4o-mini", "claude-3-5-sonnet").
        explicit_vendor: Caller override; wins outright when given.
        default_vendor: Used when no pattern matches.
        known_vendors: Vendors with a configured backend.
        patterns: Ordered pattern table.

    Raises:
        ConfigurationError: Unknown explicit vendor, or no match and no
            usable default.
    """
    if explicit_vendor is not None:
        vendor = normalize_vendor(explicit_vendor)
        if vendor not in known_vendors:
            raise ConfigurationError(
                f"Unsupported vendor: {explicit_vendor!r}. "
                f"Supported vendors: {', '.join(sorted(known_vendors))}"
            )
        return vendor

    matched = match_vendor(model, patterns)
    if matched is not None:
        return matched

    if not default_vendor:
        raise ConfigurationError(
            f"No vendor matches model {model!r} and no default vendor is configured"
        )
    vendor = normalize_vendor(default_vendor)
    if vendor not in known_vendors:
        raise ConfigurationError(f"Default vendor {default_vendor!r} is not configured")
    return vendor
