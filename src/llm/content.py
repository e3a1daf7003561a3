# src/llm/content.py
"""Prompt normalization: string / {text, images} / part list -> ordered parts.

One normalizer serves every backend. The only per-backend inputs are the
descriptor's ordering preference and whether it accepts images at all.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from llmconductor.llm.models import (
    PART_ADAPTER,
    BackendDescriptor,
    ImagePart,
    ImageReference,
    NormalizedContent,
    PromptContent,
    TextPart,
)

logger = logging.getLogger(__name__)


class ContentError(ValueError):
    """Prompt content is malformed or unusable for the target backend."""


def normalize(content: PromptContent, backend: BackendDescriptor) -> NormalizedContent:
    """Convert prompt content into the part list ``backend`` expects.

    Raises:
        ContentError: On malformed image entries, empty content, or images
            sent to a text-only backend.
    """
    if isinstance(content, str):
        parts: NormalizedContent = [TextPart(value=content)]
    elif isinstance(content, Mapping):
        parts = _from_mapping(content, images_first=backend.images_first)
    elif isinstance(content, Sequence):
        # Pre-built parts keep the caller's order.
        parts = [_coerce_part(p) for p in content]
    else:
        raise ContentError(f"Unsupported prompt content type: {type(content).__name__}")

    if not any(_is_non_empty(p) for p in parts):
        raise ContentError("Prompt content resolved to no non-empty parts")

    if not backend.accepts_multimodal and any(isinstance(p, ImagePart) for p in parts):
        raise ContentError(f"Backend {backend.vendor!r} accepts text only; got image parts")

    logger.debug(
        "Normalized %d part(s) for %s (%s)", len(parts), backend.vendor, backend.ordering
    )
    return parts


def extract_text(content: PromptContent | None) -> str:
    """Join the text-bearing portions of any prompt shape with single spaces.

    Used for token accounting only; the result never goes on the wire.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, Mapping):
        text = content.get("text")
        return text if isinstance(text, str) else ""
    if isinstance(content, Sequence):
        return " ".join(t for t in (_part_text(p) for p in content) if t)
    return str(content)


def flatten_text(parts: NormalizedContent) -> str:
    """Collapse a text-only part list into the flat string some backends take."""
    if any(isinstance(p, ImagePart) for p in parts):
        raise ContentError("Cannot flatten content that carries images")
    return " ".join(p.value for p in parts if isinstance(p, TextPart) and p.value)


# --- Internal helpers ---


def _from_mapping(content: Mapping[str, Any], images_first: bool) -> NormalizedContent:
    text = content.get("text")
    if text is not None and not isinstance(text, str):
        raise ContentError(f"'text' must be a string, got {type(text).__name__}")

    images = content.get("images")
    if images is None:
        images = []
    elif isinstance(images, (str, Mapping, ImageReference)):
        images = [images]
    elif not isinstance(images, Sequence):
        raise ContentError(f"'images' must be a list, got {type(images).__name__}")

    image_parts = [_to_image_part(img) for img in images]
    text_parts: NormalizedContent = [TextPart(value=text)] if text else []

    if images_first:
        return [*image_parts, *text_parts]
    return [*text_parts, *image_parts]


def _to_image_part(image: Any) -> ImagePart:
    if isinstance(image, ImagePart):
        return image
    if isinstance(image, ImageReference):
        return ImagePart(url=image.url, detail=image.detail)
    if isinstance(image, str):
        if not image.strip():
            raise ContentError("Image URL must not be empty")
        return ImagePart(url=image)
    if isinstance(image, Mapping):
        url = image.get("url")
        if not isinstance(url, str) or not url.strip():
            raise ContentError(f"Image entry has no usable 'url': {image!r}")
        detail = image.get("detail")
        if detail is not None and not isinstance(detail, str):
            raise ContentError(f"Image 'detail' must be a string, got {detail!r}")
        return ImagePart(url=url, detail=detail)
    raise ContentError(f"Malformed image entry: {image!r}")


def _coerce_part(part: Any) -> TextPart | ImagePart:
    if isinstance(part, (TextPart, ImagePart)):
        return part
    if isinstance(part, str):
        return TextPart(value=part)
    try:
        return PART_ADAPTER.validate_python(part)
    except ValidationError as exc:
        raise ContentError(f"Malformed content part: {part!r}") from exc


def _is_non_empty(part: TextPart | ImagePart) -> bool:
    if isinstance(part, TextPart):
        return bool(part.value.strip())
    return bool(part.url.strip())


def _part_text(part: Any) -> str | None:
    if isinstance(part, TextPart):
        return part.value
    if isinstance(part, str):
        return part
    if isinstance(part, Mapping):
        # Accept the backend-agnostic form and the common {"type": "text", "text": ...} form.
        if part.get("kind") == "text":
            return part.get("value") or ""
        if part.get("type") == "text":
            return part.get("text") or ""
    return None
