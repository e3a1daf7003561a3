# src/llm/models.py
"""Pipeline types: request, content parts, backend descriptor.

Parts are backend-agnostic; each transport maps them to its own wire
shape. BackendDescriptor is built once from settings and never mutated.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

if TYPE_CHECKING:
    from llmconductor.llm.base_client import BaseTransport

OrderingPreference = Literal["text-first", "image-first"]
# Known hints are "low", "high" and "auto"; others are passed through untouched.
ImageDetail = str

TEXT_FIRST: OrderingPreference = "text-first"
IMAGE_FIRST: OrderingPreference = "image-first"


class ImageReference(BaseModel):
    """An image by URL or data URI, with an optional detail hint."""

    model_config = ConfigDict(frozen=True)

    url: str
    detail: ImageDetail | None = None

    @property
    def is_data_uri(self) -> bool:
        return self.url.startswith("data:")

    def split_data_uri(self) -> tuple[str, str]:
        """Return (media_type, base64 payload) of a base64 data URI."""
        header, _, payload = self.url.partition(",")
        if not self.is_data_uri or not header.endswith(";base64") or not payload:
            raise ValueError(f"Not a base64 data URI: {self.url[:40]!r}")
        return header[len("data:") : -len(";base64")] or "application/octet-stream", payload


class TextPart(BaseModel):
    """Text segment of a prompt."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    value: str


class ImagePart(ImageReference):
    """Image segment of a prompt."""

    kind: Literal["image"] = "image"


Part = Annotated[Union[TextPart, ImagePart], Field(discriminator="kind")]
NormalizedContent = list[Part]

PART_ADAPTER: TypeAdapter[Any] = TypeAdapter(Part)

# str | {"text": ..., "images": ...} | [TextPart | ImagePart | {"kind": ...}, ...]
PromptContent = Union[str, Mapping[str, Any], Sequence[Any]]


def _new_request_id() -> str:
    return uuid.uuid4().hex[:12]


class GenerationRequest(BaseModel):
    """Logical request handed to GenerationCoordinator.run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    model: str = Field(min_length=1)
    # Shape is checked by llm/content.normalize so bad content yields a failed result.
    content: Any
    vendor: str | None = None
    request_id: str = Field(default_factory=_new_request_id)


@dataclass(frozen=True)
class BackendDescriptor:
    """Static per-vendor metadata plus the transport handle."""

    vendor: str
    transport: BaseTransport
    ordering: OrderingPreference = TEXT_FIRST
    accepts_multimodal: bool = True

    @property
    def images_first(self) -> bool:
        return self.ordering == IMAGE_FIRST
