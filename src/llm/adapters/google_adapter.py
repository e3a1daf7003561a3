# src/llm/adapters/google_adapter.py
"""Google Gemini transport via google-generativeai.

Data URIs are sent inline; other URLs are passed as file references with
a MIME type guessed from the path.
"""

from __future__ import annotations

import base64
import logging
import mimetypes
from typing import Any
from urllib.parse import urlparse

from llmconductor.llm.base_client import BaseTransport
from llmconductor.llm.models import ImagePart, NormalizedContent

logger = logging.getLogger(__name__)

_DEFAULT_IMAGE_MIME = "image/jpeg"


def to_gemini_parts(parts: NormalizedContent) -> list[dict[str, Any]]:
    """Map parts onto Gemini ``Part`` dicts."""
    out: list[dict[str, Any]] = []
    for part in parts:
        if isinstance(part, ImagePart):
            if part.is_data_uri:
                mime_type, data = part.split_data_uri()
                out.append({"inline_data": {"mime_type": mime_type, "data": base64.b64decode(data)}})
            else:
                guessed, _ = mimetypes.guess_type(urlparse(part.url).path)
                out.append({
                    "file_data": {
                        "file_uri": part.url,
                        "mime_type": guessed or _DEFAULT_IMAGE_MIME,
                    }
                })
        else:
            out.append({"text": part.value})
    return out


class GoogleAdapter(BaseTransport):
    """Google Gemini adapter."""

    def __init__(
        self,
        api_key: str = "",
        timeout_s: float = 30.0,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> None:
        self._api_key = api_key
        self._timeout_s = timeout_s
        self._max_tokens = max_tokens
        self._temperature = temperature

    @property
    def vendor(self) -> str:
        return "gemini"

    async def send(self, parts: NormalizedContent, model: str) -> Any:
        import google.generativeai as genai

        genai.configure(api_key=self._api_key)
        gen_model = genai.GenerativeModel(model)

        gen_config: dict[str, Any] = {}
        if self._max_tokens:
            gen_config["max_output_tokens"] = self._max_tokens
        if self._temperature is not None:
            gen_config["temperature"] = self._temperature

        return await gen_model.generate_content_async(
            [{"role": "user", "parts": to_gemini_parts(parts)}],
            generation_config=gen_config or None,
            request_options={"timeout": self._timeout_s},
        )

    def extract_text(self, reply: Any) -> str | None:
        try:
            if isinstance(reply, dict):
                text = reply["candidates"][0]["content"]["parts"][0]["text"]
            else:
                # .text raises ValueError when the candidate was blocked.
                text = reply.text
        except (AttributeError, IndexError, KeyError, TypeError, ValueError):
            return None
        return text if isinstance(text, str) else None
