# tests/unit/llm/adapters/test_unit_google_adapter.py
"""Tests for the Gemini adapter's part mapping and reply parsing."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from llmconductor.llm.adapters.google_adapter import GoogleAdapter, to_gemini_parts
from llmconductor.llm.models import ImagePart, TextPart


class _BlockedReply:
    @property
    def text(self):
        raise ValueError("response was blocked")


class TestToGeminiParts:
    def test_text(self):
        assert to_gemini_parts([TextPart(value="Hi")]) == [{"text": "Hi"}]

    def test_data_uri_is_inline(self):
        parts = to_gemini_parts([ImagePart(url="data:image/png;base64,aGVsbG8=")])
        assert parts == [{"inline_data": {"mime_type": "image/png", "data": b"hello"}}]

    def test_url_guesses_mime_type(self):
        parts = to_gemini_parts([ImagePart(url="https://x/img/cat.png?size=2")])
        assert parts[0]["file_data"] == {"file_uri": "https://x/img/cat.png?size=2", "mime_type": "image/png"}

    def test_url_without_extension_defaults_to_jpeg(self):
        parts = to_gemini_parts([ImagePart(url="https://x/image")])
        assert parts[0]["file_data"]["mime_type"] == "image/jpeg"


class TestExtractText:
    def test_vendor(self):
        assert GoogleAdapter().vendor == "gemini"

    def test_object_reply(self):
        assert GoogleAdapter().extract_text(SimpleNamespace(text="Hello")) == "Hello"

    def test_dict_reply(self):
        reply = {"candidates": [{"content": {"parts": [{"text": "Hello"}]}}]}
        assert GoogleAdapter().extract_text(reply) == "Hello"

    def test_blocked_reply(self):
        assert GoogleAdapter().extract_text(_BlockedReply()) is None

    @pytest.mark.parametrize("reply", [{}, {"candidates": []}, None])
    def test_malformed(self, reply):
        assert GoogleAdapter().extract_text(reply) is None
