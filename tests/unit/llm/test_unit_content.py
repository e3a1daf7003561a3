# tests/unit/llm/test_unit_content.py
"""Tests for llm/content.py: normalization, ordering, text extraction."""

from __future__ import annotations

import pytest

from llmconductor.llm.content import ContentError, extract_text, flatten_text, normalize
from llmconductor.llm.models import ImagePart, ImageReference, TextPart


class TestNormalizeShapes:
    def test_plain_string(self, text_first_backend):
        assert normalize("hello", text_first_backend) == [TextPart(value="hello")]

    def test_single_image_string_text_first(self, text_first_backend):
        parts = normalize(
            {"text": "describe", "images": "http://x/img.jpg"}, text_first_backend
        )
        assert parts == [TextPart(value="describe"), ImagePart(url="http://x/img.jpg")]

    def test_bare_string_image_has_no_detail(self, text_first_backend):
        parts = normalize({"text": "t", "images": ["http://x/a.png"]}, text_first_backend)
        assert parts[1].detail is None

    def test_structured_image_keeps_detail(self, text_first_backend):
        parts = normalize(
            {"text": "t", "images": [{"url": "http://x/a.png", "detail": "high"}]},
            text_first_backend,
        )
        assert parts[1] == ImagePart(url="http://x/a.png", detail="high")

    def test_unknown_detail_passed_through(self, text_first_backend):
        parts = normalize(
            {"images": [{"url": "http://x/a.png", "detail": "ultra"}]}, text_first_backend
        )
        assert parts[0].detail == "ultra"

    def test_image_reference_objects(self, text_first_backend):
        ref = ImageReference(url="data:image/png;base64,AAAA", detail="low")
        parts = normalize({"images": ref}, text_first_backend)
        assert parts == [ImagePart(url=ref.url, detail="low")]

    def test_image_only_prompt_is_legal(self, text_first_backend):
        parts = normalize({"images": ["http://x/a.png"]}, text_first_backend)
        assert parts == [ImagePart(url="http://x/a.png")]

    def test_image_order_preserved(self, text_first_backend):
        parts = normalize({"text": "t", "images": ["u1", "u2", "u3"]}, text_first_backend)
        assert [p.url for p in parts[1:]] == ["u1", "u2", "u3"]


class TestOrdering:
    def test_image_first_backend(self, image_first_backend):
        parts = normalize({"text": "t", "images": ["u1", "u2"]}, image_first_backend)
        assert [type(p) for p in parts] == [ImagePart, ImagePart, TextPart]

    def test_text_first_backend(self, text_first_backend):
        parts = normalize({"text": "t", "images": ["u1", "u2"]}, text_first_backend)
        assert [type(p) for p in parts] == [TextPart, ImagePart, ImagePart]

    def test_key_order_in_mapping_is_irrelevant(self, image_first_backend, text_first_backend):
        content = {"images": ["u1"], "text": "t"}
        assert isinstance(normalize(content, image_first_backend)[0], ImagePart)
        assert isinstance(normalize(content, text_first_backend)[0], TextPart)


class TestPrebuiltParts:
    def test_passthrough_unchanged(self, image_first_backend):
        parts = [TextPart(value="a"), ImagePart(url="u")]
        assert normalize(parts, image_first_backend) == parts

    def test_dict_parts_coerced(self, text_first_backend):
        parts = normalize(
            [{"kind": "text", "value": "a"}, {"kind": "image", "url": "u", "detail": "auto"}],
            text_first_backend,
        )
        assert parts == [TextPart(value="a"), ImagePart(url="u", detail="auto")]

    def test_malformed_part(self, text_first_backend):
        with pytest.raises(ContentError):
            normalize([{"kind": "audio", "url": "u"}], text_first_backend)


class TestFailures:
    @pytest.mark.parametrize("bad", [42, None, ["ok", 3], {"nourl": "x"}, {"url": ""}])
    def test_malformed_image_entry(self, text_first_backend, bad):
        with pytest.raises(ContentError):
            normalize({"text": "t", "images": bad if isinstance(bad, list) else [bad]},
                      text_first_backend)

    def test_empty_string_rejected(self, text_first_backend):
        with pytest.raises(ContentError, match="no non-empty parts"):
            normalize("   ", text_first_backend)

    def test_empty_mapping_rejected(self, text_first_backend):
        with pytest.raises(ContentError):
            normalize({}, text_first_backend)

    def test_empty_list_rejected(self, text_first_backend):
        with pytest.raises(ContentError):
            normalize([], text_first_backend)

    def test_images_on_text_only_backend(self, text_only_backend):
        with pytest.raises(ContentError, match="text only"):
            normalize({"text": "t", "images": ["u"]}, text_only_backend)

    def test_text_on_text_only_backend(self, text_only_backend):
        assert normalize({"text": "t"}, text_only_backend) == [TextPart(value="t")]

    def test_unsupported_type(self, text_first_backend):
        with pytest.raises(ContentError):
            normalize(3.14, text_first_backend)  # type: ignore[arg-type]

    def test_non_string_text(self, text_first_backend):
        with pytest.raises(ContentError):
            normalize({"text": 5}, text_first_backend)


class TestExtractText:
    def test_same_text_for_all_shapes(self):
        assert extract_text("a") == "a"
        assert extract_text({"text": "a", "images": ["u1", "u2"]}) == "a"
        assert extract_text([TextPart(value="a"), ImagePart(url="u")]) == "a"
        assert extract_text([{"kind": "text", "value": "a"}, {"kind": "image", "url": "u"}]) == "a"

    def test_joins_text_parts_with_space(self):
        assert extract_text([TextPart(value="a"), ImagePart(url="u"), TextPart(value="b")]) == "a b"

    def test_openai_style_parts(self):
        parts = [{"type": "text", "text": "hi"}, {"type": "image_url", "image_url": {"url": "u"}}]
        assert extract_text(parts) == "hi"

    def test_empty_text_parts_are_skipped(self):
        assert extract_text([{"kind": "text", "value": ""}, {"kind": "text", "value": "a"}]) == "a"
        assert extract_text([TextPart(value="a"), TextPart(value=""), TextPart(value="b")]) == "a b"

    def test_image_only_mapping(self):
        assert extract_text({"images": ["u"]}) == ""

    def test_none(self):
        assert extract_text(None) == ""


class TestFlattenText:
    def test_joins(self):
        assert flatten_text([TextPart(value="a"), TextPart(value="b")]) == "a b"

    def test_skips_empty_parts(self):
        assert flatten_text([TextPart(value=""), TextPart(value="b")]) == "b"

    def test_rejects_images(self):
        with pytest.raises(ContentError):
            flatten_text([TextPart(value="a"), ImagePart(url="u")])
