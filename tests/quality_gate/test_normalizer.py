"""Tests for extracting listing documents from raw generator text."""

from __future__ import annotations

import json

import pytest

from schemas.listings import (
    DigitalListing,
    GeneralListing,
    MarketplaceListing,
    SocialMediaContent,
)
from services.quality_gate.normalizer import NormalizeError, extract_json, normalize


PAYLOAD = {"newTitle": "Walnut Cutting Board", "hashtags": ["board", "walnut"]}


def test_pure_json_is_parsed_as_is() -> None:
    doc = normalize(json.dumps(PAYLOAD), GeneralListing)

    assert isinstance(doc, GeneralListing)
    assert doc.new_title == "Walnut Cutting Board"
    assert doc.hashtags == ["board", "walnut"]


def test_json_fenced_block_with_surrounding_prose() -> None:
    raw = (
        "Sure! Here is your listing:\n\n```json\n"
        f"{json.dumps(PAYLOAD, indent=2)}\n```\n\nLet me know if you need changes."
    )

    doc = normalize(raw, GeneralListing)

    assert isinstance(doc, GeneralListing)
    assert doc.new_title == "Walnut Cutting Board"


def test_untagged_fence_is_used_when_no_json_fence() -> None:
    raw = f"```\n{json.dumps(PAYLOAD)}\n```"

    doc = normalize(raw, GeneralListing)

    assert isinstance(doc, GeneralListing)
    assert doc.hashtags == ["board", "walnut"]


def test_bracket_span_inside_prose() -> None:
    raw = f"Here you go: {json.dumps(PAYLOAD)} Hope this helps"

    doc = normalize(raw, GeneralListing)

    assert isinstance(doc, GeneralListing)
    assert doc.new_title == "Walnut Cutting Board"


def test_strategy_order_prefers_direct_parse() -> None:
    strategy, value = extract_json(json.dumps(PAYLOAD))  # type: ignore[misc]

    assert strategy == "direct"
    assert value == PAYLOAD


def test_array_with_leading_object_uses_first_element() -> None:
    raw = json.dumps([PAYLOAD, {"newTitle": "ignored"}])

    doc = normalize(raw, GeneralListing)

    assert isinstance(doc, GeneralListing)
    assert doc.new_title == "Walnut Cutting Board"


@pytest.mark.parametrize(
    "raw",
    [
        "I'm sorry, I can't help with that.",
        "",
        "   ",
        None,
        "[1, 2, 3]",
        '"just a string"',
        "{not valid json at all",
    ],
)
def test_unusable_responses_return_normalize_error(raw: str | None) -> None:
    result = normalize(raw, GeneralListing)

    assert isinstance(result, NormalizeError)
    assert result.reason


def test_normalize_error_keeps_raw_text_for_diagnostics() -> None:
    raw = "I'm sorry, I can't help with that."

    result = normalize(raw, GeneralListing)

    assert isinstance(result, NormalizeError)
    assert result.raw_text == raw
    assert result.raw_excerpt == raw


def test_wrong_field_type_is_a_normalize_error_not_an_exception() -> None:
    raw = json.dumps({"newTitle": {"nested": "object"}})

    result = normalize(raw, GeneralListing)

    assert isinstance(result, NormalizeError)
    assert "GeneralListing" in result.reason
    assert any(err.startswith("newTitle") for err in result.errors)


def test_missing_fields_still_normalize() -> None:
    doc = normalize("{}", MarketplaceListing)

    assert isinstance(doc, MarketplaceListing)
    assert doc.title is None
    assert doc.bullet_points is None


def test_bytes_input_is_decoded() -> None:
    doc = normalize(json.dumps(PAYLOAD).encode(), GeneralListing)

    assert isinstance(doc, GeneralListing)


def test_double_encoded_json_string_is_unwrapped() -> None:
    raw = json.dumps(json.dumps(PAYLOAD))

    doc = normalize(raw, GeneralListing)

    assert isinstance(doc, GeneralListing)
    assert doc.new_title == "Walnut Cutting Board"


def test_csv_tag_string_is_coerced_to_list() -> None:
    raw = json.dumps({"hashtags": "walnut board, kitchen gift,\nwedding gift"})

    doc = normalize(raw, GeneralListing)

    assert isinstance(doc, GeneralListing)
    assert doc.hashtags == ["walnut board", "kitchen gift", "wedding gift"]


def test_nested_social_media_is_typed() -> None:
    raw = json.dumps(
        {
            "socialMedia": {
                "pinterestTitle": "Walnut board",
                "instagramHashtags": ["#walnut", "#board"],
            }
        }
    )

    doc = normalize(raw, GeneralListing)

    assert isinstance(doc, GeneralListing)
    assert isinstance(doc.social_media, SocialMediaContent)
    assert doc.social_media.instagram_hashtags == "#walnut #board"


def test_snake_case_keys_are_accepted() -> None:
    doc = normalize(json.dumps({"new_title": "Walnut board"}), GeneralListing)

    assert isinstance(doc, GeneralListing)
    assert doc.new_title == "Walnut board"


def test_later_fence_is_used_when_first_is_not_an_object() -> None:
    raw = (
        'Example tags:\n```json\n["a", "b"]\n```\n'
        'Final listing:\n```json\n{"newTitle": "Walnut board"}\n```'
    )

    doc = normalize(raw, GeneralListing)

    assert isinstance(doc, GeneralListing)
    assert doc.new_title == "Walnut board"


def test_extract_json_skips_rejected_candidates() -> None:
    raw = '```json\n"example"\n```\n```json\n{"title": "x"}\n```'

    assert extract_json(raw) == ("fenced", "example")
    assert extract_json(raw, accept=lambda v: isinstance(v, dict)) == (
        "fenced",
        {"title": "x"},
    )


class TestUnscoredMetadata:
    def test_numeric_price_is_kept_as_text(self, marketplace_listing) -> None:
        marketplace_listing["estimatedPrice"] = 24.99

        doc = normalize(json.dumps(marketplace_listing), MarketplaceListing)

        assert isinstance(doc, MarketplaceListing)
        assert doc.estimated_price == "24.99"

    @pytest.mark.parametrize(
        ("key", "value", "attr"),
        [
            ("seoScore", "92/100", "seo_score"),
            ("confidence", "high", "confidence"),
            ("suggestedCategory", {"path": ["Sports"]}, "suggested_category"),
            ("estimatedPrice", True, "estimated_price"),
        ],
    )
    def test_wrong_typed_metadata_is_dropped(
        self, marketplace_listing, key: str, value: object, attr: str
    ) -> None:
        marketplace_listing[key] = value

        doc = normalize(json.dumps(marketplace_listing), MarketplaceListing)

        assert isinstance(doc, MarketplaceListing)
        assert getattr(doc, attr) is None
        assert doc.title == marketplace_listing["title"]

    def test_digital_download_details_are_lenient(self, digital_listing) -> None:
        digital_listing["instantDownload"] = "within minutes"
        digital_listing["licenseInfo"] = {"personal": True}
        digital_listing["fileFormats"] = "PDF, PNG"

        doc = normalize(json.dumps(digital_listing), DigitalListing)

        assert isinstance(doc, DigitalListing)
        assert doc.instant_download is None
        assert doc.license_info is None
        assert doc.file_formats == ["PDF", "PNG"]

    def test_scored_fields_stay_strict(self, marketplace_listing) -> None:
        marketplace_listing["title"] = {"text": "bottle"}

        result = normalize(json.dumps(marketplace_listing), MarketplaceListing)

        assert isinstance(result, NormalizeError)
        assert any(err.startswith("title") for err in result.errors)
