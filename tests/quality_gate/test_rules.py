"""Unit tests for individual quality rules."""

from __future__ import annotations

import pytest

from schemas.listings import GeneralListing, MarketplaceListing, SocialMediaContent
from services.quality_gate.catalogs import BANNED_PHRASES, SOCIAL_MEDIA_CATALOG
from services.quality_gate.models import RuleFamily, Severity
from services.quality_gate.rules import (
    BannedPhraseRule,
    DuplicateItemsRule,
    ForbiddenCharacterRule,
    ForbiddenPrefixRule,
    HashtagCountRule,
    ItemCountRule,
    ItemLengthRule,
    LengthRule,
    LongTailRule,
    NestedDocumentRule,
    PlaceholderRule,
    RepeatedWordRule,
    RequiredFieldRule,
    RequiredMentionRule,
    RuleCatalog,
    SectionMarkerRule,
)


class TestBannedPhraseRule:
    rule = BannedPhraseRule(
        rule_id="banned_phrase",
        fields=("new_description",),
        phrases=BANNED_PHRASES,
        score_delta=10,
    )

    def test_one_finding_per_distinct_phrase(self) -> None:
        doc = GeneralListing(
            new_description="A Stunning board. Truly stunning and exquisite."
        )

        findings = self.rule.check(doc)

        assert [f.message for f in findings] == [
            'new_description contains banned phrase "stunning"',
            'new_description contains banned phrase "exquisite"',
        ]
        assert all(f.severity is Severity.ERROR for f in findings)
        assert all(f.score_delta == 10 for f in findings)

    def test_clean_text_has_no_findings(self) -> None:
        doc = GeneralListing(new_description="A walnut board oiled by hand.")

        assert self.rule.check(doc) == []

    def test_absent_field_is_skipped(self) -> None:
        assert self.rule.check(GeneralListing()) == []

    def test_each_field_is_scanned_separately(self) -> None:
        rule = BannedPhraseRule(
            rule_id="banned_phrase",
            fields=("pinterest_description", "instagram_caption"),
            phrases=("stunning",),
            score_delta=5,
        )
        doc = SocialMediaContent(
            pinterest_description="stunning", instagram_caption="Stunning!"
        )

        assert len(rule.check(doc)) == 2


class TestRequiredFieldRule:
    def test_missing_and_blank_values_are_reported(self) -> None:
        rule = RequiredFieldRule(
            rule_id="title.required", field="new_title", label="Title", score_delta=20
        )

        assert rule.check(GeneralListing())[0].message == "Title is missing"
        assert len(rule.check(GeneralListing(new_title="   "))) == 1
        assert rule.check(GeneralListing(new_title="Walnut board")) == []

    def test_empty_list_is_missing(self) -> None:
        rule = RequiredFieldRule(rule_id="tags.required", field="hashtags", score_delta=15)

        assert len(rule.check(GeneralListing(hashtags=[]))) == 1

    def test_warning_severity(self) -> None:
        rule = RequiredFieldRule(
            rule_id="a_plus.required",
            field="a_plus_suggestions",
            severity=Severity.WARNING,
            score_delta=5,
        )

        (finding,) = rule.check(MarketplaceListing())
        assert finding.severity is Severity.WARNING


def test_negative_score_delta_is_rejected() -> None:
    with pytest.raises(ValueError):
        RequiredFieldRule(rule_id="x", field="new_title", score_delta=-1)


class TestSectionMarkerRule:
    rule = SectionMarkerRule(
        rule_id="description.sections",
        field="new_description",
        markers=("Overview", "Why you'll love it"),
        score_delta=8,
    )

    def test_one_error_per_missing_marker(self) -> None:
        findings = self.rule.check(GeneralListing(new_description="Nothing here"))

        assert len(findings) == 2
        assert findings[0].message == 'Missing section "Overview"'

    def test_markers_match_case_and_curly_apostrophes(self) -> None:
        doc = GeneralListing(new_description="OVERVIEW\n...\nWhy you’ll love it")

        assert self.rule.check(doc) == []


class TestPlaceholderRule:
    rule = PlaceholderRule(
        rule_id="placeholder", fields=("new_title", "new_description"), score_delta=20
    )

    @pytest.mark.parametrize(
        "text",
        [
            "Made for [Product Name] lovers",
            "[insert size here]",
            "Hello {{customer}}",
            "Size: ___ inches",
        ],
    )
    def test_placeholders_are_flagged(self, text: str) -> None:
        findings = self.rule.check(GeneralListing(new_description=text))

        assert len(findings) == 1
        assert findings[0].rule_id == "placeholder.new_description"

    def test_markdown_link_is_not_a_placeholder(self) -> None:
        doc = GeneralListing(new_description="See [our shop](https://example.com)")

        assert self.rule.check(doc) == []


def test_required_mention_matches_any_keyword() -> None:
    rule = RequiredMentionRule(
        rule_id="description.file_formats",
        field="new_description",
        keywords=("pdf", "png"),
        message="Specify the file formats",
        severity=Severity.WARNING,
        score_delta=5,
    )

    assert rule.check(GeneralListing(new_description="You get a PNG file")) == []
    (finding,) = rule.check(GeneralListing(new_description="You get a file"))
    assert finding.message == "Specify the file formats"
    assert finding.severity is Severity.WARNING


class TestLengthRule:
    rule = LengthRule(
        rule_id="title.length",
        field="new_title",
        label="Title",
        min_length=20,
        max_length=40,
        score_delta=20,
        long_delta=15,
    )

    def test_too_short(self) -> None:
        (finding,) = self.rule.check(GeneralListing(new_title="Short title"))

        assert finding.rule_id == "title.length.short"
        assert finding.score_delta == 20

    def test_too_long(self) -> None:
        (finding,) = self.rule.check(GeneralListing(new_title="x" * 41))

        assert finding.rule_id == "title.length.long"
        assert finding.score_delta == 15

    def test_within_bounds(self) -> None:
        assert self.rule.check(GeneralListing(new_title="x" * 30)) == []

    def test_borderline_band_is_a_warning(self) -> None:
        rule = LengthRule(
            rule_id="description.length",
            field="product_description",
            min_length=10,
            warn_below=20,
            score_delta=15,
            warn_delta=5,
        )

        (finding,) = rule.check(MarketplaceListing(product_description="x" * 15))

        assert finding.severity is Severity.WARNING
        assert finding.score_delta == 5
        assert rule.check(MarketplaceListing(product_description="x" * 5))[
            0
        ].severity is Severity.ERROR


def test_item_count_rule_reports_exact_mismatch() -> None:
    rule = ItemCountRule(
        rule_id="tags.count", field="hashtags", expected=13, label="tags", score_delta=15
    )
    doc = GeneralListing(hashtags=[f"tag {i}" for i in range(11)])

    (finding,) = rule.check(doc)

    assert finding.message == "Must have exactly 13 tags (found 11)"


def test_item_length_rule_flags_each_item() -> None:
    rule = ItemLengthRule(
        rule_id="bullets.length",
        field="bullet_points",
        label="Bullet",
        min_length=10,
        max_length=20,
        severity=Severity.WARNING,
        score_delta=3,
        long_delta=2,
    )
    doc = MarketplaceListing(bullet_points=["short", "x" * 15, "y" * 30])

    findings = rule.check(doc)

    assert [(f.rule_id, f.score_delta) for f in findings] == [
        ("bullets.length.short", 3),
        ("bullets.length.long", 2),
    ]
    assert findings[0].message.startswith("Bullet 1")
    assert findings[1].message.startswith("Bullet 3")


def test_forbidden_character_rule() -> None:
    rule = ForbiddenCharacterRule(
        rule_id="backend_keywords.separator",
        field="backend_keywords",
        character=",",
        message="Use spaces",
        score_delta=10,
    )

    assert len(rule.check(MarketplaceListing(backend_keywords="a, b"))) == 1
    assert rule.check(MarketplaceListing(backend_keywords="a b")) == []


class TestRepeatedWordRule:
    rule = RepeatedWordRule(
        rule_id="title.repeated_words", field="new_title", score_delta=15
    )

    def test_wall_art_wall_decor(self) -> None:
        findings = self.rule.check(GeneralListing(new_title="Wall Art Wall Decor"))

        assert len(findings) == 1
        assert findings[0].message == "new_title repeats words: wall"

    def test_all_repeats_in_one_finding(self) -> None:
        doc = GeneralListing(new_title="Metal Sign, Metal Wall Sign for Wall")

        (finding,) = self.rule.check(doc)

        assert finding.message.endswith("metal, sign, wall")

    def test_short_and_ignored_words_may_repeat(self) -> None:
        doc = GeneralListing(new_title="Art for Art Lovers, Gift for Mom with Love with Care")

        assert self.rule.check(doc) == []


class TestSetIntegrityRules:
    def test_duplicates_are_case_insensitive(self) -> None:
        rule = DuplicateItemsRule(rule_id="tags.duplicates", field="hashtags", score_delta=10)
        doc = GeneralListing(hashtags=["Wall Art", "wall art", "decor"])

        (finding,) = rule.check(doc)

        assert "wall art" in finding.message

    def test_prefix_rule(self) -> None:
        rule = ForbiddenPrefixRule(
            rule_id="tags.prefix", field="hashtags", prefix="#", score_delta=5
        )

        assert len(rule.check(GeneralListing(hashtags=["#art", "#decor", "gift"]))) == 1
        assert rule.check(GeneralListing(hashtags=["art"])) == []

    def test_long_tail_warning(self) -> None:
        rule = LongTailRule(
            rule_id="tags.long_tail", field="hashtags", min_count=7, score_delta=10
        )
        doc = GeneralListing(hashtags=["wall art"] * 6 + ["decor"] * 7)

        (finding,) = rule.check(doc)

        assert finding.severity is Severity.WARNING
        assert finding.message.startswith("Only 6 multi-word")

    def test_hashtag_count(self) -> None:
        rule = HashtagCountRule(
            rule_id="instagram_hashtags.count",
            field="instagram_hashtags",
            min_count=3,
            score_delta=5,
        )

        assert len(rule.check(SocialMediaContent(instagram_hashtags="#a #b # c"))) == 1
        assert rule.check(SocialMediaContent(instagram_hashtags="#a #b #c")) == []


class TestNestedDocumentRule:
    rule = NestedDocumentRule(
        rule_id="social_media.required",
        field="social_media",
        label="Social media content",
        catalog=SOCIAL_MEDIA_CATALOG,
        score_delta=10,
    )

    def test_absent_sub_document_is_one_error(self) -> None:
        (finding,) = self.rule.check(GeneralListing())

        assert finding.rule_id == "social_media.required"
        assert finding.message == "Social media content is missing"
        assert finding.score_delta == 10

    def test_nested_findings_are_prefixed(self) -> None:
        doc = GeneralListing(social_media=SocialMediaContent(pinterest_title="Too short"))

        findings = self.rule.check(doc)

        ids = [f.rule_id for f in findings]
        assert "social_media.pinterest_title.length.short" in ids
        assert "social_media.pinterest_description.required" in ids
        assert all(i.startswith("social_media.") for i in ids)


class TestRuleCatalog:
    def test_findings_follow_family_then_declaration_order(self) -> None:
        catalog = RuleCatalog(
            name="ordering",
            version="1",
            rules=(
                LengthRule(
                    rule_id="title.length",
                    field="new_title",
                    min_length=50,
                    score_delta=1,
                ),
                RequiredFieldRule(rule_id="b.required", field="hashtags", score_delta=1),
                BannedPhraseRule(
                    rule_id="banned", fields=("new_title",), phrases=("stunning",), score_delta=1
                ),
                RequiredFieldRule(
                    rule_id="a.required", field="new_description", score_delta=1
                ),
            ),
        )

        findings = catalog.evaluate(GeneralListing(new_title="stunning"))

        assert [f.rule_id for f in findings] == [
            "banned",
            "b.required",
            "a.required",
            "title.length.short",
        ]
        assert [r.family for r in catalog.ordered_rules] == [
            RuleFamily.LEXICAL,
            RuleFamily.STRUCTURAL,
            RuleFamily.STRUCTURAL,
            RuleFamily.LENGTH,
        ]

    def test_duplicate_rule_ids_are_rejected(self) -> None:
        with pytest.raises(ValueError, match="duplicate rule ids"):
            RuleCatalog(
                name="dupes",
                version="1",
                rules=(
                    RequiredFieldRule(rule_id="x", field="new_title", score_delta=1),
                    RequiredFieldRule(rule_id="x", field="hashtags", score_delta=1),
                ),
            )

    def test_rule_lookup(self) -> None:
        assert SOCIAL_MEDIA_CATALOG.rule("pinterest_title.required").score_delta == 5
        with pytest.raises(KeyError):
            SOCIAL_MEDIA_CATALOG.rule("nope")
