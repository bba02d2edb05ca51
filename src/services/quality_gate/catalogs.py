"""Rule catalogs for each listing domain.

Catalogs are immutable module-level values. Bump ``CATALOG_VERSION`` whenever a
rule, threshold or banned phrase changes so diagnostics can tell scores from
different rule sets apart.
"""

from services.quality_gate.models import Severity
from services.quality_gate.rules import (
    AveragedCatalog,
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
    Rule,
    RuleCatalog,
    SectionMarkerRule,
)


CATALOG_VERSION = "2026.2"

# Marketing filler that makes copy read as machine-written
BANNED_PHRASES: tuple[str, ...] = (
    "stunning",
    "elevate",
    "elevate your",
    "perfect for any",
    "exquisite",
    "must-have",
    "game-changer",
    "unleash",
    "realm",
    "dive into",
    "meticulously",
    "breathtaking",
    "timeless elegance",
    "crafted with care",
    "meticulously crafted",
    "one-of-a-kind",
)

# Headings every general listing description must contain, in template order
DESCRIPTION_SECTIONS: tuple[str, ...] = (
    "Overview",
    "Details",
    "Why you'll love it",
    "Shipping",
)

LISTING_TAG_COUNT = 13
MARKETPLACE_BULLET_COUNT = 5


SOCIAL_MEDIA_CATALOG = RuleCatalog(
    name="social_media",
    version=CATALOG_VERSION,
    rules=(
        BannedPhraseRule(
            rule_id="banned_phrase",
            fields=("pinterest_description", "instagram_caption"),
            phrases=BANNED_PHRASES,
            score_delta=5,
        ),
        RequiredFieldRule(
            rule_id="pinterest_title.required",
            field="pinterest_title",
            label="Pinterest title",
            score_delta=5,
        ),
        RequiredFieldRule(
            rule_id="pinterest_description.required",
            field="pinterest_description",
            label="Pinterest description",
            score_delta=5,
        ),
        RequiredFieldRule(
            rule_id="instagram_caption.required",
            field="instagram_caption",
            label="Instagram caption",
            score_delta=5,
        ),
        RequiredFieldRule(
            rule_id="instagram_hashtags.required",
            field="instagram_hashtags",
            label="Instagram hashtags",
            severity=Severity.WARNING,
            score_delta=5,
        ),
        LengthRule(
            rule_id="pinterest_title.length",
            field="pinterest_title",
            label="Pinterest title",
            min_length=20,
            score_delta=5,
        ),
        LengthRule(
            rule_id="pinterest_description.length",
            field="pinterest_description",
            label="Pinterest description",
            min_length=50,
            score_delta=5,
        ),
        LengthRule(
            rule_id="instagram_caption.length",
            field="instagram_caption",
            label="Instagram caption",
            min_length=50,
            score_delta=5,
        ),
        HashtagCountRule(
            rule_id="instagram_hashtags.count",
            field="instagram_hashtags",
            min_count=20,
            score_delta=5,
        ),
    ),
)


def _listing_rules(*, with_sections: bool) -> tuple[Rule, ...]:
    """Rules shared by general and digital listings."""
    rules: list[Rule] = [
        BannedPhraseRule(
            rule_id="banned_phrase",
            fields=("new_description",),
            phrases=BANNED_PHRASES,
            score_delta=10,
        ),
        RequiredFieldRule(
            rule_id="title.required", field="new_title", label="Title", score_delta=20
        ),
        RequiredFieldRule(
            rule_id="description.required",
            field="new_description",
            label="Description",
            score_delta=25,
        ),
        RequiredFieldRule(
            rule_id="tags.required", field="hashtags", label="Tags", score_delta=15
        ),
    ]
    if with_sections:
        rules.append(
            SectionMarkerRule(
                rule_id="description.sections",
                field="new_description",
                markers=DESCRIPTION_SECTIONS,
                score_delta=8,
            )
        )
    rules += [
        PlaceholderRule(
            rule_id="placeholder",
            fields=("new_title", "new_description"),
            score_delta=20,
        ),
        LengthRule(
            rule_id="title.length",
            field="new_title",
            label="Title",
            min_length=20,
            max_length=140,
            score_delta=20,
            long_delta=15,
        ),
        RepeatedWordRule(
            rule_id="title.repeated_words",
            field="new_title",
            label="Title",
            score_delta=15,
        ),
        LengthRule(
            rule_id="description.length",
            field="new_description",
            label="Description",
            warn_below=200,
            warn_delta=5,
            score_delta=0,
        ),
        ItemCountRule(
            rule_id="tags.count",
            field="hashtags",
            expected=LISTING_TAG_COUNT,
            label="tags",
            score_delta=15,
        ),
        DuplicateItemsRule(rule_id="tags.duplicates", field="hashtags", score_delta=10),
        ForbiddenPrefixRule(
            rule_id="tags.prefix", field="hashtags", prefix="#", score_delta=5
        ),
        LongTailRule(
            rule_id="tags.long_tail", field="hashtags", min_count=7, score_delta=10
        ),
        NestedDocumentRule(
            rule_id="social_media.required",
            field="social_media",
            label="Social media content",
            catalog=SOCIAL_MEDIA_CATALOG,
            score_delta=10,
        ),
    ]
    return tuple(rules)


GENERAL_LISTING_CATALOG = RuleCatalog(
    name="general_listing",
    version=CATALOG_VERSION,
    rules=_listing_rules(with_sections=True),
)


DIGITAL_PRODUCT_CATALOG = RuleCatalog(
    name="digital_product",
    version=CATALOG_VERSION,
    rules=(
        RequiredMentionRule(
            rule_id="title.digital_mention",
            field="new_title",
            keywords=("digital", "printable", "download"),
            message="Consider adding 'Digital Download' or 'Printable' to the title",
            severity=Severity.WARNING,
            score_delta=5,
        ),
        RequiredMentionRule(
            rule_id="description.instant_download",
            field="new_description",
            keywords=("instant", "download"),
            message="Mention 'Instant Download' in the description",
            severity=Severity.WARNING,
            score_delta=5,
        ),
        RequiredMentionRule(
            rule_id="description.file_formats",
            field="new_description",
            keywords=("pdf", "jpg", "png", "svg"),
            message="Specify the file formats (PDF, JPG, PNG, SVG)",
            severity=Severity.WARNING,
            score_delta=5,
        ),
    ),
)


# Digital listings are scored as the mean of the shared listing rules and the
# download-specific ones.
DIGITAL_LISTING_CATALOG = AveragedCatalog(
    name="digital_listing",
    version=CATALOG_VERSION,
    parts=(
        RuleCatalog(
            name="digital_listing_copy",
            version=CATALOG_VERSION,
            rules=_listing_rules(with_sections=False),
        ),
        DIGITAL_PRODUCT_CATALOG,
    ),
)


MARKETPLACE_LISTING_CATALOG = RuleCatalog(
    name="marketplace_listing",
    version=CATALOG_VERSION,
    rules=(
        BannedPhraseRule(
            rule_id="banned_phrase",
            fields=("product_description",),
            phrases=BANNED_PHRASES,
            score_delta=10,
        ),
        RequiredFieldRule(
            rule_id="title.required", field="title", label="Title", score_delta=20
        ),
        RequiredFieldRule(
            rule_id="bullets.required",
            field="bullet_points",
            label="Bullet points",
            score_delta=20,
        ),
        RequiredFieldRule(
            rule_id="description.required",
            field="product_description",
            label="Product description",
            score_delta=25,
        ),
        RequiredFieldRule(
            rule_id="backend_keywords.required",
            field="backend_keywords",
            label="Backend search terms",
            score_delta=20,
        ),
        RequiredFieldRule(
            rule_id="a_plus.required",
            field="a_plus_suggestions",
            label="A+ content suggestions",
            severity=Severity.WARNING,
            score_delta=5,
        ),
        PlaceholderRule(
            rule_id="placeholder",
            fields=("title", "bullet_points", "product_description"),
            score_delta=20,
        ),
        LengthRule(
            rule_id="title.length",
            field="title",
            label="Title",
            min_length=80,
            max_length=200,
            score_delta=20,
            long_delta=15,
        ),
        ItemCountRule(
            rule_id="bullets.count",
            field="bullet_points",
            expected=MARKETPLACE_BULLET_COUNT,
            label="bullet points",
            score_delta=20,
        ),
        ItemLengthRule(
            rule_id="bullets.length",
            field="bullet_points",
            label="Bullet",
            min_length=150,
            max_length=250,
            severity=Severity.WARNING,
            score_delta=3,
            long_delta=2,
        ),
        LengthRule(
            rule_id="description.length",
            field="product_description",
            label="Product description",
            min_length=1000,
            warn_below=1700,
            score_delta=15,
            warn_delta=5,
        ),
        LengthRule(
            rule_id="backend_keywords.length",
            field="backend_keywords",
            label="Backend search terms",
            min_length=100,
            max_length=250,
            score_delta=15,
            long_delta=10,
        ),
        ForbiddenCharacterRule(
            rule_id="backend_keywords.separator",
            field="backend_keywords",
            character=",",
            message="Backend search terms must be separated by spaces, not commas",
            score_delta=10,
        ),
    ),
)
