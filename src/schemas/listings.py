"""Listing schemas: generated listing documents and the listings API contract.

The document models are the typed shape a generator response is normalized
into. Every field is optional on purpose: a missing required field is a
validation finding scored by the quality gate, not a parse failure. Fields
the rules score reject values of the wrong type; unscored metadata
(``estimatedPrice``, ``seoScore``, ``licenseInfo``...) drops them instead,
so a stray type there never costs an attempt. Wire keys are camelCase, matching
what the generative provider is asked to return (``newTitle``,
``bulletPoints``, ``backendKeywords``...).

A few fields exist only as alternates the provider sometimes uses instead of
the canonical key (``searchTerms`` for ``backendKeywords``, ``tags`` for
``hashtags``). They are folded into the canonical field by auto-repair and
never read anywhere else.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidatorFunctionWrapHandler,
    field_validator,
)
from pydantic.alias_generators import to_camel


def _split_list(value: object) -> object:
    """Accept a list, or a comma/newline separated string, for list fields."""
    if isinstance(value, str):
        parts = value.replace("\n", ",").split(",")
        return [p.strip() for p in parts if p.strip()]
    return value


def _join_text(value: object) -> object:
    """Accept a list of strings where free text is expected."""
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return "\n".join(value)
    return value


def _drop_invalid(value: object, handler: ValidatorFunctionWrapHandler) -> object:
    """Validate an unscored field, treating a wrong-typed value as absent."""
    try:
        return handler(value)
    except ValidationError:
        return None


class ListingDocument(BaseModel):
    """Base class for normalized generator output."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump with the camelCase keys the frontend consumes."""
        return self.model_dump(by_alias=True, exclude_none=True)


class SocialMediaContent(ListingDocument):
    """Pinterest and Instagram copy generated alongside a listing."""

    pinterest_title: str | None = None
    pinterest_description: str | None = None
    pinterest_alt_text: str | None = None
    pinterest_hashtags: str | None = None
    instagram_caption: str | None = None
    instagram_hashtags: str | None = None

    @field_validator("pinterest_hashtags", "instagram_hashtags", mode="before")
    @classmethod
    def _hashtags_as_text(cls, v: object) -> object:
        if isinstance(v, list) and all(isinstance(t, str) for t in v):
            return " ".join(v)
        return v


class GeneralListing(ListingDocument):
    """Multi-section marketplace listing copy (title, templated description, 13 tags)."""

    new_title: str | None = None
    new_description: str | None = None
    hashtags: list[str] | None = None
    social_media: SocialMediaContent | None = None
    seo_strategy: str | None = None

    # Alternate key for `hashtags`
    tags: list[str] | None = None

    @field_validator("hashtags", "tags", mode="before")
    @classmethod
    def _tags_as_list(cls, v: object) -> object:
        return _split_list(v)

    @field_validator("seo_strategy", mode="wrap")
    @classmethod
    def _lenient_metadata(
        cls, v: object, handler: ValidatorFunctionWrapHandler
    ) -> object:
        return _drop_invalid(v, handler)


class DigitalListing(GeneralListing):
    """Listing copy for instant-download digital products."""

    file_formats: list[str] | None = None
    instant_download: bool | None = None
    license_info: str | None = None

    @field_validator("file_formats", mode="wrap")
    @classmethod
    def _formats_as_list(
        cls, v: object, handler: ValidatorFunctionWrapHandler
    ) -> object:
        return _drop_invalid(_split_list(v), handler)

    @field_validator("instant_download", "license_info", mode="wrap")
    @classmethod
    def _lenient_download_info(
        cls, v: object, handler: ValidatorFunctionWrapHandler
    ) -> object:
        return _drop_invalid(v, handler)


class MarketplaceListing(ListingDocument):
    """Flat-bullet listing copy (title, five bullets, backend search terms)."""

    product_identified: str | None = None
    confidence: float | None = None
    title: str | None = None
    bullet_points: list[str] | None = None
    product_description: str | None = None
    backend_keywords: str | None = None
    a_plus_suggestions: str | None = None
    suggested_category: str | None = None
    estimated_price: str | None = None
    seo_score: float | None = None

    # Alternate key for `backend_keywords`
    search_terms: str | None = None

    @field_validator("a_plus_suggestions", "product_description", mode="before")
    @classmethod
    def _text_from_lines(cls, v: object) -> object:
        return _join_text(v)

    @field_validator("estimated_price", mode="wrap")
    @classmethod
    def _price_as_text(
        cls, v: object, handler: ValidatorFunctionWrapHandler
    ) -> object:
        if isinstance(v, int | float) and not isinstance(v, bool):
            v = str(v)
        return _drop_invalid(v, handler)

    @field_validator(
        "product_identified",
        "confidence",
        "suggested_category",
        "seo_score",
        mode="wrap",
    )
    @classmethod
    def _lenient_metadata(
        cls, v: object, handler: ValidatorFunctionWrapHandler
    ) -> object:
        return _drop_invalid(v, handler)


# ---------------------------------------------------------------------------
# API contract
# ---------------------------------------------------------------------------


DigitalProductType = Literal[
    "printable-art",
    "planner",
    "templates",
    "clipart",
    "fonts",
    "svg-files",
    "patterns",
    "ebook",
    "other",
]


class ListingGenerationRequest(BaseModel):
    """Seller inputs for one listing generation."""

    title: str | None = Field(default=None, max_length=300)
    description: str | None = Field(default=None, max_length=5000)
    niche: str | None = Field(default=None, max_length=120)
    material: str | None = Field(default=None, max_length=120)
    tone: str = Field(default="professional", max_length=40)
    shop_context: str | None = Field(default=None, max_length=1000)
    personalization: bool = False
    category: str | None = Field(
        default=None, max_length=120, description="Marketplace category"
    )
    product_type: DigitalProductType | None = Field(
        default=None, description="Digital product type, e.g. planner"
    )
    additional_context: str | None = Field(default=None, max_length=2000)
    image_base64: str | None = Field(
        default=None,
        max_length=8 * 1024 * 1024,
        description="Reference image as base64, optionally a data: URL",
    )

    model_config = ConfigDict(extra="forbid")


class ListingValidationRequest(BaseModel):
    """Raw generator output to score without calling the generator."""

    raw_response: str = Field(..., min_length=1, max_length=200_000)

    model_config = ConfigDict(extra="forbid")


class FindingOut(BaseModel):
    rule_id: str
    severity: str
    message: str
    score_delta: int


class ListingGenerationResponse(BaseModel):
    """Result of a gated generation (or validation) for one domain."""

    domain: str
    accepted: bool = Field(
        ...,
        description=(
            "False when the listing is a best-effort result below the quality "
            "threshold; clients must show it as unverified"
        ),
    )
    attempts_used: int
    score: int = Field(..., ge=0, le=100)
    passed: bool
    findings: list[FindingOut]
    listing: dict[str, Any]


class DomainInfo(BaseModel):
    domain: str
    description: str
    acceptance_threshold: int
    max_retries: int
    catalog: str
    catalog_version: str
    required_fields: list[str]
