"""Per-domain configuration for the quality gate.

A `DomainAdapter` bundles everything domain-specific: the document type the
normalizer coerces into, the rule catalog, the repairs, the acceptance
threshold and (optionally) a retry budget. The retry controller itself knows
nothing about listings.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import StrEnum

from schemas.listings import (
    DigitalListing,
    GeneralListing,
    ListingDocument,
    MarketplaceListing,
)
from services.quality_gate.catalogs import (
    DIGITAL_LISTING_CATALOG,
    GENERAL_LISTING_CATALOG,
    MARKETPLACE_LISTING_CATALOG,
)
from services.quality_gate.exceptions import UnknownDomainError
from services.quality_gate.repair import (
    AliasRepair,
    FallbackRepair,
    NestedRepair,
    RepairRule,
    SeparatorRepair,
)
from services.quality_gate.rules import Catalog, is_blank


class ListingDomain(StrEnum):
    GENERAL = "general_listing"
    MARKETPLACE = "marketplace_listing"
    DIGITAL = "digital_listing"


@dataclass(frozen=True)
class DomainAdapter:
    domain: str
    description: str
    document_type: type[ListingDocument]
    catalog: Catalog
    required_fields: tuple[str, ...]
    acceptance_threshold: int
    repair_rules: tuple[RepairRule, ...] = ()
    # None means the shared QUALITY_GATE_MAX_RETRIES budget
    max_retries: int | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.acceptance_threshold <= 100:
            raise ValueError("acceptance_threshold must be between 0 and 100")
        if self.max_retries is not None and self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        unknown = set(self.required_fields) - set(self.document_type.model_fields)
        if unknown:
            raise ValueError(
                f"{self.domain}: required fields not on "
                f"{self.document_type.__name__}: {sorted(unknown)}"
            )

    def missing_fields(self, doc: ListingDocument) -> list[str]:
        return [f for f in self.required_fields if is_blank(getattr(doc, f, None))]

    def with_max_retries(self, max_retries: int) -> DomainAdapter:
        return dataclasses.replace(self, max_retries=max_retries)


_PINTEREST_ALT_TEXT_FALLBACK = "Product photo for this listing."

GENERAL_LISTING_ADAPTER = DomainAdapter(
    domain=ListingDomain.GENERAL.value,
    description="Marketplace listing with a templated description, 13 tags and social copy",
    document_type=GeneralListing,
    catalog=GENERAL_LISTING_CATALOG,
    required_fields=("new_title", "new_description", "hashtags", "social_media"),
    acceptance_threshold=85,
    repair_rules=(
        AliasRepair(target="hashtags", source="tags"),
        NestedRepair(
            field="social_media",
            repairs=(
                FallbackRepair(
                    field="pinterest_alt_text",
                    fallback=_PINTEREST_ALT_TEXT_FALLBACK,
                    min_length=10,
                ),
            ),
        ),
    ),
)

MARKETPLACE_LISTING_ADAPTER = DomainAdapter(
    domain=ListingDomain.MARKETPLACE.value,
    description="Flat-bullet marketplace listing with backend search terms",
    document_type=MarketplaceListing,
    catalog=MARKETPLACE_LISTING_CATALOG,
    required_fields=("title", "bullet_points", "product_description", "backend_keywords"),
    acceptance_threshold=75,
    repair_rules=(
        AliasRepair(target="backend_keywords", source="search_terms"),
        SeparatorRepair(field="backend_keywords", separator=","),
    ),
)

DIGITAL_LISTING_ADAPTER = DomainAdapter(
    domain=ListingDomain.DIGITAL.value,
    description="Instant-download digital product listing",
    document_type=DigitalListing,
    catalog=DIGITAL_LISTING_CATALOG,
    required_fields=("new_title", "new_description", "hashtags", "social_media"),
    acceptance_threshold=70,
    repair_rules=(
        AliasRepair(target="hashtags", source="tags"),
        FallbackRepair(
            field="license_info",
            fallback="See shop policies for license and usage terms.",
            min_length=20,
        ),
        NestedRepair(
            field="social_media",
            repairs=(
                FallbackRepair(
                    field="pinterest_alt_text",
                    fallback=_PINTEREST_ALT_TEXT_FALLBACK,
                    min_length=10,
                ),
            ),
        ),
    ),
)

DOMAIN_ADAPTERS: dict[str, DomainAdapter] = {
    adapter.domain: adapter
    for adapter in (
        GENERAL_LISTING_ADAPTER,
        MARKETPLACE_LISTING_ADAPTER,
        DIGITAL_LISTING_ADAPTER,
    )
}


def get_adapter(domain: str) -> DomainAdapter:
    try:
        return DOMAIN_ADAPTERS[domain]
    except KeyError:
        raise UnknownDomainError(domain) from None
