"""Listing generation endpoints behind the quality gate."""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from schemas.api import ApiResponse
from schemas.listings import (
    DomainInfo,
    FindingOut,
    ListingDocument,
    ListingGenerationRequest,
    ListingGenerationResponse,
    ListingValidationRequest,
)
from services.quality_gate.adapters import DOMAIN_ADAPTERS, DomainAdapter, get_adapter
from services.quality_gate.controller import (
    ListingGenerator,
    QualityGate,
    evaluate_response,
    is_acceptable,
)
from services.quality_gate.diagnostics import LoggingDiagnosticsSink
from services.quality_gate.exceptions import MalformedResponseError
from services.quality_gate.generator import AgentListingGenerator
from services.quality_gate.models import ValidationResult
from services.quality_gate.normalizer import NormalizeError
from services.quality_gate.prompts import build_generation_request


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/listings", tags=["listings"])

DEGRADED_MESSAGE = (
    "Listing did not reach the quality threshold; returning the best-effort result"
)


@lru_cache
def get_listing_generator() -> ListingGenerator:
    """Shared generator; its agents are built on first use."""
    return AgentListingGenerator()


def get_quality_gate(
    generator: Annotated[ListingGenerator, Depends(get_listing_generator)],
) -> QualityGate:
    return QualityGate(generator, LoggingDiagnosticsSink())


def _response(
    adapter: DomainAdapter,
    document: ListingDocument,
    validation: ValidationResult,
    *,
    attempts_used: int,
    accepted: bool,
) -> ListingGenerationResponse:
    return ListingGenerationResponse(
        domain=adapter.domain,
        accepted=accepted,
        attempts_used=attempts_used,
        score=validation.score,
        passed=validation.passed,
        findings=[
            FindingOut(
                rule_id=f.rule_id,
                severity=f.severity.value,
                message=f.message,
                score_delta=f.score_delta,
            )
            for f in validation.findings
        ],
        listing=document.to_wire(),
    )


@router.get("/domains", response_model=ApiResponse[list[DomainInfo]])
def list_domains(
    gate: Annotated[QualityGate, Depends(get_quality_gate)],
) -> ApiResponse[list[DomainInfo]]:
    """Describe every configured listing domain."""
    domains = [
        DomainInfo(
            domain=adapter.domain,
            description=adapter.description,
            acceptance_threshold=adapter.acceptance_threshold,
            max_retries=gate.max_attempts(adapter),
            catalog=adapter.catalog.name,
            catalog_version=adapter.catalog.version,
            required_fields=list(adapter.required_fields),
        )
        for adapter in DOMAIN_ADAPTERS.values()
    ]
    return ApiResponse(data=domains, message="Listing domains")


@router.post(
    "/{domain}/generate",
    response_model=ApiResponse[ListingGenerationResponse],
    status_code=status.HTTP_200_OK,
)
async def generate_listing(
    domain: str,
    payload: ListingGenerationRequest,
    gate: Annotated[QualityGate, Depends(get_quality_gate)],
) -> ApiResponse[ListingGenerationResponse]:
    """Generate a listing and return it with its quality score.

    ``data.accepted`` is False when the retry budget ran out below the
    domain's threshold; the listing is then the last attempt's output and
    must be shown as unverified. Provider or parse failures on the final
    attempt return a 502 error envelope.
    """
    adapter = get_adapter(domain)
    try:
        # Base64 image decoding runs off the event loop
        request = await asyncio.to_thread(
            build_generation_request, adapter.domain, payload
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        ) from e

    outcome = await gate.run(request, adapter)
    return ApiResponse(
        data=_response(
            adapter,
            outcome.document,
            outcome.validation,
            attempts_used=outcome.attempts_used,
            accepted=outcome.accepted,
        ),
        message="Listing generated" if outcome.accepted else DEGRADED_MESSAGE,
    )


@router.post(
    "/{domain}/validate",
    response_model=ApiResponse[ListingGenerationResponse],
)
def validate_listing(
    domain: str, payload: ListingValidationRequest
) -> ApiResponse[ListingGenerationResponse]:
    """Score caller-supplied generator output without calling the generator."""
    adapter = get_adapter(domain)
    result = evaluate_response(payload.raw_response, adapter)
    if isinstance(result, NormalizeError):
        logger.info("Rejected malformed listing for %s: %s", domain, result.reason)
        raise MalformedResponseError(result.reason)

    document, validation = result
    accepted = is_acceptable(validation, adapter)
    return ApiResponse(
        data=_response(
            adapter, document, validation, attempts_used=0, accepted=accepted
        ),
        message="Listing meets the quality threshold"
        if accepted
        else "Listing is below the quality threshold",
    )
