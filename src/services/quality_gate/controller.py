"""Retry controller: generate, normalize, repair, validate, decide.

Each attempt walks REQUESTING -> NORMALIZING -> REPAIRING -> VALIDATING and
ends in one of:

- ACCEPTED: score at or above the adapter threshold and no error findings.
- RETRYING: below threshold, or the attempt failed, and budget remains.
  The same request is sent again unchanged.
- EXHAUSTED: budget spent. A validated last attempt is returned with
  ``accepted=False``; a last attempt that failed at the provider or the
  normalizer raises `GenerationFailedError`.

Attempts run strictly one after another; the generator call is the only
await. The controller holds no state between runs, so one instance can serve
concurrent requests.
"""

from __future__ import annotations

from typing import Protocol

from core.config import get_settings
from core.structured_logging import StructuredLogger
from schemas.listings import ListingDocument
from services.quality_gate.adapters import DomainAdapter
from services.quality_gate.diagnostics import (
    AttemptEvent,
    DiagnosticsSink,
    LoggingDiagnosticsSink,
)
from services.quality_gate.exceptions import (
    GenerationFailedError,
    MalformedResponseError,
    ProviderError,
    QualityGateError,
)
from services.quality_gate.models import (
    Attempt,
    GateState,
    GenerationRequest,
    RetryOutcome,
    ValidationResult,
)
from services.quality_gate.normalizer import NormalizeError, normalize
from services.quality_gate.repair import repair
from services.quality_gate.validator import validate


logger = StructuredLogger(__name__)

# Longest provider error text carried into diagnostics
_MAX_ERROR_TEXT = 300


class ListingGenerator(Protocol):
    """Anything that turns a request into raw generated text."""

    async def generate(self, request: GenerationRequest) -> str: ...


def is_acceptable(validation: ValidationResult, adapter: DomainAdapter) -> bool:
    return validation.passed and validation.score >= adapter.acceptance_threshold


def evaluate_response(
    raw: str | bytes | None, adapter: DomainAdapter
) -> tuple[ListingDocument, ValidationResult] | NormalizeError:
    """Normalize, repair and validate one raw response. No generator involved."""
    normalized = normalize(raw, adapter.document_type)
    if isinstance(normalized, NormalizeError):
        return normalized
    document = repair(normalized, adapter.repair_rules)
    return document, validate(document, adapter.catalog)


def _provider_error(exc: Exception) -> ProviderError:
    if isinstance(exc, ProviderError):
        return exc
    detail = str(exc)[:_MAX_ERROR_TEXT]
    return ProviderError(
        f"{exc.__class__.__name__}: {detail}" if detail else exc.__class__.__name__
    )


class QualityGate:
    def __init__(
        self,
        generator: ListingGenerator,
        sink: DiagnosticsSink | None = None,
        default_max_retries: int | None = None,
    ) -> None:
        self._generator = generator
        self._sink = sink if sink is not None else LoggingDiagnosticsSink()
        self._default_max_retries = default_max_retries

    def max_attempts(self, adapter: DomainAdapter) -> int:
        if adapter.max_retries is not None:
            return adapter.max_retries
        if self._default_max_retries is not None:
            return self._default_max_retries
        return get_settings().QUALITY_GATE_MAX_RETRIES

    def _emit(self, event: AttemptEvent) -> None:
        try:
            self._sink.emit(event)
        except Exception as e:  # noqa: BLE001 - diagnostics never abort the gate
            logger.exception(
                "Diagnostics sink failed",
                domain=event.domain,
                attempt=event.attempt,
                sink_error=str(e),
            )

    async def _attempt(
        self, index: int, request: GenerationRequest, adapter: DomainAdapter
    ) -> Attempt[ListingDocument]:
        attempt: Attempt[ListingDocument] = Attempt(index=index)

        # REQUESTING
        try:
            attempt.raw_response = await self._generator.generate(request)
        except Exception as e:  # noqa: BLE001 - any provider failure costs an attempt
            error = _provider_error(e)
            if error is not e:
                error.__cause__ = e
            attempt.error = error
            return attempt

        # NORMALIZING -> REPAIRING -> VALIDATING
        result = evaluate_response(attempt.raw_response, adapter)
        if isinstance(result, NormalizeError):
            attempt.error = MalformedResponseError(result.reason)
        else:
            attempt.document, attempt.validation = result
        return attempt

    async def run(
        self, request: GenerationRequest, adapter: DomainAdapter
    ) -> RetryOutcome[ListingDocument]:
        max_attempts = self.max_attempts(adapter)
        attempt_errors: list[str] = []
        scores: list[int] = []
        last_error: QualityGateError | None = None

        for index in range(1, max_attempts + 1):
            is_last = index == max_attempts
            next_state = GateState.EXHAUSTED if is_last else GateState.RETRYING

            attempt = await self._attempt(index, request, adapter)
            if attempt.error is not None:
                last_error = attempt.error
                attempt_errors.append(f"attempt {index}: {attempt.error}")
                self._emit(
                    AttemptEvent.from_attempt(
                        attempt,
                        domain=adapter.domain,
                        max_attempts=max_attempts,
                        state=next_state,
                    )
                )
                continue

            document, validation = attempt.document, attempt.validation
            assert document is not None and validation is not None
            scores.append(validation.score)
            accepted = is_acceptable(validation, adapter)
            self._emit(
                AttemptEvent.from_attempt(
                    attempt,
                    domain=adapter.domain,
                    max_attempts=max_attempts,
                    state=GateState.ACCEPTED if accepted else next_state,
                    missing_fields=tuple(adapter.missing_fields(document)),
                )
            )

            if accepted or is_last:
                logger.info(
                    "Quality gate finished",
                    domain=adapter.domain,
                    accepted=accepted,
                    attempts_used=index,
                    score=validation.score,
                )
                return RetryOutcome(
                    domain=adapter.domain,
                    document=document,
                    validation=validation,
                    attempts_used=index,
                    accepted=accepted,
                    score_history=tuple(scores),
                )

        logger.error(
            "Quality gate failed",
            domain=adapter.domain,
            attempts_used=max_attempts,
            attempt_errors=attempt_errors,
        )
        raise GenerationFailedError(
            domain=adapter.domain,
            attempts_used=max_attempts,
            attempt_errors=attempt_errors,
            last_error=last_error,
        ) from last_error


async def run_with_quality_gate(
    request: GenerationRequest,
    adapter: DomainAdapter,
    generator: ListingGenerator,
    sink: DiagnosticsSink | None = None,
) -> RetryOutcome[ListingDocument]:
    """Run one gated generation with a throwaway `QualityGate`."""
    return await QualityGate(generator, sink).run(request, adapter)
