"""Value types passed between quality gate stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from typing import Generic, TypeVar

from schemas.listings import ListingDocument
from services.quality_gate.exceptions import QualityGateError


DocT = TypeVar("DocT", bound=ListingDocument)


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"


class RuleFamily(IntEnum):
    """Rule families in the order their findings are reported."""

    LEXICAL = 1
    STRUCTURAL = 2
    LENGTH = 3
    SET_INTEGRITY = 4
    CROSS_FIELD = 5


class GateState(StrEnum):
    REQUESTING = "requesting"
    NORMALIZING = "normalizing"
    REPAIRING = "repairing"
    VALIDATING = "validating"
    RETRYING = "retrying"
    ACCEPTED = "accepted"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True, slots=True)
class Finding:
    """A single rule violation.

    ``score_delta`` is the number of points deducted from the score and is
    never negative.
    """

    rule_id: str
    severity: Severity
    message: str
    score_delta: int

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR


@dataclass(frozen=True, slots=True)
class ValidationResult:
    score: int
    passed: bool
    findings: tuple[Finding, ...] = ()

    @property
    def errors(self) -> list[Finding]:
        return [f for f in self.findings if f.severity is Severity.ERROR]

    @property
    def warnings(self) -> list[Finding]:
        return [f for f in self.findings if f.severity is Severity.WARNING]


@dataclass(frozen=True, slots=True)
class GenerationRequest:
    """Everything the generator needs for one call. Reused unchanged on retry."""

    domain: str
    prompt: str
    image_data: bytes | None = None
    image_media_type: str | None = None

    @property
    def is_multimodal(self) -> bool:
        return self.image_data is not None


@dataclass(slots=True)
class Attempt(Generic[DocT]):
    """One pass through generate, normalize, repair and validate.

    ``error`` is set when the attempt failed before validation; ``document``
    and ``validation`` are then None.
    """

    index: int
    raw_response: str | None = None
    document: DocT | None = None
    validation: ValidationResult | None = None
    error: QualityGateError | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(frozen=True, slots=True)
class RetryOutcome(Generic[DocT]):
    """Final result of a gated generation.

    ``accepted`` is False when the retry budget ran out without reaching the
    acceptance threshold; the document is then the last attempt's, not a
    verified one.
    """

    domain: str
    document: DocT
    validation: ValidationResult
    attempts_used: int
    accepted: bool
    # Scores of the attempts that reached validation, in order
    score_history: tuple[int, ...] = field(default=())
