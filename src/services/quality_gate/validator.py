"""Score a listing document against a rule catalog."""

import math

from schemas.listings import ListingDocument
from services.quality_gate.models import Finding, Severity, ValidationResult
from services.quality_gate.rules import Catalog


MAX_SCORE = 100


def _part_score(findings: list[Finding]) -> int:
    return max(0, MAX_SCORE - sum(f.score_delta for f in findings))


def validate(doc: ListingDocument, catalog: Catalog) -> ValidationResult:
    """Apply every rule in ``catalog`` to ``doc``.

    The score starts at ``MAX_SCORE`` and loses each finding's ``score_delta``,
    floored at zero. An `AveragedCatalog` scores each part that way and
    reports the mean, rounded half up. ``passed`` is True when no finding is
    an error; warnings only lower the score.
    """
    parts = catalog.evaluate_parts(doc)
    findings = tuple(f for part in parts for f in part)
    mean = sum(_part_score(part) for part in parts) / len(parts)
    return ValidationResult(
        score=math.floor(mean + 0.5),
        passed=not any(f.severity is Severity.ERROR for f in findings),
        findings=findings,
    )
