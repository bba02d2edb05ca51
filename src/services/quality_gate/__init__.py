"""Listing quality gate: generate, normalize, repair, validate, retry."""

from .adapters import DomainAdapter, ListingDomain, get_adapter
from .controller import QualityGate, evaluate_response, run_with_quality_gate
from .models import (
    Attempt,
    Finding,
    GenerationRequest,
    RetryOutcome,
    Severity,
    ValidationResult,
)
from .normalizer import NormalizeError, normalize
from .repair import repair
from .validator import validate


__all__ = [
    "Attempt",
    "DomainAdapter",
    "Finding",
    "GenerationRequest",
    "ListingDomain",
    "NormalizeError",
    "QualityGate",
    "RetryOutcome",
    "Severity",
    "ValidationResult",
    "evaluate_response",
    "get_adapter",
    "normalize",
    "repair",
    "run_with_quality_gate",
    "validate",
]
