"""Domain exceptions for the listing quality gate.

Only failures the caller must treat as "generation failed" are exceptions.
A parsed-but-weak listing is never an error: it comes back as a
`RetryOutcome` with `accepted=False`. A response the normalizer cannot parse
is returned as a `NormalizeError` value, and only becomes an exception
(`GenerationFailedError`) when it is the last attempt the budget allows.

Each exception carries a stable `error_code` for log tagging and HTTP mapping.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True, eq=False)
class QualityGateError(Exception):
    """Base class for quality gate domain errors."""

    message: str
    error_code: str

    def __str__(self) -> str:
        return f"{self.error_code}: {self.message}"

    def details(self) -> dict[str, Any]:
        """Extra context safe to expose in development error responses."""
        return {}


class ProviderError(QualityGateError):
    """The generative provider call raised or returned nothing usable."""

    def __init__(self, message: str = "Generative provider call failed") -> None:
        super().__init__(message=message, error_code="provider_failed")


class MalformedResponseError(QualityGateError):
    """A caller-supplied response could not be normalized into a listing."""

    def __init__(
        self, message: str = "Response does not contain a structured listing"
    ) -> None:
        super().__init__(message=message, error_code="malformed_response")


class UnknownDomainError(QualityGateError):
    def __init__(self, domain: str) -> None:
        super().__init__(
            message=f"No quality gate is configured for domain '{domain}'",
            error_code="unknown_domain",
        )


class GenerationFailedError(QualityGateError):
    """Hard failure: the retry budget ran out on a provider or parse failure."""

    def __init__(
        self,
        domain: str,
        attempts_used: int,
        attempt_errors: list[str] | None = None,
        last_error: QualityGateError | None = None,
    ) -> None:
        super().__init__(
            message=(
                f"Listing generation for '{domain}' failed after "
                f"{attempts_used} attempt(s)"
            ),
            error_code="generation_failed",
        )
        self.domain = domain
        self.attempts_used = attempts_used
        self.attempt_errors = list(attempt_errors or [])
        self.last_error = last_error

    def details(self) -> dict[str, Any]:
        return {
            "domain": self.domain,
            "attempts_used": self.attempts_used,
            "attempt_errors": list(self.attempt_errors),
        }
