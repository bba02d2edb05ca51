"""Per-attempt diagnostics for the quality gate.

Every attempt produces one `AttemptEvent`, including attempts that failed
before validation. Sinks are fire-and-forget: the controller logs and ignores
a sink that raises.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from core.structured_logging import StructuredLogger
from services.quality_gate.models import Attempt, Finding, GateState


ATTEMPT_EVENT = "quality_gate.attempt"


@dataclass(frozen=True, slots=True)
class AttemptEvent:
    domain: str
    attempt: int
    max_attempts: int
    state: GateState
    score: int | None = None
    passed: bool | None = None
    accepted: bool = False
    error_code: str | None = None
    error_message: str | None = None
    findings: tuple[Finding, ...] = field(default=())
    missing_fields: tuple[str, ...] = field(default=())
    raw_length: int | None = None

    @classmethod
    def from_attempt(
        cls,
        attempt: Attempt[Any],
        *,
        domain: str,
        max_attempts: int,
        state: GateState,
        missing_fields: tuple[str, ...] = (),
    ) -> AttemptEvent:
        validation = attempt.validation
        error = attempt.error
        return cls(
            domain=domain,
            attempt=attempt.index,
            max_attempts=max_attempts,
            state=state,
            score=validation.score if validation is not None else None,
            passed=validation.passed if validation is not None else None,
            accepted=state is GateState.ACCEPTED,
            error_code=error.error_code if error is not None else None,
            error_message=error.message if error is not None else None,
            findings=validation.findings if validation is not None else (),
            missing_fields=missing_fields,
            raw_length=(
                len(attempt.raw_response) if attempt.raw_response is not None else None
            ),
        )

    def as_log_fields(self) -> dict[str, Any]:
        return {
            "event": ATTEMPT_EVENT,
            "domain": self.domain,
            "attempt": self.attempt,
            "max_attempts": self.max_attempts,
            "state": self.state.value,
            "score": self.score,
            "passed": self.passed,
            "accepted": self.accepted,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "finding_ids": [f.rule_id for f in self.findings],
            "error_count": sum(1 for f in self.findings if f.is_error),
            "missing_fields": list(self.missing_fields),
            "raw_length": self.raw_length,
        }


class DiagnosticsSink(Protocol):
    def emit(self, event: AttemptEvent) -> None: ...


class LoggingDiagnosticsSink:
    """Write attempt events through the structured logger."""

    def __init__(self, logger: StructuredLogger | None = None) -> None:
        self._logger = logger or StructuredLogger(__name__)

    def emit(self, event: AttemptEvent) -> None:
        fields = event.as_log_fields()
        if event.state is GateState.ACCEPTED:
            self._logger.info("Quality gate attempt accepted", **fields)
        elif event.error_code is not None:
            self._logger.warning("Quality gate attempt failed", **fields)
        elif event.state is GateState.EXHAUSTED:
            self._logger.warning("Quality gate retry budget exhausted", **fields)
        else:
            self._logger.info("Quality gate attempt below threshold", **fields)


class RecordingDiagnosticsSink:
    """Keep events in memory, for tests and ad-hoc inspection."""

    def __init__(self) -> None:
        self.events: list[AttemptEvent] = []

    def emit(self, event: AttemptEvent) -> None:
        self.events.append(event)
