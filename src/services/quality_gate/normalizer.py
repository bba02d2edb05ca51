"""Turn raw generator text into a typed listing document.

Generators wrap their JSON in prose, markdown fences or both. Candidates are
tried in a fixed order and the first one that parses to a listing object wins:

1. the whole text parsed as-is,
2. the body of a fenced code block (``json``-tagged first, then any fence),
3. the span from the first ``{`` or ``[`` to the last matching closer.

An array is accepted when its first element is an object, since some models
wrap the listing in a one-element list. A candidate that parses to anything
else (an example array, a bare string) is skipped in favour of later ones. Anything else comes back as a
`NormalizeError` value; this function never raises for bad input.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Iterator
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from core.structured_logging import StructuredLogger
from schemas.listings import ListingDocument


logger = StructuredLogger(__name__)

DocT = TypeVar("DocT", bound=ListingDocument)

_JSON_FENCE = re.compile(r"```\s*json\s*\n?(.*?)```", re.DOTALL | re.IGNORECASE)
_ANY_FENCE = re.compile(r"```[A-Za-z0-9_-]*\s*\n?(.*?)```", re.DOTALL)

_CLOSERS = {"{": "}", "[": "]"}

# Size of the raw text excerpt kept on a NormalizeError for diagnostics
RAW_EXCERPT_LENGTH = 2000


class NormalizeError(BaseModel):
    """Typed failure value for a response that is not a usable listing."""

    reason: str
    raw_text: str
    errors: list[str] = []

    @property
    def raw_excerpt(self) -> str:
        return self.raw_text[:RAW_EXCERPT_LENGTH]


def _whole_text(text: str) -> Iterator[str]:
    yield text.strip()


def _fenced_blocks(text: str) -> Iterator[str]:
    for pattern in (_JSON_FENCE, _ANY_FENCE):
        for match in pattern.finditer(text):
            yield match.group(1).strip()


def _bracket_span(text: str) -> Iterator[str]:
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return
    start = min(starts)
    end = text.rfind(_CLOSERS[text[start]])
    if end > start:
        yield text[start : end + 1]


EXTRACTION_STRATEGIES: tuple[tuple[str, Callable[[str], Iterator[str]]], ...] = (
    ("direct", _whole_text),
    ("fenced", _fenced_blocks),
    ("bracket_span", _bracket_span),
)


def _loads(candidate: str) -> tuple[bool, Any]:
    if not candidate:
        return False, None
    try:
        return True, json.loads(candidate)
    except (json.JSONDecodeError, RecursionError):
        return False, None


def extract_json(
    text: str, accept: Callable[[Any], bool] | None = None
) -> tuple[str, Any] | None:
    """Return ``(strategy, parsed_value)`` for the first candidate that parses.

    With ``accept``, candidates whose parsed value it rejects are skipped.
    """
    for name, strategy in EXTRACTION_STRATEGIES:
        for candidate in strategy(text):
            ok, value = _loads(candidate)
            if ok and (accept is None or accept(value)):
                return name, value
    return None


def _as_object(value: Any) -> dict[str, Any] | None:
    if isinstance(value, dict):
        return value
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return value[0]
    return None


def _listing_payload(value: Any) -> dict[str, Any] | None:
    # A JSON string holding the listing (double-encoded output)
    if isinstance(value, str):
        nested = extract_json(value)
        if nested is not None:
            value = nested[1]
    return _as_object(value)


def normalize(
    raw: str | bytes | None, document_type: type[DocT]
) -> DocT | NormalizeError:
    """Extract and coerce a generator response into ``document_type``."""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if raw is None or not raw.strip():
        return NormalizeError(reason="empty response", raw_text=raw or "")

    extracted = extract_json(raw, accept=lambda v: _listing_payload(v) is not None)
    if extracted is None:
        parsed = extract_json(raw)
        if parsed is None:
            return NormalizeError(
                reason="no JSON object found in response", raw_text=raw
            )
        return NormalizeError(
            reason=f"expected a JSON object, got {type(parsed[1]).__name__}",
            raw_text=raw,
        )

    strategy, value = extracted
    payload = _listing_payload(value)
    assert payload is not None

    try:
        document = document_type.model_validate(payload)
    except ValidationError as e:
        return NormalizeError(
            reason=f"response does not match {document_type.__name__}",
            raw_text=raw,
            errors=[
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ],
        )

    logger.debug(
        "Normalized generator response",
        strategy=strategy,
        document_type=document_type.__name__,
        raw_length=len(raw),
    )
    return document
