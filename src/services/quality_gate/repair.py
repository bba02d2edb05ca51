"""Deterministic fixes applied to a normalized document before scoring.

Repairs are total (any document in, a document out) and idempotent: running
the same repairs twice gives the same document as running them once. They
only touch mechanical problems (separators, alternate keys, absent filler
fields) and never rewrite copy that the lexical rules scan.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TypeVar

from schemas.listings import ListingDocument
from services.quality_gate.rules import is_blank


_WHITESPACE = re.compile(r"\s+")

DocT = TypeVar("DocT", bound=ListingDocument)


class RepairRule(ABC):
    @abstractmethod
    def apply(self, doc: ListingDocument) -> ListingDocument:
        raise NotImplementedError


@dataclass(frozen=True)
class SeparatorRepair(RepairRule):
    """Replace a forbidden separator with spaces and collapse whitespace."""

    field: str
    separator: str = ","

    def apply(self, doc: ListingDocument) -> ListingDocument:
        value = getattr(doc, self.field, None)
        if not isinstance(value, str) or self.separator not in value:
            return doc
        cleaned = _WHITESPACE.sub(" ", value.replace(self.separator, " ")).strip()
        return doc.model_copy(update={self.field: cleaned})


@dataclass(frozen=True)
class AliasRepair(RepairRule):
    """Copy ``source`` into ``target`` when the target is absent."""

    target: str
    source: str

    def apply(self, doc: ListingDocument) -> ListingDocument:
        if not is_blank(getattr(doc, self.target, None)):
            return doc
        value = getattr(doc, self.source, None)
        if is_blank(value):
            return doc
        return doc.model_copy(update={self.target: value})


@dataclass(frozen=True)
class FallbackRepair(RepairRule):
    """Substitute fixed, truthful text for an absent or too-short field."""

    field: str
    fallback: str
    min_length: int = 1

    def __post_init__(self) -> None:
        if len(self.fallback) < self.min_length:
            raise ValueError(
                f"Fallback for {self.field} is shorter than its minimum length"
            )

    def apply(self, doc: ListingDocument) -> ListingDocument:
        value = getattr(doc, self.field, None)
        if isinstance(value, str) and len(value.strip()) >= self.min_length:
            return doc
        if value is not None and not isinstance(value, str):
            return doc
        return doc.model_copy(update={self.field: self.fallback})


@dataclass(frozen=True)
class NestedRepair(RepairRule):
    """Run ``repairs`` on the sub-document stored in ``field``, if present."""

    field: str
    repairs: tuple[RepairRule, ...]

    def apply(self, doc: ListingDocument) -> ListingDocument:
        nested = getattr(doc, self.field, None)
        if not isinstance(nested, ListingDocument):
            return doc
        repaired = repair(nested, self.repairs)
        if repaired is nested:
            return doc
        return doc.model_copy(update={self.field: repaired})


def repair(doc: DocT, repairs: Sequence[RepairRule]) -> DocT:
    """Apply ``repairs`` in order. Returns ``doc`` itself when nothing changed."""
    for rule in repairs:
        doc = rule.apply(doc)  # type: ignore[assignment]
    return doc
