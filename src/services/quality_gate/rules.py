"""Declarative quality rules and rule catalogs.

A rule inspects one or more fields of a listing document and returns zero or
more findings. Rules are pure: same document in, same findings out. Absent
values (``None``, blank strings, empty lists) are skipped by every rule except
`RequiredFieldRule` and `NestedDocumentRule`, so a missing field is reported
once, as missing, and not again as "too short".

A `RuleCatalog` evaluates its rules grouped by `RuleFamily` and, within a
family, in declaration order, which makes finding order deterministic.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from schemas.listings import ListingDocument
from services.quality_gate.models import Finding, RuleFamily, Severity


_APOSTROPHES = str.maketrans({"’": "'", "‘": "'"})
_WORD_PATTERN = re.compile(r"[a-z0-9']+(?:-[a-z0-9']+)*")

# Bracketed template tokens like "[Product Name]"; markdown links are excluded
PLACEHOLDER_PATTERN = re.compile(
    r"\[[^\[\]\n]{1,80}\](?!\()|\{\{[^{}]*\}\}|\{\{|_{3,}", re.IGNORECASE
)

# Short function words that may repeat in a title without penalty
REPEAT_IGNORED_WORDS = frozenset(
    {"with", "from", "your", "this", "that", "into", "over", "for", "and", "the"}
)


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, list | tuple):
        return len(value) == 0
    return False


def _fold(text: str) -> str:
    return text.translate(_APOSTROPHES).lower()


def _as_text(value: Any) -> str | None:
    """Text view of a field; list fields are joined one item per line."""
    if isinstance(value, str):
        return value
    if isinstance(value, list | tuple):
        return "\n".join(str(v) for v in value)
    return None


@dataclass(frozen=True, kw_only=True)
class Rule(ABC):
    """Base rule. ``score_delta`` is the penalty for the rule's primary finding."""

    family: ClassVar[RuleFamily]

    rule_id: str
    score_delta: int
    severity: Severity = Severity.ERROR

    def __post_init__(self) -> None:
        if self.score_delta < 0:
            raise ValueError(f"{self.rule_id}: score_delta must not be negative")

    @abstractmethod
    def check(self, doc: ListingDocument) -> list[Finding]:
        raise NotImplementedError

    def finding(
        self,
        message: str,
        *,
        severity: Severity | None = None,
        score_delta: int | None = None,
        rule_id: str | None = None,
    ) -> Finding:
        return Finding(
            rule_id=rule_id or self.rule_id,
            severity=severity or self.severity,
            message=message,
            score_delta=self.score_delta if score_delta is None else score_delta,
        )


# ---------------------------------------------------------------------------
# Lexical
# ---------------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class BannedPhraseRule(Rule):
    """One finding per distinct banned phrase per field in ``fields``.

    Matching is a case-insensitive substring test, so "elevate your" also
    counts as "elevate" when both are banned.
    """

    family: ClassVar[RuleFamily] = RuleFamily.LEXICAL

    fields: tuple[str, ...]
    phrases: tuple[str, ...]

    def check(self, doc: ListingDocument) -> list[Finding]:
        findings = []
        for name in self.fields:
            text = _as_text(getattr(doc, name, None))
            if not text:
                continue
            folded = _fold(text)
            for phrase in dict.fromkeys(_fold(p) for p in self.phrases):
                if phrase in folded:
                    findings.append(
                        self.finding(f'{name} contains banned phrase "{phrase}"')
                    )
        return findings


# ---------------------------------------------------------------------------
# Structural
# ---------------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class RequiredFieldRule(Rule):
    family: ClassVar[RuleFamily] = RuleFamily.STRUCTURAL

    field: str
    label: str | None = None

    def check(self, doc: ListingDocument) -> list[Finding]:
        if is_blank(getattr(doc, self.field, None)):
            return [self.finding(f"{self.label or self.field} is missing")]
        return []


@dataclass(frozen=True, kw_only=True)
class SectionMarkerRule(Rule):
    """Each marker missing from the field is its own finding."""

    family: ClassVar[RuleFamily] = RuleFamily.STRUCTURAL

    field: str
    markers: tuple[str, ...]

    def check(self, doc: ListingDocument) -> list[Finding]:
        value = getattr(doc, self.field, None)
        if is_blank(value) or not isinstance(value, str):
            return []
        folded = _fold(value)
        return [
            self.finding(f'Missing section "{marker}"')
            for marker in self.markers
            if _fold(marker) not in folded
        ]


@dataclass(frozen=True, kw_only=True)
class PlaceholderRule(Rule):
    """Unfilled template tokens such as ``[Product Name]`` or ``{{size}}``."""

    family: ClassVar[RuleFamily] = RuleFamily.STRUCTURAL

    fields: tuple[str, ...]

    def check(self, doc: ListingDocument) -> list[Finding]:
        findings = []
        for name in self.fields:
            text = _as_text(getattr(doc, name, None))
            if not text:
                continue
            tokens = list(dict.fromkeys(PLACEHOLDER_PATTERN.findall(text)))
            if tokens:
                shown = ", ".join(tokens[:5])
                findings.append(
                    self.finding(
                        f"{name} contains unfilled placeholders: {shown}",
                        rule_id=f"{self.rule_id}.{name}",
                    )
                )
        return findings


@dataclass(frozen=True, kw_only=True)
class RequiredMentionRule(Rule):
    """The field must mention at least one of ``keywords``."""

    family: ClassVar[RuleFamily] = RuleFamily.STRUCTURAL

    field: str
    keywords: tuple[str, ...]
    message: str

    def check(self, doc: ListingDocument) -> list[Finding]:
        text = _as_text(getattr(doc, self.field, None))
        if not text:
            return []
        folded = _fold(text)
        if any(_fold(keyword) in folded for keyword in self.keywords):
            return []
        return [self.finding(self.message)]


# ---------------------------------------------------------------------------
# Length
# ---------------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class LengthRule(Rule):
    """Character bounds on a text field.

    Below ``min_length`` or above ``max_length`` is an error. Between
    ``min_length`` and ``warn_below`` is a warning worth ``warn_delta``.
    """

    family: ClassVar[RuleFamily] = RuleFamily.LENGTH

    field: str
    label: str | None = None
    min_length: int | None = None
    max_length: int | None = None
    long_delta: int | None = None
    warn_below: int | None = None
    warn_delta: int = 0

    def check(self, doc: ListingDocument) -> list[Finding]:
        value = getattr(doc, self.field, None)
        if is_blank(value) or not isinstance(value, str):
            return []
        label = self.label or self.field
        length = len(value.strip())
        if self.min_length is not None and length < self.min_length:
            return [
                self.finding(
                    f"{label} is too short ({length} chars, minimum {self.min_length})",
                    rule_id=f"{self.rule_id}.short",
                )
            ]
        if self.max_length is not None and length > self.max_length:
            return [
                self.finding(
                    f"{label} is too long ({length} chars, maximum {self.max_length})",
                    rule_id=f"{self.rule_id}.long",
                    score_delta=self.long_delta,
                )
            ]
        if self.warn_below is not None and length < self.warn_below:
            return [
                self.finding(
                    f"{label} is short ({length} chars, aim for {self.warn_below}+)",
                    rule_id=f"{self.rule_id}.borderline",
                    severity=Severity.WARNING,
                    score_delta=self.warn_delta,
                )
            ]
        return []


@dataclass(frozen=True, kw_only=True)
class ItemCountRule(Rule):
    family: ClassVar[RuleFamily] = RuleFamily.LENGTH

    field: str
    expected: int
    label: str | None = None

    def check(self, doc: ListingDocument) -> list[Finding]:
        items = getattr(doc, self.field, None)
        if is_blank(items) or not isinstance(items, list):
            return []
        if len(items) != self.expected:
            return [
                self.finding(
                    f"Must have exactly {self.expected} {self.label or self.field} "
                    f"(found {len(items)})"
                )
            ]
        return []


@dataclass(frozen=True, kw_only=True)
class ItemLengthRule(Rule):
    """Per-item character bounds for list fields; one finding per item."""

    family: ClassVar[RuleFamily] = RuleFamily.LENGTH

    field: str
    min_length: int
    max_length: int
    long_delta: int | None = None
    label: str = "Item"

    def check(self, doc: ListingDocument) -> list[Finding]:
        items = getattr(doc, self.field, None)
        if is_blank(items) or not isinstance(items, list):
            return []
        findings = []
        for position, item in enumerate(items, start=1):
            length = len(str(item).strip())
            if length < self.min_length:
                findings.append(
                    self.finding(
                        f"{self.label} {position} is too short "
                        f"({length} chars, aim for {self.min_length}-{self.max_length})",
                        rule_id=f"{self.rule_id}.short",
                    )
                )
            elif length > self.max_length:
                findings.append(
                    self.finding(
                        f"{self.label} {position} is too long "
                        f"({length} chars, maximum {self.max_length})",
                        rule_id=f"{self.rule_id}.long",
                        score_delta=self.long_delta,
                    )
                )
        return findings


@dataclass(frozen=True, kw_only=True)
class ForbiddenCharacterRule(Rule):
    family: ClassVar[RuleFamily] = RuleFamily.LENGTH

    field: str
    character: str
    message: str

    def check(self, doc: ListingDocument) -> list[Finding]:
        text = _as_text(getattr(doc, self.field, None))
        if text and self.character in text:
            return [self.finding(self.message)]
        return []


@dataclass(frozen=True, kw_only=True)
class RepeatedWordRule(Rule):
    """Words longer than ``min_word_length - 1`` that appear more than once.

    All repeats are reported in a single finding so the penalty is applied
    once per field, not once per word.
    """

    family: ClassVar[RuleFamily] = RuleFamily.LENGTH

    field: str
    min_word_length: int = 4
    ignored: frozenset[str] = REPEAT_IGNORED_WORDS
    label: str | None = None

    def repeated_words(self, text: str) -> list[str]:
        counts: dict[str, int] = {}
        for word in _WORD_PATTERN.findall(_fold(text)):
            word = word.strip("'")
            if len(word) < self.min_word_length or word in self.ignored:
                continue
            counts[word] = counts.get(word, 0) + 1
        return [w for w, n in counts.items() if n > 1]

    def check(self, doc: ListingDocument) -> list[Finding]:
        value = getattr(doc, self.field, None)
        if is_blank(value) or not isinstance(value, str):
            return []
        repeats = self.repeated_words(value)
        if repeats:
            return [
                self.finding(
                    f"{self.label or self.field} repeats words: {', '.join(repeats)}"
                )
            ]
        return []


# ---------------------------------------------------------------------------
# Set integrity
# ---------------------------------------------------------------------------


def _tag_items(doc: ListingDocument, name: str) -> list[str]:
    items = getattr(doc, name, None)
    if not isinstance(items, list):
        return []
    return [str(item).strip() for item in items]


@dataclass(frozen=True, kw_only=True)
class DuplicateItemsRule(Rule):
    family: ClassVar[RuleFamily] = RuleFamily.SET_INTEGRITY

    field: str

    def check(self, doc: ListingDocument) -> list[Finding]:
        seen: set[str] = set()
        duplicates: list[str] = []
        for item in _tag_items(doc, self.field):
            key = item.casefold()
            if key in seen and item not in duplicates:
                duplicates.append(item)
            seen.add(key)
        if duplicates:
            return [self.finding(f"Duplicate {self.field}: {', '.join(duplicates)}")]
        return []


@dataclass(frozen=True, kw_only=True)
class ForbiddenPrefixRule(Rule):
    family: ClassVar[RuleFamily] = RuleFamily.SET_INTEGRITY

    field: str
    prefix: str

    def check(self, doc: ListingDocument) -> list[Finding]:
        offenders = [t for t in _tag_items(doc, self.field) if t.startswith(self.prefix)]
        if offenders:
            return [
                self.finding(
                    f"{len(offenders)} {self.field} start with '{self.prefix}'"
                )
            ]
        return []


@dataclass(frozen=True, kw_only=True)
class LongTailRule(Rule):
    """At least ``min_count`` items must be multi-word phrases."""

    family: ClassVar[RuleFamily] = RuleFamily.SET_INTEGRITY

    field: str
    min_count: int
    min_words: int = 2
    severity: Severity = Severity.WARNING

    def check(self, doc: ListingDocument) -> list[Finding]:
        items = _tag_items(doc, self.field)
        if not items:
            return []
        long_tail = [t for t in items if len(t.split()) >= self.min_words]
        if len(long_tail) < self.min_count:
            return [
                self.finding(
                    f"Only {len(long_tail)} multi-word {self.field}; "
                    f"use at least {self.min_count} long-tail phrases"
                )
            ]
        return []


@dataclass(frozen=True, kw_only=True)
class HashtagCountRule(Rule):
    """Minimum number of ``#tag`` tokens in a free-text field."""

    family: ClassVar[RuleFamily] = RuleFamily.SET_INTEGRITY

    field: str
    min_count: int
    severity: Severity = Severity.WARNING

    def check(self, doc: ListingDocument) -> list[Finding]:
        value = getattr(doc, self.field, None)
        if is_blank(value) or not isinstance(value, str):
            return []
        count = sum(1 for token in value.split() if token.startswith("#") and len(token) > 1)
        if count < self.min_count:
            return [
                self.finding(
                    f"{self.field} has {count} hashtags, aim for {self.min_count}+"
                )
            ]
        return []


# ---------------------------------------------------------------------------
# Cross-field
# ---------------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class NestedDocumentRule(Rule):
    """Apply a sub-catalog to a nested document.

    A missing nested document is a single finding at this rule's severity;
    otherwise the nested catalog's findings are reported with their rule ids
    prefixed by ``field``.
    """

    family: ClassVar[RuleFamily] = RuleFamily.CROSS_FIELD

    field: str
    catalog: RuleCatalog
    label: str | None = None

    def check(self, doc: ListingDocument) -> list[Finding]:
        nested = getattr(doc, self.field, None)
        if not isinstance(nested, ListingDocument):
            return [self.finding(f"{self.label or self.field} is missing")]
        return [
            Finding(
                rule_id=f"{self.field}.{f.rule_id}",
                severity=f.severity,
                message=f.message,
                score_delta=f.score_delta,
            )
            for f in self.catalog.evaluate(nested)
        ]


@dataclass(frozen=True)
class RuleCatalog:
    """A named, versioned, ordered collection of rules."""

    name: str
    version: str
    rules: tuple[Rule, ...]
    _ordered: tuple[Rule, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        ids = [r.rule_id for r in self.rules]
        duplicates = {i for i in ids if ids.count(i) > 1}
        if duplicates:
            raise ValueError(
                f"Catalog {self.name} has duplicate rule ids: {sorted(duplicates)}"
            )
        # sorted() is stable, so declaration order holds within a family
        object.__setattr__(
            self, "_ordered", tuple(sorted(self.rules, key=lambda r: r.family))
        )

    @property
    def ordered_rules(self) -> tuple[Rule, ...]:
        return self._ordered

    def evaluate(self, doc: ListingDocument) -> list[Finding]:
        findings: list[Finding] = []
        for rule in self._ordered:
            findings.extend(rule.check(doc))
        return findings

    def evaluate_parts(self, doc: ListingDocument) -> list[list[Finding]]:
        """Findings grouped by scoring part; a plain catalog is one part."""
        return [self.evaluate(doc)]

    def rule(self, rule_id: str) -> Rule:
        for r in self.rules:
            if r.rule_id == rule_id:
                return r
        raise KeyError(rule_id)


@dataclass(frozen=True)
class AveragedCatalog:
    """Catalogs scored separately, with the final score their average.

    Findings from every part are reported together, in part order. Each part
    keeps its own 0-100 score, so a warning in one part costs half as much as
    it would in a single combined catalog of two parts.
    """

    name: str
    version: str
    parts: tuple[RuleCatalog, ...]

    def __post_init__(self) -> None:
        if not self.parts:
            raise ValueError(f"Catalog {self.name} needs at least one part")
        ids = [r.rule_id for r in self.rules]
        duplicates = {i for i in ids if ids.count(i) > 1}
        if duplicates:
            raise ValueError(
                f"Catalog {self.name} has duplicate rule ids: {sorted(duplicates)}"
            )

    @property
    def rules(self) -> tuple[Rule, ...]:
        return tuple(r for part in self.parts for r in part.rules)

    @property
    def ordered_rules(self) -> tuple[Rule, ...]:
        return tuple(r for part in self.parts for r in part.ordered_rules)

    def evaluate(self, doc: ListingDocument) -> list[Finding]:
        return [f for part in self.evaluate_parts(doc) for f in part]

    def evaluate_parts(self, doc: ListingDocument) -> list[list[Finding]]:
        return [part.evaluate(doc) for part in self.parts]

    def rule(self, rule_id: str) -> Rule:
        for part in self.parts:
            try:
                return part.rule(rule_id)
            except KeyError:
                continue
        raise KeyError(rule_id)


Catalog = RuleCatalog | AveragedCatalog
