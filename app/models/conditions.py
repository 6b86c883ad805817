"""Condition documents parsed into typed clauses.

A rule's ``conditions`` is stored as a loose key-value document. Parsing
turns each recognised key into one clause variant; keys the engine does not
know about become ``UnknownClause`` so newer documents still load. Values
with the wrong shape are dropped, the same as an absent clause.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Union


class MatchMode(str, Enum):
    ALL = "all"
    ANY = "any"

    @classmethod
    def parse(cls, value: Any) -> "MatchMode":
        try:
            return cls(value)
        except (ValueError, TypeError):
            return cls.ALL


@dataclass(frozen=True)
class LabelsClause:
    """Every expected label must be present on the alert with an equal value."""

    kind: ClassVar[str] = "labels"
    expected: Mapping[str, Any]


@dataclass(frozen=True)
class SourceClause:
    kind: ClassVar[str] = "source"
    expected: Any


@dataclass(frozen=True)
class SeverityClause:
    """Alert severity must be one of ``allowed``. A scalar is a one-item set."""

    kind: ClassVar[str] = "severity"
    allowed: tuple[Any, ...]


@dataclass(frozen=True)
class TitleContainsClause:
    kind: ClassVar[str] = "titleContains"
    needle: str


@dataclass(frozen=True)
class DescriptionMatchesClause:
    """Regular expression searched in the description, compiled per use."""

    kind: ClassVar[str] = "descriptionMatches"
    pattern: str


@dataclass(frozen=True)
class UnknownClause:
    """A key the engine does not understand. Never affects the outcome."""

    kind: ClassVar[str] = "unknown"
    key: str
    value: Any


Clause = Union[
    LabelsClause,
    SourceClause,
    SeverityClause,
    TitleContainsClause,
    DescriptionMatchesClause,
    UnknownClause,
]

CLAUSE_KEYS = frozenset({
    LabelsClause.kind,
    SourceClause.kind,
    SeverityClause.kind,
    TitleContainsClause.kind,
    DescriptionMatchesClause.kind,
})

# Keys that configure evaluation rather than describe a clause
RESERVED_KEYS = frozenset({"matchMode"})


@dataclass(frozen=True)
class ConditionSet:
    """Parsed condition document. Clauses are kept in evaluation order."""

    clauses: tuple[Clause, ...] = ()
    match_mode: MatchMode = MatchMode.ALL
    raw: Mapping[str, Any] = field(default_factory=dict)

    @property
    def is_catch_all(self) -> bool:
        return all(isinstance(c, UnknownClause) for c in self.clauses)

    @property
    def unknown_keys(self) -> list[str]:
        return [c.key for c in self.clauses if isinstance(c, UnknownClause)]

    @classmethod
    def from_document(cls, document: Mapping[str, Any] | None) -> "ConditionSet":
        if not document or not isinstance(document, Mapping):
            return cls()

        clauses: list[Clause] = []

        labels = document.get("labels")
        if labels and isinstance(labels, Mapping):
            clauses.append(LabelsClause(expected=dict(labels)))

        source = document.get("source")
        if source:
            clauses.append(SourceClause(expected=source))

        severity = document.get("severity")
        if severity:
            if isinstance(severity, (list, tuple, set, frozenset)):
                allowed = tuple(severity)
            else:
                allowed = (severity,)
            clauses.append(SeverityClause(allowed=allowed))

        title = document.get("titleContains")
        if title and isinstance(title, str):
            clauses.append(TitleContainsClause(needle=title))

        pattern = document.get("descriptionMatches")
        if pattern and isinstance(pattern, str):
            clauses.append(DescriptionMatchesClause(pattern=pattern))

        for key, value in document.items():
            if key not in CLAUSE_KEYS and key not in RESERVED_KEYS:
                clauses.append(UnknownClause(key=key, value=value))

        return cls(
            clauses=tuple(clauses),
            match_mode=MatchMode.parse(document.get("matchMode", MatchMode.ALL.value)),
            raw=dict(document),
        )
