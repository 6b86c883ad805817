"""Predicate evaluation of rule conditions against alerts."""

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable

from app.models.alert import Alert
from app.models.conditions import (
    ConditionSet,
    DescriptionMatchesClause,
    LabelsClause,
    MatchMode,
    SeverityClause,
    SourceClause,
    TitleContainsClause,
    UnknownClause,
)


@dataclass(frozen=True)
class ConditionOutcome:
    matched: bool
    failed_clause: str | None = None


class ConditionEvaluator:
    """Evaluates condition documents against alerts.

    Side-effect free apart from logging. Clauses are ANDed; ``matchMode``
    is read but ``any`` is still evaluated as ``all``. A pattern that fails
    to compile fails its clause and never raises.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger(__name__)
        self._checks: dict[type, Callable[[Any, Alert], bool]] = {
            LabelsClause: self._check_labels,
            SourceClause: self._check_source,
            SeverityClause: self._check_severity,
            TitleContainsClause: self._check_title,
            DescriptionMatchesClause: self._check_description,
        }

    def explain(
        self,
        alert: Alert,
        conditions: ConditionSet | Mapping[str, Any] | None,
    ) -> ConditionOutcome:
        condition_set = _as_condition_set(conditions)

        if condition_set.match_mode is MatchMode.ANY:
            self._logger.debug("matchMode 'any' is evaluated with 'all' semantics")

        for clause in condition_set.clauses:
            if isinstance(clause, UnknownClause):
                self._logger.debug(f"Ignoring unknown condition clause: {clause.key}")
                continue
            if not self._checks[type(clause)](clause, alert):
                return ConditionOutcome(matched=False, failed_clause=clause.kind)

        return ConditionOutcome(matched=True)

    def matches(
        self,
        alert: Alert,
        conditions: ConditionSet | Mapping[str, Any] | None,
    ) -> bool:
        return self.explain(alert, conditions).matched

    def _check_labels(self, clause: LabelsClause, alert: Alert) -> bool:
        labels = alert.labels or {}
        for key, value in clause.expected.items():
            if key not in labels or labels[key] != value:
                return False
        return True

    def _check_source(self, clause: SourceClause, alert: Alert) -> bool:
        return alert.source is not None and alert.source == clause.expected

    def _check_severity(self, clause: SeverityClause, alert: Alert) -> bool:
        return alert.severity in clause.allowed

    def _check_title(self, clause: TitleContainsClause, alert: Alert) -> bool:
        return clause.needle.lower() in (alert.title or "").lower()

    def _check_description(self, clause: DescriptionMatchesClause, alert: Alert) -> bool:
        try:
            regex = re.compile(clause.pattern)
        except re.error as e:
            self._logger.warning(f"Invalid regex in condition: {clause.pattern} ({e})")
            return False
        return regex.search(alert.description or "") is not None


def _as_condition_set(conditions: ConditionSet | Mapping[str, Any] | None) -> ConditionSet:
    if isinstance(conditions, ConditionSet):
        return conditions
    return ConditionSet.from_document(conditions)


def evaluate_conditions(
    alert: Alert,
    conditions: ConditionSet | Mapping[str, Any] | None,
    logger: logging.Logger | None = None,
) -> bool:
    """Return True when ``alert`` satisfies every clause in ``conditions``."""
    return ConditionEvaluator(logger).matches(alert, conditions)
