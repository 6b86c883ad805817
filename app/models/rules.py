"""Routing rule, action and evaluation models."""

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from app.models.conditions import ConditionSet

logger = logging.getLogger(__name__)


class CamelModel(BaseModel):
    """Base model speaking camelCase on the wire, snake_case in code."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RoutingAction(CamelModel):
    """Effects requested by a matching rule.

    Passed through to the caller as-is; ids are not checked against other
    entities. Unknown keys are kept.
    """

    model_config = ConfigDict(extra="allow")

    route_to_service_id: int | None = None
    set_severity: str | None = None
    suppress: bool | None = None
    add_tags: list[str] | None = None
    escalation_policy_id: int | None = None

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    @classmethod
    def from_document(cls, document: Any) -> "RoutingAction":
        """Build from a stored action document, dropping fields of the wrong type."""
        if not isinstance(document, Mapping):
            return cls()
        try:
            return cls.model_validate(document)
        except ValidationError as e:
            invalid = {err["loc"][0] for err in e.errors() if err["loc"]}

        logger.warning(f"Dropping invalid action fields {sorted(map(str, invalid))}")
        kept = {k: v for k, v in document.items() if k not in invalid and to_camel(k) not in invalid}
        try:
            return cls.model_validate(kept)
        except ValidationError:
            return cls()


class RoutingRule(CamelModel):
    """A team-scoped routing rule."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    team_id: int
    name: str
    priority: int = 0
    enabled: bool = True
    conditions: dict[str, Any] = Field(default_factory=dict)
    actions: RoutingAction = Field(default_factory=RoutingAction)
    created_at: datetime
    updated_at: datetime

    @field_validator("conditions", mode="before")
    @classmethod
    def _conditions_document(cls, value: Any) -> dict[str, Any]:
        # NULL or non-object conditions are a catch-all
        return dict(value) if isinstance(value, Mapping) else {}

    @field_validator("actions", mode="before")
    @classmethod
    def _actions_document(cls, value: Any) -> RoutingAction:
        if isinstance(value, RoutingAction):
            return value
        return RoutingAction.from_document(value)

    @property
    def condition_set(self) -> ConditionSet:
        return ConditionSet.from_document(self.conditions)


class RoutingRuleCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255, description="Rule name")
    priority: int = Field(default=0, ge=0, description="Higher = evaluated first")
    enabled: bool = True
    team_id: int = Field(description="Team that owns this rule")
    conditions: dict[str, Any] = Field(default_factory=dict)
    actions: RoutingAction = Field(default_factory=RoutingAction)


class RoutingRuleUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    priority: int | None = Field(default=None, ge=0)
    enabled: bool | None = None
    conditions: dict[str, Any] | None = None
    actions: RoutingAction | None = None


class PriorityUpdate(CamelModel):
    priority: int = Field(ge=0)


class RoutingMatch(CamelModel):
    """Audit record: a rule matched an alert."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    alert_id: int
    rule_id: int
    matched_at: datetime


class EvaluationResult(CamelModel):
    matched: bool = False
    matched_rules: list[RoutingRule] = Field(default_factory=list)
    actions: list[RoutingAction] = Field(default_factory=list)


class RuleTestRequest(CamelModel):
    conditions: dict[str, Any] = Field(default_factory=dict)
    sample_alert: dict[str, Any] = Field(
        default_factory=dict,
        examples=[{
            "title": "High CPU Usage",
            "severity": "critical",
            "source": "grafana",
            "labels": {"host": "web-01", "service": "api"},
            "description": "CPU usage above 90%",
        }],
    )


class RuleTestResult(CamelModel):
    matches: bool
    reason: str
