"""Alert model consumed by the routing engine."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class AlertStatus(str, Enum):
    FIRING = "firing"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"
    SUPPRESSED = "suppressed"


class Alert(BaseModel):
    """A persisted, fingerprinted alert.

    Only ``severity``, ``title``, ``description``, ``source`` and ``labels``
    are consulted when matching rules; the rest is bookkeeping carried
    along for the caller.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    id: int = Field(default=0, description="Alert id (0 for unsaved alerts)")
    severity: Severity | None = None
    title: str = ""
    description: str | None = None
    source: str | None = None
    labels: dict[str, str] = Field(default_factory=dict)

    fingerprint: str = ""
    integration_id: int | None = None
    incident_id: int | None = None
    status: AlertStatus = AlertStatus.FIRING
    annotations: dict[str, str] = Field(default_factory=dict)
    fired_at: datetime | None = None
    created_at: datetime | None = None

    @classmethod
    def from_sample(cls, sample: dict[str, Any]) -> "Alert":
        """Build an alert from a loosely shaped sample payload."""
        data = dict(sample)
        if not data.get("labels"):
            data["labels"] = {}
        if data.get("title") is None:
            data["title"] = ""
        return cls.model_validate(data)
