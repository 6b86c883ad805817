"""Tests for RoutingRuleService: management operations and dry runs."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import RuleNotFoundError
from app.models.rules import RoutingAction, RoutingRuleCreate, RoutingRuleUpdate
from app.service import RoutingRuleService
from app.store import RuleStore


def _create(name: str = "Route Critical Alerts", **kw) -> RoutingRuleCreate:
    data = {"name": name, "priority": 100, "team_id": 1, "conditions": {"severity": ["critical"]}}
    data.update(kw)
    return RoutingRuleCreate(**data)


# ── Management ──────────────────────────────────────────────────


class TestManagement:
    async def test_create_is_committed(self, session: AsyncSession, session_factory) -> None:
        rule = await RoutingRuleService(session).create(_create())

        async with session_factory() as other:
            fetched = await RuleStore(other).get(rule.id)
        assert fetched.name == "Route Critical Alerts"

    async def test_find_by_team(self, session: AsyncSession) -> None:
        service = RoutingRuleService(session)
        await service.create(_create("a", priority=1))
        await service.create(_create("b", priority=2))
        await service.create(_create("c", team_id=2))

        assert [r.name for r in await service.find_by_team(1)] == ["b", "a"]

    async def test_update(self, session: AsyncSession) -> None:
        service = RoutingRuleService(session)
        rule = await service.create(_create())
        updated = await service.update(rule.id, RoutingRuleUpdate(enabled=False, conditions={}))

        assert updated.enabled is False
        assert updated.conditions == {}
        assert updated.updated_at >= rule.updated_at

    async def test_update_priority(self, session: AsyncSession) -> None:
        service = RoutingRuleService(session)
        rule = await service.create(_create(priority=1))
        updated = await service.update_priority(rule.id, 500)

        assert updated.priority == 500
        assert updated.name == rule.name

    async def test_delete(self, session: AsyncSession) -> None:
        service = RoutingRuleService(session)
        rule = await service.create(_create())
        await service.delete(rule.id)

        with pytest.raises(RuleNotFoundError):
            await service.find_by_id(rule.id)

    @pytest.mark.parametrize("operation", ["find_by_id", "delete", "get_matches_by_rule"])
    async def test_not_found(self, session: AsyncSession, operation: str) -> None:
        with pytest.raises(RuleNotFoundError):
            await getattr(RoutingRuleService(session), operation)(12345)

    async def test_update_priority_not_found(self, session: AsyncSession) -> None:
        with pytest.raises(RuleNotFoundError):
            await RoutingRuleService(session).update_priority(12345, 1)

    async def test_matches_by_rule(self, session: AsyncSession) -> None:
        service = RoutingRuleService(session)
        rule = await service.create(_create(actions=RoutingAction(route_to_service_id=1)))
        await service.rules.record_match(31, rule.id)
        await service.rules.commit()

        matches = await service.get_matches_by_rule(rule.id)
        assert [m.alert_id for m in matches] == [31]


# ── Dry run ─────────────────────────────────────────────────────


class TestDryRun:
    def _service(self) -> RoutingRuleService:
        # Dry runs must not touch the session
        return RoutingRuleService(MagicMock(spec=AsyncSession))

    def test_matching_sample(self) -> None:
        result = self._service().test_rule(
            {"severity": ["critical", "high"], "labels": {"service": "api"}},
            {
                "title": "High CPU Usage",
                "severity": "critical",
                "source": "grafana",
                "labels": {"host": "web-01", "service": "api"},
                "description": "CPU usage above 90%",
            },
        )
        assert result.matches is True
        assert result.reason == "All conditions matched"

    def test_reason_names_failing_clause(self) -> None:
        result = self._service().test_rule({"source": "datadog"}, {"source": "grafana"})
        assert result.matches is False
        assert result.reason == "One or more conditions did not match: source"

    def test_sample_without_labels_or_title(self) -> None:
        service = self._service()
        assert service.test_rule({}, {}).matches
        assert not service.test_rule({"labels": {"env": "prod"}}, {"labels": None}).matches
        assert not service.test_rule({"titleContains": "cpu"}, {}).matches

    def test_bad_regex(self) -> None:
        result = self._service().test_rule({"descriptionMatches": "[oops"}, {"description": "x"})
        assert result.matches is False
        assert result.reason.endswith("descriptionMatches")

    def test_does_not_touch_session(self) -> None:
        session = MagicMock(spec=AsyncSession)
        RoutingRuleService(session).test_rule({"severity": "low"}, {"severity": "low"})
        assert session.method_calls == []

    def test_invalid_sample_is_reported(self) -> None:
        result = self._service().test_rule({}, {"severity": "catastrophic"})
        assert result.matches is False
        assert result.reason.startswith("Invalid sample alert")
