"""Routing rule management: CRUD, priorities, match history and dry runs."""

import logging

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.evaluator import ConditionEvaluator
from app.models.alert import Alert
from app.models.rules import (
    RoutingMatch,
    RoutingRule,
    RoutingRuleCreate,
    RoutingRuleUpdate,
    RuleTestResult,
)
from app.store import RuleStore

logger = logging.getLogger(__name__)


class RoutingRuleService:
    def __init__(self, session: AsyncSession, evaluator: ConditionEvaluator | None = None):
        self.session = session
        self.rules = RuleStore(session)
        self._evaluator = evaluator or ConditionEvaluator(logger)

    async def create(self, payload: RoutingRuleCreate) -> RoutingRule:
        logger.info(f"Creating routing rule: {payload.name}")
        rule = await self.rules.create(payload)
        await self.rules.commit()
        return rule

    async def find_by_team(self, team_id: int) -> list[RoutingRule]:
        return await self.rules.list_for_team(team_id)

    async def find_by_id(self, rule_id: int) -> RoutingRule:
        return await self.rules.get(rule_id)

    async def update(self, rule_id: int, patch: RoutingRuleUpdate) -> RoutingRule:
        logger.info(f"Updating routing rule {rule_id}")
        rule = await self.rules.update(rule_id, patch)
        await self.rules.commit()
        return rule

    async def delete(self, rule_id: int) -> None:
        logger.info(f"Deleting routing rule {rule_id}")
        await self.rules.delete(rule_id)
        await self.rules.commit()

    async def update_priority(self, rule_id: int, priority: int) -> RoutingRule:
        return await self.update(rule_id, RoutingRuleUpdate(priority=priority))

    async def get_matches_by_rule(self, rule_id: int, limit: int = 50) -> list[RoutingMatch]:
        return await self.rules.matches_for_rule(rule_id, limit)

    def test_rule(self, conditions: dict, sample_alert: dict) -> RuleTestResult:
        """Preview a condition document against a sample alert.

        Uses the same evaluator as live routing and never touches the store.
        """
        try:
            alert = Alert.from_sample(sample_alert)
        except ValidationError as e:
            return RuleTestResult(matches=False, reason=f"Invalid sample alert: {e.error_count()} error(s)")
        outcome = self._evaluator.explain(alert, conditions)
        if outcome.matched:
            return RuleTestResult(matches=True, reason="All conditions matched")
        return RuleTestResult(
            matches=False,
            reason=f"One or more conditions did not match: {outcome.failed_clause}",
        )
