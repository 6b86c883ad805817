"""Alert routing based on team routing rules."""

import logging
from pathlib import Path

import yaml

from app.evaluator import ConditionEvaluator
from app.models.alert import Alert
from app.models.rules import EvaluationResult, RoutingAction, RoutingRule, RoutingRuleCreate
from app.store import RuleStore

logger = logging.getLogger(__name__)


def load_rules_config(config_path: str | Path) -> list[RoutingRuleCreate]:
    """Load seed routing rules from a YAML file."""
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Rules config not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    return [RoutingRuleCreate.model_validate(rule) for rule in data.get("rules", [])]


async def seed_rules(store: RuleStore, config_path: str | Path) -> int:
    """Create the seed rules when the store holds no rules yet."""
    if await store.count() > 0:
        logger.info("Rule store already populated, skipping seed")
        return 0

    payloads = load_rules_config(config_path)
    for payload in payloads:
        await store.create(payload)
    await store.commit()
    logger.info(f"Seeded {len(payloads)} routing rule(s) from {config_path}")
    return len(payloads)


class AlertRouter:
    """Picks the routing rule(s) that apply to an alert.

    Rules are tried in store order (priority, then newest). By default the
    first match wins; with ``stop_at_first_match=False`` every matching rule
    is returned in order. Each match is written to the audit log.
    """

    def __init__(
        self,
        store: RuleStore,
        stop_at_first_match: bool = True,
        logger: logging.Logger | None = None,
        evaluator: ConditionEvaluator | None = None,
    ):
        self._store = store
        self._stop_at_first_match = stop_at_first_match
        self._logger = logger or logging.getLogger(__name__)
        self._evaluator = evaluator or ConditionEvaluator(self._logger)

    @property
    def stop_at_first_match(self) -> bool:
        return self._stop_at_first_match

    def find_matching_rules(self, alert: Alert, rules: list[RoutingRule]) -> list[RoutingRule]:
        """Return the rules that match, honouring the stop-at-first-match policy."""
        matched: list[RoutingRule] = []
        for rule in rules:
            if self._evaluator.matches(alert, rule.condition_set):
                self._logger.info(
                    f"Alert {alert.id} matched rule {rule.id} '{rule.name}' (priority {rule.priority})"
                )
                matched.append(rule)
                if self._stop_at_first_match:
                    break
        return matched

    async def evaluate(self, alert: Alert, team_id: int) -> EvaluationResult:
        """Evaluate a team's enabled rules against an alert."""
        self._logger.debug(f"Evaluating routing rules for alert {alert.id} (team {team_id})")

        rules = await self._store.load_enabled_rules(team_id)
        matched_rules = self.find_matching_rules(alert, rules)

        if not matched_rules:
            self._logger.info(f"No routing rule matched alert {alert.id} for team {team_id}")
            return EvaluationResult(matched=False)

        actions: list[RoutingAction] = []
        for rule in matched_rules:
            actions.append(rule.actions)
            await self._store.record_match(alert.id, rule.id)
        await self._store.commit()

        return EvaluationResult(matched=True, matched_rules=matched_rules, actions=actions)
