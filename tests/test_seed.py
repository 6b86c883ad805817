"""Tests for loading and seeding routing rules from YAML."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.router import load_rules_config, seed_rules
from app.store import RuleStore

RULES_YAML = """
rules:
  - teamId: 1
    name: Production database
    priority: 100
    conditions:
      severity: [critical]
      labels:
        env: production
    actions:
      routeToServiceId: 200
  - teamId: 1
    name: Catch-all
    conditions: {}
    actions:
      set_severity: medium
"""


@pytest.fixture
def rules_file(tmp_path: Path) -> Path:
    path = tmp_path / "rules.yaml"
    path.write_text(RULES_YAML, encoding="utf-8")
    return path


class TestLoadRulesConfig:
    def test_parses_rules(self, rules_file: Path) -> None:
        rules = load_rules_config(rules_file)
        assert [r.name for r in rules] == ["Production database", "Catch-all"]
        assert rules[0].actions.route_to_service_id == 200
        assert rules[1].actions.set_severity == "medium"
        assert rules[1].priority == 0
        assert rules[1].enabled is True

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_rules_config(tmp_path / "absent.yaml")

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_rules_config(path) == []

    def test_invalid_rule(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("rules:\n  - name: no team\n", encoding="utf-8")
        with pytest.raises(ValidationError):
            load_rules_config(path)


class TestSeedRules:
    async def test_seeds_empty_store(self, session: AsyncSession, rules_file: Path) -> None:
        store = RuleStore(session)
        assert await seed_rules(store, rules_file) == 2

        rules = await store.load_enabled_rules(1)
        assert [r.name for r in rules] == ["Production database", "Catch-all"]

    async def test_skips_populated_store(self, session: AsyncSession, rules_file: Path) -> None:
        store = RuleStore(session)
        await seed_rules(store, rules_file)
        assert await seed_rules(store, rules_file) == 0
        assert await store.count() == 2
