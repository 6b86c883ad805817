"""Persistence for routing rules and their match audit log."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

from sqlalchemy import delete, desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import RoutingMatchRecord, RoutingRuleRecord
from app.errors import RuleNotFoundError, StoreUnavailableError
from app.models.rules import RoutingMatch, RoutingRule, RoutingRuleCreate, RoutingRuleUpdate

logger = logging.getLogger(__name__)

_RULE_ORDER = (
    desc(RoutingRuleRecord.priority),
    desc(RoutingRuleRecord.created_at),
    desc(RoutingRuleRecord.id),
)


class RuleStore:
    """Session-scoped access to routing rules.

    Writes are flushed, not committed; call :meth:`commit` to make them
    durable. Datastore errors surface as ``StoreUnavailableError``.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def _guard(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            logger.error(f"Rule store failure during {operation}: {e}")
            raise StoreUnavailableError(f"Rule store unavailable during {operation}") from e

    async def load_enabled_rules(self, team_id: int) -> list[RoutingRule]:
        """Enabled rules for a team, highest priority first, newest first on ties."""
        q = (
            select(RoutingRuleRecord)
            .where(RoutingRuleRecord.team_id == team_id, RoutingRuleRecord.enabled.is_(True))
            .order_by(*_RULE_ORDER)
        )
        async with self._guard("load enabled rules"):
            res = await self.session.execute(q)
            records = res.scalars().all()
        return [RoutingRule.model_validate(r) for r in records]

    async def list_for_team(self, team_id: int) -> list[RoutingRule]:
        q = select(RoutingRuleRecord).where(RoutingRuleRecord.team_id == team_id).order_by(*_RULE_ORDER)
        async with self._guard("list rules"):
            res = await self.session.execute(q)
            records = res.scalars().all()
        return [RoutingRule.model_validate(r) for r in records]

    async def _get_record(self, rule_id: int) -> RoutingRuleRecord:
        async with self._guard("get rule"):
            record = await self.session.get(RoutingRuleRecord, rule_id)
        if record is None:
            raise RuleNotFoundError(rule_id)
        return record

    async def get(self, rule_id: int) -> RoutingRule:
        return RoutingRule.model_validate(await self._get_record(rule_id))

    async def count(self) -> int:
        async with self._guard("count rules"):
            res = await self.session.execute(select(func.count()).select_from(RoutingRuleRecord))
            return res.scalar_one()

    async def create(self, payload: RoutingRuleCreate) -> RoutingRule:
        record = RoutingRuleRecord(
            name=payload.name,
            priority=payload.priority,
            enabled=payload.enabled,
            team_id=payload.team_id,
            conditions=payload.conditions or {},
            actions=payload.actions.to_document(),
        )
        async with self._guard("create rule"):
            self.session.add(record)
            await self.session.flush()
            await self.session.refresh(record)
        return RoutingRule.model_validate(record)

    async def update(self, rule_id: int, patch: RoutingRuleUpdate) -> RoutingRule:
        record = await self._get_record(rule_id)
        changes = patch.model_dump(exclude_unset=True, exclude={"actions"})
        for key, value in changes.items():
            if value is not None:
                setattr(record, key, value)
        if patch.actions is not None:
            record.actions = patch.actions.to_document()
        record.updated_at = datetime.now(timezone.utc)
        async with self._guard("update rule"):
            await self.session.flush()
            await self.session.refresh(record)
        return RoutingRule.model_validate(record)

    async def delete(self, rule_id: int) -> None:
        record = await self._get_record(rule_id)
        async with self._guard("delete rule"):
            # Not every backend enforces ON DELETE CASCADE
            await self.session.execute(
                delete(RoutingMatchRecord).where(RoutingMatchRecord.rule_id == rule_id)
            )
            await self.session.delete(record)
            await self.session.flush()

    async def record_match(self, alert_id: int, rule_id: int) -> RoutingMatch:
        record = RoutingMatchRecord(
            alert_id=alert_id,
            rule_id=rule_id,
            matched_at=datetime.now(timezone.utc),
        )
        async with self._guard("record match"):
            self.session.add(record)
            await self.session.flush()
        return RoutingMatch.model_validate(record)

    async def matches_for_rule(self, rule_id: int, limit: int = 50) -> list[RoutingMatch]:
        await self._get_record(rule_id)
        q = (
            select(RoutingMatchRecord)
            .where(RoutingMatchRecord.rule_id == rule_id)
            .order_by(desc(RoutingMatchRecord.matched_at), desc(RoutingMatchRecord.id))
            .limit(limit)
        )
        async with self._guard("list matches"):
            res = await self.session.execute(q)
            records = res.scalars().all()
        return [RoutingMatch.model_validate(r) for r in records]

    async def commit(self) -> None:
        async with self._guard("commit"):
            await self.session.commit()
