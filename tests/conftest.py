"""Shared fixtures: an in-memory database per test and an HTTP client bound to it."""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import datetime, timezone
from typing import Any

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.db import Base, get_session
from app.main import app
from app.models.rules import RoutingAction, RoutingRule


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[httpx.AsyncClient]:
    async def _get_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def make_rule(
    rule_id: int = 1,
    priority: int = 0,
    conditions: dict[str, Any] | None = None,
    actions: dict[str, Any] | None = None,
    team_id: int = 1,
    name: str | None = None,
    enabled: bool = True,
) -> RoutingRule:
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    return RoutingRule(
        id=rule_id,
        team_id=team_id,
        name=name or f"rule-{rule_id}",
        priority=priority,
        enabled=enabled,
        conditions=conditions or {},
        actions=RoutingAction.model_validate(actions or {}),
        created_at=now,
        updated_at=now,
    )
