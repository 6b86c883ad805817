"""Database engine, session factory and routing tables."""

from datetime import datetime, timezone
from typing import Any, AsyncGenerator

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from app.config import get_settings


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class RoutingRuleRecord(Base):
    __tablename__ = "alert_routing_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255))
    priority: Mapped[int] = mapped_column(Integer, default=0, index=True)  # higher = evaluated first
    enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    team_id: Mapped[int] = mapped_column(Integer, index=True)
    # e.g. {"labels": {"env": "production"}, "source": "grafana", "severity": ["critical", "high"]}
    conditions: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    # e.g. {"routeToServiceId": 1, "setSeverity": "critical", "suppress": false, "addTags": ["db"]}
    actions: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, onupdate=_now)


class RoutingMatchRecord(Base):
    __tablename__ = "alert_routing_matches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    alert_id: Mapped[int] = mapped_column(Integer, index=True)
    rule_id: Mapped[int] = mapped_column(
        ForeignKey("alert_routing_rules.id", ondelete="CASCADE"), index=True
    )
    matched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)


engine = create_async_engine(get_settings().database_url, pool_pre_ping=True)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def init_models() -> None:
    """Create routing tables when the app manages its own schema."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        yield session
