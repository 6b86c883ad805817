"""Alert routing engine - FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.db import SessionLocal, get_session, init_models
from app.errors import RuleNotFoundError, StoreUnavailableError
from app.models.alert import Alert
from app.models.rules import (
    EvaluationResult,
    PriorityUpdate,
    RoutingMatch,
    RoutingRule,
    RoutingRuleCreate,
    RoutingRuleUpdate,
    RuleTestRequest,
    RuleTestResult,
)
from app.router import AlertRouter, seed_rules
from app.service import RoutingRuleService
from app.store import RuleStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Configure logging level
    logging.getLogger().setLevel(settings.log_level.upper())

    if settings.create_tables:
        await init_models()

    # Seed rules from YAML, only into an empty store
    try:
        async with SessionLocal() as session:
            await seed_rules(RuleStore(session), settings.rules_seed_path)
    except FileNotFoundError:
        logger.info(f"No rules seed at {settings.rules_seed}, starting with stored rules only")
    except Exception as e:
        logger.exception(f"Failed to seed routing rules: {e}")

    logger.info("Alert routing engine started")

    yield

    logger.info("Alert routing engine stopped")


app = FastAPI(
    title="Alert Routing Engine",
    description="Priority-ordered, team-scoped routing rules for incoming alerts",
    version="0.1.0",
    lifespan=lifespan,
)

api = APIRouter(prefix="/alert-routing", tags=["alert-routing"])


@app.exception_handler(RuleNotFoundError)
async def rule_not_found_handler(request: Request, exc: RuleNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Routing rule store unavailable"},
    )


def svc(session: AsyncSession = Depends(get_session)) -> RoutingRuleService:
    return RoutingRuleService(session)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


@api.post("/rules", response_model=RoutingRule, status_code=status.HTTP_201_CREATED)
async def create_rule(payload: RoutingRuleCreate, service: RoutingRuleService = Depends(svc)):
    """Create a routing rule."""
    return await service.create(payload)


@api.get("/rules/team/{team_id}", response_model=list[RoutingRule])
async def list_rules_by_team(team_id: int, service: RoutingRuleService = Depends(svc)):
    """List routing rules for a team, in evaluation order."""
    return await service.find_by_team(team_id)


@api.post("/rules/test", response_model=RuleTestResult)
async def test_rule(payload: RuleTestRequest, service: RoutingRuleService = Depends(svc)):
    """Test conditions against a sample alert without saving anything."""
    return service.test_rule(payload.conditions, payload.sample_alert)


@api.get("/rules/{rule_id}", response_model=RoutingRule)
async def get_rule(rule_id: int, service: RoutingRuleService = Depends(svc)):
    return await service.find_by_id(rule_id)


@api.put("/rules/{rule_id}", response_model=RoutingRule)
async def update_rule(
    rule_id: int,
    payload: RoutingRuleUpdate,
    service: RoutingRuleService = Depends(svc),
):
    return await service.update(rule_id, payload)


@api.delete("/rules/{rule_id}")
async def delete_rule(rule_id: int, service: RoutingRuleService = Depends(svc)) -> dict[str, bool]:
    await service.delete(rule_id)
    return {"success": True}


@api.put("/rules/{rule_id}/priority", response_model=RoutingRule)
async def update_rule_priority(
    rule_id: int,
    payload: PriorityUpdate,
    service: RoutingRuleService = Depends(svc),
):
    return await service.update_priority(rule_id, payload.priority)


@api.get("/rules/{rule_id}/matches", response_model=list[RoutingMatch])
async def get_rule_matches(
    rule_id: int,
    limit: int | None = Query(default=None, ge=1, le=500),
    service: RoutingRuleService = Depends(svc),
):
    """Alerts a rule has matched, newest first."""
    return await service.get_matches_by_rule(rule_id, limit or get_settings().matches_default_limit)


@api.post("/evaluate/{team_id}", response_model=EvaluationResult)
async def evaluate_alert(
    team_id: int,
    alert: Alert,
    session: AsyncSession = Depends(get_session),
):
    """Evaluate a team's routing rules against an alert."""
    router = AlertRouter(
        RuleStore(session),
        stop_at_first_match=get_settings().routing_stop_at_first_match,
    )
    return await router.evaluate(alert, team_id)


app.include_router(api)


def run() -> None:
    """Run the application using uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False,
    )


if __name__ == "__main__":
    run()
