# =============================================================================
# app/routers/health.py - Health Check Endpoints
# =============================================================================
# /health answers without touching any dependency. /health/ready checks the
# three services the API cannot work without:
#   database  Supabase (PostgREST), via a one-row read of braiders
#   redis     realtime relay and Celery broker, via PING
#   stripe    payments, via an authenticated balance read
# =============================================================================

import logging
from typing import Callable

from fastapi import APIRouter
from pydantic import BaseModel

from app.config import settings
from app.websocket import broadcast, websocket_manager
from lib.stripe_client import StripeClient
from lib.supabase_client import SupabaseClient
from lib.utils import to_iso, utc_now

logger = logging.getLogger(__name__)

router = APIRouter()

API_VERSION = "1.0.0"


# =============================================================================
# Response Models
# =============================================================================

class HealthResponse(BaseModel):
    status: str
    timestamp: str
    environment: str
    version: str


class DependencyChecks(BaseModel):
    database: str
    redis: str
    stripe: str


class ReadinessResponse(BaseModel):
    """
    Readiness of the API and its dependencies.

    status is "ready" when database and redis are healthy. Stripe only
    degrades payments, so a Stripe failure is reported but not fatal.
    """
    status: str
    checks: DependencyChecks
    realtime_connections: int
    timestamp: str


# =============================================================================
# Checks
# =============================================================================

def _check(name: str, call: Callable[[], object]) -> str:
    try:
        call()
        return "healthy"
    except Exception as e:
        logger.warning(f"Readiness check {name} failed: {e}")
        return f"unhealthy: {str(e)[:50]}"


def _check_stripe() -> str:
    if not settings.STRIPE_SECRET_KEY:
        return "not configured"
    return _check("stripe", StripeClient.retrieve_balance)


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse(
        status="healthy",
        timestamp=to_iso(utc_now()),
        environment=settings.ENVIRONMENT,
        version=API_VERSION,
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check():
    checks = DependencyChecks(
        database=_check("database", lambda: SupabaseClient.fetch_one("braiders", columns="id")),
        redis=_check("redis", lambda: broadcast.get_redis_client().ping()),
        stripe=_check_stripe(),
    )
    critical_ok = checks.database == "healthy" and checks.redis == "healthy"

    return ReadinessResponse(
        status="ready" if critical_ok else "degraded",
        checks=checks,
        realtime_connections=websocket_manager.get_connection_count(),
        timestamp=to_iso(utc_now()),
    )


@router.get("/health/live")
async def liveness_check():
    return {"status": "alive", "timestamp": to_iso(utc_now())}
