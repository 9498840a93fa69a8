# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the BraidMarket API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
# =============================================================================

import asyncio
import json
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.websocket import websocket_manager, WEBSOCKET_CHANNEL
from app.exceptions import (
    MarketplaceException,
    marketplace_exception_handler,
    validation_exception_handler,
)
from app.routers import (
    admin,
    bookings,
    braiders,
    combos,
    conversations,
    health,
    notifications,
    promotions,
    ratings,
    shop,
    webhooks,
)
from app.auth import routes as auth_routes
from app.websocket import routes as websocket_routes
from lib.stripe_client import StripeClientError
from lib.supabase_client import SupabaseClientError

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# Global flag for Redis listener task
_redis_listener_task = None
_shutdown_event = None


async def redis_pubsub_listener():
    """
    Background task that listens to Redis pub/sub and broadcasts to WebSockets.

    This bridges services and Celery workers with WebSocket clients by:
    1. Subscribing to the Redis channel where producers publish events
    2. Broadcasting received events to the room named in each message
    """
    import redis.asyncio as aioredis

    logger.info("Starting Redis pub/sub listener for WebSocket broadcasts")

    redis_client = None
    pubsub = None
    try:
        redis_client = aioredis.from_url(settings.REDIS_URL)
        pubsub = redis_client.pubsub()
        await pubsub.subscribe(WEBSOCKET_CHANNEL)

        async for message in pubsub.listen():
            if _shutdown_event and _shutdown_event.is_set():
                break

            if message["type"] == "message":
                try:
                    data = json.loads(message["data"])
                    room = data.pop("room", None)

                    if room:
                        sent = await websocket_manager.broadcast(room, data)
                        logger.debug(f"Broadcast {data.get('type')} to {room} ({sent} sockets)")

                except json.JSONDecodeError as e:
                    logger.warning(f"Invalid JSON in Redis message: {e}")
                except Exception as e:
                    logger.error(f"Error processing Redis message: {e}")

    except asyncio.CancelledError:
        logger.info("Redis pub/sub listener cancelled")
    except Exception as e:
        logger.error(f"Redis pub/sub listener error: {e}")
    finally:
        try:
            if pubsub is not None:
                await pubsub.unsubscribe(WEBSOCKET_CHANNEL)
            if redis_client is not None:
                await redis_client.close()
        except Exception as e:
            logger.debug(f"Redis listener cleanup failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Runs on startup and shutdown:
    - Startup: log configuration, start the Redis relay
    - Shutdown: stop the Redis relay
    """
    global _redis_listener_task, _shutdown_event

    # Startup
    logger.info(f"Starting BraidMarket API in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS origins: {settings.cors_origins_list}")

    _shutdown_event = asyncio.Event()
    _redis_listener_task = asyncio.create_task(redis_pubsub_listener())

    yield

    # Shutdown
    logger.info("Shutting down BraidMarket API")

    if _shutdown_event:
        _shutdown_event.set()
    if _redis_listener_task:
        _redis_listener_task.cancel()
        try:
            await _redis_listener_task
        except asyncio.CancelledError:
            pass


# Create FastAPI application
app = FastAPI(
    title="BraidMarket API",
    description="""
## Hair-Braiding Marketplace API

Clients find braiders near them, book services, chat and leave ratings.
Braiders manage their profile and buy promotions to be featured.

### Main Flows

1. **Discover** - `GET /api/v1/braiders/nearby?lat=..&lon=..`
2. **Book** - `POST /api/v1/bookings`
3. **Chat** - `POST /api/v1/conversations` then `WS /ws/chat?token=..`
4. **Rate** - `POST /api/v1/ratings`
5. **Promote** - `POST /api/v1/promotions/combos/{id}/purchase`

Payments go through Stripe Checkout and Subscriptions; Stripe reports back
through the webhook endpoints under `/api/v1/promotions`.
""",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Auth", "description": "Verify Supabase tokens"},
        {"name": "Braiders", "description": "Discovery, profiles, services and availability"},
        {"name": "Bookings", "description": "Book and manage appointments"},
        {"name": "Ratings", "description": "Rate braiders and report ratings"},
        {"name": "Notifications", "description": "Notification inbox and settings"},
        {"name": "Conversations", "description": "Client to braider chat"},
        {"name": "Promotions", "description": "Featured braiders and paid promotions"},
        {"name": "Combos", "description": "Promotion packages, coupons and subscriptions"},
        {"name": "Webhooks", "description": "Stripe webhooks"},
        {"name": "Shop", "description": "Hair products and orders"},
        {"name": "Admin", "description": "Administration"},
        {"name": "WebSocket", "description": "Realtime chat and notifications"},
        {"name": "Health", "description": "API health and readiness checks"},
    ],
)


# =============================================================================
# Middleware
# =============================================================================

# CORS middleware - allows cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(MarketplaceException)
async def handle_marketplace_exception(request: Request, exc: MarketplaceException):
    """Handle custom marketplace exceptions."""
    return await marketplace_exception_handler(request, exc)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    return await validation_exception_handler(request, exc)


@app.exception_handler(SupabaseClientError)
async def handle_database_error(request: Request, exc: SupabaseClientError):
    """Handle database errors that escaped the services."""
    logger.error(f"Database error on {request.url.path}: {exc}")
    content = {"detail": exc.message, "code": exc.code}
    if exc.suggestion:
        content["suggestion"] = exc.suggestion
    return JSONResponse(status_code=500, content=content)


@app.exception_handler(StripeClientError)
async def handle_stripe_error(request: Request, exc: StripeClientError):
    """Handle Stripe errors that escaped the services."""
    logger.error(f"Stripe error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=502,
        content={"detail": f"Payment provider error: {exc.message}", "code": "PAYMENT_PROVIDER_ERROR"},
    )


@app.exception_handler(Exception)
async def handle_general_exception(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }
    )


# =============================================================================
# Routers
# =============================================================================

# Authentication endpoints
app.include_router(
    auth_routes.router,
    prefix="/api/v1/auth",
    tags=["Auth"]
)

# Health check endpoints
app.include_router(
    health.router,
    prefix="/api/v1",
    tags=["Health"]
)

app.include_router(
    braiders.router,
    prefix="/api/v1/braiders",
    tags=["Braiders"]
)

app.include_router(
    bookings.router,
    prefix="/api/v1/bookings",
    tags=["Bookings"]
)

app.include_router(
    ratings.router,
    prefix="/api/v1/ratings",
    tags=["Ratings"]
)

app.include_router(
    notifications.router,
    prefix="/api/v1/notifications",
    tags=["Notifications"]
)

app.include_router(
    conversations.router,
    prefix="/api/v1/conversations",
    tags=["Conversations"]
)

# Stripe webhooks (before the combo routes that take a path id)
app.include_router(
    webhooks.router,
    prefix="/api/v1/promotions",
    tags=["Webhooks"]
)

app.include_router(
    combos.router,
    prefix="/api/v1/promotions/combos",
    tags=["Combos"]
)

app.include_router(
    combos.subscriptions_router,
    prefix="/api/v1/promotions/subscriptions",
    tags=["Combos"]
)

app.include_router(
    promotions.router,
    prefix="/api/v1/promotions",
    tags=["Promotions"]
)

app.include_router(
    shop.router,
    prefix="/api/v1",
    tags=["Shop"]
)

app.include_router(
    admin.router,
    prefix="/api/v1/admin",
    tags=["Admin"]
)

# WebSocket endpoints (Realtime chat)
app.include_router(
    websocket_routes.router,
    tags=["WebSocket"]
)


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - returns API info.
    """
    return {
        "name": "BraidMarket API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/v1/health",
    }
