# =============================================================================
# app/routers/promotions.py - Promotion Endpoints
# =============================================================================
# - Public display: promoted braiders, hero banner, click tracking
# - Paid single promotions: Stripe Checkout for braiders
# - The braider's own promotions, extensions and analytics
# - Notification processing trigger for the scheduler
# =============================================================================

import secrets
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from app.auth import resolve_role
from app.config import settings
from app.dependencies import BraiderUser, CurrentUser, OptionalUser
from app.exceptions import ValidationFailedError
from core.models.promotion import PromotionCheckoutRequest, PromotionExtendRequest, PromotionTrackRequest
from core.roles import UserRole
from core.services.billing_service import BillingService
from core.services.notification_service import NotificationService
from core.services.promotion_service import PromotionService
from core.services.promotion_stats_service import PromotionStatsService

router = APIRouter()


async def require_cron_or_admin(
    user: OptionalUser,
    x_cron_secret: Annotated[str | None, Header()] = None,
) -> None:
    """Allow the scheduler (X-Cron-Secret) or an admin."""
    if settings.CRON_SECRET and x_cron_secret and secrets.compare_digest(x_cron_secret, settings.CRON_SECRET):
        return
    if user and resolve_role(user) == UserRole.ADMIN.value:
        return
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
    )


# =============================================================================
# Public
# =============================================================================

@router.get("/public")
async def public_promotions(
    promotion_type: Annotated[str, Query(alias="type", description="hero | braiders")] = "braiders",
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    location: Annotated[str | None, Query()] = None,
    specialty: Annotated[str | None, Query()] = None,
):
    """
    Promotions shown on public pages.

    - type=hero: the active hero banner (or null)
    - type=braiders: promoted braiders first, then regular ones
    """
    if promotion_type == "hero":
        return {"success": True, "data": PromotionService.get_active_hero_banner()}
    if promotion_type == "braiders":
        return {
            "success": True,
            "data": PromotionService.get_braiders_with_promotions(
                limit=limit,
                location=location,
                specialty=specialty,
            ),
        }
    raise ValidationFailedError("Invalid type. Use 'hero' or 'braiders'", field="type")


@router.post("/public")
async def track_promotion(payload: PromotionTrackRequest):
    """
    Track an interaction with a promotion. Only "click" is supported.
    """
    if payload.action != "click":
        raise ValidationFailedError("Invalid action", field="action")

    PromotionService.track_click(payload.promotion_id)
    return {"success": True}


# =============================================================================
# Paid promotions
# =============================================================================

@router.post("/checkout")
async def create_checkout(payload: PromotionCheckoutRequest, user: BraiderUser):
    """
    Start a Stripe Checkout for a single promotion. Braiders only.

    The promotion is created as pending once Stripe confirms payment.
    """
    result = BillingService.create_promotion_checkout(user.id, user.email, payload)
    return {"success": True, **result}


@router.get("/checkout")
async def checkout_status(
    user: CurrentUser,
    session_id: Annotated[str, Query(min_length=1)],
):
    """
    Status of a promotion checkout opened by the current user.
    """
    return {"success": True, "session": BillingService.get_checkout_status(user.id, session_id)}


@router.get("/mine")
async def my_promotions(
    user: CurrentUser,
    promotion_status: Annotated[str | None, Query(alias="status")] = None,
):
    promotions = PromotionService.list_user_promotions(user.id, status=promotion_status)
    return {"promotions": promotions, "total": len(promotions)}


@router.post("/extend")
async def extend_promotion(payload: PromotionExtendRequest, user: CurrentUser):
    """
    Add days to one of the current user's active promotions.
    """
    promotion = PromotionService.extend_promotion(user.id, payload)
    return {
        "success": True,
        "promotion": promotion,
        "message": f"Promoção estendida por {payload.additional_days} dias",
    }


@router.get("/analytics")
async def promotion_analytics(user: CurrentUser):
    """
    View, click and contact totals of the user's promotions. Admins get the
    totals of every promotion.
    """
    summary = PromotionStatsService.analytics_summary(
        user.id,
        is_admin=resolve_role(user) == UserRole.ADMIN.value,
    )
    return {"success": True, "summary": summary}


# =============================================================================
# Scheduler
# =============================================================================

@router.get("/notifications/process", dependencies=[Depends(require_cron_or_admin)])
async def process_notifications():
    """
    Run the promotion notification job synchronously.

    Authorized with the X-Cron-Secret header or an admin token.
    """
    results = NotificationService.process_all()
    return {"success": True, "results": results, "total": sum(results.values())}
