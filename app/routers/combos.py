# =============================================================================
# app/routers/combos.py - Combo, Coupon & Subscription Endpoints
# =============================================================================
# Combos are promotion bundles braiders buy once or as a subscription.
# Mounted at /api/v1/promotions/combos (combos) and
# /api/v1/promotions/subscriptions (subscriptions).
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Query

from app.auth import resolve_role
from app.dependencies import CurrentUser, OptionalUser
from app.exceptions import NotFoundError
from core.models.promotion import ComboCalculateRequest, ComboPurchaseRequest, CouponValidateRequest
from core.roles import UserRole
from core.services.billing_service import BillingService
from core.services.combo_service import ComboService

router = APIRouter()
subscriptions_router = APIRouter()


# =============================================================================
# Combos
# =============================================================================

@router.get("")
async def list_combos(
    user: OptionalUser,
    include_inactive: Annotated[bool, Query()] = False,
    featured_only: Annotated[bool, Query()] = False,
):
    """
    Available combos ordered for display. Inactive ones are admin only.
    """
    show_inactive = include_inactive and user is not None and resolve_role(user) == UserRole.ADMIN.value
    combos = ComboService.get_available_combos(include_inactive=show_inactive, featured_only=featured_only)
    return {"combos": combos, "total": len(combos)}


@router.get("/templates")
async def list_templates(
    promotion_type: Annotated[str | None, Query()] = None,
    category: Annotated[str | None, Query()] = None,
    premium_only: Annotated[bool | None, Query()] = None,
):
    templates = ComboService.get_promotion_templates(promotion_type, category, premium_only)
    return {"templates": templates}


@router.post("/coupons/validate")
async def validate_coupon(payload: CouponValidateRequest, user: CurrentUser):
    """
    Check a coupon against an amount without using it.
    """
    return ComboService.validate_coupon(payload.code, user.id, payload.amount, payload.application_type)


@router.get("/{combo_id}")
async def get_combo(combo_id: str):
    combo = ComboService.get_combo(combo_id)
    if not combo:
        raise NotFoundError("combo", combo_id)
    return combo


@router.post("/{combo_id}/calculate")
async def calculate_combo(combo_id: str, payload: ComboCalculateRequest, user: OptionalUser):
    """
    Price breakdown for a combo. A coupon only applies for signed-in users.
    """
    calculation = ComboService.calculate_combo_price(
        combo_id,
        coupon_code=payload.coupon_code,
        user_id=user.id if user else None,
    )
    if not calculation:
        raise NotFoundError("combo", combo_id)
    return calculation


@router.post("/{combo_id}/purchase")
async def purchase_combo(combo_id: str, payload: ComboPurchaseRequest, user: CurrentUser):
    """
    Buy a combo.

    payment_method=card returns a Checkout URL; payment_method=subscription
    returns the client secret of the first invoice.
    """
    result = BillingService.purchase_combo(
        user.id,
        combo_id,
        coupon_code=payload.coupon_code,
        payment_method=payload.payment_method,
        billing_cycle=payload.billing_cycle,
        email=user.email,
    )
    return {"success": True, **result}


# =============================================================================
# Subscriptions
# =============================================================================

@subscriptions_router.get("")
async def list_subscriptions(
    user: CurrentUser,
    all_users: Annotated[bool, Query(alias="admin")] = False,
):
    """
    The user's combo subscriptions. Admins may pass admin=true to see all.
    """
    if all_users and resolve_role(user) == UserRole.ADMIN.value:
        subscriptions = BillingService.list_subscriptions()
    else:
        subscriptions = BillingService.list_subscriptions(user.id)
    return {"subscriptions": subscriptions, "total": len(subscriptions)}


@subscriptions_router.post("/{subscription_id}/cancel")
async def cancel_subscription(subscription_id: str, user: CurrentUser):
    """
    Cancel at the end of the current period.
    """
    subscription = BillingService.cancel_subscription(user.id, subscription_id)
    return {
        "success": True,
        "message": "Assinatura cancelada com sucesso. Permanecerá ativa até o final do período atual.",
        "subscription": subscription,
    }
