# =============================================================================
# app/routers/admin.py - Admin Endpoints
# =============================================================================
# Every route here requires the admin role:
# - Braider approval
# - Commission dashboard and payment settlement
# - Promotion review, dashboard and revenue
# - Product catalog and order fulfilment
# =============================================================================

from typing import Any

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from app.dependencies import AdminUser
from app.exceptions import ValidationFailedError
from core.models.braider import BraiderStatusUpdate
from core.models.commerce import OrderStatusUpdate, ProductCreate, ProductUpdate
from core.models.promotion import PromotionReview
from core.services.braider_service import BraiderService
from core.services.commission_service import CommissionService
from core.services.order_service import OrderService
from core.services.promotion_service import PromotionService
from core.services.promotion_stats_service import PromotionStatsService

router = APIRouter()


class CommissionAction(BaseModel):
    """Body of POST /admin/commissions."""
    action: str
    braider_ids: list[str] = Field(default_factory=list)
    transaction_ids: list[str] = Field(default_factory=list)


# =============================================================================
# Braiders
# =============================================================================

@router.put("/braiders/{braider_id}/status")
async def set_braider_status(braider_id: str, payload: BraiderStatusUpdate, admin: AdminUser):
    """
    Approve, reject or reset a braider application.
    """
    result = BraiderService.set_status(admin.id, braider_id, payload.status, reason=payload.reason)
    return {"success": True, **result}


# =============================================================================
# Commissions
# =============================================================================

@router.get("/commissions")
async def commission_report(admin: AdminUser):
    return CommissionService.admin_commission_report()


@router.post("/commissions")
async def commission_action(payload: CommissionAction, admin: AdminUser) -> dict[str, Any]:
    """
    Run a commission action. Only "process_payments" is supported.
    """
    if payload.action != "process_payments":
        raise ValidationFailedError("Invalid action", field="action")

    processed = CommissionService.process_payments(payload.braider_ids, payload.transaction_ids)
    return {
        "success": True,
        "message": f"{processed} payments processed",
        "processed": processed,
    }


# =============================================================================
# Promotions
# =============================================================================

@router.get("/promotions/stats")
async def promotion_stats(admin: AdminUser):
    return PromotionStatsService.admin_stats()


@router.get("/promotions/revenue")
async def promotion_revenue(admin: AdminUser):
    """
    Revenue of paid promotions: totals, rolling periods and growth.
    """
    return PromotionStatsService.revenue_report()


@router.put("/promotions/{promotion_id}/review")
async def review_promotion(promotion_id: str, payload: PromotionReview, admin: AdminUser):
    promotion = PromotionService.admin_review(admin.id, promotion_id, payload.status, notes=payload.notes)
    return {"success": True, "promotion": promotion}


# =============================================================================
# Products & Orders
# =============================================================================

@router.post("/products", status_code=status.HTTP_201_CREATED)
async def create_product(payload: ProductCreate, admin: AdminUser):
    return {"success": True, "product": OrderService.create_product(payload)}


@router.put("/products/{product_id}")
async def update_product(product_id: str, payload: ProductUpdate, admin: AdminUser):
    return {"success": True, "product": OrderService.update_product(product_id, payload)}


@router.patch("/orders/{order_id}/status")
async def update_order_status(order_id: str, payload: OrderStatusUpdate, admin: AdminUser):
    """
    Move an order along pending -> processing -> shipped -> delivered.
    """
    order = OrderService.update_order_status(admin.id, order_id, payload.status)
    return {"success": True, "order": order}
