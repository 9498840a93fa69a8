# =============================================================================
# core/models/promotion.py - Promotion, Combo & Coupon Schemas
# =============================================================================
# These models define the paid-visibility products braiders can buy:
# - Promotions: profile_highlight, hero_banner, combo_package
# - Combos: bundles of promotion days sold one-off or as a subscription
# - Coupons: discounts applied at combo purchase
#
# Internal results (CouponResult, ComboCalculation) are returned by the
# combo service and serialized directly in API responses.
# =============================================================================

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator


# =============================================================================
# Enums
# =============================================================================

class PromotionType(str, Enum):
    PROFILE_HIGHLIGHT = "profile_highlight"
    HERO_BANNER = "hero_banner"
    COMBO_PACKAGE = "combo_package"


class PromotionStatus(str, Enum):
    """
    Promotion lifecycle.

    Flow: draft -> pending -> active -> expired
          pending -> rejected (admin review)
    """
    DRAFT = "draft"
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class SubscriptionStatus(str, Enum):
    TRIAL = "trial"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELLED = "cancelled"
    SUSPENDED = "suspended"
    EXPIRED = "expired"


class BillingCycle(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class PaymentMethod(str, Enum):
    """How a combo is paid: once by card, or as a recurring subscription."""
    CARD = "card"
    SUBSCRIPTION = "subscription"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    FREE_TRIAL = "free_trial"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


# =============================================================================
# Requests
# =============================================================================

class ComboPurchaseRequest(BaseModel):
    """
    Buy a combo package.

    Example:
        {"coupon_code": "WELCOME10", "payment_method": "subscription", "billing_cycle": "yearly"}
    """
    coupon_code: str | None = Field(default=None, max_length=64)
    payment_method: PaymentMethod = PaymentMethod.CARD
    billing_cycle: BillingCycle = BillingCycle.MONTHLY


class ComboCalculateRequest(BaseModel):
    coupon_code: str | None = Field(default=None, max_length=64)


class CouponValidateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)
    amount: float = Field(..., ge=0)
    application_type: str = Field(default="combo", pattern=r"^(combo|package|subscription)$")


class PromotionCheckoutRequest(BaseModel):
    """
    Pay for a single promotion via Stripe Checkout.

    The promotion is created only after payment, with status pending
    until an admin approves it.
    """
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    type: PromotionType
    price: float
    start_date: date
    end_date: date
    content_data: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_window(self) -> "PromotionCheckoutRequest":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class PromotionTrackRequest(BaseModel):
    promotion_id: str
    action: str


class PromotionReview(BaseModel):
    """Admin decision on a pending promotion."""
    status: PromotionStatus
    notes: str | None = Field(default=None, max_length=1000)


class PromotionExtendRequest(BaseModel):
    """Push back the end date of one of the user's running promotions."""
    promotion_id: str
    additional_days: int = Field(..., ge=1, le=365)
    package_id: str | None = None


# =============================================================================
# Service Results
# =============================================================================

class CouponResult(BaseModel):
    """Outcome of coupon validation; amounts are unchanged when invalid."""
    valid: bool
    coupon: dict[str, Any] | None = None
    discount_amount: float = 0.0
    final_amount: float
    error: str | None = None


class PromotionToCreate(BaseModel):
    type: PromotionType
    duration: int
    start_date: datetime
    end_date: datetime


class ComboCalculation(BaseModel):
    """Price breakdown for a combo purchase."""
    combo: dict[str, Any]
    original_price: float
    final_price: float
    discount_amount: float
    coupon_discount: float | None = None
    coupon: dict[str, Any] | None = None
    total_savings: float
    promotions_to_create: list[PromotionToCreate]


class ComboPromotionsResult(BaseModel):
    success: bool
    promotion_ids: list[str] = Field(default_factory=list)
    error: str | None = None
