# =============================================================================
# core/services/combo_service.py - Combos, Coupons & Pricing
# =============================================================================
# Combos bundle promotion days (profile highlight, hero banner) at a
# discounted price. This service owns the pricing rules:
# - coupon validation and discount calculation
# - combo price breakdowns (combo discount + coupon discount)
# - subscription cycle pricing and period arithmetic
# - creating the promotions a paid combo grants
#
# Stripe and persistence of purchases live in billing_service.py.
# =============================================================================

import logging
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from core.models.promotion import (
    BillingCycle,
    ComboCalculation,
    ComboPromotionsResult,
    CouponResult,
    DiscountType,
    PromotionStatus,
    PromotionToCreate,
    PromotionType,
    TransactionStatus,
)
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import add_months, parse_datetime, round_money, to_iso, utc_now

logger = logging.getLogger(__name__)


# Multiplier applied to the monthly price, per billing cycle
CYCLE_MULTIPLIERS: dict[str, float] = {
    BillingCycle.MONTHLY.value: 1.0,
    BillingCycle.QUARTERLY.value: 3 * 0.85,
    BillingCycle.YEARLY.value: 12 * 0.75,
}

# Months covered by one billing period
CYCLE_MONTHS: dict[str, int] = {
    BillingCycle.MONTHLY.value: 1,
    BillingCycle.QUARTERLY.value: 3,
    BillingCycle.YEARLY.value: 12,
}

# Stripe recurring (interval, interval_count)
CYCLE_INTERVALS: dict[str, tuple[str, int]] = {
    BillingCycle.MONTHLY.value: ("month", 1),
    BillingCycle.QUARTERLY.value: ("month", 3),
    BillingCycle.YEARLY.value: ("year", 1),
}


def _cycle_key(cycle: BillingCycle | str) -> str:
    return cycle.value if isinstance(cycle, BillingCycle) else str(cycle)


def cycle_price(final_price: float, cycle: BillingCycle | str) -> float:
    """
    Price charged per billing period.

    Quarterly gets 15% off three months, yearly 25% off twelve.
    Unknown cycles are charged the monthly price.
    """
    return round_money(final_price * CYCLE_MULTIPLIERS.get(_cycle_key(cycle), 1.0))


def subscription_period_end(start: datetime, cycle: BillingCycle | str) -> datetime:
    return add_months(start, CYCLE_MONTHS.get(_cycle_key(cycle), 1))


def stripe_interval(cycle: BillingCycle | str) -> tuple[str, int]:
    return CYCLE_INTERVALS.get(_cycle_key(cycle), ("month", 1))


def subscription_savings(final_price: float, cycle: BillingCycle | str) -> float:
    """Savings over twelve monthly payments; zero for monthly billing."""
    if _cycle_key(cycle) == BillingCycle.MONTHLY.value:
        return 0.0
    return round_money(final_price * 12 - cycle_price(final_price, cycle))


def _invalid(amount: float, error: str) -> CouponResult:
    return CouponResult(valid=False, discount_amount=0.0, final_amount=amount, error=error)


class ComboService:
    """
    Service for promotion combos, coupons and templates.
    """

    # -------------------------------------------------------------------------
    # Combos
    # -------------------------------------------------------------------------

    @staticmethod
    def get_available_combos(include_inactive: bool = False, featured_only: bool = False) -> list[dict[str, Any]]:
        filters: dict[str, Any] = {}
        if not include_inactive:
            filters["is_active"] = True
        if featured_only:
            filters["is_featured"] = True
        return SupabaseClient.fetch_many("promotion_combos", order_by="sort_order", **filters)

    @staticmethod
    def get_combo(combo_id: str) -> dict[str, Any] | None:
        """Active combo by id, or None."""
        return SupabaseClient.fetch_one("promotion_combos", id=combo_id, is_active=True)

    # -------------------------------------------------------------------------
    # Coupons
    # -------------------------------------------------------------------------

    @staticmethod
    def validate_coupon(
        code: str,
        user_id: UUID | str,
        amount: float,
        application_type: str = "combo",
        now: datetime | None = None,
    ) -> CouponResult:
        """
        Validate a coupon for a purchase and compute the discount.

        Rules are checked in order and the first failure is returned with
        the amount unchanged.
        """
        now = now or utc_now()
        user_id = str(user_id)

        coupon = SupabaseClient.fetch_one("promotion_coupons", code=code.strip().upper(), is_active=True)
        if not coupon:
            return _invalid(amount, "Coupon not found or inactive")

        if application_type not in (coupon.get("applicable_to") or []):
            return _invalid(amount, "Coupon does not apply to this purchase")

        valid_from = parse_datetime(coupon.get("valid_from"))
        if valid_from and valid_from > now:
            return _invalid(amount, "Coupon is not valid yet")

        valid_until = parse_datetime(coupon.get("valid_until"))
        if valid_until and valid_until < now:
            return _invalid(amount, "Coupon has expired")

        usage_limit = coupon.get("usage_limit")
        if usage_limit and (coupon.get("usage_count") or 0) >= usage_limit:
            return _invalid(amount, "Coupon usage limit reached")

        per_user = coupon.get("usage_limit_per_user")
        if per_user is not None:
            uses = SupabaseClient.count("promotion_coupon_uses", coupon_id=coupon["id"], user_id=user_id)
            if uses >= per_user:
                return _invalid(amount, "You have already used this coupon the maximum number of times")

        min_amount = coupon.get("min_purchase_amount")
        if min_amount and amount < float(min_amount):
            return _invalid(amount, f"Minimum purchase of €{min_amount} not reached")

        if coupon.get("first_time_users_only"):
            previous = SupabaseClient.fetch_one(
                "promotion_transactions",
                columns="id",
                user_id=user_id,
                status=TransactionStatus.COMPLETED.value,
            )
            if previous:
                return _invalid(amount, "Coupon is only valid for first-time buyers")

        value = float(coupon.get("discount_value") or 0)
        discount_type = coupon.get("discount_type")

        if discount_type == DiscountType.PERCENTAGE.value:
            discount = amount * value / 100
            cap = coupon.get("max_discount_amount")
            if cap and discount > float(cap):
                discount = float(cap)
        elif discount_type == DiscountType.FIXED_AMOUNT.value:
            discount = min(value, amount)
        else:
            # free_trial is honoured by the subscription, not the price
            discount = 0.0

        return CouponResult(
            valid=True,
            coupon=coupon,
            discount_amount=round_money(discount),
            final_amount=round_money(max(0.0, amount - discount)),
        )

    @staticmethod
    def record_coupon_use(
        coupon_id: str,
        user_id: UUID | str,
        original_amount: float,
        discount_amount: float,
        final_amount: float,
        transaction_id: str | None = None,
        subscription_id: str | None = None,
    ) -> dict[str, Any]:
        """Store a coupon use and bump the coupon's usage counter."""
        use = SupabaseClient.insert_one("promotion_coupon_uses", {
            "coupon_id": coupon_id,
            "user_id": str(user_id),
            "original_amount": original_amount,
            "discount_amount": discount_amount,
            "final_amount": final_amount,
            "transaction_id": transaction_id,
            "subscription_id": subscription_id,
            "usage_metadata": {"timestamp": to_iso(utc_now())},
        })

        try:
            SupabaseClient.rpc("increment_coupon_usage", {"coupon_id": coupon_id})
        except SupabaseClientError as e:
            logger.error(f"Failed to increment usage of coupon {coupon_id}: {e}")

        return use

    # -------------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------------

    @staticmethod
    def _promotions_for(combo: dict[str, Any], start: datetime) -> list[PromotionToCreate]:
        grants = [
            (PromotionType.PROFILE_HIGHLIGHT, combo.get("profile_highlight_days") or 0),
            (PromotionType.HERO_BANNER, combo.get("hero_banner_days") or 0),
        ]
        return [
            PromotionToCreate(
                type=promotion_type,
                duration=days,
                start_date=start,
                end_date=start + timedelta(days=days),
            )
            for promotion_type, days in grants
            if days > 0
        ]

    @staticmethod
    def calculate_combo_price(
        combo_id: str,
        coupon_code: str | None = None,
        user_id: UUID | str | None = None,
        now: datetime | None = None,
    ) -> ComboCalculation | None:
        """
        Price breakdown for a combo, or None if the combo isn't available.

        An invalid coupon is ignored rather than failing the calculation.
        """
        now = now or utc_now()

        combo = ComboService.get_combo(combo_id)
        if not combo:
            return None

        regular_price = float(combo.get("regular_price") or 0)
        combo_price = float(combo.get("combo_price") or 0)
        combo_discount = round_money(regular_price - combo_price)

        final_price = combo_price
        coupon_discount = 0.0
        coupon = None

        if coupon_code and user_id:
            result = ComboService.validate_coupon(coupon_code, user_id, combo_price, "combo", now=now)
            if result.valid:
                coupon_discount = result.discount_amount
                final_price = result.final_amount
                coupon = result.coupon

        return ComboCalculation(
            combo=combo,
            original_price=regular_price,
            final_price=round_money(final_price),
            discount_amount=combo_discount,
            coupon_discount=coupon_discount,
            coupon=coupon,
            total_savings=round_money(combo_discount + coupon_discount),
            promotions_to_create=ComboService._promotions_for(combo, now),
        )

    # -------------------------------------------------------------------------
    # Fulfilment
    # -------------------------------------------------------------------------

    @staticmethod
    def create_combo_promotions(
        user_id: UUID | str,
        combo_id: str,
        transaction_id: str | None = None,
        now: datetime | None = None,
    ) -> ComboPromotionsResult:
        """
        Create the promotions a paid combo grants.

        The profile highlight goes live immediately; the hero banner waits
        in pending until the braider supplies its content.
        """
        now = now or utc_now()
        user_id = str(user_id)

        combo = ComboService.get_combo(combo_id)
        if not combo:
            return ComboPromotionsResult(success=False, error="Combo not found")

        name = combo.get("name") or "Combo"
        metadata = {"combo_id": combo_id, "transaction_id": transaction_id, "created_via": "combo_purchase"}
        labels = {
            PromotionType.PROFILE_HIGHLIGHT: ("Destaque de Perfil", "Destaque", PromotionStatus.ACTIVE),
            PromotionType.HERO_BANNER: ("Banner Principal", "Banner", PromotionStatus.PENDING),
        }

        promotion_ids: list[str] = []
        for grant in ComboService._promotions_for(combo, now):
            title, noun, status = labels[grant.type]
            content_data: dict[str, Any] = {"source": "combo", "combo_id": combo_id, "combo_name": name}
            if grant.type == PromotionType.HERO_BANNER:
                content_data["needs_content"] = True

            try:
                promotion = SupabaseClient.insert_one("promotions", {
                    "user_id": user_id,
                    "type": grant.type.value,
                    "title": f"{name} - {title}",
                    "description": f"{noun} por {grant.duration} dias via {name}",
                    "start_date": to_iso(grant.start_date),
                    "end_date": to_iso(grant.end_date),
                    "status": status.value,
                    "is_paid": True,
                    "price": 0,
                    "content_data": content_data,
                    "metadata": metadata,
                })
            except SupabaseClientError as e:
                logger.error(f"Failed to create {grant.type.value} promotion for combo {combo_id}: {e}")
                continue
            promotion_ids.append(promotion["id"])

        logger.info(f"Created {len(promotion_ids)} promotions from combo {combo_id} for user {user_id}")
        return ComboPromotionsResult(success=bool(promotion_ids), promotion_ids=promotion_ids)

    # -------------------------------------------------------------------------
    # Templates
    # -------------------------------------------------------------------------

    @staticmethod
    def get_promotion_templates(
        promotion_type: str | None = None,
        category: str | None = None,
        premium_only: bool | None = None,
    ) -> list[dict[str, Any]]:
        filters: dict[str, Any] = {"is_active": True}
        if promotion_type:
            filters["promotion_type"] = promotion_type
        if category:
            filters["category"] = category
        if premium_only is not None:
            filters["is_premium"] = premium_only
        return SupabaseClient.fetch_many(
            "promotion_templates",
            order_by="usage_count",
            descending=True,
            **filters,
        )
