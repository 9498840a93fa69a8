# =============================================================================
# core/services/billing_service.py - Promotion Purchases & Billing
# =============================================================================
# Orchestrates paid promotions with Stripe:
# - Combo purchase, one-time (Checkout Session) or recurring (Subscription)
# - Subscription cancellation at period end
# - Single-promotion Checkout Sessions for braiders
#
# Nothing is granted here. Promotions are created by the webhook handlers
# (webhook_service.py) once Stripe confirms payment.
#
# Stripe failures surface as PaymentProviderError (HTTP 502).
# =============================================================================

import json
import logging
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from app.config import settings
from app.exceptions import NotFoundError, PaymentProviderError, ValidationFailedError
from core.models.promotion import (
    BillingCycle,
    ComboCalculation,
    PaymentMethod,
    PromotionCheckoutRequest,
    SubscriptionStatus,
    TransactionStatus,
)
from core.services.combo_service import (
    ComboService,
    cycle_price,
    stripe_interval,
    subscription_period_end,
    subscription_savings,
)
from lib.stripe_client import StripeClient, StripeClientError
from lib.supabase_client import SupabaseClient
from lib.utils import to_cents, to_iso, utc_now

logger = logging.getLogger(__name__)


def _provider_error(e: StripeClientError) -> PaymentProviderError:
    return PaymentProviderError(e.message, details={"code": e.code, **e.details})


class BillingService:
    """
    Service for promotion payments and subscriptions.
    """

    # -------------------------------------------------------------------------
    # Customers
    # -------------------------------------------------------------------------

    @staticmethod
    def get_or_create_customer(user_id: UUID | str, email: str | None = None, name: str | None = None) -> str:
        """
        Return the user's Stripe customer id, creating the customer once.

        Raises:
            PaymentProviderError: If Stripe rejects the request
        """
        user_id = str(user_id)
        user = SupabaseClient.fetch_one("users", columns="id, name, email, stripe_customer_id", id=user_id) or {}
        if user.get("stripe_customer_id"):
            return user["stripe_customer_id"]

        try:
            customer = StripeClient.create_customer(
                email=email or user.get("email"),
                name=name or user.get("name"),
                metadata={"user_id": user_id},
            )
        except StripeClientError as e:
            raise _provider_error(e) from e

        SupabaseClient.update_where("users", {"stripe_customer_id": customer["id"]}, id=user_id)
        logger.info(f"Created Stripe customer {customer['id']} for user {user_id}")
        return customer["id"]

    # -------------------------------------------------------------------------
    # Combo purchase
    # -------------------------------------------------------------------------

    @staticmethod
    def purchase_combo(
        user_id: UUID | str,
        combo_id: str,
        coupon_code: str | None = None,
        payment_method: PaymentMethod | str = PaymentMethod.CARD,
        billing_cycle: BillingCycle | str = BillingCycle.MONTHLY,
        email: str | None = None,
        name: str | None = None,
    ) -> dict[str, Any]:
        """
        Start a combo purchase.

        Returns a checkout URL for one-time payments, or a client secret
        for the first invoice of a subscription.

        Raises:
            NotFoundError: If the combo is missing or inactive
            PaymentProviderError: If Stripe rejects a request
        """
        user_id = str(user_id)

        calculation = ComboService.calculate_combo_price(combo_id, coupon_code, user_id)
        if not calculation:
            raise NotFoundError("combo", combo_id)

        customer_id = BillingService.get_or_create_customer(user_id, email=email, name=name)

        logger.info(f"Combo purchase: combo={combo_id} user={user_id} method={PaymentMethod(payment_method).value}")

        try:
            if PaymentMethod(payment_method) == PaymentMethod.SUBSCRIPTION:
                return BillingService._create_subscription(
                    user_id, customer_id, calculation, BillingCycle(billing_cycle), coupon_code
                )
            return BillingService._create_one_time_payment(user_id, customer_id, calculation, coupon_code)
        except StripeClientError as e:
            raise _provider_error(e) from e

    @staticmethod
    def _create_one_time_payment(
        user_id: str,
        customer_id: str,
        calculation: ComboCalculation,
        coupon_code: str | None,
    ) -> dict[str, Any]:
        combo = calculation.combo

        transaction = SupabaseClient.insert_one("promotion_transactions", {
            "user_id": user_id,
            "package_id": None,
            "amount": calculation.final_price,
            "currency": "EUR",
            "status": TransactionStatus.PENDING.value,
            "metadata": {
                "combo_id": combo["id"],
                "combo_name": combo.get("name"),
                "original_price": calculation.original_price,
                "combo_discount": calculation.discount_amount,
                "coupon_discount": calculation.coupon_discount or 0,
                "coupon_code": coupon_code,
                "payment_type": "one_time",
                "promotions_to_create": [
                    p.model_dump(mode="json") for p in calculation.promotions_to_create
                ],
            },
        })

        session = StripeClient.create_checkout_session(
            customer=customer_id,
            payment_method_types=["card"],
            mode="payment",
            line_items=[{
                "price_data": {
                    "currency": settings.STRIPE_CURRENCY,
                    "product_data": {
                        "name": combo.get("name") or "Combo",
                        "description": combo.get("description") or None,
                        "metadata": {"combo_id": combo["id"], "transaction_id": transaction["id"]},
                    },
                    "unit_amount": to_cents(calculation.final_price),
                },
                "quantity": 1,
            }],
            success_url=(
                f"{settings.APP_URL}/braider/promotions?success=combo_purchase"
                f"&transaction_id={transaction['id']}"
            ),
            cancel_url=f"{settings.APP_URL}/braider/promotions?cancelled=combo_purchase",
            metadata={
                "user_id": user_id,
                "transaction_id": transaction["id"],
                "combo_id": combo["id"],
                "payment_type": "combo_purchase",
            },
        )

        SupabaseClient.update_where(
            "promotion_transactions",
            {"stripe_session_id": session["id"], "stripe_status": "pending"},
            id=transaction["id"],
        )

        return {
            "payment_type": "one_time",
            "transaction_id": transaction["id"],
            "checkout_url": session.get("url"),
            "pricing": {
                "original_price": calculation.original_price,
                "final_price": calculation.final_price,
                "total_savings": calculation.total_savings,
            },
        }

    @staticmethod
    def _create_subscription(
        user_id: str,
        customer_id: str,
        calculation: ComboCalculation,
        billing_cycle: BillingCycle,
        coupon_code: str | None,
    ) -> dict[str, Any]:
        combo = calculation.combo
        price_per_cycle = cycle_price(calculation.final_price, billing_cycle)
        savings = subscription_savings(calculation.final_price, billing_cycle)
        interval, interval_count = stripe_interval(billing_cycle)

        product = StripeClient.create_product(
            name=f"{combo.get('name')} - Assinatura {billing_cycle.value}",
            description=f"Assinatura {billing_cycle.value} do combo {combo.get('name')}",
            metadata={"combo_id": combo["id"], "billing_cycle": billing_cycle.value},
        )
        price = StripeClient.create_price(
            product_id=product["id"],
            unit_amount=to_cents(price_per_cycle),
            interval=interval,
            interval_count=interval_count,
            metadata={"combo_id": combo["id"]},
        )

        now = utc_now()
        subscription = SupabaseClient.insert_one("promotion_subscriptions", {
            "user_id": user_id,
            "combo_id": combo["id"],
            "billing_cycle": billing_cycle.value,
            "cycle_price": price_per_cycle,
            "currency": "EUR",
            "status": SubscriptionStatus.TRIAL.value,
            "current_period_start": to_iso(now),
            "current_period_end": to_iso(subscription_period_end(now, billing_cycle)),
            "stripe_customer_id": customer_id,
            "stripe_price_id": price["id"],
            "auto_renew_promotions": True,
            "custom_settings": {
                "combo_name": combo.get("name"),
                "original_combo_price": combo.get("combo_price"),
                "subscription_discount": savings,
            },
        })

        stripe_subscription = StripeClient.create_subscription(
            customer_id=customer_id,
            price_id=price["id"],
            metadata={"user_id": user_id, "subscription_id": subscription["id"], "combo_id": combo["id"]},
        )

        status = (
            SubscriptionStatus.ACTIVE if stripe_subscription.get("status") == "active"
            else SubscriptionStatus.TRIAL
        )
        SupabaseClient.update_where(
            "promotion_subscriptions",
            {"stripe_subscription_id": stripe_subscription["id"], "status": status.value},
            id=subscription["id"],
        )

        if calculation.coupon and calculation.coupon_discount:
            ComboService.record_coupon_use(
                coupon_id=calculation.coupon["id"],
                user_id=user_id,
                original_amount=float(combo.get("combo_price") or 0),
                discount_amount=calculation.coupon_discount,
                final_amount=calculation.final_price,
                subscription_id=subscription["id"],
            )

        invoice = stripe_subscription.get("latest_invoice") or {}
        payment_intent = invoice.get("payment_intent") if isinstance(invoice, dict) else None

        return {
            "payment_type": "subscription",
            "subscription_id": subscription["id"],
            "stripe_subscription_id": stripe_subscription["id"],
            "client_secret": payment_intent.get("client_secret") if isinstance(payment_intent, dict) else None,
            "billing_cycle": billing_cycle.value,
            "pricing": {
                "cycle_price": price_per_cycle,
                "original_price": calculation.original_price,
                "total_savings": calculation.total_savings,
                "subscription_savings": savings,
            },
        }

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    @staticmethod
    def list_subscriptions(user_id: UUID | str | None = None) -> list[dict[str, Any]]:
        """The user's subscriptions, newest first; all of them when user_id is None."""
        filters = {"user_id": str(user_id)} if user_id else {}
        return SupabaseClient.fetch_many(
            "promotion_subscriptions",
            order_by="created_at",
            descending=True,
            **filters,
        )

    @staticmethod
    def cancel_subscription(user_id: UUID | str, subscription_id: str) -> dict[str, Any]:
        """
        Cancel a subscription at the end of its current period.

        Raises:
            NotFoundError: If the subscription isn't the user's
            ValidationFailedError: If it is already cancelled
        """
        user_id = str(user_id)

        subscription = SupabaseClient.fetch_one(
            "promotion_subscriptions",
            id=subscription_id,
            user_id=user_id,
        )
        if not subscription:
            raise NotFoundError("subscription", subscription_id)
        if subscription.get("status") == SubscriptionStatus.CANCELLED.value:
            raise ValidationFailedError("Subscription is already cancelled")

        if subscription.get("stripe_subscription_id"):
            try:
                StripeClient.modify_subscription(subscription["stripe_subscription_id"], cancel_at_period_end=True)
            except StripeClientError as e:
                # Local state still records the cancellation
                logger.error(f"Failed to cancel Stripe subscription {subscription['stripe_subscription_id']}: {e}")

        now = to_iso(utc_now())
        SupabaseClient.update_where(
            "promotion_subscriptions",
            {"cancel_at_period_end": True, "updated_at": now},
            id=subscription_id,
        )
        SupabaseClient.insert_one("promotion_subscription_executions", {
            "subscription_id": subscription_id,
            "execution_type": "cancellation",
            "status": "completed",
            "execution_details": {
                "cancelled_by_user": True,
                "cancellation_date": now,
                "will_end_at": subscription.get("current_period_end"),
            },
        })
        logger.info(f"Subscription {subscription_id} set to cancel at period end")

        return {
            "id": subscription_id,
            "cancel_at_period_end": True,
            "current_period_end": subscription.get("current_period_end"),
        }

    # -------------------------------------------------------------------------
    # Single promotions
    # -------------------------------------------------------------------------

    @staticmethod
    def create_promotion_checkout(
        user_id: UUID | str,
        email: str | None,
        promotion: PromotionCheckoutRequest,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """
        Create a Checkout Session for one promotion.

        The promotion data travels in the session metadata and is turned
        into a pending promotion by the webhook.
        """
        if promotion.price <= 0:
            raise ValidationFailedError("Price must be greater than 0", field="price")

        now = now or utc_now()
        promotion_data = promotion.model_dump(mode="json", exclude={"price"})
        duration_days = (promotion.end_date - promotion.start_date).days or 1

        try:
            session = StripeClient.create_checkout_session(
                payment_method_types=["card"],
                mode="payment",
                customer_email=email or None,
                line_items=[{
                    "price_data": {
                        "currency": settings.STRIPE_CURRENCY,
                        "product_data": {
                            "name": promotion.title,
                            "description": promotion.description or None,
                            "metadata": {"type": promotion.type.value, "duration_days": str(duration_days)},
                        },
                        "unit_amount": to_cents(promotion.price),
                    },
                    "quantity": 1,
                }],
                metadata={
                    "type": "promotion_payment",
                    "user_id": str(user_id),
                    "promotion_type": promotion.type.value,
                    "promotion_data": json.dumps(promotion_data),
                },
                success_url=f"{settings.APP_URL}/braider-dashboard/promotions/success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{settings.APP_URL}/braider-dashboard/promotions",
                expires_at=int((now + timedelta(minutes=settings.CHECKOUT_EXPIRY_MINUTES)).timestamp()),
            )
        except StripeClientError as e:
            raise _provider_error(e) from e

        logger.info(f"Promotion checkout {session['id']} created for user {user_id}")
        return {"checkout_url": session.get("url"), "session_id": session["id"]}

    @staticmethod
    def get_checkout_status(user_id: UUID | str, session_id: str) -> dict[str, Any]:
        """
        Status of one of the user's promotion checkouts.

        Raises:
            NotFoundError: If the session doesn't exist or was opened by another user
        """
        try:
            session = StripeClient.retrieve_checkout_session(session_id)
        except StripeClientError as e:
            raise _provider_error(e) from e

        metadata = session.get("metadata") or {}
        if metadata.get("user_id") != str(user_id):
            logger.warning(f"User {user_id} asked for checkout {session_id} owned by {metadata.get('user_id')}")
            raise NotFoundError("checkout_session", session_id)

        return {
            "id": session["id"],
            "status": session.get("status"),
            "payment_status": session.get("payment_status"),
            "amount_total": session.get("amount_total"),
            "metadata": session.get("metadata") or {},
        }
