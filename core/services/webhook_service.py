# =============================================================================
# core/services/webhook_service.py - Stripe Webhook Handlers
# =============================================================================
# Applies verified Stripe events to the database. Two endpoints feed it:
#
#   /api/v1/promotions/combos/webhook   combo purchases and subscriptions
#   /api/v1/promotions/webhook          single paid promotions
#
# Handlers receive the event as a plain dict (see StripeClient.construct_event).
# A handler that finds incomplete data logs it and returns; only unexpected
# failures propagate to the endpoint.
# =============================================================================

import json
import logging
from typing import Any, Callable

from app.websocket.broadcast import publish_notification
from core.models.promotion import PromotionStatus, SubscriptionStatus, TransactionStatus
from core.services.combo_service import ComboService
from lib.supabase_client import SupabaseClient
from lib.utils import from_unix, round_money, to_iso, utc_now

logger = logging.getLogger(__name__)


def _object(event: dict[str, Any]) -> dict[str, Any]:
    return (event.get("data") or {}).get("object") or {}


def _invoice_subscription_id(invoice: dict[str, Any]) -> str | None:
    """Subscription id of an invoice, across Stripe API versions."""
    subscription = invoice.get("subscription")
    if not subscription:
        details = (invoice.get("parent") or {}).get("subscription_details") or {}
        subscription = details.get("subscription")
    if isinstance(subscription, dict):
        subscription = subscription.get("id")
    return subscription


def _subscription_period(subscription: dict[str, Any]) -> tuple[int | None, int | None]:
    """Current period bounds; newer API versions keep them on the items."""
    start = subscription.get("current_period_start")
    end = subscription.get("current_period_end")
    if start is None or end is None:
        items = (subscription.get("items") or {}).get("data") or []
        if items:
            start = start if start is not None else items[0].get("current_period_start")
            end = end if end is not None else items[0].get("current_period_end")
    return start, end


def _merge_metadata(table: str, row_id: str, extra: dict[str, Any]) -> None:
    row = SupabaseClient.fetch_one(table, columns="id, metadata", id=row_id) or {}
    SupabaseClient.update_where(
        table,
        {"metadata": {**(row.get("metadata") or {}), **extra}, "updated_at": to_iso(utc_now())},
        id=row_id,
    )


class WebhookService:
    """
    Service applying Stripe webhook events.
    """

    # -------------------------------------------------------------------------
    # Combos & subscriptions
    # -------------------------------------------------------------------------

    @staticmethod
    def handle_combo_event(event: dict[str, Any]) -> bool:
        """
        Dispatch a combo/subscription event.

        Returns:
            True if the event type was handled, False if it was only acknowledged
        """
        handlers: dict[str, Callable[[dict[str, Any]], None]] = {
            "checkout.session.completed": WebhookService.checkout_completed,
            "invoice.payment_succeeded": WebhookService.invoice_paid,
            "invoice.payment_failed": WebhookService.invoice_failed,
            "customer.subscription.updated": WebhookService.subscription_updated,
            "customer.subscription.deleted": WebhookService.subscription_deleted,
        }

        event_type = event.get("type")
        logger.info(f"Stripe combo webhook: {event_type}")

        handler = handlers.get(event_type)
        if handler is None:
            logger.info(f"Unhandled Stripe event type: {event_type}")
            return False

        handler(_object(event))
        return True

    @staticmethod
    def checkout_completed(session: dict[str, Any]) -> None:
        """A one-time combo payment went through: grant the promotions."""
        metadata = session.get("metadata") or {}
        transaction_id = metadata.get("transaction_id")
        user_id = metadata.get("user_id")
        combo_id = metadata.get("combo_id")

        if not transaction_id or not user_id or not combo_id:
            logger.error(f"Checkout session {session.get('id')} is missing combo metadata: {metadata}")
            return

        SupabaseClient.update_where(
            "promotion_transactions",
            {
                "status": TransactionStatus.COMPLETED.value,
                "stripe_status": "succeeded",
                "stripe_payment_intent_id": session.get("payment_intent"),
                "updated_at": to_iso(utc_now()),
            },
            id=transaction_id,
        )

        result = ComboService.create_combo_promotions(user_id, combo_id, transaction_id)
        if not result.success:
            logger.error(f"Failed to create combo promotions for transaction {transaction_id}: {result.error}")
            _merge_metadata("promotion_transactions", transaction_id, {
                "promotion_creation_failed": True,
                "error": result.error,
            })
            return

        _merge_metadata("promotion_transactions", transaction_id, {"created_promotion_ids": result.promotion_ids})
        logger.info(f"Checkout completed for user {user_id}: promotions {result.promotion_ids}")

    @staticmethod
    def invoice_paid(invoice: dict[str, Any]) -> None:
        """A subscription invoice was paid: activate and grant the period's promotions."""
        stripe_subscription_id = _invoice_subscription_id(invoice)
        if not stripe_subscription_id:
            logger.warning(f"Invoice {invoice.get('id')} has no subscription")
            return

        subscription = SupabaseClient.fetch_one(
            "promotion_subscriptions",
            stripe_subscription_id=stripe_subscription_id,
        )
        if not subscription:
            logger.error(f"Subscription not found: {stripe_subscription_id}")
            return

        amount_paid = (invoice.get("amount_paid") or 0) / 100
        SupabaseClient.update_where(
            "promotion_subscriptions",
            {
                "status": SubscriptionStatus.ACTIVE.value,
                "total_amount_paid": round_money(float(subscription.get("total_amount_paid") or 0) + amount_paid),
                "current_period_start": from_unix(invoice.get("period_start")),
                "current_period_end": from_unix(invoice.get("period_end")),
                "updated_at": to_iso(utc_now()),
            },
            id=subscription["id"],
        )

        if not (subscription.get("auto_renew_promotions") and subscription.get("combo_id")):
            return

        result = ComboService.create_combo_promotions(subscription["user_id"], subscription["combo_id"])
        if not result.success:
            logger.error(f"Failed to create renewal promotions for subscription {subscription['id']}: {result.error}")
            return

        billing_reason = invoice.get("billing_reason")
        SupabaseClient.insert_one("promotion_subscription_executions", {
            "subscription_id": subscription["id"],
            "execution_type": "trial_start" if billing_reason == "subscription_create" else "renewal",
            "promotion_ids": result.promotion_ids,
            "amount_charged": amount_paid,
            "stripe_invoice_id": invoice.get("id"),
            "status": "completed",
            "execution_details": {
                "invoice_id": invoice.get("id"),
                "billing_reason": billing_reason,
                "period_start": invoice.get("period_start"),
                "period_end": invoice.get("period_end"),
            },
        })
        SupabaseClient.update_where(
            "promotion_subscriptions",
            {"total_promotions_created": (subscription.get("total_promotions_created") or 0) + len(result.promotion_ids)},
            id=subscription["id"],
        )
        logger.info(f"Subscription {subscription['id']} renewed with promotions {result.promotion_ids}")

    @staticmethod
    def invoice_failed(invoice: dict[str, Any]) -> None:
        stripe_subscription_id = _invoice_subscription_id(invoice)
        if not stripe_subscription_id:
            return

        SupabaseClient.update_where(
            "promotion_subscriptions",
            {"status": SubscriptionStatus.PAST_DUE.value, "updated_at": to_iso(utc_now())},
            stripe_subscription_id=stripe_subscription_id,
        )

        subscription = SupabaseClient.fetch_one(
            "promotion_subscriptions",
            columns="id, user_id",
            stripe_subscription_id=stripe_subscription_id,
        )
        if not subscription:
            return

        SupabaseClient.insert_one("promotion_subscription_executions", {
            "subscription_id": subscription["id"],
            "execution_type": "renewal",
            "status": "failed",
            "error_message": f"Payment failed for invoice {invoice.get('id')}",
            "execution_details": {
                "invoice_id": invoice.get("id"),
                "failure_reason": (invoice.get("last_finalization_error") or {}).get("message"),
                "attempt_count": invoice.get("attempt_count"),
            },
        })

        logger.warning(f"Payment failed for subscription {subscription['id']}")
        publish_notification(subscription["user_id"], {
            "type": "payment_failed",
            "title": "Falha no pagamento da assinatura",
            "message": "Não foi possível cobrar a sua assinatura de promoções. Atualize o método de pagamento.",
            "subscription_id": subscription["id"],
            "invoice_id": invoice.get("id"),
        })

    @staticmethod
    def subscription_updated(subscription: dict[str, Any]) -> None:
        status = subscription.get("status")
        if status == "canceled":
            status = SubscriptionStatus.CANCELLED.value

        period_start, period_end = _subscription_period(subscription)
        SupabaseClient.update_where(
            "promotion_subscriptions",
            {
                "status": status,
                "cancel_at_period_end": bool(subscription.get("cancel_at_period_end")),
                "cancelled_at": from_unix(subscription.get("canceled_at")),
                "current_period_start": from_unix(period_start),
                "current_period_end": from_unix(period_end),
                "updated_at": to_iso(utc_now()),
            },
            stripe_subscription_id=subscription.get("id"),
        )
        logger.info(f"Subscription {subscription.get('id')} updated: {status}")

    @staticmethod
    def subscription_deleted(subscription: dict[str, Any]) -> None:
        now = to_iso(utc_now())
        SupabaseClient.update_where(
            "promotion_subscriptions",
            {"status": SubscriptionStatus.CANCELLED.value, "cancelled_at": now, "updated_at": now},
            stripe_subscription_id=subscription.get("id"),
        )
        logger.info(f"Subscription {subscription.get('id')} cancelled")

    # -------------------------------------------------------------------------
    # Single promotions
    # -------------------------------------------------------------------------

    @staticmethod
    def handle_promotion_event(event: dict[str, Any]) -> dict[str, Any]:
        event_type = event.get("type")
        obj = _object(event)
        metadata = obj.get("metadata") or {}

        if metadata.get("type") != "promotion_payment":
            return {"received": True}

        if event_type == "checkout.session.completed":
            promotion_id = WebhookService.promotion_paid(obj)
            return {"received": True, "promotion_id": promotion_id}

        if event_type == "checkout.session.expired":
            logger.info(
                f"Promotion checkout expired: session={obj.get('id')} "
                f"user={metadata.get('user_id')} type={metadata.get('promotion_type')}"
            )
        elif event_type == "payment_intent.payment_failed":
            logger.error(
                f"Promotion payment failed: intent={obj.get('id')} user={metadata.get('user_id')} "
                f"error={(obj.get('last_payment_error') or {}).get('message')}"
            )

        return {"received": True}

    @staticmethod
    def promotion_paid(session: dict[str, Any]) -> str | None:
        """
        Create a paid promotion awaiting admin approval.

        Returns:
            The new promotion id, or None if the session carried no promotion data
        """
        metadata = session.get("metadata") or {}
        user_id = metadata.get("user_id")
        try:
            promotion_data = json.loads(metadata.get("promotion_data") or "{}")
        except json.JSONDecodeError:
            logger.error(f"Invalid promotion_data in session {session.get('id')}")
            return None

        if not user_id or not promotion_data:
            logger.error(f"Checkout session {session.get('id')} is missing promotion metadata")
            return None

        price = (session.get("amount_total") or 0) / 100
        now = to_iso(utc_now())

        promotion = SupabaseClient.insert_one("promotions", {
            "user_id": user_id,
            "type": promotion_data.get("type"),
            "title": promotion_data.get("title"),
            "description": promotion_data.get("description"),
            "start_date": promotion_data.get("start_date"),
            "end_date": promotion_data.get("end_date"),
            "content_data": promotion_data.get("content_data") or {},
            "price": price,
            "is_paid": True,
            "status": PromotionStatus.PENDING.value,
            "metadata": {
                **(promotion_data.get("metadata") or {}),
                "stripe_session_id": session.get("id"),
                "stripe_payment_intent": session.get("payment_intent"),
                "payment_status": "paid",
                "processed_at": now,
            },
        })

        SupabaseClient.insert_one("promotion_transactions", {
            "promotion_id": promotion["id"],
            "user_id": user_id,
            "type": "purchase",
            "amount": price,
            "currency": "EUR",
            "status": TransactionStatus.COMPLETED.value,
            "payment_method": "stripe",
            "stripe_session_id": session.get("id"),
        })

        SupabaseClient.insert_one("promotion_notifications", {
            "promotion_id": promotion["id"],
            "user_id": user_id,
            "type": "admin_approval_required",
            "title": "Nova Promoção Paga Aguardando Aprovação",
            "message": (
                f"A promoção \"{promotion_data.get('title')}\" do tipo {promotion_data.get('type')} "
                f"foi paga e aguarda aprovação."
            ),
            "data": {
                "promotion_type": promotion_data.get("type"),
                "amount_paid": price,
                "stripe_session_id": session.get("id"),
            },
        })

        logger.info(f"Paid promotion {promotion['id']} created for user {user_id}, awaiting approval")
        return promotion["id"]
