# =============================================================================
# app/routers/webhooks.py - Stripe Webhook Endpoints
# =============================================================================
# Two endpoints, each with its own signing secret:
# - /promotions/combos/webhook: combo checkouts, invoices, subscriptions
# - /promotions/webhook: single paid promotions
#
# The raw body is verified before anything is parsed.
# =============================================================================

import logging
from typing import Any

import stripe
from fastapi import APIRouter, Request

from app.config import settings
from app.exceptions import ValidationFailedError, WebhookSignatureError
from core.services.webhook_service import WebhookService
from lib.stripe_client import StripeClient

logger = logging.getLogger(__name__)

router = APIRouter()


async def _verified_event(request: Request, secret: str) -> dict[str, Any]:
    """
    Read the raw body and verify its Stripe signature.

    Raises:
        ValidationFailedError: If the stripe-signature header is missing
        WebhookSignatureError: If the payload or signature is invalid
    """
    signature = request.headers.get("stripe-signature")
    if not signature:
        raise ValidationFailedError("Missing stripe-signature header", field="stripe-signature")

    payload = await request.body()
    try:
        return StripeClient.construct_event(payload, signature, secret)
    except ValueError as e:
        logger.warning(f"Webhook payload is not valid JSON: {e}")
        raise WebhookSignatureError("Invalid payload")
    except stripe.SignatureVerificationError as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        raise WebhookSignatureError()


@router.post("/combos/webhook")
async def combo_webhook(request: Request):
    """
    Stripe events for combo purchases and subscriptions.
    """
    event = await _verified_event(request, settings.combo_webhook_secret)
    logger.info(f"Combo webhook received: {event.get('type')} ({event.get('id')})")

    handled = WebhookService.handle_combo_event(event)
    return {"received": True, "handled": handled}


@router.post("/webhook")
async def promotion_webhook(request: Request):
    """
    Stripe events for single promotion checkouts.
    """
    event = await _verified_event(request, settings.STRIPE_WEBHOOK_SECRET)
    logger.info(f"Promotion webhook received: {event.get('type')} ({event.get('id')})")

    return WebhookService.handle_promotion_event(event)
