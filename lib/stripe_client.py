# =============================================================================
# lib/stripe_client.py - Stripe Client Wrapper
# =============================================================================
# Thin wrapper over the stripe SDK used for promotion purchases:
# - Customers (one per marketplace user, id stored on users.stripe_customer_id)
# - Checkout Sessions (one-time combo and single-promotion payments)
# - Products / Prices / Subscriptions (recurring combo packages)
# - Webhook signature verification
#
# Every method returns plain dicts so services never depend on StripeObject
# behaviour, and every SDK failure is re-raised as StripeClientError.
#
# Usage:
#   from lib.stripe_client import StripeClient
#   session = StripeClient.create_checkout_session(mode="payment", ...)
# =============================================================================

from __future__ import annotations

import json
import logging
from typing import Any

import stripe

from app.config import settings

logger = logging.getLogger(__name__)


class StripeClientError(Exception):
    """Error raised when a Stripe API call fails."""

    def __init__(
        self,
        message: str,
        code: str = "STRIPE_ERROR",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


def _as_dict(obj: Any) -> dict[str, Any]:
    """Convert a StripeObject (or plain dict) into a plain dict."""
    if obj is None:
        return {}
    recursive = getattr(obj, "to_dict_recursive", None) or getattr(obj, "to_dict", None)
    if recursive is not None:
        return recursive()
    if isinstance(obj, dict):
        return obj
    return json.loads(str(obj))


class StripeClient:
    """
    Class-level facade over the stripe module.

    The API key is applied lazily on first use so importing this module
    never requires Stripe credentials.
    """

    _configured: bool = False

    @classmethod
    def _configure(cls) -> None:
        if not cls._configured:
            if not settings.STRIPE_SECRET_KEY:
                raise StripeClientError(
                    message="Stripe is not configured",
                    code="STRIPE_NOT_CONFIGURED",
                )
            stripe.api_key = settings.STRIPE_SECRET_KEY
            cls._configured = True

    @classmethod
    def _call(cls, operation: str, func: Any, **params: Any) -> dict[str, Any]:
        cls._configure()
        try:
            result = func(**params)
        except stripe.StripeError as e:
            logger.error(f"Stripe {operation} failed: {e}")
            raise StripeClientError(
                message=f"Stripe {operation} failed: {getattr(e, 'user_message', None) or e}",
                code="STRIPE_REQUEST_FAILED",
                details={"operation": operation},
            )
        return _as_dict(result)

    # -------------------------------------------------------------------------
    # Customers
    # -------------------------------------------------------------------------

    @classmethod
    def create_customer(cls, email: str | None, name: str | None, metadata: dict[str, str]) -> dict[str, Any]:
        return cls._call(
            "customer.create",
            stripe.Customer.create,
            email=email,
            name=name,
            metadata=metadata,
        )

    # -------------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------------

    @classmethod
    def create_checkout_session(cls, **params: Any) -> dict[str, Any]:
        """Create a Checkout Session. Accepts the raw stripe parameters."""
        return cls._call("checkout.create", stripe.checkout.Session.create, **params)

    @classmethod
    def retrieve_checkout_session(cls, session_id: str) -> dict[str, Any]:
        return cls._call("checkout.retrieve", stripe.checkout.Session.retrieve, id=session_id)

    # -------------------------------------------------------------------------
    # Recurring billing
    # -------------------------------------------------------------------------

    @classmethod
    def create_product(cls, name: str, description: str | None, metadata: dict[str, str]) -> dict[str, Any]:
        return cls._call(
            "product.create",
            stripe.Product.create,
            name=name,
            description=description or "",
            metadata=metadata,
        )

    @classmethod
    def create_price(
        cls,
        product_id: str,
        unit_amount: int,
        interval: str,
        interval_count: int,
        metadata: dict[str, str],
    ) -> dict[str, Any]:
        return cls._call(
            "price.create",
            stripe.Price.create,
            product=product_id,
            unit_amount=unit_amount,
            currency=settings.STRIPE_CURRENCY,
            recurring={"interval": interval, "interval_count": interval_count},
            metadata=metadata,
        )

    @classmethod
    def create_subscription(cls, customer_id: str, price_id: str, metadata: dict[str, str]) -> dict[str, Any]:
        """
        Create an incomplete subscription whose first invoice is paid client-side.

        The latest invoice's payment intent is expanded so the caller can hand
        its client_secret to the frontend.
        """
        return cls._call(
            "subscription.create",
            stripe.Subscription.create,
            customer=customer_id,
            items=[{"price": price_id}],
            payment_behavior="default_incomplete",
            payment_settings={"save_default_payment_method": "on_subscription"},
            expand=["latest_invoice.payment_intent"],
            metadata=metadata,
        )

    @classmethod
    def modify_subscription(cls, subscription_id: str, **params: Any) -> dict[str, Any]:
        return cls._call("subscription.modify", stripe.Subscription.modify, id=subscription_id, **params)

    # -------------------------------------------------------------------------
    # Account
    # -------------------------------------------------------------------------

    @classmethod
    def retrieve_balance(cls) -> dict[str, Any]:
        """Cheapest authenticated call, used by the readiness check."""
        return cls._call("balance.retrieve", stripe.Balance.retrieve)

    # -------------------------------------------------------------------------
    # Webhooks
    # -------------------------------------------------------------------------

    @classmethod
    def construct_event(cls, payload: bytes, signature: str, secret: str) -> dict[str, Any]:
        """
        Verify a webhook payload and return the event as a dict.

        Raises:
            ValueError: Payload is not valid JSON
            stripe.SignatureVerificationError: Signature does not match
        """
        event = stripe.Webhook.construct_event(payload, signature, secret)
        return _as_dict(event)
