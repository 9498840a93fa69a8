# =============================================================================
# core/services/order_service.py - Products & Orders
# =============================================================================
# Hair product catalogue and customer orders.
#
# Order totals are always computed from the products table; every order gets
# a unique 8-character public number (lib/order_number.py) that customers
# use to track it.
# =============================================================================

import logging
from typing import Any
from uuid import UUID

from app.exceptions import NotFoundError, ValidationFailedError
from core.models.commerce import (
    ORDER_TRANSITIONS,
    OrderCreate,
    OrderStatus,
    ProductCreate,
    ProductUpdate,
)
from lib.order_number import (
    format_order_number,
    generate_unique_order_number,
    is_valid_order_number,
    parse_order_number,
)
from lib.supabase_client import SupabaseClient
from lib.utils import round_money, to_iso, utc_now

logger = logging.getLogger(__name__)


class OrderService:
    """
    Service for products and orders.
    """

    # -------------------------------------------------------------------------
    # Products
    # -------------------------------------------------------------------------

    @staticmethod
    def list_products(category: str | None = None, active_only: bool = True) -> list[dict[str, Any]]:
        filters: dict[str, Any] = {}
        if category:
            filters["category"] = category
        if active_only:
            filters["is_active"] = True
        return SupabaseClient.fetch_many("products", order_by="name", **filters)

    @staticmethod
    def get_product(product_id: str) -> dict[str, Any]:
        product = SupabaseClient.fetch_one("products", id=product_id)
        if not product:
            raise NotFoundError("product", product_id)
        return product

    @staticmethod
    def create_product(payload: ProductCreate) -> dict[str, Any]:
        product = SupabaseClient.insert_one("products", payload.model_dump())
        logger.info(f"Product {product['id']} created: {payload.name}")
        return product

    @staticmethod
    def update_product(product_id: str, payload: ProductUpdate) -> dict[str, Any]:
        OrderService.get_product(product_id)

        updates = payload.model_dump(exclude_unset=True)
        if not updates:
            raise ValidationFailedError("No fields to update")
        updates["updated_at"] = to_iso(utc_now())

        rows = SupabaseClient.update_where("products", updates, id=product_id)
        return rows[0]

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    @staticmethod
    def _order_number_exists(order_number: str) -> bool:
        return SupabaseClient.fetch_one("orders", columns="id", order_number=order_number) is not None

    @staticmethod
    def create_order(user_id: UUID | str, payload: OrderCreate, email: str | None = None) -> dict[str, Any]:
        """
        Place an order priced from the catalogue.

        Raises:
            NotFoundError: If a product doesn't exist or is inactive
        """
        product_ids = list({item.product_id for item in payload.items})
        products = {
            p["id"]: p
            for p in SupabaseClient.fetch_many("products", id=product_ids, is_active=True)
        }

        items = []
        for item in payload.items:
            product = products.get(item.product_id)
            if not product:
                raise NotFoundError("product", item.product_id)
            unit_price = float(product.get("price") or 0)
            items.append({
                "product_id": item.product_id,
                "product_name": product.get("name"),
                "quantity": item.quantity,
                "unit_price": unit_price,
                "subtotal": round_money(unit_price * item.quantity),
            })

        order_number = generate_unique_order_number(OrderService._order_number_exists)

        order = SupabaseClient.insert_one("orders", {
            "order_number": order_number,
            "user_id": str(user_id),
            "customer_email": email,
            "customer_name": payload.customer_name,
            "customer_phone": payload.customer_phone,
            "shipping_address": payload.shipping_address,
            "items": items,
            "total_amount": round_money(sum(i["unit_price"] * i["quantity"] for i in items)),
            "status": OrderStatus.PENDING.value,
        })
        logger.info(f"Order {format_order_number(order_number)} placed by {user_id}")
        return order

    @staticmethod
    def list_user_orders(user_id: UUID | str) -> list[dict[str, Any]]:
        return SupabaseClient.fetch_many("orders", order_by="created_at", descending=True, user_id=str(user_id))

    @staticmethod
    def update_order_status(admin_id: UUID | str, order_id: str, status: OrderStatus | str) -> dict[str, Any]:
        """
        Move an order along its lifecycle.

        Raises:
            NotFoundError: If the order doesn't exist
            ValidationFailedError: If the transition isn't allowed
        """
        status = OrderStatus(status)

        order = SupabaseClient.fetch_one("orders", columns="id, status, order_number", id=order_id)
        if not order:
            raise NotFoundError("order", order_id)

        current = OrderStatus(order["status"])
        if status not in ORDER_TRANSITIONS[current]:
            raise ValidationFailedError(
                f"Cannot change order from {current.value} to {status.value}",
                field="status",
                details={"allowed": sorted(s.value for s in ORDER_TRANSITIONS[current])},
            )

        rows = SupabaseClient.update_where(
            "orders",
            {"status": status.value, "updated_at": to_iso(utc_now())},
            id=order_id,
        )
        logger.info(f"Order {order.get('order_number')} {current.value} -> {status.value} by {admin_id}")
        return rows[0]

    @staticmethod
    def track_order(order_number: str) -> dict[str, Any]:
        """
        Public order lookup by number ("#ABCD1234", "abcd1234", ...).

        Raises:
            ValidationFailedError: If the number is malformed
            NotFoundError: If no order has it
        """
        if not is_valid_order_number(order_number):
            raise ValidationFailedError("Invalid order number", field="order_number")

        number = parse_order_number(order_number)
        order = SupabaseClient.fetch_one(
            "orders",
            columns="id, order_number, status, items, total_amount, created_at, updated_at",
            order_number=number,
        )
        if not order:
            raise NotFoundError("order", number)
        return order
