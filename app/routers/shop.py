# =============================================================================
# app/routers/shop.py - Product & Order Endpoints
# =============================================================================

from typing import Annotated

from fastapi import APIRouter, Query, status

from app.dependencies import CurrentUser
from core.models.commerce import OrderCreate
from core.services.order_service import OrderService

router = APIRouter()


@router.get("/products")
async def list_products(category: Annotated[str | None, Query()] = None):
    products = OrderService.list_products(category=category)
    return {"products": products, "total": len(products)}


@router.get("/products/{product_id}")
async def get_product(product_id: str):
    return OrderService.get_product(product_id)


@router.post("/orders", status_code=status.HTTP_201_CREATED)
async def create_order(payload: OrderCreate, user: CurrentUser):
    """
    Place an order. Prices are taken from the catalog, not the request.
    """
    order = OrderService.create_order(user.id, payload, email=user.email)
    return {"success": True, "order": order}


@router.get("/orders/mine")
async def my_orders(user: CurrentUser):
    return {"orders": OrderService.list_user_orders(user.id)}


@router.get("/orders/track/{order_number}")
async def track_order(order_number: str):
    """
    Public order tracking by order number.
    """
    return OrderService.track_order(order_number)
