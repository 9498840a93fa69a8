# =============================================================================
# core/models/commerce.py - Product & Order Schemas
# =============================================================================
# The marketplace also sells hair products. Orders are priced server-side
# from the products table; clients only send product ids and quantities.
# =============================================================================

from enum import Enum

from pydantic import BaseModel, Field


class OrderStatus(str, Enum):
    """
    Order lifecycle.

    Flow: pending -> processing -> shipped -> delivered
          pending | processing -> cancelled
    """
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


ORDER_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    category: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    stock_quantity: int = Field(default=0, ge=0)
    images: list[str] = Field(default_factory=list)
    is_active: bool = True


class ProductUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    category: str | None = None
    price: float | None = Field(default=None, ge=0)
    stock_quantity: int | None = Field(default=None, ge=0)
    images: list[str] | None = None
    is_active: bool | None = None


class OrderItemRequest(BaseModel):
    product_id: str
    quantity: int = Field(default=1, ge=1, le=100)


class OrderCreate(BaseModel):
    items: list[OrderItemRequest] = Field(..., min_length=1)
    shipping_address: dict[str, str] = Field(default_factory=dict)
    customer_name: str | None = None
    customer_phone: str | None = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
