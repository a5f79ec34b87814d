"""Pydantic schemas for commerce service."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from services.commerce_service.models import (
    CartStatus,
    OrderStatus,
    PaymentStatus,
    StockStatus,
)

# ============================================================================
# SHARED
# ============================================================================


class SelectedSpecification(BaseModel):
    """A buyer's choice of one specification value, e.g. Size=Large."""

    specification_id: str = Field(..., min_length=1, max_length=100)
    value_id: str = Field(..., min_length=1, max_length=100)
    value: Optional[str] = None
    title: Optional[str] = None


class OrderItemInput(BaseModel):
    product: uuid.UUID
    quantity: int = Field(..., ge=1)


class CartLineInput(OrderItemInput):
    selected_specifications: list[SelectedSpecification] = []


# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class PaymentInfo(BaseModel):
    method: Optional[str] = Field(None, max_length=50)
    status: PaymentStatus = PaymentStatus.UNPAID


class ShippingInfo(BaseModel):
    method: Optional[str] = Field(None, max_length=100)
    cost: Decimal = Field(Decimal("0"), ge=0)


class OrderCreate(BaseModel):
    """Order request. ``cart_items`` wins over ``items`` when both are sent."""

    user: Optional[str] = Field(None, max_length=255)
    guest_id: Optional[str] = Field(None, max_length=255)
    customer_email: Optional[EmailStr] = None
    items: list[OrderItemInput] = []
    cart_items: list[CartLineInput] = []
    shipping_address: Optional[dict] = None
    billing_address: Optional[dict] = None
    payment_info: PaymentInfo = Field(default_factory=PaymentInfo)
    shipping_info: ShippingInfo = Field(default_factory=ShippingInfo)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    notes: Optional[str] = None
    is_gift: bool = False
    gift_message: Optional[str] = None


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: Optional[uuid.UUID] = None
    product_name: str
    sku: Optional[str] = None
    selected_specifications: list[SelectedSpecification] = []
    quantity: int
    unit_price: Decimal
    regular_unit_price: Decimal
    line_total: Decimal
    wholesale_applied: bool
    discount_rate: Optional[Decimal] = None


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    store_id: uuid.UUID
    order_number: str
    user_id: Optional[str] = None
    guest_id: Optional[str] = None
    customer_email: Optional[str] = None

    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: Optional[str] = None
    shipping_method: Optional[str] = None
    shipping_address: Optional[dict] = None
    billing_address: Optional[dict] = None

    subtotal: Decimal
    discount_amount: Decimal
    shipping_cost: Decimal
    tax_amount: Decimal
    total: Decimal
    currency: str
    wholesale_applied: bool
    wholesale_discount_rate: Optional[Decimal] = None

    notes: Optional[str] = None
    admin_notes: Optional[str] = None
    is_gift: bool = False
    gift_message: Optional[str] = None
    cancellation_reason: Optional[str] = None

    actual_delivery_date: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    items: list[OrderItemResponse] = []


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    total: int
    page: int
    page_size: int


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    notes: Optional[str] = None


class OrderCancelRequest(BaseModel):
    """The buyer cancelling; must match the order's user or guest id."""

    user: Optional[str] = None
    guest_id: Optional[str] = None
    reason: Optional[str] = None


class GuestOrderClaimRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=255)


class GuestOrderClaimResponse(BaseModel):
    guest_id: str
    user_id: str
    claimed: int


# ============================================================================
# PRICING SCHEMAS
# ============================================================================


class PriceQuoteRequest(BaseModel):
    user: Optional[str] = None
    email: Optional[EmailStr] = None
    items: list[CartLineInput] = Field(..., min_length=1)


class PricedLineResponse(BaseModel):
    product_id: uuid.UUID
    product_name: str
    quantity: int
    unit_price: Decimal
    regular_unit_price: Decimal
    line_total: Decimal
    wholesale_applied: bool
    discount_rate: Optional[Decimal] = None


class PriceQuoteResponse(BaseModel):
    lines: list[PricedLineResponse]
    subtotal: Decimal
    regular_subtotal: Decimal
    discount_amount: Decimal
    wholesale_applied: bool
    discount_rate: Optional[Decimal] = None


class WholesalerDiscountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    business_name: Optional[str] = None
    discount: Decimal
    is_eligible: bool


# ============================================================================
# STOCK SCHEMAS
# ============================================================================


class SpecificationStockResponse(BaseModel):
    specification_id: str
    value_id: str
    title: Optional[str] = None
    value: Optional[str] = None
    quantity: int
    stock_status: StockStatus


class ProductStockStatusResponse(BaseModel):
    product_id: uuid.UUID
    name: str
    stock: int
    stock_status: StockStatus
    low_stock_threshold: int
    sold_count: int
    total_specification_quantity: int
    specifications: list[SpecificationStockResponse] = []


# ============================================================================
# CART SCHEMAS
# ============================================================================


class CartItemCreate(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(1, ge=1)
    selected_specifications: list[SelectedSpecification] = []


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=0)  # 0 removes the line


class CartItemResponse(BaseModel):
    id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    quantity: int
    selected_specifications: list[SelectedSpecification] = []
    unit_price: Decimal
    regular_unit_price: Decimal
    line_total: Decimal
    wholesale_applied: bool
    in_stock: bool


class CartResponse(BaseModel):
    id: uuid.UUID
    store_id: uuid.UUID
    user_id: Optional[str] = None
    guest_id: Optional[str] = None
    status: CartStatus
    items: list[CartItemResponse] = []
    item_count: int
    subtotal: Decimal
    regular_subtotal: Decimal
    wholesale_applied: bool
    removed_items: list[uuid.UUID] = []  # pruned on this read


class CartMergeRequest(BaseModel):
    guest_id: str = Field(..., min_length=1, max_length=255)
    user_id: str = Field(..., min_length=1, max_length=255)
