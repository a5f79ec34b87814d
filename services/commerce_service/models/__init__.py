"""Commerce Service models package."""

from services.commerce_service.models.catalog import (
    Product,
    SpecificationValue,
    Store,
)
from services.commerce_service.models.commerce import Cart, CartItem, Order, OrderItem
from services.commerce_service.models.enums import (
    CartStatus,
    InventoryMovementType,
    OrderStatus,
    PaymentStatus,
    StockStatus,
    WholesalerStatus,
)
from services.commerce_service.models.inventory import InventoryMovement
from services.commerce_service.models.wholesale import Wholesaler

__all__ = [
    "Cart",
    "CartItem",
    "CartStatus",
    "InventoryMovement",
    "InventoryMovementType",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
    "Product",
    "SpecificationValue",
    "StockStatus",
    "Store",
    "Wholesaler",
    "WholesalerStatus",
]
