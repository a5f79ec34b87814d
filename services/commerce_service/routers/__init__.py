"""Commerce service routers package."""

from services.commerce_service.routers.cart import router as cart_router
from services.commerce_service.routers.orders import router as orders_router
from services.commerce_service.routers.pricing import router as pricing_router
from services.commerce_service.routers.stock import router as stock_router

__all__ = [
    "cart_router",
    "orders_router",
    "pricing_router",
    "stock_router",
]
