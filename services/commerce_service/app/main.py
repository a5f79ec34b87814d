"""FastAPI application for the Commerce Service."""

from fastapi import FastAPI
from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware
from services.commerce_service.routers import (
    cart_router,
    orders_router,
    pricing_router,
    stock_router,
)

STORE_PREFIX = "/stores/{store_id}"


def create_app() -> FastAPI:
    """Create and configure the Commerce Service FastAPI app."""
    app = FastAPI(
        title="Storefront Commerce Service",
        version="0.1.0",
        description="Orders, stock and wholesale pricing for multi-store storefronts.",
    )
    add_observability_middleware(app)
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "commerce"}

    app.include_router(orders_router, prefix=STORE_PREFIX)
    app.include_router(pricing_router, prefix=STORE_PREFIX)
    app.include_router(stock_router, prefix=STORE_PREFIX)
    app.include_router(cart_router, prefix=STORE_PREFIX)

    return app


app = create_app()
