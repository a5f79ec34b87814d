"""Stock router: read-only stock summaries."""

import uuid

from fastapi import APIRouter, Depends
from libs.db.session import get_async_db
from services.commerce_service.errors import ProductNotFound
from services.commerce_service.routers._helpers import get_store_scope
from services.commerce_service.schemas import ProductStockStatusResponse
from services.commerce_service.scope import StoreScope
from services.commerce_service.services.stock_ledger import stock_status
from services.commerce_service.services.stock_validator import load_products
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["stock"])


@router.get(
    "/products/{product_id}/stock-status", response_model=ProductStockStatusResponse
)
async def get_stock_status(
    product_id: uuid.UUID,
    scope: StoreScope = Depends(get_store_scope),
    db: AsyncSession = Depends(get_async_db),
):
    """General stock plus every specification pool, with low/out-of-stock flags."""
    products = await load_products(db, scope, [product_id])
    product = products.get(product_id)
    if product is None:
        raise ProductNotFound(product_id)
    return stock_status(product)
