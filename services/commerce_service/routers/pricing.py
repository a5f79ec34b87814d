"""Pricing router: price previews and wholesaler discount lookups."""

from fastapi import APIRouter, Depends
from libs.db.session import get_async_db
from services.commerce_service.errors import WholesalerNotFound
from services.commerce_service.routers._helpers import get_store_scope
from services.commerce_service.schemas import (
    PricedLineResponse,
    PriceQuoteRequest,
    PriceQuoteResponse,
    WholesalerDiscountResponse,
)
from services.commerce_service.scope import StoreScope
from services.commerce_service.services import pricing
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["pricing"])


@router.post("/pricing/quote", response_model=PriceQuoteResponse)
async def quote_prices(
    payload: PriceQuoteRequest,
    scope: StoreScope = Depends(get_store_scope),
    db: AsyncSession = Depends(get_async_db),
):
    """Price lines as an order would, without checking or touching stock."""
    quote = await pricing.quote_items(
        db, scope, payload.items, user_id=payload.user, email=payload.email
    )
    return PriceQuoteResponse(
        lines=[
            PricedLineResponse(
                product_id=line.product_id,
                product_name=line.product_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                regular_unit_price=line.regular_unit_price,
                line_total=line.line_total,
                wholesale_applied=line.wholesale_applied,
                discount_rate=line.discount_rate,
            )
            for line in quote.lines
        ],
        subtotal=quote.subtotal,
        regular_subtotal=quote.regular_subtotal,
        discount_amount=quote.discount_amount,
        wholesale_applied=quote.wholesale_applied,
        discount_rate=quote.discount_rate,
    )


@router.get(
    "/wholesalers/by-user/{user_id}/discount",
    response_model=WholesalerDiscountResponse,
)
async def wholesaler_discount_by_user(
    user_id: str,
    scope: StoreScope = Depends(get_store_scope),
    db: AsyncSession = Depends(get_async_db),
):
    wholesaler = await pricing.find_wholesaler_by_user(db, scope, user_id)
    if wholesaler is None:
        raise WholesalerNotFound(user_id)
    return wholesaler


@router.get(
    "/wholesalers/by-email/{email}/discount",
    response_model=WholesalerDiscountResponse,
)
async def wholesaler_discount_by_email(
    email: str,
    scope: StoreScope = Depends(get_store_scope),
    db: AsyncSession = Depends(get_async_db),
):
    wholesaler = await pricing.find_wholesaler_by_email(db, scope, email)
    if wholesaler is None:
        raise WholesalerNotFound(email)
    return wholesaler
