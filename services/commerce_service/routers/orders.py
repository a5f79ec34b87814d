"""Orders router: placement, history, status changes and guest claims."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.common.config import get_settings
from libs.db.session import get_async_db
from services.commerce_service.models import OrderStatus
from services.commerce_service.routers._helpers import get_store_scope
from services.commerce_service.schemas import (
    GuestOrderClaimRequest,
    GuestOrderClaimResponse,
    OrderCancelRequest,
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
)
from services.commerce_service.scope import StoreScope
from services.commerce_service.services import order_assembler, order_lifecycle
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["orders"])

PAGE_SIZE_MAX = get_settings().ORDERS_PAGE_SIZE_MAX


def _page(orders, total: int, page: int, page_size: int) -> OrderListResponse:
    return OrderListResponse(
        items=[OrderResponse.model_validate(order) for order in orders],
        total=total,
        page=page,
        page_size=page_size,
    )


# ============================================================================
# PLACEMENT
# ============================================================================


@router.post(
    "/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED
)
async def create_order(
    payload: OrderCreate,
    scope: StoreScope = Depends(get_store_scope),
    db: AsyncSession = Depends(get_async_db),
):
    """Validate stock, price (wholesale-aware), debit stock and create the order."""
    return await order_assembler.create_order(db, scope, payload)


# ============================================================================
# LOOKUPS
# ============================================================================


@router.get("/orders", response_model=OrderListResponse)
async def list_orders(
    user_id: Optional[str] = Query(None),
    guest_id: Optional[str] = Query(None),
    order_status: Optional[OrderStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=PAGE_SIZE_MAX),
    scope: StoreScope = Depends(get_store_scope),
    db: AsyncSession = Depends(get_async_db),
):
    orders, total = await order_lifecycle.list_orders(
        db,
        scope,
        user_id=user_id,
        guest_id=guest_id,
        status=order_status,
        page=page,
        page_size=page_size,
    )
    return _page(orders, total, page, page_size)


@router.get("/orders/number/{order_number}", response_model=OrderResponse)
async def get_order_by_number(
    order_number: str,
    scope: StoreScope = Depends(get_store_scope),
    db: AsyncSession = Depends(get_async_db),
):
    return await order_lifecycle.get_order_by_number(db, scope, order_number)


@router.get("/orders/guest/{guest_id}", response_model=OrderListResponse)
async def list_guest_orders(
    guest_id: str,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=PAGE_SIZE_MAX),
    scope: StoreScope = Depends(get_store_scope),
    db: AsyncSession = Depends(get_async_db),
):
    """Order history of a guest buyer."""
    orders, total = await order_lifecycle.list_orders(
        db, scope, guest_id=guest_id, page=page, page_size=page_size
    )
    return _page(orders, total, page, page_size)


@router.post(
    "/orders/guest/{guest_id}/claim", response_model=GuestOrderClaimResponse
)
async def claim_guest_orders(
    guest_id: str,
    payload: GuestOrderClaimRequest,
    scope: StoreScope = Depends(get_store_scope),
    db: AsyncSession = Depends(get_async_db),
):
    """Attach a guest's orders to the account they registered."""
    claimed = await order_lifecycle.claim_guest_orders(
        db, scope, guest_id=guest_id, user_id=payload.user_id
    )
    return GuestOrderClaimResponse(
        guest_id=guest_id, user_id=payload.user_id, claimed=claimed
    )


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: uuid.UUID,
    scope: StoreScope = Depends(get_store_scope),
    db: AsyncSession = Depends(get_async_db),
):
    return await order_lifecycle.get_order(db, scope, order_id)


# ============================================================================
# STATUS CHANGES
# ============================================================================


@router.put("/orders/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    scope: StoreScope = Depends(get_store_scope),
    db: AsyncSession = Depends(get_async_db),
):
    """Store-side status update. Moving to cancelled restocks the order."""
    return await order_lifecycle.update_status(
        db, scope, order_id, payload.status, notes=payload.notes
    )


@router.put("/orders/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: uuid.UUID,
    payload: OrderCancelRequest,
    scope: StoreScope = Depends(get_store_scope),
    db: AsyncSession = Depends(get_async_db),
):
    """Buyer cancellation of a pending or confirmed order."""
    return await order_lifecycle.cancel_order(
        db,
        scope,
        order_id,
        user_id=payload.user,
        guest_id=payload.guest_id,
        reason=payload.reason,
    )
