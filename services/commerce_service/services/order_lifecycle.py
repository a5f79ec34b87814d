"""Order lifecycle: status transitions, cancellation with restock, lookups."""

import uuid
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.commerce_service.errors import (
    InvalidStatusTransition,
    OrderAccessDenied,
    OrderNotFound,
    PersistenceError,
)
from services.commerce_service.models import Order, OrderStatus, PaymentStatus
from services.commerce_service.scope import StoreScope
from services.commerce_service.services.stock_ledger import credit_line
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

# Fulfilment moves forward along this chain; steps may be skipped
FULFILMENT_FLOW = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
]
BUYER_CANCELLABLE = {OrderStatus.PENDING, OrderStatus.CONFIRMED}


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    if current in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
        return False
    if new == OrderStatus.CANCELLED:
        return current != OrderStatus.DELIVERED
    if new == OrderStatus.REFUNDED:
        return current == OrderStatus.DELIVERED
    if current in FULFILMENT_FLOW and new in FULFILMENT_FLOW:
        return FULFILMENT_FLOW.index(new) > FULFILMENT_FLOW.index(current)
    return False


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_order(
    db: AsyncSession,
    scope: StoreScope,
    order_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> Order:
    query = (
        select(Order)
        .where(Order.id == order_id, Order.store_id == scope.store_id)
        .options(selectinload(Order.items))
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    order = result.scalar_one_or_none()
    if order is None:
        raise OrderNotFound(order_id)
    return order


async def get_order_by_number(
    db: AsyncSession, scope: StoreScope, order_number: str
) -> Order:
    result = await db.execute(
        select(Order)
        .where(
            Order.store_id == scope.store_id,
            Order.order_number == order_number.strip().upper(),
        )
        .options(selectinload(Order.items))
    )
    order = result.scalar_one_or_none()
    if order is None:
        raise OrderNotFound(order_number)
    return order


async def list_orders(
    db: AsyncSession,
    scope: StoreScope,
    *,
    user_id: Optional[str] = None,
    guest_id: Optional[str] = None,
    status: Optional[OrderStatus] = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Order], int]:
    """Return one page of the store's orders, newest first, and the total count."""
    filters = [Order.store_id == scope.store_id]
    if user_id:
        filters.append(Order.user_id == user_id)
    if guest_id:
        filters.append(Order.guest_id == guest_id)
    if status:
        filters.append(Order.status == status)

    total = (
        await db.execute(select(func.count()).select_from(Order).where(*filters))
    ).scalar_one()
    result = await db.execute(
        select(Order)
        .where(*filters)
        .options(selectinload(Order.items))
        .order_by(Order.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


async def _restock(db: AsyncSession, scope: StoreScope, order: Order, reason: str):
    for item in order.items:
        if item.product_id is None:
            logger.warning(
                "Order %s line %s has no product; not restocked",
                order.order_number,
                item.product_name,
            )
            continue
        keys = [
            (selection["specification_id"], selection["value_id"])
            for selection in item.selected_specifications or []
        ]
        await credit_line(
            db,
            scope,
            product_id=item.product_id,
            quantity=item.quantity,
            specification_keys=keys,
            order_id=order.id,
            reason=reason,
        )


async def _apply_transition(
    db: AsyncSession,
    scope: StoreScope,
    order: Order,
    new_status: OrderStatus,
    *,
    reason: Optional[str] = None,
) -> Order:
    previous = order.status
    try:
        if new_status == OrderStatus.CANCELLED:
            await _restock(db, scope, order, reason or "Order cancelled")
            order.cancelled_at = utc_now()
            order.cancellation_reason = reason
        elif new_status == OrderStatus.DELIVERED:
            order.actual_delivery_date = utc_now()
        elif new_status == OrderStatus.REFUNDED:
            order.payment_status = PaymentStatus.REFUNDED
        order.status = new_status
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to move order %s to %s", order.id, new_status.value)
        raise PersistenceError() from exc

    logger.info(
        "Order %s moved %s -> %s", order.order_number, previous.value, new_status.value
    )
    return await get_order(db, scope, order.id)


async def update_status(
    db: AsyncSession,
    scope: StoreScope,
    order_id: uuid.UUID,
    new_status: OrderStatus,
    *,
    notes: Optional[str] = None,
) -> Order:
    """Store-side status change. Cancelling restores stock to both pools."""
    order = await get_order(db, scope, order_id, for_update=True)
    if not can_transition(order.status, new_status):
        raise InvalidStatusTransition(order.status.value, new_status.value)
    if notes:
        order.admin_notes = notes
    return await _apply_transition(db, scope, order, new_status, reason=notes)


async def cancel_order(
    db: AsyncSession,
    scope: StoreScope,
    order_id: uuid.UUID,
    *,
    user_id: Optional[str] = None,
    guest_id: Optional[str] = None,
    reason: Optional[str] = None,
) -> Order:
    """Buyer cancellation, allowed while the order is pending or confirmed."""
    order = await get_order(db, scope, order_id, for_update=True)
    owns = (user_id is not None and order.user_id == user_id) or (
        guest_id is not None and order.guest_id == guest_id
    )
    if not owns:
        raise OrderAccessDenied(order_id)
    if order.status not in BUYER_CANCELLABLE:
        raise InvalidStatusTransition(order.status.value, OrderStatus.CANCELLED.value)
    return await _apply_transition(
        db, scope, order, OrderStatus.CANCELLED, reason=reason
    )


async def claim_guest_orders(
    db: AsyncSession, scope: StoreScope, *, guest_id: str, user_id: str
) -> int:
    """Attach a guest's unclaimed orders in this store to a registered user."""
    result = await db.execute(
        update(Order)
        .where(
            Order.store_id == scope.store_id,
            Order.guest_id == guest_id,
            Order.user_id.is_(None),
        )
        .values(user_id=user_id, updated_at=utc_now())
    )
    await db.commit()
    logger.info(
        "Claimed %d guest orders of %s for user %s in store %s",
        result.rowcount,
        guest_id,
        user_id,
        scope.store_id,
    )
    return result.rowcount
