"""Unit tests for order status changes, cancellation and guest claims."""

from decimal import Decimal

import pytest
from services.commerce_service.errors import (
    InvalidStatusTransition,
    OrderAccessDenied,
    OrderNotFound,
)
from services.commerce_service.models import (
    OrderStatus,
    PaymentStatus,
    SpecificationValue,
)
from services.commerce_service.schemas import (
    CartLineInput,
    OrderCreate,
    SelectedSpecification,
)
from services.commerce_service.scope import StoreScope
from services.commerce_service.services.order_assembler import create_order
from services.commerce_service.services.order_lifecycle import (
    can_transition,
    cancel_order,
    claim_guest_orders,
    get_order,
    get_order_by_number,
    list_orders,
    update_status,
)
from sqlalchemy import delete
from tests.factories import seed_product, seed_store, spec_quantity_of, stock_of

LARGE = SelectedSpecification(specification_id="size", value_id="large")


async def _placed_order(db, scope, *, quantity=5, user="buyer-1", guest_id=None):
    product = await seed_product(db, scope.store_id, specifications=[{}])
    order = await create_order(
        db,
        scope,
        OrderCreate(
            user=user,
            guest_id=guest_id,
            cart_items=[
                CartLineInput(
                    product=product.id,
                    quantity=quantity,
                    selected_specifications=[LARGE],
                )
            ],
        ),
    )
    return order, product


# ---------------------------------------------------------------------------
# Transition rules
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize(
    "current,new,allowed",
    [
        (OrderStatus.PENDING, OrderStatus.CONFIRMED, True),
        (OrderStatus.PENDING, OrderStatus.SHIPPED, True),
        (OrderStatus.SHIPPED, OrderStatus.PROCESSING, False),
        (OrderStatus.SHIPPED, OrderStatus.CANCELLED, True),
        (OrderStatus.DELIVERED, OrderStatus.CANCELLED, False),
        (OrderStatus.DELIVERED, OrderStatus.REFUNDED, True),
        (OrderStatus.CONFIRMED, OrderStatus.REFUNDED, False),
        (OrderStatus.CANCELLED, OrderStatus.PENDING, False),
        (OrderStatus.REFUNDED, OrderStatus.DELIVERED, False),
        (OrderStatus.PENDING, OrderStatus.PENDING, False),
    ],
)
def test_can_transition(current, new, allowed):
    assert can_transition(current, new) is allowed


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_buyer_cancellation_restores_both_pools(db_session, scope):
    order, product = await _placed_order(db_session, scope)
    assert await stock_of(db_session, product.id) == 45

    cancelled = await cancel_order(
        db_session, scope, order.id, user_id="buyer-1", reason="Changed my mind"
    )

    assert cancelled.status == OrderStatus.CANCELLED
    assert cancelled.cancellation_reason == "Changed my mind"
    assert cancelled.cancelled_at is not None
    assert await stock_of(db_session, product.id) == 50
    assert await spec_quantity_of(db_session, product.id, "size", "large") == 20


@pytest.mark.asyncio
@pytest.mark.unit
async def test_guest_can_cancel_own_order(db_session, scope):
    order, product = await _placed_order(db_session, scope, user=None, guest_id="g-1")

    cancelled = await cancel_order(db_session, scope, order.id, guest_id="g-1")

    assert cancelled.status == OrderStatus.CANCELLED
    assert await stock_of(db_session, product.id) == 50


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cancellation_by_another_buyer_is_denied(db_session, scope):
    order, product = await _placed_order(db_session, scope)

    with pytest.raises(OrderAccessDenied) as exc_info:
        await cancel_order(db_session, scope, order.id, user_id="buyer-2")

    assert exc_info.value.status_code == 403
    assert await stock_of(db_session, product.id) == 45


@pytest.mark.asyncio
@pytest.mark.unit
async def test_buyer_cannot_cancel_shipped_order(db_session, scope):
    order, _ = await _placed_order(db_session, scope)
    await update_status(db_session, scope, order.id, OrderStatus.SHIPPED)

    with pytest.raises(InvalidStatusTransition):
        await cancel_order(db_session, scope, order.id, user_id="buyer-1")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_store_cancellation_of_shipped_order_restocks(db_session, scope):
    order, product = await _placed_order(db_session, scope)
    await update_status(db_session, scope, order.id, OrderStatus.SHIPPED)

    cancelled = await update_status(
        db_session, scope, order.id, OrderStatus.CANCELLED, notes="Lost in transit"
    )

    assert cancelled.status == OrderStatus.CANCELLED
    assert cancelled.admin_notes == "Lost in transit"
    assert await stock_of(db_session, product.id) == 50


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cancellation_skips_deleted_specification_value(db_session, scope):
    order, product = await _placed_order(db_session, scope)
    await db_session.execute(
        delete(SpecificationValue).where(SpecificationValue.product_id == product.id)
    )
    await db_session.commit()

    cancelled = await update_status(
        db_session, scope, order.id, OrderStatus.CANCELLED
    )

    assert cancelled.status == OrderStatus.CANCELLED
    assert await stock_of(db_session, product.id) == 50


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cancelled_order_cannot_be_cancelled_again(db_session, scope):
    order, product = await _placed_order(db_session, scope)
    await update_status(db_session, scope, order.id, OrderStatus.CANCELLED)

    with pytest.raises(InvalidStatusTransition):
        await update_status(db_session, scope, order.id, OrderStatus.CANCELLED)

    assert await stock_of(db_session, product.id) == 50


# ---------------------------------------------------------------------------
# Fulfilment
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_delivery_sets_delivery_date(db_session, scope):
    order, _ = await _placed_order(db_session, scope)

    delivered = await update_status(db_session, scope, order.id, OrderStatus.DELIVERED)

    assert delivered.status == OrderStatus.DELIVERED
    assert delivered.actual_delivery_date is not None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_refund_marks_payment_without_restocking(db_session, scope):
    order, product = await _placed_order(db_session, scope)
    await update_status(db_session, scope, order.id, OrderStatus.DELIVERED)

    refunded = await update_status(db_session, scope, order.id, OrderStatus.REFUNDED)

    assert refunded.status == OrderStatus.REFUNDED
    assert refunded.payment_status == PaymentStatus.REFUNDED
    assert await stock_of(db_session, product.id) == 45


@pytest.mark.asyncio
@pytest.mark.unit
async def test_backwards_transition_is_rejected(db_session, scope):
    order, _ = await _placed_order(db_session, scope)
    await update_status(db_session, scope, order.id, OrderStatus.PROCESSING)

    with pytest.raises(InvalidStatusTransition) as exc_info:
        await update_status(db_session, scope, order.id, OrderStatus.CONFIRMED)

    assert exc_info.value.details == {
        "current_status": "processing",
        "requested_status": "confirmed",
    }


# ---------------------------------------------------------------------------
# Lookups and guest claims
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_lookup_by_number_is_case_insensitive(db_session, scope):
    order, _ = await _placed_order(db_session, scope)

    found = await get_order_by_number(db_session, scope, order.order_number.lower())

    assert found.id == order.id


@pytest.mark.asyncio
@pytest.mark.unit
async def test_orders_are_scoped_to_their_store(db_session, scope):
    order, _ = await _placed_order(db_session, scope)
    other = await seed_store(db_session)

    with pytest.raises(OrderNotFound):
        await get_order(db_session, StoreScope(store_id=other.id), order.id)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_guest_orders_can_be_claimed(db_session, scope):
    first, _ = await _placed_order(db_session, scope, user=None, guest_id="g-1")
    await _placed_order(db_session, scope, quantity=1, user=None, guest_id="g-1")
    await _placed_order(db_session, scope, quantity=1, user=None, guest_id="g-2")

    claimed = await claim_guest_orders(
        db_session, scope, guest_id="g-1", user_id="user-9"
    )

    assert claimed == 2
    orders, total = await list_orders(db_session, scope, user_id="user-9")
    assert total == 2
    assert {order.guest_id for order in orders} == {"g-1"}
    assert all(order.user_id == "user-9" for order in orders)

    # Claimed orders stay cancellable by the guest id that placed them
    cancelled = await cancel_order(db_session, scope, first.id, guest_id="g-1")
    assert cancelled.status == OrderStatus.CANCELLED


@pytest.mark.asyncio
@pytest.mark.unit
async def test_list_orders_paginates_and_filters(db_session, scope):
    for _ in range(3):
        await _placed_order(db_session, scope, quantity=1)
    order, _ = await _placed_order(db_session, scope, quantity=1)
    await update_status(db_session, scope, order.id, OrderStatus.CONFIRMED)

    page, total = await list_orders(
        db_session, scope, user_id="buyer-1", page=2, page_size=3
    )
    assert total == 4
    assert len(page) == 1

    confirmed, total = await list_orders(
        db_session, scope, status=OrderStatus.CONFIRMED
    )
    assert total == 1
    assert confirmed[0].id == order.id
    assert confirmed[0].total == Decimal("100.00")
