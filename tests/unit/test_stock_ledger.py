"""Unit tests for the stock ledger.

Tests call the ledger functions directly with the db_session fixture and read
stock back with plain column selects.
"""

import uuid

import pytest
from services.commerce_service.errors import (
    InsufficientGeneralStock,
    InsufficientSpecificationStock,
)
from services.commerce_service.models import (
    InventoryMovement,
    InventoryMovementType,
    Product,
    StockStatus,
)
from services.commerce_service.services.stock_ledger import (
    classify_stock,
    credit_line,
    debit_line,
    stock_status,
)
from sqlalchemy import select
from tests.factories import seed_product, spec_quantity_of, stock_of

LARGE = ("size", "large")


async def _movements(db, product_id):
    result = await db.execute(
        select(InventoryMovement)
        .where(InventoryMovement.product_id == product_id)
        .order_by(InventoryMovement.quantity)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# debit_line
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_debit_takes_from_both_pools(db_session, scope):
    product = await seed_product(db_session, scope.store_id, specifications=[{}])
    order_id = uuid.uuid4()

    await debit_line(
        db_session,
        scope,
        product_id=product.id,
        quantity=5,
        specification_keys=[LARGE],
        order_id=order_id,
    )
    await db_session.commit()

    assert await stock_of(db_session, product.id) == 45
    assert await spec_quantity_of(db_session, product.id, *LARGE) == 15

    sold = await db_session.execute(
        select(Product.sold_count).where(Product.id == product.id)
    )
    assert sold.scalar_one() == 5

    movements = await _movements(db_session, product.id)
    assert len(movements) == 2
    assert all(m.movement_type == InventoryMovementType.SALE for m in movements)
    assert all(m.quantity == -5 for m in movements)
    assert all(m.reference_id == order_id for m in movements)
    assert {m.specification_id for m in movements} == {None, "size"}


@pytest.mark.asyncio
@pytest.mark.unit
async def test_debit_refuses_to_go_below_zero(db_session, scope):
    product = await seed_product(db_session, scope.store_id, stock=2)
    product_id = product.id

    with pytest.raises(InsufficientGeneralStock) as exc_info:
        await debit_line(db_session, scope, product_id=product_id, quantity=3)
    await db_session.rollback()

    assert exc_info.value.details["available"] == 2
    assert await stock_of(db_session, product_id) == 2


@pytest.mark.asyncio
@pytest.mark.unit
async def test_debit_reports_specification_shortfall(db_session, scope):
    product = await seed_product(
        db_session, scope.store_id, specifications=[{"quantity": 1}]
    )
    product_id = product.id

    with pytest.raises(InsufficientSpecificationStock) as exc_info:
        await debit_line(
            db_session,
            scope,
            product_id=product_id,
            quantity=2,
            specification_keys=[LARGE],
        )
    await db_session.rollback()

    assert exc_info.value.details["available"] == 1
    assert "Size Large" in exc_info.value.message
    # The general debit made earlier in the same transaction is rolled back
    assert await stock_of(db_session, product_id) == 50
    assert await spec_quantity_of(db_session, product_id, *LARGE) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_debit_loses_race_for_last_unit(db_session, scope):
    """A debit after another buyer took the last unit fails instead of overselling."""
    product = await seed_product(db_session, scope.store_id, stock=1)
    product_id = product.id

    await debit_line(db_session, scope, product_id=product_id, quantity=1)
    await db_session.commit()

    with pytest.raises(InsufficientGeneralStock) as exc_info:
        await debit_line(db_session, scope, product_id=product_id, quantity=1)
    await db_session.rollback()

    assert exc_info.value.details["available"] == 0
    assert await stock_of(db_session, product_id) == 0


# ---------------------------------------------------------------------------
# credit_line
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_credit_restores_both_pools(db_session, scope):
    product = await seed_product(db_session, scope.store_id, specifications=[{}])
    await debit_line(
        db_session, scope, product_id=product.id, quantity=4, specification_keys=[LARGE]
    )
    await db_session.commit()

    skipped = await credit_line(
        db_session,
        scope,
        product_id=product.id,
        quantity=4,
        specification_keys=[LARGE],
        reason="Order cancelled",
    )
    await db_session.commit()

    assert skipped == []
    assert await stock_of(db_session, product.id) == 50
    assert await spec_quantity_of(db_session, product.id, *LARGE) == 20

    returns = [
        m
        for m in await _movements(db_session, product.id)
        if m.movement_type == InventoryMovementType.RETURN
    ]
    assert len(returns) == 2
    assert all(m.notes == "Order cancelled" for m in returns)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_credit_skips_missing_specification(db_session, scope):
    product = await seed_product(db_session, scope.store_id, stock=10)

    skipped = await credit_line(
        db_session,
        scope,
        product_id=product.id,
        quantity=2,
        specification_keys=[("color", "teal")],
    )
    await db_session.commit()

    assert skipped == [("color", "teal")]
    assert await stock_of(db_session, product.id) == 12


@pytest.mark.asyncio
@pytest.mark.unit
async def test_credit_of_missing_product_skips_everything(db_session, scope):
    skipped = await credit_line(
        db_session,
        scope,
        product_id=uuid.uuid4(),
        quantity=2,
        specification_keys=[LARGE],
    )

    assert skipped == [LARGE]


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize(
    "quantity,expected",
    [
        (0, StockStatus.OUT_OF_STOCK),
        (-1, StockStatus.OUT_OF_STOCK),
        (5, StockStatus.LOW_STOCK),
        (6, StockStatus.IN_STOCK),
    ],
)
def test_classify_stock(quantity, expected):
    assert classify_stock(quantity, 5) == expected


@pytest.mark.asyncio
@pytest.mark.unit
async def test_stock_status_summarizes_pools(db_session, scope):
    product = await seed_product(
        db_session,
        scope.store_id,
        stock=3,
        specifications=[
            {"quantity": 0},
            {"value_id": "small", "value": "Small", "quantity": 12},
        ],
    )

    summary = stock_status(product)

    assert summary["stock_status"] == StockStatus.LOW_STOCK
    assert summary["total_specification_quantity"] == 12
    statuses = {s["value_id"]: s["stock_status"] for s in summary["specifications"]}
    assert statuses == {
        "large": StockStatus.OUT_OF_STOCK,
        "small": StockStatus.IN_STOCK,
    }
