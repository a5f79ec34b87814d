"""Stock ledger: atomic debit/credit of the general and specification pools.

A product has two independent pools. ``Product.stock`` is the general count and
every ``SpecificationValue.quantity`` is its own count. An order line with
selected specifications is debited from both.

Debits are conditional updates (``... WHERE stock >= :quantity``) so two
requests racing for the last unit cannot both succeed. None of these functions
commit; the caller owns the transaction and rolls it back on error.
"""

import uuid
from collections.abc import Sequence
from typing import Optional

from libs.common.logging import get_logger
from services.commerce_service.errors import (
    InsufficientGeneralStock,
    InsufficientSpecificationStock,
    ProductNotFound,
)
from services.commerce_service.models import (
    InventoryMovement,
    InventoryMovementType,
    Product,
    SpecificationValue,
    StockStatus,
)
from services.commerce_service.scope import StoreScope
from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

# (specification_id, value_id)
SpecificationKey = tuple[str, str]


# ---------------------------------------------------------------------------
# Debit
# ---------------------------------------------------------------------------


async def debit_line(
    db: AsyncSession,
    scope: StoreScope,
    *,
    product_id: uuid.UUID,
    quantity: int,
    specification_keys: Sequence[SpecificationKey] = (),
    order_id: Optional[uuid.UUID] = None,
) -> None:
    """Take ``quantity`` units out of the general pool and every selected pool.

    Raises the same insufficient-stock errors the validator raises when a
    conditional update matches no row (stock moved since validation).
    """
    result = await db.execute(
        update(Product)
        .where(
            Product.id == product_id,
            Product.store_id == scope.store_id,
            Product.stock >= quantity,
        )
        .values(
            stock=Product.stock - quantity,
            sold_count=Product.sold_count + quantity,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        product = await _current_product(db, scope, product_id)
        logger.warning(
            "Stock debit lost for product %s (requested=%d, available=%d)",
            product_id,
            quantity,
            product.stock,
        )
        raise InsufficientGeneralStock(
            product_id, product.name, quantity, product.stock
        )
    await record_movement(
        db,
        scope,
        product_id=product_id,
        movement_type=InventoryMovementType.SALE,
        quantity=-quantity,
        order_id=order_id,
    )

    for specification_id, value_id in specification_keys:
        result = await db.execute(
            update(SpecificationValue)
            .where(
                SpecificationValue.product_id == product_id,
                SpecificationValue.specification_id == specification_id,
                SpecificationValue.value_id == value_id,
                SpecificationValue.quantity >= quantity,
            )
            .values(quantity=SpecificationValue.quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            value = await _current_specification_value(
                db, product_id, specification_id, value_id
            )
            available = value.quantity if value is not None else 0
            label = (
                value.label if value is not None else f"{specification_id}/{value_id}"
            )
            logger.warning(
                "Specification debit lost for product %s %s (requested=%d, available=%d)",
                product_id,
                label,
                quantity,
                available,
            )
            raise InsufficientSpecificationStock(
                product_id, specification_id, value_id, label, quantity, available
            )
        await record_movement(
            db,
            scope,
            product_id=product_id,
            movement_type=InventoryMovementType.SALE,
            quantity=-quantity,
            specification_key=(specification_id, value_id),
            order_id=order_id,
        )

    logger.info(
        "Debited %d of product %s (specifications=%d)",
        quantity,
        product_id,
        len(specification_keys),
    )


# ---------------------------------------------------------------------------
# Credit
# ---------------------------------------------------------------------------


async def credit_line(
    db: AsyncSession,
    scope: StoreScope,
    *,
    product_id: uuid.UUID,
    quantity: int,
    specification_keys: Sequence[SpecificationKey] = (),
    order_id: Optional[uuid.UUID] = None,
    reason: Optional[str] = None,
) -> list[SpecificationKey]:
    """Return ``quantity`` units to the general pool and every selected pool.

    Specification values deleted since the sale are skipped; their keys are
    returned so the caller can report them. A product deleted since the sale is
    skipped entirely.
    """
    result = await db.execute(
        update(Product)
        .where(Product.id == product_id, Product.store_id == scope.store_id)
        .values(
            stock=Product.stock + quantity,
            sold_count=case(
                (Product.sold_count >= quantity, Product.sold_count - quantity),
                else_=0,
            ),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.warning(
            "Product %s no longer exists; %d units not restocked", product_id, quantity
        )
        return list(specification_keys)
    await record_movement(
        db,
        scope,
        product_id=product_id,
        movement_type=InventoryMovementType.RETURN,
        quantity=quantity,
        order_id=order_id,
        notes=reason,
    )

    skipped: list[SpecificationKey] = []
    for specification_id, value_id in specification_keys:
        result = await db.execute(
            update(SpecificationValue)
            .where(
                SpecificationValue.product_id == product_id,
                SpecificationValue.specification_id == specification_id,
                SpecificationValue.value_id == value_id,
            )
            .values(quantity=SpecificationValue.quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                "Specification %s/%s of product %s no longer exists; not restocked",
                specification_id,
                value_id,
                product_id,
            )
            skipped.append((specification_id, value_id))
            continue
        await record_movement(
            db,
            scope,
            product_id=product_id,
            movement_type=InventoryMovementType.RETURN,
            quantity=quantity,
            specification_key=(specification_id, value_id),
            order_id=order_id,
            notes=reason,
        )

    logger.info("Restocked %d of product %s", quantity, product_id)
    return skipped


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------


async def record_movement(
    db: AsyncSession,
    scope: StoreScope,
    *,
    product_id: uuid.UUID,
    movement_type: InventoryMovementType,
    quantity: int,
    specification_key: Optional[SpecificationKey] = None,
    order_id: Optional[uuid.UUID] = None,
    notes: Optional[str] = None,
) -> InventoryMovement:
    specification_id, value_id = specification_key or (None, None)
    movement = InventoryMovement(
        store_id=scope.store_id,
        product_id=product_id,
        specification_id=specification_id,
        value_id=value_id,
        movement_type=movement_type,
        quantity=quantity,
        reference_type="order" if order_id else None,
        reference_id=order_id,
        notes=notes,
    )
    db.add(movement)
    return movement


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------


def classify_stock(quantity: int, low_stock_threshold: int) -> StockStatus:
    if quantity <= 0:
        return StockStatus.OUT_OF_STOCK
    if quantity <= low_stock_threshold:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


def stock_status(product: Product) -> dict:
    """Summarize both pools of a product with its specification values loaded."""
    threshold = product.low_stock_threshold
    specifications = [
        {
            "specification_id": value.specification_id,
            "value_id": value.value_id,
            "title": value.title,
            "value": value.value,
            "quantity": value.quantity,
            "stock_status": classify_stock(value.quantity, threshold),
        }
        for value in product.specification_values
    ]
    return {
        "product_id": product.id,
        "name": product.name,
        "stock": product.stock,
        "stock_status": classify_stock(product.stock, threshold),
        "low_stock_threshold": threshold,
        "sold_count": product.sold_count,
        "total_specification_quantity": sum(
            value.quantity for value in product.specification_values
        ),
        "specifications": specifications,
    }


async def _current_product(
    db: AsyncSession, scope: StoreScope, product_id: uuid.UUID
) -> Product:
    result = await db.execute(
        select(Product)
        .where(Product.id == product_id, Product.store_id == scope.store_id)
        .execution_options(populate_existing=True)
    )
    product = result.scalar_one_or_none()
    if product is None:
        raise ProductNotFound(product_id)
    return product


async def _current_specification_value(
    db: AsyncSession, product_id: uuid.UUID, specification_id: str, value_id: str
) -> Optional[SpecificationValue]:
    result = await db.execute(
        select(SpecificationValue)
        .where(
            SpecificationValue.product_id == product_id,
            SpecificationValue.specification_id == specification_id,
            SpecificationValue.value_id == value_id,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()
