"""Order assembly: validate, price, debit and persist as one transaction.

Steps:
1. Resolve the buyer's wholesaler eligibility once.
2. Validate every line against both stock pools. The first failure rejects
   the whole order before any stock is touched.
3. Price every line and build the order totals.
4. Debit both pools per line with conditional updates.
5. Persist the order with its line snapshots and commit.

Steps 4 and 5 share one transaction; a debit lost to a concurrent order rolls
back every debit already applied for this order.
"""

import uuid
from collections.abc import Sequence
from dataclasses import dataclass

from libs.common.config import get_settings
from libs.common.logging import get_logger
from services.commerce_service.errors import (
    CommerceError,
    InsufficientGeneralStock,
    InsufficientSpecificationStock,
    PersistenceError,
    ProductNotFound,
    RequestValidationFailed,
)
from services.commerce_service.models import (
    Order,
    OrderItem,
    OrderStatus,
    SpecificationValue,
    Store,
)
from services.commerce_service.schemas import OrderCreate, SelectedSpecification
from services.commerce_service.scope import StoreScope
from services.commerce_service.services.order_lifecycle import get_order
from services.commerce_service.services.pricing import (
    PricedLine,
    money,
    price_line,
    resolve_wholesaler,
    summarize,
)
from services.commerce_service.services.stock_ledger import debit_line
from services.commerce_service.services.stock_validator import (
    ValidatedLine,
    load_products,
    selection_key,
    validate_line,
)
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

ORDER_NUMBER_ATTEMPTS = 10


@dataclass(frozen=True)
class OrderLine:
    product_id: uuid.UUID
    quantity: int
    selections: tuple[SelectedSpecification, ...] = ()


def collect_lines(request: OrderCreate) -> list[OrderLine]:
    """Normalize the request into order lines.

    ``cart_items`` are used when present, otherwise ``items`` (which carry no
    specifications). Lines for the same product and selection are merged.
    """
    if request.cart_items:
        raw = [
            OrderLine(item.product, item.quantity, tuple(item.selected_specifications))
            for item in request.cart_items
        ]
    else:
        raw = [OrderLine(item.product, item.quantity) for item in request.items]

    merged: dict[tuple[uuid.UUID, str], OrderLine] = {}
    for line in raw:
        key = (line.product_id, selection_key(line.selections))
        existing = merged.get(key)
        if existing is None:
            merged[key] = line
        else:
            merged[key] = OrderLine(
                existing.product_id,
                existing.quantity + line.quantity,
                existing.selections,
            )
    return list(merged.values())


def check_combined_demand(lines: Sequence[ValidatedLine]) -> None:
    """Check pools shared by several lines of the same order.

    Each line was validated on its own; two lines of one product with
    different selections still draw on the same general stock.
    """
    general: dict[uuid.UUID, int] = {}
    pools: dict[uuid.UUID, tuple[SpecificationValue, int]] = {}
    for line in lines:
        general[line.product.id] = general.get(line.product.id, 0) + line.quantity
        for value in line.specification_values:
            _, demanded = pools.get(value.id, (value, 0))
            pools[value.id] = (value, demanded + line.quantity)

    for line in lines:
        demanded = general[line.product.id]
        if demanded > line.product.stock:
            raise InsufficientGeneralStock(
                line.product.id, line.product.name, demanded, line.product.stock
            )
    for value, demanded in pools.values():
        if demanded > value.quantity:
            raise InsufficientSpecificationStock(
                value.product_id,
                value.specification_id,
                value.value_id,
                value.label,
                demanded,
                value.quantity,
            )


async def generate_unique_order_number(db: AsyncSession, scope: StoreScope) -> str:
    prefix = get_settings().ORDER_NUMBER_PREFIX
    for _ in range(ORDER_NUMBER_ATTEMPTS):
        candidate = Order.generate_order_number(prefix)
        result = await db.execute(
            select(Order.id).where(
                Order.store_id == scope.store_id, Order.order_number == candidate
            )
        )
        if result.scalar_one_or_none() is None:
            return candidate
    logger.error("Could not allocate an order number for store %s", scope.store_id)
    raise PersistenceError()


def _snapshot_selections(line: ValidatedLine) -> list[dict]:
    return [
        {
            "specification_id": value.specification_id,
            "value_id": value.value_id,
            "value": value.value,
            "title": value.title,
        }
        for value in line.specification_values
    ]


def _build_items(
    validated: Sequence[ValidatedLine], priced: Sequence[PricedLine]
) -> list[OrderItem]:
    return [
        OrderItem(
            product_id=line.product.id,
            position=position,
            product_name=line.product.name,
            sku=line.product.sku,
            selected_specifications=_snapshot_selections(line),
            quantity=line.quantity,
            unit_price=price.unit_price,
            regular_unit_price=price.regular_unit_price,
            line_total=price.line_total,
            wholesale_applied=price.wholesale_applied,
            discount_rate=price.discount_rate,
        )
        for position, (line, price) in enumerate(zip(validated, priced))
    ]


async def create_order(
    db: AsyncSession, scope: StoreScope, request: OrderCreate
) -> Order:
    """Create an order, or raise without having changed any stock."""
    settings = get_settings()

    if not request.user and not request.guest_id:
        raise RequestValidationFailed("Either user or guest_id is required")
    lines = collect_lines(request)
    if not lines:
        raise RequestValidationFailed("Order must contain at least one item")
    buyer = request.user or f"guest:{request.guest_id}"

    try:
        # 1. Wholesaler eligibility
        email = request.customer_email.lower() if request.customer_email else None
        wholesaler = await resolve_wholesaler(
            db, scope, user_id=request.user, email=email
        )

        # 2. Validate every line before touching stock
        products = await load_products(db, scope, (line.product_id for line in lines))
        validated: list[ValidatedLine] = []
        for line in lines:
            product = products.get(line.product_id)
            if product is None:
                raise ProductNotFound(line.product_id)
            validated.append(
                validate_line(scope, product, line.quantity, line.selections)
            )
        check_combined_demand(validated)

        # 3. Price
        priced = [
            price_line(line.product, line.quantity, line.specification_values, wholesaler)
            for line in validated
        ]
        quote = summarize(priced, wholesaler)
        shipping_cost = money(request.shipping_info.cost)
        tax_amount = money(quote.subtotal * settings.ORDER_TAX_RATE)
        total = money(quote.subtotal + tax_amount + shipping_cost)

        store = await db.get(Store, scope.store_id)
        currency = (
            request.currency
            or (store.currency if store is not None else None)
            or settings.DEFAULT_CURRENCY
        ).upper()

        order = Order(
            id=uuid.uuid4(),
            store_id=scope.store_id,
            order_number=await generate_unique_order_number(db, scope),
            user_id=request.user,
            guest_id=request.guest_id,
            customer_email=email,
            shipping_address=request.shipping_address,
            billing_address=request.billing_address,
            payment_method=request.payment_info.method,
            payment_status=request.payment_info.status,
            shipping_method=request.shipping_info.method,
            subtotal=quote.subtotal,
            discount_amount=quote.discount_amount,
            shipping_cost=shipping_cost,
            tax_amount=tax_amount,
            total=total,
            currency=currency,
            wholesaler_id=wholesaler.id if quote.wholesale_applied else None,
            wholesale_discount_rate=quote.discount_rate,
            status=OrderStatus.PENDING,
            notes=request.notes,
            is_gift=request.is_gift,
            gift_message=request.gift_message if request.is_gift else None,
            items=_build_items(validated, priced),
        )

        # 4. Debit both pools
        for line in validated:
            await debit_line(
                db,
                scope,
                product_id=line.product.id,
                quantity=line.quantity,
                specification_keys=line.specification_keys,
                order_id=order.id,
            )

        # 5. Persist
        db.add(order)
        await db.commit()
    except CommerceError as exc:
        await db.rollback()
        logger.info(
            "Order rejected for %s in store %s: %s", buyer, scope.store_id, exc.message
        )
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception(
            "Failed to persist order for %s in store %s", buyer, scope.store_id
        )
        raise PersistenceError() from exc

    logger.info(
        "Order %s created in store %s: lines=%d total=%s %s wholesale=%s",
        order.order_number,
        scope.store_id,
        len(validated),
        total,
        currency,
        quote.wholesale_applied,
    )
    return await get_order(db, scope, order.id)

