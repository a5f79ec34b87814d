"""Price resolution, wholesale-aware.

Regular buyers pay ``price`` plus the modifiers of their selected
specification values. An eligible wholesaler (Active and verified) pays the
reference price (``compare_at_price`` when positive, else ``price``) plus the
same modifiers, less their discount fraction. Amounts are rounded half-up to
cents.
"""

import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from libs.common.logging import get_logger
from services.commerce_service.errors import ProductNotFound
from services.commerce_service.models import Product, SpecificationValue, Wholesaler
from services.commerce_service.schemas import CartLineInput
from services.commerce_service.scope import StoreScope
from services.commerce_service.services.stock_validator import (
    load_products,
    resolve_specifications,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0")


def money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricedLine:
    product_id: uuid.UUID
    product_name: str
    quantity: int
    unit_price: Decimal
    regular_unit_price: Decimal
    line_total: Decimal
    wholesale_applied: bool
    discount_rate: Optional[Decimal]

    @property
    def regular_line_total(self) -> Decimal:
        return money(self.regular_unit_price * self.quantity)


@dataclass(frozen=True)
class PriceQuote:
    lines: list[PricedLine]
    subtotal: Decimal
    regular_subtotal: Decimal
    wholesale_applied: bool
    discount_rate: Optional[Decimal]

    @property
    def discount_amount(self) -> Decimal:
        """Wholesale savings against regular prices, never negative."""
        return max(money(self.regular_subtotal - self.subtotal), ZERO)


# ---------------------------------------------------------------------------
# Wholesaler lookup
# ---------------------------------------------------------------------------


async def find_wholesaler_by_user(
    db: AsyncSession, scope: StoreScope, user_id: str
) -> Optional[Wholesaler]:
    """A user may hold more than one record; the verified, oldest one wins."""
    result = await db.execute(
        select(Wholesaler)
        .where(Wholesaler.store_id == scope.store_id, Wholesaler.user_id == user_id)
        .order_by(
            Wholesaler.is_verified.desc(), Wholesaler.created_at, Wholesaler.id
        )
    )
    return result.scalars().first()


async def find_wholesaler_by_email(
    db: AsyncSession, scope: StoreScope, email: str
) -> Optional[Wholesaler]:
    result = await db.execute(
        select(Wholesaler).where(
            Wholesaler.store_id == scope.store_id,
            func.lower(Wholesaler.email) == email.strip().lower(),
        )
    )
    return result.scalar_one_or_none()


async def resolve_wholesaler(
    db: AsyncSession,
    scope: StoreScope,
    *,
    user_id: Optional[str] = None,
    email: Optional[str] = None,
) -> Optional[Wholesaler]:
    """Return the buyer's wholesaler record if it is eligible for discounts.

    Looks up by user id first, then by email, so a guest checking out with a
    registered wholesaler email is priced as that wholesaler. A miss is not an
    error.
    """
    wholesaler = None
    if user_id:
        wholesaler = await find_wholesaler_by_user(db, scope, user_id)
    if wholesaler is None and email:
        wholesaler = await find_wholesaler_by_email(db, scope, email)
    if wholesaler is None or not wholesaler.is_eligible:
        return None
    return wholesaler


# ---------------------------------------------------------------------------
# Line pricing
# ---------------------------------------------------------------------------


def reference_price(product: Product) -> Decimal:
    """Price a wholesale discount applies to; a zero compare-at counts as unset."""
    if product.compare_at_price is not None and product.compare_at_price > 0:
        return Decimal(str(product.compare_at_price))
    return Decimal(str(product.price))


def price_line(
    product: Product,
    quantity: int,
    specification_values: Sequence[SpecificationValue] = (),
    wholesaler: Optional[Wholesaler] = None,
) -> PricedLine:
    modifiers = sum(
        (Decimal(str(value.price or 0)) for value in specification_values), ZERO
    )
    regular_unit_price = money(max(Decimal(str(product.price)) + modifiers, ZERO))

    if wholesaler is not None and wholesaler.is_eligible:
        reference = reference_price(product)
        rate = Decimal(str(wholesaler.discount))
        unit_price = money(
            max((reference + modifiers) * (1 - rate), ZERO)
        )
        wholesale_applied = True
        discount_rate: Optional[Decimal] = rate
    else:
        unit_price = regular_unit_price
        wholesale_applied = False
        discount_rate = None

    return PricedLine(
        product_id=product.id,
        product_name=product.name,
        quantity=quantity,
        unit_price=unit_price,
        regular_unit_price=regular_unit_price,
        line_total=money(unit_price * quantity),
        wholesale_applied=wholesale_applied,
        discount_rate=discount_rate,
    )


def summarize(
    lines: list[PricedLine], wholesaler: Optional[Wholesaler] = None
) -> PriceQuote:
    applied = wholesaler is not None and any(line.wholesale_applied for line in lines)
    return PriceQuote(
        lines=lines,
        subtotal=money(sum((line.line_total for line in lines), ZERO)),
        regular_subtotal=money(
            sum((line.regular_line_total for line in lines), ZERO)
        ),
        wholesale_applied=applied,
        discount_rate=Decimal(str(wholesaler.discount)) if applied else None,
    )


async def quote_items(
    db: AsyncSession,
    scope: StoreScope,
    items: Sequence[CartLineInput],
    *,
    user_id: Optional[str] = None,
    email: Optional[str] = None,
) -> PriceQuote:
    """Price a list of lines without checking or touching stock."""
    wholesaler = await resolve_wholesaler(db, scope, user_id=user_id, email=email)
    products = await load_products(db, scope, (item.product for item in items))

    lines = []
    for item in items:
        product = products.get(item.product)
        if product is None:
            raise ProductNotFound(item.product)
        values = resolve_specifications(product, item.selected_specifications)
        lines.append(price_line(product, item.quantity, values, wholesaler))

    quote = summarize(lines, wholesaler)
    if quote.wholesale_applied:
        logger.info(
            "Wholesale quote for user %s in store %s: rate=%s subtotal=%s",
            user_id,
            scope.store_id,
            quote.discount_rate,
            quote.subtotal,
        )
    return quote
