"""Stock validation for order and cart lines.

Validation never mutates anything. The order assembler validates every line
before the ledger is touched, so a rejected order leaves stock as it was.
"""

import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from services.commerce_service.errors import (
    InsufficientGeneralStock,
    InsufficientSpecificationStock,
    ProductNotFound,
    ProductUnavailable,
    RequestValidationFailed,
    SpecificationNotFound,
)
from services.commerce_service.models import Product, SpecificationValue
from services.commerce_service.schemas import SelectedSpecification
from services.commerce_service.scope import StoreScope
from services.commerce_service.services.stock_ledger import SpecificationKey
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload


@dataclass(frozen=True)
class ValidatedLine:
    """A line that fits both stock pools, with its specification values resolved."""

    product: Product
    quantity: int
    selections: tuple[SelectedSpecification, ...]
    specification_values: tuple[SpecificationValue, ...]

    @property
    def specification_keys(self) -> list[SpecificationKey]:
        return [
            (value.specification_id, value.value_id)
            for value in self.specification_values
        ]


async def load_products(
    db: AsyncSession, scope: StoreScope, product_ids: Iterable[uuid.UUID]
) -> dict[uuid.UUID, Product]:
    """Fetch the store's products with their specification values, keyed by id."""
    ids = set(product_ids)
    if not ids:
        return {}
    result = await db.execute(
        select(Product)
        .where(Product.id.in_(ids), Product.store_id == scope.store_id)
        .options(selectinload(Product.specification_values))
        .execution_options(populate_existing=True)
    )
    return {product.id: product for product in result.scalars().all()}


def resolve_specifications(
    product: Product, selections: Sequence[SelectedSpecification]
) -> tuple[SpecificationValue, ...]:
    """Map each selection to the product's specification value, in order.

    Raises ``SpecificationNotFound`` for the first selection the product does
    not carry.
    """
    available = product.specification_map()
    resolved = []
    seen: set[SpecificationKey] = set()
    for selection in selections:
        key = (selection.specification_id, selection.value_id)
        if key in seen:
            raise RequestValidationFailed(
                "The same specification value was selected twice",
                {
                    "product_id": str(product.id),
                    "specification_id": selection.specification_id,
                    "value_id": selection.value_id,
                },
            )
        seen.add(key)
        value = available.get(key)
        if value is None:
            raise SpecificationNotFound(product.id, *key)
        resolved.append(value)
    return tuple(resolved)


def validate_line(
    scope: StoreScope,
    product: Product,
    quantity: int,
    selections: Sequence[SelectedSpecification] = (),
) -> ValidatedLine:
    """Check one line against the product's general and specification stock.

    Selections are checked in request order, then general stock; the first
    failure is raised.
    """
    if product.store_id != scope.store_id:
        raise ProductNotFound(product.id)
    if not product.is_active:
        raise ProductUnavailable(product.id, product.name)
    if quantity < 1:
        raise RequestValidationFailed(
            "Quantity must be at least 1",
            {"product_id": str(product.id), "quantity": quantity},
        )

    values = resolve_specifications(product, selections)
    for value in values:
        if value.quantity < quantity:
            raise InsufficientSpecificationStock(
                product.id,
                value.specification_id,
                value.value_id,
                value.label,
                quantity,
                value.quantity,
            )

    if product.stock < quantity:
        raise InsufficientGeneralStock(product.id, product.name, quantity, product.stock)

    return ValidatedLine(
        product=product,
        quantity=quantity,
        selections=tuple(selections),
        specification_values=values,
    )


def selection_key(selections: Sequence[SelectedSpecification]) -> str:
    """Canonical, order-independent key of a specification selection."""
    return "|".join(
        sorted(f"{item.specification_id}:{item.value_id}" for item in selections)
    )
