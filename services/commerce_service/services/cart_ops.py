"""Cart operations for registered users and guests.

A cart belongs to a store and to either a user id or a guest id. Carts do not
reserve stock; lines that went out of stock are pruned when the cart is read
and stock is checked for real when the order is placed.
"""

import uuid
from collections.abc import Sequence
from typing import Optional

from libs.common.logging import get_logger
from services.commerce_service.errors import (
    CartItemNotFound,
    CommerceError,
    InsufficientGeneralStock,
    ProductNotFound,
    ProductUnavailable,
    RequestValidationFailed,
)
from services.commerce_service.models import Cart, CartItem, CartStatus, Product
from services.commerce_service.schemas import SelectedSpecification
from services.commerce_service.scope import StoreScope
from services.commerce_service.services.pricing import (
    price_line,
    resolve_wholesaler,
    summarize,
)
from services.commerce_service.services.stock_validator import (
    load_products,
    resolve_specifications,
    selection_key,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


# ============================================================================
# CART HELPERS
# ============================================================================


def _selections(item: CartItem) -> list[SelectedSpecification]:
    return [
        SelectedSpecification.model_validate(selection)
        for selection in item.selected_specifications or []
    ]


def _is_purchasable(item: CartItem) -> bool:
    """False when the line can no longer be bought at all."""
    product = item.product
    if product is None or not product.is_active or product.stock <= 0:
        return False
    try:
        values = resolve_specifications(product, _selections(item))
    except CommerceError:
        return False
    return all(value.quantity > 0 for value in values)


async def _find_cart(
    db: AsyncSession,
    scope: StoreScope,
    *,
    user_id: Optional[str] = None,
    guest_id: Optional[str] = None,
) -> Optional[Cart]:
    query = select(Cart).where(
        Cart.store_id == scope.store_id, Cart.status == CartStatus.ACTIVE
    )
    if user_id:
        query = query.where(Cart.user_id == user_id)
    elif guest_id:
        query = query.where(Cart.guest_id == guest_id, Cart.user_id.is_(None))
    else:
        raise RequestValidationFailed("Either user_id or a guest id is required")

    result = await db.execute(
        query.order_by(Cart.created_at.desc())
        .options(
            selectinload(Cart.items)
            .selectinload(CartItem.product)
            .selectinload(Product.specification_values)
        )
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def _prune(db: AsyncSession, cart: Cart) -> list[uuid.UUID]:
    """Drop lines that can no longer be bought; returns their ids."""
    removed = [item for item in cart.items if not _is_purchasable(item)]
    if not removed:
        return []
    for item in removed:
        cart.items.remove(item)
    await db.commit()
    logger.info("Pruned %d unavailable lines from cart %s", len(removed), cart.id)
    return [item.id for item in removed]


async def get_or_create_cart(
    db: AsyncSession,
    scope: StoreScope,
    *,
    user_id: Optional[str] = None,
    guest_id: Optional[str] = None,
) -> Cart:
    cart = await _find_cart(db, scope, user_id=user_id, guest_id=guest_id)
    if cart is not None:
        return cart

    cart = Cart(
        store_id=scope.store_id,
        user_id=user_id or None,
        guest_id=None if user_id else guest_id,
        items=[],
    )
    db.add(cart)
    await db.commit()
    logger.info(
        "Created cart %s for %s in store %s",
        cart.id,
        user_id or f"guest:{guest_id}",
        scope.store_id,
    )
    return cart


async def cart_view(
    db: AsyncSession,
    scope: StoreScope,
    cart: Cart,
    *,
    removed: Sequence[uuid.UUID] = (),
) -> dict:
    """Price the cart through the wholesale-aware resolver."""
    wholesaler = await resolve_wholesaler(db, scope, user_id=cart.user_id)
    priced = []
    items = []
    for item in cart.items:
        values = resolve_specifications(item.product, _selections(item))
        line = price_line(item.product, item.quantity, values, wholesaler)
        priced.append(line)
        items.append(
            {
                "id": item.id,
                "product_id": item.product_id,
                "product_name": item.product.name,
                "quantity": item.quantity,
                "selected_specifications": item.selected_specifications or [],
                "unit_price": line.unit_price,
                "regular_unit_price": line.regular_unit_price,
                "line_total": line.line_total,
                "wholesale_applied": line.wholesale_applied,
                "in_stock": item.product.stock >= item.quantity
                and all(value.quantity >= item.quantity for value in values),
            }
        )
    quote = summarize(priced, wholesaler)
    return {
        "id": cart.id,
        "store_id": cart.store_id,
        "user_id": cart.user_id,
        "guest_id": cart.guest_id,
        "status": cart.status,
        "items": items,
        "item_count": sum(item.quantity for item in cart.items),
        "subtotal": quote.subtotal,
        "regular_subtotal": quote.regular_subtotal,
        "wholesale_applied": quote.wholesale_applied,
        "removed_items": list(removed),
    }


# ============================================================================
# CART OPERATIONS
# ============================================================================


async def get_cart(
    db: AsyncSession,
    scope: StoreScope,
    *,
    user_id: Optional[str] = None,
    guest_id: Optional[str] = None,
) -> dict:
    """Return the buyer's cart, dropping lines that can no longer be bought."""
    cart = await get_or_create_cart(db, scope, user_id=user_id, guest_id=guest_id)
    removed = await _prune(db, cart)
    return await cart_view(db, scope, cart, removed=removed)


async def add_item(
    db: AsyncSession,
    scope: StoreScope,
    *,
    product_id: uuid.UUID,
    quantity: int,
    selections: Sequence[SelectedSpecification] = (),
    user_id: Optional[str] = None,
    guest_id: Optional[str] = None,
) -> dict:
    """Add a line, merging with an existing line for the same selection."""
    products = await load_products(db, scope, [product_id])
    product = products.get(product_id)
    if product is None:
        raise ProductNotFound(product_id)
    if not product.is_active:
        raise ProductUnavailable(product.id, product.name)
    resolve_specifications(product, selections)
    if product.stock <= 0:
        raise InsufficientGeneralStock(product.id, product.name, quantity, 0)

    cart = await get_or_create_cart(db, scope, user_id=user_id, guest_id=guest_id)
    removed = await _prune(db, cart)
    key = selection_key(selections)
    existing = next(
        (
            item
            for item in cart.items
            if item.product_id == product_id and item.specification_key == key
        ),
        None,
    )
    if existing is not None:
        existing.quantity += quantity
    else:
        cart.items.append(
            CartItem(
                id=uuid.uuid4(),
                product_id=product_id,
                product=product,
                quantity=quantity,
                selected_specifications=[
                    selection.model_dump() for selection in selections
                ],
                specification_key=key,
            )
        )
    await db.commit()
    return await cart_view(db, scope, cart, removed=removed)


def _find_item(cart: Cart, item_id: uuid.UUID) -> CartItem:
    for item in cart.items:
        if item.id == item_id:
            return item
    raise CartItemNotFound(item_id)


async def update_item(
    db: AsyncSession,
    scope: StoreScope,
    item_id: uuid.UUID,
    *,
    quantity: int,
    user_id: Optional[str] = None,
    guest_id: Optional[str] = None,
) -> dict:
    """Set a line's quantity; zero removes the line."""
    cart = await get_or_create_cart(db, scope, user_id=user_id, guest_id=guest_id)
    removed = await _prune(db, cart)
    item = _find_item(cart, item_id)
    if quantity <= 0:
        cart.items.remove(item)
    else:
        item.quantity = quantity
    await db.commit()
    return await cart_view(db, scope, cart, removed=removed)


async def remove_item(
    db: AsyncSession,
    scope: StoreScope,
    item_id: uuid.UUID,
    *,
    user_id: Optional[str] = None,
    guest_id: Optional[str] = None,
) -> dict:
    cart = await get_or_create_cart(db, scope, user_id=user_id, guest_id=guest_id)
    removed = await _prune(db, cart)
    cart.items.remove(_find_item(cart, item_id))
    await db.commit()
    return await cart_view(db, scope, cart, removed=removed)


async def clear_cart(
    db: AsyncSession,
    scope: StoreScope,
    *,
    user_id: Optional[str] = None,
    guest_id: Optional[str] = None,
) -> dict:
    cart = await get_or_create_cart(db, scope, user_id=user_id, guest_id=guest_id)
    cart.items.clear()
    await db.commit()
    return await cart_view(db, scope, cart)


async def merge_guest_cart(
    db: AsyncSession, scope: StoreScope, *, guest_id: str, user_id: str
) -> dict:
    """Move a guest's cart lines into the user's cart.

    Equal lines (same product and selection) have their quantities summed.
    The guest cart is left empty with status ``merged``.
    """
    guest_cart = await _find_cart(db, scope, guest_id=guest_id)
    user_cart = await get_or_create_cart(db, scope, user_id=user_id)
    removed = await _prune(db, user_cart)
    if guest_cart is None or not guest_cart.items:
        return await cart_view(db, scope, user_cart, removed=removed)

    lines = {(item.product_id, item.specification_key): item for item in user_cart.items}
    moved = 0
    for guest_item in guest_cart.items:
        if not _is_purchasable(guest_item):
            continue
        existing = lines.get((guest_item.product_id, guest_item.specification_key))
        if existing is not None:
            existing.quantity += guest_item.quantity
        else:
            new_item = CartItem(
                id=uuid.uuid4(),
                product_id=guest_item.product_id,
                product=guest_item.product,
                quantity=guest_item.quantity,
                selected_specifications=list(guest_item.selected_specifications or []),
                specification_key=guest_item.specification_key,
            )
            user_cart.items.append(new_item)
            lines[(new_item.product_id, new_item.specification_key)] = new_item
        moved += 1

    guest_cart.items.clear()
    guest_cart.status = CartStatus.MERGED
    await db.commit()
    logger.info(
        "Merged %d guest cart lines from %s into user %s in store %s",
        moved,
        guest_id,
        user_id,
        scope.store_id,
    )
    return await cart_view(db, scope, user_cart, removed=removed)
