"""Cart router: user and guest carts, and guest-to-user merge."""

import uuid

from fastapi import APIRouter, Depends, status
from libs.db.session import get_async_db
from services.commerce_service.routers._helpers import (
    CartOwner,
    get_cart_owner,
    get_store_scope,
)
from services.commerce_service.schemas import (
    CartItemCreate,
    CartItemUpdate,
    CartMergeRequest,
    CartResponse,
)
from services.commerce_service.scope import StoreScope
from services.commerce_service.services import cart_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["cart"])


@router.get("/cart", response_model=CartResponse)
async def get_cart(
    owner: CartOwner = Depends(get_cart_owner),
    scope: StoreScope = Depends(get_store_scope),
    db: AsyncSession = Depends(get_async_db),
):
    """Get the current cart; lines that went out of stock are removed."""
    return await cart_ops.get_cart(
        db, scope, user_id=owner.user_id, guest_id=owner.guest_id
    )


@router.post(
    "/cart/items", response_model=CartResponse, status_code=status.HTTP_201_CREATED
)
async def add_cart_item(
    payload: CartItemCreate,
    owner: CartOwner = Depends(get_cart_owner),
    scope: StoreScope = Depends(get_store_scope),
    db: AsyncSession = Depends(get_async_db),
):
    return await cart_ops.add_item(
        db,
        scope,
        product_id=payload.product_id,
        quantity=payload.quantity,
        selections=payload.selected_specifications,
        user_id=owner.user_id,
        guest_id=owner.guest_id,
    )


@router.patch("/cart/items/{item_id}", response_model=CartResponse)
async def update_cart_item(
    item_id: uuid.UUID,
    payload: CartItemUpdate,
    owner: CartOwner = Depends(get_cart_owner),
    scope: StoreScope = Depends(get_store_scope),
    db: AsyncSession = Depends(get_async_db),
):
    """Set a line's quantity. Quantity 0 removes the line."""
    return await cart_ops.update_item(
        db,
        scope,
        item_id,
        quantity=payload.quantity,
        user_id=owner.user_id,
        guest_id=owner.guest_id,
    )


@router.delete("/cart/items/{item_id}", response_model=CartResponse)
async def remove_cart_item(
    item_id: uuid.UUID,
    owner: CartOwner = Depends(get_cart_owner),
    scope: StoreScope = Depends(get_store_scope),
    db: AsyncSession = Depends(get_async_db),
):
    return await cart_ops.remove_item(
        db, scope, item_id, user_id=owner.user_id, guest_id=owner.guest_id
    )


@router.delete("/cart", response_model=CartResponse)
async def clear_cart(
    owner: CartOwner = Depends(get_cart_owner),
    scope: StoreScope = Depends(get_store_scope),
    db: AsyncSession = Depends(get_async_db),
):
    return await cart_ops.clear_cart(
        db, scope, user_id=owner.user_id, guest_id=owner.guest_id
    )


@router.post("/cart/merge", response_model=CartResponse)
async def merge_cart(
    payload: CartMergeRequest,
    scope: StoreScope = Depends(get_store_scope),
    db: AsyncSession = Depends(get_async_db),
):
    """Merge a guest cart into the user's cart after the guest signs in."""
    return await cart_ops.merge_guest_cart(
        db, scope, guest_id=payload.guest_id, user_id=payload.user_id
    )
