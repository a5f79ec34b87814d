"""Shared dependencies for commerce routers."""

import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Query
from libs.db.session import get_async_db
from services.commerce_service.scope import StoreScope, resolve_store_scope
from sqlalchemy.ext.asyncio import AsyncSession


async def get_store_scope(
    store_id: uuid.UUID, db: AsyncSession = Depends(get_async_db)
) -> StoreScope:
    """Resolve the ``{store_id}`` path parameter into a StoreScope (404 if unknown)."""
    return await resolve_store_scope(db, store_id)


@dataclass(frozen=True)
class CartOwner:
    user_id: Optional[str]
    guest_id: Optional[str]


def get_cart_owner(
    user_id: Optional[str] = Query(None, max_length=255),
    x_guest_id: Optional[str] = Header(None, alias="X-Guest-ID", max_length=255),
) -> CartOwner:
    """Registered buyers pass ``user_id``; guests send the X-Guest-ID header."""
    return CartOwner(user_id=user_id or None, guest_id=x_guest_id or None)
