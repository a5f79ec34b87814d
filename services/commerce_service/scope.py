"""Store tenancy passed explicitly to every query function."""

import uuid
from dataclasses import dataclass

from services.commerce_service.errors import StoreNotFound
from services.commerce_service.models import Store
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(frozen=True)
class StoreScope:
    store_id: uuid.UUID


async def resolve_store_scope(db: AsyncSession, store_id: uuid.UUID) -> StoreScope:
    """Return the scope for an existing, active store."""
    result = await db.execute(
        select(Store.id).where(Store.id == store_id, Store.is_active.is_(True))
    )
    if result.scalar_one_or_none() is None:
        raise StoreNotFound(store_id)
    return StoreScope(store_id=store_id)
