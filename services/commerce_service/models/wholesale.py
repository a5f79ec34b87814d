"""Wholesaler model: store-scoped buyers entitled to a discount."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.commerce_service.models.enums import WholesalerStatus, enum_values
from sqlalchemy import Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Numeric, String, UniqueConstraint, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates


class Wholesaler(Base):
    """Wholesale buyer of a store.

    ``discount`` is a fraction (0.15 means 15% off the compare-at price).
    """

    __tablename__ = "commerce_wholesalers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    store_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("commerce_stores.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Linked buyer account; may be absent for wholesalers registered by email only
    user_id: Mapped[Optional[str]] = mapped_column(
        String(255), index=True, nullable=True
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)  # lower-cased
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    business_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    discount: Mapped[Decimal] = mapped_column(
        Numeric(5, 4), default=Decimal("0"), server_default="0", nullable=False
    )
    status: Mapped[WholesalerStatus] = mapped_column(
        SAEnum(
            WholesalerStatus,
            values_callable=enum_values,
            name="commerce_wholesaler_status_enum",
        ),
        default=WholesalerStatus.PENDING,
        server_default="Pending",
    )
    is_verified: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false()
    )
    verified_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        UniqueConstraint(
            "store_id", "email", name="uq_commerce_wholesalers_store_email"
        ),
        CheckConstraint("discount >= 0 AND discount <= 1", name="discount_fraction"),
    )

    store = relationship("Store")

    @validates("email")
    def _normalize_email(self, key, value):
        return value.strip().lower() if value else value

    @property
    def is_eligible(self) -> bool:
        """Only active, verified wholesalers get discounted pricing."""
        return self.status == WholesalerStatus.ACTIVE and bool(self.is_verified)

    def __repr__(self):
        return f"<Wholesaler {self.email} status={self.status}>"
