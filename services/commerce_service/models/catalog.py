"""Catalog models: stores, products and their specification stock pools."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

# ============================================================================
# STORE MODEL
# ============================================================================


class Store(Base):
    """A tenant. Every product, order, cart and wholesaler belongs to one."""

    __tablename__ = "commerce_stores"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    currency: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=true()
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    def __repr__(self):
        return f"<Store {self.slug}>"


# ============================================================================
# PRODUCT MODELS
# ============================================================================


class Product(Base):
    """A sellable product with a general stock counter."""

    __tablename__ = "commerce_products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    store_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("commerce_stores.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Pricing
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    compare_at_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )  # reference price wholesaler discounts are taken from

    # General stock pool
    stock: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    low_stock_threshold: Mapped[int] = mapped_column(
        Integer,
        default=lambda: get_settings().LOW_STOCK_THRESHOLD,
        server_default="5",
        nullable=False,
    )
    sold_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=true()
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("stock >= 0", name="non_negative_stock"),
        CheckConstraint("price >= 0", name="non_negative_price"),
        CheckConstraint("sold_count >= 0", name="non_negative_sold_count"),
    )

    # Relationships
    store = relationship("Store")
    specification_values = relationship(
        "SpecificationValue",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="SpecificationValue.position",
    )

    def specification_map(self) -> dict[tuple[str, str], "SpecificationValue"]:
        """Index the loaded specification values by (specification_id, value_id)."""
        return {
            (value.specification_id, value.value_id): value
            for value in self.specification_values
        }

    def __repr__(self):
        return f"<Product {self.name} stock={self.stock}>"


class SpecificationValue(Base):
    """One selectable option of a product (e.g. Size=Large) with its own stock pool.

    Quantities here are independent of ``Product.stock``; an order line with
    selected specifications must fit both.
    """

    __tablename__ = "commerce_specification_values"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("commerce_products.id", ondelete="CASCADE"),
        nullable=False,
    )

    specification_id: Mapped[str] = mapped_column(String(100), nullable=False)
    value_id: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )  # e.g. "Size"
    value: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )  # e.g. "Large"

    quantity: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), server_default="0", nullable=False
    )  # added to the product price when selected
    position: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    __table_args__ = (
        UniqueConstraint(
            "product_id",
            "specification_id",
            "value_id",
            name="uq_commerce_specification_values_key",
        ),
        CheckConstraint("quantity >= 0", name="non_negative_quantity"),
    )

    product = relationship("Product", back_populates="specification_values")

    @property
    def label(self) -> str:
        """Human label used in error messages, e.g. 'Size Large'."""
        parts = [part for part in (self.title, self.value) if part]
        return " ".join(parts) or f"{self.specification_id}/{self.value_id}"

    def __repr__(self):
        return f"<SpecificationValue {self.label} qty={self.quantity}>"
