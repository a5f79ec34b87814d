"""create_commerce_tables

Revision ID: c0a1e2f3d401
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "c0a1e2f3d401"
down_revision = None
branch_labels = None
depends_on = None

JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")

wholesaler_status = sa.Enum(
    "Active", "Inactive", "Suspended", "Pending", name="commerce_wholesaler_status_enum"
)
cart_status = sa.Enum("active", "merged", "converted", name="commerce_cart_status_enum")
order_status = sa.Enum(
    "pending",
    "confirmed",
    "processing",
    "shipped",
    "delivered",
    "cancelled",
    "refunded",
    name="commerce_order_status_enum",
)
payment_status = sa.Enum(
    "unpaid", "paid", "refunded", name="commerce_payment_status_enum"
)
movement_type = sa.Enum(
    "sale", "return", "adjustment", name="commerce_inventory_movement_type_enum"
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "commerce_stores",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_commerce_stores"),
        sa.UniqueConstraint("slug", name="uq_commerce_stores_slug"),
    )

    op.create_table(
        "commerce_products",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("store_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("sku", sa.String(length=100), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("compare_at_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("stock", sa.Integer(), server_default="0", nullable=False),
        sa.Column(
            "low_stock_threshold", sa.Integer(), server_default="5", nullable=False
        ),
        sa.Column("sold_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "stock >= 0", name="ck_commerce_products_non_negative_stock"
        ),
        sa.CheckConstraint(
            "price >= 0", name="ck_commerce_products_non_negative_price"
        ),
        sa.CheckConstraint(
            "sold_count >= 0", name="ck_commerce_products_non_negative_sold_count"
        ),
        sa.ForeignKeyConstraint(
            ["store_id"],
            ["commerce_stores.id"],
            name="fk_commerce_products_store_id_commerce_stores",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_commerce_products"),
    )
    op.create_index(
        "ix_commerce_products_store_id", "commerce_products", ["store_id"]
    )

    op.create_table(
        "commerce_specification_values",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("specification_id", sa.String(length=100), nullable=False),
        sa.Column("value_id", sa.String(length=100), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("value", sa.String(length=255), nullable=True),
        sa.Column("quantity", sa.Integer(), server_default="0", nullable=False),
        sa.Column("price", sa.Numeric(12, 2), server_default="0", nullable=False),
        sa.Column("position", sa.Integer(), server_default="0", nullable=True),
        sa.CheckConstraint(
            "quantity >= 0",
            name="ck_commerce_specification_values_non_negative_quantity",
        ),
        sa.ForeignKeyConstraint(
            ["product_id"],
            ["commerce_products.id"],
            name="fk_commerce_specification_values_product_id_commerce_products",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_commerce_specification_values"),
        sa.UniqueConstraint(
            "product_id",
            "specification_id",
            "value_id",
            name="uq_commerce_specification_values_key",
        ),
    )

    op.create_table(
        "commerce_wholesalers",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("store_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("business_name", sa.String(length=255), nullable=True),
        sa.Column("discount", sa.Numeric(5, 4), server_default="0", nullable=False),
        sa.Column(
            "status", wholesaler_status, server_default="Pending", nullable=True
        ),
        sa.Column(
            "is_verified", sa.Boolean(), server_default=sa.false(), nullable=True
        ),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "discount >= 0 AND discount <= 1",
            name="ck_commerce_wholesalers_discount_fraction",
        ),
        sa.ForeignKeyConstraint(
            ["store_id"],
            ["commerce_stores.id"],
            name="fk_commerce_wholesalers_store_id_commerce_stores",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_commerce_wholesalers"),
        sa.UniqueConstraint(
            "store_id", "email", name="uq_commerce_wholesalers_store_email"
        ),
    )
    op.create_index(
        "ix_commerce_wholesalers_store_id", "commerce_wholesalers", ["store_id"]
    )
    op.create_index(
        "ix_commerce_wholesalers_user_id", "commerce_wholesalers", ["user_id"]
    )

    op.create_table(
        "commerce_carts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("store_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=True),
        sa.Column("guest_id", sa.String(length=255), nullable=True),
        sa.Column("status", cart_status, server_default="active", nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "user_id IS NOT NULL OR guest_id IS NOT NULL",
            name="ck_commerce_carts_cart_one_owner",
        ),
        sa.ForeignKeyConstraint(
            ["store_id"],
            ["commerce_stores.id"],
            name="fk_commerce_carts_store_id_commerce_stores",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_commerce_carts"),
    )
    op.create_index("ix_commerce_carts_user_id", "commerce_carts", ["user_id"])
    op.create_index("ix_commerce_carts_guest_id", "commerce_carts", ["guest_id"])
    op.create_index(
        "ix_commerce_carts_store_user_status",
        "commerce_carts",
        ["store_id", "user_id", "status"],
    )
    op.create_index(
        "ix_commerce_carts_store_guest_status",
        "commerce_carts",
        ["store_id", "guest_id", "status"],
    )

    op.create_table(
        "commerce_cart_items",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("cart_id", sa.Uuid(), nullable=False),
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("selected_specifications", JSON, nullable=False),
        sa.Column(
            "specification_key",
            sa.String(length=500),
            server_default="",
            nullable=False,
        ),
        *_timestamps(),
        sa.CheckConstraint(
            "quantity > 0", name="ck_commerce_cart_items_positive_quantity"
        ),
        sa.ForeignKeyConstraint(
            ["cart_id"],
            ["commerce_carts.id"],
            name="fk_commerce_cart_items_cart_id_commerce_carts",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["product_id"],
            ["commerce_products.id"],
            name="fk_commerce_cart_items_product_id_commerce_products",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_commerce_cart_items"),
        sa.UniqueConstraint(
            "cart_id",
            "product_id",
            "specification_key",
            name="uq_commerce_cart_items_line",
        ),
    )

    op.create_table(
        "commerce_orders",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("store_id", sa.Uuid(), nullable=False),
        sa.Column("order_number", sa.String(length=20), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=True),
        sa.Column("guest_id", sa.String(length=255), nullable=True),
        sa.Column("customer_email", sa.String(length=255), nullable=True),
        sa.Column("shipping_address", JSON, nullable=True),
        sa.Column("billing_address", JSON, nullable=True),
        sa.Column("payment_method", sa.String(length=50), nullable=True),
        sa.Column(
            "payment_status", payment_status, server_default="unpaid", nullable=True
        ),
        sa.Column("shipping_method", sa.String(length=100), nullable=True),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "discount_amount", sa.Numeric(12, 2), server_default="0", nullable=True
        ),
        sa.Column(
            "shipping_cost", sa.Numeric(12, 2), server_default="0", nullable=True
        ),
        sa.Column("tax_amount", sa.Numeric(12, 2), server_default="0", nullable=True),
        sa.Column("total", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("wholesaler_id", sa.Uuid(), nullable=True),
        sa.Column("wholesale_discount_rate", sa.Numeric(5, 4), nullable=True),
        sa.Column("status", order_status, server_default="pending", nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("is_gift", sa.Boolean(), server_default=sa.false(), nullable=True),
        sa.Column("gift_message", sa.Text(), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("actual_delivery_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "user_id IS NOT NULL OR guest_id IS NOT NULL",
            name="ck_commerce_orders_order_one_buyer",
        ),
        sa.ForeignKeyConstraint(
            ["store_id"],
            ["commerce_stores.id"],
            name="fk_commerce_orders_store_id_commerce_stores",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["wholesaler_id"],
            ["commerce_wholesalers.id"],
            name="fk_commerce_orders_wholesaler_id_commerce_wholesalers",
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_commerce_orders"),
        sa.UniqueConstraint(
            "store_id", "order_number", name="uq_commerce_orders_store_number"
        ),
    )
    op.create_index("ix_commerce_orders_store_id", "commerce_orders", ["store_id"])
    op.create_index(
        "ix_commerce_orders_order_number", "commerce_orders", ["order_number"]
    )
    op.create_index("ix_commerce_orders_user_id", "commerce_orders", ["user_id"])
    op.create_index("ix_commerce_orders_guest_id", "commerce_orders", ["guest_id"])

    op.create_table(
        "commerce_order_items",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_id", sa.Uuid(), nullable=False),
        sa.Column("product_id", sa.Uuid(), nullable=True),
        sa.Column("position", sa.Integer(), server_default="0", nullable=True),
        sa.Column("product_name", sa.String(length=255), nullable=False),
        sa.Column("sku", sa.String(length=100), nullable=True),
        sa.Column("selected_specifications", JSON, nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("regular_unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("line_total", sa.Numeric(12, 2), nullable=False),
        sa.Column(
            "wholesale_applied", sa.Boolean(), server_default=sa.false(), nullable=True
        ),
        sa.Column("discount_rate", sa.Numeric(5, 4), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "quantity > 0", name="ck_commerce_order_items_positive_quantity"
        ),
        sa.ForeignKeyConstraint(
            ["order_id"],
            ["commerce_orders.id"],
            name="fk_commerce_order_items_order_id_commerce_orders",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["product_id"],
            ["commerce_products.id"],
            name="fk_commerce_order_items_product_id_commerce_products",
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_commerce_order_items"),
    )

    op.create_table(
        "commerce_inventory_movements",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("store_id", sa.Uuid(), nullable=False),
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("specification_id", sa.String(length=100), nullable=True),
        sa.Column("value_id", sa.String(length=100), nullable=True),
        sa.Column("movement_type", movement_type, nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("reference_type", sa.String(length=30), nullable=True),
        sa.Column("reference_id", sa.Uuid(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["store_id"],
            ["commerce_stores.id"],
            name="fk_commerce_inventory_movements_store_id_commerce_stores",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["product_id"],
            ["commerce_products.id"],
            name="fk_commerce_inventory_movements_product_id_commerce_products",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_commerce_inventory_movements"),
    )
    op.create_index(
        "ix_commerce_inventory_movements_store_id",
        "commerce_inventory_movements",
        ["store_id"],
    )
    op.create_index(
        "ix_commerce_inventory_movements_product_id",
        "commerce_inventory_movements",
        ["product_id"],
    )


def downgrade() -> None:
    op.drop_table("commerce_inventory_movements")
    op.drop_table("commerce_order_items")
    op.drop_table("commerce_orders")
    op.drop_table("commerce_cart_items")
    op.drop_table("commerce_carts")
    op.drop_table("commerce_wholesalers")
    op.drop_table("commerce_specification_values")
    op.drop_table("commerce_products")
    op.drop_table("commerce_stores")

    bind = op.get_bind()
    for enum in (
        movement_type,
        payment_status,
        order_status,
        cart_status,
        wholesaler_status,
    ):
        enum.drop(bind, checkfirst=True)
