"""create_products_table

Revision ID: 3a7c1e9d52b4
Revises:
Create Date: 2026-10-19 09:12:40.518203

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3a7c1e9d52b4"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the products table with a unique barcode index."""
    op.create_table(
        "products",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("item_name", sa.String(255), nullable=False),
        sa.Column("sell_price", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("type", sa.String(20), nullable=False, server_default="Veg"),
        sa.Column("primary_unit", sa.String(20), nullable=True),
        sa.Column("custom_unit", sa.String(50), nullable=True),
        sa.Column("gst_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("gst_percentage", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "gst_amount",
            sa.Numeric(precision=12, scale=2),
            nullable=False,
            server_default="0",
        ),
        sa.Column("total_price", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("barcode", sa.String(12), nullable=False),
        sa.Column("image_url", sa.String(1024), nullable=False, server_default=""),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.CheckConstraint(
            "type IN ('Veg', 'Non-Veg', 'Beverage', 'Starter', 'Dessert', 'Breads')",
            name="ck_products_type",
        ),
        sa.CheckConstraint("sell_price >= 0", name="ck_products_sell_price_non_negative"),
    )
    op.create_index("ix_products_barcode", "products", ["barcode"], unique=True)
    op.create_index("ix_products_created_at", "products", ["created_at"])


def downgrade() -> None:
    """Drop the products table."""
    op.drop_index("ix_products_created_at", table_name="products")
    op.drop_index("ix_products_barcode", table_name="products")
    op.drop_table("products")
