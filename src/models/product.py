"""Product model for the point-of-sale catalog."""

import uuid
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, Index, Numeric, String
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.database import Base


class ProductType(str, Enum):
    """Menu category a product is sold under."""

    VEG = "Veg"
    NON_VEG = "Non-Veg"
    BEVERAGE = "Beverage"
    STARTER = "Starter"
    DESSERT = "Dessert"
    BREADS = "Breads"


class PrimaryUnit(str, Enum):
    """Unit of sale. EMPTY means no unit was chosen."""

    PIECE = "piece"
    KG = "kg"
    GRAM = "gram"
    EMPTY = ""


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Product(Base):
    """Product model representing a sellable catalog item.

    Pricing columns (gst_percentage, gst_amount, total_price) are derived from
    sell_price and gst_enabled and are only ever written together with them.

    Attributes:
        id: Unique identifier (UUID)
        item_name: Display name, stored trimmed
        sell_price: Base price before tax
        type: ProductType value
        primary_unit: PrimaryUnit value, if any
        custom_unit: Free-text unit when primary_unit does not fit
        gst_enabled: Whether GST is applied
        gst_percentage: 5 when gst_enabled, else 0
        gst_amount: Tax on sell_price
        total_price: sell_price plus gst_amount
        barcode: 12-digit numeric label for POS scanning
        image_url: Public URL of the product photo, empty when absent
        created_at: Timestamp when the record was created
        updated_at: Timestamp of the last write
    """

    __tablename__ = "products"
    __table_args__ = (
        Index("ix_products_barcode", "barcode", unique=True),
        Index("ix_products_created_at", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    item_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    sell_price: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ProductType.VEG.value,
    )
    primary_unit: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
    )
    custom_unit: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
    )
    gst_enabled: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    gst_percentage: Mapped[int] = mapped_column(
        nullable=False,
        default=0,
    )
    gst_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        default=Decimal("0"),
    )
    total_price: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
    )
    barcode: Mapped[str] = mapped_column(
        String(12),
        nullable=False,
    )
    image_url: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        default="",
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        default=_utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Product(barcode={self.barcode!r}, item_name={self.item_name!r})>"
