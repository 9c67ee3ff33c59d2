"""Product lifecycle management for the POS catalog.

This module coordinates every product write:
- Validating submitted fields and the optional product photo
- Deriving GST and total price
- Uploading, replacing and deleting product photos in the asset store
- Persisting records, with compensation when a write fails after an upload

All validation happens before the asset store or the record store is touched,
so invalid input never leaves an orphaned upload behind.
"""

import logging
import math
import secrets
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Protocol

from src.config import settings
from src.models.product import PrimaryUnit, Product, ProductType
from src.services.asset_store import (
    AssetStore,
    AssetStoreError,
    AssetUploadError,
    build_asset_key,
)
from src.services.pricing import MAX_PRICE, PricingBreakdown, calculate_pricing
from src.services.product_store import StoreError

logger = logging.getLogger(__name__)

# Barcodes are 12-digit numeric strings
BARCODE_DIGITS = 12

# Redraws before giving up on finding an unused barcode
BARCODE_MAX_ATTEMPTS = 5

TRUTHY_VALUES = {"true", "1", "yes", "on"}


class CatalogError(Exception):
    """Base exception for catalog operation errors."""


@dataclass
class FieldError:
    """A single invalid input field."""

    field: str
    message: str


class ValidationError(CatalogError):
    """Raised when submitted product fields are invalid."""

    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = errors
        fields = ", ".join(e.field for e in errors)
        super().__init__(f"Invalid product fields: {fields}")


class UnsupportedMediaError(CatalogError):
    """Raised when an attached file is not an image."""


class PayloadTooLargeError(CatalogError):
    """Raised when an attached image exceeds the size limit."""


class NotFoundError(CatalogError):
    """Raised when no product exists for the requested id."""


class ProductRecordStore(Protocol):
    """Record store operations the catalog relies on."""

    async def insert(self, product: Product) -> Product: ...

    async def find_by_id(self, product_id: uuid.UUID) -> Product | None: ...

    async def update(
        self, product_id: uuid.UUID, values: dict[str, Any]
    ) -> Product | None: ...

    async def delete(self, product_id: uuid.UUID) -> Product | None: ...

    async def list_all(self) -> Sequence[Product]: ...

    async def barcode_exists(self, barcode: str) -> bool: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


@dataclass
class ProductFields:
    """Raw product fields as submitted by a client.

    Values are left untyped because they usually arrive as form text.
    """

    item_name: Any = None
    sell_price: Any = None
    type: Any = None
    primary_unit: Any = None
    custom_unit: Any = None
    gst_enabled: Any = False


@dataclass(frozen=True)
class ValidatedProduct:
    """Product fields after validation and normalization."""

    item_name: str
    sell_price: Decimal
    type: ProductType
    primary_unit: str | None
    custom_unit: str | None
    gst_enabled: bool
    pricing: PricingBreakdown


@dataclass
class ImageUpload:
    """A product photo attached to a create or update request."""

    filename: str | None
    content_type: str | None
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)


def parse_bool(value: Any) -> bool:
    """Interpret a form value as a boolean flag."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in TRUTHY_VALUES


def _parse_price(value: Any) -> Decimal | None:
    """Parse a price, returning None unless it is a finite number >= 0."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not price.is_finite() or price < 0:
        return None
    return price


def validate_product_fields(fields: ProductFields) -> ValidatedProduct:
    """Validate and normalize submitted product fields.

    Every field is checked before raising so the caller gets the complete
    list of problems in one response. Pricing is derived here too, so a
    price the money columns cannot hold is rejected before any store is
    touched.

    Raises:
        ValidationError: If any field is invalid.
    """
    errors: list[FieldError] = []

    item_name = str(fields.item_name or "").strip()
    if not item_name:
        errors.append(FieldError("itemName", "Item name is required"))

    gst_enabled = parse_bool(fields.gst_enabled)
    sell_price = _parse_price(fields.sell_price)
    pricing: PricingBreakdown | None = None
    if sell_price is None:
        errors.append(FieldError("sellPrice", "Sell price must be a positive number"))
    elif sell_price > MAX_PRICE:
        errors.append(FieldError("sellPrice", "Sell price is too large"))
    else:
        pricing = calculate_pricing(sell_price, gst_enabled)
        if pricing.total_price > MAX_PRICE:
            errors.append(FieldError("sellPrice", "Sell price is too large"))

    product_type = ProductType.VEG
    if fields.type is not None and fields.type != "":
        try:
            product_type = ProductType(fields.type)
        except ValueError:
            errors.append(FieldError("type", "Invalid product type"))

    primary_unit = fields.primary_unit
    if primary_unit is not None:
        try:
            primary_unit = PrimaryUnit(primary_unit).value
        except ValueError:
            errors.append(FieldError("primaryUnit", "Invalid primary unit"))

    if errors:
        raise ValidationError(errors)

    custom_unit = fields.custom_unit.strip() if isinstance(fields.custom_unit, str) else None

    return ValidatedProduct(
        item_name=item_name,
        sell_price=sell_price,
        type=product_type,
        primary_unit=primary_unit,
        custom_unit=custom_unit or None,
        gst_enabled=gst_enabled,
        pricing=pricing,
    )


def validate_image(image: ImageUpload, max_size: int) -> None:
    """Check an attached file is an image within the size limit.

    Raises:
        UnsupportedMediaError: If the content type is not image/*.
        PayloadTooLargeError: If the file is larger than max_size bytes.
    """
    if not (image.content_type or "").lower().startswith("image/"):
        raise UnsupportedMediaError("Only image files are allowed")
    if image.size > max_size:
        raise PayloadTooLargeError(
            f"Image exceeds maximum allowed size of {max_size // (1024 * 1024)}MB"
        )


def generate_barcode() -> str:
    """Draw a random 12-digit numeric barcode."""
    return f"{secrets.randbelow(10**BARCODE_DIGITS):0{BARCODE_DIGITS}d}"


class ProductCatalog:
    """Orchestrates create/update/delete/list for catalog products.

    Both stores are injected so tests can substitute in-memory fakes.

    Usage:
        catalog = ProductCatalog(ProductRepository(session), S3AssetStore())
        product = await catalog.create(
            ProductFields(item_name="Masala Chai", sell_price="20", type="Beverage"),
        )
    """

    def __init__(
        self,
        repository: ProductRecordStore,
        asset_store: AssetStore,
        max_image_size: int | None = None,
        image_prefix: str | None = None,
        barcode_factory: Callable[[], str] = generate_barcode,
    ) -> None:
        self.repository = repository
        self.asset_store = asset_store
        self.max_image_size = max_image_size or settings.max_image_size
        self.image_prefix = image_prefix
        self.barcode_factory = barcode_factory

    def _prepare_image(self, image: ImageUpload | None) -> ImageUpload | None:
        # A zero-byte file part means no image was chosen
        if image is None or not image.data:
            return None
        validate_image(image, self.max_image_size)
        return image

    async def _allocate_barcode(self) -> str:
        for _ in range(BARCODE_MAX_ATTEMPTS):
            barcode = self.barcode_factory()
            if not await self.repository.barcode_exists(barcode):
                return barcode
            logger.warning("Barcode collision on %s, drawing again", barcode)
        raise CatalogError(
            f"Could not allocate an unused barcode after {BARCODE_MAX_ATTEMPTS} attempts"
        )

    async def _upload_image(self, image: ImageUpload) -> tuple[str, str]:
        key = build_asset_key(image.filename, self.image_prefix)
        url = await self.asset_store.put(
            key, image.data, image.content_type or "application/octet-stream", public=True
        )
        return key, url

    async def _discard_asset(self, key: str) -> bool:
        """Delete an asset, logging instead of raising on failure.

        Returns:
            True if the asset is gone (deleted or already missing).
        """
        try:
            existed = await self.asset_store.delete(key)
        except AssetStoreError as e:
            logger.warning("Failed to delete image %s: %s", key, e)
            return False
        if not existed:
            logger.warning("Image %s was already missing from the asset store", key)
        return True

    async def _clear_image_url(self, product_id: uuid.UUID) -> None:
        """Point a record at no image once its photo is gone, best effort.

        Pending writes from the failed request are rolled back first, and the
        clear is committed at once so the request's own rollback cannot
        restore the stale URL.
        """
        try:
            await self.repository.rollback()
            await self.repository.update(product_id, {"image_url": ""})
            await self.repository.commit()
        except StoreError as e:
            logger.error("Failed to clear image_url on product %s: %s", product_id, e)
            return
        logger.warning("Cleared image_url on product %s after its image was removed", product_id)

    async def create(
        self, fields: ProductFields, image: ImageUpload | None = None
    ) -> Product:
        """Create a product, uploading its photo if one is attached.

        Args:
            fields: Submitted product fields.
            image: Optional product photo.

        Returns:
            The persisted product.

        Raises:
            ValidationError: If any field is invalid.
            UnsupportedMediaError: If the attachment is not an image.
            PayloadTooLargeError: If the attachment is too large.
            AssetUploadError: If the photo could not be stored.
            StoreError: If the record could not be saved. A photo uploaded
                for this request is deleted again first.
        """
        data = validate_product_fields(fields)
        image = self._prepare_image(image)

        barcode = await self._allocate_barcode()

        key: str | None = None
        image_url = ""
        if image is not None:
            key, image_url = await self._upload_image(image)

        pricing = data.pricing
        product = Product(
            item_name=data.item_name,
            sell_price=data.sell_price,
            type=data.type.value,
            primary_unit=data.primary_unit,
            custom_unit=data.custom_unit,
            gst_enabled=data.gst_enabled,
            gst_percentage=pricing.gst_percentage,
            gst_amount=pricing.gst_amount,
            total_price=pricing.total_price,
            barcode=barcode,
            image_url=image_url,
        )

        try:
            saved = await self.repository.insert(product)
        except Exception:
            if key is not None:
                logger.warning("Save failed, removing uploaded image %s", key)
                await self._discard_asset(key)
            raise

        logger.info("Created product %s (barcode %s)", saved.id, saved.barcode)
        return saved

    async def update(
        self,
        product_id: uuid.UUID,
        fields: ProductFields,
        image: ImageUpload | None = None,
    ) -> Product:
        """Replace a product's fields and optionally its photo.

        Derived pricing is always recomputed from the submitted values. When a
        new photo is attached, the previous one is deleted before the new one
        is uploaded; a failed delete is logged and tolerated.

        Raises:
            NotFoundError: If the product does not exist.
            ValidationError: If any field is invalid.
            UnsupportedMediaError: If the attachment is not an image.
            PayloadTooLargeError: If the attachment is too large.
            AssetUploadError: If the new photo could not be stored. If the
                previous photo was already deleted, the record's image_url is
                cleared so it never points at a missing object.
            StoreError: If the record could not be saved. A photo uploaded
                for this request is deleted again, and if the previous photo
                was already deleted the record's image_url is cleared.
        """
        existing = await self.repository.find_by_id(product_id)
        if existing is None:
            raise NotFoundError(f"Product {product_id} not found")

        data = validate_product_fields(fields)
        image = self._prepare_image(image)
        pricing = data.pricing

        image_url = existing.image_url or ""
        new_key: str | None = None
        old_removed = False
        if image is not None:
            if image_url:
                old_removed = await self._discard_asset(
                    self.asset_store.key_from_url(image_url)
                )
                if old_removed:
                    image_url = ""

            try:
                new_key, image_url = await self._upload_image(image)
            except AssetUploadError:
                if old_removed:
                    await self._clear_image_url(product_id)
                raise

        values = {
            "item_name": data.item_name,
            "sell_price": data.sell_price,
            "type": data.type.value,
            "primary_unit": data.primary_unit,
            "custom_unit": data.custom_unit,
            "gst_enabled": data.gst_enabled,
            "gst_percentage": pricing.gst_percentage,
            "gst_amount": pricing.gst_amount,
            "total_price": pricing.total_price,
            "image_url": image_url,
        }

        try:
            updated = await self.repository.update(product_id, values)
        except Exception:
            if new_key is not None:
                logger.warning("Save failed, removing uploaded image %s", new_key)
                await self._discard_asset(new_key)
            if old_removed:
                await self._clear_image_url(product_id)
            raise

        if updated is None:
            if new_key is not None:
                await self._discard_asset(new_key)
            raise NotFoundError(f"Product {product_id} not found")

        logger.info("Updated product %s", product_id)
        return updated

    async def delete(self, product_id: uuid.UUID) -> Product:
        """Delete a product and, best effort, its photo.

        Returns:
            The product as it was before deletion.

        Raises:
            NotFoundError: If the product does not exist.
            StoreError: If the record could not be removed.
        """
        existing = await self.repository.find_by_id(product_id)
        if existing is None:
            raise NotFoundError(f"Product {product_id} not found")

        if existing.image_url:
            await self._discard_asset(self.asset_store.key_from_url(existing.image_url))

        removed = await self.repository.delete(product_id)
        if removed is None:
            raise NotFoundError(f"Product {product_id} not found")

        logger.info("Deleted product %s", product_id)
        return removed

    async def list_products(self) -> list[Product]:
        """Return all products, most recently created first."""
        return list(await self.repository.list_all())
