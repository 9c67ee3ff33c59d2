"""Shared fixtures: in-memory asset store and product repository."""

import uuid
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import urlparse

import pytest

from src.models.product import Product
from src.services.asset_store import AssetDeleteError, AssetUploadError, StoredObject
from src.services.catalog import ImageUpload, ProductCatalog, ProductFields
from src.services.product_store import StoreError

FAKE_BUCKET_URL = "https://test-bucket.s3.ap-south-1.amazonaws.com"


class FakeAssetStore:
    """In-memory AssetStore that records every call in order."""

    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_put = False
        self.fail_delete = False

    async def put(
        self, key: str, data: bytes, content_type: str, public: bool = True
    ) -> str:
        self.calls.append(("put", key))
        if self.fail_put:
            raise AssetUploadError("Image upload failed: simulated outage")
        self.objects[key] = (data, content_type)
        return f"{FAKE_BUCKET_URL}/{key}"

    async def delete(self, key: str) -> bool:
        self.calls.append(("delete", key))
        if self.fail_delete:
            raise AssetDeleteError("Image delete failed: simulated outage")
        return self.objects.pop(key, None) is not None

    async def list_objects(self, prefix: str) -> list[StoredObject]:
        return [
            StoredObject(key=key, last_modified=datetime(2020, 1, 1, tzinfo=UTC))
            for key in self.objects
            if key.startswith(prefix)
        ]

    def key_from_url(self, url: str) -> str:
        return urlparse(url).path.lstrip("/")


class FakeProductRepository:
    """In-memory record store with a ticking clock for timestamps."""

    def __init__(self) -> None:
        self.products: dict[uuid.UUID, Product] = {}
        self.fail_insert = False
        self.fail_update = False
        self.update_failures = 0
        self.commits = 0
        self.rollbacks = 0
        self.inserts = 0
        self.updates: list[dict[str, Any]] = []
        self._clock = datetime(2026, 10, 1, 9, 0, tzinfo=UTC)

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    async def insert(self, product: Product) -> Product:
        self.inserts += 1
        if self.fail_insert:
            raise StoreError("Failed to save product: simulated outage")
        product.id = uuid.uuid4()
        product.created_at = self._tick()
        product.updated_at = product.created_at
        self.products[product.id] = product
        return product

    async def find_by_id(self, product_id: uuid.UUID) -> Product | None:
        return self.products.get(product_id)

    async def update(
        self, product_id: uuid.UUID, values: dict[str, Any]
    ) -> Product | None:
        self.updates.append(values)
        if self.update_failures:
            self.update_failures -= 1
            raise StoreError("Failed to update product: simulated outage")
        if self.fail_update:
            raise StoreError("Failed to update product: simulated outage")
        product = self.products.get(product_id)
        if product is None:
            return None
        for column, value in values.items():
            setattr(product, column, value)
        product.updated_at = self._tick()
        return product

    async def delete(self, product_id: uuid.UUID) -> Product | None:
        return self.products.pop(product_id, None)

    async def list_all(self) -> list[Product]:
        return sorted(self.products.values(), key=lambda p: p.created_at, reverse=True)

    async def barcode_exists(self, barcode: str) -> bool:
        return any(p.barcode == barcode for p in self.products.values())

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1


@pytest.fixture
def asset_store() -> FakeAssetStore:
    """Create an empty in-memory asset store."""
    return FakeAssetStore()


@pytest.fixture
def repository() -> FakeProductRepository:
    """Create an empty in-memory product repository."""
    return FakeProductRepository()


@pytest.fixture
def catalog(
    repository: FakeProductRepository, asset_store: FakeAssetStore
) -> ProductCatalog:
    """Create a catalog over the in-memory stores."""
    return ProductCatalog(repository, asset_store, max_image_size=5 * 1024 * 1024)


@pytest.fixture
def valid_fields() -> ProductFields:
    """Form-style fields for a valid product."""
    return ProductFields(
        item_name="  Paneer Tikka  ",
        sell_price="100",
        type="Starter",
        primary_unit="piece",
        custom_unit=None,
        gst_enabled="true",
    )


@pytest.fixture
def png_image() -> ImageUpload:
    """A small PNG attachment."""
    return ImageUpload(
        filename="paneer tikka.png",
        content_type="image/png",
        data=b"\x89PNG\r\n\x1a\n" + b"\x00" * 64,
    )
