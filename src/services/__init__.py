"""Business logic services for the POS catalog."""

from src.services.asset_store import (
    AssetDeleteError,
    AssetStore,
    AssetStoreError,
    AssetUploadError,
    S3AssetStore,
)
from src.services.catalog import (
    CatalogError,
    FieldError,
    ImageUpload,
    NotFoundError,
    PayloadTooLargeError,
    ProductCatalog,
    ProductFields,
    UnsupportedMediaError,
    ValidationError,
)
from src.services.pricing import PricingBreakdown, calculate_pricing
from src.services.product_store import ProductRepository, StoreError

__all__ = [
    "AssetDeleteError",
    "AssetStore",
    "AssetStoreError",
    "AssetUploadError",
    "CatalogError",
    "FieldError",
    "ImageUpload",
    "NotFoundError",
    "PayloadTooLargeError",
    "PricingBreakdown",
    "ProductCatalog",
    "ProductFields",
    "ProductRepository",
    "S3AssetStore",
    "StoreError",
    "UnsupportedMediaError",
    "ValidationError",
    "calculate_pricing",
]
