"""SQLAlchemy models for the POS catalog."""

from src.models.product import PrimaryUnit, Product, ProductType

__all__ = [
    "PrimaryUnit",
    "Product",
    "ProductType",
]
