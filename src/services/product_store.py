"""Persistence for catalog products."""

import logging
import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import desc, exists, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.product import Product

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when the product table cannot be read or written."""


class ProductRepository:
    """Record store for Product rows on an async session.

    Writes are flushed immediately so constraint violations surface inside the
    calling operation rather than at commit time. Committing is left to the
    session owner.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def insert(self, product: Product) -> Product:
        """Persist a new product and return it with id and timestamps set."""
        try:
            self.session.add(product)
            await self.session.flush()
            await self.session.refresh(product)
        except SQLAlchemyError as e:
            logger.error("Failed to insert product %r: %s", product, e)
            raise StoreError(f"Failed to save product: {e}") from e
        return product

    async def find_by_id(self, product_id: uuid.UUID) -> Product | None:
        """Fetch a product by id, or None if it does not exist."""
        try:
            return await self.session.get(Product, product_id)
        except SQLAlchemyError as e:
            logger.error("Failed to load product %s: %s", product_id, e)
            raise StoreError(f"Failed to load product: {e}") from e

    async def update(
        self, product_id: uuid.UUID, values: dict[str, Any]
    ) -> Product | None:
        """Apply column values to an existing product.

        Returns:
            The updated product, or None if it does not exist.
        """
        product = await self.find_by_id(product_id)
        if product is None:
            return None

        try:
            for column, value in values.items():
                setattr(product, column, value)
            await self.session.flush()
            await self.session.refresh(product)
        except SQLAlchemyError as e:
            logger.error("Failed to update product %s: %s", product_id, e)
            raise StoreError(f"Failed to update product: {e}") from e
        return product

    async def delete(self, product_id: uuid.UUID) -> Product | None:
        """Remove a product.

        Returns:
            The removed product as last loaded, or None if it did not exist.
        """
        product = await self.find_by_id(product_id)
        if product is None:
            return None

        try:
            await self.session.delete(product)
            await self.session.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to delete product %s: %s", product_id, e)
            raise StoreError(f"Failed to delete product: {e}") from e
        return product

    async def commit(self) -> None:
        """Commit pending writes so they survive a later rollback."""
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            logger.error("Failed to commit product changes: %s", e)
            raise StoreError(f"Failed to commit: {e}") from e

    async def rollback(self) -> None:
        """Discard pending writes, e.g. after a failed flush."""
        try:
            await self.session.rollback()
        except SQLAlchemyError as e:
            logger.error("Failed to roll back product changes: %s", e)
            raise StoreError(f"Failed to roll back: {e}") from e

    async def list_all(self) -> Sequence[Product]:
        """Return every product, most recently created first."""
        try:
            result = await self.session.execute(
                select(Product).order_by(desc(Product.created_at), desc(Product.id))
            )
        except SQLAlchemyError as e:
            logger.error("Failed to list products: %s", e)
            raise StoreError(f"Failed to retrieve products: {e}") from e
        return result.scalars().all()

    async def barcode_exists(self, barcode: str) -> bool:
        """Check whether a barcode is already assigned to a product."""
        try:
            result = await self.session.execute(
                select(exists().where(Product.barcode == barcode))
            )
        except SQLAlchemyError as e:
            logger.error("Failed to check barcode %s: %s", barcode, e)
            raise StoreError(f"Failed to check barcode: {e}") from e
        return bool(result.scalar())

    async def list_image_urls(self) -> set[str]:
        """Return the non-empty image URLs referenced by any product."""
        try:
            result = await self.session.execute(
                select(Product.image_url).where(Product.image_url != "")
            )
        except SQLAlchemyError as e:
            logger.error("Failed to list product image URLs: %s", e)
            raise StoreError(f"Failed to list image URLs: {e}") from e
        return {row[0] for row in result.fetchall()}
