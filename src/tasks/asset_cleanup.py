"""Celery task that removes product images no product refers to.

Product writes tolerate failed image deletes, so objects can outlive the
record that pointed at them. This sweep reclaims them once they are older
than a grace period, which keeps it clear of uploads whose record is still
being saved.
"""

import asyncio
import logging
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.celery_app import celery_app
from src.config import settings
from src.database import build_engine
from src.services.asset_store import (
    AssetStore,
    AssetStoreError,
    S3AssetStore,
    StoredObject,
)
from src.services.product_store import ProductRepository, StoreError

logger = logging.getLogger(__name__)


def find_orphaned_keys(
    objects: Iterable[StoredObject],
    referenced_keys: set[str],
    now: datetime,
    grace: timedelta,
) -> list[str]:
    """Select stored objects that are unreferenced and older than grace.

    Args:
        objects: Objects listed from the asset store
        referenced_keys: Keys referenced by product image URLs
        now: Current time
        grace: Minimum age before an unreferenced object is removed

    Returns:
        Keys safe to delete
    """
    cutoff = now - grace
    return [
        obj.key
        for obj in objects
        if obj.key not in referenced_keys and obj.last_modified < cutoff
    ]


async def _async_sweep_orphaned_images(
    asset_store: AssetStore | None = None,
) -> dict[str, Any]:
    """Async implementation of the orphaned image sweep.

    Returns:
        Dictionary with sweep results
    """
    store = asset_store or S3AssetStore()
    now = datetime.now(UTC)
    prefix = settings.product_image_prefix.strip("/") + "/"

    engine = build_engine()
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    results: dict[str, Any] = {
        "status": "success",
        "sweep_time": now.isoformat(),
        "scanned": 0,
        "deleted": 0,
        "errors": [],
    }

    try:
        async with async_session() as session:
            image_urls = await ProductRepository(session).list_image_urls()
        referenced = {store.key_from_url(url) for url in image_urls}

        objects = await store.list_objects(prefix)
        results["scanned"] = len(objects)

        orphans = find_orphaned_keys(
            objects,
            referenced,
            now,
            timedelta(hours=settings.orphan_sweep_grace_hours),
        )
        for key in orphans:
            try:
                await store.delete(key)
                results["deleted"] += 1
            except AssetStoreError as e:
                results["errors"].append(f"Failed to delete {key}: {e}")
                logger.warning("Failed to delete orphaned image %s: %s", key, e)

    except StoreError as e:
        results["status"] = "error"
        results["errors"].append(f"Product lookup failed: {e}")
        logger.error("Product lookup failed during image sweep: %s", e)
    except AssetStoreError as e:
        results["status"] = "error"
        results["errors"].append(f"Image listing failed: {e}")
        logger.error("Image listing failed during sweep: %s", e)
    finally:
        await engine.dispose()

    if results["errors"] and results["status"] == "success":
        results["status"] = "partial"

    return results


@celery_app.task(
    bind=True,
    name="src.tasks.asset_cleanup.sweep_orphaned_images",
    max_retries=3,
    default_retry_delay=600,  # 10 minutes
)
def sweep_orphaned_images(self: Any) -> dict[str, Any]:
    """Celery task to delete product images no longer referenced by a product.

    Returns:
        Dictionary with counts of scanned and deleted objects and any errors
    """
    logger.info("Starting orphaned product image sweep")
    try:
        result = asyncio.run(_async_sweep_orphaned_images())
        logger.info(
            "Image sweep completed: %d scanned, %d deleted",
            result["scanned"],
            result["deleted"],
        )
        return result
    except Exception as e:
        logger.exception("Image sweep task failed")
        raise self.retry(exc=e) from e
