"""
Indexing pipeline: catalog -> color signatures -> pool -> color index.

Processes every catalog image concurrently, collects the resulting
ProcessedRecords in a ProcessedPool in completion order, and builds the
CatalogIndex exactly once, when the pool reaches its achievable count
(catalog size minus images that failed to decode).

If the store already holds an index, indexing is skipped entirely and
the store is left untouched.
"""

import asyncio
import logging
from typing import Callable, Optional

from .catalog_index import CatalogIndex
from .config import SearchContext
from .errors import ImageDecodeError
from .pool import ProcessedPool
from .preprocessing import OpenCVPixelProvider
from .signature import PixelProvider, SignatureBuilder

logger = logging.getLogger(__name__)

# Log progress every N settled images
PROGRESS_EVERY = 100

ProgressCallback = Callable[[int, int], None]


async def build_index(context: SearchContext,
                      pixels: Optional[PixelProvider] = None,
                      progress: Optional[ProgressCallback] = None) -> dict:
    """
    Build and persist the color index for the context's catalog.

    Args:
        context: Search context holding catalog, store and config.
        pixels: Pixel provider. Defaults to an OpenCVPixelProvider rooted
            at ``config.image_root`` or the catalog's directory.
        progress: Optional callback ``(settled, total)`` invoked after
            every image finishes, successfully or not.

    Returns:
        Dict with 'success', 'skipped', 'processed', 'failed',
        'expected' and 'categories'.

    Raises:
        PoolFull: If the pool capacity is smaller than the corpus.
        PersistedStoreWriteFailure: If the index could not be saved.
    """
    catalog = context.require_catalog()
    config = context.config
    index = CatalogIndex(context)

    if not index.is_empty():
        logger.warning("Persisted color index already present; skipping indexing")
        return {
            "success": True,
            "skipped": True,
            "processed": 0,
            "failed": 0,
            "expected": len(catalog),
            "categories": len(index.categories()),
        }

    if pixels is None:
        pixels = OpenCVPixelProvider(config.image_root or catalog.base_dir)

    total = len(catalog)
    pool = ProcessedPool(config.pool_capacity, expected_count=total)
    builder = SignatureBuilder(context.palette)
    semaphore = asyncio.Semaphore(config.max_concurrency)

    async def process_one(record):
        async with semaphore:
            try:
                return await builder.process(record, pixels)
            except ImageDecodeError:
                raise
            except Exception as e:
                # Any per-image failure only costs that image
                raise ImageDecodeError(record.path, f"{type(e).__name__}: {e}") from e

    logger.info(f"Building color index from {total} images")

    tasks = [asyncio.ensure_future(process_one(record)) for record in catalog]
    settled = 0
    built = None

    try:
        for future in asyncio.as_completed(tasks):
            try:
                record = await future
            except ImageDecodeError as e:
                logger.warning(f"Skipping image: {e}")
                pool.mark_failed()
            else:
                pool.insert(record)

            settled += 1
            if progress is not None:
                progress(settled, total)
            if settled % PROGRESS_EVERY == 0:
                logger.info(f"Processed {settled}/{total} images")

            if built is None and len(pool) and pool.is_complete():
                logger.info(
                    f"All images processed: {len(pool)} indexed, "
                    f"{pool.failed_count} failed"
                )
                built = index.build_and_save(pool)
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    if built is None:
        logger.error("No valid images processed; color index not built")
        return {
            "success": False,
            "skipped": False,
            "error": "No valid images processed",
            "processed": 0,
            "failed": pool.failed_count,
            "expected": total,
            "categories": 0,
        }

    return {
        "success": True,
        "skipped": False,
        "processed": len(pool),
        "failed": pool.failed_count,
        "expected": total,
        "categories": len(built),
    }


def run_indexing(context: SearchContext,
                 pixels: Optional[PixelProvider] = None,
                 progress: Optional[ProgressCallback] = None) -> dict:
    """Synchronous wrapper around build_index()."""
    return asyncio.run(build_index(context, pixels, progress))
