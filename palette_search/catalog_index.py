"""
Category x color index over processed images.

For every category and every palette bin the index keeps the paths of
the images with the most pixels in that bin, best first, truncated to
``num_shown_pic``. It is built once from a complete ProcessedPool and
persisted as one store entry per category:

    {"images": [{"class": <color name>,
                 "image": {"path", "category", "histogram"}}, ...]}

Entries are grouped by color in palette order. An image outside the
top-N of one bin may still appear under other bins.
"""

import logging
from typing import Any, Dict, List, Sequence

from .config import SearchContext
from .errors import IncompletePoolError, PersistedStoreWriteFailure
from .models import ProcessedRecord
from .pool import ProcessedPool

logger = logging.getLogger(__name__)


def rank_by_bin(records: Sequence[ProcessedRecord], bin_index: int) -> List[ProcessedRecord]:
    """
    Sort records by pixel count in one bin, highest first.

    The sort is stable, so records with equal counts keep their
    relative order from ``records`` (pool insertion order).
    """
    return sorted(records, key=lambda r: -r.histogram[bin_index])


def group_by_category(records: Sequence[ProcessedRecord]) -> Dict[str, List[ProcessedRecord]]:
    groups: Dict[str, List[ProcessedRecord]] = {}
    for record in records:
        groups.setdefault(record.category, []).append(record)
    return groups


class CatalogIndex:
    """Builds, persists and reads the per-category color index."""

    def __init__(self, context: SearchContext):
        self.context = context
        self.store = context.store

    def build(self, pool: ProcessedPool) -> Dict[str, Dict[str, Any]]:
        """
        Build the index from a complete pool.

        Known categories come first in their configured order, followed
        by any other categories found in the pool in first-seen order.
        Known categories without images get an empty entry.

        Raises:
            IncompletePoolError: If ``pool.is_complete()`` is false.
        """
        if not pool.is_complete():
            raise IncompletePoolError(
                f"Cannot build index from incomplete pool: "
                f"{len(pool)}/{pool.achievable_count} records"
            )

        limit = self.context.config.num_shown_pic
        palette = self.context.palette
        groups = group_by_category(pool.records)

        categories = list(self.context.categories)
        extra = [c for c in groups if c not in categories]
        if extra:
            logger.info(f"Indexing {len(extra)} categories outside the known set: {extra}")
        categories.extend(extra)

        index = {}
        for category in categories:
            members = groups.get(category, [])
            images = []
            for bin_index, color in enumerate(palette):
                for record in rank_by_bin(members, bin_index)[:limit]:
                    images.append({"class": color.name, "image": record.to_dict()})
            index[category] = {"images": images}

        logger.info(
            f"Built color index: {len(index)} categories, "
            f"{len(pool)} images, top {limit} per color"
        )
        return index

    def save(self, index: Dict[str, Dict[str, Any]]) -> None:
        """
        Persist every category entry.

        If any write fails, entries already written by this call are
        removed again so the store never holds a partial index.

        Raises:
            PersistedStoreWriteFailure: If a category could not be saved.
        """
        written = []
        try:
            for category, entry in index.items():
                self.store.save(category, entry)
                written.append(category)
        except PersistedStoreWriteFailure as e:
            logger.error(f"Index write failed at {category!r}: {e}; rolling back {len(written)} entries")
            for key in written:
                try:
                    self.store.delete(key)
                except OSError as delete_error:
                    logger.error(f"Rollback could not remove {key!r}: {delete_error}")
            raise

        logger.info(f"Persisted color index: {len(written)} categories")

    def build_and_save(self, pool: ProcessedPool) -> Dict[str, Dict[str, Any]]:
        index = self.build(pool)
        self.save(index)
        return index

    def read(self, category: str) -> Dict[str, Any]:
        """Raises IndexNotFound if the category has no persisted entry."""
        return self.store.read(category)

    def is_empty(self) -> bool:
        return self.store.is_empty()

    def categories(self) -> List[str]:
        return self.store.keys()
