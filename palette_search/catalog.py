"""
Catalog loading.

The catalog is a JSON document describing the corpus:

    {"images": [{"path": "...", "class": "...", "dominantcolor": "#red"}, ...]}

It is read once at startup and never modified.
"""

import os
import json
import logging
from typing import Any, Dict, Iterator, List, Sequence

from .errors import CatalogError
from .models import ImageRecord

logger = logging.getLogger(__name__)


class Catalog:
    """Read-only, ordered collection of ImageRecords."""

    def __init__(self, records: Sequence[ImageRecord], source: str = ""):
        self.records = tuple(records)
        self.source = source

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[ImageRecord]:
        return iter(self.records)

    @property
    def base_dir(self) -> str:
        """Directory relative catalog paths are resolved against."""
        return os.path.dirname(os.path.abspath(self.source)) if self.source else ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: str = "") -> "Catalog":
        images = data.get("images") if isinstance(data, dict) else None
        if not isinstance(images, list):
            raise CatalogError(f"Catalog {source or '<dict>'} has no 'images' list")

        records: List[ImageRecord] = []
        skipped = 0
        for entry in images:
            if not isinstance(entry, dict) or not entry.get("path"):
                skipped += 1
                continue
            records.append(ImageRecord.from_catalog_entry(entry))

        if skipped:
            logger.warning(f"Skipped {skipped} catalog entries without a path")
        return cls(records, source)


def load_catalog(path: str) -> Catalog:
    """
    Load a catalog JSON file.

    Raises:
        CatalogError: If the file cannot be read or is malformed.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise CatalogError(f"Could not load catalog {path}: {e}") from e

    catalog = Catalog.from_dict(data, source=path)
    logger.info(f"Loaded catalog {path}: {len(catalog)} images")
    return catalog
