"""
Query engine for keyword and color lookups.

Two query paths:
    1. Keyword search against the raw catalog: a term starting with the
       color prefix ("#" by default) matches the precomputed dominant
       color tag, anything else matches the category exactly.
    2. Color search against the persisted color index, either within one
       category or sampled across every indexed category.

Both paths are read-only with respect to the index.
"""

import logging
from typing import List, Optional

from .catalog_index import CatalogIndex
from .config import SearchContext

logger = logging.getLogger(__name__)


class QueryEngine:
    """
    Answers keyword and color queries for one SearchContext.
    """

    def __init__(self, context: SearchContext):
        self.context = context
        self.config = context.config
        self.index = CatalogIndex(context)

    def search(self, term: str, cap: Optional[int] = None) -> List[str]:
        """
        Search the catalog by category or dominant color tag.

        Args:
            term: Category name, or a color tag such as "#red".
            cap: Maximum number of results. Defaults to num_shown_pic.

        Returns:
            Up to ``cap`` image paths in catalog order. Empty when
            nothing matches.
        """
        cap = self.config.num_shown_pic if cap is None else cap
        catalog = self.context.require_catalog()

        if term.startswith(self.config.color_prefix):
            matched = [r for r in catalog if r.dominant_color == term]
        else:
            matched = [r for r in catalog if r.category == term]

        results = [r.path for r in matched[:max(0, cap)]]
        logger.info(f"Keyword search {term!r}: {len(matched)} matches, returning {len(results)}")
        return results

    def search_color(self,
                     category: str,
                     color_name: str,
                     cap: Optional[int] = None) -> List[str]:
        """
        Search the color index for images dominated by a palette color.

        With an empty ``category`` every indexed category is scanned in
        store order and at most ``scan_all_per_category`` images are
        taken from each. With a category, all of that category's images
        for the color are returned (already limited to num_shown_pic at
        build time).

        Args:
            category: Category to search, or "" for all categories.
            color_name: Palette color name, e.g. "red".
            cap: Optional overall limit on the returned list.

        Returns:
            Image paths, best match first within each category.

        Raises:
            IndexNotFound: If ``category`` is not in the index.
        """
        if category == "":
            per_category = self.config.scan_all_per_category
            results = []
            for key in self.index.categories():
                entry = self.index.read(key)
                matched = self._filter_color(entry, color_name)
                results.extend(matched[:per_category])
            logger.info(
                f"Color search {color_name!r} across all categories: "
                f"{len(results)} results"
            )
        else:
            entry = self.index.read(category)
            results = self._filter_color(entry, color_name)
            logger.info(
                f"Color search {color_name!r} in {category!r}: {len(results)} results"
            )

        if cap is not None:
            results = results[:max(0, cap)]
        return results

    @staticmethod
    def _filter_color(entry: dict, color_name: str) -> List[str]:
        return [
            im["image"]["path"]
            for im in entry.get("images", [])
            if im.get("class") == color_name
        ]
