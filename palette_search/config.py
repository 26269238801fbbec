"""
Runtime configuration and the explicit search context.

Tunables default to the values below and can be overridden through the
environment (see SearchConfig.from_env) or passed explicitly.
"""

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .catalog import Catalog
from .quantizer import DEFAULT_PALETTE, PaletteColor
from .store import KeyValueStore, MemoryStore

# Known category domain of the landmark corpus
DEFAULT_CATEGORIES: Tuple[str, ...] = (
    "burj khalifa",
    "chichen itza",
    "christ the reedemer",
    "eiffel tower",
    "great wall of china",
    "machu pichu",
    "pyramids of giza",
    "roman colosseum",
    "statue of liberty",
    "stonehenge",
    "taj mahal",
    "venezuela angel falls",
)


@dataclass(frozen=True)
class SearchConfig:
    """Tunable limits for indexing and querying."""

    # Images kept per category/color bin and default keyword-search cap
    num_shown_pic: int = 30
    # Per-category cap when a color query spans all categories
    scan_all_per_category: int = 3
    pool_capacity: int = 5000
    color_prefix: str = "#"
    store_dir: str = ".palette_index"
    image_root: str = ""
    max_concurrency: int = 8

    def __post_init__(self):
        for name in ("num_shown_pic", "scan_all_per_category",
                     "pool_capacity", "max_concurrency"):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        if not self.color_prefix:
            raise ValueError("color_prefix must not be empty")

    @classmethod
    def from_env(cls, environ=None) -> "SearchConfig":
        env = os.environ if environ is None else environ
        return cls(
            num_shown_pic=int(env.get("PALETTE_NUM_SHOWN_PIC", "30")),
            scan_all_per_category=int(env.get("PALETTE_SCAN_ALL_PER_CATEGORY", "3")),
            pool_capacity=int(env.get("PALETTE_POOL_CAPACITY", "5000")),
            color_prefix=env.get("PALETTE_COLOR_PREFIX", "#"),
            store_dir=env.get("PALETTE_STORE_DIR", ".palette_index"),
            image_root=env.get("PALETTE_IMAGE_ROOT", ""),
            max_concurrency=int(env.get("PALETTE_MAX_CONCURRENCY", "8")),
        )


@dataclass
class SearchContext:
    """
    Everything the indexer and query engine share for one corpus.

    Passed explicitly to CatalogIndex, QueryEngine and build_index.
    """

    config: SearchConfig = field(default_factory=SearchConfig)
    store: KeyValueStore = field(default_factory=MemoryStore)
    catalog: Optional[Catalog] = None
    palette: Tuple[PaletteColor, ...] = DEFAULT_PALETTE
    categories: Tuple[str, ...] = DEFAULT_CATEGORIES

    def require_catalog(self) -> Catalog:
        if self.catalog is None:
            raise ValueError("No catalog loaded in this context")
        return self.catalog
