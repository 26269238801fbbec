"""Records shared across the indexing pipeline."""

from dataclasses import dataclass
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class ImageRecord:
    """Catalog entry for one image. Identity is the path."""

    path: str
    category: str
    dominant_color: str = ""

    @classmethod
    def from_catalog_entry(cls, entry: Dict[str, Any]) -> "ImageRecord":
        return cls(
            path=entry["path"],
            category=entry.get("class") or "",
            dominant_color=entry.get("dominantcolor") or "",
        )


@dataclass(frozen=True)
class ProcessedRecord:
    """An image together with its palette histogram."""

    path: str
    category: str
    histogram: Tuple[int, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "category": self.category,
            "histogram": list(self.histogram),
        }

