"""Shared test fixtures for palette search tests."""

import numpy as np
import pytest

from palette_search.config import SearchConfig, SearchContext
from palette_search.catalog import Catalog
from palette_search.errors import ImageDecodeError
from palette_search.models import ProcessedRecord
from palette_search.quantizer import DEFAULT_PALETTE, palette_index
from palette_search.store import MemoryStore


def solid_image(rgb, h=10, w=10):
    img = np.zeros((h, w, 3), dtype=np.uint8)
    img[:, :] = rgb
    return img


class DictPixelProvider:
    """Serves pixel arrays from a dict; paths listed in ``broken`` fail."""

    def __init__(self, images, broken=()):
        self.images = images
        self.broken = set(broken)
        self.calls = []

    async def load(self, path):
        self.calls.append(path)
        if path in self.broken or path not in self.images:
            raise ImageDecodeError(path, "test decode failure")
        return self.images[path]


@pytest.fixture
def red_square_image():
    """Generate a 200x200 palette-red square on white background."""
    img = np.ones((200, 200, 3), dtype=np.uint8) * 255
    img[40:160, 40:160] = [204, 0, 0]  # Red square, 120x120
    return img


@pytest.fixture
def solid_red_image():
    return solid_image((204, 0, 0), h=20, w=30)


@pytest.fixture
def noise_image():
    """Generate a 64x64 random noise image."""
    rng = np.random.RandomState(42)
    return rng.randint(0, 256, (64, 64, 3), dtype=np.uint8)


@pytest.fixture
def provider_cls():
    return DictPixelProvider


@pytest.fixture
def small_config():
    return SearchConfig(num_shown_pic=2, scan_all_per_category=1, pool_capacity=50)


@pytest.fixture
def landmark_catalog():
    """Six images over two categories with dominant color tags."""
    return Catalog.from_dict({"images": [
        {"path": "eiffel/1.jpg", "class": "eiffel tower", "dominantcolor": "#red"},
        {"path": "eiffel/2.jpg", "class": "eiffel tower", "dominantcolor": "#blue"},
        {"path": "eiffel/3.jpg", "class": "eiffel tower", "dominantcolor": "#red"},
        {"path": "taj/1.jpg", "class": "taj mahal", "dominantcolor": "#white"},
        {"path": "taj/2.jpg", "class": "taj mahal", "dominantcolor": "#red"},
        {"path": "taj/3.jpg", "class": "taj mahal", "dominantcolor": "#white"},
    ]})


@pytest.fixture
def landmark_images():
    """Pixel data for landmark_catalog: varying amounts of red per image."""
    def red_fraction(n_red, total=10):
        img = solid_image((255, 255, 255), h=1, w=total)
        img[0, :n_red] = (204, 0, 0)
        return img

    return {
        "eiffel/1.jpg": red_fraction(3),
        "eiffel/2.jpg": red_fraction(9),
        "eiffel/3.jpg": red_fraction(5),
        "taj/1.jpg": red_fraction(1),
        "taj/2.jpg": red_fraction(7),
        "taj/3.jpg": red_fraction(7),
    }


@pytest.fixture
def context(small_config, landmark_catalog):
    return SearchContext(
        config=small_config,
        store=MemoryStore(),
        catalog=landmark_catalog,
        categories=("eiffel tower", "taj mahal"),
    )


def make_record(path, category, **bins):
    """ProcessedRecord with named palette bins set, e.g. red=5."""
    hist = [0] * len(DEFAULT_PALETTE)
    for name, count in bins.items():
        hist[palette_index(name.replace("_", "-"), DEFAULT_PALETTE)] = count
    return ProcessedRecord(path=path, category=category, histogram=tuple(hist))


@pytest.fixture
def record_factory():
    return make_record
