"""
Nearest-color quantization over a fixed 12-color palette.

Every pixel is assigned to the palette color with the smallest Manhattan
distance |r-cr| + |g-cg| + |b-cb|. On exact ties the color declared
first in the palette wins, so bin assignment is deterministic and
depends only on palette order.

The resulting histogram holds one pixel count per palette bin and sums
to the number of pixels in the source image. Histogram index i always
refers to palette entry i.

Classification is vectorised in fixed-size chunks so memory stays
bounded for large images while cost remains linear in the pixel count.
"""

import os
import logging
from typing import List, NamedTuple, Sequence, Tuple

import numpy as np

from .preprocessing import to_pixel_array

logger = logging.getLogger(__name__)

# Pixels classified per numpy batch. Larger = faster, more memory.
CHUNK_SIZE = int(os.environ.get("PALETTE_CHUNK_SIZE", "65536"))


class PaletteColor(NamedTuple):
    """A named reference color used as a classification centroid."""

    name: str
    rgb: Tuple[int, int, int]


DEFAULT_PALETTE: Tuple[PaletteColor, ...] = (
    PaletteColor("red", (204, 0, 0)),
    PaletteColor("orange", (251, 148, 11)),
    PaletteColor("yellow", (255, 255, 0)),
    PaletteColor("green", (0, 204, 0)),
    PaletteColor("Blue-green", (3, 192, 198)),
    PaletteColor("blue", (0, 0, 255)),
    PaletteColor("purple", (118, 44, 167)),
    PaletteColor("pink", (255, 152, 191)),
    PaletteColor("white", (255, 255, 255)),
    PaletteColor("grey", (153, 153, 153)),
    PaletteColor("black", (0, 0, 0)),
    PaletteColor("brown", (136, 84, 24)),
)

NUM_BINS = len(DEFAULT_PALETTE)


def _centroids(palette: Sequence[PaletteColor]) -> np.ndarray:
    return np.array([color.rgb for color in palette], dtype=np.int32)


def palette_index(name: str,
                  palette: Sequence[PaletteColor] = DEFAULT_PALETTE) -> int:
    """
    Return the bin index of a palette color by name.

    Raises:
        ValueError: If no palette entry has that name.
    """
    for i, color in enumerate(palette):
        if color.name == name:
            return i
    raise ValueError(f"Unknown palette color: {name!r}")


def classify(pixel: Sequence[int],
             palette: Sequence[PaletteColor] = DEFAULT_PALETTE) -> int:
    """
    Classify a single RGB pixel to its nearest palette bin.

    Args:
        pixel: (r, g, b) triple. Extra components (alpha) are ignored.
        palette: Ordered reference colors.

    Returns:
        Index of the nearest palette color, lowest index on ties.
    """
    r, g, b = int(pixel[0]), int(pixel[1]), int(pixel[2])
    closest_index = 0
    min_distance = None

    for i, color in enumerate(palette):
        cr, cg, cb = color.rgb
        distance = abs(r - cr) + abs(g - cg) + abs(b - cb)
        # Strict comparison keeps the first of several equal minima
        if min_distance is None or distance < min_distance:
            min_distance = distance
            closest_index = i

    return closest_index


def build_histogram(pixels,
                    palette: Sequence[PaletteColor] = DEFAULT_PALETTE,
                    chunk_size: int = None) -> List[int]:
    """
    Count pixels per palette bin.

    Args:
        pixels: Image array (H, W, 3|4), flat array (N, 3|4), grayscale
            (H, W), or a sequence of (r, g, b) tuples.
        palette: Ordered reference colors.
        chunk_size: Pixels per vectorised batch (defaults to CHUNK_SIZE).

    Returns:
        List of len(palette) non-negative ints summing to the pixel count.
    """
    chunk_size = chunk_size or CHUNK_SIZE
    flat = to_pixel_array(pixels)
    centroids = _centroids(palette)
    hist = np.zeros(len(palette), dtype=np.int64)

    for start in range(0, flat.shape[0], chunk_size):
        chunk = flat[start:start + chunk_size].astype(np.int32)
        # (n, 1, 3) - (1, k, 3) -> (n, k) Manhattan distances
        distances = np.abs(chunk[:, None, :] - centroids[None, :, :]).sum(axis=2)
        # argmin returns the first minimum -> lower palette index wins ties
        nearest = np.argmin(distances, axis=1)
        hist += np.bincount(nearest, minlength=len(palette))

    logger.debug(f"Histogram over {flat.shape[0]} pixels: {hist.tolist()}")
    return [int(count) for count in hist]

