"""
Per-image color signatures.

Turns a catalog entry into a ProcessedRecord by asking a pixel provider
for the decoded image and counting its pixels per palette bin. Decoding
is the only await point; histogram computation runs in a worker thread.
"""

import asyncio
import logging
from typing import Protocol, Sequence

import numpy as np

from .errors import ImageDecodeError
from .models import ImageRecord, ProcessedRecord
from .quantizer import DEFAULT_PALETTE, PaletteColor, build_histogram

logger = logging.getLogger(__name__)


class PixelProvider(Protocol):
    """Anything that can asynchronously decode a catalog path to pixels."""

    async def load(self, path: str) -> np.ndarray:
        ...


class SignatureBuilder:
    """Builds ProcessedRecords from ImageRecords."""

    def __init__(self, palette: Sequence[PaletteColor] = DEFAULT_PALETTE):
        self.palette = tuple(palette)

    async def process(self,
                      record: ImageRecord,
                      pixels: PixelProvider) -> ProcessedRecord:
        """
        Compute the palette histogram for one image.

        Args:
            record: Catalog entry to process.
            pixels: Provider that decodes ``record.path``.

        Returns:
            ProcessedRecord with path, category and histogram.

        Raises:
            ImageDecodeError: If the provider cannot supply pixel data.
        """
        try:
            image = await pixels.load(record.path)
        except ImageDecodeError:
            raise
        except (OSError, ValueError) as e:
            raise ImageDecodeError(record.path, str(e)) from e

        if image is None:
            raise ImageDecodeError(record.path, "provider returned no data")

        try:
            histogram = await asyncio.to_thread(build_histogram, image, self.palette)
        except ValueError as e:
            raise ImageDecodeError(record.path, str(e)) from e

        logger.debug(f"Processed {record.path}: {histogram}")
        return ProcessedRecord(
            path=record.path,
            category=record.category,
            histogram=tuple(histogram),
        )
