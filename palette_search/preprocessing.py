"""
Pixel buffer preparation for color quantization.

Handles dtype normalization, channel layout (grayscale, RGB, RGBA) and
decoding image files into RGB arrays. Decoding itself is delegated to
OpenCV; this module only adapts its output to the flat (N, 3) uint8
layout the quantizer works on.
"""

import os
import asyncio
import logging

import cv2
import numpy as np

from .errors import ImageDecodeError

logger = logging.getLogger(__name__)


def normalize_image(image_np: np.ndarray) -> np.ndarray:
    """Ensure image is uint8 format. Float images in [0, 1] are rescaled."""
    if image_np.dtype != np.uint8:
        is_float = np.issubdtype(image_np.dtype, np.floating)
        if is_float and image_np.size and image_np.max() <= 1.0:
            image_np = (image_np * 255).astype(np.uint8)
        else:
            image_np = np.clip(image_np, 0, 255).astype(np.uint8)
    return image_np


def to_pixel_array(pixels) -> np.ndarray:
    """
    Flatten any supported pixel buffer to an (N, 3) uint8 array.

    Accepts (H, W) grayscale, (H, W, 3|4) images, (N, 3|4) flat buffers
    and plain sequences of (r, g, b) tuples. The alpha channel, when
    present, is dropped.

    Raises:
        ValueError: If the buffer has an unsupported shape.
    """
    image_np = normalize_image(np.asarray(pixels))

    if image_np.size == 0:
        return np.zeros((0, 3), dtype=np.uint8)

    if image_np.ndim == 2 and image_np.shape[1] not in (3, 4):
        # Grayscale: replicate the single channel
        image_np = np.repeat(image_np[:, :, None], 3, axis=2)

    if image_np.shape[-1] not in (3, 4):
        raise ValueError(
            f"Unsupported pixel buffer shape {image_np.shape}: "
            f"expected 3 (RGB) or 4 (RGBA) channels"
        )

    return image_np[..., :3].reshape(-1, 3)


def load_image_rgb(filepath: str) -> np.ndarray:
    """
    Decode an image file into an RGB uint8 array.

    Raises:
        ImageDecodeError: If the file is missing or cannot be decoded.
    """
    if not os.path.exists(filepath):
        raise ImageDecodeError(filepath, "file not found")

    image = cv2.imread(filepath, cv2.IMREAD_COLOR)
    if image is None:
        raise ImageDecodeError(filepath, "unsupported or corrupt image")

    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


class OpenCVPixelProvider:
    """
    Pixel provider that decodes catalog paths from the local filesystem.

    Relative catalog paths are resolved against ``root``. Decoding runs
    in a worker thread so many images can be in flight at once.
    """

    def __init__(self, root: str = ""):
        self.root = root

    def resolve(self, path: str) -> str:
        if self.root and not os.path.isabs(path):
            return os.path.join(self.root, path)
        return path

    async def load(self, path: str) -> np.ndarray:
        filepath = self.resolve(path)
        try:
            return await asyncio.to_thread(load_image_rgb, filepath)
        except ImageDecodeError as e:
            # Report the catalog path, not the resolved one
            raise ImageDecodeError(path, e.reason) from e
        except cv2.error as e:
            raise ImageDecodeError(path, str(e)) from e
