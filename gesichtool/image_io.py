"""
Image I/O for the face extraction pipeline.

Responsibility:
    Thin adapter over OpenCV for decoding, color conversion, resizing
    and JPEG encoding. Everything else in the package handles images
    as numpy arrays only.

Robustness:
    - load() never raises on a bad input file; it returns an empty
      matrix and leaves reporting to the caller.
    - write() raises OSError if the encoder fails, so a full disk or a
      missing directory is never silently ignored.
"""

import logging
from pathlib import Path
from typing import Union

import cv2
import numpy as np

from gesichtool.geometry import Size

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def empty_image() -> np.ndarray:
    """Return the empty BGR matrix used to signal a failed decode."""
    return np.empty((0, 0, 3), dtype=np.uint8)


def load(path: PathLike) -> np.ndarray:
    """Decode the image at `path` into a BGR matrix.

    Returns:
        A (rows, cols, 3) uint8 array, or an empty array if the file is
        missing, unsupported or corrupt.
    """
    try:
        image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    except cv2.error as e:
        logger.debug("OpenCV failed to decode %s: %s", path, e)
        return empty_image()

    if image is None:
        return empty_image()
    return image


def to_gray(image: np.ndarray) -> np.ndarray:
    """Convert a 3-channel BGR matrix to single-channel gray.

    A 2-D (already gray) input is returned as is.
    """
    if image.ndim == 2:
        return image
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)


def resize(image: np.ndarray, size: Size) -> np.ndarray:
    """Return `image` scaled to exactly size.width x size.height."""
    return cv2.resize(image, size.as_tuple())


def write(path: PathLike, image: np.ndarray, quality: int = 95) -> None:
    """JPEG-encode `image` to `path`, overwriting any existing file.

    Raises:
        OSError: If OpenCV could not encode or write the file.
    """
    try:
        ok = cv2.imwrite(str(path), image, [cv2.IMWRITE_JPEG_QUALITY, int(quality)])
    except cv2.error as e:
        raise OSError(f"Failed to write image: {path}\n  OpenCV error: {e}") from e
    if not ok:
        raise OSError(f"Failed to write image: {path}")
    logger.debug("Wrote %s (%dx%d)", path, image.shape[1], image.shape[0])
