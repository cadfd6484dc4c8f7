"""
Face cropping and writing.

Responsibility:
    Turn the rectangles of one image into output files: compute the
    final crop region, slice it out of the source, resize it to the
    output size and write it as face{III}-{FFF}.jpg.

Naming:
    III is the 0-based position of the image in the input list and FFF
    the 0-based index of the face within that image, both zero-padded
    to three digits. Names depend only on these indices, never on the
    order in which workers finish, so a batch never produces two files
    with the same name.
"""

import logging
from pathlib import Path
from typing import Sequence, Union

import numpy as np

from gesichtool import image_io
from gesichtool.geometry import Rectangle, Size

logger = logging.getLogger(__name__)


def face_filename(image_index: int, face_index: int) -> str:
    """Return the output file name for a face, e.g. face003-012.jpg."""
    return f"face{image_index:03d}-{face_index:03d}.jpg"


def inflation(rect: Rectangle) -> int:
    """Pixels added on each side of a detection before cropping."""
    return 0  # int(0.2 * rect.width)


def crop_region(rect: Rectangle, cols: int, rows: int) -> Rectangle:
    """Compute the region to crop for a detected face.

    The detection is enlarged by inflation(rect). If the enlarged region
    leaves the image the enlargement is dropped and the detection itself
    is used. The result is always clipped to the image.
    """
    enlarged = rect.inflate(inflation(rect))
    if enlarged.is_inside(cols, rows):
        final = enlarged
    else:
        logger.info("enlargement rejected")
        final = rect
    return final.clip(cols, rows)


def extract_faces(
    image: np.ndarray,
    faces: Sequence[Rectangle],
    image_index: int,
    output_dir: Union[str, Path],
    output_size: Size,
    jpeg_quality: int = 95,
) -> int:
    """Crop, resize and write every face found in one image.

    Args:
        image: Source BGR image.
        faces: Rectangles returned by a detector for this image.
        image_index: Position of the image in the input list.
        output_dir: Existing directory receiving the crops.
        output_size: Dimensions of each written crop.
        jpeg_quality: JPEG encoder quality.

    Returns:
        The number of files written.

    Raises:
        OSError: If a crop cannot be written.
    """
    rows, cols = image.shape[:2]
    output_dir = Path(output_dir)

    face_index = 0
    for rect in faces:
        if rect.is_empty:
            logger.info(
                "skipping zero-area detection %s in image %03d", rect.to_dict(), image_index
            )
            continue

        final = crop_region(rect, cols, rows)
        if final.is_empty:
            logger.info(
                "skipping detection %s outside image %03d (%dx%d)",
                rect.to_dict(), image_index, cols, rows,
            )
            continue

        (x1, y1), (x2, y2) = final.top_left, final.bottom_right
        logger.info(
            "cropping (%d, %d)-(%d, %d) from %dx%d image", x1, y1, x2, y2, cols, rows
        )

        face = image_io.resize(image[y1:y2, x1:x2], output_size)
        image_io.write(output_dir / face_filename(image_index, face_index), face, jpeg_quality)
        face_index += 1

    return face_index
