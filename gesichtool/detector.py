"""
Face detector backends.

Public contract:
    FaceDetector.detect(image: np.ndarray) -> list[Rectangle]

Two implementations exist:
    - CascadeDetector: OpenCV Haar cascade. Fast, several tunables,
      more false positives.
    - HogDetector: dlib HOG + linear SVM frontal face detector. Slower,
      more accurate out of the box, no tunables.

Constraints:
    - Input must be a BGR numpy array (as returned by image_io.load).
    - Rectangles are in input pixel coordinates; no ordering is promised.
    - Instances are NOT thread-safe. Construct one per worker task.

Non-goals:
    - No file reading or writing.
    - No cropping or resizing of the detected faces.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

import numpy as np

from gesichtool import image_io
from gesichtool.config import DetectionConfig, DetectionMode
from gesichtool.geometry import Rectangle, Size
from gesichtool.model_loader import load_cascade, load_hog_detector

logger = logging.getLogger(__name__)


class FaceDetector(ABC):
    """Common interface of the detection backends."""

    name: str = "detector"

    @abstractmethod
    def detect(self, image: np.ndarray) -> List[Rectangle]:
        """Return the faces found in a BGR image."""

    @staticmethod
    def _validate_frame(image: np.ndarray) -> None:
        """Validate that the input image meets the API contract.

        Raises:
            TypeError: If image is not a numpy ndarray.
            ValueError: If image is empty or has wrong dimensions.
        """
        if not isinstance(image, np.ndarray):
            raise TypeError(
                f"Expected image to be a numpy ndarray, "
                f"got {type(image).__name__}. "
                f"Use image_io.load() to obtain images."
            )

        if image.size == 0:
            raise ValueError("Image is empty (zero size).")

        if image.ndim != 3:
            raise ValueError(
                f"Expected a 3-dimensional image (H, W, C), "
                f"got {image.ndim} dimensions with shape {image.shape}."
            )

        if image.shape[2] != 3:
            raise ValueError(
                f"Expected 3 channels (BGR), got {image.shape[2]} channels."
            )


class CascadeDetector(FaceDetector):
    """Haar cascade face detector.

    Args:
        min_neighbors: Overlapping candidate windows needed to keep a face.
        min_size: Smallest face to report, or None for no floor.
        max_size: Largest face to report, or None for no ceiling.
        scale_factor: Image pyramid step between scales.
        cascade_path: Explicit classifier XML; default is discovered.

    Raises:
        FileNotFoundError: If the classifier file cannot be located.
        RuntimeError: If the classifier file cannot be parsed.
    """

    name = "opencv"

    def __init__(
        self,
        min_neighbors: int = 3,
        min_size: Optional[Size] = Size(512, 512),
        max_size: Optional[Size] = None,
        scale_factor: float = 1.1,
        cascade_path: Optional[str] = None,
    ) -> None:
        self._classifier = load_cascade(cascade_path)
        self._min_neighbors = min_neighbors
        self._min_size = min_size
        self._max_size = max_size
        self._scale_factor = scale_factor

    def detect(self, image: np.ndarray) -> List[Rectangle]:
        self._validate_frame(image)

        # (0, 0) means "no limit" to detectMultiScale
        min_size = self._min_size.as_tuple() if self._min_size else (0, 0)
        max_size = self._max_size.as_tuple() if self._max_size else (0, 0)

        faces = self._classifier.detectMultiScale(
            image,
            scaleFactor=self._scale_factor,
            minNeighbors=self._min_neighbors,
            flags=0,
            minSize=min_size,
            maxSize=max_size,
        )

        return [Rectangle(int(x), int(y), int(w), int(h)) for (x, y, w, h) in faces]


class HogDetector(FaceDetector):
    """dlib frontal face detector (HOG features + linear SVM)."""

    name = "dlib"

    def __init__(self) -> None:
        self._detector = load_hog_detector()

    def detect(self, image: np.ndarray) -> List[Rectangle]:
        self._validate_frame(image)

        gray = image_io.to_gray(image)
        rows, cols = gray.shape[:2]

        rectangles: List[Rectangle] = []
        for r in self._detector(gray, 0):
            # dlib boxes may extend past the image border
            rect = Rectangle(r.left(), r.top(), r.width(), r.height()).clip(cols, rows)
            if rect.is_empty:
                continue
            rectangles.append(rect)

        return rectangles


def create_detector(config: DetectionConfig) -> FaceDetector:
    """Construct a new detector for the configured backend.

    Cascade tunables are passed to CascadeDetector only; HogDetector
    ignores them.
    """
    if config.mode is DetectionMode.CASCADE:
        return CascadeDetector(
            min_neighbors=config.min_neighbors,
            min_size=config.min_size,
            max_size=config.max_size,
            scale_factor=config.scale_factor,
            cascade_path=config.cascade_path,
        )
    if config.mode is DetectionMode.HOG:
        return HogDetector()
    raise ValueError(f"Unsupported detection mode: {config.mode!r}")
