"""
Model loading for the face detection backends.

Responsibility:
    Locate and load the Haar cascade classifier, and obtain the dlib
    frontal face HOG detector. Each call returns a fresh instance;
    neither model is safe to share between threads.

Non-goals:
    - No inference or frame-level logic.
    - No automatic model downloading.
    - No fallback from one backend to the other.

Failure behavior:
    - A cascade file that cannot be located raises FileNotFoundError
      listing every place that was searched.
    - A cascade file that cannot be parsed raises RuntimeError.
"""

import logging
from pathlib import Path
from typing import List, Optional

import cv2

from gesichtool.config import CASCADE_RESOURCE

logger = logging.getLogger(__name__)


def _cascade_candidates(resource: str) -> List[Path]:
    """Return the paths at which the cascade resource may live, in search order."""
    candidates: List[Path] = []

    # OpenCV sample data search path (OPENCV_SAMPLES_DATA_PATH etc.)
    try:
        found = cv2.samples.findFile(resource, False, True)
    except cv2.error:
        found = ""
    if found:
        candidates.append(Path(found))

    # Data directory bundled with the opencv-python wheels
    data = getattr(cv2, "data", None)
    haarcascades = getattr(data, "haarcascades", None)
    if haarcascades:
        candidates.append(Path(haarcascades) / Path(resource).name)

    return candidates


def locate_cascade(
    cascade_path: Optional[str] = None,
    resource: str = CASCADE_RESOURCE,
) -> Path:
    """Find the cascade classifier XML file.

    Args:
        cascade_path: Explicit path; when given, no discovery is done.
        resource: Resource name relative to OpenCV's sample data.

    Raises:
        FileNotFoundError: If no candidate file exists.
    """
    if cascade_path is not None:
        path = Path(cascade_path)
        if not path.is_file():
            raise FileNotFoundError(
                f"Cascade classifier not found.\n"
                f"  Expected: {path}\n"
                f"  Provide the file or update 'detection.cascade_path' in your config."
            )
        return path

    candidates = _cascade_candidates(resource)
    for candidate in candidates:
        if candidate.is_file():
            return candidate

    searched = "\n".join(f"    {c}" for c in candidates) or "    (no search paths available)"
    raise FileNotFoundError(
        f"Cascade classifier '{resource}' not found.\n"
        f"  Searched:\n{searched}\n"
        f"  Install opencv-python or set 'detection.cascade_path'."
    )


def load_cascade(cascade_path: Optional[str] = None) -> cv2.CascadeClassifier:
    """Load a fresh Haar cascade classifier.

    Raises:
        FileNotFoundError: If the classifier file cannot be located.
        RuntimeError: If the file exists but OpenCV cannot parse it.
    """
    path = locate_cascade(cascade_path)

    logger.debug("Loading cascade classifier: %s", path)
    classifier = cv2.CascadeClassifier()
    try:
        loaded = classifier.load(str(path))
    except cv2.error as e:
        raise RuntimeError(
            f"Failed to parse cascade classifier: {path}\n"
            f"  OpenCV error: {e}"
        ) from e

    if not loaded or classifier.empty():
        raise RuntimeError(f"Failed to parse cascade classifier: {path}")

    return classifier


def load_hog_detector():
    """Return a fresh dlib frontal face HOG/SVM detector."""
    import dlib

    logger.debug("Loading dlib frontal face detector.")
    return dlib.get_frontal_face_detector()
