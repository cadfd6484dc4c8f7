"""Shared test fixtures."""

import logging
import os
import threading
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import cv2
import numpy as np
import pytest

from gesichtool.config import load_config
from gesichtool.detector import FaceDetector
from gesichtool.geometry import Rectangle


class FakeDetector(FaceDetector):
    """Detector returning canned rectangles, keyed by image width.

    Images whose width is not in `by_width` yield `default`. If `fail_width`
    matches, detect() raises RuntimeError. Concurrency is recorded in the
    shared `tracker`.
    """

    name = "fake"

    def __init__(
        self,
        default: Sequence[Rectangle] = (),
        by_width: Optional[Dict[int, Sequence[Rectangle]]] = None,
        fail_width: Optional[int] = None,
        tracker: Optional["ConcurrencyTracker"] = None,
        delay: float = 0.0,
    ) -> None:
        self._default = list(default)
        self._by_width = by_width or {}
        self._fail_width = fail_width
        self._tracker = tracker
        self._delay = delay

    def detect(self, image: np.ndarray) -> List[Rectangle]:
        self._validate_frame(image)
        width = image.shape[1]
        if self._tracker is not None:
            self._tracker.enter()
        try:
            if self._delay:
                time.sleep(self._delay)
            if width == self._fail_width:
                raise RuntimeError(f"detector failed on {width}px image")
            return list(self._by_width.get(width, self._default))
        finally:
            if self._tracker is not None:
                self._tracker.leave()


class ConcurrencyTracker:
    """Counts how many detectors run at the same time."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.active = 0
        self.peak = 0
        self.calls = 0

    def enter(self) -> None:
        with self._lock:
            self.active += 1
            self.calls += 1
            self.peak = max(self.peak, self.active)

    def leave(self) -> None:
        with self._lock:
            self.active -= 1


def write_image(path: Path, width: int = 640, height: int = 480, value: int = 0) -> Path:
    """Write a solid-color BGR JPEG and return its path."""
    image = np.full((height, width, 3), value, dtype=np.uint8)
    assert cv2.imwrite(str(path), image)
    return path


def make_config(paths, output_dir, **sections):
    """Build a validated AppConfig for the given inputs and output directory."""
    overrides = {
        "input": {"paths": [str(p) for p in paths]},
        "output": {"directory": str(output_dir)},
    }
    for section, values in sections.items():
        overrides.setdefault(section, {}).update(values)
    return load_config(None, overrides=overrides)


def fake_factory(**kwargs) -> Callable:
    """Return a detector_factory building a new FakeDetector per call."""
    return lambda detection_config: FakeDetector(**kwargs)


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch):
    """Isolate tests from GESICHTOOL_* variables and console log handlers."""
    for key in list(os.environ):
        if key.startswith("GESICHTOOL_"):
            monkeypatch.delenv(key)
    yield
    package_logger = logging.getLogger("gesichtool")
    for handler in list(package_logger.handlers):
        if getattr(handler, "_gesichtool_console", False):
            package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture
def blank_image(tmp_path) -> Path:
    """A 640x480 black JPEG with no faces in it."""
    return write_image(tmp_path / "blank.jpg")


@pytest.fixture
def broken_image(tmp_path) -> Path:
    """A file that no image decoder accepts."""
    path = tmp_path / "broken.bin"
    path.write_bytes(b"this is not an image")
    return path


@pytest.fixture
def output_dir(tmp_path) -> Path:
    return tmp_path / "out"
