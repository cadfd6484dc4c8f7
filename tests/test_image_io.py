"""
Tests for the image I/O adapter.
"""

import cv2
import numpy as np
import pytest

from gesichtool import image_io
from gesichtool.geometry import Size

from conftest import write_image


def test_load_valid_image(tmp_path):
    path = write_image(tmp_path / "img.jpg", width=64, height=48)
    image = image_io.load(path)
    assert image.shape == (48, 64, 3)
    assert image.dtype == np.uint8


def test_load_missing_file_returns_empty(tmp_path):
    image = image_io.load(tmp_path / "missing.jpg")
    assert image.size == 0


def test_load_corrupt_file_returns_empty(broken_image):
    assert image_io.load(broken_image).size == 0


def test_to_gray():
    bgr = np.zeros((10, 20, 3), dtype=np.uint8)
    gray = image_io.to_gray(bgr)
    assert gray.shape == (10, 20)
    assert image_io.to_gray(gray) is gray


def test_resize_exact_dimensions():
    image = np.zeros((100, 37, 3), dtype=np.uint8)
    resized = image_io.resize(image, Size(64, 32))
    assert resized.shape == (32, 64, 3)


def test_write_overwrites(tmp_path):
    path = tmp_path / "face.jpg"
    image_io.write(path, np.zeros((10, 10, 3), dtype=np.uint8))
    image_io.write(path, np.zeros((20, 30, 3), dtype=np.uint8))
    assert cv2.imread(str(path)).shape == (20, 30, 3)


def test_write_failure_raises(tmp_path):
    with pytest.raises(OSError):
        image_io.write(tmp_path / "no" / "such" / "dir" / "face.jpg",
                       np.zeros((10, 10, 3), dtype=np.uint8))
