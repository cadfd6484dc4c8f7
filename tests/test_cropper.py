"""
Tests for cropping, naming and writing of faces.
"""

import itertools

import cv2
import numpy as np
import pytest

from gesichtool import cropper
from gesichtool.cropper import crop_region, extract_faces, face_filename
from gesichtool.geometry import Rectangle, Size


def _image(width=200, height=100):
    return np.zeros((height, width, 3), dtype=np.uint8)


def test_face_filename_format():
    assert face_filename(0, 0) == "face000-000.jpg"
    assert face_filename(3, 12) == "face003-012.jpg"
    assert face_filename(999, 999) == "face999-999.jpg"


def test_face_filename_unique_and_ordered():
    pairs = list(itertools.product(range(0, 1000, 37), range(0, 1000, 53)))
    names = [face_filename(i, f) for i, f in pairs]

    assert len(set(names)) == len(names)
    # Lexicographic order matches numeric order
    assert sorted(names) == [face_filename(i, f) for i, f in sorted(pairs)]


def test_crop_region_without_inflation():
    rect = Rectangle(10, 10, 50, 50)
    assert crop_region(rect, 200, 100) == rect


def test_crop_region_enlargement(monkeypatch):
    monkeypatch.setattr(cropper, "inflation", lambda rect: 5)
    assert crop_region(Rectangle(10, 10, 50, 50), 200, 100) == Rectangle(5, 5, 60, 60)


def test_crop_region_enlargement_rejected(monkeypatch, caplog):
    monkeypatch.setattr(cropper, "inflation", lambda rect: 20)
    rect = Rectangle(10, 10, 50, 50)

    with caplog.at_level("INFO", logger="gesichtool"):
        assert crop_region(rect, 200, 100) == rect

    assert "enlargement rejected" in caplog.text


def test_crop_region_clips_out_of_bounds_detection():
    final = crop_region(Rectangle(-10, 80, 50, 50), 200, 100)
    assert final == Rectangle(0, 80, 40, 20)
    assert final.x >= 0 and final.y >= 0
    assert final.bottom_right[0] <= 200 and final.bottom_right[1] <= 100


def test_extract_faces_writes_named_files(tmp_path):
    faces = [Rectangle(0, 0, 50, 50), Rectangle(100, 20, 60, 60)]

    written = extract_faces(_image(), faces, image_index=7, output_dir=tmp_path,
                            output_size=Size(64, 48))

    assert written == 2
    assert sorted(p.name for p in tmp_path.iterdir()) == ["face007-000.jpg", "face007-001.jpg"]
    for path in tmp_path.iterdir():
        assert cv2.imread(str(path)).shape == (48, 64, 3)


def test_extract_faces_crops_the_right_region(tmp_path):
    image = _image()
    image[20:80, 100:160] = (255, 255, 255)

    extract_faces(image, [Rectangle(100, 20, 60, 60)], image_index=0,
                  output_dir=tmp_path, output_size=Size(32, 32))

    crop = cv2.imread(str(tmp_path / "face000-000.jpg"))
    assert crop.mean() > 240


def test_extract_faces_empty_detection(tmp_path):
    assert extract_faces(_image(), [], 0, tmp_path, Size(32, 32)) == 0
    assert list(tmp_path.iterdir()) == []


def test_extract_faces_skips_zero_area(tmp_path, caplog):
    faces = [Rectangle(5, 5, 0, 10), Rectangle(10, 10, 20, 20)]

    with caplog.at_level("INFO", logger="gesichtool"):
        written = extract_faces(_image(), faces, 1, tmp_path, Size(32, 32))

    assert written == 1
    # The skipped face does not consume an index
    assert [p.name for p in tmp_path.iterdir()] == ["face001-000.jpg"]
    assert "zero-area" in caplog.text


def test_extract_faces_write_failure(tmp_path):
    with pytest.raises(OSError):
        extract_faces(_image(), [Rectangle(0, 0, 10, 10)], 0, tmp_path / "missing", Size(8, 8))
