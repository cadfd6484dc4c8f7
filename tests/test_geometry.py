"""
Tests for the geometry value types.
"""

import pytest

from gesichtool.geometry import Rectangle, Size, parse_size


def test_parse_size_valid():
    assert parse_size("512x512") == Size(512, 512)
    assert parse_size("640X480") == Size(640, 480)


@pytest.mark.parametrize("token", ["512", "x512", "512x", "axb", "12x-3", "0x10", ""])
def test_parse_size_invalid(token):
    with pytest.raises(ValueError):
        parse_size(token)


def test_size_rejects_non_positive():
    with pytest.raises(ValueError, match="positive"):
        Size(0, 10)


def test_size_str_and_tuple():
    size = Size(256, 128)
    assert str(size) == "256x128"
    assert size.as_tuple() == (256, 128)


def test_rectangle_corners_and_area():
    rect = Rectangle(10, 20, 30, 40)
    assert rect.top_left == (10, 20)
    assert rect.bottom_right == (40, 60)
    assert rect.area == 1200
    assert not rect.is_empty
    assert Rectangle(0, 0, 0, 5).is_empty


def test_rectangle_inflate():
    assert Rectangle(10, 10, 20, 20).inflate(5) == Rectangle(5, 5, 30, 30)
    assert Rectangle(10, 10, 20, 20).inflate(0) == Rectangle(10, 10, 20, 20)


def test_rectangle_is_inside():
    # 100x100 image: the right/bottom edge counts as outside
    assert Rectangle(0, 0, 99, 99).is_inside(100, 100)
    assert not Rectangle(0, 0, 100, 100).is_inside(100, 100)
    assert not Rectangle(-1, 0, 10, 10).is_inside(100, 100)
    assert not Rectangle(0, -1, 10, 10).is_inside(100, 100)


def test_rectangle_clip():
    assert Rectangle(-10, -5, 50, 50).clip(100, 100) == Rectangle(0, 0, 40, 45)
    assert Rectangle(80, 90, 50, 50).clip(100, 100) == Rectangle(80, 90, 20, 10)
    assert Rectangle(200, 200, 10, 10).clip(100, 100).is_empty
