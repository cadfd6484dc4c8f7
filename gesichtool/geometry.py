"""
Geometry value types for the face extraction pipeline.

This module defines Rectangle and Size, the only coordinate types
passed between detectors and the cropper. Both are frozen and carry
no behavior beyond simple integer arithmetic.

Non-goals:
    - No rendering logic.
    - No file I/O.
    - No sub-pixel or floating point geometry.
"""

import re
from dataclasses import dataclass
from typing import Tuple

_SIZE_PATTERN = re.compile(r"^\s*(\d+)\s*[xX]\s*(\d+)\s*$")


@dataclass(frozen=True, slots=True)
class Size:
    """Width and height in pixels. Both must be positive."""

    width: int
    height: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"Size dimensions must be positive, got {self.width}x{self.height}."
            )

    def as_tuple(self) -> Tuple[int, int]:
        """Return (width, height) as expected by OpenCV."""
        return (self.width, self.height)

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True, slots=True)
class Rectangle:
    """An axis-aligned rectangle in image pixel coordinates.

    Attributes:
        x: Left edge (may be negative before validation).
        y: Top edge (may be negative before validation).
        width: Horizontal extent in pixels.
        height: Vertical extent in pixels.

    bottom_right is exclusive, i.e. (x + width, y + height), matching
    cv::Rect::br().
    """

    x: int
    y: int
    width: int
    height: int

    @property
    def top_left(self) -> Tuple[int, int]:
        return (self.x, self.y)

    @property
    def bottom_right(self) -> Tuple[int, int]:
        return (self.x + self.width, self.y + self.height)

    @property
    def area(self) -> int:
        """Area in pixels; zero for degenerate rectangles."""
        if self.width <= 0 or self.height <= 0:
            return 0
        return self.width * self.height

    @property
    def is_empty(self) -> bool:
        return self.area == 0

    def inflate(self, amount: int) -> "Rectangle":
        """Return a copy grown by `amount` pixels on every side."""
        return Rectangle(
            x=self.x - amount,
            y=self.y - amount,
            width=self.width + 2 * amount,
            height=self.height + 2 * amount,
        )

    def is_inside(self, cols: int, rows: int) -> bool:
        """True if the rectangle lies strictly inside a cols x rows image.

        Touching the right or bottom edge counts as outside.
        """
        x2, y2 = self.bottom_right
        return self.x >= 0 and self.y >= 0 and x2 < cols and y2 < rows

    def clip(self, cols: int, rows: int) -> "Rectangle":
        """Return the intersection with a cols x rows image.

        The result may be empty if the rectangle lies fully outside.
        """
        x1 = max(0, min(self.x, cols))
        y1 = max(0, min(self.y, rows))
        x2 = max(0, min(self.x + self.width, cols))
        y2 = max(0, min(self.y + self.height, rows))
        return Rectangle(x=x1, y=y1, width=x2 - x1, height=y2 - y1)

    def to_dict(self) -> dict:
        """Return a plain dict suitable for logging or JSON."""
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


def parse_size(token: str) -> Size:
    """Parse a `WxH` token such as "512x512" into a Size.

    Raises:
        ValueError: If the token does not match `<int>x<int>` or either
                    dimension is zero.
    """
    match = _SIZE_PATTERN.match(str(token))
    if match is None:
        raise ValueError(f"invalid size '{token}', expected WIDTHxHEIGHT (e.g. 512x512)")
    return Size(int(match.group(1)), int(match.group(2)))
