"""Geometry primitives for the editing engine.

Immutable Pydantic models for points, sizes and rectangles in working
surface coordinates. (0, 0) is the top-left corner, x grows rightward and
y grows downward. Points and rectangle origins are floats and may lie
outside the surface, since pointer drags are free to leave it.
"""

from __future__ import annotations

import math
from typing import Self

from pydantic import BaseModel, Field


class Point(BaseModel, frozen=True):
    """A 2D point in surface coordinates.

    Attributes:
        x: Horizontal position (pixels from left edge).
        y: Vertical position (pixels from top edge).
    """

    x: float = Field(..., description="X coordinate (pixels from left)")
    y: float = Field(..., description="Y coordinate (pixels from top)")

    def to_tuple(self) -> tuple[float, float]:
        """Convert to (x, y) tuple."""
        return (self.x, self.y)

    @classmethod
    def from_tuple(cls, coord: tuple[float, float]) -> Self:
        """Create Point from (x, y) tuple."""
        return cls(x=coord[0], y=coord[1])

    def offset(self, dx: float, dy: float) -> Point:
        """Return this point shifted by (dx, dy)."""
        return Point(x=self.x + dx, y=self.y + dy)

    def distance_to(self, other: Point) -> float:
        """Euclidean distance to another point."""
        return math.hypot(self.x - other.x, self.y - other.y)


class Size(BaseModel, frozen=True):
    """Raster dimensions in whole pixels.

    Both dimensions must be strictly positive (> 0).
    """

    width: int = Field(..., gt=0, description="Width in pixels")
    height: int = Field(..., gt=0, description="Height in pixels")

    @property
    def area(self) -> int:
        """Calculate the area in square pixels."""
        return self.width * self.height

    def to_tuple(self) -> tuple[int, int]:
        """Convert to (width, height) tuple."""
        return (self.width, self.height)

    @classmethod
    def from_tuple(cls, size: tuple[int, int]) -> Self:
        """Create Size from (width, height) tuple."""
        return cls(width=size[0], height=size[1])

    def swapped(self) -> Size:
        """Return the size with width and height exchanged."""
        return Size(width=self.height, height=self.width)


class Rect(BaseModel, frozen=True):
    """An axis-aligned rectangle in surface coordinates.

    The rectangle spans (x, y) to (x + width, y + height). Width and height
    must be strictly positive; minimum-size rules for interactive shapes
    are enforced by the code that mutates them, not here.

    Attributes:
        x: Left edge X coordinate.
        y: Top edge Y coordinate.
        width: Horizontal extent (> 0).
        height: Vertical extent (> 0).
    """

    x: float = Field(..., description="Left edge X coordinate")
    y: float = Field(..., description="Top edge Y coordinate")
    width: float = Field(..., gt=0, description="Width in pixels")
    height: float = Field(..., gt=0, description="Height in pixels")

    @property
    def right(self) -> float:
        """Return the X coordinate of the right edge."""
        return self.x + self.width

    @property
    def bottom(self) -> float:
        """Return the Y coordinate of the bottom edge."""
        return self.y + self.height

    @property
    def top_left(self) -> Point:
        """Return the top-left corner as a Point."""
        return Point(x=self.x, y=self.y)

    @property
    def center(self) -> Point:
        """Return the center point."""
        return Point(x=self.x + self.width / 2, y=self.y + self.height / 2)

    def to_tuple(self) -> tuple[float, float, float, float]:
        """Convert to (x, y, width, height) tuple."""
        return (self.x, self.y, self.width, self.height)

    @classmethod
    def from_tuple(cls, bbox: tuple[float, float, float, float]) -> Self:
        """Create Rect from (x, y, width, height) tuple."""
        return cls(x=bbox[0], y=bbox[1], width=bbox[2], height=bbox[3])

    def to_box(self) -> tuple[int, int, int, int]:
        """Convert to an integer (left, top, right, bottom) box for Pillow.

        The origin and the extents are rounded independently so the box
        size always equals the rounded width and height.
        """
        left = round(self.x)
        top = round(self.y)
        return (
            left,
            top,
            left + max(1, round(self.width)),
            top + max(1, round(self.height)),
        )

    def contains_point(self, point: Point) -> bool:
        """Check if a point is inside this rectangle (edges inclusive)."""
        return self.x <= point.x <= self.right and self.y <= point.y <= self.bottom

    def translate(self, dx: float, dy: float) -> Rect:
        """Return this rectangle shifted by (dx, dy)."""
        return Rect(x=self.x + dx, y=self.y + dy, width=self.width, height=self.height)

    def scale(self, factor: float) -> Rect:
        """Return this rectangle with every coordinate multiplied by factor."""
        return Rect(
            x=self.x * factor,
            y=self.y * factor,
            width=self.width * factor,
            height=self.height * factor,
        )
