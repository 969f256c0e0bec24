"""Geometry module for tripstudio.

Coordinate primitives, shape math for crop handles and annotation
transforms, and bounds validation.

Example:
    from tripstudio.geometry import Point, Rect, resize_handle_rect

    rect = Rect(x=80, y=60, width=640, height=480)
    # Drag the top-left corner handle inward
    rect = resize_handle_rect(rect, 0, Point(x=100, y=90), min_size=5)
"""

from tripstudio.geometry.primitives import Point, Rect, Size
from tripstudio.geometry.shapes import (
    POLYGON_POINT_COUNT,
    RECT_HANDLE_COUNT,
    bounding_box,
    hit_test,
    inset_rect,
    polygon_from_rect,
    rect_handle_positions,
    resize_handle_rect,
    rotate_points,
    scale_points,
    translate_points,
)
from tripstudio.geometry.validators import BoundsError, ShapeValidator

__all__ = [
    "POLYGON_POINT_COUNT",
    "RECT_HANDLE_COUNT",
    "BoundsError",
    "Point",
    "Rect",
    "ShapeValidator",
    "Size",
    "bounding_box",
    "hit_test",
    "inset_rect",
    "polygon_from_rect",
    "rect_handle_positions",
    "resize_handle_rect",
    "rotate_points",
    "scale_points",
    "translate_points",
]
