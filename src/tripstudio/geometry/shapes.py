"""Shape math for crop handles and annotation transforms.

Pure functions over Points and Rects. Nothing here holds state: the crop
engines and the transform gizmo call these and decide what to keep.

Rect handle layout (16 handles, 4 per side, clockwise):

    0  1  2  3  4
    15          5
    14          6
    13          7
    12 11 10 9  8

Indices 0-3 belong to the top edge, 4-7 to the right edge, 8-11 to the
bottom edge and 12-15 to the left edge. The first handle of each group
sits on a corner and also drags the adjacent edge.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

from tripstudio.errors import DegenerateShapeError
from tripstudio.geometry.primitives import Point, Rect, Size

HANDLES_PER_SIDE = 4
RECT_HANDLE_COUNT = 16
POLYGON_POINT_COUNT = 8


def bounding_box(points: Iterable[Point]) -> Rect:
    """Compute the axis-aligned bounding box of a point set.

    Args:
        points: Points to enclose.

    Returns:
        Smallest Rect containing every point.

    Raises:
        DegenerateShapeError: If the set is empty or has zero extent
            along either axis.
    """
    pts = list(points)
    if not pts:
        raise DegenerateShapeError(
            "Cannot bound an empty point set", width=0, height=0, minimum=0
        )

    min_x = min(p.x for p in pts)
    min_y = min(p.y for p in pts)
    max_x = max(p.x for p in pts)
    max_y = max(p.y for p in pts)
    width = max_x - min_x
    height = max_y - min_y
    if width <= 0 or height <= 0:
        raise DegenerateShapeError(
            "Point set has no area", width=width, height=height, minimum=0
        )
    return Rect(x=min_x, y=min_y, width=width, height=height)


def hit_test(point: Point, candidates: Sequence[Point], radius: float) -> int | None:
    """Find the first candidate within radius of point.

    Overlapping handles resolve to the lowest index so repeated grabs on
    the same spot are deterministic.

    Args:
        point: Pointer position.
        candidates: Handle positions in index order.
        radius: Maximum Euclidean distance counted as a hit.

    Returns:
        Index of the hit candidate, or None if nothing is in range.
    """
    for index, candidate in enumerate(candidates):
        if point.distance_to(candidate) <= radius:
            return index
    return None


def inset_rect(bounds: Size, ratio: float) -> Rect:
    """Build a rectangle centered in bounds with a margin on each side.

    Args:
        bounds: Working surface size.
        ratio: Margin per side as a fraction of that axis (0.1 = 10%).

    Returns:
        The inset rectangle, e.g. (80, 60, 640, 480) for 800x600 at 0.1.

    Raises:
        ValueError: If ratio is outside [0, 0.5).
    """
    if not 0 <= ratio < 0.5:
        raise ValueError(f"inset ratio must be in [0, 0.5), got {ratio}")
    margin_x = bounds.width * ratio
    margin_y = bounds.height * ratio
    return Rect(
        x=margin_x,
        y=margin_y,
        width=bounds.width - 2 * margin_x,
        height=bounds.height - 2 * margin_y,
    )


def polygon_from_rect(rect: Rect) -> tuple[Point, ...]:
    """Lay out the 8 lasso points on a rectangle's perimeter.

    Corners and edge midpoints, starting at the top-left and proceeding
    clockwise, so each index keeps the same role while it is dragged.
    """
    cx = rect.x + rect.width / 2
    cy = rect.y + rect.height / 2
    return (
        Point(x=rect.x, y=rect.y),
        Point(x=cx, y=rect.y),
        Point(x=rect.right, y=rect.y),
        Point(x=rect.right, y=cy),
        Point(x=rect.right, y=rect.bottom),
        Point(x=cx, y=rect.bottom),
        Point(x=rect.x, y=rect.bottom),
        Point(x=rect.x, y=cy),
    )


def rect_handle_positions(rect: Rect) -> list[Point]:
    """Return the 16 perimeter handle positions of a rectangle."""
    x, y, w, h = rect.to_tuple()
    handles: list[Point] = []
    for i in range(HANDLES_PER_SIDE):
        handles.append(Point(x=x + w * i / HANDLES_PER_SIDE, y=y))
    for i in range(HANDLES_PER_SIDE):
        handles.append(Point(x=x + w, y=y + h * i / HANDLES_PER_SIDE))
    for i in range(HANDLES_PER_SIDE):
        handles.append(Point(x=x + w - w * i / HANDLES_PER_SIDE, y=y + h))
    for i in range(HANDLES_PER_SIDE):
        handles.append(Point(x=x, y=y + h - h * i / HANDLES_PER_SIDE))
    return handles


def resize_handle_rect(
    rect: Rect,
    handle_index: int,
    pointer: Point,
    min_size: float,
) -> Rect:
    """Apply a perimeter handle drag to a rectangle.

    Args:
        rect: Current rectangle.
        handle_index: Handle being dragged (0-15, see module docstring).
        pointer: Pointer position in surface coordinates.
        min_size: Smallest allowed width and height.

    Returns:
        The updated rectangle.

    Raises:
        ValueError: If handle_index is out of range.
        DegenerateShapeError: If the update would shrink width or height
            below min_size, including drags past the opposite edge.
    """
    if not 0 <= handle_index < RECT_HANDLE_COUNT:
        raise ValueError(
            f"handle_index must be 0-{RECT_HANDLE_COUNT - 1}, got {handle_index}"
        )

    x, y, width, height = rect.to_tuple()
    px, py = pointer.to_tuple()
    new_x, new_y, new_w, new_h = x, y, width, height
    side, offset = divmod(handle_index, HANDLES_PER_SIDE)
    is_corner = offset == 0

    if side == 0:  # top
        new_y = py
        new_h = height + (y - py)
        if is_corner:
            new_x = px
            new_w = width + (x - px)
    elif side == 1:  # right
        new_w = px - x
        if is_corner:
            new_y = py
            new_h = height + (y - py)
    elif side == 2:  # bottom
        new_h = py - y
        if is_corner:
            new_w = px - x
    else:  # left
        new_x = px
        new_w = width + (x - px)
        if is_corner:
            new_h = py - y

    if new_w < min_size or new_h < min_size:
        raise DegenerateShapeError(
            f"Handle {handle_index} drag collapses the rectangle",
            width=new_w,
            height=new_h,
            minimum=min_size,
        )
    return Rect(x=new_x, y=new_y, width=new_w, height=new_h)


def translate_points(points: Iterable[Point], dx: float, dy: float) -> tuple[Point, ...]:
    """Shift every point by (dx, dy)."""
    return tuple(p.offset(dx, dy) for p in points)


def scale_points(
    points: Iterable[Point],
    factor: float,
    origin: Point,
) -> tuple[Point, ...]:
    """Scale points about an origin."""
    return tuple(
        Point(
            x=origin.x + (p.x - origin.x) * factor,
            y=origin.y + (p.y - origin.y) * factor,
        )
        for p in points
    )


def rotate_points(
    points: Iterable[Point],
    degrees: float,
    origin: Point,
) -> tuple[Point, ...]:
    """Rotate points clockwise (on screen, y down) about an origin."""
    theta = math.radians(degrees)
    cos_t = math.cos(theta)
    sin_t = math.sin(theta)
    rotated: list[Point] = []
    for p in points:
        dx = p.x - origin.x
        dy = p.y - origin.y
        rotated.append(
            Point(
                x=origin.x + dx * cos_t - dy * sin_t,
                y=origin.y + dx * sin_t + dy * cos_t,
            )
        )
    return tuple(rotated)
