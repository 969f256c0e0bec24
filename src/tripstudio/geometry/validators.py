"""Bounds checking and clamping for interactive shapes.

Whole-region crop drags are kept inside the working surface, and crop
rectangles supplied by non-interactive callers (the CLI) are validated
strictly before use.
"""

from __future__ import annotations

from collections.abc import Sequence

from tripstudio.errors import StudioError
from tripstudio.geometry.primitives import Point, Rect, Size


class BoundsError(StudioError):
    """Raised when a rectangle fails bounds validation.

    Attributes:
        rect: The invalid rectangle that was validated.
        bounds: The bounds it was validated against.
    """

    def __init__(self, message: str, *, rect: Rect, bounds: Size) -> None:
        self.rect = rect
        self.bounds = bounds
        super().__init__(message, rect=rect.to_tuple(), bounds=bounds.to_tuple())


class ShapeValidator:
    """Validator for crop shapes against working surface bounds.

    The validator is stateless and operates purely on the inputs provided
    to each method.
    """

    def validate(
        self,
        rect: Rect,
        bounds: Size,
        *,
        strict: bool = True,
    ) -> bool:
        """Validate that a rectangle lies within bounds.

        Args:
            rect: The rectangle to validate.
            bounds: The working surface size.
            strict: If True, raise BoundsError on failure.
                If False, return False instead.

        Returns:
            True if the rectangle is fully inside bounds.

        Raises:
            BoundsError: If strict=True and the rectangle leaves bounds.
        """
        violations: list[str] = []
        if rect.x < 0:
            violations.append(f"left edge ({rect.x}) is negative")
        if rect.y < 0:
            violations.append(f"top edge ({rect.y}) is negative")
        if rect.right > bounds.width:
            violations.append(
                f"right edge ({rect.right}) exceeds width ({bounds.width})"
            )
        if rect.bottom > bounds.height:
            violations.append(
                f"bottom edge ({rect.bottom}) exceeds height ({bounds.height})"
            )

        if violations and strict:
            raise BoundsError(
                f"Rectangle out of bounds: {'; '.join(violations)}",
                rect=rect,
                bounds=bounds,
            )
        return not violations

    def meets_minimum(self, rect: Rect, min_size: float) -> bool:
        """Check that both extents are at least min_size."""
        return rect.width >= min_size and rect.height >= min_size

    def clamp_offset(
        self,
        points: Sequence[Point],
        dx: float,
        dy: float,
        bounds: Size,
    ) -> tuple[float, float]:
        """Limit a translation so every point stays inside bounds.

        The shape moves as a unit: the offset is shortened rather than
        squashing individual points against the edge.

        Args:
            points: Current shape points.
            dx: Requested horizontal offset.
            dy: Requested vertical offset.
            bounds: The working surface size.

        Returns:
            The (dx, dy) actually applied.
        """
        min_x = min(p.x for p in points)
        min_y = min(p.y for p in points)
        max_x = max(p.x for p in points)
        max_y = max(p.y for p in points)

        clamped_dx = max(-min_x, min(dx, bounds.width - max_x))
        clamped_dy = max(-min_y, min(dy, bounds.height - max_y))
        # A shape already hanging off an edge is allowed to stay put
        if max_x - min_x > bounds.width:
            clamped_dx = 0.0
        if max_y - min_y > bounds.height:
            clamped_dy = 0.0
        return clamped_dx, clamped_dy

    def clamp_point(self, point: Point, bounds: Size) -> Point:
        """Clamp a point into the surface (edges inclusive)."""
        return Point(
            x=max(0.0, min(point.x, float(bounds.width))),
            y=max(0.0, min(point.y, float(bounds.height))),
        )
