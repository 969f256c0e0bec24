"""Unit tests for shape math: bounding boxes, handles and transforms."""

from __future__ import annotations

import math

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from tripstudio.errors import DegenerateShapeError
from tripstudio.geometry import (
    Point,
    Rect,
    Size,
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


class TestBoundingBox:
    """Tests for bounding_box()."""

    def test_bounds_point_set(self) -> None:
        points = [Point(x=10, y=50), Point(x=30, y=5), Point(x=-4, y=20)]
        assert bounding_box(points).to_tuple() == (-4, 5, 34, 45)

    def test_empty_set_is_degenerate(self) -> None:
        with pytest.raises(DegenerateShapeError, match="empty"):
            bounding_box([])

    def test_collinear_points_are_degenerate(self) -> None:
        with pytest.raises(DegenerateShapeError, match="no area"):
            bounding_box([Point(x=0, y=5), Point(x=10, y=5)])


class TestHitTest:
    """Tests for hit_test()."""

    def test_hit_within_radius(self) -> None:
        candidates = [Point(x=0, y=0), Point(x=100, y=100)]
        assert hit_test(Point(x=95, y=95), candidates, radius=15) == 1

    def test_miss_returns_none(self) -> None:
        assert hit_test(Point(x=50, y=50), [Point(x=0, y=0)], radius=15) is None

    def test_radius_is_inclusive(self) -> None:
        assert hit_test(Point(x=15, y=0), [Point(x=0, y=0)], radius=15) == 0

    def test_overlapping_handles_resolve_to_lowest_index(self) -> None:
        candidates = [Point(x=10, y=10), Point(x=10, y=10), Point(x=12, y=10)]
        assert hit_test(Point(x=11, y=10), candidates, radius=15) == 0


class TestInsetRect:
    """Tests for inset_rect()."""

    def test_ten_percent_inset(self) -> None:
        rect = inset_rect(Size(width=800, height=600), 0.1)
        assert rect.to_tuple() == pytest.approx((80, 60, 640, 480))

    def test_zero_inset_covers_bounds(self) -> None:
        assert inset_rect(Size(width=10, height=20), 0).to_tuple() == (0, 0, 10, 20)

    @pytest.mark.parametrize("ratio", [-0.1, 0.5, 1.0])
    def test_rejects_invalid_ratio(self, ratio: float) -> None:
        with pytest.raises(ValueError, match="inset ratio"):
            inset_rect(Size(width=10, height=10), ratio)


class TestHandleLayout:
    """Tests for polygon and rect handle placement."""

    def test_polygon_from_rect_is_clockwise_perimeter(self) -> None:
        points = polygon_from_rect(Rect(x=0, y=0, width=100, height=50))
        assert [p.to_tuple() for p in points] == [
            (0, 0),
            (50, 0),
            (100, 0),
            (100, 25),
            (100, 50),
            (50, 50),
            (0, 50),
            (0, 25),
        ]

    def test_rect_handles_start_each_side_on_a_corner(self) -> None:
        handles = rect_handle_positions(Rect(x=0, y=0, width=80, height=40))
        assert len(handles) == 16
        assert handles[0].to_tuple() == (0, 0)
        assert handles[4].to_tuple() == (80, 0)
        assert handles[8].to_tuple() == (80, 40)
        assert handles[12].to_tuple() == (0, 40)
        assert handles[2].to_tuple() == (40, 0)


class TestResizeHandleRect:
    """Tests for resize_handle_rect()."""

    base = Rect(x=100, y=100, width=200, height=100)

    def test_top_edge_handle_moves_top_only(self) -> None:
        rect = resize_handle_rect(self.base, 2, Point(x=999, y=80), min_size=5)
        assert rect.to_tuple() == (100, 80, 200, 120)

    def test_top_left_corner_moves_both_axes(self) -> None:
        rect = resize_handle_rect(self.base, 0, Point(x=90, y=80), min_size=5)
        assert rect.to_tuple() == (90, 80, 210, 120)

    def test_right_edge_handle(self) -> None:
        rect = resize_handle_rect(self.base, 6, Point(x=350, y=0), min_size=5)
        assert rect.to_tuple() == (100, 100, 250, 100)

    def test_bottom_right_corner(self) -> None:
        rect = resize_handle_rect(self.base, 8, Point(x=150, y=150), min_size=5)
        assert rect.to_tuple() == (100, 100, 50, 50)

    def test_left_edge_handle(self) -> None:
        rect = resize_handle_rect(self.base, 14, Point(x=50, y=0), min_size=5)
        assert rect.to_tuple() == (50, 100, 250, 100)

    def test_crossing_opposite_edge_is_degenerate(self) -> None:
        with pytest.raises(DegenerateShapeError):
            resize_handle_rect(self.base, 10, Point(x=0, y=50), min_size=5)

    def test_rejects_unknown_handle(self) -> None:
        with pytest.raises(ValueError, match="handle_index"):
            resize_handle_rect(self.base, 16, Point(x=0, y=0), min_size=5)

    @settings(max_examples=100, deadline=None)
    @given(
        handle=st.integers(min_value=0, max_value=15),
        px=st.floats(min_value=-1000, max_value=1000),
        py=st.floats(min_value=-1000, max_value=1000),
    )
    def test_result_never_below_minimum(self, handle: int, px: float, py: float) -> None:
        """Every accepted update keeps both extents at or above min_size."""
        try:
            rect = resize_handle_rect(self.base, handle, Point(x=px, y=py), min_size=5)
        except DegenerateShapeError:
            return
        assert rect.width >= 5
        assert rect.height >= 5


class TestPointTransforms:
    """Tests for translate/scale/rotate helpers."""

    def test_translate_points(self) -> None:
        moved = translate_points([Point(x=1, y=1)], 2, 3)
        assert moved == (Point(x=3, y=4),)

    def test_scale_about_origin(self) -> None:
        scaled = scale_points([Point(x=12, y=10)], 2, Point(x=10, y=10))
        assert scaled == (Point(x=14, y=10),)

    def test_rotate_is_clockwise_on_screen(self) -> None:
        """With y pointing down, +90 degrees turns right into down."""
        (rotated,) = rotate_points([Point(x=10, y=0)], 90, Point(x=0, y=0))
        assert rotated.x == pytest.approx(0, abs=1e-9)
        assert rotated.y == pytest.approx(10)

    @settings(max_examples=100, deadline=None)
    @given(
        x=st.floats(min_value=-500, max_value=500),
        y=st.floats(min_value=-500, max_value=500),
        degrees=st.floats(min_value=-720, max_value=720),
    )
    def test_rotation_preserves_distance(self, x: float, y: float, degrees: float) -> None:
        origin = Point(x=3, y=-7)
        (rotated,) = rotate_points([Point(x=x, y=y)], degrees, origin)
        assert math.isclose(
            rotated.distance_to(origin),
            Point(x=x, y=y).distance_to(origin),
            rel_tol=1e-9,
            abs_tol=1e-6,
        )
