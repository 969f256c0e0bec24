"""Unit tests for the polygon and rectangle crop engines."""

from __future__ import annotations

from collections.abc import Callable

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from PIL import Image
from pydantic import ValidationError

from tripstudio.errors import CropError
from tripstudio.geometry import Point, Rect, Size, bounding_box
from tripstudio.imaging import PolygonCrop, PolygonRegion, RectCrop, RectRegion, extract_region

SURFACE = Size(width=800, height=600)


class TestRectCrop:
    """Tests for RectCrop."""

    def test_begin_insets_ten_percent(self) -> None:
        region = RectCrop(inset_ratio=0.1).begin(SURFACE)
        assert region.rect.to_tuple() == pytest.approx((80, 60, 640, 480))

    def test_inactive_until_begin(self) -> None:
        crop = RectCrop()
        assert not crop.is_active
        assert crop.region is None
        assert crop.grab(Point(x=80, y=60)) is None
        with pytest.raises(CropError, match="No crop in progress"):
            crop.move(1, 1)

    def test_grab_corner_handle(self) -> None:
        crop = RectCrop(inset_ratio=0.1, hit_radius=15)
        crop.begin(SURFACE)
        assert crop.grab(Point(x=85, y=65)) == 0
        assert crop.grab(Point(x=718, y=538)) == 8
        assert crop.grab(Point(x=400, y=300)) is None

    def test_update_handle_resizes(self) -> None:
        crop = RectCrop(inset_ratio=0.1)
        crop.begin(SURFACE)
        region = crop.update_handle(4, Point(x=700, y=100))
        assert region.rect.to_tuple() == pytest.approx((80, 100, 620, 440))

    def test_degenerate_update_keeps_last_region(self) -> None:
        crop = RectCrop(inset_ratio=0.1, min_size=5)
        before = crop.begin(SURFACE)
        after = crop.update_handle(6, Point(x=82, y=300))
        assert after == before

    @settings(max_examples=100, deadline=None)
    @given(
        moves=st.lists(
            st.tuples(
                st.integers(min_value=0, max_value=15),
                st.floats(min_value=-200, max_value=1000),
                st.floats(min_value=-200, max_value=800),
            ),
            min_size=1,
            max_size=12,
        )
    )
    def test_update_never_below_minimum(
        self, moves: list[tuple[int, float, float]]
    ) -> None:
        crop = RectCrop(min_size=5)
        crop.begin(SURFACE)
        for handle, x, y in moves:
            region = crop.update_handle(handle, Point(x=x, y=y))
            assert region.rect.width >= 5
            assert region.rect.height >= 5

    def test_move_clamps_to_surface(self) -> None:
        crop = RectCrop(inset_ratio=0.1)
        crop.begin(SURFACE)
        region = crop.move(500, -500)
        assert region.rect.to_tuple() == pytest.approx((160, 0, 640, 480))

    def test_commit_dimensions(self, make_image: Callable[..., Image.Image]) -> None:
        crop = RectCrop(inset_ratio=0.1)
        crop.begin(SURFACE)
        crop.update_handle(8, Point(x=300.4, y=200.6))
        source = crop.commit(make_image(800, 600))
        assert source.size == Size(width=220, height=141)
        assert not crop.is_active

    def test_commit_rejects_polygon_region(
        self, make_image: Callable[..., Image.Image]
    ) -> None:
        polygon = PolygonCrop().begin(SURFACE)
        with pytest.raises(CropError, match="rect region"):
            RectCrop().commit(make_image(800, 600), polygon)

    def test_cancel(self) -> None:
        crop = RectCrop()
        crop.begin(SURFACE)
        crop.cancel()
        assert not crop.is_active
        assert crop.handle_positions() == []


class TestPolygonCrop:
    """Tests for PolygonCrop."""

    def test_begin_places_eight_points(self) -> None:
        region = PolygonCrop(inset_ratio=0.1).begin(SURFACE)
        assert len(region.points) == 8
        assert region.points[0] == Point(x=80, y=60)
        assert region.bounds.to_tuple() == pytest.approx((80, 60, 640, 480))

    def test_region_requires_eight_points(self) -> None:
        with pytest.raises(ValidationError, match="needs 8 points"):
            PolygonRegion(points=(Point(x=0, y=0), Point(x=1, y=1), Point(x=0, y=1)))

    def test_update_handle_relocates_one_vertex(self) -> None:
        crop = PolygonCrop(inset_ratio=0.1)
        crop.begin(SURFACE)
        region = crop.update_handle(1, Point(x=400, y=10))
        assert region.points[1] == Point(x=400, y=10)
        assert region.bounds.y == 10

    def test_self_intersection_is_allowed(self) -> None:
        crop = PolygonCrop(inset_ratio=0.1)
        crop.begin(SURFACE)
        region = crop.update_handle(0, Point(x=700, y=500))
        assert region.points[0] == Point(x=700, y=500)

    def test_rejects_bad_handle(self) -> None:
        crop = PolygonCrop()
        crop.begin(SURFACE)
        with pytest.raises(ValueError, match="handle must be"):
            crop.update_handle(8, Point(x=0, y=0))

    def test_update_below_minimum_is_ignored(self) -> None:
        crop = PolygonCrop(inset_ratio=0.1, min_size=100)
        seeded = crop.begin(Size(width=100, height=100))
        assert crop.update_handle(2, Point(x=95, y=10)) == seeded

    def test_move_clamps(self) -> None:
        crop = PolygonCrop(inset_ratio=0.1)
        crop.begin(SURFACE)
        region = crop.move(-500, 0)
        assert region.bounds.x == 0

    def test_commit_clips_outside_polygon(self) -> None:
        surface = Image.new("RGBA", (100, 100), (255, 0, 0, 255))
        crop = PolygonCrop(inset_ratio=0.1)
        crop.begin(Size(width=100, height=100))
        # Pull the top-middle vertex down to carve a notch out of the top edge
        region = crop.update_handle(1, Point(x=50, y=60))
        source = crop.commit(surface)

        box = bounding_box(region.points)
        assert source.size == Size(width=round(box.width), height=round(box.height))
        assert source.image.getpixel((40, 2))[3] == 0
        assert source.image.getpixel((2, 40)) == (255, 0, 0, 255)


def test_extract_region_dispatches_on_variant(
    make_image: Callable[..., Image.Image],
) -> None:
    surface = make_image(100, 100)
    rect = extract_region(surface, RectRegion(rect=Rect(x=10, y=10, width=30, height=20)))
    assert rect.size == (30, 20)
