"""Unit tests for session export."""

from __future__ import annotations

import json
from collections.abc import Callable
from io import BytesIO

import pytest
from PIL import Image

from tripstudio.errors import ExportError
from tripstudio.geometry import Point
from tripstudio.session import EditSession, ExportMode, Tool, encode_png


class TestExport:
    """Tests for EditSession.export()."""

    def test_brightness_and_rotation_export_size(
        self, make_image: Callable[..., Image.Image]
    ) -> None:
        session = EditSession()
        session.attach_source(make_image(400, 300))
        session.set_filter("brightness", 150)
        session.set_filter("rotation", 90)
        result = session.export(pixel_ratio=1)
        assert result.size == (300, 400)

    def test_default_pixel_ratio_doubles(self, make_image: Callable[..., Image.Image]) -> None:
        session = EditSession()
        session.attach_source(make_image(400, 300))
        assert session.export().size == (800, 600)

    def test_png_bytes_decode(self, ready_session: EditSession) -> None:
        result = ready_session.export()
        assert result.png_bytes.startswith(b"\x89PNG\r\n\x1a\n")
        with Image.open(BytesIO(result.png_bytes)) as decoded:
            assert decoded.size == result.size
        assert result.data_url.startswith("data:image/png;base64,")

    def test_export_with_active_crop_uses_region(self, ready_session: EditSession) -> None:
        ready_session.set_tool(Tool.crop_rect)
        assert ready_session.export(pixel_ratio=1).size == (640, 480)
        assert ready_session.export(pixel_ratio=2).size == (1280, 960)

    def test_export_with_polygon_crop_is_clipped(self, ready_session: EditSession) -> None:
        ready_session.set_tool(Tool.crop_polygon)
        crop = ready_session.crop
        assert crop is not None
        crop.update_handle(1, Point(x=400, y=300))
        result = ready_session.export(pixel_ratio=1)
        assert result.size == (640, 480)
        assert result.image.getpixel((320, 5))[3] == 0
        assert result.image.getpixel((5, 240))[3] == 255

    def test_annotations_are_flattened(self, ready_session: EditSession) -> None:
        ready_session.set_brush(color="#00ff00", thickness=10)
        ready_session.set_tool(Tool.stroke)
        ready_session.pointer_down(Point(x=100, y=100))
        ready_session.pointer_up(Point(x=200, y=100))
        result = ready_session.export(pixel_ratio=2)
        assert result.image.getpixel((300, 200)) == (0, 255, 0, 255)
        assert json.loads(result.elements_json)[0]["kind"] == "stroke"

    def test_mode_passes_through(self, ready_session: EditSession) -> None:
        assert ready_session.export(mode="save_as").mode is ExportMode.save_as
        assert ready_session.export().mode is ExportMode.save

    def test_rejects_non_positive_ratio(self, ready_session: EditSession) -> None:
        with pytest.raises(ExportError, match="pixel_ratio"):
            ready_session.export(pixel_ratio=0)


def test_encode_png_wraps_failures() -> None:
    image = Image.new("CMYK", (2, 2))
    with pytest.raises(ExportError, match="PNG encoding failed") as exc_info:
        encode_png(image)
    assert exc_info.value.__cause__ is not None
