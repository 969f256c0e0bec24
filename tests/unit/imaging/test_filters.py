"""Unit tests for FilterState and FilterPipeline."""

from __future__ import annotations

from collections.abc import Callable

import numpy as np
import pytest
from PIL import Image
from pydantic import ValidationError

from tripstudio.geometry import Size
from tripstudio.imaging import FilterPipeline, FilterPreset, FilterState, SourceImage


@pytest.fixture
def pipeline() -> FilterPipeline:
    return FilterPipeline(max_surface=Size(width=800, height=800), background_threshold=240)


class TestFilterState:
    """Tests for FilterState validation and helpers."""

    def test_defaults_are_identity(self) -> None:
        assert FilterState().is_identity

    @pytest.mark.parametrize(
        ("field", "value"),
        [("brightness", 201), ("contrast", -1), ("hue_shift", 360), ("opacity", 101)],
    )
    def test_out_of_range_rejected(self, field: str, value: float) -> None:
        with pytest.raises(ValidationError):
            FilterState().updated(**{field: value})

    def test_rotation_must_be_quarter_turn(self) -> None:
        with pytest.raises(ValidationError, match="rotation must be one of"):
            FilterState(rotation=45)

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown filter field"):
            FilterState().updated(saturation=50)

    @pytest.mark.parametrize(
        ("preset", "expected"),
        [
            (FilterPreset.vivid, (110, 120)),
            (FilterPreset.mono, (100, 100)),
            (FilterPreset.sepia, (90, 110)),
        ],
    )
    def test_presets(self, preset: FilterPreset, expected: tuple[float, float]) -> None:
        state = FilterState(hue_shift=30).with_preset(preset)
        assert (state.brightness, state.contrast) == expected
        assert state.hue_shift == 30

    def test_rotated_clockwise_wraps(self) -> None:
        state = FilterState(rotation=270).rotated_clockwise()
        assert state.rotation == 0


class TestSurfaceSize:
    """Tests for working surface sizing."""

    def test_large_source_fits_within_bound(
        self, pipeline: FilterPipeline, make_image: Callable[..., Image.Image]
    ) -> None:
        source = SourceImage.from_image(make_image(1600, 1200))
        assert pipeline.surface_size(source, FilterState()) == Size(width=800, height=600)

    def test_small_source_is_not_upsampled(
        self, pipeline: FilterPipeline, make_image: Callable[..., Image.Image]
    ) -> None:
        source = SourceImage.from_image(make_image(40, 30))
        assert pipeline.surface_size(source, FilterState()) == Size(width=40, height=30)

    def test_quarter_turn_swaps_extents(
        self, pipeline: FilterPipeline, make_image: Callable[..., Image.Image]
    ) -> None:
        source = SourceImage.from_image(make_image(1600, 1200))
        size = pipeline.surface_size(source, FilterState(rotation=90))
        assert size == Size(width=600, height=800)


class TestRender:
    """Tests for FilterPipeline.render()."""

    def test_not_ready_returns_none(self, pipeline: FilterPipeline) -> None:
        assert pipeline.render(None, FilterState()) is None

    def test_identity_is_pixel_identical(
        self, pipeline: FilterPipeline, gradient_image: Image.Image
    ) -> None:
        source = SourceImage.from_image(gradient_image)
        rendered = pipeline.render(source, FilterState())
        assert rendered is not None
        assert rendered.size == gradient_image.size
        assert np.array_equal(np.asarray(rendered), np.asarray(gradient_image))

    def test_render_never_mutates_source(
        self, pipeline: FilterPipeline, gradient_image: Image.Image
    ) -> None:
        source = SourceImage.from_image(gradient_image)
        before = np.asarray(source.image).copy()
        pipeline.render(source, FilterState(brightness=150, flip_h=True))
        assert np.array_equal(np.asarray(source.image), before)

    def test_brightness_and_rotation(
        self, pipeline: FilterPipeline, make_image: Callable[..., Image.Image]
    ) -> None:
        source = SourceImage.from_image(make_image(400, 300, (100, 100, 100, 255)))
        rendered = pipeline.render(source, FilterState(brightness=150, rotation=90))
        assert rendered is not None
        assert rendered.size == (300, 400)
        assert rendered.getpixel((0, 0)) == (150, 150, 150, 255)

    def test_brightness_clamps_at_white(
        self, pipeline: FilterPipeline, make_image: Callable[..., Image.Image]
    ) -> None:
        source = SourceImage.from_image(make_image(2, 2, (200, 10, 0, 255)))
        rendered = pipeline.render(source, FilterState(brightness=200))
        assert rendered is not None
        assert rendered.getpixel((0, 0)) == (255, 20, 0, 255)

    def test_zero_contrast_is_mid_grey(
        self, pipeline: FilterPipeline, make_image: Callable[..., Image.Image]
    ) -> None:
        source = SourceImage.from_image(make_image(2, 2, (10, 200, 250, 255)))
        rendered = pipeline.render(source, FilterState(contrast=0))
        assert rendered is not None
        assert rendered.getpixel((1, 1)) == (128, 128, 128, 255)

    def test_hue_shift_keeps_grey(
        self, pipeline: FilterPipeline, make_image: Callable[..., Image.Image]
    ) -> None:
        source = SourceImage.from_image(make_image(2, 2, (128, 128, 128, 255)))
        rendered = pipeline.render(source, FilterState(hue_shift=180))
        assert rendered is not None
        r, g, b, _ = rendered.getpixel((0, 0))
        assert max(abs(r - 128), abs(g - 128), abs(b - 128)) <= 1

    def test_clockwise_rotation_moves_top_left_to_top_right(
        self, pipeline: FilterPipeline, gradient_image: Image.Image
    ) -> None:
        source = SourceImage.from_image(gradient_image)
        rendered = pipeline.render(source, FilterState(rotation=90))
        assert rendered is not None
        assert rendered.getpixel((rendered.width - 1, 0)) == gradient_image.getpixel((0, 0))

    def test_flip_horizontal(
        self, pipeline: FilterPipeline, gradient_image: Image.Image
    ) -> None:
        source = SourceImage.from_image(gradient_image)
        rendered = pipeline.render(source, FilterState(flip_h=True))
        assert rendered is not None
        assert rendered.getpixel((399, 0)) == gradient_image.getpixel((0, 0))

    def test_opacity_scales_alpha(
        self, pipeline: FilterPipeline, make_image: Callable[..., Image.Image]
    ) -> None:
        source = SourceImage.from_image(make_image(2, 2))
        rendered = pipeline.render(source, FilterState(opacity=50))
        assert rendered is not None
        assert rendered.getpixel((0, 0))[3] == 128

    def test_scale_multiplies_surface(
        self, pipeline: FilterPipeline, make_image: Callable[..., Image.Image]
    ) -> None:
        source = SourceImage.from_image(make_image(400, 300))
        rendered = pipeline.render(source, FilterState(), scale=2)
        assert rendered is not None
        assert rendered.size == (800, 600)

    def test_rejects_non_positive_scale(
        self, pipeline: FilterPipeline, make_image: Callable[..., Image.Image]
    ) -> None:
        source = SourceImage.from_image(make_image(4, 4))
        with pytest.raises(ValueError, match="scale must be positive"):
            pipeline.render(source, FilterState(), scale=0)


class TestBackgroundRemoval:
    """Tests for near-white background removal."""

    def test_white_becomes_transparent(
        self, pipeline: FilterPipeline, make_image: Callable[..., Image.Image]
    ) -> None:
        source = SourceImage.from_image(make_image(2, 2, (255, 255, 255, 255)))
        rendered = pipeline.render(source, FilterState(background_removal=True))
        assert rendered is not None
        assert list(rendered.getdata(3)) == [0, 0, 0, 0]

    def test_black_stays_opaque(
        self, pipeline: FilterPipeline, make_image: Callable[..., Image.Image]
    ) -> None:
        source = SourceImage.from_image(make_image(2, 2, (0, 0, 0, 255)))
        rendered = pipeline.render(source, FilterState(background_removal=True))
        assert rendered is not None
        assert list(rendered.getdata(3)) == [255, 255, 255, 255]

    def test_threshold_is_exclusive(self, make_image: Callable[..., Image.Image]) -> None:
        pipeline = FilterPipeline(background_threshold=240)
        result = pipeline.remove_background(make_image(1, 1, (240, 255, 255, 255)))
        assert result.getpixel((0, 0))[3] == 255

    def test_rejects_invalid_threshold(self) -> None:
        with pytest.raises(ValueError, match="background_threshold"):
            FilterPipeline(background_threshold=300)
