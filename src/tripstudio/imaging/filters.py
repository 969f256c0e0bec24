"""Filter pipeline for the working surface.

Renders a filtered copy of the source image. Every render starts again
from the untouched source, so filters never compound.

Pipeline order (fixed):
    1. Size the working surface to fit within the maximum bound,
       preserving aspect ratio. Quarter-turn rotations swap the extents.
    2. Colour adjustment (brightness, contrast, hue rotation) as one step,
       then flips and a clockwise rotation, then global opacity.
    3. Background removal, which inspects the post-filter pixels and
       clears alpha on near-white pixels.

Colour maths follows the CSS filter functions: brightness multiplies,
contrast scales around mid-grey, and hue rotation uses the
luminance-preserving hue-rotate matrix. Channels are clamped after each
function.
"""

from __future__ import annotations

import logging
import math
from enum import Enum

import numpy as np
from PIL import Image
from pydantic import BaseModel, Field, field_validator

from tripstudio.config import settings
from tripstudio.geometry import Size
from tripstudio.imaging.surface import SourceImage, fit_within, scaled_size

logger = logging.getLogger(__name__)

_VALID_ROTATIONS = (0, 90, 180, 270)

# Pillow's ROTATE_* constants turn counter-clockwise; rotation is clockwise
_CLOCKWISE_TRANSPOSE = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}


class FilterPreset(str, Enum):
    """Named brightness/contrast presets."""

    vivid = "vivid"
    mono = "mono"
    sepia = "sepia"


# (brightness, contrast)
_PRESET_VALUES: dict[FilterPreset, tuple[float, float]] = {
    FilterPreset.vivid: (110, 120),
    FilterPreset.mono: (100, 100),
    FilterPreset.sepia: (90, 110),
}


class FilterState(BaseModel, frozen=True):
    """Scalar filter parameters. Defaults are the identity.

    Attributes:
        brightness: Brightness percentage, 100 = unchanged.
        contrast: Contrast percentage, 100 = unchanged.
        hue_shift: Hue rotation in degrees.
        opacity: Global opacity percentage.
        flip_h: Mirror horizontally.
        flip_v: Mirror vertically.
        rotation: Clockwise quarter-turn rotation in degrees.
        background_removal: Clear near-white pixels after filtering.
    """

    brightness: float = Field(default=100, ge=0, le=200)
    contrast: float = Field(default=100, ge=0, le=200)
    hue_shift: float = Field(default=0, ge=0, lt=360)
    opacity: float = Field(default=100, ge=0, le=100)
    flip_h: bool = False
    flip_v: bool = False
    rotation: int = 0
    background_removal: bool = False

    @field_validator("rotation")
    @classmethod
    def _validate_rotation(cls, value: int) -> int:
        if value not in _VALID_ROTATIONS:
            raise ValueError(f"rotation must be one of {_VALID_ROTATIONS}, got {value}")
        return value

    @property
    def is_identity(self) -> bool:
        """True when rendering with this state leaves the source unchanged."""
        return self == FilterState()

    @property
    def swaps_extents(self) -> bool:
        """True when the rotation exchanges width and height."""
        return self.rotation in (90, 270)

    def updated(self, **changes: object) -> FilterState:
        """Return a validated copy with the given fields replaced.

        Raises:
            pydantic.ValidationError: If a value is out of range.
            ValueError: If a field name is unknown.
        """
        unknown = set(changes) - set(type(self).model_fields)
        if unknown:
            raise ValueError(f"Unknown filter field(s): {', '.join(sorted(unknown))}")
        return FilterState.model_validate({**self.model_dump(), **changes})

    def with_preset(self, preset: FilterPreset) -> FilterState:
        """Return a copy with a preset's brightness and contrast applied."""
        brightness, contrast = _PRESET_VALUES[preset]
        return self.updated(brightness=brightness, contrast=contrast)

    def rotated_clockwise(self) -> FilterState:
        """Return a copy rotated a further 90 degrees clockwise."""
        return self.updated(rotation=(self.rotation + 90) % 360)


def _hue_rotation_matrix(degrees: float) -> np.ndarray:
    """Build the 3x3 luminance-preserving hue rotation matrix."""
    theta = math.radians(degrees)
    c = math.cos(theta)
    s = math.sin(theta)
    return np.array(
        [
            [0.213 + c * 0.787 - s * 0.213, 0.715 - c * 0.715 - s * 0.715, 0.072 - c * 0.072 + s * 0.928],
            [0.213 - c * 0.213 + s * 0.143, 0.715 + c * 0.285 + s * 0.140, 0.072 - c * 0.072 - s * 0.283],
            [0.213 - c * 0.213 - s * 0.787, 0.715 - c * 0.715 + s * 0.715, 0.072 + c * 0.928 + s * 0.072],
        ],
        dtype=np.float32,
    )


class FilterPipeline:
    """Renders a source image through a FilterState.

    Example:
        >>> pipeline = FilterPipeline()
        >>> state = FilterState(brightness=150, rotation=90)
        >>> surface = pipeline.render(source, state)
    """

    __slots__ = ("_background_threshold", "_max_surface")

    def __init__(
        self,
        max_surface: Size | None = None,
        background_threshold: int | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            max_surface: Largest working surface. Defaults to
                settings.MAX_SURFACE_WIDTH x settings.MAX_SURFACE_HEIGHT.
            background_threshold: Channel value every one of R, G and B
                must exceed for a pixel to count as background. Defaults
                to settings.BACKGROUND_THRESHOLD.
        """
        self._max_surface = max_surface or Size(
            width=settings.MAX_SURFACE_WIDTH, height=settings.MAX_SURFACE_HEIGHT
        )
        threshold = (
            settings.BACKGROUND_THRESHOLD
            if background_threshold is None
            else background_threshold
        )
        if not 0 <= threshold <= 255:
            raise ValueError(f"background_threshold must be 0-255, got {threshold}")
        self._background_threshold = threshold

    @property
    def max_surface(self) -> Size:
        """Largest working surface the pipeline produces at scale 1."""
        return self._max_surface

    def surface_size(self, source: SourceImage, state: FilterState) -> Size:
        """Working surface size for a source under a filter state.

        Quarter-turn rotations fit the rotated extents, so a 400x300
        source at 90 degrees yields a 300x400 surface.
        """
        oriented = source.size.swapped() if state.swaps_extents else source.size
        return fit_within(oriented, self._max_surface)

    def render(
        self,
        source: SourceImage | None,
        state: FilterState,
        scale: float = 1.0,
    ) -> Image.Image | None:
        """Render the filtered working surface.

        Args:
            source: Decoded source image, or None while decoding is pending.
            state: Filter parameters to apply.
            scale: Multiplier on the surface size (export pixel density).

        Returns:
            A new RGBA image, or None if the source is not ready.
        """
        if source is None:
            logger.debug("Render skipped: source not ready")
            return None
        if scale <= 0:
            raise ValueError(f"scale must be positive, got {scale}")

        surface = scaled_size(self.surface_size(source, state), scale)
        draw_size = surface.swapped() if state.swaps_extents else surface

        image = source.image
        if image.size != draw_size.to_tuple():
            image = image.resize(draw_size.to_tuple(), resample=Image.Resampling.LANCZOS)
        else:
            image = image.copy()

        image = self._adjust_color(image, state)
        image = self._transform(image, state)
        image = self._apply_opacity(image, state.opacity)

        if state.background_removal:
            image = self.remove_background(image)
        return image

    def remove_background(self, image: Image.Image) -> Image.Image:
        """Clear alpha on every pixel whose R, G and B exceed the threshold.

        Returns a new image; the input is left untouched.
        """
        pixels = np.array(image.convert("RGBA"))
        t = self._background_threshold
        near_white = (pixels[..., 0] > t) & (pixels[..., 1] > t) & (pixels[..., 2] > t)
        pixels[near_white, 3] = 0
        logger.debug(
            "Background removal cleared %d of %d pixels",
            int(near_white.sum()),
            near_white.size,
        )
        return Image.fromarray(pixels)

    def _adjust_color(self, image: Image.Image, state: FilterState) -> Image.Image:
        """Apply brightness, contrast and hue rotation as one pass."""
        if state.brightness == 100 and state.contrast == 100 and state.hue_shift == 0:
            return image

        pixels = np.asarray(image, dtype=np.float32)
        rgb = pixels[..., :3] / 255.0

        if state.brightness != 100:
            rgb = np.clip(rgb * (state.brightness / 100), 0.0, 1.0)
        if state.contrast != 100:
            rgb = np.clip((rgb - 0.5) * (state.contrast / 100) + 0.5, 0.0, 1.0)
        if state.hue_shift != 0:
            rgb = np.clip(rgb @ _hue_rotation_matrix(state.hue_shift).T, 0.0, 1.0)

        out = pixels.copy()
        out[..., :3] = np.rint(rgb * 255.0)
        return Image.fromarray(out.astype(np.uint8))

    def _transform(self, image: Image.Image, state: FilterState) -> Image.Image:
        """Flip in the image's own frame, then rotate clockwise."""
        if state.flip_h:
            image = image.transpose(Image.Transpose.FLIP_LEFT_RIGHT)
        if state.flip_v:
            image = image.transpose(Image.Transpose.FLIP_TOP_BOTTOM)
        if state.rotation:
            image = image.transpose(_CLOCKWISE_TRANSPOSE[state.rotation])
        return image

    def _apply_opacity(self, image: Image.Image, opacity: float) -> Image.Image:
        """Multiply the alpha channel by opacity/100."""
        if opacity == 100:
            return image
        pixels = np.array(image)
        alpha = pixels[..., 3].astype(np.float32) * (opacity / 100)
        pixels[..., 3] = np.rint(alpha).astype(np.uint8)
        return Image.fromarray(pixels)
