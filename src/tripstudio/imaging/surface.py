"""Source images and working surface sizing.

A SourceImage is the decoded raster the session edits. It is never
mutated: crops produce a new SourceImage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from tripstudio.errors import SourceDecodeError
from tripstudio.geometry import Point, ShapeValidator, Size

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceImage:
    """Immutable decoded raster.

    Attributes:
        image: Pillow image in RGBA mode. Treat as read-only.
    """

    image: Image.Image

    @classmethod
    def from_image(cls, image: Image.Image) -> SourceImage:
        """Wrap a Pillow image, converting a copy to RGBA when needed."""
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        else:
            image = image.copy()
        return cls(image=image)

    @property
    def width(self) -> int:
        """Width in pixels."""
        return self.image.width

    @property
    def height(self) -> int:
        """Height in pixels."""
        return self.image.height

    @property
    def size(self) -> Size:
        """Dimensions as a Size."""
        return Size(width=self.image.width, height=self.image.height)


def open_source(source: str | Path | bytes | Image.Image) -> SourceImage:
    """Decode a source image from a path, raw bytes, or a Pillow image.

    Args:
        source: File path, encoded image bytes, or an already decoded image.

    Returns:
        The decoded SourceImage in RGBA mode.

    Raises:
        SourceDecodeError: If the data cannot be read or decoded.
    """
    if isinstance(source, Image.Image):
        return SourceImage.from_image(source)

    label = "<bytes>" if isinstance(source, bytes) else str(source)
    try:
        fp = BytesIO(source) if isinstance(source, bytes) else Path(source)
        with Image.open(fp) as img:
            img.load()
            decoded = SourceImage.from_image(img)
    except FileNotFoundError as e:
        raise SourceDecodeError("Source image not found", source=label) from e
    except (UnidentifiedImageError, OSError) as e:
        raise SourceDecodeError(f"Cannot decode source image: {e}", source=label) from e

    logger.debug("Decoded source %s (%dx%d)", label, decoded.width, decoded.height)
    return decoded


def fit_within(size: Size, bounds: Size) -> Size:
    """Fit a size inside bounds preserving aspect ratio.

    Never upsamples: a size already inside bounds is returned unchanged.
    Fractional results are floored, with a 1px minimum per dimension.

    Example:
        >>> fit_within(Size(width=1600, height=1200), Size(width=800, height=800))
        Size(width=800, height=600)
    """
    if size.width <= bounds.width and size.height <= bounds.height:
        return size
    # Integer arithmetic keeps the constrained axis exactly on the bound
    if bounds.width * size.height <= bounds.height * size.width:
        return Size(
            width=bounds.width,
            height=max(1, size.height * bounds.width // size.width),
        )
    return Size(
        width=max(1, size.width * bounds.height // size.height),
        height=bounds.height,
    )


def scaled_size(size: Size, factor: float) -> Size:
    """Multiply a size by factor, rounding to whole pixels (min 1px)."""
    return Size(
        width=max(1, round(size.width * factor)),
        height=max(1, round(size.height * factor)),
    )


def pick_color(surface: Image.Image, point: Point) -> str:
    """Read the colour under a point as a "#rrggbb" hex string.

    The point is clamped into the surface, so picks slightly outside the
    edge read the nearest edge pixel.
    """
    bounds = Size(width=surface.width, height=surface.height)
    clamped = ShapeValidator().clamp_point(point, bounds)
    x = min(int(clamped.x), surface.width - 1)
    y = min(int(clamped.y), surface.height - 1)
    r, g, b = surface.convert("RGB").getpixel((x, y))[:3]
    return f"#{r:02x}{g:02x}{b:02x}"
