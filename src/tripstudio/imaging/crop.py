"""Interactive crop engines.

Two variants share one contract (CropEngineProtocol):

- PolygonCrop: an 8-point free lasso. Points start on the perimeter of an
  inset rectangle (corners and edge midpoints, clockwise from top-left)
  and each handle drag simply relocates its point. Self-intersecting
  polygons are accepted.
- RectCrop: an axis-aligned rectangle with 16 perimeter handles.

Both ignore any single update that would shrink the region below the
minimum size and keep the last valid region instead. Commit extracts the
region from a surface into a new SourceImage. For polygons the output is
the polygon's bounding box with everything outside the polygon made
transparent.
"""

from __future__ import annotations

import logging
from typing import Annotated, Literal, Protocol

from PIL import Image, ImageDraw
from pydantic import BaseModel, Field, field_validator

from tripstudio.config import settings
from tripstudio.errors import CropError, DegenerateShapeError
from tripstudio.geometry import (
    POLYGON_POINT_COUNT,
    Point,
    Rect,
    ShapeValidator,
    Size,
    bounding_box,
    hit_test,
    inset_rect,
    polygon_from_rect,
    rect_handle_positions,
    resize_handle_rect,
    translate_points,
)
from tripstudio.imaging.surface import SourceImage

logger = logging.getLogger(__name__)


class PolygonRegion(BaseModel, frozen=True):
    """Free-form crop polygon with a fixed number of points.

    Attributes:
        points: Vertices in handle order (index 0 top-left, clockwise).
    """

    kind: Literal["polygon"] = "polygon"
    points: tuple[Point, ...]

    @field_validator("points")
    @classmethod
    def _validate_point_count(cls, value: tuple[Point, ...]) -> tuple[Point, ...]:
        if len(value) != POLYGON_POINT_COUNT:
            raise ValueError(
                f"polygon needs {POLYGON_POINT_COUNT} points, got {len(value)}"
            )
        return value

    @property
    def bounds(self) -> Rect:
        """Axis-aligned bounding box of the polygon."""
        return bounding_box(self.points)


class RectRegion(BaseModel, frozen=True):
    """Rectangular crop region."""

    kind: Literal["rect"] = "rect"
    rect: Rect

    @property
    def bounds(self) -> Rect:
        """The rectangle itself."""
        return self.rect


CropRegion = Annotated[PolygonRegion | RectRegion, Field(discriminator="kind")]


class CropEngineProtocol(Protocol):
    """Interface shared by the crop variants.

    This protocol lets the session hold either variant and lets tests
    substitute fakes.
    """

    @property
    def region(self) -> PolygonRegion | RectRegion | None: ...

    @property
    def is_active(self) -> bool: ...

    def begin(self, bounds: Size) -> PolygonRegion | RectRegion: ...

    def handle_positions(self) -> list[Point]: ...

    def grab(self, pointer: Point) -> int | None: ...

    def contains(self, pointer: Point) -> bool: ...

    def update_handle(self, handle: int, pointer: Point) -> PolygonRegion | RectRegion: ...

    def move(self, dx: float, dy: float) -> PolygonRegion | RectRegion: ...

    def commit(
        self,
        surface: Image.Image,
        region: PolygonRegion | RectRegion | None = None,
    ) -> SourceImage: ...

    def cancel(self) -> None: ...


class _BaseCrop:
    """State and helpers shared by both crop variants."""

    def __init__(
        self,
        *,
        inset_ratio: float | None = None,
        min_size: float | None = None,
        hit_radius: float | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            inset_ratio: Margin per side for the initial region.
                Defaults to settings.CROP_INSET_RATIO.
            min_size: Smallest allowed region width/height.
                Defaults to settings.MIN_CROP_SIZE.
            hit_radius: Handle grab radius. Defaults to
                settings.HANDLE_HIT_RADIUS.
        """
        self.inset_ratio = settings.CROP_INSET_RATIO if inset_ratio is None else inset_ratio
        self.min_size = settings.MIN_CROP_SIZE if min_size is None else min_size
        self.hit_radius = settings.HANDLE_HIT_RADIUS if hit_radius is None else hit_radius
        self._validator = ShapeValidator()
        self._bounds: Size | None = None

    @property
    def is_active(self) -> bool:
        """True between begin() and commit()/cancel()."""
        return self._bounds is not None

    def grab(self, pointer: Point) -> int | None:
        """Return the handle under the pointer, lowest index first."""
        if not self.is_active:
            return None
        return hit_test(pointer, self.handle_positions(), self.hit_radius)

    def handle_positions(self) -> list[Point]:
        raise NotImplementedError

    def _require_bounds(self) -> Size:
        if self._bounds is None:
            raise CropError("No crop in progress; call begin() first")
        return self._bounds

    def _finish(self) -> None:
        self._bounds = None


class PolygonCrop(_BaseCrop):
    """Eight-point lasso crop.

    Example:
        >>> crop = PolygonCrop()
        >>> region = crop.begin(Size(width=800, height=600))
        >>> region = crop.update_handle(1, Point(x=400, y=20))
        >>> new_source = crop.commit(surface)
    """

    def __init__(self, **kwargs: float | None) -> None:
        super().__init__(**kwargs)
        self._region: PolygonRegion | None = None

    @property
    def region(self) -> PolygonRegion | None:
        """Current polygon, or None when no crop is active."""
        return self._region

    def begin(self, bounds: Size) -> PolygonRegion:
        """Seed the polygon on the perimeter of a centered inset."""
        self._bounds = bounds
        self._region = PolygonRegion(
            points=polygon_from_rect(inset_rect(bounds, self.inset_ratio))
        )
        return self._region

    def handle_positions(self) -> list[Point]:
        """The polygon vertices are its handles."""
        return list(self._region.points) if self._region else []

    def contains(self, pointer: Point) -> bool:
        """True if the pointer lies inside the polygon's bounding box."""
        return self._region is not None and self._region.bounds.contains_point(pointer)

    def update_handle(self, handle: int, pointer: Point) -> PolygonRegion:
        """Relocate one vertex to the pointer position.

        No convexity or self-intersection check is made. An update that
        would shrink the bounding box below min_size is ignored.

        Raises:
            CropError: If no crop is active.
            ValueError: If handle is not a vertex index.
        """
        self._require_bounds()
        assert self._region is not None
        if not 0 <= handle < POLYGON_POINT_COUNT:
            raise ValueError(f"handle must be 0-{POLYGON_POINT_COUNT - 1}, got {handle}")

        points = list(self._region.points)
        points[handle] = pointer
        try:
            box = bounding_box(points)
        except DegenerateShapeError:
            logger.debug("Ignored polygon update on handle %d: no area", handle)
            return self._region
        if not self._validator.meets_minimum(box, self.min_size):
            logger.debug("Ignored polygon update on handle %d: below minimum", handle)
            return self._region

        self._region = PolygonRegion(points=tuple(points))
        return self._region

    def move(self, dx: float, dy: float) -> PolygonRegion:
        """Translate the whole polygon, stopping at the surface edges."""
        bounds = self._require_bounds()
        assert self._region is not None
        dx, dy = self._validator.clamp_offset(self._region.points, dx, dy, bounds)
        self._region = PolygonRegion(points=translate_points(self._region.points, dx, dy))
        return self._region

    def commit(
        self,
        surface: Image.Image,
        region: PolygonRegion | RectRegion | None = None,
    ) -> SourceImage:
        """Cut the polygon out of surface into a new SourceImage.

        Args:
            surface: The pre-crop working surface.
            region: Polygon to use. Defaults to the current region.

        Returns:
            SourceImage sized to the polygon's bounding box, transparent
            outside the polygon.

        Raises:
            CropError: If there is no region to commit.
            DegenerateShapeError: If the polygon has no area.
        """
        region = region if region is not None else self._region
        if not isinstance(region, PolygonRegion):
            raise CropError("PolygonCrop can only commit a polygon region")

        image = extract_polygon(surface, region)
        logger.info("Committed polygon crop: %dx%d", image.width, image.height)
        self.cancel()
        return SourceImage(image=image)

    def cancel(self) -> None:
        """Discard the polygon."""
        self._region = None
        self._finish()


class RectCrop(_BaseCrop):
    """Rectangle crop with 16 perimeter drag handles.

    Example:
        >>> crop = RectCrop()
        >>> crop.begin(Size(width=800, height=600)).rect.to_tuple()
        (80.0, 60.0, 640.0, 480.0)
    """

    def __init__(self, **kwargs: float | None) -> None:
        super().__init__(**kwargs)
        self._region: RectRegion | None = None

    @property
    def region(self) -> RectRegion | None:
        """Current rectangle, or None when no crop is active."""
        return self._region

    def begin(self, bounds: Size) -> RectRegion:
        """Seed the rectangle as a centered inset of the surface."""
        self._bounds = bounds
        self._region = RectRegion(rect=inset_rect(bounds, self.inset_ratio))
        return self._region

    def handle_positions(self) -> list[Point]:
        """The 16 perimeter handles of the current rectangle."""
        return rect_handle_positions(self._region.rect) if self._region else []

    def contains(self, pointer: Point) -> bool:
        """True if the pointer lies inside the rectangle."""
        return self._region is not None and self._region.rect.contains_point(pointer)

    def update_handle(self, handle: int, pointer: Point) -> RectRegion:
        """Drag one perimeter handle.

        A drag that would shrink the rectangle below min_size (including
        one that crosses the opposite edge) is ignored.

        Raises:
            CropError: If no crop is active.
            ValueError: If handle is out of range.
        """
        self._require_bounds()
        assert self._region is not None
        try:
            rect = resize_handle_rect(self._region.rect, handle, pointer, self.min_size)
        except DegenerateShapeError as e:
            logger.debug("Ignored rect update: %s", e)
            return self._region

        self._region = RectRegion(rect=rect)
        return self._region

    def move(self, dx: float, dy: float) -> RectRegion:
        """Translate the rectangle, stopping at the surface edges."""
        bounds = self._require_bounds()
        assert self._region is not None
        rect = self._region.rect
        corners = (rect.top_left, Point(x=rect.right, y=rect.bottom))
        dx, dy = self._validator.clamp_offset(corners, dx, dy, bounds)
        self._region = RectRegion(rect=rect.translate(dx, dy))
        return self._region

    def commit(
        self,
        surface: Image.Image,
        region: PolygonRegion | RectRegion | None = None,
    ) -> SourceImage:
        """Extract the rectangle from surface into a new SourceImage.

        Raises:
            CropError: If there is no rectangle to commit.
        """
        region = region if region is not None else self._region
        if not isinstance(region, RectRegion):
            raise CropError("RectCrop can only commit a rect region")

        image = extract_rect(surface, region.rect)
        logger.info("Committed rect crop: %dx%d", image.width, image.height)
        self.cancel()
        return SourceImage(image=image)

    def cancel(self) -> None:
        """Discard the rectangle."""
        self._region = None
        self._finish()


def extract_rect(surface: Image.Image, rect: Rect) -> Image.Image:
    """Copy a rectangle out of surface as RGBA.

    The output size is the rect's rounded width and height; any part of
    the rect outside the surface comes back transparent.
    """
    return surface.convert("RGBA").crop(rect.to_box())


def extract_polygon(surface: Image.Image, region: PolygonRegion) -> Image.Image:
    """Copy a polygon's bounding box out of surface, clipped to the polygon."""
    box = region.bounds
    left, top, right, bottom = box.to_box()
    size = (right - left, bottom - top)

    mask = Image.new("L", size, 0)
    ImageDraw.Draw(mask).polygon(
        [(p.x - left, p.y - top) for p in region.points],
        fill=255,
    )

    clipped = Image.new("RGBA", size, (0, 0, 0, 0))
    clipped.paste(extract_rect(surface, box), (0, 0), mask)
    return clipped


def extract_region(surface: Image.Image, region: PolygonRegion | RectRegion) -> Image.Image:
    """Extract either region variant from surface."""
    if isinstance(region, PolygonRegion):
        return extract_polygon(surface, region)
    return extract_rect(surface, region.rect)
