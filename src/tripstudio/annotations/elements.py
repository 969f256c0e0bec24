"""Annotation element models.

Elements are immutable pydantic models discriminated on ``kind`` so the
whole layer serializes to JSON and back without losing its variants.
Mutations produce new element instances (``model_copy``), which keeps
undo snapshots cheap to reason about.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Annotated, Literal

from PIL import ImageColor
from pydantic import BaseModel, Field, TypeAdapter, field_validator

from tripstudio.geometry import (
    Point,
    Rect,
    bounding_box,
    rotate_points,
    scale_points,
    translate_points,
)

# Rough glyph box used for text hit testing; renderers measure exactly
_TEXT_WIDTH_PER_CHAR = 0.6
_TEXT_LINE_HEIGHT = 1.2


class IconKind(str, Enum):
    """Marker shapes available to the icon tool."""

    pin = "pin"
    arrow = "arrow"


class _Element(BaseModel, frozen=True):
    """Fields shared by every annotation element."""

    id: str = Field(..., min_length=1, description="Stable element identifier")
    color: str = Field(default="#6366f1", description="Any Pillow colour string")

    @field_validator("color")
    @classmethod
    def _validate_color(cls, value: str) -> str:
        ImageColor.getrgb(value)  # raises ValueError on unknown colours
        return value


class StrokeElement(_Element):
    """Freehand stroke.

    Attributes:
        points: Polyline vertices in drawing order.
        width: Line width in pixels.
    """

    kind: Literal["stroke"] = "stroke"
    points: tuple[Point, ...] = Field(..., min_length=1)
    width: float = Field(default=5, gt=0)

    @property
    def bounds(self) -> Rect:
        """Bounding box of the polyline, padded by half the line width."""
        pad = self.width / 2
        xs = [p.x for p in self.points]
        ys = [p.y for p in self.points]
        return Rect(
            x=min(xs) - pad,
            y=min(ys) - pad,
            width=max(xs) - min(xs) + self.width,
            height=max(ys) - min(ys) + self.width,
        )

    def extended(self, point: Point) -> StrokeElement:
        """Return the stroke with one more vertex."""
        return self.model_copy(update={"points": (*self.points, point)})

    def translated(self, dx: float, dy: float) -> StrokeElement:
        return self.model_copy(update={"points": translate_points(self.points, dx, dy)})

    def transformed(self, scale: float, rotation: float) -> StrokeElement:
        """Scale and rotate about the stroke's centre.

        Rotation is baked into the vertices; the line width scales too.
        """
        center = self.bounds.center
        points = scale_points(self.points, scale, center)
        if rotation:
            points = rotate_points(points, rotation, center)
        return self.model_copy(update={"points": points, "width": self.width * scale})


class TextElement(_Element):
    """Placed text label. ``position`` is the top-left of the text box."""

    kind: Literal["text"] = "text"
    position: Point
    text: str = Field(..., min_length=1)
    font_size: float = Field(default=20, gt=0)
    font_family: str = "Inter, sans-serif"
    rotation: float = 0

    @property
    def bounds(self) -> Rect:
        """Approximate text box, rotated about its centre when needed."""
        lines = self.text.splitlines() or [self.text]
        width = max(1, max(len(line) for line in lines)) * self.font_size * _TEXT_WIDTH_PER_CHAR
        height = len(lines) * self.font_size * _TEXT_LINE_HEIGHT
        box = Rect(x=self.position.x, y=self.position.y, width=width, height=height)
        if not self.rotation % 360:
            return box
        corners = (
            box.top_left,
            Point(x=box.right, y=box.y),
            Point(x=box.right, y=box.bottom),
            Point(x=box.x, y=box.bottom),
        )
        return bounding_box(rotate_points(corners, self.rotation, box.center))

    def translated(self, dx: float, dy: float) -> TextElement:
        return self.model_copy(update={"position": self.position.offset(dx, dy)})

    def transformed(self, scale: float, rotation: float) -> TextElement:
        return self.model_copy(
            update={
                "font_size": self.font_size * scale,
                "rotation": (self.rotation + rotation) % 360,
            }
        )


class IconElement(_Element):
    """Icon marker anchored at ``position``.

    A pin is centred on its position; an arrow starts at its position and
    points up and to the right.
    """

    kind: Literal["icon"] = "icon"
    position: Point
    icon_kind: IconKind = IconKind.pin
    size: float = Field(default=25, gt=0)
    rotation: float = 0

    def outline(self) -> tuple[Point, ...]:
        """Key points of the icon shape, rotation applied."""
        x, y = self.position.to_tuple()
        s = self.size
        if self.icon_kind is IconKind.pin:
            # Square rotated 45 degrees about the anchor
            half_diag = s * math.sqrt(2) / 2
            points: tuple[Point, ...] = (
                Point(x=x, y=y - half_diag),
                Point(x=x + half_diag, y=y),
                Point(x=x, y=y + half_diag),
                Point(x=x - half_diag, y=y),
            )
        else:
            points = (Point(x=x, y=y), Point(x=x + s, y=y - s))
        if self.rotation % 360:
            points = rotate_points(points, self.rotation, self.position)
        return points

    @property
    def bounds(self) -> Rect:
        """Bounding box of the outline, padded for the arrow's line width."""
        pad = self.size / 8 if self.icon_kind is IconKind.arrow else 0
        pts = self.outline()
        xs = [p.x for p in pts]
        ys = [p.y for p in pts]
        return Rect(
            x=min(xs) - pad,
            y=min(ys) - pad,
            width=max(xs) - min(xs) + 2 * pad,
            height=max(ys) - min(ys) + 2 * pad,
        )

    def translated(self, dx: float, dy: float) -> IconElement:
        return self.model_copy(update={"position": self.position.offset(dx, dy)})

    def transformed(self, scale: float, rotation: float) -> IconElement:
        return self.model_copy(
            update={
                "size": self.size * scale,
                "rotation": (self.rotation + rotation) % 360,
            }
        )


AnnotationElement = Annotated[
    StrokeElement | TextElement | IconElement,
    Field(discriminator="kind"),
]

ELEMENT_LIST_ADAPTER: TypeAdapter[list[AnnotationElement]] = TypeAdapter(
    list[AnnotationElement]
)
