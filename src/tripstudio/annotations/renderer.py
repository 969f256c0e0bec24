"""Annotation rasterization.

Draws the annotation layer onto a transparent overlay with Pillow and
composites it over the working surface. Rendering takes a scale factor so
exports at a higher pixel density redraw the vectors sharply instead of
upsampling a finished raster.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from functools import lru_cache

from PIL import Image, ImageColor, ImageDraw, ImageFont

from tripstudio.annotations.elements import (
    AnnotationElement,
    IconElement,
    IconKind,
    StrokeElement,
    TextElement,
)
from tripstudio.geometry import Point, rotate_points

logger = logging.getLogger(__name__)

_GENERIC_FONT_FILES: dict[str, tuple[str, ...]] = {
    "sans-serif": ("DejaVuSans.ttf", "Arial.ttf"),
    "serif": ("DejaVuSerif.ttf", "Times New Roman.ttf"),
    "monospace": ("DejaVuSansMono.ttf", "Courier New.ttf"),
    "cursive": ("DejaVuSans-Oblique.ttf", "Comic Sans MS.ttf"),
}

FontType = ImageFont.FreeTypeFont | ImageFont.ImageFont


@dataclass(frozen=True)
class RenderStyle:
    """Visual constants for annotation drawing.

    Attributes:
        arrow_pointer_length: Arrowhead length in pixels at scale 1.
        arrow_pointer_width: Arrowhead base width in pixels at scale 1.
        pin_dot_color: RGBA colour of the dot inside a pin.
        strict_font_check: If True, raise instead of falling back to
            Pillow's built-in font when no TrueType font is found.
    """

    arrow_pointer_length: float = 10
    arrow_pointer_width: float = 10
    pin_dot_color: tuple[int, int, int, int] = (255, 255, 255, 255)
    strict_font_check: bool = False


def _font_candidates(font_family: str) -> list[str]:
    """TrueType file names to try for a CSS-style font family list."""
    candidates: list[str] = []
    for raw in font_family.split(","):
        name = raw.strip().strip("'\"")
        if not name:
            continue
        if name.lower() in _GENERIC_FONT_FILES:
            candidates.extend(_GENERIC_FONT_FILES[name.lower()])
        else:
            candidates.append(f"{name}.ttf")
    candidates.extend(_GENERIC_FONT_FILES["sans-serif"])
    return candidates


@lru_cache(maxsize=64)
def load_font(font_family: str, size: int, strict: bool = False) -> FontType:
    """Load the first available TrueType font for a family list.

    Args:
        font_family: CSS-style family list, e.g. "'Playfair Display', serif".
        size: Font size in pixels.
        strict: Raise instead of falling back to the default font.

    Returns:
        Font object for drawing text.

    Raises:
        RuntimeError: If strict is True and no TrueType font was found.
    """
    for filename in _font_candidates(font_family):
        try:
            return ImageFont.truetype(filename, size)
        except OSError:
            continue
    if strict:
        raise RuntimeError(
            f"No TrueType font available for {font_family!r}. "
            "Strict font check is enabled. Install system fonts."
        )
    logger.warning(
        "No TrueType font available for %r. Using Pillow's default font.",
        font_family,
    )
    return ImageFont.load_default(size=size)


class AnnotationRenderer:
    """Draws annotation elements onto RGBA surfaces."""

    def __init__(self, style: RenderStyle | None = None) -> None:
        """Initialize the renderer with optional custom styling.

        Args:
            style: Visual styling configuration. Uses defaults if not provided.
        """
        self.style = style or RenderStyle()

    def composite(
        self,
        surface: Image.Image,
        elements: Iterable[AnnotationElement],
        scale: float = 1.0,
    ) -> Image.Image:
        """Return surface with the elements drawn on top, in order.

        Args:
            surface: Base image; not modified.
            elements: Elements bottom-first.
            scale: Multiplier from element coordinates to surface pixels.

        Returns:
            A new RGBA image.
        """
        base = surface if surface.mode == "RGBA" else surface.convert("RGBA")
        overlay = Image.new("RGBA", base.size, (0, 0, 0, 0))
        for element in elements:
            if isinstance(element, StrokeElement):
                self._draw_stroke(overlay, element, scale)
            elif isinstance(element, TextElement):
                self._draw_text(overlay, element, scale)
            elif isinstance(element, IconElement):
                self._draw_icon(overlay, element, scale)
        return Image.alpha_composite(base, overlay)

    def _draw_stroke(self, overlay: Image.Image, stroke: StrokeElement, scale: float) -> None:
        draw = ImageDraw.Draw(overlay)
        fill = ImageColor.getrgb(stroke.color)
        width = max(1, round(stroke.width * scale))
        points = [(p.x * scale, p.y * scale) for p in stroke.points]
        if len(points) > 1:
            draw.line(points, fill=fill, width=width, joint="curve")
        # Round caps
        radius = width / 2
        for x, y in (points[0], points[-1]):
            draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=fill)

    def _draw_text(self, overlay: Image.Image, label: TextElement, scale: float) -> None:
        fill = ImageColor.getrgb(label.color)
        font = load_font(
            label.font_family,
            max(1, round(label.font_size * scale)),
            self.style.strict_font_check,
        )
        x, y = label.position.x * scale, label.position.y * scale

        if not label.rotation % 360:
            ImageDraw.Draw(overlay).text((x, y), label.text, fill=fill, font=font)
            return

        # Draw upright on a scratch layer, then rotate about the box centre
        _, _, right, bottom = ImageDraw.Draw(overlay).multiline_textbbox(
            (0, 0), label.text, font=font
        )
        box_w = max(1, int(right) + 1)
        box_h = max(1, int(bottom) + 1)
        scratch = Image.new("RGBA", (box_w, box_h), (0, 0, 0, 0))
        ImageDraw.Draw(scratch).text((0, 0), label.text, fill=fill, font=font)
        turned = scratch.rotate(
            -label.rotation, resample=Image.Resampling.BICUBIC, expand=True
        )
        center_x = x + box_w / 2
        center_y = y + box_h / 2
        offset = (round(center_x - turned.width / 2), round(center_y - turned.height / 2))
        placed = Image.new("RGBA", overlay.size, (0, 0, 0, 0))
        placed.paste(turned, offset)
        overlay.alpha_composite(placed)

    def _draw_icon(self, overlay: Image.Image, icon: IconElement, scale: float) -> None:
        draw = ImageDraw.Draw(overlay)
        fill = ImageColor.getrgb(icon.color)
        outline = [(p.x * scale, p.y * scale) for p in icon.outline()]

        if icon.icon_kind is IconKind.pin:
            draw.polygon(outline, fill=fill)
            cx, cy = icon.position.x * scale, icon.position.y * scale
            r = icon.size * scale / 6
            draw.ellipse((cx - r, cy - r, cx + r, cy + r), fill=self.style.pin_dot_color)
            return

        (x0, y0), (x1, y1) = outline
        draw.line([(x0, y0), (x1, y1)], fill=fill, width=max(1, round(icon.size * scale / 4)))
        draw.polygon(self._arrowhead(icon, scale), fill=fill)

    def _arrowhead(self, icon: IconElement, scale: float) -> list[tuple[float, float]]:
        """Triangle at the arrow tip, pointing along the shaft."""
        tip = Point(x=icon.position.x + icon.size, y=icon.position.y - icon.size)
        length = self.style.arrow_pointer_length
        half_width = self.style.arrow_pointer_width / 2
        # Unrotated shaft direction is up-right at 45 degrees
        back = length / 2**0.5
        side = half_width / 2**0.5
        base = Point(x=tip.x - back, y=tip.y + back)
        triangle = (
            tip,
            Point(x=base.x - side, y=base.y - side),
            Point(x=base.x + side, y=base.y + side),
        )
        if icon.rotation % 360:
            triangle = rotate_points(triangle, icon.rotation, icon.position)
        return [(p.x * scale, p.y * scale) for p in triangle]
