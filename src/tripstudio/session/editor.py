"""Editing session orchestration.

EditSession owns every editing component for one image and routes host
input to them:

    host command -> EditSession -> FilterPipeline / crop engine /
    AnnotationLayer / UndoStack -> working surface refreshed

Tool state machine:
    - select: existing elements are interactive (click selects, drag moves).
    - stroke: pointer down/move/up draws a freehand stroke.
    - text, icon: one-shot; after one placement the tool reverts to select.
    - crop-polygon, crop-rect: active until commit_crop()/cancel_crop(),
      both of which return to select. Switching tools cancels the crop.

The source image arrives asynchronously from the host's point of view:
every editing, crop, filter and export operation raises
SourceNotReadyError until attach_source() (or load_source()) has run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING
from uuid import uuid4

from PIL import Image, ImageColor
from pydantic import BaseModel, Field, field_validator

from tripstudio.annotations import (
    AnnotationElement,
    AnnotationLayer,
    AnnotationRenderer,
    Dragging,
    GizmoMode,
    IconKind,
    TransformGizmo,
)
from tripstudio.config import settings
from tripstudio.errors import (
    CropError,
    DegenerateShapeError,
    ExportError,
    SourceNotReadyError,
)
from tripstudio.geometry import Point, Size
from tripstudio.imaging import (
    CropEngineProtocol,
    FilterPipeline,
    FilterPreset,
    FilterState,
    PolygonCrop,
    PolygonRegion,
    RectCrop,
    RectRegion,
    SourceImage,
    extract_region,
    open_source,
    pick_color,
)
from tripstudio.session.export import ExportMode, ExportResult, encode_png
from tripstudio.session.history import UndoStack
from tripstudio.utils.logging import set_correlation_context

if TYPE_CHECKING:
    from tripstudio.session.commands import Command

logger = logging.getLogger(__name__)


class Tool(str, Enum):
    """Editing tools."""

    select = "select"
    stroke = "stroke"
    text = "text"
    icon = "icon"
    crop_polygon = "crop-polygon"
    crop_rect = "crop-rect"

    @property
    def is_crop(self) -> bool:
        return self in (Tool.crop_polygon, Tool.crop_rect)

    @property
    def is_one_shot(self) -> bool:
        return self in (Tool.text, Tool.icon)


class BrushSettings(BaseModel, frozen=True):
    """Toolbar settings applied to newly created elements.

    Stroke width equals thickness; text is 4x and icons 5x thickness.
    """

    color: str = Field(default_factory=lambda: settings.DEFAULT_COLOR)
    thickness: int = Field(default_factory=lambda: settings.DEFAULT_THICKNESS, ge=1, le=50)
    font_family: str = Field(default_factory=lambda: settings.DEFAULT_FONT_FAMILY)
    icon_kind: IconKind = IconKind.pin

    @field_validator("color")
    @classmethod
    def _validate_color(cls, value: str) -> str:
        ImageColor.getrgb(value)
        return value

    @property
    def font_size(self) -> int:
        return self.thickness * 4

    @property
    def icon_size(self) -> int:
        return self.thickness * 5


def _scaled_region(
    region: PolygonRegion | RectRegion,
    factor: float,
) -> PolygonRegion | RectRegion:
    if isinstance(region, PolygonRegion):
        return PolygonRegion(
            points=tuple(Point(x=p.x * factor, y=p.y * factor) for p in region.points)
        )
    return RectRegion(rect=region.rect.scale(factor))


class EditSession:
    """One image editing session.

    Example:
        >>> session = EditSession()
        >>> session.load_source("beach.jpg")
        >>> session.set_filter("brightness", 120)
        >>> session.set_tool(Tool.stroke)
        >>> session.pointer_down(Point(x=10, y=10))
        >>> session.pointer_move(Point(x=60, y=40))
        >>> session.pointer_up(Point(x=60, y=40))
        >>> result = session.export()
        >>> result.png_bytes[:8]
        b'\\x89PNG\\r\\n\\x1a\\n'
    """

    def __init__(
        self,
        *,
        pipeline: FilterPipeline | None = None,
        renderer: AnnotationRenderer | None = None,
        polygon_crop: CropEngineProtocol | None = None,
        rect_crop: CropEngineProtocol | None = None,
        pixel_ratio: float | None = None,
        session_id: str | None = None,
    ) -> None:
        """Create an empty session awaiting its source image.

        Args:
            pipeline: Filter pipeline. Defaults to FilterPipeline().
            renderer: Annotation renderer. Defaults to AnnotationRenderer().
            polygon_crop: Engine for the crop-polygon tool.
            rect_crop: Engine for the crop-rect tool.
            pixel_ratio: Export density multiplier. Defaults to
                settings.EXPORT_PIXEL_RATIO.
            session_id: Correlation id for logs. Random if omitted.
        """
        self.session_id = session_id or uuid4().hex[:12]
        self.pixel_ratio = settings.EXPORT_PIXEL_RATIO if pixel_ratio is None else pixel_ratio
        self.history = UndoStack()
        self.layer = AnnotationLayer(history=self.history)
        self.gizmo = TransformGizmo()
        self.brush = BrushSettings()

        self._pipeline = pipeline or FilterPipeline()
        self._renderer = renderer or AnnotationRenderer()
        self._crops: dict[Tool, CropEngineProtocol] = {
            Tool.crop_polygon: polygon_crop or PolygonCrop(),
            Tool.crop_rect: rect_crop or RectCrop(),
        }

        self._source: SourceImage | None = None
        self._filter_state = FilterState()
        self._tool = Tool.select
        self._base: Image.Image | None = None
        self._surface: Image.Image | None = None
        self._ready_callbacks: list[Callable[[SourceImage], None]] = []
        self._steps = 0

        # Pointer gesture state
        self._active_stroke_id: str | None = None
        self._active_handle: int | None = None
        self._crop_drag_from: Point | None = None
        self._pending_text_at: Point | None = None

    # --- State ---

    @property
    def is_ready(self) -> bool:
        """True once the source image has been decoded and attached."""
        return self._source is not None

    @property
    def source(self) -> SourceImage | None:
        return self._source

    @property
    def filter_state(self) -> FilterState:
        return self._filter_state

    @property
    def tool(self) -> Tool:
        return self._tool

    @property
    def surface(self) -> Image.Image | None:
        """Live preview: filtered source with annotations, or None if not ready."""
        return self._surface

    @property
    def surface_size(self) -> Size | None:
        if self._base is None:
            return None
        return Size(width=self._base.width, height=self._base.height)

    @property
    def crop(self) -> CropEngineProtocol | None:
        """Crop engine for the active crop tool, if any."""
        return self._crops[self._tool] if self._tool.is_crop else None

    @property
    def crop_region(self) -> PolygonRegion | RectRegion | None:
        crop = self.crop
        return crop.region if crop is not None else None

    @property
    def elements(self) -> tuple[AnnotationElement, ...]:
        return self.layer.elements

    @property
    def selected_id(self) -> str | None:
        return self.layer.selected_id

    # --- Source lifecycle ---

    def when_ready(self, callback: Callable[[SourceImage], None]) -> None:
        """Run callback once the source is attached (immediately if it is)."""
        if self._source is not None:
            callback(self._source)
        else:
            self._ready_callbacks.append(callback)

    def attach_source(self, source: SourceImage | Image.Image) -> None:
        """Install the decoded source and render the first frame."""
        if isinstance(source, Image.Image):
            source = SourceImage.from_image(source)
        self._cancel_active_crop()
        self._source = source
        self._refresh(filters_changed=True)
        logger.info("Source attached: %dx%d", source.width, source.height)

        callbacks, self._ready_callbacks = self._ready_callbacks, []
        for callback in callbacks:
            callback(source)

    def load_source(self, source: str | Path | bytes | Image.Image) -> SourceImage:
        """Decode and attach a source image.

        Raises:
            SourceDecodeError: If the image cannot be decoded.
        """
        decoded = open_source(source)
        self.attach_source(decoded)
        return decoded

    # --- Rendering ---

    def render(self) -> Image.Image | None:
        """Re-render the working surface from scratch.

        Returns None, leaving any prior frame untouched, while the source
        is not ready.
        """
        return self._refresh(filters_changed=True)

    def show_original(self) -> Image.Image:
        """The unfiltered source at working surface scale."""
        self._require_ready("show_original")
        original = self._pipeline.render(self._source, FilterState())
        assert original is not None
        return original

    def _refresh(self, *, filters_changed: bool = False) -> Image.Image | None:
        if filters_changed or self._base is None:
            base = self._pipeline.render(self._source, self._filter_state)
            if base is None:
                return None
            self._base = base
            self._sync_crop_bounds()
        self._surface = self._renderer.composite(self._base, self.layer.elements)
        return self._surface

    # --- Filters ---

    def set_filter(self, field: str, value: object) -> FilterState:
        """Change one filter parameter.

        Raises:
            SourceNotReadyError: If the source is not attached.
            pydantic.ValidationError: If the value is out of range.
            ValueError: If the field is unknown.
        """
        self._require_ready("set_filter")
        self._filter_state = self._filter_state.updated(**{field: value})
        logger.debug("Filter %s set to %r", field, value)
        self._refresh(filters_changed=True)
        return self._filter_state

    def reset_filters(self) -> FilterState:
        """Return every filter to its identity value."""
        self._require_ready("reset_filters")
        self._filter_state = FilterState()
        self._refresh(filters_changed=True)
        return self._filter_state

    def apply_preset(self, preset: FilterPreset | str) -> FilterState:
        """Apply a named brightness/contrast preset."""
        self._require_ready("apply_preset")
        self._filter_state = self._filter_state.with_preset(FilterPreset(preset))
        self._refresh(filters_changed=True)
        return self._filter_state

    def rotate_clockwise(self) -> FilterState:
        """Rotate a further 90 degrees clockwise."""
        self._require_ready("rotate_clockwise")
        self._filter_state = self._filter_state.rotated_clockwise()
        self._refresh(filters_changed=True)
        return self._filter_state

    def toggle_flip(self, horizontal: bool = True) -> FilterState:
        """Toggle the horizontal (or vertical) flip."""
        field = "flip_h" if horizontal else "flip_v"
        return self.set_filter(field, not getattr(self._filter_state, field))

    # --- Brush ---

    def set_brush(self, **changes: object) -> BrushSettings:
        """Update toolbar settings for new elements.

        Raises:
            pydantic.ValidationError: If a value is invalid.
        """
        self.brush = BrushSettings.model_validate({**self.brush.model_dump(), **changes})
        return self.brush

    def pick_color(self, point: Point) -> str:
        """Eyedropper: set the brush colour from the filtered surface."""
        self._require_ready("pick_color")
        assert self._base is not None
        color = pick_color(self._base, point)
        self.brush = self.brush.model_copy(update={"color": color})
        return color

    # --- Tools ---

    def set_tool(self, tool: Tool | str) -> Tool:
        """Switch tools.

        Leaving a crop tool cancels the crop; entering one seeds a new
        region on the current surface. Non-select tools clear the
        selection, since only the select tool interacts with elements.

        Raises:
            SourceNotReadyError: If entering a crop tool before the
                source is attached.
        """
        tool = Tool(tool)
        if tool.is_crop:
            self._require_ready("set_tool")
        self._end_gestures()

        if tool is not self._tool:
            self._cancel_active_crop()
        if tool is not Tool.select:
            self.layer.select(None)

        self._tool = tool
        if tool.is_crop and not self._crops[tool].is_active:
            size = self.surface_size
            assert size is not None
            self._crops[tool].begin(size)
        set_correlation_context(tool=tool.value)
        logger.debug("Tool set to %s", tool.value)
        self._refresh()
        return tool

    # --- Pointer input ---

    def pointer_down(self, point: Point) -> None:
        """Pointer pressed at a surface-relative point."""
        self._require_ready("pointer_down")
        tool = self._tool

        if tool is Tool.select:
            element_id = self.layer.element_at(point)
            self.layer.select(element_id)
            if element_id is not None:
                self.gizmo.begin(self.layer.get(element_id), point, GizmoMode.move)
        elif tool is Tool.stroke:
            self._active_stroke_id = self.layer.add_stroke(
                point, color=self.brush.color, width=self.brush.thickness
            )
        elif tool is Tool.text:
            self._pending_text_at = point
        elif tool is Tool.icon:
            self.layer.add_icon(
                point,
                self.brush.icon_kind,
                color=self.brush.color,
                size=self.brush.icon_size,
            )
            self._finish_one_shot()
        else:
            crop = self._crops[tool]
            handle = crop.grab(point)
            if handle is not None:
                self._active_handle = handle
            elif crop.contains(point):
                self._crop_drag_from = point
        self._refresh()

    def pointer_move(self, point: Point) -> None:
        """Pointer moved; applied in receipt order."""
        self._require_ready("pointer_move")
        tool = self._tool

        if tool is Tool.select and self.gizmo.is_dragging:
            self._apply_gesture(point)
        elif tool is Tool.stroke and self._active_stroke_id is not None:
            self.layer.extend_stroke(self._active_stroke_id, point)
        elif tool.is_crop:
            crop = self._crops[tool]
            if self._active_handle is not None:
                crop.update_handle(self._active_handle, point)
            elif self._crop_drag_from is not None:
                crop.move(point.x - self._crop_drag_from.x, point.y - self._crop_drag_from.y)
                self._crop_drag_from = point
            else:
                return
        else:
            return
        self._refresh()

    def pointer_up(self, point: Point | None = None) -> None:
        """Pointer released; ends any gesture in progress."""
        if point is not None and self._tool is Tool.stroke and self._active_stroke_id:
            self.layer.extend_stroke(self._active_stroke_id, point)
        self._end_gestures()
        if self.is_ready:
            self._refresh()

    # --- Annotations ---

    def place_text(self, text: str | None, position: Point | None = None) -> str | None:
        """Place text supplied by the host (e.g. from a prompt).

        Uses position, or the point of the last pointer_down in text mode.
        The text tool reverts to select afterwards even when the input was
        empty or cancelled, in which case nothing is created.

        Returns:
            The new element id, or None.
        """
        self._require_ready("place_text")
        if self._tool is not Tool.text:
            logger.debug("place_text ignored: tool is %s", self._tool.value)
            return None
        position = position or self._pending_text_at
        element_id = None
        if position is not None:
            element_id = self.layer.add_text(
                position,
                text,
                color=self.brush.color,
                font_size=self.brush.font_size,
                font_family=self.brush.font_family,
            )
        self._pending_text_at = None
        self._finish_one_shot()
        self._refresh()
        return element_id

    def select(self, element_id: str | None) -> None:
        """Select an element by id (select tool only)."""
        if self._tool is not Tool.select:
            logger.debug("select ignored: tool is %s", self._tool.value)
            return
        self.layer.select(element_id)
        self._refresh()

    def move_selected(self, dx: float, dy: float) -> bool:
        """Move the selected element (select tool only)."""
        self._require_ready("move_selected")
        if self._tool is not Tool.select:
            return False
        changed = self.layer.move_selected(dx, dy)
        self._refresh()
        return changed

    def transform_selected(self, scale: float, rotation: float = 0) -> bool:
        """Scale/rotate the selected element (select tool only)."""
        self._require_ready("transform_selected")
        if self._tool is not Tool.select:
            return False
        changed = self.layer.transform_selected(scale, rotation)
        self._refresh()
        return changed

    def begin_transform(self, anchor: Point, mode: GizmoMode | str) -> bool:
        """Start a scale or rotate gesture on the selection from a gizmo handle.

        Subsequent pointer_move calls drive the gesture.
        """
        self._require_ready("begin_transform")
        element = self.layer.selected
        if self._tool is not Tool.select or element is None:
            return False
        self.gizmo.begin(element, anchor, GizmoMode(mode))
        return True

    def delete_selected(self) -> bool:
        """Remove the selected element, if any."""
        self._require_ready("delete_selected")
        element_id = self.layer.selected_id
        if element_id is None:
            return False
        self.gizmo.end()
        self.layer.remove(element_id)
        self._refresh()
        return True

    def undo(self) -> bool:
        """Restore the annotation state before the last change.

        Returns:
            False (a no-op) when there is nothing to undo.
        """
        self._end_gestures()
        previous = self.history.undo()
        if previous is None:
            return False
        self.layer.restore(previous)
        logger.debug("Undo restored %d element(s)", len(previous))
        self._refresh()
        return True

    # --- Crop ---

    def commit_crop(self) -> SourceImage | None:
        """Apply the active crop, replacing the source image.

        The crop is taken from the filtered surface (annotations excluded),
        so the filters are baked in and the filter state resets to the
        identity. Annotations and undo snapshots shift with the new origin.

        Returns:
            The new source, or None if the region had no area.

        Raises:
            SourceNotReadyError: If the source is not attached.
            CropError: If no crop tool is active.
        """
        self._require_ready("commit_crop")
        crop = self.crop
        region = crop.region if crop is not None else None
        if crop is None or region is None:
            raise CropError("No active crop to commit", tool=self._tool.value)
        assert self._base is not None

        left, top, _, _ = region.bounds.to_box()
        try:
            new_source = crop.commit(self._base, region)
        except DegenerateShapeError as e:
            logger.warning("Crop not applied: %s", e)
            return None

        self._source = new_source
        self._filter_state = FilterState()
        self.layer.translate_all(-left, -top)
        self.history.rebase(lambda element: element.translated(-left, -top))
        self._end_gestures()
        self._tool = Tool.select
        self._refresh(filters_changed=True)
        logger.info("Crop applied: new source %dx%d", new_source.width, new_source.height)
        return new_source

    def cancel_crop(self) -> None:
        """Discard the active crop and return to select."""
        self._cancel_active_crop()
        self._end_gestures()
        self._tool = Tool.select
        self._refresh()

    # --- Export ---

    def export(
        self,
        pixel_ratio: float | None = None,
        mode: ExportMode | str = ExportMode.save,
    ) -> ExportResult:
        """Composite the final raster.

        With a crop region active, exactly the region's bounds are
        exported (polygon regions clipped to the polygon); otherwise the
        full surface. The filter pipeline and annotations are re-rendered
        at pixel_ratio rather than upscaling the preview.

        Args:
            pixel_ratio: Density multiplier. Defaults to self.pixel_ratio.
            mode: Destination hint carried on the result.

        Raises:
            SourceNotReadyError: If the source is not attached.
            ExportError: If the raster cannot be produced or encoded.
        """
        self._require_ready("export")
        ratio = self.pixel_ratio if pixel_ratio is None else pixel_ratio
        if ratio <= 0:
            raise ExportError("pixel_ratio must be positive", pixel_ratio=ratio)

        try:
            base = self._pipeline.render(self._source, self._filter_state, scale=ratio)
            assert base is not None
            image = self._renderer.composite(base, self.layer.elements, scale=ratio)
            region = self.crop_region
            if region is not None:
                image = extract_region(image, _scaled_region(region, ratio))
        except (OSError, ValueError, RuntimeError) as e:
            raise ExportError(f"Export rendering failed: {e}", pixel_ratio=ratio) from e

        png_bytes = encode_png(image)
        logger.info(
            "Exported %dx%d raster (%s, ratio %s)",
            image.width,
            image.height,
            ExportMode(mode).value,
            ratio,
        )
        return ExportResult(
            image=image,
            png_bytes=png_bytes,
            elements_json=self.layer.to_json(),
            mode=ExportMode(mode),
            pixel_ratio=ratio,
        )

    # --- Commands ---

    def dispatch(self, command: Command) -> object:
        """Apply a discrete host command and return its result."""
        self._steps += 1
        set_correlation_context(
            session_id=self.session_id, tool=self._tool.value, step=self._steps
        )
        return command.apply(self)

    # --- Internals ---

    def _require_ready(self, operation: str) -> None:
        if self._source is None:
            raise SourceNotReadyError(operation)

    def _apply_gesture(self, point: Point) -> None:
        state = self.gizmo.state
        candidate = self.gizmo.drag(point)
        if not isinstance(state, Dragging) or candidate is None:
            return
        if candidate == self.layer.get(state.element_id):
            return
        if state.mode is not GizmoMode.move and not self.layer.fits_minimum(candidate):
            return
        if not state.recorded:
            self.layer.checkpoint()
            self.gizmo.mark_recorded()
        self.layer.replace(candidate)

    def _finish_one_shot(self) -> None:
        self._tool = Tool.select

    def _end_gestures(self) -> None:
        self.gizmo.end()
        self._active_stroke_id = None
        self._active_handle = None
        self._crop_drag_from = None

    def _cancel_active_crop(self) -> None:
        crop = self.crop
        if crop is not None and crop.is_active:
            crop.cancel()
            logger.debug("Crop cancelled")

    def _sync_crop_bounds(self) -> None:
        """Restart an active crop when the surface size changes under it."""
        crop = self.crop
        size = self.surface_size
        if crop is None or size is None or not crop.is_active:
            return
        bounds = crop.region.bounds if crop.region is not None else None
        if bounds is not None and (bounds.right > size.width or bounds.bottom > size.height):
            crop.begin(size)
