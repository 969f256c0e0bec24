"""Discrete host commands for an EditSession.

Hosts (a UI shell, a replay file, the CLI) drive a session with these
models. Each command validates its own payload and knows how to apply
itself; EditSession.dispatch() adds correlation context around the call.

Commands are a discriminated union on ``command`` so a recorded session
can be replayed from JSON:

    >>> commands = COMMAND_LIST_ADAPTER.validate_json(
    ...     '[{"command": "set_tool", "tool": "stroke"}]'
    ... )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter

from tripstudio.annotations import GizmoMode, IconKind
from tripstudio.geometry import Point
from tripstudio.imaging import FilterPreset
from tripstudio.session.editor import Tool
from tripstudio.session.export import ExportMode

if TYPE_CHECKING:
    from tripstudio.session.editor import EditSession


# =============================================================================
# Tools and settings
# =============================================================================


class SetTool(BaseModel, frozen=True):
    """Switch the active tool."""

    command: Literal["set_tool"] = "set_tool"
    tool: Tool

    def apply(self, session: EditSession) -> Tool:
        return session.set_tool(self.tool)


class SetBrush(BaseModel, frozen=True):
    """Change toolbar settings for new elements. Omitted fields are kept."""

    command: Literal["set_brush"] = "set_brush"
    color: str | None = None
    thickness: int | None = Field(default=None, ge=1, le=50)
    font_family: str | None = None
    icon_kind: IconKind | None = None

    def apply(self, session: EditSession) -> Any:
        changes = self.model_dump(exclude={"command"}, exclude_none=True)
        return session.set_brush(**changes)


class PickColor(BaseModel, frozen=True):
    """Eyedropper: take the brush colour from the surface."""

    command: Literal["pick_color"] = "pick_color"
    point: Point

    def apply(self, session: EditSession) -> str:
        return session.pick_color(self.point)


# =============================================================================
# Filters
# =============================================================================


class SetFilter(BaseModel, frozen=True):
    """Change one filter parameter (e.g. brightness=120)."""

    command: Literal["set_filter"] = "set_filter"
    field: str = Field(..., min_length=1)
    value: bool | int | float

    def apply(self, session: EditSession) -> Any:
        return session.set_filter(self.field, self.value)


class ResetFilters(BaseModel, frozen=True):
    command: Literal["reset_filters"] = "reset_filters"

    def apply(self, session: EditSession) -> Any:
        return session.reset_filters()


class ApplyPreset(BaseModel, frozen=True):
    command: Literal["apply_preset"] = "apply_preset"
    preset: FilterPreset

    def apply(self, session: EditSession) -> Any:
        return session.apply_preset(self.preset)


class RotateClockwise(BaseModel, frozen=True):
    command: Literal["rotate"] = "rotate"

    def apply(self, session: EditSession) -> Any:
        return session.rotate_clockwise()


# =============================================================================
# Pointer input
# =============================================================================


class PointerDown(BaseModel, frozen=True):
    command: Literal["pointer_down"] = "pointer_down"
    point: Point

    def apply(self, session: EditSession) -> None:
        session.pointer_down(self.point)


class PointerMove(BaseModel, frozen=True):
    command: Literal["pointer_move"] = "pointer_move"
    point: Point

    def apply(self, session: EditSession) -> None:
        session.pointer_move(self.point)


class PointerUp(BaseModel, frozen=True):
    command: Literal["pointer_up"] = "pointer_up"
    point: Point | None = None

    def apply(self, session: EditSession) -> None:
        session.pointer_up(self.point)


# =============================================================================
# Annotations
# =============================================================================


class PlaceText(BaseModel, frozen=True):
    """Text entered by the user after a text-tool click.

    ``text`` is None when the host's prompt was cancelled.
    """

    command: Literal["place_text"] = "place_text"
    text: str | None = None
    position: Point | None = None

    def apply(self, session: EditSession) -> str | None:
        return session.place_text(self.text, self.position)


class Select(BaseModel, frozen=True):
    command: Literal["select"] = "select"
    element_id: str | None = None

    def apply(self, session: EditSession) -> None:
        session.select(self.element_id)


class MoveSelected(BaseModel, frozen=True):
    command: Literal["move_selected"] = "move_selected"
    dx: float
    dy: float

    def apply(self, session: EditSession) -> bool:
        return session.move_selected(self.dx, self.dy)


class TransformSelected(BaseModel, frozen=True):
    command: Literal["transform_selected"] = "transform_selected"
    scale: float = Field(default=1.0, gt=0)
    rotation: float = 0

    def apply(self, session: EditSession) -> bool:
        return session.transform_selected(self.scale, self.rotation)


class BeginTransform(BaseModel, frozen=True):
    """Start a gizmo gesture on the selection from a handle at anchor."""

    command: Literal["begin_transform"] = "begin_transform"
    anchor: Point
    mode: GizmoMode

    def apply(self, session: EditSession) -> bool:
        return session.begin_transform(self.anchor, self.mode)


class DeleteSelected(BaseModel, frozen=True):
    command: Literal["delete_selected"] = "delete_selected"

    def apply(self, session: EditSession) -> bool:
        return session.delete_selected()


class Undo(BaseModel, frozen=True):
    command: Literal["undo"] = "undo"

    def apply(self, session: EditSession) -> bool:
        return session.undo()


# =============================================================================
# Crop and export
# =============================================================================


class CommitCrop(BaseModel, frozen=True):
    command: Literal["commit_crop"] = "commit_crop"

    def apply(self, session: EditSession) -> Any:
        return session.commit_crop()


class CancelCrop(BaseModel, frozen=True):
    command: Literal["cancel_crop"] = "cancel_crop"

    def apply(self, session: EditSession) -> None:
        session.cancel_crop()


class Export(BaseModel, frozen=True):
    command: Literal["export"] = "export"
    pixel_ratio: float | None = Field(default=None, gt=0)
    mode: ExportMode = ExportMode.save

    def apply(self, session: EditSession) -> Any:
        return session.export(self.pixel_ratio, self.mode)


Command = Annotated[
    SetTool
    | SetBrush
    | PickColor
    | SetFilter
    | ResetFilters
    | ApplyPreset
    | RotateClockwise
    | PointerDown
    | PointerMove
    | PointerUp
    | PlaceText
    | Select
    | MoveSelected
    | TransformSelected
    | BeginTransform
    | DeleteSelected
    | Undo
    | CommitCrop
    | CancelCrop
    | Export,
    Field(discriminator="command"),
]

COMMAND_LIST_ADAPTER: TypeAdapter[list[Command]] = TypeAdapter(list[Command])
