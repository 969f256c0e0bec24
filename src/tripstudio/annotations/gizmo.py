"""Transform gizmo for selected annotations.

A small state machine, ``Idle | Dragging``, that turns pointer drags into
new element geometry. The element captured when the drag begins is the
reference for every update, so intermediate pointer events can be
dropped without drift.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum

from tripstudio.annotations.elements import AnnotationElement
from tripstudio.geometry import Point


class GizmoMode(str, Enum):
    """What a drag does to the element."""

    move = "move"
    scale = "scale"
    rotate = "rotate"


@dataclass(frozen=True)
class Idle:
    """No gesture in progress."""


@dataclass(frozen=True)
class Dragging:
    """A gesture in progress.

    Attributes:
        element_id: Element being transformed.
        anchor: Pointer position when the gesture began.
        mode: Kind of transform.
        origin: The element as it was when the gesture began.
        recorded: Whether the gesture's undo snapshot has been taken.
    """

    element_id: str
    anchor: Point
    mode: GizmoMode
    origin: AnnotationElement
    recorded: bool = False


GizmoState = Idle | Dragging


def moved(element: AnnotationElement, anchor: Point, pointer: Point) -> AnnotationElement:
    """Element translated by the pointer's offset from the anchor."""
    return element.translated(pointer.x - anchor.x, pointer.y - anchor.y)


def scaled(
    element: AnnotationElement, anchor: Point, pointer: Point
) -> AnnotationElement | None:
    """Element scaled by the ratio of pointer/anchor distances to its centre.

    Returns None when the pointer sits on the centre, where the element
    would collapse to nothing.
    """
    center = element.bounds.center
    start = anchor.distance_to(center)
    if start == 0:
        return element
    factor = pointer.distance_to(center) / start
    if factor <= 0:
        return None
    return element.transformed(factor, 0)


def rotated(element: AnnotationElement, anchor: Point, pointer: Point) -> AnnotationElement:
    """Element rotated by the angle swept from anchor to pointer about its centre."""
    center = element.bounds.center
    start = math.atan2(anchor.y - center.y, anchor.x - center.x)
    end = math.atan2(pointer.y - center.y, pointer.x - center.x)
    return element.transformed(1.0, math.degrees(end - start))


_MODE_FUNCTIONS = {
    GizmoMode.move: moved,
    GizmoMode.scale: scaled,
    GizmoMode.rotate: rotated,
}


class TransformGizmo:
    """Tracks one move/scale/rotate gesture at a time."""

    def __init__(self) -> None:
        self.state: GizmoState = Idle()

    @property
    def is_dragging(self) -> bool:
        return isinstance(self.state, Dragging)

    def begin(
        self,
        element: AnnotationElement,
        anchor: Point,
        mode: GizmoMode = GizmoMode.move,
    ) -> Dragging:
        """Start a gesture on element at the anchor point."""
        self.state = Dragging(
            element_id=element.id,
            anchor=anchor,
            mode=mode,
            origin=element,
        )
        return self.state

    def drag(self, pointer: Point) -> AnnotationElement | None:
        """Geometry for the current pointer position, or None when idle or degenerate."""
        if not isinstance(self.state, Dragging):
            return None
        state = self.state
        return _MODE_FUNCTIONS[state.mode](state.origin, state.anchor, pointer)

    def mark_recorded(self) -> None:
        """Note that the gesture's undo snapshot has been taken."""
        if isinstance(self.state, Dragging):
            self.state = replace(self.state, recorded=True)

    def end(self) -> None:
        """Finish the gesture."""
        self.state = Idle()
