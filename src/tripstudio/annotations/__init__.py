"""Vector annotations: strokes, text labels and icon markers.

Public API:
    - AnnotationLayer: Ordered element list with selection and history hooks.
    - StrokeElement / TextElement / IconElement: Immutable element models.
    - TransformGizmo: Move/scale/rotate gesture state machine.
    - AnnotationRenderer: Pillow rasterization of the layer.
"""

from tripstudio.annotations.elements import (
    ELEMENT_LIST_ADAPTER,
    AnnotationElement,
    IconElement,
    IconKind,
    StrokeElement,
    TextElement,
)
from tripstudio.annotations.gizmo import Dragging, GizmoMode, Idle, TransformGizmo
from tripstudio.annotations.layer import AnnotationLayer, HistoryProtocol
from tripstudio.annotations.renderer import AnnotationRenderer, RenderStyle, load_font

__all__ = [
    "ELEMENT_LIST_ADAPTER",
    "AnnotationElement",
    "AnnotationLayer",
    "AnnotationRenderer",
    "Dragging",
    "GizmoMode",
    "HistoryProtocol",
    "IconElement",
    "IconKind",
    "Idle",
    "RenderStyle",
    "StrokeElement",
    "TextElement",
    "TransformGizmo",
    "load_font",
]
