"""Ordered annotation layer with selection.

The layer owns the element sequence (z-order: later elements draw on top)
and the single selection. Every mutating call records a snapshot of the
previous sequence through the injected history before changing anything;
selection changes are transient and never recorded.
"""

from __future__ import annotations

import itertools
import logging
import re
from collections.abc import Sequence
from typing import Protocol

from pydantic import ValidationError

from tripstudio.annotations.elements import (
    ELEMENT_LIST_ADAPTER,
    AnnotationElement,
    IconElement,
    IconKind,
    StrokeElement,
    TextElement,
)
from tripstudio.config import settings
from tripstudio.errors import ElementNotFoundError
from tripstudio.geometry import Point

logger = logging.getLogger(__name__)

_ID_PREFIX = "el-"
_ID_PATTERN = re.compile(rf"^{_ID_PREFIX}(\d+)$")


class HistoryProtocol(Protocol):
    """Receiver for pre-mutation snapshots (the undo stack)."""

    def push(self, elements: Sequence[AnnotationElement]) -> None: ...


class AnnotationLayer:
    """Vector annotations drawn over the working surface.

    Example:
        >>> layer = AnnotationLayer(history=UndoStack())
        >>> stroke_id = layer.add_stroke(Point(x=10, y=10))
        >>> layer.extend_stroke(stroke_id, Point(x=40, y=25))
        >>> layer.select(stroke_id)
        >>> layer.move_selected(5, 0)
    """

    def __init__(
        self,
        history: HistoryProtocol | None = None,
        min_element_size: float | None = None,
    ) -> None:
        """Initialize an empty layer.

        Args:
            history: Snapshot receiver called before each mutation.
            min_element_size: Smallest width/height a transform may leave
                an element with. Defaults to settings.MIN_ELEMENT_SIZE.
        """
        self._history = history
        self.min_element_size = (
            settings.MIN_ELEMENT_SIZE if min_element_size is None else min_element_size
        )
        self._elements: list[AnnotationElement] = []
        self._selected_id: str | None = None
        self._ids = itertools.count(1)

    def __len__(self) -> int:
        return len(self._elements)

    @property
    def elements(self) -> tuple[AnnotationElement, ...]:
        """Elements in z-order, bottom first."""
        return tuple(self._elements)

    @property
    def selected_id(self) -> str | None:
        """Id of the selected element, if any."""
        return self._selected_id

    @property
    def selected(self) -> AnnotationElement | None:
        """The selected element, if any."""
        if self._selected_id is None:
            return None
        return self.get(self._selected_id)

    def get(self, element_id: str) -> AnnotationElement:
        """Look up an element by id.

        Raises:
            ElementNotFoundError: If no element has this id.
        """
        return self._elements[self._index_of(element_id)]

    def snapshot(self) -> list[AnnotationElement]:
        """Deep copy of the current element sequence."""
        return [element.model_copy(deep=True) for element in self._elements]

    def checkpoint(self) -> None:
        """Record the current sequence in history ahead of a mutation."""
        if self._history is not None:
            self._history.push(self._elements)

    # --- Creation ---

    def add_stroke(
        self,
        start: Point,
        *,
        color: str | None = None,
        width: float | None = None,
    ) -> str:
        """Start a new stroke at start and return its id."""
        element = StrokeElement(
            id=self._next_id(),
            points=(start,),
            color=color or settings.DEFAULT_COLOR,
            width=width or settings.DEFAULT_THICKNESS,
        )
        self._append(element)
        return element.id

    def extend_stroke(self, element_id: str, point: Point) -> None:
        """Append a point to a stroke while the pointer is down.

        Not recorded in history: the stroke's snapshot was taken when it
        was created, so one undo removes the whole stroke.

        Raises:
            ElementNotFoundError: If element_id is unknown.
            TypeError: If the element is not a stroke.
        """
        index = self._index_of(element_id)
        element = self._elements[index]
        if not isinstance(element, StrokeElement):
            raise TypeError(f"Element {element_id} is a {element.kind}, not a stroke")
        self._elements[index] = element.extended(point)

    def add_text(
        self,
        position: Point,
        text: str | None,
        *,
        color: str | None = None,
        font_size: float | None = None,
        font_family: str | None = None,
    ) -> str | None:
        """Place a text label.

        Empty, whitespace-only or cancelled (None) text creates nothing.

        Returns:
            The new element id, or None if nothing was created.
        """
        if text is None or not text.strip():
            logger.debug("Text placement skipped: empty input")
            return None
        element = TextElement(
            id=self._next_id(),
            position=position,
            text=text,
            color=color or settings.DEFAULT_COLOR,
            font_size=font_size or settings.DEFAULT_THICKNESS * 4,
            font_family=font_family or settings.DEFAULT_FONT_FAMILY,
        )
        self._append(element)
        return element.id

    def add_icon(
        self,
        position: Point,
        kind: IconKind = IconKind.pin,
        *,
        color: str | None = None,
        size: float | None = None,
    ) -> str:
        """Place an icon marker and return its id."""
        element = IconElement(
            id=self._next_id(),
            position=position,
            icon_kind=kind,
            color=color or settings.DEFAULT_COLOR,
            size=size or settings.DEFAULT_THICKNESS * 5,
        )
        self._append(element)
        return element.id

    # --- Selection and transforms ---

    def select(self, element_id: str | None) -> None:
        """Select an element (replacing any previous selection) or clear it.

        Raises:
            ElementNotFoundError: If element_id is unknown.
        """
        if element_id is not None:
            self._index_of(element_id)
        self._selected_id = element_id

    def move_selected(self, dx: float, dy: float) -> bool:
        """Translate the selected element.

        Returns:
            False if nothing is selected.
        """
        element = self.selected
        if element is None:
            return False
        self.checkpoint()
        self._put(element.translated(dx, dy))
        return True

    def transform_selected(self, scale: float, rotation: float = 0) -> bool:
        """Scale and rotate the selected element about its centre.

        A transform that would leave the element smaller than
        min_element_size on either axis is ignored.

        Returns:
            True if the element changed.
        """
        element = self.selected
        if element is None or scale <= 0:
            return False
        candidate = element.transformed(scale, rotation)
        if not self.fits_minimum(candidate):
            logger.debug("Ignored transform of %s: below minimum size", element.id)
            return False
        self.checkpoint()
        self._put(candidate)
        return True

    def fits_minimum(self, element: AnnotationElement) -> bool:
        """True if the element's bounds meet the minimum size.

        Elements scaled down to a zero extent have no valid bounds and
        never fit.
        """
        try:
            bounds = element.bounds
        except ValidationError:
            return False
        return (
            bounds.width >= self.min_element_size
            and bounds.height >= self.min_element_size
        )

    def replace(self, element: AnnotationElement) -> None:
        """Swap in a new version of an existing element without recording.

        Used by drag gestures, which record once when the gesture starts.
        """
        self._put(element)

    def remove(self, element_id: str) -> None:
        """Delete an element, clearing the selection if it was selected.

        Raises:
            ElementNotFoundError: If element_id is unknown.
        """
        index = self._index_of(element_id)
        self.checkpoint()
        del self._elements[index]
        if self._selected_id == element_id:
            self._selected_id = None

    # --- Bulk operations ---

    def restore(self, elements: Sequence[AnnotationElement]) -> None:
        """Replace the whole sequence (undo). Not recorded in history."""
        self._elements = list(elements)
        if self._selected_id is not None and not any(
            e.id == self._selected_id for e in self._elements
        ):
            self._selected_id = None

    def translate_all(self, dx: float, dy: float) -> None:
        """Shift every element; used when a crop moves the origin."""
        self._elements = [element.translated(dx, dy) for element in self._elements]

    def element_at(self, point: Point) -> str | None:
        """Id of the topmost element whose bounds contain point."""
        for element in reversed(self._elements):
            if element.bounds.contains_point(point):
                return element.id
        return None

    def to_json(self) -> str:
        """Serialize the element sequence as a JSON array."""
        return ELEMENT_LIST_ADAPTER.dump_json(self._elements).decode("utf-8")

    @classmethod
    def from_json(
        cls,
        payload: str | bytes,
        history: HistoryProtocol | None = None,
    ) -> AnnotationLayer:
        """Rebuild a layer from to_json() output.

        New ids continue after the highest numeric id found.

        Raises:
            pydantic.ValidationError: If the payload is malformed.
        """
        layer = cls(history=history)
        layer._elements = ELEMENT_LIST_ADAPTER.validate_json(payload)
        highest = 0
        for element in layer._elements:
            match = _ID_PATTERN.match(element.id)
            if match:
                highest = max(highest, int(match.group(1)))
        layer._ids = itertools.count(highest + 1)
        return layer

    # --- Internals ---

    def _next_id(self) -> str:
        return f"{_ID_PREFIX}{next(self._ids)}"

    def _append(self, element: AnnotationElement) -> None:
        self.checkpoint()
        self._elements.append(element)
        logger.debug("Added %s element %s", element.kind, element.id)

    def _put(self, element: AnnotationElement) -> None:
        self._elements[self._index_of(element.id)] = element

    def _index_of(self, element_id: str) -> int:
        for index, element in enumerate(self._elements):
            if element.id == element_id:
                return index
        raise ElementNotFoundError(element_id)
