"""Snapshot-based undo history for the annotation layer."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from tripstudio.annotations import AnnotationElement

logger = logging.getLogger(__name__)


class UndoStack:
    """Stack of element-sequence snapshots.

    A snapshot is pushed *before* each mutation, so popping returns the
    state just prior to the most recent change. There is no redo.
    """

    def __init__(self) -> None:
        self._snapshots: list[list[AnnotationElement]] = []

    def __len__(self) -> int:
        return len(self._snapshots)

    @property
    def can_undo(self) -> bool:
        """True if there is at least one snapshot to restore."""
        return bool(self._snapshots)

    def push(self, elements: Sequence[AnnotationElement]) -> None:
        """Deep-copy and push an element sequence."""
        self._snapshots.append([element.model_copy(deep=True) for element in elements])

    def undo(self) -> list[AnnotationElement] | None:
        """Pop the most recent snapshot.

        Returns:
            The previous element sequence, or None when the stack is empty.
        """
        if not self._snapshots:
            logger.debug("Undo requested with empty history")
            return None
        return self._snapshots.pop()

    def peek(self) -> list[AnnotationElement] | None:
        """Copy of the snapshot the next undo would restore."""
        if not self._snapshots:
            return None
        return [element.model_copy(deep=True) for element in self._snapshots[-1]]

    def rebase(self, fn: Callable[[AnnotationElement], AnnotationElement]) -> None:
        """Rewrite every element of every snapshot.

        Used when a crop moves the coordinate origin, so restored states
        line up with the new source image.
        """
        self._snapshots = [[fn(element) for element in snap] for snap in self._snapshots]

    def clear(self) -> None:
        """Drop all snapshots."""
        self._snapshots.clear()
