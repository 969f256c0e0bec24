"""Exceptions raised by the editing engine.

Shape errors are recovered locally by the crop and transform code paths;
decode and export errors are terminal for the current operation and must
reach the host.
"""

from __future__ import annotations

from typing import Any


class StudioError(Exception):
    """Base exception for all editing engine errors."""

    def __init__(self, message: str, **context: Any) -> None:
        """Initialize the error with optional key/value context.

        Args:
            message: Human-readable error description.
            **context: Extra details included in the formatted message.
        """
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} ({details})"


class SourceNotReadyError(StudioError):
    """Raised when an editing operation runs before the source is decoded."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__("Source image is not ready", operation=operation)


class SourceDecodeError(StudioError):
    """Raised when a source image cannot be decoded.

    This error is raised when:
    - The file does not exist or cannot be read
    - The bytes are not a format Pillow recognizes
    - The image is truncated or corrupted
    """

    pass


class DegenerateShapeError(StudioError):
    """Raised when a shape update would collapse below its minimum size.

    Drag handlers catch this and keep the last valid shape.
    """

    def __init__(
        self,
        message: str,
        *,
        width: float,
        height: float,
        minimum: float,
    ) -> None:
        self.width = width
        self.height = height
        self.minimum = minimum
        super().__init__(message, width=width, height=height, minimum=minimum)


class CropError(StudioError):
    """Raised when a crop operation is used outside of an active crop."""

    pass


class ElementNotFoundError(StudioError):
    """Raised when an annotation id does not exist in the layer."""

    def __init__(self, element_id: str) -> None:
        self.element_id = element_id
        super().__init__("Annotation element not found", element_id=element_id)


class ExportError(StudioError):
    """Raised when the composited raster cannot be produced or encoded."""

    pass
