"""Export results and PNG encoding.

The engine produces a buffer and nothing more; whether the host
overwrites the original asset ("save") or creates a new one ("save as")
only travels along as a tag on the result.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from enum import Enum
from io import BytesIO

from PIL import Image

from tripstudio.errors import ExportError


class ExportMode(str, Enum):
    """Where the host intends to store the export."""

    save = "save"
    save_as = "save_as"


@dataclass(frozen=True)
class ExportResult:
    """Final composited raster of an editing session.

    Attributes:
        image: RGBA image at the export pixel density.
        png_bytes: PNG encoding of image.
        elements_json: Serialized annotation elements, for hosts that
            persist them separately from the flattened raster.
        mode: Host-side destination hint, passed through untouched.
        pixel_ratio: Density multiplier the export was rendered at.
    """

    image: Image.Image
    png_bytes: bytes
    elements_json: str
    mode: ExportMode
    pixel_ratio: float

    @property
    def size(self) -> tuple[int, int]:
        """(width, height) of the exported raster."""
        return self.image.size

    @property
    def data_url(self) -> str:
        """The PNG as a base64 data URL."""
        encoded = base64.b64encode(self.png_bytes).decode("ascii")
        return f"data:image/png;base64,{encoded}"


def encode_png(image: Image.Image) -> bytes:
    """Encode an image as PNG.

    Raises:
        ExportError: If Pillow cannot encode the image.
    """
    buffer = BytesIO()
    try:
        image.save(buffer, format="PNG")
    except (OSError, ValueError) as e:
        raise ExportError(f"PNG encoding failed: {e}", size=image.size) from e
    return buffer.getvalue()
