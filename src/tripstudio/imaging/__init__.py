"""Raster side of the editing engine: filters, crops and source images.

Public API:
    - SourceImage / open_source: Immutable decoded source rasters.
    - FilterState / FilterPipeline / FilterPreset: Working surface rendering.
    - PolygonCrop / RectCrop: Interactive crop engines.
    - PolygonRegion / RectRegion / CropRegion: Crop region models.
"""

from tripstudio.imaging.crop import (
    CropEngineProtocol,
    CropRegion,
    PolygonCrop,
    PolygonRegion,
    RectCrop,
    RectRegion,
    extract_region,
)
from tripstudio.imaging.filters import FilterPipeline, FilterPreset, FilterState
from tripstudio.imaging.surface import (
    SourceImage,
    fit_within,
    open_source,
    pick_color,
    scaled_size,
)

__all__ = [
    "CropEngineProtocol",
    "CropRegion",
    "FilterPipeline",
    "FilterPreset",
    "FilterState",
    "PolygonCrop",
    "PolygonRegion",
    "RectCrop",
    "RectRegion",
    "SourceImage",
    "extract_region",
    "fit_within",
    "open_source",
    "pick_color",
    "scaled_size",
]
