"""Editing session: orchestration, undo history, commands and export.

Public API:
    - EditSession: Owns the pipeline, crop engines and annotation layer.
    - Tool / BrushSettings: Active tool and toolbar settings.
    - UndoStack: Annotation snapshot history.
    - Command / COMMAND_LIST_ADAPTER: Replayable host commands.
    - ExportResult / ExportMode: Final raster output.
"""

from tripstudio.session.commands import COMMAND_LIST_ADAPTER, Command
from tripstudio.session.editor import BrushSettings, EditSession, Tool
from tripstudio.session.export import ExportMode, ExportResult, encode_png
from tripstudio.session.history import UndoStack

__all__ = [
    "COMMAND_LIST_ADAPTER",
    "BrushSettings",
    "Command",
    "EditSession",
    "ExportMode",
    "ExportResult",
    "Tool",
    "UndoStack",
    "encode_png",
]
