"""CLI module for tripstudio.

Provides headless editing (filters, crop, annotation overlay, export)
and source inspection from the command line.
"""

from __future__ import annotations

from tripstudio.cli.main import app

__all__ = ["app"]
