"""tripstudio CLI - headless image editing.

Command-line interface for applying filters, crops and annotation
overlays to an image and exporting the result as PNG.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError

from tripstudio import __version__
from tripstudio.annotations import ELEMENT_LIST_ADAPTER
from tripstudio.errors import StudioError
from tripstudio.geometry import Point, Rect, ShapeValidator, Size
from tripstudio.imaging import FilterPipeline, FilterPreset, FilterState, open_source
from tripstudio.session import EditSession, ExportMode, Tool
from tripstudio.utils.logging import configure_logging, get_logger

app = typer.Typer(
    name="tripstudio",
    help="tripstudio: headless photo editing for trip assets",
    add_completion=False,
)


# =============================================================================
# Commands
# =============================================================================


@app.command()
def version(
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show version information."""
    if json_output:
        typer.echo(json.dumps({"version": __version__}))
    else:
        typer.echo(f"tripstudio {__version__}")


@app.command()
def edit(  # noqa: PLR0913
    source: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            help="Image to edit (any format Pillow can decode)",
        ),
    ],
    output: Annotated[Path, typer.Argument(help="Destination PNG path")],
    brightness: Annotated[
        float, typer.Option("--brightness", "-b", min=0, max=200, help="Brightness percent")
    ] = 100,
    contrast: Annotated[
        float, typer.Option("--contrast", "-c", min=0, max=200, help="Contrast percent")
    ] = 100,
    hue: Annotated[
        float, typer.Option("--hue", help="Hue rotation in degrees, from 0 up to 360")
    ] = 0,
    opacity: Annotated[
        float, typer.Option("--opacity", min=0, max=100, help="Opacity percent")
    ] = 100,
    rotate: Annotated[
        int, typer.Option("--rotate", "-r", help="Clockwise rotation: 0, 90, 180 or 270")
    ] = 0,
    flip_h: Annotated[bool, typer.Option("--flip-h", help="Flip horizontally")] = False,
    flip_v: Annotated[bool, typer.Option("--flip-v", help="Flip vertically")] = False,
    remove_background: Annotated[
        bool, typer.Option("--remove-background", help="Make near-white pixels transparent")
    ] = False,
    preset: Annotated[
        FilterPreset | None,
        typer.Option("--preset", "-p", help="Brightness/contrast preset"),
    ] = None,
    crop: Annotated[
        str | None,
        typer.Option("--crop", help="Crop rectangle as x,y,width,height in surface pixels"),
    ] = None,
    elements: Annotated[
        Path | None,
        typer.Option(
            "--elements",
            "-e",
            exists=True,
            dir_okay=False,
            help="JSON array of annotation elements to overlay",
        ),
    ] = None,
    pixel_ratio: Annotated[
        float | None,
        typer.Option("--pixel-ratio", min=0.1, help="Export density multiplier"),
    ] = None,
    max_size: Annotated[
        int | None,
        typer.Option("--max-size", min=1, help="Working surface bound in pixels"),
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity (-v, -vv)"
        ),
    ] = 0,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Apply filters, an optional crop and annotations, then export a PNG."""
    _configure_logging(verbose)
    logger = get_logger(__name__)

    try:
        pipeline = None
        if max_size is not None:
            pipeline = FilterPipeline(max_surface=Size(width=max_size, height=max_size))
        session = EditSession(pipeline=pipeline)
        session.load_source(source)
        logger.info("Editing", source=str(source), session_id=session.session_id)

        if preset is not None:
            session.apply_preset(preset)
        defaults = FilterState()
        for field, value in (
            ("brightness", brightness),
            ("contrast", contrast),
            ("hue_shift", hue),
            ("opacity", opacity),
            ("rotation", rotate),
            ("flip_h", flip_h),
            ("flip_v", flip_v),
            ("background_removal", remove_background),
        ):
            if value != getattr(defaults, field):
                session.set_filter(field, value)

        if elements is not None:
            session.layer.restore(ELEMENT_LIST_ADAPTER.validate_json(elements.read_bytes()))

        if crop is not None:
            _apply_crop(session, _parse_crop(crop))

        result = session.export(pixel_ratio=pixel_ratio, mode=ExportMode.save_as)
        output.write_bytes(result.png_bytes)
        logger.info("Export saved", path=str(output), size=result.size)

        if json_output:
            width, height = result.size
            typer.echo(
                json.dumps(
                    {
                        "output": str(output),
                        "width": width,
                        "height": height,
                        "pixel_ratio": result.pixel_ratio,
                        "elements": len(session.elements),
                        "filters": session.filter_state.model_dump(),
                    },
                    indent=2,
                )
            )
        else:
            width, height = result.size
            typer.echo(f"Saved {output} ({width}x{height})")

    except (StudioError, ValidationError, ValueError) as e:
        logger.exception("Edit failed")
        if json_output:
            typer.echo(json.dumps({"error": str(e)}))
        else:
            typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


@app.command()
def inspect(
    source: Annotated[
        Path,
        typer.Argument(exists=True, file_okay=True, dir_okay=False, readable=True),
    ],
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show source dimensions and the working surface size."""
    try:
        decoded = open_source(source)
    except StudioError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    session = EditSession()
    session.attach_source(decoded)
    surface = session.surface_size
    assert surface is not None
    info = {
        "path": str(source),
        "width": decoded.width,
        "height": decoded.height,
        "surface_width": surface.width,
        "surface_height": surface.height,
    }
    if json_output:
        typer.echo(json.dumps(info, indent=2))
    else:
        typer.echo(f"{source.name}: {decoded.width}x{decoded.height}")
        typer.echo(f"Working surface: {surface.width}x{surface.height}")


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """tripstudio: headless photo editing for trip assets."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


def _configure_logging(verbose: int) -> None:
    """Configure logging based on verbosity level."""
    if verbose == 0:
        level = "WARNING"
    elif verbose == 1:
        level = "INFO"
    else:  # verbose >= 2
        level = "DEBUG"

    configure_logging(level=level)


def _parse_crop(value: str) -> Rect:
    """Parse "x,y,width,height" into a Rect.

    Raises:
        ValueError: If the value is not four comma-separated numbers.
    """
    parts = [part.strip() for part in value.split(",")]
    if len(parts) != 4:
        raise ValueError(f"--crop expects x,y,width,height, got {value!r}")
    return Rect.from_tuple(tuple(float(part) for part in parts))


def _apply_crop(session: EditSession, rect: Rect) -> None:
    """Drive the rect crop tool's corner handles to rect.

    Raises:
        BoundsError: If rect extends past the working surface.
    """
    size = session.surface_size
    assert size is not None
    ShapeValidator().validate(rect, size)

    session.set_tool(Tool.crop_rect)
    crop = session.crop
    assert crop is not None

    # Bottom-right out to the surface edge first so the top-left drag cannot
    # cross it, then both corners to their targets.
    crop.update_handle(8, Point(x=size.width, y=size.height))
    crop.update_handle(0, Point(x=rect.x, y=rect.y))
    region = crop.update_handle(8, Point(x=rect.right, y=rect.bottom))
    if region.rect.to_box() != rect.to_box():
        raise ValueError(f"Crop {rect.to_tuple()} is below the minimum crop size")


if __name__ == "__main__":  # pragma: no cover
    app()
