#!/usr/bin/env python3
"""heatmap.py

Render one cropped layer as a tile heatmap with the landmass overlay.

A HeatmapPlot is the plot object: it holds everything needed to draw the
map onto any Axes, so composites can redraw the same plots in a grid
instead of pasting finished images together.

Drawing rules:
- Tiles are drawn at their cell edges, coloured by the variable's scale.
- Land is drawn filled on top, so it hides sea-only values underneath.
- "Quick map" aspect: 1 / cos(mid-latitude), degrees render proportionally.
- The frame is the tile extent clipped to the bbox. No padding.

Required deps: matplotlib, numpy
"""

from __future__ import annotations

import io
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from matplotlib.axes import Axes
from matplotlib.collections import PatchCollection, QuadMesh
from matplotlib.colorbar import Colorbar
from matplotlib.colors import Normalize
from matplotlib.figure import Figure
from matplotlib.patches import PathPatch
from matplotlib.path import Path as MplPath

from seascape.config import BBox, ColorScale, FigureSize, VariableSpec
from seascape.errors import RenderError
from seascape.geo.basemap import BasemapPolygons
from seascape.geo.crop import CroppedGrid, grid_to_array
from seascape.plot.theme import (
    LAND_COLOR,
    LEGEND_TEXT_SIZE,
    LEGEND_TITLE_SIZE,
    apply_theme,
    make_cmap,
    make_norm,
)


@dataclass(frozen=True)
class HeatmapPlot:
    grid: CroppedGrid
    basemap: BasemapPolygons
    scale: ColorScale
    title: str
    xlabel: str = "Longitude"
    ylabel: str = "Latitude"


def make_heatmap_plot(
    var: VariableSpec,
    grid: CroppedGrid,
    basemap: BasemapPolygons,
    scale: ColorScale,
) -> HeatmapPlot:
    if grid.name != var.name:
        # each variable is drawn from its own cropped grid
        raise RenderError(f"Grid '{grid.name}' passed for variable '{var.name}'")
    return HeatmapPlot(grid=grid, basemap=basemap, scale=scale, title=var.title)


def quickmap_aspect(extent: BBox) -> float:
    mid_lat = (extent[1] + extent[3]) / 2.0
    return 1.0 / math.cos(math.radians(mid_lat))


def land_collection(basemap: BasemapPolygons) -> PatchCollection:
    """One filled patch per landmass piece; hole rings cut out of it."""
    patches = []
    for rings in basemap.groups().values():
        path = MplPath.make_compound_path(*[MplPath(r.coords, closed=True) for r in rings])
        patches.append(PathPatch(path))
    return PatchCollection(patches, facecolor=LAND_COLOR, edgecolor="none", zorder=3)


def draw_heatmap(ax: Axes, plot: HeatmapPlot, norm: Optional[Normalize] = None) -> QuadMesh:
    """Draw tiles + land onto ax and return the tile mappable."""
    if plot.grid.bbox != plot.basemap.bbox:
        raise RenderError(
            f"Grid '{plot.grid.name}' and basemap were cropped to different bounding boxes"
        )

    x_edges, y_edges, values = grid_to_array(plot.grid)
    if norm is None:
        norm = make_norm(plot.scale, [plot.grid.value])

    mesh = ax.pcolormesh(
        x_edges,
        y_edges,
        np.ma.masked_invalid(values),
        cmap=make_cmap(plot.scale),
        norm=norm,
        shading="flat",
        zorder=1,
    )
    if len(plot.basemap):
        ax.add_collection(land_collection(plot.basemap))

    xmin, ymin, xmax, ymax = plot.grid.frame_extent
    ax.set_xlim(xmin, xmax)
    ax.set_ylim(ymin, ymax)
    ax.set_aspect(quickmap_aspect((xmin, ymin, xmax, ymax)), adjustable="box")

    ax.set_xlabel(plot.xlabel)
    ax.set_ylabel(plot.ylabel)
    ax.set_title(plot.title)
    apply_theme(ax)
    return mesh


def add_legend(fig: Figure, mesh: QuadMesh, axes: Sequence[Axes], scale: ColorScale) -> Colorbar:
    """Right-hand colorbar titled with the scale's units label."""
    cb = fig.colorbar(mesh, ax=list(axes), location="right")
    cb.ax.set_title(scale.label, fontsize=LEGEND_TITLE_SIZE, pad=8)
    cb.ax.tick_params(labelsize=LEGEND_TEXT_SIZE)
    return cb


def new_figure(size: FigureSize) -> Figure:
    # Plain Figure, not pyplot: no global figure registry to leak into
    return Figure(figsize=(size.width, size.height), dpi=size.dpi, layout="constrained")


def _metadata_for(fmt: str) -> Optional[Dict[str, Any]]:
    """Drop timestamps/versions so identical inputs give identical files."""
    return {
        "png": {"Software": None},
        "pdf": {"CreationDate": None, "Producer": None},
        "svg": {"Date": None},
    }.get(fmt)


def save_figure(fig: Figure, out_path: Path, dpi: int) -> Path:
    """Render the figure fully in memory, then write it in one go."""
    out_path = Path(out_path)
    fmt = out_path.suffix.lstrip(".").lower() or "png"
    buf = io.BytesIO()
    try:
        fig.savefig(buf, format=fmt, dpi=dpi, metadata=_metadata_for(fmt))
    except (ValueError, RuntimeError) as e:
        raise RenderError(f"Could not render {out_path.name}: {e}") from e

    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        with out_path.open("wb") as f:
            f.write(buf.getvalue())
    except OSError as e:
        raise RenderError(f"Could not write image {out_path}: {e}") from e
    return out_path


def build_heatmap(plot: HeatmapPlot, size: FigureSize) -> Figure:
    fig = new_figure(size)
    ax = fig.add_subplot()
    mesh = draw_heatmap(ax, plot)
    add_legend(fig, mesh, [ax], plot.scale)
    return fig


def render_heatmap(plot: HeatmapPlot, out_path: Path, size: FigureSize) -> Path:
    """Draw one heatmap and write it to out_path."""
    fig = build_heatmap(plot, size)
    save_figure(fig, out_path, size.dpi)
    print(f"[PLOT] {plot.grid.name} -> {out_path}")
    return out_path


def render_heatmaps(
    plots: Dict[str, HeatmapPlot],
    variables: Sequence[VariableSpec],
    figure_dir: Path,
    size: FigureSize,
    *,
    overwrite: bool = True,
    dry_run: bool = False,
) -> List[Path]:
    """Render every variable's heatmap into figure_dir, declaration order."""
    written: List[Path] = []
    for var in variables:
        out_path = Path(figure_dir) / var.figure
        if out_path.exists() and not overwrite:
            print(f"[SKIP] {out_path.name}")
            continue
        if dry_run:
            print(f"[DRY-RUN] Would render {var.name} -> {out_path}")
            continue
        written.append(render_heatmap(plots[var.name], out_path, size))
    return written
