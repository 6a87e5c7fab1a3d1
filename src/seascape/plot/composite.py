#!/usr/bin/env python3
"""composite.py

Arrange several heatmap plot objects into one figure.

Layout rules:
- Rows come from the config; panels read left-to-right, top-to-bottom in
  the order given, tagged A, B, C, ...
- When every panel uses the same ColorScale the figure gets one legend
  and one normalization. Otherwise a row whose panels share a ColorScale
  gets one legend for the row, and the remaining panels keep their own.
- Per-panel axis titles are dropped in favour of one "Longitude" label
  along the bottom and one "Latitude" label down the left side.
"""

from __future__ import annotations

import string
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

from matplotlib.colorbar import Colorbar
from matplotlib.figure import Figure

from seascape.config import CompositeSpec, FigureSize
from seascape.errors import RenderError
from seascape.plot.heatmap import HeatmapPlot, add_legend, draw_heatmap, new_figure, save_figure
from seascape.plot.theme import AXIS_TITLE_SIZE, TAG_SIZE, make_norm


def panel_tag(i: int) -> str:
    """A..Z, then AA, AB, ..."""
    letters = string.ascii_uppercase
    tag = ""
    i += 1
    while i:
        i, rem = divmod(i - 1, 26)
        tag = letters[rem] + tag
    return tag


def build_composite(
    rows: Sequence[Sequence[HeatmapPlot]],
    size: FigureSize,
    *,
    xlabel: str = "Longitude",
    ylabel: str = "Latitude",
) -> Tuple[Figure, List[Colorbar]]:
    """Lay the plots out in a grid; returns the figure and its legends."""
    if not rows or any(len(row) == 0 for row in rows):
        raise RenderError("Composite rows must each hold at least one plot")
    n_panels = sum(len(row) for row in rows)
    if n_panels < 2:
        raise RenderError("A composite needs at least two plots")

    ncols = max(len(row) for row in rows)
    fig = new_figure(size)
    axes = fig.subplots(len(rows), ncols, squeeze=False)
    for r, row in enumerate(rows):
        for c in range(len(row), ncols):
            fig.delaxes(axes[r][c])

    plots = [p for row in rows for p in row]
    one_scale = all(p.scale == plots[0].scale for p in plots)
    if one_scale:
        # a single legend spans the whole figure
        groups = [[(r, c) for r, row in enumerate(rows) for c in range(len(row))]]
    else:
        groups = []
        for r, row in enumerate(rows):
            if all(p.scale == row[0].scale for p in row):
                groups.append([(r, c) for c in range(len(row))])
            else:
                groups.extend([(r, c)] for c in range(len(row)))

    colorbars: List[Colorbar] = []
    for cells in groups:
        members = [rows[r][c] for r, c in cells]
        norm = make_norm(members[0].scale, [p.grid.value for p in members]) if len(members) > 1 else None
        meshes = [draw_heatmap(axes[r][c], rows[r][c], norm=norm) for r, c in cells]
        colorbars.append(add_legend(fig, meshes[0], [axes[r][c] for r, c in cells], members[0].scale))

    k = 0
    for r, row in enumerate(rows):
        for c in range(len(row)):
            ax = axes[r][c]
            ax.set_xlabel("")
            ax.set_ylabel("")
            ax.set_title(panel_tag(k), loc="left", fontsize=TAG_SIZE, fontweight="bold")
            k += 1

    fig.supxlabel(xlabel, fontsize=AXIS_TITLE_SIZE)
    fig.supylabel(ylabel, fontsize=AXIS_TITLE_SIZE)
    return fig, colorbars


def render_composite(
    rows: Sequence[Sequence[HeatmapPlot]],
    out_path: Path,
    size: FigureSize,
) -> Path:
    fig, _ = build_composite(rows, size)
    save_figure(fig, out_path, size.dpi)
    print(f"[PLOT] composite ({sum(len(r) for r in rows)} panels) -> {out_path}")
    return out_path


def render_composites(
    plots: Dict[str, HeatmapPlot],
    composites: Sequence[CompositeSpec],
    figure_dir: Path,
    *,
    overwrite: bool = True,
    dry_run: bool = False,
) -> List[Path]:
    """Render each configured composite from the already-built plot objects."""
    written: List[Path] = []
    for spec in composites:
        out_path = Path(figure_dir) / spec.name
        if out_path.exists() and not overwrite:
            print(f"[SKIP] {out_path.name}")
            continue
        if dry_run:
            print(f"[DRY-RUN] Would render composite {spec.name}: {[list(r) for r in spec.rows]}")
            continue
        rows = [[plots[name] for name in row] for row in spec.rows]
        written.append(render_composite(rows, out_path, spec.size))
    return written
