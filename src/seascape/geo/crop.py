#!/usr/bin/env python3
"""crop.py

Crop raster layers to the map bounding box and flatten them into
(x, y, value) samples, one per retained cell.

A cell is retained when its centre lies inside the (closed) bounding box
and its value is not missing. Missing cells (land, for sea-only layers)
are dropped, the same as a raster-to-points conversion does.

Rendering needs the grid back as a 2D array; grid_to_array() rebuilds it
from the named x/y/value fields.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Tuple

import numpy as np
import pandas as pd

from seascape.config import BBox, BoundingBox, format_bbox
from seascape.errors import ExportError, GeometryError
from seascape.extract.rasters import RasterLayer


@dataclass(frozen=True)
class CroppedGrid:
    """Flat samples of one layer inside a bounding box (north-to-south rows)."""

    name: str
    x: np.ndarray
    y: np.ndarray
    value: np.ndarray
    res: Tuple[float, float]
    bbox: BoundingBox
    # Outer edges of every in-box cell, missing ones included
    lattice: BBox

    def __len__(self) -> int:
        return int(self.value.size)

    @property
    def tile_extent(self) -> BBox:
        """Outer edges of the retained tiles."""
        dx, dy = self.res
        return (
            float(self.x.min()) - dx / 2,
            float(self.y.min()) - dy / 2,
            float(self.x.max()) + dx / 2,
            float(self.y.max()) + dy / 2,
        )

    @property
    def frame_extent(self) -> BBox:
        """Plot frame: cell lattice clipped to the bounding box, never padded.

        Edges holding only missing cells still count, so land along the
        border of the box stays in frame.
        """
        lxmin, lymin, lxmax, lymax = self.lattice
        b = self.bbox
        return (max(lxmin, b.xmin), max(lymin, b.ymin), min(lxmax, b.xmax), min(lymax, b.ymax))

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"x": self.x, "y": self.y, self.name: self.value})


def crop_layer(layer: RasterLayer, bbox: BoundingBox) -> CroppedGrid:
    """Restrict a layer to the cells whose centres fall in bbox.

    Raises GeometryError when the box misses the layer or keeps no
    non-missing cell.
    """
    t = layer.transform
    if t.b != 0 or t.d != 0:
        raise GeometryError(f"Layer '{layer.name}' has a rotated grid; cropping needs north-up rasters")

    if not bbox.intersects(layer.bounds):
        raise GeometryError(
            f"Bounding box {format_bbox(bbox.as_tuple())} does not intersect layer "
            f"'{layer.name}' extent {format_bbox(layer.bounds)}"
        )

    nrows, ncols = layer.shape
    xs = t.c + (np.arange(ncols) + 0.5) * t.a
    ys = t.f + (np.arange(nrows) + 0.5) * t.e
    col_mask = (xs >= bbox.xmin) & (xs <= bbox.xmax)
    row_mask = (ys >= bbox.ymin) & (ys <= bbox.ymax)

    if not (col_mask.any() and row_mask.any()):
        raise GeometryError(
            f"Bounding box {format_bbox(bbox.as_tuple())} retains no data cells of layer "
            f"'{layer.name}' (no cell centre inside)"
        )

    dx, dy = layer.res
    in_x, in_y = xs[col_mask], ys[row_mask]
    lattice = (
        float(in_x.min()) - dx / 2,
        float(in_y.min()) - dy / 2,
        float(in_x.max()) + dx / 2,
        float(in_y.max()) + dy / 2,
    )

    sub = layer.data[np.ix_(row_mask, col_mask)]
    grid_x, grid_y = np.meshgrid(in_x, in_y)
    keep = ~np.isnan(sub)
    if not keep.any():
        raise GeometryError(
            f"Bounding box {format_bbox(bbox.as_tuple())} retains no data cells of layer '{layer.name}'"
        )

    return CroppedGrid(
        name=layer.name,
        x=grid_x[keep],
        y=grid_y[keep],
        value=sub[keep],
        res=layer.res,
        bbox=bbox,
        lattice=lattice,
    )


def crop_layers(layers: Mapping[str, RasterLayer], bbox: BoundingBox) -> Dict[str, CroppedGrid]:
    grids: Dict[str, CroppedGrid] = {}
    for name, layer in layers.items():
        grids[name] = crop_layer(layer, bbox)
        print(f"[CROP] {name}: {len(grids[name])} cells in {format_bbox(bbox.as_tuple(), precision=2)}")
    return grids


def grid_to_array(grid: CroppedGrid) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Rebuild (x_edges, y_edges, values) for pcolormesh, south-up rows.

    Dropped cells come back as NaN.
    """
    dx, dy = grid.res
    x0, y0 = float(grid.x.min()), float(grid.y.min())
    nx = int(round((float(grid.x.max()) - x0) / dx)) + 1
    ny = int(round((float(grid.y.max()) - y0) / dy)) + 1

    cols = np.rint((grid.x - x0) / dx).astype(int)
    rows = np.rint((grid.y - y0) / dy).astype(int)
    values = np.full((ny, nx), np.nan)
    values[rows, cols] = grid.value

    x_edges = x0 - dx / 2 + np.arange(nx + 1) * dx
    y_edges = y0 - dy / 2 + np.arange(ny + 1) * dy
    return x_edges, y_edges, values


def write_grid_csv(grid: CroppedGrid, out_path: Path) -> Path:
    """Export the x, y, <name> table for one cropped layer."""
    text = grid.to_frame().to_csv(index=False, lineterminator="\n")
    out_path = Path(out_path)
    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        with out_path.open("w", encoding="utf-8", newline="") as f:
            f.write(text)
    except OSError as e:
        raise ExportError(f"Could not write cropped grid {out_path}: {e}") from e
    return out_path
