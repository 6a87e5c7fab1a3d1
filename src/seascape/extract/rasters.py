#!/usr/bin/env python3
"""rasters.py

Load named environmental raster layers (Bio-ORACLE style .asc grids, or any
GDAL-readable raster) into immutable in-memory layers.

Nodata cells become NaN so downstream extraction and cropping only ever
check for NaN.

Required deps: rasterio, numpy
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
import rasterio
from rasterio.errors import RasterioError
from rasterio.transform import Affine

from seascape.config import BBox, VariableSpec
from seascape.errors import LoadError


@dataclass(frozen=True)
class RasterLayer:
    """A named 2D grid of measurements. Treat as read-only once loaded."""

    name: str
    data: np.ndarray  # (rows, cols) float64, NaN = no data
    transform: Affine
    crs: Optional[str] = None
    path: Optional[Path] = None

    @property
    def shape(self) -> Tuple[int, int]:
        return self.data.shape  # type: ignore[return-value]

    @property
    def res(self) -> Tuple[float, float]:
        return (abs(self.transform.a), abs(self.transform.e))

    @property
    def bounds(self) -> BBox:
        rows, cols = self.data.shape
        x0, y0 = self.transform * (0, 0)
        x1, y1 = self.transform * (cols, rows)
        return (min(x0, x1), min(y0, y1), max(x0, x1), max(y0, y1))


def make_layer(
    name: str,
    data: np.ndarray,
    transform: Affine,
    *,
    crs: Optional[str] = None,
    path: Optional[Path] = None,
) -> RasterLayer:
    """Build a layer from an array, freezing a private copy of it."""
    arr = np.array(data, dtype="float64", copy=True)
    if arr.ndim != 2:
        raise LoadError(f"Layer {name} must be 2D, got shape {arr.shape}")
    arr.setflags(write=False)
    return RasterLayer(name=name, data=arr, transform=transform, crs=crs, path=path)


def load_raster(path: Path, name: str) -> RasterLayer:
    """Read band 1 of a raster file into a RasterLayer.

    Raises LoadError when the file is missing or GDAL can't read it.
    """
    path = Path(path)
    if not path.exists():
        raise LoadError(f"Raster for '{name}' not found: {path}")

    try:
        with rasterio.open(path) as src:
            band = src.read(1, masked=True)
            transform = src.transform
            crs = src.crs.to_string() if src.crs else None
    except RasterioError as e:
        raise LoadError(f"Could not read raster for '{name}' ({path}): {e}") from e

    # Masked cells (nodata sentinel) -> NaN
    data = np.ma.filled(band.astype("float64"), np.nan)
    return make_layer(name, data, transform, crs=crs, path=path)


def _alignment_key(layer: RasterLayer) -> Tuple[Tuple[int, int], Tuple[float, ...]]:
    return (layer.shape, tuple(round(v, 9) for v in tuple(layer.transform)[:6]))


def load_rasters(
    variables: Sequence[VariableSpec],
    *,
    require_aligned: bool = False,
) -> Dict[str, RasterLayer]:
    """Load every declared variable, keeping declaration order.

    Layers are assumed to share one grid. A mismatch is reported as a
    warning, or raised as LoadError when require_aligned is set.
    """
    layers: Dict[str, RasterLayer] = {}
    for var in variables:
        print(f"[RASTER] {var.name} <- {var.path}")
        layers[var.name] = load_raster(var.path, var.name)

    if len(layers) > 1:
        first = next(iter(layers.values()))
        ref = _alignment_key(first)
        for layer in layers.values():
            if _alignment_key(layer) == ref:
                continue
            msg = (
                f"Layer '{layer.name}' grid {layer.shape} @ {tuple(layer.transform)[:6]} "
                f"differs from '{first.name}' grid {first.shape} @ {tuple(first.transform)[:6]}"
            )
            if require_aligned:
                raise LoadError(msg)
            print(f"  - warning: {msg}")

    return layers
