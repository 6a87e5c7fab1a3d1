#!/usr/bin/env python3
"""extract_points.py

Sample every environmental layer at every site and export the covariate
table (one row per site, one column per variable).

This module exposes:
1. sample_layer() / extract_points() - nearest-cell extraction
2. records_to_frame() / export_table() - the table step
3. extract_sites() - load + extract + export, called by the CLIs

Extraction semantics:
- Nearest-cell: the value of the cell that contains the point, no
  interpolation.
- A point outside a layer (or on a nodata cell) gets NaN for that layer;
  the row is still emitted.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

import pandas as pd

from seascape.config import PipelineConfig
from seascape.errors import ExportError
from seascape.extract.rasters import RasterLayer, load_rasters
from seascape.extract.sites import SamplePoint, load_sites, site_extent, sites_outside


@dataclass(frozen=True)
class ExtractedRecord:
    site: str
    values: Dict[str, float] = field(default_factory=dict)


def sample_layer(layer: RasterLayer, lon: float, lat: float) -> float:
    """Value of the cell covering (lon, lat), NaN when uncovered."""
    col_f, row_f = ~layer.transform * (lon, lat)
    if not (math.isfinite(col_f) and math.isfinite(row_f)):
        return math.nan
    row, col = math.floor(row_f), math.floor(col_f)
    nrows, ncols = layer.shape
    if not (0 <= row < nrows and 0 <= col < ncols):
        return math.nan
    return float(layer.data[row, col])


def extract_points(
    points: Sequence[SamplePoint],
    layers: Mapping[str, RasterLayer],
) -> List[ExtractedRecord]:
    """One record per point, in input order, one value per layer."""
    records = []
    for p in points:
        values = {name: sample_layer(layer, p.lon, p.lat) for name, layer in layers.items()}
        records.append(ExtractedRecord(site=p.site, values=values))
    return records


def records_to_frame(records: Sequence[ExtractedRecord], variables: Sequence[str]) -> pd.DataFrame:
    """Row-per-site frame with columns site, <variables...> (declaration order)."""
    rows = [{"site": r.site, **{v: r.values.get(v, math.nan) for v in variables}} for r in records]
    return pd.DataFrame(rows, columns=["site", *variables])


def export_table(
    records: Sequence[ExtractedRecord],
    variables: Sequence[str],
    out_path: Path,
) -> Path:
    """Write the covariate table as CSV, replacing any existing file.

    The full text is rendered in memory first so a failed step never leaves
    a half-written table behind.
    """
    df = records_to_frame(records, variables)
    text = df.to_csv(index=False, na_rep="NA", lineterminator="\n")

    out_path = Path(out_path)
    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        with out_path.open("w", encoding="utf-8", newline="") as f:
            f.write(text)
    except OSError as e:
        raise ExportError(f"Could not write table {out_path}: {e}") from e
    return out_path


# -----------------------------------------------------------------------------
# Core function (called by seascape.extract / seascape run)
# -----------------------------------------------------------------------------

def extract_sites(
    cfg: PipelineConfig,
    *,
    out_path: Optional[Path] = None,
    layers: Optional[Mapping[str, RasterLayer]] = None,
    dry_run: bool = False,
) -> List[ExtractedRecord]:
    """Load sites (and layers unless given), extract, export the table.

    Returns the extracted records (empty on dry-run).
    """
    out_path = Path(out_path) if out_path else cfg.output.table
    names = [v.name for v in cfg.variables]

    if dry_run:
        print("[DRY-RUN] Would extract covariates:")
        print(f"  Sites: {cfg.sites.path}")
        for v in cfg.variables:
            print(f"  {v.name}: {v.path}")
        print(f"  Output table: {out_path}")
        return []

    points = load_sites(
        cfg.sites.path,
        id_column=cfg.sites.id_column,
        lon_column=cfg.sites.lon_column,
        lat_column=cfg.sites.lat_column,
    )
    print(f"[EXTRACT] {len(points)} sites from {cfg.sites.path}")

    extent = site_extent(points)
    if extent is not None:
        print(f"  - site extent: [{extent.xmin}, {extent.ymin}, {extent.xmax}, {extent.ymax}]")
    outside = sites_outside(points, cfg.bounds)
    if outside:
        print(f"  - warning: {len(outside)} site(s) fall outside the map bounds: "
              f"{[p.site for p in outside][:10]}")

    if layers is None:
        layers = load_rasters(cfg.variables, require_aligned=cfg.require_aligned_grids)

    records = extract_points(points, {n: layers[n] for n in names})

    for name in names:
        n_missing = sum(1 for r in records if math.isnan(r.values[name]))
        if n_missing:
            print(f"  - warning: {name} missing at {n_missing}/{len(records)} site(s)")

    export_table(records, names, out_path)
    print(f"[EXTRACT] Wrote {len(records)} rows x {len(names)} variables -> {out_path}")
    return records
