#!/usr/bin/env python3
"""sites.py

Load the sampling-site table (site id, longitude, latitude).

Row order of the CSV is kept: the covariate table is joined back to the
genetic data by position downstream.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

import pandas as pd

from seascape.config import BoundingBox
from seascape.errors import LoadError


@dataclass(frozen=True)
class SamplePoint:
    site: str
    lon: float
    lat: float


def load_sites(
    path: Path,
    *,
    id_column: str = "Site",
    lon_column: str = "Lon",
    lat_column: str = "Lat",
    sep: str = ",",
) -> List[SamplePoint]:
    """Read sample points from a delimited table.

    Raises LoadError on a missing file, missing columns, non-numeric
    coordinates or duplicate site ids.
    """
    path = Path(path)
    if not path.exists():
        raise LoadError(f"Site table not found: {path}")

    try:
        df = pd.read_csv(path, sep=sep)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise LoadError(f"Could not parse site table {path}: {e}") from e

    required = [id_column, lon_column, lat_column]
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise LoadError(
            f"Site table {path} is missing required column(s) {missing}. "
            f"Available columns: {list(df.columns)}"
        )

    coords = df[[lon_column, lat_column]].apply(pd.to_numeric, errors="coerce")
    bad = coords.isna().any(axis=1)
    if bad.any():
        rows = [int(i) + 2 for i in df.index[bad][:10]]  # +2: header line, 1-based
        raise LoadError(f"Non-numeric or empty coordinates in {path} at line(s) {rows}")

    ids = df[id_column].astype(str).str.strip()
    dupes = sorted(set(ids[ids.duplicated()]))
    if dupes:
        raise LoadError(f"Duplicate site id(s) in {path}: {dupes[:10]}")

    return [
        SamplePoint(site=s, lon=float(lon), lat=float(lat))
        for s, lon, lat in zip(ids, coords[lon_column], coords[lat_column])
    ]


def site_extent(points: Sequence[SamplePoint]) -> Optional[BoundingBox]:
    """Extent of the sample sites; None for fewer than two distinct corners."""
    if not points:
        return None
    xs = [p.lon for p in points]
    ys = [p.lat for p in points]
    if min(xs) == max(xs) or min(ys) == max(ys):
        return None
    return BoundingBox(min(xs), min(ys), max(xs), max(ys))


def sites_outside(points: Sequence[SamplePoint], bbox: BoundingBox) -> List[SamplePoint]:
    """Sites that the crop box would leave off the maps."""
    return [p for p in points if not bbox.contains(p.lon, p.lat)]
