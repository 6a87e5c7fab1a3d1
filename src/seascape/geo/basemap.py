#!/usr/bin/env python3
"""basemap.py

Landmass polygons for the heatmaps, cropped to the map bounding box.

This handler:
- Renders the Natural Earth land ZIP URL from the pipeline config
  (resolution tier: 10m, 50m or 110m)
- Downloads it once to the basemap cache dir
- Respects --dry-run and --overwrite
- Reads it with geopandas, clips to the bbox and flattens it into rings
  grouped per landmass piece (exterior ring + its holes share a group)

Called by:
  python -m seascape.geo fetch-basemap
  python -m seascape.plot heatmaps (via load_basemap)
"""

from __future__ import annotations

import urllib.error
import urllib.request
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import geopandas as gpd
import numpy as np
from shapely.geometry import box
from shapely.geometry.polygon import orient

from seascape.config import BasemapSpec, BoundingBox
from seascape.errors import LoadError


RESOLUTIONS = ("10m", "50m", "110m")


@dataclass(frozen=True)
class Ring:
    group: str
    coords: np.ndarray  # (N, 2) lon/lat, closed
    hole: bool = False


@dataclass(frozen=True)
class BasemapPolygons:
    bbox: BoundingBox
    rings: List[Ring] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rings)

    def groups(self) -> Dict[str, List[Ring]]:
        """Rings by group, in first-seen order."""
        out: Dict[str, List[Ring]] = {}
        for r in self.rings:
            out.setdefault(r.group, []).append(r)
        return out


def _render_url(template: str, context: Dict[str, Any]) -> str:
    """Render URL template with context dict."""
    try:
        return template.format(**context)
    except KeyError as e:
        raise KeyError(f"Missing key for basemap url_template: {e.args[0]}") from e


def _ensure_dir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def basemap_url(spec: BasemapSpec) -> str:
    if spec.resolution not in RESOLUTIONS:
        raise LoadError(f"Unknown basemap resolution '{spec.resolution}'. Use one of {RESOLUTIONS}")
    return _render_url(spec.url_template, {"resolution": spec.resolution})


def basemap_cache_path(spec: BasemapSpec) -> Path:
    return spec.cache_dir / Path(basemap_url(spec)).name


def fetch_basemap(spec: BasemapSpec, *, overwrite: bool = False, dry_run: bool = False) -> Path:
    """Download the basemap ZIP into the cache dir (skipped when cached)."""
    url = basemap_url(spec)
    zip_path = basemap_cache_path(spec)

    if zip_path.exists() and not overwrite:
        print(f"[SKIP] Basemap already cached: {zip_path}")
        return zip_path

    print(f"[BASEMAP] URL: {url}")
    print(f"[BASEMAP] ZIP: {zip_path}")

    if dry_run:
        print("[DRY-RUN] No download performed")
        return zip_path

    _ensure_dir(zip_path.parent)
    tmp_path = zip_path.with_suffix(zip_path.suffix + ".part")
    try:
        print("[BASEMAP] Downloading...")
        urllib.request.urlretrieve(url, tmp_path)
    except (urllib.error.URLError, OSError) as e:
        tmp_path.unlink(missing_ok=True)
        raise LoadError(f"Failed to download basemap from {url}: {e}") from e
    tmp_path.replace(zip_path)
    print("[BASEMAP] Download complete")
    return zip_path


def basemap_from_frame(gdf: gpd.GeoDataFrame, bbox: BoundingBox) -> BasemapPolygons:
    """Clip land polygons to bbox and flatten them into grouped rings."""
    if gdf.crs is not None and gdf.crs.to_epsg() != 4326:
        gdf = gdf.to_crs("EPSG:4326")

    clipped = gpd.clip(gdf, box(*bbox.as_tuple()))
    clipped = clipped[clipped.geometry.notna() & ~clipped.geometry.is_empty]

    rings: List[Ring] = []
    parts = clipped.geometry.explode(index_parts=True)
    for (fid, part), geom in parts.items():
        # clip can leave slivers as lines/points along the box edge
        if geom is None or geom.geom_type != "Polygon" or geom.is_empty:
            continue
        # CCW shells, CW holes: holes stay open under nonzero filling
        geom = orient(geom, sign=1.0)
        group = f"{fid}.{part}"
        rings.append(Ring(group=group, coords=np.asarray(geom.exterior.coords)))
        for interior in geom.interiors:
            rings.append(Ring(group=group, coords=np.asarray(interior.coords), hole=True))

    return BasemapPolygons(bbox=bbox, rings=rings)


def load_basemap(
    spec: BasemapSpec,
    bbox: BoundingBox,
    *,
    overwrite: bool = False,
) -> BasemapPolygons:
    """Fetch (if needed), read and crop the basemap.

    Reads the local cache; when the download fails and nothing is cached,
    geopandas reads the remote URL directly.
    """
    source: Any
    try:
        source = fetch_basemap(spec, overwrite=overwrite)
    except LoadError as e:
        cached = basemap_cache_path(spec)
        source = cached if cached.exists() else basemap_url(spec)
        print(f"  - warning: {e}")
        print(f"[BASEMAP] Reading {source} instead")

    try:
        gdf = gpd.read_file(source)
    except Exception as e:
        raise LoadError(f"Could not read basemap {source}: {e}") from e

    if gdf.empty:
        raise LoadError(f"Basemap {source} contains zero features. Wrong file?")

    polys = basemap_from_frame(gdf, bbox)
    print(f"[BASEMAP] {len(polys.groups())} landmass piece(s), {len(polys)} ring(s) in bounds")
    return polys
