#!/usr/bin/env python3
"""seascape.config

Shared configuration utilities for the seascape CLI subsystems.

This module provides common helpers used across seascape.extract,
seascape.geo and seascape.plot, plus the typed view of the pipeline YAML.

Design notes:
- YAML loading is strict: files must exist and be valid mappings.
- Bboxes are [xmin, ymin, xmax, ymax] everywhere (lon/lat, EPSG:4326).
- Color scale limits are explicit per category: `limits: null` means
  "scale to the data", a missing key is a config error.
- All functions are pure (no side effects on import).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from seascape.errors import ConfigError


BBox = Tuple[float, float, float, float]


# -----------------------------------------------------------------------------
# YAML loading
# -----------------------------------------------------------------------------

def load_yaml(path: Path) -> Dict[str, Any]:
    """Load a YAML file and return as dict.

    Raises SystemExit on missing file or invalid format (non-mapping).
    Config errors should fail fast.
    """
    if not path.exists():
        raise SystemExit(f"Config not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise SystemExit(f"Expected YAML mapping at {path}")
    return data


# -----------------------------------------------------------------------------
# Bounding box utilities
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class BoundingBox:
    """Rectangular lon/lat crop region shared by every layer and the basemap."""

    xmin: float
    ymin: float
    xmax: float
    ymax: float

    def __post_init__(self) -> None:
        if not (self.xmin < self.xmax and self.ymin < self.ymax):
            raise ConfigError(f"Degenerate bounding box: {format_bbox(self.as_tuple())}")

    def as_tuple(self) -> BBox:
        return (self.xmin, self.ymin, self.xmax, self.ymax)

    def contains(self, x: float, y: float) -> bool:
        return self.xmin <= x <= self.xmax and self.ymin <= y <= self.ymax

    def intersects(self, other: BBox) -> bool:
        oxmin, oymin, oxmax, oymax = other
        return not (oxmax <= self.xmin or oxmin >= self.xmax or oymax <= self.ymin or oymin >= self.ymax)


def coerce_bbox(x: Any) -> Optional[BBox]:
    """Try to coerce [xmin, ymin, xmax, ymax] into a bbox tuple.

    Returns None if input is invalid or missing.
    """
    if x is None:
        return None
    if isinstance(x, (list, tuple)) and len(x) == 4:
        try:
            xmin, ymin, xmax, ymax = map(float, x)
        except (TypeError, ValueError):
            return None
        return (xmin, ymin, xmax, ymax)
    return None


def format_bbox(b: BBox, precision: int = 5) -> str:
    """Format a bbox tuple as a readable string."""
    return f"[{b[0]:.{precision}f}, {b[1]:.{precision}f}, {b[2]:.{precision}f}, {b[3]:.{precision}f}]"


# -----------------------------------------------------------------------------
# Typed pipeline config
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class ColorScale:
    """Palette for one variable category.

    `colors` are the ramp anchors, interpolated to `steps` colors.
    `limits` pins the normalization so related plots compare; None scales
    to each plot's data.
    """

    category: str
    colors: Tuple[str, ...]
    label: str
    steps: int = 10
    limits: Optional[Tuple[float, float]] = None


@dataclass(frozen=True)
class VariableSpec:
    name: str
    path: Path
    title: str
    scale: str
    figure: str


@dataclass(frozen=True)
class SitesSpec:
    path: Path
    id_column: str = "Site"
    lon_column: str = "Lon"
    lat_column: str = "Lat"


@dataclass(frozen=True)
class OutputSpec:
    table: Path
    figure_dir: Path


@dataclass(frozen=True)
class BasemapSpec:
    url_template: str
    resolution: str = "10m"
    cache_dir: Path = Path("data/raw/basemap")


@dataclass(frozen=True)
class FigureSize:
    width: float
    height: float
    dpi: int


@dataclass(frozen=True)
class CompositeSpec:
    name: str
    rows: Tuple[Tuple[str, ...], ...]
    size: FigureSize


@dataclass(frozen=True)
class PipelineConfig:
    bounds: BoundingBox
    sites: SitesSpec
    output: OutputSpec
    basemap: BasemapSpec
    scales: Dict[str, ColorScale]
    variables: List[VariableSpec]
    heatmap_size: FigureSize
    composites: List[CompositeSpec]
    require_aligned_grids: bool = False

    def variable(self, name: str) -> VariableSpec:
        for v in self.variables:
            if v.name == name:
                return v
        known = [v.name for v in self.variables]
        raise ConfigError(f"Unknown variable '{name}'. Known variables: {known}")

    def scale_for(self, var: VariableSpec) -> ColorScale:
        return self.scales[var.scale]


def _require(d: Dict[str, Any], key: str, where: str) -> Any:
    if not isinstance(d, dict):
        raise ConfigError(f"{where} must be a mapping")
    if key not in d:
        raise ConfigError(f"Missing '{key}' in {where}")
    return d[key]


def _parse_size(d: Any, where: str) -> FigureSize:
    if not isinstance(d, dict):
        raise ConfigError(f"{where} must be a mapping with width/height/dpi")
    try:
        return FigureSize(
            width=float(_require(d, "width", where)),
            height=float(_require(d, "height", where)),
            dpi=int(_require(d, "dpi", where)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid figure size in {where}: {e}") from e


def _parse_scale(category: str, d: Any) -> ColorScale:
    where = f"scales.{category}"
    if not isinstance(d, dict):
        raise ConfigError(f"{where} must be a mapping")
    colors = _require(d, "colors", where)
    if not isinstance(colors, list) or len(colors) < 2:
        raise ConfigError(f"{where}.colors must list at least two colors")

    # Explicit on purpose: `limits: null` is allowed, omission is not.
    raw_limits = _require(d, "limits", where)
    limits: Optional[Tuple[float, float]] = None
    if raw_limits is not None:
        if not isinstance(raw_limits, (list, tuple)) or len(raw_limits) != 2:
            raise ConfigError(f"{where}.limits must be [low, high] or null")
        try:
            lo, hi = float(raw_limits[0]), float(raw_limits[1])
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{where}.limits must be numbers: {e}") from e
        if not lo < hi:
            raise ConfigError(f"{where}.limits must be increasing, got [{lo}, {hi}]")
        limits = (lo, hi)

    try:
        steps = int(d.get("steps", 10))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{where}.steps must be an integer: {e}") from e
    if steps < 2:
        raise ConfigError(f"{where}.steps must be >= 2")

    return ColorScale(
        category=category,
        colors=tuple(str(c) for c in colors),
        label=str(d.get("label", "")),
        steps=steps,
        limits=limits,
    )


def parse_pipeline_config(data: Dict[str, Any]) -> PipelineConfig:
    """Validate a pipeline YAML mapping and build the typed config."""
    bbox = coerce_bbox(data.get("bounds"))
    if bbox is None:
        raise ConfigError("Config needs top-level 'bounds: [xmin, ymin, xmax, ymax]'")
    bounds = BoundingBox(*bbox)

    sites_d = _require(data, "sites", "config")
    sites = SitesSpec(
        path=Path(_require(sites_d, "path", "sites")),
        id_column=str(sites_d.get("id_column", "Site")),
        lon_column=str(sites_d.get("lon_column", "Lon")),
        lat_column=str(sites_d.get("lat_column", "Lat")),
    )

    out_d = data.get("output") or {}
    output = OutputSpec(
        table=Path(out_d.get("table", "outputs/environmental_data.csv")),
        figure_dir=Path(out_d.get("figure_dir", "outputs/figures")),
    )

    bm_d = _require(data, "basemap", "config")
    basemap = BasemapSpec(
        url_template=str(_require(bm_d, "url_template", "basemap")),
        resolution=str(bm_d.get("resolution", "10m")),
        cache_dir=Path(bm_d.get("cache_dir", "data/raw/basemap")),
    )

    scales_d = _require(data, "scales", "config")
    if not isinstance(scales_d, dict) or not scales_d:
        raise ConfigError("'scales' must be a non-empty mapping of category -> scale")
    scales = {str(k): _parse_scale(str(k), v) for k, v in scales_d.items()}

    vars_d = _require(data, "variables", "config")
    if not isinstance(vars_d, list) or not vars_d:
        raise ConfigError("'variables' must be a non-empty list")
    variables: List[VariableSpec] = []
    seen = set()
    for i, v in enumerate(vars_d):
        where = f"variables[{i}]"
        name = str(_require(v, "name", where))
        if name in seen:
            raise ConfigError(f"Duplicate variable name: {name}")
        seen.add(name)
        scale = str(_require(v, "scale", where))
        if scale not in scales:
            raise ConfigError(f"{where} uses unknown scale '{scale}'. Known: {sorted(scales)}")
        variables.append(
            VariableSpec(
                name=name,
                path=Path(_require(v, "path", where)),
                title=str(v.get("title", name)),
                scale=scale,
                figure=str(v.get("figure", f"{name}_heatmap.png")),
            )
        )

    figs = data.get("figures") or {}
    heatmap_size = _parse_size(figs.get("heatmap", {"width": 10, "height": 9, "dpi": 600}), "figures.heatmap")

    composites: List[CompositeSpec] = []
    for i, c in enumerate(data.get("composites") or []):
        where = f"composites[{i}]"
        rows_raw = _require(c, "rows", where)
        if not isinstance(rows_raw, list) or not rows_raw:
            raise ConfigError(f"{where}.rows must be a list of variable-name lists")
        rows = []
        for row in rows_raw:
            if not isinstance(row, list) or not row:
                raise ConfigError(f"{where}.rows entries must be non-empty lists")
            for name in row:
                if name not in seen:
                    raise ConfigError(f"{where} references unknown variable '{name}'")
            rows.append(tuple(str(n) for n in row))
        composites.append(
            CompositeSpec(
                name=str(_require(c, "name", where)),
                rows=tuple(rows),
                size=_parse_size(c.get("size", {"width": 10, "height": 10, "dpi": 600}), f"{where}.size"),
            )
        )

    return PipelineConfig(
        bounds=bounds,
        sites=sites,
        output=output,
        basemap=basemap,
        scales=scales,
        variables=variables,
        heatmap_size=heatmap_size,
        composites=composites,
        require_aligned_grids=bool(data.get("require_aligned_grids", False)),
    )


def load_pipeline_config(path: Path) -> PipelineConfig:
    """Load and validate the pipeline YAML."""
    return parse_pipeline_config(load_yaml(path))


# -----------------------------------------------------------------------------
# Default paths
# -----------------------------------------------------------------------------
# Centralized so all CLIs use the same defaults.

DEFAULT_PIPELINE_YAML = Path("config/pipeline.yaml")
