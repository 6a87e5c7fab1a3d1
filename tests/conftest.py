from __future__ import annotations

import sys
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest
from rasterio.transform import from_origin

# Ensure we can import from src/ without installing the package
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

from seascape.extract.rasters import make_layer  # noqa: E402


def write_asc(path: Path, data: np.ndarray, xll: float, yll: float, cellsize: float,
              nodata: float = -9999.0) -> Path:
    """Write an ESRI ASCII grid (first data row is the northern edge)."""
    nrows, ncols = data.shape
    lines = [
        f"ncols {ncols}",
        f"nrows {nrows}",
        f"xllcorner {xll}",
        f"yllcorner {yll}",
        f"cellsize {cellsize}",
        f"NODATA_value {nodata:g}",
    ]
    for row in data:
        lines.append(" ".join(f"{nodata if np.isnan(v) else v:g}" for v in row))
    path.write_text("\n".join(lines) + "\n")
    return path


# 3 x 5 cells of 10 degrees over lon [-20, 30], lat [35, 65]
SMALL_GRID = np.array(
    [
        [1.0, 2.0, 3.0, 4.0, 5.0],
        [6.0, 7.0, np.nan, 9.0, 10.0],
        [11.0, 12.0, 13.0, 14.0, 15.0],
    ]
)


@pytest.fixture
def small_layer():
    return make_layer("sst_mean", SMALL_GRID, from_origin(-20, 65, 10, 10), crs="EPSG:4326")


@pytest.fixture
def global_layer():
    """1-degree global grid, value = latitude of the cell centre."""
    lats = 89.5 - np.arange(180)
    data = np.repeat(lats[:, None], 360, axis=1)
    return make_layer("sst_mean", data, from_origin(-180, 90, 1, 1), crs="EPSG:4326")


@pytest.fixture
def pipeline_yaml(tmp_path):
    """Two .asc layers, four sites, a temperature scale and one composite."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    write_asc(data_dir / "sst.asc", SMALL_GRID, -20, 35, 10)
    write_asc(data_dir / "sbt.asc", SMALL_GRID * 2, -20, 35, 10)

    sites = data_dir / "coordinates.csv"
    sites.write_text(
        "Site,Lon,Lat\n"
        "A,-15,60\n"
        "B,45,50\n"
        "C,5,50\n"
        "D,25,40\n"
    )

    out_dir = tmp_path / "outputs"
    table = out_dir / "environmental_data.csv"
    figure_dir = out_dir / "figures"
    cache_dir = tmp_path / "cache"
    sst = data_dir / "sst.asc"
    sbt = data_dir / "sbt.asc"
    cfg = f"""
bounds: [-20, 35, 30, 65]
sites:
  path: {sites}
output:
  table: {table}
  figure_dir: {figure_dir}
basemap:
  url_template: "https://example.invalid/{{resolution}}/land.zip"
  resolution: 110m
  cache_dir: {cache_dir}
scales:
  temperature:
    colors: [blue, white, red]
    limits: [-1.5, 24]
    label: "°C"
variables:
  - name: sst_mean
    path: {sst}
    title: Sea surface temperature
    scale: temperature
    figure: 1.sst_heatmap.png
  - name: sbt_mean
    path: {sbt}
    title: Sea bottom temperature
    scale: temperature
    figure: 2.sbt_heatmap.png
figures:
  heatmap: {{width: 4, height: 3, dpi: 40}}
composites:
  - name: 3.temp_heatmap.png
    rows: [[sst_mean, sbt_mean]]
    size: {{width: 6, height: 3, dpi: 40}}
"""
    path = tmp_path / "pipeline.yaml"
    path.write_text(cfg, encoding="utf-8")
    return path
