from __future__ import annotations

import math

import numpy as np
import pytest
from rasterio.transform import from_origin

from conftest import SMALL_GRID, write_asc
from seascape.config import VariableSpec
from seascape.errors import LoadError
from seascape.extract.rasters import load_raster, load_rasters, make_layer


def _var(name, path):
    return VariableSpec(name=name, path=path, title=name, scale="temperature", figure=f"{name}.png")


def test_load_asc_grid(tmp_path):
    path = write_asc(tmp_path / "sst.asc", SMALL_GRID, -20, 35, 10)
    layer = load_raster(path, "sst_mean")

    assert layer.name == "sst_mean"
    assert layer.shape == (3, 5)
    assert layer.res == (10.0, 10.0)
    assert layer.bounds == pytest.approx((-20, 35, 30, 65))
    assert layer.data[0, 0] == 1.0
    # nodata sentinel becomes NaN
    assert math.isnan(layer.data[1, 2])


def test_layer_data_is_read_only(small_layer):
    with pytest.raises(ValueError):
        small_layer.data[0, 0] = 99.0


def test_make_layer_copies_input():
    src = np.ones((2, 2))
    layer = make_layer("x", src, from_origin(0, 2, 1, 1))
    src[0, 0] = 5.0
    assert layer.data[0, 0] == 1.0


def test_missing_raster_raises_load_error(tmp_path):
    with pytest.raises(LoadError, match="not found"):
        load_raster(tmp_path / "missing.asc", "sst_mean")


def test_malformed_raster_raises_load_error(tmp_path):
    path = tmp_path / "broken.asc"
    path.write_text("this is not a grid\n")
    with pytest.raises(LoadError):
        load_raster(path, "sst_mean")


def test_load_rasters_keeps_declaration_order(tmp_path):
    a = write_asc(tmp_path / "a.asc", SMALL_GRID, -20, 35, 10)
    b = write_asc(tmp_path / "b.asc", SMALL_GRID, -20, 35, 10)
    layers = load_rasters([_var("sbt_mean", b), _var("sst_mean", a)])
    assert list(layers) == ["sbt_mean", "sst_mean"]


def test_misaligned_grids_warn_or_fail(tmp_path, capsys):
    a = write_asc(tmp_path / "a.asc", SMALL_GRID, -20, 35, 10)
    b = write_asc(tmp_path / "b.asc", SMALL_GRID, -10, 35, 10)
    variables = [_var("sst_mean", a), _var("sbt_mean", b)]

    layers = load_rasters(variables)
    assert len(layers) == 2
    assert "warning" in capsys.readouterr().out

    with pytest.raises(LoadError, match="differs"):
        load_rasters(variables, require_aligned=True)
