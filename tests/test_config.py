from __future__ import annotations

import pytest

from seascape.config import (
    BoundingBox,
    coerce_bbox,
    format_bbox,
    load_pipeline_config,
    parse_pipeline_config,
)
from seascape.errors import ConfigError


def _minimal(**overrides):
    data = {
        "bounds": [-20, 35, 30, 65],
        "sites": {"path": "coords.csv"},
        "basemap": {"url_template": "https://example.invalid/{resolution}.zip"},
        "scales": {
            "temperature": {"colors": ["blue", "white", "red"], "limits": [-1.5, 24], "label": "C"},
            "chlorophyll": {"colors": ["white", "green"], "limits": None, "label": "mg"},
        },
        "variables": [
            {"name": "sst_mean", "path": "sst.asc", "scale": "temperature"},
            {"name": "ssc_mean", "path": "ssc.asc", "scale": "chlorophyll"},
        ],
    }
    data.update(overrides)
    return data


def test_coerce_bbox_accepts_four_numbers():
    assert coerce_bbox([-20, "35", 30, 65.0]) == (-20.0, 35.0, 30.0, 65.0)


def test_coerce_bbox_rejects_bad_inputs():
    assert coerce_bbox(None) is None
    assert coerce_bbox([1, 2, 3]) is None
    assert coerce_bbox(["a", 2, 3, 4]) is None


def test_format_bbox():
    assert format_bbox((-20, 35, 30, 65), precision=1) == "[-20.0, 35.0, 30.0, 65.0]"


def test_bounding_box_must_not_be_degenerate():
    with pytest.raises(ConfigError):
        BoundingBox(30, 35, -20, 65)


def test_bounding_box_intersects():
    b = BoundingBox(-20, 35, 30, 65)
    assert b.intersects((-180, -90, 180, 90))
    assert not b.intersects((40, 0, 60, 10))
    # touching edges share no area
    assert not b.intersects((30, 35, 40, 65))


def test_parse_keeps_variable_order_and_explicit_limits():
    cfg = parse_pipeline_config(_minimal())
    assert [v.name for v in cfg.variables] == ["sst_mean", "ssc_mean"]
    assert cfg.scales["temperature"].limits == (-1.5, 24.0)
    assert cfg.scales["chlorophyll"].limits is None
    assert cfg.scales["temperature"].steps == 10
    assert cfg.scale_for(cfg.variable("ssc_mean")).category == "chlorophyll"


def test_scale_limits_must_be_declared():
    data = _minimal()
    del data["scales"]["chlorophyll"]["limits"]
    with pytest.raises(ConfigError, match="limits"):
        parse_pipeline_config(data)


def test_non_numeric_limits_are_config_errors():
    data = _minimal()
    data["scales"]["temperature"]["limits"] = ["cold", 24]
    with pytest.raises(ConfigError, match="limits must be numbers"):
        parse_pipeline_config(data)


def test_non_numeric_steps_are_config_errors():
    data = _minimal()
    data["scales"]["temperature"]["steps"] = "many"
    with pytest.raises(ConfigError, match="steps must be an integer"):
        parse_pipeline_config(data)


def test_unknown_scale_is_rejected():
    data = _minimal(variables=[{"name": "x", "path": "x.asc", "scale": "oxygen"}])
    with pytest.raises(ConfigError, match="unknown scale"):
        parse_pipeline_config(data)


def test_duplicate_variable_is_rejected():
    v = {"name": "sst_mean", "path": "sst.asc", "scale": "temperature"}
    with pytest.raises(ConfigError, match="Duplicate"):
        parse_pipeline_config(_minimal(variables=[v, dict(v)]))


def test_composite_must_reference_known_variables():
    data = _minimal(composites=[{"name": "c.png", "rows": [["sst_mean", "nope"]]}])
    with pytest.raises(ConfigError, match="nope"):
        parse_pipeline_config(data)


def test_missing_bounds_is_rejected():
    data = _minimal()
    del data["bounds"]
    with pytest.raises(ConfigError):
        parse_pipeline_config(data)


def test_unknown_variable_lookup():
    cfg = parse_pipeline_config(_minimal())
    with pytest.raises(ConfigError, match="Unknown variable"):
        cfg.variable("sbt_mean")


def test_load_pipeline_config_from_yaml(pipeline_yaml):
    cfg = load_pipeline_config(pipeline_yaml)
    assert cfg.bounds == BoundingBox(-20, 35, 30, 65)
    assert cfg.heatmap_size.dpi == 40
    assert cfg.composites[0].rows == (("sst_mean", "sbt_mean"),)


def test_missing_config_file_exits(tmp_path):
    with pytest.raises(SystemExit):
        load_pipeline_config(tmp_path / "nope.yaml")
