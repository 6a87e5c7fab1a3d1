from __future__ import annotations

import pytest

from seascape.config import BoundingBox
from seascape.errors import LoadError
from seascape.extract.sites import SamplePoint, load_sites, site_extent, sites_outside


def test_load_sites_preserves_row_order(tmp_path):
    path = tmp_path / "coords.csv"
    path.write_text("Site,Lat,Lon,Extra\nZ,50.5,-3.0,x\nA,41.0,2.1,y\nM,60.2,5.3,z\n")
    points = load_sites(path)
    assert [p.site for p in points] == ["Z", "A", "M"]
    assert points[0] == SamplePoint(site="Z", lon=-3.0, lat=50.5)


def test_custom_column_names(tmp_path):
    path = tmp_path / "coords.csv"
    path.write_text("id;x;y\ns1;1.5;2.5\n")
    points = load_sites(path, id_column="id", lon_column="x", lat_column="y", sep=";")
    assert points == [SamplePoint("s1", 1.5, 2.5)]


def test_missing_columns_raise_load_error(tmp_path):
    path = tmp_path / "coords.csv"
    path.write_text("Site,Longitude,Latitude\nA,1,2\n")
    with pytest.raises(LoadError, match="missing required column"):
        load_sites(path)


def test_missing_file_raises_load_error(tmp_path):
    with pytest.raises(LoadError):
        load_sites(tmp_path / "nope.csv")


def test_non_numeric_coordinates_raise_load_error(tmp_path):
    path = tmp_path / "coords.csv"
    path.write_text("Site,Lon,Lat\nA,1,2\nB,east,3\n")
    with pytest.raises(LoadError, match="line"):
        load_sites(path)


def test_duplicate_site_ids_raise_load_error(tmp_path):
    path = tmp_path / "coords.csv"
    path.write_text("Site,Lon,Lat\nA,1,2\nA,3,4\n")
    with pytest.raises(LoadError, match="Duplicate"):
        load_sites(path)


def test_site_extent_and_outside():
    points = [SamplePoint("a", -10, 40), SamplePoint("b", 20, 60), SamplePoint("c", 45, 50)]
    assert site_extent(points) == BoundingBox(-10, 40, 45, 60)
    assert site_extent(points[:1]) is None
    outside = sites_outside(points, BoundingBox(-20, 35, 30, 65))
    assert [p.site for p in outside] == ["c"]
