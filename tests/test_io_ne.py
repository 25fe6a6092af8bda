from __future__ import annotations

from pathlib import Path

import geopandas as gpd
import pytest
from shapely.geometry import box

from coastmap.config import SourcesConfig
from coastmap.io_ne import NaturalEarthRepository, admin0_url
from coastmap.models import FetchError



def test_admin0_url_layout() -> None:
    assert admin0_url("https://ne.example/", 110) == (
        "https://ne.example/110m_cultural/ne_110m_admin_0_countries.zip"
    )


def test_from_config_prefers_local_file(tmp_path: Path) -> None:
    local = tmp_path / "admin0.geojson"
    cfg = SourcesConfig(
        overpass_url="https://overpass.example",
        user_agent="coastmap-tests",
        request_timeout_s=None,
        natural_earth_base_url="https://ne.example",
        ne_admin0_countries=local,
    )
    assert NaturalEarthRepository.from_config(cfg, scale=110).source == local

    remote = SourcesConfig(
        overpass_url="https://overpass.example",
        user_agent="coastmap-tests",
        request_timeout_s=None,
        natural_earth_base_url="https://ne.example",
        ne_admin0_countries=None,
    )
    assert NaturalEarthRepository.from_config(remote, scale=50).source == (
        "https://ne.example/50m_cultural/ne_50m_admin_0_countries.zip"
    )


def test_extract_country_is_case_insensitive(admin0: gpd.GeoDataFrame) -> None:
    repo = NaturalEarthRepository("unused")
    country = repo.extract_country(admin0, " france ")
    assert list(country["ADMIN"]) == ["France"]


def test_extract_country_prefers_admin_column() -> None:
    admin0 = gpd.GeoDataFrame(
        {
            "ADMIN": ["Guadeloupe", "France"],
            "SOVEREIGNT": ["France", "France"],
        },
        geometry=[box(-61.8, 15.9, -61.0, 16.5), box(-4.5, 42.3, 8.2, 51.1)],
        crs="EPSG:4326",
    )
    country = NaturalEarthRepository("unused").extract_country(admin0, "France")
    assert len(country) == 1
    assert country.iloc[0]["ADMIN"] == "France"


def test_extract_country_missing_name_raises(admin0: gpd.GeoDataFrame) -> None:
    with pytest.raises(FetchError, match="not found"):
        NaturalEarthRepository("unused").extract_country(admin0, "Atlantis")


def test_extract_country_without_name_columns_raises() -> None:
    admin0 = gpd.GeoDataFrame({"code": ["FR"]}, geometry=[box(0, 0, 1, 1)], crs="EPSG:4326")
    with pytest.raises(FetchError, match="country name column"):
        NaturalEarthRepository("unused").extract_country(admin0, "France")


def test_load_country_from_local_file(admin0: gpd.GeoDataFrame, tmp_path: Path) -> None:
    path = tmp_path / "admin0.geojson"
    admin0.to_file(path, driver="GeoJSON")

    country = NaturalEarthRepository(path).load_country("France")

    assert len(country) == 1
    assert country.crs is not None and country.crs.to_epsg() == 4326


def test_load_admin0_wraps_read_errors(tmp_path: Path) -> None:
    with pytest.raises(FetchError):
        NaturalEarthRepository(tmp_path / "missing.geojson").load_admin0()
