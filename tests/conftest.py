from __future__ import annotations

import copy
from dataclasses import replace
from pathlib import Path
from typing import Any

import geopandas as gpd
import matplotlib
import pytest
import yaml
from shapely.geometry import LineString, box

from coastmap.config import AppConfig
from coastmap.models import BBox

matplotlib.use("Agg")

REPO_CONFIG = Path(__file__).resolve().parents[1] / "config.yaml"

ISLAND_RING = [
    (6.30, 42.99),
    (6.45, 42.99),
    (6.45, 43.05),
    (6.30, 43.05),
    (6.30, 42.99),
]


class StubCoastlineSource:
    def __init__(self, lines: list[LineString]) -> None:
        self.lines = lines
        self.requested: list[BBox] = []

    def fetch(self, bbox: BBox) -> gpd.GeoDataFrame:
        self.requested.append(bbox)
        return gpd.GeoDataFrame(
            {"osm_id": list(range(len(self.lines)))},
            geometry=self.lines,
            crs="EPSG:4326",
        )


class StubCountrySource:
    def __init__(self) -> None:
        self.requested: list[str] = []

    def load_country(self, name: str) -> gpd.GeoDataFrame:
        self.requested.append(name)
        return france_like_admin0()


def france_like_admin0() -> gpd.GeoDataFrame:
    return gpd.GeoDataFrame(
        {
            "ADMIN": ["France", "Spain"],
            "SOVEREIGNT": ["France", "Spain"],
        },
        geometry=[box(-4.5, 42.3, 8.2, 51.1), box(-9.3, 36.0, 3.3, 43.8)],
        crs="EPSG:4326",
    )


@pytest.fixture
def raw_config() -> dict[str, Any]:
    with REPO_CONFIG.open("r", encoding="utf-8") as fh:
        return copy.deepcopy(yaml.safe_load(fh))


@pytest.fixture
def app_config(raw_config: dict[str, Any], tmp_path: Path) -> AppConfig:
    cfg = AppConfig.from_mapping(raw_config, REPO_CONFIG)
    output = replace(
        cfg.output,
        path=tmp_path / "out" / "map.png",
        logs_dir=tmp_path / "logs",
        dpi=50,
    )
    return replace(cfg, output=output)


@pytest.fixture
def island_source() -> StubCoastlineSource:
    return StubCoastlineSource([LineString(ISLAND_RING)])


@pytest.fixture
def admin0() -> gpd.GeoDataFrame:
    return france_like_admin0()
