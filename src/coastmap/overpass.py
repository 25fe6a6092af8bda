"""OpenStreetMap Overpass coastline retrieval."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Protocol

import geopandas as gpd
import requests
from shapely.geometry import LineString

from .config import SourcesConfig
from .models import BBox, FetchError


SOURCE_CRS = "EPSG:4326"

_LOGGER = logging.getLogger("coastmap.overpass")


class LineSource(Protocol):
    def fetch(self, bbox: BBox) -> gpd.GeoDataFrame: ...


def build_coastline_query(
    bbox: BBox,
    *,
    key: str = "natural",
    value: str = "coastline",
    timeout_s: float | None = None,
) -> str:
    """Overpass QL for all ways tagged `key=value` inside `bbox`.

    Overpass orders bounding boxes as (south, west, north, east).
    """
    header = "[out:json]"
    if timeout_s is not None:
        header += f"[timeout:{int(timeout_s)}]"
    return (
        f"{header};\n"
        f'way["{key}"="{value}"]({bbox.south},{bbox.west},{bbox.north},{bbox.east});\n'
        "out geom;"
    )


def parse_overpass_lines(payload: Mapping[str, Any]) -> gpd.GeoDataFrame:
    """Convert an Overpass `out geom` payload into a line GeoDataFrame."""
    elements = payload.get("elements", [])
    if not isinstance(elements, list):
        raise FetchError("Overpass response has no 'elements' list")

    osm_ids: list[int] = []
    lines: list[LineString] = []
    for elem in elements:
        if not isinstance(elem, Mapping) or elem.get("type") != "way":
            continue
        nodes = elem.get("geometry")
        if not isinstance(nodes, list):
            continue
        coords = [
            (float(node["lon"]), float(node["lat"]))
            for node in nodes
            if isinstance(node, Mapping) and "lon" in node and "lat" in node
        ]
        if len(coords) < 2:
            continue
        osm_ids.append(int(elem.get("id", 0)))
        lines.append(LineString(coords))

    return gpd.GeoDataFrame({"osm_id": osm_ids}, geometry=lines, crs=SOURCE_CRS)


class CoastlineFetcher:
    """Fetch `natural=coastline` ways from an Overpass endpoint.

    Failures are raised as `FetchError`; there is no retry.
    """

    def __init__(self, cfg: SourcesConfig, *, session: requests.Session | None = None) -> None:
        self.cfg = cfg
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": cfg.user_agent})

    def fetch(self, bbox: BBox) -> gpd.GeoDataFrame:
        query = build_coastline_query(bbox, timeout_s=self.cfg.request_timeout_s)
        _LOGGER.info(
            "Querying %s for natural=coastline in bbox %s",
            self.cfg.overpass_url,
            bbox.bounds,
        )
        _LOGGER.debug("Overpass query:\n%s", query)
        try:
            response = self._session.post(
                self.cfg.overpass_url,
                data={"data": query},
                timeout=self.cfg.request_timeout_s,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            raise FetchError(f"Overpass request failed: {exc}") from exc
        except ValueError as exc:
            raise FetchError(f"Overpass returned invalid JSON: {exc}") from exc
        if not isinstance(payload, Mapping):
            raise FetchError("Overpass returned a non-object JSON payload")

        lines = parse_overpass_lines(payload)
        _LOGGER.info("Fetched %d coastline ways", len(lines))
        return lines
