from __future__ import annotations

import logging

import geopandas as gpd
import pytest
from shapely.geometry import LineString, Polygon

from coastmap.geometry import (
    crop_lines,
    merge_lines,
    polygon_count,
    polygonize_lines,
    process_coastline,
)
from coastmap.models import BBox, GeometryError

QUERY_BBOX = BBox(west=5.5, south=42.5, east=7.5, north=43.5)
SQUARE = [(6.0, 42.9), (6.5, 42.9), (6.5, 43.1), (6.0, 43.1)]


def _lines(*geoms: LineString) -> gpd.GeoDataFrame:
    return gpd.GeoDataFrame(geometry=list(geoms), crs="EPSG:4326")


def test_crop_keeps_only_coordinates_inside_box() -> None:
    crossing = LineString([(5.0, 43.0), (6.0, 43.0), (6.0, 44.0)])
    outside = LineString([(8.0, 40.0), (9.0, 41.0)])
    cropped = crop_lines(_lines(crossing, outside), QUERY_BBOX)

    assert len(cropped) == 1
    for geometry in cropped:
        for lon, lat in geometry.coords:
            assert QUERY_BBOX.west - 1e-9 <= lon <= QUERY_BBOX.east + 1e-9
            assert QUERY_BBOX.south - 1e-9 <= lat <= QUERY_BBOX.north + 1e-9


def test_crop_of_empty_input_is_empty() -> None:
    empty = gpd.GeoDataFrame(geometry=[], crs="EPSG:4326")
    assert crop_lines(empty, QUERY_BBOX).empty


def test_merge_is_idempotent() -> None:
    first = LineString([(6.0, 43.0), (6.1, 43.0)])
    second = LineString([(6.1, 43.0), (6.1, 43.1)])
    merged = merge_lines([first, second])

    assert merge_lines([merged]).equals(merged)
    assert merge_lines([merged, merged]).equals(merged)


def test_polygonize_closed_loop_matches_input_ring() -> None:
    ring = LineString(SQUARE + [SQUARE[0]])
    polygon = polygonize_lines(merge_lines([ring]))

    assert polygon.geom_type == "Polygon"
    assert polygon.boundary.equals(ring)


def test_polygonize_open_line_is_empty() -> None:
    open_line = LineString([(6.0, 42.9), (6.5, 42.9), (6.5, 43.1)])
    polygon = polygonize_lines(merge_lines([open_line]))

    assert polygon.is_empty
    assert polygon_count(polygon) == 0


def test_process_coastline_rejects_open_lines() -> None:
    open_line = LineString([(6.0, 42.9), (6.5, 42.9), (6.5, 43.1)])
    with pytest.raises(GeometryError):
        process_coastline(_lines(open_line), QUERY_BBOX)


def test_stub_unit_square_becomes_single_polygon() -> None:
    ring = LineString(SQUARE + [SQUARE[0]])
    land = process_coastline(_lines(ring), QUERY_BBOX).land

    assert land.geom_type == "Polygon"
    assert land.equals(Polygon(SQUARE))
    assert set(land.exterior.coords) == set(SQUARE)


def test_disjoint_islands_become_multipolygon() -> None:
    west = LineString([(6.0, 43.0), (6.1, 43.0), (6.1, 43.1), (6.0, 43.1), (6.0, 43.0)])
    east = LineString([(6.3, 43.0), (6.4, 43.0), (6.4, 43.1), (6.3, 43.1), (6.3, 43.0)])
    result = process_coastline(_lines(west, east), QUERY_BBOX)

    assert result.land.geom_type == "MultiPolygon"
    assert result.polygon_count == 2
    assert result.unclosed == ()
    assert result.unclosed_warning() is None


def test_open_mainland_beside_closed_island_is_reported(caplog: pytest.LogCaptureFixture) -> None:
    island = LineString(
        [(6.30, 42.99), (6.45, 42.99), (6.45, 43.05), (6.30, 43.05), (6.30, 42.99)]
    )
    mainland = LineString([(5.0, 43.10), (8.0, 43.20)])

    with caplog.at_level(logging.WARNING, logger="coastmap.geometry"):
        result = process_coastline(_lines(island, mainland), QUERY_BBOX)

    assert result.land.equals(Polygon(list(island.coords)))
    assert len(result.unclosed) == 1
    assert result.unclosed[0].bounds[0] == pytest.approx(5.5)
    assert result.unclosed[0].bounds[2] == pytest.approx(7.5)
    warning = result.unclosed_warning()
    assert warning is not None and "1 coastline line part(s) close no ring" in warning
    assert any(
        record.levelno == logging.WARNING and "close no ring" in record.getMessage()
        for record in caplog.records
    )
