"""Coastline crop, merge and polygonize steps."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

import geopandas as gpd
from shapely.geometry import LineString, MultiPolygon, Polygon
from shapely.ops import polygonize_full, unary_union

from .models import BBox, GeometryError


_LOGGER = logging.getLogger("coastmap.geometry")

_LINE_TYPES = {"LineString", "MultiLineString"}


def crop_lines(lines: gpd.GeoDataFrame | gpd.GeoSeries, bbox: BBox) -> gpd.GeoSeries:
    """Intersect every line with the box and keep only the linear parts."""
    series = lines.geometry if isinstance(lines, gpd.GeoDataFrame) else lines
    if series.empty:
        return gpd.GeoSeries([], crs=series.crs)
    clipped = series.intersection(bbox.to_polygon())
    parts = clipped[~clipped.is_empty].explode(index_parts=False)
    kept = parts[parts.geom_type == "LineString"]
    return gpd.GeoSeries(list(kept), crs=series.crs)


def merge_lines(lines: Iterable[Any]) -> Any:
    """Union the lines into one noded geometry."""
    geometries = [geometry for geometry in lines if geometry is not None and not geometry.is_empty]
    return unary_union(geometries)


@dataclass(frozen=True, slots=True)
class ProcessedCoastline:
    """Land polygons plus the line parts that closed no ring."""

    land: Polygon | MultiPolygon
    unclosed: tuple[LineString, ...] = ()

    @property
    def polygon_count(self) -> int:
        return polygon_count(self.land)

    def unclosed_warning(self) -> str | None:
        if not self.unclosed:
            return None
        west, south, east, north = unary_union(list(self.unclosed)).bounds
        return (
            f"{len(self.unclosed)} coastline line part(s) close no ring and are not filled as land "
            f"(within {west:.3f}, {south:.3f}, {east:.3f}, {north:.3f})"
        )


def polygonize_lines(merged: Any) -> Polygon | MultiPolygon:
    """Build the polygons enclosed by the linework.

    Lines that do not close a ring enclose nothing, so an all-open input
    yields an empty Polygon. The result is not repaired. Faces sharing an
    edge are dissolved together.
    """
    land, _ = _polygonize_with_leftovers(merged)
    return land


def process_coastline(lines: gpd.GeoDataFrame | gpd.GeoSeries, bbox: BBox) -> ProcessedCoastline:
    cropped = crop_lines(lines, bbox)
    _LOGGER.info("Cropped coastline to %d line parts", len(cropped))
    merged = merge_lines(cropped)
    land, unclosed = _polygonize_with_leftovers(merged)
    if land.is_empty:
        raise GeometryError(
            "Coastline polygonization produced no polygons; "
            f"{len(cropped)} line parts inside {bbox.bounds} form no closed ring"
        )
    if not land.is_valid:
        raise GeometryError(f"Coastline polygonization produced an invalid {land.geom_type}")
    result = ProcessedCoastline(land=land, unclosed=tuple(unclosed))
    warning = result.unclosed_warning()
    if warning is not None:
        _LOGGER.warning(warning)
    _LOGGER.info("Polygonized coastline into %d polygon(s)", result.polygon_count)
    return result


def _polygonize_with_leftovers(merged: Any) -> tuple[Polygon | MultiPolygon, list[LineString]]:
    parts = _line_parts(merged)
    if not parts:
        return Polygon(), []
    faces, cuts, dangles, invalid_rings = polygonize_full(parts)
    leftovers: list[LineString] = []
    for collection in (dangles, cuts, invalid_rings):
        leftovers.extend(_line_parts(collection))

    polygons = [part for part in faces.geoms if part.geom_type == "Polygon"]
    if not polygons:
        return Polygon(), leftovers
    if len(polygons) == 1:
        return polygons[0], leftovers
    dissolved = unary_union(polygons)
    if dissolved.geom_type == "Polygon":
        return dissolved, leftovers
    return MultiPolygon([part for part in dissolved.geoms if part.geom_type == "Polygon"]), leftovers


def polygon_count(geometry: Any) -> int:
    if geometry is None or geometry.is_empty:
        return 0
    if geometry.geom_type == "Polygon":
        return 1
    if geometry.geom_type == "MultiPolygon":
        return len(geometry.geoms)
    return 0


def _line_parts(geometry: Any) -> list[LineString]:
    if geometry is None or geometry.is_empty:
        return []
    geom_type = geometry.geom_type
    if geom_type == "LineString":
        return [geometry]
    if geom_type in _LINE_TYPES or geom_type == "GeometryCollection":
        out: list[LineString] = []
        for part in geometry.geoms:
            out.extend(_line_parts(part))
        return out
    if geom_type == "LinearRing":
        return [LineString(geometry.coords)]
    return []
