"""Main map and inset map rendering."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import geopandas as gpd
from matplotlib import colors as mcolors
from matplotlib import ticker as mticker
from pyproj import Geod

from .config import AppConfig, MapConfig, OutputConfig, StyleConfig
from .layers import PointLayers
from .overpass import SOURCE_CRS


_LOGGER = logging.getLogger("coastmap.render")

_DISTANCE_LABEL_RE = re.compile(r"^\s*(\d+(?:[.,]\d+)?)\s*(km|m)\s*$", re.IGNORECASE)
_NORTH_ARROW_X = 0.03


@dataclass(frozen=True, slots=True)
class ScaleBarCheck:
    """Geodesic length of the drawn scale bar against its label."""

    label: str
    labelled_km: float | None
    measured_km: float
    relative_error: float | None
    tolerance: float

    @property
    def ok(self) -> bool:
        return self.relative_error is not None and self.relative_error <= self.tolerance

    def describe(self) -> str:
        if self.labelled_km is None:
            return (
                f"Scale bar label '{self.label}' is not a distance; "
                f"the bar measures {self.measured_km:.1f} km"
            )
        return (
            f"Scale bar labelled '{self.label}' measures {self.measured_km:.1f} km "
            f"({self.relative_error:.0%} off, tolerance {self.tolerance:.0%})"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "labelled_km": self.labelled_km,
            "measured_km": round(self.measured_km, 3),
            "relative_error": (
                None if self.relative_error is None else round(self.relative_error, 4)
            ),
            "within_tolerance": self.ok,
        }


def parse_distance_label(text: str) -> float | None:
    """Return the distance in km written in a label like '30 km' or '500 m'."""
    match = _DISTANCE_LABEL_RE.match(text)
    if match is None:
        return None
    value = float(match.group(1).replace(",", "."))
    if match.group(2).casefold() == "m":
        return value / 1000.0
    return value


def measure_scale_bar_km(endpoints: tuple[tuple[float, float], tuple[float, float]]) -> float:
    (lon0, lat0), (lon1, lat1) = endpoints
    _, _, distance_m = _wgs84_geod().inv(lon0, lat0, lon1, lat1)
    return float(distance_m) / 1000.0


def check_scale_bar(map_cfg: MapConfig, *, tolerance: float) -> ScaleBarCheck:
    """Measure the configured bar without changing it."""
    label = map_cfg.scale_bar_label.text
    labelled_km = parse_distance_label(label)
    measured_km = measure_scale_bar_km(map_cfg.scale_bar_endpoints)
    relative_error = (
        abs(measured_km - labelled_km) / labelled_km
        if labelled_km is not None and labelled_km > 0
        else None
    )
    return ScaleBarCheck(
        label=label,
        labelled_km=labelled_km,
        measured_km=measured_km,
        relative_error=relative_error,
        tolerance=tolerance,
    )


class MainMapRenderer:
    """Coastline, labelled points, north arrow and manual scale bar."""

    def __init__(self, map_cfg: MapConfig, style: StyleConfig, output: OutputConfig) -> None:
        self.map_cfg = map_cfg
        self.style = style
        self.output = output

    @classmethod
    def from_config(cls, cfg: AppConfig) -> MainMapRenderer:
        return cls(cfg.map, cfg.style, cfg.output)

    def render(self, coastline: Any, layers: PointLayers) -> Any:
        _LOGGER.info(
            "Rendering main map: %d points of interest, %d reference site(s)",
            len(layers.points_of_interest),
            len(layers.reference_site),
        )
        plt, transforms = _require_matplotlib()
        fig, ax = plt.subplots(
            figsize=(self.output.width_in, self.output.height_in),
            dpi=self.output.dpi,
        )
        ax.set_facecolor(self.style.water_color)

        gpd.GeoSeries([coastline], crs=SOURCE_CRS).plot(
            ax=ax,
            facecolor=self.style.land_color,
            edgecolor=self.style.coastline_color,
            linewidth=self.style.coastline_width,
            zorder=1,
        )
        reference = layers.reference_site
        ax.scatter(
            reference.geometry.x,
            reference.geometry.y,
            s=self.style.reference_marker_size,
            c=self.style.reference_color,
            linewidths=0.0,
            zorder=3,
        )
        # Points of interest are label-only; the label hangs below its point.
        self._draw_labels(
            ax,
            layers.points_of_interest,
            offset_pt=self.style.poi_label_offset_pt,
            ha="center",
            va="top",
        )
        self._draw_labels(
            ax,
            reference,
            offset_pt=self.style.reference_label_offset_pt,
            ha="right",
            va="bottom",
        )

        self._configure_axes(ax)
        self._draw_north_arrow(fig=fig, ax=ax, transforms=transforms)
        self._draw_scale_bar(ax)
        fig.tight_layout()
        return fig

    def _draw_labels(
        self,
        ax: Any,
        layer: gpd.GeoDataFrame,
        *,
        offset_pt: tuple[float, float],
        ha: str,
        va: str,
    ) -> None:
        for row in layer.itertuples(index=False):
            ax.annotate(
                row.name,
                xy=(row.geometry.x, row.geometry.y),
                xytext=offset_pt,
                textcoords="offset points",
                ha=ha,
                va=va,
                fontsize=self.style.label_font_size,
                color=self.style.label_color,
                zorder=4,
            )

    def _configure_axes(self, ax: Any) -> None:
        ax.set_xlim(*self.map_cfg.display_xlim)
        ax.set_ylim(*self.map_cfg.display_ylim)
        ax.set_aspect(geographic_aspect(self.map_cfg.display_ylim), adjustable="box")
        ax.set_xlabel("Longitude", fontsize=self.style.axis_title_size)
        ax.set_ylabel("Latitude", fontsize=self.style.axis_title_size)
        ax.tick_params(labelsize=self.style.axis_text_size)
        ax.xaxis.set_major_formatter(mticker.FuncFormatter(lambda v, _: format_degrees(v, "E", "W")))
        ax.yaxis.set_major_formatter(mticker.FuncFormatter(lambda v, _: format_degrees(v, "N", "S")))
        ax.grid(False)
        for spine in ax.spines.values():
            spine.set_visible(True)
            spine.set_edgecolor(self.style.border_color)

    def _draw_north_arrow(self, *, fig: Any, ax: Any, transforms: Any) -> None:
        pad_x, pad_y = self.style.north_arrow_pad_in
        anchor = ax.transAxes + transforms.ScaledTranslation(pad_x, -pad_y, fig.dpi_scale_trans)
        tail_y = 1.0 - self.style.north_arrow_length
        ax.annotate(
            "",
            xy=(_NORTH_ARROW_X, 1.0),
            xycoords=anchor,
            xytext=(_NORTH_ARROW_X, tail_y),
            textcoords=anchor,
            arrowprops={
                "facecolor": self.style.border_color,
                "edgecolor": self.style.border_color,
                "width": 3.0,
                "headwidth": 10.0,
                "headlength": 9.0,
            },
            zorder=6,
        )
        ax.text(
            _NORTH_ARROW_X,
            tail_y,
            "N",
            transform=anchor,
            ha="center",
            va="top",
            fontsize=self.style.axis_title_size,
            fontweight="bold",
            color=self.style.border_color,
            zorder=6,
        )

    def _draw_scale_bar(self, ax: Any) -> None:
        (x0, y0), (x1, y1) = self.map_cfg.scale_bar_endpoints
        ax.plot(
            [x0, x1],
            [y0, y1],
            color=self.style.scale_bar_color,
            linewidth=self.style.scale_bar_width,
            solid_capstyle="butt",
            clip_on=False,
            zorder=5,
        )
        label = self.map_cfg.scale_bar_label
        ax.text(
            label.lon,
            label.lat,
            label.text,
            ha="center",
            va="center",
            fontsize=self.style.label_font_size,
            color=self.style.scale_bar_color,
            clip_on=False,
            zorder=5,
        )


class InsetMapRenderer:
    """Country outline with the main map's extent highlighted."""

    def __init__(self, map_cfg: MapConfig, style: StyleConfig, output: OutputConfig) -> None:
        self.map_cfg = map_cfg
        self.style = style
        self.output = output

    @classmethod
    def from_config(cls, cfg: AppConfig) -> InsetMapRenderer:
        return cls(cfg.map, cfg.style, cfg.output)

    def render(self, country: gpd.GeoDataFrame) -> Any:
        _LOGGER.info("Rendering inset map for %s", self.map_cfg.inset_country)
        plt, _ = _require_matplotlib()
        position = self.map_cfg.inset_position
        extent = self.map_cfg.inset_extent
        fig, ax = plt.subplots(
            figsize=(self.output.width_in * position.width, self.output.height_in * position.height),
            dpi=self.output.dpi,
        )
        fig.subplots_adjust(left=0.0, right=1.0, bottom=0.0, top=1.0)
        fig.patch.set_facecolor(self.style.inset_background)

        country.plot(
            ax=ax,
            facecolor=self.style.inset_land_color,
            edgecolor=self.style.inset_edge_color,
            linewidth=0.5,
            zorder=1,
        )
        gpd.GeoSeries([self.map_cfg.inset_bbox_highlight.to_polygon()], crs=SOURCE_CRS).plot(
            ax=ax,
            facecolor=mcolors.to_rgba(self.style.highlight_color, self.style.highlight_alpha),
            edgecolor=self.style.highlight_color,
            linewidth=self.style.highlight_line_width,
            zorder=2,
        )
        ax.set_xlim(*extent.xlim)
        ax.set_ylim(*extent.ylim)
        ax.set_aspect(geographic_aspect(extent.ylim), adjustable="box")
        ax.set_axis_off()
        return fig


def geographic_aspect(ylim: tuple[float, float]) -> float:
    """Aspect ratio of an unprojected lon/lat plot at the extent's mid-latitude."""
    mid_lat = (ylim[0] + ylim[1]) / 2.0
    return 1.0 / max(math.cos(math.radians(mid_lat)), 1e-6)


def format_degrees(value: float, positive: str, negative: str) -> str:
    hemisphere = positive if value >= 0 else negative
    text = f"{abs(value):.2f}".rstrip("0").rstrip(".")
    return f"{text}°{hemisphere}"


def close_figure(fig: Any) -> None:
    plt, _ = _require_matplotlib()
    plt.close(fig)


@lru_cache(maxsize=1)
def _wgs84_geod() -> Geod:
    return Geod(ellps="WGS84")


def _require_matplotlib() -> tuple[Any, Any]:
    try:
        import matplotlib

        matplotlib.use("Agg", force=False)
        import matplotlib.pyplot as plt
        import matplotlib.transforms as transforms
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for map rendering") from exc
    return (plt, transforms)
