"""Typed configuration loader for `config.yaml`."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml

from .models import BBox, InsetPosition, PointRecord


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _int(value: Any, field_name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"Expected integer for '{field_name}'")
    return value


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError(f"Expected float for '{field_name}'")


def _bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"Expected bool for '{field_name}'")
    return value


def _float_pair(value: Any, field_name: str) -> tuple[float, float]:
    if not isinstance(value, list) or len(value) != 2:
        raise ValueError(f"Expected two-item list for '{field_name}'")
    return (_float(value[0], f"{field_name}[0]"), _float(value[1], f"{field_name}[1]"))


def _ordered_range(value: Any, field_name: str) -> tuple[float, float]:
    low, high = _float_pair(value, field_name)
    if low >= high:
        raise ValueError(f"'{field_name}' must be increasing, got [{low}, {high}]")
    return (low, high)


def _bbox(value: Any, field_name: str) -> BBox:
    raw = _mapping(value, field_name)
    try:
        return BBox(
            west=_float(raw.get("west"), f"{field_name}.west"),
            south=_float(raw.get("south"), f"{field_name}.south"),
            east=_float(raw.get("east"), f"{field_name}.east"),
            north=_float(raw.get("north"), f"{field_name}.north"),
        )
    except ValueError as exc:
        raise ValueError(f"Invalid '{field_name}': {exc}") from exc


def _point_records(value: Any, field_name: str) -> tuple[PointRecord, ...]:
    if not isinstance(value, list) or not value:
        raise ValueError(f"Expected non-empty list for '{field_name}'")
    out: list[PointRecord] = []
    for idx, item in enumerate(value):
        item_name = f"{field_name}[{idx}]"
        raw = _mapping(item, item_name)
        out.append(
            PointRecord(
                name=_str(raw.get("name"), f"{item_name}.name"),
                lon=_float(raw.get("lon"), f"{item_name}.lon"),
                lat=_float(raw.get("lat"), f"{item_name}.lat"),
            )
        )
    return tuple(out)


def _path_from_cfg(value: Any, field_name: str, root_dir: Path) -> Path:
    raw = _str(value, field_name)
    p = Path(raw)
    return p if p.is_absolute() else root_dir / p


@dataclass(frozen=True, slots=True)
class ScaleBarLabel:
    text: str
    lon: float
    lat: float

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ScaleBarLabel:
        return cls(
            text=_str(raw.get("text"), "map.scale_bar_label.text"),
            lon=_float(raw.get("lon"), "map.scale_bar_label.lon"),
            lat=_float(raw.get("lat"), "map.scale_bar_label.lat"),
        )


@dataclass(frozen=True, slots=True)
class InsetExtent:
    xlim: tuple[float, float]
    ylim: tuple[float, float]

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> InsetExtent:
        return cls(
            xlim=_ordered_range(raw.get("xlim"), "map.inset_extent.xlim"),
            ylim=_ordered_range(raw.get("ylim"), "map.inset_extent.ylim"),
        )


@dataclass(frozen=True, slots=True)
class MapConfig:
    query_bbox: BBox
    display_xlim: tuple[float, float]
    display_ylim: tuple[float, float]
    points_of_interest: tuple[PointRecord, ...]
    reference_site: tuple[PointRecord, ...]
    scale_bar_endpoints: tuple[tuple[float, float], tuple[float, float]]
    scale_bar_label: ScaleBarLabel
    inset_country: str
    inset_scale: int
    inset_extent: InsetExtent
    inset_bbox_highlight: BBox
    inset_position: InsetPosition

    @property
    def display_bbox(self) -> BBox:
        return BBox(
            west=self.display_xlim[0],
            south=self.display_ylim[0],
            east=self.display_xlim[1],
            north=self.display_ylim[1],
        )

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> MapConfig:
        endpoints_raw = raw.get("scale_bar_endpoints")
        if not isinstance(endpoints_raw, list) or len(endpoints_raw) != 2:
            raise ValueError("Expected two endpoints for 'map.scale_bar_endpoints'")
        start = _float_pair(endpoints_raw[0], "map.scale_bar_endpoints[0]")
        end = _float_pair(endpoints_raw[1], "map.scale_bar_endpoints[1]")
        if start == end:
            raise ValueError("map.scale_bar_endpoints must be two distinct points")

        inset_scale = _int(raw.get("inset_scale", 110), "map.inset_scale")
        if inset_scale not in {10, 50, 110}:
            raise ValueError("map.inset_scale must be one of: 10, 50, 110")

        position_raw = _mapping(raw.get("inset_position"), "map.inset_position")
        try:
            inset_position = InsetPosition(
                x=_float(position_raw.get("x"), "map.inset_position.x"),
                y=_float(position_raw.get("y"), "map.inset_position.y"),
                width=_float(position_raw.get("width"), "map.inset_position.width"),
                height=_float(position_raw.get("height"), "map.inset_position.height"),
            )
        except ValueError as exc:
            raise ValueError(f"Invalid 'map.inset_position': {exc}") from exc

        reference_site = _point_records(raw.get("reference_site"), "map.reference_site")
        if len(reference_site) != 1:
            raise ValueError("map.reference_site must hold exactly one record")

        return cls(
            query_bbox=_bbox(raw.get("query_bbox"), "map.query_bbox"),
            display_xlim=_ordered_range(raw.get("display_xlim"), "map.display_xlim"),
            display_ylim=_ordered_range(raw.get("display_ylim"), "map.display_ylim"),
            points_of_interest=_point_records(
                raw.get("points_of_interest"), "map.points_of_interest"
            ),
            reference_site=reference_site,
            scale_bar_endpoints=(start, end),
            scale_bar_label=ScaleBarLabel.from_mapping(
                _mapping(raw.get("scale_bar_label"), "map.scale_bar_label")
            ),
            inset_country=_str(raw.get("inset_country"), "map.inset_country"),
            inset_scale=inset_scale,
            inset_extent=InsetExtent.from_mapping(
                _mapping(raw.get("inset_extent"), "map.inset_extent")
            ),
            inset_bbox_highlight=_bbox(raw.get("inset_bbox_highlight"), "map.inset_bbox_highlight"),
            inset_position=inset_position,
        )


@dataclass(frozen=True, slots=True)
class OutputConfig:
    path: Path
    format: str
    dpi: int
    width_in: float
    height_in: float
    write_manifest: bool
    logs_dir: Path

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> OutputConfig:
        dpi = _int(raw.get("dpi"), "output.dpi")
        width_in = _float(raw.get("width_in"), "output.width_in")
        height_in = _float(raw.get("height_in"), "output.height_in")
        if dpi < 1:
            raise ValueError("output.dpi must be >= 1")
        if width_in <= 0 or height_in <= 0:
            raise ValueError("output.width_in and output.height_in must be > 0")
        return cls(
            path=_path_from_cfg(raw.get("path"), "output.path", root_dir),
            format=_str(raw.get("format"), "output.format").casefold(),
            dpi=dpi,
            width_in=width_in,
            height_in=height_in,
            write_manifest=_bool(raw.get("write_manifest", False), "output.write_manifest"),
            logs_dir=_path_from_cfg(raw.get("logs_dir", "build/logs"), "output.logs_dir", root_dir),
        )


@dataclass(frozen=True, slots=True)
class SourcesConfig:
    overpass_url: str
    user_agent: str
    request_timeout_s: float | None
    natural_earth_base_url: str
    ne_admin0_countries: Path | None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> SourcesConfig:
        timeout_raw = raw.get("request_timeout_s")
        request_timeout_s = (
            None if timeout_raw is None else _float(timeout_raw, "sources.request_timeout_s")
        )
        if request_timeout_s is not None and request_timeout_s <= 0:
            raise ValueError("sources.request_timeout_s must be > 0 when provided")
        local_raw = raw.get("ne_admin0_countries")
        return cls(
            overpass_url=_str(raw.get("overpass_url"), "sources.overpass_url"),
            user_agent=_str(raw.get("user_agent"), "sources.user_agent"),
            request_timeout_s=request_timeout_s,
            natural_earth_base_url=_str(
                raw.get("natural_earth_base_url"), "sources.natural_earth_base_url"
            ).rstrip("/"),
            ne_admin0_countries=(
                None
                if local_raw is None
                else _path_from_cfg(local_raw, "sources.ne_admin0_countries", root_dir)
            ),
        )


@dataclass(frozen=True, slots=True)
class StyleConfig:
    water_color: str = "lightblue"
    land_color: str = "white"
    coastline_color: str = "black"
    coastline_width: float = 0.5
    reference_color: str = "red"
    reference_marker_size: float = 30.0
    label_color: str = "black"
    label_font_size: float = 8.5
    poi_label_offset_pt: tuple[float, float] = (0.0, -4.0)
    reference_label_offset_pt: tuple[float, float] = (0.0, 0.0)
    axis_title_size: float = 10.0
    axis_text_size: float = 8.0
    border_color: str = "black"
    north_arrow_pad_in: tuple[float, float] = (0.1, 0.1)
    north_arrow_length: float = 0.12
    scale_bar_color: str = "black"
    scale_bar_width: float = 1.5
    scale_bar_tolerance: float = 0.1
    inset_land_color: str = "#e5e5e5"
    inset_edge_color: str = "#595959"
    inset_background: str = "white"
    highlight_color: str = "red"
    highlight_alpha: float = 0.3
    highlight_line_width: float = 0.5

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> StyleConfig:
        default = cls()
        tolerance = _float(
            raw.get("scale_bar_tolerance", default.scale_bar_tolerance),
            "style.scale_bar_tolerance",
        )
        if tolerance < 0:
            raise ValueError("style.scale_bar_tolerance must be >= 0")
        highlight_alpha = _float(
            raw.get("highlight_alpha", default.highlight_alpha), "style.highlight_alpha"
        )
        if not 0.0 <= highlight_alpha <= 1.0:
            raise ValueError("style.highlight_alpha must be between 0 and 1")

        def _opt_str(key: str) -> str:
            return _str(raw.get(key, getattr(default, key)), f"style.{key}")

        def _opt_float(key: str) -> float:
            return _float(raw.get(key, getattr(default, key)), f"style.{key}")

        def _opt_pair(key: str) -> tuple[float, float]:
            value = raw.get(key)
            return getattr(default, key) if value is None else _float_pair(value, f"style.{key}")

        return cls(
            water_color=_opt_str("water_color"),
            land_color=_opt_str("land_color"),
            coastline_color=_opt_str("coastline_color"),
            coastline_width=_opt_float("coastline_width"),
            reference_color=_opt_str("reference_color"),
            reference_marker_size=_opt_float("reference_marker_size"),
            label_color=_opt_str("label_color"),
            label_font_size=_opt_float("label_font_size"),
            poi_label_offset_pt=_opt_pair("poi_label_offset_pt"),
            reference_label_offset_pt=_opt_pair("reference_label_offset_pt"),
            axis_title_size=_opt_float("axis_title_size"),
            axis_text_size=_opt_float("axis_text_size"),
            border_color=_opt_str("border_color"),
            north_arrow_pad_in=_opt_pair("north_arrow_pad_in"),
            north_arrow_length=_opt_float("north_arrow_length"),
            scale_bar_color=_opt_str("scale_bar_color"),
            scale_bar_width=_opt_float("scale_bar_width"),
            scale_bar_tolerance=tolerance,
            inset_land_color=_opt_str("inset_land_color"),
            inset_edge_color=_opt_str("inset_edge_color"),
            inset_background=_opt_str("inset_background"),
            highlight_color=_opt_str("highlight_color"),
            highlight_alpha=highlight_alpha,
            highlight_line_width=_opt_float("highlight_line_width"),
        )


@dataclass(frozen=True, slots=True)
class AppConfig:
    source_path: Path
    map: MapConfig
    output: OutputConfig
    sources: SourcesConfig
    style: StyleConfig

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], source_path: Path) -> AppConfig:
        root_dir = source_path.parent.resolve()
        style_raw = raw.get("style")
        style = (
            StyleConfig()
            if style_raw is None
            else StyleConfig.from_mapping(_mapping(style_raw, "style"))
        )
        return cls(
            source_path=source_path.resolve(),
            map=MapConfig.from_mapping(_mapping(raw.get("map"), "map")),
            output=OutputConfig.from_mapping(_mapping(raw.get("output"), "output"), root_dir),
            sources=SourcesConfig.from_mapping(_mapping(raw.get("sources"), "sources"), root_dir),
            style=style,
        )


def load_config(path: str | Path) -> AppConfig:
    """Load and validate the YAML config file into typed settings."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return AppConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path)
