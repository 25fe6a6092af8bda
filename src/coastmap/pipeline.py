"""Fetch, process, render and compose the map in one pass."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol, Sequence

import geopandas as gpd

from .compose import compose_figures, format_for_path, write_image
from .config import AppConfig
from .geometry import process_coastline
from .io_ne import NaturalEarthRepository
from .layers import build_point_layers
from .models import RunManifest
from .overpass import CoastlineFetcher, LineSource
from .render import InsetMapRenderer, MainMapRenderer, check_scale_bar, close_figure
from .util import detect_git_commit, sha256_file, write_run_manifest


_LOGGER = logging.getLogger("coastmap.pipeline")


class CountrySource(Protocol):
    def load_country(self, name: str) -> gpd.GeoDataFrame: ...


@dataclass(slots=True)
class MapBuildReport:
    output_path: Path | None = None
    manifest_path: Path | None = None
    image: Any = None
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


def run_map_build(
    cfg: AppConfig,
    *,
    coastline_source: LineSource | None = None,
    country_source: CountrySource | None = None,
    output_path: Path | None = None,
) -> MapBuildReport:
    """Run the whole pipeline and write the composed image.

    Stage failures propagate as `MapBuildError` subclasses; nothing is
    written when any stage fails.
    """
    t0 = time.perf_counter()
    target = output_path or cfg.output.path
    # An explicit output path names its own format.
    fmt = cfg.output.format if output_path is None else format_for_path(output_path, cfg.output.format)
    report = MapBuildReport()

    scale_check = check_scale_bar(cfg.map, tolerance=cfg.style.scale_bar_tolerance)
    if scale_check.ok:
        report.add_info(scale_check.describe())
    else:
        _LOGGER.warning(scale_check.describe())
        report.add_warning(scale_check.describe() + "; the bar is drawn as configured.")

    source = coastline_source or CoastlineFetcher(cfg.sources)
    raw_lines = source.fetch(cfg.map.query_bbox)
    report.add_info(f"Fetched {len(raw_lines)} coastline line features")

    coastline = process_coastline(raw_lines, cfg.map.query_bbox)
    n_polygons = coastline.polygon_count
    report.add_info(f"Coastline polygonized into {n_polygons} polygon(s) ({coastline.land.geom_type})")
    unclosed = coastline.unclosed_warning()
    if unclosed is not None:
        report.add_warning(unclosed + "; that shoreline is drawn as water.")

    layers = build_point_layers(cfg.map.points_of_interest, cfg.map.reference_site)
    report.add_info(
        f"Built point layers: {len(layers.points_of_interest)} points of interest, "
        f"{len(layers.reference_site)} reference site"
    )

    countries = country_source or NaturalEarthRepository.from_config(
        cfg.sources,
        scale=cfg.map.inset_scale,
    )
    main_fig = MainMapRenderer.from_config(cfg).render(coastline.land, layers)
    try:
        country = countries.load_country(cfg.map.inset_country)
        report.add_info(f"Loaded {len(country)} outline row(s) for {cfg.map.inset_country}")
        inset_fig = InsetMapRenderer.from_config(cfg).render(country)
        try:
            image = compose_figures(main_fig, inset_fig, cfg.map.inset_position)
        finally:
            close_figure(inset_fig)
    finally:
        close_figure(main_fig)

    report.image = image
    report.output_path = write_image(image, target, fmt=fmt, dpi=cfg.output.dpi)
    report.summary = {
        "coastline_lines": len(raw_lines),
        "coastline_polygons": n_polygons,
        "coastline_unclosed_parts": len(coastline.unclosed),
        "points_of_interest": len(layers.points_of_interest),
        "reference_sites": len(layers.reference_site),
        "image_width_px": image.width,
        "image_height_px": image.height,
    }

    if cfg.output.write_manifest:
        manifest = RunManifest.create(
            config_hash_sha256=sha256_file(cfg.source_path),
            git_commit=detect_git_commit(cfg.source_path.parent),
            output_path=str(report.output_path),
            counts=report.summary,
            scale_bar=scale_check.to_dict(),
        )
        manifest_path = write_run_manifest(report.output_path, manifest)
        report.manifest_path = manifest_path
        report.add_info(f"Run manifest written to {manifest_path}")

    report.add_info(f"Map built in {time.perf_counter() - t0:.2f}s")
    return report


def format_build_lines(report: MapBuildReport) -> Sequence[str]:
    lines: list[str] = []
    lines.extend(f"[INFO] {msg}" for msg in report.infos)
    lines.extend(f"[WARN] {msg}" for msg in report.warnings)
    if report.output_path is not None:
        lines.append(f"[OK] Map written to {report.output_path}")
    return lines
