"""Validation layer for map configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from .compose import SUPPORTED_FORMATS
from .config import AppConfig
from .models import BBox, PointRecord
from .render import check_scale_bar


@dataclass(slots=True)
class ValidationReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


class Validator:
    """Cross-field checks the typed config loader cannot express."""

    def __init__(self, cfg: AppConfig) -> None:
        self.cfg = cfg

    def run(self) -> ValidationReport:
        report = ValidationReport()
        self._validate_extents(report)
        self._validate_points(report)
        self._validate_scale_bar(report)
        self._validate_output(report)
        self._validate_sources(report)
        return report

    def _validate_extents(self, report: ValidationReport) -> None:
        map_cfg = self.cfg.map
        display = map_cfg.display_bbox
        if not map_cfg.query_bbox.contains_bbox(display):
            report.add_warning(
                f"Display extent {display.bounds} reaches outside the query bbox "
                f"{map_cfg.query_bbox.bounds}; no coastline will be drawn there."
            )
        else:
            report.add_info(f"Display extent {display.bounds} lies within the query bbox.")

        inset_extent = BBox(
            west=map_cfg.inset_extent.xlim[0],
            south=map_cfg.inset_extent.ylim[0],
            east=map_cfg.inset_extent.xlim[1],
            north=map_cfg.inset_extent.ylim[1],
        )
        if not inset_extent.contains_bbox(map_cfg.inset_bbox_highlight):
            report.add_warning(
                f"Inset highlight {map_cfg.inset_bbox_highlight.bounds} is not fully inside "
                f"the inset extent {inset_extent.bounds}."
            )

    def _validate_points(self, report: ValidationReport) -> None:
        display = self.cfg.map.display_bbox
        outside = _outside(self.cfg.map.points_of_interest, display)
        outside.extend(_outside(self.cfg.map.reference_site, display))
        if outside:
            report.add_warning("Points outside the display extent: " + ", ".join(outside))
        names = [record.name for record in self.cfg.map.points_of_interest]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            report.add_warning("Duplicate point-of-interest names: " + ", ".join(duplicates))
        report.add_info(
            f"{len(self.cfg.map.points_of_interest)} points of interest, "
            f"{len(self.cfg.map.reference_site)} reference site."
        )

    def _validate_scale_bar(self, report: ValidationReport) -> None:
        check = check_scale_bar(self.cfg.map, tolerance=self.cfg.style.scale_bar_tolerance)
        if check.ok:
            report.add_info(check.describe())
        else:
            report.add_warning(check.describe() + "; the bar is drawn as configured.")

        display = self.cfg.map.display_bbox
        for lon, lat in self.cfg.map.scale_bar_endpoints:
            if not display.contains_lonlat(lon, lat):
                report.add_warning(
                    f"Scale bar endpoint ({lon}, {lat}) lies outside the display extent."
                )

    def _validate_output(self, report: ValidationReport) -> None:
        fmt = self.cfg.output.format
        if fmt not in SUPPORTED_FORMATS:
            report.add_error(
                f"Unsupported output.format '{fmt}'; expected one of: "
                + ", ".join(sorted(SUPPORTED_FORMATS))
            )
        suffix = self.cfg.output.path.suffix.lstrip(".").casefold()
        if suffix and SUPPORTED_FORMATS.get(suffix) != SUPPORTED_FORMATS.get(fmt):
            report.add_warning(
                f"output.path suffix '.{suffix}' does not match output.format '{fmt}'; "
                f"the file is written as {fmt}."
            )
        report.add_info(f"Output image: {self.cfg.output.path}")

    def _validate_sources(self, report: ValidationReport) -> None:
        local = self.cfg.sources.ne_admin0_countries
        if local is not None and not local.exists():
            report.add_error(f"Natural Earth admin0 file not found: {local}")
        if self.cfg.sources.request_timeout_s is None:
            report.add_warning("sources.request_timeout_s is unset; network fetches may block indefinitely.")


def format_report_lines(report: ValidationReport) -> Sequence[str]:
    lines: list[str] = []
    lines.extend(f"[INFO] {msg}" for msg in report.infos)
    lines.extend(f"[WARN] {msg}" for msg in report.warnings)
    lines.extend(f"[ERROR] {msg}" for msg in report.errors)
    if report.ok:
        lines.append("[OK] Validation passed with no errors.")
    return lines


def _outside(records: Sequence[PointRecord], bbox: BBox) -> list[str]:
    return [record.name for record in records if not bbox.contains_lonlat(record.lon, record.lat)]
