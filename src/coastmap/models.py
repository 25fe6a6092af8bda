"""Domain models shared across pipeline modules."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

from shapely.geometry import Polygon, box


class MapBuildError(RuntimeError):
    """Terminal failure of one pipeline stage."""


class FetchError(MapBuildError):
    """Map-data or country-outline service unavailable or returned nothing usable."""


class GeometryError(MapBuildError):
    """Crop/merge/polygonize produced empty or invalid output."""


class RenderError(MapBuildError):
    """Rendering or writing the composed image failed."""


@dataclass(frozen=True, slots=True)
class BBox:
    """Geographic extent in lon/lat, ordered west, south, east, north."""

    west: float
    south: float
    east: float
    north: float

    def __post_init__(self) -> None:
        if not self.west < self.east:
            raise ValueError(f"west ({self.west}) must be less than east ({self.east})")
        if not self.south < self.north:
            raise ValueError(f"south ({self.south}) must be less than north ({self.north})")

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        return (self.west, self.south, self.east, self.north)

    def to_polygon(self) -> Polygon:
        return box(self.west, self.south, self.east, self.north)

    def contains_lonlat(self, lon: float, lat: float) -> bool:
        return self.west <= lon <= self.east and self.south <= lat <= self.north

    def contains_bbox(self, other: BBox) -> bool:
        return (
            self.west <= other.west
            and self.south <= other.south
            and self.east >= other.east
            and self.north >= other.north
        )


@dataclass(frozen=True, slots=True)
class PointRecord:
    """Named location in lon/lat."""

    name: str
    lon: float
    lat: float


@dataclass(frozen=True, slots=True)
class InsetPosition:
    """Inset box as canvas fractions, origin bottom-left."""

    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        for name in ("x", "y", "width", "height"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0 and 1, got {value}")
        if self.width <= 0.0 or self.height <= 0.0:
            raise ValueError("width and height must be > 0")
        if self.x + self.width > 1.0 + 1e-9:
            raise ValueError("x + width must not exceed 1")
        if self.y + self.height > 1.0 + 1e-9:
            raise ValueError("y + height must not exceed 1")

    def to_pixel_box(self, canvas_width: int, canvas_height: int) -> tuple[int, int, int, int]:
        """Return (left, top, right, bottom) in image pixel coordinates."""
        left = int(round(self.x * canvas_width))
        right = int(round((self.x + self.width) * canvas_width))
        top = int(round((1.0 - self.y - self.height) * canvas_height))
        bottom = int(round((1.0 - self.y) * canvas_height))
        return (left, top, right, bottom)


@dataclass(frozen=True, slots=True)
class RunManifest:
    """Run metadata written beside the output image."""

    generated_at_utc: str
    config_hash_sha256: str
    git_commit: str | None
    output_path: str
    counts: Mapping[str, int]
    scale_bar: Mapping[str, Any]

    @classmethod
    def create(
        cls,
        *,
        config_hash_sha256: str,
        git_commit: str | None,
        output_path: str,
        counts: Mapping[str, int],
        scale_bar: Mapping[str, Any],
    ) -> RunManifest:
        now = datetime.now(timezone.utc).isoformat()
        return cls(
            generated_at_utc=now,
            config_hash_sha256=config_hash_sha256,
            git_commit=git_commit,
            output_path=output_path,
            counts=counts,
            scale_bar=scale_bar,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at_utc": self.generated_at_utc,
            "config_hash_sha256": self.config_hash_sha256,
            "git_commit": self.git_commit,
            "output_path": self.output_path,
            "counts": dict(self.counts),
            "scale_bar": dict(self.scale_bar),
        }
