"""Natural Earth country outline loading."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Sequence

import geopandas as gpd

from .config import SourcesConfig
from .models import FetchError


_LOGGER = logging.getLogger("coastmap.io_ne")


def _existing_columns(columns: Iterable[str], candidates: Sequence[str]) -> list[str]:
    existing = {str(col).lower(): str(col) for col in columns}
    out: list[str] = []
    for candidate in candidates:
        match = existing.get(candidate.lower())
        if match and match not in out:
            out.append(match)
    return out


def admin0_url(base_url: str, scale: int) -> str:
    return f"{base_url.rstrip('/')}/{scale}m_cultural/ne_{scale}m_admin_0_countries.zip"


class NaturalEarthRepository:
    """Admin-0 country outlines from a local file or the Natural Earth download."""

    COUNTRY_NAME_COLUMNS = (
        "ADMIN",
        "NAME",
        "NAME_LONG",
        "GEOUNIT",
        "NAME_EN",
        "SOVEREIGNT",
    )

    def __init__(self, source: str | Path) -> None:
        self.source = source

    @classmethod
    def from_config(cls, cfg: SourcesConfig, *, scale: int) -> NaturalEarthRepository:
        if cfg.ne_admin0_countries is not None:
            return cls(cfg.ne_admin0_countries)
        return cls(admin0_url(cfg.natural_earth_base_url, scale))

    def load_admin0(self) -> gpd.GeoDataFrame:
        """Read admin-0 country polygons via GeoPandas."""
        _LOGGER.info("Loading Natural Earth admin0 countries from %s", self.source)
        try:
            admin0_df = gpd.read_file(self.source)
        except Exception as exc:
            raise FetchError(f"Failed loading Natural Earth admin0 data from {self.source}: {exc}") from exc
        if admin0_df.crs is None:
            admin0_df = admin0_df.set_crs("EPSG:4326")
        elif admin0_df.crs.to_epsg() != 4326:
            admin0_df = admin0_df.to_crs("EPSG:4326")
        return admin0_df

    def extract_country(self, admin0_df: gpd.GeoDataFrame, name: str) -> gpd.GeoDataFrame:
        """Return the rows for one country, matched case-insensitively by name.

        Name columns are tried in order and the first column with a match wins,
        so a sovereign match only applies when no admin name matches.
        """
        wanted = name.strip().casefold()
        name_cols = _existing_columns(admin0_df.columns, self.COUNTRY_NAME_COLUMNS)
        if not name_cols:
            cols = ", ".join(str(c) for c in admin0_df.columns)
            raise FetchError(
                "Could not detect a country name column in Natural Earth admin0 data. "
                f"Available columns: {cols}"
            )
        for col in name_cols:
            mask = admin0_df[col].astype(str).str.strip().str.casefold() == wanted
            if bool(mask.any()):
                _LOGGER.debug("Matched country '%s' on column %s", name, col)
                return admin0_df[mask]
        raise FetchError(f"Country '{name}' not found in Natural Earth admin0 data")

    def load_country(self, name: str) -> gpd.GeoDataFrame:
        return self.extract_country(self.load_admin0(), name)
