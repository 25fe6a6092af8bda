"""Point layers for points of interest and the reference site."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import geopandas as gpd
import pandas as pd

from .models import PointRecord
from .overpass import SOURCE_CRS


POI_LAYER = "poi"
REFERENCE_LAYER = "reference"


@dataclass(frozen=True, slots=True)
class PointLayers:
    points_of_interest: gpd.GeoDataFrame
    reference_site: gpd.GeoDataFrame

    def combined(self) -> gpd.GeoDataFrame:
        frames = [self.points_of_interest, self.reference_site]
        return gpd.GeoDataFrame(
            pd.concat(frames, ignore_index=True),
            geometry="geometry",
            crs=SOURCE_CRS,
        )


def records_to_layer(records: Sequence[PointRecord], layer: str) -> gpd.GeoDataFrame:
    """One point row per record, in input order, tagged with `layer`."""
    return gpd.GeoDataFrame(
        {
            "name": [record.name for record in records],
            "layer": [layer] * len(records),
        },
        geometry=gpd.points_from_xy(
            [record.lon for record in records],
            [record.lat for record in records],
        ),
        crs=SOURCE_CRS,
    )


def build_point_layers(
    points_of_interest: Sequence[PointRecord],
    reference_site: Sequence[PointRecord],
) -> PointLayers:
    return PointLayers(
        points_of_interest=records_to_layer(points_of_interest, POI_LAYER),
        reference_site=records_to_layer(reference_site, REFERENCE_LAYER),
    )
