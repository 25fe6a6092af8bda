from __future__ import annotations

from coastmap.layers import POI_LAYER, REFERENCE_LAYER, build_point_layers
from coastmap.models import PointRecord

POINTS = (
    PointRecord("Port-Cros Island", 6.40, 43.01),
    PointRecord("Porquerolles Island", 6.20, 43.00),
    PointRecord("Levant Island", 6.46, 43.025),
    PointRecord("Cap Bénat", 6.35, 43.10),
)
REFERENCE = (PointRecord("Reference colony", 6.382, 43.0115),)


def test_point_layers_preserve_records_exactly() -> None:
    layers = build_point_layers(POINTS, REFERENCE)

    poi = layers.points_of_interest
    assert list(poi["name"]) == [record.name for record in POINTS]
    assert [(geom.x, geom.y) for geom in poi.geometry] == [(r.lon, r.lat) for r in POINTS]
    assert str(poi.crs) == "EPSG:4326"

    ref = layers.reference_site
    assert list(ref["name"]) == ["Reference colony"]
    assert [(geom.x, geom.y) for geom in ref.geometry] == [(6.382, 43.0115)]


def test_reference_site_is_distinguishable_by_tag() -> None:
    combined = build_point_layers(POINTS, REFERENCE).combined()

    assert len(combined) == 5
    reference_rows = combined[combined["layer"] == REFERENCE_LAYER]
    assert len(reference_rows) == 1
    assert reference_rows.iloc[0]["name"] == "Reference colony"
    assert set(combined[combined["layer"] == POI_LAYER]["name"]) == {r.name for r in POINTS}
