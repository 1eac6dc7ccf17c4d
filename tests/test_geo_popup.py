import pytest

from carpoolmap.core.geo import haversine_km, haversine_m
from carpoolmap.core.popup import roster_near_point
from carpoolmap.domain.models import GeoJsonUsers, RosterFeature

LNG, LAT = -71.088748, 42.33907


def test_haversine_one_degree_latitude():
    assert haversine_km(42.0, -71.0, 43.0, -71.0) == pytest.approx(111.19, rel=1e-3)
    assert haversine_m(LAT, LNG, LAT, LNG) == 0.0


def test_popup_returns_nearest_first():
    roster = GeoJsonUsers(
        features=(
            RosterFeature(id="far", lng=LNG + 0.004, lat=LAT),  # ~330 m
            RosterFeature(id="near", lng=LNG, lat=LAT + 0.001),  # ~111 m
            RosterFeature(id="out", lng=LNG + 0.05, lat=LAT),  # ~4 km
        )
    )
    found = roster_near_point(roster, LNG, LAT, radius_m=500)
    assert [f.id for f in found] == ["near", "far"]


def test_popup_empty_cases():
    assert roster_near_point(GeoJsonUsers(), LNG, LAT, 500) == []
    lone = GeoJsonUsers(features=(RosterFeature(id="x", lng=LNG + 1, lat=LAT),))
    assert roster_near_point(lone, LNG, LAT, 500) == []
