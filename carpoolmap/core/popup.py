"""
Popup lookup: roster candidates under a map click.
KDTree over a local tangent plane centred on the click.
"""

from typing import List

import numpy as np
from scipy.spatial import KDTree

from carpoolmap.core.geo import lng_lat_to_meters
from carpoolmap.domain.models import GeoJsonUsers, RosterFeature


def roster_near_point(
    roster: GeoJsonUsers,
    lng: float,
    lat: float,
    radius_m: float,
) -> List[RosterFeature]:
    """Features within `radius_m` of (lng, lat), nearest first."""
    if not roster.features:
        return []
    lngs = np.array([f.lng for f in roster.features])
    lats = np.array([f.lat for f in roster.features])
    X = lng_lat_to_meters(lngs, lats, origin_lat=lat, origin_lng=lng)
    tree = KDTree(X)
    idx = tree.query_ball_point([0.0, 0.0], r=radius_m)
    if not idx:
        return []
    dists = np.hypot(X[idx, 0], X[idx, 1])
    order = np.argsort(dists, kind="stable")
    return [roster.features[idx[i]] for i in order]
