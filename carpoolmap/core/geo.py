"""
Geo helpers. Haversine + local tangent plane, shared by directions and popup lookup.
"""

import math

import numpy as np

R_KM = 6371.0
M_PER_DEG_LAT = 111320.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    lat1_r = math.radians(lat1)
    lat2_r = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlon / 2) ** 2
    )
    c = 2 * math.asin(min(1.0, math.sqrt(a)))
    return R_KM * c


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    return haversine_km(lat1, lon1, lat2, lon2) * 1000.0


def lng_lat_to_meters(lngs: np.ndarray, lats: np.ndarray, origin_lat: float, origin_lng: float) -> np.ndarray:
    """Local tangent plane with origin at (origin_lat, origin_lng). Returns (N, 2) in meters."""
    cos_lat = math.cos(math.radians(origin_lat))
    y_m = (np.asarray(lats, dtype=float) - origin_lat) * M_PER_DEG_LAT
    x_m = (np.asarray(lngs, dtype=float) - origin_lng) * M_PER_DEG_LAT * cos_lat
    return np.column_stack([y_m, x_m])
