"""
Payload loaders. Raw backend dicts (camelCase) -> domain models.
Invalid payloads raise ValueError.
"""

from datetime import date
from typing import Any, Optional

from shapely.errors import ShapelyError
from shapely.geometry import Point, mapping, shape

from carpoolmap.domain.models import (
    CarpoolFeature,
    GeoJsonUsers,
    PublicUser,
    Request,
    RequestSets,
    Role,
    RosterFeature,
    Status,
    User,
)


def _opt_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


def _parse_date(value: Any) -> Optional[date]:
    """'YYYY-MM-DD' o ISO datetime ('2024-01-15T00:00:00.000Z'). None si vacío."""
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        raise ValueError(f"invalid date {value!r}") from None


def load_public_user(raw: dict) -> PublicUser:
    if not raw.get("id"):
        raise ValueError("public user without id")
    return PublicUser(
        id=str(raw["id"]),
        role=Role(raw.get("role", Role.RIDER.value)),
        name=str(raw.get("name") or ""),
        start_lat=_opt_float(raw.get("startCoordLat")),
        start_lng=_opt_float(raw.get("startCoordLng")),
        start_poi_lat=_opt_float(raw.get("startPOICoordLat")),
        start_poi_lng=_opt_float(raw.get("startPOICoordLng")),
        company_lat=_opt_float(raw.get("companyCoordLat")),
        company_lng=_opt_float(raw.get("companyCoordLng")),
    )


def load_user(raw: dict) -> User:
    if not raw.get("id"):
        raise ValueError("user without id")
    return User(
        id=str(raw["id"]),
        role=Role(raw.get("role", Role.VIEWER.value)),
        status=Status(raw.get("status", Status.ACTIVE.value)),
        start_lat=_opt_float(raw.get("startCoordLat")),
        start_lng=_opt_float(raw.get("startCoordLng")),
        company_lat=_opt_float(raw.get("companyCoordLat")),
        company_lng=_opt_float(raw.get("companyCoordLng")),
        days_working=str(raw.get("daysWorking") or ""),
        start_time=raw.get("startTime"),
        end_time=raw.get("endTime"),
        coop_start_date=_parse_date(raw.get("coopStartDate")),
        coop_end_date=_parse_date(raw.get("coopEndDate")),
    )


def load_request(raw: dict) -> Request:
    from_user = load_public_user(raw.get("fromUser") or {})
    to_user = load_public_user(raw.get("toUser") or {})
    return Request(
        id=str(raw.get("id") or ""),
        from_user_id=str(raw.get("fromUserId") or from_user.id),
        to_user_id=str(raw.get("toUserId") or to_user.id),
        from_user=from_user,
        to_user=to_user,
    )


def load_requests(raw: dict) -> RequestSets:
    """{"sent": [...], "received": [...]} -> RequestSets."""
    return RequestSets(
        sent=tuple(load_request(r) for r in raw.get("sent", [])),
        received=tuple(load_request(r) for r in raw.get("received", [])),
    )


def load_roster(raw: dict) -> GeoJsonUsers:
    """
    GeoJSON FeatureCollection -> GeoJsonUsers. Solo geometrías Point;
    features sin properties.id se rechazan. Ids repetidos: gana el primero.
    """
    if raw.get("type") != "FeatureCollection":
        raise ValueError(f"expected FeatureCollection, got {raw.get('type')!r}")
    features = []
    seen: set[str] = set()
    for f in raw.get("features", []):
        if not isinstance(f, dict):
            raise ValueError(f"roster feature must be an object, got {type(f).__name__}")
        props = f.get("properties") or {}
        user_id = props.get("id")
        if not user_id:
            raise ValueError("roster feature without properties.id")
        geometry = f.get("geometry")
        if not geometry:
            raise ValueError(f"roster feature {user_id} without geometry")
        try:
            geom = shape(geometry)
        except (ShapelyError, TypeError, KeyError, AttributeError) as e:
            raise ValueError(f"roster feature {user_id} has invalid geometry: {e}") from e
        if not isinstance(geom, Point):
            raise ValueError(f"roster feature {user_id} is not a Point ({geom.geom_type})")
        if user_id in seen:
            continue
        seen.add(user_id)
        features.append(
            RosterFeature(
                id=str(user_id),
                lng=float(geom.x),
                lat=float(geom.y),
                role=Role(props.get("role", Role.RIDER.value)),
                name=str(props.get("name") or ""),
            )
        )
    return GeoJsonUsers(features=tuple(features))


def roster_to_geojson(roster: GeoJsonUsers) -> dict:
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": mapping(Point(f.lng, f.lat)),
                "properties": {"id": f.id, "role": f.role.value, "name": f.name},
            }
            for f in roster.features
        ],
    }


def load_address_features(raw: dict) -> list[CarpoolFeature]:
    """Geocoding response ({"features": [...]}) -> suggestions."""
    out: list[CarpoolFeature] = []
    for f in raw.get("features", []):
        center = f.get("center")
        if not center or len(center) != 2:
            continue
        out.append(
            CarpoolFeature(
                id=str(f.get("id") or ""),
                place_name=str(f.get("place_name") or ""),
                center=(float(center[0]), float(center[1])),
            )
        )
    return out
