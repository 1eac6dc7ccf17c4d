"""
Route point resolver. Pure, deterministic. Waypoint order depends on the viewer's role.

The directions collaborator turns the waypoint sequence into the drawn path;
this module only decides which endpoints take part and in which order.
"""

from typing import Optional

from carpoolmap.domain.models import (
    CarpoolAddress,
    LngLat,
    NULL_ADDRESS,
    PublicUser,
    Role,
    RoutePoints,
    User,
    UserCoord,
)


class MissingCoordinatesError(ValueError):
    """A waypoint needed for the route has no coordinates."""


def has_override(
    start_override: CarpoolAddress = NULL_ADDRESS,
    company_override: CarpoolAddress = NULL_ADDRESS,
) -> bool:
    """Override only counts when both addresses were chosen."""
    return not start_override.is_null and not company_override.is_null


def viewer_leg(
    viewer: User,
    start_override: CarpoolAddress = NULL_ADDRESS,
    company_override: CarpoolAddress = NULL_ADDRESS,
) -> Optional[UserCoord]:
    """
    Viewer's own start/company for a candidate route.
    None for VIEWER without override (no fixed commute).
    """
    if has_override(start_override, company_override):
        start, end = start_override.center, company_override.center
    elif viewer.role == Role.VIEWER:
        return None
    else:
        start, end = viewer.start, viewer.company
    if start is None or end is None:
        raise MissingCoordinatesError(f"viewer {viewer.id} has no start/company coordinates")
    return UserCoord(start_lng=start[0], start_lat=start[1], end_lng=end[0], end_lat=end[1])


def _require(point: Optional[LngLat], what: str, user_id: str) -> LngLat:
    if point is None:
        raise MissingCoordinatesError(f"{what} missing for user {user_id}")
    return point


def resolve_points(
    viewer: User,
    candidate: PublicUser,
    start_override: CarpoolAddress = NULL_ADDRESS,
    company_override: CarpoolAddress = NULL_ADDRESS,
) -> RoutePoints:
    """
    RIDER:                      [cand.start_poi, viewer.start, viewer.company, cand.company]
    DRIVER o VIEWER + override: [viewer.start, cand.start_poi, cand.company, viewer.company]
    VIEWER sin override:        [cand.start_poi, cand.company]

    Raises MissingCoordinatesError if a waypoint has no coordinates.
    """
    cand_start = _require(candidate.start_poi, "start POI", candidate.id)
    cand_company = _require(candidate.company, "company", candidate.id)
    leg = viewer_leg(viewer, start_override, company_override)

    if viewer.role == Role.RIDER and leg is not None:
        return (cand_start, leg.start, leg.end, cand_company)
    if leg is not None and (viewer.role == Role.DRIVER or has_override(start_override, company_override)):
        return (leg.start, cand_start, cand_company, leg.end)
    return (cand_start, cand_company)


def resolve_default_points(
    viewer: User,
    start_override: CarpoolAddress = NULL_ADDRESS,
    company_override: CarpoolAddress = NULL_ADDRESS,
) -> Optional[RoutePoints]:
    """
    Self-only route [start, company] when no candidate is shown.
    VIEWER uses the chosen addresses; None when there is nothing to draw.
    """
    if viewer.role == Role.VIEWER:
        if not has_override(start_override, company_override):
            return None
        return (start_override.center, company_override.center)
    if viewer.start is None or viewer.company is None:
        return None
    return (viewer.start, viewer.company)
