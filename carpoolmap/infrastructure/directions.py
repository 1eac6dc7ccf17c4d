"""
Directions adapter and route drawing.

Implementación por defecto: StraightLineDirections (segmentos rectos densificados
con numpy, sin servicio externo). Any service with `route(points)` can be injected.
"""

import asyncio
import logging
from typing import Callable, List, Optional, Protocol, Set

import numpy as np

from carpoolmap.core.geo import haversine_m
from carpoolmap.core.map_surface import MapSurface
from carpoolmap.domain.models import LngLat, RoutePoints

logger = logging.getLogger(__name__)


class DirectionsService(Protocol):
    async def route(self, points: RoutePoints) -> List[LngLat]:
        """Path through the waypoints, as (lng, lat) pairs."""
        ...


class StraightLineDirections:
    """Straight segments between consecutive waypoints, one vertex every `step_m` meters."""

    def __init__(self, step_m: float = 250.0, max_vertices_per_segment: int = 200):
        self.step_m = max(1.0, step_m)
        self.max_vertices_per_segment = max(2, max_vertices_per_segment)

    async def route(self, points: RoutePoints) -> List[LngLat]:
        if len(points) < 2:
            return list(points)
        path: List[LngLat] = [points[0]]
        for (lng1, lat1), (lng2, lat2) in zip(points[:-1], points[1:]):
            dist = haversine_m(lat1, lng1, lat2, lng2)
            n = int(min(self.max_vertices_per_segment, max(2, np.ceil(dist / self.step_m) + 1)))
            lngs = np.linspace(lng1, lng2, n)
            lats = np.linspace(lat1, lat2, n)
            path.extend((float(x), float(y)) for x, y in zip(lngs[1:], lats[1:]))
        return path


async def compute_and_draw_route(
    points: RoutePoints,
    surface: MapSurface,
    directions: DirectionsService,
    is_current: Callable[[], bool] = lambda: True,
) -> bool:
    """
    Ask the directions service for the path and draw it.
    Failures are logged and swallowed: a transient routing error must not block markers.
    Returns True when the route was drawn.
    """
    try:
        coordinates = await directions.route(points)
    except Exception:
        logger.warning("directions failed for %d waypoints", len(points), exc_info=True)
        # la ruta anterior ya no corresponde al estado actual
        if is_current():
            surface.set_route([])
        return False
    if not is_current():
        logger.debug("directions result superseded; not drawn")
        return False
    surface.set_route(coordinates)
    return True


class DirectionsRouteDrawer:
    """
    RouteDrawer for the orchestrator. Each draw gets a token; a result that is no
    longer the latest request is not applied.
    """

    def __init__(self, surface_provider: Callable[[], Optional[MapSurface]], directions: DirectionsService):
        self._surface_provider = surface_provider
        self._directions = directions
        self._token = 0
        self._tasks: Set[asyncio.Task] = set()

    def draw(self, points: RoutePoints) -> bool:
        surface = self._surface_provider()
        if surface is None:
            return False
        self._token += 1
        token = self._token
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("no running loop; route for %d waypoints not requested", len(points))
            surface.set_route([])
            return False
        task = loop.create_task(
            compute_and_draw_route(points, surface, self._directions, lambda: token == self._token)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    def clear(self) -> None:
        self._token += 1
        surface = self._surface_provider()
        if surface is not None:
            surface.set_route([])

    async def wait_idle(self) -> None:
        """Wait for in-flight draws (shutdown, tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
