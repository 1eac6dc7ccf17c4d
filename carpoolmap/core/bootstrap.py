"""
Map bootstrap guard. One map per session; operations gated until it has loaded.
"""

import logging
from typing import Any, Callable, Optional

from carpoolmap.core.map_surface import MapSurface
from carpoolmap.domain.models import LngLat, Role, User

logger = logging.getLogger(__name__)

# factory(container, center, zoom) -> MapSurface
MapFactory = Callable[[Any, LngLat, int], MapSurface]


class MapBootstrapGuard:
    """
    initialized: one-shot, set before the asynchronous load completes so a second
    trigger in the meantime does not build another map.
    ready: set only by the load completion.
    """

    def __init__(
        self,
        factory: MapFactory,
        viewer_center: LngLat,
        initial_zoom: int = 8,
        max_zoom: int = 13,
    ):
        self._factory = factory
        self._viewer_center = viewer_center
        self._initial_zoom = initial_zoom
        self._max_zoom = max_zoom
        self.initialized = False
        self.ready = False
        self.surface: Optional[MapSurface] = None

    def center_for(self, viewer: User) -> LngLat:
        # VIEWER no tiene oficina: centro fijo del campus
        if viewer.role == Role.VIEWER or viewer.company is None:
            return self._viewer_center
        return viewer.company

    def try_initialize(
        self,
        container: Any,
        viewer: Optional[User],
        on_ready: Optional[Callable[[], None]] = None,
    ) -> Optional[MapSurface]:
        """Build the map once. Returns the new surface, or None when skipped."""
        if self.initialized:
            return None
        if not container or viewer is None:
            logger.debug("map bootstrap skipped: container=%r viewer=%r", container, viewer)
            return None
        self.initialized = True
        surface = self._factory(container, self.center_for(viewer), self._initial_zoom)
        self.surface = surface

        def _loaded() -> None:
            surface.set_max_zoom(self._max_zoom)
            self.ready = True
            logger.info("map loaded for viewer %s", viewer.id)
            if on_ready is not None:
                on_ready()

        surface.on_load(_loaded)
        return surface
