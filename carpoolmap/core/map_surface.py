"""
Map surface protocol. Imperative, synchronous drawing primitives against the live map.
Implementación por defecto: FoliumMapSurface (infrastructure).
"""

from typing import Callable, Protocol, Sequence

from carpoolmap.domain.models import LngLat, MarkerKind


class MapSurface(Protocol):
    """Rendering surface with no transactional model: every call is a side effect."""

    def place_marker(self, coords: LngLat, kind: MarkerKind, marker_id: str) -> None:
        """Place or move the marker `marker_id`."""
        ...

    def remove_marker(self, marker_id: str) -> None:
        """Remove `marker_id`; unknown ids are ignored."""
        ...

    def set_route(self, coordinates: Sequence[LngLat]) -> None:
        """Replace the drawn route. Empty sequence clears it."""
        ...

    def set_max_zoom(self, zoom: int) -> None:
        ...

    def on_load(self, callback: Callable[[], None]) -> None:
        """Register a callback for the one-shot load completion."""
        ...
