"""
Folium map surface. Retained model of markers + route, rendered to folium on demand.

Folium maps are static documents, so the "live" state lives here and every
render builds a fresh folium.Map from it.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Sequence, Tuple

import folium

from carpoolmap.domain.models import LngLat, MarkerKind

logger = logging.getLogger(__name__)

# estilo por tipo de marcador
_MARKER_STYLE = {
    MarkerKind.VIEWER_START: {"color": "darkblue", "icon": "circle"},
    MarkerKind.VIEWER_COMPANY: {"color": "darkblue", "icon": "building"},
    MarkerKind.TEMPORARY: {"color": "orange", "icon": "user"},
}
_ROUTE_COLOR = "#3b82f6"


class FoliumMapSurface:
    def __init__(
        self,
        container: Any,
        center: LngLat,
        zoom: int = 8,
        tiles: str = "cartodbpositron",
    ):
        self.container = container
        self.center = center
        self.zoom = zoom
        self.tiles = tiles
        self.max_zoom = 18
        self.markers: Dict[str, Tuple[LngLat, MarkerKind]] = {}
        self.route: List[LngLat] = []
        self.loaded = False
        self._load_callbacks: List[Callable[[], None]] = []

    # --- MapSurface ---

    def place_marker(self, coords: LngLat, kind: MarkerKind, marker_id: str) -> None:
        self.markers[marker_id] = (coords, kind)

    def remove_marker(self, marker_id: str) -> None:
        self.markers.pop(marker_id, None)

    def set_route(self, coordinates: Sequence[LngLat]) -> None:
        self.route = list(coordinates)

    def set_max_zoom(self, zoom: int) -> None:
        self.max_zoom = zoom

    def on_load(self, callback: Callable[[], None]) -> None:
        """
        No tiles to fetch: inside a running loop the load completes on the next
        iteration; otherwise the caller fires it with load().
        """
        if self.loaded:
            callback()
            return
        self._load_callbacks.append(callback)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        loop.call_soon(self.load)

    def load(self) -> None:
        """Fire the one-shot load completion."""
        if self.loaded:
            return
        self.loaded = True
        callbacks, self._load_callbacks = self._load_callbacks, []
        for cb in callbacks:
            cb()

    # --- Render ---

    def to_folium(self) -> folium.Map:
        lng, lat = self.center
        m = folium.Map(
            location=(lat, lng),
            zoom_start=self.zoom,
            max_zoom=self.max_zoom,
            tiles=self.tiles,
        )
        for marker_id, ((mlng, mlat), kind) in self.markers.items():
            if kind == MarkerKind.ROSTER:
                folium.CircleMarker(
                    location=(mlat, mlng),
                    radius=5,
                    color="blue",
                    fill=True,
                    fill_opacity=0.8,
                    popup=marker_id,
                ).add_to(m)
                continue
            style = _MARKER_STYLE[kind]
            folium.Marker(
                (mlat, mlng),
                popup=marker_id,
                icon=folium.Icon(color=style["color"], icon=style["icon"], prefix="fa"),
            ).add_to(m)
        if len(self.route) >= 2:
            folium.PolyLine(
                [(p[1], p[0]) for p in self.route],
                color=_ROUTE_COLOR,
                weight=4,
                opacity=0.8,
            ).add_to(m)
        return m

    def save(self, path: str | Path) -> Path:
        out = Path(path)
        self.to_folium().save(str(out))
        logger.info("map saved to %s (%d markers)", out, len(self.markers))
        return out


def folium_map_factory(tiles: str = "cartodbpositron") -> Callable[[Any, LngLat, int], FoliumMapSurface]:
    """MapFactory for MapBootstrapGuard."""

    def _build(container: Any, center: LngLat, zoom: int) -> FoliumMapSurface:
        return FoliumMapSurface(container, center, zoom=zoom, tiles=tiles)

    return _build
