"""
Marker lifecycle. Owns every marker this core puts on the map:

- roster markers: always-visible candidates, mirrored from the GeoJSON snapshot;
- one temporary marker at most, for a selected candidate absent from the roster;
- the viewer's own start/company markers.

Calls made before the map is ready are dropped (no-op, not an error).
"""

import logging
from typing import Dict, Optional

from carpoolmap.core.bootstrap import MapBootstrapGuard
from carpoolmap.core.map_surface import MapSurface
from carpoolmap.domain.models import (
    GeoJsonUsers,
    LngLat,
    MarkerKind,
    PublicUser,
    UserCoord,
)

logger = logging.getLogger(__name__)

VIEWER_START_ID = "viewer:start"
VIEWER_COMPANY_ID = "viewer:company"


def roster_marker_id(user_id: str) -> str:
    return f"roster:{user_id}"


def temporary_marker_id(user_id: str) -> str:
    return f"temporary:{user_id}"


class MarkerLifecycleManager:
    def __init__(self, guard: MapBootstrapGuard):
        self._guard = guard
        self.active_temporary: Optional[PublicUser] = None
        self.temporary_active = False
        self._roster: Dict[str, LngLat] = {}
        self._viewer: Optional[UserCoord] = None

    def _surface(self) -> Optional[MapSurface]:
        if not self._guard.ready:
            return None
        return self._guard.surface

    @property
    def roster_ids(self) -> frozenset:
        return frozenset(self._roster)

    # --- Temporary marker ---

    def show_candidate(
        self,
        candidate: PublicUser,
        roster: GeoJsonUsers,
        selected_user_id: Optional[str],
    ) -> bool:
        """
        Make `candidate` visible. Returns True when it is on the map afterwards
        (roster marker or temporary marker).
        """
        surface = self._surface()
        if surface is None:
            logger.debug("show_candidate(%s) dropped: map not ready", candidate.id)
            return False

        prev = self.active_temporary
        if self.temporary_active and prev is not None and (
            prev.id != candidate.id or roster.contains(prev.id)
        ):
            self.clear_temporary()

        if roster.contains(candidate.id):
            return True
        if selected_user_id != candidate.id:
            return False
        if candidate.company is None:
            logger.info("candidate %s has no company coordinates; no temporary marker", candidate.id)
            return False

        # Mismo candidato: place_marker mueve el marcador existente
        surface.place_marker(candidate.company, MarkerKind.TEMPORARY, temporary_marker_id(candidate.id))
        self.active_temporary = candidate
        self.temporary_active = True
        return True

    def clear_temporary(self) -> None:
        """Idempotent."""
        if not self.temporary_active or self.active_temporary is None:
            self.active_temporary = None
            self.temporary_active = False
            return
        surface = self._surface()
        if surface is None:
            logger.debug("clear_temporary dropped: map not ready")
            return
        surface.remove_marker(temporary_marker_id(self.active_temporary.id))
        self.active_temporary = None
        self.temporary_active = False

    def reconcile_roster(self, roster: GeoJsonUsers) -> None:
        """Drop the temporary marker once its candidate shows up in the roster."""
        if self.temporary_active and self.active_temporary is not None:
            if roster.contains(self.active_temporary.id):
                self.clear_temporary()

    # --- Roster markers ---

    def refresh_roster(self, roster: GeoJsonUsers) -> None:
        """Make the roster marker set equal to the snapshot: add missing, remove stale."""
        surface = self._surface()
        if surface is None:
            logger.debug("refresh_roster dropped: map not ready")
            return
        wanted = {f.id: f.coords for f in roster.features}
        for user_id in [uid for uid in self._roster if uid not in wanted]:
            surface.remove_marker(roster_marker_id(user_id))
            del self._roster[user_id]
        for user_id, coords in wanted.items():
            if self._roster.get(user_id) == coords:
                continue
            surface.place_marker(coords, MarkerKind.ROSTER, roster_marker_id(user_id))
            self._roster[user_id] = coords

    # --- Viewer markers ---

    def place_viewer(self, coord: Optional[UserCoord]) -> None:
        """Viewer's own start/company markers. None removes them."""
        if coord is None:
            self.clear_viewer()
            return
        surface = self._surface()
        if surface is None:
            logger.debug("place_viewer dropped: map not ready")
            return
        if coord == self._viewer:
            return
        surface.place_marker(coord.start, MarkerKind.VIEWER_START, VIEWER_START_ID)
        surface.place_marker(coord.end, MarkerKind.VIEWER_COMPANY, VIEWER_COMPANY_ID)
        self._viewer = coord

    def clear_viewer(self) -> None:
        if self._viewer is None:
            return
        surface = self._surface()
        if surface is None:
            return
        surface.remove_marker(VIEWER_START_ID)
        surface.remove_marker(VIEWER_COMPANY_ID)
        self._viewer = None
