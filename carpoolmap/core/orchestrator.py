"""
Synchronization orchestrator. Single explicit state machine over
(viewer, roster, selection, addresses, requests, map readiness).

Every transition runs to completion synchronously, is safe to re-run, and issues
the mutations for the previous state (temporary marker teardown) before the ones
for the new state. Identical route points are not redrawn.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence, Tuple

from carpoolmap.core.bootstrap import MapBootstrapGuard
from carpoolmap.core.markers import MarkerLifecycleManager
from carpoolmap.domain.models import (
    CarpoolAddress,
    EnhancedPublicUser,
    GeoJsonUsers,
    NULL_ADDRESS,
    PublicUser,
    RequestSets,
    Role,
    RoutePoints,
    SidebarContext,
    User,
    UserCoord,
)
from carpoolmap.domain.route_points import (
    MissingCoordinatesError,
    has_override,
    resolve_default_points,
    resolve_points,
    viewer_leg,
)
from carpoolmap.domain.selection import resolve_selection

logger = logging.getLogger(__name__)


class RouteDrawer(Protocol):
    def draw(self, points: RoutePoints) -> bool:
        """
        Request directions for `points` and draw them (asynchronous, fire-and-forget).
        False when the request could not be issued; the route is then cleared.
        """
        ...

    def clear(self) -> None:
        ...


@dataclass(frozen=True)
class MapState:
    """Read-only view of the orchestrator, for the HTTP layer and debugging."""
    ready: bool
    selected_user_id: Optional[str]
    other_user_id: Optional[str]
    temporary_marker_user_id: Optional[str]
    roster_ids: Tuple[str, ...]
    points: Optional[RoutePoints]
    sidebar: SidebarContext


class SyncOrchestrator:
    def __init__(
        self,
        guard: MapBootstrapGuard,
        route_drawer: RouteDrawer,
        markers: Optional[MarkerLifecycleManager] = None,
    ):
        self.guard = guard
        self.markers = markers or MarkerLifecycleManager(guard)
        self._route_drawer = route_drawer

        self.viewer: Optional[User] = None
        self.roster: Optional[GeoJsonUsers] = None
        self.requests = RequestSets()
        self.favorites: Sequence[PublicUser] = ()
        self.selected_user_id: Optional[str] = None
        self.other_user: Optional[PublicUser] = None
        self.start_address: CarpoolAddress = NULL_ADDRESS
        self.company_address: CarpoolAddress = NULL_ADDRESS
        self.sidebar = SidebarContext.EXPLORE
        self.points: Optional[RoutePoints] = None

    @property
    def ready(self) -> bool:
        return self.guard.ready

    @property
    def selected_user(self) -> Optional[EnhancedPublicUser]:
        return resolve_selection(self.selected_user_id, self.requests, self.favorites)

    def state(self) -> MapState:
        temp = self.markers.active_temporary if self.markers.temporary_active else None
        return MapState(
            ready=self.ready,
            selected_user_id=self.selected_user_id,
            other_user_id=self.other_user.id if self.other_user else None,
            temporary_marker_user_id=temp.id if temp else None,
            roster_ids=tuple(sorted(self.markers.roster_ids)),
            points=self.points,
            sidebar=self.sidebar,
        )

    # --- Inputs ---

    def on_viewer_updated(self, viewer: User) -> None:
        """Initial fetch or an externally pushed profile update."""
        self.viewer = viewer
        if not self.ready:
            return
        self._sync_viewer_markers()
        self._refresh_route()

    def on_map_loaded(self) -> None:
        """Load completion: replay everything that was dropped while not ready."""
        logger.debug("replaying state on map load")
        self._sync_viewer_markers()
        if self.roster is not None:
            self.on_roster_updated(self.roster)
        else:
            self._refresh_route()

    def on_roster_updated(self, roster: GeoJsonUsers) -> None:
        self.roster = roster
        if not self.ready:
            return
        # 1) marcador temporal obsoleto, 2) roster exacto, 3) ruta
        self.markers.reconcile_roster(roster)
        self.markers.refresh_roster(roster)
        self._refresh_route()

    def on_requests_updated(self, requests: RequestSets) -> None:
        was_showing_selection = (
            self.other_user is not None and self.other_user.id == self.selected_user_id
        )
        self.requests = requests
        if self.selected_user_id is None:
            return
        # El registro de la contraparte puede haber cambiado: se vuelve a resolver
        if was_showing_selection or (self.selected_user is not None and self.other_user is None):
            self.other_user = None
            self._refresh_route()

    def on_favorites_updated(self, favorites: Sequence[PublicUser]) -> None:
        # Solo afecta al enriquecimiento; nada que dibujar
        self.favorites = tuple(favorites)

    def on_user_select(self, user_id: Optional[str]) -> None:
        """Select a candidate by id; "" or None clears the selection."""
        self.selected_user_id = user_id or None
        self.other_user = None
        self._refresh_route()

    def on_sidebar_changed(self, sidebar: SidebarContext) -> None:
        """Selection is scoped to one sidebar context."""
        if sidebar == self.sidebar:
            return
        self.sidebar = sidebar
        prev_id = self.selected_user_id
        self.selected_user_id = None
        if self.other_user is not None and self.other_user.id == prev_id:
            self.other_user = None
        self._refresh_route()

    def on_address_changed(
        self,
        start: Optional[CarpoolAddress] = None,
        company: Optional[CarpoolAddress] = None,
    ) -> None:
        if start is not None:
            self.start_address = start
        if company is not None:
            self.company_address = company
        if self.viewer is None or not self.ready:
            return
        if self.viewer.role == Role.VIEWER:
            self._sync_viewer_markers()
        self._refresh_route()

    # --- Candidate route ---

    def on_view_route_click(self, viewer: User, candidate: PublicUser) -> None:
        """Show `candidate` and the route between the viewer and them."""
        if not self.ready or self.roster is None:
            logger.debug("view route for %s dropped: map not ready or no roster", candidate.id)
            return

        shown = self.markers.show_candidate(candidate, self.roster, self.selected_user_id)
        if not shown:
            self.other_user = None
            self._render_fallback(exclude_id=candidate.id)
            return

        try:
            leg = viewer_leg(viewer, self.start_address, self.company_address)
            points = resolve_points(viewer, candidate, self.start_address, self.company_address)
        except MissingCoordinatesError as e:
            logger.info("route for %s not drawn: %s", candidate.id, e)
            self.markers.clear_temporary()
            self.other_user = None
            self._render_default_route()
            return

        self.other_user = candidate
        if viewer.role != Role.VIEWER:
            self.markers.place_viewer(leg)
        self._draw(points)

    # --- Internals ---

    def _refresh_route(self) -> None:
        """Candidate shown explicitly, else the selected user, else the self-only route."""
        if self.viewer is None or not self.ready:
            return
        if self.other_user is not None:
            self.on_view_route_click(self.viewer, self.other_user)
            return
        self._render_fallback(exclude_id=None)

    def _render_fallback(self, exclude_id: Optional[str]) -> None:
        selected = self.selected_user
        if self.viewer is not None and selected is not None and selected.id != exclude_id:
            self.on_view_route_click(self.viewer, selected)
            return
        self._render_default_route()

    def _render_default_route(self) -> None:
        if self.viewer is None or not self.ready:
            return
        self.markers.clear_temporary()
        self._sync_viewer_markers()
        points = resolve_default_points(self.viewer, self.start_address, self.company_address)
        if points is None:
            self._clear_route()
        else:
            self._draw(points)

    def _sync_viewer_markers(self) -> None:
        """Viewer's own markers: stored commute, or the chosen addresses for VIEWER."""
        viewer = self.viewer
        if viewer is None or not self.ready:
            return
        if viewer.role == Role.VIEWER:
            if has_override(self.start_address, self.company_address):
                self.markers.place_viewer(
                    UserCoord(
                        start_lng=self.start_address.center[0],
                        start_lat=self.start_address.center[1],
                        end_lng=self.company_address.center[0],
                        end_lat=self.company_address.center[1],
                    )
                )
            else:
                self.markers.clear_viewer()
            return
        if viewer.start is None or viewer.company is None:
            self.markers.clear_viewer()
            return
        self.markers.place_viewer(
            UserCoord(
                start_lng=viewer.start[0],
                start_lat=viewer.start[1],
                end_lng=viewer.company[0],
                end_lat=viewer.company[1],
            )
        )

    def _draw(self, points: RoutePoints) -> None:
        if points == self.points:
            return
        # Solo se registra si la petición salió; si no, se reintenta en la próxima transición
        self.points = points if self._route_drawer.draw(points) else None

    def _clear_route(self) -> None:
        if self.points is None:
            return
        self.points = None
        self._route_drawer.clear()
