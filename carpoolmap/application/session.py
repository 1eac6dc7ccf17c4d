"""
Map session use case. Wires backend collaborators, debouncers and the orchestrator.
No FastAPI.

Flow:
  start -> viewer + favorites + requests -> filter sync from profile -> map bootstrap
        -> first roster.
  set_filters -> debounce 300 ms -> fetch_roster -> orchestrator (last write wins).
  type_*_address -> debounce 250 ms -> search_address -> suggestions.
"""

import asyncio
import logging
from typing import Any, Coroutine, List, Optional, Set

from carpoolmap.application.config import DEFAULT_MAP_SETTINGS, MapSettings, initial_filters
from carpoolmap.core.bootstrap import MapBootstrapGuard, MapFactory
from carpoolmap.core.debounce import Debouncer
from carpoolmap.core.map_surface import MapSurface
from carpoolmap.core.orchestrator import MapState, SyncOrchestrator
from carpoolmap.core.popup import roster_near_point
from carpoolmap.domain.enrichment import enrich, enrich_all, enrich_received, enrich_sent
from carpoolmap.domain.filters import sync_filters_from_viewer
from carpoolmap.domain.models import (
    CarpoolAddress,
    CarpoolFeature,
    EnhancedPublicUser,
    FiltersState,
    PublicUser,
    Role,
    SidebarContext,
    Status,
    User,
)
from carpoolmap.infrastructure.backend import AddressSearch, MatchingBackend
from carpoolmap.infrastructure.directions import (
    DirectionsRouteDrawer,
    DirectionsService,
    StraightLineDirections,
)
from carpoolmap.infrastructure.folium_surface import folium_map_factory

logger = logging.getLogger(__name__)


class MapSession:
    def __init__(
        self,
        backend: MatchingBackend,
        address_search: AddressSearch,
        settings: MapSettings = DEFAULT_MAP_SETTINGS,
        map_factory: Optional[MapFactory] = None,
        directions: Optional[DirectionsService] = None,
    ):
        self.backend = backend
        self.address_search = address_search
        self.settings = settings
        self.guard = MapBootstrapGuard(
            map_factory or folium_map_factory(settings.map_tiles),
            viewer_center=settings.viewer_center,
            initial_zoom=settings.initial_zoom,
            max_zoom=settings.max_zoom,
        )
        self.route_drawer = DirectionsRouteDrawer(
            lambda: self.guard.surface,
            directions or StraightLineDirections(step_m=settings.directions_step_m),
        )
        self.orchestrator = SyncOrchestrator(self.guard, self.route_drawer)

        self.default_filters = initial_filters()
        self.filters = self.default_filters
        self.debounced_filters = self.filters
        self.sort = settings.default_sort
        self.recommendations: List[PublicUser] = []
        self.start_suggestions: List[CarpoolFeature] = []
        self.company_suggestions: List[CarpoolFeature] = []
        self.popup_users: Optional[List[EnhancedPublicUser]] = None

        self._filter_debouncer: Debouncer[FiltersState] = Debouncer(
            settings.filter_quiet_period_s, self._on_filters_settled, name="filters"
        )
        self._start_debouncer: Debouncer[str] = Debouncer(
            settings.address_quiet_period_s,
            lambda text: self._spawn(self._search(text, "start")),
            name="start_address",
        )
        self._company_debouncer: Debouncer[str] = Debouncer(
            settings.address_quiet_period_s,
            lambda text: self._spawn(self._search(text, "company")),
            name="company_address",
        )
        self._tasks: Set[asyncio.Task] = set()

    # --- Read side ---

    @property
    def viewer(self) -> Optional[User]:
        return self.orchestrator.viewer

    @property
    def surface(self) -> Optional[MapSurface]:
        return self.guard.surface

    @property
    def is_blocked(self) -> bool:
        """INACTIVE riders/drivers get a blocked map and a disabled header."""
        viewer = self.viewer
        return viewer is not None and viewer.status == Status.INACTIVE and viewer.role != Role.VIEWER

    @property
    def selected_user(self) -> Optional[EnhancedPublicUser]:
        return self.orchestrator.selected_user

    def state(self) -> MapState:
        return self.orchestrator.state()

    def enhanced_recommendations(self) -> List[EnhancedPublicUser]:
        o = self.orchestrator
        return enrich_all(self.recommendations, o.favorites, o.requests)

    def enhanced_favorites(self) -> List[EnhancedPublicUser]:
        o = self.orchestrator
        return enrich_all(o.favorites, o.favorites, o.requests)

    def enhanced_sent(self) -> List[EnhancedPublicUser]:
        return enrich_sent(self.orchestrator.favorites, self.orchestrator.requests)

    def enhanced_received(self) -> List[EnhancedPublicUser]:
        return enrich_received(self.orchestrator.favorites, self.orchestrator.requests)

    def find_candidate(self, user_id: str) -> Optional[PublicUser]:
        """Known PublicUser for `user_id`: recommendations, favorites, requests, roster."""
        o = self.orchestrator
        for user in (*self.recommendations, *o.favorites):
            if user.id == user_id:
                return user
        for request in (*o.requests.sent, *o.requests.received):
            for user in (request.from_user, request.to_user):
                if user.id == user_id:
                    return user
        if o.roster is not None:
            for f in o.roster.features:
                if f.id == user_id:
                    return PublicUser(
                        id=f.id, role=f.role, name=f.name, company_lat=f.lat, company_lng=f.lng
                    )
        return None

    # --- Lifecycle ---

    async def start(self, container: Any = "map") -> Optional[MapSurface]:
        viewer = await self.backend.fetch_viewer()
        self.orchestrator.on_viewer_updated(viewer)
        favorites, requests = await asyncio.gather(
            self.backend.fetch_favorites(), self.backend.fetch_requests()
        )
        self.orchestrator.on_favorites_updated(favorites)
        self.orchestrator.on_requests_updated(requests)

        # Filtros iniciales desde el perfil: una sola consulta de roster al arrancar
        self.filters = sync_filters_from_viewer(self.filters, viewer)
        self.debounced_filters = self.filters

        surface = self.guard.try_initialize(container, viewer, on_ready=self.orchestrator.on_map_loaded)
        await self.refresh_recommendations()
        await self._fetch_roster(self.debounced_filters)
        return surface

    async def close(self) -> None:
        self._filter_debouncer.cancel()
        self._start_debouncer.cancel()
        self._company_debouncer.cancel()
        await self.wait_idle()

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
        await self.route_drawer.wait_idle()

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # --- Viewer / filters ---

    def on_viewer_updated(self, viewer: User) -> None:
        """Externally pushed profile update."""
        self.orchestrator.on_viewer_updated(viewer)
        synced = sync_filters_from_viewer(self.filters, viewer)
        if synced != self.filters:
            self.set_filters(synced)

    def set_filters(self, filters: FiltersState) -> None:
        self.filters = filters
        self._filter_debouncer.submit(filters)
        # Recomendaciones usan los filtros sin debounce
        self._spawn(self.refresh_recommendations())

    def set_sort(self, sort: str) -> None:
        self.sort = sort
        self._spawn(self.refresh_recommendations())

    def _on_filters_settled(self, filters: FiltersState) -> None:
        self.debounced_filters = filters
        self._spawn(self._fetch_roster(filters))

    async def _fetch_roster(self, filters: FiltersState) -> None:
        try:
            roster = await self.backend.fetch_roster(filters)
        except Exception:
            logger.warning("roster fetch failed; keeping current markers", exc_info=True)
            return
        self.orchestrator.on_roster_updated(roster)

    async def refresh_recommendations(self) -> None:
        try:
            self.recommendations = list(
                await self.backend.fetch_recommendations(self.sort, self.filters)
            )
        except Exception:
            logger.warning("recommendations fetch failed", exc_info=True)

    async def refresh_favorites(self) -> None:
        try:
            favorites = await self.backend.fetch_favorites()
        except Exception:
            logger.warning("favorites fetch failed", exc_info=True)
            return
        self.orchestrator.on_favorites_updated(favorites)

    async def refresh_requests(self) -> None:
        try:
            requests = await self.backend.fetch_requests()
        except Exception:
            logger.warning("requests fetch failed", exc_info=True)
            return
        self.orchestrator.on_requests_updated(requests)

    # --- Selection / sidebar ---

    def on_user_select(self, user_id: Optional[str]) -> None:
        self.orchestrator.on_user_select(user_id)

    def on_view_route_click(self, viewer: User, candidate: PublicUser) -> None:
        self.orchestrator.on_view_route_click(viewer, candidate)

    def set_sidebar(self, sidebar: SidebarContext) -> None:
        self.orchestrator.on_sidebar_changed(sidebar)

    async def handle_message_sent(self, user_id: str) -> None:
        """After messaging someone: refetch requests, then select them."""
        await self.refresh_requests()
        self.on_user_select(user_id)

    # --- Addresses ---

    def type_start_address(self, text: str) -> None:
        self._start_debouncer.submit(text)

    def type_company_address(self, text: str) -> None:
        self._company_debouncer.submit(text)

    async def _search(self, text: str, which: str) -> None:
        try:
            suggestions = await self.address_search.search_address(text, self.settings.address_types)
        except Exception:
            logger.warning("address search failed for %s", which, exc_info=True)
            return
        if which == "start":
            self.start_suggestions = list(suggestions)
        else:
            self.company_suggestions = list(suggestions)

    def choose_start_address(self, address: CarpoolAddress) -> None:
        self.orchestrator.on_address_changed(start=address)

    def choose_company_address(self, address: CarpoolAddress) -> None:
        self.orchestrator.on_address_changed(company=address)

    # --- Popup ---

    def popup_users_at(self, lng: float, lat: float) -> List[EnhancedPublicUser]:
        roster = self.orchestrator.roster
        if roster is None:
            self.popup_users = []
            return []
        o = self.orchestrator
        users = []
        for f in roster_near_point(roster, lng, lat, self.settings.popup_radius_m):
            user = self.find_candidate(f.id)
            if user is not None:
                users.append(enrich(user, o.favorites, o.requests))
        self.popup_users = users
        return users

    def close_popup(self) -> None:
        self.popup_users = None
