from datetime import date

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from carpoolmap.api import router as map_router
from carpoolmap.api.main import app
from carpoolmap.core.bootstrap import MapBootstrapGuard
from carpoolmap.core.orchestrator import SyncOrchestrator
from carpoolmap.domain.models import (
    GeoJsonUsers,
    PublicUser,
    Request,
    RequestSets,
    Role,
    RosterFeature,
    Status,
    User,
)

CAMPUS = (-71.088748, 42.33907)


class RecordingSurface:
    """MapSurface double. Records every call; load() fires the load callbacks."""

    def __init__(self, container=None, center=CAMPUS, zoom=8):
        self.container = container
        self.center = center
        self.zoom = zoom
        self.ops = []
        self.markers = {}
        self.route = []
        self.max_zoom = None
        self._callbacks = []

    def place_marker(self, coords, kind, marker_id):
        self.ops.append(("place", marker_id))
        self.markers[marker_id] = (coords, kind)

    def remove_marker(self, marker_id):
        self.ops.append(("remove", marker_id))
        self.markers.pop(marker_id, None)

    def set_route(self, coordinates):
        self.ops.append(("route", len(coordinates)))
        self.route = list(coordinates)

    def set_max_zoom(self, zoom):
        self.max_zoom = zoom

    def on_load(self, callback):
        self._callbacks.append(callback)

    def load(self):
        callbacks, self._callbacks = self._callbacks, []
        for cb in callbacks:
            cb()

    def count(self, op, marker_id):
        return sum(1 for o in self.ops if o == (op, marker_id))


class RecordingDrawer:
    """RouteDrawer double for the synchronous orchestrator tests."""

    def __init__(self, accept=True):
        self.accept = accept
        self.draws = []
        self.clears = 0

    def draw(self, points):
        self.draws.append(points)
        return self.accept

    def clear(self):
        self.clears += 1


class SurfaceFactory:
    def __init__(self):
        self.built = []

    def __call__(self, container, center, zoom):
        surface = RecordingSurface(container, center, zoom)
        self.built.append(surface)
        return surface


def make_candidate(user_id, role=Role.RIDER, company=(-71.06, 42.36), start_poi=(-71.12, 42.30), name=""):
    return PublicUser(
        id=user_id,
        role=role,
        name=name or user_id,
        start_poi_lng=start_poi[0] if start_poi else None,
        start_poi_lat=start_poi[1] if start_poi else None,
        company_lng=company[0] if company else None,
        company_lat=company[1] if company else None,
    )


def make_roster(*users):
    return GeoJsonUsers(
        features=tuple(
            RosterFeature(id=u.id, lng=u.company_lng, lat=u.company_lat, role=u.role, name=u.name)
            for u in users
        )
    )


def sent_to(viewer, *users):
    me = PublicUser(id=viewer.id, role=viewer.role)
    return tuple(Request(from_user_id=viewer.id, to_user_id=u.id, from_user=me, to_user=u) for u in users)


def received_from(viewer, *users):
    me = PublicUser(id=viewer.id, role=viewer.role)
    return tuple(Request(from_user_id=u.id, to_user_id=viewer.id, from_user=u, to_user=me) for u in users)


@pytest.fixture
def driver():
    return User(
        id="me",
        role=Role.DRIVER,
        start_lng=-71.20,
        start_lat=42.40,
        company_lng=-71.05,
        company_lat=42.35,
        days_working="0,1,1,1,1,1,0",
        coop_start_date=date(2024, 1, 8),
        coop_end_date=date(2024, 6, 28),
    )


@pytest.fixture
def rider(driver):
    return User(
        id="me",
        role=Role.RIDER,
        start_lng=driver.start_lng,
        start_lat=driver.start_lat,
        company_lng=driver.company_lng,
        company_lat=driver.company_lat,
    )


@pytest.fixture
def viewer_account():
    return User(id="me", role=Role.VIEWER)


@pytest.fixture
def inactive_driver(driver):
    return User(
        id=driver.id,
        role=Role.DRIVER,
        status=Status.INACTIVE,
        start_lng=driver.start_lng,
        start_lat=driver.start_lat,
        company_lng=driver.company_lng,
        company_lat=driver.company_lat,
    )


@pytest.fixture
def alice():
    return make_candidate("alice", company=(-71.06, 42.36), start_poi=(-71.12, 42.30))


@pytest.fixture
def bob():
    return make_candidate("bob", role=Role.DRIVER, company=(-71.07, 42.37), start_poi=(-71.15, 42.31))


@pytest.fixture
def carol():
    return make_candidate("carol", company=(-71.08, 42.34), start_poi=(-71.10, 42.28))


@pytest.fixture
def factory():
    return SurfaceFactory()


@pytest.fixture
def drawer():
    return RecordingDrawer()


@pytest.fixture
def loaded_map(factory, drawer):
    """Builds (orchestrator, surface) for a viewer; load=False leaves the map not ready."""

    def _build(viewer, roster=None, requests=RequestSets(), load=True):
        guard = MapBootstrapGuard(factory, viewer_center=CAMPUS)
        orchestrator = SyncOrchestrator(guard, drawer)
        orchestrator.on_viewer_updated(viewer)
        orchestrator.on_requests_updated(requests)
        if roster is not None:
            orchestrator.on_roster_updated(roster)
        surface = guard.try_initialize("map", viewer, on_ready=orchestrator.on_map_loaded)
        if load:
            surface.load()
        return orchestrator, surface

    return _build


@pytest_asyncio.fixture
async def api_client():
    await map_router.reset_session()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    await map_router.reset_session()
