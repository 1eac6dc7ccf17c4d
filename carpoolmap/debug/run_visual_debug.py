"""
Visual debug runner. Synthetic roster around the campus, one driver viewer,
one selected rider outside the roster (temporary marker). Saves HTML and opens it.
Debug-only. No FastAPI.
"""

import asyncio
import random
import webbrowser
from pathlib import Path

from carpoolmap.application.config import DEFAULT_VIEWER_LAT, DEFAULT_VIEWER_LNG
from carpoolmap.application.session import MapSession
from carpoolmap.domain.models import (
    GeoJsonUsers,
    PublicUser,
    Request,
    RequestSets,
    Role,
    RosterFeature,
    User,
)
from carpoolmap.infrastructure.backend import InMemoryAddressSearch, InMemoryMatchingBackend
from carpoolmap.infrastructure.folium_surface import FoliumMapSurface

RADIUS_KM = 15.0
NUM_CANDIDATES = 40
SEED = 42


def _synthetic_candidates(n: int, radius_km: float, seed: int) -> list[PublicUser]:
    """Random points around the campus. One degree ~ 111 km at mid-lat."""
    rng = random.Random(seed)
    deg_per_km = 1.0 / 111.0
    users = []
    for i in range(n):
        def jitter() -> float:
            return (rng.random() * 2 - 1) * radius_km * deg_per_km

        users.append(
            PublicUser(
                id=f"cand_{i+1}",
                role=Role.RIDER if rng.random() < 0.6 else Role.DRIVER,
                name=f"Candidate {i+1}",
                start_poi_lat=DEFAULT_VIEWER_LAT + jitter(),
                start_poi_lng=DEFAULT_VIEWER_LNG + jitter(),
                company_lat=DEFAULT_VIEWER_LAT + jitter() / 3,
                company_lng=DEFAULT_VIEWER_LNG + jitter() / 3,
            )
        )
    return users


async def build_debug_map(out_path: Path, seed: int = SEED) -> Path:
    candidates = _synthetic_candidates(NUM_CANDIDATES, RADIUS_KM, seed)
    viewer = User(
        id="debug_viewer",
        role=Role.DRIVER,
        start_lat=DEFAULT_VIEWER_LAT + 0.08,
        start_lng=DEFAULT_VIEWER_LNG - 0.1,
        company_lat=DEFAULT_VIEWER_LAT,
        company_lng=DEFAULT_VIEWER_LNG,
    )
    # El último candidato queda fuera del roster: se mostrará con marcador temporal
    in_roster, outsider = candidates[:-1], candidates[-1]
    roster = GeoJsonUsers(
        features=tuple(
            RosterFeature(id=c.id, lng=c.company_lng, lat=c.company_lat, role=c.role, name=c.name)
            for c in in_roster
        )
    )
    requests = RequestSets(
        sent=(
            Request(
                from_user_id=viewer.id,
                to_user_id=outsider.id,
                from_user=PublicUser(id=viewer.id, role=viewer.role),
                to_user=outsider,
            ),
        ),
    )
    backend = InMemoryMatchingBackend(viewer=viewer, roster=roster, recommendations=in_roster, requests=requests)
    session = MapSession(backend, InMemoryAddressSearch())
    await session.start(container=str(out_path))
    await asyncio.sleep(0)
    session.on_user_select(outsider.id)
    await session.wait_idle()
    await session.close()

    surface = session.surface
    if not isinstance(surface, FoliumMapSurface):
        raise RuntimeError("debug runner expects a folium surface")
    return surface.save(out_path)


def main() -> None:
    out_path = Path(__file__).resolve().parent / "debug_map.html"
    asyncio.run(build_debug_map(out_path))
    webbrowser.open(f"file://{out_path}")


if __name__ == "__main__":
    main()
