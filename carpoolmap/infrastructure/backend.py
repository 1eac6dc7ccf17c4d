"""
Backend collaborators consumed by the map session.

The real data layer (queries + cache) lives elsewhere; these protocols are the only
contract this package relies on. InMemoryMatchingBackend backs the debug runner,
the HTTP app's default session and the tests.
"""

import asyncio
from typing import List, Protocol, Sequence

from carpoolmap.domain.models import (
    CarpoolFeature,
    FiltersState,
    GeoJsonUsers,
    PublicUser,
    RequestSets,
    User,
)


class MatchingBackend(Protocol):
    async def fetch_roster(self, filters: FiltersState) -> GeoJsonUsers:
        ...

    async def fetch_viewer(self) -> User:
        ...

    async def fetch_recommendations(self, sort: str, filters: FiltersState) -> List[PublicUser]:
        ...

    async def fetch_favorites(self) -> List[PublicUser]:
        ...

    async def fetch_requests(self) -> RequestSets:
        ...


class AddressSearch(Protocol):
    async def search_address(self, text: str, types: Sequence[str]) -> List[CarpoolFeature]:
        ...


class InMemoryMatchingBackend:
    """
    Temporal: datos en memoria. Roster honours the favorites-only and
    messaged-only flags; `latency` simulates network delay.
    """

    def __init__(
        self,
        viewer: User,
        roster: GeoJsonUsers = GeoJsonUsers(),
        recommendations: Sequence[PublicUser] = (),
        favorites: Sequence[PublicUser] = (),
        requests: RequestSets = RequestSets(),
        latency: float = 0.0,
    ):
        self.viewer = viewer
        self.roster = roster
        self.recommendations = list(recommendations)
        self.favorites = list(favorites)
        self.requests = requests
        self.latency = latency
        self.roster_queries: List[FiltersState] = []

    async def _wait(self) -> None:
        if self.latency > 0:
            await asyncio.sleep(self.latency)

    async def fetch_roster(self, filters: FiltersState) -> GeoJsonUsers:
        self.roster_queries.append(filters)
        await self._wait()
        features = self.roster.features
        if filters.favorites:
            fav_ids = {u.id for u in self.favorites}
            features = tuple(f for f in features if f.id in fav_ids)
        if filters.messaged:
            messaged = {r.to_user_id for r in self.requests.sent} | {
                r.from_user_id for r in self.requests.received
            }
            features = tuple(f for f in features if f.id in messaged)
        return GeoJsonUsers(features=features)

    async def fetch_viewer(self) -> User:
        await self._wait()
        return self.viewer

    async def fetch_recommendations(self, sort: str, filters: FiltersState) -> List[PublicUser]:
        await self._wait()
        recs = list(self.recommendations)
        if sort == "name":
            recs.sort(key=lambda u: u.name)
        return recs

    async def fetch_favorites(self) -> List[PublicUser]:
        await self._wait()
        return list(self.favorites)

    async def fetch_requests(self) -> RequestSets:
        await self._wait()
        return self.requests


class InMemoryAddressSearch:
    """Case-insensitive substring match over a fixed address book."""

    def __init__(self, addresses: Sequence[CarpoolFeature] = ()):
        self.addresses = list(addresses)
        self.queries: List[str] = []

    async def search_address(self, text: str, types: Sequence[str]) -> List[CarpoolFeature]:
        self.queries.append(text)
        needle = text.strip().lower()
        if not needle:
            return []
        return [a for a in self.addresses if needle in a.place_name.lower()]
