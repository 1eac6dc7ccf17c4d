"""
Map domain models. Dataclasses only. No FastAPI, no folium.

Coordinates are stored as separate lat/lng floats (same as the planning models);
anything handed to the map surface is a (lng, lat) pair.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional, Tuple

LngLat = Tuple[float, float]
# Ruta: pares (lng, lat) consecutivos, longitud par >= 2
RoutePoints = Tuple[LngLat, ...]


class Role(str, Enum):
    VIEWER = "VIEWER"
    RIDER = "RIDER"
    DRIVER = "DRIVER"


class Status(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


@dataclass(frozen=True)
class User:
    """The logged-in account. VIEWER accounts may have no commute coordinates."""
    id: str
    role: Role
    status: Status = Status.ACTIVE
    start_lat: Optional[float] = None
    start_lng: Optional[float] = None
    company_lat: Optional[float] = None
    company_lng: Optional[float] = None
    days_working: str = ""  # "0,1,1,1,1,1,0" (domingo..sábado)
    start_time: Optional[str] = None  # "HH:MM"
    end_time: Optional[str] = None
    coop_start_date: Optional[date] = None
    coop_end_date: Optional[date] = None

    @property
    def start(self) -> Optional[LngLat]:
        return _pair(self.start_lng, self.start_lat)

    @property
    def company(self) -> Optional[LngLat]:
        return _pair(self.company_lng, self.company_lat)


@dataclass(frozen=True)
class PublicUser:
    id: str
    role: Role
    name: str = ""
    start_lat: Optional[float] = None
    start_lng: Optional[float] = None
    start_poi_lat: Optional[float] = None
    start_poi_lng: Optional[float] = None
    company_lat: Optional[float] = None
    company_lng: Optional[float] = None

    @property
    def start_poi(self) -> Optional[LngLat]:
        return _pair(self.start_poi_lng, self.start_poi_lat)

    @property
    def company(self) -> Optional[LngLat]:
        return _pair(self.company_lng, self.company_lat)


@dataclass(frozen=True)
class Request:
    from_user_id: str
    to_user_id: str
    from_user: PublicUser
    to_user: PublicUser
    id: str = ""


@dataclass(frozen=True)
class RequestSets:
    """Requests sent by the viewer and received by the viewer. Disjoint, ordered."""
    sent: Tuple[Request, ...] = ()
    received: Tuple[Request, ...] = ()


@dataclass(frozen=True)
class EnhancedPublicUser(PublicUser):
    """PublicUser joined against favorites and requests. Derived, never persisted."""
    is_favorited: bool = False
    incoming_request: Optional[Request] = None
    outgoing_request: Optional[Request] = None


@dataclass(frozen=True)
class CarpoolAddress:
    place_name: str = ""
    center: LngLat = (0.0, 0.0)

    @property
    def is_null(self) -> bool:
        return self.place_name == ""


NULL_ADDRESS = CarpoolAddress()


@dataclass(frozen=True)
class CarpoolFeature:
    """Address suggestion returned by the search collaborator."""
    id: str
    place_name: str
    center: LngLat

    def to_address(self) -> CarpoolAddress:
        return CarpoolAddress(place_name=self.place_name, center=self.center)


@dataclass(frozen=True)
class FiltersState:
    days: int = 0
    flex_days: int = 1
    start_distance: float = 20.0
    end_distance: float = 20.0
    days_working: str = ""
    start_time: int = 4
    end_time: int = 4
    start_date: date = field(default_factory=date.today)
    end_date: date = field(default_factory=date.today)
    date_overlap: int = 0
    favorites: bool = False
    messaged: bool = False


@dataclass(frozen=True)
class RosterFeature:
    """One GeoJSON point of the roster. Geometry is the candidate's company."""
    id: str
    lng: float
    lat: float
    role: Role = Role.RIDER
    name: str = ""

    @property
    def coords(self) -> LngLat:
        return (self.lng, self.lat)


@dataclass(frozen=True)
class GeoJsonUsers:
    features: Tuple[RosterFeature, ...] = ()

    def ids(self) -> frozenset:
        return frozenset(f.id for f in self.features)

    def contains(self, user_id: Optional[str]) -> bool:
        if user_id is None:
            return False
        return any(f.id == user_id for f in self.features)


@dataclass(frozen=True)
class UserCoord:
    """Viewer leg of a route."""
    start_lng: float
    start_lat: float
    end_lng: float
    end_lat: float

    @property
    def start(self) -> LngLat:
        return (self.start_lng, self.start_lat)

    @property
    def end(self) -> LngLat:
        return (self.end_lng, self.end_lat)


class SidebarContext(str, Enum):
    EXPLORE = "explore"
    REQUESTS = "requests"


class MarkerKind(str, Enum):
    VIEWER_START = "viewer_start"
    VIEWER_COMPANY = "viewer_company"
    ROSTER = "roster"
    TEMPORARY = "temporary"


def _pair(lng: Optional[float], lat: Optional[float]) -> Optional[LngLat]:
    if lng is None or lat is None:
        return None
    return (float(lng), float(lat))
