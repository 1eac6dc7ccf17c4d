"""
Map API request/response schemas. Pydantic only in api layer.
Payloads for users/requests/roster keep the backend's camelCase dicts (see loaders).
"""

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field


class StartSessionRequest(BaseModel):
    viewer: dict
    roster: dict = Field(default_factory=lambda: {"type": "FeatureCollection", "features": []})
    recommendations: list[dict] = []
    favorites: list[dict] = []
    requests: dict = Field(default_factory=lambda: {"sent": [], "received": []})
    container: str = "map"


class SelectRequest(BaseModel):
    user_id: str | None = None


class ViewRouteRequest(BaseModel):
    candidate_id: str


class FiltersPatch(BaseModel):
    """Solo los campos enviados se aplican sobre los filtros actuales."""
    days: int | None = None
    flex_days: int | None = None
    start_distance: float | None = None
    end_distance: float | None = None
    days_working: str | None = None
    start_time: int | None = None
    end_time: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    date_overlap: int | None = None
    favorites: bool | None = None
    messaged: bool | None = None


class AddressRequest(BaseModel):
    which: Literal["start", "company"]
    place_name: str = ""
    center: tuple[float, float] = (0.0, 0.0)


class SidebarRequest(BaseModel):
    sidebar: Literal["explore", "requests"]


class MapStateSchema(BaseModel):
    ready: bool
    blocked: bool
    selected_user_id: str | None
    other_user_id: str | None
    temporary_marker_user_id: str | None
    roster_ids: list[str]
    points: list[tuple[float, float]] | None
    sidebar: str


class PopupUserSchema(BaseModel):
    id: str
    name: str
    role: str
    is_favorited: bool
    has_incoming_request: bool
    has_outgoing_request: bool
