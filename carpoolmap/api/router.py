"""
Map API router. Calls the session use case only. No map logic.
"""

import asyncio
import logging
from dataclasses import replace
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse

from carpoolmap.api.schemas import (
    AddressRequest,
    FiltersPatch,
    MapStateSchema,
    PopupUserSchema,
    SelectRequest,
    SidebarRequest,
    StartSessionRequest,
    ViewRouteRequest,
)
from carpoolmap.application.config import load_settings
from carpoolmap.application.session import MapSession
from carpoolmap.domain.models import CarpoolAddress, SidebarContext
from carpoolmap.infrastructure.backend import InMemoryAddressSearch, InMemoryMatchingBackend
from carpoolmap.infrastructure.folium_surface import FoliumMapSurface
from carpoolmap.infrastructure.loaders import (
    load_public_user,
    load_requests,
    load_roster,
    load_user,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/map")

# Temporal: una sesión por proceso (demo / debug)
_SESSION: Optional[MapSession] = None


def get_session() -> MapSession:
    if _SESSION is None:
        raise HTTPException(status_code=409, detail="No active map session")
    return _SESSION


async def reset_session() -> None:
    global _SESSION
    if _SESSION is not None:
        await _SESSION.close()
    _SESSION = None


def _state(session: MapSession) -> MapStateSchema:
    s = session.state()
    return MapStateSchema(
        ready=s.ready,
        blocked=session.is_blocked,
        selected_user_id=s.selected_user_id,
        other_user_id=s.other_user_id,
        temporary_marker_user_id=s.temporary_marker_user_id,
        roster_ids=list(s.roster_ids),
        points=[tuple(p) for p in s.points] if s.points is not None else None,
        sidebar=s.sidebar.value,
    )


async def _settle(session: MapSession) -> MapStateSchema:
    # deja correr load / draws pendientes antes de responder
    await asyncio.sleep(0)
    await session.wait_idle()
    return _state(session)


@router.post("/session", response_model=MapStateSchema)
async def post_session(request: StartSessionRequest) -> MapStateSchema:
    """
    POST /map/session
    Seeds an in-memory backend and starts a map session for the given viewer.
    """
    global _SESSION
    try:
        backend = InMemoryMatchingBackend(
            viewer=load_user(request.viewer),
            roster=load_roster(request.roster),
            recommendations=[load_public_user(u) for u in request.recommendations],
            favorites=[load_public_user(u) for u in request.favorites],
            requests=load_requests(request.requests),
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    await reset_session()
    session = MapSession(backend, InMemoryAddressSearch(), settings=load_settings())
    try:
        await session.start(request.container)
    except Exception as e:
        logger.exception("map session start failed")
        raise HTTPException(status_code=500, detail=str(e))
    _SESSION = session
    return await _settle(session)


@router.get("/state", response_model=MapStateSchema)
async def get_state(session: MapSession = Depends(get_session)) -> MapStateSchema:
    return _state(session)


@router.post("/select", response_model=MapStateSchema)
async def post_select(request: SelectRequest, session: MapSession = Depends(get_session)) -> MapStateSchema:
    """POST /map/select. Empty or null user_id clears the selection."""
    session.on_user_select(request.user_id)
    return await _settle(session)


@router.post("/view-route", response_model=MapStateSchema)
async def post_view_route(request: ViewRouteRequest, session: MapSession = Depends(get_session)) -> MapStateSchema:
    candidate = session.find_candidate(request.candidate_id)
    if candidate is None:
        raise HTTPException(status_code=404, detail=f"Unknown candidate {request.candidate_id}")
    if session.viewer is None:
        raise HTTPException(status_code=409, detail="Viewer not loaded")
    session.on_view_route_click(session.viewer, candidate)
    return await _settle(session)


@router.post("/filters", response_model=MapStateSchema)
async def post_filters(patch: FiltersPatch, session: MapSession = Depends(get_session)) -> MapStateSchema:
    """
    POST /map/filters
    Roster query is debounced: the returned state reflects the previous roster.
    """
    changes = patch.model_dump(exclude_none=True)
    try:
        filters = replace(session.filters, **changes)
    except TypeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    session.set_filters(filters)
    return _state(session)


@router.post("/address", response_model=MapStateSchema)
async def post_address(request: AddressRequest, session: MapSession = Depends(get_session)) -> MapStateSchema:
    address = CarpoolAddress(place_name=request.place_name, center=tuple(request.center))
    if request.which == "start":
        session.choose_start_address(address)
    else:
        session.choose_company_address(address)
    return await _settle(session)


@router.post("/sidebar", response_model=MapStateSchema)
async def post_sidebar(request: SidebarRequest, session: MapSession = Depends(get_session)) -> MapStateSchema:
    session.set_sidebar(SidebarContext(request.sidebar))
    return await _settle(session)


@router.post("/roster", response_model=MapStateSchema)
async def post_roster(geojson: dict, session: MapSession = Depends(get_session)) -> MapStateSchema:
    """POST /map/roster: push a new roster snapshot (GeoJSON FeatureCollection)."""
    try:
        roster = load_roster(geojson)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    session.orchestrator.on_roster_updated(roster)
    return await _settle(session)


@router.get("/popup", response_model=list[PopupUserSchema])
async def get_popup(lng: float, lat: float, session: MapSession = Depends(get_session)) -> list[PopupUserSchema]:
    return [
        PopupUserSchema(
            id=u.id,
            name=u.name,
            role=u.role.value,
            is_favorited=u.is_favorited,
            has_incoming_request=u.incoming_request is not None,
            has_outgoing_request=u.outgoing_request is not None,
        )
        for u in session.popup_users_at(lng, lat)
    ]


@router.get("/html", response_class=HTMLResponse)
async def get_html(session: MapSession = Depends(get_session)) -> HTMLResponse:
    surface = session.surface
    if not isinstance(surface, FoliumMapSurface):
        raise HTTPException(status_code=409, detail="Map not initialized")
    return HTMLResponse(surface.to_folium().get_root().render())
