"""
Configuración por defecto del mapa (debounce, centro, zoom, filtros iniciales).
Un solo lugar para evitar duplicar valores entre API, sesión y debug.
"""

import os
from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

from carpoolmap.domain.models import FiltersState, LngLat

# Debounce (segundos)
FILTER_QUIET_PERIOD_S = 0.3
ADDRESS_QUIET_PERIOD_S = 0.25

# Centro por defecto para VIEWER (Northeastern University)
DEFAULT_VIEWER_LAT = 42.33907
DEFAULT_VIEWER_LNG = -71.088748

INITIAL_ZOOM = 8
MAX_ZOOM = 13
MAP_TILES = "cartodbpositron"

ADDRESS_TYPES = ("address", "postcode")
DEFAULT_SORT = "any"
POPUP_RADIUS_M = 500.0
DIRECTIONS_STEP_M = 250.0


@dataclass(frozen=True)
class MapSettings:
    filter_quiet_period_s: float = FILTER_QUIET_PERIOD_S
    address_quiet_period_s: float = ADDRESS_QUIET_PERIOD_S
    viewer_center: LngLat = (DEFAULT_VIEWER_LNG, DEFAULT_VIEWER_LAT)
    initial_zoom: int = INITIAL_ZOOM
    max_zoom: int = MAX_ZOOM
    map_tiles: str = MAP_TILES
    address_types: Tuple[str, ...] = ADDRESS_TYPES
    default_sort: str = DEFAULT_SORT
    popup_radius_m: float = POPUP_RADIUS_M
    directions_step_m: float = DIRECTIONS_STEP_M


DEFAULT_MAP_SETTINGS = MapSettings()


def initial_filters(today: Optional[date] = None) -> FiltersState:
    """Filtros con los que arranca el mapa (antes de sincronizar con el perfil)."""
    day = today or date.today()
    return FiltersState(
        days=0,
        flex_days=1,
        start_distance=20.0,
        end_distance=20.0,
        days_working="",
        start_time=4,
        end_time=4,
        start_date=day,
        end_date=day,
        date_overlap=0,
        favorites=False,
        messaged=False,
    )


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name, "").strip()
    return float(value) if value else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name, "").strip()
    return int(value) if value else default


def load_settings() -> MapSettings:
    """DEFAULT_MAP_SETTINGS con overrides opcionales CARPOOLMAP_* del entorno."""
    return MapSettings(
        filter_quiet_period_s=_env_float("CARPOOLMAP_FILTER_QUIET_S", FILTER_QUIET_PERIOD_S),
        address_quiet_period_s=_env_float("CARPOOLMAP_ADDRESS_QUIET_S", ADDRESS_QUIET_PERIOD_S),
        initial_zoom=_env_int("CARPOOLMAP_INITIAL_ZOOM", INITIAL_ZOOM),
        max_zoom=_env_int("CARPOOLMAP_MAX_ZOOM", MAX_ZOOM),
        map_tiles=os.getenv("CARPOOLMAP_TILES", MAP_TILES).strip() or MAP_TILES,
        popup_radius_m=_env_float("CARPOOLMAP_POPUP_RADIUS_M", POPUP_RADIUS_M),
    )
