"""
Filter helpers. Initial sync of the roster filters from the viewer's own profile.
"""

from dataclasses import replace

from carpoolmap.domain.models import FiltersState, Role, User


def sync_filters_from_viewer(filters: FiltersState, viewer: User) -> FiltersState:
    """
    RIDER/DRIVER: fechas de co-op (si existen) y días de trabajo del perfil.
    VIEWER no tiene perfil de trayecto: filtros sin cambios.
    """
    if viewer.role == Role.VIEWER:
        return filters
    return replace(
        filters,
        start_date=viewer.coop_start_date or filters.start_date,
        end_date=viewer.coop_end_date or filters.end_date,
        days_working=viewer.days_working,
    )
