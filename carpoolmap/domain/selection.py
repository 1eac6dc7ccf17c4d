"""
Selection resolver. Selected id -> enriched counterpart from the request sets.
"""

from typing import Optional, Sequence

from carpoolmap.domain.enrichment import enrich
from carpoolmap.domain.models import EnhancedPublicUser, PublicUser, RequestSets


def resolve_selection(
    selected_user_id: Optional[str],
    requests: RequestSets,
    favorites: Sequence[PublicUser] = (),
) -> Optional[EnhancedPublicUser]:
    """
    Busca en sent + received (en ese orden). La contraparte de cada request es
    from_user si su id coincide, si no to_user. Devuelve el primer match enriquecido.
    """
    if not selected_user_id:
        return None
    for request in (*requests.sent, *requests.received):
        user = request.from_user if request.from_user.id == selected_user_id else request.to_user
        if user.id == selected_user_id:
            return enrich(user, favorites, requests)
    return None
