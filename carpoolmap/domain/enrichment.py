"""
User enrichment. Pure join of a PublicUser against favorites and requests.
No caching: callers recompute when favorites or requests change.
"""

from dataclasses import fields
from typing import Iterable, List, Optional, Sequence

from carpoolmap.domain.models import (
    EnhancedPublicUser,
    PublicUser,
    Request,
    RequestSets,
)

_PUBLIC_FIELDS = tuple(f.name for f in fields(PublicUser))


def enrich(
    user: PublicUser,
    favorites: Iterable[PublicUser],
    requests: RequestSets,
) -> EnhancedPublicUser:
    """
    is_favorited: user.id aparece en favorites.
    incoming_request: primer recibido con from_user_id == user.id.
    outgoing_request: primer enviado con to_user_id == user.id.
    """
    incoming: Optional[Request] = next(
        (r for r in requests.received if r.from_user_id == user.id), None
    )
    outgoing: Optional[Request] = next(
        (r for r in requests.sent if r.to_user_id == user.id), None
    )
    base = {name: getattr(user, name) for name in _PUBLIC_FIELDS}
    return EnhancedPublicUser(
        **base,
        is_favorited=any(fav.id == user.id for fav in favorites),
        incoming_request=incoming,
        outgoing_request=outgoing,
    )


def enrich_all(
    users: Sequence[PublicUser],
    favorites: Sequence[PublicUser],
    requests: RequestSets,
) -> List[EnhancedPublicUser]:
    return [enrich(u, favorites, requests) for u in users]


def enrich_sent(favorites: Sequence[PublicUser], requests: RequestSets) -> List[EnhancedPublicUser]:
    """Counterparts of the requests the viewer sent."""
    return [enrich(r.to_user, favorites, requests) for r in requests.sent]


def enrich_received(favorites: Sequence[PublicUser], requests: RequestSets) -> List[EnhancedPublicUser]:
    """Counterparts of the requests the viewer received."""
    return [enrich(r.from_user, favorites, requests) for r in requests.received]
