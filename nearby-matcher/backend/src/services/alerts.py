"""Nearby alerts built on top of the proximity ranker."""

from __future__ import annotations

import hashlib
from typing import List, Optional, Sequence

from loguru import logger

from models import (
    AlertItem,
    AlertKind,
    Coordinates,
    MatchMode,
    NearbyMatch,
    ProximityQuery,
    UserLocationRecord,
)
from services.ranking import find_nearby, resolve_mode
from utils import meters_to_feet, normalize_identifier, short_name

MAX_SHARED_INTERESTS = 3


def contact_hash(kind: str, value: Optional[str]) -> Optional[str]:
    """Digest of an address-book entry, ``kind`` is ``"mail"`` or ``"tel"``."""
    norm = normalize_identifier(value)
    if not norm:
        return None
    return hashlib.sha256(f"{kind}:{norm}".encode("utf-8")).hexdigest()


def is_known_contact(requester: UserLocationRecord, candidate: UserLocationRecord) -> bool:
    if not requester.contact_hashes:
        return False
    for digest in (contact_hash("mail", candidate.email), contact_hash("tel", candidate.phone)):
        if digest and digest in requester.contact_hashes:
            return True
    return False


def shared_interests(requester: UserLocationRecord, candidate: UserLocationRecord) -> List[str]:
    mine = set(requester.interests)
    return [tag for tag in candidate.interests if tag in mine]


def _to_alert(
    requester: UserLocationRecord,
    candidate: UserLocationRecord,
    match: NearbyMatch,
    now_ms: int,
) -> AlertItem:
    shared = shared_interests(requester, candidate)
    # undated candidates keep one id so an acknowledgement survives later calls
    alert_id = f"{candidate.user_id}-{candidate.last_updated_at_ms or 0}"
    at = candidate.last_updated_at_ms or now_ms
    distance_ft = round(meters_to_feet(match.distance_m)) if match.distance_m is not None else None
    return AlertItem(
        id=alert_id,
        user_id=candidate.user_id,
        name=short_name(candidate.display_name),
        kind=AlertKind.INTEREST_NEARBY if shared else AlertKind.CONTACT_NEARBY,
        at=at,
        distance_ft=distance_ft,
        shared_interests=shared[:MAX_SHARED_INTERESTS],
        from_contacts=is_known_contact(requester, candidate),
    )


def build_alerts(
    requester: UserLocationRecord,
    pool: Sequence[UserLocationRecord],
    *,
    now_ms: int,
    radius_m: float,
    staleness_ms: int,
    candidate_limit: Optional[int] = None,
    requester_coordinates: Optional[Coordinates] = None,
) -> List[AlertItem]:
    """Alerts for the users currently near ``requester``, closest first.

    A requester who is hidden or has no location gets no alerts. Reviewer
    accounts get the demo users, as in nearby search.
    """
    origin = requester_coordinates or requester.coordinates
    if resolve_mode(requester) is MatchMode.NORMAL and (not requester.is_visible or origin is None):
        return []

    result = find_nearby(
        ProximityQuery(
            requester_id=requester.user_id,
            requester=requester,
            candidates=pool,
            radius_m=radius_m,
            staleness_ms=staleness_ms,
            now_ms=now_ms,
            requester_coordinates=origin,
            candidate_limit=candidate_limit,
        )
    )

    by_id: dict[str, UserLocationRecord] = {}
    for candidate in pool:
        by_id.setdefault(candidate.user_id, candidate)
    alerts = [_to_alert(requester, by_id[m.user_id], m, now_ms) for m in result.matches]
    logger.debug("alerts requester={} count={}", requester.user_id, len(alerts))
    return alerts


def alert_count(alerts: Sequence[AlertItem]) -> int:
    return len(alerts)
