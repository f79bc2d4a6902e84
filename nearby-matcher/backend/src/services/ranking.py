from __future__ import annotations

from collections import Counter
from typing import Iterable, List, Optional

from loguru import logger

from config import check_window
from models import MatchMode, NearbyMatch, ProximityQuery, ProximityResult, UserLocationRecord
from services.blocking import is_blocked_between
from services.geo import distance_meters, optional_distance
from services.store import RequesterNotFoundError
from services.visibility import is_eligible, passes_age_window, year_of


def resolve_mode(requester: UserLocationRecord) -> MatchMode:
    return MatchMode.REVIEWER if requester.is_reviewer_account else MatchMode.NORMAL


def _find_record(records: Iterable[UserLocationRecord], user_id: str) -> Optional[UserLocationRecord]:
    for record in records:
        if record.user_id == user_id:
            return record
    return None


def _sort_key(match: NearbyMatch) -> tuple[bool, float]:
    # entries without a distance (reviewer demo users) go last
    return (match.distance_m is None, match.distance_m or 0.0)


def find_nearby(query: ProximityQuery) -> ProximityResult:
    """Rank the candidate pool by distance to the requester.

    Normal mode keeps visible, fresh, unblocked candidates inside the radius
    whose age windows admit the requester (and vice versa). Reviewer mode
    keeps only unblocked demo users, regardless of location or freshness.

    Raises RequesterNotFoundError when the requester record is unknown and
    ConfigurationError for an invalid radius or staleness window. An empty
    pool or an unknown requester location yields an empty result.
    """
    check_window(query.radius_m, query.staleness_ms)

    requester = query.requester or _find_record(query.candidates, query.requester_id)
    if requester is None:
        raise RequesterNotFoundError(query.requester_id)

    mode = resolve_mode(requester)
    origin = query.requester_coordinates
    if mode is MatchMode.NORMAL and origin is None:
        logger.debug("requester={} has no known location, returning no matches", requester.user_id)
        return ProximityResult(mode=mode)

    pool = list(query.candidates)
    if query.candidate_limit is not None:
        pool = pool[: max(0, query.candidate_limit)]

    self_ids = {query.requester_id, requester.user_id}
    current_year = year_of(query.now_ms)
    seen: set[str] = set()
    skipped: Counter[str] = Counter()
    matches: List[NearbyMatch] = []

    for candidate in pool:
        uid = candidate.user_id
        if uid in self_ids:
            skipped["self"] += 1
            continue
        if uid in seen:
            skipped["duplicate"] += 1
            continue
        seen.add(uid)

        if is_blocked_between(requester, candidate):
            skipped["blocked"] += 1
            continue
        if not is_eligible(candidate, query.now_ms, query.staleness_ms, mode):
            skipped["ineligible"] += 1
            continue

        if mode is MatchMode.REVIEWER:
            matches.append(NearbyMatch(user_id=uid, distance_m=optional_distance(origin, candidate.coordinates)))
            continue

        if not passes_age_window(requester, candidate, current_year):
            skipped["age_window"] += 1
            continue

        dist_m = distance_meters(origin, candidate.coordinates)
        if dist_m > query.radius_m:
            skipped["out_of_radius"] += 1
            continue
        matches.append(NearbyMatch(user_id=uid, distance_m=dist_m))

    matches.sort(key=_sort_key)
    logger.debug(
        "nearby requester={} mode={} pool={} matches={} skipped={}",
        requester.user_id,
        mode.value,
        len(pool),
        len(matches),
        dict(skipped),
    )
    return ProximityResult(mode=mode, matches=matches)
