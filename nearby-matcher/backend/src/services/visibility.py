from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from models import MatchMode, UserLocationRecord


def is_fresh(last_updated_at_ms: Optional[int], now_ms: int, staleness_ms: float) -> bool:
    # a record without a timestamp is never considered stale
    if not last_updated_at_ms:
        return True
    return now_ms - last_updated_at_ms <= staleness_ms


def is_eligible(
    candidate: UserLocationRecord,
    now_ms: int,
    staleness_ms: float,
    mode: MatchMode,
) -> bool:
    """Visibility and freshness predicate. Self exclusion happens in the ranker."""
    if mode is MatchMode.REVIEWER:
        return candidate.is_demo_user
    if not candidate.is_visible:
        return False
    if candidate.coordinates is None:
        return False
    return is_fresh(candidate.last_updated_at_ms, now_ms, staleness_ms)


def year_of(now_ms: int) -> int:
    return datetime.fromtimestamp(now_ms / 1000.0, tz=timezone.utc).year


def age_of(record: UserLocationRecord, current_year: int) -> Optional[int]:
    if record.birth_year is None:
        return None
    return current_year - record.birth_year


def _within(age: int, min_age: Optional[int], max_age: Optional[int]) -> bool:
    # zero or missing bounds are "no preference"
    if min_age and age < min_age:
        return False
    if max_age and age > max_age:
        return False
    return True


def passes_age_window(
    requester: UserLocationRecord,
    candidate: UserLocationRecord,
    current_year: int,
) -> bool:
    """Both users must fall inside the age range the other is visible to."""
    requester_age = age_of(requester, current_year)
    candidate_age = age_of(candidate, current_year)

    if requester_age is not None and not _within(
        requester_age, candidate.visible_to_min_age, candidate.visible_to_max_age
    ):
        return False
    if candidate_age is not None and not _within(
        candidate_age, requester.visible_to_min_age, requester.visible_to_max_age
    ):
        return False
    return True
