from __future__ import annotations

from typing import AbstractSet, Iterable, Optional

from models import UserLocationRecord
from utils import normalize_identifier


def identifier_set(values: Iterable[Optional[str]]) -> frozenset[str]:
    """Normalize identifiers and drop the empty ones."""
    out = {normalize_identifier(v) for v in values}
    out.discard("")
    return frozenset(out)


def is_blocked(
    requester_identifiers: AbstractSet[str],
    requester_blocked: AbstractSet[str],
    candidate_identifiers: AbstractSet[str],
    candidate_blocked: AbstractSet[str],
) -> bool:
    """True when either side has blocked one of the other's identifiers.

    Sets must already be normalized with `identifier_set`.
    """
    if requester_blocked and not requester_blocked.isdisjoint(candidate_identifiers):
        return True
    if candidate_blocked and not candidate_blocked.isdisjoint(requester_identifiers):
        return True
    return False


def is_blocked_between(a: UserLocationRecord, b: UserLocationRecord) -> bool:
    return is_blocked(
        a.contact_identifiers,
        a.blocked_identifiers,
        b.contact_identifiers,
        b.blocked_identifiers,
    )
