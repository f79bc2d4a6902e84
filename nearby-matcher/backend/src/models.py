"""Data models for the nearby matcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence


class MatchMode(str, Enum):
    NORMAL = "normal"
    REVIEWER = "reviewer"


class AlertKind(str, Enum):
    INTEREST_NEARBY = "interest_nearby"
    CONTACT_NEARBY = "contact_nearby"


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


@dataclass
class UserLocationRecord:
    user_id: str
    coordinates: Optional[Coordinates] = None
    last_updated_at_ms: Optional[int] = None
    is_visible: bool = False
    contact_identifiers: frozenset[str] = frozenset()
    blocked_identifiers: frozenset[str] = frozenset()
    is_demo_user: bool = False
    is_reviewer_account: bool = False
    # profile fields used by the age window and alerts
    display_name: Optional[str] = None
    birth_year: Optional[int] = None
    visible_to_min_age: Optional[int] = None
    visible_to_max_age: Optional[int] = None
    interests: tuple[str, ...] = ()
    email: Optional[str] = None  # normalized
    phone: Optional[str] = None  # normalized
    contact_hashes: frozenset[str] = frozenset()


@dataclass
class ProximityQuery:
    requester_id: str
    candidates: Sequence[UserLocationRecord]
    radius_m: float
    staleness_ms: int
    now_ms: int
    requester_coordinates: Optional[Coordinates] = None
    # looked up in `candidates` when not given
    requester: Optional[UserLocationRecord] = None
    candidate_limit: Optional[int] = None


@dataclass(frozen=True)
class NearbyMatch:
    user_id: str
    distance_m: Optional[float] = None


@dataclass
class ProximityResult:
    mode: MatchMode
    matches: list[NearbyMatch] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.matches)

    def user_ids(self) -> list[str]:
        return [m.user_id for m in self.matches]


@dataclass
class AlertItem:
    id: str
    user_id: str
    name: str
    kind: AlertKind
    at: int
    distance_ft: Optional[int] = None
    shared_interests: list[str] = field(default_factory=list)
    from_contacts: bool = False
