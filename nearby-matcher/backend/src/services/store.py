"""User record store: the collaborator that supplies candidate snapshots."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

from loguru import logger

from config import ConfigurationError
from models import Coordinates, UserLocationRecord
from services.blocking import identifier_set
from utils import normalize_identifier


class RequesterNotFoundError(ConfigurationError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"unknown requester: {user_id}")
        self.user_id = user_id


class UserRecordStore(Protocol):
    def get_requester(self, user_id: str) -> UserLocationRecord: ...

    def get_visible_candidates(self, limit: int) -> List[UserLocationRecord]: ...

    def get_demo_candidates(self, limit: int) -> List[UserLocationRecord]: ...


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_int(value: Any) -> Optional[int]:
    number = _as_float(value)
    return int(number) if number is not None else None


def _parse_location(raw: Any) -> tuple[Optional[Coordinates], Optional[int]]:
    if not isinstance(raw, dict):
        return None, None
    lat = _as_float(raw.get("lat"))
    lng = _as_float(raw.get("lng"))
    updated_at = _as_int(raw.get("updatedAt"))
    if lat is None or lng is None:
        return None, updated_at
    return Coordinates(latitude=lat, longitude=lng), updated_at


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None]


def record_from_document(doc: Dict[str, Any], user_id: Optional[str] = None) -> UserLocationRecord:
    """Build a record from a stored user document.

    Identifiers are normalized here so the read path matches the write path.
    """
    uid = user_id or doc.get("id") or doc.get("uid")
    if not uid:
        raise ValueError("user document has no id")

    coordinates, updated_at = _parse_location(doc.get("location"))
    email = normalize_identifier(doc.get("email")) or None
    phone = normalize_identifier(doc.get("phone")) or None

    interests: list[str] = []
    for raw in _str_list(doc.get("personalInterests")) + _str_list(doc.get("professionalInterests")):
        tag = raw.strip().lower()
        if tag and tag not in interests:
            interests.append(tag)

    return UserLocationRecord(
        user_id=str(uid),
        coordinates=coordinates,
        last_updated_at_ms=updated_at,
        is_visible=bool(doc.get("visibility", False)),
        contact_identifiers=identifier_set([email, phone]),
        blocked_identifiers=identifier_set(_str_list(doc.get("blockedContacts"))),
        is_demo_user=bool(doc.get("isDemoUser", False)),
        is_reviewer_account=bool(doc.get("isReviewer", False)),
        display_name=doc.get("realName"),
        birth_year=_as_int(doc.get("birthYear")),
        visible_to_min_age=_as_int(doc.get("visibleToMinAge")),
        visible_to_max_age=_as_int(doc.get("visibleToMaxAge")),
        interests=tuple(interests),
        email=email,
        phone=phone,
        contact_hashes=frozenset(h.lower() for h in _str_list(doc.get("contactHashes"))),
    )


def _recency(record: UserLocationRecord) -> int:
    return record.last_updated_at_ms or 0


class InMemoryUserRecordStore:
    """Dict-backed store, most recently updated locations first."""

    def __init__(self, records: Optional[Iterable[UserLocationRecord]] = None) -> None:
        self._records: Dict[str, UserLocationRecord] = {}
        for record in records or []:
            self.upsert(record)

    def __len__(self) -> int:
        return len(self._records)

    def upsert(self, record: UserLocationRecord) -> None:
        self._records[record.user_id] = record

    def get_requester(self, user_id: str) -> UserLocationRecord:
        record = self._records.get(user_id)
        if record is None:
            raise RequesterNotFoundError(user_id)
        return record

    def _query(self, predicate, limit: int) -> List[UserLocationRecord]:
        hits = [r for r in self._records.values() if predicate(r)]
        hits.sort(key=_recency, reverse=True)
        return hits[: max(0, limit)]

    def get_visible_candidates(self, limit: int) -> List[UserLocationRecord]:
        return self._query(lambda r: r.is_visible, limit)

    def get_demo_candidates(self, limit: int) -> List[UserLocationRecord]:
        return self._query(lambda r: r.is_demo_user, limit)


def load_seed_file(path: str | Path) -> List[UserLocationRecord]:
    """Read a JSON list of user documents; malformed entries are skipped."""
    seed = Path(path)
    if not seed.is_file():
        raise ConfigurationError(f"seed file not found: {seed}")
    with seed.open("r", encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, list):
        raise ConfigurationError(f"seed file must contain a JSON list: {seed}")

    records: List[UserLocationRecord] = []
    for idx, doc in enumerate(data):
        if not isinstance(doc, dict):
            logger.warning("seed entry {} is not an object, skipping", idx)
            continue
        try:
            records.append(record_from_document(doc))
        except ValueError as exc:
            logger.warning("seed entry {} skipped: {}", idx, exc)
    logger.info("loaded {} user records from {}", len(records), seed)
    return records
