from __future__ import annotations

import threading
import time
from typing import Dict, Iterable, List, Set

from models import AlertItem


class AlertLedger:
    """Simple in-memory record of acknowledged alerts per requester.

    Shared by the API's worker threads, so every access holds ``_lock``.
    """

    def __init__(self, ttl_sec: int = 24 * 3600) -> None:
        self._acked: Dict[str, Set[str]] = {}
        self._last_access: Dict[str, float] = {}
        self._lock = threading.Lock()
        self.ttl_sec = ttl_sec

    def acknowledged(self, user_id: str) -> Set[str]:
        with self._lock:
            self._cleanup()
            if not user_id:
                return set()
            if user_id in self._acked:
                self._last_access[user_id] = time.time()
            return set(self._acked.get(user_id, set()))

    def acknowledge(self, user_id: str, alert_ids: Iterable[str]) -> int:
        """Mark alerts as seen; returns how many were newly acknowledged."""
        if not user_id:
            return 0

        ids = [a for a in alert_ids if a]
        with self._lock:
            self._cleanup()
            seen = self._acked.setdefault(user_id, set())
            before = len(seen)
            seen.update(ids)
            self._last_access[user_id] = time.time()
            return len(seen) - before

    def pending(self, user_id: str, alerts: Iterable[AlertItem]) -> List[AlertItem]:
        acked = self.acknowledged(user_id)
        return [a for a in alerts if a.id not in acked]

    def reset(self, user_id: str) -> None:
        """Forget everything a requester acknowledged."""
        if not user_id:
            return
        with self._lock:
            self._acked.pop(user_id, None)
            self._last_access.pop(user_id, None)

    def _cleanup(self) -> None:
        """Drop requesters idle for longer than the TTL. Caller holds the lock."""
        now = time.time()
        expired = [
            uid for uid, last in self._last_access.items()
            if now - last > self.ttl_sec
        ]
        for uid in expired:
            self._acked.pop(uid, None)
            self._last_access.pop(uid, None)

# Global singleton
alert_ledger = AlertLedger()
