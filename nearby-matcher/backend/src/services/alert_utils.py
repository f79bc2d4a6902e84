from __future__ import annotations

from typing import Iterable, List, Optional

from models import AlertItem
from services.alert_ledger import alert_ledger


def pending_alerts(user_id: Optional[str], alerts: Iterable[AlertItem]) -> List[AlertItem]:
    """Alerts the user has not acknowledged yet; all of them for a falsy user_id."""
    if not user_id:
        return list(alerts)
    return alert_ledger.pending(user_id, alerts)


def acknowledge_alerts(user_id: Optional[str], alert_ids: Iterable[str]) -> int:
    """Persist acknowledgements if a user is supplied."""
    if not user_id:
        return 0
    return alert_ledger.acknowledge(user_id, alert_ids)


def reset_alerts(user_id: Optional[str]) -> None:
    """Clear acknowledgements for a user id."""
    if not user_id:
        return
    alert_ledger.reset(user_id)
