from __future__ import annotations

from pathlib import Path

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

import main
from main import app, get_store
from services.alert_utils import reset_alerts
from services.store import InMemoryUserRecordStore, load_seed_file

SEED = Path(__file__).resolve().parent.parent / "data" / "seed_users.json"
NOW = 1760781660000  # one minute after u-ana's last location update
ANA = {"lat": 47.6062, "lon": -122.3321}
BEN = {"lat": 47.60622, "lon": -122.33212}


@pytest.fixture
def client():
    store = InMemoryUserRecordStore(load_seed_file(SEED))
    app.dependency_overrides[get_store] = lambda: store
    reset_alerts("u-ben")
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    reset_alerts("u-ben")


def test_healthz(client: TestClient) -> None:
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_nearby_hides_blockers_and_hidden_users(client: TestClient) -> None:
    resp = client.post("/nearby", json={"user_id": "u-ana", "now_ms": NOW, **ANA})
    assert resp.status_code == 200
    body = resp.json()
    assert body["mode"] == "normal"
    # u-cleo blocked ana, u-dev is hidden
    assert [item["user_id"] for item in body["items"]] == ["u-ben"]
    assert body["count"] == 1
    assert 2.5 < body["items"][0]["distance_m"] < 2.9
    assert body["items"][0]["distance_ft"] == 9


def test_nearby_orders_by_distance(client: TestClient) -> None:
    resp = client.post("/nearby", json={"user_id": "u-ben", "now_ms": NOW, **BEN})
    assert [item["user_id"] for item in resp.json()["items"]] == ["u-ana", "u-cleo"]


def test_nearby_radius_override(client: TestClient) -> None:
    resp = client.post("/nearby", json={"user_id": "u-ben", "now_ms": NOW, "radius_m": 3.0, **BEN})
    assert [item["user_id"] for item in resp.json()["items"]] == ["u-ana"]


def test_nearby_without_location_is_empty(client: TestClient) -> None:
    resp = client.post("/nearby", json={"user_id": "u-ana", "now_ms": NOW})
    assert resp.status_code == 200
    assert resp.json()["items"] == []


def test_nearby_reviewer_sees_demo_users(client: TestClient) -> None:
    resp = client.post("/nearby", json={"user_id": "reviewer", "now_ms": NOW})
    body = resp.json()
    assert body["mode"] == "reviewer"
    assert {item["user_id"] for item in body["items"]} == {"demo-1", "demo-2"}
    assert all(item["distance_m"] is None for item in body["items"])


def test_nearby_unknown_user_is_404(client: TestClient) -> None:
    resp = client.post("/nearby", json={"user_id": "ghost", **ANA})
    assert resp.status_code == 404


def test_nearby_negative_radius_is_400(client: TestClient) -> None:
    resp = client.post("/nearby", json={"user_id": "u-ana", "radius_m": -1, **ANA})
    assert resp.status_code == 400


def test_nearby_rejects_out_of_range_latitude(client: TestClient) -> None:
    resp = client.post("/nearby", json={"user_id": "u-ana", "lat": 91.0, "lon": 0.0})
    assert resp.status_code == 422


def test_alerts_pending_and_ack(client: TestClient) -> None:
    resp = client.post("/alerts", json={"user_id": "u-ben", "now_ms": NOW})
    assert resp.status_code == 200
    body = resp.json()
    # u-cleo's location is older than the alerts window
    assert [a["user_id"] for a in body["alerts"]] == ["u-ana"]
    alert = body["alerts"][0]
    assert alert["kind"] == "interest_nearby"
    assert alert["shared_interests"] == ["coffee"]
    assert alert["name"] == "Ana L."
    assert alert["acknowledged"] is False
    assert body["count"] == 1
    assert body["pending"] == 1

    ack = client.post("/alerts/ack", json={"user_id": "u-ben", "alert_ids": [alert["id"]]})
    assert ack.json() == {"acknowledged": 1}

    pending = client.get("/alerts/pending", params={"user_id": "u-ben", "now_ms": NOW})
    assert pending.json() == {"count": 0}

    again = client.post("/alerts", json={"user_id": "u-ben", "now_ms": NOW}).json()
    assert again["pending"] == 0
    assert again["alerts"][0]["acknowledged"] is True

    client.delete("/alerts/ack", params={"user_id": "u-ben"})
    pending = client.get("/alerts/pending", params={"user_id": "u-ben", "now_ms": NOW})
    assert pending.json() == {"count": 1}


def test_ack_for_unknown_user_is_404(client: TestClient) -> None:
    resp = client.post("/alerts/ack", json={"user_id": "ghost", "alert_ids": ["x-1"]})
    assert resp.status_code == 404


def test_nearby_zero_candidate_limit_is_400(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NEARBY_SEARCH_CANDIDATE_LIMIT", "0")
    resp = client.post("/nearby", json={"user_id": "u-ben", "now_ms": NOW, **BEN})
    assert resp.status_code == 400
    assert "candidate limits" in resp.json()["detail"]


def test_alerts_negative_staleness_env_is_400(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NEARBY_ALERTS_STALENESS_MS", "-1")
    assert client.post("/alerts", json={"user_id": "u-ben", "now_ms": NOW}).status_code == 400
    assert client.get("/alerts/pending", params={"user_id": "u-ben", "now_ms": NOW}).status_code == 400


def test_malformed_env_value_is_500(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NEARBY_SEARCH_STALENESS_MS", "abc")
    resp = client.post("/nearby", json={"user_id": "u-ben", "now_ms": NOW, **BEN})
    assert resp.status_code == 500
    assert resp.json() == {"detail": "internal error"}


def test_store_unavailable_with_bad_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(main, "_store", None)
    monkeypatch.setenv("NEARBY_ALERTS_CANDIDATE_LIMIT", "0")
    with pytest.raises(HTTPException) as excinfo:
        get_store()
    assert excinfo.value.status_code == 503
    assert main._store is None
