from __future__ import annotations

from typing import List, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from config import Configuration, ConfigurationError
from models import AlertItem, Coordinates, MatchMode, ProximityQuery, UserLocationRecord
from services.alert_ledger import alert_ledger
from services.alert_utils import acknowledge_alerts, pending_alerts, reset_alerts
from services.alerts import alert_count, build_alerts
from services.ranking import find_nearby, resolve_mode
from services.store import (
    InMemoryUserRecordStore,
    RequesterNotFoundError,
    UserRecordStore,
    load_seed_file,
)
from utils import meters_to_feet, now_ms

load_dotenv()

app = FastAPI(title="Nearby Matcher")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_store: Optional[InMemoryUserRecordStore] = None


def get_store() -> UserRecordStore:
    global _store
    if _store is None:
        try:
            cfg = _load_configuration()
            records = load_seed_file(cfg.seed_path) if cfg.seed_path else []
        except (ConfigurationError, ValidationError) as exc:
            logger.error("user store unavailable: {}", exc)
            raise HTTPException(status_code=503, detail="user store unavailable")
        alert_ledger.ttl_sec = cfg.alert_ledger_ttl_sec
        _store = InMemoryUserRecordStore(records)
    return _store


@app.get("/favicon.ico")
def favicon() -> Response:
    # Avoid noisy 404 in logs if browser asks for favicon
    return Response(status_code=204)


class NearbyRequest(BaseModel):
    user_id: str = Field(..., min_length=1, description="Requester user id")
    lat: Optional[float] = Field(None, ge=-90.0, le=90.0, description="Requester latitude, omit when unknown")
    lon: Optional[float] = Field(None, ge=-180.0, le=180.0, description="Requester longitude, omit when unknown")
    radius_m: Optional[float] = Field(None, description="Search radius in meters")
    staleness_ms: Optional[int] = Field(None, description="Maximum location age in milliseconds")
    now_ms: Optional[int] = Field(None, ge=0, description="Query time, epoch milliseconds")


class NearbyItemPayload(BaseModel):
    user_id: str
    distance_m: Optional[float] = None
    distance_ft: Optional[int] = None


class NearbyResponse(BaseModel):
    mode: str
    count: int
    items: List[NearbyItemPayload]


class AlertsRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    lat: Optional[float] = Field(None, ge=-90.0, le=90.0)
    lon: Optional[float] = Field(None, ge=-180.0, le=180.0)
    now_ms: Optional[int] = Field(None, ge=0)


class AlertPayload(BaseModel):
    id: str
    user_id: str
    name: str
    kind: str
    at: int
    distance_ft: Optional[int] = None
    shared_interests: List[str] = []
    from_contacts: bool = False
    acknowledged: bool = False


class AlertsResponse(BaseModel):
    alerts: List[AlertPayload]
    count: int
    pending: int


class AckRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    alert_ids: List[str] = Field(default_factory=list)


def _coordinates(lat: Optional[float], lon: Optional[float]) -> Optional[Coordinates]:
    if lat is None or lon is None:
        return None
    return Coordinates(latitude=lat, longitude=lon)


def _candidate_pool(store: UserRecordStore, requester: UserLocationRecord, limit: int) -> List[UserLocationRecord]:
    if resolve_mode(requester) is MatchMode.REVIEWER:
        return store.get_demo_candidates(limit)
    return store.get_visible_candidates(limit)


def _load_configuration() -> Configuration:
    cfg = Configuration.from_env()
    cfg.validate_limits()
    return cfg


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, RequesterNotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ConfigurationError):
        return HTTPException(status_code=400, detail=str(exc))
    logger.exception("request failed: {}", exc)
    return HTTPException(status_code=500, detail="internal error")


def _compute_alerts(
    store: UserRecordStore,
    cfg: Configuration,
    user_id: str,
    origin: Optional[Coordinates],
    at_ms: int,
) -> List[AlertItem]:
    requester = store.get_requester(user_id)
    pool = _candidate_pool(store, requester, cfg.alerts_candidate_limit)
    return build_alerts(
        requester,
        pool,
        now_ms=at_ms,
        radius_m=cfg.alerts_radius_m,
        staleness_ms=cfg.alerts_staleness_ms,
        candidate_limit=cfg.alerts_candidate_limit,
        requester_coordinates=origin,
    )


@app.get("/healthz")
def healthz() -> dict:
    try:
        cfg = _load_configuration()
    except Exception as exc:
        raise _to_http_error(exc)
    logger.info("cfg: {}", cfg.log_summary())
    return {"status": "ok"}


@app.post("/nearby", response_model=NearbyResponse)
def nearby(req: NearbyRequest, store: UserRecordStore = Depends(get_store)) -> NearbyResponse:
    at_ms = req.now_ms if req.now_ms is not None else now_ms()
    try:
        cfg = _load_configuration()
        radius_m = req.radius_m if req.radius_m is not None else cfg.search_radius_m
        staleness_ms = req.staleness_ms if req.staleness_ms is not None else cfg.search_staleness_ms
        requester = store.get_requester(req.user_id)
        pool = _candidate_pool(store, requester, cfg.search_candidate_limit)
        result = find_nearby(
            ProximityQuery(
                requester_id=req.user_id,
                requester=requester,
                candidates=pool,
                radius_m=radius_m,
                staleness_ms=staleness_ms,
                now_ms=at_ms,
                requester_coordinates=_coordinates(req.lat, req.lon),
                candidate_limit=cfg.search_candidate_limit,
            )
        )
    except Exception as exc:
        raise _to_http_error(exc)

    logger.info(
        "nearby user={} mode={} radius_m={:.2f} pool={} matches={}",
        req.user_id,
        result.mode.value,
        radius_m,
        len(pool),
        result.count,
    )
    items = [
        NearbyItemPayload(
            user_id=m.user_id,
            distance_m=round(m.distance_m, 3) if m.distance_m is not None else None,
            distance_ft=round(meters_to_feet(m.distance_m)) if m.distance_m is not None else None,
        )
        for m in result.matches
    ]
    return NearbyResponse(mode=result.mode.value, count=result.count, items=items)


@app.post("/alerts", response_model=AlertsResponse)
def alerts(req: AlertsRequest, store: UserRecordStore = Depends(get_store)) -> AlertsResponse:
    at_ms = req.now_ms if req.now_ms is not None else now_ms()
    try:
        cfg = _load_configuration()
        items = _compute_alerts(store, cfg, req.user_id, _coordinates(req.lat, req.lon), at_ms)
    except Exception as exc:
        raise _to_http_error(exc)

    pending_ids = {a.id for a in pending_alerts(req.user_id, items)}
    logger.info("alerts user={} count={} pending={}", req.user_id, len(items), len(pending_ids))
    payload = [
        AlertPayload(
            id=a.id,
            user_id=a.user_id,
            name=a.name,
            kind=a.kind.value,
            at=a.at,
            distance_ft=a.distance_ft,
            shared_interests=a.shared_interests,
            from_contacts=a.from_contacts,
            acknowledged=a.id not in pending_ids,
        )
        for a in items
    ]
    return AlertsResponse(alerts=payload, count=alert_count(items), pending=len(pending_ids))


@app.get("/alerts/pending")
def alerts_pending(
    user_id: str = Query(..., min_length=1),
    now_ms_param: Optional[int] = Query(None, alias="now_ms", ge=0),
    store: UserRecordStore = Depends(get_store),
) -> dict:
    at_ms = now_ms_param if now_ms_param is not None else now_ms()
    try:
        cfg = _load_configuration()
        items = _compute_alerts(store, cfg, user_id, None, at_ms)
    except Exception as exc:
        raise _to_http_error(exc)
    return {"count": len(pending_alerts(user_id, items))}


@app.post("/alerts/ack")
def alerts_ack(req: AckRequest, store: UserRecordStore = Depends(get_store)) -> dict:
    try:
        store.get_requester(req.user_id)
    except Exception as exc:
        raise _to_http_error(exc)
    return {"acknowledged": acknowledge_alerts(req.user_id, req.alert_ids)}


@app.delete("/alerts/ack")
def alerts_reset(user_id: str = Query(..., min_length=1)) -> dict:
    reset_alerts(user_id)
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8010, reload=True)
