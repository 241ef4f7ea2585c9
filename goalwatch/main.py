from __future__ import annotations

from datetime import datetime, timezone
import asyncio
import logging
import os

from fastapi import Depends, FastAPI, HTTPException
from sqlalchemy import desc, text
from sqlalchemy.orm import Session

from goalwatch.db import get_db, init_db
from goalwatch.fixtures.client import build_fixture_client
from goalwatch.log_buffer import get_buffer_handler, install_buffer_handler
from goalwatch.models import PREDICTION_ACTIVE, PREDICTION_COMPLETED, Prediction
from goalwatch.resolution.markets import classify
from goalwatch.resolution.retention import run_retention_with_shutdown
from goalwatch.resolution.scheduler import ResolutionScheduler, run_resolver_with_shutdown
from goalwatch.resolution.store import PredictionStore
from goalwatch.risk import all_risk_badges, available_filters, calculate_smart_risk
from goalwatch.schemas import (
    PredictionDetailOut,
    PredictionOut,
    ResolverStatusOut,
    SettingsOut,
    SettingsUpdate,
    TickSummaryOut,
)
from goalwatch.settings import (
    encrypt_api_key,
    get_or_create_settings,
    load_settings_snapshot,
    snapshot_settings,
)

app = FastAPI(title="Goalwatch")
logger = logging.getLogger(__name__)
_scheduler = ResolutionScheduler(PredictionStore())
_resolver_task: asyncio.Task | None = None
_resolver_stop: asyncio.Event | None = None
_retention_task: asyncio.Task | None = None
_retention_stop: asyncio.Event | None = None


def _background_jobs_enabled() -> bool:
    return os.getenv("GOALWATCH_BACKGROUND_JOBS", "1").strip().lower() not in {"0", "false", "no"}


@app.on_event("startup")
async def start_background_jobs() -> None:
    global _resolver_task, _resolver_stop, _retention_task, _retention_stop
    install_buffer_handler()
    init_db()
    if not _background_jobs_enabled():
        logger.info("Background jobs disabled by GOALWATCH_BACKGROUND_JOBS")
        return
    logger.info("App starting up, launching resolver and retention jobs")
    _resolver_stop = asyncio.Event()
    _resolver_task = asyncio.create_task(run_resolver_with_shutdown(_resolver_stop, _scheduler))
    _retention_stop = asyncio.Event()
    _retention_task = asyncio.create_task(run_retention_with_shutdown(_retention_stop))


@app.on_event("shutdown")
async def stop_background_jobs() -> None:
    global _resolver_task, _resolver_stop, _retention_task, _retention_stop
    if _resolver_stop:
        _resolver_stop.set()
    if _retention_stop:
        _retention_stop.set()
    if _resolver_task:
        await _resolver_task
    if _retention_task:
        await _retention_task
    _resolver_task = None
    _resolver_stop = None
    _retention_task = None
    _retention_stop = None


@app.get("/predictions", response_model=list[PredictionOut])
def list_predictions(status: str = PREDICTION_ACTIVE, db: Session = Depends(get_db)):
    if status not in {PREDICTION_ACTIVE, PREDICTION_COMPLETED}:
        raise HTTPException(status_code=400, detail="status must be 'active' or 'completed'")
    query = db.query(Prediction).filter(Prediction.status == status)
    if status == PREDICTION_COMPLETED:
        query = query.order_by(desc(Prediction.completed_at), desc(Prediction.created_at))
    else:
        query = query.order_by(desc(Prediction.created_at))
    return [PredictionOut.model_validate(prediction) for prediction in query.all()]


@app.get("/predictions/{prediction_id}", response_model=PredictionDetailOut)
def get_prediction(prediction_id: int, db: Session = Depends(get_db)):
    prediction = db.query(Prediction).filter(Prediction.id == prediction_id).one_or_none()
    if not prediction:
        raise HTTPException(status_code=404, detail="Prediction not found")
    base = PredictionOut.model_validate(prediction)
    return PredictionDetailOut(
        **base.model_dump(),
        market=classify(prediction.prediction_type).to_dict(),
        risk=calculate_smart_risk(prediction.filter_name, prediction.odds),
    )


@app.get("/api/markets/classify")
def api_classify_market(label: str):
    return classify(label).to_dict()


@app.get("/api/resolver/status", response_model=ResolverStatusOut)
def api_resolver_status():
    last = _scheduler.last_summary
    return ResolverStatusOut(
        busy=_scheduler.busy,
        last_tick=TickSummaryOut(**last.to_dict()) if last else None,
    )


@app.post("/api/resolver/run", response_model=TickSummaryOut)
async def api_resolver_run():
    settings = await asyncio.to_thread(load_settings_snapshot)
    client = build_fixture_client(settings)
    if client is None:
        raise HTTPException(status_code=400, detail="No fixtures API key configured")
    if _scheduler.busy:
        raise HTTPException(status_code=409, detail="A resolver tick is already running")
    _scheduler.reconfigure(
        gateway=client,
        concurrency=settings.resolver_concurrency,
        fetch_deadline_seconds=client.deadline_seconds,
    )
    summary = await _scheduler.run_tick_if_idle()
    if summary is None:
        raise HTTPException(status_code=409, detail="A resolver tick is already running")
    return TickSummaryOut(**summary.to_dict())


@app.get("/api/risk")
def api_risk(filter_name: str | None = None, odds: float = 0.0):
    return calculate_smart_risk(filter_name, odds)


@app.get("/api/risk/badges")
def api_risk_badges():
    return {"filters": available_filters(), "badges": all_risk_badges()}


def _settings_out(settings) -> SettingsOut:
    snapshot = snapshot_settings(settings)
    return SettingsOut(
        has_api_key=bool(snapshot.fixtures_api_key_enc),
        resolver_enabled=snapshot.resolver_enabled,
        resolver_concurrency=snapshot.resolver_concurrency,
        resolver_interval_seconds=snapshot.resolver_interval_seconds,
        fetch_timeout_seconds=snapshot.fetch_timeout_seconds,
        retention_days=snapshot.retention_days,
    )


@app.get("/api/settings", response_model=SettingsOut)
def api_get_settings(db: Session = Depends(get_db)):
    return _settings_out(get_or_create_settings(db))


@app.put("/api/settings", response_model=SettingsOut)
def api_update_settings(payload: SettingsUpdate, db: Session = Depends(get_db)):
    settings = get_or_create_settings(db)
    api_key = (payload.fixtures_api_key or "").strip()
    if api_key:
        settings.fixtures_api_key_enc = encrypt_api_key(api_key)

    for field in (
        "resolver_enabled",
        "resolver_concurrency",
        "resolver_interval_seconds",
        "fetch_timeout_seconds",
        "retention_days",
    ):
        value = getattr(payload, field)
        if value is not None:
            setattr(settings, field, value)
    settings.updated_at_utc = datetime.now(timezone.utc)
    db.commit()
    return _settings_out(settings)


@app.get("/api/logs")
def api_logs(limit: int = 100, level: str = "DEBUG"):
    min_level = logging.getLevelName(level.strip().upper())
    if not isinstance(min_level, int):
        raise HTTPException(status_code=400, detail=f"Unknown log level: {level}")
    handler = get_buffer_handler()
    return {"entries": handler.entries(limit=limit, min_level=min_level)}


@app.get("/health")
def health(db: Session = Depends(get_db)):
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        db.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Health check: database unreachable.")
        raise HTTPException(
            status_code=503,
            detail={"status": "error", "timestamp": timestamp, "database": "disconnected"},
        )
    return {"status": "ok", "timestamp": timestamp, "database": "connected"}
