"""Daily purge of old predictions."""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Callable

from goalwatch.resolution.store import PredictionStore
from goalwatch.settings import SettingsSnapshot, load_settings_snapshot

logger = logging.getLogger(__name__)
RETENTION_HOUR_UTC = int(os.getenv("RETENTION_HOUR_UTC", "3"))


def purge_expired_predictions(
    store: PredictionStore,
    retention_days: int,
    *,
    now: datetime | None = None,
) -> int:
    """Delete predictions created more than ``retention_days`` ago, any status."""
    if retention_days < 1:
        raise ValueError("retention_days must be >= 1")
    now = now or datetime.now(timezone.utc)
    return store.purge_created_before(now - timedelta(days=retention_days))


def seconds_until_next_run(now: datetime, hour_utc: int = RETENTION_HOUR_UTC) -> float:
    now = now.astimezone(timezone.utc)
    next_run = now.replace(hour=hour_utc, minute=0, second=0, microsecond=0)
    if next_run <= now:
        next_run += timedelta(days=1)
    return (next_run - now).total_seconds()


async def run_retention_with_shutdown(
    stop_event: asyncio.Event,
    store: PredictionStore | None = None,
    settings_loader: Callable[[], SettingsSnapshot] = load_settings_snapshot,
    hour_utc: int = RETENTION_HOUR_UTC,
) -> None:
    """Purge once a day at ``hour_utc`` until stop_event is set."""
    store = store or PredictionStore()
    logger.info("Retention job scheduled daily at %02d:00 UTC", hour_utc)

    while not stop_event.is_set():
        delay = seconds_until_next_run(datetime.now(timezone.utc), hour_utc)
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=delay)
            break
        except asyncio.TimeoutError:
            pass

        try:
            settings = await asyncio.to_thread(settings_loader)
            deleted = await asyncio.to_thread(
                purge_expired_predictions, store, settings.retention_days
            )
            logger.info(
                "Auto cleanup done: deleted=%s retention_days=%s",
                deleted,
                settings.retention_days,
            )
        except Exception:
            logger.exception("Auto cleanup failed.")

    logger.info("Retention job stopped.")
