from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from goalwatch.fixtures.client import build_fixture_client
from goalwatch.fixtures.errors import ExternalTimeout, FixtureClientError
from goalwatch.fixtures.schema import FixtureSnapshot
from goalwatch.resolution.evaluator import evaluate
from goalwatch.resolution.markets import UnknownMarket, classify
from goalwatch.resolution.store import ActivePrediction, PredictionStore
from goalwatch.settings import SettingsSnapshot, load_settings_snapshot

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 4
DEFAULT_FETCH_DEADLINE_SECONDS = 12.0
DEFAULT_INTERVAL_SECONDS = 30


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TickFailure:
    prediction_id: int | None
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.prediction_id, "reason": self.reason}


@dataclass
class TickSummary:
    started_at: datetime
    finished_at: datetime | None = None
    checked: int = 0
    evaluated_count: int = 0
    transitioned_count: int = 0
    pending: int = 0
    unknown_markets: int = 0
    conflicts: int = 0
    failures: list[TickFailure] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "checked": self.checked,
            "evaluated_count": self.evaluated_count,
            "transitioned_count": self.transitioned_count,
            "pending": self.pending,
            "unknown_markets": self.unknown_markets,
            "conflicts": self.conflicts,
            "failures": [failure.to_dict() for failure in self.failures],
        }


class ResolutionScheduler:
    """Evaluates every active prediction once per tick.

    ``gateway`` is any object with ``fetch_snapshot(match_id) -> FixtureSnapshot``.
    Ticks are serialized by an internal lock; a tick never keeps state about a
    prediction beyond its own run, except for sharing one fetch per match id.
    """

    def __init__(
        self,
        store: PredictionStore,
        gateway=None,
        *,
        concurrency: int = DEFAULT_CONCURRENCY,
        fetch_deadline_seconds: float = DEFAULT_FETCH_DEADLINE_SECONDS,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.concurrency = concurrency
        self.fetch_deadline_seconds = fetch_deadline_seconds
        self.last_summary: TickSummary | None = None
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def reconfigure(
        self,
        *,
        gateway,
        concurrency: int,
        fetch_deadline_seconds: float,
    ) -> None:
        self.gateway = gateway
        self.concurrency = concurrency
        self.fetch_deadline_seconds = fetch_deadline_seconds

    async def run_tick(self) -> TickSummary:
        async with self._lock:
            summary = await self._tick()
        self.last_summary = summary
        return summary

    async def run_tick_if_idle(self) -> TickSummary | None:
        if self._lock.locked():
            return None
        return await self.run_tick()

    async def _tick(self) -> TickSummary:
        if self.gateway is None:
            raise RuntimeError("Resolver has no fixture gateway configured.")

        summary = TickSummary(started_at=_utcnow())
        try:
            predictions = await asyncio.to_thread(self.store.list_active)
        except Exception as exc:
            logger.exception("Resolver tick: failed to read active predictions.")
            summary.failures.append(
                TickFailure(None, f"store unavailable: {type(exc).__name__}: {exc}")
            )
            return self._finish(summary)

        summary.checked = len(predictions)
        if predictions:
            semaphore = asyncio.Semaphore(max(1, self.concurrency))
            snapshots: dict[str, asyncio.Task] = {}
            tasks = [
                asyncio.create_task(self._resolve_one(prediction, summary, semaphore, snapshots))
                for prediction in predictions
            ]
            await asyncio.gather(*tasks)
        return self._finish(summary)

    def _finish(self, summary: TickSummary) -> TickSummary:
        summary.finished_at = _utcnow()
        duration = (summary.finished_at - summary.started_at).total_seconds()
        log = logger.info if summary.checked or summary.failures else logger.debug
        log(
            "Resolver tick done: checked=%d evaluated=%d transitioned=%d pending=%d "
            "unknown=%d conflicts=%d failures=%d duration=%.2fs",
            summary.checked,
            summary.evaluated_count,
            summary.transitioned_count,
            summary.pending,
            summary.unknown_markets,
            summary.conflicts,
            len(summary.failures),
            duration,
        )
        return summary

    async def _fetch_snapshot(self, match_id: str) -> FixtureSnapshot:
        deadline = self.fetch_deadline_seconds
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.gateway.fetch_snapshot, match_id),
                timeout=deadline,
            )
        except asyncio.TimeoutError as exc:
            raise ExternalTimeout(
                f"match_id={match_id}: no snapshot within {deadline:.1f}s"
            ) from exc

    async def _snapshot_for(self, match_id: str, snapshots: dict[str, asyncio.Task]) -> FixtureSnapshot:
        task = snapshots.get(match_id)
        if task is None:
            task = asyncio.create_task(self._fetch_snapshot(match_id))
            snapshots[match_id] = task
        return await task

    def _record_failure(self, summary: TickSummary, prediction: ActivePrediction, exc: Exception) -> None:
        reason = f"{type(exc).__name__}: {str(exc).strip() or '(no message)'}"
        summary.failures.append(TickFailure(prediction.id, reason))
        logger.warning(
            "#%d (match_id=%s): skipped this tick, %s",
            prediction.id,
            prediction.match_id,
            reason,
        )

    async def _resolve_one(
        self,
        prediction: ActivePrediction,
        summary: TickSummary,
        semaphore: asyncio.Semaphore,
        snapshots: dict[str, asyncio.Task],
    ) -> None:
        async with semaphore:
            spec = classify(prediction.prediction_type)
            if isinstance(spec, UnknownMarket):
                summary.evaluated_count += 1
                summary.unknown_markets += 1
                summary.pending += 1
                logger.warning(
                    "#%d: unknown market %r (%s), left active for manual review",
                    prediction.id,
                    prediction.prediction_type,
                    spec.reason,
                )
                return

            try:
                snapshot = await self._snapshot_for(prediction.match_id, snapshots)
                decision = evaluate(spec, snapshot)
            except FixtureClientError as exc:
                self._record_failure(summary, prediction, exc)
                return
            except Exception as exc:
                logger.exception("#%d: unexpected error while evaluating.", prediction.id)
                self._record_failure(summary, prediction, exc)
                return

            summary.evaluated_count += 1
            if not decision.is_terminal:
                summary.pending += 1
                logger.debug(
                    "#%d: pending (%s) status=%s",
                    prediction.id,
                    decision.reason,
                    snapshot.status_code,
                )
                return

            try:
                applied = await asyncio.to_thread(
                    self.store.try_complete,
                    prediction.id,
                    decision.outcome.value,
                    decision.home_score,
                    decision.away_score,
                )
            except Exception as exc:
                logger.exception("#%d: write-back failed.", prediction.id)
                self._record_failure(summary, prediction, exc)
                return

            if applied:
                summary.transitioned_count += 1
                logger.info(
                    "#%d: %s %s-%s (%s, status=%s)",
                    prediction.id,
                    decision.outcome.value.upper(),
                    decision.home_score,
                    decision.away_score,
                    decision.reason,
                    snapshot.status_code,
                )
            else:
                summary.conflicts += 1
                logger.info("#%d: already completed by another writer, no-op", prediction.id)


async def _sleep_or_stop(stop_event: asyncio.Event, seconds: float) -> None:
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=max(0.0, seconds))
    except asyncio.TimeoutError:
        pass


async def run_resolver_with_shutdown(
    stop_event: asyncio.Event,
    scheduler: ResolutionScheduler | None = None,
    settings_loader: Callable[[], SettingsSnapshot] = load_settings_snapshot,
) -> None:
    """Run resolver ticks on a fixed interval until stop_event is set."""
    scheduler = scheduler or ResolutionScheduler(PredictionStore())
    logger.info("Resolver started.")

    while not stop_event.is_set():
        try:
            settings = await asyncio.to_thread(settings_loader)
        except Exception:
            logger.exception("Resolver: failed to load settings.")
            await _sleep_or_stop(stop_event, DEFAULT_INTERVAL_SECONDS)
            continue

        interval = max(1, settings.resolver_interval_seconds)
        if not settings.resolver_enabled:
            logger.warning("Resolver poll: resolver_enabled=false, idle")
            await _sleep_or_stop(stop_event, interval)
            continue

        client = build_fixture_client(settings)
        if client is None:
            logger.warning("Resolver poll: no fixtures API key configured, skipping")
            await _sleep_or_stop(stop_event, interval)
            continue

        scheduler.reconfigure(
            gateway=client,
            concurrency=settings.resolver_concurrency,
            fetch_deadline_seconds=client.deadline_seconds,
        )
        started = time.monotonic()
        try:
            await scheduler.run_tick()
        except Exception:
            logger.exception("Resolver tick crashed.")
        elapsed = time.monotonic() - started
        await _sleep_or_stop(stop_event, interval - elapsed)

    logger.info("Resolver stopped.")
