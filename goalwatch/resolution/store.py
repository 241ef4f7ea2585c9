"""Persistence boundary used by the resolver."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.orm import Session, sessionmaker

from goalwatch.db import SessionLocal
from goalwatch.models import PREDICTION_ACTIVE, PREDICTION_COMPLETED, Prediction

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ActivePrediction:
    """Detached read of one active row, valid for a single tick."""

    id: int
    match_id: str
    prediction_type: str
    odds: float


class PredictionStore:
    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self._session_factory = session_factory or SessionLocal

    def list_active(self, limit: int | None = None) -> list[ActivePrediction]:
        with self._session_factory() as db:
            query = (
                db.query(Prediction)
                .filter(Prediction.status == PREDICTION_ACTIVE)
                .order_by(Prediction.created_at.asc(), Prediction.id.asc())
            )
            if limit:
                query = query.limit(limit)
            return [
                ActivePrediction(
                    id=row.id,
                    match_id=str(row.match_id),
                    prediction_type=row.prediction_type or "",
                    odds=float(row.odds or 0.0),
                )
                for row in query.all()
            ]

    def try_complete(
        self,
        prediction_id: int,
        result: str,
        home_score: int | None,
        away_score: int | None,
        *,
        now: datetime | None = None,
    ) -> bool:
        """Complete a prediction only if it is still active.

        Returns False when another writer completed (or removed) it first.
        """

        now = now or _utcnow()
        with self._session_factory() as db:
            updated = (
                db.query(Prediction)
                .filter(
                    Prediction.id == prediction_id,
                    Prediction.status == PREDICTION_ACTIVE,
                )
                .update(
                    {
                        Prediction.status: PREDICTION_COMPLETED,
                        Prediction.result: result,
                        Prediction.home_score: home_score,
                        Prediction.away_score: away_score,
                        Prediction.completed_at: now,
                        Prediction.updated_at: now,
                    },
                    synchronize_session=False,
                )
            )
            db.commit()
        return updated == 1

    def purge_created_before(self, cutoff: datetime) -> int:
        with self._session_factory() as db:
            deleted = (
                db.query(Prediction)
                .filter(Prediction.created_at < cutoff)
                .delete(synchronize_session=False)
            )
            db.commit()
        if deleted:
            logger.info("Purged %d prediction(s) created before %s", deleted, cutoff.isoformat())
        return deleted
