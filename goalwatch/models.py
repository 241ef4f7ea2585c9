from sqlalchemy import Boolean, Column, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.sql import func

from .db import Base

PREDICTION_ACTIVE = "active"
PREDICTION_COMPLETED = "completed"


class Prediction(Base):
    __tablename__ = "predictions"
    __table_args__ = (
        Index("ix_predictions_status_created_at", "status", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Fixture
    match_id = Column(String, nullable=False)      # provider id, kept as text
    home_team = Column(String, nullable=False, default="")
    away_team = Column(String, nullable=False, default="")
    league = Column(String, nullable=True)

    # Market
    prediction_type = Column(String, nullable=False)   # "2.5Ü MB", "0.5Ü İY", ...
    filter_name = Column(String, nullable=True)
    odds = Column(Float, nullable=False, default=0.0)  # 0 = unknown
    confidence = Column(String, nullable=True)

    # Lifecycle
    status = Column(String, nullable=False, default=PREDICTION_ACTIVE)
    result = Column(String, nullable=True)             # NULL | won | lost
    home_score = Column(Integer, nullable=True)
    away_score = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )
    completed_at = Column(DateTime(timezone=True), nullable=True)


class AppSettings(Base):
    __tablename__ = "app_settings"

    id = Column(Integer, primary_key=True)
    fixtures_api_key_enc = Column(Text, nullable=True)
    resolver_enabled = Column(Boolean, nullable=False, default=True)
    resolver_concurrency = Column(Integer, nullable=False, default=4)
    resolver_interval_seconds = Column(Integer, nullable=False, default=30)
    fetch_timeout_seconds = Column(Float, nullable=False, default=5.0)
    retention_days = Column(Integer, nullable=False, default=2)
    updated_at_utc = Column(DateTime(timezone=True), server_default=func.now())
