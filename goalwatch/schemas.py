from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class PredictionOut(BaseModel):
    id: int
    match_id: str
    home_team: str
    away_team: str
    league: Optional[str]
    prediction_type: str
    filter_name: Optional[str]
    odds: float
    confidence: Optional[str]
    status: str
    result: Optional[str]
    home_score: Optional[int]
    away_score: Optional[int]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    completed_at: Optional[datetime]

    class Config:
        from_attributes = True


class PredictionDetailOut(PredictionOut):
    market: dict[str, Any]
    risk: dict[str, Any]


class TickFailureOut(BaseModel):
    id: Optional[int]
    reason: str


class TickSummaryOut(BaseModel):
    started_at: datetime
    finished_at: Optional[datetime]
    checked: int
    evaluated_count: int
    transitioned_count: int
    pending: int
    unknown_markets: int
    conflicts: int
    failures: list[TickFailureOut]


class ResolverStatusOut(BaseModel):
    busy: bool
    last_tick: Optional[TickSummaryOut] = None


class SettingsOut(BaseModel):
    has_api_key: bool
    resolver_enabled: bool
    resolver_concurrency: int
    resolver_interval_seconds: int
    fetch_timeout_seconds: float
    retention_days: int


class SettingsUpdate(BaseModel):
    fixtures_api_key: Optional[str] = None
    resolver_enabled: Optional[bool] = None
    resolver_concurrency: Optional[int] = Field(default=None, ge=1, le=32)
    resolver_interval_seconds: Optional[int] = Field(default=None, ge=5)
    fetch_timeout_seconds: Optional[float] = Field(default=None, gt=0, le=30)
    retention_days: Optional[int] = Field(default=None, ge=1)
