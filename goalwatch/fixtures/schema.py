"""Internal data contract for fixture snapshots."""

from typing import Optional

from pydantic import BaseModel, Field


class Goals(BaseModel):
    home: int = Field(ge=0)
    away: int = Field(ge=0)

    @property
    def total(self) -> int:
        return self.home + self.away


class FixtureSnapshot(BaseModel):
    """
    Point-in-time read of one match used across fetch -> evaluate -> write-back.
    """

    match_id: str
    status_code: str
    elapsed: Optional[int] = None
    goals: Goals

    # Absent until the first half is over.
    half_time_goals: Optional[Goals] = None
