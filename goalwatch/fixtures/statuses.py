"""Fixture status codes as reported by API-Football (``fixture.status.short``)."""

from __future__ import annotations

from enum import Enum

NOT_STARTED: frozenset[str] = frozenset({"TBD", "NS"})
LIVE: frozenset[str] = frozenset({"1H", "HT", "2H", "ET", "BT", "P"})
FINISHED: frozenset[str] = frozenset({"FT", "AET", "PEN"})
HALF_TIME_REACHED: frozenset[str] = frozenset(
    {"HT", "2H", "ET", "BT", "P", "FT", "AET", "PEN"}
)


class MatchPhase(str, Enum):
    NOT_STARTED = "not_started"
    LIVE = "live"
    FINISHED = "finished"
    OTHER = "other"


def normalize_status(code: str | None) -> str:
    return (code or "").strip().upper()


def match_phase(code: str | None) -> MatchPhase:
    """Map a status code to a phase.

    Suspended, interrupted, postponed, cancelled, abandoned and unrecognised
    codes all map to OTHER.
    """

    normalized = normalize_status(code)
    if normalized in NOT_STARTED:
        return MatchPhase.NOT_STARTED
    if normalized in FINISHED:
        return MatchPhase.FINISHED
    if normalized in LIVE:
        return MatchPhase.LIVE
    return MatchPhase.OTHER


def is_half_time_reached(code: str | None) -> bool:
    return normalize_status(code) in HALF_TIME_REACHED
