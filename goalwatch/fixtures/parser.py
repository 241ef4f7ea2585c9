"""Parser for API-Football ``/fixtures`` payloads."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from goalwatch.fixtures.errors import SnapshotMalformed, SnapshotNotFound
from goalwatch.fixtures.schema import FixtureSnapshot, Goals
from goalwatch.fixtures.statuses import MatchPhase, match_phase, normalize_status


def _safe_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _parse_goals(raw: Any) -> Goals | None:
    raw = _as_dict(raw)
    home = _safe_int(raw.get("home"))
    away = _safe_int(raw.get("away"))
    if home is None or away is None:
        return None
    try:
        return Goals(home=home, away=away)
    except ValidationError as exc:
        raise SnapshotMalformed(f"invalid goal counts home={home} away={away}") from exc


def _first_fixture(payload: dict[str, Any], match_id: str) -> dict[str, Any]:
    response = payload.get("response")
    if response is None:
        raise SnapshotMalformed(f"match_id={match_id}: payload has no 'response' list")
    if not isinstance(response, list):
        raise SnapshotMalformed(
            f"match_id={match_id}: 'response' is {type(response).__name__}, expected list"
        )
    if not response:
        raise SnapshotNotFound(f"No fixture found for match_id={match_id}")
    fixture = response[0]
    if not isinstance(fixture, dict):
        raise SnapshotMalformed(f"match_id={match_id}: fixture entry is not an object")
    return fixture


def parse_fixture(payload: dict, match_id: str) -> FixtureSnapshot:
    """Parse one fixture payload into a FixtureSnapshot.

    Raises SnapshotNotFound when the provider knows no such fixture and
    SnapshotMalformed when the shape cannot be trusted.
    """

    if not isinstance(payload, dict):
        raise SnapshotMalformed(f"match_id={match_id}: payload is not a JSON object")

    fixture = _first_fixture(payload, match_id)
    status = _as_dict(_as_dict(fixture.get("fixture")).get("status"))
    status_code = normalize_status(status.get("short"))
    if not status_code:
        raise SnapshotMalformed(f"match_id={match_id}: missing fixture.status.short")

    goals = _parse_goals(fixture.get("goals"))
    if goals is None:
        # Null until kick-off, and for postponed or cancelled fixtures.
        if match_phase(status_code) in (MatchPhase.LIVE, MatchPhase.FINISHED):
            raise SnapshotMalformed(
                f"match_id={match_id}: goals missing while status={status_code}"
            )
        goals = Goals(home=0, away=0)

    half_time_goals = _parse_goals(_as_dict(fixture.get("score")).get("halftime"))

    try:
        return FixtureSnapshot(
            match_id=str(match_id),
            status_code=status_code,
            elapsed=_safe_int(status.get("elapsed")),
            goals=goals,
            half_time_goals=half_time_goals,
        )
    except ValidationError as exc:
        raise SnapshotMalformed(f"match_id={match_id}: {exc}") from exc
