"""Outcome evaluation: (market, fixture snapshot) -> resolution decision.

Rules, keyed by scope, family and match phase:

=============  ================  ===========================================
scope          family            decision
=============  ================  ===========================================
first_half     over_goals        pending until half-time is reached, then
                                 won/lost from the half-time total
full_match     over_goals        won as soon as the running total clears the
                                 line (live or finished); lost only once the
                                 match is finished; otherwise pending
full_match     both_teams_score  won as soon as both sides have scored; lost
                                 only once the match is finished
=============  ================  ===========================================

Unknown markets, unknown status codes and missing half-time data are pending.
Evaluation is pure: the same inputs always give the same decision.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from goalwatch.fixtures.schema import FixtureSnapshot, Goals
from goalwatch.fixtures.statuses import MatchPhase, is_half_time_reached, match_phase
from goalwatch.resolution.markets import (
    Classification,
    Family,
    MarketSpec,
    Scope,
    UnknownMarket,
)


class Outcome(str, Enum):
    PENDING = "pending"
    WON = "won"
    LOST = "lost"


@dataclass(frozen=True)
class ResolutionDecision:
    outcome: Outcome
    reason: str
    home_score: Optional[int] = None
    away_score: Optional[int] = None

    @property
    def is_terminal(self) -> bool:
        return self.outcome is not Outcome.PENDING


def _pending(reason: str, goals: Goals | None = None) -> ResolutionDecision:
    if goals is None:
        return ResolutionDecision(Outcome.PENDING, reason)
    return ResolutionDecision(Outcome.PENDING, reason, goals.home, goals.away)


def _decided(outcome: Outcome, reason: str, goals: Goals) -> ResolutionDecision:
    return ResolutionDecision(outcome, reason, goals.home, goals.away)


def goals_needed(threshold: float) -> int:
    """Smallest total that beats an x.5 line."""
    return math.floor(threshold) + 1


def _first_half_over(spec: MarketSpec, snapshot: FixtureSnapshot) -> ResolutionDecision:
    if not is_half_time_reached(snapshot.status_code):
        return _pending(f"first half not over (status={snapshot.status_code})")
    half_time = snapshot.half_time_goals
    if half_time is None:
        return _pending("half-time score not published yet")
    needed = goals_needed(spec.threshold)
    if half_time.total >= needed:
        return _decided(Outcome.WON, f"half-time total {half_time.total} >= {needed}", half_time)
    return _decided(Outcome.LOST, f"half-time total {half_time.total} < {needed}", half_time)


def _full_match_over(spec: MarketSpec, snapshot: FixtureSnapshot) -> ResolutionDecision:
    phase = match_phase(snapshot.status_code)
    goals = snapshot.goals
    if phase not in (MatchPhase.LIVE, MatchPhase.FINISHED):
        return _pending(f"match not in play (status={snapshot.status_code})")
    needed = goals_needed(spec.threshold)
    if goals.total >= needed:
        return _decided(Outcome.WON, f"total {goals.total} >= {needed}", goals)
    if phase is MatchPhase.FINISHED:
        return _decided(Outcome.LOST, f"finished with total {goals.total} < {needed}", goals)
    return _pending(f"total {goals.total} < {needed}, match still live", goals)


def _full_match_both_teams_score(
    spec: MarketSpec, snapshot: FixtureSnapshot
) -> ResolutionDecision:
    phase = match_phase(snapshot.status_code)
    goals = snapshot.goals
    if phase not in (MatchPhase.LIVE, MatchPhase.FINISHED):
        return _pending(f"match not in play (status={snapshot.status_code})")
    if goals.home > 0 and goals.away > 0:
        return _decided(Outcome.WON, "both teams scored", goals)
    if phase is MatchPhase.FINISHED:
        return _decided(Outcome.LOST, "finished without both teams scoring", goals)
    return _pending("waiting for both teams to score", goals)


_RULES: dict[tuple[Scope, Family], Callable[[MarketSpec, FixtureSnapshot], ResolutionDecision]] = {
    (Scope.FIRST_HALF, Family.OVER_GOALS): _first_half_over,
    (Scope.FULL_MATCH, Family.OVER_GOALS): _full_match_over,
    (Scope.FULL_MATCH, Family.BOTH_TEAMS_SCORE): _full_match_both_teams_score,
}


def evaluate(spec: Classification, snapshot: FixtureSnapshot) -> ResolutionDecision:
    if isinstance(spec, UnknownMarket):
        return _pending(f"unknown market: {spec.reason}")
    rule = _RULES.get((spec.scope, spec.family))
    if rule is None:
        return _pending(f"no rule for {spec.scope.value}/{spec.family.value}")
    return rule(spec, snapshot)
