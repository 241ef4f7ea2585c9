"""Market classification for free-form prediction labels.

Labels follow the Turkish bookmaker shorthand used by the tipsters:

* ``İY`` / ``IY`` (first half) and ``MB`` (full match) pick the scope.
* ``<line>Ü`` (e.g. ``2.5Ü``) is an over-goals line.
* ``KGV`` is both teams to score, full match only.

Matching is case-insensitive substring containment, so labels may carry
extra words around the tokens. Labels are upper-cased and NFC-composed, so a
lower-cased ``i̇y`` (``i`` plus combining dot) reads as ``İY`` again.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Optional, Union

FIRST_HALF_MARKERS: tuple[str, ...] = ("İY", "IY")
FULL_MATCH_MARKERS: tuple[str, ...] = ("MB",)
OVER_MARKER = "Ü"
BOTH_TEAMS_SCORE_MARKER = "KGV"
OVER_LINES: tuple[float, ...] = (0.5, 1.5, 2.5, 3.5, 4.5)


class Scope(str, Enum):
    FULL_MATCH = "full_match"
    FIRST_HALF = "first_half"


class Family(str, Enum):
    OVER_GOALS = "over_goals"
    BOTH_TEAMS_SCORE = "both_teams_score"


@dataclass(frozen=True)
class MarketSpec:
    scope: Scope
    family: Family
    threshold: Optional[float] = None

    def describe(self) -> str:
        if self.family is Family.OVER_GOALS:
            return f"over {self.threshold} goals, {self.scope.value}"
        return f"both teams to score, {self.scope.value}"

    def to_dict(self) -> dict:
        return {
            "known": True,
            "scope": self.scope.value,
            "family": self.family.value,
            "threshold": self.threshold,
            "description": self.describe(),
        }


@dataclass(frozen=True)
class UnknownMarket:
    label: str
    reason: str

    def to_dict(self) -> dict:
        return {"known": False, "label": self.label, "reason": self.reason}


Classification = Union[MarketSpec, UnknownMarket]


def _normalize(label: str) -> str:
    return unicodedata.normalize("NFC", label.strip().upper())


def _line_token(line: float) -> str:
    return f"{line}{OVER_MARKER}"


def _detect_scope(normalized: str) -> Scope | None:
    # First-half markers win when both appear.
    if any(marker in normalized for marker in FIRST_HALF_MARKERS):
        return Scope.FIRST_HALF
    if any(marker in normalized for marker in FULL_MATCH_MARKERS):
        return Scope.FULL_MATCH
    return None


def _detect_over_line(normalized: str) -> float | None:
    for line in OVER_LINES:
        if _line_token(line) in normalized:
            return line
    return None


@lru_cache(maxsize=1024)
def classify(label: str) -> Classification:
    """Classify a market label. Never raises; unparseable labels give UnknownMarket."""

    if not isinstance(label, str) or not label.strip():
        return UnknownMarket(label=str(label or ""), reason="empty label")

    normalized = _normalize(label)
    scope = _detect_scope(normalized)
    if scope is None:
        return UnknownMarket(label=label, reason="no scope marker (İY/IY/MB)")

    line = _detect_over_line(normalized)
    if line is not None:
        return MarketSpec(scope=scope, family=Family.OVER_GOALS, threshold=line)

    if BOTH_TEAMS_SCORE_MARKER in normalized:
        if scope is Scope.FULL_MATCH:
            return MarketSpec(scope=scope, family=Family.BOTH_TEAMS_SCORE)
        return UnknownMarket(
            label=label, reason="both-teams-score is only offered for the full match"
        )

    return UnknownMarket(label=label, reason=f"no supported market token for {scope.value}")
