"""Risk badge and expected value for display.

Badges come from a fixed table of historical filter success rates; nothing
here feeds into prediction resolution.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any

FILTER_SUCCESS_RATES: dict[str, int] = {
    "filter1": 85,
    "filter2": 78,
    "filter3": 72,
    "filter4": 68,
    "filter5": 65,
    "filter6": 62,
    "filter7": 58,
    "filter8": 55,
}

# Used when the filter name is missing or not in the table.
DEFAULT_SUCCESS_RATE = 65


@dataclass(frozen=True)
class RiskConfig:
    badge: str
    score: int
    color: str
    emoji: str
    description: str
    estimated_time: str
    min_success_rate: int
    max_success_rate: int


RISK_CONFIGS: dict[str, RiskConfig] = {
    "ULTRA_SAFE": RiskConfig(
        badge="ULTRA_SAFE",
        score=1,
        color="#00C853",
        emoji="🟢",
        description=(
            "Historical performance points to a high chance of success: the "
            "estimated success rate is 80% or more. Make your own risk assessment "
            "before staking."
        ),
        estimated_time="5-10 min",
        min_success_rate=80,
        max_success_rate=100,
    ),
    "LOW_RISK": RiskConfig(
        badge="LOW_RISK",
        score=2,
        color="#64DD17",
        emoji="🟡",
        description=(
            "Historical performance shows a good chance of success, with an "
            "estimated success rate between 70% and 79%."
        ),
        estimated_time="10-15 min",
        min_success_rate=70,
        max_success_rate=79,
    ),
    "MEDIUM_RISK": RiskConfig(
        badge="MEDIUM_RISK",
        score=3,
        color="#FFC107",
        emoji="🟠",
        description=(
            "Medium risk: the estimated success rate is between 60% and 69%. "
            "Weigh the possible outcomes carefully."
        ),
        estimated_time="15-20 min",
        min_success_rate=60,
        max_success_rate=69,
    ),
    "HIGH_RISK": RiskConfig(
        badge="HIGH_RISK",
        score=4,
        color="#FF5722",
        emoji="🔴",
        description=(
            "High risk: the estimated success rate is between 50% and 59%. "
            "A thorough risk assessment is recommended."
        ),
        estimated_time="20-30 min",
        min_success_rate=50,
        max_success_rate=59,
    ),
    "VERY_HIGH_RISK": RiskConfig(
        badge="VERY_HIGH_RISK",
        score=5,
        color="#D32F2F",
        emoji="⚫",
        description=(
            "Very high risk: the estimated success rate is below 50%. Suitable "
            "for experienced users only."
        ),
        estimated_time="30+ min",
        min_success_rate=0,
        max_success_rate=49,
    ),
}


def _round_half_up(value: float, digits: int = 2) -> float:
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def calculate_expected_value(success_rate: float | None, odds: float | None) -> float:
    """EV per unit staked: p * (odds - 1) - (1 - p). Zero when odds are unknown."""
    if not success_rate or not odds or odds <= 0:
        return 0.0
    probability = success_rate / 100
    ev = probability * (odds - 1) - (1 - probability) * 1
    return _round_half_up(ev)


def get_risk_badge_by_success_rate(success_rate: float) -> RiskConfig:
    if success_rate >= 80:
        return RISK_CONFIGS["ULTRA_SAFE"]
    if success_rate >= 70:
        return RISK_CONFIGS["LOW_RISK"]
    if success_rate >= 60:
        return RISK_CONFIGS["MEDIUM_RISK"]
    if success_rate >= 50:
        return RISK_CONFIGS["HIGH_RISK"]
    return RISK_CONFIGS["VERY_HIGH_RISK"]


def calculate_smart_risk(filter_name: str | None, odds: float | None) -> dict[str, Any]:
    if filter_name and filter_name in FILTER_SUCCESS_RATES:
        success_rate = FILTER_SUCCESS_RATES[filter_name]
        config = get_risk_badge_by_success_rate(success_rate)
    else:
        success_rate = DEFAULT_SUCCESS_RATE
        config = RISK_CONFIGS["MEDIUM_RISK"]

    return {
        "filter_name": filter_name or "unknown",
        "risk_badge": config.badge,
        "risk_score": config.score,
        "risk_color": config.color,
        "risk_emoji": config.emoji,
        "success_rate": success_rate,
        "expected_value": calculate_expected_value(success_rate, odds or 0),
        "description": config.description,
        "estimated_time": config.estimated_time,
        "auto_calculated": True,
    }


def get_risk_config(badge: str | None) -> RiskConfig | None:
    return RISK_CONFIGS.get((badge or "").strip().upper())


def available_filters() -> list[str]:
    return list(FILTER_SUCCESS_RATES)


def all_risk_badges() -> list[dict[str, Any]]:
    return [asdict(config) for config in RISK_CONFIGS.values()]
