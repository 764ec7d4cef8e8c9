"""Score-to-level and score-to-timeframe derivation shared by every scorer."""

from __future__ import annotations

from typing import List, Sequence

from evalify.attrition.types import ContributingFactor, RecommendedAction, RiskAssessment

# (minimum score, level, timeframe), most severe first
RISK_BANDS = (
    (80, "critical", "0-30d"),
    (60, "high", "30-60d"),
    (40, "medium", "60-90d"),
    (0, "low", "90d+"),
)


def clamp_percent(value: float) -> int:
    """Round half up and clamp to the 0-100 range."""
    rounded = int(value + 0.5) if value >= 0 else -int(-value + 0.5)
    return max(0, min(100, rounded))


def _band(score: int) -> tuple[int, str, str]:
    for band in RISK_BANDS:
        if score >= band[0]:
            return band
    return RISK_BANDS[-1]


def derive_level(score: int) -> str:
    return _band(clamp_percent(score))[1]


def derive_timeframe(score: int) -> str:
    return _band(clamp_percent(score))[2]


def build_assessment(
    score: float,
    confidence: float,
    factors: Sequence[ContributingFactor] = (),
    actions: Sequence[RecommendedAction] = (),
    source: str = "rules",
) -> RiskAssessment:
    """Create an assessment whose level and timeframe always follow the band table."""
    risk_score = clamp_percent(score)
    factor_list: List[ContributingFactor] = list(factors)
    action_list: List[RecommendedAction] = list(actions)
    return RiskAssessment(
        risk_score=risk_score,
        risk_level=derive_level(risk_score),
        predicted_timeframe=derive_timeframe(risk_score),
        confidence=clamp_percent(confidence),
        contributing_factors=factor_list,
        recommended_actions=action_list,
        source=source,
    )
