"""Tests for the rule-based attrition scorer and shared band table."""

from __future__ import annotations

from evalify.attrition.rules import RuleBasedScorer
from evalify.attrition.thresholds import build_assessment, derive_level, derive_timeframe
from evalify.attrition.types import EmployeeSignalSnapshot


def _snapshot(sentiment: int, recognitions: int, goals: int, progress: int, milestones: int) -> EmployeeSignalSnapshot:
    return EmployeeSignalSnapshot(
        average_feedback_sentiment=sentiment,
        recognition_count=recognitions,
        goals_total=goals,
        average_goal_progress=progress,
        milestone_count=milestones,
    )


def test_stacked_adjustments_clamp_to_critical() -> None:
    result = RuleBasedScorer().score(_snapshot(35, 1, 4, 20, 0))

    assert result.risk_score == 100
    assert result.risk_level == "critical"
    assert result.predicted_timeframe == "0-30d"
    assert result.confidence == 65
    assert [f.factor for f in result.contributing_factors] == [
        "Low Feedback Sentiment",
        "Limited Recognition",
        "Goal Progress Stagnation",
        "Career Stagnation",
    ]
    assert [a.priority for a in result.recommended_actions] == ["high", "medium", "medium", "high"]


def test_positive_sentiment_lowers_score_without_factors() -> None:
    result = RuleBasedScorer().score(_snapshot(80, 10, 2, 90, 3))

    assert result.risk_score == 35
    assert result.risk_level == "low"
    assert result.predicted_timeframe == "90d+"
    assert result.contributing_factors == []
    assert result.recommended_actions == []


def test_goal_rule_needs_goals() -> None:
    result = RuleBasedScorer().score(_snapshot(50, 5, 0, 0, 1))

    assert result.risk_score == 50
    assert result.risk_level == "medium"
    assert result.predicted_timeframe == "60-90d"


def test_career_stagnation_factor_is_stable() -> None:
    result = RuleBasedScorer().score(_snapshot(50, 5, 0, 0, 0))

    assert result.risk_score == 60
    assert result.risk_level == "high"
    factor = result.contributing_factors[0]
    assert (factor.factor, factor.weight, factor.trend) == ("Career Stagnation", 10, "stable")
    assert result.recommended_actions[0].action == "Create career development plan"


def test_sentiment_boundaries_do_not_fire() -> None:
    scorer = RuleBasedScorer()

    assert scorer.score(_snapshot(40, 5, 0, 0, 1)).risk_score == 50
    assert scorer.score(_snapshot(70, 5, 0, 0, 1)).risk_score == 50
    assert scorer.score(_snapshot(71, 5, 0, 0, 1)).risk_score == 35


def test_rule_scorer_is_pure() -> None:
    scorer = RuleBasedScorer()
    snapshot = _snapshot(30, 2, 3, 10, 0)

    first = scorer.score(snapshot)
    second = scorer.score(snapshot)

    assert first == second
    assert snapshot == _snapshot(30, 2, 3, 10, 0)


def test_scores_always_within_bounds() -> None:
    scorer = RuleBasedScorer()
    for sentiment in (0, 39, 40, 70, 71, 100):
        for recognitions in (0, 2, 3, 20):
            for goals, progress in ((0, 0), (3, 29), (3, 30)):
                for milestones in (0, 1):
                    result = scorer.score(_snapshot(sentiment, recognitions, goals, progress, milestones))
                    assert 0 <= result.risk_score <= 100
                    assert result.risk_level == derive_level(result.risk_score)
                    assert result.predicted_timeframe == derive_timeframe(result.risk_score)


def test_band_table_edges() -> None:
    expected = {
        0: ("low", "90d+"),
        39: ("low", "90d+"),
        40: ("medium", "60-90d"),
        59: ("medium", "60-90d"),
        60: ("high", "30-60d"),
        79: ("high", "30-60d"),
        80: ("critical", "0-30d"),
        100: ("critical", "0-30d"),
    }
    for score, (level, timeframe) in expected.items():
        assert derive_level(score) == level
        assert derive_timeframe(score) == timeframe


def test_build_assessment_clamps_and_derives() -> None:
    high = build_assessment(130.4, 140)
    low = build_assessment(-12, -3)

    assert (high.risk_score, high.confidence, high.risk_level) == (100, 100, "critical")
    assert (low.risk_score, low.confidence, low.risk_level) == (0, 0, "low")
