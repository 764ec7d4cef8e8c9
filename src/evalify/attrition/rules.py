"""Deterministic rule-based attrition scorer."""

from __future__ import annotations

from typing import List

from evalify.attrition.thresholds import build_assessment
from evalify.attrition.types import (
    ContributingFactor,
    Employee,
    EmployeeSignalSnapshot,
    RecommendedAction,
    RiskAssessment,
)

BASE_SCORE = 50
RULE_CONFIDENCE = 65


class RuleBasedScorer:
    """Score attrition risk from fixed additive adjustments, without LLMs."""

    def score(self, snapshot: EmployeeSignalSnapshot, employee: Employee | None = None) -> RiskAssessment:
        score = BASE_SCORE
        factors: List[ContributingFactor] = []
        actions: List[RecommendedAction] = []

        if snapshot.average_feedback_sentiment < 40:
            score += 20
            factors.append(
                ContributingFactor(
                    factor="Low Feedback Sentiment",
                    weight=20,
                    trend="declining",
                    description="Recent feedback shows below-average sentiment scores",
                )
            )
            actions.append(
                RecommendedAction(
                    action="Schedule 1-on-1 to discuss concerns",
                    priority="high",
                    rationale="Address potential dissatisfaction early",
                )
            )
        elif snapshot.average_feedback_sentiment > 70:
            score -= 15

        if snapshot.recognition_count < 3:
            score += 15
            factors.append(
                ContributingFactor(
                    factor="Limited Recognition",
                    weight=15,
                    trend="declining",
                    description="Employee has received minimal recognition recently",
                )
            )
            actions.append(
                RecommendedAction(
                    action="Implement regular recognition practices",
                    priority="medium",
                    rationale="Recognition improves engagement and retention",
                )
            )

        if snapshot.goals_total > 0 and snapshot.average_goal_progress < 30:
            score += 15
            factors.append(
                ContributingFactor(
                    factor="Goal Progress Stagnation",
                    weight=15,
                    trend="declining",
                    description="Goals are showing minimal progress",
                )
            )
            actions.append(
                RecommendedAction(
                    action="Review and adjust goals collaboratively",
                    priority="medium",
                    rationale="Unachievable goals lead to frustration",
                )
            )

        if snapshot.milestone_count == 0:
            score += 10
            factors.append(
                ContributingFactor(
                    factor="Career Stagnation",
                    weight=10,
                    trend="stable",
                    description="No career milestones achieved",
                )
            )
            actions.append(
                RecommendedAction(
                    action="Create career development plan",
                    priority="high",
                    rationale="Clear growth path improves retention",
                )
            )

        return build_assessment(score, RULE_CONFIDENCE, factors, actions, source="rules")
