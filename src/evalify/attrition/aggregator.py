"""Per-employee signal aggregation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from evalify.attrition.ports import FeedbackSource, GoalSource, MilestoneSource, RecognitionSource
from evalify.attrition.thresholds import clamp_percent
from evalify.attrition.types import EmployeeSignalSnapshot, FeedbackEntry, Goal

SESSION_LIMIT = 10
RECOGNITION_LIMIT = 20
NEUTRAL_SENTIMENT = 50


def average_sentiment(entries: Sequence[FeedbackEntry]) -> int:
    """Mean sentiment of entries that carry a score; neutral when none do."""
    scores = [float(entry.sentiment_score) for entry in entries if entry.sentiment_score is not None]
    if not scores:
        return NEUTRAL_SENTIMENT
    return clamp_percent(sum(scores) / len(scores))


def average_progress(goals: Sequence[Goal]) -> int:
    if not goals:
        return 0
    total = sum(float(goal.progress or 0) for goal in goals)
    return clamp_percent(total / len(goals))


def _latest(timestamps: Iterable[Optional[datetime]]) -> Optional[datetime]:
    present = [ts for ts in timestamps if ts is not None]
    return max(present) if present else None


@dataclass
class SignalAggregator:
    """Build an EmployeeSignalSnapshot from the five activity sources."""

    feedback: FeedbackSource
    goals: GoalSource
    recognitions: RecognitionSource
    milestones: MilestoneSource

    def aggregate(self, employee_id: str) -> EmployeeSignalSnapshot:
        sessions = list(self.feedback.recent_sessions(employee_id, SESSION_LIMIT) or [])[:SESSION_LIMIT]
        session_ids: List[str] = [session.id for session in sessions]
        entries: Sequence[FeedbackEntry] = []
        if session_ids:
            entries = list(self.feedback.entries_for_sessions(session_ids) or [])

        goals = list(self.goals.goals_for(employee_id) or [])
        recognitions = list(self.recognitions.recent_recognitions(employee_id, RECOGNITION_LIMIT) or [])[
            :RECOGNITION_LIMIT
        ]
        milestones = list(self.milestones.milestones_for(employee_id) or [])

        return EmployeeSignalSnapshot(
            feedback_session_count=len(sessions),
            last_feedback_session_at=_latest(session.created_at for session in sessions),
            average_feedback_sentiment=average_sentiment(entries),
            goals_total=len(goals),
            goals_completed=sum(1 for goal in goals if goal.status == "completed"),
            goals_in_progress=sum(1 for goal in goals if goal.status == "active"),
            average_goal_progress=average_progress(goals),
            recognition_count=len(recognitions),
            last_recognition_at=_latest(item.created_at for item in recognitions),
            milestone_count=len(milestones),
            last_milestone_at=_latest(item.completed_at for item in milestones),
        )
