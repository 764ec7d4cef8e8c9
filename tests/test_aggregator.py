"""Tests for per-employee signal aggregation."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from evalify.attrition.aggregator import SignalAggregator
from evalify.attrition.memory import InMemoryActivity
from evalify.attrition.types import FeedbackEntry, FeedbackSession, Goal, MilestoneCompletion, Recognition

BASE = datetime(2026, 9, 1, tzinfo=timezone.utc)


def _aggregator(activity: InMemoryActivity) -> SignalAggregator:
    return SignalAggregator(activity, activity, activity, activity)


def test_empty_sources_resolve_to_defaults() -> None:
    snapshot = _aggregator(InMemoryActivity()).aggregate("emp-1")

    assert snapshot.feedback_session_count == 0
    assert snapshot.last_feedback_session_at is None
    assert snapshot.average_feedback_sentiment == 50
    assert snapshot.goals_total == 0
    assert snapshot.average_goal_progress == 0
    assert snapshot.recognition_count == 0
    assert snapshot.milestone_count == 0
    assert snapshot.last_milestone_at is None


def test_aggregate_counts_and_averages() -> None:
    activity = InMemoryActivity(
        sessions=[
            FeedbackSession(id="s1", employee_id="emp-1", created_at=BASE),
            FeedbackSession(id="s2", employee_id="emp-1", created_at=BASE + timedelta(days=3)),
            FeedbackSession(id="s3", employee_id="emp-2", created_at=BASE + timedelta(days=9)),
        ],
        entries=[
            FeedbackEntry(session_id="s1", sentiment_score=40),
            FeedbackEntry(session_id="s2", sentiment_score=65),
            FeedbackEntry(session_id="s2", sentiment_score=None),
            FeedbackEntry(session_id="s3", sentiment_score=0),
        ],
        goals=[
            Goal(profile_id="emp-1", status="completed", progress=100),
            Goal(profile_id="emp-1", status="active", progress=25),
            Goal(profile_id="emp-1", status="active", progress=None),
        ],
        recognitions=[Recognition(employee_id="emp-1", created_at=BASE + timedelta(days=1))],
        milestones=[
            MilestoneCompletion(employee_id="emp-1", milestone_key="lead", completed_at=BASE + timedelta(days=5)),
            MilestoneCompletion(employee_id="emp-1", milestone_key="mentor", completed_at=BASE),
        ],
    )

    snapshot = _aggregator(activity).aggregate("emp-1")

    assert snapshot.feedback_session_count == 2
    assert snapshot.last_feedback_session_at == BASE + timedelta(days=3)
    assert snapshot.average_feedback_sentiment == 53  # (40 + 65) / 2 rounds half up
    assert (snapshot.goals_total, snapshot.goals_completed, snapshot.goals_in_progress) == (3, 1, 2)
    assert snapshot.average_goal_progress == 42
    assert snapshot.recognition_count == 1
    assert snapshot.milestone_count == 2
    assert snapshot.last_milestone_at == BASE + timedelta(days=5)


def test_entries_without_scores_keep_neutral_sentiment() -> None:
    activity = InMemoryActivity(
        sessions=[FeedbackSession(id="s1", employee_id="emp-1", created_at=BASE)],
        entries=[FeedbackEntry(session_id="s1", sentiment_score=None)],
    )

    assert _aggregator(activity).aggregate("emp-1").average_feedback_sentiment == 50


def test_session_and_recognition_windows_are_bounded() -> None:
    activity = InMemoryActivity(
        sessions=[
            FeedbackSession(id=f"s{i}", employee_id="emp-1", created_at=BASE + timedelta(days=i)) for i in range(15)
        ],
        entries=[FeedbackEntry(session_id="s0", sentiment_score=0)]
        + [FeedbackEntry(session_id=f"s{i}", sentiment_score=80) for i in range(5, 15)],
        recognitions=[Recognition(employee_id="emp-1", created_at=BASE + timedelta(hours=i)) for i in range(30)],
    )

    snapshot = _aggregator(activity).aggregate("emp-1")

    assert snapshot.feedback_session_count == 10
    assert snapshot.average_feedback_sentiment == 80
    assert snapshot.recognition_count == 20
    assert snapshot.last_recognition_at == BASE + timedelta(hours=29)


def test_percentages_are_clamped() -> None:
    activity = InMemoryActivity(
        sessions=[FeedbackSession(id="s1", employee_id="emp-1", created_at=BASE)],
        entries=[FeedbackEntry(session_id="s1", sentiment_score=140)],
        goals=[Goal(profile_id="emp-1", status="active", progress=-20)],
    )

    snapshot = _aggregator(activity).aggregate("emp-1")

    assert snapshot.average_feedback_sentiment == 100
    assert snapshot.average_goal_progress == 0


def test_source_errors_propagate() -> None:
    class BrokenGoals:
        def goals_for(self, employee_id: str):
            raise ConnectionError("goals store down")

    activity = InMemoryActivity()
    aggregator = SignalAggregator(activity, BrokenGoals(), activity, activity)

    with pytest.raises(ConnectionError):
        aggregator.aggregate("emp-1")
