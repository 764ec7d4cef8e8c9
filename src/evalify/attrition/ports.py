"""Interfaces the attrition pipeline reads from and writes to."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional, Protocol, Sequence

from evalify.attrition.types import (
    AlertNotification,
    Employee,
    FeedbackEntry,
    FeedbackSession,
    Goal,
    MilestoneCompletion,
    PredictionHistoryEntry,
    PredictionRecord,
    Recognition,
)


class EmployeeDirectory(Protocol):
    def eligible_employees(self) -> List[Employee]:
        """Employees that have not opted out of attrition analysis."""
        ...

    def team_members(self, team: str) -> List[str]:
        ...

    def users_with_role(self, role: str) -> List[str]:
        ...


class FeedbackSource(Protocol):
    def recent_sessions(self, employee_id: str, limit: int) -> Sequence[FeedbackSession]:
        """Most recent sessions first."""
        ...

    def entries_for_sessions(self, session_ids: Iterable[str]) -> Sequence[FeedbackEntry]:
        ...


class GoalSource(Protocol):
    def goals_for(self, employee_id: str) -> Sequence[Goal]:
        ...


class RecognitionSource(Protocol):
    def recent_recognitions(self, employee_id: str, limit: int) -> Sequence[Recognition]:
        """Most recent recognitions first."""
        ...


class MilestoneSource(Protocol):
    def milestones_for(self, employee_id: str) -> Sequence[MilestoneCompletion]:
        ...


class PredictionRepository(Protocol):
    def get_prediction(self, employee_id: str) -> Optional[PredictionRecord]:
        ...

    def upsert_prediction(self, record: PredictionRecord) -> None:
        ...

    def delete_prediction(self, employee_id: str) -> None:
        ...

    def insert_history(self, entry: PredictionHistoryEntry) -> None:
        ...

    def history_for(self, employee_id: str) -> List[PredictionHistoryEntry]:
        """Entries oldest first."""
        ...


class NotificationSink(Protocol):
    def send(self, notification: AlertNotification) -> None:
        ...


class AlertLedger(Protocol):
    def last_sent(self, recipient_id: str, employee_id: str, risk_level: str) -> Optional[datetime]:
        ...

    def record(self, recipient_id: str, employee_id: str, risk_level: str, sent_at: datetime) -> None:
        ...
