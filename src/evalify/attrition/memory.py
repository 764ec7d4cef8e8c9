"""In-memory implementations of the attrition ports."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

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


@dataclass
class InMemoryDirectory:
    employees: List[Employee] = field(default_factory=list)
    roles: Dict[str, List[str]] = field(default_factory=dict)

    def eligible_employees(self) -> List[Employee]:
        return [emp for emp in self.employees if not emp.attrition_opt_out]

    def team_members(self, team: str) -> List[str]:
        return [emp.user_id for emp in self.employees if emp.team == team]

    def users_with_role(self, role: str) -> List[str]:
        return list(self.roles.get(role, []))


@dataclass
class InMemoryActivity:
    """All five activity sources backed by plain lists."""

    sessions: List[FeedbackSession] = field(default_factory=list)
    entries: List[FeedbackEntry] = field(default_factory=list)
    goals: List[Goal] = field(default_factory=list)
    recognitions: List[Recognition] = field(default_factory=list)
    milestones: List[MilestoneCompletion] = field(default_factory=list)

    def recent_sessions(self, employee_id: str, limit: int) -> Sequence[FeedbackSession]:
        own = [s for s in self.sessions if s.employee_id == employee_id]
        return sorted(own, key=lambda s: s.created_at, reverse=True)[:limit]

    def entries_for_sessions(self, session_ids: Iterable[str]) -> Sequence[FeedbackEntry]:
        wanted = set(session_ids)
        return [e for e in self.entries if e.session_id in wanted]

    def goals_for(self, employee_id: str) -> Sequence[Goal]:
        return [g for g in self.goals if g.profile_id == employee_id]

    def recent_recognitions(self, employee_id: str, limit: int) -> Sequence[Recognition]:
        own = [r for r in self.recognitions if r.employee_id == employee_id]
        return sorted(own, key=lambda r: r.created_at, reverse=True)[:limit]

    def milestones_for(self, employee_id: str) -> Sequence[MilestoneCompletion]:
        return [m for m in self.milestones if m.employee_id == employee_id]


class InMemoryPredictionRepository:
    def __init__(self) -> None:
        self.predictions: Dict[str, PredictionRecord] = {}
        self.history: List[PredictionHistoryEntry] = []
        self._lock = threading.Lock()

    def get_prediction(self, employee_id: str) -> Optional[PredictionRecord]:
        return self.predictions.get(employee_id)

    def upsert_prediction(self, record: PredictionRecord) -> None:
        with self._lock:
            self.predictions[record.employee_id] = record

    def delete_prediction(self, employee_id: str) -> None:
        with self._lock:
            self.predictions.pop(employee_id, None)

    def insert_history(self, entry: PredictionHistoryEntry) -> None:
        with self._lock:
            self.history.append(entry)

    def history_for(self, employee_id: str) -> List[PredictionHistoryEntry]:
        return [entry for entry in self.history if entry.employee_id == employee_id]


class InMemoryNotificationSink:
    def __init__(self) -> None:
        self.sent: List[AlertNotification] = []
        self._lock = threading.Lock()

    def send(self, notification: AlertNotification) -> None:
        with self._lock:
            self.sent.append(notification)


class InMemoryAlertLedger:
    def __init__(self) -> None:
        self._sent: Dict[Tuple[str, str, str], datetime] = {}

    def last_sent(self, recipient_id: str, employee_id: str, risk_level: str) -> Optional[datetime]:
        return self._sent.get((recipient_id, employee_id, risk_level))

    def record(self, recipient_id: str, employee_id: str, risk_level: str, sent_at: datetime) -> None:
        self._sent[(recipient_id, employee_id, risk_level)] = sent_at
