"""Attrition pipeline data structures."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

RISK_LEVELS = ("low", "medium", "high", "critical")
TIMEFRAMES = ("90d+", "60-90d", "30-60d", "0-30d")
TRENDS = ("improving", "stable", "declining")
PRIORITIES = ("low", "medium", "high")


@dataclass
class Employee:
    user_id: str
    full_name: str = ""
    email: str = ""
    team: str = ""
    org_unit: str = ""
    attrition_opt_out: bool = False


@dataclass
class FeedbackSession:
    id: str
    employee_id: str
    created_at: datetime
    status: str = ""


@dataclass
class FeedbackEntry:
    session_id: str
    sentiment_score: Optional[float] = None
    created_at: Optional[datetime] = None


@dataclass
class Goal:
    profile_id: str
    status: str = ""
    progress: Optional[float] = None


@dataclass
class Recognition:
    employee_id: str
    created_at: datetime
    feedback_type: str = ""


@dataclass
class MilestoneCompletion:
    employee_id: str
    milestone_key: str
    completed_at: Optional[datetime] = None


@dataclass
class EmployeeSignalSnapshot:
    feedback_session_count: int = 0
    last_feedback_session_at: Optional[datetime] = None
    average_feedback_sentiment: int = 50
    goals_total: int = 0
    goals_completed: int = 0
    goals_in_progress: int = 0
    average_goal_progress: int = 0
    recognition_count: int = 0
    last_recognition_at: Optional[datetime] = None
    milestone_count: int = 0
    last_milestone_at: Optional[datetime] = None


@dataclass
class ContributingFactor:
    factor: str
    weight: int
    trend: str
    description: str = ""


@dataclass
class RecommendedAction:
    action: str
    priority: str
    rationale: str = ""


@dataclass
class RiskAssessment:
    risk_score: int
    risk_level: str
    predicted_timeframe: str
    confidence: int
    contributing_factors: List[ContributingFactor] = field(default_factory=list)
    recommended_actions: List[RecommendedAction] = field(default_factory=list)
    source: str = "rules"


@dataclass
class PredictionRecord:
    employee_id: str
    risk_score: int
    risk_level: str
    predicted_timeframe: str
    confidence: int
    contributing_factors: List[ContributingFactor]
    recommended_actions: List[RecommendedAction]
    last_calculated: datetime

    def to_row(self) -> Dict[str, Any]:
        row = asdict(self)
        row["last_calculated"] = self.last_calculated.isoformat()
        return row


@dataclass(frozen=True)
class PredictionHistoryEntry:
    employee_id: str
    risk_score: int
    risk_level: str
    recorded_at: datetime


@dataclass
class AlertNotification:
    recipient_id: str
    title: str
    message: str
    type: str = "retention_alert"
    action_url: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class EmployeeOutcome:
    employee_id: str
    risk_score: Optional[int] = None
    risk_level: Optional[str] = None
    failed_stage: Optional[str] = None
    error: Optional[str] = None
    alerts_sent: int = 0

    @property
    def succeeded(self) -> bool:
        return self.failed_stage is None


@dataclass
class BatchSummary:
    success: bool
    outcomes: List[EmployeeOutcome] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def processed(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.succeeded)

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {"error": self.error or "Unknown error"}
        return {
            "success": True,
            "processed": self.processed,
            "results": [
                {
                    "employee_id": outcome.employee_id,
                    "risk_score": outcome.risk_score,
                    "risk_level": outcome.risk_level,
                }
                for outcome in self.outcomes
                if outcome.succeeded
            ],
            "failures": [
                {"employee_id": outcome.employee_id, "stage": outcome.failed_stage, "error": outcome.error}
                for outcome in self.outcomes
                if not outcome.succeeded
            ],
        }
