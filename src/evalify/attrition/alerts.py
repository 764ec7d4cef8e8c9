"""Tiered retention alerts for high and critical attrition risk."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from evalify.attrition.ports import AlertLedger, EmployeeDirectory, NotificationSink
from evalify.attrition.types import AlertNotification, Employee, RiskAssessment

logger = logging.getLogger(__name__)

ALERT_LEVELS = {"high", "critical"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AlertPolicy:
    manager_role: str = "manager"
    hr_role: str = "hr"
    manager_action_url: str = "/manager/retention-alerts"
    hr_action_url: str = "/hr/attrition-overview"
    suppress_repeat_hours: float = 0

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "AlertPolicy":
        alerts_cfg = (cfg.get("attrition") or {}).get("alerts") or {}
        defaults = cls()
        return cls(
            manager_role=alerts_cfg.get("manager_role", defaults.manager_role),
            hr_role=alerts_cfg.get("hr_role", defaults.hr_role),
            manager_action_url=alerts_cfg.get("manager_action_url", defaults.manager_action_url),
            hr_action_url=alerts_cfg.get("hr_action_url", defaults.hr_action_url),
            suppress_repeat_hours=float(alerts_cfg.get("suppress_repeat_hours", 0) or 0),
        )


@dataclass
class AlertDispatcher:
    directory: EmployeeDirectory
    sink: NotificationSink
    policy: AlertPolicy
    ledger: Optional[AlertLedger] = None
    clock: Callable[[], datetime] = _utcnow

    def dispatch(self, employee: Employee, assessment: RiskAssessment) -> List[AlertNotification]:
        if assessment.risk_level not in ALERT_LEVELS:
            return []

        metadata = {
            "employee_id": employee.user_id,
            "risk_score": assessment.risk_score,
            "risk_level": assessment.risk_level,
        }
        notifications: List[AlertNotification] = []
        for manager_id in self._team_managers(employee):
            notifications.append(
                AlertNotification(
                    recipient_id=manager_id,
                    title="Retention Alert",
                    message=(
                        f"{employee.full_name or 'A team member'} has a {assessment.risk_level} "
                        f"attrition risk (score: {assessment.risk_score})"
                    ),
                    action_url=self.policy.manager_action_url,
                    metadata=dict(metadata),
                )
            )

        if assessment.risk_level == "critical":
            for hr_id in self.directory.users_with_role(self.policy.hr_role):
                notifications.append(
                    AlertNotification(
                        recipient_id=hr_id,
                        title="Critical Retention Alert",
                        message=(
                            f"{employee.full_name or 'An employee'} has a CRITICAL attrition risk "
                            f"(score: {assessment.risk_score}). Immediate action recommended."
                        ),
                        action_url=self.policy.hr_action_url,
                        metadata=dict(metadata),
                    )
                )

        sent: List[AlertNotification] = []
        for notification in notifications:
            if self._suppressed(notification, employee, assessment):
                logger.debug(f"Suppressed repeat alert to {notification.recipient_id} for {employee.user_id}")
                continue
            try:
                self.sink.send(notification)
            except Exception:
                logger.exception(
                    f"Failed to send retention alert to {notification.recipient_id} for {employee.user_id}"
                )
                continue
            if self._tracking_repeats():
                self.ledger.record(notification.recipient_id, employee.user_id, assessment.risk_level, self.clock())
            sent.append(notification)
        return sent

    def _team_managers(self, employee: Employee) -> List[str]:
        if not employee.team:
            return []
        managers = set(self.directory.users_with_role(self.policy.manager_role))
        return [
            member
            for member in self.directory.team_members(employee.team)
            if member in managers and member != employee.user_id
        ]

    def _tracking_repeats(self) -> bool:
        return self.ledger is not None and self.policy.suppress_repeat_hours > 0

    def _suppressed(self, notification: AlertNotification, employee: Employee, assessment: RiskAssessment) -> bool:
        if not self._tracking_repeats():
            return False
        last = self.ledger.last_sent(notification.recipient_id, employee.user_id, assessment.risk_level)
        if last is None:
            return False
        return self.clock() - last < timedelta(hours=self.policy.suppress_repeat_hours)
