"""Batch orchestrator for attrition-risk scoring."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Protocol

from evalify.attrition.aggregator import SignalAggregator
from evalify.attrition.alerts import AlertDispatcher
from evalify.attrition.ports import EmployeeDirectory
from evalify.attrition.store import PredictionStore
from evalify.attrition.types import (
    BatchSummary,
    Employee,
    EmployeeOutcome,
    EmployeeSignalSnapshot,
    RiskAssessment,
)

logger = logging.getLogger(__name__)


class RiskScorer(Protocol):
    def score(self, snapshot: EmployeeSignalSnapshot, employee: Employee | None = None) -> RiskAssessment:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AttritionBatchOrchestrator:
    """Coordinate aggregator, scorer, store, and dispatcher for every eligible employee."""

    directory: EmployeeDirectory
    aggregator: SignalAggregator
    scorer: RiskScorer
    store: PredictionStore
    dispatcher: AlertDispatcher
    max_workers: int = 1
    clock: Callable[[], datetime] = _utcnow

    def run_batch(self) -> BatchSummary:
        try:
            employees = list(self.directory.eligible_employees())
        except Exception as exc:
            logger.exception("Could not load eligible employees; aborting attrition batch")
            return BatchSummary(success=False, error=str(exc) or exc.__class__.__name__)

        logger.info(f"Processing {len(employees)} employees for attrition risk")
        if self.max_workers > 1 and len(employees) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                outcomes: List[EmployeeOutcome] = list(pool.map(self.process_employee, employees))
        else:
            outcomes = [self.process_employee(employee) for employee in employees]

        summary = BatchSummary(success=True, outcomes=outcomes)
        logger.info(f"Attrition batch finished: {summary.processed}/{len(employees)} processed")
        return summary

    def run_for_employee(self, employee_id: str) -> BatchSummary:
        """Re-run scoring for a single eligible employee."""
        try:
            matches = [emp for emp in self.directory.eligible_employees() if emp.user_id == employee_id]
        except Exception as exc:
            logger.exception("Could not load eligible employees")
            return BatchSummary(success=False, error=str(exc) or exc.__class__.__name__)
        if not matches:
            return BatchSummary(success=False, error=f"Employee {employee_id} is not eligible for attrition analysis")
        return BatchSummary(success=True, outcomes=[self.process_employee(matches[0])])

    def process_employee(self, employee: Employee) -> EmployeeOutcome:
        employee_id = employee.user_id
        stage = "aggregate"
        try:
            snapshot = self.aggregator.aggregate(employee_id)
            stage = "score"
            assessment = self.scorer.score(snapshot, employee)
            stage = "persist"
            self.store.save(employee_id, assessment, self.clock())
        except Exception as exc:
            logger.exception(f"Error processing employee {employee_id} during {stage}")
            return EmployeeOutcome(employee_id=employee_id, failed_stage=stage, error=str(exc))

        outcome = EmployeeOutcome(
            employee_id=employee_id,
            risk_score=assessment.risk_score,
            risk_level=assessment.risk_level,
        )
        try:
            outcome.alerts_sent = len(self.dispatcher.dispatch(employee, assessment))
        except Exception:
            logger.exception(f"Retention alerts failed for employee {employee_id}")
        return outcome


def run_now(orchestrator: AttritionBatchOrchestrator) -> Dict[str, Any]:
    """Run the batch and return the JSON-ready summary."""
    return orchestrator.run_batch().to_dict()
