"""Current-state prediction and history persistence."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List

from evalify.attrition.ports import PredictionRepository
from evalify.attrition.types import PredictionHistoryEntry, PredictionRecord, RiskAssessment

logger = logging.getLogger(__name__)

TREND_TOLERANCE = 5


class PredictionPersistenceError(RuntimeError):
    """A prediction could not be stored as a whole."""


@dataclass
class PredictionStore:
    """Write a prediction and its history entry as one unit per employee."""

    repository: PredictionRepository

    def save(self, employee_id: str, assessment: RiskAssessment, timestamp: datetime) -> PredictionRecord:
        record = PredictionRecord(
            employee_id=employee_id,
            risk_score=assessment.risk_score,
            risk_level=assessment.risk_level,
            predicted_timeframe=assessment.predicted_timeframe,
            confidence=assessment.confidence,
            contributing_factors=list(assessment.contributing_factors),
            recommended_actions=list(assessment.recommended_actions),
            last_calculated=timestamp,
        )
        entry = PredictionHistoryEntry(
            employee_id=employee_id,
            risk_score=assessment.risk_score,
            risk_level=assessment.risk_level,
            recorded_at=timestamp,
        )

        previous = self.repository.get_prediction(employee_id)
        try:
            self.repository.upsert_prediction(record)
        except Exception as exc:
            raise PredictionPersistenceError(f"Failed to upsert prediction for {employee_id}: {exc}") from exc

        try:
            self.repository.insert_history(entry)
        except Exception as exc:
            self._restore(employee_id, previous)
            raise PredictionPersistenceError(f"Failed to record history for {employee_id}: {exc}") from exc

        return record

    def _restore(self, employee_id: str, previous: PredictionRecord | None) -> None:
        try:
            if previous is None:
                self.repository.delete_prediction(employee_id)
            else:
                self.repository.upsert_prediction(previous)
        except Exception:
            logger.exception(f"Could not roll back prediction for {employee_id}")
            raise

    def history(self, employee_id: str) -> List[PredictionHistoryEntry]:
        return sorted(self.repository.history_for(employee_id), key=lambda entry: entry.recorded_at)

    def trend(self, employee_id: str) -> str:
        """Compare the two latest scores: a falling score is improving."""
        entries = self.history(employee_id)
        if len(entries) < 2:
            return "stable"
        delta = entries[-1].risk_score - entries[-2].risk_score
        if delta >= TREND_TOLERANCE:
            return "declining"
        if delta <= -TREND_TOLERANCE:
            return "improving"
        return "stable"
