"""File-backed attrition ports: CSV exports in, CSV/JSONL out."""

from __future__ import annotations

import json
import threading
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from evalify.attrition.types import (
    AlertNotification,
    ContributingFactor,
    Employee,
    FeedbackEntry,
    FeedbackSession,
    Goal,
    MilestoneCompletion,
    PredictionHistoryEntry,
    PredictionRecord,
    Recognition,
    RecommendedAction,
)

PROJECT_ROOT = Path(__file__).resolve().parents[3]

DEFAULT_DATA_PATHS = {
    "profiles_path": Path("data") / "profiles.csv",
    "user_roles_path": Path("data") / "user_roles.csv",
    "sessions_path": Path("data") / "voice_sessions.csv",
    "feedback_entries_path": Path("data") / "feedback_entries.csv",
    "goals_path": Path("data") / "goals.csv",
    "recognitions_path": Path("data") / "quick_feedback.csv",
    "milestones_path": Path("data") / "milestone_completions.csv",
}

DEFAULT_OUTPUT_PATHS = {
    "predictions_path": Path("reports") / "attrition_predictions.csv",
    "history_path": Path("reports") / "attrition_prediction_history.csv",
    "notifications_path": Path("reports") / "notifications.jsonl",
    "alert_ledger_path": Path("reports") / "alert_ledger.csv",
}

PREDICTION_COLUMNS = [
    "employee_id",
    "risk_score",
    "risk_level",
    "predicted_timeframe",
    "confidence",
    "contributing_factors",
    "recommended_actions",
    "last_calculated",
]
HISTORY_COLUMNS = ["employee_id", "risk_score", "risk_level", "recorded_at"]
LEDGER_COLUMNS = ["recipient_id", "employee_id", "risk_level", "sent_at"]


def resolve_path(path: Path | str) -> Path:
    path = Path(path)
    if path.is_absolute():
        return path
    return PROJECT_ROOT / path


def _section_path(section: Dict[str, Any], key: str, defaults: Dict[str, Path]) -> Path:
    return resolve_path(section.get(key) or defaults[key])


def safe_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    return str(value).strip()


def _timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    ts = pd.to_datetime(value, utc=True, errors="coerce")
    if pd.isna(ts):
        return None
    return ts.to_pydatetime()


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    number = pd.to_numeric(value, errors="coerce")
    if pd.isna(number):
        return None
    return float(number)


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes", "y"}
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return False
    return bool(value)


def read_table(path: Path, columns: Sequence[str]) -> pd.DataFrame:
    """Read a CSV export as strings; a missing file is an empty table."""
    if not path.exists():
        return pd.DataFrame(columns=list(columns))
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df.columns = [str(c).strip() for c in df.columns]
    for col in columns:
        if col not in df.columns:
            df[col] = ""
    return df


class CsvDirectory:
    """Profiles and role assignments from CSV exports."""

    def __init__(self, profiles_path: Path, user_roles_path: Path) -> None:
        self.profiles_path = profiles_path
        self.user_roles_path = user_roles_path

    def _profiles(self) -> pd.DataFrame:
        if not self.profiles_path.exists():
            raise FileNotFoundError(f"Profiles file not found: {self.profiles_path}")
        return read_table(self.profiles_path, ["user_id", "full_name", "email", "team", "org_unit", "attrition_opt_out"])

    def eligible_employees(self) -> List[Employee]:
        df = self._profiles()
        employees = [
            Employee(
                user_id=safe_text(row["user_id"]),
                full_name=safe_text(row["full_name"]),
                email=safe_text(row["email"]),
                team=safe_text(row["team"]),
                org_unit=safe_text(row["org_unit"]),
                attrition_opt_out=_flag(row["attrition_opt_out"]),
            )
            for _, row in df.iterrows()
        ]
        return [emp for emp in employees if emp.user_id and not emp.attrition_opt_out]

    def team_members(self, team: str) -> List[str]:
        df = self._profiles()
        return [safe_text(uid) for uid in df.loc[df["team"].str.strip() == team, "user_id"]]

    def users_with_role(self, role: str) -> List[str]:
        df = read_table(self.user_roles_path, ["user_id", "role"])
        return [safe_text(uid) for uid in df.loc[df["role"].str.strip() == role, "user_id"]]


def _newest_first(items: List[Any], limit: int) -> List[Any]:
    """Newest first by ``created_at``; rows without a usable timestamp go last."""
    dated = sorted((item for item in items if item.created_at is not None), key=lambda item: item.created_at, reverse=True)
    undated = [item for item in items if item.created_at is None]
    return (dated + undated)[:limit]


class CsvActivitySources:
    """Feedback, goal, recognition, and milestone exports, each read on first use.

    A table that fails to load is not cached; every lookup that needs it raises.
    """

    TABLES = {
        "sessions": ("sessions_path", ["id", "employee_id", "status", "created_at"]),
        "entries": ("feedback_entries_path", ["session_id", "sentiment_score", "created_at"]),
        "goals": ("goals_path", ["profile_id", "status", "progress"]),
        "recognitions": ("recognitions_path", ["employee_id", "created_at", "feedback_type"]),
        "milestones": ("milestones_path", ["employee_id", "milestone_key", "completed_at"]),
    }

    def __init__(self, paths: Dict[str, Path]) -> None:
        self.paths = paths
        self._tables: Dict[str, pd.DataFrame] = {}
        self._lock = threading.Lock()

    def _table(self, name: str) -> pd.DataFrame:
        with self._lock:
            if name not in self._tables:
                key, columns = self.TABLES[name]
                self._tables[name] = read_table(self.paths[key], columns)
            return self._tables[name]

    def recent_sessions(self, employee_id: str, limit: int) -> Sequence[FeedbackSession]:
        df = self._table("sessions")
        own = df[df["employee_id"].str.strip() == employee_id]
        sessions = [
            FeedbackSession(
                id=safe_text(row["id"]),
                employee_id=employee_id,
                created_at=_timestamp(row["created_at"]),
                status=safe_text(row["status"]),
            )
            for _, row in own.iterrows()
        ]
        return _newest_first(sessions, limit)

    def entries_for_sessions(self, session_ids: Iterable[str]) -> Sequence[FeedbackEntry]:
        wanted = set(session_ids)
        df = self._table("entries")
        own = df[df["session_id"].str.strip().isin(wanted)]
        return [
            FeedbackEntry(
                session_id=safe_text(row["session_id"]),
                sentiment_score=_optional_float(row["sentiment_score"]),
                created_at=_timestamp(row["created_at"]),
            )
            for _, row in own.iterrows()
        ]

    def goals_for(self, employee_id: str) -> Sequence[Goal]:
        df = self._table("goals")
        own = df[df["profile_id"].str.strip() == employee_id]
        return [
            Goal(profile_id=employee_id, status=safe_text(row["status"]), progress=_optional_float(row["progress"]))
            for _, row in own.iterrows()
        ]

    def recent_recognitions(self, employee_id: str, limit: int) -> Sequence[Recognition]:
        df = self._table("recognitions")
        own = df[df["employee_id"].str.strip() == employee_id]
        items = [
            Recognition(
                employee_id=employee_id,
                created_at=_timestamp(row["created_at"]),
                feedback_type=safe_text(row["feedback_type"]),
            )
            for _, row in own.iterrows()
        ]
        return _newest_first(items, limit)

    def milestones_for(self, employee_id: str) -> Sequence[MilestoneCompletion]:
        df = self._table("milestones")
        own = df[df["employee_id"].str.strip() == employee_id]
        return [
            MilestoneCompletion(
                employee_id=employee_id,
                milestone_key=safe_text(row["milestone_key"]),
                completed_at=_timestamp(row["completed_at"]),
            )
            for _, row in own.iterrows()
        ]


def _record_from_row(row: pd.Series) -> PredictionRecord:
    factors = [ContributingFactor(**item) for item in json.loads(row["contributing_factors"] or "[]")]
    actions = [RecommendedAction(**item) for item in json.loads(row["recommended_actions"] or "[]")]
    return PredictionRecord(
        employee_id=safe_text(row["employee_id"]),
        risk_score=int(row["risk_score"]),
        risk_level=safe_text(row["risk_level"]),
        predicted_timeframe=safe_text(row["predicted_timeframe"]),
        confidence=int(row["confidence"]),
        contributing_factors=factors,
        recommended_actions=actions,
        last_calculated=_timestamp(row["last_calculated"]),
    )


class CsvPredictionRepository:
    """Current predictions keyed by employee plus an append-only history CSV."""

    def __init__(self, predictions_path: Path, history_path: Path) -> None:
        self.predictions_path = predictions_path
        self.history_path = history_path
        self._lock = threading.Lock()

    def _predictions(self) -> pd.DataFrame:
        return read_table(self.predictions_path, PREDICTION_COLUMNS)

    def get_prediction(self, employee_id: str) -> Optional[PredictionRecord]:
        with self._lock:
            df = self._predictions()
        match = df[df["employee_id"] == employee_id]
        if match.empty:
            return None
        return _record_from_row(match.iloc[-1])

    def upsert_prediction(self, record: PredictionRecord) -> None:
        row = record.to_row()
        row["contributing_factors"] = json.dumps(row["contributing_factors"])
        row["recommended_actions"] = json.dumps(row["recommended_actions"])
        with self._lock:
            df = self._predictions()
            df = df[df["employee_id"] != record.employee_id]
            df = pd.concat([df, pd.DataFrame([row], columns=PREDICTION_COLUMNS)], ignore_index=True)
            self.predictions_path.parent.mkdir(parents=True, exist_ok=True)
            df[PREDICTION_COLUMNS].to_csv(self.predictions_path, index=False)

    def delete_prediction(self, employee_id: str) -> None:
        with self._lock:
            df = self._predictions()
            df = df[df["employee_id"] != employee_id]
            df[PREDICTION_COLUMNS].to_csv(self.predictions_path, index=False)

    def insert_history(self, entry: PredictionHistoryEntry) -> None:
        row = {
            "employee_id": entry.employee_id,
            "risk_score": entry.risk_score,
            "risk_level": entry.risk_level,
            "recorded_at": entry.recorded_at.isoformat(),
        }
        with self._lock:
            self.history_path.parent.mkdir(parents=True, exist_ok=True)
            write_header = not self.history_path.exists()
            pd.DataFrame([row], columns=HISTORY_COLUMNS).to_csv(
                self.history_path, mode="a", header=write_header, index=False
            )

    def history_frame(self) -> pd.DataFrame:
        with self._lock:
            return read_table(self.history_path, HISTORY_COLUMNS)

    def predictions_frame(self) -> pd.DataFrame:
        with self._lock:
            return self._predictions()

    def history_for(self, employee_id: str) -> List[PredictionHistoryEntry]:
        df = self.history_frame()
        own = df[df["employee_id"] == employee_id]
        return [
            PredictionHistoryEntry(
                employee_id=employee_id,
                risk_score=int(row["risk_score"]),
                risk_level=safe_text(row["risk_level"]),
                recorded_at=_timestamp(row["recorded_at"]),
            )
            for _, row in own.iterrows()
        ]


class JsonlNotificationSink:
    """Append notifications as JSON lines for the delivery service to pick up."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()

    def send(self, notification: AlertNotification) -> None:
        line = json.dumps(asdict(notification), default=str)
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")


class CsvAlertLedger:
    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()

    def last_sent(self, recipient_id: str, employee_id: str, risk_level: str) -> Optional[datetime]:
        with self._lock:
            df = read_table(self.path, LEDGER_COLUMNS)
        match = df[
            (df["recipient_id"] == recipient_id) & (df["employee_id"] == employee_id) & (df["risk_level"] == risk_level)
        ]
        stamps = [ts for ts in (_timestamp(value) for value in match["sent_at"]) if ts is not None]
        return max(stamps) if stamps else None

    def record(self, recipient_id: str, employee_id: str, risk_level: str, sent_at: datetime) -> None:
        row = {"recipient_id": recipient_id, "employee_id": employee_id, "risk_level": risk_level, "sent_at": sent_at.isoformat()}
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            write_header = not self.path.exists()
            pd.DataFrame([row], columns=LEDGER_COLUMNS).to_csv(self.path, mode="a", header=write_header, index=False)


def build_csv_backend(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Construct every file-backed port from the attrition config section."""
    attrition_cfg = cfg.get("attrition") or {}
    data_cfg = attrition_cfg.get("data") or {}
    outputs_cfg = attrition_cfg.get("outputs") or {}
    data_paths = {key: _section_path(data_cfg, key, DEFAULT_DATA_PATHS) for key in DEFAULT_DATA_PATHS}
    output_paths = {key: _section_path(outputs_cfg, key, DEFAULT_OUTPUT_PATHS) for key in DEFAULT_OUTPUT_PATHS}

    return {
        "directory": CsvDirectory(data_paths["profiles_path"], data_paths["user_roles_path"]),
        "activity": CsvActivitySources(data_paths),
        "repository": CsvPredictionRepository(output_paths["predictions_path"], output_paths["history_path"]),
        "sink": JsonlNotificationSink(output_paths["notifications_path"]),
        "ledger": CsvAlertLedger(output_paths["alert_ledger_path"]),
    }
