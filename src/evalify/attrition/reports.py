"""Attrition overview figures derived from predictions and history."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pandas as pd

from evalify.attrition.types import RISK_LEVELS


def _scores(df: pd.DataFrame) -> pd.Series:
    return pd.to_numeric(df["risk_score"], errors="coerce")


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def risk_distribution(predictions: pd.DataFrame) -> Dict[str, Any]:
    """Count predictions per risk level and average the scores."""
    counts = predictions["risk_level"].value_counts() if not predictions.empty else pd.Series(dtype=int)
    scores = _scores(predictions).dropna() if not predictions.empty else pd.Series(dtype=float)
    return {
        "total": int(len(predictions)),
        "levels": {level: int(counts.get(level, 0)) for level in reversed(RISK_LEVELS)},
        "average_score": _round_half_up(scores.mean()) if not scores.empty else 0,
    }


def team_stats(predictions: pd.DataFrame, profiles: pd.DataFrame) -> pd.DataFrame:
    """Per-team totals, high-or-critical counts, and average score, worst first."""
    columns = ["team", "total", "high_risk", "avg_score"]
    if predictions.empty:
        return pd.DataFrame(columns=columns)

    teams = profiles[["user_id", "team"]].rename(columns={"user_id": "employee_id"})
    df = predictions.merge(teams, on="employee_id", how="left")
    df["team"] = df["team"].fillna("").replace("", "Unknown")
    df["risk_score"] = _scores(df)
    df["is_high"] = df["risk_level"].isin(["high", "critical"])

    grouped = df.groupby("team").agg(
        total=("employee_id", "count"),
        high_risk=("is_high", "sum"),
        avg_score=("risk_score", "mean"),
    )
    grouped["high_risk"] = grouped["high_risk"].astype(int)
    grouped["avg_score"] = grouped["avg_score"].apply(_round_half_up)
    grouped = grouped.reset_index().sort_values(by=["avg_score", "team"], ascending=[False, True])
    return grouped[columns].reset_index(drop=True)


def top_factors(predictions: pd.DataFrame, limit: int = 10) -> List[Dict[str, Any]]:
    """Most common contributing factors across current predictions."""
    counts: Dict[str, int] = {}
    for raw in predictions.get("contributing_factors", []):
        factors = json.loads(raw) if isinstance(raw, str) and raw else (raw or [])
        for item in factors:
            name = item.get("factor") if isinstance(item, dict) else None
            if name:
                counts[name] = counts.get(name, 0) + 1
    ranked = sorted(counts.items(), key=lambda pair: (-pair[1], pair[0]))
    return [{"factor": name, "count": count} for name, count in ranked[:limit]]


def daily_trend(history: pd.DataFrame, days: int = 30, now: Optional[datetime] = None) -> pd.DataFrame:
    """Average history score per calendar day over the trailing window."""
    columns = ["date", "avg_score"]
    if history.empty:
        return pd.DataFrame(columns=columns)

    now = now or datetime.now(timezone.utc)
    df = history.copy()
    df["recorded_at"] = pd.to_datetime(df["recorded_at"], utc=True, errors="coerce")
    df["risk_score"] = _scores(df)
    df = df.dropna(subset=["recorded_at", "risk_score"])
    df = df[df["recorded_at"] >= pd.Timestamp(now - timedelta(days=days))]
    if df.empty:
        return pd.DataFrame(columns=columns)

    df["date"] = df["recorded_at"].dt.date.astype(str)
    trend = df.groupby("date", as_index=False)["risk_score"].mean()
    trend["avg_score"] = trend["risk_score"].apply(_round_half_up)
    return trend.sort_values("date")[columns].reset_index(drop=True)


def build_overview(
    predictions: pd.DataFrame, history: pd.DataFrame, profiles: pd.DataFrame, days: int = 30
) -> Dict[str, Any]:
    return {
        "distribution": risk_distribution(predictions),
        "teams": team_stats(predictions, profiles).to_dict(orient="records"),
        "top_factors": top_factors(predictions),
        "trend": daily_trend(history, days=days).to_dict(orient="records"),
    }
