"""LLM-backed attrition scorer with strict parsing and rule-based fallback."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from evalify.attrition.rules import RuleBasedScorer
from evalify.attrition.thresholds import build_assessment, clamp_percent
from evalify.attrition.types import (
    PRIORITIES,
    TRENDS,
    ContributingFactor,
    Employee,
    EmployeeSignalSnapshot,
    RecommendedAction,
    RiskAssessment,
)
from evalify.llm.clients import BaseLLMClient, build_llm_client

logger = logging.getLogger(__name__)


class AssessmentParseError(ValueError):
    """Model output did not contain a usable risk assessment."""


def _when(value: Optional[datetime]) -> str:
    return value.isoformat() if value else "Never"


def _build_prompt(snapshot: EmployeeSignalSnapshot) -> str:
    return (
        "You are an HR analytics expert analyzing employee attrition risk. Based on the following "
        "data points, calculate an attrition risk score and provide analysis.\n\n"
        "Employee Data:\n"
        f"- Feedback sessions received: {snapshot.feedback_session_count}\n"
        f"- Last feedback session: {_when(snapshot.last_feedback_session_at)}\n"
        f"- Average feedback sentiment: {snapshot.average_feedback_sentiment}/100\n"
        f"- Total goals: {snapshot.goals_total}\n"
        f"- Completed goals: {snapshot.goals_completed}\n"
        f"- Goals in progress: {snapshot.goals_in_progress}\n"
        f"- Average goal progress: {snapshot.average_goal_progress}%\n"
        f"- Quick feedback/recognition received: {snapshot.recognition_count}\n"
        f"- Last recognition: {_when(snapshot.last_recognition_at)}\n"
        f"- Career milestones achieved: {snapshot.milestone_count}\n"
        f"- Last milestone: {_when(snapshot.last_milestone_at)}\n\n"
        "Analyze this data and return a JSON object with:\n"
        "1. riskScore: 0-100 (higher = more likely to leave)\n"
        '2. riskLevel: "low" (0-39), "medium" (40-59), "high" (60-79), or "critical" (80-100)\n'
        '3. predictedTimeframe: "0-30d", "30-60d", "60-90d", or "90d+"\n'
        "4. confidence: 0-100 (how confident you are in this prediction)\n"
        '5. contributingFactors: array of {factor, weight (0-100), trend ("improving"|"stable"|"declining"), description}\n'
        '6. recommendedActions: array of {action, priority ("high"|"medium"|"low"), rationale}\n\n'
        "Consider these risk factors:\n"
        "- Low feedback sentiment indicates dissatisfaction\n"
        "- Lack of recent recognition suggests feeling undervalued\n"
        "- Stalled goal progress may indicate disengagement\n"
        "- No milestone progress suggests career stagnation\n\n"
        "Return ONLY valid JSON, no markdown or explanation."
    )


def extract_json_object(text: str) -> Dict[str, Any] | None:
    """Return the first balanced top-level JSON object embedded in text."""
    if not text:
        return None
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for idx in range(start, len(text)):
            char = text[idx]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    try:
                        parsed = json.loads(text[start : idx + 1])
                    except json.JSONDecodeError:
                        break
                    if isinstance(parsed, dict):
                        return parsed
                    break
        start = text.find("{", start + 1)
    return None


def _pick(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    raise AssessmentParseError(f"Missing required field: {keys[0]}")


def _number(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise AssessmentParseError(f"Field {name} must be numeric")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise AssessmentParseError(f"Field {name} must be numeric") from exc


def _parse_factors(items: Any) -> List[ContributingFactor]:
    if not isinstance(items, list):
        raise AssessmentParseError("contributingFactors must be a list")
    factors: List[ContributingFactor] = []
    for item in items:
        if not isinstance(item, dict) or not item.get("factor"):
            raise AssessmentParseError("Contributing factor without a name")
        trend = str(item.get("trend", "stable")).lower()
        if trend not in TRENDS:
            raise AssessmentParseError(f"Unknown factor trend: {trend}")
        factors.append(
            ContributingFactor(
                factor=str(item["factor"]),
                weight=clamp_percent(_number(item.get("weight", 0), "weight")),
                trend=trend,
                description=str(item.get("description", "")),
            )
        )
    return factors


def _parse_actions(items: Any) -> List[RecommendedAction]:
    if not isinstance(items, list):
        raise AssessmentParseError("recommendedActions must be a list")
    actions: List[RecommendedAction] = []
    for item in items:
        if not isinstance(item, dict) or not item.get("action"):
            raise AssessmentParseError("Recommended action without a description")
        priority = str(item.get("priority", "medium")).lower()
        if priority not in PRIORITIES:
            raise AssessmentParseError(f"Unknown action priority: {priority}")
        actions.append(
            RecommendedAction(
                action=str(item["action"]),
                priority=priority,
                rationale=str(item.get("rationale", "")),
            )
        )
    return actions


def parse_assessment(text: str) -> RiskAssessment:
    data = extract_json_object(text)
    if data is None:
        raise AssessmentParseError("No JSON object found in model output.")

    score = _number(_pick(data, "riskScore", "risk_score"), "riskScore")
    confidence = _number(_pick(data, "confidence"), "confidence")
    factors = _parse_factors(_pick(data, "contributingFactors", "contributing_factors"))
    actions = _parse_actions(_pick(data, "recommendedActions", "recommended_actions"))
    # riskLevel / predictedTimeframe from the model are advisory only
    return build_assessment(score, confidence, factors, actions, source="llm")


@dataclass
class LLMRiskScorer:
    client: BaseLLMClient
    fallback: RuleBasedScorer

    def score(self, snapshot: EmployeeSignalSnapshot, employee: Employee | None = None) -> RiskAssessment:
        prompt = _build_prompt(snapshot)
        try:
            raw = self.client.generate(prompt)
            return parse_assessment(raw)
        except Exception as exc:
            employee_id = employee.user_id if employee else "unknown"
            logger.debug(f"LLM scoring unavailable for {employee_id}, using rules: {exc}")
            return self.fallback.score(snapshot, employee)


def build_risk_scorer(cfg: Dict[str, Any]) -> RuleBasedScorer | LLMRiskScorer:
    scorer_cfg = (cfg.get("attrition") or {}).get("scorer") or {}
    mode = scorer_cfg.get("mode", "llm").lower()
    if mode == "llm":
        client = build_llm_client(scorer_cfg)
        return LLMRiskScorer(client=client, fallback=RuleBasedScorer())
    if mode == "rules":
        return RuleBasedScorer()
    raise ValueError(f"Unsupported scorer mode: {mode}")
