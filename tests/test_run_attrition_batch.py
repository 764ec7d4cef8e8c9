"""Tests for the attrition batch script."""

from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import yaml

from evalify.attrition import csv_backend
from scripts.run_attrition_batch import PROJECT_ROOT, load_config, main


def _write_config(tmp_path: Path, profiles: pd.DataFrame) -> Path:
    data = tmp_path / "data"
    out = tmp_path / "out"
    data.mkdir()
    profiles.to_csv(data / "profiles.csv", index=False)
    pd.DataFrame({"user_id": ["m1", "h1"], "role": ["manager", "hr"]}).to_csv(data / "user_roles.csv", index=False)
    pd.DataFrame({"employee_id": ["e2"] * 3, "created_at": ["2026-10-01T00:00:00Z"] * 3}).to_csv(
        data / "quick_feedback.csv", index=False
    )
    cfg = {
        "attrition": {
            "data": {
                "profiles_path": str(data / "profiles.csv"),
                "user_roles_path": str(data / "user_roles.csv"),
                "sessions_path": str(data / "voice_sessions.csv"),
                "feedback_entries_path": str(data / "feedback_entries.csv"),
                "goals_path": str(data / "goals.csv"),
                "recognitions_path": str(data / "quick_feedback.csv"),
                "milestones_path": str(data / "milestone_completions.csv"),
            },
            "outputs": {
                "predictions_path": str(out / "predictions.csv"),
                "history_path": str(out / "history.csv"),
                "notifications_path": str(out / "notifications.jsonl"),
                "alert_ledger_path": str(out / "ledger.csv"),
                "summary_dir": str(out / "runs"),
            },
            "scorer": {"mode": "llm", "api_key_env": "TEST_UNSET_ATTRITION_KEY"},
            "batch": {"max_workers": 2},
        }
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(cfg), encoding="utf-8")
    return path


def _profiles() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "user_id": ["e1", "e2", "m1"],
            "full_name": ["Dana Reyes", "Lee Park", "Sam Ortiz"],
            "team": ["Platform", "Platform", "Platform"],
            "attrition_opt_out": [False, False, True],
        }
    )


def test_project_root_has_configs() -> None:
    assert (PROJECT_ROOT / "configs" / "config.yaml").exists()
    assert csv_backend.PROJECT_ROOT == PROJECT_ROOT


def test_default_config_loads() -> None:
    cfg = load_config(PROJECT_ROOT / "configs" / "config.yaml")

    assert cfg["attrition"]["scorer"]["mode"] in {"llm", "rules"}
    assert cfg["attrition"]["alerts"]["suppress_repeat_hours"] == 0


def test_main_runs_batch_and_writes_outputs(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.delenv("TEST_UNSET_ATTRITION_KEY", raising=False)
    config_path = _write_config(tmp_path, _profiles())

    exit_code = main(["--config", str(config_path), "--overview"])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert payload["success"] is True
    assert payload["processed"] == 2
    assert payload["results"] == [
        {"employee_id": "e1", "risk_score": 75, "risk_level": "high"},
        {"employee_id": "e2", "risk_score": 60, "risk_level": "high"},
    ]
    out = tmp_path / "out"
    assert len(pd.read_csv(out / "predictions.csv")) == 2
    assert len(pd.read_csv(out / "history.csv")) == 2
    alerts = [json.loads(line) for line in (out / "notifications.jsonl").read_text(encoding="utf-8").splitlines()]
    assert {alert["recipient_id"] for alert in alerts} == {"m1"}
    assert len(list((out / "runs").glob("attrition_run_*.json"))) == 1
    assert len(list((out / "runs").glob("attrition_overview_*.json"))) == 1


def test_main_reports_fatal_error(tmp_path: Path, capsys) -> None:
    config_path = _write_config(tmp_path, _profiles())
    (tmp_path / "data" / "profiles.csv").unlink()

    exit_code = main(["--config", str(config_path), "--mode", "rules"])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 1
    assert "error" in payload


def test_empty_activity_export_fails_each_employee(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.delenv("TEST_UNSET_ATTRITION_KEY", raising=False)
    config_path = _write_config(tmp_path, _profiles())
    (tmp_path / "data" / "goals.csv").write_text("", encoding="utf-8")

    exit_code = main(["--config", str(config_path)])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert payload["processed"] == 0
    assert [(f["employee_id"], f["stage"]) for f in payload["failures"]] == [("e1", "aggregate"), ("e2", "aggregate")]
    assert not (tmp_path / "out" / "predictions.csv").exists()


def test_unknown_scorer_mode_reports_error(tmp_path: Path, capsys) -> None:
    config_path = _write_config(tmp_path, _profiles())
    cfg = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    cfg["attrition"]["scorer"]["mode"] = "magic"
    config_path.write_text(yaml.safe_dump(cfg), encoding="utf-8")

    exit_code = main(["--config", str(config_path)])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 1
    assert payload == {"error": "Unsupported scorer mode: magic"}


def test_malformed_config_reports_error(tmp_path: Path, capsys) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("attrition: [unclosed\n", encoding="utf-8")

    exit_code = main(["--config", str(config_path)])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 1
    assert set(payload) == {"error"}
