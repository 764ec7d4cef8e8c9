"""Run the attrition-risk batch for every eligible employee."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

import yaml

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from evalify.attrition.aggregator import SignalAggregator
from evalify.attrition.alerts import AlertDispatcher, AlertPolicy
from evalify.attrition.csv_backend import build_csv_backend, read_table
from evalify.attrition.orchestrator import AttritionBatchOrchestrator
from evalify.attrition.reports import build_overview
from evalify.attrition.scorer_llm import build_risk_scorer
from evalify.attrition.store import PredictionStore

DEFAULT_CONFIG_PATH = Path("configs") / "config.yaml"

logger = logging.getLogger("evalify.attrition.batch")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Calculate attrition risk for all eligible employees.")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to config YAML.")
    parser.add_argument("--employee_id", help="Re-run a single employee instead of the whole batch.")
    parser.add_argument("--mode", choices=["llm", "rules"], help="Override the configured scorer mode.")
    parser.add_argument("--overview", action="store_true", help="Also write the attrition overview JSON.")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO).")
    return parser.parse_args(argv)


def load_config(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        cfg = yaml.safe_load(handle) or {}
    if not isinstance(cfg, dict):
        raise ValueError("Configuration must be a mapping.")
    return cfg


def build_orchestrator(cfg: Dict[str, Any], backend: Dict[str, Any]) -> AttritionBatchOrchestrator:
    activity = backend["activity"]
    batch_cfg = (cfg.get("attrition") or {}).get("batch") or {}
    return AttritionBatchOrchestrator(
        directory=backend["directory"],
        aggregator=SignalAggregator(activity, activity, activity, activity),
        scorer=build_risk_scorer(cfg),
        store=PredictionStore(backend["repository"]),
        dispatcher=AlertDispatcher(
            directory=backend["directory"],
            sink=backend["sink"],
            policy=AlertPolicy.from_config(cfg),
            ledger=backend["ledger"],
        ),
        max_workers=int(batch_cfg.get("max_workers", 1) or 1),
    )


def _summary_dir(cfg: Dict[str, Any]) -> Path:
    outputs_cfg = (cfg.get("attrition") or {}).get("outputs") or {}
    path = Path(outputs_cfg.get("summary_dir") or Path("reports") / "attrition_runs")
    return path if path.is_absolute() else PROJECT_ROOT / path


def write_overview(cfg: Dict[str, Any], backend: Dict[str, Any], output_dir: Path, stamp: str) -> Path:
    repository = backend["repository"]
    profiles = read_table(backend["directory"].profiles_path, ["user_id", "team"])
    days = int(((cfg.get("attrition") or {}).get("overview") or {}).get("trend_days", 30))
    overview = build_overview(repository.predictions_frame(), repository.history_frame(), profiles, days=days)
    path = output_dir / f"attrition_overview_{stamp}.json"
    path.write_text(json.dumps(overview, indent=2, default=str), encoding="utf-8")
    return path


def _run(args: argparse.Namespace, cfg_path: Path) -> tuple[Dict[str, Any], bool]:
    cfg = load_config(cfg_path)
    if args.mode:
        cfg.setdefault("attrition", {}).setdefault("scorer", {})["mode"] = args.mode

    backend = build_csv_backend(cfg)
    orchestrator = build_orchestrator(cfg, backend)
    if args.employee_id:
        summary = orchestrator.run_for_employee(str(args.employee_id).strip())
    else:
        summary = orchestrator.run_batch()
    payload = summary.to_dict()

    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    output_dir = _summary_dir(cfg)
    output_dir.mkdir(parents=True, exist_ok=True)
    summary_path = output_dir / f"attrition_run_{stamp}.json"
    summary_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    logger.info(f"Wrote {summary_path}")

    if args.overview and summary.success:
        logger.info(f"Wrote {write_overview(cfg, backend, output_dir, stamp)}")
    return payload, summary.success


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cfg_path = args.config if args.config.is_absolute() else PROJECT_ROOT / args.config
    if not cfg_path.exists():
        print(json.dumps({"error": f"Config not found: {cfg_path}"}))
        return 1

    try:
        payload, success = _run(args, cfg_path)
    except Exception as exc:
        logger.exception("Attrition run failed")
        print(json.dumps({"error": str(exc) or exc.__class__.__name__}))
        return 1

    print(json.dumps(payload, indent=2))
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
