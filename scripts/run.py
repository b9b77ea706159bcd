# scripts/run.py
from __future__ import annotations

import argparse
import logging
import sys
import time
import traceback
from pathlib import Path
from typing import Any

from allocprep.dataloader.config_loader import ConfigLoader
from allocprep.dataloader.entities_loader import EntitiesLoader
from allocprep.dataloader.postload_handler import LoadResultHandler

# --- allocprep imports
from allocprep.errors import AllocPrepError, ExportError
from allocprep.export.exporter import (
    build_rules_config,
    build_validation_report,
    write_entities,
    write_json,
)
from allocprep.metrics.logger import write_metrics, write_validation_log
from allocprep.metrics.metrics import collect_quality_metrics
from allocprep.rules.recommender import recommend_rules
from allocprep.schemas.models import EntityName
from allocprep.visualizer.plot import plot_quality_summary
from allocprep.workspace import Workspace


def _setup_logging() -> None:
    """
    @brief
    Initializes global logging configuration.

    @details
    Sets the default logging level to INFO and defines a simple console format.
    """
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    @brief
    Parses command-line arguments for the allocprep pipeline.

    @details
    Every table is optional: a missing table is treated as an empty collection
    so the pipeline can check a partial upload.
    """
    parser = argparse.ArgumentParser(
        prog="allocprep-run",
        description="Run the allocprep pipeline: load → validate → fix → score → export",
    )

    # (1) Config path argument
    parser.add_argument(
        "--config",
        type=str,
        default="config/config.yaml",
        help="Path to config YAML (default: config/config.yaml)",
    )

    # (2) Input tables
    parser.add_argument("--clients", type=str, default=None, help="Clients table (.csv/.xlsx)")
    parser.add_argument("--workers", type=str, default=None, help="Workers table (.csv/.xlsx)")
    parser.add_argument("--tasks", type=str, default=None, help="Tasks table (.csv/.xlsx)")

    # (3) Output directory argument
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output directory for artifacts (default: output_dir from config)",
    )

    # (4) Repair switch
    parser.add_argument(
        "--auto-fix",
        action="store_true",
        help="Apply auto-fixable findings and re-validate before export",
    )

    return parser.parse_args(argv)


def _load_entity(path: Path | None, entity: EntityName, output_dir: Path) -> list[Any]:
    """Load one table; None means the table was not supplied."""
    if path is None:
        logging.info("No %s table supplied; using an empty collection.", entity)
        return []
    logging.info("Loading %s: %s", entity, path)
    result = EntitiesLoader().load(path, entity)
    return LoadResultHandler(output_dir=output_dir).handle(result)


def run_pipeline(
    config_path: Path | None,
    clients_path: Path | None,
    workers_path: Path | None,
    tasks_path: Path | None,
    output_dir: Path | None = None,
    auto_fix: bool = False,
) -> dict[str, Any]:
    """
    @brief
    Executes the full allocprep pipeline.

    @details
    Performs sequential steps:
    (1) Load configuration and input tables.
    (2) Validate, optionally auto-fix and re-validate.
    (3) Score, derive insights, resource forecast and rule recommendations.
    (4) Write metrics, validation report, rules config and plot.
    (5) Export cleaned entity tables unless blocked by errors.
    Controlled failures raise AllocPrepError; a blocked export is reported
    in the result instead of raising.

    @returns
        Dictionary with passed flag, quality score, finding counts, export
        flag and artifact paths.
    """
    # (1) Start timer and load configuration
    t0 = time.perf_counter()
    cfg = ConfigLoader().load_or_default(config_path)

    output_dir = Path(output_dir or cfg.output_dir or "data/output")
    output_dir.mkdir(parents=True, exist_ok=True)

    # (2) Load tables into the workspace (each set_* re-validates)
    ws = Workspace(cfg)
    ws.set_clients(_load_entity(clients_path, "clients", output_dir))
    ws.set_workers(_load_entity(workers_path, "workers", output_dir))
    ws.set_tasks(_load_entity(tasks_path, "tasks", output_dir))

    # (3) Optional repair pass
    fixed = 0
    if auto_fix:
        logging.info("Applying auto-fixes…")
        result = ws.auto_fix()
        fixed = len(result.applied)
        logging.info(
            "Auto-fix: %d applied, %d skipped; %d finding(s) remain",
            len(result.applied),
            len(result.skipped),
            len(ws.findings),
        )

    # (4) Score, insights, forecast, rule suggestions
    score = ws.quality_score
    logging.info("Data quality score: %.1f/100", score)
    insights = ws.refresh_insights()
    prediction = ws.predict_resource_needs()
    for rec in recommend_rules(ws.clients, ws.workers, ws.tasks):
        ws.add_rule(rec.rule)
    rule_suggestions = ws.optimize_rules()

    # (5) Reports
    metrics = collect_quality_metrics(ws.clients, ws.workers, ws.tasks, ws.findings, cfg.quality)
    metrics_path = write_metrics(metrics, out_dir=output_dir)
    validation_log_path = write_validation_log(ws.findings, score, output_dir, fixed=fixed)

    validation_report_path: Path | None = None
    if cfg.export.write_report:
        validation_report_path = write_json(
            build_validation_report(ws.findings), output_dir / "validation_report.json"
        )

    rules_config_path = write_json(
        build_rules_config(
            ws.rules,
            ws.priorities,
            ws.clients,
            ws.workers,
            ws.tasks,
            ws.findings,
            version=cfg.export.rules_config_version,
        ),
        output_dir / "rules_config.json",
    )

    insights_path = write_json(
        {
            "insights": [i.model_dump(mode="json") for i in insights],
            "resourcePrediction": prediction.model_dump(mode="json"),
            "ruleSuggestions": rule_suggestions,
        },
        output_dir / "insights.json",
    )

    plot_path: Path | None = None
    if cfg.visual.save_plot:
        logging.info("Rendering quality summary plot…")
        plot_path = plot_quality_summary(
            ws.findings, score, cfg, out_path=output_dir / "quality_summary.png"
        )

    # (6) Entity export
    exported: dict[str, Path] = {}
    try:
        exported = write_entities(
            ws.clients,
            ws.workers,
            ws.tasks,
            ws.findings,
            output_dir,
            cfg.export.format,
            block_on_errors=cfg.export.block_on_errors,
        )
    except ExportError as e:
        logging.warning(str(e))

    dt = time.perf_counter() - t0
    logging.info("Pipeline finished in %.2f s", dt)

    counts = metrics["findings"]["by_kind"]
    return {
        "passed": counts["error"] == 0,
        "quality_score": score,
        "counts": counts,
        "exported": bool(exported),
        "artifacts": {
            "metrics": metrics_path,
            "validation_log": validation_log_path,
            "validation_report": validation_report_path,
            "rules_config": rules_config_path,
            "insights": insights_path,
            "quality_plot": plot_path,
            **{f"{entity}_table": path for entity, path in exported.items()},
        },
    }


def main(argv: list[str] | None = None) -> int:
    """
    @brief
    CLI entry point for executing the full allocprep pipeline.

    @details
    Returns numeric exit codes suitable for shell integration:
      0 – success (no error findings, tables exported)
      1 – controlled failure (data/config/export) or blocked export
      2 – unexpected crash
    """
    _setup_logging()
    args = _parse_args(argv)

    def _opt(value: str | None) -> Path | None:
        return Path(value) if value else None

    try:
        result = run_pipeline(
            _opt(args.config),
            _opt(args.clients),
            _opt(args.workers),
            _opt(args.tasks),
            _opt(args.output),
            auto_fix=args.auto_fix,
        )
        arts = result["artifacts"]
        logging.info(
            "Artifacts: %s",
            ", ".join(Path(p).name for p in arts.values() if p is not None),
        )
        return 0 if result["passed"] and result["exported"] else 1

    except AllocPrepError as e:
        logging.error(str(e))
        return 1
    except Exception:
        logging.error("Unexpected error occurred:")
        traceback.print_exc()
        return 2


if __name__ == "__main__":
    sys.exit(main())
