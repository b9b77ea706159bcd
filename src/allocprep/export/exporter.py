# src/allocprep/export/exporter.py
from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal

import pandas as pd
from pydantic import BaseModel

from allocprep.errors import DataError, ExportError
from allocprep.metrics.logger import atomic_write_text
from allocprep.schemas.models import (
    ENTITY_NAMES,
    Client,
    Finding,
    Priority,
    Rule,
    Task,
    Worker,
)

logger = logging.getLogger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _counts(findings: Sequence[Finding]) -> tuple[int, int]:
    errors = sum(1 for f in findings if f.kind == "error")
    warnings = sum(1 for f in findings if f.kind == "warning")
    return errors, warnings


def _to_frame(rows: Sequence[BaseModel]) -> pd.DataFrame:
    """
    @brief
    Flatten entity records into a DataFrame suitable for a spreadsheet.

    @details
    List-valued fields (skills, slots, task ids) are joined with commas so the
    file can be uploaded again without loss.
    """
    records: list[dict[str, Any]] = []
    for row in rows:
        rec = row.model_dump()
        for key, value in rec.items():
            if isinstance(value, list):
                rec[key] = ",".join(str(v) for v in value)
        records.append(rec)
    return pd.DataFrame(records)


def _atomic_write_frame(df: pd.DataFrame, path: Path, fmt: Literal["xlsx", "csv"]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        prefix=path.stem + ".", suffix=path.suffix, dir=str(path.parent)
    )
    os.close(fd)
    try:
        if fmt == "csv":
            df.to_csv(tmp_path, index=False, encoding="utf-8")
        else:
            df.to_excel(tmp_path, index=False, sheet_name="Data", engine="openpyxl")
        os.replace(tmp_path, path)
    except OSError as e:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise ExportError(
            f"Failed to write {path}: {e}",
            source="export.write_entities",
            suggested_action="Check output directory permissions and disk space.",
        ) from e


def write_entities(
    clients: Sequence[Client],
    workers: Sequence[Worker],
    tasks: Sequence[Task],
    findings: Sequence[Finding],
    out_dir: Path,
    fmt: Literal["xlsx", "csv"] = "xlsx",
    *,
    block_on_errors: bool = True,
) -> dict[str, Path]:
    """
    @brief
    Write cleaned entity tables: clients.<fmt>, workers.<fmt>, tasks.<fmt>.

    @details
    Export is blocked while any error-kind finding is present unless
    `block_on_errors` is False; warnings and infos never block. Empty
    collections still produce a file so the output set is always complete.

    @returns
        Mapping entity name -> written path.

    @raises
        ExportError when blocked by errors, on unknown format, or on write failure.
    """
    errors, _ = _counts(findings)
    if errors and block_on_errors:
        raise ExportError(
            f"Export blocked: {errors} validation error(s) must be resolved first.",
            source="export.write_entities",
            suggested_action="Run auto-fix or edit the flagged rows, then validate again.",
        )
    if fmt not in ("xlsx", "csv"):
        raise ExportError(
            f"Unsupported export format: {fmt}",
            source="export.write_entities",
            suggested_action="Use 'xlsx' or 'csv'.",
        )

    out_dir = Path(out_dir)
    written: dict[str, Path] = {}
    for entity, rows in zip(ENTITY_NAMES, (clients, workers, tasks)):
        target = out_dir / f"{entity}.{fmt}"
        _atomic_write_frame(_to_frame(rows), target, fmt)
        written[entity] = target
        logger.info("Exported %d %s -> %s", len(rows), entity, target)
    return written


def _parameters_payload(rule: Rule) -> dict[str, Any]:
    return rule.parameters.model_dump(exclude={"kind"})


def build_rules_config(
    rules: Sequence[Rule],
    priorities: Sequence[Priority],
    clients: Sequence[Client],
    workers: Sequence[Worker],
    tasks: Sequence[Task],
    findings: Sequence[Finding],
    version: str = "1.0",
) -> dict[str, Any]:
    """
    @brief
    Build the rules_config.json payload consumed by the allocation stage.

    @details
    Only enabled rules are exported; `priority` is the 1-based position of a
    rule among the enabled ones. Parameters are written without the internal
    variant tag.
    """
    enabled = [r for r in rules if r.enabled]
    errors, warnings = _counts(findings)
    return {
        "version": version,
        "generatedAt": _utc_now_iso(),
        "rules": [
            {
                "id": r.id,
                "type": r.type,
                "name": r.name,
                "description": r.description,
                "parameters": _parameters_payload(r),
                "priority": position,
            }
            for position, r in enumerate(enabled, start=1)
        ],
        "priorities": {
            p.id: {"name": p.name, "weight": p.weight, "description": p.description}
            for p in priorities
        },
        "metadata": {
            "totalClients": len(clients),
            "totalWorkers": len(workers),
            "totalTasks": len(tasks),
            "totalRules": len(enabled),
            "validationStatus": {
                "errors": errors,
                "warnings": warnings,
                "passed": errors == 0,
            },
        },
    }


def build_validation_report(findings: Sequence[Finding]) -> dict[str, Any]:
    """validation_report.json payload: summary, findings per entity, recommendations."""
    errors, warnings = _counts(findings)
    return {
        "summary": {
            "totalErrors": errors,
            "totalWarnings": warnings,
            "validationPassed": errors == 0,
            "generatedAt": _utc_now_iso(),
        },
        "errorsByEntity": {
            entity: [f.model_dump(mode="json") for f in findings if f.entity == entity]
            for entity in ENTITY_NAMES
        },
        "recommendations": [
            {
                "entity": f.entity,
                "field": f.field,
                "issue": f.message,
                "recommendation": f.suggestion,
            }
            for f in findings
            if f.suggestion
        ],
    }


def write_json(payload: dict[str, Any], path: Path) -> Path:
    """Atomic UTF-8 JSON write (indent 2); raises ExportError on failure."""
    path = Path(path)
    try:
        text = json.dumps(payload, ensure_ascii=False, indent=2)
    except (TypeError, ValueError) as e:
        raise ExportError(
            f"Payload for {path.name} is not JSON-serializable: {e}",
            source="export.write_json",
        ) from e
    try:
        atomic_write_text(path, text + "\n")
    except (OSError, DataError) as e:
        raise ExportError(
            f"Failed to write {path}: {e}",
            source="export.write_json",
            suggested_action="Check output directory permissions and disk space.",
        ) from e
    logger.info("Wrote %s", path)
    return path


__all__ = [
    "write_entities",
    "build_rules_config",
    "build_validation_report",
    "write_json",
]
