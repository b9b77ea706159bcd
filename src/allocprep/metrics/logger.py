# src/allocprep/metrics/logger.py
"""
Run artifacts of the quality stage: metrics.json and validation.log.

Both files are replaced atomically so a reader never sees a half-written
artifact from an interrupted run.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from allocprep.errors import DataError
from allocprep.schemas.models import Finding

logger = logging.getLogger(__name__)


def write_metrics(metrics: dict[str, Any], out_dir: Path) -> Path:
    """
    @brief
    Persist the quality metrics dictionary as out_dir/metrics.json.

    @params
        metrics : dict[str, Any]
            Output of collect_quality_metrics().
        out_dir : Path
            Created when missing.

    @raises
        DataError
            Non-dict input, non-serializable values, or a failed write.
    """
    if not isinstance(metrics, dict):
        raise DataError("metrics must be a dict", source="metrics.write_metrics")

    try:
        payload = json.dumps(metrics, ensure_ascii=False, sort_keys=True, indent=2)
    except (TypeError, ValueError) as e:
        raise DataError(
            f"metrics not JSON-serializable: {e}",
            source="metrics.write_metrics",
            suggested_action="Keep metric values to str/int/float/bool, lists and dicts.",
        ) from e

    target = Path(out_dir) / "metrics.json"
    atomic_write_text(target, payload + "\n")
    logger.info("Quality metrics saved: %s", target)
    return target


def write_validation_log(
    findings: Sequence[Finding], score: float, out_dir: Path, *, fixed: int = 0
) -> Path:
    """
    @brief
    Human-readable summary of one validation run (validation.log).

    @details
    A header with the score and counts, then one line per finding in the
    order the Validator emitted them:
        [2025-01-01T00:00:00Z] ERROR clients[0].ClientID Missing ClientID -> Generate ID: C001
    """
    now = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")
    errors = sum(1 for f in findings if f.kind == "error")
    warnings = sum(1 for f in findings if f.kind == "warning")
    infos = len(findings) - errors - warnings

    lines = [
        f"[{now}] INFO quality score {score:.2f}/100",
        f"[{now}] INFO findings: {errors} error(s), {warnings} warning(s), {infos} info(s)",
    ]
    if fixed:
        lines.append(f"[{now}] INFO auto-fix applied {fixed} repair(s) before this run")
    for f in findings:
        line = f"[{now}] {f.kind.upper()} {f.entity}[{f.rowIndex}].{f.field} {f.message}"
        if f.suggestion:
            line += f" -> {f.suggestion}"
        lines.append(line)

    target = Path(out_dir) / "validation.log"
    atomic_write_text(target, "\n".join(lines) + "\n")
    logger.info("Validation log saved: %s", target)
    return target


def atomic_write_text(path: Path, text: str, encoding: str = "utf-8") -> None:
    """
    @brief
    Write text next to `path` in a temp file, then swap it into place.

    @raises
        DataError
            On write or rename failure; the temp file is removed first.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(prefix=path.name + ".", dir=str(path.parent))
    try:
        with open(fd, "w", encoding=encoding, newline="") as f:
            f.write(text)
        os.replace(tmp_path, path)
    except OSError as e:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise DataError(
            f"atomic write failed for {path}: {e}",
            source="metrics.atomic_write_text",
            suggested_action="Check output directory permissions and disk space.",
        ) from e


__all__ = ["write_metrics", "write_validation_log", "atomic_write_text"]
