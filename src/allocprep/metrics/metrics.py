# src/allocprep/metrics/metrics.py
from __future__ import annotations

import json
import math
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any

import pandas as pd

from allocprep.errors import DataError
from allocprep.metrics.stats import capacity_stats, missing_skills, skill_coverage
from allocprep.schemas.models import (
    ENTITY_NAMES,
    Client,
    Finding,
    QualityConfig,
    Task,
    Worker,
)


@dataclass(frozen=True, slots=True)
class QualityBreakdown:
    """
    @brief
    Components of the data-quality score.

    @details
    base         : 100 minus error / warning penalties (may be negative)
    completeness : record count relative to the reference size, capped at 100
    consistency  : share of required skills offered by some worker (0..100)
    score        : ((base + completeness) / 2 + consistency) / 2, clamped to [0, 100]
    """

    base: float
    completeness: float
    consistency: float
    score: float


def quality_breakdown(
    clients: Sequence[Client],
    workers: Sequence[Worker],
    tasks: Sequence[Task],
    findings: Sequence[Finding],
    cfg: QualityConfig | None = None,
) -> QualityBreakdown:
    """
    @brief
    Computes every component of the quality score.

    @details
    Two-stage averaging keeps any single dimension from dominating:
    base and completeness are averaged first, then blended with consistency.
    All three collections empty yields a zero score.

    @params
        clients, workers, tasks : Sequence
            Entity collections the findings were computed from.
        findings : Sequence[Finding]
            Output of the Validator for these collections.
        cfg : QualityConfig | None
            Penalties and reference size; defaults apply when omitted.

    @returns
        QualityBreakdown with score in [0, 100].
    """
    cfg = cfg or QualityConfig()

    total_records = len(clients) + len(workers) + len(tasks)
    if total_records == 0:
        return QualityBreakdown(base=0.0, completeness=0.0, consistency=0.0, score=0.0)

    # (1) Penalise errors and warnings; info findings are free
    errors = sum(1 for f in findings if f.kind == "error")
    warnings = sum(1 for f in findings if f.kind == "warning")
    base = 100.0 - cfg.error_penalty * errors - cfg.warning_penalty * warnings

    # (2) Completeness relative to a fully loaded dataset
    completeness = min(100.0, total_records / cfg.reference_size * 100.0)

    # (3) Skill consistency between tasks and workers
    consistency = skill_coverage(workers, tasks)

    # (4) Two-stage average, clamped
    raw = ((base + completeness) / 2.0 + consistency) / 2.0
    score = max(0.0, min(100.0, raw))
    return QualityBreakdown(
        base=_f(base), completeness=_f(completeness), consistency=_f(consistency), score=_f(score)
    )


def compute_quality_score(
    clients: Sequence[Client],
    workers: Sequence[Worker],
    tasks: Sequence[Task],
    findings: Sequence[Finding],
    cfg: QualityConfig | None = None,
) -> float:
    """Data-quality score in [0, 100]."""
    return quality_breakdown(clients, workers, tasks, findings, cfg).score


def findings_frame(findings: Sequence[Finding]) -> pd.DataFrame:
    """Findings as a DataFrame with one row per finding (stable column order)."""
    columns = list(Finding.model_fields)
    return pd.DataFrame([f.model_dump() for f in findings], columns=columns)


def collect_quality_metrics(
    clients: Sequence[Client],
    workers: Sequence[Worker],
    tasks: Sequence[Task],
    findings: Sequence[Finding],
    cfg: QualityConfig | None = None,
) -> dict[str, Any]:
    """
    @brief
    Builds a JSON-serializable dictionary of data-quality metrics.

    @details
    Combines the score breakdown, finding counts (by kind, severity and
    entity) and capacity statistics. Raises DataError if a computed value
    is not finite.
    """
    breakdown = quality_breakdown(clients, workers, tasks, findings, cfg)
    df = findings_frame(findings)

    # (1) Finding counts, zero-filled so consumers get a fixed shape
    by_kind = _counts(df, "kind", ("error", "warning", "info"))
    by_severity = _counts(df, "severity", ("critical", "high", "medium", "low"))
    by_entity = _counts(df, "entity", ENTITY_NAMES)
    auto_fixable = int(df["autoFixable"].sum()) if not df.empty else 0

    # (2) Capacity snapshot
    cap = capacity_stats(workers, tasks)

    metrics = {
        "timestamp": _utc_now_iso(),
        "quality_score": round(breakdown.score, 4),
        "components": {k: round(v, 4) for k, v in asdict(breakdown).items() if k != "score"},
        "records": {
            "clients": len(clients),
            "workers": len(workers),
            "tasks": len(tasks),
        },
        "findings": {
            "total": int(len(df)),
            "auto_fixable": auto_fixable,
            "by_kind": by_kind,
            "by_severity": by_severity,
            "by_entity": by_entity,
        },
        "capacity": {
            "total_capacity": cap.capacity,
            "total_demand": cap.demand,
            "utilization": round(_f(cap.utilization), 4),
            "missing_skills": missing_skills(workers, tasks),
        },
    }

    # (3) Validate numerical integrity and serializability
    _assert_no_nans(metrics)
    json.dumps(metrics, ensure_ascii=False)
    return metrics


# ----------------- internal -----------------


def _counts(df: pd.DataFrame, column: str, keys: Sequence[str]) -> dict[str, int]:
    """Value counts for `column`, with every key in `keys` present."""
    if df.empty:
        return {k: 0 for k in keys}
    vc = df[column].value_counts()
    return {k: int(vc.get(k, 0)) for k in keys}


def _assert_no_nans(obj: Any) -> None:
    """
    @brief
    Validates that object contains no NaN or infinite values.

    @details
    Recursively traverses dicts, lists, and tuples to ensure all numeric
    values are finite. Raises DataError on detection.
    """
    if isinstance(obj, float) and (math.isnan(obj) or math.isinf(obj)):
        raise DataError(
            "NaN/Inf encountered in metrics", source="metrics.collect_quality_metrics"
        )
    if isinstance(obj, dict):
        for v in obj.values():
            _assert_no_nans(v)
    elif isinstance(obj, (list | tuple)):
        for v in obj:
            _assert_no_nans(v)


def _utc_now_iso() -> str:
    """Current UTC timestamp, ISO-8601 with Z suffix and no microseconds."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def _f(x: float) -> float:
    """Snap tiny absolute values (<1e-15) to zero."""
    return 0.0 if abs(x) < 1e-15 else float(x)
