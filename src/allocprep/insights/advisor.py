# src/allocprep/insights/advisor.py
"""Advisory text for the rule set and a capacity-utilization forecast."""

from __future__ import annotations

import math
from collections.abc import Sequence

from allocprep.metrics.stats import capacity_stats, missing_skills
from allocprep.schemas.models import ResourcePrediction, Rule, Task, Worker

MAX_CORUN_RULES = 3
LOAD_LIMIT_TEAM_SIZE = 5
LOW_CONFIDENCE = 0.7
TASKS_PER_WORKER = 3


def optimize_rules(rules: Sequence[Rule], workers: Sequence[Worker]) -> list[str]:
    """
    @brief
    Suggestions for simplifying or completing the enabled rule set.

    @details
    Only enabled rules are considered. Custom rules without a confidence
    count as low-confidence.
    """
    enabled = [r for r in rules if r.enabled]
    suggestions: list[str] = []

    co_run = [r for r in enabled if r.type == "coRun"]
    if len(co_run) > MAX_CORUN_RULES:
        suggestions.append("Consider consolidating co-run rules to reduce complexity")

    has_load_limit = any(r.type == "loadLimit" for r in enabled)
    if not has_load_limit and len(workers) > LOAD_LIMIT_TEAM_SIZE:
        suggestions.append("Add load limit rules to prevent worker overload in larger teams")

    low_confidence = [
        r for r in enabled if r.type == "custom" and (r.confidence or 0.0) < LOW_CONFIDENCE
    ]
    if low_confidence:
        suggestions.append(f"Review {len(low_confidence)} low-confidence generated rule(s)")

    return suggestions


def predict_resource_needs(
    workers: Sequence[Worker], tasks: Sequence[Task]
) -> ResourcePrediction:
    """
    @brief
    Forecast of staffing and timeline risk.

    @details
    recommendedWorkers  = ceil(|tasks| / 3)
    capacityUtilization = total demand / total capacity (0 without capacity)
    timelineRisk        = high above 0.9, medium above 0.7, else low
    """
    stats = capacity_stats(workers, tasks)
    utilization = stats.utilization

    recommendations: list[str] = []
    if utilization > 0.9:
        risk = "high"
        recommendations.append("Consider extending timeline or adding resources")
    elif utilization > 0.7:
        risk = "medium"
        recommendations.append("Monitor resource allocation closely")
    else:
        risk = "low"

    gaps = missing_skills(workers, tasks)
    if gaps:
        recommendations.append(f"Source workers for missing skills: {', '.join(gaps)}")

    return ResourcePrediction(
        recommendedWorkers=math.ceil(len(tasks) / TASKS_PER_WORKER),
        capacityUtilization=utilization,
        timelineRisk=risk,
        skillGaps=gaps,
        recommendations=recommendations,
    )
