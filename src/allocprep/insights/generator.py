# src/allocprep/insights/generator.py
from __future__ import annotations

import logging
from collections.abc import Sequence

from allocprep.metrics.stats import capacity_stats, missing_skills
from allocprep.schemas.models import Client, Insight, InsightsConfig, Task, Worker

logger = logging.getLogger(__name__)

_IMPACT_RANK = {"high": 0, "medium": 1, "low": 2}


class InsightGenerator:
    """
    @brief
    Derives ranked insights about capacity, skills, workload and priorities.

    @details
    Each rule is independent and only fires when its preconditions hold
    (e.g. no workers means no imbalance check). Results are ordered by
    impact, then by confidence, keeping rule order for ties.
    Insights are recomputed on demand and do not depend on findings.
    """

    def __init__(self, cfg: InsightsConfig | None = None) -> None:
        self.cfg = cfg or InsightsConfig()

    def generate(
        self,
        clients: Sequence[Client],
        workers: Sequence[Worker],
        tasks: Sequence[Task],
    ) -> list[Insight]:
        insights: list[Insight] = []
        for rule in (
            self._capacity(workers, tasks),
            self._skill_gap(workers, tasks),
            self._workload_imbalance(workers),
            self._priority_inflation(clients),
        ):
            if rule is not None:
                insights.append(rule)

        insights.sort(key=lambda i: (_IMPACT_RANK[i.impact], -i.confidence))
        logger.info("Generated %d insight(s)", len(insights))
        return insights

    # ---------- Rules ----------
    def _capacity(self, workers: Sequence[Worker], tasks: Sequence[Task]) -> Insight | None:
        stats = capacity_stats(workers, tasks)
        if stats.demand == 0 or stats.demand <= self.cfg.capacity_alert_ratio * stats.capacity:
            return None
        return Insight(
            id="capacity-warning",
            type="warning",
            title="Resource Capacity Alert",
            description=(
                f"Task demand ({stats.demand}) is approaching worker capacity ({stats.capacity})"
            ),
            impact="high",
            confidence=0.9,
            actionable=True,
            suggestedAction="Consider hiring additional workers or extending project timeline",
        )

    def _skill_gap(self, workers: Sequence[Worker], tasks: Sequence[Task]) -> Insight | None:
        missing = missing_skills(workers, tasks)
        if not missing:
            return None
        return Insight(
            id="skill-gap",
            type="recommendation",
            title="Skill Gap Identified",
            description=f"Missing skills: {', '.join(missing)}",
            impact="high",
            confidence=0.95,
            actionable=True,
            suggestedAction="Implement training program or hire specialists",
        )

    def _workload_imbalance(self, workers: Sequence[Worker]) -> Insight | None:
        stats = capacity_stats(workers, [])
        mean = stats.mean_load
        # No workers or no capacity at all: nothing to compare against
        if not workers or mean <= 0:
            return None

        tolerance = self.cfg.imbalance_tolerance * mean
        imbalanced = [load for load in stats.worker_loads if abs(load - mean) > tolerance]
        if not imbalanced:
            return None
        return Insight(
            id="workload-imbalance",
            type="optimization",
            title="Workload Imbalance Detected",
            description=f"{len(imbalanced)} worker(s) have significantly different workloads",
            impact="medium",
            confidence=0.8,
            actionable=True,
            suggestedAction="Redistribute tasks to balance workload across team",
        )

    def _priority_inflation(self, clients: Sequence[Client]) -> Insight | None:
        if not clients:
            return None
        high_levels = set(self.cfg.high_priority_levels)
        high = sum(1 for c in clients if c.PriorityLevel in high_levels)
        share = high / len(clients)
        if share <= self.cfg.priority_inflation_share:
            return None
        return Insight(
            id="priority-inflation",
            type="pattern",
            title="Priority Inflation Detected",
            description=f"{round(share * 100)}% of clients have high priority",
            impact="medium",
            confidence=0.7,
            actionable=True,
            suggestedAction="Review and rebalance client priorities for better resource allocation",
        )


def generate_insights(
    clients: Sequence[Client],
    workers: Sequence[Worker],
    tasks: Sequence[Task],
    cfg: InsightsConfig | None = None,
) -> list[Insight]:
    """Ranked insights for the given collections."""
    return InsightGenerator(cfg).generate(clients, workers, tasks)
