# src/allocprep/metrics/stats.py
"""
Aggregate statistics shared by the quality scorer, the insight generator
and the resource predictor.

All helpers are pure and tolerate empty collections.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from allocprep.schemas.models import Task, Worker


def unique_in_order(values: Iterable[str]) -> list[str]:
    """Distinct non-empty strings in first-seen order."""
    seen: set[str] = set()
    out: list[str] = []
    for v in values:
        if v and v not in seen:
            seen.add(v)
            out.append(v)
    return out


def worker_load(worker: Worker) -> int:
    """Capacity of one worker: MaxLoadPerPhase × |AvailableSlots|."""
    return max(worker.MaxLoadPerPhase, 0) * len(worker.AvailableSlots)


def total_capacity(workers: Sequence[Worker]) -> int:
    return sum(worker_load(w) for w in workers)


def total_demand(tasks: Sequence[Task]) -> int:
    return sum(max(t.Duration, 0) for t in tasks)


def required_skills(tasks: Sequence[Task]) -> list[str]:
    return unique_in_order(s for t in tasks for s in t.RequiredSkills)


def offered_skills(workers: Sequence[Worker]) -> list[str]:
    return unique_in_order(s for w in workers for s in w.Skills)


def missing_skills(workers: Sequence[Worker], tasks: Sequence[Task]) -> list[str]:
    """Skills required by at least one task but offered by no worker."""
    offered = set(offered_skills(workers))
    return [s for s in required_skills(tasks) if s not in offered]


def skill_holders(workers: Sequence[Worker]) -> dict[str, int]:
    """Number of workers holding each skill (a worker listing a skill twice counts once)."""
    counts: dict[str, int] = {}
    for w in workers:
        for skill in set(w.Skills):
            if skill:
                counts[skill] = counts.get(skill, 0) + 1
    return counts


def skill_coverage(workers: Sequence[Worker], tasks: Sequence[Task]) -> float:
    """
    @brief
    Share of required skills offered by at least one worker, in percent.

    @details
    Returns 100.0 when no task requires any skill.
    """
    required = required_skills(tasks)
    if not required:
        return 100.0
    offered = set(offered_skills(workers))
    covered = sum(1 for s in required if s in offered)
    return covered / len(required) * 100.0


@dataclass(frozen=True, slots=True)
class CapacityStats:
    """Capacity vs. demand snapshot."""

    capacity: int
    demand: int
    worker_loads: tuple[int, ...]

    @property
    def utilization(self) -> float:
        return self.demand / self.capacity if self.capacity > 0 else 0.0

    @property
    def mean_load(self) -> float:
        if not self.worker_loads:
            return 0.0
        return sum(self.worker_loads) / len(self.worker_loads)


def capacity_stats(workers: Sequence[Worker], tasks: Sequence[Task]) -> CapacityStats:
    loads = tuple(worker_load(w) for w in workers)
    return CapacityStats(capacity=sum(loads), demand=total_demand(tasks), worker_loads=loads)
