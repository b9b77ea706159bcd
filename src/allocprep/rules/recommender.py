# src/allocprep/rules/recommender.py
from __future__ import annotations

import math
from collections.abc import Sequence

from pydantic import BaseModel

from allocprep.metrics.stats import missing_skills
from allocprep.schemas.models import (
    Client,
    CoRunParams,
    CustomParams,
    LoadLimitParams,
    Rule,
    RuleType,
    Task,
    Worker,
)

MAX_RECOMMENDATIONS = 5


class RuleRecommendation(BaseModel):
    """A suggested rule together with the reason it was proposed."""

    type: RuleType
    suggestion: str
    description: str
    rule: Rule


def recommend_rules(
    clients: Sequence[Client],
    workers: Sequence[Worker],
    tasks: Sequence[Task],
    limit: int = MAX_RECOMMENDATIONS,
) -> list[RuleRecommendation]:
    """
    @brief
    Data-driven rule suggestions.

    @details
    In order:
        (1) a task requested by more than one client -> coRun rule
        (2) a worker with fewer slots than twice its max load -> loadLimit rule
            for its group at floor(max_load * 0.8)
        (3) required skills no worker offers -> custom skill-gap rule
    At most `limit` recommendations are returned.
    """
    recs: list[RuleRecommendation] = []

    # (1) Tasks requested by several clients
    requesters: dict[str, list[str]] = {}
    for client in clients:
        for task_id in client.RequestedTaskIDs:
            if task_id:
                requesters.setdefault(task_id, []).append(client.ClientID)
    for task_id, client_ids in requesters.items():
        if len(client_ids) > 1:
            recs.append(
                RuleRecommendation(
                    type="coRun",
                    suggestion=f"Tasks often requested together: {task_id}",
                    description=f"{len(client_ids)} clients request this task",
                    rule=Rule(
                        id=f"corun-{task_id}",
                        type="coRun",
                        name=f"Co-run Tasks: {task_id}",
                        description=f"Tasks {task_id} must run together",
                        parameters=CoRunParams(taskIds=[task_id]),
                    ),
                )
            )

    # (2) Workers likely to be overloaded
    for index, worker in enumerate(workers):
        slots = len(worker.AvailableSlots)
        max_load = worker.MaxLoadPerPhase
        if slots > 0 and max_load > 0 and slots < max_load * 2:
            limit_slots = math.floor(max_load * 0.8)
            group = worker.WorkerGroup or "default"
            recs.append(
                RuleRecommendation(
                    type="loadLimit",
                    suggestion=f"Worker {worker.WorkerName or worker.WorkerID} may be overloaded",
                    description=(
                        f"Only {slots} available slot{'' if slots == 1 else 's'} "
                        f"vs {max_load} max load"
                    ),
                    rule=Rule(
                        id=f"loadlimit-{group}-{index}",
                        type="loadLimit",
                        name=f"Load Limit: {group}",
                        description=f"Limit {group} workers to {limit_slots} slots per phase",
                        parameters=LoadLimitParams(
                            workerGroup=group, maxSlotsPerPhase=limit_slots
                        ),
                    ),
                )
            )

    # (3) Skills missing from the worker pool
    missing = missing_skills(workers, tasks)
    if missing:
        recs.append(
            RuleRecommendation(
                type="custom",
                suggestion=f"Missing skills detected: {', '.join(missing[:3])}",
                description=f"{len(missing)} required skills not available in worker pool",
                rule=Rule(
                    id="skillgap",
                    type="custom",
                    name=f"Skill Gap Alert: {', '.join(missing[:2])}",
                    description=f"Alert for missing skills: {', '.join(missing)}",
                    parameters=CustomParams(
                        payload={"missingSkills": missing, "alertType": "skill_gap"}
                    ),
                ),
            )
        )

    return recs[:limit]
