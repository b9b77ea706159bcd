# src/allocprep/rules/priorities.py
from __future__ import annotations

from collections.abc import Sequence

from allocprep.schemas.models import Priority


def default_priorities() -> list[Priority]:
    """The five allocation criteria every workspace starts with."""
    return [
        Priority(
            id="priority-level",
            name="Priority Level",
            weight=0.3,
            description="Client priority importance",
        ),
        Priority(
            id="task-fulfillment",
            name="Task Fulfillment",
            weight=0.25,
            description="Requested task completion",
        ),
        Priority(
            id="fairness",
            name="Fairness",
            weight=0.2,
            description="Equal distribution across workers",
        ),
        Priority(
            id="efficiency",
            name="Efficiency",
            weight=0.15,
            description="Resource utilization optimization",
        ),
        Priority(id="timeline", name="Timeline", weight=0.1, description="Schedule adherence"),
    ]


# preset id -> (display name, criterion weights)
PRESETS: dict[str, tuple[str, dict[str, float]]] = {
    "maximize-fulfillment": (
        "Maximize Fulfillment",
        {
            "priority-level": 0.2,
            "task-fulfillment": 0.4,
            "fairness": 0.15,
            "efficiency": 0.15,
            "timeline": 0.1,
        },
    ),
    "fair-distribution": (
        "Fair Distribution",
        {
            "priority-level": 0.15,
            "task-fulfillment": 0.2,
            "fairness": 0.4,
            "efficiency": 0.15,
            "timeline": 0.1,
        },
    ),
    "minimize-workload": (
        "Minimize Workload",
        {
            "priority-level": 0.1,
            "task-fulfillment": 0.2,
            "fairness": 0.15,
            "efficiency": 0.4,
            "timeline": 0.15,
        },
    ),
    "timeline-focused": (
        "Timeline Focused",
        {
            "priority-level": 0.15,
            "task-fulfillment": 0.2,
            "fairness": 0.15,
            "efficiency": 0.15,
            "timeline": 0.35,
        },
    ),
    "cost-optimized": (
        "Cost Optimized",
        {
            "priority-level": 0.1,
            "task-fulfillment": 0.25,
            "fairness": 0.1,
            "efficiency": 0.45,
            "timeline": 0.1,
        },
    ),
}


def apply_preset(priorities: Sequence[Priority], preset_id: str) -> list[Priority]:
    """
    Return priorities with weights taken from a preset.

    Criteria the preset does not mention keep their weight. Raises KeyError
    for an unknown preset id.
    """
    _, weights = PRESETS[preset_id]
    return [
        p.model_copy(update={"weight": weights[p.id]}) if p.id in weights else p
        for p in priorities
    ]


def normalize_weights(priorities: Sequence[Priority]) -> list[Priority]:
    """Scale weights so they sum to 1; all-zero weights are returned unchanged."""
    total = sum(p.weight for p in priorities)
    if total <= 0:
        return list(priorities)
    return [p.model_copy(update={"weight": p.weight / total}) for p in priorities]
