# src/allocprep/insights/search.py
from __future__ import annotations

import json
import re
from collections.abc import Sequence

from pydantic import BaseModel, Field

from allocprep.schemas.models import Client, Task, Worker

_SKILL_QUERY = re.compile(r"skills?\s+(\w+)")


class SearchResult(BaseModel):
    """Matching rows per entity; `intent` names the keyword branch that fired."""

    intent: str
    clients: list[Client] = Field(default_factory=list)
    workers: list[Worker] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)


def _row_text(row: BaseModel) -> str:
    return json.dumps(row.model_dump(), ensure_ascii=False).lower()


def search_entities(
    query: str,
    clients: Sequence[Client],
    workers: Sequence[Worker],
    tasks: Sequence[Task],
    *,
    overload_ratio: float = 0.8,
) -> SearchResult:
    """
    @brief
    Keyword search over the three collections.

    @details
    Branches are tried in order and the first match wins:
        "high priority" / "urgent"   clients with PriorityLevel >= 4
        "skill <word>"               workers and tasks whose skills contain <word>
        "overload" / "capacity"      workers whose load ratio exceeds `overload_ratio`
        anything else                case-insensitive substring over every field
    A bare "skill"/"expertise" query without a skill word returns nothing.
    """
    q = query.strip().lower()

    if "high priority" in q or "urgent" in q:
        return SearchResult(intent="priority", clients=[c for c in clients if c.PriorityLevel >= 4])

    if "skill" in q or "expertise" in q:
        match = _SKILL_QUERY.search(q)
        if not match:
            return SearchResult(intent="skill")
        word = match.group(1)
        return SearchResult(
            intent="skill",
            workers=[w for w in workers if any(word in s.lower() for s in w.Skills)],
            tasks=[t for t in tasks if any(word in s.lower() for s in t.RequiredSkills)],
        )

    if "overload" in q or "capacity" in q:
        return SearchResult(
            intent="capacity",
            workers=[
                w
                for w in workers
                if w.MaxLoadPerPhase / max(len(w.AvailableSlots), 1) > overload_ratio
            ],
        )

    if not q:
        return SearchResult(intent="text")
    return SearchResult(
        intent="text",
        clients=[c for c in clients if q in _row_text(c)],
        workers=[w for w in workers if q in _row_text(w)],
        tasks=[t for t in tasks if q in _row_text(t)],
    )
