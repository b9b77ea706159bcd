# src/allocprep/dataloader/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from allocprep.schemas.models import Client, EntityName, Task, Worker


@dataclass(slots=True)
class LoadResult:
    """
    Structured result of loading one entity table.

    Fields:
        entity: Which collection the rows belong to (clients / workers / tasks).
        success: True if every cell could be coerced to its field type.
        rows: Shaped entity records, one per data row (kept even when a cell was dropped).
        issues: Per-cell coercion problems (used for reporting).
                Each item contains at least: kind, line_no, field, value, message.
        total_rows: Total number of data rows observed (excludes header).
        kept_rows: Number of shaped records (len(rows)).
        column_mapping: Source column name -> canonical field name actually applied.
    """

    entity: EntityName
    success: bool
    rows: list[Client] | list[Worker] | list[Task] = field(default_factory=list)
    issues: list[dict[str, Any]] = field(default_factory=list)
    total_rows: int = 0
    kept_rows: int = 0
    column_mapping: dict[str, str] = field(default_factory=dict)
