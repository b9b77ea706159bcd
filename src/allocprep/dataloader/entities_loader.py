# src/allocprep/dataloader/entities_loader.py
from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

import pandas as pd

from allocprep.dataloader.types import LoadResult
from allocprep.errors import DataError
from allocprep.schemas.models import Client, EntityName, Task, Worker

logger = logging.getLogger(__name__)

ENTITY_MODELS: dict[str, type[Client] | type[Worker] | type[Task]] = {
    "clients": Client,
    "workers": Worker,
    "tasks": Task,
}

INT_FIELDS = frozenset(
    {"PriorityLevel", "MaxLoadPerPhase", "QualificationLevel", "Duration", "MaxConcurrent"}
)
STR_LIST_FIELDS = frozenset({"RequestedTaskIDs", "Skills", "RequiredSkills"})
INT_LIST_FIELDS = frozenset({"AvailableSlots", "PreferredPhases"})

# Keyword heuristics per entity, tried in order: (target, exact names, substrings)
_COLUMN_HINTS: dict[str, tuple[tuple[str, tuple[str, ...], tuple[str, ...]], ...]] = {
    "clients": (
        ("ClientID", ("id",), ("clientid",)),
        ("ClientName", (), ("clientname", "name")),
        ("PriorityLevel", (), ("priority", "level")),
        ("RequestedTaskIDs", (), ("task", "request")),
        ("GroupTag", (), ("group", "tag", "category")),
        ("AttributesJSON", (), ("attribute", "json", "metadata")),
    ),
    "workers": (
        ("WorkerID", ("id",), ("workerid",)),
        ("WorkerName", (), ("workername", "name")),
        ("Skills", (), ("skill", "expertise")),
        ("AvailableSlots", (), ("slot", "available", "phase")),
        ("MaxLoadPerPhase", (), ("maxload", "load", "capacity")),
        ("WorkerGroup", (), ("group", "team", "department")),
        ("QualificationLevel", (), ("qualification", "level", "experience")),
    ),
    "tasks": (
        ("TaskID", ("id",), ("taskid",)),
        ("TaskName", (), ("taskname", "name")),
        ("Category", (), ("category", "type", "classification")),
        ("Duration", (), ("duration", "time", "length")),
        ("RequiredSkills", (), ("skill", "requirement", "expertise")),
        ("PreferredPhases", (), ("phase", "preferred", "schedule")),
        ("MaxConcurrent", (), ("concurrent", "parallel", "max")),
    ),
}

_RANGE = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*$")


def _norm(name: str) -> str:
    return re.sub(r"[\s_\-]+", "", str(name)).lower()


def map_columns(columns: Iterable[str], entity: EntityName) -> dict[str, str]:
    """
    @brief
    Map source column names to canonical field names.

    @details
    A column whose normalized name equals a canonical field (case, spaces,
    underscores and dashes ignored) maps to it directly. Other columns go
    through keyword heuristics. If two columns would land on the same field,
    the heuristics are discarded and only exact matches are kept.
    Unmapped columns are absent from the result.
    """
    columns = list(columns)
    canonical = {_norm(target): target for target, _, _ in _COLUMN_HINTS[entity]}

    exact: dict[str, str] = {}
    heuristic: dict[str, str] = {}
    for col in columns:
        key = _norm(col)
        if key in canonical:
            exact[col] = canonical[key]
            continue
        for target, names, substrings in _COLUMN_HINTS[entity]:
            if key in names or any(s in key for s in substrings):
                heuristic[col] = target
                break

    mapping = {**exact, **heuristic}
    if len(set(mapping.values())) != len(mapping):
        logger.info("Ambiguous column mapping for %s; keeping exact matches only", entity)
        return exact
    return mapping


class EntitiesLoader:
    """
    CSV / XLSX table -> LoadResult[Client | Worker | Task].

    Rules:
      - Formats: UTF-8 CSV (delimiter=',') or XLSX (first sheet)
      - Column names are mapped with map_columns(); unmapped columns are dropped
      - Cell coercion (row-level, never fatal):
          * int fields          lenient parse ("3", "3.0"); blank -> 0 (missing)
          * list-of-str fields  comma-separated, blanks dropped
          * list-of-int fields  "1,2,3", "[1, 2]" or range "1-3"
          * unparsable value    -> issue + value dropped, row kept
      - success=False when any issue was recorded; rows are returned either way
        so the Validator can report on them.

    Fatal errors (raise DataError immediately):
      - file missing / unreadable / unsupported extension
      - table without a header row
    """

    SUPPORTED_SUFFIXES = (".csv", ".xlsx")

    def load(self, path: Path, entity: EntityName) -> LoadResult:
        records = self._read_table(path)
        result = self.load_records(records, entity)
        self._report_summary(path, result)
        return result

    def load_records(self, records: Sequence[Mapping[str, Any]], entity: EntityName) -> LoadResult:
        """Shape already-parsed rows (e.g. from an upload widget) into entity records."""
        if entity not in ENTITY_MODELS:
            raise DataError(
                message=f"Unknown entity: {entity}",
                source="EntitiesLoader.load_records",
                suggested_action="Use one of: clients, workers, tasks.",
            )
        columns: list[str] = []
        for rec in records:
            for col in rec:
                if col not in columns:
                    columns.append(col)
        mapping = map_columns(columns, entity)
        return self._rows_to_result(records, entity, mapping)

    # ------------------------------
    # Internal helpers
    # ------------------------------
    def _read_table(self, path: Path) -> list[dict[str, Any]]:
        if not isinstance(path, Path):
            raise DataError(
                message=f"Invalid path type: expected pathlib.Path, got {type(path).__name__}",
                source="EntitiesLoader._read_table",
                suggested_action="Pass a pathlib.Path pointing to the uploaded table.",
            )
        if not path.exists():
            raise DataError(
                message=f"Input table not found: {path}",
                source="EntitiesLoader._read_table",
                suggested_action="Verify file path and ensure the file is present.",
            )
        suffix = path.suffix.lower()
        if suffix not in self.SUPPORTED_SUFFIXES:
            raise DataError(
                message=f"Unsupported file extension: {path.suffix}",
                source="EntitiesLoader._read_table",
                suggested_action="Upload a .csv or .xlsx file.",
            )

        try:
            if suffix == ".csv":
                df = pd.read_csv(path, dtype=str, keep_default_na=False, encoding="utf-8")
            else:
                df = pd.read_excel(path, dtype=str, keep_default_na=False)
        except pd.errors.EmptyDataError as e:
            raise DataError(
                message="Table has no header row.",
                source="EntitiesLoader._read_table",
                suggested_action="Ensure the first line contains column names.",
            ) from e
        except (OSError, ValueError) as e:
            raise DataError(
                message=f"Unable to read table: {e}",
                source="EntitiesLoader._read_table",
                suggested_action="Check the file encoding/format and that it is not locked.",
            ) from e

        df.columns = [str(c).strip() for c in df.columns]
        return df.to_dict(orient="records")

    def _rows_to_result(
        self,
        records: Sequence[Mapping[str, Any]],
        entity: EntityName,
        mapping: dict[str, str],
    ) -> LoadResult:
        model = ENTITY_MODELS[entity]
        issues: list[dict[str, Any]] = []
        rows: list[Any] = []

        for line_no, record in enumerate(records, start=2):  # header = line 1
            shaped: dict[str, Any] = {}
            for col, raw in record.items():
                target = mapping.get(col)
                if target is None:
                    continue
                value, problem = _coerce(target, raw)
                if problem:
                    issues.append(
                        {
                            "kind": "coercion",
                            "line_no": line_no,
                            "field": target,
                            "value": None if _is_blank(raw) else str(raw),
                            "message": problem,
                        }
                    )
                shaped[target] = value
            rows.append(model.model_validate(shaped))

        return LoadResult(
            entity=entity,
            success=not issues,
            rows=rows,
            issues=issues,
            total_rows=len(records),
            kept_rows=len(rows),
            column_mapping=mapping,
        )

    def _report_summary(self, path: Path, result: LoadResult) -> None:
        if result.success:
            logger.info(
                "EntitiesLoader OK: %s kept=%d/%d from %s",
                result.entity,
                result.kept_rows,
                result.total_rows,
                path,
            )
        else:
            fields: dict[str, int] = {}
            for it in result.issues:
                fields[it["field"]] = fields.get(it["field"], 0) + 1
            summary = ", ".join(f"{k}={v}" for k, v in fields.items())
            logger.warning(
                "EntitiesLoader: %d coercion issue(s) in %s from %s [%s]",
                len(result.issues),
                result.entity,
                path,
                summary,
            )


# ------------------------------
# Cell coercion
# ------------------------------
def _is_blank(raw: Any) -> bool:
    if raw is None:
        return True
    if isinstance(raw, float) and math.isnan(raw):
        return True
    return isinstance(raw, str) and not raw.strip()


def _parse_int(raw: Any) -> int | None:
    if isinstance(raw, bool):
        return int(raw)
    if isinstance(raw, int):
        return raw
    try:
        number = float(str(raw).strip())
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return int(number)


def _split(raw: Any) -> list[str]:
    if isinstance(raw, (list | tuple)):
        parts = [str(p) for p in raw]
    else:
        parts = str(raw).strip().strip("[]").split(",")
    return [p.strip().strip("'\"").strip() for p in parts if p.strip().strip("'\"").strip()]


def _coerce(target: str, raw: Any) -> tuple[Any, str | None]:
    """Returns (value, problem); problem is None when the cell parsed cleanly."""
    if target in INT_FIELDS:
        if _is_blank(raw):
            return 0, None
        value = _parse_int(raw)
        if value is None:
            return 0, f"Not an integer: {raw!r}"
        return value, None

    if target in STR_LIST_FIELDS:
        return ([] if _is_blank(raw) else _split(raw)), None

    if target in INT_LIST_FIELDS:
        if _is_blank(raw):
            return [], None
        # (1) Range syntax a-b
        if isinstance(raw, str):
            m = _RANGE.match(raw.strip().strip("[]"))
            if m:
                start, end = int(m.group(1)), int(m.group(2))
                if start > end:
                    return [], f"Descending range: {raw!r}"
                return list(range(start, end + 1)), None
        # (2) Comma-separated integers; bad parts are dropped
        values: list[int] = []
        bad: list[str] = []
        for part in _split(raw):
            parsed = _parse_int(part)
            if parsed is None:
                bad.append(part)
            else:
                values.append(parsed)
        return values, (f"Dropped non-integer value(s): {', '.join(bad)}" if bad else None)

    return ("" if _is_blank(raw) else str(raw).strip()), None
