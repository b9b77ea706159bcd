# src/allocprep/autofix/fixer.py
"""
Deterministic repairs for auto-fixable findings.

The fixer never edits the finding list and never mutates its input
collections: it returns new lists in which only the rows and fields named by
fixable findings were replaced. The caller must re-run the Validator on the
result before presenting findings again.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from allocprep.schemas.models import (
    AutoFixConfig,
    Client,
    EntityName,
    Finding,
    Task,
    ValidationRulesConfig,
    Worker,
)
from allocprep.validator.validator import generate_entity_id, is_missing, load_json_strict

logger = logging.getLogger(__name__)

_FIRST_INT = re.compile(r"-?\d+")


@dataclass(slots=True)
class FixResult:
    """
    Outcome of one auto-fix pass.

    Unpacks as ``clients, workers, tasks = result``; `applied` and `skipped`
    list the findings that did or did not lead to a change.
    """

    clients: list[Client]
    workers: list[Worker]
    tasks: list[Task]
    applied: list[Finding] = field(default_factory=list)
    skipped: list[Finding] = field(default_factory=list)

    def __iter__(self) -> Iterator[list[Any]]:
        return iter((self.clients, self.workers, self.tasks))


def _int_from(finding: Finding) -> int | None:
    """Structured proposedValue first, then the first integer in the suggestion text."""
    value = finding.proposedValue
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    match = _FIRST_INT.search(finding.suggestion or "")
    return int(match.group()) if match else None


class AutoFixer:
    """
    @brief
    Applies safe, deterministic repairs keyed on (entity, field).

    @details
    Supported repairs:
        clients.ClientID        generated C### id if still empty
        clients.PriorityLevel   proposed value, clamped into the valid range
        clients.AttributesJSON  re-serialized, or replaced with a default payload
        workers.WorkerID        generated W### id if still empty
        workers.MaxLoadPerPhase proposed reduced load
        tasks.TaskID            generated T### id if still empty
    Findings without a matching repair, not flagged auto-fixable, or pointing
    past the end of their collection are skipped individually; one skipped
    finding never blocks the others.
    """

    def __init__(
        self,
        cfg: AutoFixConfig | None = None,
        rules: ValidationRulesConfig | None = None,
    ) -> None:
        self.cfg = cfg or AutoFixConfig()
        self.rules = rules or ValidationRulesConfig()
        self._fixers: dict[tuple[str, str], Callable[[Finding, Any], Any]] = {
            ("clients", "ClientID"): self._fix_missing_id,
            ("clients", "PriorityLevel"): self._fix_priority,
            ("clients", "AttributesJSON"): self._fix_attributes,
            ("workers", "WorkerID"): self._fix_missing_id,
            ("workers", "MaxLoadPerPhase"): self._fix_max_load,
            ("tasks", "TaskID"): self._fix_missing_id,
        }

    def apply(
        self,
        findings: Sequence[Finding],
        clients: Sequence[Client],
        workers: Sequence[Worker],
        tasks: Sequence[Task],
    ) -> FixResult:
        """
        @brief
        Apply every applicable fix and return the repaired collections.

        @params
            findings : Sequence[Finding]
                Findings from the latest validation run of these collections.

        @returns
            FixResult with copies of the three collections.
        """
        collections: dict[EntityName, list[Any]] = {
            "clients": list(clients),
            "workers": list(workers),
            "tasks": list(tasks),
        }
        applied: list[Finding] = []
        skipped: list[Finding] = []

        for finding in findings:
            if not finding.autoFixable:
                continue

            fixer = self._fixers.get((finding.entity, finding.field))
            rows = collections[finding.entity]
            if fixer is None or not 0 <= finding.rowIndex < len(rows):
                logger.debug("Auto-fix skipped %s: no fixer or stale row index", finding.id)
                skipped.append(finding)
                continue

            row = rows[finding.rowIndex]
            new_value = fixer(finding, row)
            if new_value is None:
                skipped.append(finding)
                continue

            # (1) Replace only the named field on a copy of the row
            rows[finding.rowIndex] = row.model_copy(update={finding.field: new_value})
            applied.append(finding)
            logger.debug("Auto-fix %s: %s -> %r", finding.id, finding.field, new_value)

        logger.info("Auto-fix applied %d fix(es), skipped %d", len(applied), len(skipped))
        return FixResult(
            clients=collections["clients"],
            workers=collections["workers"],
            tasks=collections["tasks"],
            applied=applied,
            skipped=skipped,
        )

    # ---------- Individual repairs (return None to leave the field unchanged) ----------
    def _fix_missing_id(self, finding: Finding, row: BaseModel) -> str | None:
        if not is_missing(getattr(row, finding.field)):
            return None
        return generate_entity_id(finding.entity, finding.rowIndex)

    def _fix_priority(self, finding: Finding, row: Client) -> int:
        value = _int_from(finding)
        if value is None:
            value = self.cfg.default_priority
        return max(self.rules.priority_min, min(self.rules.priority_max, value))

    def _fix_attributes(self, finding: Finding, row: Client) -> str:
        try:
            parsed = load_json_strict(row.AttributesJSON)
        except ValueError:
            return self.cfg.default_attributes
        return json.dumps(parsed, indent=self.cfg.json_indent, sort_keys=True, ensure_ascii=False)

    def _fix_max_load(self, finding: Finding, row: Worker) -> int:
        value = _int_from(finding)
        if value is None or value < 0:
            return self.cfg.default_max_load
        return value


def auto_fix(
    findings: Sequence[Finding],
    clients: Sequence[Client],
    workers: Sequence[Worker],
    tasks: Sequence[Task],
    cfg: AutoFixConfig | None = None,
    rules: ValidationRulesConfig | None = None,
) -> FixResult:
    """Functional shortcut for ``AutoFixer(cfg, rules).apply(...)``."""
    return AutoFixer(cfg, rules).apply(findings, clients, workers, tasks)
