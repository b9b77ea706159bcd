# src/allocprep/validator/validator.py
from __future__ import annotations

import json
import logging
import math
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from allocprep.errors import DataError
from allocprep.metrics.stats import skill_holders, unique_in_order
from allocprep.schemas.models import (
    Client,
    EntityName,
    Finding,
    FindingKind,
    ProposedValue,
    Severity,
    Task,
    ValidationRulesConfig,
    Worker,
)

logger = logging.getLogger(__name__)

_ID_PREFIX: dict[str, str] = {"clients": "C", "workers": "W", "tasks": "T"}


# ----------------------------
# AUXILIARY FUNCTIONS
# ----------------------------
def generate_entity_id(entity: EntityName, row_index: int) -> str:
    """
    @brief
    Deterministic replacement id for a row with a missing identifier.

    @details
    Follows the C001 / W001 / T001 convention (1-based, zero-padded to three
    digits). Shared by the Validator (suggestion) and the Auto-Fixer (repair).
    """
    return f"{_ID_PREFIX[entity]}{row_index + 1:03d}"


def is_missing(value: str | None) -> bool:
    """Empty or whitespace-only identifiers count as missing."""
    return not (value or "").strip()


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def load_json_strict(raw: str) -> Any:
    """
    @brief
    Parse standard JSON only.

    @details
    NaN / Infinity / -Infinity are rejected, and input nested too deeply
    for the decoder is reported as ValueError instead of RecursionError.
    """
    try:
        return json.loads(raw, parse_constant=_reject_constant)
    except RecursionError as e:
        raise ValueError("JSON nested too deeply") from e


def _is_valid_json(raw: str) -> bool:
    try:
        load_json_strict(raw)
    except ValueError:
        return False
    return True


# ---------------------------
# VALIDATOR CLASS (instance core)
# ----------------------------
class Validator:
    """
    @brief
    Entity-level data validator for clients, workers and tasks.

    @details
    Applies independent per-entity rule sets plus cross-entity referential
    checks (requested task ids, skill coverage). Every problem becomes a
    Finding; the validator never raises on malformed records, missing or zero
    fields are reported rather than rejected.
    Row indices refer to positions in the collections passed to the
    constructor, so findings are only meaningful for this run.
    """

    # ---------- Constructor ----------
    def __init__(
        self,
        clients: Sequence[Client],
        workers: Sequence[Worker],
        tasks: Sequence[Task],
        cfg: ValidationRulesConfig | None = None,
    ) -> None:
        """
        @brief
        Initialize validation context.

        @params
            clients, workers, tasks : Sequence
                Entity collections to inspect. They are never modified.
            cfg : ValidationRulesConfig | None
                Rule thresholds; defaults apply when omitted.
        """
        self.clients = list(clients)
        self.workers = list(workers)
        self.tasks = list(tasks)
        self.cfg = cfg or ValidationRulesConfig()

        # (1) Lookup structures for cross-entity checks
        self.task_ids: set[str] = {t.TaskID for t in self.tasks if not is_missing(t.TaskID)}
        self.skill_holders: dict[str, int] = skill_holders(self.workers)

        # (2) Accumulator for validation outcomes
        self.findings: list[Finding] = []

    # ---------- Public lifecycle API ----------
    def run_all_checks(self) -> list[Finding]:
        """
        @brief
        Execute the full validation sequence.

        @details
        Clients first, then tasks, then workers; each family walks its rows
        in order. Re-running replaces the previous finding set.

        @returns
            The list of findings (also kept on `self.findings`).
        """
        self.findings = []

        for index, client in enumerate(self.clients):
            self._check_client(index, client)
        for index, task in enumerate(self.tasks):
            self._check_task(index, task)
        for index, worker in enumerate(self.workers):
            self._check_worker(index, worker)

        counts = self.counts()
        logger.info(
            "Validation finished: %d error(s), %d warning(s), %d info across %d row(s)",
            counts["errors"],
            counts["warnings"],
            counts["infos"],
            len(self.clients) + len(self.workers) + len(self.tasks),
        )
        return self.findings

    def counts(self) -> dict[str, int]:
        return {
            "errors": sum(1 for f in self.findings if f.kind == "error"),
            "warnings": sum(1 for f in self.findings if f.kind == "warning"),
            "infos": sum(1 for f in self.findings if f.kind == "info"),
        }

    def build_report(self) -> dict[str, Any]:
        """
        @brief
        Assemble validation results into a structured dictionary.

        @details
        `passed` is True when there are no findings of kind "error";
        warnings and info never block.
        """
        counts = self.counts()
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "passed": counts["errors"] == 0,
            "counts": counts,
            "findings": [f.model_dump(mode="json") for f in self.findings],
        }

    def save_report(
        self,
        report: dict[str, Any],
        out_dir: Path | None = None,
        filename: str = "findings.json",
    ) -> Path:
        """
        Writes the report atomically to disk.

        Args:
            report: Output of build_report().
            out_dir: Target directory (defaults to 'data/output').
            filename: Target filename (default 'findings.json').

        Returns:
            Path to the written JSON file.
        """
        target_dir = out_dir or Path("data/output")
        target_dir.mkdir(parents=True, exist_ok=True)
        final_path = target_dir / filename
        tmp_path = final_path.with_suffix(".tmp")

        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(report, f, indent=2, ensure_ascii=False)
            tmp_path.replace(final_path)
        except OSError as e:
            raise DataError(
                f"Failed to write findings report: {e}",
                source="Validator.save_report",
                suggested_action="Check disk permissions and free space.",
            ) from e

        logger.info("Findings report saved: %s", final_path)
        return final_path

    # ---------- Checks (one method per entity family) ----------
    def _check_client(self, index: int, client: Client) -> None:
        """
        @brief
        Client rules: identifier, priority range, task references, attributes JSON.
        """
        cfg = self.cfg

        # (1) Missing identifier
        if is_missing(client.ClientID):
            new_id = generate_entity_id("clients", index)
            self._add_error(
                id=f"client-{index}-id",
                severity="critical",
                entity="clients",
                row=index,
                field="ClientID",
                message="Client ID is required",
                suggestion=f"Generate ID: {new_id}",
                proposed=new_id,
                auto_fixable=True,
            )

        # (2) Priority outside the accepted range
        level = client.PriorityLevel
        if not cfg.priority_min <= level <= cfg.priority_max:
            if level == 0:
                proposed = cfg.neutral_priority
            else:
                proposed = max(cfg.priority_min, min(cfg.priority_max, level))
            self._add_error(
                id=f"client-{index}-priority",
                severity="high",
                entity="clients",
                row=index,
                field="PriorityLevel",
                message=(
                    f"Priority level must be between {cfg.priority_min} and {cfg.priority_max} "
                    f"(got {level})"
                ),
                suggestion=f"Set priority level to {proposed}",
                proposed=proposed,
                auto_fixable=True,
            )

        # (3) Requested tasks must exist; never auto-resolved
        for task_id in unique_in_order(client.RequestedTaskIDs):
            if is_missing(task_id) or task_id in self.task_ids:
                continue
            self._add_error(
                id=f"client-{index}-task-{task_id}",
                severity="medium",
                entity="clients",
                row=index,
                field="RequestedTaskIDs",
                message=f"Requested task {task_id} does not exist",
                suggestion="Add the missing task or correct the reference",
            )

        # (4) Attributes payload must parse as JSON
        if client.AttributesJSON and not _is_valid_json(client.AttributesJSON):
            self._add_warning(
                id=f"client-{index}-json",
                severity="medium",
                entity="clients",
                row=index,
                field="AttributesJSON",
                message="Invalid JSON format",
                suggestion="Reset attributes to a valid default payload",
                auto_fixable=True,
            )

    def _check_task(self, index: int, task: Task) -> None:
        """
        @brief
        Task rules: identifier, skill coverage by workers, long duration.
        """
        if is_missing(task.TaskID):
            new_id = generate_entity_id("tasks", index)
            self._add_error(
                id=f"task-{index}-id",
                severity="critical",
                entity="tasks",
                row=index,
                field="TaskID",
                message="Task ID is required",
                suggestion=f"Generate ID: {new_id}",
                proposed=new_id,
                auto_fixable=True,
            )

        # (1) Skill coverage: nobody vs. a single holder
        for skill in unique_in_order(task.RequiredSkills):
            holders = self.skill_holders.get(skill, 0)
            if holders == 0:
                self._add_warning(
                    id=f"task-{index}-skill-{skill}",
                    severity="high",
                    entity="tasks",
                    row=index,
                    field="RequiredSkills",
                    message=f"No worker has the required skill: {skill}",
                    suggestion=f"Train existing workers or hire specialists in {skill}",
                )
            elif holders == 1:
                self._add_info(
                    id=f"task-{index}-skill-risk-{skill}",
                    severity="low",
                    entity="tasks",
                    row=index,
                    field="RequiredSkills",
                    message=f"Only 1 worker has skill: {skill}",
                    suggestion="Consider cross-training to reduce single points of failure",
                )

        # (2) Long tasks are candidates for decomposition
        if task.Duration > self.cfg.long_duration_phases:
            self._add_info(
                id=f"task-{index}-duration-warning",
                severity="low",
                entity="tasks",
                row=index,
                field="Duration",
                message=f"Long duration task detected ({task.Duration} phases)",
                suggestion="Break into smaller subtasks for better resource allocation",
            )

    def _check_worker(self, index: int, worker: Worker) -> None:
        """
        @brief
        Worker rules: identifier, load vs. availability, skill diversity.
        """
        cfg = self.cfg

        if is_missing(worker.WorkerID):
            new_id = generate_entity_id("workers", index)
            self._add_error(
                id=f"worker-{index}-id",
                severity="critical",
                entity="workers",
                row=index,
                field="WorkerID",
                message="Worker ID is required",
                suggestion=f"Generate ID: {new_id}",
                proposed=new_id,
                auto_fixable=True,
            )

        # (1) Load per phase too high for the available slots
        slots = len(worker.AvailableSlots)
        max_load = worker.MaxLoadPerPhase
        if slots > 0 and max_load > 0 and max_load / slots > cfg.overload_ratio:
            reduced = math.floor(slots * cfg.reduced_load_factor)
            self._add_warning(
                id=f"worker-{index}-overload-risk",
                severity="medium",
                entity="workers",
                row=index,
                field="MaxLoadPerPhase",
                message=(
                    f"High utilization ratio detected ({max_load} load over {slots} slot(s))"
                ),
                suggestion=f"Reduce max load to {reduced}",
                proposed=reduced,
                auto_fixable=True,
            )

        # (2) Narrow skill sets
        if len(unique_in_order(worker.Skills)) < cfg.min_distinct_skills:
            self._add_info(
                id=f"worker-{index}-skill-diversity",
                severity="low",
                entity="workers",
                row=index,
                field="Skills",
                message="Limited skill diversity",
                suggestion="Cross-train to increase versatility",
            )

    # ---------- Utilities ----------
    def _add_finding(
        self,
        *,
        kind: FindingKind,
        id: str,
        severity: Severity,
        entity: EntityName,
        row: int,
        field: str,
        message: str,
        suggestion: str | None = None,
        proposed: ProposedValue = None,
        auto_fixable: bool = False,
    ) -> None:
        finding = Finding(
            id=id,
            severity=severity,
            kind=kind,
            entity=entity,
            rowIndex=row,
            field=field,
            message=message,
            suggestion=suggestion,
            proposedValue=proposed,
            autoFixable=auto_fixable,
        )
        logger.debug("Finding %s [%s/%s]: %s", finding.id, kind, severity, message)
        self.findings.append(finding)

    def _add_error(self, **kwargs: Any) -> None:
        """Append a finding of kind "error" (blocks export)."""
        self._add_finding(kind="error", **kwargs)

    def _add_warning(self, **kwargs: Any) -> None:
        """Append a finding of kind "warning"."""
        self._add_finding(kind="warning", **kwargs)

    def _add_info(self, **kwargs: Any) -> None:
        self._add_finding(kind="info", **kwargs)


# ----------------------------
# THIN FACADE (static call)
# ----------------------------
def validate_entities(
    clients: Sequence[Client],
    workers: Sequence[Worker],
    tasks: Sequence[Task],
    cfg: ValidationRulesConfig | None = None,
    *,
    write_report: bool = False,
    out_dir: Path | None = None,
    filename: str = "findings.json",
) -> list[Finding]:
    """
    @brief
    High-level convenience wrapper for entity validation.

    @details
    Creates a Validator, executes every check and returns the findings.
    Optionally persists the findings report as JSON. Deterministic and
    side-effect free unless `write_report` is set.

    @params
        clients, workers, tasks : Sequence
            Collections to validate.
        cfg : ValidationRulesConfig | None
            Rule thresholds.
        write_report : bool
            If True, write the findings report to `out_dir / filename`.

    @returns
        Fresh list of Finding objects for these collections.
    """
    validator = Validator(clients, workers, tasks, cfg)
    findings = validator.run_all_checks()

    if write_report:
        validator.save_report(validator.build_report(), out_dir=out_dir, filename=filename)

    return findings
