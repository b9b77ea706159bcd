# src/allocprep/workspace.py
"""Caller-owned state for one data-preparation session."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

from allocprep.autofix.fixer import FixResult, auto_fix
from allocprep.insights.advisor import optimize_rules, predict_resource_needs
from allocprep.insights.generator import generate_insights
from allocprep.insights.search import SearchResult, search_entities
from allocprep.metrics.metrics import QualityBreakdown, quality_breakdown
from allocprep.rules.classifier import RuleClassifier, build_rule
from allocprep.rules.priorities import apply_preset, default_priorities, normalize_weights
from allocprep.schemas.models import (
    Client,
    Config,
    EntityName,
    Finding,
    Insight,
    Priority,
    ResourcePrediction,
    Rule,
    Task,
    Worker,
)
from allocprep.validator.validator import validate_entities

logger = logging.getLogger(__name__)

EventKind = Literal[
    "clients",
    "workers",
    "tasks",
    "findings",
    "autofix",
    "insights",
    "rules",
    "priorities",
]

_MODELS: dict[str, type[Client] | type[Worker] | type[Task]] = {
    "clients": Client,
    "workers": Worker,
    "tasks": Task,
}


@dataclass(frozen=True, slots=True)
class WorkspaceEvent:
    """Change notification delivered to subscribers."""

    kind: EventKind
    payload: dict[str, Any] = field(default_factory=dict)


Subscriber = Callable[[WorkspaceEvent], object]


class Workspace:
    """
    @brief
    Holds entity collections, findings, rules and priorities for one session.

    @details
    Every change to a collection re-runs validation before any event is
    published, so subscribers never observe findings computed for an older
    version of the data. auto_fix() follows the same order: repair, replace
    the collections, then validate again.
    Subscribers are called synchronously in subscription order; a failing
    subscriber is logged and the remaining ones are still called.
    """

    def __init__(self, cfg: Config | None = None) -> None:
        self.cfg = cfg or Config()
        self._clients: list[Client] = []
        self._workers: list[Worker] = []
        self._tasks: list[Task] = []
        self._findings: list[Finding] = []
        self._rules: list[Rule] = []
        self._priorities: list[Priority] = default_priorities()
        self._insights: list[Insight] = []
        self._rule_suggestions: list[str] = []

        self._subscribers: dict[int, Subscriber] = {}
        self._next_token = 1

    # ---------- Read access (copies) ----------
    @property
    def clients(self) -> list[Client]:
        return list(self._clients)

    @property
    def workers(self) -> list[Worker]:
        return list(self._workers)

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    @property
    def findings(self) -> list[Finding]:
        return list(self._findings)

    @property
    def rules(self) -> list[Rule]:
        return list(self._rules)

    @property
    def priorities(self) -> list[Priority]:
        return list(self._priorities)

    @property
    def insights(self) -> list[Insight]:
        return list(self._insights)

    @property
    def rule_suggestions(self) -> list[str]:
        return list(self._rule_suggestions)

    @property
    def quality(self) -> QualityBreakdown:
        return quality_breakdown(
            self._clients, self._workers, self._tasks, self._findings, self.cfg.quality
        )

    @property
    def quality_score(self) -> float:
        return self.quality.score

    @property
    def has_errors(self) -> bool:
        return any(f.kind == "error" for f in self._findings)

    # ---------- Subscriptions ----------
    def subscribe(self, callback: Subscriber) -> int:
        """Register a callback for every event; returns a token for unsubscribe()."""
        if not callable(callback):
            raise ValueError("callback must be callable")
        token = self._next_token
        self._next_token += 1
        self._subscribers[token] = callback
        return token

    def unsubscribe(self, token: int) -> bool:
        """Returns True when the token was registered."""
        return self._subscribers.pop(token, None) is not None

    def _publish(self, kind: EventKind, **payload: Any) -> None:
        event = WorkspaceEvent(kind=kind, payload=payload)
        for token, callback in tuple(self._subscribers.items()):
            try:
                callback(event)
            except Exception:
                logger.exception("Workspace subscriber %d failed on %s event", token, kind)

    # ---------- Collections ----------
    def set_clients(self, clients: Sequence[Client]) -> None:
        self._replace("clients", clients)

    def set_workers(self, workers: Sequence[Worker]) -> None:
        self._replace("workers", workers)

    def set_tasks(self, tasks: Sequence[Task]) -> None:
        self._replace("tasks", tasks)

    def _replace(self, entity: EntityName, rows: Sequence[Any]) -> None:
        setattr(self, f"_{entity}", list(rows))
        self.validate()
        self._publish(entity, count=len(rows))

    def update_row(self, entity: EntityName, index: int, **changes: Any) -> Client | Worker | Task:
        """
        @brief
        Replace one row with an edited copy and re-validate.

        @details
        Values go through model validation, so e.g. a numeric string for an
        int field is accepted. Unknown field names are rejected.

        @raises
            ValueError for an unknown entity or field; IndexError for a bad index.
        """
        if entity not in _MODELS:
            raise ValueError(f"Unknown entity: {entity}")
        model = _MODELS[entity]
        unknown = sorted(set(changes) - set(model.model_fields))
        if unknown:
            raise ValueError(f"Unknown field(s) for {entity}: {', '.join(unknown)}")

        rows: list[Any] = getattr(self, f"_{entity}")
        if not 0 <= index < len(rows):
            raise IndexError(f"{entity} row {index} out of range (0..{len(rows) - 1})")

        updated = model.model_validate({**rows[index].model_dump(), **changes})
        rows[index] = updated
        self.validate()
        self._publish(entity, index=index, fields=sorted(changes))
        return updated

    # ---------- Validation / repair ----------
    def validate(self) -> list[Finding]:
        """Recompute findings for the current collections (replaces the previous snapshot)."""
        self._findings = validate_entities(
            self._clients, self._workers, self._tasks, self.cfg.validation
        )
        self._publish("findings", count=len(self._findings), score=self.quality_score)
        return self.findings

    def auto_fix(self) -> FixResult:
        """Apply every auto-fixable finding, then re-validate."""
        result = auto_fix(
            self._findings,
            self._clients,
            self._workers,
            self._tasks,
            self.cfg.autofix,
            self.cfg.validation,
        )
        self._clients, self._workers, self._tasks = result
        self.validate()
        self._publish("autofix", applied=len(result.applied), skipped=len(result.skipped))
        return result

    # ---------- Insights ----------
    def refresh_insights(self) -> list[Insight]:
        self._insights = generate_insights(
            self._clients, self._workers, self._tasks, self.cfg.insights
        )
        self._publish("insights", count=len(self._insights))
        return self.insights

    def optimize_rules(self) -> list[str]:
        self._rule_suggestions = optimize_rules(self._rules, self._workers)
        return self.rule_suggestions

    def predict_resource_needs(self) -> ResourcePrediction:
        return predict_resource_needs(self._workers, self._tasks)

    def search(self, query: str) -> SearchResult:
        return search_entities(
            query,
            self._clients,
            self._workers,
            self._tasks,
            overload_ratio=self.cfg.validation.overload_ratio,
        )

    # ---------- Rules ----------
    def add_rule(self, rule: Rule) -> Rule:
        if any(r.id == rule.id for r in self._rules):
            raise ValueError(f"Rule already exists: {rule.id}")
        self._rules.append(rule)
        self._publish("rules", action="add", id=rule.id)
        return rule

    def add_rule_from_text(self, text: str, classifier: RuleClassifier | None = None) -> Rule:
        """Classify a free-text request into a custom rule and add it."""
        return self.add_rule(build_rule(text, classifier))

    def update_rule(self, rule_id: str, **changes: Any) -> Rule:
        """Re-validated copy of the rule with `changes`; raises KeyError if absent."""
        index = self._rule_index(rule_id)
        current = self._rules[index]
        updated = Rule.model_validate({**current.model_dump(), **changes})
        self._rules[index] = updated
        self._publish("rules", action="update", id=rule_id)
        return updated

    def remove_rule(self, rule_id: str) -> bool:
        for index, rule in enumerate(self._rules):
            if rule.id == rule_id:
                del self._rules[index]
                self._publish("rules", action="remove", id=rule_id)
                return True
        return False

    def _rule_index(self, rule_id: str) -> int:
        for index, rule in enumerate(self._rules):
            if rule.id == rule_id:
                return index
        raise KeyError(rule_id)

    # ---------- Priorities ----------
    def update_priority(self, priority_id: str, weight: float) -> Priority:
        for index, priority in enumerate(self._priorities):
            if priority.id == priority_id:
                updated = Priority.model_validate({**priority.model_dump(), "weight": weight})
                self._priorities[index] = updated
                self._publish("priorities", action="update", id=priority_id)
                return updated
        raise KeyError(priority_id)

    def apply_preset(self, preset_id: str) -> list[Priority]:
        self._priorities = apply_preset(self._priorities, preset_id)
        self._publish("priorities", action="preset", id=preset_id)
        return self.priorities

    def normalize_priorities(self) -> list[Priority]:
        self._priorities = normalize_weights(self._priorities)
        self._publish("priorities", action="normalize")
        return self.priorities


__all__ = ["Workspace", "WorkspaceEvent"]
