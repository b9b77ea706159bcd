# tests/workspace/test_workspace.py
from __future__ import annotations

import logging

import pytest

from allocprep.schemas.models import Client, Config, CoRunParams, Rule, Worker
from allocprep.workspace import Workspace, WorkspaceEvent


@pytest.fixture
def loaded(clean_dataset) -> Workspace:
    """Workspace holding the clean dataset (no findings)."""
    clients, workers, tasks = clean_dataset
    ws = Workspace(Config())
    ws.set_clients(clients)
    ws.set_workers(workers)
    ws.set_tasks(tasks)
    return ws


def _recorder(ws: Workspace) -> list[WorkspaceEvent]:
    events: list[WorkspaceEvent] = []
    ws.subscribe(events.append)
    return events


# -----------------------------
# Subscriptions
# -----------------------------
def test_set_collection_validates_before_notifying():
    """
    @brief
    Subscribers see the fresh findings event before the collection event.
    """
    # --- Arrange ---
    ws = Workspace()
    events = _recorder(ws)

    # --- Act ---
    ws.set_clients([Client(ClientID="", PriorityLevel=3)])

    # --- Assert ---
    assert [e.kind for e in events] == ["findings", "clients"]
    assert events[0].payload["count"] == 1
    assert events[1].payload == {"count": 1}
    assert [f.id for f in ws.findings] == ["client-0-id"]
    assert ws.has_errors is True


def test_unsubscribe_stops_delivery():
    # --- Arrange ---
    ws = Workspace()
    events: list[WorkspaceEvent] = []
    token = ws.subscribe(events.append)

    # --- Act ---
    removed = ws.unsubscribe(token)
    ws.set_tasks([])

    # --- Assert ---
    assert removed is True
    assert ws.unsubscribe(token) is False
    assert events == []


def test_subscribe_rejects_non_callable():
    with pytest.raises(ValueError):
        Workspace().subscribe("not callable")  # type: ignore[arg-type]


def test_failing_subscriber_is_logged_and_others_still_called(caplog):
    # --- Arrange ---
    ws = Workspace()

    def _boom(event: WorkspaceEvent) -> None:
        raise RuntimeError("subscriber bug")

    ws.subscribe(_boom)
    events = _recorder(ws)

    # --- Act ---
    with caplog.at_level(logging.ERROR):
        ws.set_workers([])

    # --- Assert ---
    assert [e.kind for e in events] == ["findings", "workers"]
    assert "Workspace subscriber 1 failed" in caplog.text


# -----------------------------
# Editing / repair
# -----------------------------
def test_update_row_revalidates(loaded: Workspace):
    # --- Arrange ---
    events = _recorder(loaded)

    # --- Act ---
    updated = loaded.update_row("clients", 0, PriorityLevel="9")

    # --- Assert ---
    assert updated.PriorityLevel == 9
    assert loaded.clients[0].PriorityLevel == 9
    assert [f.id for f in loaded.findings] == ["client-0-priority"]
    assert events[-1].payload == {"index": 0, "fields": ["PriorityLevel"]}


@pytest.mark.parametrize(
    "entity, index, changes, exc",
    [
        ("projects", 0, {"PriorityLevel": 1}, ValueError),
        ("clients", 0, {"Colour": "red"}, ValueError),
        ("workers", 5, {"MaxLoadPerPhase": 1}, IndexError),
    ],
)
def test_update_row_rejects_bad_targets(loaded: Workspace, entity, index, changes, exc):
    with pytest.raises(exc):
        loaded.update_row(entity, index, **changes)


def test_auto_fix_repairs_then_revalidates():
    """
    @brief
    After auto_fix() the findings describe the repaired collections.
    """
    # --- Arrange ---
    ws = Workspace()
    ws.set_clients([Client(ClientID="", PriorityLevel=9, AttributesJSON="{bad")])
    ws.set_workers(
        [Worker(WorkerID="W001", Skills=["a", "b"], AvailableSlots=[1], MaxLoadPerPhase=3)]
    )
    events = _recorder(ws)
    assert len(ws.findings) == 4

    # --- Act ---
    result = ws.auto_fix()

    # --- Assert ---
    assert len(result.applied) == 4
    client = ws.clients[0]
    assert (client.ClientID, client.PriorityLevel) == ("C001", 5)
    assert client.AttributesJSON == '{"status": "active"}'
    assert ws.workers[0].MaxLoadPerPhase == 0
    assert ws.findings == []
    assert [e.kind for e in events] == ["findings", "autofix"]
    assert events[-1].payload == {"applied": 4, "skipped": 0}


# -----------------------------
# Insights / search
# -----------------------------
def test_clean_workspace_has_no_insights_and_low_risk(loaded: Workspace):
    # --- Act ---
    insights = loaded.refresh_insights()
    prediction = loaded.predict_resource_needs()

    # --- Assert ---
    assert insights == []
    assert prediction.recommendedWorkers == 1
    assert prediction.timelineRisk == "low"
    assert prediction.skillGaps == []


def test_search_by_skill(loaded: Workspace):
    # --- Act ---
    result = loaded.search("skill python")

    # --- Assert ---
    assert result.intent == "skill"
    assert [w.WorkerID for w in result.workers] == ["W001", "W002"]
    assert [t.TaskID for t in result.tasks] == ["T001"]


# -----------------------------
# Rules
# -----------------------------
def test_rule_lifecycle(loaded: Workspace):
    # --- Arrange ---
    rule = Rule(id="r1", type="coRun", name="Pair", parameters=CoRunParams(taskIds=["T001"]))

    # --- Act ---
    loaded.add_rule(rule)
    with pytest.raises(ValueError):
        loaded.add_rule(rule)
    updated = loaded.update_rule("r1", enabled=False)

    # --- Assert ---
    assert updated.enabled is False
    assert updated.parameters == CoRunParams(taskIds=["T001"])
    assert loaded.remove_rule("r1") is True
    assert loaded.remove_rule("r1") is False
    with pytest.raises(KeyError):
        loaded.update_rule("r1", enabled=True)


def test_rule_from_text_and_optimizer(loaded: Workspace):
    """
    @brief
    An unmatched free-text rule gets the fallback confidence and is flagged for review.
    """
    # --- Act ---
    matched = loaded.add_rule_from_text("Run T001 and T002 together")
    unmatched = loaded.add_rule_from_text("hello world")
    suggestions = loaded.optimize_rules()

    # --- Assert ---
    assert matched.type == "custom"
    assert matched.confidence == 0.9
    assert unmatched.confidence == 0.5
    assert suggestions == ["Review 1 low-confidence generated rule(s)"]
    assert loaded.rule_suggestions == suggestions


# -----------------------------
# Priorities
# -----------------------------
def test_priority_operations(loaded: Workspace):
    # --- Act ---
    loaded.update_priority("fairness", 0.5)
    with pytest.raises(KeyError):
        loaded.update_priority("nope", 0.1)
    normalized = loaded.normalize_priorities()
    preset = loaded.apply_preset("fair-distribution")

    # --- Assert ---
    assert sum(p.weight for p in normalized) == pytest.approx(1.0)
    assert {p.id: p.weight for p in preset}["fairness"] == 0.4
    with pytest.raises(KeyError):
        loaded.apply_preset("unknown")
