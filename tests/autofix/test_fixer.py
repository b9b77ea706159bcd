# tests/autofix/test_fixer.py
from __future__ import annotations

import json

import pytest

from allocprep.autofix.fixer import AutoFixer, auto_fix
from allocprep.schemas.models import AutoFixConfig, Client, Finding, Task, Worker
from allocprep.validator.validator import validate_entities


def mk_finding(**overrides) -> Finding:
    """
    @brief
    Build a Finding by hand for dispatch-level tests.

    @details
    Defaults describe an auto-fixable priority error on client row 0.
    """
    data = {
        "id": "client-0-priority",
        "severity": "high",
        "kind": "error",
        "entity": "clients",
        "rowIndex": 0,
        "field": "PriorityLevel",
        "message": "Priority level must be between 1 and 5 (got 9)",
        "suggestion": None,
        "proposedValue": None,
        "autoFixable": True,
    }
    data.update(overrides)
    return Finding(**data)


def fix_and_revalidate(clients, workers, tasks):
    findings = validate_entities(clients, workers, tasks)
    result = auto_fix(findings, clients, workers, tasks)
    return result, validate_entities(*result)


# -----------------------------
# SCENARIOS
# -----------------------------
def test_missing_client_id_is_generated():
    # --- Arrange ---
    clients = [Client(ClientID="", PriorityLevel=3, RequestedTaskIDs=[])]

    # --- Act ---
    result, after = fix_and_revalidate(clients, [], [])

    # --- Assert ---
    assert result.clients[0].ClientID == "C001"
    assert after == []


def test_priority_is_brought_into_range():
    # --- Arrange ---
    clients = [Client(ClientID="C001", PriorityLevel=9)]

    # --- Act ---
    result, after = fix_and_revalidate(clients, [], [])

    # --- Assert ---
    assert 1 <= result.clients[0].PriorityLevel <= 5
    assert result.clients[0].PriorityLevel == 5
    assert after == []


def test_dangling_task_reference_survives_auto_fix():
    """
    @brief
    Referential errors are never auto-resolved.
    """
    # --- Arrange ---
    clients = [Client(ClientID="C001", PriorityLevel=2, RequestedTaskIDs=["T404"])]
    before = validate_entities(clients, [], [])

    # --- Act ---
    result, after = fix_and_revalidate(clients, [], [])

    # --- Assert ---
    assert result.clients[0].RequestedTaskIDs == ["T404"]
    assert result.applied == []
    assert [f.id for f in after] == [f.id for f in before] == ["client-0-task-T404"]
    assert after[0].autoFixable is False


def test_fix_then_validate_converges_and_never_adds_findings():
    """
    @brief
    After one fix pass no auto-fixable finding remains and nothing new appears.
    """
    # --- Arrange ---
    clients = [
        Client(ClientID="", PriorityLevel=0, AttributesJSON="{bad", RequestedTaskIDs=["T001"]),
        Client(ClientID="C002", PriorityLevel=-4, AttributesJSON='{"b": 1, "a": 2}'),
    ]
    workers = [
        Worker(WorkerID="", Skills=["python"], AvailableSlots=[1], MaxLoadPerPhase=3),
        Worker(
            WorkerID="W002", Skills=["python", "sql"], AvailableSlots=[1, 2, 3], MaxLoadPerPhase=3
        ),
    ]
    tasks = [Task(TaskID="", RequiredSkills=["python", "go"], Duration=8)]
    before = validate_entities(clients, workers, tasks)

    # --- Act ---
    result, after = fix_and_revalidate(clients, workers, tasks)

    # --- Assert ---
    assert not any(f.autoFixable for f in after)
    assert {f.id for f in after} <= {f.id for f in before}
    assert result.clients[0].ClientID == "C001"
    assert result.clients[0].PriorityLevel == 3
    assert json.loads(result.clients[0].AttributesJSON) == {"status": "active"}
    assert result.clients[1].PriorityLevel == 1
    assert result.workers[0].WorkerID == "W001"
    assert result.workers[0].MaxLoadPerPhase == 0
    assert result.workers[1].MaxLoadPerPhase == 2
    assert result.tasks[0].TaskID == "T001"


def test_second_pass_is_a_no_op():
    # --- Arrange ---
    clients = [Client(ClientID="", PriorityLevel=11)]
    result, after = fix_and_revalidate(clients, [], [])

    # --- Act ---
    again = auto_fix(after, *result)

    # --- Assert ---
    assert again.applied == []
    assert again.clients == result.clients


def test_inputs_are_not_mutated():
    # --- Arrange ---
    clients = [Client(ClientID="", PriorityLevel=9)]
    original = clients[0]
    findings = validate_entities(clients, [], [])

    # --- Act ---
    result = auto_fix(findings, clients, [], [])

    # --- Assert ---
    assert clients[0] is original
    assert original.ClientID == "" and original.PriorityLevel == 9
    assert result.clients is not clients


def test_result_unpacks_as_three_collections():
    # --- Arrange ---
    workers = [
        Worker(WorkerID="W001", Skills=["a", "b"], AvailableSlots=[1, 2, 3], MaxLoadPerPhase=3)
    ]

    # --- Act ---
    clients, fixed_workers, tasks = auto_fix(validate_entities([], workers, []), [], workers, [])

    # --- Assert ---
    assert (clients, tasks) == ([], [])
    assert fixed_workers[0].MaxLoadPerPhase == 2


# -----------------------------
# DISPATCH DETAILS
# -----------------------------
@pytest.mark.parametrize(
    "proposed, suggestion, expected",
    [
        (4, None, 4),
        (None, "Set priority level to 2", 2),
        (None, None, 3),
        (12, None, 5),
        ("oops", "no digits here", 3),
    ],
)
def test_priority_fix_prefers_proposed_value_then_suggestion(proposed, suggestion, expected):
    # --- Arrange ---
    clients = [Client(ClientID="C001", PriorityLevel=9)]
    finding = mk_finding(proposedValue=proposed, suggestion=suggestion)

    # --- Act ---
    result = AutoFixer().apply([finding], clients, [], [])

    # --- Assert ---
    assert result.clients[0].PriorityLevel == expected


def test_max_load_falls_back_to_default_without_value():
    # --- Arrange ---
    workers = [Worker(WorkerID="W001", AvailableSlots=[1], MaxLoadPerPhase=5)]
    finding = mk_finding(
        id="worker-0-overload-risk",
        entity="workers",
        field="MaxLoadPerPhase",
        severity="medium",
        kind="warning",
    )

    # --- Act ---
    result = AutoFixer().apply([finding], [], workers, [])

    # --- Assert ---
    assert result.workers[0].MaxLoadPerPhase == 2


def test_valid_attributes_are_reserialized_with_configured_indent():
    # --- Arrange ---
    clients = [Client(ClientID="C001", PriorityLevel=2, AttributesJSON='{"b":1,"a":[1,2]}')]
    finding = mk_finding(id="client-0-json", field="AttributesJSON", kind="warning")

    # --- Act ---
    result = AutoFixer(AutoFixConfig(json_indent=0)).apply([finding], clients, [], [])

    # --- Assert ---
    assert result.clients[0].AttributesJSON == '{\n"a": [\n1,\n2\n],\n"b": 1\n}'


@pytest.mark.parametrize("raw", ["[" * 100000, "NaN", '{"a": -Infinity}'])
def test_unparseable_attributes_fall_back_to_default(raw):
    """
    @brief
    Deep nesting and non-standard constants are replaced, never re-serialized.
    """
    # --- Arrange ---
    clients = [Client(ClientID="C001", PriorityLevel=2, AttributesJSON=raw)]
    finding = mk_finding(id="client-0-json", field="AttributesJSON", kind="warning")

    # --- Act ---
    result = AutoFixer(AutoFixConfig()).apply([finding], clients, [], [])

    # --- Assert ---
    assert json.loads(result.clients[0].AttributesJSON) == {"status": "active"}
    assert validate_entities(result.clients, [], []) == []


def test_stale_unfixable_and_unknown_findings_are_skipped():
    """
    @brief
    One bad finding never blocks the others.
    """
    # --- Arrange ---
    clients = [Client(ClientID="", PriorityLevel=9)]
    stale = mk_finding(id="client-5-priority", rowIndex=5)
    unknown = mk_finding(id="client-0-name", field="ClientName")
    not_fixable = mk_finding(id="client-0-x", autoFixable=False)
    good = mk_finding(id="client-0-id", field="ClientID", severity="critical")

    # --- Act ---
    result = AutoFixer().apply([stale, unknown, not_fixable, good], clients, [], [])

    # --- Assert ---
    assert [f.id for f in result.applied] == ["client-0-id"]
    assert [f.id for f in result.skipped] == ["client-5-priority", "client-0-name"]
    assert result.clients[0].ClientID == "C001"
    assert result.clients[0].PriorityLevel == 9


def test_id_fix_leaves_already_filled_id_alone():
    # --- Arrange ---
    tasks = [Task(TaskID="T777")]
    finding = mk_finding(id="task-0-id", entity="tasks", field="TaskID", severity="critical")

    # --- Act ---
    result = AutoFixer().apply([finding], [], [], tasks)

    # --- Assert ---
    assert result.tasks[0].TaskID == "T777"
    assert result.skipped == [finding]
