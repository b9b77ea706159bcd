# tests/metrics/test_metric.py
from __future__ import annotations

import json

import pytest

from allocprep.errors import DataError
from allocprep.metrics import metrics as metrics_mod
from allocprep.metrics.metrics import (
    collect_quality_metrics,
    compute_quality_score,
    findings_frame,
    quality_breakdown,
)
from allocprep.metrics.stats import (
    capacity_stats,
    missing_skills,
    skill_coverage,
    skill_holders,
    unique_in_order,
)
from allocprep.schemas.models import Client, QualityConfig, Task, Worker
from allocprep.validator.validator import validate_entities


# --------------------------
# stats helpers
# --------------------------
def test_unique_in_order_drops_blanks_and_duplicates():
    assert unique_in_order(["b", "", "a", "b", "c", "a"]) == ["b", "a", "c"]


def test_skill_holders_counts_each_worker_once():
    # --- Arrange ---
    workers = [Worker(Skills=["sql", "sql", "python"]), Worker(Skills=["sql"])]

    # --- Act / Assert ---
    assert skill_holders(workers) == {"sql": 2, "python": 1}


def test_skill_coverage_and_missing_skills():
    # --- Arrange ---
    workers = [Worker(Skills=["python"])]
    tasks = [Task(RequiredSkills=["python", "rust"]), Task(RequiredSkills=["rust", "go"])]

    # --- Act / Assert ---
    assert missing_skills(workers, tasks) == ["rust", "go"]
    assert skill_coverage(workers, tasks) == pytest.approx(100 / 3)
    assert skill_coverage(workers, []) == 100.0


def test_capacity_stats_utilization_without_capacity_is_zero():
    # --- Arrange ---
    workers = [Worker(AvailableSlots=[1, 2, 3], MaxLoadPerPhase=2), Worker()]
    tasks = [Task(Duration=4), Task(Duration=2)]

    # --- Act ---
    stats = capacity_stats(workers, tasks)
    empty = capacity_stats([], tasks)

    # --- Assert ---
    assert (stats.capacity, stats.demand, stats.worker_loads) == (6, 6, (6, 0))
    assert stats.utilization == 1.0
    assert stats.mean_load == 3.0
    assert empty.utilization == 0.0


# --------------------------
# quality score
# --------------------------
def test_score_of_empty_workspace_is_zero():
    assert compute_quality_score([], [], [], []) == 0.0


def test_score_for_single_overloaded_worker_uses_two_stage_average():
    """
    @brief
    One overloaded worker with two skills and no tasks.

    @details
    One warning -> base 97; one record of 50 -> completeness 2; no required
    skills -> consistency 100. Score = ((97 + 2) / 2 + 100) / 2 = 74.75.
    """
    # --- Arrange ---
    workers = [
        Worker(WorkerID="W001", AvailableSlots=[1, 2], MaxLoadPerPhase=2, Skills=["A", "B"])
    ]
    findings = validate_entities([], workers, [])

    # --- Act ---
    breakdown = quality_breakdown([], workers, [], findings)

    # --- Assert ---
    assert [f.kind for f in findings] == ["warning"]
    assert breakdown.base == pytest.approx(97.0)
    assert breakdown.completeness == pytest.approx(2.0)
    assert breakdown.consistency == pytest.approx(100.0)
    assert breakdown.score == pytest.approx(74.75)


def test_score_is_clamped_to_bounds():
    """
    @brief
    Many errors drive the raw score below zero; the result is clamped at 0.
    """
    # --- Arrange ---
    clients = [Client(ClientID="", PriorityLevel=9) for _ in range(40)]
    tasks = [Task(TaskID="T001", RequiredSkills=["x"])]
    findings = validate_entities(clients, [], tasks)

    # --- Act ---
    score = compute_quality_score(clients, [], tasks, findings)

    # --- Assert ---
    assert score == 0.0


def test_full_clean_dataset_scores_100():
    # --- Arrange ---
    workers = [
        Worker(
            WorkerID=f"W{i:03d}", Skills=["a", "b"], AvailableSlots=[1, 2, 3, 4], MaxLoadPerPhase=1
        )
        for i in range(50)
    ]

    # --- Act ---
    score = compute_quality_score([], workers, [], validate_entities([], workers, []))

    # --- Assert ---
    assert score == pytest.approx(100.0)


def test_quality_config_changes_penalties():
    # --- Arrange ---
    clients = [Client(ClientID="", PriorityLevel=3)]
    findings = validate_entities(clients, [], [])
    cfg = QualityConfig(error_penalty=0.0, reference_size=1)

    # --- Act ---
    breakdown = quality_breakdown(clients, [], [], findings, cfg)

    # --- Assert ---
    assert breakdown.base == 100.0
    assert breakdown.completeness == 100.0
    assert breakdown.score == 100.0


# --------------------------
# collect_quality_metrics
# --------------------------
def test_collect_quality_metrics_shape_and_counts():
    # --- Arrange ---
    clients = [Client(ClientID="", PriorityLevel=3, RequestedTaskIDs=["T404"])]
    workers = [Worker(WorkerID="W001", Skills=["sql"], AvailableSlots=[1, 2], MaxLoadPerPhase=1)]
    tasks = [Task(TaskID="T001", RequiredSkills=["rust"], Duration=3)]
    findings = validate_entities(clients, workers, tasks)

    # --- Act ---
    m = collect_quality_metrics(clients, workers, tasks, findings)

    # --- Assert ---
    assert set(m) == {"timestamp", "quality_score", "components", "records", "findings", "capacity"}
    assert m["timestamp"].endswith("Z")
    assert m["records"] == {"clients": 1, "workers": 1, "tasks": 1}
    assert m["findings"]["total"] == 4
    assert m["findings"]["by_kind"] == {"error": 2, "warning": 1, "info": 1}
    assert m["findings"]["by_entity"] == {"clients": 2, "workers": 1, "tasks": 1}
    assert m["findings"]["auto_fixable"] == 1
    assert m["capacity"] == {
        "total_capacity": 2,
        "total_demand": 3,
        "utilization": 1.5,
        "missing_skills": ["rust"],
    }
    json.dumps(m)


def test_collect_quality_metrics_rejects_nan(monkeypatch):
    # --- Arrange ---
    monkeypatch.setattr(metrics_mod, "_f", lambda x: float("nan"))

    # --- Act / Assert ---
    with pytest.raises(DataError):
        collect_quality_metrics([Client()], [], [], [])


def test_findings_frame_has_stable_columns_when_empty():
    df = findings_frame([])
    assert df.empty
    assert "autoFixable" in df.columns and "rowIndex" in df.columns
