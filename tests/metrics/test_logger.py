from __future__ import annotations

import json
import os

import pytest

from allocprep.errors import DataError
from allocprep.metrics.logger import atomic_write_text, write_metrics, write_validation_log
from allocprep.schemas.models import Finding

# --------------------------
# write_metrics
# --------------------------


def test_write_metrics_writes_json_and_overwrites(tmp_path):
    """
    @brief
    Verifies that write_metrics() creates and overwrites metrics.json correctly.

    @details
    The test writes two consecutive JSON files and ensures that
    the second call replaces the previous one without residual content.
    """
    # --- Arrange ---
    out_dir = tmp_path / "out"

    # --- Act ---
    p1 = write_metrics({"quality_score": 80.0, "b": "x"}, out_dir)
    p2 = write_metrics({"quality_score": 55.5}, out_dir)

    # --- Assert ---
    assert p1 == p2 == out_dir / "metrics.json"
    assert json.loads(p2.read_text(encoding="utf-8")) == {"quality_score": 55.5}
    assert [p.name for p in out_dir.iterdir()] == ["metrics.json"]


def test_write_metrics_rejects_non_dict_and_unserializable(tmp_path):
    # --- Act / Assert ---
    with pytest.raises(DataError):
        write_metrics([1, 2], tmp_path)  # type: ignore[arg-type]
    with pytest.raises(DataError):
        write_metrics({"bad": object()}, tmp_path)
    assert not (tmp_path / "metrics.json").exists()


def test_atomic_write_text_cleans_up_temp_on_failure(tmp_path, monkeypatch):
    """
    @brief
    A failing rename leaves neither the target nor the temporary file behind.
    """
    # --- Arrange ---
    target = tmp_path / "x.json"

    def _boom(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", _boom)

    # --- Act ---
    with pytest.raises(DataError) as exc:
        atomic_write_text(target, "{}")

    # --- Assert ---
    assert "disk full" in str(exc.value)
    assert list(tmp_path.iterdir()) == []


# --------------------------
# write_validation_log
# --------------------------
def test_write_validation_log_lists_findings_in_order(tmp_path):
    # --- Arrange ---
    findings = [
        Finding(
            id="client-0-id",
            severity="critical",
            kind="error",
            entity="clients",
            rowIndex=0,
            field="ClientID",
            message="Missing ClientID",
            suggestion="Generate ID: C001",
        ),
        Finding(
            id="worker-1-skill-diversity",
            severity="low",
            kind="info",
            entity="workers",
            rowIndex=1,
            field="Skills",
            message="Limited skill diversity",
        ),
    ]

    # --- Act ---
    path = write_validation_log(findings, 61.5, tmp_path, fixed=2)

    # --- Assert ---
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0].endswith("INFO quality score 61.50/100")
    assert lines[1].endswith("findings: 1 error(s), 0 warning(s), 1 info(s)")
    assert lines[2].endswith("auto-fix applied 2 repair(s) before this run")
    assert lines[3].endswith("ERROR clients[0].ClientID Missing ClientID -> Generate ID: C001")
    assert lines[4].endswith("INFO workers[1].Skills Limited skill diversity")
