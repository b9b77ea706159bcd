# tests/rules/test_classifier.py
from __future__ import annotations

import pytest

from allocprep.rules.classifier import (
    UNMATCHED_CONFIDENCE,
    KeywordRuleClassifier,
    build_rule,
    suggested_actions,
)
from allocprep.schemas.models import CustomParams, RuleCondition


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Run T1 and T2 together", [("coRun", 0.9)]),
        ("Limit GroupA to 2 slots", [("loadLimit", 0.8)]),
        ("T3 may run only in phase 2-4", [("phaseWindow", 0.85)]),
        ("Give GroupB priority", [("precedence", 0.75)]),
        ("Phase 3 is busy", []),
        ("hello world", []),
    ],
)
def test_keyword_classifier_detects_rule_types(text, expected):
    # --- Act ---
    conditions = KeywordRuleClassifier().classify(text)

    # --- Assert ---
    assert [(c.type, c.confidence) for c in conditions] == expected


def test_build_rule_averages_condition_confidence():
    """
    @brief
    Two detected conditions -> confidence is their mean; payload records the query.
    """
    # --- Arrange ---
    text = "Tasks T1 and T2 must run together, limit load to 3"

    # --- Act ---
    rule = build_rule(text)

    # --- Assert ---
    assert rule.type == "custom"
    assert isinstance(rule.parameters, CustomParams)
    assert rule.confidence == pytest.approx(0.85)
    assert rule.id.startswith("ai-rule-") and len(rule.id) == len("ai-rule-") + 8
    payload = rule.parameters.payload
    assert payload["originalQuery"] == text
    assert payload["generated"] is True
    assert [c["type"] for c in payload["conditions"]] == ["coRun", "loadLimit"]
    assert payload["suggestedActions"] == [
        "Group specified tasks for simultaneous execution",
        "Apply workload restrictions to specified workers/groups",
    ]


def test_build_rule_is_deterministic_and_defaults_confidence():
    # --- Act ---
    a = build_rule("  something unrelated ")
    b = build_rule("something unrelated")

    # --- Assert ---
    assert a.id == b.id
    assert a.confidence == UNMATCHED_CONFIDENCE
    assert a.name == "Generated Rule: something unrelated"


def test_build_rule_accepts_custom_classifier():
    """
    @brief
    Any object with classify(text) can replace the keyword classifier.
    """

    # --- Arrange ---
    class Fixed:
        def classify(self, text: str) -> list[RuleCondition]:
            return [RuleCondition(type="precedence", confidence=0.2)]

    # --- Act ---
    rule = build_rule("anything", classifier=Fixed())

    # --- Assert ---
    assert rule.confidence == pytest.approx(0.2)


def test_long_text_is_truncated_in_name():
    text = "x" * 40
    assert build_rule(text).name == f"Generated Rule: {'x' * 30}..."


def test_suggested_actions_empty_when_no_keyword():
    assert suggested_actions("nothing to see") == []
