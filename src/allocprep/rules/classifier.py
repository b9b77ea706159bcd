# src/allocprep/rules/classifier.py
"""
Keyword-based rule classification.

`RuleClassifier` is the seam: anything with a `classify(text)` method can
replace `KeywordRuleClassifier` without changing how rules are built.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Protocol

from allocprep.schemas.models import CustomParams, Rule, RuleCondition

logger = logging.getLogger(__name__)

# (keywords, required-any companions, rule type, confidence)
_KEYWORD_TABLE: tuple[tuple[tuple[str, ...], tuple[str, ...], str, float], ...] = (
    (("together", "co-run", "same time"), (), "coRun", 0.9),
    (("not more than", "limit", "maximum"), (), "loadLimit", 0.8),
    (("phase",), ("window", "only", "during"), "phaseWindow", 0.85),
    (("priority", "preference", "first"), (), "precedence", 0.75),
)

_ACTIONS: tuple[tuple[str, str], ...] = (
    ("together", "Group specified tasks for simultaneous execution"),
    ("limit", "Apply workload restrictions to specified workers/groups"),
    ("priority", "Adjust scheduling priority for specified entities"),
)

UNMATCHED_CONFIDENCE = 0.5


class RuleClassifier(Protocol):
    def classify(self, text: str) -> list[RuleCondition]: ...


class KeywordRuleClassifier:
    """Substring matcher returning one confidence-scored condition per detected rule type."""

    def classify(self, text: str) -> list[RuleCondition]:
        lower = text.lower()
        conditions: list[RuleCondition] = []
        for keywords, companions, rule_type, confidence in _KEYWORD_TABLE:
            if not any(k in lower for k in keywords):
                continue
            if companions and not any(c in lower for c in companions):
                continue
            conditions.append(RuleCondition(type=rule_type, confidence=confidence))
        return conditions


def suggested_actions(text: str) -> list[str]:
    lower = text.lower()
    return [action for keyword, action in _ACTIONS if keyword in lower]


def build_rule(text: str, classifier: RuleClassifier | None = None) -> Rule:
    """
    @brief
    Turn a free-text rule description into a `custom` Rule.

    @details
    The rule id is derived from the text so the same description always
    yields the same id. Confidence is the mean of the detected condition
    confidences, or UNMATCHED_CONFIDENCE when nothing was detected.
    """
    text = text.strip()
    classifier = classifier or KeywordRuleClassifier()
    conditions = classifier.classify(text)

    if conditions:
        confidence = sum(c.confidence for c in conditions) / len(conditions)
    else:
        confidence = UNMATCHED_CONFIDENCE

    digest = hashlib.sha1(text.encode("utf-8")).hexdigest()[:8]
    name = text if len(text) <= 30 else f"{text[:30]}..."
    logger.debug("Built rule from text (%d condition(s)): %s", len(conditions), name)

    return Rule(
        id=f"ai-rule-{digest}",
        type="custom",
        name=f"Generated Rule: {name}",
        description=f'Generated from: "{text}"',
        parameters=CustomParams(
            payload={
                "originalQuery": text,
                "generated": True,
                "conditions": [c.model_dump() for c in conditions],
                "suggestedActions": suggested_actions(text),
            }
        ),
        enabled=True,
        confidence=round(confidence, 4),
    )
