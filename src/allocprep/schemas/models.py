# src/allocprep/schemas/models.py
"""
@brief
Pydantic data models for the allocprep project.

@details
Defines the canonical model families:
    - Client, Worker, Task: one uploaded row per entity (canonical column names)
    - Finding: one validation issue tied to an entity row and field
    - Insight / ResourcePrediction: derived advisory observations
    - Rule / Priority: user-defined allocation rules and criteria weights
    - Config: runtime configuration (from config.yaml) with nested sections

Entity models are deliberately permissive: out-of-range or missing values must
survive construction so that the Validator can report them as Findings.
Configuration models are strict and reject unknown keys.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, model_validator

EntityName = Literal["clients", "workers", "tasks"]
Severity = Literal["critical", "high", "medium", "low"]
FindingKind = Literal["error", "warning", "info"]
Impact = Literal["high", "medium", "low"]
RuleType = Literal[
    "coRun",
    "slotRestriction",
    "loadLimit",
    "phaseWindow",
    "patternMatch",
    "precedence",
    "custom",
]

ENTITY_NAMES: tuple[EntityName, ...] = ("clients", "workers", "tasks")


class _StrictBaseModel(BaseModel):
    """
    @brief
    Base model enforcing strict defaults for configuration contracts.

    @details
    Forbids unknown fields and preserves exact naming rules.
    """

    model_config = {
        "extra": "forbid",  # Reject unknown fields
        "populate_by_name": True,
        "use_enum_values": True,
    }


class _EntityModel(BaseModel):
    """
    @brief
    Base model for uploaded entity rows.

    @details
    Unknown columns are dropped silently; no range validators are attached
    so that malformed values reach the Validator instead of failing here.
    """

    model_config = {
        "extra": "ignore",
        "populate_by_name": True,
    }


# ------------------------------------------------------------
# Entities
# ------------------------------------------------------------
class Client(_EntityModel):
    """
    @brief
    One client row (clients.csv / clients.xlsx).

    @params
        ClientID : str
            Unique identifier; empty string means missing.
        PriorityLevel : int
            Expected range 1..5; 0 means missing.
        RequestedTaskIDs : list[str]
            Ordered references to Task.TaskID.
        AttributesJSON : str
            Free-form JSON payload kept as raw text.
    """

    ClientID: str = ""
    ClientName: str = ""
    PriorityLevel: int = 0
    RequestedTaskIDs: list[str] = Field(default_factory=list)
    GroupTag: str = ""
    AttributesJSON: str = ""


class Worker(_EntityModel):
    """
    @brief
    One worker row (workers.csv / workers.xlsx).

    @details
    AvailableSlots lists the phase numbers the worker can work;
    MaxLoadPerPhase is the number of concurrent task-units per phase.
    """

    WorkerID: str = ""
    WorkerName: str = ""
    Skills: list[str] = Field(default_factory=list)
    AvailableSlots: list[int] = Field(default_factory=list)
    MaxLoadPerPhase: int = 0
    WorkerGroup: str = ""
    QualificationLevel: int = 0


class Task(_EntityModel):
    """One task row; Duration is a count of phases."""

    TaskID: str = ""
    TaskName: str = ""
    Category: str = ""
    Duration: int = 0
    RequiredSkills: list[str] = Field(default_factory=list)
    PreferredPhases: list[int] = Field(default_factory=list)
    MaxConcurrent: int = 0


# ------------------------------------------------------------
# Validation output
# ------------------------------------------------------------
ProposedValue = Union[int, str, list[int], list[str], None]


class Finding(BaseModel):
    """
    @brief
    One reported validation issue tied to a specific entity row and field.

    @details
    Findings are a derived snapshot of the collections they were computed
    from: rowIndex is only meaningful for that validation run.
    `suggestion` is human-readable; `proposedValue` carries the machine
    value the Auto-Fixer applies, so prose never has to be parsed.
    """

    id: str
    severity: Severity
    kind: FindingKind
    entity: EntityName
    rowIndex: int = Field(..., ge=0)
    field: str
    message: str
    suggestion: str | None = None
    proposedValue: ProposedValue = None
    autoFixable: bool = False


class Insight(BaseModel):
    """Derived, non-blocking observation about the loaded data."""

    id: str
    type: Literal["optimization", "warning", "recommendation", "pattern"]
    title: str
    description: str
    impact: Impact
    confidence: float = Field(..., ge=0.0, le=1.0)
    actionable: bool = True
    suggestedAction: str | None = None


class ResourcePrediction(BaseModel):
    """Capacity-utilization forecast derived from workers and tasks."""

    recommendedWorkers: int = 0
    capacityUtilization: float = 0.0
    timelineRisk: Literal["high", "medium", "low"] = "low"
    skillGaps: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


# ------------------------------------------------------------
# Rules & priorities
# ------------------------------------------------------------
class CoRunParams(_StrictBaseModel):
    kind: Literal["coRun"] = "coRun"
    taskIds: list[str] = Field(default_factory=list)


class SlotRestrictionParams(_StrictBaseModel):
    kind: Literal["slotRestriction"] = "slotRestriction"
    group: str
    minCommonSlots: int = Field(1, ge=0)


class LoadLimitParams(_StrictBaseModel):
    kind: Literal["loadLimit"] = "loadLimit"
    workerGroup: str
    maxSlotsPerPhase: int = Field(..., ge=0)


class PhaseWindowParams(_StrictBaseModel):
    kind: Literal["phaseWindow"] = "phaseWindow"
    taskId: str
    allowedPhases: list[int] = Field(default_factory=list)


class PatternMatchParams(_StrictBaseModel):
    kind: Literal["patternMatch"] = "patternMatch"
    regex: str
    template: str = ""
    payload: dict[str, Any] = Field(default_factory=dict)


class PrecedenceParams(_StrictBaseModel):
    kind: Literal["precedence"] = "precedence"
    ruleIds: list[str] = Field(default_factory=list)


class CustomParams(_StrictBaseModel):
    """Catch-all variant used by generated and ad-hoc rules."""

    kind: Literal["custom"] = "custom"
    payload: dict[str, Any] = Field(default_factory=dict)


RuleParams = Annotated[
    Union[
        CoRunParams,
        SlotRestrictionParams,
        LoadLimitParams,
        PhaseWindowParams,
        PatternMatchParams,
        PrecedenceParams,
        CustomParams,
    ],
    Field(discriminator="kind"),
]


class Rule(BaseModel):
    """
    @brief
    User-defined allocation rule.

    @details
    `parameters` is a tagged variant whose `kind` must equal the rule `type`.
    `confidence` is only meaningful for generated rules.
    """

    id: str
    type: RuleType
    name: str
    description: str = ""
    parameters: RuleParams
    enabled: bool = True
    confidence: float | None = Field(None, ge=0.0, le=1.0)
    impact: Impact | None = None

    @model_validator(mode="after")
    def _parameters_match_type(self) -> Rule:
        if self.parameters.kind != self.type:
            raise ValueError(
                f"Rule parameters of kind '{self.parameters.kind}' do not match type '{self.type}'"
            )
        return self


class Priority(BaseModel):
    """Weight of one allocation criterion."""

    id: str
    name: str
    weight: float = Field(..., ge=0.0)
    description: str = ""


class RuleCondition(BaseModel):
    """One keyword-detected condition produced by a rule classifier."""

    type: RuleType
    detected: bool = True
    confidence: float = Field(..., ge=0.0, le=1.0)


# ------------------------------------------------------------
# Runtime configuration
# ------------------------------------------------------------
class ValidationRulesConfig(_StrictBaseModel):
    """
    @brief
    Thresholds used by the Validator rule set.
    """

    priority_min: int = Field(1, description="Lowest valid PriorityLevel")
    priority_max: int = Field(5, description="Highest valid PriorityLevel")
    neutral_priority: int = Field(3, description="Proposed PriorityLevel when the value is missing")
    overload_ratio: float = Field(
        0.8, gt=0.0, description="MaxLoadPerPhase / |AvailableSlots| above this is flagged"
    )
    reduced_load_factor: float = Field(
        0.7, gt=0.0, le=1.0, description="Suggested load = floor(|AvailableSlots| * factor)"
    )
    long_duration_phases: int = Field(
        5, ge=1, description="Tasks longer than this are flagged for decomposition"
    )
    min_distinct_skills: int = Field(2, ge=0, description="Workers below this get a note")

    @model_validator(mode="after")
    def _priority_range_ordered(self) -> ValidationRulesConfig:
        if self.priority_min > self.priority_max:
            raise ValueError("priority_min must not exceed priority_max")
        if not self.priority_min <= self.neutral_priority <= self.priority_max:
            raise ValueError("neutral_priority must lie within [priority_min, priority_max]")
        # A reduced load above the overload ratio would be flagged again after fixing
        if self.reduced_load_factor > self.overload_ratio:
            raise ValueError("reduced_load_factor must not exceed overload_ratio")
        return self


class QualityConfig(_StrictBaseModel):
    """Quality score parameters."""

    reference_size: int = Field(
        50, ge=1, description="Record count treated as a fully loaded dataset"
    )
    error_penalty: float = Field(10.0, ge=0.0, description="Points lost per error finding")
    warning_penalty: float = Field(3.0, ge=0.0, description="Points lost per warning finding")


class InsightsConfig(_StrictBaseModel):
    """Thresholds for insight rules."""

    capacity_alert_ratio: float = Field(0.8, gt=0.0)
    imbalance_tolerance: float = Field(0.3, ge=0.0)
    priority_inflation_share: float = Field(0.6, ge=0.0, le=1.0)
    high_priority_levels: list[int] = Field(default_factory=lambda: [4, 5])


class AutoFixConfig(_StrictBaseModel):
    """Fallback values used when a finding carries no usable value."""

    default_priority: int = Field(3, description="Neutral PriorityLevel fallback")
    default_max_load: int = Field(2, ge=0, description="MaxLoadPerPhase fallback")
    default_attributes: str = Field(
        '{"status": "active"}', description="Replacement for unparseable AttributesJSON"
    )
    json_indent: int = Field(2, ge=0)


class ExportConfig(_StrictBaseModel):
    """Controls entity and report export."""

    format: Literal["xlsx", "csv"] = "xlsx"
    write_report: bool = True
    block_on_errors: bool = True
    rules_config_version: str = "1.0"


class VisualConfig(_StrictBaseModel):
    """
    @brief
    Visualization parameters for plot rendering.
    """

    save_plot: bool = True
    width: float = Field(12.0, gt=0.0, description="Figure width in inches")
    height: float = Field(6.0, gt=0.0, description="Figure height in inches")
    dpi: int = Field(120, ge=50, description="Output figure DPI")


class Config(_StrictBaseModel):
    """
    @brief
    Represents the full runtime configuration loaded from config.yaml.

    @details
    Every section is optional; omitted sections take their defaults.
    """

    output_dir: str | None = "data/output"
    validation: ValidationRulesConfig = Field(
        default_factory=ValidationRulesConfig.model_construct
    )
    quality: QualityConfig = Field(default_factory=QualityConfig.model_construct)
    insights: InsightsConfig = Field(default_factory=InsightsConfig)
    autofix: AutoFixConfig = Field(default_factory=AutoFixConfig.model_construct)
    export: ExportConfig = Field(default_factory=ExportConfig.model_construct)
    visual: VisualConfig = Field(default_factory=VisualConfig.model_construct)


__all__ = [
    "Client",
    "Worker",
    "Task",
    "Finding",
    "Insight",
    "ResourcePrediction",
    "Rule",
    "Priority",
    "RuleCondition",
    "Config",
    "ENTITY_NAMES",
]
