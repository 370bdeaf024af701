from typing import Annotated, Any, Dict, List, Mapping, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from accessforge.core.constants import (
    ALL_DETECTORS,
    CompositeMode,
    ConditionType,
    CountOperator,
    PRIORITY_ORDER,
    RecommendationPriority,
    RuleStatus,
    SeverityLevel,
    ThresholdOperator,
)
from accessforge.core.exceptions import RuleCatalogueError

MAX_RECOMMENDATION_EXAMPLES = 5

# Identity fields a nested child rule takes from its parent when it omits them
INHERITED_FIELDS = (
    "name",
    "category",
    "standard",
    "level",
    "severity",
    "recommendation",
    "applicable_detectors",
)


def normalize_rule_data(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Accept the original `type` key as an alias of `kind`."""
    normalized = dict(data)
    if "kind" not in normalized and "type" in normalized:
        normalized["kind"] = normalized.pop("type")
    return normalized


def _lookup(data: Mapping[str, Any], field: str) -> Any:
    if field in data:
        return data[field]
    return data.get(to_camel(field))


def _has(data: Mapping[str, Any], field: str) -> bool:
    return field in data or to_camel(field) in data


def _inherit(parent: Mapping[str, Any], child: Mapping[str, Any], child_id: str) -> Dict[str, Any]:
    inherited = normalize_rule_data(child)
    inherited.setdefault("id", child_id)
    for field in INHERITED_FIELDS:
        if not _has(inherited, field) and _has(parent, field):
            inherited[field] = _lookup(parent, field)
    return inherited


class RuleBase(BaseModel):
    """Fields shared by every rule kind."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        use_enum_values=True,
    )

    id: str
    name: str
    category: str = "General"
    standard: str
    level: str
    weight: float = Field(default=1.0, ge=0)
    applicable_detectors: List[str] = Field(default_factory=lambda: [ALL_DETECTORS])
    recommendation: Optional[str] = None
    severity: Optional[SeverityLevel] = None
    contexts: Optional[List[str]] = None
    mobile_weight: Optional[float] = Field(default=None, ge=0)
    ecommerce_modifier: Optional[float] = Field(default=None, ge=0)


class ThresholdRule(RuleBase):
    kind: Literal["threshold"] = "threshold"
    data_path: str
    threshold: float
    operator: ThresholdOperator = ThresholdOperator.GTE


class PercentageRule(ThresholdRule):
    """Threshold mechanics over ratio-style data paths."""

    kind: Literal["percentage"] = "percentage"


class BooleanRule(RuleBase):
    kind: Literal["boolean"] = "boolean"
    data_path: str
    expected_value: Any = True


class CountRule(RuleBase):
    kind: Literal["count"] = "count"
    data_path: str
    threshold: int = Field(ge=0)
    operator: CountOperator = CountOperator.MAX


class Condition(BaseModel):
    """Gate evaluated before a conditional rule's child runs."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    type: ConditionType
    path: Optional[str] = None
    property: Optional[str] = None
    value: Any = None

    @model_validator(mode="after")
    def check_target(self):
        if self.type == ConditionType.CONTEXT:
            if not self.property:
                raise ValueError("context conditions require a 'property'")
        elif not self.path:
            raise ValueError(f"{self.type} conditions require a 'path'")
        return self


LeafRule = Annotated[
    Union[ThresholdRule, PercentageRule, BooleanRule, CountRule],
    Field(discriminator="kind"),
]


class ConditionalRule(RuleBase):
    kind: Literal["conditional"] = "conditional"
    condition: Condition
    rule: LeafRule

    @model_validator(mode="before")
    @classmethod
    def inherit_parent_fields(cls, data: Any) -> Any:
        if not isinstance(data, Mapping) or not isinstance(data.get("rule"), Mapping):
            return data
        data = dict(data)
        child = _inherit(data, data["rule"], f"{data.get('id')}_conditional")
        # The gate owns the weight; the child only decides status and score
        child["weight"] = _lookup(data, "weight") if _has(data, "weight") else 1.0
        data["rule"] = child
        return data


CompositeChild = Annotated[
    Union[ThresholdRule, PercentageRule, BooleanRule, CountRule, ConditionalRule],
    Field(discriminator="kind"),
]


class CompositeRule(RuleBase):
    kind: Literal["composite"] = "composite"
    rules: List[CompositeChild] = Field(min_length=1)
    mode: CompositeMode = CompositeMode.ALL
    pass_score: float = Field(default=80, ge=0, le=100)

    @model_validator(mode="before")
    @classmethod
    def inherit_parent_fields(cls, data: Any) -> Any:
        if not isinstance(data, Mapping) or not isinstance(data.get("rules"), list):
            return data
        data = dict(data)
        data["rules"] = [
            _inherit(data, child, f"{data.get('id')}_{index}") if isinstance(child, Mapping) else child
            for index, child in enumerate(data["rules"])
        ]
        return data


class CustomRule(RuleBase):
    kind: Literal["custom"] = "custom"
    scorer: str
    params: Dict[str, Any] = Field(default_factory=dict)
    data_path: Optional[str] = None


RuleDefinition = Annotated[
    Union[
        ThresholdRule,
        PercentageRule,
        BooleanRule,
        CountRule,
        ConditionalRule,
        CompositeRule,
        CustomRule,
    ],
    Field(discriminator="kind"),
]

_RULE_ADAPTER = TypeAdapter(RuleDefinition)


def parse_rule(data: Any) -> RuleDefinition:
    """Validate one portable rule record into its typed RuleDefinition."""
    if isinstance(data, RuleBase):
        return data
    if not isinstance(data, Mapping):
        raise RuleCatalogueError(f"Rule definitions must be mappings, got {type(data).__name__}")
    try:
        return _RULE_ADAPTER.validate_python(normalize_rule_data(data))
    except ValidationError as e:
        raise RuleCatalogueError(f"Invalid rule definition '{data.get('id', '<unknown>')}': {e}") from e


class Issue(BaseModel):
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    type: str
    severity: SeverityLevel
    message: str
    recommendation: Optional[str] = None
    actual: Any = None
    expected: Any = None
    operator: Optional[str] = None


class Evidence(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    passed: Optional[bool] = None
    actual: Any = None
    expected: Any = None
    operator: Optional[str] = None
    condition: Optional[Dict[str, Any]] = None
    condition_met: Optional[bool] = None
    details: Optional[Dict[str, Any]] = None


class RuleEvaluation(BaseModel):
    """
    Result of evaluating one rule against one finding snapshot.

    Frozen: cached evaluations are handed out verbatim, and conditional or
    composite rules build new evaluations instead of mutating child ones.
    """

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    rule_id: str
    rule_name: str
    category: str
    standard: str
    level: str
    weight: float
    status: RuleStatus
    score: int = Field(ge=0, le=100)
    issues: List[Issue] = Field(default_factory=list)
    evidence: List[Evidence] = Field(default_factory=list)
    recommendation: Optional[str] = None
    detector: Optional[str] = None


class ComplianceScore(BaseModel):
    overall: int = 0
    level_a: int = 0
    level_aa: int = 0
    level_aaa: int = 0
    # Levels holding a failed evaluation with a critical issue
    critical_failures: List[str] = Field(default_factory=list)


class Recommendation(BaseModel):
    """Prioritized remediation item."""

    model_config = ConfigDict(use_enum_values=True)

    priority: RecommendationPriority = RecommendationPriority.MEDIUM
    title: str = Field(min_length=1)
    description: str = ""
    action: str = ""
    effort: Optional[str] = None
    impact: Optional[str] = None
    type: Optional[str] = None
    source: Optional[str] = None
    examples: List[str] = Field(default_factory=list)

    @field_validator("priority", mode="before")
    @classmethod
    def coerce_priority(cls, v: Any) -> Any:
        # Unknown priorities sort last
        if isinstance(v, str) and v.lower() in PRIORITY_ORDER:
            return v.lower()
        if isinstance(v, RecommendationPriority):
            return v
        return RecommendationPriority.ENHANCEMENT

    @field_validator("examples", mode="before")
    @classmethod
    def cap_examples(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [str(item) for item in v[:MAX_RECOMMENDATION_EXAMPLES]]
        return v


class RuleSummary(BaseModel):
    total_rules: int = 0
    passed_rules: int = 0
    failed_rules: int = 0
    error_rules: int = 0
    not_applicable_rules: int = 0
    critical_issues: int = 0
    high_priority_issues: int = 0
    medium_priority_issues: int = 0
    low_priority_issues: int = 0


class BusinessImpact(BaseModel):
    seo_impact: str = "High"
    user_experience: str = "Poor"
    conversion_risk: str = "High"
    brand_reputation: str = "At Risk"


class RulesResult(BaseModel):
    """Output of the rules phase: evaluations, scores and the engine verdict."""

    engine: str = "AccessibilityRulesEngine"
    version: str = "1.0.0"
    success: bool = True
    error: Optional[str] = None
    overall_score: int = 0
    compliance_level: str = "Not Compliant"
    accessibility_grade: str = "F"
    rule_evaluations: List[RuleEvaluation] = Field(default_factory=list)
    summary: RuleSummary = Field(default_factory=RuleSummary)
    compliance_scores: Dict[str, ComplianceScore] = Field(default_factory=dict)
    business_impact: BusinessImpact = Field(default_factory=BusinessImpact)
    legal_risk: str = "High"
    user_impact: str = "Severe"
    recommendations: List[Recommendation] = Field(default_factory=list)
    evaluation_time_ms: float = 0.0
    configuration: Dict[str, Any] = Field(default_factory=dict)
    standards_version: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def failed(cls, error: str, **kwargs: Any) -> "RulesResult":
        """Zero-score result used when the whole rules phase breaks."""
        return cls(
            success=False,
            error=error,
            recommendations=[
                Recommendation(
                    type="error_resolution",
                    priority=RecommendationPriority.HIGH,
                    title="Resolve Rules Engine Error",
                    description=f"Rules evaluation failed: {error}",
                    action="Check the rule catalogue and configuration, then retry the evaluation",
                    source="rules",
                )
            ],
            **kwargs,
        )
