# accessforge/core/constants.py
from enum import Enum
from typing import Dict, List, Tuple


class SeverityLevel(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RuleKind(str, Enum):
    THRESHOLD = "threshold"
    BOOLEAN = "boolean"
    COUNT = "count"
    PERCENTAGE = "percentage"
    CONDITIONAL = "conditional"
    COMPOSITE = "composite"
    CUSTOM = "custom"


class RuleStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    NOT_APPLICABLE = "not_applicable"
    ERROR = "error"


class ThresholdOperator(str, Enum):
    GTE = "gte"
    LTE = "lte"
    EQ = "eq"
    GT = "gt"
    LT = "lt"


class CountOperator(str, Enum):
    MAX = "max"
    MIN = "min"
    EXACT = "exact"


class ConditionType(str, Enum):
    EXISTS = "exists"
    EQUALS = "equals"
    CONTEXT = "context"


class CompositeMode(str, Enum):
    ALL = "all"
    ANY = "any"
    WEIGHTED = "weighted"


class WCAGLevel(str, Enum):
    A = "A"
    AA = "AA"
    AAA = "AAA"


class RecommendationPriority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    ENHANCEMENT = "enhancement"


# Wildcard accepted in RuleDefinition.applicable_detectors
ALL_DETECTORS = "all"

# Standard whose level averages drive the compliance level
PRIMARY_STANDARD = "wcag21"

PRIORITY_ORDER: Dict[str, int] = {
    RecommendationPriority.CRITICAL.value: 1,
    RecommendationPriority.HIGH.value: 2,
    RecommendationPriority.MEDIUM.value: 3,
    RecommendationPriority.LOW.value: 4,
    RecommendationPriority.ENHANCEMENT.value: 5,
}

# Top-level blend of phase scores
PHASE_WEIGHTS: Dict[str, float] = {
    "detectors": 0.4,
    "heuristics": 0.3,
    "rules": 0.3,
}

# (minimum score, label), checked in order
OVERALL_COMPLIANCE_BANDS: List[Tuple[int, str]] = [
    (95, "WCAG 2.1 AAA"),
    (85, "WCAG 2.1 AA"),
    (70, "WCAG 2.1 A"),
]
NON_COMPLIANT = "Non-Compliant"

# Rules engine verdict: level average needed to claim a WCAG level
LEVEL_COMPLIANCE_THRESHOLD = 80
NOT_COMPLIANT = "Not Compliant"

GRADE_BANDS: List[Tuple[int, str]] = [
    (95, "A+"),
    (90, "A"),
    (85, "A-"),
    (80, "B+"),
    (75, "B"),
    (70, "B-"),
    (65, "C+"),
    (60, "C"),
    (55, "C-"),
    (50, "D"),
]
FAILING_GRADE = "F"

LEGAL_RISK_BANDS: List[Tuple[int, str]] = [
    (80, "Low"),
    (60, "Medium"),
]
HIGHEST_LEGAL_RISK = "High"

USER_IMPACT_BANDS: List[Tuple[int, str]] = [
    (85, "Minimal"),
    (70, "Moderate"),
    (50, "Significant"),
]
WORST_USER_IMPACT = "Severe"

# Partial credit
FAILURE_SCORE_CEILING = 50
COUNT_PENALTY_PER_UNIT: Dict[str, int] = {
    CountOperator.MAX.value: 10,
    CountOperator.MIN.value: 10,
    CountOperator.EXACT.value: 20,
}

# Severity derivation when a rule does not declare one
DEVIATION_HIGH = 0.5
DEVIATION_MEDIUM = 0.25
COUNT_DIFFERENCE_HIGH = 10
COUNT_DIFFERENCE_MEDIUM = 5
