# accessforge/rules/evaluator.py
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from accessforge.core.constants import (
    COUNT_DIFFERENCE_HIGH,
    COUNT_DIFFERENCE_MEDIUM,
    COUNT_PENALTY_PER_UNIT,
    DEVIATION_HIGH,
    DEVIATION_MEDIUM,
    FAILURE_SCORE_CEILING,
    CompositeMode,
    ConditionType,
    CountOperator,
    RuleKind,
    RuleStatus,
    SeverityLevel,
    ThresholdOperator,
)
from accessforge.core.exceptions import RuleEvaluationError, UnknownScorerError
from accessforge.core.logging import logger as default_logger
from accessforge.rules.cache import EvaluationCache, make_key
from accessforge.rules.models import (
    BooleanRule,
    CompositeRule,
    ConditionalRule,
    CountRule,
    CustomRule,
    Evidence,
    Issue,
    RuleDefinition,
    RuleEvaluation,
    ThresholdRule,
)
from accessforge.rules.paths import resolve_path
from accessforge.rules.scorers import BUILTIN_SCORERS, Scorer
from accessforge.rules.scoring import clamp_score, round_half_up
from accessforge.schemas.context import AnalysisContext

MOBILE_DEVICE = "mobile"
ECOMMERCE_PAGE = "ecommerce"


@dataclass
class Outcome:
    """Status, score and findings produced by one rule-kind handler."""

    status: RuleStatus
    score: int = 0
    issues: List[Issue] = field(default_factory=list)
    evidence: List[Evidence] = field(default_factory=list)
    recommendation: Optional[str] = None


def _display(value: Any) -> str:
    if isinstance(value, float) and not isinstance(value, bool):
        return f"{value:g}"
    return str(value)


def _numeric(value: Any, path: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RuleEvaluationError(f"Value at '{path}' is not numeric: {value!r}")
    return value


def _strict_equals(actual: Any, expected: Any) -> bool:
    # True == 1 in Python; a boolean check must not accept an integer
    if isinstance(actual, bool) != isinstance(expected, bool):
        return False
    return actual == expected


def compare_threshold(actual: float, threshold: float, operator: str) -> bool:
    comparisons = {
        ThresholdOperator.GTE.value: actual >= threshold,
        ThresholdOperator.LTE.value: actual <= threshold,
        ThresholdOperator.EQ.value: actual == threshold,
        ThresholdOperator.GT.value: actual > threshold,
        ThresholdOperator.LT.value: actual < threshold,
    }
    return comparisons[operator]


def threshold_distance(actual: float, threshold: float, operator: str) -> float:
    distances = {
        ThresholdOperator.GTE.value: max(0, threshold - actual),
        ThresholdOperator.LTE.value: max(0, actual - threshold),
        ThresholdOperator.GT.value: max(0, threshold + 1 - actual),
        ThresholdOperator.LT.value: max(0, actual - threshold + 1),
        ThresholdOperator.EQ.value: abs(actual - threshold),
    }
    return distances[operator]


def threshold_failure_score(actual: float, threshold: float, operator: str) -> int:
    """Partial credit for a failed threshold check, in [0, 50]."""
    normalizer = max(threshold, 100)
    distance = threshold_distance(actual, threshold, operator)
    return round_half_up((1 - min(distance / normalizer, 1)) * FAILURE_SCORE_CEILING)


def count_failure_score(count: int, threshold: int, operator: str) -> int:
    """Partial credit for a failed count check, decaying per unit of gap."""
    if operator == CountOperator.MAX:
        gap = count - threshold
    elif operator == CountOperator.MIN:
        gap = threshold - count
    else:
        gap = abs(count - threshold)
    return max(0, 100 - COUNT_PENALTY_PER_UNIT[operator] * max(0, gap))


def deviation_severity(actual: float, threshold: float) -> SeverityLevel:
    if threshold == 0:
        deviation = 0.0 if actual == threshold else float("inf")
    else:
        deviation = abs(actual - threshold) / abs(threshold)

    if deviation > DEVIATION_HIGH:
        return SeverityLevel.HIGH
    if deviation > DEVIATION_MEDIUM:
        return SeverityLevel.MEDIUM
    return SeverityLevel.LOW


def count_severity(count: int, threshold: int) -> SeverityLevel:
    difference = abs(count - threshold)
    if difference > COUNT_DIFFERENCE_HIGH:
        return SeverityLevel.HIGH
    if difference > COUNT_DIFFERENCE_MEDIUM:
        return SeverityLevel.MEDIUM
    return SeverityLevel.LOW


class RuleEvaluator:
    """
    Evaluates one rule against one finding under an analysis context.

    Each rule kind has exactly one handler. Handlers return an Outcome, from
    which a single frozen RuleEvaluation is built, so child evaluations of
    conditional and composite rules are never mutated.
    """

    def __init__(
        self,
        cache: Optional[EvaluationCache] = None,
        scorers: Optional[Dict[str, Scorer]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.cache = cache
        self.logger = logger or default_logger.getChild("rules")
        self._scorers: Dict[str, Scorer] = dict(BUILTIN_SCORERS)
        if scorers:
            self._scorers.update(scorers)

        self._handlers: Dict[RuleKind, Callable[..., Outcome]] = {
            RuleKind.THRESHOLD: self._evaluate_threshold,
            RuleKind.PERCENTAGE: self._evaluate_threshold,
            RuleKind.BOOLEAN: self._evaluate_boolean,
            RuleKind.COUNT: self._evaluate_count,
            RuleKind.CONDITIONAL: self._evaluate_conditional,
            RuleKind.COMPOSITE: self._evaluate_composite,
            RuleKind.CUSTOM: self._evaluate_custom,
        }
        missing = [kind.value for kind in RuleKind if kind not in self._handlers]
        if missing:
            raise RuleEvaluationError(f"No handler registered for rule kinds: {', '.join(missing)}")

    def register_scorer(self, name: str, scorer: Scorer) -> None:
        """Register a scorer that custom rules can reference by name."""
        self._scorers[name] = scorer

    @property
    def scorer_names(self) -> List[str]:
        return sorted(self._scorers)

    def evaluate(
        self,
        rule: RuleDefinition,
        finding: Dict[str, Any],
        context: AnalysisContext,
    ) -> RuleEvaluation:
        """Evaluate a rule, serving repeated (rule, finding, context) triples from the cache."""
        key = None
        if self.cache is not None:
            key = make_key(rule.id, finding, context)
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        try:
            outcome = self._dispatch(rule, finding, context)
        except Exception as e:
            self.logger.error(
                f"Rule evaluation error for {rule.id}: {e}",
                extra={"rule_id": rule.id},
            )
            return self._build(rule, self._error_outcome(e))

        evaluation = self._build(rule, outcome)
        if context.contextual_rules:
            evaluation = self._apply_contextual_modifications(rule, evaluation, context)

        if key is not None:
            self.cache.put(key, evaluation)
        return evaluation

    def _dispatch(self, rule: RuleDefinition, finding: Dict[str, Any], context: AnalysisContext) -> Outcome:
        handler = self._handlers[RuleKind(rule.kind)]
        return handler(rule, finding, context)

    @staticmethod
    def _build(rule: RuleDefinition, outcome: Outcome) -> RuleEvaluation:
        return RuleEvaluation(
            rule_id=rule.id,
            rule_name=rule.name,
            category=rule.category,
            standard=rule.standard,
            level=rule.level,
            weight=rule.weight,
            status=outcome.status,
            score=outcome.score,
            issues=outcome.issues,
            evidence=outcome.evidence,
            recommendation=outcome.recommendation,
        )

    @staticmethod
    def _error_outcome(error: Exception) -> Outcome:
        return Outcome(
            status=RuleStatus.ERROR,
            score=0,
            issues=[
                Issue(
                    type="rule_evaluation_error",
                    severity=SeverityLevel.LOW,
                    message=f"Rule evaluation failed: {error}",
                )
            ],
        )

    @staticmethod
    def _apply_contextual_modifications(
        rule: RuleDefinition,
        evaluation: RuleEvaluation,
        context: AnalysisContext,
    ) -> RuleEvaluation:
        update: Dict[str, Any] = {}
        if context.device == MOBILE_DEVICE and rule.mobile_weight is not None:
            update["weight"] = rule.mobile_weight
        if context.type == ECOMMERCE_PAGE and rule.ecommerce_modifier is not None:
            update["score"] = clamp_score(evaluation.score * rule.ecommerce_modifier)
        if not update:
            return evaluation
        return evaluation.model_copy(update=update)

    def _evaluate_threshold(self, rule: ThresholdRule, finding: Dict[str, Any], context: AnalysisContext) -> Outcome:
        raw = resolve_path(finding, rule.data_path)
        if raw is None:
            return Outcome(status=RuleStatus.NOT_APPLICABLE)

        actual = _numeric(raw, rule.data_path)
        threshold = rule.threshold
        passed = compare_threshold(actual, threshold, rule.operator)
        evidence = [
            Evidence(
                type="threshold_check",
                passed=passed,
                actual=actual,
                expected=threshold,
                operator=rule.operator,
            )
        ]
        if passed:
            return Outcome(status=RuleStatus.PASSED, score=100, evidence=evidence)

        score = threshold_failure_score(actual, threshold, rule.operator)
        recommendation = rule.recommendation or (
            f"Improve {rule.name}: Current value {_display(actual)} should be {rule.operator} {_display(threshold)}"
        )
        issue = Issue(
            type="threshold_violation",
            severity=rule.severity or deviation_severity(actual, threshold),
            message=(
                f"{rule.name}: Value {_display(actual)} does not meet threshold "
                f"{_display(threshold)} ({rule.operator})"
            ),
            recommendation=recommendation,
            actual=actual,
            expected=threshold,
            operator=rule.operator,
        )
        return Outcome(
            status=RuleStatus.FAILED,
            score=score,
            issues=[issue],
            evidence=evidence,
            recommendation=recommendation,
        )

    def _evaluate_boolean(self, rule: BooleanRule, finding: Dict[str, Any], context: AnalysisContext) -> Outcome:
        actual = resolve_path(finding, rule.data_path)
        if actual is None:
            return Outcome(status=RuleStatus.NOT_APPLICABLE)

        expected = rule.expected_value
        passed = _strict_equals(actual, expected)
        evidence = [Evidence(type="boolean_check", passed=passed, actual=actual, expected=expected)]
        if passed:
            return Outcome(status=RuleStatus.PASSED, score=100, evidence=evidence)

        recommendation = rule.recommendation or f"Fix {rule.name}: expected {expected}, found {actual}"
        issue = Issue(
            type="boolean_violation",
            severity=rule.severity or SeverityLevel.MEDIUM,
            message=f"{rule.name}: Expected {expected}, got {actual}",
            recommendation=recommendation,
            actual=actual,
            expected=expected,
        )
        return Outcome(
            status=RuleStatus.FAILED,
            score=0,
            issues=[issue],
            evidence=evidence,
            recommendation=recommendation,
        )

    def _evaluate_count(self, rule: CountRule, finding: Dict[str, Any], context: AnalysisContext) -> Outcome:
        items = resolve_path(finding, rule.data_path)
        if not isinstance(items, list):
            return Outcome(status=RuleStatus.NOT_APPLICABLE)

        count = len(items)
        threshold = rule.threshold
        if rule.operator == CountOperator.MAX:
            passed = count <= threshold
        elif rule.operator == CountOperator.MIN:
            passed = count >= threshold
        else:
            passed = count == threshold

        evidence = [
            Evidence(
                type="count_check",
                passed=passed,
                actual=count,
                expected=threshold,
                operator=rule.operator,
            )
        ]
        if passed:
            return Outcome(status=RuleStatus.PASSED, score=100, evidence=evidence)

        score = count_failure_score(count, threshold, rule.operator)
        recommendation = rule.recommendation or (
            f"Adjust {rule.name}: Current count {count} should meet {rule.operator} requirement of {threshold}"
        )
        issue = Issue(
            type="count_violation",
            severity=rule.severity or count_severity(count, threshold),
            message=f"{rule.name}: Count {count} violates {rule.operator} threshold {threshold}",
            recommendation=recommendation,
            actual=count,
            expected=threshold,
            operator=rule.operator,
        )
        return Outcome(
            status=RuleStatus.FAILED,
            score=score,
            issues=[issue],
            evidence=evidence,
            recommendation=recommendation,
        )

    def _condition_met(self, rule: ConditionalRule, finding: Dict[str, Any], context: AnalysisContext) -> bool:
        condition = rule.condition
        if condition.type == ConditionType.EXISTS:
            return resolve_path(finding, condition.path) is not None
        if condition.type == ConditionType.EQUALS:
            return _strict_equals(resolve_path(finding, condition.path), condition.value)
        return _strict_equals(context.lookup(condition.property), condition.value)

    def _evaluate_conditional(self, rule: ConditionalRule, finding: Dict[str, Any], context: AnalysisContext) -> Outcome:
        met = self._condition_met(rule, finding, context)
        check = Evidence(
            type="condition_check",
            condition=rule.condition.model_dump(),
            condition_met=met,
        )
        if not met:
            return Outcome(status=RuleStatus.NOT_APPLICABLE, evidence=[check])

        child = self._dispatch(rule.rule, finding, context)
        return Outcome(
            status=child.status,
            score=child.score,
            issues=list(child.issues),
            evidence=[check, *child.evidence],
            recommendation=child.recommendation,
        )

    def _evaluate_composite(self, rule: CompositeRule, finding: Dict[str, Any], context: AnalysisContext) -> Outcome:
        scored = []
        issues: List[Issue] = []
        child_recommendation = None

        for child in rule.rules:
            try:
                outcome = self._dispatch(child, finding, context)
            except Exception as e:
                # A broken child counts against the composite instead of voiding it
                self.logger.warning(
                    f"Composite child {child.id} failed: {e}",
                    extra={"rule_id": child.id},
                )
                outcome = self._error_outcome(e)

            if outcome.status == RuleStatus.NOT_APPLICABLE:
                continue
            passed = outcome.status == RuleStatus.PASSED
            score = outcome.score if outcome.status != RuleStatus.ERROR else 0
            scored.append((child, passed, score))
            issues.extend(outcome.issues)
            if not passed and child_recommendation is None:
                child_recommendation = outcome.recommendation or child.recommendation

        if not scored:
            return Outcome(status=RuleStatus.NOT_APPLICABLE)

        total_weight = sum(child.weight for child, _, _ in scored)
        if total_weight > 0:
            weighted_mean = sum(score * child.weight for child, _, score in scored) / total_weight
        else:
            weighted_mean = sum(score for _, _, score in scored) / len(scored)

        if rule.mode == CompositeMode.ANY:
            passed = any(child_passed for _, child_passed, _ in scored)
            score = 100 if passed else max(score for _, _, score in scored)
        elif rule.mode == CompositeMode.WEIGHTED:
            score = clamp_score(weighted_mean)
            passed = score >= rule.pass_score
        else:
            passed = all(child_passed for _, child_passed, _ in scored)
            score = 100 if passed else clamp_score(weighted_mean)

        evidence = [
            Evidence(
                type="composite_check",
                passed=passed,
                actual=score,
                expected=rule.pass_score if rule.mode == CompositeMode.WEIGHTED else None,
                details={
                    "mode": rule.mode,
                    "children": {child.id: child_score for child, _, child_score in scored},
                },
            )
        ]
        if passed:
            return Outcome(status=RuleStatus.PASSED, score=score, evidence=evidence)

        return Outcome(
            status=RuleStatus.FAILED,
            score=score,
            issues=issues,
            evidence=evidence,
            recommendation=rule.recommendation or child_recommendation,
        )

    def _evaluate_custom(self, rule: CustomRule, finding: Dict[str, Any], context: AnalysisContext) -> Outcome:
        scorer = self._scorers.get(rule.scorer)
        if scorer is None:
            raise UnknownScorerError(f"Unknown scorer '{rule.scorer}' for rule {rule.id}")

        result = scorer(rule, finding, context)
        status = RuleStatus(result.status)
        evidence = [
            Evidence(
                type="custom_check",
                passed=status == RuleStatus.PASSED,
                actual=result.actual,
                expected=result.expected,
                details={"scorer": rule.scorer},
            )
        ]
        if status == RuleStatus.NOT_APPLICABLE:
            return Outcome(status=status, evidence=evidence)
        if status == RuleStatus.PASSED:
            return Outcome(status=status, score=clamp_score(result.score), evidence=evidence)

        recommendation = rule.recommendation or f"Improve {rule.name}: {result.message or 'custom check failed'}"
        issue = Issue(
            type="custom_violation",
            severity=rule.severity or SeverityLevel.MEDIUM,
            message=f"{rule.name}: {result.message or 'custom check failed'}",
            recommendation=recommendation,
            actual=result.actual,
            expected=result.expected,
        )
        return Outcome(
            status=status,
            score=clamp_score(result.score),
            issues=[issue],
            evidence=evidence,
            recommendation=recommendation,
        )
