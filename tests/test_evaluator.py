# tests/test_evaluator.py
"""
Rule evaluator tests
Tests: every rule kind, partial credit, severity, strict mode, caching, errors
"""

import pytest

from accessforge.core.constants import RuleKind, RuleStatus
from accessforge.rules.evaluator import (
    RuleEvaluator,
    count_failure_score,
    deviation_severity,
    threshold_failure_score,
)
from accessforge.rules.scorers import ScorerResult
from accessforge.schemas.context import AnalysisContext

from conftest import make_rule


class TestThresholdRules:
    """Test threshold and percentage evaluation"""

    @pytest.mark.parametrize(
        "operator,passing,failing",
        [
            ("gte", 50, 49.99),
            ("lte", 50, 50.01),
            ("gt", 50.01, 50),
            ("lt", 49.99, 50),
            ("eq", 50, 50.5),
        ],
    )
    def test_operator_boundaries(self, evaluator, context, operator, passing, failing):
        rule = make_rule(operator=operator, threshold=50)

        passed = evaluator.evaluate(rule, {"value": passing}, context)
        failed = evaluator.evaluate(rule, {"value": failing}, context)

        assert passed.status == RuleStatus.PASSED
        assert passed.score == 100
        assert failed.status == RuleStatus.FAILED
        assert 0 <= failed.score <= 50

    def test_contrast_scenario(self, evaluator, context):
        """Contrast 3.0 against a 4.5 minimum fails with partial credit"""
        rule = make_rule(name="Contrast", dataPath="color_contrast.minimum_ratio", threshold=4.5)

        evaluation = evaluator.evaluate(rule, {"color_contrast": {"minimum_ratio": 3.0}}, context)

        assert evaluation.status == RuleStatus.FAILED
        assert 0 < evaluation.score < 50
        assert evaluation.score == 49
        assert len(evaluation.issues) == 1
        assert evaluation.issues[0].severity == "medium"
        assert evaluation.issues[0].type == "threshold_violation"
        assert "4.5" in evaluation.recommendation
        assert evaluation.evidence[0].type == "threshold_check"

    def test_failure_score_formula(self):
        assert threshold_failure_score(0, 50, "gte") == 25
        assert threshold_failure_score(-100, 50, "gte") == 0
        assert threshold_failure_score(60, 50, "lte") == 45
        assert threshold_failure_score(40, 50, "eq") == 45

    def test_failure_score_never_exceeds_ceiling(self):
        for actual in (0, 10, 49, 49.9):
            assert 0 <= threshold_failure_score(actual, 50, "gte") <= 50

    def test_deviation_severity(self):
        assert deviation_severity(1, 10) == "high"
        assert deviation_severity(7, 10) == "medium"
        assert deviation_severity(9, 10) == "low"
        assert deviation_severity(1, 0) == "high"

    def test_rule_severity_overrides_deviation(self, evaluator, context):
        rule = make_rule(severity="critical", threshold=50)
        evaluation = evaluator.evaluate(rule, {"value": 49}, context)
        assert evaluation.issues[0].severity == "critical"

    def test_rule_recommendation_used(self, evaluator, context):
        rule = make_rule(recommendation="Raise the value")
        evaluation = evaluator.evaluate(rule, {"value": 1}, context)
        assert evaluation.recommendation == "Raise the value"

    def test_missing_value_is_not_applicable(self, evaluator, context):
        rule = make_rule()
        assert evaluator.evaluate(rule, {}, context).status == RuleStatus.NOT_APPLICABLE
        assert evaluator.evaluate(rule, {"value": None}, context).status == RuleStatus.NOT_APPLICABLE

    @pytest.mark.parametrize("value", ["4.5", True, [1, 2]])
    def test_non_numeric_value_is_error(self, evaluator, context, value):
        evaluation = evaluator.evaluate(make_rule(), {"value": value}, context)

        assert evaluation.status == RuleStatus.ERROR
        assert evaluation.score == 0
        assert evaluation.issues[0].type == "rule_evaluation_error"
        assert evaluation.issues[0].severity == "low"

    def test_percentage_rule(self, evaluator, context):
        rule = make_rule(type="percentage", threshold=100, operator="eq", dataPath="keyboard.pct")
        assert evaluator.evaluate(rule, {"keyboard": {"pct": 100}}, context).status == RuleStatus.PASSED
        assert evaluator.evaluate(rule, {"keyboard": {"pct": 80}}, context).score == 40

    def test_strict_mode_keeps_partial_credit(self, evaluator, context):
        strict = AnalysisContext(strict_mode=True)
        rule = make_rule(threshold=4.5, dataPath="color_contrast.minimum_ratio")
        finding = {"color_contrast": {"minimum_ratio": 3.0}}

        evaluation = evaluator.evaluate(rule, finding, strict)

        assert evaluation.status == RuleStatus.FAILED
        assert 0 < evaluation.score < 50
        assert evaluation.score == evaluator.evaluate(rule, finding, context).score


class TestBooleanRules:
    """Test boolean evaluation"""

    def test_pass_and_fail(self, evaluator, context):
        rule = make_rule(type="boolean", expectedValue=True)

        assert evaluator.evaluate(rule, {"value": True}, context).score == 100
        failed = evaluator.evaluate(rule, {"value": False}, context)
        assert failed.status == RuleStatus.FAILED
        assert failed.score == 0
        assert failed.issues[0].severity == "medium"
        assert failed.recommendation

    def test_integer_does_not_equal_boolean(self, evaluator, context):
        rule = make_rule(type="boolean", expectedValue=True)
        assert evaluator.evaluate(rule, {"value": 1}, context).status == RuleStatus.FAILED

    def test_missing_is_not_applicable(self, evaluator, context):
        rule = make_rule(type="boolean", expectedValue=True)
        assert evaluator.evaluate(rule, {}, context).status == RuleStatus.NOT_APPLICABLE


class TestCountRules:
    """Test count evaluation"""

    def test_missing_alt_scenario(self, evaluator, context):
        """Three images without alt text against a maximum of zero"""
        rule = make_rule(type="count", dataPath="images.missing_alt", threshold=0, operator="max")

        evaluation = evaluator.evaluate(rule, {"images": {"missing_alt": ["a", "b", "c"]}}, context)

        assert evaluation.status == RuleStatus.FAILED
        assert evaluation.score == 70
        assert evaluation.issues[0].severity == "low"
        assert evaluation.issues[0].actual == 3

    def test_failure_scores(self):
        assert count_failure_score(3, 0, "max") == 70
        assert count_failure_score(2, 5, "min") == 70
        assert count_failure_score(5, 2, "exact") == 40
        assert count_failure_score(30, 0, "max") == 0

    def test_min_and_exact(self, evaluator, context):
        minimum = make_rule(type="count", threshold=2, operator="min")
        exact = make_rule(type="count", threshold=2, operator="exact")

        assert evaluator.evaluate(minimum, {"value": [1, 2, 3]}, context).status == RuleStatus.PASSED
        assert evaluator.evaluate(exact, {"value": [1, 2]}, context).status == RuleStatus.PASSED
        assert evaluator.evaluate(exact, {"value": [1]}, context).score == 80

    def test_count_severity_from_difference(self, evaluator, context):
        rule = make_rule(type="count", threshold=0, operator="max")
        assert evaluator.evaluate(rule, {"value": list(range(7))}, context).issues[0].severity == "medium"
        assert evaluator.evaluate(rule, {"value": list(range(12))}, context).issues[0].severity == "high"

    def test_non_list_is_not_applicable(self, evaluator, context):
        rule = make_rule(type="count", threshold=0, operator="max")
        assert evaluator.evaluate(rule, {"value": 3}, context).status == RuleStatus.NOT_APPLICABLE

    def test_strict_mode_keeps_count_penalty(self, evaluator):
        rule = make_rule(type="count", threshold=0, operator="max")
        evaluation = evaluator.evaluate(rule, {"value": [1]}, AnalysisContext(strict_mode=True))
        assert evaluation.status == RuleStatus.FAILED
        assert evaluation.score == 90


class TestConditionalRules:
    """Test conditional gates"""

    def _focus_rule(self):
        return make_rule(
            id="focus",
            name="Focus Visible",
            type="conditional",
            condition={"type": "exists", "path": "focus.elements"},
            rule={"type": "boolean", "dataPath": "focus.visible", "expectedValue": True},
        )

    def test_closed_gate_is_not_applicable_without_issues(self, evaluator, context):
        evaluation = evaluator.evaluate(self._focus_rule(), {"focus": {"visible": False}}, context)

        assert evaluation.status == RuleStatus.NOT_APPLICABLE
        assert evaluation.issues == []
        assert evaluation.evidence[0].type == "condition_check"
        assert evaluation.evidence[0].condition_met is False

    def test_open_gate_runs_child(self, evaluator, context):
        finding = {"focus": {"elements": 4, "visible": False}}
        evaluation = evaluator.evaluate(self._focus_rule(), finding, context)

        assert evaluation.rule_id == "focus"
        assert evaluation.status == RuleStatus.FAILED
        assert evaluation.score == 0
        assert len(evaluation.issues) == 1
        assert [e.type for e in evaluation.evidence] == ["condition_check", "boolean_check"]
        assert evaluation.evidence[0].condition_met is True

    def test_equals_condition(self, evaluator, context):
        rule = make_rule(
            type="conditional",
            condition={"type": "equals", "path": "page.kind", "value": "form"},
            rule={"type": "boolean", "dataPath": "labels", "expectedValue": True},
        )
        assert evaluator.evaluate(rule, {"page": {"kind": "article"}, "labels": False}, context).status == (
            RuleStatus.NOT_APPLICABLE
        )
        assert evaluator.evaluate(rule, {"page": {"kind": "form"}, "labels": True}, context).status == (
            RuleStatus.PASSED
        )

    def test_context_condition(self, evaluator):
        rule = make_rule(
            type="conditional",
            condition={"type": "context", "property": "device", "value": "mobile"},
            rule={"type": "boolean", "dataPath": "reflows", "expectedValue": True},
        )
        finding = {"reflows": False}

        desktop = evaluator.evaluate(rule, finding, AnalysisContext(device="desktop"))
        mobile = evaluator.evaluate(rule, finding, AnalysisContext(device="mobile"))

        assert desktop.status == RuleStatus.NOT_APPLICABLE
        assert mobile.status == RuleStatus.FAILED

    def test_context_condition_on_extra_key(self, evaluator):
        rule = make_rule(
            type="conditional",
            condition={"type": "context", "property": "region", "value": "eu"},
            rule={"type": "boolean", "dataPath": "flag", "expectedValue": True},
        )
        evaluation = evaluator.evaluate(rule, {"flag": True}, AnalysisContext(region="eu"))
        assert evaluation.status == RuleStatus.PASSED


class TestCompositeRules:
    """Test composite modes"""

    def _composite(self, mode, **extra):
        return make_rule(
            type="composite",
            mode=mode,
            rules=[
                {"type": "boolean", "dataPath": "a", "expectedValue": True},
                {"type": "boolean", "dataPath": "b", "expectedValue": True},
            ],
            **extra,
        )

    def test_all_mode(self, evaluator, context):
        rule = self._composite("all")
        assert evaluator.evaluate(rule, {"a": True, "b": True}, context).score == 100

        failed = evaluator.evaluate(rule, {"a": True, "b": False}, context)
        assert failed.status == RuleStatus.FAILED
        assert failed.score == 50
        assert len(failed.issues) == 1
        assert failed.recommendation

    def test_any_mode(self, evaluator, context):
        rule = self._composite("any")
        passed = evaluator.evaluate(rule, {"a": True, "b": False}, context)
        assert passed.status == RuleStatus.PASSED
        assert passed.score == 100
        assert evaluator.evaluate(rule, {"a": False, "b": False}, context).status == RuleStatus.FAILED

    def test_weighted_mode(self, evaluator, context):
        lenient = self._composite("weighted", passScore=40)
        strict = self._composite("weighted", passScore=80)
        finding = {"a": True, "b": False}

        assert evaluator.evaluate(lenient, finding, context).status == RuleStatus.PASSED
        assert evaluator.evaluate(lenient, finding, context).score == 50
        assert evaluator.evaluate(strict, finding, context).status == RuleStatus.FAILED

    def test_not_applicable_children_ignored(self, evaluator, context):
        rule = self._composite("all")
        assert evaluator.evaluate(rule, {"a": True}, context).status == RuleStatus.PASSED
        assert evaluator.evaluate(rule, {}, context).status == RuleStatus.NOT_APPLICABLE

    def test_errored_child_counts_as_failure(self, evaluator, context):
        rule = make_rule(
            type="composite",
            mode="any",
            rules=[{"type": "threshold", "dataPath": "a", "threshold": 1}],
        )
        evaluation = evaluator.evaluate(rule, {"a": "broken"}, context)
        assert evaluation.status == RuleStatus.FAILED
        assert evaluation.score == 0


class TestCustomRules:
    """Test scorer delegation"""

    def _ratio_rule(self, minimum=0.9):
        return make_rule(
            type="custom",
            scorer="ratio",
            dataPath=None,
            params={"numerator_path": "ok", "denominator_path": "total", "minimum": minimum},
        )

    def test_ratio_scorer(self, evaluator, context):
        passed = evaluator.evaluate(self._ratio_rule(), {"ok": 9, "total": 10}, context)
        failed = evaluator.evaluate(self._ratio_rule(), {"ok": 5, "total": 10}, context)

        assert passed.status == RuleStatus.PASSED
        assert passed.score == 90
        assert failed.status == RuleStatus.FAILED
        assert failed.score == 50
        assert failed.recommendation

    def test_zero_denominator_is_not_applicable(self, evaluator, context):
        evaluation = evaluator.evaluate(self._ratio_rule(), {"ok": 0, "total": 0}, context)
        assert evaluation.status == RuleStatus.NOT_APPLICABLE

    def test_unknown_scorer_is_error_not_pass(self, evaluator, context):
        rule = make_rule(type="custom", scorer="does_not_exist")
        evaluation = evaluator.evaluate(rule, {"value": 1}, context)
        assert evaluation.status == RuleStatus.ERROR
        assert evaluation.score == 0

    def test_register_scorer(self, evaluator, context):
        evaluator.register_scorer(
            "always_half",
            lambda rule, finding, ctx: ScorerResult(status=RuleStatus.FAILED, score=50, message="half"),
        )
        evaluation = evaluator.evaluate(make_rule(type="custom", scorer="always_half"), {}, context)
        assert evaluation.status == RuleStatus.FAILED
        assert evaluation.score == 50
        assert "always_half" in evaluator.scorer_names


class TestContextualModifications:
    """Test device and page-type adjustments"""

    def test_mobile_weight(self, evaluator):
        rule = make_rule(type="boolean", expectedValue=True, weight=2, mobileWeight=5)

        mobile = evaluator.evaluate(rule, {"value": True}, AnalysisContext(device="mobile"))
        desktop = evaluator.evaluate(rule, {"value": True}, AnalysisContext(device="desktop"))

        assert mobile.weight == 5
        assert desktop.weight == 2

    def test_ecommerce_modifier_is_clamped(self, evaluator):
        boosted = make_rule(type="boolean", expectedValue=True, ecommerceModifier=1.5)
        halved = make_rule(type="boolean", expectedValue=True, ecommerceModifier=0.5)
        context = AnalysisContext(type="ecommerce")

        assert evaluator.evaluate(boosted, {"value": True}, context).score == 100
        assert evaluator.evaluate(halved, {"value": True}, context).score == 50

    def test_disabled_contextual_rules(self, evaluator):
        rule = make_rule(type="boolean", expectedValue=True, mobileWeight=5)
        context = AnalysisContext(device="mobile", contextual_rules=False)
        assert evaluator.evaluate(rule, {"value": True}, context).weight == 1


class TestCachingAndDeterminism:
    """Test evaluation cache integration"""

    def test_repeated_evaluation_hits_cache(self, cached_evaluator, context):
        rule = make_rule()
        first = cached_evaluator.evaluate(rule, {"value": 10}, context)
        second = cached_evaluator.evaluate(rule, {"value": 10}, context)

        assert second is first
        assert cached_evaluator.cache.stats()["hits"] == 1

    def test_identical_inputs_identical_results(self, evaluator, context):
        rule = make_rule()
        assert evaluator.evaluate(rule, {"value": 10}, context) == evaluator.evaluate(rule, {"value": 10}, context)

    def test_errors_are_not_cached(self, cached_evaluator, context):
        cached_evaluator.evaluate(make_rule(), {"value": "bad"}, context)
        assert cached_evaluator.cache.size() == 0

    def test_every_kind_has_a_handler(self):
        evaluator = RuleEvaluator()
        assert set(evaluator._handlers) == set(RuleKind)
