# accessforge/rules/aggregator.py
from collections import defaultdict
from typing import Dict, List, Sequence

from accessforge.core.constants import (
    FAILING_GRADE,
    GRADE_BANDS,
    HIGHEST_LEGAL_RISK,
    LEGAL_RISK_BANDS,
    LEVEL_COMPLIANCE_THRESHOLD,
    NOT_COMPLIANT,
    PRIMARY_STANDARD,
    USER_IMPACT_BANDS,
    WORST_USER_IMPACT,
    RuleStatus,
    SeverityLevel,
    WCAGLevel,
)
from accessforge.rules.models import BusinessImpact, ComplianceScore, RuleEvaluation, RuleSummary
from accessforge.rules.scoring import band, round_half_up

LEVEL_FIELDS = {
    WCAGLevel.A.value: "level_a",
    WCAGLevel.AA.value: "level_aa",
    WCAGLevel.AAA.value: "level_aaa",
}


def _applicable(evaluations: Sequence[RuleEvaluation]) -> List[RuleEvaluation]:
    return [e for e in evaluations if e.status != RuleStatus.NOT_APPLICABLE]


def _critically_failed(evaluation: RuleEvaluation) -> bool:
    return evaluation.status == RuleStatus.FAILED and any(
        issue.severity == SeverityLevel.CRITICAL.value for issue in evaluation.issues
    )


def _average(evaluations: Sequence[RuleEvaluation]) -> int:
    scored = _applicable(evaluations)
    if not scored:
        return 0
    return round_half_up(sum(e.score for e in scored) / len(scored))


class ComplianceAggregator:
    """Turns a flat list of rule evaluations into scores and verdicts."""

    def compliance_scores(self, evaluations: Sequence[RuleEvaluation]) -> Dict[str, ComplianceScore]:
        """
        Group evaluations by standard and level.

        Each group is the rounded mean of its applicable scores; a group
        with nothing applicable scores 0. Levels holding a critical failure
        are listed so the verdict can refuse them.
        """
        by_standard: Dict[str, List[RuleEvaluation]] = defaultdict(list)
        for evaluation in evaluations:
            by_standard[evaluation.standard].append(evaluation)

        scores: Dict[str, ComplianceScore] = {}
        for standard, group in by_standard.items():
            by_level: Dict[str, List[RuleEvaluation]] = defaultdict(list)
            for evaluation in group:
                by_level[evaluation.level].append(evaluation)

            scores[standard] = ComplianceScore(
                overall=_average(group),
                **{field: _average(by_level.get(level, [])) for level, field in LEVEL_FIELDS.items()},
                critical_failures=sorted({e.level for e in group if _critically_failed(e)}),
            )
        return scores

    def weighted_score(self, evaluations: Sequence[RuleEvaluation]) -> int:
        scored = _applicable(evaluations)
        total_weight = sum(e.weight for e in scored)
        if total_weight <= 0:
            return 0
        return round_half_up(sum(e.score * e.weight for e in scored) / total_weight)

    def compliance_level(self, scores: Dict[str, ComplianceScore]) -> str:
        """
        Highest WCAG 2.1 level claimed by the primary standard.

        A level is claimed only when it and every level below it average at
        least the threshold and hold no critical failure.
        """
        primary = scores.get(PRIMARY_STANDARD)
        if primary is None:
            return NOT_COMPLIANT

        verdict = NOT_COMPLIANT
        for level, field in LEVEL_FIELDS.items():
            if getattr(primary, field) < LEVEL_COMPLIANCE_THRESHOLD or level in primary.critical_failures:
                break
            verdict = f"WCAG 2.1 {level}"
        return verdict

    def grade(self, score: int) -> str:
        return band(score, GRADE_BANDS, FAILING_GRADE)

    def legal_risk(self, scores: Dict[str, ComplianceScore]) -> str:
        primary = scores.get(PRIMARY_STANDARD)
        level_aa = primary.level_aa if primary else 0
        return band(level_aa, LEGAL_RISK_BANDS, HIGHEST_LEGAL_RISK)

    def user_impact(self, score: int) -> str:
        return band(score, USER_IMPACT_BANDS, WORST_USER_IMPACT)

    def business_impact(self, score: int) -> BusinessImpact:
        return BusinessImpact(
            seo_impact="High" if score < 70 else "Medium" if score < 85 else "Low",
            user_experience="Poor" if score < 60 else "Fair" if score < 80 else "Good",
            conversion_risk="High" if score < 65 else "Medium" if score < 80 else "Low",
            brand_reputation="At Risk" if score < 70 else "Protected",
        )

    def summary(self, evaluations: Sequence[RuleEvaluation]) -> RuleSummary:
        by_status: Dict[str, int] = defaultdict(int)
        by_severity: Dict[str, int] = defaultdict(int)
        for evaluation in evaluations:
            by_status[evaluation.status] += 1
            for issue in evaluation.issues:
                by_severity[issue.severity] += 1

        return RuleSummary(
            total_rules=len(evaluations),
            passed_rules=by_status[RuleStatus.PASSED.value],
            failed_rules=by_status[RuleStatus.FAILED.value],
            error_rules=by_status[RuleStatus.ERROR.value],
            not_applicable_rules=by_status[RuleStatus.NOT_APPLICABLE.value],
            critical_issues=by_severity[SeverityLevel.CRITICAL.value],
            high_priority_issues=by_severity[SeverityLevel.HIGH.value],
            medium_priority_issues=by_severity[SeverityLevel.MEDIUM.value],
            low_priority_issues=by_severity[SeverityLevel.LOW.value],
        )
