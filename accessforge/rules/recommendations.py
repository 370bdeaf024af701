# accessforge/rules/recommendations.py
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from accessforge.core.config import settings
from accessforge.core.constants import (
    NOT_COMPLIANT,
    PRIORITY_ORDER,
    RecommendationPriority,
    RuleStatus,
    SeverityLevel,
)
from accessforge.core.logging import logger
from accessforge.rules.models import MAX_RECOMMENDATION_EXAMPLES, Recommendation, RuleEvaluation

RecommendationLike = Union[Recommendation, Mapping[str, Any]]

BLOCKING_SEVERITIES = (SeverityLevel.CRITICAL.value, SeverityLevel.HIGH.value)


def priority_rank(recommendation: Recommendation) -> int:
    return PRIORITY_ORDER.get(recommendation.priority, PRIORITY_ORDER[RecommendationPriority.ENHANCEMENT.value])


def normalize_recommendation(item: RecommendationLike, source: Optional[str] = None) -> Optional[Recommendation]:
    """
    Coerce a producer-supplied recommendation into a Recommendation.

    Entries without a usable title are dropped (None).
    """
    if isinstance(item, Recommendation):
        recommendation = item
    elif isinstance(item, Mapping):
        if not item.get("title"):
            return None
        try:
            recommendation = Recommendation.model_validate(dict(item))
        except ValidationError as e:
            logger.warning(f"Dropping malformed recommendation from {source or 'unknown source'}: {e}")
            return None
    else:
        return None

    if source and not recommendation.source:
        recommendation = recommendation.model_copy(update={"source": source})
    return recommendation


class RecommendationBuilder:
    """Derives rules-phase recommendations and merges them with everyone else's."""

    def __init__(
        self,
        max_recommendations: Optional[int] = None,
        rules_max_recommendations: Optional[int] = None,
    ):
        self.max_recommendations = max_recommendations or settings.MAX_RECOMMENDATIONS
        self.rules_max_recommendations = rules_max_recommendations or settings.RULES_MAX_RECOMMENDATIONS

    def for_rules(self, evaluations: Sequence[RuleEvaluation], compliance_level: str) -> List[Recommendation]:
        recommendations: List[Recommendation] = []

        blocking = [
            e
            for e in evaluations
            if e.status == RuleStatus.FAILED and any(i.severity in BLOCKING_SEVERITIES for i in e.issues)
        ]
        if blocking:
            recommendations.append(
                Recommendation(
                    type="critical_fixes",
                    priority=RecommendationPriority.CRITICAL,
                    title="Address Critical Accessibility Issues",
                    description=f"{len(blocking)} critical accessibility violations must be fixed",
                    action="Immediately address critical accessibility violations",
                    effort="High",
                    impact="Critical",
                    source="rules",
                    examples=[e.rule_name for e in blocking[:MAX_RECOMMENDATION_EXAMPLES]],
                )
            )

        if compliance_level == NOT_COMPLIANT:
            recommendations.append(
                Recommendation(
                    type="compliance",
                    priority=RecommendationPriority.HIGH,
                    title="Achieve WCAG 2.1 AA Compliance",
                    description="Site does not meet minimum accessibility standards",
                    action="Implement comprehensive accessibility improvements",
                    effort="High",
                    impact="High",
                    source="rules",
                )
            )

        return recommendations[: self.rules_max_recommendations]

    def merge(self, *groups: Iterable[RecommendationLike]) -> List[Recommendation]:
        """
        Merge recommendation groups into one prioritized list.

        Sorted by priority (stable, so earlier groups win ties), deduplicated
        by title keeping the first occurrence, and capped.
        """
        normalized: List[Recommendation] = []
        for group in groups:
            for item in group or []:
                recommendation = normalize_recommendation(item)
                if recommendation is not None:
                    normalized.append(recommendation)

        normalized.sort(key=priority_rank)

        merged: List[Recommendation] = []
        seen = set()
        for recommendation in normalized:
            if recommendation.title in seen:
                continue
            seen.add(recommendation.title)
            merged.append(recommendation)
        return merged[: self.max_recommendations]
