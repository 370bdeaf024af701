# accessforge/rules/engine.py
import logging
import time
from typing import Any, Dict, List, Mapping, Optional

from accessforge.core.config import settings
from accessforge.core.constants import ALL_DETECTORS
from accessforge.core.exceptions import RuleCatalogueError
from accessforge.core.logging import logger as default_logger
from accessforge.rules.aggregator import ComplianceAggregator
from accessforge.rules.cache import EvaluationCache
from accessforge.rules.catalogue import CATALOGUE_VERSION, STANDARDS_VERSION, load_catalogue
from accessforge.rules.evaluator import RuleEvaluator
from accessforge.rules.models import RuleDefinition, RuleEvaluation, RulesResult
from accessforge.rules.recommendations import RecommendationBuilder
from accessforge.schemas.context import AnalysisContext

ENGINE_NAME = "AccessibilityRulesEngine"


class RulesEngine:
    """
    Evaluates producer findings against the rule catalogue.

    One engine can be shared by many analyses; its evaluation cache is the
    only state that outlives a run.
    """

    def __init__(
        self,
        catalogue: Optional[Mapping[str, List[Any]]] = None,
        evaluator: Optional[RuleEvaluator] = None,
        cache: Optional[EvaluationCache] = None,
        aggregator: Optional[ComplianceAggregator] = None,
        recommendation_builder: Optional[RecommendationBuilder] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.name = ENGINE_NAME
        self.version = settings.VERSION
        self.logger = logger or default_logger.getChild("rules")
        self.catalogue: Dict[str, List[RuleDefinition]] = load_catalogue(catalogue)

        if evaluator is not None:
            self.evaluator = evaluator
            self.cache = evaluator.cache
        else:
            if cache is None and settings.ENABLE_RULE_CACHE:
                cache = EvaluationCache(
                    capacity=settings.RULE_CACHE_CAPACITY,
                    ttl_seconds=settings.RULE_CACHE_TTL_SECONDS,
                )
            self.cache = cache
            self.evaluator = RuleEvaluator(cache=cache, logger=self.logger)

        self.aggregator = aggregator or ComplianceAggregator()
        self.recommendation_builder = recommendation_builder or RecommendationBuilder()

        self.logger.info(
            f"Rules engine initialized with {self.rule_count()} rules "
            f"across {len(self.catalogue)} standards"
        )

    def rule_count(self) -> int:
        return sum(len(rules) for rules in self.catalogue.values())

    def rules_for(self, standard: Optional[str] = None) -> List[RuleDefinition]:
        """Catalogue rules, optionally restricted to one standard."""
        if standard is not None:
            return list(self.catalogue.get(standard, []))
        return [rule for rules in self.catalogue.values() for rule in rules]

    def active_rules(self, context: AnalysisContext) -> List[RuleDefinition]:
        """
        Rules that apply to a run.

        Catalogue rulesets for the selected standards plus custom rules,
        re-weighted by `rule_weights` and filtered by the rule's page-type
        allow-list. Every WCAG level is evaluated; `target_level` is only
        reported. Rule ids must be unique across the run because they key
        the evaluation cache.
        """
        rules: List[RuleDefinition] = []
        for standard in dict.fromkeys(context.standards):
            rules.extend(self.catalogue.get(standard, []))
        rules.extend(context.custom_rules)

        active = []
        seen = set()
        for rule in rules:
            if rule.id in seen:
                raise RuleCatalogueError(f"Duplicate rule id '{rule.id}' in analysis rule set")
            seen.add(rule.id)
            if rule.id in context.rule_weights:
                rule = rule.model_copy(update={"weight": context.rule_weights[rule.id]})
            if rule.contexts is not None and context.type not in rule.contexts:
                continue
            active.append(rule)
        return active

    def evaluate_findings(
        self,
        producer_outputs: Mapping[str, Mapping[str, Any]],
        context: AnalysisContext,
    ) -> List[RuleEvaluation]:
        """Evaluate every applicable rule against every producer's finding."""
        rules = self.active_rules(context)
        evaluations: List[RuleEvaluation] = []

        for producer, finding in producer_outputs.items():
            if not isinstance(finding, Mapping):
                continue
            for rule in rules:
                if producer not in rule.applicable_detectors and ALL_DETECTORS not in rule.applicable_detectors:
                    continue
                evaluation = self.evaluator.evaluate(rule, dict(finding), context)
                evaluations.append(evaluation.model_copy(update={"detector": producer}))

        return evaluations

    async def evaluate(
        self,
        producer_outputs: Mapping[str, Mapping[str, Any]],
        context: Optional[AnalysisContext] = None,
    ) -> RulesResult:
        """Run the rules phase and aggregate it into a RulesResult."""
        context = context or AnalysisContext()
        start = time.perf_counter()

        evaluations = self.evaluate_findings(producer_outputs, context)

        scores = self.aggregator.compliance_scores(evaluations)
        overall = self.aggregator.weighted_score(evaluations)
        compliance_level = self.aggregator.compliance_level(scores)
        elapsed_ms = (time.perf_counter() - start) * 1000

        self.logger.info(
            f"Evaluated {len(evaluations)} rules: score {overall}, {compliance_level}",
            extra={"phase": "rules"},
        )

        return RulesResult(
            engine=self.name,
            version=self.version,
            success=True,
            overall_score=overall,
            compliance_level=compliance_level,
            accessibility_grade=self.aggregator.grade(overall),
            rule_evaluations=evaluations,
            summary=self.aggregator.summary(evaluations),
            compliance_scores=scores,
            business_impact=self.aggregator.business_impact(overall),
            legal_risk=self.aggregator.legal_risk(scores),
            user_impact=self.aggregator.user_impact(overall),
            recommendations=self.recommendation_builder.for_rules(evaluations, compliance_level),
            evaluation_time_ms=round(elapsed_ms, 3),
            configuration={
                "standards": list(context.standards),
                "target_level": context.target_level,
                "strict_mode": context.strict_mode,
                "context": context.type,
                "rules_cached": self.cache.size() if self.cache is not None else 0,
            },
            standards_version={"catalogue": CATALOGUE_VERSION, **STANDARDS_VERSION},
        )

    def failed_result(self, error: str) -> RulesResult:
        return RulesResult.failed(
            error,
            engine=self.name,
            version=self.version,
            standards_version={"catalogue": CATALOGUE_VERSION, **STANDARDS_VERSION},
        )

    def cache_stats(self) -> Dict[str, Any]:
        if self.cache is None:
            return {"enabled": False, "size": 0}
        return {"enabled": True, **self.cache.stats()}

    def clear_cache(self) -> None:
        if self.cache is not None:
            self.cache.clear()
            self.logger.info("Rule evaluation cache cleared")
