# accessforge/services/orchestrator.py
import asyncio
import copy
import functools
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from accessforge.core.config import settings
from accessforge.core.constants import (
    FAILING_GRADE,
    GRADE_BANDS,
    NON_COMPLIANT,
    OVERALL_COMPLIANCE_BANDS,
    PHASE_WEIGHTS,
    RuleStatus,
)
from accessforge.core.exceptions import PluginError
from accessforge.core.logging import analysis_logger, logger as default_logger
from accessforge.detectors.plugin_manager import PluginManager
from accessforge.rules.engine import RulesEngine
from accessforge.rules.models import Recommendation, RulesResult
from accessforge.rules.recommendations import RecommendationBuilder, normalize_recommendation
from accessforge.rules.scoring import band, clamp_score
from accessforge.schemas.context import AnalysisContext
from accessforge.schemas.report import (
    DetectorPhaseResult,
    DetectorSummary,
    EnhancementResult,
    HeuristicPhaseResult,
    PerformanceStats,
    ProducerOutcome,
    Report,
)


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _tagged_recommendations(
    items: Any,
    source: str,
    default_type: Optional[str] = None,
) -> List[Recommendation]:
    if not isinstance(items, list):
        return []
    recommendations = []
    for item in items:
        if isinstance(item, Mapping) and default_type:
            item = {"type": default_type, **item}
        recommendation = normalize_recommendation(item, source=source)
        if recommendation is not None:
            recommendations.append(recommendation)
    return recommendations


class AnalysisOrchestrator:
    """
    Runs one accessibility analysis through its phases.

    1. Detectors run concurrently; each failure is recorded, never raised.
    2. Heuristics run sequentially in registration order and see the full
       detector-phase output.
    3. The rules engine evaluates every successful finding.
    4. The optional enhancer adds insights and recommendations.
    5. Scores and recommendations are combined into a Report.

    Any error that escapes a phase ends the analysis with a failed Report;
    analyze() itself never raises.
    """

    def __init__(
        self,
        plugins: PluginManager,
        rules_engine: RulesEngine,
        logger: Optional[logging.Logger] = None,
        recommendation_builder: Optional[RecommendationBuilder] = None,
        detector_timeout: Optional[float] = None,
        heuristic_timeout: Optional[float] = None,
        enhancer_timeout: Optional[float] = None,
        enforce_timeouts: Optional[bool] = None,
    ):
        self.plugins = plugins
        self.rules_engine = rules_engine
        self.logger = logger or default_logger.getChild("services")
        self.recommendation_builder = recommendation_builder or RecommendationBuilder()
        self.detector_timeout = detector_timeout or settings.DETECTOR_TIMEOUT_SECONDS
        self.heuristic_timeout = heuristic_timeout or settings.HEURISTIC_TIMEOUT_SECONDS
        self.enhancer_timeout = enhancer_timeout or settings.ENHANCER_TIMEOUT_SECONDS
        self.enforce_timeouts = settings.ENFORCE_TIMEOUTS if enforce_timeouts is None else enforce_timeouts

    async def analyze(
        self,
        page: Mapping[str, Any],
        context: Optional[AnalysisContext] = None,
    ) -> Report:
        context = context or AnalysisContext()
        analysis_id = f"accessibility_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"
        started_at = datetime.now(timezone.utc)
        start = time.perf_counter()
        log = analysis_logger(self.logger, analysis_id)

        log.info("Starting accessibility analysis")

        try:
            await self.plugins.initialize()

            detectors = await self._run_detector_phase(page, context, analysis_id)
            heuristics = await self._run_heuristic_phase(detectors, context, analysis_id)
            rules = await self._run_rules_phase(detectors, heuristics, context, analysis_id)

            enhancement = None
            if self.plugins.enhancer is not None:
                enhancement = await self._run_enhancement_phase(detectors, heuristics, rules, context, analysis_id)

            report = self._combine(
                analysis_id=analysis_id,
                context=context,
                detectors=detectors,
                heuristics=heuristics,
                rules=rules,
                enhancement=enhancement,
                started_at=started_at,
                duration_ms=(time.perf_counter() - start) * 1000,
            )
        except Exception as e:
            log.exception(f"Accessibility analysis failed: {e}")
            return Report.failed(analysis_id, str(e) or type(e).__name__, context)

        log.info(f"Accessibility analysis completed: score {report.overall_score}, {report.compliance_level}")
        return report

    async def _run_producer(
        self,
        name: str,
        call: Callable[[], Awaitable[Any]],
        timeout: float,
        phase: str,
        analysis_id: str,
    ) -> ProducerOutcome:
        init_error = self.plugins.initialization_error(name)
        if init_error is not None:
            return ProducerOutcome(name=name, success=False, error=f"Initialization failed: {init_error}")

        start = time.perf_counter()
        try:
            if self.enforce_timeouts:
                output = await asyncio.wait_for(call(), timeout=timeout)
            else:
                output = await call()
            if not isinstance(output, Mapping):
                raise PluginError(f"{name} returned {type(output).__name__}, expected a mapping")
            data = copy.deepcopy(dict(output))
        except asyncio.TimeoutError:
            error = f"Timed out after {timeout}s"
        except Exception as e:
            error = str(e) or type(e).__name__
        else:
            return ProducerOutcome(
                name=name,
                success=True,
                data=data,
                duration_ms=(time.perf_counter() - start) * 1000,
            )

        self.logger.warning(
            f"{phase.capitalize()} {name} failed: {error}",
            extra={"analysis_id": analysis_id, "phase": phase, "detector": name},
        )
        return ProducerOutcome(
            name=name,
            success=False,
            error=error,
            duration_ms=(time.perf_counter() - start) * 1000,
        )

    async def _run_detector_phase(
        self,
        page: Mapping[str, Any],
        context: AnalysisContext,
        analysis_id: str,
    ) -> DetectorPhaseResult:
        detectors = self.plugins.detectors
        page = copy.deepcopy(dict(page))

        outcomes = await asyncio.gather(
            *[
                self._run_producer(
                    detector.name,
                    functools.partial(detector.detect, page, context),
                    self.detector_timeout,
                    "detector",
                    analysis_id,
                )
                for detector in detectors
            ],
            return_exceptions=True,
        )

        results: Dict[str, ProducerOutcome] = {}
        for detector, outcome in zip(detectors, outcomes):
            if isinstance(outcome, BaseException):
                outcome = ProducerOutcome(name=detector.name, success=False, error=str(outcome) or type(outcome).__name__)
            results[detector.name] = outcome

        total = len(results)
        successful = [r for r in results.values() if r.success]
        timings = [r.duration_ms for r in successful]

        return DetectorPhaseResult(
            results=results,
            summary=DetectorSummary(
                total_detectors=total,
                successful_detectors=len(successful),
                failed_detectors=total - len(successful),
                success_rate=round(len(successful) / total * 100, 2) if total else 0.0,
            ),
            performance=PerformanceStats(
                total_time_ms=round(sum(timings), 3),
                average_time_ms=round(_mean(timings), 3),
                slowest_ms=round(max(timings, default=0.0), 3),
                fastest_ms=round(min(timings, default=0.0), 3),
            ),
        )

    async def _run_heuristic_phase(
        self,
        detectors: DetectorPhaseResult,
        context: AnalysisContext,
        analysis_id: str,
    ) -> HeuristicPhaseResult:
        detector_output = detectors.model_dump()
        results: Dict[str, ProducerOutcome] = {}
        insights: List[Dict[str, Any]] = []
        recommendations: List[Recommendation] = []

        for heuristic in self.plugins.heuristics:
            outcome = await self._run_producer(
                heuristic.name,
                functools.partial(heuristic.analyze, copy.deepcopy(detector_output), context),
                self.heuristic_timeout,
                "heuristic",
                analysis_id,
            )
            results[heuristic.name] = outcome
            if not outcome.success:
                continue

            for insight in outcome.data.get("insights") or []:
                if isinstance(insight, Mapping):
                    insights.append({"source": heuristic.name, "type": "heuristic_insight", **insight})
            recommendations.extend(
                _tagged_recommendations(
                    outcome.data.get("recommendations"),
                    source=heuristic.name,
                    default_type="heuristic_recommendation",
                )
            )

        return HeuristicPhaseResult(results=results, insights=insights, recommendations=recommendations)

    async def _run_rules_phase(
        self,
        detectors: DetectorPhaseResult,
        heuristics: HeuristicPhaseResult,
        context: AnalysisContext,
        analysis_id: str,
    ) -> RulesResult:
        outputs = {**detectors.successful(), **heuristics.successful()}
        try:
            return await self.rules_engine.evaluate(outputs, context)
        except Exception as e:
            self.logger.exception(
                f"Rules engine failed: {e}",
                extra={"analysis_id": analysis_id, "phase": "rules"},
            )
            return self.rules_engine.failed_result(str(e) or type(e).__name__)

    async def _run_enhancement_phase(
        self,
        detectors: DetectorPhaseResult,
        heuristics: HeuristicPhaseResult,
        rules: RulesResult,
        context: AnalysisContext,
        analysis_id: str,
    ) -> EnhancementResult:
        enhancer = self.plugins.enhancer
        outcome = await self._run_producer(
            enhancer.name,
            functools.partial(
                enhancer.enhance,
                detectors.model_dump(),
                heuristics.model_dump(),
                rules.model_dump(),
                context,
            ),
            self.enhancer_timeout,
            "enhancer",
            analysis_id,
        )
        if not outcome.success:
            return EnhancementResult(
                name=enhancer.name,
                success=False,
                error=outcome.error,
                duration_ms=outcome.duration_ms,
            )

        insights = [i for i in outcome.data.get("insights") or [] if isinstance(i, Mapping)]
        recommendations = _tagged_recommendations(
            outcome.data.get("recommendations"),
            source=enhancer.name,
            default_type="ai_recommendation",
        )
        return EnhancementResult(
            name=enhancer.name,
            success=True,
            insights=insights,
            recommendations=recommendations[: settings.ENHANCER_MAX_RECOMMENDATIONS],
            data=outcome.data,
            duration_ms=outcome.duration_ms,
        )

    def _combine(
        self,
        analysis_id: str,
        context: AnalysisContext,
        detectors: DetectorPhaseResult,
        heuristics: HeuristicPhaseResult,
        rules: RulesResult,
        enhancement: Optional[EnhancementResult],
        started_at: datetime,
        duration_ms: float,
    ) -> Report:
        detector_avg = _mean([r.score for r in detectors.results.values() if r.success and r.score is not None])
        heuristic_avg = _mean([r.score for r in heuristics.results.values() if r.success and r.score is not None])
        rules_score = rules.overall_score if rules.success else 0

        overall = clamp_score(
            detector_avg * PHASE_WEIGHTS["detectors"]
            + heuristic_avg * PHASE_WEIGHTS["heuristics"]
            + rules_score * PHASE_WEIGHTS["rules"]
        )

        detector_recommendations: List[Recommendation] = []
        for name, outcome in detectors.results.items():
            if outcome.success:
                detector_recommendations.extend(
                    _tagged_recommendations(outcome.data.get("recommendations"), source=name)
                )

        recommendations = self.recommendation_builder.merge(
            detector_recommendations,
            heuristics.recommendations,
            rules.recommendations,
            enhancement.recommendations if enhancement and enhancement.success else [],
        )

        phases = {
            "detectors": detectors.summary.failed_detectors == 0,
            "heuristics": all(r.success for r in heuristics.results.values()),
            "rules": rules.success,
        }
        if enhancement is not None:
            phases["enhancement"] = enhancement.success

        return Report(
            analysis_id=analysis_id,
            success=True,
            overall_score=overall,
            compliance_level=band(overall, OVERALL_COMPLIANCE_BANDS, NON_COMPLIANT),
            accessibility_grade=band(overall, GRADE_BANDS, FAILING_GRADE),
            compliance_scores=rules.compliance_scores,
            rule_evaluations=rules.rule_evaluations,
            recommendations=recommendations,
            detector_results=detectors,
            heuristic_results=heuristics,
            rules_results=rules,
            enhancement_results=enhancement,
            phases=phases,
            findings=self._findings(rules),
            analysis_metadata={
                "timestamp": started_at.isoformat(),
                "completed_at": datetime.now(timezone.utc).isoformat(),
                "duration_ms": round(duration_ms, 3),
                "context": context.type,
                "device": context.device,
                "url": context.url,
                "standards": list(context.standards),
                "target_level": context.target_level,
                "detectors_run": len(detectors.results),
                "heuristics_run": len(heuristics.results),
                "rules_evaluated": len(rules.rule_evaluations),
                "enhanced": bool(enhancement and enhancement.success),
            },
        )

    @staticmethod
    def _findings(rules: RulesResult) -> List[Dict[str, Any]]:
        findings = []
        for evaluation in rules.rule_evaluations:
            if evaluation.status != RuleStatus.FAILED:
                continue
            for issue in evaluation.issues:
                findings.append(
                    {
                        "type": "violation",
                        "category": evaluation.category,
                        "rule_id": evaluation.rule_id,
                        "standard": evaluation.standard,
                        "level": evaluation.level,
                        "detector": evaluation.detector,
                        "severity": issue.severity,
                        "message": issue.message,
                        "recommendation": issue.recommendation or evaluation.recommendation,
                    }
                )
        return findings
