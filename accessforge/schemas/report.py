# accessforge/schemas/report.py
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from accessforge.core.config import settings
from accessforge.core.constants import NON_COMPLIANT, FAILING_GRADE
from accessforge.rules.models import ComplianceScore, Recommendation, RuleEvaluation, RulesResult
from accessforge.schemas.context import AnalysisContext

ANALYZER_NAME = "AccessibilityAnalyzer"


class ProducerOutcome(BaseModel):
    """Output of one detector, heuristic or enhancer call"""

    name: str
    success: bool
    data: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
    duration_ms: float = 0.0

    @property
    def score(self) -> Optional[float]:
        value = self.data.get("score")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return float(value)


class DetectorSummary(BaseModel):
    total_detectors: int = 0
    successful_detectors: int = 0
    failed_detectors: int = 0
    success_rate: float = 0.0


class PerformanceStats(BaseModel):
    total_time_ms: float = 0.0
    average_time_ms: float = 0.0
    slowest_ms: float = 0.0
    fastest_ms: float = 0.0


class DetectorPhaseResult(BaseModel):
    results: Dict[str, ProducerOutcome] = Field(default_factory=dict)
    summary: DetectorSummary = Field(default_factory=DetectorSummary)
    performance: PerformanceStats = Field(default_factory=PerformanceStats)

    def successful(self) -> Dict[str, Dict[str, Any]]:
        return {name: r.data for name, r in self.results.items() if r.success}


class HeuristicPhaseResult(BaseModel):
    results: Dict[str, ProducerOutcome] = Field(default_factory=dict)
    insights: List[Dict[str, Any]] = Field(default_factory=list)
    recommendations: List[Recommendation] = Field(default_factory=list)

    def successful(self) -> Dict[str, Dict[str, Any]]:
        return {name: r.data for name, r in self.results.items() if r.success}


class EnhancementResult(BaseModel):
    name: Optional[str] = None
    success: bool = False
    error: Optional[str] = None
    insights: List[Dict[str, Any]] = Field(default_factory=list)
    recommendations: List[Recommendation] = Field(default_factory=list)
    data: Dict[str, Any] = Field(default_factory=dict)
    duration_ms: float = 0.0


class Report(BaseModel):
    """Final analysis report; always returned, never raised"""

    analysis_id: str
    analyzer: str = ANALYZER_NAME
    version: str = Field(default_factory=lambda: settings.VERSION)
    success: bool = True
    error: Optional[str] = None
    overall_score: int = 0
    compliance_level: str = NON_COMPLIANT
    accessibility_grade: str = FAILING_GRADE
    compliance_scores: Dict[str, ComplianceScore] = Field(default_factory=dict)
    rule_evaluations: List[RuleEvaluation] = Field(default_factory=list)
    recommendations: List[Recommendation] = Field(default_factory=list)
    detector_results: Optional[DetectorPhaseResult] = None
    heuristic_results: Optional[HeuristicPhaseResult] = None
    rules_results: Optional[RulesResult] = None
    enhancement_results: Optional[EnhancementResult] = None
    phases: Dict[str, bool] = Field(default_factory=dict)
    findings: List[Dict[str, Any]] = Field(default_factory=list)
    analysis_metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def failed(
        cls,
        analysis_id: str,
        error: str,
        context: Optional[AnalysisContext] = None,
    ) -> "Report":
        return cls(
            analysis_id=analysis_id,
            success=False,
            error=error,
            findings=[
                {
                    "type": "error",
                    "category": "Analysis Error",
                    "message": f"Accessibility analysis failed: {error}",
                    "recommendation": "Check page model validity and retry the analysis",
                }
            ],
            analysis_metadata={
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "context": context.type if context else None,
                "error": True,
            },
        )


class AnalysisRequest(BaseModel):
    """Body of POST /analyses"""

    page: Dict[str, Any]
    context: AnalysisContext = Field(default_factory=AnalysisContext)
