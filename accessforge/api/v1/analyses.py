# accessforge/api/v1/analyses.py
from fastapi import APIRouter, Depends

from accessforge.api.dependencies import get_rules_engine
from accessforge.detectors.plugin_manager import PluginManager
from accessforge.rules.engine import RulesEngine
from accessforge.schemas.report import AnalysisRequest, Report
from accessforge.services.orchestrator import AnalysisOrchestrator

router = APIRouter()


@router.post("/", response_model=Report)
async def create_analysis(
    analysis_in: AnalysisRequest,
    engine: RulesEngine = Depends(get_rules_engine),
):
    """Analyze a previously-extracted page model"""
    plugins = PluginManager.from_page_model(analysis_in.page)
    orchestrator = AnalysisOrchestrator(plugins, engine)
    try:
        return await orchestrator.analyze(analysis_in.page, analysis_in.context)
    finally:
        await plugins.cleanup_all()
