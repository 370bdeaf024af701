# accessforge/detectors/page_model.py
"""
Producers backed by a previously-extracted page model.

A page model carries one finding per producer:

    {
        "url": "https://example.com",
        "detectors": {"color_contrast": {"score": 82, "color_contrast": {...}}},
        "heuristics": {"cognitive_accessibility": {"score": 74, ...}},
    }
"""

import copy
from typing import Any, Dict, Mapping

from accessforge.core.exceptions import PluginError
from accessforge.detectors.base import BaseDetectorPlugin, BaseHeuristicPlugin
from accessforge.schemas.context import AnalysisContext


def _section(page: Mapping[str, Any], phase: str, name: str) -> Dict[str, Any]:
    findings = page.get(phase)
    if not isinstance(findings, Mapping) or name not in findings:
        raise PluginError(f"Page model has no {phase} finding for '{name}'")

    finding = findings[name]
    if not isinstance(finding, Mapping):
        raise PluginError(f"Page model {phase} finding for '{name}' must be an object")
    return copy.deepcopy(dict(finding))


class PageModelDetector(BaseDetectorPlugin):
    """Replays the detector finding recorded in the page model"""

    description = "Page-model detector finding"

    def __init__(self, name: str):
        self.name = name

    async def detect(self, page: Dict[str, Any], context: AnalysisContext) -> Dict[str, Any]:
        return _section(page, "detectors", self.name)


class PageModelHeuristic(BaseHeuristicPlugin):
    """Replays the heuristic finding recorded in the page model"""

    description = "Page-model heuristic finding"

    def __init__(self, name: str, page: Mapping[str, Any]):
        self.name = name
        self._page = page

    async def analyze(self, detector_results: Dict[str, Any], context: AnalysisContext) -> Dict[str, Any]:
        return _section(self._page, "heuristics", self.name)
