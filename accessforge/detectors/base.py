# accessforge/detectors/base.py
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from accessforge.schemas.context import AnalysisContext


class BasePlugin(ABC):
    """Lifecycle shared by every finding producer"""

    name: str
    version: str = "1.0.0"
    description: str = ""

    async def initialize(self) -> None:
        """Initialize plugin resources"""
        pass

    async def cleanup(self) -> None:
        """Cleanup resources after analysis"""
        pass


class BaseDetectorPlugin(BasePlugin):
    """Abstract base class for detectors; detectors run concurrently"""

    @abstractmethod
    async def detect(self, page: Dict[str, Any], context: AnalysisContext) -> Dict[str, Any]:
        """
        Inspect a page and return one finding.

        The finding may carry a numeric `score` (0-100) and a list of
        `recommendations`; everything else is rule data.
        """
        pass


class BaseHeuristicPlugin(BasePlugin):
    """Abstract base class for heuristics; heuristics run in registration order"""

    @abstractmethod
    async def analyze(self, detector_results: Dict[str, Any], context: AnalysisContext) -> Dict[str, Any]:
        """Derive a finding from the full detector-phase output"""
        pass


class BaseEnhancerPlugin(BasePlugin):
    """Optional post-rules enhancer; it may add recommendations but never rescore"""

    @abstractmethod
    async def enhance(
        self,
        detectors: Dict[str, Any],
        heuristics: Dict[str, Any],
        rules: Dict[str, Any],
        context: Optional[AnalysisContext] = None,
    ) -> Dict[str, Any]:
        """Return insights and recommendations based on all prior phases"""
        pass
