# accessforge/detectors/plugin_manager.py
import logging
from typing import Any, Dict, List, Mapping, Optional

from accessforge.core.logging import logger as default_logger
from accessforge.detectors.base import (
    BaseDetectorPlugin,
    BaseEnhancerPlugin,
    BaseHeuristicPlugin,
    BasePlugin,
)
from accessforge.detectors.page_model import PageModelDetector, PageModelHeuristic


class PluginManager:
    """Ordered registries of detectors and heuristics plus an optional enhancer"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or default_logger.getChild("detectors")
        self._detectors: Dict[str, BaseDetectorPlugin] = {}
        self._heuristics: Dict[str, BaseHeuristicPlugin] = {}
        self._enhancer: Optional[BaseEnhancerPlugin] = None
        self._init_errors: Dict[str, str] = {}
        self._initialized = False

    @classmethod
    def from_page_model(
        cls,
        page: Mapping[str, Any],
        logger: Optional[logging.Logger] = None,
    ) -> "PluginManager":
        """Build producers for every detector and heuristic section of a page model"""
        manager = cls(logger=logger)

        detectors = page.get("detectors") or {}
        for name in detectors:
            manager.register_detector(PageModelDetector(name))

        heuristics = page.get("heuristics") or {}
        for name in heuristics:
            manager.register_heuristic(PageModelHeuristic(name, page))

        return manager

    def register_detector(self, detector: BaseDetectorPlugin) -> None:
        if detector.name in self._detectors:
            raise ValueError(f"Detector already registered: {detector.name}")
        self._detectors[detector.name] = detector
        self._initialized = False

    def register_heuristic(self, heuristic: BaseHeuristicPlugin) -> None:
        if heuristic.name in self._heuristics:
            raise ValueError(f"Heuristic already registered: {heuristic.name}")
        self._heuristics[heuristic.name] = heuristic
        self._initialized = False

    def set_enhancer(self, enhancer: Optional[BaseEnhancerPlugin]) -> None:
        self._enhancer = enhancer
        self._initialized = False

    @property
    def detectors(self) -> List[BaseDetectorPlugin]:
        return list(self._detectors.values())

    @property
    def heuristics(self) -> List[BaseHeuristicPlugin]:
        return list(self._heuristics.values())

    @property
    def enhancer(self) -> Optional[BaseEnhancerPlugin]:
        return self._enhancer

    def _all_plugins(self) -> List[BasePlugin]:
        plugins: List[BasePlugin] = [*self._detectors.values(), *self._heuristics.values()]
        if self._enhancer is not None:
            plugins.append(self._enhancer)
        return plugins

    async def initialize(self) -> None:
        """Initialize every plugin once, recording failures instead of raising"""
        if self._initialized:
            return

        self.logger.info("Initializing analysis plugins")

        for plugin in self._all_plugins():
            if plugin.name in self._init_errors:
                continue
            try:
                await plugin.initialize()
                self.logger.info(f"Registered plugin: {plugin.name} v{plugin.version}")
            except Exception as e:
                self._init_errors[plugin.name] = str(e) or type(e).__name__
                self.logger.warning(
                    f"Plugin {plugin.name} failed to initialize: {e}",
                    extra={"detector": plugin.name},
                )

        self._initialized = True

    def initialization_error(self, name: str) -> Optional[str]:
        return self._init_errors.get(name)

    async def cleanup_all(self) -> None:
        """Cleanup all plugins"""
        for plugin in self._all_plugins():
            try:
                await plugin.cleanup()
            except Exception as e:
                self.logger.warning(
                    f"Plugin {plugin.name} failed to clean up: {e}",
                    extra={"detector": plugin.name},
                )
