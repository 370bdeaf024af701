# accessforge/detectors/__init__.py
from accessforge.detectors.base import BaseDetectorPlugin, BaseEnhancerPlugin, BaseHeuristicPlugin
from accessforge.detectors.page_model import PageModelDetector, PageModelHeuristic
from accessforge.detectors.plugin_manager import PluginManager

__all__ = [
    "BaseDetectorPlugin",
    "BaseHeuristicPlugin",
    "BaseEnhancerPlugin",
    "PageModelDetector",
    "PageModelHeuristic",
    "PluginManager",
]
