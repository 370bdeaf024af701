"""
Pytest configuration and fixtures
Shared test setup for all test modules
"""

import asyncio
from typing import Any, Dict, Optional

import pytest
from fastapi.testclient import TestClient

from accessforge.detectors.base import BaseDetectorPlugin, BaseEnhancerPlugin, BaseHeuristicPlugin
from accessforge.main import app
from accessforge.rules.cache import EvaluationCache
from accessforge.rules.engine import RulesEngine
from accessforge.rules.evaluator import RuleEvaluator
from accessforge.rules.models import parse_rule
from accessforge.schemas.context import AnalysisContext


class StaticDetector(BaseDetectorPlugin):
    """Detector returning a fixed finding, optionally after a delay or with an error"""

    version = "0.0.1"

    def __init__(self, name: str, output: Any = None, delay: float = 0.0, error: Optional[Exception] = None):
        self.name = name
        self.output = output if output is not None else {}
        self.delay = delay
        self.error = error
        self.calls = 0
        self.cleaned_up = False

    async def detect(self, page: Dict[str, Any], context: AnalysisContext) -> Dict[str, Any]:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.output

    async def cleanup(self) -> None:
        self.cleaned_up = True


class StaticHeuristic(BaseHeuristicPlugin):
    version = "0.0.1"

    def __init__(self, name: str, output: Any = None, error: Optional[Exception] = None):
        self.name = name
        self.output = output if output is not None else {}
        self.error = error
        self.seen: Optional[Dict[str, Any]] = None

    async def analyze(self, detector_results: Dict[str, Any], context: AnalysisContext) -> Dict[str, Any]:
        self.seen = detector_results
        if self.error is not None:
            raise self.error
        return self.output


class StaticEnhancer(BaseEnhancerPlugin):
    name = "ai_enhancement"
    version = "0.0.1"

    def __init__(self, output: Any = None, delay: float = 0.0, error: Optional[Exception] = None):
        self.output = output if output is not None else {}
        self.delay = delay
        self.error = error

    async def enhance(self, detectors, heuristics, rules, context=None) -> Dict[str, Any]:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.output


def make_rule(**overrides: Any):
    """Build a rule from portable-schema fields with sensible defaults"""
    data = {
        "id": "test_rule",
        "name": "Test Rule",
        "category": "Testing",
        "standard": "wcag21",
        "level": "AA",
        "type": "threshold",
        "dataPath": "value",
        "threshold": 50,
        "operator": "gte",
    }
    data.update(overrides)
    return parse_rule(data)


@pytest.fixture
def context() -> AnalysisContext:
    return AnalysisContext(standards=["wcag21", "wcag22", "section508"], target_level="AA")


@pytest.fixture
def evaluator() -> RuleEvaluator:
    return RuleEvaluator()


@pytest.fixture
def cached_evaluator() -> RuleEvaluator:
    return RuleEvaluator(cache=EvaluationCache(capacity=100))


@pytest.fixture
def engine() -> RulesEngine:
    return RulesEngine(cache=EvaluationCache(capacity=100))


@pytest.fixture
def page_model() -> Dict[str, Any]:
    """Page model with one finding per producer"""
    return {
        "url": "https://example.com",
        "detectors": {
            "color_contrast": {
                "score": 80,
                "color_contrast": {"minimum_ratio": 3.0},
                "recommendations": [
                    {"priority": "medium", "title": "Darken secondary text", "description": "Grey text is too light"}
                ],
            },
            "wcag_compliance": {
                "score": 70,
                "images": {"missing_alt": ["hero.png", "logo.svg", "banner.jpg"]},
                "semantic_structure": {"proper_headings": True},
                "language": {"lang_attribute_present": True},
            },
            "keyboard_navigation": {
                "score": 90,
                "keyboard_accessibility": {"accessible_percentage": 100, "keyboard_traps": []},
                "focus_management": {"focusable_elements": 12, "visible_focus": True},
                "navigation": {"skip_links_present": True},
            },
        },
        "heuristics": {
            "cognitive_accessibility": {
                "score": 60,
                "readability": {"grade_level": 8},
                "insights": [{"message": "Dense paragraphs on landing page"}],
                "recommendations": [{"priority": "low", "title": "Shorten paragraphs"}],
            },
        },
    }


@pytest.fixture(scope="function")
def client() -> TestClient:
    """Create test client with application lifespan"""
    with TestClient(app) as test_client:
        yield test_client
