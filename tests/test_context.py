# tests/test_context.py
"""
Analysis context tests
Tests: defaults from settings, level normalization, weight validation
"""

import pytest
from pydantic import ValidationError

from accessforge.schemas.context import AnalysisContext


class TestTargetLevel:
    """Test how the target WCAG level is stored"""

    def test_default_is_plain_string(self):
        context = AnalysisContext()

        assert context.target_level == "AA"
        assert type(context.target_level) is str

    def test_default_matches_explicit(self):
        assert AnalysisContext().model_dump() == AnalysisContext(target_level="AA").model_dump()

    def test_lowercase_normalized(self):
        context = AnalysisContext(target_level=" aaa ")

        assert context.target_level == "AAA"
        assert type(context.target_level) is str

    def test_unknown_level_rejected(self):
        with pytest.raises(ValidationError):
            AnalysisContext(target_level="AAAA")


class TestRuleWeights:
    def test_negative_weight_rejected(self):
        with pytest.raises(ValidationError, match="wcag21_1_4_3"):
            AnalysisContext(rule_weights={"wcag21_1_4_3": -1})

    def test_extra_keys_available_to_lookup(self):
        context = AnalysisContext(region="eu")

        assert context.lookup("region") == "eu"
        assert context.lookup("device") == "desktop"
