# accessforge/schemas/context.py
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from accessforge.core.config import settings
from accessforge.core.constants import WCAGLevel
from accessforge.rules.models import RuleDefinition, normalize_rule_data


class AnalysisContext(BaseModel):
    """
    Run-wide configuration shared by every phase of one analysis.

    Extra keys are kept so `context` conditions can test arbitrary run
    metadata (for example ``{"region": "eu"}``).
    """

    model_config = ConfigDict(frozen=True, extra="allow", use_enum_values=True)

    type: str = "web_page"
    device: str = "desktop"
    standards: List[str] = Field(default_factory=lambda: list(settings.default_standards))
    target_level: WCAGLevel = Field(default_factory=lambda: settings.DEFAULT_TARGET_LEVEL, validate_default=True)
    strict_mode: bool = Field(default_factory=lambda: settings.STRICT_MODE)
    contextual_rules: bool = Field(default_factory=lambda: settings.CONTEXTUAL_RULES)
    custom_rules: List[RuleDefinition] = Field(default_factory=list)
    rule_weights: Dict[str, float] = Field(default_factory=dict)
    url: Optional[str] = None

    @field_validator("target_level", mode="before")
    @classmethod
    def normalize_target_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("custom_rules", mode="before")
    @classmethod
    def normalize_custom_rules(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [normalize_rule_data(rule) if isinstance(rule, dict) else rule for rule in v]
        return v

    @field_validator("rule_weights")
    @classmethod
    def check_weights(cls, v: Dict[str, float]) -> Dict[str, float]:
        negative = [rule_id for rule_id, weight in v.items() if weight < 0]
        if negative:
            raise ValueError(f"Rule weights must be non-negative: {', '.join(negative)}")
        return v

    def lookup(self, name: str) -> Any:
        """Look up a declared field or extra key by name."""
        return self.model_dump().get(name)
