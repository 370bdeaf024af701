# accessforge/core/config.py
from typing import List, Optional
from pathlib import Path
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Locate the .env file relative to the project root
BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_FILE = BASE_DIR / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=str(ENV_FILE), extra="ignore")

    # Application
    PROJECT_NAME: str = "AccessForge"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Analysis defaults
    DEFAULT_STANDARDS: str = "wcag21,wcag22,section508"
    DEFAULT_TARGET_LEVEL: str = "AA"
    STRICT_MODE: bool = False
    CONTEXTUAL_RULES: bool = True

    # Rule evaluation cache
    ENABLE_RULE_CACHE: bool = True
    RULE_CACHE_CAPACITY: int = 1000
    RULE_CACHE_TTL_SECONDS: Optional[float] = None

    # Producer deadlines
    DETECTOR_TIMEOUT_SECONDS: float = 30.0
    HEURISTIC_TIMEOUT_SECONDS: float = 30.0
    ENHANCER_TIMEOUT_SECONDS: float = 60.0
    ENFORCE_TIMEOUTS: bool = True

    # Recommendation caps
    MAX_RECOMMENDATIONS: int = 20
    RULES_MAX_RECOMMENDATIONS: int = 6
    ENHANCER_MAX_RECOMMENDATIONS: int = 8

    @field_validator("DEFAULT_TARGET_LEVEL")
    @classmethod
    def normalize_target_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ("A", "AA", "AAA"):
            raise ValueError(f"Unsupported target level: {v}")
        return level

    @field_validator("RULE_CACHE_CAPACITY")
    @classmethod
    def check_cache_capacity(cls, v: int) -> int:
        if v < 1:
            raise ValueError("RULE_CACHE_CAPACITY must be at least 1")
        return v

    @property
    def default_standards(self) -> List[str]:
        return [s.strip() for s in self.DEFAULT_STANDARDS.split(",") if s.strip()]


settings = Settings()
