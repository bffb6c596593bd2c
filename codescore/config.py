from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings

from codescore.metrics import SeverityPenalties, StructuralPolicy
from codescore.models import ReviewType
from codescore.scoring import ScoreWeights

# Search for .env in: CWD first, then ~/.codescore/.env (global)
GLOBAL_ENV_FILE = Path.home() / ".codescore" / ".env"


class DetectorSelection(str, Enum):
    ALL = "all"
    SYNTAX = "syntax"
    SECURITY = "security"


class ReviewConfig(BaseModel):
    """Per-invocation configuration handed to the engine."""

    model_config = ConfigDict(frozen=True)

    weights: ScoreWeights = Field(default_factory=ScoreWeights)
    enabled_detectors: DetectorSelection = DetectorSelection.ALL
    disabled_rules: frozenset[str] = frozenset()
    timeout_ms: int = Field(default=10_000, gt=0)
    max_auto_fixes_per_line: int = Field(default=1, ge=0)
    max_workers: int = Field(default=4, ge=1)
    max_payload_bytes: int = Field(default=1_048_576, gt=0)
    severity_penalties: SeverityPenalties = Field(default_factory=SeverityPenalties)
    structure: StructuralPolicy = Field(default_factory=StructuralPolicy)


class Settings(BaseSettings):
    # Review defaults
    timeout_ms: int = 10_000
    max_workers: int = 4
    max_payload_bytes: int = 1_048_576
    max_auto_fixes_per_line: int = 1
    review_type: ReviewType = ReviewType.FULL
    enabled_detectors: DetectorSelection = DetectorSelection.ALL
    disabled_rules: list[str] = []

    # Slack
    slack_webhook_url: str = ""
    slack_enabled: bool = True
    alert_score_threshold: int = 60
    slack_timeout: float = 10.0

    model_config = {
        "env_file": (".env", str(GLOBAL_ENV_FILE)),
        "env_file_encoding": "utf-8",
        "env_prefix": "CODESCORE_",
        "extra": "ignore",
    }

    def review_config(self, **overrides) -> ReviewConfig:
        """Build the explicit ReviewConfig the engine receives."""
        values = {
            "timeout_ms": self.timeout_ms,
            "max_workers": self.max_workers,
            "max_payload_bytes": self.max_payload_bytes,
            "max_auto_fixes_per_line": self.max_auto_fixes_per_line,
            "enabled_detectors": self.enabled_detectors,
            "disabled_rules": frozenset(self.disabled_rules),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return ReviewConfig(**values)


settings = Settings()
