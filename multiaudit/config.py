"""Runtime configuration.

Settings are read from the environment (``MULTIAUDIT_*``) and can be
overridden per invocation by the command line.
"""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_EXCLUDE_DIRS = [
    ".git",
    ".hg",
    ".mypy_cache",
    ".pytest_cache",
    ".tox",
    ".venv",
    "__pycache__",
    "build",
    "dist",
    "node_modules",
    "venv",
]


class AuditSettings(BaseSettings):
    """Process-wide defaults for analysis, fixing and watch mode."""

    model_config = SettingsConfigDict(env_prefix="MULTIAUDIT_", case_sensitive=False)

    min_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    conflict_line_window: int = Field(default=2, ge=0)
    debounce_ms: int = Field(default=500, ge=0)
    poll_interval: float = Field(default=1.0, gt=0)
    top_n: int = Field(default=20, ge=1)
    exclude_dirs: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDE_DIRS))
    fail_fast: bool = False
    auto_fix: bool = False
    complexity_warning: int = 10
    complexity_critical: int = 20


class OrchestratorOptions(BaseModel):
    """Options for a single orchestrator run."""

    auto_fix: bool = False
    fail_fast: bool = False
    exclude_agents: list[str] = Field(default_factory=list)
    min_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    conflict_line_window: int = Field(default=2, ge=0)

    @classmethod
    def from_settings(cls, settings: AuditSettings, **overrides) -> "OrchestratorOptions":
        """Build run options from settings, letting explicit values win."""
        values = {
            "auto_fix": settings.auto_fix,
            "fail_fast": settings.fail_fast,
            "min_confidence": settings.min_confidence,
            "conflict_line_window": settings.conflict_line_window,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


_settings: AuditSettings | None = None


def get_settings() -> AuditSettings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = AuditSettings()
    return _settings
