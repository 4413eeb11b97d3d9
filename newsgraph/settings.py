"""
Centralized graph-engine settings via pydantic-settings.

All configuration is loaded from environment variables (prefix
``NEWSGRAPH_``) with defaults that reproduce the documented scoring
constants. Deployments override via .env file or container environment.
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GraphSettings(BaseSettings):
    """Graph construction configuration with env-var binding."""

    model_config = SettingsConfigDict(
        env_prefix="NEWSGRAPH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -- Size bounds --
    max_nodes: int = Field(100, ge=0)
    max_links: int = Field(200, ge=0)

    # -- Result node confidence --
    source_weight: float = Field(0.4, ge=0.0)
    relevance_weight: float = Field(0.3, ge=0.0)
    impact_weight: float = Field(0.3, ge=0.0)
    default_score: float = Field(0.5, ge=0.0, le=1.0)

    # -- Implicit links --
    co_mention_strength: float = Field(0.5, ge=0.0, le=1.0)
    direct_mention_strength: float = Field(0.7, ge=0.0, le=1.0)

    # -- Pruning score: degree_weight*degree + source_count_weight*sourceCount + confidence_weight*confidence --
    degree_weight: float = 2.0
    source_count_weight: float = 1.0
    confidence_weight: float = 5.0

    # -- Logging --
    log_level: str = "INFO"
    log_json: bool = False


_settings: GraphSettings | None = None


def get_settings() -> GraphSettings:
    """Return a cached singleton GraphSettings instance."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = GraphSettings()
    return _settings


def reset_settings() -> None:
    """Drop the cached instance so the next call re-reads the environment."""
    global _settings  # noqa: PLW0603
    _settings = None
