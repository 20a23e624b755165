"""
Tradelog Analytics Configuration

Analytics policy constants loaded from environment variables with
pydantic-settings. Every value has a default so the core works without
any configuration.
"""

import logging
from functools import lru_cache

from pydantic import Field, ValidationError as PydanticValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.errors import ConfigurationError

logger = logging.getLogger(__name__)


class AnalyticsSettings(BaseSettings):
    """
    Analytics policy configuration.

    Values are read from TRADELOG_* environment variables (or a .env file).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TRADELOG_",
        case_sensitive=False,
        extra="ignore",
    )

    initial_capital: float = Field(
        default=10_000.0,
        gt=0,
        description="Starting equity for the equity curve when the user has none set.",
    )
    default_total_capital: float = Field(
        default=500_000.0,
        gt=0,
        description="Capital used for exposure percentages when the user has none set.",
    )
    risk_fallback_ratio: float = Field(
        default=0.5,
        gt=0,
        le=10,
        description="Assumed risk as a fraction of reward when a trade has no stop-loss.",
    )
    monthly_window_months: int = Field(
        default=6,
        ge=1,
        le=120,
        description="Number of trailing calendar months in the monthly breakdown.",
    )
    drawdown_low_threshold: float = Field(
        default=5.0,
        ge=0,
        le=100,
        description="Max drawdown percentage at or below which risk is Low.",
    )
    drawdown_moderate_threshold: float = Field(
        default=15.0,
        ge=0,
        le=100,
        description="Max drawdown percentage at or below which risk is Moderate.",
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Log level for configure_logging().",
    )
    log_json: bool = Field(
        default=False,
        description="Emit JSON structured logs.",
    )

    @model_validator(mode="after")
    def validate_thresholds(self) -> "AnalyticsSettings":
        """Drawdown bands must be ordered."""
        if self.drawdown_low_threshold > self.drawdown_moderate_threshold:
            raise ValueError(
                "drawdown_low_threshold must not exceed drawdown_moderate_threshold"
            )
        return self


def load_settings(**overrides) -> AnalyticsSettings:
    """
    Build settings from the environment, applying explicit overrides.

    Raises:
        ConfigurationError: If any value fails validation
    """
    try:
        settings = AnalyticsSettings(**overrides)
    except PydanticValidationError as e:
        raise ConfigurationError(detail=str(e), original_error=e) from e
    logger.debug(
        "Analytics settings loaded",
        extra={"ctx_risk_fallback_ratio": settings.risk_fallback_ratio},
    )
    return settings


@lru_cache()
def get_settings() -> AnalyticsSettings:
    """Get cached analytics settings."""
    return load_settings()
