"""Scraper and retry configuration models."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from otakuproxy.shared.constants import RetryConfig, ScraperConfig


class RetrySettings(BaseModel):
    """Exponential backoff between attempts, in seconds."""

    initial_delay: float = Field(default=RetryConfig.INITIAL_DELAY, ge=0)
    max_delay: float = Field(default=RetryConfig.MAX_DELAY, ge=0)
    backoff_factor: float = Field(default=RetryConfig.BACKOFF_FACTOR, ge=1)


class ScraperSettings(BaseModel):
    """Outbound fetch configuration."""

    source_base_url: str = Field(
        default=ScraperConfig.SOURCE_BASE_URL,
        description="Catalog site every relative path is resolved against",
    )
    timeout: float = Field(
        default=ScraperConfig.TIMEOUT,
        gt=0,
        description="Per-attempt timeout in seconds",
    )
    max_retries: int = Field(
        default=ScraperConfig.MAX_RETRIES,
        ge=0,
        description="Retries after the first attempt",
    )
    delay_min: float = Field(
        default=ScraperConfig.DELAY_MIN,
        ge=0,
        description="Minimum pacing delay and spacing between requests, in seconds",
    )
    delay_max: float = Field(
        default=ScraperConfig.DELAY_MAX,
        ge=0,
        description="Maximum pacing delay in seconds",
    )
    retry: RetrySettings = Field(default_factory=RetrySettings)

    @model_validator(mode="after")
    def _check_delay_bounds(self) -> ScraperSettings:
        if self.delay_max < self.delay_min:
            msg = f"delay_max ({self.delay_max}) must be >= delay_min ({self.delay_min})"
            raise ValueError(msg)
        return self


__all__ = [
    "RetrySettings",
    "ScraperSettings",
]
