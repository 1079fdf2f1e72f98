"""Application and logging configuration models."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from otakuproxy import __version__


class AppSettings(BaseModel):
    """Application configuration."""

    name: str = Field(default="otakuproxy", description="Application name")
    version: str = Field(default=__version__, description="Application version")
    environment: Literal["development", "production", "test"] = Field(
        default="development",
        description="Deployment environment",
    )

    @property
    def is_test(self) -> bool:
        return self.environment == "test"


class LoggingSettings(BaseModel):
    """Logging configuration.

    Console output goes through rich; file output is always JSON lines.
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )
    file: str | None = Field(default=None, description="JSON log file path")
    console_output: bool = Field(default=True, description="Use rich console output")


__all__ = [
    "AppSettings",
    "LoggingSettings",
]
