"""otakuproxy Settings Configuration Model.

Main Settings class that consolidates all configuration domains.
"""

from __future__ import annotations

import logging
from pathlib import Path

import toml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from otakuproxy.config.models.app_settings import AppSettings, LoggingSettings
from otakuproxy.config.models.cache_settings import CacheSettings
from otakuproxy.config.models.queue_settings import QueuesSettings
from otakuproxy.config.models.scraper_settings import ScraperSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Settings facade providing unified configuration access.

    Every field can be overridden from the environment, for example
    ``OTAKUPROXY_CACHE__REDIS__HOST=redis`` or
    ``OTAKUPROXY_SCRAPER__MAX_RETRIES=5``.
    """

    model_config = SettingsConfigDict(
        env_prefix="OTAKUPROXY_",
        env_nested_delimiter="__",
        env_ignore_empty=True,
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=AppSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    scraper: ScraperSettings = Field(default_factory=ScraperSettings)
    queues: QueuesSettings = Field(default_factory=QueuesSettings)

    @classmethod
    def from_toml_file(cls, file_path: str | Path) -> Settings:
        """Load settings from TOML file with environment variable overrides."""
        file_path = Path(file_path)
        if not file_path.exists():
            msg = f"Configuration file not found: {file_path}"
            raise FileNotFoundError(msg)

        raw_config = toml.load(file_path)
        return cls(**raw_config)

    def to_toml_file(self, file_path: str | Path) -> None:
        """Save settings to TOML file.

        The Redis password is written too; config files are not logs.
        """
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        config_dict = self.model_dump(exclude_none=True)

        with open(file_path, "w", encoding="utf-8") as f:
            toml.dump(config_dict, f)
