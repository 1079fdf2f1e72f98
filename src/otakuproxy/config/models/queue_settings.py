"""Request queue configuration models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from otakuproxy.shared.constants import QueueConfig


class QueueSettings(BaseModel):
    """Concurrency and start-rate limits for one request queue.

    Attributes:
        concurrency: Maximum simultaneously active tasks
        interval: Length of the rate window in seconds
        interval_cap: Maximum tasks started per window
        task_timeout: Seconds before an active task is abandoned (None: never)
    """

    model_config = {"frozen": True}

    concurrency: int = Field(default=QueueConfig.SCRAPER_CONCURRENCY, ge=1)
    interval: float = Field(default=QueueConfig.SCRAPER_INTERVAL, gt=0)
    interval_cap: int = Field(default=QueueConfig.SCRAPER_INTERVAL_CAP, ge=1)
    task_timeout: float | None = Field(default=QueueConfig.SCRAPER_TASK_TIMEOUT, gt=0)


def _priority_queue_defaults() -> QueueSettings:
    return QueueSettings(
        concurrency=QueueConfig.PRIORITY_CONCURRENCY,
        interval=QueueConfig.PRIORITY_INTERVAL,
        interval_cap=QueueConfig.PRIORITY_INTERVAL_CAP,
        task_timeout=QueueConfig.PRIORITY_TASK_TIMEOUT,
    )


class QueuesSettings(BaseModel):
    """The two provisioned queues."""

    scraper: QueueSettings = Field(default_factory=QueueSettings)
    priority: QueueSettings = Field(default_factory=_priority_queue_defaults)


__all__ = [
    "QueueSettings",
    "QueuesSettings",
]
