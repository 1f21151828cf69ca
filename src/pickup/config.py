"""Environment-driven settings for the pickup services."""

import os
from datetime import timedelta

from pydantic import BaseModel, Field

from pickup.host.retry import RetryPolicy

DEFAULT_DATABASE_URI = "sqlite+pysqlite:///:memory:"


class Settings(BaseModel):
    env: str = "development"
    database_uri: str = DEFAULT_DATABASE_URI
    notification_url: str | None = None
    timer_poll_seconds: float = Field(default=5.0, gt=0)

    retry_initial_seconds: float = Field(default=1.0, ge=0)
    retry_backoff: float = Field(default=2.0, ge=1)
    retry_maximum_seconds: float = Field(default=100.0, ge=0)
    retry_budget_seconds: float = Field(default=3600.0, gt=0)

    @classmethod
    def from_env(cls) -> "Settings":
        values = {
            "env": os.getenv("PICKUP_ENV"),
            "database_uri": os.getenv("PICKUP_DATABASE_URI"),
            "notification_url": os.getenv("PICKUP_NOTIFICATION_URL"),
            "timer_poll_seconds": os.getenv("PICKUP_TIMER_POLL_SECONDS"),
            "retry_initial_seconds": os.getenv("PICKUP_RETRY_INITIAL_SECONDS"),
            "retry_backoff": os.getenv("PICKUP_RETRY_BACKOFF"),
            "retry_maximum_seconds": os.getenv("PICKUP_RETRY_MAXIMUM_SECONDS"),
            "retry_budget_seconds": os.getenv("PICKUP_RETRY_BUDGET_SECONDS"),
        }
        return cls.model_validate({key: value for key, value in values.items() if value is not None})

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            initial_interval=timedelta(seconds=self.retry_initial_seconds),
            backoff_coefficient=self.retry_backoff,
            maximum_interval=timedelta(seconds=self.retry_maximum_seconds),
            start_to_close_timeout=timedelta(seconds=self.retry_budget_seconds),
        )
