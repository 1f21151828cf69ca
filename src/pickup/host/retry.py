"""Activity retry policy.

Transient failures are retried with exponential backoff until the
start-to-close budget is spent. Errors listed as non-retryable fail the
activity on the first attempt.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import structlog

from pickup.errors import NonRetryableError
from pickup.host.errors import ActivityError

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class RetryPolicy:
    initial_interval: timedelta = timedelta(seconds=1)
    backoff_coefficient: float = 2.0
    maximum_interval: timedelta = timedelta(seconds=100)
    start_to_close_timeout: timedelta = timedelta(hours=1)
    maximum_attempts: int | None = None
    non_retryable: tuple[type[BaseException], ...] = (NonRetryableError,)

    def intervals(self):
        """Yield the wait before each retry, capped at ``maximum_interval``."""
        interval = self.initial_interval
        while True:
            yield min(interval, self.maximum_interval)
            interval = interval * self.backoff_coefficient

    def run(
        self,
        name: str,
        fn: Callable[..., Any],
        args: tuple,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ) -> Any:
        """Call ``fn(*args)`` until it succeeds or the policy gives up.

        Raises:
            ActivityError: the last failure, once no retry is left.
        """
        deadline = clock() + self.start_to_close_timeout
        intervals = self.intervals()
        attempt = 0

        while True:
            attempt += 1
            try:
                return fn(*args)
            except self.non_retryable as exc:
                raise ActivityError(name, attempt, str(exc)) from exc
            except Exception as exc:
                if self.maximum_attempts is not None and attempt >= self.maximum_attempts:
                    raise ActivityError(name, attempt, str(exc)) from exc

                wait = next(intervals)
                if clock() + wait > deadline:
                    raise ActivityError(name, attempt, str(exc)) from exc

                logger.warning(
                    "activity_retry",
                    activity=name,
                    attempt=attempt,
                    wait_seconds=wait.total_seconds(),
                    error=str(exc),
                )
                sleep(wait.total_seconds())
