"""The context a saga runs against.

Every nondeterministic thing a saga does (reading the clock, drawing a
random value, calling the outside world, starting a timer, choosing between
inputs) goes through the context. While recorded decisions remain, the
context hands them back in order instead of acting again. Past the end of
the recorded history it acts for real and records what happened.
"""

import json
import random
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

import structlog

from pickup.host.errors import ActivityError, NonDeterminismError, SagaSuspended
from pickup.host.execution import EntryKind, Execution, HistoryEntry
from pickup.host.retry import RetryPolicy
from pickup.host.selector import Selected, Selector, Timer


class ReplaySafeLogger:
    """Structlog wrapper that stays silent while the saga is replaying."""

    def __init__(self, context: "SagaContext", logger: structlog.stdlib.BoundLogger) -> None:
        self._context = context
        self._logger = logger

    def _log(self, method: str, event: str, **kwargs: Any) -> None:
        if not self._context.is_replaying:
            getattr(self._logger, method)(event, **kwargs)

    def debug(self, event: str, **kwargs: Any) -> None:
        self._log("debug", event, **kwargs)

    def info(self, event: str, **kwargs: Any) -> None:
        self._log("info", event, **kwargs)

    def warning(self, event: str, **kwargs: Any) -> None:
        self._log("warning", event, **kwargs)

    def error(self, event: str, **kwargs: Any) -> None:
        self._log("error", event, **kwargs)


class SagaContext:
    def __init__(
        self,
        execution: Execution,
        clock: Callable[[], datetime],
        retry_policy: RetryPolicy,
        sleep: Callable[[float], None],
    ) -> None:
        self.execution = execution
        self._clock = clock
        self._retry_policy = retry_policy
        self._sleep = sleep

        self._decisions = execution.decisions
        self._cursor = 0
        self._consumed = {
            entry.payload["input_sequence"] for entry in self._decisions if entry.kind is EntryKind.SELECTED
        }
        self.logger = ReplaySafeLogger(
            self, structlog.get_logger("pickup.saga").bind(execution_id=execution.id, saga=execution.saga_name)
        )

    @property
    def execution_id(self) -> str:
        return self.execution.id

    @property
    def is_replaying(self) -> bool:
        return self._cursor < len(self._decisions)

    # -------------------------------------------------------------------
    # Recording helpers
    # -------------------------------------------------------------------
    def _replay(self, kind: EntryKind, name: str) -> HistoryEntry | None:
        """Return the next recorded decision, or None once past the recorded tail."""
        if not self.is_replaying:
            return None

        entry = self._decisions[self._cursor]
        if entry.kind is not kind or entry.name != name:
            raise NonDeterminismError(entry.sequence, f"{entry.kind.value}:{entry.name}", f"{kind.value}:{name}")
        self._cursor += 1
        return entry

    def _record(self, kind: EntryKind, name: str, payload: Any) -> HistoryEntry:
        return self.execution.append(kind, name, payload, self._clock())

    # -------------------------------------------------------------------
    # Side effects
    # -------------------------------------------------------------------
    def side_effect(self, name: str, fn: Callable[[], Any]) -> Any:
        """Run ``fn`` once and return its recorded value on every replay.

        The value must be JSON serialisable.
        """
        recorded = self._replay(EntryKind.SIDE_EFFECT, name)
        if recorded is not None:
            return recorded.payload["value"]

        value = json.loads(json.dumps(fn()))
        self._record(EntryKind.SIDE_EFFECT, name, {"value": value})
        return value

    def new_id(self) -> str:
        return self.side_effect("new_id", lambda: str(uuid.uuid4()))

    def random_digits(self, length: int) -> str:
        """Uniform, zero-padded decimal string of ``length`` digits."""
        return self.side_effect("random_digits", lambda: f"{random.randrange(10**length):0{length}d}")

    def now(self) -> datetime:
        return datetime.fromisoformat(self.side_effect("now", lambda: self._clock().isoformat()))

    # -------------------------------------------------------------------
    # Activities
    # -------------------------------------------------------------------
    def execute_activity(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Call an activity under the retry policy and record its outcome.

        Arguments and results must be JSON serialisable. A failure that
        exhausts the retry policy is recorded and raised as ActivityError,
        both now and on every replay.
        """
        name = fn.__name__
        recorded = self._replay(EntryKind.ACTIVITY, name)
        if recorded is not None:
            if "error" in recorded.payload:
                raise ActivityError(name, recorded.payload["attempts"], recorded.payload["error"])
            return recorded.payload["result"]

        try:
            result = self._retry_policy.run(name, fn, args, clock=self._clock, sleep=self._sleep)
        except ActivityError as exc:
            self._record(EntryKind.ACTIVITY, name, {"error": exc.cause, "attempts": exc.attempts})
            raise

        result = json.loads(json.dumps(result))
        self._record(EntryKind.ACTIVITY, name, {"result": result})
        self.logger.debug("activity_completed", activity=name)
        return result

    # -------------------------------------------------------------------
    # Timers
    # -------------------------------------------------------------------
    def start_timer(self, name: str, duration: timedelta) -> Timer:
        fire_at = self.now() + duration

        recorded = self._replay(EntryKind.TIMER_STARTED, name)
        if recorded is not None:
            return Timer(id=recorded.sequence, name=name, fire_at=datetime.fromisoformat(recorded.payload["fire_at"]))

        entry = self._record(EntryKind.TIMER_STARTED, name, {"fire_at": fire_at.isoformat()})
        self.logger.info("timer_started", timer=name, fire_at=fire_at.isoformat())
        return Timer(id=entry.sequence, name=name, fire_at=fire_at)

    def cancel_timer(self, timer: Timer) -> None:
        if self._replay(EntryKind.TIMER_CANCELED, timer.name) is not None:
            return
        self._record(EntryKind.TIMER_CANCELED, timer.name, {"timer_id": timer.id})

    # -------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------
    def select(self, selector: Selector) -> Selected:
        """Resolve ``selector`` to its earliest unconsumed matching input.

        Raises:
            SagaSuspended: no matching input has arrived yet.
        """
        recorded = self._replay(EntryKind.SELECTED, selector.key)
        if recorded is not None:
            chosen = self.execution.entry(recorded.payload["input_sequence"])
            return Selected(arm=selector.arm_for(chosen), payload=chosen.payload, sequence=chosen.sequence)

        for entry in self.execution.inputs:
            if entry.sequence in self._consumed:
                continue
            arm = selector.arm_for(entry)
            if arm is None:
                continue
            self._consumed.add(entry.sequence)
            self._record(EntryKind.SELECTED, selector.key, {"input_sequence": entry.sequence})
            return Selected(arm=arm, payload=entry.payload, sequence=entry.sequence)

        raise SagaSuspended(selector.key)

    def wait_signal(self, name: str) -> Any:
        """Block until a signal called ``name`` is available and return its payload."""
        return self.select(Selector().on_signal(name)).payload
