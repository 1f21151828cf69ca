"""Durable execution host.

A command first commits its input (a signal or a fired timer) to the
execution's history in a short transaction of its own. The host then
replays the saga from the top until it suspends or returns and saves the
new decisions with an optimistic version check. A driver that loses the
race to another driver reloads and replays again, so an accepted input is
never lost. Activities therefore run at least once and must be idempotent.
"""

import time
from collections.abc import Callable
from functools import partial
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy.orm import Session, sessionmaker

from pickup.host.context import SagaContext
from pickup.host.errors import (
    ConcurrencyError,
    ExecutionAlreadyStarted,
    ExecutionClosedError,
    NonDeterminismError,
    SagaSuspended,
)
from pickup.host.execution import EntryKind, Execution, ExecutionStatus
from pickup.host.records import ExecutionRepository
from pickup.host.registry import get_saga
from pickup.host.retry import RetryPolicy

logger = structlog.get_logger(__name__)

MAX_CONFLICT_RETRIES = 20


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DurableHost:
    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Callable[[], datetime] = _utcnow,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock
        self._retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep

    # -------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------
    def start(self, execution_id: str, saga_name: str, saga_input: dict) -> Execution:
        """Create an execution and drive it to its first suspension point.

        Raises:
            ExecutionAlreadyStarted: an execution with this id exists, in any state.
        """
        get_saga(saga_name)

        with self._session_factory.begin() as session:
            repository = ExecutionRepository(session)
            if repository.exists(execution_id):
                raise ExecutionAlreadyStarted(execution_id)

            execution = Execution.start(execution_id, saga_name, saga_input, self._clock())
            logger.info("execution_started", execution_id=execution_id, saga=saga_name)
            self._drive(execution)
            repository.add(execution)
            return execution

    def signal(self, execution_id: str, name: str, payload: Any = None) -> Execution:
        """Deliver a named signal. It stays buffered until the saga selects it.

        The signal is committed before the saga runs, so it survives a driver
        failure and is picked up by the next drive.

        Raises:
            NotFoundError: no execution with this id.
            ExecutionClosedError: the execution already completed or failed.
        """
        self._append_inputs(execution_id, lambda execution: [(EntryKind.SIGNAL, name, payload)])
        logger.info("signal_received", execution_id=execution_id, signal=name)
        return self.resume(execution_id)

    def fire_due_timers(self, as_of: datetime | None = None) -> list[str]:
        """Fire every timer due at ``as_of`` and drive each affected execution.

        An execution that cannot be driven is logged and skipped; the others
        still get their timers. Returns the ids of the executions driven.
        """
        as_of = as_of or self._clock()
        with self._session_factory() as session:
            due = ExecutionRepository(session).due_timers(as_of)

        driven = []
        for execution_id, timer_ids in due.items():
            try:
                fired = self._append_inputs(execution_id, partial(self._timer_inputs, timer_ids=timer_ids))
                if fired:
                    self.resume(execution_id)
                    driven.append(execution_id)
            except Exception:
                logger.exception("timer_drive_failed", execution_id=execution_id)
        return driven

    def resume(self, execution_id: str) -> Execution:
        """Replay the execution and let it consume whatever inputs are pending.

        Retries from a fresh load when another driver saved first.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                with self._session_factory.begin() as session:
                    repository = ExecutionRepository(session)
                    execution = repository.get(execution_id)
                    if execution.is_closed:
                        return execution

                    recorded = len(execution.history)
                    self._drive(execution)
                    if len(execution.history) > recorded:
                        repository.save(execution)
                    return execution
            except ConcurrencyError:
                if attempt == MAX_CONFLICT_RETRIES:
                    raise
                logger.info("execution_conflict", execution_id=execution_id, attempt=attempt)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def get_execution(self, execution_id: str) -> Execution:
        with self._session_factory() as session:
            return ExecutionRepository(session).get(execution_id)

    def list_execution_ids(self, status: ExecutionStatus | None = None) -> list[str]:
        with self._session_factory() as session:
            return ExecutionRepository(session).list_ids(status)

    # -------------------------------------------------------------------
    # Inputs
    # -------------------------------------------------------------------
    def _append_inputs(
        self,
        execution_id: str,
        inputs_for: Callable[[Execution], list[tuple[EntryKind, str, Any]]],
    ) -> list[tuple[EntryKind, str, Any]]:
        """Commit the inputs ``inputs_for`` derives from the current execution."""
        attempt = 0
        while True:
            attempt += 1
            try:
                with self._session_factory.begin() as session:
                    repository = ExecutionRepository(session)
                    execution = repository.get(execution_id)
                    if execution.is_closed:
                        raise ExecutionClosedError(execution_id, execution.status.value)

                    inputs = inputs_for(execution)
                    if not inputs:
                        return inputs
                    for kind, name, payload in inputs:
                        execution.append(kind, name, payload, self._clock())
                    repository.save(execution)
                    return inputs
            except ConcurrencyError:
                if attempt == MAX_CONFLICT_RETRIES:
                    raise
                logger.info("input_conflict", execution_id=execution_id, attempt=attempt)

    def _timer_inputs(self, execution: Execution, timer_ids: list[int]) -> list[tuple[EntryKind, str, Any]]:
        pending = {timer.timer_id for timer in execution.pending_timers()}
        inputs = []
        for timer_id in timer_ids:
            if timer_id not in pending:
                continue
            entry = execution.entry(timer_id)
            inputs.append((EntryKind.TIMER_FIRED, entry.name, {"timer_id": timer_id}))
            logger.info("timer_fired", execution_id=execution.id, timer=entry.name)
        return inputs

    # -------------------------------------------------------------------
    # Replay
    # -------------------------------------------------------------------
    def _drive(self, execution: Execution) -> None:
        """Replay the saga over its history and let it run as far as it can.

        A NonDeterminismError propagates and rolls the drive back; the
        execution stays running with its inputs kept and no new decisions.
        """
        saga = get_saga(execution.saga_name)
        context = SagaContext(execution, clock=self._clock, retry_policy=self._retry_policy, sleep=self._sleep)

        try:
            result = saga(context, execution.input)
        except SagaSuspended as suspended:
            logger.debug("execution_suspended", execution_id=execution.id, waiting_on=suspended.waiting_on)
        except NonDeterminismError:
            logger.error("execution_nondeterministic", execution_id=execution.id, exc_info=True)
            raise
        except Exception as exc:
            logger.error("execution_failed", execution_id=execution.id, error=str(exc))
            execution.fail(str(exc), self._clock())
        else:
            logger.info("execution_completed", execution_id=execution.id)
            execution.complete(result, self._clock())
