"""Errors raised by the durable execution host."""

from pickup.errors import PickupError


class SagaSuspended(Exception):
    """Raised inside a saga when it has to wait for an input that has not arrived.

    The host catches it, persists everything recorded so far and returns. It
    is control flow, never an error the saga should handle.
    """

    def __init__(self, waiting_on: str) -> None:
        self.waiting_on = waiting_on
        super().__init__(f"waiting on {waiting_on}")


class HostError(PickupError):
    """Base class for host failures."""


class NonDeterminismError(HostError):
    """Replayed saga code asked for a different decision than the one recorded."""

    def __init__(self, sequence: int, expected: str, actual: str) -> None:
        self.sequence = sequence
        self.expected = expected
        self.actual = actual
        super().__init__(f"History entry {sequence} recorded {expected} but the saga asked for {actual}")


class ActivityError(HostError):
    """An activity failed and will not be retried again."""

    def __init__(self, activity: str, attempts: int, cause: str) -> None:
        self.activity = activity
        self.attempts = attempts
        self.cause = cause
        super().__init__(f"Activity {activity} failed after {attempts} attempt(s): {cause}")


class ExecutionAlreadyStarted(HostError):
    def __init__(self, execution_id: str) -> None:
        self.execution_id = execution_id
        super().__init__(f"Execution {execution_id} already exists")


class ExecutionClosedError(HostError):
    def __init__(self, execution_id: str, status: str) -> None:
        self.execution_id = execution_id
        self.status = status
        super().__init__(f"Execution {execution_id} is {status} and accepts no more signals")


class ConcurrencyError(HostError):
    """Another command committed a newer version of the execution first."""

    def __init__(self, execution_id: str, expected_version: int) -> None:
        self.execution_id = execution_id
        self.expected_version = expected_version
        super().__init__(f"Execution {execution_id} was modified concurrently (expected version {expected_version})")
