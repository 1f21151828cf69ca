"""Execution aggregate: one saga run and its append-only history.

History entries fall into two groups. Decisions are produced by the saga
itself and are handed back to it, in order, when the saga is replayed.
Inputs are appended by the host when the outside world reacts (a signal
arrives, a timer fires) and are consumed by the saga's selectors.

State Machine (3 states):
    RUNNING → COMPLETED
    RUNNING → FAILED
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ExecutionStatus(Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class EntryKind(Enum):
    # Decisions
    SIDE_EFFECT = "side_effect"
    ACTIVITY = "activity"
    TIMER_STARTED = "timer_started"
    TIMER_CANCELED = "timer_canceled"
    SELECTED = "selected"
    # Inputs
    SIGNAL = "signal"
    TIMER_FIRED = "timer_fired"
    # Closing
    EXECUTION_COMPLETED = "execution_completed"
    EXECUTION_FAILED = "execution_failed"


DECISION_KINDS = frozenset(
    {
        EntryKind.SIDE_EFFECT,
        EntryKind.ACTIVITY,
        EntryKind.TIMER_STARTED,
        EntryKind.TIMER_CANCELED,
        EntryKind.SELECTED,
    }
)
INPUT_KINDS = frozenset({EntryKind.SIGNAL, EntryKind.TIMER_FIRED})


def utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from storage."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class HistoryEntry(BaseModel):
    sequence: int = Field(ge=1)
    kind: EntryKind
    name: str
    payload: Any = None
    recorded_at: datetime

    @property
    def is_decision(self) -> bool:
        return self.kind in DECISION_KINDS

    @property
    def is_input(self) -> bool:
        return self.kind in INPUT_KINDS


class PendingTimer(BaseModel):
    timer_id: int
    name: str
    fire_at: datetime


class Execution(BaseModel):
    id: str
    saga_name: str
    status: ExecutionStatus = ExecutionStatus.RUNNING
    input: dict = Field(default_factory=dict)
    result: Any = None
    error: str | None = None
    created_at: datetime
    updated_at: datetime
    version: int = 0
    history: list[HistoryEntry] = Field(default_factory=list)

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def start(cls, execution_id: str, saga_name: str, saga_input: dict, now: datetime) -> "Execution":
        return cls(
            id=execution_id,
            saga_name=saga_name,
            input=saga_input,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------
    def append(self, kind: EntryKind, name: str, payload: Any, now: datetime) -> HistoryEntry:
        entry = HistoryEntry(
            sequence=len(self.history) + 1,
            kind=kind,
            name=name,
            payload=payload,
            recorded_at=now,
        )
        self.history.append(entry)
        self.updated_at = now
        return entry

    def entry(self, sequence: int) -> HistoryEntry:
        return self.history[sequence - 1]

    @property
    def decisions(self) -> list[HistoryEntry]:
        return [entry for entry in self.history if entry.is_decision]

    @property
    def inputs(self) -> list[HistoryEntry]:
        return [entry for entry in self.history if entry.is_input]

    def pending_timers(self) -> list[PendingTimer]:
        """Timers started and neither fired nor canceled. Closed executions have none."""
        if self.is_closed:
            return []

        settled = {
            entry.payload["timer_id"]
            for entry in self.history
            if entry.kind in (EntryKind.TIMER_CANCELED, EntryKind.TIMER_FIRED)
        }
        return [
            PendingTimer(
                timer_id=entry.sequence,
                name=entry.name,
                fire_at=datetime.fromisoformat(entry.payload["fire_at"]),
            )
            for entry in self.history
            if entry.kind is EntryKind.TIMER_STARTED and entry.sequence not in settled
        ]

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    @property
    def is_closed(self) -> bool:
        return self.status is not ExecutionStatus.RUNNING

    def complete(self, result: Any, now: datetime) -> None:
        self.append(EntryKind.EXECUTION_COMPLETED, self.saga_name, {"result": result}, now)
        self.status = ExecutionStatus.COMPLETED
        self.result = result

    def fail(self, error: str, now: datetime) -> None:
        self.append(EntryKind.EXECUTION_FAILED, self.saga_name, {"error": error}, now)
        self.status = ExecutionStatus.FAILED
        self.error = error
