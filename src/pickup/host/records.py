"""SQLAlchemy persistence for executions, their history and pending timers.

``saga_history`` is append-only. ``saga_timers`` mirrors the timers of running
executions that have neither fired nor been canceled, so the timer worker can
find due timers without loading every history.

Datetimes are stored as naive UTC.
"""

from collections import defaultdict
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column

from pickup.errors import NotFoundError
from pickup.host.errors import ConcurrencyError, ExecutionAlreadyStarted
from pickup.host.execution import EntryKind, Execution, ExecutionStatus, HistoryEntry, utc


class Base(DeclarativeBase):
    pass


class ExecutionRecord(Base):
    __tablename__ = "saga_executions"

    id: Mapped[str] = mapped_column(String(200), primary_key=True)
    saga_name: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(20), index=True, nullable=False)
    input: Mapped[Any] = mapped_column(JSON, nullable=False)
    result: Mapped[Any] = mapped_column(JSON, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class HistoryRecord(Base):
    __tablename__ = "saga_history"

    execution_id: Mapped[str] = mapped_column(ForeignKey("saga_executions.id"), primary_key=True)
    sequence: Mapped[int] = mapped_column(Integer, primary_key=True)
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    payload: Mapped[Any] = mapped_column(JSON, nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)


class TimerRecord(Base):
    __tablename__ = "saga_timers"

    execution_id: Mapped[str] = mapped_column(ForeignKey("saga_executions.id"), primary_key=True)
    timer_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    fire_at: Mapped[datetime] = mapped_column(DateTime, index=True, nullable=False)


def to_db(value: datetime) -> datetime:
    return value.astimezone(UTC).replace(tzinfo=None)


class ExecutionRepository:
    """Maps Execution aggregates to and from their SQLAlchemy records."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def exists(self, execution_id: str) -> bool:
        return self.session.get(ExecutionRecord, execution_id) is not None

    def get(self, execution_id: str) -> Execution:
        record = self.session.get(ExecutionRecord, execution_id)
        if record is None:
            raise NotFoundError("Execution", execution_id)

        rows = self.session.scalars(
            select(HistoryRecord).where(HistoryRecord.execution_id == execution_id).order_by(HistoryRecord.sequence)
        )
        history = [
            HistoryEntry(
                sequence=row.sequence,
                kind=EntryKind(row.kind),
                name=row.name,
                payload=row.payload,
                recorded_at=utc(row.recorded_at),
            )
            for row in rows
        ]
        return Execution(
            id=record.id,
            saga_name=record.saga_name,
            status=ExecutionStatus(record.status),
            input=record.input,
            result=record.result,
            error=record.error,
            created_at=utc(record.created_at),
            updated_at=utc(record.updated_at),
            version=record.version,
            history=history,
        )

    def add(self, execution: Execution) -> None:
        """Insert a new execution with its history so far."""
        self.session.add(
            ExecutionRecord(
                id=execution.id,
                saga_name=execution.saga_name,
                status=execution.status.value,
                input=execution.input,
                result=execution.result,
                error=execution.error,
                created_at=to_db(execution.created_at),
                updated_at=to_db(execution.updated_at),
                version=execution.version,
            )
        )
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise ExecutionAlreadyStarted(execution.id) from exc

        self._append_history(execution, after=0)
        self._sync_timers(execution)

    def save(self, execution: Execution) -> None:
        """Persist new history and the execution's state, checking its version."""
        outcome = self.session.execute(
            update(ExecutionRecord)
            .where(ExecutionRecord.id == execution.id, ExecutionRecord.version == execution.version)
            .values(
                status=execution.status.value,
                result=execution.result,
                error=execution.error,
                updated_at=to_db(execution.updated_at),
                version=execution.version + 1,
            )
        )
        if outcome.rowcount != 1:
            raise ConcurrencyError(execution.id, execution.version)
        execution.version += 1

        persisted = self.session.scalar(
            select(func.coalesce(func.max(HistoryRecord.sequence), 0)).where(
                HistoryRecord.execution_id == execution.id
            )
        )
        self._append_history(execution, after=persisted)
        self._sync_timers(execution)

    def _append_history(self, execution: Execution, after: int) -> None:
        for entry in execution.history[after:]:
            self.session.add(
                HistoryRecord(
                    execution_id=execution.id,
                    sequence=entry.sequence,
                    kind=entry.kind.value,
                    name=entry.name,
                    payload=entry.payload,
                    recorded_at=to_db(entry.recorded_at),
                )
            )
        self.session.flush()

    def _sync_timers(self, execution: Execution) -> None:
        self.session.execute(delete(TimerRecord).where(TimerRecord.execution_id == execution.id))
        for timer in execution.pending_timers():
            self.session.add(
                TimerRecord(
                    execution_id=execution.id,
                    timer_id=timer.timer_id,
                    name=timer.name,
                    fire_at=to_db(timer.fire_at),
                )
            )
        self.session.flush()

    def due_timers(self, as_of: datetime) -> dict[str, list[int]]:
        """Timer ids due at ``as_of``, grouped by execution id."""
        rows = self.session.execute(
            select(TimerRecord.execution_id, TimerRecord.timer_id)
            .where(TimerRecord.fire_at <= to_db(as_of))
            .order_by(TimerRecord.fire_at, TimerRecord.execution_id, TimerRecord.timer_id)
        )
        due: dict[str, list[int]] = defaultdict(list)
        for execution_id, timer_id in rows:
            due[execution_id].append(timer_id)
        return dict(due)

    def list_ids(self, status: ExecutionStatus | None = None) -> list[str]:
        query = select(ExecutionRecord.id).order_by(ExecutionRecord.created_at, ExecutionRecord.id)
        if status is not None:
            query = query.where(ExecutionRecord.status == status.value)
        return list(self.session.scalars(query))
