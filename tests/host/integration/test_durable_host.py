"""DurableHost against an in-memory SQLite database, using small test sagas."""

from datetime import timedelta

import pytest
from pickup.errors import NotFoundError
from pickup.host.errors import (
    ConcurrencyError,
    ExecutionAlreadyStarted,
    ExecutionClosedError,
    NonDeterminismError,
)
from pickup.host.execution import EntryKind, ExecutionStatus
from pickup.host.host import DurableHost
from pickup.host.records import ExecutionRepository
from pickup.host.registry import get_saga, register_saga
from pickup.host.retry import RetryPolicy
from pickup.host.selector import Selector
from pickup.utils.db import create_db_engine, create_session_factory, setup_db


@register_saga("test_two_signals")
def two_signals(ctx, saga_input):
    first = ctx.wait_signal("first")
    second = ctx.wait_signal("second")
    return {"greeting": saga_input["greeting"], "first": first, "second": second}


@register_saga("test_deadline")
def deadline(ctx, saga_input):
    timer = ctx.start_timer("deadline", timedelta(minutes=saga_input["minutes"]))
    selected = ctx.select(Selector().on_signal("done").on_timer(timer))
    if selected.is_timer:
        return "expired"
    ctx.cancel_timer(timer)
    return "done"


@register_saga("test_broken")
def broken(ctx, saga_input):
    ctx.wait_signal("go")
    raise RuntimeError("boom")


@register_saga("test_ids")
def ids(ctx, saga_input):
    first = ctx.new_id()
    ctx.wait_signal("go")
    return first


@register_saga("test_fragile_deadline")
def fragile_deadline(ctx, saga_input):
    return deadline(ctx, saga_input)


# Hosts that should deliver a "late" signal from inside the activity, once
late_signal_senders = {}


def send_late_signal(execution_id):
    sender = late_signal_senders.pop(execution_id, None)
    if sender is not None:
        sender.signal(execution_id, "late")
    return execution_id


@register_saga("test_interleaved")
def interleaved_saga(ctx, saga_input):
    ctx.wait_signal("go")
    ctx.execute_activity(send_late_signal, ctx.execution_id)
    ctx.wait_signal("late")
    return "done"


@pytest.fixture
def restore_registry():
    originals = {name: get_saga(name) for name in ("test_ids", "test_fragile_deadline")}
    yield
    for name, original in originals.items():
        register_saga(name)(original)


@pytest.fixture
def file_host(tmp_path, clock):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'saga.db'}")
    setup_db(engine)
    yield DurableHost(create_session_factory(engine), clock=clock, retry_policy=RetryPolicy(), sleep=clock.sleep)
    engine.dispose()


class TestStartAndSignal:
    def test_start_suspends_and_persists(self, host):
        execution = host.start("t:1", "test_two_signals", {"greeting": "hi"})
        assert execution.status is ExecutionStatus.RUNNING

        stored = host.get_execution("t:1")
        assert stored.input == {"greeting": "hi"}
        assert stored.version == 0

    def test_signals_drive_to_completion(self, host):
        host.start("t:1", "test_two_signals", {"greeting": "hi"})
        host.signal("t:1", "first", {"n": 1})
        execution = host.signal("t:1", "second", {"n": 2})

        assert execution.status is ExecutionStatus.COMPLETED
        assert execution.result == {"greeting": "hi", "first": {"n": 1}, "second": {"n": 2}}
        assert host.get_execution("t:1").history[-1].kind is EntryKind.EXECUTION_COMPLETED

    def test_early_signal_is_buffered(self, host):
        host.start("t:1", "test_two_signals", {"greeting": "hi"})
        host.signal("t:1", "second", {"n": 2})
        assert host.get_execution("t:1").status is ExecutionStatus.RUNNING

        execution = host.signal("t:1", "first", {"n": 1})
        assert execution.status is ExecutionStatus.COMPLETED
        assert execution.result["second"] == {"n": 2}

    def test_duplicate_start_is_rejected(self, host):
        host.start("t:1", "test_two_signals", {"greeting": "hi"})
        with pytest.raises(ExecutionAlreadyStarted):
            host.start("t:1", "test_two_signals", {"greeting": "again"})

    def test_signal_to_unknown_execution(self, host):
        with pytest.raises(NotFoundError):
            host.signal("t:missing", "first")

    def test_signal_to_closed_execution(self, host):
        host.start("t:1", "test_two_signals", {"greeting": "hi"})
        host.signal("t:1", "first")
        host.signal("t:1", "second")
        with pytest.raises(ExecutionClosedError):
            host.signal("t:1", "first")

    def test_unknown_saga(self, host):
        with pytest.raises(NotFoundError):
            host.start("t:1", "no_such_saga", {})

    def test_saga_error_fails_execution(self, host):
        host.start("t:1", "test_broken", {})
        execution = host.signal("t:1", "go")
        assert execution.status is ExecutionStatus.FAILED
        assert execution.error == "boom"
        assert host.get_execution("t:1").error == "boom"


class TestTimers:
    def test_timer_not_due_yet(self, host, clock):
        host.start("t:1", "test_deadline", {"minutes": 5})
        clock.advance(minutes=4)
        assert host.fire_due_timers() == []

    def test_due_timer_drives_execution(self, host, clock):
        host.start("t:1", "test_deadline", {"minutes": 5})
        clock.advance(minutes=5)
        assert host.fire_due_timers() == ["t:1"]

        execution = host.get_execution("t:1")
        assert execution.status is ExecutionStatus.COMPLETED
        assert execution.result == "expired"

    def test_explicit_as_of(self, host, clock):
        host.start("t:1", "test_deadline", {"minutes": 5})
        assert host.fire_due_timers(as_of=clock() + timedelta(minutes=10)) == ["t:1"]

    def test_canceled_timer_never_fires(self, host, clock):
        host.start("t:1", "test_deadline", {"minutes": 5})
        host.signal("t:1", "done")
        clock.advance(hours=1)
        assert host.fire_due_timers() == []
        assert host.get_execution("t:1").result == "done"

    def test_each_execution_driven_once(self, host, clock):
        host.start("t:1", "test_deadline", {"minutes": 5})
        host.start("t:2", "test_deadline", {"minutes": 10})
        clock.advance(minutes=30)
        assert sorted(host.fire_due_timers()) == ["t:1", "t:2"]
        assert host.fire_due_timers() == []


class TestRecovery:
    def test_new_host_resumes_from_history(self, session_factory, clock, host):
        host.start("t:1", "test_ids", {})
        first_id = host.get_execution("t:1").history[0].payload["value"]

        restarted = DurableHost(session_factory, clock=clock, retry_policy=RetryPolicy(), sleep=clock.sleep)
        execution = restarted.signal("t:1", "go")
        assert execution.result == first_id

    def test_changed_saga_code_is_rejected_without_failing(self, host, restore_registry):
        host.start("t:1", "test_ids", {})
        first_id = host.get_execution("t:1").history[0].payload["value"]
        history_length = len(host.get_execution("t:1").history)

        @register_saga("test_ids")
        def reordered(ctx, saga_input):
            ctx.wait_signal("go")
            return ctx.new_id()

        with pytest.raises(NonDeterminismError):
            host.signal("t:1", "go")

        execution = host.get_execution("t:1")
        assert execution.status is ExecutionStatus.RUNNING
        assert len(execution.history) == history_length + 1
        assert execution.history[-1].kind is EntryKind.SIGNAL

        register_saga("test_ids")(ids)
        execution = host.resume("t:1")
        assert execution.status is ExecutionStatus.COMPLETED
        assert execution.result == first_id

    def test_stale_writer_gets_concurrency_error(self, host, session_factory, clock):
        host.start("t:1", "test_two_signals", {"greeting": "hi"})

        with session_factory() as stale_session:
            stale = ExecutionRepository(stale_session).get("t:1")

            host.signal("t:1", "first")

            stale.append(EntryKind.SIGNAL, "first", None, clock())
            with pytest.raises(ConcurrencyError):
                ExecutionRepository(stale_session).save(stale)
            stale_session.rollback()

        assert host.get_execution("t:1").version == 2


class TestQueries:
    def test_list_execution_ids_by_status(self, host):
        host.start("t:1", "test_two_signals", {"greeting": "hi"})
        host.start("t:2", "test_broken", {})
        host.signal("t:2", "go")

        assert host.list_execution_ids() == ["t:1", "t:2"]
        assert host.list_execution_ids(ExecutionStatus.RUNNING) == ["t:1"]
        assert host.list_execution_ids(ExecutionStatus.FAILED) == ["t:2"]

    def test_resume_of_idle_execution_changes_nothing(self, host):
        host.start("t:1", "test_two_signals", {"greeting": "hi"})
        execution = host.resume("t:1")
        assert execution.status is ExecutionStatus.RUNNING
        assert execution.version == 0


class TestConflicts:
    def test_driver_that_loses_the_race_replays_and_keeps_every_signal(self, file_host):
        file_host.start("t:1", "test_interleaved", {})
        late_signal_senders["t:1"] = file_host

        execution = file_host.signal("t:1", "go")

        assert execution.status is ExecutionStatus.COMPLETED
        assert execution.result == "done"
        history = file_host.get_execution("t:1").history
        assert [entry.name for entry in history if entry.kind is EntryKind.SIGNAL] == ["go", "late"]
        assert [entry.kind for entry in history].count(EntryKind.ACTIVITY) == 1

    def test_signal_is_kept_when_the_drive_fails(self, host, restore_registry):
        host.start("t:1", "test_ids", {})

        @register_saga("test_ids")
        def reordered(ctx, saga_input):
            ctx.wait_signal("go")
            return ctx.new_id()

        with pytest.raises(NonDeterminismError):
            host.signal("t:1", "go")

        assert [entry.name for entry in host.get_execution("t:1").inputs] == ["go"]


class TestTimerSweepIsolation:
    def test_broken_execution_does_not_hold_back_other_timers(self, host, clock, restore_registry):
        host.start("t:bad", "test_fragile_deadline", {"minutes": 5})
        host.start("t:good", "test_deadline", {"minutes": 10})

        @register_saga("test_fragile_deadline")
        def changed(ctx, saga_input):
            ctx.new_id()
            return deadline(ctx, saga_input)

        clock.advance(minutes=30)
        assert host.fire_due_timers() == ["t:good"]
        assert host.get_execution("t:good").result == "expired"

        broken_execution = host.get_execution("t:bad")
        assert broken_execution.status is ExecutionStatus.RUNNING
        assert broken_execution.history[-1].kind is EntryKind.TIMER_FIRED
        assert host.fire_due_timers() == []

        register_saga("test_fragile_deadline")(fragile_deadline)
        assert host.resume("t:bad").result == "expired"
