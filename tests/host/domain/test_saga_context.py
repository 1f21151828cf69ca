"""Replay behaviour of SagaContext, exercised against in-memory executions."""

from datetime import timedelta

import pytest
from pickup.errors import NotFoundError
from pickup.host.context import SagaContext
from pickup.host.errors import ActivityError, NonDeterminismError, SagaSuspended
from pickup.host.execution import EntryKind, Execution
from pickup.host.retry import RetryPolicy
from pickup.host.selector import Selector


def _execution(clock):
    return Execution.start("test:1", "test_saga", {}, clock())


def _context(execution, clock, policy=None):
    return SagaContext(execution, clock=clock, retry_policy=policy or RetryPolicy(), sleep=clock.sleep)


class Counter:
    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.calls


class TestSideEffects:
    def test_side_effect_is_recorded(self, clock):
        execution = _execution(clock)
        value = _context(execution, clock).side_effect("draw", lambda: 7)
        assert value == 7
        assert execution.history[0].kind is EntryKind.SIDE_EFFECT
        assert execution.history[0].payload == {"value": 7}

    def test_replay_returns_recorded_value_without_calling(self, clock):
        execution = _execution(clock)
        counter = Counter()
        _context(execution, clock).side_effect("count", counter)

        replayed = _context(execution, clock)
        assert replayed.is_replaying
        assert replayed.side_effect("count", counter) == 1
        assert counter.calls == 1
        assert not replayed.is_replaying

    def test_now_is_stable_across_replays(self, clock):
        execution = _execution(clock)
        first = _context(execution, clock).now()
        clock.advance(minutes=30)
        assert _context(execution, clock).now() == first

    def test_random_digits_are_zero_padded(self, clock):
        execution = _execution(clock)
        code = _context(execution, clock).random_digits(4)
        assert len(code) == 4
        assert code.isdigit()
        assert _context(execution, clock).random_digits(4) == code

    def test_different_decision_on_replay_is_rejected(self, clock):
        execution = _execution(clock)
        _context(execution, clock).side_effect("draw", lambda: 1)

        with pytest.raises(NonDeterminismError):
            _context(execution, clock).side_effect("other", lambda: 1)


def echo(value):
    return {"echo": value}


class Flaky:
    __name__ = "flaky"

    def __init__(self, failures):
        self.failures = failures
        self.calls = 0

    def __call__(self, value):
        self.calls += 1
        if self.calls <= self.failures:
            raise ConnectionError("try again")
        return value


class TestActivities:
    def test_result_is_recorded_under_function_name(self, clock):
        execution = _execution(clock)
        result = _context(execution, clock).execute_activity(echo, "hi")
        assert result == {"echo": "hi"}
        entry = execution.history[0]
        assert (entry.kind, entry.name, entry.payload) == (EntryKind.ACTIVITY, "echo", {"result": {"echo": "hi"}})

    def test_transient_failures_are_retried(self, clock):
        execution = _execution(clock)
        flaky = Flaky(failures=2)
        assert _context(execution, clock).execute_activity(flaky, 5) == 5
        assert flaky.calls == 3

    def test_replay_does_not_call_activity_again(self, clock):
        execution = _execution(clock)
        flaky = Flaky(failures=0)
        _context(execution, clock).execute_activity(flaky, 5)
        assert _context(execution, clock).execute_activity(flaky, 5) == 5
        assert flaky.calls == 1

    def test_non_retryable_error_fails_on_first_attempt(self, clock):
        execution = _execution(clock)

        def lookup():
            raise NotFoundError("User", "u-404")

        with pytest.raises(ActivityError) as exc_info:
            _context(execution, clock).execute_activity(lookup)

        assert exc_info.value.attempts == 1
        assert "User u-404 not found" in str(exc_info.value)

    def test_recorded_failure_is_raised_on_replay(self, clock):
        execution = _execution(clock)

        def lookup():
            raise NotFoundError("User", "u-404")

        with pytest.raises(ActivityError):
            _context(execution, clock).execute_activity(lookup)

        with pytest.raises(ActivityError, match="u-404"):
            _context(execution, clock).execute_activity(lookup)


class TestTimersAndSelection:
    def test_timer_id_is_its_history_sequence(self, clock):
        execution = _execution(clock)
        timer = _context(execution, clock).start_timer("deadline", timedelta(hours=1))
        assert execution.entry(timer.id).kind is EntryKind.TIMER_STARTED
        assert timer.fire_at == clock() + timedelta(hours=1)

    def test_select_suspends_without_input(self, clock):
        execution = _execution(clock)
        with pytest.raises(SagaSuspended):
            _context(execution, clock).select(Selector().on_signal("go"))

    def test_select_takes_earliest_matching_input(self, clock):
        execution = _execution(clock)
        execution.append(EntryKind.SIGNAL, "other", {"n": 0}, clock())
        execution.append(EntryKind.SIGNAL, "go", {"n": 1}, clock())
        execution.append(EntryKind.SIGNAL, "go", {"n": 2}, clock())

        ctx = _context(execution, clock)
        assert ctx.wait_signal("go") == {"n": 1}
        assert ctx.wait_signal("go") == {"n": 2}
        with pytest.raises(SagaSuspended):
            ctx.wait_signal("go")

    def test_consumed_inputs_stay_consumed_on_replay(self, clock):
        execution = _execution(clock)
        execution.append(EntryKind.SIGNAL, "go", {"n": 1}, clock())
        _context(execution, clock).wait_signal("go")
        execution.append(EntryKind.SIGNAL, "go", {"n": 2}, clock())

        ctx = _context(execution, clock)
        assert ctx.wait_signal("go") == {"n": 1}
        assert ctx.wait_signal("go") == {"n": 2}

    def test_fired_timer_wins_over_later_signal(self, clock):
        execution = _execution(clock)
        ctx = _context(execution, clock)
        timer = ctx.start_timer("deadline", timedelta(minutes=5))
        execution.append(EntryKind.TIMER_FIRED, "deadline", {"timer_id": timer.id}, clock())
        execution.append(EntryKind.SIGNAL, "go", {}, clock())

        selected = ctx.select(Selector().on_signal("go").on_timer(timer))
        assert selected.is_timer

    def test_canceled_timer_is_no_longer_pending(self, clock):
        execution = _execution(clock)
        ctx = _context(execution, clock)
        timer = ctx.start_timer("deadline", timedelta(minutes=5))
        assert [pending.timer_id for pending in execution.pending_timers()] == [timer.id]

        ctx.cancel_timer(timer)
        assert execution.pending_timers() == []

    def test_closed_execution_has_no_pending_timers(self, clock):
        execution = _execution(clock)
        _context(execution, clock).start_timer("deadline", timedelta(minutes=5))
        execution.complete(None, clock())
        assert execution.pending_timers() == []
