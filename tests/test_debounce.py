"""Unit tests for the debounce wrapper, driven by a virtual clock."""

import logging

import pytest

from pacer.adapters.scheduler.manual import ManualScheduler
from pacer.core.errors import InvalidArgumentError, SchedulerError
from pacer.core.logging import clear_correlation_id, get_correlation_id, set_correlation_id
from pacer.limiters import Debouncer, LimiterState, debounce, debounced


def test_burst_coalesces_into_last_call(scheduler, recorder) -> None:
    record = debounce(recorder, 100, scheduler=scheduler)

    record("a")
    scheduler.advance(50)
    record("b")

    scheduler.advance(99)
    assert recorder.calls == []

    scheduler.advance(1)
    assert recorder.calls == [(("b",), {})]
    assert recorder.times == [150.0]


def test_single_call_fires_exactly_once(scheduler, recorder) -> None:
    record = debounce(recorder, 100, scheduler=scheduler)

    record("only")
    scheduler.advance(1_000)

    assert recorder.calls == [(("only",), {})]
    assert recorder.times == [100.0]


def test_calls_spaced_wider_than_delay_each_fire(scheduler, recorder) -> None:
    record = debounce(recorder, 100, scheduler=scheduler)

    record(1)
    scheduler.advance(150)
    record(2)
    scheduler.advance(150)

    assert recorder.calls == [((1,), {}), ((2,), {})]
    assert recorder.times == [100.0, 250.0]


def test_zero_delay_is_deferred_not_synchronous(scheduler, recorder) -> None:
    record = debounce(recorder, 0, scheduler=scheduler)

    record("x")
    assert recorder.calls == []

    record("y")
    scheduler.run_pending()

    assert recorder.calls == [(("y",), {})]


def test_instances_keep_independent_timers(scheduler, make_recorder) -> None:
    recorder = make_recorder()
    first = debounce(recorder, 100, scheduler=scheduler)
    second = debounce(recorder, 100, scheduler=scheduler)

    first("first")
    scheduler.advance(50)
    second("second")

    scheduler.advance(50)
    assert recorder.calls == [(("first",), {})]

    scheduler.advance(50)
    assert recorder.calls == [(("first",), {}), (("second",), {})]
    assert recorder.times == [100.0, 150.0]


def test_forwards_positional_and_keyword_arguments(scheduler, recorder) -> None:
    record = debounce(recorder, 10, scheduler=scheduler)
    payload = {"query": "mango"}

    record(1, None, payload, flag=True, name="search")
    scheduler.advance(10)

    args, kwargs = recorder.calls[0]
    assert args == (1, None, payload)
    assert args[2] is payload
    assert kwargs == {"flag": True, "name": "search"}


def test_wrapper_returns_none(scheduler) -> None:
    record = debounce(lambda: "ignored", 10, scheduler=scheduler)

    assert record() is None


def test_action_error_reaches_scheduler_not_caller(scheduler, recorder) -> None:
    boom = RuntimeError("boom")

    def failing(value: str) -> None:
        recorder(value)
        raise boom

    record = debounce(failing, 20, scheduler=scheduler)

    record("a")
    scheduler.advance(20)

    assert scheduler.unhandled_errors == [boom]

    record("b")
    scheduler.advance(20)
    assert recorder.calls == [(("a",), {}), (("b",), {})]


def test_state_and_stats_track_lifecycle(scheduler, recorder) -> None:
    record = debounce(recorder, 100, scheduler=scheduler)
    assert record.state is LimiterState.IDLE

    record(1)
    record(2)
    record(3)
    assert record.state is LimiterState.PENDING
    assert scheduler.pending_count == 1

    scheduler.advance(100)
    assert record.state is LimiterState.IDLE

    stats = record.stats()
    assert stats == {
        "delay_ms": 100.0,
        "calls": 3,
        "fired": 1,
        "superseded": 2,
        "state": "idle",
    }


def test_action_may_call_its_own_wrapper(scheduler, recorder) -> None:
    def chain(step: int) -> None:
        recorder(step)
        if step < 3:
            record(step + 1)

    record = debounce(chain, 10, scheduler=scheduler)

    record(1)
    scheduler.advance(100)

    assert [args for args, _ in recorder.calls] == [(1,), (2,), (3,)]
    assert recorder.times == [10.0, 20.0, 30.0]


def test_coroutine_action_is_awaited(scheduler) -> None:
    seen: list[str] = []

    async def handler(query: str) -> None:
        seen.append(query)

    search = debounce(handler, 50, scheduler=scheduler)
    search("app")
    search("apple")
    scheduler.advance(50)

    assert seen == ["apple"]
    assert scheduler.unhandled_errors == []


def test_deferred_call_sees_correlation_id_of_trigger(scheduler) -> None:
    observed: list[str | None] = []
    record = debounce(lambda: observed.append(get_correlation_id()), 10, scheduler=scheduler)

    set_correlation_id("evt-42")
    try:
        record()
    finally:
        clear_correlation_id()

    scheduler.advance(10)

    assert observed == ["evt-42"]


def test_decorator_keeps_action_metadata(scheduler) -> None:
    @debounced(25, scheduler=scheduler)
    def on_input(value: str) -> None:
        """Handle a text field change."""

    assert isinstance(on_input, Debouncer)
    assert on_input.__name__ == "on_input"
    assert on_input.__doc__ == "Handle a text field change."
    assert on_input.delay_ms == 25.0


def test_logs_events_without_arguments(scheduler, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="pacer")
    record = debounce(lambda value: None, 10, scheduler=scheduler)

    record("secret-value")
    record("secret-value")
    scheduler.advance(10)

    messages = [r.getMessage() for r in caplog.records]
    assert "debounce.scheduled" in messages
    assert "debounce.superseded" in messages
    assert "debounce.fired" in messages
    for log_record in caplog.records:
        assert "secret-value" not in str(log_record.__dict__)


@pytest.mark.parametrize(
    "delay",
    [-1, -0.5, "100", None, True, float("nan"), float("inf")],
)
def test_invalid_delay_rejected_at_construction(scheduler, delay) -> None:
    with pytest.raises(InvalidArgumentError) as exc_info:
        debounce(print, delay, scheduler=scheduler)

    assert exc_info.value.code == "invalid_delay"
    assert isinstance(exc_info.value, ValueError)
    assert scheduler.pending_count == 0


def test_invalid_delay_rejected_by_decorator() -> None:
    with pytest.raises(InvalidArgumentError):
        debounced(-10)


def test_non_callable_action_rejected(scheduler) -> None:
    with pytest.raises(InvalidArgumentError) as exc_info:
        debounce("not callable", 10, scheduler=scheduler)

    assert exc_info.value.code == "invalid_action"


class _FlakyScheduler(ManualScheduler):
    """Virtual clock whose next timer can be made to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_next = False

    def call_later(self, delay_ms, callback, *args):
        if self.fail_next:
            self.fail_next = False
            raise SchedulerError(code="scheduler_unavailable", message="timer unavailable")
        return super().call_later(delay_ms, callback, *args)


def test_failed_rearm_keeps_earlier_pending_call(recorder) -> None:
    flaky = _FlakyScheduler()
    record = debounce(recorder, 100, scheduler=flaky)

    record("a")
    flaky.fail_next = True
    with pytest.raises(SchedulerError):
        record("b")

    assert record.state is LimiterState.PENDING
    assert record.stats()["superseded"] == 0

    flaky.advance(100)
    assert recorder.calls == [(("a",), {})]


def test_method_decorator_binds_each_instance(scheduler) -> None:
    class SearchBox:
        def __init__(self, name: str) -> None:
            self.name = name
            self.queries: list[str] = []

        @debounced(100, scheduler=scheduler)
        def on_input(self, query: str) -> None:
            self.queries.append(query)

    left = SearchBox("left")
    right = SearchBox("right")

    left.on_input("ap")
    left.on_input("apple")
    right.on_input("kiwi")
    scheduler.advance(100)

    assert left.queries == ["apple"]
    assert right.queries == ["kiwi"]
    assert left.on_input is left.on_input
    assert left.on_input is not right.on_input
    assert isinstance(SearchBox.on_input, Debouncer)
    assert left.on_input.stats()["superseded"] == 1
    assert right.on_input.stats()["superseded"] == 0
    assert scheduler.unhandled_errors == []
