"""Unit tests for the in-memory window throttle."""

import logging
import threading
from unittest.mock import Mock

import pytest

from hook_dispatcher.adapters.rate_limit.in_memory import InMemoryWindowThrottle
from hook_dispatcher.core.errors import CONFIG_READ_ERROR, ConfigReadAppError


def _throttle(fake_clock, ceiling_source) -> InMemoryWindowThrottle:
    return InMemoryWindowThrottle(
        ceiling_source=ceiling_source,
        clock=fake_clock,
        sleep=fake_clock.sleep,
    )


def test_first_message_opens_window_without_reading_ceiling(fake_clock) -> None:
    source = Mock(return_value=3)
    throttle = _throttle(fake_clock, source)

    result = throttle.record_sent()

    assert result.sent_count == 1
    assert result.ceiling is None
    assert result.slept_seconds == 0.0
    source.assert_not_called()
    assert throttle.snapshot() == (1, 100.0)


def test_allows_burst_up_to_ceiling_without_sleeping(fake_clock) -> None:
    throttle = _throttle(fake_clock, Mock(return_value=3))

    throttle.record_sent()
    result = throttle.record_sent()

    assert result.sent_count == 2
    assert result.window_closed is False
    assert fake_clock.sleeps == []


def test_reaching_ceiling_sleeps_until_window_end_and_resets(fake_clock) -> None:
    throttle = _throttle(fake_clock, Mock(return_value=3))

    throttle.record_sent()
    throttle.record_sent()
    result = throttle.record_sent()

    assert result.window_closed is True
    assert result.slept_seconds == pytest.approx(1.0)
    assert fake_clock.sleeps == [pytest.approx(1.0)]
    assert throttle.snapshot()[0] == 0


def test_sleep_covers_only_remaining_window(fake_clock) -> None:
    throttle = _throttle(fake_clock, Mock(return_value=2))

    throttle.record_sent()
    fake_clock.advance(0.4)
    result = throttle.record_sent()

    assert result.slept_seconds == pytest.approx(0.6)
    assert fake_clock.now == pytest.approx(101.0)


def test_no_sleep_when_window_already_elapsed(fake_clock) -> None:
    throttle = _throttle(fake_clock, Mock(return_value=2))

    throttle.record_sent()
    fake_clock.advance(1.5)
    result = throttle.record_sent()

    assert result.window_closed is True
    assert result.slept_seconds == 0.0
    assert fake_clock.sleeps == []
    assert throttle.snapshot()[0] == 0


def test_next_message_after_reset_opens_new_window(fake_clock) -> None:
    throttle = _throttle(fake_clock, Mock(return_value=2))

    throttle.record_sent()
    throttle.record_sent()
    result = throttle.record_sent()

    assert result.sent_count == 1
    assert throttle.snapshot() == (1, pytest.approx(101.0))


@pytest.mark.parametrize("ceiling", [0, -1])
def test_non_positive_ceiling_disables_throttling(fake_clock, ceiling: int) -> None:
    throttle = _throttle(fake_clock, Mock(return_value=ceiling))

    for _ in range(100):
        throttle.record_sent()

    assert fake_clock.sleeps == []
    assert throttle.snapshot()[0] == 100


def test_ceiling_read_failure_skips_enforcement(fake_clock, caplog) -> None:
    source = Mock(
        side_effect=ConfigReadAppError(code=CONFIG_READ_ERROR, message="config unreadable")
    )
    throttle = _throttle(fake_clock, source)

    throttle.record_sent()
    with caplog.at_level(logging.ERROR):
        result = throttle.record_sent()

    assert result.ceiling is None
    assert result.sent_count == 2
    assert fake_clock.sleeps == []
    assert throttle.snapshot() == (2, 100.0)
    assert "rate_limit.ceiling_unavailable" in caplog.text


def test_ceiling_is_reread_on_every_call(fake_clock) -> None:
    source = Mock(side_effect=[10, 2])
    throttle = _throttle(fake_clock, source)

    throttle.record_sent()
    assert throttle.record_sent().window_closed is False
    result = throttle.record_sent()

    assert result.ceiling == 2
    assert result.window_closed is True
    assert source.call_count == 2


def test_invalid_window_seconds() -> None:
    with pytest.raises(ValueError):
        InMemoryWindowThrottle(ceiling_source=lambda: 1, window_seconds=0)


def test_concurrent_callers_do_not_lose_counts() -> None:
    throttle = InMemoryWindowThrottle(ceiling_source=lambda: 0)
    start = threading.Barrier(8)

    def worker() -> None:
        start.wait()
        for _ in range(50):
            throttle.record_sent()

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert throttle.snapshot()[0] == 400


def test_sleeping_caller_holds_back_other_callers() -> None:
    release = threading.Event()
    sleeping = threading.Event()

    def blocking_sleep(_seconds: float) -> None:
        sleeping.set()
        release.wait(5)

    throttle = InMemoryWindowThrottle(
        ceiling_source=lambda: 2,
        clock=lambda: 0.0,
        sleep=blocking_sleep,
    )
    throttle.record_sent()

    closer = threading.Thread(target=throttle.record_sent)
    closer.start()
    assert sleeping.wait(5)

    waiter_done = threading.Event()

    def waiter() -> None:
        throttle.record_sent()
        waiter_done.set()

    threading.Thread(target=waiter).start()
    assert not waiter_done.wait(0.2)

    release.set()
    closer.join(5)
    assert waiter_done.wait(5)
    assert throttle.snapshot()[0] == 1
