"""
Unit tests: eventually()

The probe is retried at a fixed interval until it succeeds; once the timeout
has elapsed the last failure is surfaced inside a ConsistencyTimeoutError.
"""

from __future__ import annotations

import time

import pytest

from spark_cloud_testkit import ConsistencyTimeoutError, eventually


def _flaky(failures: int, result="ok", error=FileNotFoundError):
    calls = []

    def probe():
        calls.append(None)
        if len(calls) <= failures:
            raise error(f"attempt {len(calls)}")
        return result

    return probe, calls


def test_returns_first_success_without_sleeping(fake_clock):
    probe, calls = _flaky(0)
    assert eventually(probe, clock=fake_clock, sleep=fake_clock.sleep) == "ok"
    assert len(calls) == 1
    assert fake_clock.sleeps == []


def test_retries_until_probe_succeeds(fake_clock):
    """Failures that stop before the timeout never surface."""
    probe, calls = _flaky(3, result={"status": "found"})

    result = eventually(probe, timeout=30, interval=1, clock=fake_clock, sleep=fake_clock.sleep)

    assert result == {"status": "found"}
    assert len(calls) == 4
    assert fake_clock.sleeps == [1, 1, 1]


def test_success_on_the_last_attempt_before_deadline(fake_clock):
    probe, _ = _flaky(5)
    assert eventually(probe, timeout=5, interval=1, clock=fake_clock, sleep=fake_clock.sleep) == "ok"


def test_times_out_with_last_failure_chained(fake_clock):
    probe, calls = _flaky(1000)

    with pytest.raises(ConsistencyTimeoutError) as excinfo:
        eventually(probe, timeout=5, interval=1, clock=fake_clock, sleep=fake_clock.sleep)

    error = excinfo.value
    assert isinstance(error, TimeoutError)
    assert isinstance(error.__cause__, FileNotFoundError)
    assert error.last_error is error.__cause__
    assert str(error.last_error) == f"attempt {len(calls)}"
    assert error.attempts == len(calls) == 6
    assert error.elapsed == pytest.approx(5.0)


def test_last_sleep_is_shortened_to_the_deadline(fake_clock):
    probe, calls = _flaky(1000)

    with pytest.raises(ConsistencyTimeoutError) as excinfo:
        eventually(probe, timeout=2.5, interval=1, clock=fake_clock, sleep=fake_clock.sleep)

    assert fake_clock.sleeps == [1, 1, 0.5]
    assert len(calls) == 4
    assert excinfo.value.elapsed == pytest.approx(2.5)


def test_zero_timeout_tries_once(fake_clock):
    probe, calls = _flaky(1)
    with pytest.raises(ConsistencyTimeoutError):
        eventually(probe, timeout=0, interval=1, clock=fake_clock, sleep=fake_clock.sleep)
    assert len(calls) == 1


def test_errors_outside_retry_on_propagate_immediately(fake_clock):
    probe, calls = _flaky(3, error=ValueError)

    with pytest.raises(ValueError, match="attempt 1"):
        eventually(
            probe,
            clock=fake_clock,
            sleep=fake_clock.sleep,
            retry_on=(FileNotFoundError,),
        )
    assert len(calls) == 1


@pytest.mark.parametrize(
    "timeout, interval",
    [(-1, 1), (5, 0), (5, -0.5), (float("nan"), 1), (5, float("nan")), (float("inf"), 1)],
)
def test_rejects_invalid_timing(timeout, interval):
    with pytest.raises(ValueError):
        eventually(lambda: None, timeout=timeout, interval=interval)


def test_real_clock_gives_up_within_one_interval_of_timeout():
    probe, _ = _flaky(10_000)
    timeout, interval = 0.3, 0.05

    start = time.monotonic()
    with pytest.raises(ConsistencyTimeoutError):
        eventually(probe, timeout=timeout, interval=interval)
    elapsed = time.monotonic() - start

    assert elapsed >= timeout
    # generous upper bound for loaded CI machines
    assert elapsed < timeout + interval + 0.5
