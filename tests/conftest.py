"""
Shared pytest fixtures for the spark-cloud-testkit tests.

Provides:
  - fake_clock:  A manually advanced clock whose ``sleep`` moves time forward.
  - local_fs:    A ``pyarrow.fs.LocalFileSystem``.
  - ops:         ObjectStoreOperations driven by ``fake_clock``; probes give
                 up after 5 simulated seconds.
"""

from __future__ import annotations

import pyarrow.fs
import pytest

from spark_cloud_testkit import ObjectStoreOperations, TestKitConfig


class FakeClock:
    """Monotonic clock that only advances when something sleeps on it."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def local_fs() -> pyarrow.fs.LocalFileSystem:
    return pyarrow.fs.LocalFileSystem()


@pytest.fixture()
def ops(fake_clock) -> ObjectStoreOperations:
    config = TestKitConfig(retry_timeout=5.0, retry_interval=1.0)
    return ObjectStoreOperations(config=config, clock=fake_clock, sleep=fake_clock.sleep)
