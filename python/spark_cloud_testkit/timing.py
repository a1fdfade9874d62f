"""
spark_cloud_testkit.timing
~~~~~~~~~~~~~~~~~~~~~~~~~~
Wall-clock measurement of store and Spark operations.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Elapsed:
    """Filled in by ``duration`` when its block exits."""

    nanos: int = 0

    @property
    def seconds(self) -> float:
        return nanos_to_seconds(self.nanos)


def nanos_to_seconds(nanos: int) -> float:
    return nanos / 1e9


@contextmanager
def duration(label: str, log: Optional[logging.Logger] = None) -> Iterator[Elapsed]:
    """Time the enclosed block and log ``Duration of <label> = <n> nS``.

    The elapsed time is recorded and logged even when the block raises.
    """
    elapsed = Elapsed()
    start = time.perf_counter_ns()
    try:
        yield elapsed
    finally:
        elapsed.nanos = time.perf_counter_ns() - start
        (log or logger).info("Duration of %s = %d nS", label, elapsed.nanos)


def duration2(fn: Callable[[], T]) -> Tuple[T, int]:
    """Run ``fn`` and return ``(result, elapsed_nanos)``."""
    start = time.perf_counter_ns()
    result = fn()
    return result, time.perf_counter_ns() - start
