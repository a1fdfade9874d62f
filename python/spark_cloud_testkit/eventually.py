"""
spark_cloud_testkit.eventually
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Retry-until-success polling for stores with lagging visibility.

Object stores may not show a freshly written file, or may list a directory
without it, for a while after the write completes. ``eventually`` keeps
calling a probe at a fixed interval until it succeeds or the timeout elapses.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Callable, Tuple, Type, TypeVar

from spark_cloud_testkit.config import DEFAULT_RETRY_INTERVAL, DEFAULT_RETRY_TIMEOUT
from spark_cloud_testkit.errors import ConsistencyTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def eventually(
    probe: Callable[[], T],
    timeout: float = DEFAULT_RETRY_TIMEOUT,
    interval: float = DEFAULT_RETRY_INTERVAL,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
) -> T:
    """Call ``probe`` until it returns, or fail once ``timeout`` has elapsed.

    Parameters
    ----------
    probe : callable
        Zero-argument operation, e.g. ``lambda: fs.get_file_info(p)``.
    timeout : float
        Seconds after the first attempt during which failures are retried.
    interval : float
        Seconds to sleep between attempts. The last sleep is shortened so
        that a final attempt happens right at the deadline.
    clock, sleep : callable
        Time source and sleeper; tests substitute a fake clock.
    retry_on : tuple of exception types
        Failures that count as "not consistent yet". Anything else
        propagates immediately.

    Returns
    -------
    The probe's first successful result.

    Raises
    ------
    ConsistencyTimeoutError
        If no attempt succeeded within ``timeout``. The last failure is
        chained as ``__cause__`` and kept in ``last_error``.
    """
    if not math.isfinite(timeout) or timeout < 0:
        raise ValueError(f"timeout must be a finite number >= 0, got {timeout}")
    if not math.isfinite(interval) or interval <= 0:
        raise ValueError(f"interval must be a finite number > 0, got {interval}")

    start = clock()
    deadline = start + timeout
    attempts = 0
    while True:
        attempts += 1
        try:
            return probe()
        except retry_on as e:
            last_error = e
        now = clock()
        if now >= deadline:
            elapsed = now - start
            raise ConsistencyTimeoutError(
                f"Probe did not succeed after {attempts} attempts in {elapsed:.3f}s: "
                f"{last_error}",
                last_error=last_error,
                elapsed=elapsed,
                attempts=attempts,
            ) from last_error
        logger.debug("Attempt %d failed, retrying: %s", attempts, last_error)
        sleep(min(interval, deadline - now))
