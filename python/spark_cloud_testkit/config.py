"""
spark_cloud_testkit.config
~~~~~~~~~~~~~~~~~~~~~~~~~~
Retry and consistency settings shared by the helpers.

Defaults match what object store suites normally need: a 30 second window,
polled once a second, with no extra consistency delay. Each value can be
overridden through an environment variable so a CI job against a slow store
can widen the window without code changes.
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from typing import Mapping, Optional

RETRY_TIMEOUT_ENV = "SPARK_CLOUD_TEST_RETRY_TIMEOUT"
RETRY_INTERVAL_ENV = "SPARK_CLOUD_TEST_RETRY_INTERVAL"
CONSISTENCY_DELAY_ENV = "SPARK_CLOUD_TEST_CONSISTENCY_DELAY_MS"

DEFAULT_RETRY_TIMEOUT = 30.0
DEFAULT_RETRY_INTERVAL = 1.0


@dataclass(frozen=True)
class TestKitConfig:
    """Timing settings for eventually-consistent probes.

    Attributes
    ----------
    retry_timeout : float
        Seconds to keep retrying a status or listing probe.
    retry_interval : float
        Seconds between two attempts.
    consistency_delay_ms : int
        Store-specific settle time; ``wait_for_consistency`` sleeps for
        twice this value.
    """

    __test__ = False  # not a pytest test class

    retry_timeout: float = DEFAULT_RETRY_TIMEOUT
    retry_interval: float = DEFAULT_RETRY_INTERVAL
    consistency_delay_ms: int = 0

    def __post_init__(self) -> None:
        if not math.isfinite(self.retry_timeout) or self.retry_timeout < 0:
            raise ValueError(f"retry_timeout must be a finite number >= 0, got {self.retry_timeout}")
        if not math.isfinite(self.retry_interval) or self.retry_interval <= 0:
            raise ValueError(f"retry_interval must be a finite number > 0, got {self.retry_interval}")
        if self.consistency_delay_ms < 0:
            raise ValueError(
                f"consistency_delay_ms must be >= 0, got {self.consistency_delay_ms}"
            )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> TestKitConfig:
        """Build a config, letting environment variables override defaults."""
        env = os.environ if environ is None else environ
        return cls(
            retry_timeout=_read(env, RETRY_TIMEOUT_ENV, float, DEFAULT_RETRY_TIMEOUT),
            retry_interval=_read(env, RETRY_INTERVAL_ENV, float, DEFAULT_RETRY_INTERVAL),
            consistency_delay_ms=_read(env, CONSISTENCY_DELAY_ENV, int, 0),
        )


def _read(env: Mapping[str, str], name: str, parse, default):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return parse(raw.strip())
    except ValueError as e:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from e
