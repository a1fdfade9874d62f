"""
spark_cloud_testkit.errors
~~~~~~~~~~~~~~~~~~~~~~~~~~
Exception types raised by the object store test helpers.

Each one subclasses the builtin a plain test would already expect, so
``pytest.raises(TimeoutError)`` or a bare ``assert`` failure handler keeps
working.
"""

from __future__ import annotations

from typing import Optional


class EmptyFileError(EOFError):
    """A zero-length file was read as structured data."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Empty File: {path}")
        self.path = path


class ConsistencyTimeoutError(TimeoutError):
    """A probe against an eventually-consistent store never succeeded."""

    def __init__(
        self,
        message: str,
        last_error: Optional[BaseException] = None,
        elapsed: float = 0.0,
        attempts: int = 0,
    ) -> None:
        super().__init__(message)
        self.last_error = last_error
        self.elapsed = elapsed
        self.attempts = attempts


class DatasetValidationError(AssertionError):
    """A dataset written to the store is incomplete or has the wrong row count."""
