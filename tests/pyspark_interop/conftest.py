"""
Shared pytest fixtures for the spark-cloud-testkit PySpark integration tests.

Provides:
  - spark:       A local SparkSession configured with the general and Parquet
                 test option sets.
  - spark_ops:   ObjectStoreOperations on the real clock with a short retry
                 window.
  - tmp_path:    Standard pytest tmp_path fixture (automatically available).
"""

from __future__ import annotations

import os
import shutil

import pytest

from spark_cloud_testkit import ObjectStoreOperations, TestKitConfig
from spark_cloud_testkit.options import GENERAL_SPARK_OPTIONS, PARQUET_OPTIONS, configure_session


def _require_java() -> None:
    """Skip Spark tests on machines without a Java runtime."""
    if os.environ.get("JAVA_HOME") or shutil.which("java"):
        return
    pytest.skip("No Java runtime found. Install a JDK or set JAVA_HOME to run Spark tests.")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def spark():
    """Session-scoped local SparkSession."""
    _require_java()
    from pyspark.sql import SparkSession

    builder = SparkSession.builder.master("local[2]").appName("spark-cloud-testkit-tests")
    session = configure_session(
        builder,
        GENERAL_SPARK_OPTIONS,
        PARQUET_OPTIONS,
        {"spark.sql.shuffle.partitions": "4"},
    ).getOrCreate()
    session.sparkContext.setLogLevel("WARN")
    yield session
    session.stop()


@pytest.fixture()
def spark_ops() -> ObjectStoreOperations:
    return ObjectStoreOperations(config=TestKitConfig(retry_timeout=2.0, retry_interval=0.1))
