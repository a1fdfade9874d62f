"""
spark-cloud-testkit: helpers for Spark integration tests against object stores.

Built on PySpark for dataframe IO and ``pyarrow.fs`` for the storage layer,
so the same helpers work on local disk, HDFS, S3-compatible stores and GCS.

Modules:
    operations  - ObjectStoreOperations, the helper surface used by tests
    eventually  - retry-until-success polling for lagging stores
    filesystem  - status/listing helpers, URI translation, storage statistics
    options     - Spark/Hadoop option sets and ``spark.hadoop.`` passthrough
    config      - retry and consistency settings
"""

from spark_cloud_testkit.config import TestKitConfig
from spark_cloud_testkit.errors import (
    ConsistencyTimeoutError,
    DatasetValidationError,
    EmptyFileError,
)
from spark_cloud_testkit.eventually import eventually
from spark_cloud_testkit.filesystem import (
    StatisticsHandler,
    StorageStatistics,
    instrument,
    qualify,
    resolve,
    storage_statistics,
)
from spark_cloud_testkit.operations import CopyOutcome, ObjectStoreOperations

__version__ = "0.1.0"

__all__ = [
    "ConsistencyTimeoutError",
    "CopyOutcome",
    "DatasetValidationError",
    "EmptyFileError",
    "ObjectStoreOperations",
    "StatisticsHandler",
    "StorageStatistics",
    "TestKitConfig",
    "eventually",
    "instrument",
    "qualify",
    "resolve",
    "storage_statistics",
]
