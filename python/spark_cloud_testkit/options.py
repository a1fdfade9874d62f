"""
spark_cloud_testkit.options
~~~~~~~~~~~~~~~~~~~~~~~~~~~
Spark and Hadoop option sets used when running suites against object
stores, plus helpers to push Hadoop settings through a Spark configuration.

Hadoop options reach the filesystem clients only when prefixed with
``spark.hadoop.``; ``hconf`` adds that prefix.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Mapping, Tuple, Union

HADOOP_PREFIX = "spark.hadoop."

SUCCESS_FILE_NAME = "_SUCCESS"

MR_ALGORITHM_VERSION = "mapreduce.fileoutputcommitter.algorithm.version"
MR_COMMITTER_CLEANUPFAILURES_IGNORED = "mapreduce.fileoutputcommitter.cleanup-failures.ignored"

PARQUET_OUTPUT_COMMITTER_CLASS = "spark.sql.parquet.output.committer.class"
BINDING_PARQUET_OUTPUT_COMMITTER_CLASS = (
    "org.apache.spark.internal.io.cloud.BindingParquetOutputCommitter"
)

GENERAL_SPARK_OPTIONS = MappingProxyType({
    "spark.ui.enabled": "false",
})

ORC_OPTIONS = MappingProxyType({
    "spark.hadoop.orc.splits.include.file.footer": "true",
    "spark.hadoop.orc.cache.stripe.details.size": "1000",
    "spark.hadoop.orc.filterPushdown": "true",
})

PARQUET_OPTIONS = MappingProxyType({
    "spark.sql.parquet.mergeSchema": "false",
    "spark.sql.parquet.filterPushdown": "true",
})

MAPREDUCE_OPTIONS = MappingProxyType({
    HADOOP_PREFIX + MR_ALGORITHM_VERSION: "2",
    HADOOP_PREFIX + MR_COMMITTER_CLEANUPFAILURES_IGNORED: "true",
})

# Algorithm version 3 does not exist: any fallback to the classic committer
# fails loudly instead of silently renaming on the store.
COMMITTER_OPTIONS = MappingProxyType({
    HADOOP_PREFIX + MR_ALGORITHM_VERSION: "3",
    HADOOP_PREFIX + MR_COMMITTER_CLEANUPFAILURES_IGNORED: "true",
    PARQUET_OUTPUT_COMMITTER_CLASS: BINDING_PARQUET_OUTPUT_COMMITTER_CLASS,
})

HIVE_TEST_SETUP_OPTIONS = MappingProxyType({
    "spark.sql.test": "",
    "spark.sql.shuffle.partitions": "5",
    "spark.sql.hive.metastore.barrierPrefixes": "org.apache.spark.sql.hive.execution.PairSerDe",
})

Settings = Union[Mapping[str, object], Iterable[Tuple[str, object]]]


def hconf(spark_conf, key: str, value: object) -> None:
    """Set Hadoop option ``key`` on a ``pyspark.SparkConf``.

    Non-string values such as ints are converted with ``str``;
    booleans are lower-cased to match Hadoop's parser.
    """
    spark_conf.set(HADOOP_PREFIX + key, _to_conf_value(value))


def hconf_all(spark_conf, settings: Settings) -> None:
    """Set every ``(key, value)`` in ``settings`` as a Hadoop option."""
    for key, value in _pairs(settings):
        hconf(spark_conf, key, value)


def configure_session(builder, *option_maps: Settings):
    """Apply option maps to a ``SparkSession.Builder``; later maps win.

    Returns the builder so calls can be chained before ``getOrCreate()``.
    """
    for options in option_maps:
        for key, value in _pairs(options):
            builder = builder.config(key, _to_conf_value(value))
    return builder


def _pairs(settings: Settings):
    if isinstance(settings, Mapping):
        return settings.items()
    return settings


def _to_conf_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
