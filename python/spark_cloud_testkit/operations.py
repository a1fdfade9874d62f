"""
spark_cloud_testkit.operations
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Helpers for integration tests that exercise Spark against object stores.

``ObjectStoreOperations`` bundles small file operations (put/get/read/write,
delete, cross-filesystem copy), dataframe save/load, and eventually
consistent status probes. Test suites create one instance, usually as a
fixture, and call its methods; the logger, clock and retry settings it uses
are passed in rather than inherited.
"""

from __future__ import annotations

import json
import logging
import posixpath
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional

import pyarrow.fs

from spark_cloud_testkit import filesystem
from spark_cloud_testkit.config import TestKitConfig
from spark_cloud_testkit.errors import DatasetValidationError, EmptyFileError
from spark_cloud_testkit.eventually import eventually
from spark_cloud_testkit.filesystem import StorageStatistics
from spark_cloud_testkit.options import SUCCESS_FILE_NAME
from spark_cloud_testkit.timing import duration, duration2, nanos_to_seconds


@dataclass(frozen=True)
class CopyOutcome:
    """Result of ``ObjectStoreOperations.copy_file``."""

    size_bytes: int
    duration_s: float
    bandwidth_kbps: float
    dest: str


class ObjectStoreOperations:
    """Object store operations for integration tests.

    Parameters
    ----------
    config : TestKitConfig, optional
        Retry timeout/interval and consistency delay. Defaults to
        ``TestKitConfig.from_env()``.
    logger : logging.Logger, optional
        Destination of diagnostic messages (load times, copy bandwidth,
        storage statistics).
    clock, sleep : callable, optional
        Time source and sleeper used by the retry probes and the
        consistency wait.
    """

    def __init__(
        self,
        config: Optional[TestKitConfig] = None,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config if config is not None else TestKitConfig.from_env()
        self.log = logger if logger is not None else logging.getLogger(__name__)
        self._clock = clock
        self._sleep = sleep

    # ------------------------------------------------------------------
    # RDD and listing helpers
    # ------------------------------------------------------------------

    def save_text_file(self, rdd, path: str, to_text: Callable[[Any], str] = str) -> None:
        """Save ``rdd`` as text, one line per element rendered by ``to_text``."""
        rdd.map(to_text).saveAsTextFile(path)

    def list_files(
        self, fs: pyarrow.fs.FileSystem, path: str, recursive: bool = True
    ) -> List[pyarrow.fs.FileInfo]:
        return filesystem.list_files(fs, path, recursive)

    def remote_iterator_sequence(self, source) -> list:
        return filesystem.remote_iterator_sequence(source)

    # ------------------------------------------------------------------
    # Small file IO
    # ------------------------------------------------------------------

    def put(self, fs: pyarrow.fs.FileSystem, path: str, body: str) -> None:
        """Write ``body`` to ``path`` as UTF-8, replacing any existing file."""
        filesystem.create_parent_dirs(fs, path)
        with fs.open_output_stream(path) as out:
            out.write(body.encode("utf-8"))

    def put_uri(self, uri: str, body: str) -> None:
        """``put`` to a URI, resolving its filesystem first."""
        fs, path = filesystem.resolve(uri)
        self.put(fs, path, body)

    def get(self, fs: pyarrow.fs.FileSystem, path: str) -> str:
        """Return the whole contents of ``path`` decoded as UTF-8."""
        with fs.open_input_stream(path) as f:
            return f.read().decode("utf-8")

    def load_json(self, fs: pyarrow.fs.FileSystem, path: str) -> Any:
        """Parse ``path`` as JSON, failing fast on a zero-byte file.

        Raises
        ------
        EmptyFileError
            If the file is 0 bytes long.
        FileNotFoundError
            If ``path`` does not exist.
        """
        status = filesystem.get_file_status(fs, path)
        if status.size == 0:
            raise EmptyFileError(path)
        return json.loads(self.get(fs, path))

    def write(self, fs: pyarrow.fs.FileSystem, path: str, text: str) -> None:
        """Write text to a file; an empty string leaves an empty file."""
        filesystem.create_parent_dirs(fs, path)
        with fs.open_output_stream(path) as out:
            if text:
                out.write(text.encode("utf-8"))

    def read(self, fs: pyarrow.fs.FileSystem, path: str, max_len: int = 1024) -> str:
        """Read up to ``max_len`` bytes with a single read call; no retry.

        A multibyte character cut by the limit decodes as U+FFFD.
        """
        with fs.open_input_stream(path) as f:
            return f.read(max_len).decode("utf-8", errors="replace")

    # ------------------------------------------------------------------
    # Dataframes
    # ------------------------------------------------------------------

    def save(self, df, dest: str, fmt: str, mode: Optional[str] = None) -> str:
        """Save ``df`` to ``dest`` in format ``fmt`` and return ``dest``."""
        writer = df.write.format(fmt)
        if mode is not None:
            writer = writer.mode(mode)
        with duration(f"write to {dest} in format {fmt}", self.log):
            writer.save(dest)
        return dest

    def load(self, spark, source: str, fmt: str, options: Optional[Mapping[str, str]] = None):
        """Load a dataframe from ``source`` in format ``fmt``."""
        reader = spark.read.options(**dict(options or {}))
        return reader.format(fmt).load(source)

    def apply_orc_speedup_options(self, spark):
        """Return a reader that skips schema merging."""
        return spark.read.option("mergeSchema", "false")

    # ------------------------------------------------------------------
    # Eventual consistency
    # ------------------------------------------------------------------

    def eventually_get_file_status(
        self, fs: pyarrow.fs.FileSystem, path: str
    ) -> pyarrow.fs.FileInfo:
        """Get the status of ``path``, retrying until the store shows it."""
        return self._eventually(lambda: filesystem.get_file_status(fs, path))

    def eventually_list_status(
        self, fs: pyarrow.fs.FileSystem, path: str
    ) -> List[pyarrow.fs.FileInfo]:
        """List ``path``, retrying until the store can list it."""
        return self._eventually(lambda: filesystem.list_status(fs, path))

    def _eventually(self, probe):
        return eventually(
            probe,
            timeout=self.config.retry_timeout,
            interval=self.config.retry_interval,
            clock=self._clock,
            sleep=self._sleep,
        )

    def consistency_delay(self) -> int:
        """Store settle time in milliseconds; 0 when the store is consistent."""
        return self.config.consistency_delay_ms

    def wait_for_consistency(self) -> None:
        """Sleep for twice the consistency delay; a no-op when it is 0."""
        delay = self.consistency_delay()
        if delay > 0:
            self._sleep(delay * 2 / 1000.0)

    def validate_row_count(
        self,
        spark,
        fs: pyarrow.fs.FileSystem,
        source: str,
        fmt: str,
        row_count: int,
        source_uri: Optional[str] = None,
    ) -> int:
        """Check that a dataset written under ``source`` is complete and has
        exactly ``row_count`` rows.

        Only the status and listing probes are retried. The dataset is
        loaded from ``source_uri`` when given, otherwise from
        ``qualify(fs, source)``.

        Returns
        -------
        int
            Time taken to load and count the dataset, in nanoseconds.

        Raises
        ------
        DatasetValidationError
            If the success marker is unusable (neither a directory nor a
            file with a known size, e.g. ``FileType.Unknown``), there are no
            data files, or the row count differs.
        ConsistencyTimeoutError
            If the marker or the directory never becomes visible.
        """
        self.wait_for_consistency()
        marker = f"{source.rstrip('/')}/{SUCCESS_FILE_NAME}"
        status = self.eventually_get_file_status(fs, marker)
        if not (
            status.type == pyarrow.fs.FileType.Directory
            or (status.is_file and status.size is not None)
        ):
            raise DatasetValidationError(f"Unusable success marker {status}")

        files = [st for st in self.eventually_list_status(fs, source) if filesystem.is_data_file(st)]
        if not files:
            raise DatasetValidationError(f"No files in the directory {source}")

        uri = source_uri if source_uri is not None else filesystem.qualify(fs, source)
        loaded_count, load_time = duration2(lambda: self.load(spark, uri, fmt).count())
        self.log.info("Loaded %s in %d nS", source, load_time)
        if loaded_count != row_count:
            raise DatasetValidationError(
                f"Expected {row_count} rows, but got {loaded_count} from {source} "
                f"formatted as {fmt}"
            )
        return load_time

    # ------------------------------------------------------------------
    # Store maintenance
    # ------------------------------------------------------------------

    def rm(self, fs: pyarrow.fs.FileSystem, path: str) -> bool:
        """Recursively delete ``path``, waiting for consistency before and after.

        Returns ``False`` if there was nothing to delete.

        Raises
        ------
        OSError
            Wrapping the store's failure with the path and filesystem.
        """
        self.wait_for_consistency()
        try:
            info = fs.get_file_info(path)
            if info.type == pyarrow.fs.FileType.NotFound:
                deleted = False
            elif info.type == pyarrow.fs.FileType.Directory:
                fs.delete_dir(path)
                deleted = True
            else:
                fs.delete_file(path)
                deleted = True
        except OSError as e:
            raise OSError(f"Failed to delete {path} on {fs.type_name}: {e}") from e
        self.wait_for_consistency()
        return deleted

    def dump_filesystem_statistics(self, stats) -> None:
        """Log every statistic; logs nothing if there are none."""
        if isinstance(stats, StorageStatistics):
            entries = stats.long_statistics()
        else:
            entries = sorted(stats.items())
        for name, value in entries:
            self.log.info(" %s = %s", name, value)

    def copy_file(
        self,
        src_fs: pyarrow.fs.FileSystem,
        src: str,
        dest_fs: pyarrow.fs.FileSystem,
        dest: str,
        overwrite: bool = False,
    ) -> CopyOutcome:
        """Copy a file between filesystems, streaming through this process.

        No shortcut is taken when both paths are on the same store. An
        existing directory at ``dest`` receives the file under its source
        name, as Hadoop's ``FileUtil.copy`` does.

        Raises
        ------
        ValueError
            If ``src`` is not a file.
        FileExistsError
            If the target file exists and ``overwrite`` is false.
        IsADirectoryError
            If the target inside a ``dest`` directory is itself a directory.
        """
        source_status = filesystem.get_file_status(src_fs, src)
        if not source_status.is_file:
            raise ValueError(f"Not a file {src}")
        dest_info = dest_fs.get_file_info(dest)
        if dest_info.type == pyarrow.fs.FileType.Directory:
            dest = posixpath.join(dest, posixpath.basename(src.rstrip("/")))
            dest_info = dest_fs.get_file_info(dest)
            if dest_info.type == pyarrow.fs.FileType.Directory:
                raise IsADirectoryError(f"Target is a directory {dest}")
        if not overwrite and dest_info.type != pyarrow.fs.FileType.NotFound:
            raise FileExistsError(f"Destination exists {dest}")

        size_kb = source_status.size / 1024
        self.log.info("Copying %s to %s (%d KB)", src, dest, int(size_kb))
        filesystem.create_parent_dirs(dest_fs, dest)
        _, nanos = duration2(
            lambda: pyarrow.fs.copy_files(
                src,
                dest,
                source_filesystem=src_fs,
                destination_filesystem=dest_fs,
            )
        )
        duration_s = nanos_to_seconds(nanos)
        self.log.info("Copy Duration = %s seconds", duration_s)
        bandwidth = size_kb / duration_s if duration_s > 0 else 0.0
        self.log.info("Effective copy bandwidth = %s KB/s", bandwidth)
        return CopyOutcome(
            size_bytes=source_status.size,
            duration_s=duration_s,
            bandwidth_kbps=bandwidth,
            dest=dest,
        )
