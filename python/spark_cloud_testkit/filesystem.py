"""
spark_cloud_testkit.filesystem
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Thin helpers over ``pyarrow.fs`` filesystems: status lookups that raise like
a Hadoop client would, lazy recursive listings, URI translation between
pyarrow and Spark, and a counting wrapper that exposes per-operation storage
statistics for any backend (local, HDFS, S3, GCS).
"""

from __future__ import annotations

import posixpath
import threading
from collections import deque
from collections.abc import Mapping
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import pyarrow.fs

OP_GET_FILE_STATUS = "op_get_file_status"
OP_LIST_STATUS = "op_list_status"
OP_MKDIRS = "op_mkdirs"
OP_DELETE = "op_delete"
OP_RENAME = "op_rename"
OP_COPY = "op_copy"
OP_OPEN = "op_open"
OP_CREATE = "op_create"
OP_APPEND = "op_append"

# pyarrow type_name -> scheme Spark/Hadoop understands
_SPARK_SCHEMES = {
    "local": "file",
    "s3": "s3a",
    "gcs": "gs",
    "hdfs": "hdfs",
}

# Hadoop scheme aliases pyarrow does not know about
_PYARROW_SCHEMES = {
    "s3a": "s3",
    "s3n": "s3",
}


def resolve(uri: str) -> Tuple[pyarrow.fs.FileSystem, str]:
    """Resolve a URI (``file://``, ``s3a://``, ``hdfs://``, a local path...)
    into a filesystem handle and the path within it."""
    scheme, sep, rest = uri.partition("://")
    if sep and scheme in _PYARROW_SCHEMES:
        uri = f"{_PYARROW_SCHEMES[scheme]}://{rest}"
    return pyarrow.fs.FileSystem.from_uri(uri)


def qualify(fs: pyarrow.fs.FileSystem, path: str) -> str:
    """Return a URI for ``path`` on ``fs`` that ``spark.read`` can load.

    Raises
    ------
    ValueError
        If the filesystem type has no known Spark scheme.
    """
    fs = unwrap(fs)
    if isinstance(fs, pyarrow.fs.SubTreeFileSystem):
        path = posixpath.join(fs.base_path, path.lstrip("/"))
        fs = unwrap(fs.base_fs)
    scheme = _SPARK_SCHEMES.get(fs.type_name)
    if scheme is None:
        raise ValueError(f"Cannot build a Spark URI for filesystem type '{fs.type_name}'")
    if not path.startswith("/") and scheme in ("file", "hdfs"):
        path = "/" + path
    return f"{scheme}://{path}"


def unwrap(fs: pyarrow.fs.FileSystem) -> pyarrow.fs.FileSystem:
    """Strip any ``StatisticsHandler`` wrappers from ``fs``."""
    while isinstance(fs, pyarrow.fs.PyFileSystem) and isinstance(fs.handler, StatisticsHandler):
        fs = fs.handler.base
    return fs


def get_file_status(fs: pyarrow.fs.FileSystem, path: str) -> pyarrow.fs.FileInfo:
    """Return the status of ``path``; raise ``FileNotFoundError`` if absent.

    pyarrow reports a missing path as a ``FileType.NotFound`` entry rather
    than raising, which would make a probe look successful.
    """
    info = fs.get_file_info(path)
    if info.type == pyarrow.fs.FileType.NotFound:
        raise FileNotFoundError(f"No such file or directory: {path}")
    return info


def list_status(fs: pyarrow.fs.FileSystem, path: str) -> List[pyarrow.fs.FileInfo]:
    """List the direct children of ``path``.

    A file lists as itself. A missing path raises ``FileNotFoundError``.
    """
    info = get_file_status(fs, path)
    if info.is_file:
        return [info]
    return fs.get_file_info(pyarrow.fs.FileSelector(path, recursive=False))


def iter_files(
    fs: pyarrow.fs.FileSystem, path: str, recursive: bool = True
) -> Iterator[pyarrow.fs.FileInfo]:
    """Lazily yield the files (never directories) under ``path``.

    Directories are listed one at a time as the caller advances, so the
    store is queried page by page and may change between pages.
    """
    root = get_file_status(fs, path)
    if root.is_file:
        yield root
        return
    pending = deque([path])
    while pending:
        directory = pending.popleft()
        for info in fs.get_file_info(pyarrow.fs.FileSelector(directory, recursive=False)):
            if info.is_file:
                yield info
            elif recursive and info.type == pyarrow.fs.FileType.Directory:
                pending.append(info.path)


def list_files(
    fs: pyarrow.fs.FileSystem, path: str, recursive: bool = True
) -> List[pyarrow.fs.FileInfo]:
    """All files (but not directories) underneath ``path``."""
    return remote_iterator_sequence(iter_files(fs, path, recursive))


def remote_iterator_sequence(source) -> list:
    """Drain an iterator whose elements may be fetched over the network.

    ``source`` is either a Python iterable or a Java-style remote iterator
    with ``hasNext()``/``next()`` methods, such as a Hadoop
    ``RemoteIterator`` obtained through py4j. Changes to the remote store
    while draining may produce a list matching no single state of the store.
    """
    if hasattr(source, "hasNext"):
        return list(_RemoteIteratorAdapter(source))
    return list(source)


class _RemoteIteratorAdapter:
    def __init__(self, source) -> None:
        self._source = source

    def __iter__(self):
        return self

    def __next__(self):
        if not self._source.hasNext():
            raise StopIteration
        return self._source.next()


def path_filter(predicate: Callable[[str], bool]) -> Callable[[pyarrow.fs.FileInfo], bool]:
    """Turn a predicate over path strings into one over ``FileInfo`` entries."""

    def accept(info: pyarrow.fs.FileInfo) -> bool:
        return predicate(info.path)

    return accept


def is_data_file(info: pyarrow.fs.FileInfo) -> bool:
    """True for files that are not hidden or temporary (``.x``, ``_x``)."""
    return info.is_file and not info.base_name.startswith((".", "_"))


def create_parent_dirs(fs: pyarrow.fs.FileSystem, path: str) -> None:
    parent = posixpath.dirname(path.rstrip("/"))
    if parent and parent != "/":
        fs.create_dir(parent, recursive=True)


# ---------------------------------------------------------------------------
# Storage statistics
# ---------------------------------------------------------------------------

class StorageStatistics(Mapping):
    """Named operation counters collected for one filesystem instance."""

    def __init__(self) -> None:
        self._counts: Dict[str, int] = {}
        self._lock = threading.Lock()

    def increment(self, name: str, amount: int = 1) -> None:
        with self._lock:
            self._counts[name] = self._counts.get(name, 0) + amount

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()

    def long_statistics(self) -> Iterator[Tuple[str, int]]:
        """Yield ``(name, value)`` pairs sorted by name."""
        with self._lock:
            items = sorted(self._counts.items())
        return iter(items)

    def __getitem__(self, name: str) -> int:
        return self._counts[name]

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._counts))

    def __len__(self) -> int:
        return len(self._counts)

    def __repr__(self) -> str:
        return f"StorageStatistics({dict(self.long_statistics())!r})"


class StatisticsHandler(pyarrow.fs.FileSystemHandler):
    """Forward every call to ``base`` and count it in ``statistics``.

    Wrap with ``pyarrow.fs.PyFileSystem(StatisticsHandler(fs))``, or use
    ``instrument(fs)``.
    """

    def __init__(
        self,
        base: pyarrow.fs.FileSystem,
        statistics: Optional[StorageStatistics] = None,
    ) -> None:
        self.base = base
        self.statistics = statistics if statistics is not None else StorageStatistics()

    def __eq__(self, other):
        if isinstance(other, StatisticsHandler):
            return self.base.equals(other.base)
        return NotImplemented

    def __ne__(self, other):
        if isinstance(other, StatisticsHandler):
            return not self.base.equals(other.base)
        return NotImplemented

    def get_type_name(self):
        return f"statistics+{self.base.type_name}"

    def normalize_path(self, path):
        return self.base.normalize_path(path)

    def get_file_info(self, paths):
        self.statistics.increment(OP_GET_FILE_STATUS, len(paths))
        return self.base.get_file_info(paths)

    def get_file_info_selector(self, selector):
        self.statistics.increment(OP_LIST_STATUS)
        return self.base.get_file_info(selector)

    def create_dir(self, path, recursive):
        self.statistics.increment(OP_MKDIRS)
        self.base.create_dir(path, recursive=recursive)

    def delete_dir(self, path):
        self.statistics.increment(OP_DELETE)
        self.base.delete_dir(path)

    def delete_dir_contents(self, path, missing_dir_ok=False):
        self.statistics.increment(OP_DELETE)
        self.base.delete_dir_contents(path, missing_dir_ok=missing_dir_ok)

    def delete_root_dir_contents(self):
        self.statistics.increment(OP_DELETE)
        self.base.delete_dir_contents("", accept_root_dir=True)

    def delete_file(self, path):
        self.statistics.increment(OP_DELETE)
        self.base.delete_file(path)

    def move(self, src, dest):
        self.statistics.increment(OP_RENAME)
        self.base.move(src, dest)

    def copy_file(self, src, dest):
        self.statistics.increment(OP_COPY)
        self.base.copy_file(src, dest)

    def open_input_stream(self, path):
        self.statistics.increment(OP_OPEN)
        return self.base.open_input_stream(path)

    def open_input_file(self, path):
        self.statistics.increment(OP_OPEN)
        return self.base.open_input_file(path)

    def open_output_stream(self, path, metadata):
        self.statistics.increment(OP_CREATE)
        return self.base.open_output_stream(path, metadata=metadata)

    def open_append_stream(self, path, metadata):
        self.statistics.increment(OP_APPEND)
        return self.base.open_append_stream(path, metadata=metadata)


def instrument(
    fs: pyarrow.fs.FileSystem, statistics: Optional[StorageStatistics] = None
) -> pyarrow.fs.PyFileSystem:
    """Wrap ``fs`` so that its operations are counted."""
    return pyarrow.fs.PyFileSystem(StatisticsHandler(fs, statistics))


def storage_statistics(fs: pyarrow.fs.FileSystem) -> StorageStatistics:
    """Counters of an instrumented filesystem; empty for any other."""
    if isinstance(fs, pyarrow.fs.PyFileSystem) and isinstance(fs.handler, StatisticsHandler):
        return fs.handler.statistics
    return StorageStatistics()
