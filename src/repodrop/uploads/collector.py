"""Flatten file selections and dropped directory trees into upload paths."""

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Protocol, Sequence, Union

from repodrop.core.config import settings
from repodrop.core.exceptions import CollectionReadError
from repodrop.uploads.items import UploadItem, make_item

logger = logging.getLogger(__name__)


class FileHandle(Protocol):
    """A picked file, e.g. FastAPI's ``UploadFile``."""

    filename: Optional[str]

    async def read(self) -> bytes: ...


class FileEntry(Protocol):
    name: str
    is_file: bool
    is_directory: bool

    async def read(self) -> bytes: ...


class DirectoryReader(Protocol):
    async def read_entries(self) -> Sequence["Entry"]:
        """Return the next batch of children; an empty batch means done."""
        ...


class DirectoryEntry(Protocol):
    name: str
    is_file: bool
    is_directory: bool

    def create_reader(self) -> DirectoryReader: ...


Entry = Union[FileEntry, DirectoryEntry]


@dataclass
class CollectedFile:
    """One flattened file with its destination-relative path."""

    virtual_path: str
    content: bytes


@dataclass
class CollectionResult:
    """Files read successfully plus the entries that could not be read."""

    files: List[CollectedFile] = field(default_factory=list)
    failures: List[CollectionReadError] = field(default_factory=list)

    @property
    def paths(self) -> List[str]:
        return [f.virtual_path for f in self.files]

    def extend(self, other: "CollectionResult") -> None:
        self.files.extend(other.files)
        self.failures.extend(other.failures)


def normalize_virtual_path(path: str) -> str:
    """Use ``/`` separators and drop empty, ``.`` and ``..`` segments."""
    segments = path.replace("\\", "/").split("/")
    return "/".join(s for s in segments if s not in ("", ".", ".."))


def join_virtual_path(prefix: str, name: str) -> str:
    return f"{prefix}/{name}" if prefix else name


class LocalFileEntry:
    """File entry backed by a path on disk."""

    is_file = True
    is_directory = False

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.name = self.path.name

    async def read(self) -> bytes:
        return await asyncio.to_thread(self.path.read_bytes)


class LocalDirectoryReader:
    """Pages through a directory's children in fixed-size batches."""

    def __init__(self, path: Path, batch_size: int):
        self._path = path
        self._batch_size = batch_size
        self._children: Optional[Iterable[Path]] = None

    async def read_entries(self) -> List[Entry]:
        return await asyncio.to_thread(self._next_batch)

    def _next_batch(self) -> List[Entry]:
        if self._children is None:
            self._children = iter(sorted(self._path.iterdir()))
        return [entry_for_path(p, self._batch_size) for p in itertools.islice(self._children, self._batch_size)]


class LocalDirectoryEntry:
    """Directory entry backed by a path on disk."""

    is_file = False
    is_directory = True

    def __init__(self, path: Union[str, Path], batch_size: Optional[int] = None):
        self.path = Path(path)
        self.name = self.path.name
        self.batch_size = batch_size or settings.DIRECTORY_BATCH_SIZE

    def create_reader(self) -> LocalDirectoryReader:
        return LocalDirectoryReader(self.path, self.batch_size)


def entry_for_path(path: Union[str, Path], batch_size: Optional[int] = None) -> Entry:
    path = Path(path)
    if path.is_dir():
        return LocalDirectoryEntry(path, batch_size)
    return LocalFileEntry(path)


class EntryCollector:
    """Collects (virtual path, bytes) pairs from picked files or dropped entries.

    Directory children are walked concurrently; each walk returns its own
    result which is concatenated by the parent, so output order is not
    stable. An entry that cannot be read is recorded as a failure and the
    rest of the collection carries on.
    """

    def __init__(self, max_file_bytes: Optional[int] = None):
        self.max_file_bytes = max_file_bytes if max_file_bytes is not None else settings.max_upload_bytes

    async def collect_files(self, handles: Sequence[FileHandle]) -> CollectionResult:
        """Collect a flat file selection; file names may carry relative paths."""
        results = await asyncio.gather(*(self._read_handle(h) for h in handles))
        return self._merge(results)

    async def collect_entries(self, entries: Sequence[Entry]) -> CollectionResult:
        """Collect a drag-and-drop selection of file and directory entries."""
        results = await asyncio.gather(*(self._walk(entry, "") for entry in entries))
        merged = self._merge(results)
        logger.info(
            "Collected dropped entries",
            extra={
                "entry_count": len(entries),
                "file_count": len(merged.files),
                "failure_count": len(merged.failures),
            },
        )
        return merged

    async def _read_handle(self, handle: FileHandle) -> CollectionResult:
        path = normalize_virtual_path(handle.filename or "")
        if not path:
            path = "unnamed"
        return await self._read(path, handle.read)

    async def _walk(self, entry: Entry, prefix: str) -> CollectionResult:
        path = join_virtual_path(prefix, entry.name)

        if entry.is_directory:
            try:
                children = await self._list_children(entry)
            except Exception as e:
                logger.warning(
                    f"Skipping unreadable directory: {path}",
                    extra={"virtual_path": path, "error": str(e)},
                )
                return CollectionResult(failures=[CollectionReadError(path, str(e))])

            results = await asyncio.gather(*(self._walk(child, path) for child in children))
            return self._merge(results)

        if entry.is_file:
            return await self._read(path, entry.read)

        return CollectionResult()

    async def _list_children(self, entry: DirectoryEntry) -> List[Entry]:
        # A single listing call may return only part of the children
        reader = entry.create_reader()
        children: List[Entry] = []
        while True:
            batch = await reader.read_entries()
            if not batch:
                return children
            children.extend(batch)

    async def _read(self, path: str, read) -> CollectionResult:
        try:
            content = await read()
        except Exception as e:
            logger.warning(
                f"Skipping unreadable file: {path}",
                extra={"virtual_path": path, "error": str(e)},
            )
            return CollectionResult(failures=[CollectionReadError(path, str(e))])

        if len(content) > self.max_file_bytes:
            logger.warning(
                f"Skipping large file: {path} ({len(content)} bytes)",
                extra={"virtual_path": path, "size": len(content)},
            )
            return CollectionResult(
                failures=[CollectionReadError(path, f"exceeds maximum size of {self.max_file_bytes} bytes")]
            )

        return CollectionResult(files=[CollectedFile(virtual_path=path, content=content)])

    @staticmethod
    def _merge(results: Iterable[CollectionResult]) -> CollectionResult:
        merged = CollectionResult()
        for result in results:
            merged.extend(result)
        return merged


def build_items(files: Sequence[CollectedFile]) -> List[UploadItem]:
    """Turn collected files into Pending upload items."""
    return [make_item(f.virtual_path, f.content) for f in files]
