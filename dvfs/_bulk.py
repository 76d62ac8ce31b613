from __future__ import annotations

import logging
import os
import re
import tarfile
import zipfile
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator, Mapping

from ._exceptions import VFSSourceUnavailableError
from ._path import CURRENT_ALIAS, VPath, as_vpath
from ._source import BytesSource, ContentSource, LooseFileSource, TarEntrySource, ZipEntrySource

logger = logging.getLogger(__name__)


def _member_path(name: str) -> VPath:
    """Archive member name as a relative path, without leading '.' components."""
    vpath = VPath(name)
    start = 0
    while start < len(vpath) and vpath[start] == CURRENT_ALIAS:
        start += 1
    return vpath.suffix(start)


class BulkSource(ABC):
    """A batch of ``(relative path, ContentSource)`` pairs plus a mount point.

    The directory tree only consumes :attr:`mount_point` and
    :meth:`enumerate`; how the pairs are found is up to the subclass.
    """

    def __init__(self, mount_point: str | VPath | Iterable[str] = "") -> None:
        self._mount_point: VPath = as_vpath(mount_point)

    @property
    def mount_point(self) -> VPath:
        return self._mount_point

    @abstractmethod
    def enumerate(self) -> Iterator[tuple[VPath, ContentSource]]: ...


class LooseFilesSource(BulkSource):
    """Files of a real directory, keyed by their path relative to it.

    With ``recursive=False`` only the top level is listed and subdirectories
    are skipped. Entries are produced in name order.
    """

    def __init__(
        self,
        directory: str | os.PathLike[str],
        mount_point: str | VPath | Iterable[str] = "",
        recursive: bool = True,
    ) -> None:
        super().__init__(mount_point)
        self.directory: str = os.fspath(directory)
        self.recursive: bool = recursive

    def accept(self, name: str) -> bool:
        return True

    def enumerate(self) -> Iterator[tuple[VPath, ContentSource]]:
        if not os.path.isdir(self.directory):
            raise VFSSourceUnavailableError(self.directory, "not a directory")
        yield from self._scan(self.directory, VPath())

    def _scan(self, real_dir: str, rel_dir: VPath) -> Iterator[tuple[VPath, ContentSource]]:
        with os.scandir(real_dir) as it:
            entries = sorted(it, key=lambda e: e.name)
        for entry in entries:
            if entry.is_dir():
                if self.recursive:
                    yield from self._scan(entry.path, rel_dir + (entry.name,))
                continue
            if not self.accept(entry.name):
                continue
            yield rel_dir + (entry.name,), LooseFileSource(entry.path)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.directory!r})"


class FilteredLooseFilesSource(LooseFilesSource):
    """:class:`LooseFilesSource` keeping only files whose name fully matches *pattern*."""

    def __init__(
        self,
        directory: str | os.PathLike[str],
        pattern: str | re.Pattern[str],
        mount_point: str | VPath | Iterable[str] = "",
        recursive: bool = True,
    ) -> None:
        super().__init__(directory, mount_point, recursive)
        self.pattern: re.Pattern[str] = (
            pattern if isinstance(pattern, re.Pattern) else re.compile(pattern)
        )

    def accept(self, name: str) -> bool:
        return self.pattern.fullmatch(name) is not None

    def __repr__(self) -> str:
        return f"FilteredLooseFilesSource({self.directory!r}, {self.pattern.pattern!r})"


class ZipArchiveSource(BulkSource):
    """Every regular member of a ZIP archive."""

    def __init__(
        self,
        archive_path: str | os.PathLike[str],
        mount_point: str | VPath | Iterable[str] = "",
    ) -> None:
        super().__init__(mount_point)
        self.archive_path: str = os.fspath(archive_path)

    def enumerate(self) -> Iterator[tuple[VPath, ContentSource]]:
        try:
            with zipfile.ZipFile(self.archive_path) as zf:
                infos = zf.infolist()
        except (OSError, zipfile.BadZipFile) as e:
            raise VFSSourceUnavailableError(self.archive_path, str(e)) from e
        for info in infos:
            if info.is_dir():
                continue
            rel = _member_path(info.filename)
            if not rel:
                logger.warning(f"Skipping unnamed member in {self.archive_path!r}")
                continue
            yield rel, ZipEntrySource(self.archive_path, info.filename, info.file_size)

    def __repr__(self) -> str:
        return f"ZipArchiveSource({self.archive_path!r})"


class TarArchiveSource(BulkSource):
    """Every regular member of a TAR archive (any compression :mod:`tarfile` reads)."""

    def __init__(
        self,
        archive_path: str | os.PathLike[str],
        mount_point: str | VPath | Iterable[str] = "",
    ) -> None:
        super().__init__(mount_point)
        self.archive_path: str = os.fspath(archive_path)

    def enumerate(self) -> Iterator[tuple[VPath, ContentSource]]:
        try:
            with tarfile.open(self.archive_path) as tf:
                members = tf.getmembers()
        except (OSError, tarfile.TarError) as e:
            raise VFSSourceUnavailableError(self.archive_path, str(e)) from e
        for member in members:
            if not member.isfile():
                if not member.isdir():
                    logger.debug(f"Skipping non-regular member {member.name!r}")
                continue
            rel = _member_path(member.name)
            if not rel:
                continue
            yield rel, TarEntrySource(self.archive_path, member.name, member.size)

    def __repr__(self) -> str:
        return f"TarArchiveSource({self.archive_path!r})"


class MappingSource(BulkSource):
    """In-memory ``{relative path: bytes}`` mapping."""

    def __init__(
        self,
        files: Mapping[str, bytes],
        mount_point: str | VPath | Iterable[str] = "",
    ) -> None:
        super().__init__(mount_point)
        # one source per path, so mounting this object twice shares handles
        self._sources: dict[VPath, BytesSource] = {
            VPath(path): BytesSource(data) for path, data in files.items()
        }

    def enumerate(self) -> Iterator[tuple[VPath, ContentSource]]:
        yield from self._sources.items()

    def __repr__(self) -> str:
        return f"MappingSource(<{len(self._sources)} files>)"
