from __future__ import annotations

import os
import tarfile
import zipfile
from abc import ABC, abstractmethod
from collections.abc import Hashable


class ContentSource(ABC):
    """Abstract provider of one file's bytes.

    A source is bound to one physical location for its whole lifetime. The
    core only calls :meth:`is_valid`, :meth:`length` and :meth:`read_into`;
    it never assumes a particular backing medium.
    """

    @abstractmethod
    def is_valid(self) -> bool: ...

    @abstractmethod
    def length(self) -> int: ...

    @abstractmethod
    def read_into(self, buffer: bytearray) -> bool:
        """Fill *buffer* (exactly :meth:`length` bytes) with the content.

        Returns ``False`` on any I/O failure instead of raising.
        """

    @property
    def identity(self) -> Hashable:
        """Key shared by every source object bound to the same resource."""
        return (type(self).__name__, id(self))


class BytesSource(ContentSource):
    """In-memory blob. Identity is the object itself."""

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._data = bytes(data)

    def is_valid(self) -> bool:
        return True

    def length(self) -> int:
        return len(self._data)

    def read_into(self, buffer: bytearray) -> bool:
        n = len(self._data)
        if len(buffer) != n:
            return False
        buffer[:] = self._data
        return True

    def __repr__(self) -> str:
        return f"BytesSource(<{len(self._data)} bytes>)"


class LooseFileSource(ContentSource):
    """A regular file on the real disk.

    The length is captured at construction and never refreshed; a path
    that is missing or is a directory reports length 0 and
    ``is_valid() == False``. :meth:`read_into` fails when the file's size
    on disk no longer matches the captured length, so a file that appeared,
    grew or shrank afterwards is reported instead of being read partially.
    Build a new source to pick up the change.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path: str = os.fspath(path)
        self._length: int = os.path.getsize(self.path) if self.is_valid() else 0

    def is_valid(self) -> bool:
        return os.path.exists(self.path) and not os.path.isdir(self.path)

    def length(self) -> int:
        return self._length

    def read_into(self, buffer: bytearray) -> bool:
        if not self.is_valid():
            return False
        try:
            with open(self.path, "rb") as f:
                if os.fstat(f.fileno()).st_size != self._length:
                    return False
                n = f.readinto(buffer)
        except OSError:
            return False
        return n == self._length

    @property
    def identity(self) -> Hashable:
        return ("file", os.path.realpath(self.path))

    def __repr__(self) -> str:
        return f"LooseFileSource({self.path!r})"


class ZipEntrySource(ContentSource):
    """One member of a ZIP archive, read with :mod:`zipfile` on demand."""

    def __init__(self, archive_path: str | os.PathLike[str], member: str, size: int | None = None) -> None:
        self.archive_path: str = os.fspath(archive_path)
        self.member: str = member
        if size is None:
            size = self._lookup_size()
        self._length: int = size

    def _lookup_size(self) -> int:
        try:
            with zipfile.ZipFile(self.archive_path) as zf:
                return zf.getinfo(self.member).file_size
        except (OSError, KeyError, zipfile.BadZipFile):
            return 0

    def is_valid(self) -> bool:
        if not os.path.isfile(self.archive_path):
            return False
        try:
            with zipfile.ZipFile(self.archive_path) as zf:
                return not zf.getinfo(self.member).is_dir()
        except (OSError, KeyError, zipfile.BadZipFile):
            return False

    def length(self) -> int:
        return self._length

    def read_into(self, buffer: bytearray) -> bool:
        try:
            with zipfile.ZipFile(self.archive_path) as zf:
                data = zf.read(self.member)
        except (OSError, KeyError, zipfile.BadZipFile):
            return False
        if len(data) != len(buffer):
            return False
        buffer[:] = data
        return True

    @property
    def identity(self) -> Hashable:
        return ("zip", os.path.realpath(self.archive_path), self.member)

    def __repr__(self) -> str:
        return f"ZipEntrySource({self.archive_path!r}, {self.member!r})"


class TarEntrySource(ContentSource):
    """One regular member of a (possibly compressed) TAR archive."""

    def __init__(self, archive_path: str | os.PathLike[str], member: str, size: int | None = None) -> None:
        self.archive_path: str = os.fspath(archive_path)
        self.member: str = member
        if size is None:
            size = self._lookup_size()
        self._length: int = size

    def _lookup_size(self) -> int:
        try:
            with tarfile.open(self.archive_path) as tf:
                return tf.getmember(self.member).size
        except (OSError, KeyError, tarfile.TarError):
            return 0

    def is_valid(self) -> bool:
        if not os.path.isfile(self.archive_path):
            return False
        try:
            with tarfile.open(self.archive_path) as tf:
                return tf.getmember(self.member).isfile()
        except (OSError, KeyError, tarfile.TarError):
            return False

    def length(self) -> int:
        return self._length

    def read_into(self, buffer: bytearray) -> bool:
        try:
            with tarfile.open(self.archive_path) as tf:
                f = tf.extractfile(self.member)
                if f is None:
                    return False
                with f:
                    data = f.read()
        except (OSError, KeyError, tarfile.TarError):
            return False
        if len(data) != len(buffer):
            return False
        buffer[:] = data
        return True

    @property
    def identity(self) -> Hashable:
        return ("tar", os.path.realpath(self.archive_path), self.member)

    def __repr__(self) -> str:
        return f"TarEntrySource({self.archive_path!r}, {self.member!r})"
