from __future__ import annotations

import io
import logging
import re
import weakref
from contextlib import AbstractContextManager
from collections.abc import Iterable, Iterator
from typing import Union

from ._bulk import BulkSource
from ._exceptions import (
    VFSInvalidNameError,
    VFSMissingFileError,
    VFSMissingFolderError,
    VFSMountUnresolvedError,
    VFSNameCollisionError,
)
from ._handle import ContentHandle, HandleRegistry
from ._lock import ReadWriteLock
from ._path import CURRENT_ALIAS, PARENT_ALIAS, VPath, as_vpath, check_name
from ._source import BytesSource, ContentSource
from ._typing import VFSStats

logger = logging.getLogger(__name__)

PathLike = Union[str, VPath, Iterable[str]]
Content = Union[ContentSource, ContentHandle]
Pattern = Union[str, "re.Pattern[str]"]

# ---------------------------------------------------------------------------
#  Directory Index Layer
# ---------------------------------------------------------------------------


class FileEntry:
    """A name bound to a (possibly shared) :class:`ContentHandle`."""

    __slots__ = ("name", "handle")

    def __init__(self, name: str, handle: ContentHandle) -> None:
        self.name: str = name
        self.handle: ContentHandle = handle

    @property
    def length(self) -> int:
        return self.handle.get_length()

    def get_bytes(self) -> bytes:
        return self.handle.get_bytes()

    def open(self) -> io.BytesIO:
        return self.handle.open()

    def __repr__(self) -> str:
        return f"FileEntry({self.name!r}, length={self.handle.get_length()})"


def _compile(pattern: Pattern) -> re.Pattern[str]:
    return pattern if isinstance(pattern, re.Pattern) else re.compile(pattern)


class Directory:
    """One folder of the virtual tree.

    A directory owns its child directories and its file entries. Folders and
    files share one namespace, so a name is either a folder or a file.
    ``.`` and ``..`` are resolved while descending a path (``..`` of the root
    is the root); they are never stored, counted or iterated. All directories
    of one tree share a :class:`HandleRegistry` so the same physical resource
    is held by one :class:`ContentHandle` wherever it is mounted.

    Directory performs no locking; use :class:`VirtualFileSystem` when more
    than one thread touches the tree.
    """

    __slots__ = ("_name", "_parent_ref", "_folders", "_files", "_registry", "__weakref__")

    def __init__(
        self,
        name: str = "",
        parent: Directory | None = None,
        registry: HandleRegistry | None = None,
    ) -> None:
        self._name: str = name
        self._parent_ref: weakref.ref[Directory] | None = (
            weakref.ref(parent) if parent is not None else None
        )
        self._folders: dict[str, Directory] = {}
        self._files: dict[str, FileEntry] = {}
        if registry is None:
            registry = parent._registry if parent is not None else HandleRegistry()
        self._registry: HandleRegistry = registry

    # -- identity --

    @property
    def name(self) -> str:
        return self._name

    @property
    def parent(self) -> Directory:
        parent = self._parent_ref() if self._parent_ref is not None else None
        return self if parent is None else parent

    @property
    def is_root(self) -> bool:
        return self.parent is self

    @property
    def registry(self) -> HandleRegistry:
        return self._registry

    @property
    def path(self) -> VPath:
        names: list[str] = []
        node = self
        while not node.is_root:
            names.append(node._name)
            node = node.parent
        return VPath(reversed(names))

    def _detach(self) -> None:
        self._parent_ref = None

    # -- descent --

    def _ensure_folder(
        self,
        name: str,
        vpath: VPath,
        created: list[tuple[Directory, str, Directory]] | None = None,
    ) -> Directory:
        if name == CURRENT_ALIAS:
            return self
        if name == PARENT_ALIAS:
            return self.parent
        child = self._folders.get(name)
        if child is not None:
            return child
        check_name(name)
        if name in self._files:
            raise VFSNameCollisionError(vpath, "file")
        child = Directory(name, self, self._registry)
        self._folders[name] = child
        if created is not None:
            created.append((self, name, child))
        return child

    def _descend(
        self,
        vpath: VPath,
        count: int,
        create: bool,
        created: list[tuple[Directory, str, Directory]] | None = None,
    ) -> Directory:
        """Walk the first *count* components of *vpath* from this directory."""
        current = self
        for i in range(count):
            part = vpath[i]
            if create:
                current = current._ensure_folder(part, vpath.suffix(0, i + 1), created)
                continue
            if part == CURRENT_ALIAS:
                continue
            if part == PARENT_ALIAS:
                current = current.parent
                continue
            child = current._folders.get(part)
            if child is None:
                raise VFSMissingFolderError(vpath.suffix(0, i + 1))
            current = child
        return current

    @staticmethod
    def _rollback_folders(created: list[tuple[Directory, str, Directory]]) -> None:
        for parent, name, child in reversed(created):
            if parent._folders.get(name) is child and not child._folders and not child._files:
                del parent._folders[name]
                child._detach()
        created.clear()

    # -- lookup --

    def get_folder(self, path: PathLike) -> Directory:
        vpath = as_vpath(path)
        return self._descend(vpath, len(vpath), create=False)

    def get_file(self, path: PathLike) -> FileEntry:
        vpath = as_vpath(path)
        if not vpath:
            raise VFSMissingFileError(vpath)
        folder = self._descend(vpath, vpath.depth(), create=False)
        entry = folder._files.get(vpath.last())
        if entry is None:
            raise VFSMissingFileError(vpath)
        return entry

    def lookup_folder(self, path: PathLike) -> Directory | None:
        try:
            return self.get_folder(path)
        except VFSMissingFolderError:
            return None

    def lookup_file(self, path: PathLike) -> FileEntry | None:
        try:
            return self.get_file(path)
        except (VFSMissingFolderError, VFSMissingFileError):
            return None

    def listdir(self) -> list[str]:
        return [*self._folders, *self._files]

    def folder_names(self) -> list[str]:
        return list(self._folders)

    def file_names(self) -> list[str]:
        return list(self._files)

    # -- mutation --

    def create_folder(self, path: PathLike, recursive: bool = True) -> Directory:
        """Create the folder at *path* and return it.

        An existing folder is returned as is. Missing intermediate folders
        are created when *recursive* is true; otherwise
        :class:`VFSMissingFolderError` is raised.
        """
        vpath = as_vpath(path)
        if not vpath:
            return self
        created: list[tuple[Directory, str, Directory]] = []
        try:
            parent = self._descend(vpath, vpath.depth(), create=recursive, created=created)
            return parent._ensure_folder(vpath.last(), vpath)
        except BaseException:
            self._rollback_folders(created)
            raise

    def insert_file(
        self,
        path: PathLike,
        content: Content,
        overwrite: bool = False,
        create_folders: bool = True,
    ) -> bool:
        """Insert *content* at *path*.

        Returns ``False`` without touching anything when a file already exists
        there and *overwrite* is false. With *overwrite* the old entry's handle
        reference is released and the entry gets a handle over the given
        content, never a stale one sharing its identity. Missing intermediate
        folders are created only when *create_folders* is true, else
        :class:`VFSMissingFolderError`. Passing a :class:`ContentHandle` while
        a different live handle serves the same resource raises
        :class:`ValueError`.
        """
        vpath = as_vpath(path)
        if not vpath:
            raise VFSInvalidNameError("")
        name = check_name(vpath.last())
        created: list[tuple[Directory, str, Directory]] = []
        try:
            folder = self._descend(vpath, vpath.depth(), create=create_folders, created=created)
            return folder._put_file(name, content, overwrite, vpath)
        except BaseException:
            self._rollback_folders(created)
            raise

    def insert_bytes(
        self,
        path: PathLike,
        data: bytes,
        overwrite: bool = False,
        create_folders: bool = True,
    ) -> bool:
        return self.insert_file(path, BytesSource(data), overwrite, create_folders)

    def _put_file(
        self,
        name: str,
        content: Content,
        overwrite: bool,
        vpath: VPath,
        defer_release: bool = False,
    ) -> bool:
        if name in self._folders:
            raise VFSNameCollisionError(vpath, "folder")
        existing = self._files.get(name)
        if existing is not None and not overwrite:
            return False
        # Acquire before releasing so re-inserting the same source never
        # drops its buffer. An overwrite never inherits a stale handle.
        handle = self._registry.acquire(content, replace=existing is not None)
        self._files[name] = FileEntry(name, handle)
        if existing is not None and not defer_release:
            self._registry.release(existing.handle)
        return True

    def insert_bulk(self, bulk_source: BulkSource) -> bool:
        """Insert every entry of *bulk_source* under its mount point.

        Entries overwrite existing files. The operation is all-or-nothing: if
        enumeration or any insertion fails, every folder and entry added by
        this call is removed, replaced entries are restored and the error is
        re-raised.
        """
        mount = bulk_source.mount_point
        created: list[tuple[Directory, str, Directory]] = []
        try:
            target = self._descend(mount, len(mount), create=True, created=created)
        except (VFSInvalidNameError, VFSNameCollisionError, VFSMissingFolderError) as e:
            self._rollback_folders(created)
            raise VFSMountUnresolvedError(mount, str(e)) from e

        inserted: list[tuple[Directory, str, FileEntry | None]] = []
        try:
            for rel, source in bulk_source.enumerate():
                rel = as_vpath(rel)
                if not rel:
                    raise VFSInvalidNameError("")
                # aliases would let an entry escape the mount point
                for part in rel:
                    check_name(part)
                name = rel.last()
                folder = target._descend(rel, rel.depth(), create=True, created=created)
                previous = folder._files.get(name)
                folder._put_file(name, source, True, mount + rel, defer_release=True)
                inserted.append((folder, name, previous))
        except BaseException:
            for folder, name, previous in reversed(inserted):
                entry = folder._files.pop(name)
                self._registry.release(entry.handle)
                if previous is not None:
                    folder._files[name] = previous
            self._rollback_folders(created)
            logger.debug(f"Rolled back bulk insert of {len(inserted)} entries at '{mount}'")
            raise

        for _, _, previous in inserted:
            if previous is not None:
                self._registry.release(previous.handle)
        logger.debug(
            f"Inserted {len(inserted)} entries at '{mount}' "
            f"({len(created)} folders created)"
        )
        return True

    def remove_file(self, path: PathLike) -> None:
        vpath = as_vpath(path)
        entry = self.lookup_file(vpath)
        if entry is None:
            raise VFSMissingFileError(vpath)
        folder = self._descend(vpath, vpath.depth(), create=False)
        del folder._files[entry.name]
        self._registry.release(entry.handle)

    def remove_folder(self, path: PathLike) -> None:
        """Remove the folder at *path* with everything below it."""
        vpath = as_vpath(path)
        folder = self.get_folder(vpath)
        node: Directory = self
        while True:
            if node is folder:
                raise ValueError(f"Cannot remove '{vpath}': it contains the current directory.")
            if node.is_root:
                break
            node = node.parent
        parent = folder.parent
        del parent._folders[folder._name]
        folder._release_all()
        folder._detach()

    def _release_all(self) -> None:
        for child in self._folders.values():
            child._release_all()
            child._detach()
        for entry in self._files.values():
            self._registry.release(entry.handle)
        self._folders.clear()
        self._files.clear()

    def prune(self) -> int:
        """Remove, bottom-up, every child folder that holds no files.

        This directory itself is never removed. Returns the number of folders
        removed.
        """
        removed = 0
        for name, child in list(self._folders.items()):
            removed += child.prune()
            # after pruning, an empty child has no subfolders left either
            if not child._files and not child._folders:
                del self._folders[name]
                child._detach()
                removed += 1
        return removed

    # -- traversal --

    def _iter_subtree(self) -> Iterator[tuple[VPath, Directory]]:
        stack: list[tuple[VPath, Directory]] = [(VPath(), self)]
        while stack:
            vpath, node = stack.pop()
            yield vpath, node
            for name, child in reversed(node._folders.items()):
                stack.append((vpath + (name,), child))

    def count_files(self) -> int:
        return sum(len(node._files) for _, node in self._iter_subtree())

    def count_folders(self) -> int:
        """Number of folders below this one (this one excluded)."""
        return sum(len(node._folders) for _, node in self._iter_subtree())

    def _iter_matching(self, pattern: Pattern) -> Iterator[FileEntry]:
        regex = _compile(pattern)
        for _, node in self._iter_subtree():
            for name, entry in node._files.items():
                if regex.fullmatch(name):
                    yield entry

    def count_files_matching(self, pattern: Pattern) -> int:
        """Count files whose *name* fully matches the regular expression."""
        return sum(1 for _ in self._iter_matching(pattern))

    def collect_files_matching(self, pattern: Pattern) -> list[FileEntry]:
        return list(self._iter_matching(pattern))

    def iter_files(self) -> Iterator[tuple[VPath, FileEntry]]:
        for vpath, node in self._iter_subtree():
            for name, entry in node._files.items():
                yield vpath + (name,), entry

    def walk(self) -> Iterator[tuple[VPath, list[str], list[str]]]:
        """Top-down ``(path, folder_names, file_names)`` like :func:`os.walk`."""
        for vpath, node in self._iter_subtree():
            yield vpath, list(node._folders), list(node._files)

    def render_tree(self) -> Iterator[str]:
        """Yield one display line per folder and file, depth first.

        Folders come before files at each level and end with ``/``. Nested
        lines are prefixed with ``" |"`` per level and a ``-`` connector.
        """
        return self._render("", 0)

    def _render(self, prefix: str, depth: int) -> Iterator[str]:
        connector = "-" if depth else ""
        for name, child in self._folders.items():
            yield f"{prefix}{connector}{name}/"
            yield from child._render(prefix + " |", depth + 1)
        for name in self._files:
            yield f"{prefix}{connector}{name}"

    def __repr__(self) -> str:
        return (
            f"Directory('{self.path}', folders={len(self._folders)}, "
            f"files={len(self._files)})"
        )


# ---------------------------------------------------------------------------
#  VirtualFileSystem
# ---------------------------------------------------------------------------


class VirtualFileSystem:
    """Thread-safe facade over one root :class:`Directory`.

    Read operations share a readers-writer lock; mutations hold it
    exclusively. ``lock_timeout`` bounds every wait (``None`` waits forever);
    a timed-out wait raises :class:`BlockingIOError`.
    """

    def __init__(self, min_owners: int = 1, lock_timeout: float | None = None) -> None:
        if lock_timeout is not None and lock_timeout < 0:
            raise ValueError(f"lock_timeout must be >= 0 or None, got {lock_timeout}")
        self._registry = HandleRegistry(min_owners)
        self._root = Directory(registry=self._registry)
        self._lock = ReadWriteLock()
        self._lock_timeout: float | None = lock_timeout

    @property
    def root(self) -> Directory:
        """The underlying tree. Not guarded by the lock."""
        return self._root

    def _reading(self) -> AbstractContextManager[None]:
        return self._lock.reading(self._lock_timeout)

    def _writing(self) -> AbstractContextManager[None]:
        return self._lock.writing(self._lock_timeout)

    # -- mutation --

    def insert_file(
        self,
        path: PathLike,
        content: Content,
        overwrite: bool = False,
        create_folders: bool = True,
    ) -> bool:
        with self._writing():
            return self._root.insert_file(path, content, overwrite, create_folders)

    def insert_bytes(
        self,
        path: PathLike,
        data: bytes,
        overwrite: bool = False,
        create_folders: bool = True,
    ) -> bool:
        return self.insert_file(path, BytesSource(data), overwrite, create_folders)

    def mount(self, bulk_source: BulkSource) -> bool:
        with self._writing():
            before = self._root.count_files()
            result = self._root.insert_bulk(bulk_source)
            after = self._root.count_files()
        logger.info(
            f"Mounted {bulk_source!r} at '/{bulk_source.mount_point}' "
            f"({after - before:+d} files)"
        )
        return result

    def create_folder(self, path: PathLike, recursive: bool = True) -> Directory:
        with self._writing():
            return self._root.create_folder(path, recursive)

    def remove_file(self, path: PathLike) -> None:
        with self._writing():
            self._root.remove_file(path)

    def remove_folder(self, path: PathLike) -> None:
        with self._writing():
            self._root.remove_folder(path)

    def prune(self) -> int:
        with self._writing():
            removed = self._root.prune()
        logger.info(f"Pruned {removed} empty folders")
        return removed

    def unload_all(self) -> int:
        """Release every loaded buffer. Returns how many were released."""
        released = 0
        with self._reading():
            for handle in self._registry.handles():
                if handle.is_loaded:
                    handle.unload()
                    released += 1
        logger.debug(f"Unloaded {released} content buffers")
        return released

    # -- lookup --

    def lookup_file(self, path: PathLike) -> FileEntry | None:
        with self._reading():
            return self._root.lookup_file(path)

    def lookup_folder(self, path: PathLike) -> Directory | None:
        with self._reading():
            return self._root.lookup_folder(path)

    def get_file(self, path: PathLike) -> FileEntry:
        with self._reading():
            return self._root.get_file(path)

    def read_bytes(self, path: PathLike) -> bytes:
        with self._reading():
            return self._root.get_file(path).get_bytes()

    def open(self, path: PathLike) -> io.BytesIO:
        """Return the file's content as a fresh :class:`io.BytesIO`."""
        return io.BytesIO(self.read_bytes(path))

    def get_size(self, path: PathLike) -> int:
        with self._reading():
            return self._root.get_file(path).length

    def exists(self, path: PathLike) -> bool:
        with self._reading():
            return (
                self._root.lookup_folder(path) is not None
                or self._root.lookup_file(path) is not None
            )

    def is_file(self, path: PathLike) -> bool:
        with self._reading():
            return self._root.lookup_file(path) is not None

    def is_dir(self, path: PathLike) -> bool:
        with self._reading():
            return self._root.lookup_folder(path) is not None

    def listdir(self, path: PathLike = "") -> list[str]:
        with self._reading():
            return self._root.get_folder(path).listdir()

    # -- traversal --

    def count_files(self) -> int:
        with self._reading():
            return self._root.count_files()

    def count_files_matching(self, pattern: Pattern) -> int:
        with self._reading():
            return self._root.count_files_matching(pattern)

    def collect_files_matching(self, pattern: Pattern) -> list[FileEntry]:
        with self._reading():
            return self._root.collect_files_matching(pattern)

    def walk(self, path: PathLike = "") -> list[tuple[VPath, list[str], list[str]]]:
        with self._reading():
            folder = self._root.get_folder(path)
            base = folder.path
            return [(base + sub, dirs, files) for sub, dirs, files in folder.walk()]

    def render_tree(self) -> list[str]:
        with self._reading():
            return list(self._root.render_tree())

    def log_tree(self, level: int = logging.INFO) -> None:
        for line in self.render_tree():
            logger.log(level, line)

    def export_tree(self, prefix: PathLike = "") -> dict[str, bytes]:
        """Read every file at or below *prefix* into ``{path: bytes}``.

        A missing prefix yields ``{}``; a file prefix yields that file alone.
        The returned bytes are copies held outside any handle.
        """
        vprefix = as_vpath(prefix)
        with self._reading():
            entry = self._root.lookup_file(vprefix)
            if entry is not None:
                return {str(vprefix): entry.get_bytes()}
            folder = self._root.lookup_folder(vprefix)
            if folder is None:
                return {}
            base = folder.path
            return {str(base + sub): e.get_bytes() for sub, e in folder.iter_files()}

    def stats(self) -> VFSStats:
        with self._reading():
            file_count = self._root.count_files()
            folder_count = self._root.count_folders()
            handles = self._registry.handles()
        loaded = [h for h in handles if h.is_loaded]
        return VFSStats(
            file_count=file_count,
            folder_count=folder_count,
            handle_count=len(handles),
            loaded_handle_count=len(loaded),
            loaded_bytes=sum(h.get_length() for h in loaded),
        )
