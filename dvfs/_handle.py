from __future__ import annotations

import io
import logging
import threading
from collections.abc import Hashable

from ._exceptions import VFSSourceUnavailableError
from ._source import ContentSource

logger = logging.getLogger(__name__)


class ContentHandle:
    """Lazily loaded, reference-counted holder of one source's bytes.

    Every :class:`~dvfs.FileEntry` that points at the same physical resource
    shares one handle. The length is known eagerly; the bytes are read on the
    first :meth:`get_bytes` call and published only once complete, so a
    reader sees either no buffer or the whole buffer.

    When the reference count drops below ``min_owners`` the buffer is
    released (the handle reverts to unloaded but stays usable). At zero
    references the handle is released and may be dropped by its owner.
    """

    __slots__ = ("_source", "_length", "_buffer", "_references", "_min_owners", "_lock")

    def __init__(self, source: ContentSource, min_owners: int = 1) -> None:
        if min_owners < 0:
            raise ValueError(f"min_owners must be >= 0, got {min_owners}")
        self._source: ContentSource = source
        self._length: int = source.length()
        self._buffer: bytes | None = None
        self._references: int = 0
        self._min_owners: int = min_owners
        self._lock = threading.Lock()

    @property
    def source(self) -> ContentSource:
        return self._source

    @property
    def identity(self) -> Hashable:
        return self._source.identity

    def get_length(self) -> int:
        return self._length

    @property
    def length(self) -> int:
        return self._length

    @property
    def min_owners(self) -> int:
        return self._min_owners

    @property
    def reference_count(self) -> int:
        with self._lock:
            return self._references

    @property
    def is_loaded(self) -> bool:
        return self._buffer is not None

    @property
    def is_released(self) -> bool:
        with self._lock:
            return self._references == 0

    def get_bytes(self) -> bytes:
        buf = self._buffer
        if buf is not None:
            return buf
        with self._lock:
            if self._buffer is None:
                self._buffer = self._load()
            return self._buffer

    def _load(self) -> bytes:
        source = self._source
        if not source.is_valid():
            raise VFSSourceUnavailableError(source)
        staging = bytearray(self._length)
        if not source.read_into(staging):
            raise VFSSourceUnavailableError(source, "read failed")
        logger.debug(f"Loaded {self._length} bytes from {source!r}")
        return bytes(staging)

    def open(self) -> io.BytesIO:
        return io.BytesIO(self.get_bytes())

    def add_reference(self) -> int:
        with self._lock:
            self._references += 1
            return self._references

    def remove_reference(self) -> int:
        with self._lock:
            if self._references <= 0:
                raise RuntimeError("remove_reference called without matching add_reference")
            self._references -= 1
            if self._references < self._min_owners:
                self._unload_locked()
            return self._references

    def unload(self) -> None:
        """Drop the loaded buffer; the next :meth:`get_bytes` reloads it."""
        with self._lock:
            self._unload_locked()

    def _unload_locked(self) -> None:
        if self._buffer is not None:
            self._buffer = None
            logger.debug(f"Unloaded {self._length} bytes from {self._source!r}")

    def __repr__(self) -> str:
        state = "loaded" if self._buffer is not None else "unloaded"
        return (
            f"ContentHandle({self._source!r}, length={self._length}, "
            f"refs={self._references}, {state})"
        )


class HandleRegistry:
    """Tree-wide table mapping a source identity to its live handle.

    :meth:`acquire` either reuses the handle already registered for the
    source's identity or wraps the source in a new one, then adds a
    reference. A fresh source object whose length differs from the live
    handle's (the resource changed since that handle was made) gets a new
    handle, as does any fresh source acquired with ``replace=True``. The
    new handle takes over the identity; the old one stays with the entries
    already holding it until their references are released. :meth:`release`
    removes one reference and forgets the handle once nothing refers to it.
    """

    def __init__(self, min_owners: int = 1) -> None:
        if min_owners < 0:
            raise ValueError(f"min_owners must be >= 0, got {min_owners}")
        self._min_owners: int = min_owners
        self._handles: dict[Hashable, ContentHandle] = {}
        # superseded handles still referenced by older entries
        self._retired: dict[Hashable, list[ContentHandle]] = {}
        self._lock: threading.Lock = threading.Lock()

    @property
    def min_owners(self) -> int:
        return self._min_owners

    def acquire(self, content: ContentSource | ContentHandle, replace: bool = False) -> ContentHandle:
        """Return the handle for *content* with one more reference.

        An explicit :class:`ContentHandle` is adopted as is. It raises
        :class:`ValueError` if a different live handle already serves the
        same identity.
        """
        with self._lock:
            if isinstance(content, ContentHandle):
                current = self._handles.get(content.identity)
                if current is not None and current is not content:
                    raise ValueError(
                        f"Another handle is already registered for {content.source!r}"
                    )
                handle = content
            else:
                handle = self._handles.get(content.identity)
                if handle is None or not self._reusable(handle, content, replace):
                    if handle is not None:
                        self._retired.setdefault(handle.identity, []).append(handle)
                    handle = ContentHandle(content, self._min_owners)
            self._handles[handle.identity] = handle
            handle.add_reference()
            return handle

    @staticmethod
    def _reusable(handle: ContentHandle, source: ContentSource, replace: bool) -> bool:
        if handle.source is source:
            return True
        return not replace and handle.length == source.length()

    def release(self, handle: ContentHandle) -> int:
        with self._lock:
            remaining = handle.remove_reference()
            if remaining == 0:
                self._forget(handle)
            return remaining

    def _forget(self, handle: ContentHandle) -> None:
        identity = handle.identity
        retired = self._retired.get(identity, [])
        if self._handles.get(identity) is handle:
            del self._handles[identity]
            if retired:
                # the newest superseded handle serves the identity again
                self._handles[identity] = retired.pop()
        elif handle in retired:
            retired.remove(handle)
        if not retired:
            self._retired.pop(identity, None)

    def handles(self) -> list[ContentHandle]:
        with self._lock:
            retired = [h for group in self._retired.values() for h in group]
            return [*self._handles.values(), *retired]

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles) + sum(len(group) for group in self._retired.values())

    def __contains__(self, content: object) -> bool:
        with self._lock:
            if isinstance(content, ContentHandle):
                return self._handles.get(content.identity) is content or any(
                    h is content for h in self._retired.get(content.identity, ())
                )
            if isinstance(content, ContentSource):
                return content.identity in self._handles
            return False
