from __future__ import annotations

import re
from collections.abc import Iterable, Iterator

from ._exceptions import VFSInvalidNameError, VFSPathOutOfRangeError

_SEPARATORS = re.compile(r"[/\\]")

CURRENT_ALIAS = "."
PARENT_ALIAS = ".."
RESERVED_NAMES = frozenset((CURRENT_ALIAS, PARENT_ALIAS))


def parse_path(path: str) -> tuple[str, ...]:
    """Split *path* on ``/`` or ``\\`` into its non-empty components.

    A trailing separator does not produce an empty component, and neither
    does a leading or doubled one, so ``""`` and ``"/"`` both parse to ``()``.
    ``.`` and ``..`` are kept as opaque components.
    """
    return tuple(part for part in _SEPARATORS.split(path) if part)


def check_name(name: str) -> str:
    """Return *name* if it can be stored as a file or folder name."""
    if not isinstance(name, str) or not name or _SEPARATORS.search(name):
        raise VFSInvalidNameError(name)
    if name in RESERVED_NAMES:
        raise VFSInvalidNameError(name)
    return name


class VPath:
    """Immutable virtual path: an ordered tuple of name components."""

    __slots__ = ("_parts",)

    def __init__(self, path: str | VPath | Iterable[str] = "") -> None:
        if isinstance(path, VPath):
            parts = path._parts
        elif isinstance(path, str):
            parts = parse_path(path)
        else:
            parts = tuple(path)
            for part in parts:
                if not isinstance(part, str) or not part or _SEPARATORS.search(part):
                    raise VFSInvalidNameError(part)
        self._parts: tuple[str, ...] = parts

    @classmethod
    def parse(cls, path: str) -> VPath:
        return cls(path)

    @classmethod
    def _from_parts(cls, parts: tuple[str, ...]) -> VPath:
        obj = cls.__new__(cls)
        obj._parts = parts
        return obj

    @property
    def parts(self) -> tuple[str, ...]:
        return self._parts

    def __len__(self) -> int:
        return len(self._parts)

    def __iter__(self) -> Iterator[str]:
        return iter(self._parts)

    def __bool__(self) -> bool:
        return bool(self._parts)

    def __getitem__(self, index: int) -> str:
        if not isinstance(index, int):
            raise TypeError(
                f"VPath indices must be integers, not {type(index).__name__}. "
                "Use suffix() for ranges."
            )
        n = len(self._parts)
        if index >= n or index < -n:
            raise VFSPathOutOfRangeError(self, index)
        return self._parts[index]

    def suffix(self, start: int, stop: int | None = None) -> VPath:
        """Return the components in the half-open range ``[start, stop)``."""
        n = len(self._parts)
        end = n if stop is None else stop
        if start < 0 or start > n:
            raise VFSPathOutOfRangeError(self, start)
        if end < start or end > n:
            raise VFSPathOutOfRangeError(self, end)
        return VPath._from_parts(self._parts[start:end])

    def concat(self, other: str | VPath | Iterable[str]) -> VPath:
        return VPath._from_parts(self._parts + VPath(other)._parts)

    def __add__(self, other: object) -> VPath:
        if isinstance(other, (str, VPath, tuple, list)):
            return self.concat(other)
        return NotImplemented

    def __radd__(self, other: object) -> VPath:
        if isinstance(other, (str, tuple, list)):
            return VPath(other).concat(self)
        return NotImplemented

    def last(self) -> str:
        if not self._parts:
            raise VFSPathOutOfRangeError(self, -1)
        return self._parts[-1]

    def parent(self) -> VPath:
        return VPath._from_parts(self._parts[:-1])

    def depth(self) -> int:
        """Number of folders above the last component (``len - 1``)."""
        return len(self._parts) - 1

    def __eq__(self, other: object) -> bool:
        if isinstance(other, VPath):
            return self._parts == other._parts
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._parts)

    def __str__(self) -> str:
        return "/".join(self._parts)

    def __repr__(self) -> str:
        return f"VPath({str(self)!r})"


def as_vpath(path: str | VPath | Iterable[str]) -> VPath:
    return path if isinstance(path, VPath) else VPath(path)
