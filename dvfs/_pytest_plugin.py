"""pytest fixture plugin.

Usage::

    # conftest.py
    pytest_plugins = ["dvfs._pytest_plugin"]

This makes the ``vfs`` and ``root`` fixtures automatically available::

    def test_something(vfs):
        vfs.insert_bytes("a/b.txt", b"hello")
        assert vfs.read_bytes("a/b.txt") == b"hello"
"""

import pytest

from ._fs import Directory, VirtualFileSystem


@pytest.fixture
def vfs() -> VirtualFileSystem:
    """A fresh :class:`VirtualFileSystem` per test (function scope)."""
    return VirtualFileSystem()


@pytest.fixture
def root() -> Directory:
    """A fresh, unlocked root :class:`Directory` per test."""
    return Directory()
