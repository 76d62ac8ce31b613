import tarfile
import zipfile

import pytest

pytest_plugins = ["dvfs._pytest_plugin"]


@pytest.fixture
def disk_tree(tmp_path):
    """A real directory with a few nested files.

    Layout::

        apple.txt      b"apple"
        banana.txt     b"banana"
        app.log        b"log line"
        sub/inner.txt  b"inner"
        sub/deep/x.bin b"\\x00\\x01"
    """
    base = tmp_path / "disk"
    (base / "sub" / "deep").mkdir(parents=True)
    (base / "apple.txt").write_bytes(b"apple")
    (base / "banana.txt").write_bytes(b"banana")
    (base / "app.log").write_bytes(b"log line")
    (base / "sub" / "inner.txt").write_bytes(b"inner")
    (base / "sub" / "deep" / "x.bin").write_bytes(b"\x00\x01")
    return base


@pytest.fixture
def zip_archive(tmp_path):
    path = tmp_path / "assets.zip"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("textures/wall.png", b"PNG-wall")
        zf.writestr("textures/floor.png", b"PNG-floor")
        zf.writestr("sounds/", b"")
        zf.writestr("readme.txt", b"zip readme")
    return path


@pytest.fixture
def tar_archive(tmp_path):
    src = tmp_path / "tar_src"
    (src / "docs").mkdir(parents=True)
    (src / "docs" / "guide.md").write_bytes(b"# guide")
    (src / "notes.txt").write_bytes(b"notes")
    path = tmp_path / "bundle.tar.gz"
    with tarfile.open(path, "w:gz") as tf:
        tf.add(src / "docs", arcname="docs")
        tf.add(src / "notes.txt", arcname="notes.txt")
    return path


@pytest.fixture
def dot_tar_archive(tmp_path):
    """Tarball laid out like ``tar -C src -czf dot.tgz .`` (``./`` member prefix)."""
    src = tmp_path / "dot_src"
    (src / "docs").mkdir(parents=True)
    (src / "docs" / "guide.md").write_bytes(b"# guide")
    (src / "notes.txt").write_bytes(b"notes")
    path = tmp_path / "dot.tgz"
    with tarfile.open(path, "w:gz") as tf:
        tf.add(src, arcname=".")
    return path
