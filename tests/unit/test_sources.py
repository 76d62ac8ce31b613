from dvfs import BytesSource, LooseFileSource, TarEntrySource, ZipEntrySource


def _read(source):
    buf = bytearray(source.length())
    assert source.read_into(buf)
    return bytes(buf)


def test_bytes_source():
    src = BytesSource(b"abc")
    assert src.is_valid()
    assert src.length() == 3
    assert _read(src) == b"abc"


def test_bytes_source_wrong_buffer_size():
    assert BytesSource(b"abc").read_into(bytearray(2)) is False


def test_bytes_source_identity_is_per_object():
    assert BytesSource(b"a").identity != BytesSource(b"a").identity


def test_loose_file(tmp_path):
    p = tmp_path / "f.bin"
    p.write_bytes(b"disk bytes")
    src = LooseFileSource(p)
    assert src.is_valid()
    assert src.length() == 10
    assert _read(src) == b"disk bytes"


def test_loose_file_missing(tmp_path):
    src = LooseFileSource(tmp_path / "nope")
    assert not src.is_valid()
    assert src.length() == 0
    assert src.read_into(bytearray()) is False


def test_loose_file_directory_invalid(tmp_path):
    src = LooseFileSource(tmp_path)
    assert not src.is_valid()
    assert src.length() == 0


def test_loose_file_deleted_after_construction(tmp_path):
    p = tmp_path / "gone.txt"
    p.write_bytes(b"soon gone")
    src = LooseFileSource(p)
    p.unlink()
    assert not src.is_valid()
    assert src.read_into(bytearray(src.length())) is False


def test_loose_file_shrunk_reports_failure(tmp_path):
    p = tmp_path / "f.txt"
    p.write_bytes(b"0123456789")
    src = LooseFileSource(p)
    p.write_bytes(b"0123")
    assert src.read_into(bytearray(src.length())) is False


def test_loose_file_grown_reports_failure(tmp_path):
    p = tmp_path / "f.txt"
    p.write_bytes(b"short")
    src = LooseFileSource(p)
    p.write_bytes(b"much longer content")
    assert src.read_into(bytearray(src.length())) is False


def test_loose_file_appearing_after_construction_reports_failure(tmp_path):
    p = tmp_path / "late.txt"
    src = LooseFileSource(p)
    p.write_bytes(b"arrived late")
    assert src.is_valid()
    assert src.length() == 0
    assert src.read_into(bytearray()) is False


def test_loose_file_identity_uses_real_path(tmp_path):
    p = tmp_path / "f.txt"
    p.write_bytes(b"x")
    assert LooseFileSource(p).identity == LooseFileSource(str(p)).identity


def test_zip_entry(zip_archive):
    src = ZipEntrySource(zip_archive, "textures/wall.png")
    assert src.is_valid()
    assert src.length() == len(b"PNG-wall")
    assert _read(src) == b"PNG-wall"


def test_zip_entry_missing_member(zip_archive):
    src = ZipEntrySource(zip_archive, "nope.txt")
    assert not src.is_valid()
    assert src.length() == 0


def test_zip_directory_member_invalid(zip_archive):
    assert not ZipEntrySource(zip_archive, "sounds/").is_valid()


def test_zip_entry_identity(zip_archive):
    a = ZipEntrySource(zip_archive, "readme.txt")
    b = ZipEntrySource(str(zip_archive), "readme.txt", size=10)
    assert a.identity == b.identity


def test_tar_entry(tar_archive):
    src = TarEntrySource(tar_archive, "docs/guide.md")
    assert src.is_valid()
    assert src.length() == len(b"# guide")
    assert _read(src) == b"# guide"


def test_tar_directory_member_invalid(tar_archive):
    assert not TarEntrySource(tar_archive, "docs").is_valid()


def test_tar_missing_archive(tmp_path):
    src = TarEntrySource(tmp_path / "none.tar", "a")
    assert not src.is_valid()
    assert src.read_into(bytearray()) is False


def test_corrupt_zip_is_invalid(tmp_path):
    p = tmp_path / "bad.zip"
    p.write_bytes(b"not an archive")
    src = ZipEntrySource(p, "x")
    assert not src.is_valid()
    assert src.length() == 0
