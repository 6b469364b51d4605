"""zip 解压测试"""

from __future__ import annotations

import io
import zipfile
import zlib
from pathlib import Path

import pytest

from pkgmgmt.core.exceptions import ArchiveWriteError
from pkgmgmt.core.fetch.archive import inflate_archive, strip_top_level_dir


def _zip(entries: list[tuple[str, bytes]]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in entries:
            zf.writestr(name, data)
    return buf.getvalue()


def _corrupt_deflate_zip(name: str, payload: bytes) -> bytes:
    """deflate 压缩后把该条目的压缩数据整段改写为 0xff（非法块类型）"""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(name, payload)
    data = bytearray(buf.getvalue())
    with zipfile.ZipFile(io.BytesIO(bytes(data))) as zf:
        info = zf.getinfo(name)
    off = info.header_offset
    # 本地文件头固定 30 字节，其后是文件名和 extra 字段
    name_len = int.from_bytes(data[off + 26:off + 28], "little")
    extra_len = int.from_bytes(data[off + 28:off + 30], "little")
    start = off + 30 + name_len + extra_len
    data[start:start + info.compress_size] = b"\xff" * info.compress_size
    return bytes(data)


class TestStripTopLevelDir:
    @pytest.mark.parametrize("name,expected", [
        ("foo-master/lib/a.js", "lib/a.js"),
        ("foo-master/", ""),
        ("foo-master/a.js", "a.js"),
        ("README", "README"),
    ])
    def test_strip(self, name: str, expected: str) -> None:
        assert strip_top_level_dir(name) == expected


class TestInflateArchive:
    def test_github_layout(self, tmp_path: Path) -> None:
        data = _zip([
            ("foo-master/", b""),
            ("foo-master/bower.json", b'{"name": "foo"}'),
            ("foo-master/lib/", b""),
            ("foo-master/lib/a.js", b"module.exports = 1;"),
        ])
        count = inflate_archive(data, tmp_path)
        assert count == 3
        assert (tmp_path / "bower.json").read_text() == '{"name": "foo"}'
        assert (tmp_path / "lib" / "a.js").read_bytes() == b"module.exports = 1;"
        assert not (tmp_path / "foo-master").exists()

    def test_file_before_its_directory_fails(self, tmp_path: Path) -> None:
        data = _zip([
            ("foo-master/lib/a.js", b"x"),
            ("foo-master/lib/", b""),
        ])
        with pytest.raises(ArchiveWriteError, match="lib/a.js"):
            inflate_archive(data, tmp_path)

    def test_existing_subdir_ok(self, tmp_path: Path) -> None:
        (tmp_path / "lib").mkdir()
        inflate_archive(_zip([("foo-master/lib/", b""), ("foo-master/lib/b.js", b"b")]), tmp_path)
        assert (tmp_path / "lib" / "b.js").read_text() == "b"

    def test_empty_file_is_written(self, tmp_path: Path) -> None:
        inflate_archive(_zip([("foo-master/.keep", b"")]), tmp_path)
        assert (tmp_path / ".keep").is_file()

    def test_path_traversal_rejected(self, tmp_path: Path) -> None:
        target = tmp_path / "pkg"
        target.mkdir()
        with pytest.raises(ArchiveWriteError, match="越界"):
            inflate_archive(_zip([("foo-master/../../evil.txt", b"x")]), target)
        assert not (tmp_path / "evil.txt").exists()

    def test_bad_zip(self, tmp_path: Path) -> None:
        with pytest.raises(ArchiveWriteError, match="无效的 zip"):
            inflate_archive(b"this is not a zip", tmp_path)

    def test_corrupt_deflate_stream(self, tmp_path: Path) -> None:
        data = _corrupt_deflate_zip("foo-master/a.js", b"console.log(1);\n" * 64)
        with pytest.raises(ArchiveWriteError, match="a.js"):
            inflate_archive(data, tmp_path)

    @pytest.mark.parametrize("exc", [
        zlib.error("Error -3 while decompressing data"),
        EOFError("Compressed file ended before the end-of-stream marker was reached"),
        NotImplementedError("That compression method is not supported"),
        RuntimeError("File is encrypted, password required for extraction"),
    ])
    def test_read_errors_mapped(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, exc: Exception) -> None:
        def boom(self, name, pwd=None):
            raise exc

        data = _zip([("foo-master/a.js", b"x")])
        monkeypatch.setattr(zipfile.ZipFile, "read", boom)
        with pytest.raises(ArchiveWriteError, match="a.js"):
            inflate_archive(data, tmp_path)
