"""zip 归档解压

GitHub 生成的归档总是包一层 <repo>-<branch>/ 顶层目录，解压时去掉。
条目严格按归档中的顺序依次写入: 目录条目排在其包含的文件之前，
而写文件不会隐式创建父目录，因此顺序执行是正确性的前提。
"""

from __future__ import annotations

import io
import logging
import re
import zipfile
import zlib
from pathlib import Path

from pkgmgmt.core.exceptions import ArchiveWriteError

logger = logging.getLogger(__name__)

_ZIP_TOP_LEVEL_DIR_RE = re.compile(r"^[^/]*/")


def strip_top_level_dir(name: str) -> str:
    """去掉第一段路径: "foo-master/lib/a.js" -> "lib/a.js" """
    return _ZIP_TOP_LEVEL_DIR_RE.sub("", name, count=1)


def inflate_archive(data: bytes, target: Path) -> int:
    """把 zip 字节流解压到 target，返回写入的条目数

    Raises:
        ArchiveWriteError: 归档损坏、条目越界或写入失败
    """
    try:
        zf = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as e:
        raise ArchiveWriteError(f"无效的 zip 归档: {e}") from e

    written = 0
    with zf:
        for info in zf.infolist():
            if write_archive_entry(zf, info, target):
                written += 1
    logger.debug("解压完成: %s (%d 个条目)", target, written)
    return written


def write_archive_entry(zf: zipfile.ZipFile, info: zipfile.ZipInfo, target: Path) -> bool:
    """写入单个条目；顶层目录本身被跳过时返回 False"""
    rel = strip_top_level_dir(info.filename)
    if not rel:
        return False

    dest = _safe_dest(target, rel)

    if info.file_size == 0 and rel.endswith("/"):
        try:
            dest.mkdir(exist_ok=True)
        except OSError as e:
            raise ArchiveWriteError(f"无法创建子目录 {rel}: {e}") from e
        return True

    try:
        dest.write_bytes(zf.read(info))
    except (OSError, zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError, RuntimeError) as e:
        raise ArchiveWriteError(f"无法写入文件 {rel}: {e}") from e
    return True


def _safe_dest(target: Path, rel: str) -> Path:
    """计算条目目标路径，拒绝逃逸出 target 的条目（如 ../x）"""
    root = target.resolve()
    dest = (target / rel).resolve()
    if dest != root and root not in dest.parents:
        raise ArchiveWriteError(f"归档条目路径越界: {rel}")
    return target / rel.rstrip("/")
