"""包服务属性

每种生态固定的目录 / 文件命名约定，以及按项目缓存的自引用名。
解析器和构建器都依赖这里的布局约定:

    <project>/
      bower.json | pubspec.yaml      清单
      bower_components/<dep>/        bower 包目录
      packages/<dep>/                pub 包目录
      lib/                           pub 自引用源码目录
"""

from __future__ import annotations

import logging
import posixpath
import re
import threading
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class PackageServiceProperties:
    """单个生态的命名约定 + 项目自引用名存储"""

    package_service_name: str
    package_spec_file_name: str
    packages_dir_name: str
    manifest_format: str = "json"
    lib_dir_name: str = ""
    package_ref_prefix: str = ""

    _self_refs: dict[Path, str] = field(default_factory=dict, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def package_ref_prefix_re(self) -> re.Pattern[str]:
        return re.compile(rf"^({re.escape(self.package_ref_prefix)})(.*)$")

    # ---- 布局 ----

    def find_spec_file(self, container: Path) -> Path | None:
        """清单必须直接位于 container 下"""
        spec = Path(container) / self.package_spec_file_name
        return spec if spec.is_file() else None

    def is_folder_with_packages(self, folder: Path) -> bool:
        return self.find_spec_file(folder) is not None

    def packages_dir(self, project: Path) -> Path:
        return Path(project) / self.packages_dir_name

    def is_in_packages_folder(self, path: Path, project: Path) -> bool:
        """path 是否位于 <project>/<packages_dir_name>/ 之下（含目录本身）"""
        try:
            rel = Path(path).relative_to(project)
        except ValueError:
            return False
        return bool(rel.parts) and rel.parts[0] == self.packages_dir_name

    def project_for(self, path: Path) -> Path | None:
        """由变更路径推断项目根

        清单本身 -> 其父目录；包目录内的资源 -> 包目录的父目录；
        否则向上查找第一个含清单的目录。
        """
        p = Path(path)
        if p.name == self.package_spec_file_name:
            return p.parent
        for parent in p.parents:
            if parent.name == self.packages_dir_name:
                return parent.parent
        for parent in p.parents:
            if self.is_folder_with_packages(parent):
                return parent
        return None

    # ---- 自引用 ----

    def get_self_reference(self, project: Path) -> str | None:
        with self._lock:
            return self._self_refs.get(_key(project))

    def set_self_reference(self, project: Path, name: str | None) -> None:
        with self._lock:
            if name:
                self._self_refs[_key(project)] = name
            else:
                self._self_refs.pop(_key(project), None)
        logger.debug("%s 自引用: %s -> %s", self.package_service_name, project, name)


def file_under(base: Path, rel: str) -> Path | None:
    """base 下的已存在文件；rel 规范化后跳出 base（如 ../x）时返回 None

    只做字面上的规范化，不跟随符号链接: pub 的 packages/<dep> 通常链接到缓存目录。
    """
    norm = posixpath.normpath(rel)
    if norm in (".", "..") or norm.startswith("../") or posixpath.isabs(norm):
        return None
    candidate = Path(base) / norm
    return candidate if candidate.is_file() else None


def _key(project: Path) -> Path:
    return Path(project).resolve()


def bower_properties() -> PackageServiceProperties:
    return PackageServiceProperties(
        package_service_name="bower",
        package_spec_file_name="bower.json",
        packages_dir_name="bower_components",
        manifest_format="json",
    )


def pub_properties() -> PackageServiceProperties:
    return PackageServiceProperties(
        package_service_name="pub",
        package_spec_file_name="pubspec.yaml",
        packages_dir_name="packages",
        manifest_format="yaml",
        lib_dir_name="lib",
        package_ref_prefix="package:",
    )
