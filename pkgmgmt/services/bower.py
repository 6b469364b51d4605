"""Bower 包管理服务

"清单 + 直接拉取"风格: 依赖由进程内的 BowerFetcher 发现并写入
<project>/bower_components/。

- BowerManager:  PackageManager 门面
- BowerResolver: "/foo/bar.js" <-> bower_components/foo/bar.js
- BowerBuilder:  监听 bower.json 变更，刷新项目自引用名
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from pkgmgmt.core.exceptions import (
    DirectoryCreationError,
    MalformedManifestError,
    PkgMgmtError,
    PreconditionViolation,
)
from pkgmgmt.core.fetch.discoverer import DiscoverySet
from pkgmgmt.core.fetch.fetcher import BowerFetcher
from pkgmgmt.core.markers import MarkerStore
from pkgmgmt.core.models import ChangeDelta, FetchMode, FetchReport, Severity
from pkgmgmt.core.spec_parser import parse_manifest
from pkgmgmt.services.properties import PackageServiceProperties, bower_properties, file_under

if TYPE_CHECKING:
    from pkgmgmt.core.config import Config
    from pkgmgmt.core.protocols import InstallCheck, MarkerSink, ProgressMonitor
    from pkgmgmt.services.scm import ScmRegistry

logger = logging.getLogger(__name__)


class BowerManager:
    """Bower 包管理器"""

    def __init__(
        self,
        config: Config | None = None,
        *,
        scm_registry: ScmRegistry | None = None,
        markers: MarkerSink | None = None,
    ) -> None:
        if config is None:
            from pkgmgmt.core.config import get_config
            config = get_config()
        self.config = config
        self.scm_registry = scm_registry
        self.markers = markers or MarkerStore()
        self._properties = bower_properties()
        # 进行中的拉取（Web 服务多线程时可能同时有多个）
        self._active: set[BowerFetcher] = set()
        self._active_lock = threading.Lock()

    # ---- PackageManager ----

    @property
    def properties(self) -> PackageServiceProperties:
        return self._properties

    def get_builder(self) -> BowerBuilder:
        return BowerBuilder(self)

    def get_resolver_for(self, project: Path) -> BowerResolver:
        return BowerResolver(self, project)

    def install_packages(
        self, root: Path, monitor: ProgressMonitor | None = None, *, require_resolved: bool = False,
    ) -> FetchReport:
        return self._install_or_upgrade(root, FetchMode.INSTALL, monitor, require_resolved)

    def upgrade_packages(
        self, root: Path, monitor: ProgressMonitor | None = None, *, require_resolved: bool = False,
    ) -> FetchReport:
        return self._install_or_upgrade(root, FetchMode.UPGRADE, monitor, require_resolved)

    def are_packages_installed(self, root: Path) -> InstallCheck:
        """True，或第一个缺失的依赖名

        没有清单或清单无法解析时返回 True（无从判断，视为无需安装）。
        """
        spec_file = self._properties.find_spec_file(root)
        if spec_file is None:
            return True
        try:
            info = parse_manifest(
                spec_file.read_text(encoding="utf-8"), self._properties.manifest_format, source=str(spec_file),
            )
        except (MalformedManifestError, OSError) as e:
            logger.info("解析 %s 失败: %s", spec_file, e)
            return True
        packages_dir = self._properties.packages_dir(root)
        for dep in info.dependency_names():
            if not (packages_dir / dep).is_dir():
                return dep
        return True

    def discover_packages(self, root: Path) -> DiscoverySet:
        """只发现依赖、不拉取，用于预览解析结果"""
        spec_file = self._require_spec_file(Path(root))
        fetcher = BowerFetcher(
            self._properties.packages_dir(root),
            self._properties.package_spec_file_name,
            config=self.config,
            scm_registry=self.scm_registry,
        )
        found, _ = fetcher.discover_dependencies(spec_file)
        fetcher.print_resolution_comments()
        return found

    # ---- 自引用 ----

    def set_self_reference(self, project: Path, name: str | None) -> None:
        self._properties.set_self_reference(project, name)

    def get_self_reference(self, project: Path) -> str | None:
        return self._properties.get_self_reference(project)

    # ---- 取消 ----

    def cancel(self) -> None:
        """取消进行中的拉取（仅 clone 策略生效）

        注入了共享的源码管理注册表时，终止其中全部克隆；
        否则逐个通知进行中的拉取器。
        """
        if self.scm_registry is not None:
            self.scm_registry.cancel_all()
            return
        with self._active_lock:
            active = list(self._active)
        for fetcher in active:
            fetcher.cancel()

    def _install_or_upgrade(
        self,
        root: Path,
        mode: FetchMode,
        monitor: ProgressMonitor | None,
        require_resolved: bool,
    ) -> FetchReport:
        root = Path(root)
        spec_file = self._require_spec_file(root)

        packages_dir = self._properties.packages_dir(root)
        try:
            packages_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryCreationError(f"无法创建 {packages_dir}: {e}") from e

        fetcher = BowerFetcher(
            packages_dir,
            self._properties.package_spec_file_name,
            config=self.config,
            scm_registry=self.scm_registry,
            monitor=monitor,
        )
        with self._active_lock:
            self._active.add(fetcher)
        logger.info("Bower %s: %s", mode.value, root)
        try:
            return fetcher.fetch_dependencies(spec_file, mode, require_resolved=require_resolved)
        except PkgMgmtError as e:
            logger.error("获取 Bower 包失败: %s", e)
            raise
        finally:
            with self._active_lock:
                self._active.discard(fetcher)

    def _require_spec_file(self, root: Path) -> Path:
        spec_file = self._properties.find_spec_file(root)
        # 调用方应只在存在 bower.json 时调用
        if spec_file is None:
            raise PreconditionViolation(
                f"{self._properties.package_spec_file_name} 不存在于 {root}"
            )
        return spec_file


class BowerResolver:
    """Bower 引用解析: "/foo/bar.js" <-> <project>/bower_components/foo/bar.js"""

    def __init__(self, manager: BowerManager, project: Path) -> None:
        self.manager = manager
        self.project = Path(project)

    @property
    def properties(self) -> PackageServiceProperties:
        return self.manager.properties

    def resolve_ref_to_file(self, ref: str) -> Path | None:
        if ref.startswith("/"):
            ref = ref[1:]
        if not ref:
            return None
        packages_dir = self.properties.packages_dir(self.project)
        if not packages_dir.is_dir():
            return None
        return file_under(packages_dir, ref)

    def get_reference_for(self, file: Path) -> str | None:
        packages_dir = self.properties.packages_dir(self.project)
        try:
            rel = Path(file).resolve().relative_to(packages_dir.resolve())
        except ValueError:
            return None
        if not rel.parts:
            return None
        return "/" + rel.as_posix()

    def __repr__(self) -> str:
        return f"BowerResolver({self.project})"


class BowerBuilder:
    """监听 bower.json 变更，维护项目自引用名"""

    def __init__(self, manager: BowerManager) -> None:
        self.manager = manager

    @property
    def properties(self) -> PackageServiceProperties:
        return self.manager.properties

    def build(self, changes: list[ChangeDelta]) -> None:
        for delta in changes:
            path = Path(delta.path)
            if path.name != self.properties.package_spec_file_name:
                continue
            project = delta.project or path.parent
            # 只处理项目根目录下的清单
            if path.parent != Path(project):
                continue
            self._handle_spec_change(delta, Path(project))

    def _handle_spec_change(self, delta: ChangeDelta, project: Path) -> None:
        spec_file = Path(delta.path)
        service = self.properties.package_service_name
        if delta.is_delete:
            self.manager.set_self_reference(project, None)
            return

        self.manager.markers.clear_markers(spec_file, service)
        try:
            info = parse_manifest(
                spec_file.read_text(encoding="utf-8"), self.properties.manifest_format, source=str(spec_file),
            )
        except (MalformedManifestError, OSError) as e:
            self.manager.markers.create_marker(spec_file, service, Severity.ERROR, str(e), 1)
            return
        self.manager.set_self_reference(project, info.name)
