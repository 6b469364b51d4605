"""Pub 包管理服务

"锁文件 + 外部工具"风格: install / upgrade 交给外部 pub 命令完成，
本模块只负责调用、进度上报与错误映射，以及 package: 引用的解析。

- PubManager:  PackageManager 门面
- PubResolver: "package:foo/bar.dart" <-> packages/foo/bar.dart，
               自引用 "package:<self>/x.dart" <-> lib/x.dart
- PubBuilder:  监听 pubspec.yaml 与 packages/ 变更，刷新自引用名并
               为缺失的依赖打 WARNING 标记
"""

from __future__ import annotations

import logging
import platform
import shlex
from pathlib import Path
from typing import TYPE_CHECKING

from pkgmgmt.core.exceptions import ExternalToolError, MalformedManifestError, PreconditionViolation
from pkgmgmt.core.markers import MarkerStore
from pkgmgmt.core.models import ChangeDelta, FetchMode, ManifestInfo, Severity
from pkgmgmt.core.progress import NullProgressMonitor, ProgressFormat
from pkgmgmt.core.spec_parser import parse_manifest
from pkgmgmt.services.properties import PackageServiceProperties, file_under, pub_properties
from pkgmgmt.utils.shell import CommandResult, get_executor

if TYPE_CHECKING:
    from pkgmgmt.core.config import Config
    from pkgmgmt.core.protocols import InstallCheck, MarkerSink, ProgressMonitor
    from pkgmgmt.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)

PROGRESS_LABEL = "正在获取 Pub 包…"
SYMLINKS_ERROR_CODE = "SYMLINKS_OPERATION_NOT_SUPPORTED"
SYMLINKS_ERROR_MSG = "当前文件系统不支持符号链接，无法完成 pub 操作"


def is_windows() -> bool:
    return platform.system() == "Windows"


def is_symlink_error(text: str) -> bool:
    return "symlink" in text.lower()


def _read_manifest(spec_file: Path, fmt: str) -> ManifestInfo:
    return parse_manifest(spec_file.read_text(encoding="utf-8"), fmt, source=str(spec_file))


class PubManager:
    """Pub 包管理器"""

    def __init__(
        self,
        config: Config | None = None,
        *,
        executor: CommandExecutor | None = None,
        markers: MarkerSink | None = None,
    ) -> None:
        if config is None:
            from pkgmgmt.core.config import get_config
            config = get_config()
        self.config = config
        self._executor = executor
        self.markers = markers or MarkerStore()
        self._properties = pub_properties()

    @property
    def executor(self) -> CommandExecutor:
        return self._executor or get_executor()

    def can_run_pub(self, project: Path) -> bool:
        return self._properties.is_folder_with_packages(project)

    # ---- PackageManager ----

    @property
    def properties(self) -> PackageServiceProperties:
        return self._properties

    def get_builder(self) -> PubBuilder:
        return PubBuilder(self)

    def get_resolver_for(self, project: Path) -> PubResolver:
        return PubResolver(self, project)

    def install_packages(
        self, root: Path, monitor: ProgressMonitor | None = None,
    ) -> CommandResult | None:
        return self._install_or_upgrade(root, FetchMode.INSTALL, monitor)

    def upgrade_packages(
        self, root: Path, monitor: ProgressMonitor | None = None,
    ) -> CommandResult | None:
        return self._install_or_upgrade(root, FetchMode.UPGRADE, monitor)

    def are_packages_installed(self, root: Path) -> InstallCheck:
        spec_file = self._properties.find_spec_file(root)
        if spec_file is None:
            return True
        try:
            info = _read_manifest(spec_file, self._properties.manifest_format)
        except (MalformedManifestError, OSError) as e:
            logger.info("解析 pubspec 失败: %s", e)
            return True
        packages_dir = self._properties.packages_dir(spec_file.parent)
        for dep in info.dependency_names():
            if not (packages_dir / dep).is_dir():
                return dep
        return True

    # ---- 自引用 ----

    def set_self_reference(self, project: Path, name: str | None) -> None:
        self._properties.set_self_reference(project, name)

    def get_self_reference(self, project: Path) -> str | None:
        return self._properties.get_self_reference(project)

    def _install_or_upgrade(
        self, root: Path, mode: FetchMode, monitor: ProgressMonitor | None,
    ) -> CommandResult | None:
        # Windows 上 pub 依赖的符号链接不可用
        if is_windows():
            logger.info("Windows 上不运行 pub，跳过 %s", mode.value)
            return None

        spec_file = self._properties.find_spec_file(root)
        # 调用方应只在存在 pubspec.yaml 时调用
        if spec_file is None:
            raise PreconditionViolation(
                f"{self._properties.package_spec_file_name} 不存在于 {root}"
            )

        # 总工作量未知: 只显示标签，每行输出算一次 worked
        monitor = monitor or NullProgressMonitor()
        monitor.start(PROGRESS_LABEL, 0, ProgressFormat.NONE)

        subcommand = "upgrade" if mode is FetchMode.UPGRADE else "get"
        cmd = shlex.split(self.config.pub_command) + [subcommand]
        result = self.executor.execute(cmd, cwd=str(spec_file.parent))

        for line in result.output_lines():
            logger.info("%s", line.strip())
            monitor.worked(1)

        if not result.success:
            detail = (result.stderr or result.stdout).strip()
            logger.error("获取 Pub 包失败 (rc=%d): %s", result.returncode, detail[:500])
            if is_symlink_error(detail):
                raise ExternalToolError(SYMLINKS_ERROR_MSG, SYMLINKS_ERROR_CODE)
            raise ExternalToolError(
                f"'{' '.join(cmd)}' 失败 (rc={result.returncode}): {detail[:300]}"
            )
        return result


class PubResolver:
    """解析 package: 引用

    自引用名在构造时从项目的 pubspec.yaml 计算一次。
    """

    def __init__(self, manager: PubManager, project: Path) -> None:
        self.manager = manager
        self.project = Path(project)
        self._calc_self_reference()

    @property
    def properties(self) -> PackageServiceProperties:
        return self.manager.properties

    def resolve_ref_to_file(self, ref: str) -> Path | None:
        """package:foo/bar.dart -> packages/foo/bar.dart；自引用 -> lib/

        目标不是已存在的文件时返回 None。
        """
        m = self.properties.package_ref_prefix_re.match(ref)
        if m is None:
            return None

        rest = m.group(2)
        self_ref = self.properties.get_self_reference(self.project)
        base = self.project / self.properties.packages_dir_name
        if self_ref is not None and rest.startswith(self_ref + "/"):
            rest = rest[len(self_ref) + 1:]
            base = self.project / self.properties.lib_dir_name

        if not rest or not base.is_dir():
            return None
        return file_under(base, rest)

    def get_reference_for(self, file: Path) -> str | None:
        """给文件找最合适的 package: 引用；lib/ 下的文件用自引用"""
        try:
            parts = Path(file).resolve().relative_to(self.project.resolve()).parts
        except ValueError:
            return None
        if len(parts) < 2:
            return None

        head, rest = parts[0], "/".join(parts[1:])
        prefix = self.properties.package_ref_prefix
        if head == self.properties.packages_dir_name:
            return prefix + rest
        if head == self.properties.lib_dir_name:
            self_ref = self.properties.get_self_reference(self.project)
            if self_ref is None:
                return None
            return f"{prefix}{self_ref}/{rest}"
        return None

    def _calc_self_reference(self) -> None:
        spec_file = self.project / self.properties.package_spec_file_name
        if not spec_file.is_file():
            return
        try:
            info = _read_manifest(spec_file, self.properties.manifest_format)
        except (MalformedManifestError, OSError) as e:
            logger.debug("无法计算 %s 的自引用名: %s", self.project, e)
            return
        self.manager.set_self_reference(self.project, info.name)

    def __repr__(self) -> str:
        return f"PubResolver({self.project})"


class PubBuilder:
    """监听 pubspec.yaml / packages/ 变更"""

    def __init__(self, manager: PubManager) -> None:
        self.manager = manager

    @property
    def properties(self) -> PackageServiceProperties:
        return self.manager.properties

    def build(self, changes: list[ChangeDelta]) -> None:
        if not changes:
            return
        first = changes[0]
        project = first.project or self.properties.project_for(first.path)
        # 不属于任何项目的顶层文件
        if project is None:
            return
        project = Path(project)

        spec_file = project / self.properties.package_spec_file_name
        if not spec_file.is_file():
            if self.manager.get_self_reference(project) is not None:
                self.manager.set_self_reference(project, None)
            return

        analyze = False
        for delta in changes:
            path = Path(delta.path)
            if path == spec_file:
                if delta.is_delete:
                    analyze = False
                    break
                analyze = True
            elif self.properties.is_in_packages_folder(path, project):
                analyze = True

        if analyze:
            self._analyze_pubspec(spec_file, project)

    def _analyze_pubspec(self, spec_file: Path, project: Path) -> None:
        service = self.properties.package_service_name
        markers = self.manager.markers
        markers.clear_markers(spec_file, service)
        try:
            info = _read_manifest(spec_file, self.properties.manifest_format)
        except (MalformedManifestError, OSError) as e:
            markers.create_marker(spec_file, service, Severity.ERROR, str(e), 1)
            return

        self.manager.set_self_reference(project, info.name)
        packages_dir = self.properties.packages_dir(project)
        for dep in info.dependency_names():
            if not (packages_dir / dep).is_dir():
                # TODO: 标记放到依赖声明所在的行
                markers.create_marker(
                    spec_file, service, Severity.WARNING,
                    f"'{dep}' does not exist in the packages directory. "
                    "Do you need to run 'pub get'?", 1,
                )
