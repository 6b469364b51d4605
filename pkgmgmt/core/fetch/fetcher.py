"""Bower 包拉取器

串联一次完整的 install / upgrade:
  1. 读取本地清单
  2. DependencyDiscoverer 递归发现全部依赖（远程清单从 raw.githubusercontent 读取）
  3. PackageMaterializer 按模式准备目录并拉取内容
  4. 统一输出本次的解析说明（被改写 / 被忽略 / 无法解析）
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from pkgmgmt.core.exceptions import ManifestReadError, NetworkFetchError, UnresolvedDependencyError
from pkgmgmt.core.fetch.discoverer import DependencyDiscoverer, DiscoverySet
from pkgmgmt.core.fetch.materializer import PackageMaterializer
from pkgmgmt.core.fetch.strategies import CloneContentFetcher, ContentFetcher, ZipContentFetcher
from pkgmgmt.core.models import FetchMode, FetchReport, Package, ResolutionComments
from pkgmgmt.core.policy import ResolutionConfig
from pkgmgmt.core.progress import NullProgressMonitor
from pkgmgmt.core.spec_parser import format_for
from pkgmgmt.utils.net import download_text

if TYPE_CHECKING:
    from pkgmgmt.core.config import Config
    from pkgmgmt.core.protocols import ProgressMonitor
    from pkgmgmt.services.scm import ScmRegistry

logger = logging.getLogger(__name__)

PROGRESS_LABEL = "正在获取 Bower 包…"


class BowerFetcher:
    """Bower 依赖拉取器: 发现 + 物化"""

    def __init__(
        self,
        packages_dir: Path,
        spec_file_name: str,
        *,
        config: Config,
        scm_registry: ScmRegistry | None = None,
        monitor: ProgressMonitor | None = None,
        content_fetcher: ContentFetcher | None = None,
    ) -> None:
        self.packages_dir = Path(packages_dir)
        self.spec_file_name = spec_file_name
        self.config = config
        self.monitor = monitor or NullProgressMonitor()
        self.content_fetcher = content_fetcher or self._make_content_fetcher(scm_registry)

        self._all_deps: DiscoverySet = {}
        self._comments = ResolutionComments()

    def _make_content_fetcher(self, scm_registry: ScmRegistry | None) -> ContentFetcher:
        if self.config.bower_fetch_strategy == "clone":
            if scm_registry is None:
                from pkgmgmt.services.scm import ScmRegistry
                scm_registry = ScmRegistry.default()
            return CloneContentFetcher(scm_registry.get("git"), self.config.github_root_url)
        return ZipContentFetcher(self.config.github_root_url, self.config.request_timeout)

    @property
    def all_deps(self) -> DiscoverySet:
        """最近一次运行发现的依赖集合"""
        return dict(self._all_deps)

    def fetch_dependencies(
        self, spec_file: Path, mode: FetchMode, *, require_resolved: bool = False,
    ) -> FetchReport:
        """读取清单、发现并拉取全部依赖

        根清单读取或解析失败会抛出；单个包的失败只体现在报告里。
        require_resolved=True 且一个依赖都没能解析时抛 UnresolvedDependencyError。
        """
        found, comments = self.discover_dependencies(spec_file)

        if require_resolved and not any(p.is_resolved for p in found.values()):
            self.print_resolution_comments()
            raise UnresolvedDependencyError(f"{spec_file} 中没有任何可解析的依赖")

        materializer = PackageMaterializer(
            self.packages_dir,
            self.content_fetcher,
            max_workers=self.config.max_workers,
            monitor=self.monitor,
            label=PROGRESS_LABEL,
        )
        report = materializer.fetch_all(found.values(), mode)
        report.comments = comments
        self.print_resolution_comments()
        return report

    def discover_dependencies(self, spec_file: Path) -> tuple[DiscoverySet, ResolutionComments]:
        """只做发现，不写磁盘；结果同时保存在 all_deps 中"""
        self._all_deps.clear()
        self._comments = ResolutionComments()

        text = self._read_local_spec_file(spec_file)
        discoverer = DependencyDiscoverer(
            self._read_remote_spec_file,
            config=ResolutionConfig.from_config(self.config),
            manifest_format=format_for(self.spec_file_name),
            max_workers=self.config.max_workers,
        )
        found, comments = discoverer.discover(text, str(spec_file))
        self._all_deps.update(found)
        self._comments = comments
        return found, comments

    def cancel(self) -> None:
        """取消正在进行的克隆；zip 下载不支持取消"""
        cancel = getattr(self.content_fetcher, "cancel", None)
        if cancel is None:
            logger.info("当前拉取策略不支持取消")
            return
        cancel()

    @staticmethod
    def _read_local_spec_file(spec_file: Path) -> str:
        try:
            return Path(spec_file).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ManifestReadError(f"读取 '{spec_file}' 失败: {e}") from e

    def _read_remote_spec_file(self, package: Package) -> str:
        url = package.single_file_url(self.spec_file_name, self.config.github_user_content_url)
        try:
            return download_text(url, timeout=self.config.request_timeout, context=package.name)
        except NetworkFetchError as e:
            raise NetworkFetchError(
                f"加载 '{package.name}' 的 {self.spec_file_name} 失败: {e.args[0]}"
            ) from e

    def print_resolution_comments(self) -> None:
        c = self._comments
        if c.altered:
            logger.info(
                "部分依赖已按配置改写:\n\n  %s\n", "\n  ".join(c.altered),
            )
        if c.ignored:
            logger.info(
                "部分依赖已被忽略:\n\n  %s\n", "\n  ".join(c.ignored),
            )
        if c.unresolved:
            logger.warning(
                "部分依赖无法解析，已跳过。\n"
                "修复方法: 在配置文件中添加或修改以下条目:\n\n"
                "  bower_overridden_deps:\n    %s\n\n"
                "也可以把依赖名加入 bower_ignored_deps 列表以忽略它，\n"
                "或设置 bower_map_complex_ver_to_latest_stable: true，\n"
                "把不支持的复杂版本映射为最新稳定分支。",
                "\n    ".join(c.unresolved),
            )
