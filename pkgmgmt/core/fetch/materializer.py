"""包目录物化器

对每个已解析的包，按拉取模式决定跳过 / 创建 / 清理后重新拉取，
再调用内容拉取策略写入目录。

目录准备决策表:

    目录已存在  模式      动作
    否          INSTALL   创建，拉取内容
    否          UPGRADE   创建，拉取内容
    是          INSTALL   完全跳过（视现有内容为有效）
    是          UPGRADE   递归删除，重建，拉取内容

单个包失败只记日志并计入报告，不影响其他包；无论成败都上报一次进度。
"""

from __future__ import annotations

import logging
import shutil
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from pkgmgmt.core.exceptions import DirectoryCreationError, PkgMgmtError
from pkgmgmt.core.models import FetchMode, FetchReport, Package, PackageDirState
from pkgmgmt.core.progress import NullProgressMonitor, ProgressFormat

if TYPE_CHECKING:
    from pkgmgmt.core.fetch.strategies import ContentFetcher
    from pkgmgmt.core.protocols import ProgressMonitor

logger = logging.getLogger(__name__)


class PackageMaterializer:
    """把发现的包写入包目录"""

    def __init__(
        self,
        packages_dir: Path,
        content_fetcher: ContentFetcher,
        *,
        max_workers: int = 8,
        monitor: ProgressMonitor | None = None,
        label: str = "正在获取包…",
    ) -> None:
        self.packages_dir = Path(packages_dir)
        self.content_fetcher = content_fetcher
        self.max_workers = max(1, max_workers)
        self.monitor = monitor or NullProgressMonitor()
        self.label = label

    def fetch_all(self, packages: Iterable[Package], mode: FetchMode) -> FetchReport:
        """拉取全部已解析的包，返回汇总报告"""
        resolved = [p for p in packages if p.is_resolved]
        report = FetchReport(mode=mode, discovered=[p.name for p in resolved])

        self.monitor.start(self.label, len(resolved), ProgressFormat.N_OUT_OF_M)
        if not resolved:
            return report

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [pool.submit(self._fetch_one, p, mode) for p in resolved]
            for pkg, fut in zip(resolved, futures):
                outcome = fut.result()
                if outcome is None:
                    report.fetched.append(pkg.name)
                elif outcome == "":
                    report.skipped.append(pkg.name)
                else:
                    report.failed[pkg.name] = outcome

        if report.failed:
            logger.warning(
                "拉取汇总: %d 成功, %d 跳过, %d 失败 (%s)",
                len(report.fetched), len(report.skipped), len(report.failed),
                ", ".join(report.failed),
            )
        else:
            logger.info(
                "拉取汇总: %d 成功, %d 跳过", len(report.fetched), len(report.skipped),
            )
        return report

    def _fetch_one(self, package: Package, mode: FetchMode) -> str | None:
        """返回 None=已拉取, ""=已跳过, 其他=错误信息"""
        try:
            return None if self.fetch_package(package, mode) else ""
        except (PkgMgmtError, OSError) as e:
            logger.warning("拉取失败: %s - %s", package.name, e)
            return str(e) or type(e).__name__
        except Exception as e:
            # 单个包的任何异常都不能中断整批拉取
            logger.exception("拉取异常: %s", package.name)
            return f"{type(e).__name__}: {e}"
        finally:
            self.monitor.worked(1)

    def fetch_package(self, package: Package, mode: FetchMode) -> bool:
        """准备目录并拉取单个包；返回是否真正执行了拉取"""
        state = self.prepare_package_dir(package, mode)
        if state.existed and mode is FetchMode.INSTALL:
            logger.info("已存在，跳过: %s -> %s", package.name, state.path)
            return False
        self.content_fetcher.fetch(package, state.path)
        return True

    def prepare_package_dir(self, package: Package, mode: FetchMode) -> PackageDirState:
        """按决策表准备包目录

        - 目录不存在: 两种模式都创建，existed=False
        - 已存在 + INSTALL: 不动，existed=True
        - 已存在 + UPGRADE: 递归删除后重建，existed=True
        """
        pkg_dir = self.packages_dir / package.name
        if not pkg_dir.is_dir():
            self._create_dir(package, pkg_dir)
            return PackageDirState(path=pkg_dir, existed=False)

        if mode is FetchMode.UPGRADE:
            try:
                shutil.rmtree(pkg_dir)
            except OSError as e:
                raise DirectoryCreationError(
                    f"无法清理包 '{package.name}' 的目录 {pkg_dir}: {e}"
                ) from e
            self._create_dir(package, pkg_dir)
        return PackageDirState(path=pkg_dir, existed=True)

    @staticmethod
    def _create_dir(package: Package, pkg_dir: Path) -> None:
        try:
            pkg_dir.mkdir(parents=True, exist_ok=False)
        except OSError as e:
            raise DirectoryCreationError(
                f"无法为包 '{package.name}' 创建目录 {pkg_dir}: {e}"
            ) from e
