"""包内容拉取策略: zip 下载解压 / git 克隆

两种策略对磁盘的最终效果一致，由 Config.bower_fetch_strategy 选择。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from pkgmgmt.core.exceptions import ExecutionError, NetworkFetchError
from pkgmgmt.core.fetch.archive import inflate_archive
from pkgmgmt.core.models import GITHUB_ROOT_URL, Package
from pkgmgmt.utils.net import DEFAULT_TIMEOUT, download_bytes

if TYPE_CHECKING:
    from pkgmgmt.core.protocols import ScmProvider

logger = logging.getLogger(__name__)


class ContentFetcher(Protocol):
    """把包内容写入已准备好的目录"""

    def fetch(self, package: Package, directory: Path) -> None:
        ...


class ZipContentFetcher:
    """下载分支的 zip 归档并解压（不支持取消）"""

    def __init__(self, root_url: str = GITHUB_ROOT_URL, timeout: int = DEFAULT_TIMEOUT) -> None:
        self.root_url = root_url
        self.timeout = timeout

    def fetch(self, package: Package, directory: Path) -> None:
        url = package.zip_url(self.root_url)
        try:
            data = download_bytes(url, timeout=self.timeout, context=f"zip {package.name}")
        except NetworkFetchError as e:
            raise NetworkFetchError(f"下载包 '{package.name}' 的归档失败: {e.args[0]}") from e
        count = inflate_archive(data, directory)
        logger.info("zip 就绪: %s@%s -> %s (%d 个条目)", package.name, package.branch, directory, count)


class CloneContentFetcher:
    """通过源码管理提供者克隆分支"""

    def __init__(self, scm: ScmProvider, root_url: str = GITHUB_ROOT_URL) -> None:
        self.scm = scm
        self.root_url = root_url

    def fetch(self, package: Package, directory: Path) -> None:
        url = package.clone_url(self.root_url)
        try:
            self.scm.clone(url, directory, branch=package.branch)
        except ExecutionError as e:
            raise type(e)(f"克隆包 '{package.name}' 失败: {e.args[0]}", e.code) from e
        logger.info("克隆就绪: %s@%s -> %s", package.name, package.branch, directory)

    def cancel(self) -> None:
        self.scm.cancel_clone()
