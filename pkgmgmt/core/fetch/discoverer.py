"""依赖图发现器

从根清单出发，递归拉取每个已解析包自己的清单，得到完整的传递依赖集合。

并发模型:
  - 协调线程独占 DiscoverySet 与解析说明，是唯一的写入方
  - 工作线程只负责下载远程清单文本并返回（消息传递，无共享可变状态）
  - 同一层及跨层的下载全部并发提交，并发度受 max_workers 限制
  - 以名字判重，先发现者胜出；循环引用因此自然终止

容错:
  - 根清单解析失败 -> 抛出，整个批次失败
  - 子包清单下载 / 解析失败 -> 记 warning，不影响兄弟包的发现
"""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable

from pkgmgmt.core.exceptions import PkgMgmtError
from pkgmgmt.core.models import DependencyDeclaration, Package, ResolutionComments
from pkgmgmt.core.policy import ResolutionConfig, resolve_declaration
from pkgmgmt.core.spec_parser import parse_manifest

logger = logging.getLogger(__name__)

# 读取某个包的远程清单文本；失败时抛 PkgMgmtError
RemoteSpecReader = Callable[[Package], str]

DiscoverySet = dict[str, Package]


class DependencyDiscoverer:
    """递归依赖发现器"""

    def __init__(
        self,
        read_remote_spec: RemoteSpecReader,
        *,
        config: ResolutionConfig | None = None,
        manifest_format: str = "json",
        max_workers: int = 8,
    ) -> None:
        self._read_remote_spec = read_remote_spec
        self.config = config or ResolutionConfig()
        self.manifest_format = manifest_format
        self.max_workers = max(1, max_workers)

    def discover(
        self, root_text: str, root_desc: str = "根清单",
    ) -> tuple[DiscoverySet, ResolutionComments]:
        """发现完整依赖集合，返回 (name -> Package, 解析说明)"""
        found: DiscoverySet = {}
        comments = ResolutionComments()

        # 根清单解析失败直接抛出
        pending_pkgs = self._absorb(root_text, root_desc, found, comments)

        if not pending_pkgs:
            return found, comments

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            pending: dict[Future[str], Package] = {
                pool.submit(self._read_remote_spec, p): p for p in pending_pkgs
            }
            while pending:
                done, _ = wait(pending, return_when=FIRST_COMPLETED)
                for fut in done:
                    pkg = pending.pop(fut)
                    children = self._absorb_remote(fut, pkg, found, comments)
                    for child in children:
                        pending[pool.submit(self._read_remote_spec, child)] = child

        logger.info(
            "依赖发现完成: %d 个包 (%d 个已解析)",
            len(found), sum(1 for p in found.values() if p.is_resolved),
        )
        return found, comments

    def _absorb_remote(
        self,
        fut: Future[str],
        pkg: Package,
        found: DiscoverySet,
        comments: ResolutionComments,
    ) -> list[Package]:
        """处理一个子包清单的下载结果；失败只影响该包"""
        desc = f'包 "{pkg.path}"'
        try:
            return self._absorb(fut.result(), desc, found, comments)
        except PkgMgmtError as e:
            logger.warning("跳过 %s 的子依赖: %s", desc, e)
        except OSError as e:
            logger.warning("读取 %s 的清单失败: %s", desc, e)
        except Exception:
            # 子包的任何异常只影响该包，根清单的错误在 discover 中直接抛出
            logger.exception("处理 %s 的清单时出错", desc)
        return []

    def _absorb(
        self,
        text: str,
        desc: str,
        found: DiscoverySet,
        comments: ResolutionComments,
    ) -> list[Package]:
        """解析一份清单，登记新包，返回需要继续递归的已解析包"""
        info = parse_manifest(text, self.manifest_format, source=desc)
        new_resolved: list[Package] = []
        for decl in info.declarations():
            if decl.name in found:
                self._report_duplicate(found[decl.name], decl, desc)
                continue
            pkg = resolve_declaration(decl, self.config)
            found[decl.name] = pkg
            comments.record(pkg)
            if pkg.is_resolved:
                new_resolved.append(pkg)
        return new_resolved

    def _report_duplicate(self, existing: Package, decl: DependencyDeclaration, desc: str) -> None:
        """重复声明不合并；来源不同时提示冲突"""
        dup = resolve_declaration(decl, self.config)
        if existing.is_resolved and dup.is_resolved and not existing.same_source(dup):
            logger.warning(
                "依赖冲突: %s 已使用 %s#%s，忽略 %s 中声明的 %s#%s",
                existing.name, existing.path, existing.branch,
                desc, dup.path, dup.branch,
            )
        else:
            logger.debug("已发现 %s，忽略来自 %s 的重复声明", existing.name, desc)
