"""依赖发现与拉取引擎

- discoverer.py:   递归发现传递依赖（并发下载远程清单）
- materializer.py: 包目录准备决策表 + 并发拉取
- strategies.py:   内容拉取策略 zip / clone
- archive.py:      zip 解压（去顶层目录，按序写入）
- fetcher.py:      BowerFetcher，串联以上步骤
"""

from pkgmgmt.core.fetch.discoverer import DependencyDiscoverer
from pkgmgmt.core.fetch.fetcher import BowerFetcher
from pkgmgmt.core.fetch.materializer import PackageMaterializer
from pkgmgmt.core.fetch.strategies import CloneContentFetcher, ZipContentFetcher

__all__ = [
    "DependencyDiscoverer",
    "PackageMaterializer",
    "ZipContentFetcher",
    "CloneContentFetcher",
    "BowerFetcher",
]
