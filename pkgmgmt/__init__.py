"""pkgmgmt - 项目依赖包解析与拉取引擎

支持两种生态:
  - bower: bower.json 清单 + 进程内递归发现 / 拉取
  - pub:   pubspec.yaml 清单 + 外部 pub 工具
"""

__version__ = "0.4.0"
