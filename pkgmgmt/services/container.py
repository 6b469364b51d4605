"""服务容器: 统一依赖注入

CLI 和 Web 层均通过 get_container() 获取包管理器，而非直接 import 构造。
同一容器内的实例共享状态（自引用名、诊断标记、源码管理提供者）。

依赖关系图（→ 表示依赖）:
  bower → scm, markers
  pub   → markers

用法:
    container = ServiceContainer()
    bower = container.bower              # 懒加载
    container.manager("pub")             # 按名称获取

    # 显式注入配置
    cfg = Config.from_file("configs/default.yml")
    container = ServiceContainer(config=cfg)
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from pkgmgmt.core.exceptions import ValidationError

if TYPE_CHECKING:
    from pkgmgmt.core.config import Config
    from pkgmgmt.core.markers import MarkerStore
    from pkgmgmt.services.bower import BowerManager
    from pkgmgmt.services.pub import PubManager
    from pkgmgmt.services.scm import ScmRegistry

logger = logging.getLogger(__name__)

MANAGER_NAMES = ("bower", "pub")


class ServiceContainer:
    """懒加载服务容器"""

    def __init__(self, config: Config | None = None) -> None:
        self._instances: dict[str, object] = {}
        self._lock = threading.RLock()
        if config is None:
            from pkgmgmt.core.config import get_config
            config = get_config()
        self._config = config

    @property
    def config(self) -> Config:
        return self._config

    @property
    def scm(self) -> ScmRegistry:
        with self._lock:
            if "scm" not in self._instances:
                from pkgmgmt.services.scm import ScmRegistry
                self._instances["scm"] = ScmRegistry.default()
            return self._instances["scm"]  # type: ignore[return-value]

    @property
    def markers(self) -> MarkerStore:
        with self._lock:
            if "markers" not in self._instances:
                from pkgmgmt.core.markers import MarkerStore
                self._instances["markers"] = MarkerStore()
            return self._instances["markers"]  # type: ignore[return-value]

    @property
    def bower(self) -> BowerManager:
        with self._lock:
            if "bower" not in self._instances:
                from pkgmgmt.services.bower import BowerManager
                self._instances["bower"] = BowerManager(
                    self._config, scm_registry=self.scm, markers=self.markers,
                )
            return self._instances["bower"]  # type: ignore[return-value]

    @property
    def pub(self) -> PubManager:
        with self._lock:
            if "pub" not in self._instances:
                from pkgmgmt.services.pub import PubManager
                self._instances["pub"] = PubManager(self._config, markers=self.markers)
            return self._instances["pub"]  # type: ignore[return-value]

    def manager(self, name: str) -> BowerManager | PubManager:
        """按名称获取包管理器"""
        if name not in MANAGER_NAMES:
            raise ValidationError(f"未知的包管理器: {name} (可用: {', '.join(MANAGER_NAMES)})")
        return getattr(self, name)


# ---- 全局单例 ----

_global: ServiceContainer | None = None
_global_lock = threading.Lock()


def get_container() -> ServiceContainer:
    """获取全局 ServiceContainer 单例（线程安全）"""
    global _global  # noqa: PLW0603
    if _global is not None:
        return _global
    with _global_lock:
        if _global is None:
            _global = ServiceContainer()
        return _global


def reset_container() -> None:
    """重置全局容器（仅用于测试）"""
    global _global  # noqa: PLW0603
    with _global_lock:
        _global = None
