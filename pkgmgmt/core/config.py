"""集中配置管理

包管理相关的所有可调项（依赖覆盖表、忽略列表、拉取策略、并发度等）
统一在此定义。支持从 YAML 文件加载 + 编程式覆盖。
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field

import yaml

from pkgmgmt.core.exceptions import ConfigError
from pkgmgmt.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

FETCH_STRATEGIES = ("zip", "clone")


@dataclass
class Config:
    """包管理全局配置"""

    # bower 依赖解析策略
    bower_ignored_deps: list[str] = field(default_factory=list)
    bower_overridden_deps: dict[str, str] = field(default_factory=dict)
    bower_map_complex_ver_to_latest_stable: bool = False
    bower_fetch_strategy: str = "zip"  # "zip" 或 "clone"

    # 远程来源
    github_root_url: str = "https://github.com"
    github_user_content_url: str = "https://raw.githubusercontent.com"
    request_timeout: int = 60

    # pub 外部工具
    pub_command: str = "dart pub"

    # 执行
    max_workers: int = 8

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.bower_fetch_strategy not in FETCH_STRATEGIES:
            raise ConfigError(
                f"不支持的拉取策略: {self.bower_fetch_strategy}，"
                f"可选: {', '.join(FETCH_STRATEGIES)}"
            )
        if self.max_workers < 1:
            raise ConfigError(f"max_workers 必须 >= 1: {self.max_workers}")

    @classmethod
    def from_file(cls, path: str = "configs/default.yml") -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        try:
            data = load_yaml(path)
        except (yaml.YAMLError, OSError, ValueError) as e:
            raise ConfigError(f"配置文件无法加载: {path} - {e}") from e
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known}
        extra = {k: v for k, v in data.items() if k not in known}
        # 空值 (如 "bower_ignored_deps:") 视为未配置
        matched = {k: v for k, v in matched.items() if v is not None}
        try:
            cfg = cls(**matched)
        except TypeError as e:
            raise ConfigError(f"配置文件字段无效: {path} - {e}") from e
        cfg.extra = extra
        return cfg

    def to_dict(self) -> dict:
        return asdict(self)


# 全局单例，首次 import 时不加载文件；由 CLI / Web 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = "configs/default.yml") -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current
