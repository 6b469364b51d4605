"""YAML 读取工具

集中管理 YAML 的反序列化: 配置文件走 load_yaml，pubspec 文本走 loads_yaml。
统一 encoding="utf-8"、空值保护、大小限制。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# YAML 文件最大大小限制 (10MB)，防止恶意大文件导致内存耗尽
MAX_YAML_SIZE = 10 * 1024 * 1024


def loads_yaml(text: str) -> Any:
    """解析 YAML 文本，返回原始结构（可能是 None / list / dict / 标量）

    异常:
        yaml.YAMLError: YAML 格式错误
        ValueError: 文本过大
    """
    if len(text) > MAX_YAML_SIZE:
        raise ValueError(f"YAML 文本过大: {len(text)} 字节，超过限制 {MAX_YAML_SIZE} 字节")
    return yaml.safe_load(text)


def load_yaml(path: str | Path) -> dict[str, Any]:
    """安全读取 YAML 文件

    返回:
        dict: 解析后的字典。文件不存在、为空、或内容不是字典时返回空字典

    异常:
        yaml.YAMLError: YAML 格式错误
        OSError: IO 错误
        ValueError: 文件过大（超过 MAX_YAML_SIZE）
    """
    p = Path(path)
    if not p.exists():
        return {}

    file_size = p.stat().st_size
    if file_size > MAX_YAML_SIZE:
        raise ValueError(
            f"YAML 文件过大: {p} ({file_size} 字节), "
            f"超过限制 {MAX_YAML_SIZE} 字节"
        )

    try:
        result = loads_yaml(p.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        logger.error("解析 YAML 文件失败: %s, 错误: %s", path, e)
        raise
    except OSError as e:
        logger.error("读取文件失败: %s, 错误: %s", path, e)
        raise

    if result is None:
        return {}
    if not isinstance(result, dict):
        logger.warning(
            "%s 内容不是字典类型 (实际类型: %s)，返回空字典",
            path, type(result).__name__,
        )
        return {}
    return result
