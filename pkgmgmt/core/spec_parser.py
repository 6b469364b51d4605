"""清单解析器

把 bower.json (JSON) / pubspec.yaml (YAML) 文本解析为 ManifestInfo。
无副作用；文本无法解析或顶层不是映射时抛 MalformedManifestError。

宽松策略: dependencies / dev_dependencies 不是映射时视为没有依赖，
而不是格式错误。
"""

from __future__ import annotations

import json
import logging
from typing import Any

import yaml

from pkgmgmt.core.exceptions import MalformedManifestError
from pkgmgmt.core.models import ManifestInfo
from pkgmgmt.utils.yaml_io import loads_yaml

logger = logging.getLogger(__name__)

MANIFEST_FORMATS = ("json", "yaml")


def parse_manifest(text: str, fmt: str = "json", *, source: str = "") -> ManifestInfo:
    """解析清单文本

    参数:
        text: 清单文本，空文本视为空清单
        fmt: "json" 或 "yaml"
        source: 出错时附在消息里的来源描述
    """
    if fmt not in MANIFEST_FORMATS:
        raise ValueError(f"不支持的清单格式: {fmt}")

    if not text.strip():
        return ManifestInfo()

    label = f" ({source})" if source else ""
    try:
        data = json.loads(text) if fmt == "json" else loads_yaml(text)
    except (json.JSONDecodeError, yaml.YAMLError, ValueError) as e:
        raise MalformedManifestError(f"清单解析失败{label}: {e}") from e

    if data is None:
        return ManifestInfo()
    if not isinstance(data, dict):
        raise MalformedManifestError(
            f"清单顶层必须是映射{label}，实际类型: {type(data).__name__}"
        )

    name = data.get("name")
    return ManifestInfo(
        name=str(name) if name is not None else None,
        dependencies=_deps_section(data, "dependencies"),
        dev_dependencies=_deps_section(data, "dev_dependencies"),
    )


def _deps_section(data: dict[str, Any], key: str) -> dict[str, str]:
    raw = data.get(key)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        logger.debug("%s 不是映射 (类型: %s)，按无依赖处理", key, type(raw).__name__)
        return {}
    # pubspec 中 "foo:" 或 "foo: {path: ...}" 这类值统一转为字符串
    return {str(k): "" if v is None else str(v) for k, v in raw.items()}


def format_for(filename: str) -> str:
    """根据清单文件名推断格式"""
    return "yaml" if filename.endswith((".yaml", ".yml")) else "json"
