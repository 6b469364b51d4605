"""依赖引用解析策略

纯函数: 把一条依赖声明 + 配置映射为 Package（含解析结论、path、branch）。

规则按顺序执行（顺序即语义）:
  1. 名字在忽略列表中            -> Ignored(PER_CONFIG_DIRECTIVE)，结束
  2. 表达式为 "*":
       覆盖表无此名字             -> Unresolved(STAR_PATH_UNMAPPED)，结束
       有映射                     -> 采用映射表达式，标记 STAR_PATH_MAPPED
  3. 否则若覆盖表有此名字        -> 采用映射表达式，标记 PATH_OVERRIDDEN，继续
  4. 表达式不匹配 path(#branch)?  -> Unresolved(MALFORMED_SPEC)，结束
  5. 无 branch                    -> 使用 DEFAULT_BRANCH
  6. branch 不是简单 token:
       开启 map_complex_to_stable -> 使用 DEFAULT_BRANCH，标记 COMPLEX_VERSION_DEFAULTED
       否则                       -> Unresolved(COMPLEX_VERSION_UNSUPPORTED)，结束
  7. 尚未标记                     -> USED_AS_IS
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pkgmgmt.core.models import (
    DEFAULT_BRANCH,
    DependencyDeclaration,
    IgnoredReason,
    Package,
    Reason,
    Resolution,
    ResolvedReason,
    UnresolvedReason,
)

if TYPE_CHECKING:
    from pkgmgmt.core.config import Config

STAR_PATH = "*"

# 如 "Polymer", "Polymer/core-elements"
_PACKAGE_PATH = r"[-\w./]+"
# 直接分支 / 版本，如 "master", "1.2.3", "1.2.3-pre.4"
_PACKAGE_BRANCH_SIMPLE = r"[-\w.]+"
# 简单分支的超集，额外接受 "^1.2.3", "~1.2.3", "1.2.*", "'>=1.2.3 <2.0.0'"
_PACKAGE_BRANCH_FULL = r"'?[-\w.^=><~* ]+'?"

_PACKAGE_SPEC_RE = re.compile(rf"^({_PACKAGE_PATH})(?:#({_PACKAGE_BRANCH_FULL}))?$")
_PACKAGE_BRANCH_SIMPLE_RE = re.compile(rf"^{_PACKAGE_BRANCH_SIMPLE}$")


@dataclass(frozen=True)
class ResolutionConfig:
    """策略所需的配置子集"""

    ignored: frozenset[str] = frozenset()
    overridden: dict[str, str] = field(default_factory=dict)
    map_complex_to_stable: bool = False

    @classmethod
    def from_config(cls, cfg: Config) -> ResolutionConfig:
        return cls(
            ignored=frozenset(cfg.bower_ignored_deps or ()),
            overridden=dict(cfg.bower_overridden_deps or {}),
            map_complex_to_stable=bool(cfg.bower_map_complex_ver_to_latest_stable),
        )


def is_simple_branch(branch: str) -> bool:
    return _PACKAGE_BRANCH_SIMPLE_RE.match(branch) is not None


def resolve_dependency(
    name: str, location_expr: str, config: ResolutionConfig | None = None,
) -> Package:
    """按规则评估单条依赖声明"""
    config = config or ResolutionConfig()

    def _package(reason: Reason, expr: str = location_expr, path: str = "", branch: str = "") -> Package:
        return Package(
            name=name,
            declared_expr=location_expr,
            resolution=Resolution(reason),
            location_expr=expr,
            path=path,
            branch=branch,
        )

    if name in config.ignored:
        return _package(IgnoredReason.PER_CONFIG_DIRECTIVE)

    reason: Reason | None = None
    expr = location_expr
    mapped = config.overridden.get(name)

    if location_expr == STAR_PATH:
        if mapped is None:
            return _package(UnresolvedReason.STAR_PATH_UNMAPPED)
        expr = mapped
        reason = ResolvedReason.STAR_PATH_MAPPED
    elif mapped is not None:
        # 覆盖后的表达式仍需经过格式校验
        expr = mapped
        reason = ResolvedReason.PATH_OVERRIDDEN

    m = _PACKAGE_SPEC_RE.match(expr)
    if m is None:
        return _package(UnresolvedReason.MALFORMED_SPEC, expr)

    path, branch = m.group(1), m.group(2)

    if branch is None:
        branch = DEFAULT_BRANCH
    elif not is_simple_branch(branch):
        if not config.map_complex_to_stable:
            return _package(UnresolvedReason.COMPLEX_VERSION_UNSUPPORTED, expr, path, branch)
        reason = ResolvedReason.COMPLEX_VERSION_DEFAULTED
        branch = DEFAULT_BRANCH

    if reason is None:
        reason = ResolvedReason.USED_AS_IS
    return _package(reason, expr, path, branch)


def resolve_declaration(
    decl: DependencyDeclaration, config: ResolutionConfig | None = None,
) -> Package:
    return resolve_dependency(decl.name, decl.location_expr, config)
